"""Add auth_rate_limits table for authentication attempt accounting.

Revision ID: 20261018_auth_rate_limits
Revises:
Create Date: 2026-10-18 09:12:44.208113
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_auth_rate_limits"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "auth_rate_limits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identifier", sa.String(length=255), nullable=False),
        sa.Column("attempt_type", sa.String(length=32), nullable=False),
        sa.Column(
            "attempted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_auth_rate_limits_identifier"), "auth_rate_limits", ["identifier"], unique=False
    )
    op.create_index(
        op.f("ix_auth_rate_limits_attempted_at"), "auth_rate_limits", ["attempted_at"], unique=False
    )
    op.create_index(
        "ix_auth_rate_limits_lookup",
        "auth_rate_limits",
        ["identifier", "attempt_type", "attempted_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_auth_rate_limits_lookup", table_name="auth_rate_limits")
    op.drop_index(op.f("ix_auth_rate_limits_attempted_at"), table_name="auth_rate_limits")
    op.drop_index(op.f("ix_auth_rate_limits_identifier"), table_name="auth_rate_limits")
    op.drop_table("auth_rate_limits")
