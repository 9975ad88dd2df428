"""
Authentication attempt log for rate limiting.

One row per allowed attempt, keyed by normalized identifier and attempt type.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from authguard.db.base import Base


class AuthRateLimit(Base):
    """An allowed sign-in, sign-up or password reset attempt."""

    __tablename__ = "auth_rate_limits"
    __table_args__ = (
        Index("ix_auth_rate_limits_lookup", "identifier", "attempt_type", "attempted_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    attempt_type: Mapped[str] = mapped_column(String(32), nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<AuthRateLimit {self.attempt_type} {self.identifier} at {self.attempted_at}>"
