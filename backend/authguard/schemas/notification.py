from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LockoutNotification(BaseModel):
    """A one-shot lockout alert. Built by the rate limiter, consumed once."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    attempt_type: str = Field(default="login", alias="attemptType")
    lockout_minutes: int = Field(default=15, alias="lockoutMinutes", ge=1)


class LockoutNotificationResponse(BaseModel):
    success: bool
    data: dict[str, Any] | None = None
