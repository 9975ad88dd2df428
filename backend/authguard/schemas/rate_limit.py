from pydantic import BaseModel, ConfigDict, Field


class RateLimitCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identifier: str | None = None
    attempt_type: str | None = Field(default=None, alias="attemptType")


class RateLimitCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    allowed: bool
    remaining: int
    retry_after: int | None = Field(default=None, alias="retryAfter")
