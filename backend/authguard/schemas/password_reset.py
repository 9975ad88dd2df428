from pydantic import BaseModel, ConfigDict, Field

# Identical for existing and unknown accounts
PASSWORD_RESET_MESSAGE = "If an account exists, a reset email has been sent"


class PasswordResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    redirect_url: str | None = Field(default=None, alias="redirectUrl")


class PasswordResetResponse(BaseModel):
    success: bool = True
    message: str = PASSWORD_RESET_MESSAGE
