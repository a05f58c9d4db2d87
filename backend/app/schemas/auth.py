"""
Auth request/response schemas.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"


class SignupRequest(BaseModel):
    """
    Payload for POST /auth/signup.

    Only username and password are required; the display name and email can
    be filled in later and are shown to fellow group members when present.
    """

    username: str = Field(..., min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr | None = None
    name: str | None = Field(default=None, max_length=60)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def blank_name_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """The caller's own profile, as returned by signup and /auth/me."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str | None = None
    name: str | None = None
    avatar: str | None = None
