"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.user import UserRole


class AuthPrincipal(BaseModel):
    """Identity bound to a request once its bearer token is accepted.

    Only what the signed payload carries: role and profile data are looked up
    fresh from the principal store whenever a route needs them.
    """

    user_id: UUID
    handle: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    surname: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    # bcrypt only looks at the first 72 bytes.
    password: str = Field(min_length=8, max_length=72)
    channel_id: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class UserInfo(BaseModel):
    id: UUID
    name: str
    surname: str
    email: str
    role: UserRole
    channel_id: str | None = None


class LoginResponse(BaseModel):
    token: str
    type: str = "Bearer"
    expires_in: int
    user: UserInfo
