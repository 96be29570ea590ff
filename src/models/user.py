"""User identity and profile models."""

from pydantic import BaseModel, Field


class Profile(BaseModel):
    """Local profile projection of an identity, keyed by the identity id."""

    user_id: str = Field(..., description="Cognito subject id")
    email: str | None = Field(None, description="User email address")
    display_name: str | None = Field(None, description="Name shown to admins")
    created_at: str = Field(..., description="ISO timestamp when profile was created")
    updated_at: str | None = Field(None, description="ISO timestamp of last update")


class SignupRequest(BaseModel):
    """Request body for POST /signup."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    """Request body for POST /login and POST /admin/login."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    """Request body for POST /profile/update."""

    display_name: str = Field(..., min_length=1, max_length=100)
