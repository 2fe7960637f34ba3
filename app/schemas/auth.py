"""Authentication schemas."""

from pydantic import BaseModel

from app.schemas.users import UserResponse


class SessionResponse(BaseModel):
    """Who is signed in on this device, if anyone."""

    user: UserResponse | None = None


class AuthErrorResponse(BaseModel):
    """Last authentication error recorded in the session."""

    message: str | None = None
