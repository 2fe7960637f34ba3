"""Session payload schema."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.users import UserInDB


class AuthErrorPayload(BaseModel):
    """Last authentication error, flashed to the next request."""

    message: str


class SessionData(BaseModel):
    """
    Typed session payload.

    Keys use the same wire names a cookie-session authenticator writes, so
    ``oauth_state`` is serialized as ``oauth2:state`` and ``auth_error`` as
    ``auth:error``. Unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user: UserInDB | None = None
    strategy: str | None = None
    oauth_state: UUID | None = Field(default=None, alias="oauth2:state")
    auth_error: AuthErrorPayload | None = Field(default=None, alias="auth:error")

    def to_payload(self) -> dict:
        """Serialize to a JSON-compatible dict, omitting unset keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
