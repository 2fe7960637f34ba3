"""Signed cookie session storage."""

from datetime import UTC, datetime, timedelta
from typing import Literal

from fastapi import Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError
from structlog import get_logger

from app.config import Settings
from app.schemas.session import SessionData

logger = get_logger(__name__)

SESSION_ALGORITHM = "HS256"


class CookieSessionStore:
    """
    Keeps the whole session payload in a signed cookie.

    The payload is a JWT signed with the first secret; any of the secrets
    verifies it, which allows rotating secrets without logging everyone out.
    A payload that fails signature, expiry or schema validation loads as an
    empty session.
    """

    def __init__(
        self,
        secrets: list[str],
        cookie_name: str = "__session",
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = "lax",
        http_only: bool = True,
        secure: bool = False,
        max_age: int = 60 * 60 * 24 * 30,
    ):
        """Initialize session store."""
        if not secrets:
            raise ValueError("At least one session secret is required")
        self.secrets = list(secrets)
        self.cookie_name = cookie_name
        self.path = path
        self.same_site = same_site
        self.http_only = http_only
        self.secure = secure
        self.max_age = max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> "CookieSessionStore":
        """Build a store from application settings."""
        return cls(
            secrets=settings.session_secrets,
            cookie_name=settings.session_cookie_name,
            secure=settings.is_production,
            max_age=settings.session_max_age_seconds,
        )

    def load(self, request: Request) -> SessionData:
        """Read the session bound to this request."""
        token = request.cookies.get(self.cookie_name)
        if not token:
            return SessionData()
        return self.decode(token)

    def decode(self, token: str) -> SessionData:
        """Verify and validate a session cookie value."""
        for secret in self.secrets:
            try:
                claims = jwt.decode(token, secret, algorithms=[SESSION_ALGORITHM])
            except ExpiredSignatureError:
                return SessionData()
            except JWTError:
                continue

            try:
                return SessionData.model_validate(claims.get("data"))
            except ValidationError as e:
                logger.warning("session_payload_invalid", errors=e.error_count())
                return SessionData()

        logger.warning("session_signature_invalid")
        return SessionData()

    def commit(self, session: SessionData) -> str:
        """Serialize and sign ``session`` into a cookie value."""
        now = datetime.now(UTC)
        return jwt.encode(
            {
                "data": session.to_payload(),
                "iat": now,
                "exp": now + timedelta(seconds=self.max_age),
            },
            self.secrets[0],
            algorithm=SESSION_ALGORITHM,
        )

    def apply(self, response: Response, session: SessionData) -> None:
        """Attach the committed session to ``response``."""
        response.set_cookie(
            self.cookie_name,
            self.commit(session),
            max_age=self.max_age,
            path=self.path,
            secure=self.secure,
            httponly=self.http_only,
            samesite=self.same_site,
        )

    def destroy(self, response: Response) -> None:
        """Clear the session cookie."""
        response.delete_cookie(
            self.cookie_name,
            path=self.path,
            secure=self.secure,
            httponly=self.http_only,
            samesite=self.same_site,
        )
