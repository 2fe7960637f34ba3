"""Google OAuth 2.0 / OpenID Connect strategy."""

from collections.abc import Mapping, Sequence

import httpx
from pydantic import ValidationError

from app.config import Settings
from app.core.exceptions import IdentityError
from app.schemas.users import Identity

AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleStrategy:
    """Signs users in with their Google account."""

    name = "google"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        callback_url: str,
        scopes: Sequence[str] = ("openid", "email", "profile"),
        timeout: float = 10.0,
    ):
        """Initialize strategy with OAuth client credentials."""
        self.http = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.scopes = tuple(scopes)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient, settings: Settings) -> "GoogleStrategy":
        """Build a strategy from application settings."""
        return cls(
            http_client,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            callback_url=settings.google_callback_url,
        )

    def authorization_url(self, state: str) -> str:
        """Build the consent screen URL for ``state``."""
        url = httpx.URL(
            AUTHORIZATION_URL,
            params={
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
                "response_type": "code",
                "scope": " ".join(self.scopes),
                "state": state,
                "prompt": "select_account",
            },
        )
        return str(url)

    async def verify(self, params: Mapping[str, str]) -> Identity:
        """
        Exchange the authorization code and fetch the user's profile.

        Args:
            params: Callback query parameters

        Returns:
            Verified identity

        Raises:
            IdentityError: If the exchange fails or the email is not verified
        """
        code = params.get("code")
        if not code:
            raise IdentityError("Missing authorization code")

        try:
            token_response = await self.http.post(
                TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.callback_url,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            if token_response.is_error:
                raise IdentityError(f"Code exchange failed: HTTP {token_response.status_code}")

            access_token = token_response.json().get("access_token")
            if not access_token:
                raise IdentityError("Code exchange returned no access token")

            profile_response = await self.http.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            if profile_response.is_error:
                raise IdentityError(f"Profile request failed: HTTP {profile_response.status_code}")
            profile = profile_response.json()
        except httpx.HTTPError as e:
            raise IdentityError(f"Google request failed: {e!s}")
        except ValueError:
            raise IdentityError("Google returned a malformed response")

        if not profile.get("email"):
            raise IdentityError("Google profile has no email")
        if not profile.get("email_verified", False):
            raise IdentityError("Google email is not verified")

        try:
            return Identity(
                email=profile["email"],
                display_name=profile.get("name"),
                avatar_url=profile.get("picture"),
            )
        except ValidationError:
            raise IdentityError("Google profile email is invalid")
