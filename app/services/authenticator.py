"""Strategy-based authenticator for OAuth logins."""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol
from uuid import uuid4

from structlog import get_logger

from app.core.exceptions import AuthenticationError, IdentityError
from app.schemas.session import AuthErrorPayload, SessionData
from app.schemas.users import Identity, UserInDB

logger = get_logger(__name__)

ResolveUser = Callable[[Identity], Awaitable[UserInDB]]


class Strategy(Protocol):
    """An identity provider the authenticator can drive."""

    name: str

    def authorization_url(self, state: str) -> str: ...

    async def verify(self, params: Mapping[str, str]) -> Identity: ...


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a callback: the user (if any) and the session to commit."""

    user: UserInDB | None
    session: SessionData


class Authenticator:
    """
    Registry of named strategies driving the challenge and callback phases.

    With ``throw_on_error`` (the default) a failed callback raises
    ``AuthenticationError`` so callers can tell "not authenticated" apart
    from "authentication errored". Otherwise the error is returned embedded
    in the session under ``auth:error``.
    """

    def __init__(self, strategies: Iterable[Strategy], throw_on_error: bool = True):
        """Initialize with the strategies available for the process lifetime."""
        registry = {}
        for strategy in strategies:
            if strategy.name in registry:
                raise ValueError(f"Duplicate strategy name: {strategy.name}")
            registry[strategy.name] = strategy
        self._strategies = MappingProxyType(registry)
        self._throw_on_error = throw_on_error

    @property
    def strategies(self) -> Mapping[str, Strategy]:
        return self._strategies

    @property
    def throw_on_error(self) -> bool:
        return self._throw_on_error

    def get_strategy(self, name: str) -> Strategy:
        """Look up a registered strategy."""
        try:
            return self._strategies[name]
        except KeyError:
            raise IdentityError(f"Unknown authentication strategy: {name}")

    def is_authenticated(self, session: SessionData) -> UserInDB | None:
        """Return the signed-in user, if any."""
        return session.user

    def challenge(self, strategy_name: str, session: SessionData) -> tuple[str, SessionData]:
        """
        Start a login.

        Returns:
            Tuple of (provider redirect URL, session holding the new state token)
        """
        strategy = self.get_strategy(strategy_name)
        state = uuid4()
        updated = session.model_copy(
            update={"oauth_state": state, "strategy": strategy_name, "auth_error": None}
        )
        return strategy.authorization_url(str(state)), updated

    async def authenticate(
        self,
        strategy_name: str,
        params: Mapping[str, str],
        session: SessionData,
        resolve: ResolveUser,
    ) -> AuthResult:
        """
        Complete a login from the provider callback.

        Args:
            strategy_name: Registered strategy the callback belongs to
            params: Callback query parameters
            session: Current session, holding the pending state token
            resolve: Turns the verified identity into a local user

        Returns:
            The user and the session to commit. On failure without
            ``throw_on_error`` the user is None and the session carries the error.

        Raises:
            AuthenticationError: On failure with ``throw_on_error``
        """
        try:
            strategy = self.get_strategy(strategy_name)

            if params.get("error"):
                raise IdentityError(f"Provider returned an error: {params['error']}")

            state = params.get("state")
            if session.oauth_state is None or state != str(session.oauth_state):
                raise IdentityError("OAuth state mismatch")

            identity = await strategy.verify(params)
            user = await resolve(identity)
        except AuthenticationError as e:
            logger.warning(
                "authentication_failed",
                strategy=strategy_name,
                error_type=e.__class__.__name__,
                error=e.message,
            )
            if self._throw_on_error:
                raise
            failed = session.model_copy(
                update={"oauth_state": None, "auth_error": AuthErrorPayload(message=e.message)}
            )
            return AuthResult(user=None, session=failed)

        logger.info("authentication_succeeded", strategy=strategy_name, user_id=user.user_id)
        return AuthResult(user=user, session=SessionData(user=user, strategy=strategy_name))

    def logout(self, session: SessionData) -> SessionData:
        """Return the session to commit after signing out."""
        return SessionData()
