"""Authentication endpoints."""

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse
from structlog import get_logger

from app.config import settings
from app.core.exceptions import AuthenticationError, NotFoundException
from app.dependencies import AuthenticatorDep, Coordinator, Session, SessionStore
from app.schemas.auth import AuthErrorResponse, SessionResponse
from app.schemas.session import AuthErrorPayload, SessionData
from app.schemas.users import Identity, UserInDB, UserResponse

router = APIRouter()
logger = get_logger(__name__)


def _redirect(url: str, store: SessionStore, session: SessionData) -> RedirectResponse:
    response = RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)
    store.apply(response, session)
    return response


@router.get(
    "/{strategy}/login",
    status_code=status.HTTP_303_SEE_OTHER,
    tags=["Authentication"],
    summary="Start an OAuth login",
)
async def login(
    strategy: str,
    session: Session,
    store: SessionStore,
    authenticator: AuthenticatorDep,
) -> RedirectResponse:
    """
    Redirect to the identity provider's consent screen.

    A fresh state token is stored in the session and checked on callback.

    Raises:
        NotFoundException: If the strategy is not registered
    """
    if strategy not in authenticator.strategies:
        raise NotFoundException(f"Unknown authentication strategy: {strategy}")

    url, updated = authenticator.challenge(strategy, session)
    return _redirect(url, store, updated)


@router.get(
    "/{strategy}/callback",
    status_code=status.HTTP_303_SEE_OTHER,
    tags=["Authentication"],
    summary="OAuth callback",
)
async def callback(
    strategy: str,
    request: Request,
    session: Session,
    store: SessionStore,
    authenticator: AuthenticatorDep,
    coordinator: Coordinator,
) -> RedirectResponse:
    """
    Complete the login, provisioning a vector database on first login.

    Failures never surface as raw errors: the message is stored in the
    session under ``auth:error`` and the browser is sent to the failure page.
    """

    async def resolve(identity: Identity) -> UserInDB:
        outcome = await coordinator.resolve(identity)
        return outcome.unwrap()

    try:
        result = await authenticator.authenticate(
            strategy, request.query_params, session, resolve
        )
    except AuthenticationError as e:
        failed = session.model_copy(
            update={"oauth_state": None, "auth_error": AuthErrorPayload(message=e.message)}
        )
        return _redirect(settings.auth_failure_redirect, store, failed)

    if result.user is None:
        return _redirect(settings.auth_failure_redirect, store, result.session)

    return _redirect(settings.auth_success_redirect, store, result.session)


@router.get(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current session",
)
async def current_session(
    session: Session,
    authenticator: AuthenticatorDep,
) -> SessionResponse:
    """
    Who is signed in on this device.

    Returns:
        The signed-in user, or null
    """
    user = authenticator.is_authenticated(session)
    if user is None:
        return SessionResponse(user=None)

    return SessionResponse(
        user=UserResponse(
            user_id=user.user_id,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
        )
    )


@router.get(
    "/error",
    response_model=AuthErrorResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Last authentication error",
)
async def last_error(
    response: Response,
    session: Session,
    store: SessionStore,
) -> AuthErrorResponse:
    """
    Read and clear the last authentication error.

    Returns:
        Error message, or null if the last attempt did not fail
    """
    if session.auth_error is None:
        return AuthErrorResponse(message=None)

    store.apply(response, session.model_copy(update={"auth_error": None}))
    return AuthErrorResponse(message=session.auth_error.message)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Sign out",
)
async def logout(
    response: Response,
    session: Session,
    store: SessionStore,
) -> None:
    """Sign out by clearing the session cookie."""
    if session.user is not None:
        logger.info("user_logged_out", user_id=session.user.user_id)
    store.destroy(response)
