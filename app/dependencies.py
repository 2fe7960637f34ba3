"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.session import CookieSessionStore
from app.database import get_db
from app.repositories.vector_databases import VectorDatabaseRepository
from app.schemas.session import SessionData
from app.schemas.users import UserInDB
from app.services.authenticator import Authenticator
from app.services.provisioning import ProvisioningCoordinator


def get_session_store(request: Request) -> CookieSessionStore:
    """Session store built at startup."""
    return request.app.state.session_store


def get_authenticator(request: Request) -> Authenticator:
    """Authenticator built at startup."""
    return request.app.state.authenticator


def get_session(
    request: Request,
    store: Annotated[CookieSessionStore, Depends(get_session_store)],
) -> SessionData:
    """Validated session for this request; empty if missing or invalid."""
    return store.load(request)


def get_provisioning_coordinator(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProvisioningCoordinator:
    """Coordinator bound to this request's database session."""
    return ProvisioningCoordinator.for_session(
        db,
        provisioner=request.app.state.provisioner,
        bootstrapper=request.app.state.bootstrapper,
    )


def get_vector_database_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> VectorDatabaseRepository:
    """Vector database links bound to this request's database session."""
    return VectorDatabaseRepository(db)


def get_current_user(
    session: Annotated[SessionData, Depends(get_session)],
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
) -> UserInDB:
    """
    Get the signed-in user from the session.

    Raises:
        HTTPException: If nobody is signed in
    """
    user = authenticator.is_authenticated(session)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
Session = Annotated[SessionData, Depends(get_session)]
SessionStore = Annotated[CookieSessionStore, Depends(get_session_store)]
AuthenticatorDep = Annotated[Authenticator, Depends(get_authenticator)]
Coordinator = Annotated[ProvisioningCoordinator, Depends(get_provisioning_coordinator)]
CurrentUser = Annotated[UserInDB, Depends(get_current_user)]
VectorDatabases = Annotated[VectorDatabaseRepository, Depends(get_vector_database_repository)]
