"""First-login provisioning of per-user vector databases."""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.exceptions import (
    PersistenceError,
    ProviderError,
    ProvisioningError,
    ProvisioningStepError,
    SchemaError,
)
from app.core.ids import generate_id
from app.repositories.users import UserRepository
from app.repositories.vector_databases import VectorDatabaseRepository
from app.schemas.users import Identity, UserCreate, UserInDB
from app.schemas.vector_databases import ProvisionedResource

logger = get_logger(__name__)


class ResourceProvisioner(Protocol):
    """Creates an external database and reports how to reach it."""

    async def create(self) -> ProvisionedResource: ...


class Bootstrapper(Protocol):
    """Prepares a freshly created database for use."""

    async def bootstrap(self, connection_uri: str) -> None: ...


@dataclass(frozen=True)
class Provisioned:
    """The identity resolved to a persisted user."""

    user: UserInDB
    created: bool

    def unwrap(self) -> UserInDB:
        return self.user


@dataclass(frozen=True)
class ProvisioningFailed:
    """Provisioning stopped at ``error.step``; no local rows were committed."""

    email: str
    error: ProvisioningStepError
    resource_id: str | None = None

    @property
    def step(self) -> str:
        return self.error.step

    def unwrap(self) -> UserInDB:
        raise ProvisioningError(self.email, self.error)


ProvisioningOutcome = Provisioned | ProvisioningFailed


class ProvisioningCoordinator:
    """
    Resolves a verified identity into a local user.

    Known users are returned as-is. Unknown users get, strictly in order:
    an external database project, its schema bootstrap, a conflict-tolerant
    user insert and the user-to-database link. The last two share one
    metadata-store transaction.

    The external project is created outside that transaction. If a later
    step fails, or a concurrent first login for the same email wins the
    user insert, the project is left without an owner. It is logged as
    ``orphaned_resource`` with its ``resource_id`` and not cleaned up here.
    """

    def __init__(
        self,
        db: AsyncSession,
        users: UserRepository,
        vector_databases: VectorDatabaseRepository,
        provisioner: ResourceProvisioner,
        bootstrapper: Bootstrapper,
    ):
        """Initialize coordinator with its collaborators."""
        self.db = db
        self.users = users
        self.vector_databases = vector_databases
        self.provisioner = provisioner
        self.bootstrapper = bootstrapper

    @classmethod
    def for_session(
        cls,
        db: AsyncSession,
        provisioner: ResourceProvisioner,
        bootstrapper: Bootstrapper,
    ) -> "ProvisioningCoordinator":
        """Build a coordinator whose repositories share ``db``."""
        return cls(
            db=db,
            users=UserRepository(db),
            vector_databases=VectorDatabaseRepository(db),
            provisioner=provisioner,
            bootstrapper=bootstrapper,
        )

    async def resolve(self, identity: Identity) -> ProvisioningOutcome:
        """
        Find or provision the user for ``identity``.

        Args:
            identity: Verified identity from the provider callback

        Returns:
            ``Provisioned`` with the persisted user, or ``ProvisioningFailed``
            naming the step that failed
        """
        email = str(identity.email)
        log = logger.bind(email=email)

        try:
            user = await self.users.find_by_email(email)
            # Release the connection while external calls run
            await self.db.rollback()
        except SQLAlchemyError as e:
            await self.db.rollback()
            return self._failed(log, email, PersistenceError(str(e), step="lookup_user"))

        if user:
            return Provisioned(user=user, created=False)

        log.info("provisioning_started")

        try:
            resource = await self.provisioner.create()
        except ProvisioningStepError as e:
            return self._failed(log, email, e)
        except Exception as e:
            log.exception("provider_call_crashed")
            return self._failed(log, email, ProviderError(f"Unexpected provider failure: {e!s}"))

        log = log.bind(resource_id=resource.resource_id)
        log.info("resource_created")

        try:
            await self.bootstrapper.bootstrap(resource.connection_uri)
        except ProvisioningStepError as e:
            return self._failed(log, email, e, resource_id=resource.resource_id)
        except Exception as e:
            log.exception("bootstrap_crashed")
            error = SchemaError(f"Unexpected bootstrap failure: {e!s}")
            return self._failed(log, email, error, resource_id=resource.resource_id)

        log.info("schema_bootstrapped")

        try:
            user, created = await self._persist(identity, resource)
        except (SQLAlchemyError, PersistenceError) as e:
            await self.db.rollback()
            error = e if isinstance(e, PersistenceError) else PersistenceError(str(e))
            return self._failed(log, email, error, resource_id=resource.resource_id)

        if created:
            log.info("user_persisted", user_id=user.user_id)
        else:
            log.warning("provisioning_race_lost", user_id=user.user_id)
            log.warning("orphaned_resource", step="persist_user", reason="race_lost")

        return Provisioned(user=user, created=created)

    async def _persist(
        self, identity: Identity, resource: ProvisionedResource
    ) -> tuple[UserInDB, bool]:
        """Insert the user and its link in one transaction."""
        user, created = await self.users.insert_if_absent(
            UserCreate(
                user_id=generate_id("user"),
                email=identity.email,
                name=identity.display_name,
                avatar_url=identity.avatar_url,
            )
        )
        if user is None:
            raise PersistenceError("User insert conflicted but no existing row was found")

        # The winner of a concurrent insert owns the link
        if created:
            link = await self.vector_databases.link(user.id, resource.resource_id)
            if link is None or link.vector_db_id != resource.resource_id:
                raise PersistenceError(f"User {user.user_id} is already linked to a vector database")

        await self.db.commit()
        return user, created

    @staticmethod
    def _failed(
        log,
        email: str,
        error: ProvisioningStepError,
        resource_id: str | None = None,
    ) -> ProvisioningFailed:
        log.error("provisioning_failed", step=error.step, error=error.message)
        if resource_id is not None:
            # Persistence failures leave partial state behind; schema failures only the project
            level = log.error if isinstance(error, PersistenceError) else log.warning
            level("orphaned_resource", step=error.step)
        return ProvisioningFailed(email=email, error=error, resource_id=resource_id)
