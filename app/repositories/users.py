"""
User persistence operations.

Queries live in repository classes rather than in the services, so the
provisioning coordinator can compose them inside one transaction.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.users import users
from app.schemas.users import UserCreate, UserInDB


class UserRepository:
    """Repository for the ``users`` table. Callers own the transaction."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with a database session."""
        self.db = db

    async def find_by_email(self, email: str) -> UserInDB | None:
        """Get user by email."""
        query = select(users).where(users.c.email == email)
        result = await self.db.execute(query)
        user = result.mappings().first()
        return UserInDB.model_validate(dict(user)) if user else None

    async def get_by_id(self, user_id: UUID) -> UserInDB | None:
        """Get user by internal ID."""
        query = select(users).where(users.c.id == user_id)
        result = await self.db.execute(query)
        user = result.mappings().first()
        return UserInDB.model_validate(dict(user)) if user else None

    async def insert_if_absent(self, user_data: UserCreate) -> tuple[UserInDB | None, bool]:
        """
        Insert a user unless one with the same email already exists.

        A concurrent insert for the same email blocks on the unique index
        until the other transaction finishes, so the follow-up read sees the
        committed row.

        Args:
            user_data: User to insert

        Returns:
            Tuple of (row that exists after the call, whether this call created it)
        """
        query = (
            insert(users)
            .values(
                user_id=user_data.user_id,
                email=user_data.email,
                name=user_data.name,
                avatar_url=user_data.avatar_url,
            )
            .on_conflict_do_nothing(index_elements=[users.c.email])
            .returning(users)
        )

        result = await self.db.execute(query)
        user = result.mappings().first()
        if user:
            return UserInDB.model_validate(dict(user)), True

        return await self.find_by_email(user_data.email), False
