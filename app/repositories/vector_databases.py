"""
Vector database link persistence operations.

See ``app.repositories.users`` for why queries live in repositories.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.vector_databases import vector_databases
from app.schemas.vector_databases import VectorDatabaseInDB


class VectorDatabaseRepository:
    """Repository for the ``vector_databases`` table. Callers own the transaction."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with a database session."""
        self.db = db

    async def get_by_user_id(self, user_id: UUID) -> VectorDatabaseInDB | None:
        """Get the vector database linked to a user."""
        query = select(vector_databases).where(vector_databases.c.user_id == user_id)
        result = await self.db.execute(query)
        row = result.mappings().first()
        return VectorDatabaseInDB.model_validate(dict(row)) if row else None

    async def link(self, user_id: UUID, vector_db_id: str) -> VectorDatabaseInDB | None:
        """
        Record that a user owns a provisioned vector database.

        At most one link exists per user; if one is already present it is
        returned and ``vector_db_id`` is not recorded.
        """
        query = (
            insert(vector_databases)
            .values(user_id=user_id, vector_db_id=vector_db_id)
            .on_conflict_do_nothing(index_elements=[vector_databases.c.user_id])
            .returning(vector_databases)
        )

        result = await self.db.execute(query)
        row = result.mappings().first()
        if row:
            return VectorDatabaseInDB.model_validate(dict(row))

        return await self.get_by_user_id(user_id)
