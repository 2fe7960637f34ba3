"""
Persistence operations for the metadata store.

Services hold the business logic; the SQL lives here, one class per table.
"""

from app.repositories.users import UserRepository
from app.repositories.vector_databases import VectorDatabaseRepository

__all__ = ["UserRepository", "VectorDatabaseRepository"]
