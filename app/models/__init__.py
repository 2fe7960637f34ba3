"""Database models."""

from app.models.users import metadata, users
from app.models.vector_databases import vector_databases

__all__ = [
    "metadata",
    "users",
    "vector_databases",
]
