"""User model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

metadata = MetaData()

users = Table(
    "users",
    metadata,
    # Internal ID (for joins & performance)
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # External-facing ID, generated at creation time
    Column("user_id", Text, nullable=False, unique=True),
    # Natural key for login lookups
    Column("email", Text, nullable=False, unique=True),
    # Profile info (mirrored from the identity provider)
    Column("name", Text),
    Column("avatar_url", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)
