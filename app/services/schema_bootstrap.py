"""Schema bootstrap for freshly provisioned vector databases."""

from collections.abc import Callable

from sqlalchemy import pool, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from structlog import get_logger

from app.core.exceptions import SchemaError

logger = get_logger(__name__)

EMBEDDINGS_TABLE = "embeddings"
EMBEDDING_INDEX = "embedding_idx"


def bootstrap_statements(dimensions: int = 1536) -> list[str]:
    """Idempotent DDL that prepares a database for storing embeddings."""
    return [
        "CREATE EXTENSION IF NOT EXISTS vector",
        f"""
        CREATE TABLE IF NOT EXISTS "{EMBEDDINGS_TABLE}" (
            "id" serial PRIMARY KEY NOT NULL,
            "content" text NOT NULL,
            "metadata" jsonb NOT NULL,
            "embedding" vector({int(dimensions)}),
            "created_at" timestamp with time zone DEFAULT now(),
            "updated_at" timestamp with time zone DEFAULT now()
        )
        """,
        f"""
        CREATE INDEX IF NOT EXISTS "{EMBEDDING_INDEX}"
        ON "{EMBEDDINGS_TABLE}"
        USING hnsw ("embedding" vector_cosine_ops)
        """,
    ]


def to_async_url(connection_uri: str) -> URL:
    """
    Convert a libpq-style connection URI to an asyncpg SQLAlchemy URL.

    ``sslmode`` becomes asyncpg's ``ssl``; other libpq-only query options
    are dropped since asyncpg rejects unknown connect arguments.
    """
    url = make_url(connection_uri)
    ssl = url.query.get("ssl") or url.query.get("sslmode")
    url = url.set(drivername="postgresql+asyncpg", query={})
    if ssl:
        url = url.update_query_dict({"ssl": ssl})
    return url


class SchemaBootstrapper:
    """Installs the vector extension, embeddings table and similarity index."""

    def __init__(
        self,
        dimensions: int = 1536,
        timeout: float = 30.0,
        engine_factory: Callable[[URL], AsyncEngine] | None = None,
    ):
        """Initialize bootstrapper."""
        self.dimensions = dimensions
        self.timeout = timeout
        self.engine_factory = engine_factory or self._create_engine

    def _create_engine(self, url: URL) -> AsyncEngine:
        return create_async_engine(
            url,
            poolclass=pool.NullPool,
            connect_args={"timeout": self.timeout, "command_timeout": self.timeout},
        )

    async def bootstrap(self, connection_uri: str) -> None:
        """
        Apply the bootstrap statements in a single transaction.

        Safe to run against an already bootstrapped database.

        Args:
            connection_uri: Connection URI of the target database

        Raises:
            SchemaError: If any statement fails; nothing is applied in that case
        """
        try:
            engine = self.engine_factory(to_async_url(connection_uri))
        except (ArgumentError, ValueError) as e:
            raise SchemaError(f"Invalid connection URI: {e!s}")

        try:
            async with engine.begin() as conn:
                for statement in bootstrap_statements(self.dimensions):
                    await conn.execute(text(statement))
        except (SQLAlchemyError, OSError, TimeoutError) as e:
            raise SchemaError(f"Schema bootstrap failed: {e!s}")
        finally:
            await engine.dispose()

        logger.debug("schema_bootstrap_applied", host=make_url(connection_uri).host)
