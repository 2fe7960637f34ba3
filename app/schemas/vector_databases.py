"""Vector database schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProvisionedResource(BaseModel):
    """A database project freshly created by the provisioning provider."""

    model_config = ConfigDict(frozen=True)

    resource_id: str
    connection_uri: str

    def __repr__(self) -> str:
        # Connection URIs embed credentials
        return f"ProvisionedResource(resource_id={self.resource_id!r})"


class VectorDatabaseInDB(BaseModel):
    """Vector database link as stored in database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vector_db_id: str
    user_id: UUID
    created_at: datetime
    updated_at: datetime
