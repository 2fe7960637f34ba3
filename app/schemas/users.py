"""User schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Identity(BaseModel):
    """Verified identity produced by an identity provider."""

    model_config = ConfigDict(frozen=True)

    email: EmailStr
    display_name: str | None = None
    avatar_url: str | None = None


class UserCreate(BaseModel):
    """Schema for creating a new user."""

    user_id: str = Field(..., description="External-facing user ID")
    email: EmailStr
    name: str | None = None
    avatar_url: str | None = None


class UserInDB(BaseModel):
    """User schema as stored in database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    email: EmailStr
    name: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class UserResponse(BaseModel):
    """User schema for API responses."""

    user_id: str
    email: EmailStr
    name: str | None = None
    avatar_url: str | None = None
    vector_db_id: str | None = None
