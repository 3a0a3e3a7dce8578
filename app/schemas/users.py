"""User schemas for request/response validation."""

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Schema for creating a new user from identity provider claims."""

    provider_id: str = Field(..., description="Identity provider subject id")
    name: str
    email: str
    image: str | None = None


class UserResponse(BaseModel):
    """User schema for API responses."""

    id: str
    name: str
    email: str
    image: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
