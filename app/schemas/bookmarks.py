"""Bookmark schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import AnyUrl, BaseModel, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.schemas.users import UserResponse

REQUIRED_MESSAGE = "Title and URL are required"
INVALID_URL_MESSAGE = "Please enter a valid URL"

_url_adapter = TypeAdapter(AnyUrl)


def clean_title(value: str) -> str:
    """Trim a bookmark title, rejecting blank values."""
    value = (value or "").strip()
    if not value:
        raise ValueError(REQUIRED_MESSAGE)
    return value


def clean_url(value: str) -> str:
    """
    Trim a bookmark URL and check that it parses as an absolute URL.

    The trimmed input is returned as typed, not the normalized form.
    """
    value = (value or "").strip()
    if not value:
        raise ValueError(REQUIRED_MESSAGE)
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValueError(INVALID_URL_MESSAGE) from None
    return value


class BookmarkCreate(BaseModel):
    """Schema for creating a bookmark."""

    title: str
    url: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        return clean_title(value)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return clean_url(value)


class BookmarkUpdate(BaseModel):
    """Schema for updating a bookmark."""

    title: str | None = None
    url: str | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return None if value is None else clean_title(value)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str | None) -> str | None:
        return None if value is None else clean_url(value)


class BookmarkResponse(BaseModel):
    """Bookmark as stored and as carried by change feed events."""

    id: UUID
    user_id: str
    title: str
    url: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    """Initial state for the dashboard: the user and their bookmarks."""

    user: UserResponse
    bookmarks: list[BookmarkResponse]
