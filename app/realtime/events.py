"""Wire formats for the bookmark change feed and the cross-tab channel."""

from enum import Enum
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from app.schemas.bookmarks import BookmarkResponse


class ChangeEventType(str, Enum):
    """Row-level mutation kinds."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class ConnectionStatus(str, Enum):
    """Change feed subscription status."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ChangeEvent(BaseModel):
    """A mutation of one bookmark row, scoped to its owner."""

    event_type: ChangeEventType
    record: BookmarkResponse


class StatusFrame(BaseModel):
    """Feed frame announcing a subscription status transition."""

    type: Literal["status"] = "status"
    status: ConnectionStatus


class ChangeFrame(BaseModel):
    """Feed frame carrying a change event."""

    type: Literal["change"] = "change"
    event: ChangeEvent


FeedFrame = Annotated[StatusFrame | ChangeFrame, Field(discriminator="type")]

feed_frame_adapter: TypeAdapter[StatusFrame | ChangeFrame] = TypeAdapter(FeedFrame)


class BroadcastMessage(BaseModel):
    """Cross-tab notification that this tab deleted a bookmark."""

    type: Literal["DELETE"] = "DELETE"
    id: UUID
