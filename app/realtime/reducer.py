"""Pure reconciliation of bookmark change events into local state.

State is a newest-first tuple of bookmarks plus the ids known to be deleted.
Every transition is idempotent, so the change feed and the cross-tab channel
may deliver the same mutation in any order and any number of times.
"""

from dataclasses import dataclass, field
from uuid import UUID

from app.realtime.events import ChangeEvent, ChangeEventType
from app.schemas.bookmarks import BookmarkResponse


@dataclass(frozen=True)
class Created:
    record: BookmarkResponse


@dataclass(frozen=True)
class Updated:
    record: BookmarkResponse


@dataclass(frozen=True)
class Deleted:
    bookmark_id: UUID


SyncAction = Created | Updated | Deleted


@dataclass(frozen=True)
class SyncState:
    """Immutable snapshot of the local bookmark list."""

    bookmarks: tuple[BookmarkResponse, ...] = ()
    # Tombstones: ids never allowed back in, even by a late created/updated echo
    deleted_ids: frozenset[UUID] = field(default_factory=frozenset)

    def contains(self, bookmark_id: UUID) -> bool:
        return any(bookmark.id == bookmark_id for bookmark in self.bookmarks)

    @property
    def ids(self) -> list[UUID]:
        return [bookmark.id for bookmark in self.bookmarks]


def action_from_event(event: ChangeEvent) -> SyncAction:
    """Map a wire event onto a reducer action."""
    if event.event_type is ChangeEventType.CREATED:
        return Created(event.record)
    if event.event_type is ChangeEventType.UPDATED:
        return Updated(event.record)
    return Deleted(event.record.id)


def reduce(state: SyncState, action: SyncAction) -> SyncState:
    """
    Apply one action to the state.

    Returns the same state object when the action is a no-op.
    """
    if isinstance(action, Created):
        record = action.record
        if record.id in state.deleted_ids or state.contains(record.id):
            return state
        return SyncState(bookmarks=(record, *state.bookmarks), deleted_ids=state.deleted_ids)

    if isinstance(action, Updated):
        record = action.record
        if record.id in state.deleted_ids or not state.contains(record.id):
            return state
        return SyncState(
            bookmarks=tuple(record if b.id == record.id else b for b in state.bookmarks),
            deleted_ids=state.deleted_ids,
        )

    if isinstance(action, Deleted):
        present = state.contains(action.bookmark_id)
        if action.bookmark_id in state.deleted_ids and not present:
            return state
        if not present:
            # Tombstone only; the list itself is untouched
            return SyncState(
                bookmarks=state.bookmarks,
                deleted_ids=state.deleted_ids | {action.bookmark_id},
            )
        return SyncState(
            bookmarks=tuple(b for b in state.bookmarks if b.id != action.bookmark_id),
            deleted_ids=state.deleted_ids | {action.bookmark_id},
        )

    raise TypeError(f"Unknown sync action: {action!r}")
