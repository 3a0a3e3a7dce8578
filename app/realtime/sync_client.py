"""Realtime sync client: keeps one tab's bookmark list consistent with the server.

Two inputs drive the local state: the authoritative change feed and the
best-effort cross-tab broadcast channel. Both go through the same idempotent
reducer, so no delivery order between them is assumed.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any, Protocol
from uuid import UUID

import structlog
from pydantic import ValidationError

from app.realtime.broadcast import MessageHandler
from app.realtime.errors import BookmarkValidationError, SyncNotConnectedError
from app.realtime.events import (
    BroadcastMessage,
    ChangeEvent,
    ChangeFrame,
    ConnectionStatus,
    StatusFrame,
)
from app.realtime.reducer import Deleted, SyncAction, SyncState, action_from_event, reduce
from app.schemas.bookmarks import BookmarkResponse, clean_title, clean_url

logger = structlog.get_logger(__name__)

BROADCAST_CHANNEL_NAME = "bookmarks-sync"


class BookmarkStore(Protocol):
    """Write side of the bookmark store as seen by a tab."""

    async def create_bookmark(self, title: str, url: str) -> BookmarkResponse: ...

    async def delete_bookmark(self, bookmark_id: UUID) -> None: ...


class FeedConnection(Protocol):
    """Client end of the change feed."""

    def frames(self) -> AsyncIterator[StatusFrame | ChangeFrame]: ...


class BroadcastChannel(Protocol):
    def on_message(self, handler: MessageHandler) -> None: ...

    def post_message(self, message: dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class RealtimeSyncClient:
    """Per-tab bookmark state synchronized through the change feed.

    Status moves connecting -> connected -> disconnected. A dropped
    subscription is not retried here; the page has to reload to reconnect.
    """

    def __init__(
        self,
        user_id: str,
        store: BookmarkStore,
        feed: FeedConnection,
        channel: BroadcastChannel,
        initial_bookmarks: Iterable[BookmarkResponse] = (),
    ):
        self.user_id = user_id
        self._store = store
        self._feed = feed
        self._channel = channel
        self._state = SyncState(bookmarks=tuple(initial_bookmarks))
        self._status = ConnectionStatus.CONNECTING
        self._status_listeners: list[Callable[[ConnectionStatus], None]] = []
        self._bookmark_listeners: list[Callable[[list[BookmarkResponse]], None]] = []
        self._connected = asyncio.Event()
        self._finished = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def bookmarks(self) -> list[BookmarkResponse]:
        """Current bookmarks, newest first."""
        return list(self._state.bookmarks)

    def on_status_change(self, listener: Callable[[ConnectionStatus], None]) -> Callable[[], None]:
        """Register a status listener; returns a function that removes it."""
        self._status_listeners.append(listener)
        return lambda: self._status_listeners.remove(listener)

    def on_bookmarks_change(
        self, listener: Callable[[list[BookmarkResponse]], None]
    ) -> Callable[[], None]:
        """Register a listener for list changes; returns a function that removes it."""
        self._bookmark_listeners.append(listener)
        return lambda: self._bookmark_listeners.remove(listener)

    async def start(self) -> None:
        """Subscribe to the cross-tab channel and the change feed."""
        if self._task is not None:
            return
        self._channel.on_message(self._handle_broadcast)
        self._set_status(ConnectionStatus.CONNECTING)
        self._task = asyncio.create_task(self._consume_feed())

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait for the feed handshake. Returns False if the feed ends or times out first."""
        connected = asyncio.ensure_future(self._connected.wait())
        finished = asyncio.ensure_future(self._finished.wait())
        try:
            await asyncio.wait(
                {connected, finished}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            connected.cancel()
            finished.cancel()
        return self.is_connected

    async def close(self) -> None:
        """Drop the subscription and the channel. No server handshake needed."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._channel.close()
        self._set_status(ConnectionStatus.DISCONNECTED)

    def handle_event(self, event: ChangeEvent) -> None:
        """Reconcile one change feed event."""
        if event.record.user_id != self.user_id:
            logger.warning(
                "realtime_foreign_event_ignored",
                user_id=self.user_id,
                bookmark_id=str(event.record.id),
            )
            return
        self._apply(action_from_event(event))

    async def add_bookmark(self, title: str, url: str) -> BookmarkResponse:
        """
        Create a bookmark. The list itself is updated by the feed's created event.

        Raises:
            BookmarkValidationError: Blank title/URL or malformed URL; the store is not contacted
            SyncNotConnectedError: The feed that would confirm the insert is not connected
            BookmarkStoreError: The store failed the write
        """
        try:
            title = clean_title(title)
        except ValueError as e:
            raise BookmarkValidationError(str(e), field="title") from None
        try:
            url = clean_url(url)
        except ValueError as e:
            raise BookmarkValidationError(str(e), field="url") from None

        if not self.is_connected:
            raise SyncNotConnectedError()

        return await self._store.create_bookmark(title, url)

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        """
        Delete a bookmark, then drop it locally and tell sibling tabs.

        Local state is only touched once the store confirms the delete; a
        failure leaves the list as it was.

        Raises:
            BookmarkStoreError: The store failed the delete (retryable)
        """
        await self._store.delete_bookmark(bookmark_id)

        self._apply(Deleted(bookmark_id))
        try:
            self._channel.post_message(BroadcastMessage(id=bookmark_id).model_dump(mode="json"))
        except RuntimeError as e:
            logger.warning("broadcast_post_failed", user_id=self.user_id, error=str(e))

    def _apply(self, action: SyncAction) -> None:
        old_state = self._state
        self._state = reduce(old_state, action)
        if self._state.bookmarks == old_state.bookmarks:
            return
        bookmarks = self.bookmarks
        for listener in list(self._bookmark_listeners):
            listener(bookmarks)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self._status:
            return
        logger.info("realtime_status_changed", user_id=self.user_id, status=status.value)
        self._status = status
        if status is ConnectionStatus.CONNECTED:
            self._connected.set()
        else:
            self._connected.clear()
        for listener in list(self._status_listeners):
            listener(status)

    def _handle_broadcast(self, message: dict[str, Any]) -> None:
        try:
            parsed = BroadcastMessage.model_validate(message)
        except ValidationError:
            logger.debug("broadcast_message_ignored", user_id=self.user_id)
            return
        self._apply(Deleted(parsed.id))

    async def _consume_feed(self) -> None:
        try:
            async for frame in self._feed.frames():
                if isinstance(frame, StatusFrame):
                    self._set_status(frame.status)
                else:
                    self.handle_event(frame.event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("realtime_subscription_failed", user_id=self.user_id, error=str(e))
        finally:
            self._finished.set()
        self._set_status(ConnectionStatus.DISCONNECTED)
