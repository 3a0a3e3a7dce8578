"""Bookmark endpoints and the realtime change feed."""

import asyncio
from collections.abc import AsyncIterator
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from app.dependencies import ChangeFeed, CurrentUser, DatabaseSession, WebSocketUser
from app.realtime.events import ChangeEvent, ChangeFrame, ConnectionStatus, StatusFrame
from app.schemas.bookmarks import BookmarkCreate, BookmarkResponse, BookmarkUpdate
from app.services.bookmark_service import BookmarkService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])

WS_UNAUTHORIZED = 4401


@router.get("", response_model=list[BookmarkResponse])
async def list_bookmarks(db: DatabaseSession, current_user: CurrentUser):
    """List the current user's bookmarks, newest first."""
    bookmark_service = BookmarkService(db)
    items = await bookmark_service.list_bookmarks(current_user["id"])
    return [BookmarkResponse.model_validate(item) for item in items]


@router.post("", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    bookmark_data: BookmarkCreate,
    db: DatabaseSession,
    feed: ChangeFeed,
    current_user: CurrentUser,
):
    """Create a bookmark. Open tabs learn about it through the change feed."""
    bookmark_service = BookmarkService(db, feed)
    bookmark = await bookmark_service.create_bookmark(current_user["id"], bookmark_data)
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: UUID,
    bookmark_data: BookmarkUpdate,
    db: DatabaseSession,
    feed: ChangeFeed,
    current_user: CurrentUser,
):
    """Update a bookmark's title or URL."""
    bookmark_service = BookmarkService(db, feed)
    bookmark = await bookmark_service.update_bookmark(
        current_user["id"], bookmark_id, bookmark_data
    )

    if not bookmark:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Bookmark not found",
        )

    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: UUID,
    db: DatabaseSession,
    feed: ChangeFeed,
    current_user: CurrentUser,
) -> Response:
    """Delete a bookmark. Deleting one that is already gone succeeds."""
    bookmark_service = BookmarkService(db, feed)
    await bookmark_service.delete_bookmark(current_user["id"], bookmark_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _forward_events(websocket: WebSocket, events: AsyncIterator[ChangeEvent]) -> None:
    async for event in events:
        await websocket.send_json(ChangeFrame(event=event).model_dump(mode="json"))


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/feed")
async def bookmark_feed(websocket: WebSocket, user: WebSocketUser, feed: ChangeFeed):
    """
    Stream change events for the current user's bookmarks.

    Protocol:
    1. Client connects with the session cookie.
    2. Server sends {"type": "status", "status": "connected"} once subscribed.
    3. Server sends {"type": "change", "event": {"event_type": ..., "record": ...}}
       for every mutation of the user's bookmarks.
    An invalid session is closed with code 4401.
    """
    await websocket.accept()

    if user is None:
        await websocket.close(code=WS_UNAUTHORIZED, reason="Unauthorized")
        return

    user_id = user["id"]
    async with feed.subscribe(user_id) as events:
        await websocket.send_json(StatusFrame(status=ConnectionStatus.CONNECTED).model_dump())

        forwarder = asyncio.create_task(_forward_events(websocket, events))
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        try:
            done, _ = await asyncio.wait(
                {forwarder, receiver}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            # Both tasks end before the subscription closes, also on cancellation
            for task in (forwarder, receiver):
                task.cancel()
            await asyncio.gather(forwarder, receiver, return_exceptions=True)

        for task in done:
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning("change_feed_stream_failed", user_id=user_id, error=str(error))

    logger.info("change_feed_client_disconnected", user_id=user_id)
