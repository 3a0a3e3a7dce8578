"""Network transports for the sync client: HTTP bookmark store and WebSocket feed."""

from collections.abc import AsyncIterator
from uuid import UUID

import httpx
import structlog
from websockets.asyncio.client import connect

from app.realtime.errors import BookmarkStoreError, BookmarkValidationError, SessionExpiredError
from app.realtime.events import ChangeFrame, StatusFrame, feed_frame_adapter
from app.schemas.bookmarks import BookmarkResponse

logger = structlog.get_logger(__name__)

DEFAULT_COOKIE_NAME = "auth-session"


class HttpBookmarkStore:
    """Bookmark CRUD against the API, authenticated by the session cookie."""

    def __init__(
        self,
        base_url: str,
        session_token: str,
        *,
        api_prefix: str = "/api/v1",
        cookie_name: str = DEFAULT_COOKIE_NAME,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            cookies={cookie_name: session_token},
            transport=transport,
            timeout=timeout,
            follow_redirects=False,
        )
        self._path = f"{api_prefix}/bookmarks"

    async def list_bookmarks(self) -> list[BookmarkResponse]:
        response = await self._send("GET", self._path)
        return [BookmarkResponse.model_validate(item) for item in response.json()]

    async def create_bookmark(self, title: str, url: str) -> BookmarkResponse:
        response = await self._send("POST", self._path, json={"title": title, "url": url})
        return BookmarkResponse.model_validate(response.json())

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        await self._send("DELETE", f"{self._path}/{bookmark_id}")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("bookmark_store_unreachable", method=method, error=str(e))
            raise BookmarkStoreError("Could not reach the bookmark store") from e

        if response.is_redirect or response.status_code == 401:
            raise SessionExpiredError()
        if response.status_code == 422:
            raise _validation_error(response)
        if response.is_error:
            logger.warning("bookmark_store_error", method=method, status_code=response.status_code)
            raise BookmarkStoreError(_error_message(response))
        return response


def _json_object(response: httpx.Response) -> dict:
    """Decoded JSON body, or an empty dict for anything that is not a JSON object."""
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _error_message(response: httpx.Response) -> str:
    message = _json_object(response).get("message")
    return str(message) if message else f"Request failed ({response.status_code})"


def _validation_error(response: httpx.Response) -> BookmarkValidationError:
    details = _json_object(response).get("details")
    if not isinstance(details, list):
        details = []
    for detail in details:
        if not isinstance(detail, dict):
            continue
        loc = detail.get("loc") or []
        field = loc[-1] if loc else None
        message = str(detail.get("msg", "Invalid input")).removeprefix("Value error, ")
        return BookmarkValidationError(message, field=field)
    return BookmarkValidationError("Invalid input")


class WebSocketChangeFeed:
    """Change feed subscription over the API's WebSocket endpoint."""

    def __init__(self, url: str, session_token: str, cookie_name: str = DEFAULT_COOKIE_NAME):
        self._url = url
        self._headers = {"Cookie": f"{cookie_name}={session_token}"}

    async def frames(self) -> AsyncIterator[StatusFrame | ChangeFrame]:
        """Yield feed frames until the server closes the connection."""
        async with connect(self._url, additional_headers=self._headers) as websocket:
            async for raw in websocket:
                yield feed_frame_adapter.validate_json(raw)
