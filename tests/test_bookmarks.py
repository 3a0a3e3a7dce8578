"""Tests for bookmark endpoints, the dashboard and the bookmark service."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints import bookmarks as bookmark_endpoints
from app.core.exceptions import StoreException
from app.realtime.events import ChangeEventType
from app.schemas.bookmarks import BookmarkCreate
from app.services.bookmark_service import BookmarkService


@pytest.fixture
def sample_bookmark_data() -> dict:
    """Sample bookmark data for testing."""
    return {"title": "  Python docs  ", "url": " https://docs.python.org/3/ "}


# ============================================================================
# Bookmark CRUD Endpoint Tests
# ============================================================================


@pytest.mark.asyncio
async def test_create_bookmark(
    client: AsyncClient,
    auth_cookies: dict,
    sample_bookmark_data: dict,
    test_user: dict,
    feed,
) -> None:
    """Test creating a bookmark trims input and publishes a created event."""
    response = await client.post(
        "/api/v1/bookmarks", json=sample_bookmark_data, headers=auth_cookies
    )

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Python docs"
    assert data["url"] == "https://docs.python.org/3/"
    assert data["user_id"] == test_user["id"]
    assert "id" in data

    assert len(feed.published) == 1
    user_id, event = feed.published[0]
    assert user_id == test_user["id"]
    assert event.event_type is ChangeEventType.CREATED
    assert str(event.record.id) == data["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"title": "   ", "url": "https://example.com"}, "Title and URL are required"),
        ({"title": "Example", "url": ""}, "Title and URL are required"),
        ({"title": "Example", "url": "not a url"}, "Please enter a valid URL"),
    ],
)
async def test_create_bookmark_validation(
    client: AsyncClient, auth_cookies: dict, feed, payload: dict, message: str
) -> None:
    """Test blank and malformed input is rejected without touching the store."""
    response = await client.post("/api/v1/bookmarks", json=payload, headers=auth_cookies)

    assert response.status_code == 422
    assert message in response.text
    assert feed.published == []


@pytest.mark.asyncio
async def test_list_bookmarks_newest_first(client: AsyncClient, auth_cookies: dict) -> None:
    """Test bookmarks are listed newest first."""
    for title in ("first", "second", "third"):
        response = await client.post(
            "/api/v1/bookmarks",
            json={"title": title, "url": f"https://example.com/{title}"},
            headers=auth_cookies,
        )
        assert response.status_code == 201

    response = await client.get("/api/v1/bookmarks", headers=auth_cookies)

    assert response.status_code == 200
    assert [item["title"] for item in response.json()] == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_update_bookmark(client: AsyncClient, auth_cookies: dict, feed) -> None:
    """Test updating a bookmark publishes an updated event."""
    created = await client.post(
        "/api/v1/bookmarks",
        json={"title": "Old", "url": "https://example.com"},
        headers=auth_cookies,
    )
    bookmark_id = created.json()["id"]

    response = await client.patch(
        f"/api/v1/bookmarks/{bookmark_id}", json={"title": "New"}, headers=auth_cookies
    )

    assert response.status_code == 200
    assert response.json()["title"] == "New"
    assert response.json()["url"] == "https://example.com"
    assert feed.published[-1][1].event_type is ChangeEventType.UPDATED


@pytest.mark.asyncio
async def test_update_missing_bookmark(client: AsyncClient, auth_cookies: dict) -> None:
    response = await client.patch(
        f"/api/v1/bookmarks/{uuid4()}", json={"title": "New"}, headers=auth_cookies
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_bookmark_is_idempotent(
    client: AsyncClient, auth_cookies: dict, feed
) -> None:
    """Test deleting twice succeeds and only the first delete publishes."""
    created = await client.post(
        "/api/v1/bookmarks",
        json={"title": "Doomed", "url": "https://example.com"},
        headers=auth_cookies,
    )
    bookmark_id = created.json()["id"]

    first = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=auth_cookies)
    second = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=auth_cookies)

    assert first.status_code == 204
    assert second.status_code == 204
    event_types = [event.event_type for _, event in feed.published]
    assert event_types == [ChangeEventType.CREATED, ChangeEventType.DELETED]

    listing = await client.get("/api/v1/bookmarks", headers=auth_cookies)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_bookmarks_are_owner_scoped(
    client: AsyncClient,
    auth_cookies: dict,
    make_user,
    make_session_token,
) -> None:
    """Test another user can neither see nor delete someone else's bookmark."""
    created = await client.post(
        "/api/v1/bookmarks",
        json={"title": "Mine", "url": "https://example.com"},
        headers=auth_cookies,
    )
    bookmark_id = created.json()["id"]

    intruder = await make_user(
        user_id="user-2", provider_id="google-sub-2", email="mallory@example.com"
    )
    intruder_cookies = {"Cookie": f"auth-session={await make_session_token(intruder['id'])}"}

    listing = await client.get("/api/v1/bookmarks", headers=intruder_cookies)
    assert listing.json() == []

    response = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=intruder_cookies)
    assert response.status_code == 204

    listing = await client.get("/api/v1/bookmarks", headers=auth_cookies)
    assert [item["id"] for item in listing.json()] == [bookmark_id]


@pytest.mark.asyncio
async def test_bookmarks_require_session(client: AsyncClient) -> None:
    """Test API calls without a valid session are sent to the login page."""
    response = await client.get("/api/v1/bookmarks")

    assert response.status_code == 302
    assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_store_failure_is_retryable(
    client: AsyncClient, auth_cookies: dict, monkeypatch
) -> None:
    """Test store outages answer 503 and are marked retryable."""

    async def failing_list(self, user_id):
        raise StoreException()

    monkeypatch.setattr(bookmark_endpoints.BookmarkService, "list_bookmarks", failing_list)

    response = await client.get("/api/v1/bookmarks", headers=auth_cookies)

    assert response.status_code == 503
    assert response.json()["retryable"] is True


# ============================================================================
# Dashboard
# ============================================================================


@pytest.mark.asyncio
async def test_dashboard_returns_user_and_bookmarks(
    client: AsyncClient, auth_cookies: dict, test_user: dict
) -> None:
    """Test the dashboard payload seeds the sync client."""
    await client.post(
        "/api/v1/bookmarks",
        json={"title": "Example", "url": "https://example.com"},
        headers=auth_cookies,
    )

    response = await client.get("/dashboard", headers=auth_cookies)

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == test_user["id"]
    assert data["user"]["name"] == test_user["name"]
    assert [item["title"] for item in data["bookmarks"]] == ["Example"]
    # A fresh session is not renewed, so no cookie is re-issued
    assert "set-cookie" not in response.headers


# ============================================================================
# Service
# ============================================================================


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    async def rollback(self):
        pass


@pytest.mark.asyncio
async def test_service_wraps_database_errors() -> None:
    """Test driver errors surface as StoreException."""
    service = BookmarkService(_BrokenSession())

    with pytest.raises(StoreException):
        await service.list_bookmarks("user-1")


@pytest.mark.asyncio
async def test_service_without_feed_does_not_publish(
    db_session: AsyncSession, test_user: dict
) -> None:
    """Test the service works without a change feed attached."""
    service = BookmarkService(db_session)

    bookmark = await service.create_bookmark(
        test_user["id"], BookmarkCreate(title="Example", url="https://example.com")
    )

    assert bookmark["user_id"] == test_user["id"]
    assert await service.delete_bookmark(test_user["id"], bookmark["id"]) is True
    assert await service.delete_bookmark(test_user["id"], bookmark["id"]) is False
