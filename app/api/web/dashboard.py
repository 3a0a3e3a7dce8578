"""Dashboard route: initial state for the signed-in user's page."""

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.bookmarks import BookmarkResponse, DashboardResponse
from app.schemas.users import UserResponse
from app.services.bookmark_service import BookmarkService

router = APIRouter()


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Dashboard initial state",
)
async def dashboard(db: DatabaseSession, current_user: CurrentUser) -> DashboardResponse:
    """
    Return the user and their bookmarks, newest first.

    The realtime sync client seeds its local state from this payload.
    """
    bookmark_service = BookmarkService(db)
    items = await bookmark_service.list_bookmarks(current_user["id"])

    return DashboardResponse(
        user=UserResponse.model_validate(current_user),
        bookmarks=[BookmarkResponse.model_validate(item) for item in items],
    )
