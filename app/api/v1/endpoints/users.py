"""User endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.dependencies import AuthContext, CurrentUser, DatabaseSession
from app.schemas.users import UserResponse
from app.services.session_service import SessionService, delete_session_cookie

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUser):
    """Get current user's profile."""
    return UserResponse.model_validate(current_user)


@router.post("/me/logout-all", status_code=status.HTTP_200_OK)
async def logout_all_sessions(
    db: DatabaseSession,
    context: AuthContext,
    current_user: CurrentUser,
) -> JSONResponse:
    """Invalidate every session of the current user, this one included."""
    revoked = await SessionService(db).invalidate_user_sessions(current_user["id"])
    context.clear()

    response = JSONResponse(content={"message": "Signed out everywhere", "revoked": revoked})
    delete_session_cookie(response)
    return response
