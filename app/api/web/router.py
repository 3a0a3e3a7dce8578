"""Page-level router: sign-in flow, sign-out and dashboard."""

from fastapi import APIRouter

from app.api.web import auth, dashboard

web_router = APIRouter()

web_router.include_router(auth.router, tags=["Authentication"])
web_router.include_router(dashboard.router, tags=["Dashboard"])
