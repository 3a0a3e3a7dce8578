"""Error handling middleware."""

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.exceptions import (
    AppException,
    StoreException,
    UnauthorizedException,
)
from app.services.session_service import delete_session_cookie

logger = structlog.get_logger(__name__)


def _user_id(request: Request) -> str | None:
    context = getattr(request.state, "auth", None)
    if context is not None and context.user is not None:
        return context.user["id"]
    return None


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    logger.warning(
        "request_rejected",
        error=exc.__class__.__name__,
        message=exc.message,
        path=request.url.path,
        user_id=_user_id(request),
    )
    content = {
        "error": exc.__class__.__name__,
        "message": exc.message,
        "path": request.url.path,
    }
    if isinstance(exc, StoreException):
        content["retryable"] = True
    return JSONResponse(status_code=exc.status_code, content=content)


async def unauthorized_exception_handler(
    request: Request,
    exc: UnauthorizedException,
) -> Response:
    """
    Send requests without a valid session to the login page.

    A stale session cookie is cleared on the way, otherwise the route guard
    would bounce the browser from the login page straight back.
    """
    logger.info("unauthorized_redirect", path=request.url.path)
    response = RedirectResponse(settings.login_path, status_code=status.HTTP_302_FOUND)
    if request.cookies.get(settings.session_cookie_name):
        delete_session_cookie(response)
    return response


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions.

    Args:
        request: Request object
        exc: HTTP exception

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "message": exc.detail,
            "path": request.url.path,
        },
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "details": details,
            "path": request.url.path,
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON error response
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        user_id=_user_id(request),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "path": request.url.path,
        },
    )
