"""
API error types and the handlers that render them.

Every error response carries the same body: ``detail``, an ``error_code``
and the request ``path``. Service-level failures in the staff module are
translated by the routers; the handlers here cover caller identity,
unexpected ``ValueError``s and database failures.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


def error_body(request: Request, detail: Any, error_code: Optional[str]) -> Dict[str, Any]:
    return {
        "detail": detail,
        "error_code": error_code,
        "path": str(request.url.path),
    }


class APIError(HTTPException):
    """HTTP error with a machine-readable code; subclasses fix status and code"""

    default_status: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "BAD_REQUEST"
    default_detail: str = "Request failed"

    def __init__(
        self,
        detail: Any = None,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=self.default_status,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )
        self.error_code = error_code or self.default_code


class AuthenticationError(APIError):
    """The request did not identify an acting staff member"""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTH_FAILED"
    default_detail = "Staff member identity is required"


class PermissionDeniedError(APIError):
    """The acting staff member may not perform this operation in this business"""

    default_status = status.HTTP_403_FORBIDDEN
    default_code = "PERMISSION_DENIED"
    default_detail = "Permission denied"


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.detail, exc.error_code),
        headers=exc.headers,
    )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    """Bad input that slipped past request validation (e.g. a malformed recurrence rule)"""
    logger.warning(f"ValueError at {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(request, str(exc), "VALIDATION_ERROR"),
    )


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Driver messages stay in the log
    logger.error(f"Database error at {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, "A database error occurred", "DATABASE_ERROR"),
    )


def register_exception_handlers(app):
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
