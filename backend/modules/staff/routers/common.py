"""Shared router helpers for the staff module"""

from typing import Optional

from fastapi import Header, HTTPException, status

from core.config import settings
from ..exceptions.staff_exceptions import StaffOperationException, ShiftConflictException


def to_http_exception(exc: StaffOperationException) -> HTTPException:
    """Translate a service exception into the HTTP error the client sees"""
    if isinstance(exc, ShiftConflictException):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=[conflict.model_dump(mode="json") for conflict in exc.conflicts],
        )
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def force_flag(
    force_create: Optional[str] = Header(None, alias=settings.force_create_header),
) -> bool:
    """True when the caller asked to proceed past warning-level conflicts"""
    if force_create is None:
        return False
    return force_create.strip().lower() in {"true", "1", "yes"}
