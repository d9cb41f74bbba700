"""Custom exceptions for staff operations"""

from typing import List, Optional


class StaffOperationException(Exception):
    """Base exception for staff operations"""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ResourceNotFoundException(StaffOperationException):
    """Raised when a requested resource does not exist in the business"""

    def __init__(self, resource: str, resource_id: Optional[int] = None):
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message=message, status_code=404)


class OperationNotPermittedException(StaffOperationException):
    """Raised when a request violates a domain rule"""

    def __init__(self, reason: str):
        super().__init__(message=reason, status_code=400)


class ShiftConflictException(StaffOperationException):
    """Raised when blocking conflicts prevent a shift from being saved"""

    def __init__(self, conflicts: List):
        self.conflicts = conflicts
        super().__init__(
            message=f"Shift has {len(conflicts)} blocking conflict(s)",
            status_code=409,
        )
