"""
Custom exceptions - service error taxonomy

Each class carries the HTTP status the API answers with.
"""

from typing import Optional, Any


class CourseServiceError(Exception):
    """Base service exception (Internal, 500)"""

    status_code = 500
    default_code = "internal_error"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Any] = None):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details
        super().__init__(self.message)


class ValidationError(CourseServiceError):
    """Malformed or missing input"""
    status_code = 400
    default_code = "validation_error"


class ConflictError(CourseServiceError):
    """Duplicate unique key"""
    status_code = 400
    default_code = "conflict"


class AccessDeniedError(CourseServiceError):
    """Entitlement check failed"""
    status_code = 403
    default_code = "access_denied"


class NotFoundError(CourseServiceError):
    """Referenced entity is absent"""
    status_code = 404
    default_code = "not_found"
