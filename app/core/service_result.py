"""
Uniform service results

Lets a service report "could not determine" separately from a negative answer
instead of folding both into a falsy value.
"""

from typing import Generic, TypeVar, Optional, Any, Dict
from dataclasses import dataclass, field as dc_field
from enum import Enum
from datetime import datetime

T = TypeVar('T')


class ErrorCode(Enum):
    """Standard error codes"""
    # generic (1000-1999)
    SUCCESS = 1000
    UNKNOWN_ERROR = 1001
    VALIDATION_ERROR = 1002
    NOT_FOUND = 1003
    ALREADY_EXISTS = 1004
    PERMISSION_DENIED = 1005

    # external services / storage (4000-4999)
    DATABASE_ERROR = 4003


@dataclass
class ErrorDetail:
    """Error detail"""
    code: ErrorCode
    message: str
    field: Optional[str] = None
    context: Dict[str, Any] = dc_field(default_factory=dict)
    timestamp: datetime = dc_field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code.value,
            'code_name': self.code.name,
            'message': self.message,
            'field': self.field,
            'context': self.context,
            'timestamp': self.timestamp.isoformat()
        }


@dataclass
class ServiceResult(Generic[T]):
    """
    Service result

    Usage:
    ```python
    result = ServiceResult.ok(data=decision)
    result = ServiceResult.failure(
        error=ErrorDetail(code=ErrorCode.DATABASE_ERROR, message="lookup failed")
    )

    if result.is_success():
        use(result.data)
    else:
        log(result.error.message)
    ```
    """
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def ok(cls, data: T = None) -> 'ServiceResult[T]':
        """Create a successful result"""
        return cls(success=True, data=data, error=None)

    @classmethod
    def failure(cls, error: ErrorDetail) -> 'ServiceResult[T]':
        """Create a failed result"""
        return cls(success=False, data=None, error=error)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success
