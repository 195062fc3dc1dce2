"""
Operation results shared by the collaboration services

Domain failures (authorization, invalid transition, conflict, precondition,
not found, validation) are returned as OperationResult values. Only transport
faults are raised, as TransportError.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Domain failure taxonomy"""
    AUTHORIZATION = "authorization"
    INVALID_TRANSITION = "invalid_transition"
    CONFLICT = "conflict"
    PRECONDITION = "precondition"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"


# HTTP status per failure kind, used by the FastAPI surfaces
ERROR_STATUS_CODES = {
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PRECONDITION: 422,
    ErrorKind.VALIDATION: 422,
}


class OperationResult(BaseModel, Generic[T]):
    """Discriminated success/failure result"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, value: Optional[T] = None, message: str = "") -> "OperationResult[T]":
        return cls(success=True, value=value, message=message)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "OperationResult[T]":
        return cls(success=False, error=error, message=message)

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return ERROR_STATUS_CODES.get(self.error, 400)


class TransportError(Exception):
    """Store or event bus unavailable after the bounded retry budget"""

    def __init__(self, message: str, operation: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts


__all__ = [
    "ErrorKind",
    "ERROR_STATUS_CODES",
    "OperationResult",
    "TransportError",
]
