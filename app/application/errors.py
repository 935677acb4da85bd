"""
Application errors - each carries the stable code returned in a Result.
"""

from enum import Enum


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVOICE_NUMBER_CONFLICT = "INVOICE_NUMBER_CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ApplicationError(Exception):
    code = ErrorCode.INTERNAL_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, code: ErrorCode | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class UnauthorizedError(ApplicationError):
    code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(ApplicationError):
    code = ErrorCode.FORBIDDEN
    default_message = "Access forbidden"


class ValidationError(ApplicationError):
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid input"


class NotFoundError(ApplicationError):
    code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"


class ConflictError(ApplicationError):
    code = ErrorCode.CONFLICT
    default_message = "Conflict with current state"


class InvoiceNumberConflictError(ConflictError):
    code = ErrorCode.INVOICE_NUMBER_CONFLICT
    default_message = "Failed to generate unique invoice number"


class TransactionAbortedError(Exception):
    """A record store transaction kept conflicting until the retry bound ran out."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")
