from dataclasses import dataclass
from typing import Generic, TypeVar

from app.application.errors import ErrorCode

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a use case: a value on success, an ErrorInfo otherwise."""

    success: bool
    value: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, code: ErrorCode | str, message: str) -> "Result[T]":
        code = code.value if isinstance(code, ErrorCode) else code
        return cls(success=False, error=ErrorInfo(code=code, message=message))

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None
