"""
API dependencies - service lookup, caller identity and result unwrapping.
"""

from typing import TypeVar

from fastapi import Header, HTTPException, Request, status

from app.application.errors import ErrorCode
from app.application.results import Result
from app.infrastructure.container import FinancialServices

T = TypeVar("T")

STATUS_BY_CODE = {
    ErrorCode.UNAUTHORIZED.value: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION_ERROR.value: 422,
    ErrorCode.NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT.value: status.HTTP_409_CONFLICT,
    ErrorCode.INVOICE_NUMBER_CONFLICT.value: status.HTTP_409_CONFLICT,
    ErrorCode.INTERNAL_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_services(request: Request) -> FinancialServices:
    return request.app.state.services


def current_user(x_user_id: str | None = Header(None, description="Authenticated user ID")) -> str | None:
    return x_user_id


def unwrap(result: Result[T]) -> T:
    """Return the value of a successful result, raise HTTPException otherwise."""
    if result.success:
        return result.value
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(result.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": result.error.code, "message": result.error.message},
    )
