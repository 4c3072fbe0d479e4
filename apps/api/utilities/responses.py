"""Helpers shared by the v1 controllers."""

from __future__ import annotations

import typing

from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)
from questline_sdk.common import ApiResponse

from services.exceptions.progression import DuplicateSkillError, EntityNotFoundError
from services.exceptions.store import ItemNotFoundError
from services.exceptions.users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
)
from utilities.errors import ConcurrencyConflictError, CustomHTTPException, DomainError

T = typing.TypeVar("T")

# Checked in order; anything else is a bad request.
ERROR_STATUS_CODES: tuple[tuple[type[DomainError], int], ...] = (
    (EntityNotFoundError, HTTP_404_NOT_FOUND),
    (ItemNotFoundError, HTTP_404_NOT_FOUND),
    (UserNotFoundError, HTTP_404_NOT_FOUND),
    (InvalidCredentialsError, HTTP_401_UNAUTHORIZED),
    (InvalidTokenError, HTTP_401_UNAUTHORIZED),
    (EmailAlreadyExistsError, HTTP_409_CONFLICT),
    (DuplicateSkillError, HTTP_409_CONFLICT),
    (ConcurrencyConflictError, HTTP_409_CONFLICT),
)


def status_for(error: DomainError) -> int:
    """HTTP status code of a domain error."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return HTTP_400_BAD_REQUEST


def to_http_exception(error: DomainError) -> CustomHTTPException:
    """Translate a domain error into the HTTP exception rendered in the error envelope.

    Errors tied to a request field carry ``[{"field": ..., "message": ...}]`` as their error list.
    """
    field = error.context.get("field")
    errors = [{"field": field, "message": error.message}] if field else []
    return CustomHTTPException(detail=error.message, status_code=status_for(error), extra=errors)


def ensure_same_user(authenticated_id: int, user_id: int) -> None:
    """Reject access to another user's collection.

    Raises:
        CustomHTTPException: 401 when the IDs differ.
    """
    if authenticated_id != user_id:
        raise CustomHTTPException(
            detail="You can only access your own data.",
            status_code=HTTP_401_UNAUTHORIZED,
        )


def ok(data: T, message: str = "", status_code: int = HTTP_200_OK) -> ApiResponse[T]:
    """Wrap a payload in the success envelope."""
    return ApiResponse(data=data, message=message, status_code=status_code)
