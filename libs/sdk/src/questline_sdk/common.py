"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

import msgspec
from msgspec import Struct

__all__ = (
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
)

T = TypeVar("T")


class ApiResponse(Struct, Generic[T]):
    """Envelope wrapping every successful response.

    Attributes:
        data: Payload of the response.
        message: Human readable summary of what happened.
        ok: Always True for successful responses.
        success: Always True for successful responses.
        status_code: HTTP status code mirrored into the body.
    """

    data: T
    message: str = ""
    ok: bool = True
    success: bool = True
    status_code: int = 200


class ErrorDetail(Struct):
    """Body of a failed response.

    Attributes:
        message: Human readable error message.
        errors: Field level errors or additional context.
    """

    message: str
    errors: Any = msgspec.field(default_factory=list)


class ErrorResponse(Struct):
    """Envelope wrapping every failed response."""

    error: ErrorDetail
    ok: bool = False
    success: bool = False
