import typing
from logging import getLogger

import sentry_sdk
from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR
from questline_sdk.common import ErrorDetail, ErrorResponse

log = getLogger(__name__)

__all__ = [
    "ConcurrencyConflictError",
    "CustomHTTPException",
    "DomainError",
    "domain_error_handler",
    "http_exception_handler",
    "internal_error_handler",
]


class CustomHTTPException(HTTPException): ...


class DomainError(Exception):
    """Base exception for domain-level business rule violations.

    Attributes:
        message: Human-readable error message.
        context: Additional context about the error.

    """

    def __init__(self, message: str, **context: typing.Any) -> None:  # noqa: ANN401
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            **context: Additional context (e.g., field names, identifiers).

        """
        super().__init__(message)
        self.message = message
        self.context = context


class ConcurrencyConflictError(DomainError):
    """Raised when a transaction keeps losing to concurrent writers."""

    def __init__(self, operation: str, attempts: int) -> None:
        """Initialize exception.

        Args:
            operation: Name of the operation that gave up.
            attempts: Number of attempts made.
        """
        super().__init__(
            f"Could not complete {operation} due to concurrent updates. Please retry.",
            operation=operation,
            attempts=attempts,
        )


def _error_list(extra: typing.Any) -> typing.Any:  # noqa: ANN401
    if extra is None:
        return []
    return extra


def http_exception_handler(_: Request, exc: HTTPException) -> Response[ErrorResponse]:
    """Render any HTTPException in the error envelope."""
    return Response(
        ErrorResponse(error=ErrorDetail(message=exc.detail, errors=_error_list(exc.extra))),
        status_code=exc.status_code,
    )


def domain_error_handler(_: Request, exc: DomainError) -> Response[ErrorResponse]:
    """Render a domain error no controller translated as a bad request."""
    log.warning("Untranslated domain error: %s", exc.message, exc_info=exc)
    return Response(
        ErrorResponse(error=ErrorDetail(message=exc.message, errors=[exc.context] if exc.context else [])),
        status_code=HTTP_400_BAD_REQUEST,
    )


def internal_error_handler(request: Request, exc: Exception) -> Response[ErrorResponse]:
    """Render an unexpected failure without leaking internals."""
    log.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    sentry_sdk.capture_exception(exc)
    return Response(
        ErrorResponse(error=ErrorDetail(message="Internal server error")),
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
    )
