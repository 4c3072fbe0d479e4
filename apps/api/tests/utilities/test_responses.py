import pytest
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_401_UNAUTHORIZED, HTTP_404_NOT_FOUND, HTTP_409_CONFLICT

from services.exceptions.progression import (
    AlreadyClaimedError,
    DuplicateSkillError,
    EntityNotFoundError,
    NotYetCompletedError,
    ProgressionValidationError,
    RewardLockedError,
)
from services.exceptions.store import InsufficientFundsError, ItemNotFoundError
from services.exceptions.users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
)
from utilities.errors import ConcurrencyConflictError, CustomHTTPException
from utilities.responses import ensure_same_user, ok, status_for, to_http_exception

pytestmark = [
    pytest.mark.domain_utilities,
]


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (EntityNotFoundError("Task", 1), HTTP_404_NOT_FOUND),
        (ItemNotFoundError(1), HTTP_404_NOT_FOUND),
        (UserNotFoundError(1), HTTP_404_NOT_FOUND),
        (InvalidCredentialsError(), HTTP_401_UNAUTHORIZED),
        (InvalidTokenError("refresh"), HTTP_401_UNAUTHORIZED),
        (EmailAlreadyExistsError("a@b.co"), HTTP_409_CONFLICT),
        (DuplicateSkillError("focus"), HTTP_409_CONFLICT),
        (ConcurrencyConflictError("purchase_item", 3), HTTP_409_CONFLICT),
        (AlreadyClaimedError("Quest", 1), HTTP_400_BAD_REQUEST),
        (NotYetCompletedError("SubQuest", 1), HTTP_400_BAD_REQUEST),
        (RewardLockedError(), HTTP_400_BAD_REQUEST),
        (InsufficientFundsError(10, 100), HTTP_400_BAD_REQUEST),
    ],
)
def test_status_for(error, status_code) -> None:
    assert status_for(error) == status_code


def test_field_errors_become_error_list() -> None:
    exc = to_http_exception(ProgressionValidationError("name", "Name is required."))

    assert exc.status_code == HTTP_400_BAD_REQUEST
    assert exc.detail == "Name is required."
    assert exc.extra == [{"field": "name", "message": "Name is required."}]


def test_errors_without_field_have_empty_list() -> None:
    exc = to_http_exception(EntityNotFoundError("Quest", 7))

    assert exc.detail == "Quest not found."
    assert exc.extra == []


def test_ensure_same_user() -> None:
    ensure_same_user(1, 1)

    with pytest.raises(CustomHTTPException) as exc_info:
        ensure_same_user(1, 2)

    assert exc_info.value.status_code == HTTP_401_UNAUTHORIZED


def test_ok_envelope() -> None:
    response = ok({"id": 1}, "Task created.", 201)

    assert response.data == {"id": 1}
    assert response.ok is True
    assert response.success is True
    assert response.status_code == 201
