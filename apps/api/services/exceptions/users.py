"""Users domain exceptions.

These exceptions represent business rule violations in the users domain.
They are raised by UsersService and caught by controllers.
"""

from utilities.errors import DomainError


class UsersError(DomainError):
    """Base for users domain errors."""


class UserValidationError(UsersError):
    """Required field is missing or malformed."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(reason, field=field)


class EmailAlreadyExistsError(UsersError):
    """Email address is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__("An account with this email already exists.", field="email", email=email)


class UserNotFoundError(UsersError):
    """User does not exist."""

    def __init__(self, user_id: int | None = None, *, email: str | None = None) -> None:
        if email is not None:
            super().__init__("No account exists for this email.", field="email")
        else:
            super().__init__("User not found.", user_id=user_id)


class InvalidCredentialsError(UsersError):
    """Password does not match."""

    def __init__(self, field: str = "password") -> None:
        super().__init__("Invalid password.", field=field)


class InvalidTokenError(UsersError):
    """Session token is missing, unknown, expired or already used."""

    def __init__(self, token_type: str) -> None:
        super().__init__(f"Invalid or expired {token_type} token.", token_type=token_type)
