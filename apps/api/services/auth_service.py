"""Authentication service for business logic."""

from __future__ import annotations

import hashlib
import logging
import os
import re
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import msgspec
from asyncpg import Connection, Pool
from litestar.datastructures import State
from questline_sdk.users import LoginRequest, LoginResponse, RegisterRequest, TokenPairResponse, UserResponse

from repository.auth_repository import AuthRepository
from repository.exceptions import UniqueConstraintViolationError
from repository.users_repository import UsersRepository

from .base import BaseService
from .exceptions.users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
    UserValidationError,
)

log = logging.getLogger(__name__)

# Constants
BCRYPT_ROUNDS = 12
ACCESS_TOKEN_EXPIRY_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRY_MINUTES", "60"))
REFRESH_TOKEN_EXPIRY_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRY_DAYS", "7"))

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthService(BaseService):
    """Service for registration, login and session tokens."""

    def __init__(self, pool: Pool, state: State, auth_repo: AuthRepository, users_repo: UsersRepository) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            auth_repo: Auth repository instance.
            users_repo: Users repository instance.
        """
        super().__init__(pool, state)
        self._auth_repo = auth_repo
        self._users_repo = users_repo

    # Validation

    @staticmethod
    def validate_email(email: str) -> None:
        """Validate email format.

        Raises:
            UserValidationError: If the email is blank or malformed.
        """
        if not email.strip():
            raise UserValidationError("email", "Email is required.")
        if not EMAIL_PATTERN.match(email.strip()):
            raise UserValidationError("email", "Invalid email address.")

    @staticmethod
    def validate_required(field: str, value: str) -> None:
        """Reject blank required fields."""
        if not value.strip():
            raise UserValidationError(field, f"{field.capitalize()} is required.")

    # Hashing

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Bcrypt hash string.
        """
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """Verify a password against its hash.

        Args:
            password: Plain text password.
            password_hash: Stored bcrypt hash.

        Returns:
            True if password matches.
        """
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

    @staticmethod
    def generate_token() -> tuple[str, str]:
        """Generate a random token and its hash.

        Returns:
            Tuple of (plain_token, token_hash).
        """
        token = secrets.token_urlsafe(32)
        token_hash = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return token, token_hash

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token for lookup.

        Args:
            token: Plain text token.

        Returns:
            SHA256 hash of token.
        """
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    # Tokens

    async def issue_tokens(self, user_id: int, *, conn: Connection | None = None) -> TokenPairResponse:
        """Create and store a new access and refresh token pair.

        Args:
            user_id: Owner of the tokens.
            conn: Optional connection for transaction participation.

        Returns:
            The plain tokens. Only their hashes are stored.
        """
        now = datetime.now(timezone.utc)
        access_token, access_hash = self.generate_token()
        refresh_token, refresh_hash = self.generate_token()
        await self._auth_repo.delete_expired_tokens(user_id, conn=conn)
        await self._auth_repo.insert_token(
            user_id,
            access_hash,
            "access",
            now + timedelta(minutes=ACCESS_TOKEN_EXPIRY_MINUTES),
            conn=conn,
        )
        await self._auth_repo.insert_token(
            user_id,
            refresh_hash,
            "refresh",
            now + timedelta(days=REFRESH_TOKEN_EXPIRY_DAYS),
            conn=conn,
        )
        return TokenPairResponse(access_token=access_token, refresh_token=refresh_token)

    async def resolve_access_token(self, token: str) -> dict | None:
        """Look up the user behind a valid access token."""
        return await self._auth_repo.fetch_access_token_user(self.hash_token(token))

    # Flows

    async def register(self, data: RegisterRequest) -> LoginResponse:
        """Register a new user and log them in.

        Args:
            data: Registration payload.

        Returns:
            The new user and a fresh token pair.

        Raises:
            UserValidationError: If a field is blank or the email malformed.
            EmailAlreadyExistsError: If the email is taken.
        """
        self.validate_required("name", data.name)
        self.validate_email(data.email)
        self.validate_required("password", data.password)

        email = data.email.strip().lower()
        password_hash = self.hash_password(data.password)

        async with self._pool.acquire() as conn, conn.transaction():
            try:
                user = await self._users_repo.create_user(data.name.strip(), email, password_hash, conn=conn)
            except UniqueConstraintViolationError as e:
                raise EmailAlreadyExistsError(email) from e
            tokens = await self.issue_tokens(user["id"], conn=conn)

        log.info("Registered user %s", user["id"])
        return LoginResponse(
            user=msgspec.convert(user, UserResponse),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    async def login(self, data: LoginRequest) -> LoginResponse:
        """Log a user in with email and password.

        Raises:
            UserValidationError: If a field is blank.
            UserNotFoundError: If no account exists for the email.
            InvalidCredentialsError: If the password does not match.
        """
        self.validate_required("email", data.email)
        self.validate_required("password", data.password)

        credentials = await self._users_repo.fetch_credentials_by_email(data.email.strip())
        if not credentials:
            raise UserNotFoundError(email=data.email)
        if not self.verify_password(data.password, credentials["password_hash"]):
            raise InvalidCredentialsError()

        user = await self._users_repo.fetch_user(credentials["id"])
        if not user:
            raise UserNotFoundError(credentials["id"])
        tokens = await self.issue_tokens(user["id"])
        log.info("User %s logged in", user["id"])
        return LoginResponse(
            user=msgspec.convert(user, UserResponse),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    async def refresh(self, refresh_token: str | None) -> TokenPairResponse:
        """Exchange a refresh token for a new token pair.

        The presented refresh token is consumed.

        Raises:
            InvalidTokenError: If the token is missing, unknown, expired or already used.
        """
        if not refresh_token:
            raise InvalidTokenError("refresh")
        async with self._pool.acquire() as conn, conn.transaction():
            user_id = await self._auth_repo.consume_refresh_token(self.hash_token(refresh_token), conn=conn)
            if user_id is None:
                raise InvalidTokenError("refresh")
            return await self.issue_tokens(user_id, conn=conn)

    async def logout(self, user_id: int) -> int:
        """Revoke every token of a user.

        Returns:
            Number of tokens revoked.
        """
        count = await self._auth_repo.delete_user_tokens(user_id)
        log.info("User %s logged out, %s tokens revoked", user_id, count)
        return count


async def provide_auth_service(state: State) -> AuthService:
    """Litestar DI provider for auth service.

    Args:
        state: Application state.

    Returns:
        AuthService instance.
    """
    return AuthService(
        pool=state.db_pool,
        state=state,
        auth_repo=AuthRepository(state.db_pool),
        users_repo=UsersRepository(state.db_pool),
    )
