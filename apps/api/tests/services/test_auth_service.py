"""Unit tests for AuthService."""

import datetime as dt

import pytest
from questline_sdk.users import LoginRequest, RegisterRequest

from repository.exceptions import UniqueConstraintViolationError
from services.auth_service import AuthService
from services.exceptions.users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
    UserValidationError,
)

pytestmark = [
    pytest.mark.domain_users,
]

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def _user_row(user_id: int = 1, email: str = "hero@example.com") -> dict:
    return {
        "id": user_id,
        "name": "Hero",
        "email": email,
        "level": 1,
        "exp": 50,
        "health": 100,
        "coins": 1000,
        "created_at": NOW,
    }


@pytest.fixture(autouse=True)
def fast_bcrypt(mocker):
    """Cheapest bcrypt cost so hashing stays fast."""
    mocker.patch("services.auth_service.BCRYPT_ROUNDS", 4)


@pytest.fixture
def service(mock_pool, mock_state, mock_auth_repo, mock_users_repo):
    return AuthService(mock_pool, mock_state, mock_auth_repo, mock_users_repo)


class TestAuthServiceValidation:
    """Test validation methods."""

    def test_validate_email_valid(self):
        AuthService.validate_email("user@example.com")

    @pytest.mark.parametrize("email", ["not-an-email", "user@", "user@domain", "   "])
    def test_validate_email_invalid(self, email):
        with pytest.raises(UserValidationError) as exc_info:
            AuthService.validate_email(email)

        assert exc_info.value.context["field"] == "email"

    def test_validate_required(self):
        with pytest.raises(UserValidationError, match="Name is required"):
            AuthService.validate_required("name", " ")


class TestHashing:
    def test_password_round_trip(self):
        password_hash = AuthService.hash_password("password123")

        assert password_hash != "password123"
        assert AuthService.verify_password("password123", password_hash)
        assert not AuthService.verify_password("password124", password_hash)

    def test_generated_token_hash_matches_lookup_hash(self):
        token, token_hash = AuthService.generate_token()

        assert AuthService.hash_token(token) == token_hash
        assert token != token_hash


class TestIssueTokens:
    async def test_stores_only_hashes(self, service, mock_auth_repo, mocker):
        tokens = await service.issue_tokens(1)

        mock_auth_repo.delete_expired_tokens.assert_awaited_once_with(1, conn=None)
        stored = [c.args for c in mock_auth_repo.insert_token.await_args_list]
        assert [s[2] for s in stored] == ["access", "refresh"]
        assert stored[0][1] == AuthService.hash_token(tokens.access_token)
        assert stored[1][1] == AuthService.hash_token(tokens.refresh_token)
        assert stored[1][3] > stored[0][3]


class TestRegister:
    async def test_creates_user_and_tokens(self, service, mock_users_repo, mock_auth_repo, mock_conn):
        mock_users_repo.create_user.return_value = _user_row()

        result = await service.register(
            RegisterRequest(name=" Hero ", email="Hero@Example.com", password="password123")
        )

        args = mock_users_repo.create_user.await_args.args
        assert args[:2] == ("Hero", "hero@example.com")
        assert AuthService.verify_password("password123", args[2])
        assert mock_auth_repo.insert_token.await_count == 2
        assert result.user.coins == 1000
        assert result.access_token

    async def test_duplicate_email(self, service, mock_users_repo, mock_auth_repo):
        mock_users_repo.create_user.side_effect = UniqueConstraintViolationError("users_email_key", "core.users")

        with pytest.raises(EmailAlreadyExistsError):
            await service.register(RegisterRequest(name="Hero", email="hero@example.com", password="password123"))

        mock_auth_repo.insert_token.assert_not_called()

    async def test_blank_password(self, service, mock_users_repo):
        with pytest.raises(UserValidationError) as exc_info:
            await service.register(RegisterRequest(name="Hero", email="hero@example.com", password=""))

        assert exc_info.value.context["field"] == "password"
        mock_users_repo.create_user.assert_not_called()


class TestLogin:
    async def test_success(self, service, mock_users_repo, mock_auth_repo):
        mock_users_repo.fetch_credentials_by_email.return_value = {
            "id": 1,
            "password_hash": AuthService.hash_password("password123"),
        }
        mock_users_repo.fetch_user.return_value = _user_row()

        result = await service.login(LoginRequest(email="hero@example.com", password="password123"))

        assert result.user.id == 1
        assert mock_auth_repo.insert_token.await_count == 2

    async def test_unknown_email(self, service, mock_users_repo):
        mock_users_repo.fetch_credentials_by_email.return_value = None

        with pytest.raises(UserNotFoundError) as exc_info:
            await service.login(LoginRequest(email="ghost@example.com", password="password123"))

        assert exc_info.value.context["field"] == "email"

    async def test_wrong_password(self, service, mock_users_repo, mock_auth_repo):
        mock_users_repo.fetch_credentials_by_email.return_value = {
            "id": 1,
            "password_hash": AuthService.hash_password("password123"),
        }

        with pytest.raises(InvalidCredentialsError):
            await service.login(LoginRequest(email="hero@example.com", password="wrong"))

        mock_auth_repo.insert_token.assert_not_called()


class TestRefresh:
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, service, mock_auth_repo, token):
        with pytest.raises(InvalidTokenError):
            await service.refresh(token)

        mock_auth_repo.consume_refresh_token.assert_not_called()

    async def test_unknown_or_used_token(self, service, mock_auth_repo):
        mock_auth_repo.consume_refresh_token.return_value = None

        with pytest.raises(InvalidTokenError) as exc_info:
            await service.refresh("stale")

        assert exc_info.value.context["token_type"] == "refresh"
        mock_auth_repo.insert_token.assert_not_called()

    async def test_rotates_pair(self, service, mock_auth_repo, mock_conn):
        mock_auth_repo.consume_refresh_token.return_value = 1

        tokens = await service.refresh("valid")

        mock_auth_repo.consume_refresh_token.assert_awaited_once_with(AuthService.hash_token("valid"), conn=mock_conn)
        assert tokens.refresh_token != "valid"
        assert mock_auth_repo.insert_token.await_count == 2


async def test_logout_revokes_all_tokens(service, mock_auth_repo):
    mock_auth_repo.delete_user_tokens.return_value = 4

    assert await service.logout(1) == 4
