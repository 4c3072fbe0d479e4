"""Pytest configuration for API tests."""

import glob
import os
from typing import Any, AsyncIterator, Awaitable, Callable, Generator
from uuid import uuid4

import asyncpg
import pytest
from faker import Faker
from litestar import Litestar
from litestar.datastructures import State
from litestar.testing import AsyncTestClient
from pytest_databases.docker.postgres import PostgresService

from app import create_app
from repository.auth_repository import AuthRepository
from repository.users_repository import UsersRepository
from services.auth_service import AuthService

fake = Faker()

TEST_PASSWORD = "password123"


# ==============================================================================
# PYTEST CONFIGURATION
# ==============================================================================


def pytest_configure(config: Any) -> None:
    """Register custom markers for test organization."""
    config.addinivalue_line("markers", "domain_users: Tests for users and auth domain")
    config.addinivalue_line("markers", "domain_progression: Tests for tasks, quests and daily challenges")
    config.addinivalue_line("markers", "domain_stats: Tests for skill stats domain")
    config.addinivalue_line("markers", "domain_store: Tests for store domain")
    config.addinivalue_line("markers", "domain_utilities: Tests for shared utilities")


MIGRATIONS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "migrations"))


def _apply_sql_dir(conn: Any, directory: str) -> None:
    """Apply all SQL files from a directory in sorted order."""
    for path in sorted(glob.glob(os.path.join(directory, "*.sql"))):
        with open(path, "r", encoding="utf-8") as f:
            sql_text = f.read()
        try:
            conn.execute(sql_text, prepare=False)
        except Exception as exc:
            raise RuntimeError(f"Failed applying SQL file: {path}") from exc
        conn.commit()


def _dsn(postgres_service: PostgresService) -> str:
    return (
        f"postgresql://{postgres_service.user}:{postgres_service.password}"
        f"@{postgres_service.host}:{postgres_service.port}/{postgres_service.database}"
    )


@pytest.fixture(scope="session")
def setup_test_db(postgres_connection: Any) -> Generator[None, Any, None]:
    """Apply migrations once per session.

    Not autouse: unit tests never start the database container.
    """
    _apply_sql_dir(postgres_connection, MIGRATIONS_DIR)
    yield


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Bcrypt hash of TEST_PASSWORD."""
    return AuthService.hash_password(TEST_PASSWORD)


@pytest.fixture(scope="function")
async def asyncpg_pool(postgres_service: PostgresService, setup_test_db: None) -> AsyncIterator[asyncpg.Pool]:
    """Pool shared by the factories and the code under test within a single test."""
    pool = await asyncpg.create_pool(dsn=_dsn(postgres_service), min_size=1, max_size=10)
    yield pool
    await pool.close()


@pytest.fixture
async def test_client(
    postgres_service: PostgresService,
    setup_test_db: None,
) -> AsyncIterator[AsyncTestClient[Litestar]]:
    """Create async test client against the test database."""
    app = create_app(psql_dsn=_dsn(postgres_service))
    async with AsyncTestClient(app=app) as client:
        yield client


# ==============================================================================
# FACTORY FIXTURES
# ==============================================================================


@pytest.fixture
def unique_email(global_email_tracker: set[str]) -> Callable[[], str]:
    """Factory producing emails that never collide within the session."""

    def _make() -> str:
        email = f"{uuid4().hex[:12]}@{fake.domain_name()}"
        global_email_tracker.add(email)
        return email

    return _make


@pytest.fixture(scope="session")
def global_email_tracker() -> set[str]:
    """Session-wide tracker for all used email addresses."""
    return set()


@pytest.fixture
async def create_test_user(
    asyncpg_pool: asyncpg.Pool,
    unique_email: Callable[[], str],
    password_hash: str,
) -> Callable[..., Awaitable[int]]:
    """Factory fixture inserting users with default balances.

    Keyword arguments override columns, e.g. ``coins=0``.
    """

    async def _create(**overrides: Any) -> int:
        columns = {
            "name": fake.name(),
            "email": unique_email(),
            "password_hash": password_hash,
            **overrides,
        }
        names = ", ".join(columns)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        return await asyncpg_pool.fetchval(
            f"INSERT INTO core.users ({names}) VALUES ({placeholders}) RETURNING id",
            *columns.values(),
        )

    return _create


@pytest.fixture
async def auth_headers_for(asyncpg_pool: asyncpg.Pool) -> Callable[[int], Awaitable[dict[str, str]]]:
    """Factory issuing a real access token and returning a Bearer header for it."""
    service = AuthService(asyncpg_pool, State(), AuthRepository(asyncpg_pool), UsersRepository(asyncpg_pool))

    async def _headers(user_id: int) -> dict[str, str]:
        tokens = await service.issue_tokens(user_id)
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _headers


@pytest.fixture
async def authed_user(
    create_test_user: Callable[..., Awaitable[int]],
    auth_headers_for: Callable[[int], Awaitable[dict[str, str]]],
) -> tuple[int, dict[str, str]]:
    """A fresh user with default balances and its auth header."""
    user_id = await create_test_user()
    return user_id, await auth_headers_for(user_id)


@pytest.fixture
async def create_catalog_item(asyncpg_pool: asyncpg.Pool) -> Callable[..., Awaitable[int]]:
    """Factory fixture inserting store catalog entries."""

    async def _create(
        *,
        price: int = 100,
        item_type: str = "MAGICAL ITEM",
        amount: int = 10,
        attribute_name: str | None = "health",
        name: str | None = None,
    ) -> int:
        return await asyncpg_pool.fetchval(
            """
            INSERT INTO store.items (name, price, type, amount, attribute_name)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id
            """,
            name or fake.word().title(),
            price,
            item_type,
            amount,
            attribute_name,
        )

    return _create


@pytest.fixture
async def fetch_balances(asyncpg_pool: asyncpg.Pool) -> Callable[[int], Awaitable[dict]]:
    """Read the balance columns of a user straight from the database."""

    async def _fetch(user_id: int) -> dict:
        row = await asyncpg_pool.fetchrow("SELECT coins, exp, health, level FROM core.users WHERE id = $1", user_id)
        return dict(row)

    return _fetch
