"""Integration test fixtures.

Every request goes through the real app, middleware and database. Helpers
here create domain records over HTTP so tests exercise the same paths a
client would.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from litestar import Litestar
from litestar.testing import AsyncTestClient

API = "/api/v1"


@pytest.fixture
def api_post(test_client: AsyncTestClient[Litestar]) -> Callable[..., Awaitable[dict[str, Any]]]:
    """POST a payload and return the ``data`` of the created record."""

    async def _post(path: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        response = await test_client.post(f"{API}{path}", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _post
