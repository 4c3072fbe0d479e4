"""Base service class."""

from __future__ import annotations

import typing

import msgspec
from asyncpg import Pool
from litestar.datastructures import State


class BaseService:
    """Base class for all services.

    Services contain business logic and orchestrate repository calls.
    They manage transaction boundaries.
    """

    def __init__(self, pool: Pool, state: State) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
        """
        self._pool = pool
        self._state = state

    @staticmethod
    def supplied_fields(data: msgspec.Struct) -> dict[str, typing.Any]:
        """Return the fields of an update request that were actually sent.

        Args:
            data: Request Struct whose omitted fields are UNSET.

        Returns:
            Mapping of field name to value, without UNSET entries.
        """
        return {k: v for k, v in msgspec.structs.asdict(data).items() if v is not msgspec.UNSET}
