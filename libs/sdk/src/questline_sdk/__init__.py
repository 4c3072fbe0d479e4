# src/questline_sdk/__init__.py
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from . import (
    common,
    daily,
    quests,
    stats,
    store,
    tasks,
    users,
)

__all__ = [
    "common",
    "daily",
    "quests",
    "stats",
    "store",
    "tasks",
    "users",
]

try:
    __version__ = _pkg_version("questline")
except PackageNotFoundError:
    __version__ = "0.0.0"
