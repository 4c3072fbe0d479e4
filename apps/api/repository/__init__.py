"""Repository layer for data access."""

from repository.auth_repository import AuthRepository, provide_auth_repository
from repository.daily_repository import DailyRepository, provide_daily_repository
from repository.quests_repository import QuestsRepository, provide_quests_repository
from repository.stats_repository import StatsRepository, provide_stats_repository
from repository.store_repository import StoreRepository, provide_store_repository
from repository.tasks_repository import TasksRepository, provide_tasks_repository
from repository.users_repository import UsersRepository, provide_users_repository

__all__ = [
    "AuthRepository",
    "DailyRepository",
    "QuestsRepository",
    "StatsRepository",
    "StoreRepository",
    "TasksRepository",
    "UsersRepository",
    "provide_auth_repository",
    "provide_daily_repository",
    "provide_quests_repository",
    "provide_stats_repository",
    "provide_store_repository",
    "provide_tasks_repository",
    "provide_users_repository",
]
