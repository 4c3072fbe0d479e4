"""Service layer for business logic."""

from services.auth_service import AuthService, provide_auth_service
from services.daily_service import DailyService, provide_daily_service
from services.quests_service import QuestsService, provide_quests_service
from services.stats_service import StatsService, provide_stats_service
from services.store_service import StoreService, provide_store_service
from services.tasks_service import TasksService, provide_tasks_service
from services.users_service import UsersService, provide_users_service

__all__ = [
    "AuthService",
    "DailyService",
    "QuestsService",
    "StatsService",
    "StoreService",
    "TasksService",
    "UsersService",
    "provide_auth_service",
    "provide_daily_service",
    "provide_quests_service",
    "provide_stats_service",
    "provide_store_service",
    "provide_tasks_service",
    "provide_users_service",
]
