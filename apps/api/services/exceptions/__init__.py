"""Service-layer domain exceptions."""

from .progression import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    DuplicateSkillError,
    EntityNotFoundError,
    InvalidRewardError,
    NotYetCompletedError,
    ProgressionError,
    ProgressionValidationError,
    RewardLockedError,
)
from .store import (
    AlreadyUsedError,
    InsufficientFundsError,
    InvalidItemError,
    ItemNotFoundError,
    ItemNotOwnedError,
    NotPurchasableError,
    StoreError,
)
from .users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
    UsersError,
    UserValidationError,
)

__all__ = [
    "AlreadyClaimedError",
    "AlreadyCompletedError",
    "AlreadyUsedError",
    "DuplicateSkillError",
    "EmailAlreadyExistsError",
    "EntityNotFoundError",
    "InsufficientFundsError",
    "InvalidCredentialsError",
    "InvalidItemError",
    "InvalidRewardError",
    "InvalidTokenError",
    "ItemNotFoundError",
    "ItemNotOwnedError",
    "NotPurchasableError",
    "NotYetCompletedError",
    "ProgressionError",
    "ProgressionValidationError",
    "RewardLockedError",
    "StoreError",
    "UserNotFoundError",
    "UserValidationError",
    "UsersError",
]
