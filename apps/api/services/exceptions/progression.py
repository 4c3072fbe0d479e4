"""Progression domain exceptions.

These exceptions represent illegal transitions and invalid payloads for
tasks, quests, sub-quests, rewards, daily challenges and stats. They are
raised by the progression services and caught by controllers.
"""

from __future__ import annotations

from utilities.errors import DomainError


class ProgressionError(DomainError):
    """Base for progression domain errors."""


class EntityNotFoundError(ProgressionError):
    """Entity does not exist or is not owned by the caller."""

    def __init__(self, entity: str, entity_id: int | str) -> None:
        super().__init__(f"{entity} not found.", entity=entity, entity_id=entity_id)


class AlreadyCompletedError(ProgressionError):
    """Completion was requested for an entity that is already completed."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} is already completed.", entity=entity, entity_id=entity_id)


class AlreadyClaimedError(ProgressionError):
    """Claim was requested for rewards that were already collected."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} rewards have already been claimed.", entity=entity, entity_id=entity_id)


class NotYetCompletedError(ProgressionError):
    """Claim was requested before the underlying work was completed."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(
            f"{entity} must be completed before its rewards can be claimed.",
            entity=entity,
            entity_id=entity_id,
        )


class RewardLockedError(ProgressionError):
    """Reward belongs to an entity that has already paid out."""

    def __init__(self, reward_id: int | None = None) -> None:
        super().__init__("Rewards cannot change once they have been paid out.", reward_id=reward_id)


class InvalidRewardError(ProgressionError):
    """Reward payload is malformed."""

    def __init__(self, reason: str, field: str) -> None:
        super().__init__(reason, field=field)


class DuplicateSkillError(ProgressionError):
    """User already has a stat for this skill."""

    def __init__(self, skill: str) -> None:
        super().__init__("A stat for this skill already exists.", skill=skill)


class ProgressionValidationError(ProgressionError):
    """Required field is missing or malformed."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(reason, field=field)
