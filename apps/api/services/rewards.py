"""Reward resolution.

Turns reward descriptors into balance effects without touching storage. The
services apply the resulting effects inside the transaction that flips the
completion or claim marker.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

import msgspec
from questline_sdk.quests import RewardKind
from questline_sdk.store import MAGICAL_ITEM_TYPE

log = logging.getLogger(__name__)

TASK_COMPLETION_EXP = 10
CHALLENGE_COMPLETION_POINTS = 10
STAT_LEVEL_SPAN = 100

# Attribute names accepted on magical items, mapped to user columns.
ITEM_ATTRIBUTE_FIELDS = {
    "health": "health",
    "coins": "coins",
    "experience": "exp",
}


class EffectTarget(str, Enum):
    """What an effect writes to."""

    USER = "USER"
    STAT = "STAT"


class Effect(msgspec.Struct, frozen=True):
    """A single numeric delta.

    Attributes:
        target: USER for balance columns, STAT for skill stats.
        field: User column name, or the skill key for STAT effects.
        delta: Amount to add.
    """

    target: EffectTarget
    field: str
    delta: int


def stat_level(value: int) -> int:
    """Compute the level of a skill stat from its accumulated value."""
    return value // STAT_LEVEL_SPAN + 1


def resolve_reward(reward: Mapping[str, Any]) -> Effect | None:
    """Resolve one reward descriptor into its effect.

    Args:
        reward: Reward row with ``type``, ``amount`` and optionally ``skill``.

    Returns:
        The effect, or None if the reward produces no balance change.
    """
    try:
        kind = RewardKind(reward["type"])
    except ValueError:
        log.warning("Skipping reward %s with unknown type %r", reward.get("id"), reward["type"])
        return None

    amount = reward.get("amount") or 0
    if kind is RewardKind.COINS:
        return Effect(EffectTarget.USER, "coins", amount)
    if kind is RewardKind.EXPERIENCE:
        return Effect(EffectTarget.USER, "exp", amount)
    if kind is RewardKind.SKILL:
        skill = reward.get("skill")
        if not skill:
            log.debug("Skipping SKILL reward %s without a skill", reward.get("id"))
            return None
        return Effect(EffectTarget.STAT, skill, amount)

    log.warning("ITEM rewards are not supported yet; reward %s was not applied", reward.get("id"))
    return None


def resolve_rewards(rewards: Iterable[Mapping[str, Any]]) -> list[Effect]:
    """Resolve reward descriptors in order, dropping those without an effect."""
    effects = []
    for reward in rewards:
        effect = resolve_reward(reward)
        if effect is not None:
            effects.append(effect)
    return effects


def merge_effects(effects: Iterable[Effect]) -> list[Effect]:
    """Sum effects that write to the same target field.

    The first occurrence of each (target, field) pair decides its position.
    """
    totals: dict[tuple[EffectTarget, str], int] = {}
    for effect in effects:
        key = (effect.target, effect.field)
        totals[key] = totals.get(key, 0) + effect.delta
    return [Effect(target, field, delta) for (target, field), delta in totals.items()]


def task_completion_effects() -> list[Effect]:
    """Fixed payout for completing a task."""
    return [Effect(EffectTarget.USER, "exp", TASK_COMPLETION_EXP)]


def challenge_completion_effects(skill: str | None) -> list[Effect]:
    """Fixed payout for completing a challenge. Nothing without a skill."""
    if not skill:
        return []
    return [Effect(EffectTarget.STAT, skill, CHALLENGE_COMPLETION_POINTS)]


def item_use_effects(item: Mapping[str, Any]) -> list[Effect]:
    """Effect of consuming an inventory item.

    Only magical items with a known attribute change the owner. Any other
    item is still consumed, just without an effect.

    Args:
        item: Item row with ``type``, ``attribute_name`` and ``amount``.

    Returns:
        Zero or one user effect.
    """
    if item.get("type") != MAGICAL_ITEM_TYPE or not item.get("attribute_name"):
        return []
    column = ITEM_ATTRIBUTE_FIELDS.get(item["attribute_name"].strip().lower())
    if column is None:
        log.info("Item %s has unrecognized attribute %r", item.get("id"), item["attribute_name"])
        return []
    return [Effect(EffectTarget.USER, column, item.get("amount") or 0)]
