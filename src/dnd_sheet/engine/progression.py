"""Experience and leveling.

Levels are tracked per class; the character's total level is their sum
and is cached on the snapshot after every change. Experience thresholds
follow the standard table and never level a character up on their own:
``can_level_up`` only reports that a level is available.
"""

from __future__ import annotations

import math

from dnd_sheet.core.constants import MAX_LEVEL, XP_TABLE
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterClass, CharacterSnapshot, ClassDefinition
from dnd_sheet.engine.resolver import collect_modifier_sources, resolve_hp_per_level
from dnd_sheet.engine.transition import TransitionResult, working_copy


logger = get_logger(__name__)


def proficiency_bonus(level: int) -> int:
    """Calculate the proficiency bonus for a total character level.

    Args:
        level: Total character level.

    Returns:
        ``ceil(1 + level / 4)``.

    Example:
        >>> proficiency_bonus(5)
        3
    """
    return math.ceil(1 + level / 4)


def total_level(classes: list[CharacterClass]) -> int:
    """Sum class levels, treating an empty class list as level 1."""
    if not classes:
        return 1
    return sum(c.level for c in classes)


def level_for_experience(experience: int) -> int:
    """Highest level whose experience threshold has been reached."""
    level = 1
    for index, threshold in enumerate(XP_TABLE):
        if experience >= threshold:
            level = index + 1
    return level


def experience_for_level(level: int) -> int:
    """Experience threshold of a level."""
    return XP_TABLE[max(1, min(level, MAX_LEVEL)) - 1]


def potential_levels(snapshot: CharacterSnapshot) -> int:
    """Number of levels the character's experience would allow them to gain."""
    return max(0, level_for_experience(snapshot.experience) - snapshot.total_level)


def can_level_up(snapshot: CharacterSnapshot) -> bool:
    """Check whether experience allows at least one more level."""
    return snapshot.total_level < MAX_LEVEL and potential_levels(snapshot) > 0


# =============================================================================
# Transitions
# =============================================================================


def set_experience(snapshot: CharacterSnapshot, experience: int) -> TransitionResult:
    """Set experience points, floored at zero. Levels are not changed."""
    state = working_copy(snapshot)
    state.experience = max(0, experience)
    return TransitionResult.applied(state, f"Experience set to {state.experience}")


def add_experience(snapshot: CharacterSnapshot, amount: int) -> TransitionResult:
    """Add (or with a negative amount, remove) experience points."""
    return set_experience(snapshot, snapshot.experience + amount)


def level_up(
    snapshot: CharacterSnapshot,
    class_id: str,
    hp_gain: int = 0,
    definition: ClassDefinition | None = None,
) -> TransitionResult:
    """Gain one level in a class.

    Stored maximum HP grows by the rolled gain only, because per-level HP
    bonuses are added dynamically when the effective maximum is resolved.
    Current HP grows by the gain plus that per-level bonus. Both hit dice
    counters grow by one.

    Args:
        snapshot: The character.
        class_id: Class gaining the level.
        hp_gain: Hit point roll plus CON modifier.
        definition: Class definition to add when multiclassing into a new class.

    Returns:
        The transition result; rejected at level 20 or for an unknown class.
    """
    if snapshot.total_level >= MAX_LEVEL and snapshot.classes:
        return TransitionResult.rejected(snapshot, f"Already at maximum level ({MAX_LEVEL})")

    state = working_copy(snapshot)
    existing = state.find_class(class_id)
    if existing is not None:
        existing.level += 1
        new_class_level = existing.level
    elif definition is not None and definition.id == class_id:
        state.classes.append(CharacterClass(definition=definition, level=1))
        new_class_level = 1
    else:
        return TransitionResult.rejected(snapshot, f"Class not found: {class_id}")

    gain = max(0, hp_gain)
    per_level_bonus = resolve_hp_per_level(collect_modifier_sources(state))
    state.hp_max += gain
    state.hp_current = max(0, state.hp_current + gain + per_level_bonus)
    state.hit_dice_max += 1
    state.hit_dice_current += 1
    state.level = total_level(state.classes)

    logger.debug(
        "Level gained",
        class_id=class_id,
        class_level=new_class_level,
        total_level=state.level,
        hp_gain=gain,
        per_level_bonus=per_level_bonus,
    )
    return TransitionResult.applied(state, f"{class_id} is now level {new_class_level}")


__all__ = [
    "proficiency_bonus",
    "total_level",
    "level_for_experience",
    "experience_for_level",
    "potential_levels",
    "can_level_up",
    "set_experience",
    "add_experience",
    "level_up",
]
