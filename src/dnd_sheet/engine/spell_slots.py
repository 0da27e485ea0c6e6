"""Spell slot progression.

Standard slots come from the multiclass spellcaster table indexed by the
effective caster level, which sums each class's contribution according to
its progression. Pact magic slots are tracked separately and depend only
on levels in pact-casting classes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from dnd_sheet.core.constants import MAX_LEVEL, MULTICLASS_SLOT_TABLE, PACT_SLOT_TABLE
from dnd_sheet.models.character import CharacterClass, CharacterSnapshot
from dnd_sheet.models.enums import SpellcastingType


@dataclass(frozen=True)
class PactMagic:
    """Pact magic slot pool.

    Attributes:
        caster_level: Total levels in pact-casting classes.
        slot_level: Level of every pact slot.
        count: Number of pact slots.
    """

    caster_level: int
    slot_level: int
    count: int


def resolve_spellcasting_type(character_class: CharacterClass) -> SpellcastingType:
    """Resolve a class entry's progression; a subclass progression wins."""
    subclass = character_class.subclass
    if subclass is not None and subclass.spellcasting_type is not None:
        return SpellcastingType(subclass.spellcasting_type)
    return SpellcastingType(character_class.definition.spellcasting_type)


def caster_level_contribution(spellcasting_type: SpellcastingType, level: int) -> int:
    """Levels a class contributes to the effective caster level."""
    if spellcasting_type == SpellcastingType.FULL:
        return level
    if spellcasting_type == SpellcastingType.HALF:
        return level // 2
    if spellcasting_type == SpellcastingType.ARTIFICER:
        return math.ceil(level / 2)
    if spellcasting_type == SpellcastingType.THIRD:
        return level // 3
    return 0


def effective_caster_level(snapshot: CharacterSnapshot) -> int:
    """Sum of caster level contributions across all classes."""
    return sum(
        caster_level_contribution(resolve_spellcasting_type(c), c.level) for c in snapshot.classes
    )


def slots_for_caster_level(caster_level: int) -> dict[int, int]:
    """Look up standard slots for an effective caster level.

    Args:
        caster_level: Effective caster level (clamped to 20).

    Returns:
        Mapping of slot level to slot count; empty for non-casters.
    """
    if caster_level <= 0:
        return {}
    row = MULTICLASS_SLOT_TABLE[min(caster_level, MAX_LEVEL)]
    return {slot_level: count for slot_level, count in enumerate(row, start=1)}


def max_spell_slots(snapshot: CharacterSnapshot) -> dict[int, int]:
    """Standard spell slots available to a character."""
    return slots_for_caster_level(effective_caster_level(snapshot))


def pact_magic(snapshot: CharacterSnapshot) -> PactMagic | None:
    """Pact magic pool, or None when the character has no pact levels."""
    warlock_level = sum(
        c.level for c in snapshot.classes if resolve_spellcasting_type(c) == SpellcastingType.PACT
    )
    if warlock_level <= 0:
        return None
    count, slot_level = PACT_SLOT_TABLE[min(warlock_level, MAX_LEVEL)]
    return PactMagic(caster_level=warlock_level, slot_level=slot_level, count=count)


def has_pact_magic(snapshot: CharacterSnapshot) -> bool:
    """Check whether a character has pact magic slots."""
    return pact_magic(snapshot) is not None


__all__ = [
    "PactMagic",
    "resolve_spellcasting_type",
    "caster_level_contribution",
    "effective_caster_level",
    "slots_for_caster_level",
    "max_spell_slots",
    "pact_magic",
    "has_pact_magic",
]
