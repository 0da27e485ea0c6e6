"""Rules constants for the character sheet engine.

This module defines the fixed D&D 5E tables the engine resolves against:
experience thresholds, spell slot progressions, currency values and the
default numbers used by armor class and carrying capacity.
"""

from __future__ import annotations

# =============================================================================
# Ability Scores
# =============================================================================

PC_ABILITY_SCORE_CAP = 20
"""Maximum ability score reachable by spending ability points."""

MIN_ABILITY_SCORE = 1
"""Minimum ability score."""

MAX_ABILITY_SCORE = 30
"""Absolute ability score ceiling."""

# =============================================================================
# Equipment
# =============================================================================

MAX_ATTUNED_ITEMS = 3
"""Maximum number of magic items a character can be attuned to."""

UNARMORED_BASE_AC = 10
"""Base armor class without armor (before DEX)."""

DEFAULT_ARMOR_BASE_AC = 11
"""Armor class assumed for chest armor without a stated value."""

DEFAULT_SHIELD_AC = 2
"""Shield bonus assumed when the shield states no value."""

MEDIUM_ARMOR_DEX_CAP = 2
"""Maximum DEX bonus applied while wearing medium armor."""

CARRY_CAPACITY_MULTIPLIER = 15
"""Carrying capacity in pounds per point of Strength."""

# =============================================================================
# Vitals
# =============================================================================

MAX_EXHAUSTION = 6
"""Highest exhaustion level (death)."""

MAX_DEATH_SAVES = 3
"""Successes or failures needed to end death saving throws."""

DEFAULT_SPEED = 30
"""Default walking speed in feet."""

# =============================================================================
# Spellcasting
# =============================================================================

BASE_SPELL_SAVE_DC = 8
"""Base value of the spell save DC formula."""

MULTICLASS_SLOT_TABLE: dict[int, tuple[int, ...]] = {
    1: (2,),
    2: (3,),
    3: (4, 2),
    4: (4, 3),
    5: (4, 3, 2),
    6: (4, 3, 3),
    7: (4, 3, 3, 1),
    8: (4, 3, 3, 2),
    9: (4, 3, 3, 3, 1),
    10: (4, 3, 3, 3, 2),
    11: (4, 3, 3, 3, 2, 1),
    12: (4, 3, 3, 3, 2, 1),
    13: (4, 3, 3, 3, 2, 1, 1),
    14: (4, 3, 3, 3, 2, 1, 1),
    15: (4, 3, 3, 3, 2, 1, 1, 1),
    16: (4, 3, 3, 3, 2, 1, 1, 1),
    17: (4, 3, 3, 3, 2, 1, 1, 1, 1),
    18: (4, 3, 3, 3, 3, 1, 1, 1, 1),
    19: (4, 3, 3, 3, 3, 2, 1, 1, 1),
    20: (4, 3, 3, 3, 3, 2, 2, 1, 1),
}
"""Spell slots per slot level by effective caster level (PHB p.165)."""

PACT_SLOT_TABLE: dict[int, tuple[int, int]] = {
    1: (1, 1),
    2: (2, 1),
    3: (2, 2),
    4: (2, 2),
    5: (2, 3),
    6: (2, 3),
    7: (2, 4),
    8: (2, 4),
    9: (2, 5),
    10: (2, 5),
    11: (3, 5),
    12: (3, 5),
    13: (3, 5),
    14: (3, 5),
    15: (3, 5),
    16: (3, 5),
    17: (4, 5),
    18: (4, 5),
    19: (4, 5),
    20: (4, 5),
}
"""Pact magic (slot count, slot level) by warlock level."""

# =============================================================================
# Progression
# =============================================================================

MAX_LEVEL = 20
"""Highest character level."""

XP_TABLE: tuple[int, ...] = (
    0,
    300,
    900,
    2700,
    6500,
    14000,
    23000,
    34000,
    48000,
    64000,
    85000,
    100000,
    120000,
    140000,
    165000,
    195000,
    225000,
    265000,
    305000,
    355000,
)
"""Experience needed to reach each level; index 0 is level 1."""

# =============================================================================
# Currency
# =============================================================================

CURRENCY_VALUES_CP: dict[str, int] = {
    "cp": 1,
    "sp": 10,
    "ep": 50,
    "gp": 100,
    "pp": 1000,
}
"""Value of one coin of each denomination, in copper pieces."""

CURRENCY_ORDER = ("pp", "gp", "sp", "cp")
"""Denominations used when making change, highest first."""

CURRENCY_ORDER_ELECTRUM = ("pp", "gp", "ep", "cp")
"""Denominations used when making change with electrum enabled."""

# =============================================================================
# Skills
# =============================================================================

SKILL_ABILITIES: dict[str, str] = {
    "acrobatics": "dex",
    "animal_handling": "wis",
    "arcana": "int",
    "athletics": "str",
    "deception": "cha",
    "history": "int",
    "insight": "wis",
    "intimidation": "cha",
    "investigation": "int",
    "medicine": "wis",
    "nature": "int",
    "perception": "wis",
    "performance": "cha",
    "persuasion": "cha",
    "religion": "int",
    "sleight_of_hand": "dex",
    "stealth": "dex",
    "survival": "wis",
}
"""Governing ability for each skill."""


__all__ = [
    "PC_ABILITY_SCORE_CAP",
    "MIN_ABILITY_SCORE",
    "MAX_ABILITY_SCORE",
    "MAX_ATTUNED_ITEMS",
    "UNARMORED_BASE_AC",
    "DEFAULT_ARMOR_BASE_AC",
    "DEFAULT_SHIELD_AC",
    "MEDIUM_ARMOR_DEX_CAP",
    "CARRY_CAPACITY_MULTIPLIER",
    "MAX_EXHAUSTION",
    "MAX_DEATH_SAVES",
    "DEFAULT_SPEED",
    "BASE_SPELL_SAVE_DC",
    "MULTICLASS_SLOT_TABLE",
    "PACT_SLOT_TABLE",
    "MAX_LEVEL",
    "XP_TABLE",
    "CURRENCY_VALUES_CP",
    "CURRENCY_ORDER",
    "CURRENCY_ORDER_ELECTRUM",
    "SKILL_ABILITIES",
]
