"""Enumeration types for the character sheet engine.

This module defines the closed vocabularies the engine reasons over:
abilities, skills, item slots and categories, posture states, recharge
policies and spellcasting progressions.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """The six ability scores, keyed by the short codes modifiers target."""

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"

    @property
    def field_name(self) -> str:
        """Get the snapshot attribute holding this ability's score.

        Returns:
            Full lower-case ability name (e.g., 'strength' for STR).
        """
        return _ABILITY_FIELDS[self]

    @property
    def abbreviation(self) -> str:
        """Get the upper-case abbreviation used by class saving throw lists.

        Returns:
            Three-letter abbreviation (e.g., 'STR').
        """
        return self.name

    @classmethod
    def parse(cls, value: str) -> Ability:
        """Parse a short code, abbreviation, or full ability name.

        Args:
            value: Text such as 'str', 'STR' or 'strength'.

        Returns:
            The matching Ability.

        Raises:
            ValueError: If the text names no ability.
        """
        lowered = value.strip().lower()
        for ability in cls:
            if lowered in (ability.value, ability.field_name):
                return ability
        msg = f"Invalid ability: {value}"
        raise ValueError(msg)


_ABILITY_FIELDS = {
    Ability.STR: "strength",
    Ability.DEX: "dexterity",
    Ability.CON: "constitution",
    Ability.INT: "intelligence",
    Ability.WIS: "wisdom",
    Ability.CHA: "charisma",
}


class Skill(StrEnum):
    """D&D 5E skills."""

    # Strength skills
    ATHLETICS = "athletics"

    # Dexterity skills
    ACROBATICS = "acrobatics"
    SLEIGHT_OF_HAND = "sleight_of_hand"
    STEALTH = "stealth"

    # Intelligence skills
    ARCANA = "arcana"
    HISTORY = "history"
    INVESTIGATION = "investigation"
    NATURE = "nature"
    RELIGION = "religion"

    # Wisdom skills
    ANIMAL_HANDLING = "animal_handling"
    INSIGHT = "insight"
    MEDICINE = "medicine"
    PERCEPTION = "perception"
    SURVIVAL = "survival"

    # Charisma skills
    DECEPTION = "deception"
    INTIMIDATION = "intimidation"
    PERFORMANCE = "performance"
    PERSUASION = "persuasion"


class ItemCategory(StrEnum):
    """Broad category of an item definition."""

    WEAPON = "weapon"
    ARMOR = "armor"
    CONSUMABLE = "consumable"
    TREASURE = "treasure"
    TOOL = "tool"
    MISC = "misc"


class EquipSlot(StrEnum):
    """Body slot an item occupies when equipped."""

    MAIN_HAND = "main_hand"
    OFF_HAND = "off_hand"
    TWO_HANDED = "two_handed"
    HEAD = "head"
    SHOULDERS = "shoulders"
    CHEST = "chest"
    HANDS = "hands"
    FEET = "feet"
    RING = "ring"
    NECK = "neck"
    WAIST = "waist"

    @property
    def is_hand(self) -> bool:
        """Check whether the slot is one of the weapon hand slots.

        Returns:
            True for main hand, off hand and two-handed.
        """
        return self in (EquipSlot.MAIN_HAND, EquipSlot.OFF_HAND, EquipSlot.TWO_HANDED)


class PostureState(StrEnum):
    """Classification of a character's equipped gear."""

    # Armor weight (exactly one applies)
    UNARMORED = "unarmored"
    LIGHT_ARMORED = "light_armored"
    MEDIUM_ARMORED = "medium_armored"
    HEAVY_ARMORED = "heavy_armored"

    # Shield (independent)
    SHIELDED = "shielded"

    # Hand usage (at most one applies)
    ONE_HANDED = "one_handed"
    TWO_HANDED = "two_handed"
    DUAL_WIELDING = "dual_wielding"


ARMOR_STATES = frozenset({
    PostureState.UNARMORED,
    PostureState.LIGHT_ARMORED,
    PostureState.MEDIUM_ARMORED,
    PostureState.HEAVY_ARMORED,
})
"""Posture states describing armor weight."""

HAND_STATES = frozenset({
    PostureState.ONE_HANDED,
    PostureState.TWO_HANDED,
    PostureState.DUAL_WIELDING,
})
"""Posture states describing hand usage."""


class RechargeOn(StrEnum):
    """Rest that restores a class resource."""

    SHORT = "short"
    LONG = "long"


class ModifierDuration(StrEnum):
    """Expiry policy of a resource-granted modifier."""

    SHORT_REST = "short_rest"
    LONG_REST = "long_rest"
    PERMANENT = "permanent"


class HpGrantMode(StrEnum):
    """How a grant_hp resource effect applies its amount."""

    TEMPORARY = "temporary"
    BONUS = "bonus"


class SpellcastingType(StrEnum):
    """Spell slot progression of a class or subclass."""

    FULL = "full"
    HALF = "half"
    THIRD = "third"
    ARTIFICER = "artificer"
    PACT = "pact"
    NONE = "none"


class RestType(StrEnum):
    """Kind of rest."""

    SHORT = "short"
    LONG = "long"


class Denomination(StrEnum):
    """Coin denominations."""

    CP = "cp"
    SP = "sp"
    EP = "ep"
    GP = "gp"
    PP = "pp"


__all__ = [
    "Ability",
    "Skill",
    "ItemCategory",
    "EquipSlot",
    "PostureState",
    "ARMOR_STATES",
    "HAND_STATES",
    "RechargeOn",
    "ModifierDuration",
    "HpGrantMode",
    "SpellcastingType",
    "RestType",
    "Denomination",
]
