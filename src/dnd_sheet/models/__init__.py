"""Pydantic models for the character sheet engine.

Submodules:
    enums: Closed vocabularies (abilities, slots, posture states, ...).
    modifiers: The modifier sum type and modifier sources.
    items: Item definitions and inventory entries.
    resources: Class resources, usage rows and resource modifiers.
    character: The character snapshot and its components.
"""

from __future__ import annotations

from dnd_sheet.models.character import (
    AbilityScore,
    AbilityScores,
    CharacterClass,
    CharacterSnapshot,
    ClassDefinition,
    ClassFeature,
    Currency,
    DeathSaves,
    KnownSpell,
    ManualProficiencies,
    SubclassDefinition,
    calculate_modifier,
)
from dnd_sheet.models.enums import (
    ARMOR_STATES,
    HAND_STATES,
    Ability,
    Denomination,
    EquipSlot,
    HpGrantMode,
    ItemCategory,
    ModifierDuration,
    PostureState,
    RechargeOn,
    RestType,
    Skill,
    SpellcastingType,
)
from dnd_sheet.models.items import InventoryEntry, ItemDefinition
from dnd_sheet.models.modifiers import (
    AbilityIncreaseModifier,
    AbilityPointGrantModifier,
    BonusModifier,
    LanguageGrant,
    Modifier,
    ModifierSource,
    ProficiencyGrant,
    SetModifier,
    load_modifiers,
    parse_modifier,
)
from dnd_sheet.models.resources import (
    ClassResource,
    GrantHpEffect,
    ResourceEffect,
    ResourceModifier,
    ResourceUsage,
)


__all__ = [
    # Enums
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
    # Modifiers
    "Modifier",
    "BonusModifier",
    "SetModifier",
    "AbilityIncreaseModifier",
    "AbilityPointGrantModifier",
    "ProficiencyGrant",
    "LanguageGrant",
    "ModifierSource",
    "load_modifiers",
    "parse_modifier",
    # Items
    "ItemDefinition",
    "InventoryEntry",
    # Resources
    "GrantHpEffect",
    "ResourceEffect",
    "ClassResource",
    "ResourceUsage",
    "ResourceModifier",
    # Character
    "AbilityScore",
    "calculate_modifier",
    "AbilityScores",
    "DeathSaves",
    "Currency",
    "ManualProficiencies",
    "ClassFeature",
    "ClassDefinition",
    "SubclassDefinition",
    "CharacterClass",
    "KnownSpell",
    "CharacterSnapshot",
]
