"""Proficiency aggregator.

Proficiency is the logical OR of three fact sets: lists declared by the
character's classes, strings added by hand, and grants carried by
modifiers. Item proficiency matches on the item's name, on structured
tags (``armor:light``, ``weapon:martial``), and, for untagged reference
data, on a category inferred from the free-text ``type`` string.
"""

from __future__ import annotations

from collections.abc import Iterable

from dnd_sheet.models.character import CharacterSnapshot
from dnd_sheet.models.enums import Ability, ItemCategory
from dnd_sheet.models.items import ItemDefinition
from dnd_sheet.models.modifiers import LanguageGrant, ModifierSource, ProficiencyGrant
from dnd_sheet.engine.resolver import collect_modifier_sources, iter_modifiers


ALL_ARMOR = "all armor"
ALL_WEAPONS = "all weapons"

ARMOR_TAG_CATEGORIES = {
    "armor:light": "light",
    "armor:medium": "medium",
    "armor:heavy": "heavy",
    "armor:shield": "shields",
}

WEAPON_TAG_CATEGORIES = {
    "weapon:simple": "simple",
    "weapon:martial": "martial",
    "weapon:improvised": "improvised",
}


# =============================================================================
# Modifier Lookups
# =============================================================================


def _has_grant(kind: str, target: str, sources: Iterable[ModifierSource]) -> bool:
    return any(
        isinstance(modifier, ProficiencyGrant) and modifier.type == kind and modifier.value
        for modifier in iter_modifiers(sources, target)
    )


def has_skill_proficiency(skill: str, sources: Iterable[ModifierSource]) -> bool:
    """Check for a skill proficiency grant.

    The legacy ``proficiency`` kind grants on a target match alone.
    """
    for modifier in iter_modifiers(sources, skill):
        if not isinstance(modifier, ProficiencyGrant):
            continue
        if modifier.type == "proficiency":
            return True
        if modifier.type == "skill_proficiency" and modifier.value:
            return True
    return False


def has_expertise(skill: str, sources: Iterable[ModifierSource]) -> bool:
    """Check for an expertise grant on a skill."""
    return _has_grant("expertise", skill, sources)


def has_saving_throw_proficiency(ability: str, sources: Iterable[ModifierSource]) -> bool:
    """Check for a saving throw proficiency grant."""
    return _has_grant("saving_throw_proficiency", ability, sources)


def has_armor_proficiency(category: str, sources: Iterable[ModifierSource]) -> bool:
    """Check for an armor proficiency grant ('light', 'medium', 'heavy', 'shields')."""
    return _has_grant("armor_proficiency", category, sources)


def has_weapon_proficiency(id_or_category: str, sources: Iterable[ModifierSource]) -> bool:
    """Check for a weapon proficiency grant by weapon id or category."""
    return _has_grant("weapon_proficiency", id_or_category, sources)


def granted_languages(sources: Iterable[ModifierSource]) -> list[str]:
    """Languages granted by modifiers, in source order."""
    return [
        modifier.target
        for modifier in iter_modifiers(sources)
        if isinstance(modifier, LanguageGrant) and modifier.value
    ]


# =============================================================================
# Aggregated Proficiency Sets
# =============================================================================


def _granted_targets(kind: str, sources: Iterable[ModifierSource]) -> set[str]:
    return {
        modifier.target.lower()
        for modifier in iter_modifiers(sources)
        if isinstance(modifier, ProficiencyGrant) and modifier.type == kind and modifier.value
    }


def armor_proficiencies(
    snapshot: CharacterSnapshot,
    sources: list[ModifierSource] | None = None,
) -> set[str]:
    """Lower-cased armor proficiencies from classes, manual entries and grants."""
    if sources is None:
        sources = collect_modifier_sources(snapshot)
    profs = {p.lower() for p in snapshot.proficiencies.armor}
    for character_class in snapshot.classes:
        profs.update(p.lower() for p in character_class.definition.armor_proficiencies)
    profs.update(_granted_targets("armor_proficiency", sources))
    return profs


def weapon_proficiencies(
    snapshot: CharacterSnapshot,
    sources: list[ModifierSource] | None = None,
) -> set[str]:
    """Lower-cased weapon proficiencies from classes, manual entries and grants."""
    if sources is None:
        sources = collect_modifier_sources(snapshot)
    profs = {p.lower() for p in snapshot.proficiencies.weapons}
    for character_class in snapshot.classes:
        profs.update(p.lower() for p in character_class.definition.weapon_proficiencies)
    profs.update(_granted_targets("weapon_proficiency", sources))
    return profs


def _knows_category(profs: set[str], category: str, suffix: str) -> bool:
    if category == "shields":
        return "shields" in profs or "shield" in profs
    return category in profs or f"{category} {suffix}" in profs


def infer_armor_category(item_type: str) -> str | None:
    """Infer an armor category from a free-text type string.

    Args:
        item_type: Type text such as 'Plate Armor' or 'Studded Leather'.

    Returns:
        'heavy', 'medium', 'light', 'shields', or None.
    """
    lowered = item_type.lower()
    if any(word in lowered for word in ("medium", "breastplate", "half plate", "scale")):
        return "medium"
    if any(word in lowered for word in ("plate", "splint", "heavy")):
        return "heavy"
    if "light" in lowered or "leather" in lowered:
        return "light"
    if "shield" in lowered:
        return "shields"
    return None


def _armor_proficient(item: ItemDefinition, profs: set[str]) -> bool:
    if item.name.lower() in profs or ALL_ARMOR in profs:
        return True
    for tag in item.tags:
        category = ARMOR_TAG_CATEGORIES.get(tag)
        if category is not None and _knows_category(profs, category, "armor"):
            return True
    category = infer_armor_category(item.type)
    return category is not None and _knows_category(profs, category, "armor")


def _weapon_proficient(item: ItemDefinition, profs: set[str]) -> bool:
    if item.name.lower() in profs or ALL_WEAPONS in profs:
        return True
    for tag in item.tags:
        category = WEAPON_TAG_CATEGORIES.get(tag)
        if category is not None and _knows_category(profs, category, "weapons"):
            return True
    lowered = item.type.lower()
    if "improvised" in lowered:
        return _knows_category(profs, "improvised", "weapons")
    category = "martial" if "martial" in lowered else "simple"
    return _knows_category(profs, category, "weapons")


def is_proficient_with(
    snapshot: CharacterSnapshot,
    item: ItemDefinition,
    sources: list[ModifierSource] | None = None,
) -> bool:
    """Check whether a character is proficient with an item.

    Args:
        snapshot: The character.
        item: Armor, shield or weapon definition.
        sources: Pre-collected modifier sources.

    Returns:
        Proficiency for armor and weapons; True for any other category.
    """
    if item.category == ItemCategory.ARMOR:
        return _armor_proficient(item, armor_proficiencies(snapshot, sources))
    if item.category == ItemCategory.WEAPON:
        return _weapon_proficient(item, weapon_proficiencies(snapshot, sources))
    return True


def saving_throw_proficient(
    snapshot: CharacterSnapshot,
    ability: Ability,
    sources: list[ModifierSource] | None = None,
) -> bool:
    """Check saving throw proficiency from classes, manual flags and grants."""
    if sources is None:
        sources = collect_modifier_sources(snapshot)
    for character_class in snapshot.classes:
        if ability.abbreviation in (s.upper() for s in character_class.definition.saving_throws):
            return True
    if snapshot.proficiencies.saving_throws.get(ability.value):
        return True
    return has_saving_throw_proficiency(ability.value, sources)


__all__ = [
    "has_skill_proficiency",
    "has_expertise",
    "has_saving_throw_proficiency",
    "has_armor_proficiency",
    "has_weapon_proficiency",
    "granted_languages",
    "armor_proficiencies",
    "weapon_proficiencies",
    "infer_armor_category",
    "is_proficient_with",
    "saving_throw_proficient",
]
