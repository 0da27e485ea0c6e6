"""Character state detector.

Classifies the equipped item set into posture states:

* exactly one armor tag: ``unarmored`` or one of light, medium or heavy
  armored;
* ``shielded`` when an armor-category item sits in the off hand;
* at most one hand tag, where ``two_handed`` takes precedence over
  ``dual_wielding``, which takes precedence over ``one_handed``.
"""

from __future__ import annotations

from collections.abc import Iterable

from dnd_sheet.models.enums import EquipSlot, ItemCategory, PostureState
from dnd_sheet.models.items import InventoryEntry, ItemDefinition
from dnd_sheet.engine.proficiency import infer_armor_category


ARMOR_WEIGHT_STATES = {
    "light": PostureState.LIGHT_ARMORED,
    "medium": PostureState.MEDIUM_ARMORED,
    "heavy": PostureState.HEAVY_ARMORED,
}


def armor_weight(item: ItemDefinition) -> str:
    """Determine the weight class of a piece of body armor.

    Structured tags win, then the words light, medium or heavy in the
    free-text type, then the material keywords used for proficiency
    inference. Armor that matches none of these counts as light.

    Args:
        item: Chest armor definition.

    Returns:
        'light', 'medium' or 'heavy'.
    """
    for weight in ("light", "medium", "heavy"):
        if f"armor:{weight}" in item.tags:
            return weight
    lowered = item.type.lower()
    for weight in ("light", "medium", "heavy"):
        if weight in lowered:
            return weight
    inferred = infer_armor_category(item.type)
    if inferred in ARMOR_WEIGHT_STATES:
        return inferred
    return "light"


def _first(entries: list[InventoryEntry], slot: EquipSlot, category: ItemCategory) -> InventoryEntry | None:
    return next(
        (e for e in entries if e.item.slot == slot and e.item.category == category),
        None,
    )


def chest_armor(entries: Iterable[InventoryEntry]) -> InventoryEntry | None:
    """Find the equipped body armor, if any."""
    return _first([e for e in entries if e.equipped], EquipSlot.CHEST, ItemCategory.ARMOR)


def shield(entries: Iterable[InventoryEntry]) -> InventoryEntry | None:
    """Find the equipped shield, if any."""
    return _first([e for e in entries if e.equipped], EquipSlot.OFF_HAND, ItemCategory.ARMOR)


def detect_states(entries: Iterable[InventoryEntry]) -> frozenset[PostureState]:
    """Detect posture states from inventory entries.

    Args:
        entries: Inventory entries; only equipped ones are considered.

    Returns:
        The set of active posture states.
    """
    equipped = [e for e in entries if e.equipped]
    states: set[PostureState] = set()

    body = _first(equipped, EquipSlot.CHEST, ItemCategory.ARMOR)
    if body is None:
        states.add(PostureState.UNARMORED)
    else:
        states.add(ARMOR_WEIGHT_STATES[armor_weight(body.item)])

    off_hand_armor = _first(equipped, EquipSlot.OFF_HAND, ItemCategory.ARMOR)
    if off_hand_armor is not None:
        states.add(PostureState.SHIELDED)

    main_weapon = _first(equipped, EquipSlot.MAIN_HAND, ItemCategory.WEAPON)
    off_weapon = _first(equipped, EquipSlot.OFF_HAND, ItemCategory.WEAPON)
    two_handed_weapon = _first(equipped, EquipSlot.TWO_HANDED, ItemCategory.WEAPON)

    if two_handed_weapon is not None:
        states.add(PostureState.TWO_HANDED)
    elif main_weapon is not None and off_weapon is not None:
        states.add(PostureState.DUAL_WIELDING)
    elif main_weapon is not None and off_hand_armor is None:
        states.add(PostureState.ONE_HANDED)

    return frozenset(states)


def has_state(states: Iterable[PostureState], state: PostureState) -> bool:
    """Check whether a posture state is active."""
    return state in set(states)


__all__ = [
    "ARMOR_WEIGHT_STATES",
    "armor_weight",
    "chest_armor",
    "shield",
    "detect_states",
    "has_state",
]
