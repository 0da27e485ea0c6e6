"""Equipment slot engine.

Each inventory entry carries two independent flags, ``equipped`` and
``is_attuned``. Equipping an item is gated by the attunement cap and
unequips whatever conflicts with its slot in the same transition:

1. An item that requires attunement and is not yet attuned cannot be
   equipped while the cap's worth of attunement-requiring items is
   already equipped.
2. Every other equipped entry in the same slot is unequipped. A
   two-handed item also clears the main and off hand; a main- or
   off-hand item clears any two-handed item.

Unequipping is unconditional. Identification of magic items is one-way.
"""

from __future__ import annotations

from dnd_sheet.core.config import get_settings
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot
from dnd_sheet.models.enums import EquipSlot
from dnd_sheet.models.items import InventoryEntry, ItemDefinition
from dnd_sheet.engine.transition import TransitionResult, working_copy


logger = get_logger(__name__)

ITEM_NOT_FOUND = "Item not found"


# =============================================================================
# Queries
# =============================================================================


def attuned_count(snapshot: CharacterSnapshot) -> int:
    """Number of entries the character is attuned to."""
    return sum(1 for entry in snapshot.inventory if entry.is_attuned)


def conflicting_entries(snapshot: CharacterSnapshot, entry: InventoryEntry) -> list[InventoryEntry]:
    """Equipped entries that must be unequipped when ``entry`` is equipped.

    Args:
        snapshot: The character.
        entry: The entry about to be equipped.

    Returns:
        Conflicting entries, without duplicates, in inventory order.
    """
    slot = entry.item.slot
    if slot is None:
        return []

    if slot == EquipSlot.TWO_HANDED:
        blocked = {EquipSlot.TWO_HANDED, EquipSlot.MAIN_HAND, EquipSlot.OFF_HAND}
    elif slot in (EquipSlot.MAIN_HAND, EquipSlot.OFF_HAND):
        blocked = {slot, EquipSlot.TWO_HANDED}
    else:
        blocked = {slot}

    return [
        other
        for other in snapshot.inventory
        if other.id != entry.id and other.equipped and other.item.slot in blocked
    ]


def display_name(entry: InventoryEntry) -> str:
    """Name shown for an entry.

    Unidentified magic items show their generic name; identified ones
    show the true name when the item has one.
    """
    item = entry.item
    if not item.is_magical or not entry.is_identified:
        return item.name
    return item.true_name or item.name


def display_effect(entry: InventoryEntry) -> str:
    """Effect text shown for an entry."""
    item = entry.item
    if not item.is_magical:
        return item.description
    if not entry.is_identified:
        return item.shown_effect or item.description
    return item.true_effect or item.description


def is_curse_revealed(entry: InventoryEntry) -> bool:
    """A curse becomes known once the item is equipped or identified."""
    return entry.item.is_cursed and (entry.equipped or entry.is_identified)


# =============================================================================
# Equip / Unequip
# =============================================================================


def equip_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Equip an inventory entry, unequipping whatever occupies its slot.

    Args:
        snapshot: The character.
        entry_id: Inventory entry to equip.

    Returns:
        The transition result. Rejected when the entry is missing or the
        attunement cap is reached.
    """
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if entry.equipped:
        return TransitionResult.unchanged(snapshot, f"{entry.item.name} is already equipped")

    cap = get_settings().rules.max_attuned_items
    if entry.item.requires_attunement and not entry.is_attuned:
        equipped_attunable = sum(
            1 for e in snapshot.inventory if e.equipped and e.item.requires_attunement
        )
        if equipped_attunable >= cap:
            logger.debug("Equip rejected by attunement cap", entry_id=entry_id, cap=cap)
            return TransitionResult.rejected(snapshot, f"Maximum attunement reached ({cap}/{cap})")

    unequip_ids = {other.id for other in conflicting_entries(snapshot, entry)}

    state = working_copy(snapshot)
    for other in state.inventory:
        if other.id == entry_id:
            other.equipped = True
        elif other.id in unequip_ids:
            other.equipped = False

    logger.debug("Item equipped", entry_id=entry_id, unequipped=sorted(unequip_ids))
    return TransitionResult.applied(state, f"Equipped {display_name(entry)}")


def unequip_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Unequip an inventory entry."""
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if not entry.equipped:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.find_entry(entry_id).equipped = False
    return TransitionResult.applied(state, f"Unequipped {display_name(entry)}")


def toggle_equipped(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Equip an unequipped entry or unequip an equipped one."""
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if entry.equipped:
        return unequip_item(snapshot, entry_id)
    return equip_item(snapshot, entry_id)


# =============================================================================
# Attunement & Identification
# =============================================================================


def attune_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Attune to a magic item.

    Args:
        snapshot: The character.
        entry_id: Inventory entry to attune.

    Returns:
        The transition result, rejected when the item is missing, needs
        no attunement, is already attuned, or the cap is reached.
    """
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if not entry.item.requires_attunement:
        return TransitionResult.rejected(snapshot, "Item does not require attunement")
    if entry.is_attuned:
        return TransitionResult.rejected(snapshot, "Item is already attuned")

    cap = get_settings().rules.max_attuned_items
    if attuned_count(snapshot) >= cap:
        return TransitionResult.rejected(snapshot, f"Maximum attunement reached ({cap}/{cap})")

    state = working_copy(snapshot)
    state.find_entry(entry_id).is_attuned = True
    return TransitionResult.applied(state, f"Attuned to {display_name(entry)}")


def unattune_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """End attunement to an item.

    Breaking attunement to an equipped cursed item is allowed here; the
    curse is only reported in the result message.
    """
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if not entry.is_attuned:
        return TransitionResult.unchanged(snapshot)

    state = working_copy(snapshot)
    state.find_entry(entry_id).is_attuned = False
    message = f"Attunement to {display_name(entry)} ended"
    if entry.item.is_cursed and entry.equipped:
        logger.info("Attunement ended on equipped cursed item", entry_id=entry_id)
        message += " (the item is cursed)"
    return TransitionResult.applied(state, message)


def identify_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Identify a magic item, revealing its true name and effect."""
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if not entry.item.is_magical or entry.is_identified:
        return TransitionResult.unchanged(snapshot)

    state = working_copy(snapshot)
    identified = state.find_entry(entry_id)
    identified.is_identified = True
    return TransitionResult.applied(state, f"Identified {display_name(identified)}")


# =============================================================================
# Quantity
# =============================================================================


def set_item_quantity(snapshot: CharacterSnapshot, entry_id: str, quantity: int) -> TransitionResult:
    """Set an entry's quantity; zero or less removes the entry."""
    if snapshot.find_entry(entry_id) is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)

    state = working_copy(snapshot)
    if quantity <= 0:
        state.inventory = [e for e in state.inventory if e.id != entry_id]
        return TransitionResult.applied(state, "Item removed")
    state.find_entry(entry_id).quantity = quantity
    return TransitionResult.applied(state, f"Quantity set to {quantity}")


def use_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Consume one unit of an entry."""
    entry = snapshot.find_entry(entry_id)
    if entry is None:
        return TransitionResult.rejected(snapshot, ITEM_NOT_FOUND)
    if entry.quantity <= 0:
        return TransitionResult.unchanged(snapshot)
    return set_item_quantity(snapshot, entry_id, entry.quantity - 1)


def add_item(
    snapshot: CharacterSnapshot,
    item: ItemDefinition,
    quantity: int = 1,
    entry_id: str | None = None,
) -> TransitionResult:
    """Add units of an item, stacking onto an existing entry for the same item.

    Args:
        snapshot: The character.
        item: Item definition to add.
        quantity: Units to add.
        entry_id: Id for a new entry; defaults to ``inv-<item id>``.

    Returns:
        The transition result.
    """
    if quantity <= 0:
        return TransitionResult.rejected(snapshot, "Quantity must be positive")

    existing = next((e for e in snapshot.inventory if e.item_id == item.id), None)
    if existing is not None:
        return set_item_quantity(snapshot, existing.id, existing.quantity + quantity)

    state = working_copy(snapshot)
    new_id = entry_id or f"inv-{item.id}"
    state.inventory.append(InventoryEntry(id=new_id, item=item, quantity=quantity))
    return TransitionResult.applied(state, f"Added {quantity} x {item.name}")


def remove_item(snapshot: CharacterSnapshot, entry_id: str) -> TransitionResult:
    """Remove an entry from the inventory."""
    return set_item_quantity(snapshot, entry_id, 0)


__all__ = [
    "attuned_count",
    "conflicting_entries",
    "display_name",
    "display_effect",
    "is_curse_revealed",
    "equip_item",
    "unequip_item",
    "toggle_equipped",
    "attune_item",
    "unattune_item",
    "identify_item",
    "set_item_quantity",
    "use_item",
    "add_item",
    "remove_item",
]
