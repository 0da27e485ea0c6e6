"""Tests for the equipment slot engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dnd_sheet.engine.equipment import (
    add_item,
    attune_item,
    display_effect,
    display_name,
    equip_item,
    identify_item,
    is_curse_revealed,
    remove_item,
    set_item_quantity,
    toggle_equipped,
    unattune_item,
    unequip_item,
    use_item,
)
from dnd_sheet.models import (
    CharacterSnapshot,
    EquipSlot,
    InventoryEntry,
    ItemCategory,
    ItemDefinition,
)


if TYPE_CHECKING:
    from collections.abc import Callable


def _equipped_ids(snapshot: CharacterSnapshot) -> list[str]:
    return [entry.id for entry in snapshot.equipped_entries]


@pytest.fixture
def attunables() -> list[ItemDefinition]:
    """Four attunement items, each in a different slot."""
    slots = [EquipSlot.NECK, EquipSlot.WAIST, EquipSlot.HEAD, EquipSlot.FEET]
    return [
        ItemDefinition(id=f"wondrous-{slot.value}", name=f"Wondrous {slot.value}", slot=slot, requires_attunement=True)
        for slot in slots
    ]


@pytest.fixture
def collector(attunables: list[ItemDefinition]) -> CharacterSnapshot:
    """Character carrying the four attunement items."""
    return CharacterSnapshot(
        id="char-collector",
        inventory=[InventoryEntry(id=f"inv-{item.id}", item=item) for item in attunables],
    )


class TestEquip:
    """Tests for equipping and unequipping."""

    def test_two_handed_clears_hands(self, armed_fighter: CharacterSnapshot) -> None:
        """Test a two-handed weapon unequips main and off hand."""
        result = equip_item(armed_fighter, "inv-greatsword")

        assert result.success
        assert _equipped_ids(result.state) == ["inv-greatsword"]
        assert result.message == "Equipped Greatsword"
        assert _equipped_ids(armed_fighter) == ["inv-longsword", "inv-shield"]

    def test_one_hand_clears_two_handed(self, armed_fighter: CharacterSnapshot) -> None:
        """Test a one-handed item unequips a two-handed one."""
        state = equip_item(armed_fighter, "inv-greatsword").state
        state = equip_item(state, "inv-shield").state

        assert _equipped_ids(state) == ["inv-shield"]

    def test_other_slots_untouched(self, armed_fighter: CharacterSnapshot) -> None:
        """Test body armor does not disturb the hands."""
        state = equip_item(armed_fighter, "inv-plate").state
        assert _equipped_ids(state) == ["inv-longsword", "inv-shield", "inv-plate"]

    def test_same_slot_replaced(self, armed_fighter: CharacterSnapshot, leather_armor: ItemDefinition) -> None:
        """Test a second chest piece replaces the first."""
        state = equip_item(armed_fighter, "inv-plate").state
        state = add_item(state, leather_armor).state
        state = equip_item(state, "inv-leather").state

        assert "inv-plate" not in _equipped_ids(state)
        assert "inv-leather" in _equipped_ids(state)

    def test_already_equipped(self, armed_fighter: CharacterSnapshot) -> None:
        """Test equipping an equipped item is a no-op."""
        result = equip_item(armed_fighter, "inv-longsword")
        assert result.success
        assert result.state is armed_fighter

    def test_missing_entry(self, armed_fighter: CharacterSnapshot) -> None:
        """Test unknown entries are rejected."""
        result = equip_item(armed_fighter, "inv-nothing")
        assert not result.success
        assert result.error == "Item not found"

    def test_unequip(self, armed_fighter: CharacterSnapshot) -> None:
        """Test unequipping."""
        state = unequip_item(armed_fighter, "inv-shield").state
        assert _equipped_ids(state) == ["inv-longsword"]

    def test_toggle(self, armed_fighter: CharacterSnapshot) -> None:
        """Test toggling flips the equipped flag."""
        state = toggle_equipped(armed_fighter, "inv-longsword").state
        assert "inv-longsword" not in _equipped_ids(state)
        state = toggle_equipped(state, "inv-longsword").state
        assert "inv-longsword" in _equipped_ids(state)

    def test_equip_blocked_by_attunement_cap(self, collector: CharacterSnapshot) -> None:
        """Test an unattuned attunement item cannot be equipped past the cap."""
        state = collector
        for entry in collector.inventory[:3]:
            state = equip_item(state, entry.id).state

        result = equip_item(state, collector.inventory[3].id)

        assert not result.success
        assert result.error == "Maximum attunement reached (3/3)"

    def test_attuned_item_bypasses_cap(self, collector: CharacterSnapshot) -> None:
        """Test an already attuned item can always be equipped."""
        state = attune_item(collector, collector.inventory[3].id).state
        for entry in collector.inventory[:3]:
            state = equip_item(state, entry.id).state

        assert equip_item(state, collector.inventory[3].id).success


class TestAttunement:
    """Tests for attunement."""

    def test_cap(self, collector: CharacterSnapshot) -> None:
        """Test the fourth attunement is rejected."""
        state = collector
        for entry in collector.inventory[:3]:
            result = attune_item(state, entry.id)
            assert result.success
            state = result.state

        result = attune_item(state, collector.inventory[3].id)

        assert not result.success
        assert result.error == "Maximum attunement reached (3/3)"
        assert result.state is state

    def test_cap_from_settings(self, collector: CharacterSnapshot, mock_env_vars: dict[str, str]) -> None:
        """Test the cap follows the configured house rule."""
        state = collector
        for entry in collector.inventory:
            state = attune_item(state, entry.id).state

        assert all(entry.is_attuned for entry in state.inventory)

    def test_requires_attunement(self, armed_fighter: CharacterSnapshot) -> None:
        """Test mundane items cannot be attuned."""
        result = attune_item(armed_fighter, "inv-longsword")
        assert result.error == "Item does not require attunement"

    def test_already_attuned(self, collector: CharacterSnapshot) -> None:
        """Test double attunement is rejected."""
        entry_id = collector.inventory[0].id
        state = attune_item(collector, entry_id).state
        assert attune_item(state, entry_id).error == "Item is already attuned"

    def test_unattune_cursed(self, make_ring: Callable[..., ItemDefinition]) -> None:
        """Test ending attunement to an equipped cursed item is allowed but reported."""
        ring = make_ring("doom", is_cursed=True)
        snapshot = CharacterSnapshot(
            id="c1",
            inventory=[InventoryEntry(id="r", item=ring, equipped=True, is_attuned=True)],
        )

        result = unattune_item(snapshot, "r")

        assert result.success
        assert not result.state.inventory[0].is_attuned
        assert result.message.endswith("(the item is cursed)")


class TestIdentification:
    """Tests for magic item identification."""

    @pytest.fixture
    def hidden_ring(self, make_ring: Callable[..., ItemDefinition]) -> InventoryEntry:
        """Unidentified ring with hidden name and effect."""
        ring = make_ring(
            "plain",
            true_name="Ring of Protection",
            shown_effect="A plain band.",
            true_effect="+1 to AC and saving throws.",
            is_cursed=True,
        )
        return InventoryEntry(id="inv-ring", item=ring)

    def test_hidden_until_identified(self, hidden_ring: InventoryEntry) -> None:
        """Test generic name and effect before identification."""
        assert display_name(hidden_ring) == "Ring plain"
        assert display_effect(hidden_ring) == "A plain band."
        assert not is_curse_revealed(hidden_ring)

    def test_identify(self, hidden_ring: InventoryEntry) -> None:
        """Test identification reveals the true name and effect."""
        snapshot = CharacterSnapshot(id="c1", inventory=[hidden_ring])

        result = identify_item(snapshot, "inv-ring")
        entry = result.state.inventory[0]

        assert result.message == "Identified Ring of Protection"
        assert display_name(entry) == "Ring of Protection"
        assert display_effect(entry) == "+1 to AC and saving throws."
        assert is_curse_revealed(entry)

    def test_identify_is_one_way(self, hidden_ring: InventoryEntry) -> None:
        """Test identifying twice is a no-op."""
        snapshot = identify_item(CharacterSnapshot(id="c1", inventory=[hidden_ring]), "inv-ring").state
        assert identify_item(snapshot, "inv-ring").state is snapshot

    def test_mundane_items(self, armed_fighter: CharacterSnapshot) -> None:
        """Test mundane items have nothing to identify."""
        assert identify_item(armed_fighter, "inv-longsword").state is armed_fighter


class TestQuantity:
    """Tests for quantity changes."""

    @pytest.fixture
    def potion(self) -> ItemDefinition:
        """Stackable consumable."""
        return ItemDefinition(id="potion", name="Potion of Healing", category=ItemCategory.CONSUMABLE, weight=0.5)

    def test_add_new_entry(self, armed_fighter: CharacterSnapshot, potion: ItemDefinition) -> None:
        """Test adding an item creates an entry."""
        state = add_item(armed_fighter, potion, 2).state
        entry = state.find_entry("inv-potion")
        assert entry is not None
        assert entry.quantity == 2

    def test_add_stacks(self, armed_fighter: CharacterSnapshot, potion: ItemDefinition) -> None:
        """Test adding an owned item stacks onto its entry."""
        state = add_item(add_item(armed_fighter, potion, 2).state, potion, 3, entry_id="other").state
        assert state.find_entry("inv-potion").quantity == 5
        assert state.find_entry("other") is None

    def test_add_non_positive(self, armed_fighter: CharacterSnapshot, potion: ItemDefinition) -> None:
        """Test non-positive quantities are rejected."""
        assert not add_item(armed_fighter, potion, 0).success

    def test_use_item_removes_last(self, armed_fighter: CharacterSnapshot, potion: ItemDefinition) -> None:
        """Test using the last unit removes the entry."""
        state = add_item(armed_fighter, potion, 1).state
        state = use_item(state, "inv-potion").state
        assert state.find_entry("inv-potion") is None

    def test_set_quantity(self, armed_fighter: CharacterSnapshot) -> None:
        """Test setting quantity directly."""
        state = set_item_quantity(armed_fighter, "inv-longsword", 2).state
        assert state.find_entry("inv-longsword").quantity == 2

    def test_remove_item(self, armed_fighter: CharacterSnapshot) -> None:
        """Test removing an entry."""
        state = remove_item(armed_fighter, "inv-plate").state
        assert state.find_entry("inv-plate") is None
        assert len(state.inventory) == 3
