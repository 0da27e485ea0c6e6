"""Item definitions and inventory entries.

An ItemDefinition is reference data resolved by the persistence
collaborator. An InventoryEntry is the per-character join row that the
Equipment Slot Engine mutates (equipped, attuned, identified, quantity).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dnd_sheet.models.enums import EquipSlot, ItemCategory
from dnd_sheet.models.modifiers import Modifier, ModifierSource, load_modifiers


class ItemDefinition(BaseModel):
    """Reference definition of an item.

    Attributes:
        id: Reference item id.
        name: Display name (the generic name for unidentified magic items).
        category: Broad item category.
        type: Free-text type such as 'Heavy Armor' or 'Martial Melee Weapon'.
        slot: Slot occupied when equipped, or None for unslotted items.
        tags: Structured tags such as 'armor:light' or 'weapon:martial'.
        armor_class: Base AC for armor, bonus AC for shields.
        weight: Weight in pounds per unit.
        fixed_weight: Count the weight once regardless of quantity.
        requires_attunement: Modifiers apply only while attuned.
        is_magical: Item is magical (enables identification).
        is_cursed: Item carries a curse.
        true_name: Name revealed on identification.
        shown_effect: Effect text shown before identification.
        true_effect: Effect text revealed on identification.
        description: Plain description.
        modifiers: Modifiers granted while the item is an active source.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    category: ItemCategory = ItemCategory.MISC
    type: str = ""
    slot: EquipSlot | None = None
    tags: tuple[str, ...] = ()
    armor_class: int | None = Field(default=None, ge=0)
    weight: float = Field(default=0.0, ge=0)
    fixed_weight: bool = False
    requires_attunement: bool = False
    is_magical: bool = False
    is_cursed: bool = False
    true_name: str | None = None
    shown_effect: str | None = None
    true_effect: str | None = None
    description: str = ""
    modifiers: list[Modifier] = Field(default_factory=list)

    @field_validator("slot", mode="before")
    @classmethod
    def blank_slot_is_none(cls, value: Any) -> Any:
        """Treat an empty slot string as unslotted."""
        if value == "":
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: Any) -> Any:
        """Lower-case tags so category matching is case-insensitive."""
        if value is None:
            return ()
        return tuple(str(tag).lower() for tag in value)

    @field_validator("modifiers", mode="before")
    @classmethod
    def drop_malformed_modifiers(cls, value: Any) -> Any:
        """Route raw modifier lists through the tolerant loader."""
        if value is None:
            return []
        if isinstance(value, list):
            return load_modifiers(value)
        return value

    @property
    def is_chest_armor(self) -> bool:
        """Check whether the item is body armor."""
        return self.slot == EquipSlot.CHEST and self.category == ItemCategory.ARMOR

    @property
    def is_shield(self) -> bool:
        """Check whether the item is a shield (off-hand armor)."""
        return self.slot == EquipSlot.OFF_HAND and self.category == ItemCategory.ARMOR


class InventoryEntry(BaseModel):
    """A character's stack of one item.

    Attributes:
        id: Join-row id.
        item: Resolved item definition.
        quantity: Number of units held.
        equipped: Entry is equipped.
        is_identified: Magic item has been identified.
        is_attuned: Character is attuned to the item.
        current_uses: Remaining charges, for items that track them.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: str
    item: ItemDefinition
    quantity: int = Field(default=1, ge=0)
    equipped: bool = False
    is_identified: bool = False
    is_attuned: bool = False
    current_uses: int | None = Field(default=None, ge=0)

    @property
    def item_id(self) -> str:
        """Reference id of the underlying item."""
        return self.item.id

    @property
    def is_active_source(self) -> bool:
        """Check whether the entry's modifiers currently apply.

        Returns:
            True when equipped and either attunement is not required or
            the item is attuned.
        """
        return self.equipped and (not self.item.requires_attunement or self.is_attuned)

    def as_modifier_source(self) -> ModifierSource:
        """Build the modifier source contributed by this entry."""
        return ModifierSource(
            id=f"item:{self.id}",
            name=self.item.name,
            modifiers=list(self.item.modifiers),
        )


__all__ = [
    "ItemDefinition",
    "InventoryEntry",
]
