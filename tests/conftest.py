"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the character sheet engine test suite.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING, Any

import pytest

from dnd_sheet.models import (
    AbilityScores,
    CharacterClass,
    CharacterSnapshot,
    ClassDefinition,
    ClassFeature,
    ClassResource,
    EquipSlot,
    GrantHpEffect,
    HpGrantMode,
    InventoryEntry,
    ItemCategory,
    ItemDefinition,
    ModifierDuration,
    RechargeOn,
    SpellcastingType,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dnd_sheet.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_SHEET_DEBUG": "true",
        "DND_SHEET_LOG_LEVEL": "DEBUG",
        "DND_SHEET_WRITE_ATTEMPTS": "5",
        "DND_SHEET_RULES_MAX_ATTUNED_ITEMS": "4",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Item Fixtures
# =============================================================================


@pytest.fixture
def plate_armor() -> ItemDefinition:
    """Heavy body armor (AC 18)."""
    return ItemDefinition(
        id="plate",
        name="Plate Armor",
        category=ItemCategory.ARMOR,
        type="Heavy Armor",
        slot=EquipSlot.CHEST,
        tags=("armor:heavy",),
        armor_class=18,
        weight=65,
    )


@pytest.fixture
def leather_armor() -> ItemDefinition:
    """Light body armor (AC 11)."""
    return ItemDefinition(
        id="leather",
        name="Leather Armor",
        category=ItemCategory.ARMOR,
        type="Light Armor",
        slot=EquipSlot.CHEST,
        tags=("armor:light",),
        armor_class=11,
        weight=10,
    )


@pytest.fixture
def shield_item() -> ItemDefinition:
    """A shield (+2 AC)."""
    return ItemDefinition(
        id="shield",
        name="Shield",
        category=ItemCategory.ARMOR,
        type="Shield",
        slot=EquipSlot.OFF_HAND,
        tags=("armor:shield",),
        armor_class=2,
        weight=6,
    )


@pytest.fixture
def longsword() -> ItemDefinition:
    """A one-handed martial weapon."""
    return ItemDefinition(
        id="longsword",
        name="Longsword",
        category=ItemCategory.WEAPON,
        type="Martial Melee Weapon",
        slot=EquipSlot.MAIN_HAND,
        tags=("weapon:martial",),
        weight=3,
    )


@pytest.fixture
def greatsword() -> ItemDefinition:
    """A two-handed martial weapon."""
    return ItemDefinition(
        id="greatsword",
        name="Greatsword",
        category=ItemCategory.WEAPON,
        type="Martial Melee Weapon",
        slot=EquipSlot.TWO_HANDED,
        tags=("weapon:martial",),
        weight=6,
    )


@pytest.fixture
def make_ring() -> Callable[..., ItemDefinition]:
    """Factory for attunement-requiring magic rings."""

    def _make(ring_id: str, modifiers: list[dict[str, Any]] | None = None, **kwargs: Any) -> ItemDefinition:
        return ItemDefinition(
            id=ring_id,
            name=f"Ring {ring_id}",
            category=ItemCategory.MISC,
            slot=EquipSlot.RING,
            requires_attunement=True,
            is_magical=True,
            modifiers=modifiers or [],
            **kwargs,
        )

    return _make


# =============================================================================
# Class Fixtures
# =============================================================================


@pytest.fixture
def barbarian_definition() -> ClassDefinition:
    """Barbarian with Unarmored Defense, Rage and a bonus-HP resource."""
    return ClassDefinition(
        id="barbarian",
        name="Barbarian",
        hit_die=12,
        saving_throws=("STR", "CON"),
        armor_proficiencies=("light", "medium", "shields"),
        weapon_proficiencies=("simple", "martial"),
        features=(
            ClassFeature(name="Unarmored Defense", level=1),
            ClassFeature(name="Rage", level=1),
        ),
        resources=(
            ClassResource(
                id="rage",
                class_id="barbarian",
                name="Rage",
                max_formula="3",
                recharge_on=RechargeOn.LONG,
            ),
            ClassResource(
                id="vigor",
                class_id="barbarian",
                name="Vigor",
                max_formula="3",
                recharge_on=RechargeOn.LONG,
                on_use=(
                    GrantHpEffect(
                        formula="level",
                        mode=HpGrantMode.BONUS,
                        duration=ModifierDuration.LONG_REST,
                    ),
                ),
            ),
            ClassResource(
                id="second-breath",
                class_id="barbarian",
                name="Second Breath",
                max_formula="2",
                recharge_on=RechargeOn.SHORT,
                on_use=(GrantHpEffect(formula="5 * level"),),
            ),
        ),
    )


@pytest.fixture
def wizard_definition() -> ClassDefinition:
    """Full-caster wizard."""
    return ClassDefinition(
        id="wizard",
        name="Wizard",
        hit_die=6,
        saving_throws=("INT", "WIS"),
        spellcasting_ability="int",
        spellcasting_type=SpellcastingType.FULL,
    )


@pytest.fixture
def warlock_definition() -> ClassDefinition:
    """Pact-magic warlock."""
    return ClassDefinition(
        id="warlock",
        name="Warlock",
        hit_die=8,
        saving_throws=("WIS", "CHA"),
        armor_proficiencies=("light",),
        spellcasting_ability="cha",
        spellcasting_type=SpellcastingType.PACT,
    )


# =============================================================================
# Character Fixtures
# =============================================================================


@pytest.fixture
def barbarian(barbarian_definition: ClassDefinition) -> CharacterSnapshot:
    """Unarmored level 5 barbarian with DEX 14 and CON 16."""
    return CharacterSnapshot(
        id="char-barbarian",
        name="Grog",
        abilities=AbilityScores(strength=16, dexterity=14, constitution=16),
        hp_current=45,
        hp_max=45,
        hit_dice_current=5,
        hit_dice_max=5,
        level=5,
        classes=[CharacterClass(definition=barbarian_definition, level=5)],
    )


@pytest.fixture
def wizard(wizard_definition: ClassDefinition) -> CharacterSnapshot:
    """Level 3 wizard with two level-1 slots spent."""
    return CharacterSnapshot(
        id="char-wizard",
        name="Elminster",
        abilities=AbilityScores(intelligence=16, dexterity=12),
        hp_current=14,
        hp_max=14,
        hit_dice_current=3,
        hit_dice_max=3,
        level=3,
        used_spell_slots={1: 2},
        classes=[CharacterClass(definition=wizard_definition, level=3)],
    )


@pytest.fixture
def warlock(warlock_definition: ClassDefinition) -> CharacterSnapshot:
    """Level 3 warlock (two level-2 pact slots)."""
    return CharacterSnapshot(
        id="char-warlock",
        name="Hex",
        abilities=AbilityScores(charisma=16),
        hp_current=20,
        hp_max=20,
        hit_dice_current=3,
        hit_dice_max=3,
        level=3,
        classes=[CharacterClass(definition=warlock_definition, level=3)],
    )


@pytest.fixture
def armed_fighter(
    longsword: ItemDefinition,
    shield_item: ItemDefinition,
    greatsword: ItemDefinition,
    plate_armor: ItemDefinition,
) -> CharacterSnapshot:
    """Classless level 5 character holding a longsword and shield."""
    return CharacterSnapshot(
        id="char-fighter",
        name="Fighter",
        level=5,
        hp_current=40,
        hp_max=40,
        proficiencies={"armor": ["all armor"], "weapons": ["martial weapons"]},
        inventory=[
            InventoryEntry(id="inv-longsword", item=longsword, equipped=True),
            InventoryEntry(id="inv-shield", item=shield_item, equipped=True),
            InventoryEntry(id="inv-greatsword", item=greatsword),
            InventoryEntry(id="inv-plate", item=plate_armor),
        ],
    )


# =============================================================================
# Executor Fixtures
# =============================================================================


class InlineExecutor(Executor):
    """Executor that runs submitted work immediately in the caller's thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def inline_executor() -> InlineExecutor:
    """Executor running background writes synchronously."""
    return InlineExecutor()
