"""Tests for the CharacterSheet derived-stat facade."""

from __future__ import annotations

import pytest

from dnd_sheet.engine.derived import CharacterSheet
from dnd_sheet.models import (
    Ability,
    CharacterSnapshot,
    InventoryEntry,
    ItemDefinition,
    ModifierSource,
    PostureState,
)


class TestCore:
    """Tests for level, abilities and combat numbers."""

    def test_barbarian(self, barbarian: CharacterSnapshot) -> None:
        """Test the basic barbarian numbers."""
        sheet = CharacterSheet(barbarian)

        assert sheet.level == 5
        assert sheet.proficiency_bonus == 3
        assert sheet.ability_modifier("con") == 3
        assert sheet.armor_class().value == 15
        assert sheet.effective_max_hp() == 45
        assert sheet.states() == frozenset({PostureState.UNARMORED})

    def test_ability_scores(self, barbarian: CharacterSnapshot) -> None:
        """Test all six resolved scores."""
        scores = CharacterSheet(barbarian).ability_scores()
        assert scores[Ability.STR] == 16
        assert scores[Ability.CHA] == 10

    def test_initiative(self, barbarian: CharacterSnapshot) -> None:
        """Test DEX plus the stored and granted initiative bonuses."""
        barbarian.initiative_bonus = 1
        barbarian.feats.append(ModifierSource(id="alert", modifiers=[{"type": "bonus", "target": "initiative", "value": 5}]))
        assert CharacterSheet(barbarian).initiative() == 8

    def test_speed(self, barbarian: CharacterSnapshot) -> None:
        """Test speed modifiers."""
        barbarian.feats.append(ModifierSource(id="mobile", modifiers=[{"type": "bonus", "target": "speed", "value": 10}]))
        assert CharacterSheet(barbarian).speed() == 40


class TestSavesAndSkills:
    """Tests for saving throws and skills."""

    def test_proficient_save(self, barbarian: CharacterSnapshot) -> None:
        """Test a class saving throw."""
        save = CharacterSheet(barbarian).saving_throw("str")
        assert save.is_proficient
        assert save.total == 6

    def test_save_bonuses(self, barbarian: CharacterSnapshot) -> None:
        """Test specific and all-saves bonuses."""
        barbarian.feats.append(
            ModifierSource(
                id="cloak",
                modifiers=[
                    {"type": "bonus", "target": "saving_throws", "value": 1},
                    {"type": "bonus", "target": "wis_save", "value": 2},
                ],
            )
        )
        sheet = CharacterSheet(barbarian)

        assert sheet.saving_throw_modifier(Ability.WIS) == 3
        assert sheet.saving_throw(Ability.DEX).bonus == 1

    def test_skill_ranks(self, barbarian: CharacterSnapshot) -> None:
        """Test untrained, proficient and expertise skills."""
        assert CharacterSheet(barbarian).skill_modifier("athletics") == 3

        barbarian.proficiencies.skills = {"athletics": "proficient"}
        assert CharacterSheet(barbarian).skill_modifier("athletics") == 6

        barbarian.proficiencies.skills = {"athletics": "expertise"}
        check = CharacterSheet(barbarian).skill("Athletics")
        assert check.total == 9
        assert check.is_expertise
        assert check.passive == 19

    def test_skill_grant(self, barbarian: CharacterSnapshot) -> None:
        """Test skill proficiency from a background."""
        barbarian.background = ModifierSource(
            id="outlander",
            modifiers=[{"type": "skill_proficiency", "target": "survival"}],
        )
        assert CharacterSheet(barbarian).skill("survival").is_proficient

    def test_invalid_skill(self, barbarian: CharacterSnapshot) -> None:
        """Test unknown skills raise."""
        with pytest.raises(ValueError, match="Invalid skill: juggling"):
            CharacterSheet(barbarian).skill("juggling")

    def test_languages(self, barbarian: CharacterSnapshot) -> None:
        """Test stored and granted languages are merged without duplicates."""
        barbarian.languages = ["Common"]
        barbarian.race = ModifierSource(
            id="half-orc",
            modifiers=[{"type": "language", "target": "common"}, {"type": "language", "target": "Orc"}],
        )
        assert CharacterSheet(barbarian).languages() == ["Common", "Orc"]


class TestSpellcasting:
    """Tests for spellcasting numbers."""

    def test_wizard(self, wizard: CharacterSnapshot) -> None:
        """Test save DC, attack bonus and slots."""
        sheet = CharacterSheet(wizard)
        (stats,) = sheet.spellcasting_stats()

        assert stats.ability == Ability.INT
        assert stats.save_dc == 13
        assert stats.attack_bonus == 5
        assert sheet.max_spell_slots() == {1: 4, 2: 2}
        assert sheet.remaining_spell_slots() == {1: 2, 2: 2}

    def test_non_caster(self, barbarian: CharacterSnapshot) -> None:
        """Test classes without a casting ability are skipped."""
        assert CharacterSheet(barbarian).spellcasting_stats() == []

    def test_warlock_pact(self, warlock: CharacterSnapshot) -> None:
        """Test pact magic through the sheet."""
        sheet = CharacterSheet(warlock)
        assert sheet.pact_magic().count == 2
        assert sheet.spellcasting_stats()[0].save_dc == 13

    def test_armor_blocks_casting(self, wizard: CharacterSnapshot, plate_armor: ItemDefinition) -> None:
        """Test unproficient armor prevents spellcasting."""
        assert CharacterSheet(wizard).can_cast_spells()
        wizard.inventory.append(InventoryEntry(id="p", item=plate_armor, equipped=True))
        assert not CharacterSheet(wizard).can_cast_spells()

    def test_resources(self, barbarian: CharacterSnapshot) -> None:
        """Test resource summaries."""
        assert {s.resource.id for s in CharacterSheet(barbarian).resources()} == {"rage", "vigor", "second-breath"}


class TestEncumbrance:
    """Tests for carried weight."""

    def test_weights(self, armed_fighter: CharacterSnapshot) -> None:
        """Test summed weights against STR times 15."""
        load = CharacterSheet(armed_fighter).encumbrance()
        assert load.current == 80
        assert load.max == 150
        assert not load.is_encumbered

    def test_fixed_weight(self) -> None:
        """Test fixed-weight items count once."""
        bag = ItemDefinition(id="bag", name="Bag of Holding", weight=15, fixed_weight=True)
        arrows = ItemDefinition(id="arrow", name="Arrow", weight=0.05)
        snapshot = CharacterSnapshot(
            id="c1",
            inventory=[InventoryEntry(id="b", item=bag, quantity=2), InventoryEntry(id="a", item=arrows, quantity=20)],
        )
        assert CharacterSheet(snapshot).encumbrance().current == pytest.approx(16)
