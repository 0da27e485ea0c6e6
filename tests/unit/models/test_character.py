"""Tests for the character snapshot and its components."""

from __future__ import annotations

import pytest

from dnd_sheet.models import (
    Ability,
    AbilityScores,
    CharacterSnapshot,
    ClassDefinition,
    Currency,
    ResourceUsage,
    calculate_modifier,
)


class TestCalculateModifier:
    """Tests for ability modifier calculation."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [(1, -5), (7, -2), (9, -1), (10, 0), (11, 0), (14, 2), (20, 5), (30, 10)],
    )
    def test_modifier(self, score: int, expected: int) -> None:
        """Test modifier floors toward negative infinity."""
        assert calculate_modifier(score) == expected


class TestAbility:
    """Tests for ability parsing."""

    @pytest.mark.parametrize("text", ["str", "STR", "Strength", " strength "])
    def test_parse(self, text: str) -> None:
        """Test codes, abbreviations and full names parse."""
        assert Ability.parse(text) is Ability.STR

    def test_parse_invalid(self) -> None:
        """Test unknown ability names raise ValueError."""
        with pytest.raises(ValueError, match="Invalid ability: luck"):
            Ability.parse("luck")

    def test_field_name(self) -> None:
        """Test mapping to the snapshot field."""
        assert Ability.WIS.field_name == "wisdom"
        assert Ability.WIS.abbreviation == "WIS"


class TestComponents:
    """Tests for snapshot components."""

    def test_ability_scores_bounds(self) -> None:
        """Test ability scores are limited to 1-30."""
        with pytest.raises(ValueError):
            AbilityScores(strength=31)

    def test_currency_total(self) -> None:
        """Test purse value in copper."""
        purse = Currency(cp=4, sp=3, ep=1, gp=2, pp=1)
        assert purse.total_cp == 4 + 30 + 50 + 200 + 1000


class TestCharacterSnapshot:
    """Tests for CharacterSnapshot."""

    def test_defaults(self) -> None:
        """Test a minimal snapshot."""
        snapshot = CharacterSnapshot(id="c1")

        assert snapshot.hp_current == 10
        assert snapshot.speed == 30
        assert snapshot.total_level == 1
        assert snapshot.inventory == []

    def test_total_level_sums_classes(
        self,
        barbarian: CharacterSnapshot,
        wizard_definition: ClassDefinition,
    ) -> None:
        """Test total level is the sum of class levels."""
        barbarian.classes.append(barbarian.classes[0].model_copy(update={"definition": wizard_definition, "level": 2}))
        assert barbarian.total_level == 7

    def test_json_round_trip_ignores_computed(self, barbarian: CharacterSnapshot) -> None:
        """Test dumped snapshots validate back, ignoring computed fields."""
        data = barbarian.model_dump(mode="json")
        assert data["total_level"] == 5

        restored = CharacterSnapshot.model_validate(data)
        assert restored == barbarian

    def test_find_resource_respects_unlock(self, barbarian: CharacterSnapshot) -> None:
        """Test resource lookup by id across classes."""
        found = barbarian.find_resource("rage")
        assert found is not None
        assert found[1].name == "Rage"
        assert barbarian.find_resource("missing") is None

    def test_used_uses(self, barbarian: CharacterSnapshot) -> None:
        """Test used uses default to zero without a usage row."""
        assert barbarian.used_uses("rage") == 0
        barbarian.resources.append(ResourceUsage(resource_id="rage", used_uses=2))
        assert barbarian.used_uses("rage") == 2

    def test_find_entry(self, armed_fighter: CharacterSnapshot) -> None:
        """Test inventory lookup and equipped listing."""
        assert armed_fighter.find_entry("inv-plate") is not None
        assert armed_fighter.find_entry("nope") is None
        assert [e.id for e in armed_fighter.equipped_entries] == ["inv-longsword", "inv-shield"]
