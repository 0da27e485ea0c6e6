"""Tests for class resources, spell slots, hit dice and rests."""

from __future__ import annotations

import pytest

from dnd_sheet.engine.resolver import effective_max_hp
from dnd_sheet.engine.resources import (
    consume_pact_slot,
    consume_spell_slot,
    long_rest,
    max_uses,
    mirror_resource_usages,
    remove_resource_modifier,
    resource_statuses,
    restore_pact_slot,
    restore_resource,
    restore_spell_slot,
    short_rest,
    short_rest_resource_ids,
    spend_hit_die,
    use_resource,
)
from dnd_sheet.models import (
    CharacterClass,
    CharacterSnapshot,
    ClassDefinition,
    ClassResource,
    DeathSaves,
    GrantHpEffect,
    HpGrantMode,
    ModifierDuration,
    RechargeOn,
    ResourceModifier,
    ResourceUsage,
)


def _with_usage(snapshot: CharacterSnapshot, resource_id: str, used: int) -> CharacterSnapshot:
    return snapshot.model_copy(update={"resources": [ResourceUsage(resource_id=resource_id, used_uses=used)]})


class TestMaxUses:
    """Tests for resource maximum formulas."""

    @pytest.mark.parametrize(
        ("formula", "expected"),
        [
            ("proficiency", 3),
            ("level", 5),
            ("level_x5", 25),
            ("con_mod", 3),
            ("wis_mod", 1),
            ("4", 4),
            ("0", 1),
            ("-2", 0),
            ("2 - 5", 0),
            ("level / 2", 2),
            ("class_level + con_mod", 8),
            ("level +", 1),
        ],
    )
    def test_formulas(self, barbarian: CharacterSnapshot, formula: str, expected: int) -> None:
        """Test named, integer, arithmetic and unreadable formulas."""
        resource = ClassResource(id="x", class_id="barbarian", name="X", max_formula=formula)
        assert max_uses(barbarian, resource) == expected

    def test_statuses(self, barbarian: CharacterSnapshot) -> None:
        """Test usage summaries for every unlocked resource."""
        statuses = {s.resource.id: s for s in resource_statuses(_with_usage(barbarian, "rage", 1))}

        assert set(statuses) == {"rage", "vigor", "second-breath"}
        assert statuses["rage"].remaining == 2
        assert statuses["second-breath"].max_uses == 2


class TestUseResource:
    """Tests for use_resource."""

    def test_counts_use(self, barbarian: CharacterSnapshot) -> None:
        """Test a use creates the usage row."""
        result = use_resource(barbarian, "rage")

        assert result.success
        assert result.state.used_uses("rage") == 1
        assert result.message == "Used Rage (1/3)"
        assert barbarian.resources == []

    def test_exhausted_is_noop(self, barbarian: CharacterSnapshot) -> None:
        """Test using an exhausted resource changes nothing."""
        spent = _with_usage(barbarian, "rage", 3)
        result = use_resource(spent, "rage")

        assert result.success
        assert result.state is spent
        assert result.message == "No uses of Rage remaining"

    def test_unknown_resource(self, barbarian: CharacterSnapshot) -> None:
        """Test an unknown resource is rejected."""
        result = use_resource(barbarian, "ki")
        assert not result.success
        assert result.error == "Resource not found: ki"

    def test_temporary_hp_does_not_stack(self, barbarian: CharacterSnapshot) -> None:
        """Test temporary HP keeps the higher value."""
        state = use_resource(barbarian, "second-breath").state
        assert state.temp_hp == 25

        state = state.model_copy(update={"temp_hp": 30})
        assert use_resource(state, "second-breath").state.temp_hp == 30

    def test_bonus_hp_modifier(self, barbarian: CharacterSnapshot) -> None:
        """Test a bonus-mode grant creates a max HP modifier and heals by it."""
        state = use_resource(barbarian, "vigor").state

        assert [m.id for m in state.resource_modifiers] == ["vigor-1"]
        assert state.resource_modifiers[0].duration == ModifierDuration.LONG_REST
        assert effective_max_hp(state) == 50
        assert state.hp_current == 50

    def test_bonus_hp_replaces_previous(self, barbarian: CharacterSnapshot) -> None:
        """Test a second use replaces the modifier instead of stacking."""
        state = use_resource(use_resource(barbarian, "vigor").state, "vigor").state

        assert [m.id for m in state.resource_modifiers] == ["vigor-2"]
        assert effective_max_hp(state) == 50
        assert state.hp_current == 50

    def test_restore(self, barbarian: CharacterSnapshot) -> None:
        """Test restoring uses floors at zero."""
        state = restore_resource(_with_usage(barbarian, "rage", 2), "rage", 5).state
        assert state.used_uses("rage") == 0

    def test_restore_unused_is_noop(self, barbarian: CharacterSnapshot) -> None:
        """Test restoring an unused resource changes nothing."""
        assert restore_resource(barbarian, "rage").state is barbarian

    def test_remove_modifier_clamps_hp(self, barbarian: CharacterSnapshot) -> None:
        """Test ending a max HP bonus clamps current HP."""
        boosted = use_resource(barbarian, "vigor").state
        state = remove_resource_modifier(boosted, "vigor-1").state

        assert state.resource_modifiers == []
        assert state.hp_current == 45

    def test_mirror_usages(self, barbarian: CharacterSnapshot) -> None:
        """Test authoritative usage rows overwrite local ones."""
        state = mirror_resource_usages(
            _with_usage(barbarian, "rage", 2),
            [ResourceUsage(resource_id="rage", used_uses=0), ResourceUsage(resource_id="vigor", used_uses=1)],
        ).state

        assert state.used_uses("rage") == 0
        assert state.used_uses("vigor") == 1


class TestSlots:
    """Tests for spell slots, pact slots and hit dice."""

    def test_consume_spell_slot(self, wizard: CharacterSnapshot) -> None:
        """Test spending a slot."""
        result = consume_spell_slot(wizard, 1)
        assert result.state.used_spell_slots == {1: 3}
        assert wizard.used_spell_slots == {1: 2}

    def test_consume_spell_slot_capped(self, wizard: CharacterSnapshot) -> None:
        """Test slots cannot be overspent."""
        spent = wizard.model_copy(update={"used_spell_slots": {1: 4}})
        result = consume_spell_slot(spent, 1)

        assert not result.success
        assert result.error == "No level 1 spell slots remaining"

    def test_consume_unavailable_level(self, wizard: CharacterSnapshot) -> None:
        """Test slot levels the character lacks are rejected."""
        assert not consume_spell_slot(wizard, 3).success

    def test_restore_spell_slot(self, wizard: CharacterSnapshot) -> None:
        """Test regaining slots floors at zero used."""
        assert restore_spell_slot(wizard, 1).state.used_spell_slots == {1: 1}
        assert restore_spell_slot(wizard, 2).state is wizard

    def test_pact_slots(self, warlock: CharacterSnapshot) -> None:
        """Test pact slots are capped at the pact slot count."""
        state = consume_pact_slot(consume_pact_slot(warlock).state).state
        assert state.used_pact_slots == 2

        result = consume_pact_slot(state)
        assert result.state.used_pact_slots == 2
        assert result.message == "No pact slots remaining"

        assert restore_pact_slot(state).state.used_pact_slots == 1

    def test_pact_without_pact_magic(self, wizard: CharacterSnapshot) -> None:
        """Test non-warlocks cannot spend pact slots."""
        assert consume_pact_slot(wizard).state.used_pact_slots == 0

    def test_spend_hit_die(self, barbarian: CharacterSnapshot) -> None:
        """Test spending hit dice floors at zero."""
        assert spend_hit_die(barbarian).state.hit_dice_current == 4
        empty = barbarian.model_copy(update={"hit_dice_current": 0})
        assert spend_hit_die(empty).state is empty


class TestRests:
    """Tests for short and long rests."""

    @pytest.fixture
    def worn_out(self, barbarian: CharacterSnapshot) -> CharacterSnapshot:
        """Barbarian after a rough fight."""
        return barbarian.model_copy(
            update={
                "hp_current": 12,
                "temp_hp": 4,
                "hit_dice_current": 1,
                "exhaustion": 2,
                "death_saves": DeathSaves(successes=1, failures=2),
                "resources": [
                    ResourceUsage(resource_id="rage", used_uses=3),
                    ResourceUsage(resource_id="second-breath", used_uses=2),
                ],
                "resource_modifiers": [
                    ResourceModifier(
                        id="short-1",
                        source_resource_id="x",
                        duration=ModifierDuration.SHORT_REST,
                        modifiers=[{"type": "bonus", "target": "hp_max", "value": 3}],
                    ),
                    ResourceModifier(
                        id="perm-1",
                        source_resource_id="y",
                        duration=ModifierDuration.PERMANENT,
                        modifiers=[{"type": "bonus", "target": "hp_max", "value": 2}],
                    ),
                ],
            }
        )

    def test_short_rest_resource_ids(self, barbarian: CharacterSnapshot) -> None:
        """Test only short-recharge resources are listed."""
        assert short_rest_resource_ids(barbarian) == ["second-breath"]

    def test_short_rest(self, worn_out: CharacterSnapshot) -> None:
        """Test a short rest resets short resources and short modifiers only."""
        state = short_rest(worn_out).state

        assert state.used_uses("second-breath") == 0
        assert state.used_uses("rage") == 3
        assert [m.id for m in state.resource_modifiers] == ["perm-1"]
        assert state.hp_current == 12

    def test_short_rest_clamps_hp_to_reduced_max(
        self,
        barbarian: CharacterSnapshot,
        barbarian_definition: ClassDefinition,
    ) -> None:
        """Test HP granted by a short-rest bonus is lost with the bonus."""
        trance = ClassResource(
            id="trance",
            class_id="barbarian",
            name="Battle Trance",
            max_formula="1",
            recharge_on=RechargeOn.SHORT,
            on_use=(
                GrantHpEffect(formula="level", mode=HpGrantMode.BONUS, duration=ModifierDuration.SHORT_REST),
            ),
        )
        definition = barbarian_definition.model_copy(
            update={"resources": (*barbarian_definition.resources, trance)}
        )
        snapshot = barbarian.model_copy(update={"classes": [CharacterClass(definition=definition, level=5)]})

        boosted = use_resource(snapshot, "trance").state
        assert (boosted.hp_current, effective_max_hp(boosted)) == (50, 50)

        rested = short_rest(boosted).state
        assert rested.resource_modifiers == []
        assert (rested.hp_current, effective_max_hp(rested)) == (45, 45)
        assert rested.used_uses("trance") == 0

    def test_short_rest_keeps_spell_slots(self, wizard: CharacterSnapshot) -> None:
        """Test standard spell slots survive a short rest."""
        assert short_rest(wizard).state.used_spell_slots == {1: 2}

    def test_short_rest_resets_pact(self, warlock: CharacterSnapshot) -> None:
        """Test pact slots come back on a short rest."""
        spent = warlock.model_copy(update={"used_pact_slots": 2})
        assert short_rest(spent).state.used_pact_slots == 0

    def test_long_rest(self, worn_out: CharacterSnapshot) -> None:
        """Test a long rest restores everything."""
        state = long_rest(worn_out).state

        assert state.used_uses("rage") == 0
        assert state.used_uses("second-breath") == 0
        assert state.resource_modifiers == []
        assert state.hp_current == 45
        assert state.temp_hp == 0
        assert state.hit_dice_current == 5
        assert state.exhaustion == 1
        assert state.death_saves == DeathSaves()

    def test_long_rest_clears_slots(self, wizard: CharacterSnapshot) -> None:
        """Test spell slots are cleared."""
        assert long_rest(wizard).state.used_spell_slots == {}

    @pytest.mark.parametrize("rest", [short_rest, long_rest])
    def test_idempotent(self, worn_out: CharacterSnapshot, rest) -> None:
        """Test resting twice equals resting once without exhaustion."""
        once = rest(worn_out.model_copy(update={"exhaustion": 0})).state
        assert rest(once).state == once

    def test_exhaustion_steps_down_per_long_rest(self, worn_out: CharacterSnapshot) -> None:
        """Test each long rest removes one exhaustion level, floored at zero."""
        state = worn_out
        levels = []
        for _ in range(3):
            state = long_rest(state).state
            levels.append(state.exhaustion)
        assert levels == [1, 0, 0]
