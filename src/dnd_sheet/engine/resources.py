"""Resource and rest engine.

Tracks the limited-use pools on a character: class resources, standard
spell slots, pact slots and hit dice. Using a resource may trigger
``grant_hp`` effects, which either raise temporary HP (the higher value
wins) or create a resource modifier granting bonus maximum HP. Those
modifiers expire at the rest boundary named by their duration.

Rests:
    * Short rest resets ``short`` resources and pact slots, and clears
      ``short_rest`` modifiers. Standard spell slots are untouched.
    * Long rest resets every resource, clears every resource modifier
      (including permanent ones), restores HP to the effective maximum
      computed after the clear, zeroes temp HP, restores all hit dice,
      clears spell and pact slots, reduces exhaustion by one and resets
      death saves.

Both rests are idempotent apart from the exhaustion step of a long rest.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from dnd_sheet.core.exceptions import FormulaError
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot, DeathSaves
from dnd_sheet.models.enums import Ability, HpGrantMode, ModifierDuration, RechargeOn
from dnd_sheet.models.modifiers import BonusModifier
from dnd_sheet.models.resources import ClassResource, GrantHpEffect, ResourceModifier, ResourceUsage
from dnd_sheet.engine.formula import evaluate_int, parse_formula, resolve_amount
from dnd_sheet.engine.progression import proficiency_bonus
from dnd_sheet.engine.resolver import (
    HP_MAX_TARGET,
    collect_modifier_sources,
    effective_max_hp,
    resolve_ability_modifier,
)
from dnd_sheet.engine.spell_slots import max_spell_slots, pact_magic
from dnd_sheet.engine.transition import TransitionResult, working_copy


logger = get_logger(__name__)

_MOD_FORMULAS = {f"{ability.value}_mod": ability for ability in Ability}


# =============================================================================
# Formula Environment & Maximum Uses
# =============================================================================


def formula_env(snapshot: CharacterSnapshot, class_level: int | None = None) -> dict[str, int]:
    """Build the variable environment for resource formulas.

    Args:
        snapshot: The character.
        class_level: Level in the class owning the resource, if any.

    Returns:
        Mapping with ``level``, ``proficiency``, ``<ability>_mod``,
        ``class_level:<class_id>`` and, when given, ``class_level``.
    """
    sources = collect_modifier_sources(snapshot)
    env = {
        "level": snapshot.total_level,
        "proficiency": proficiency_bonus(snapshot.total_level),
    }
    for name, ability in _MOD_FORMULAS.items():
        env[name] = resolve_ability_modifier(snapshot, ability, sources)
    for character_class in snapshot.classes:
        env[f"class_level:{character_class.class_id}"] = character_class.level
    if class_level is not None:
        env["class_level"] = class_level
    return env


def max_uses(snapshot: CharacterSnapshot, resource: ClassResource) -> int:
    """Resolve the maximum uses of a class resource.

    Named formulas: ``proficiency`` (``ceil(total level / 4) + 1``),
    ``level`` and ``level_x5`` (the owning class level), and
    ``<ability>_mod`` (at least 1). Integer strings are taken literally
    (at least 1). Anything else, negative literals included, is parsed as
    an arithmetic formula floored at 0; an unparsable formula counts as a
    single use.

    Args:
        snapshot: The character.
        resource: The resource definition.

    Returns:
        Maximum uses, never negative.
    """
    owner = snapshot.find_class(resource.class_id)
    class_level = owner.level if owner is not None else 0
    formula = resource.max_formula.strip().lower()

    if formula == "proficiency":
        return math.ceil(snapshot.total_level / 4) + 1
    if formula == "level":
        return class_level
    if formula == "level_x5":
        return class_level * 5
    if formula in _MOD_FORMULAS:
        return max(1, resolve_ability_modifier(snapshot, _MOD_FORMULAS[formula]))
    if formula.isdigit():
        return max(1, int(formula))

    try:
        value = evaluate_int(parse_formula(formula), formula_env(snapshot, class_level))
    except FormulaError as exc:
        logger.warning("Unreadable resource formula", resource_id=resource.id, error=exc.message)
        return 1
    return max(0, value)


@dataclass(frozen=True)
class ResourceStatus:
    """Usage summary of one available resource."""

    resource: ClassResource
    used_uses: int
    max_uses: int

    @property
    def remaining(self) -> int:
        """Uses left before the next recharge."""
        return max(0, self.max_uses - self.used_uses)


def resource_statuses(snapshot: CharacterSnapshot) -> list[ResourceStatus]:
    """Summarize every resource unlocked by the character's class levels."""
    return [
        ResourceStatus(
            resource=resource,
            used_uses=snapshot.used_uses(resource.id),
            max_uses=max_uses(snapshot, resource),
        )
        for character_class in snapshot.classes
        for resource in character_class.available_resources
    ]


def _set_used(state: CharacterSnapshot, resource_id: str, used: int) -> None:
    usage = state.usage_for(resource_id)
    if usage is None:
        state.resources.append(ResourceUsage(resource_id=resource_id, used_uses=used))
    else:
        usage.used_uses = used


# =============================================================================
# Resource Use
# =============================================================================


def _apply_grant_hp(
    state: CharacterSnapshot,
    resource: ClassResource,
    effect: GrantHpEffect,
    amount: int,
) -> None:
    if effect.mode == HpGrantMode.TEMPORARY:
        state.temp_hp = max(state.temp_hp, amount)
        return

    kept = [m for m in state.resource_modifiers if m.source_resource_id != resource.id]
    kept.append(
        ResourceModifier(
            id=f"{resource.id}-{state.used_uses(resource.id)}",
            name=effect.name or resource.name,
            source_resource_id=resource.id,
            duration=effect.duration,
            modifiers=[BonusModifier(target=HP_MAX_TARGET, value=amount)],
        )
    )
    state.resource_modifiers = kept
    state.hp_current = min(state.hp_current + amount, effective_max_hp(state))


def use_resource(snapshot: CharacterSnapshot, resource_id: str) -> TransitionResult:
    """Spend one use of a class resource and trigger its on-use effects.

    Args:
        snapshot: The character.
        resource_id: Resource to use.

    Returns:
        The transition result. Using an exhausted resource changes nothing.
    """
    found = snapshot.find_resource(resource_id)
    if found is None:
        return TransitionResult.rejected(snapshot, f"Resource not found: {resource_id}")
    owner, resource = found

    used = snapshot.used_uses(resource_id)
    limit = max_uses(snapshot, resource)
    if used >= limit:
        logger.debug("Resource exhausted", resource_id=resource_id, used=used, max_uses=limit)
        return TransitionResult.unchanged(snapshot, f"No uses of {resource.name} remaining")

    state = working_copy(snapshot)
    _set_used(state, resource_id, used + 1)

    for effect in resource.on_use:
        amount = resolve_amount(effect.formula, formula_env(snapshot, owner.level))
        if amount <= 0:
            logger.debug("Skipping non-positive HP grant", resource_id=resource_id, amount=amount)
            continue
        _apply_grant_hp(state, resource, effect, amount)
        logger.debug("HP granted", resource_id=resource_id, mode=effect.mode, amount=amount)

    return TransitionResult.applied(state, f"Used {resource.name} ({used + 1}/{limit})")


def restore_resource(snapshot: CharacterSnapshot, resource_id: str, amount: int = 1) -> TransitionResult:
    """Give back uses of a resource, floored at zero used."""
    usage = snapshot.usage_for(resource_id)
    if usage is None or usage.used_uses == 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    _set_used(state, resource_id, max(0, usage.used_uses - amount))
    return TransitionResult.applied(state, f"Restored {resource_id}")


def remove_resource_modifier(snapshot: CharacterSnapshot, modifier_id: str) -> TransitionResult:
    """End a resource modifier early, clamping current HP to the reduced maximum."""
    if not any(m.id == modifier_id for m in snapshot.resource_modifiers):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.resource_modifiers = [m for m in state.resource_modifiers if m.id != modifier_id]
    state.hp_current = min(state.hp_current, effective_max_hp(state))
    return TransitionResult.applied(state, f"Removed modifier {modifier_id}")


def mirror_resource_usages(snapshot: CharacterSnapshot, usages: Iterable[ResourceUsage]) -> TransitionResult:
    """Overwrite usage rows with authoritative values from the persistence side."""
    state = working_copy(snapshot)
    for usage in usages:
        _set_used(state, usage.resource_id, usage.used_uses)
    return TransitionResult.applied(state, "Resource usage synchronized")


# =============================================================================
# Spell Slots, Pact Slots & Hit Dice
# =============================================================================


def consume_spell_slot(snapshot: CharacterSnapshot, slot_level: int) -> TransitionResult:
    """Spend a standard spell slot of the given level.

    Returns:
        The transition result; rejected when no slot of that level remains.
    """
    used = snapshot.used_spell_slots.get(slot_level, 0)
    available = max_spell_slots(snapshot).get(slot_level, 0)
    if used >= available:
        return TransitionResult.rejected(snapshot, f"No level {slot_level} spell slots remaining")
    state = working_copy(snapshot)
    state.used_spell_slots = {**state.used_spell_slots, slot_level: used + 1}
    return TransitionResult.applied(state, f"Level {slot_level} slot used ({used + 1}/{available})")


def restore_spell_slot(snapshot: CharacterSnapshot, slot_level: int) -> TransitionResult:
    """Regain a standard spell slot; a no-op when none are spent."""
    used = snapshot.used_spell_slots.get(slot_level, 0)
    if used <= 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.used_spell_slots = {**state.used_spell_slots, slot_level: used - 1}
    return TransitionResult.applied(state, f"Level {slot_level} slot restored")


def consume_pact_slot(snapshot: CharacterSnapshot) -> TransitionResult:
    """Spend a pact slot, capped at the pact slot count."""
    pact = pact_magic(snapshot)
    if pact is None:
        return TransitionResult.unchanged(snapshot, "No pact magic")
    used = min(snapshot.used_pact_slots + 1, pact.count)
    if used == snapshot.used_pact_slots:
        return TransitionResult.unchanged(snapshot, "No pact slots remaining")
    state = working_copy(snapshot)
    state.used_pact_slots = used
    return TransitionResult.applied(state, f"Pact slot used ({used}/{pact.count})")


def restore_pact_slot(snapshot: CharacterSnapshot) -> TransitionResult:
    """Regain a pact slot; a no-op without pact magic or spent slots."""
    if pact_magic(snapshot) is None or snapshot.used_pact_slots <= 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.used_pact_slots -= 1
    return TransitionResult.applied(state, "Pact slot restored")


def spend_hit_die(snapshot: CharacterSnapshot) -> TransitionResult:
    """Spend one hit die; a no-op when none remain."""
    if snapshot.hit_dice_current <= 0:
        return TransitionResult.unchanged(snapshot, "No hit dice remaining")
    state = working_copy(snapshot)
    state.hit_dice_current -= 1
    return TransitionResult.applied(state, f"Hit die spent ({state.hit_dice_current} left)")


# =============================================================================
# Rests
# =============================================================================


def short_rest_resource_ids(snapshot: CharacterSnapshot) -> list[str]:
    """Ids of available resources that recharge on a short rest."""
    return [
        resource.id
        for character_class in snapshot.classes
        for resource in character_class.available_resources
        if resource.recharge_on == RechargeOn.SHORT
    ]


def short_rest(snapshot: CharacterSnapshot) -> TransitionResult:
    """Take a short rest."""
    state = working_copy(snapshot)
    for resource_id in short_rest_resource_ids(state):
        if state.usage_for(resource_id) is not None:
            _set_used(state, resource_id, 0)
    if pact_magic(state) is not None:
        state.used_pact_slots = 0
    state.resource_modifiers = [
        m for m in state.resource_modifiers if m.duration != ModifierDuration.SHORT_REST
    ]
    state.hp_current = min(state.hp_current, effective_max_hp(state))
    logger.debug("Short rest taken", character_id=state.id)
    return TransitionResult.applied(state, "Short rest complete")


def long_rest(snapshot: CharacterSnapshot) -> TransitionResult:
    """Take a long rest."""
    state = working_copy(snapshot)
    for usage in state.resources:
        usage.used_uses = 0
    state.resource_modifiers = []
    state.hp_current = effective_max_hp(state)
    state.temp_hp = 0
    state.hit_dice_current = state.hit_dice_max
    state.used_spell_slots = {}
    state.used_pact_slots = 0
    state.exhaustion = max(0, state.exhaustion - 1)
    state.death_saves = DeathSaves()
    logger.debug("Long rest taken", character_id=state.id, hp=state.hp_current)
    return TransitionResult.applied(state, "Long rest complete")


__all__ = [
    "formula_env",
    "max_uses",
    "ResourceStatus",
    "resource_statuses",
    "use_resource",
    "restore_resource",
    "remove_resource_modifier",
    "mirror_resource_usages",
    "consume_spell_slot",
    "restore_spell_slot",
    "consume_pact_slot",
    "restore_pact_slot",
    "spend_hit_die",
    "short_rest_resource_ids",
    "short_rest",
    "long_rest",
]
