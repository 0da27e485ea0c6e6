"""Modifier resolver: folds modifier sources into derived values.

Resolution policy for a named target, applied to every unconditioned
modifier whose target matches case-insensitively:

1. ``set``/``override`` modifiers: the highest proposed value replaces
   the base.
2. ``bonus`` and ``ability_increase`` values are summed on top.
3. If any ``ability_increase`` carries a ``max``, the result is clamped
   to the smallest such cap.

Each step reduces with max, sum or min, so the result does not depend on
the order of the sources.

Conditioned modifiers (``condition`` set) are never applied. Condition
text is stored but not evaluated, and ``applies_unconditionally`` is the
single place that decision is made.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot, calculate_modifier
from dnd_sheet.models.enums import Ability
from dnd_sheet.models.modifiers import (
    AbilityIncreaseModifier,
    AbilityPointGrantModifier,
    BonusModifier,
    Modifier,
    ModifierSource,
    SetModifier,
)


logger = get_logger(__name__)

HP_PER_LEVEL_TARGET = "hp_per_level"
HP_MAX_TARGET = "hp_max"
AC_TARGET = "ac"


# =============================================================================
# Source Collection
# =============================================================================


def collect_modifier_sources(snapshot: CharacterSnapshot) -> list[ModifierSource]:
    """Gather every modifier source currently active on a character.

    Equipped items count only when they need no attunement or are
    attuned. Feats, traits, race, background and active resource
    modifiers always count.

    Args:
        snapshot: The character.

    Returns:
        Active modifier sources.
    """
    sources: list[ModifierSource] = [
        entry.as_modifier_source() for entry in snapshot.inventory if entry.is_active_source
    ]
    sources.extend(snapshot.feats)
    sources.extend(snapshot.traits)
    if snapshot.race is not None:
        sources.append(snapshot.race)
    if snapshot.background is not None:
        sources.append(snapshot.background)
    sources.extend(snapshot.resource_modifiers)
    return sources


def applies_unconditionally(modifier: Modifier) -> bool:
    """Decide whether a modifier takes part in resolution.

    Conditions are not evaluated, so any conditioned modifier is skipped.

    Args:
        modifier: The modifier to check.

    Returns:
        True when the modifier has no condition.
    """
    if modifier.is_conditional:
        logger.debug(
            "Skipping conditional modifier",
            modifier_type=modifier.type,
            target=modifier.target,
            condition=modifier.condition,
        )
        return False
    return True


def iter_modifiers(sources: Iterable[ModifierSource], target: str | None = None) -> Iterator[Modifier]:
    """Iterate over applicable modifiers, optionally filtered by target.

    Args:
        sources: Modifier sources to scan.
        target: Case-insensitive target filter.

    Yields:
        Unconditioned modifiers matching the target.
    """
    for source in sources:
        for modifier in source.modifiers:
            if target is not None and not modifier.targets(target):
                continue
            if applies_unconditionally(modifier):
                yield modifier


# =============================================================================
# Resolution
# =============================================================================


def resolve_stat(base: int, target: str, sources: Iterable[ModifierSource]) -> int:
    """Resolve a numeric target against modifier sources.

    Args:
        base: Stored base value.
        target: Target key (e.g. 'str', 'ac', 'speed').
        sources: Active modifier sources.

    Returns:
        The resolved value.

    Example:
        >>> belt = ModifierSource(id="belt", modifiers=[{"type": "set", "target": "str", "value": 19}])
        >>> ring = ModifierSource(id="ring", modifiers=[{"type": "bonus", "target": "str", "value": 1}])
        >>> resolve_stat(14, "str", [belt, ring])
        20
    """
    override: int | None = None
    bonus_total = 0
    cap: int | None = None

    for modifier in iter_modifiers(sources, target):
        if isinstance(modifier, SetModifier):
            override = modifier.value if override is None else max(override, modifier.value)
        elif isinstance(modifier, BonusModifier):
            bonus_total += modifier.value
        elif isinstance(modifier, AbilityIncreaseModifier):
            bonus_total += modifier.value
            if modifier.max is not None:
                cap = modifier.max if cap is None else min(cap, modifier.max)

    value = base if override is None else override
    value += bonus_total
    if cap is not None:
        value = min(value, cap)
    return value


def _sum_bonuses(target: str, sources: Iterable[ModifierSource]) -> int:
    return sum(
        modifier.value
        for modifier in iter_modifiers(sources, target)
        if isinstance(modifier, BonusModifier)
    )


def resolve_hp_per_level(sources: Iterable[ModifierSource]) -> int:
    """Sum ``bonus`` modifiers targeting ``hp_per_level``."""
    return _sum_bonuses(HP_PER_LEVEL_TARGET, sources)


def resolve_flat_hp_bonus(sources: Iterable[ModifierSource]) -> int:
    """Sum ``bonus`` modifiers targeting ``hp_max``."""
    return _sum_bonuses(HP_MAX_TARGET, sources)


def resolve_ac_bonus(sources: Iterable[ModifierSource]) -> int:
    """Sum ``bonus`` modifiers targeting ``ac``."""
    return _sum_bonuses(AC_TARGET, sources)


def effective_max_hp(snapshot: CharacterSnapshot, sources: list[ModifierSource] | None = None) -> int:
    """Compute maximum hit points including active HP bonuses.

    Args:
        snapshot: The character.
        sources: Pre-collected sources; collected from the snapshot if omitted.

    Returns:
        ``hp_max + level * hp_per_level bonus + flat hp_max bonus``.
    """
    if sources is None:
        sources = collect_modifier_sources(snapshot)
    per_level = resolve_hp_per_level(sources)
    flat = resolve_flat_hp_bonus(sources)
    return snapshot.hp_max + snapshot.total_level * per_level + flat


def resolve_ability_score(
    snapshot: CharacterSnapshot,
    ability: Ability,
    sources: list[ModifierSource] | None = None,
) -> int:
    """Resolve an ability score from its raw value and active modifiers."""
    if sources is None:
        sources = collect_modifier_sources(snapshot)
    return resolve_stat(snapshot.abilities.get(ability), ability.value, sources)


def resolve_ability_modifier(
    snapshot: CharacterSnapshot,
    ability: Ability,
    sources: list[ModifierSource] | None = None,
) -> int:
    """Ability modifier of the resolved score."""
    return calculate_modifier(resolve_ability_score(snapshot, ability, sources))


def ability_point_grants(sources: Iterable[ModifierSource]) -> int:
    """Total ability points granted by modifiers (e.g. an ASI feat)."""
    return sum(
        modifier.value
        for modifier in iter_modifiers(sources)
        if isinstance(modifier, AbilityPointGrantModifier)
    )


__all__ = [
    "HP_PER_LEVEL_TARGET",
    "HP_MAX_TARGET",
    "AC_TARGET",
    "collect_modifier_sources",
    "applies_unconditionally",
    "iter_modifiers",
    "resolve_stat",
    "resolve_hp_per_level",
    "resolve_flat_hp_bonus",
    "resolve_ac_bonus",
    "effective_max_hp",
    "resolve_ability_score",
    "resolve_ability_modifier",
    "ability_point_grants",
]
