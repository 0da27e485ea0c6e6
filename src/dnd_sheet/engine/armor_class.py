"""Armor class: standard armor formula and the unarmored formula selector.

When body armor is worn, AC is the armor's base plus DEX limited by the
armor's weight class. Without body armor, every class feature that
supplies an alternative unarmored formula (Unarmored Defense, Draconic
Resilience) is evaluated and the best result is used, since a character
benefits from only one AC calculation at a time. Shields and ``ac``
bonus modifiers are added on top in both cases.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from dnd_sheet.core.constants import (
    DEFAULT_ARMOR_BASE_AC,
    DEFAULT_SHIELD_AC,
    MEDIUM_ARMOR_DEX_CAP,
    UNARMORED_BASE_AC,
)
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot, calculate_modifier
from dnd_sheet.models.enums import Ability, PostureState
from dnd_sheet.models.modifiers import ModifierSource
from dnd_sheet.engine.proficiency import is_proficient_with
from dnd_sheet.engine.resolver import (
    collect_modifier_sources,
    resolve_ac_bonus,
    resolve_ability_score,
)
from dnd_sheet.engine.states import armor_weight, chest_armor, detect_states, shield


logger = get_logger(__name__)

AbilityMap = dict[Ability, int]


# =============================================================================
# Results
# =============================================================================


class ArmorClass(BaseModel):
    """Resolved armor class.

    Attributes:
        value: Final AC.
        is_proficient: False when any worn armor or shield lacks proficiency.
        source: Label of the base formula used.
    """

    model_config = ConfigDict(frozen=True)

    value: int
    is_proficient: bool = True
    source: str = ""


class AcResult(BaseModel):
    """Best unarmored formula result."""

    model_config = ConfigDict(frozen=True)

    value: int
    source: str


# =============================================================================
# Formula Registry
# =============================================================================


@dataclass(frozen=True)
class AcFormula:
    """Alternative AC formula granted by a class feature.

    Attributes:
        class_id: Class that must be present.
        feature_name: Feature that must be unlocked (case-insensitive).
        required_state: Posture state the formula requires.
        compute: Function of resolved ability scores and DEX modifier.
        description: Rules text summary.
    """

    class_id: str
    feature_name: str
    required_state: PostureState
    compute: Callable[[AbilityMap, int], int]
    description: str = ""

    def applies(self, class_ids: Iterable[str], feature_names: Iterable[str], states: Iterable[PostureState]) -> bool:
        """Check the class, feature and posture preconditions."""
        if self.class_id not in set(class_ids):
            return False
        if self.feature_name.lower() not in {name.lower() for name in feature_names}:
            return False
        return self.required_state in set(states)


AC_FORMULAS: tuple[AcFormula, ...] = (
    AcFormula(
        class_id="barbarian",
        feature_name="Unarmored Defense",
        required_state=PostureState.UNARMORED,
        compute=lambda scores, dex_mod: UNARMORED_BASE_AC + dex_mod + calculate_modifier(scores[Ability.CON]),
        description="AC = 10 + DEX modifier + CON modifier when not wearing armor",
    ),
    AcFormula(
        class_id="monk",
        feature_name="Unarmored Defense",
        required_state=PostureState.UNARMORED,
        compute=lambda scores, dex_mod: UNARMORED_BASE_AC + dex_mod + calculate_modifier(scores[Ability.WIS]),
        description="AC = 10 + DEX modifier + WIS modifier when not wearing armor",
    ),
    AcFormula(
        class_id="sorcerer",
        feature_name="Draconic Resilience",
        required_state=PostureState.UNARMORED,
        compute=lambda scores, dex_mod: 13 + dex_mod,
        description="AC = 13 + DEX modifier when not wearing armor",
    ),
)
"""Registered alternative AC formulas."""


def applicable_ac_formulas(
    snapshot: CharacterSnapshot,
    states: Iterable[PostureState],
    formulas: Iterable[AcFormula] = AC_FORMULAS,
) -> list[AcFormula]:
    """Filter formulas to those whose preconditions hold for a character."""
    feature_names = [f.name for c in snapshot.classes for f in c.active_features]
    states = frozenset(states)
    return [f for f in formulas if f.applies(snapshot.class_ids, feature_names, states)]


def best_ac(formulas: Iterable[AcFormula], scores: AbilityMap, dex_mod: int) -> AcResult:
    """Evaluate formulas and keep the highest.

    Args:
        formulas: Applicable formulas.
        scores: Resolved ability scores.
        dex_mod: DEX modifier.

    Returns:
        The best AC and its feature label, or ``10 + DEX`` labelled
        'Unarmored (Base)' when no formula applies.
    """
    best: AcResult | None = None
    for formula in formulas:
        value = formula.compute(scores, dex_mod)
        if best is None or value > best.value:
            best = AcResult(value=value, source=f"{formula.feature_name} ({formula.class_id})")
    if best is None:
        return AcResult(value=UNARMORED_BASE_AC + dex_mod, source="Unarmored (Base)")
    return best


# =============================================================================
# Armor Class
# =============================================================================


def calculate_armor_class(
    snapshot: CharacterSnapshot,
    sources: list[ModifierSource] | None = None,
) -> ArmorClass:
    """Compute a character's armor class and armor proficiency status.

    Args:
        snapshot: The character.
        sources: Pre-collected modifier sources.

    Returns:
        The resolved ArmorClass.
    """
    if sources is None:
        sources = collect_modifier_sources(snapshot)

    scores = {ability: resolve_ability_score(snapshot, ability, sources) for ability in Ability}
    dex_mod = calculate_modifier(scores[Ability.DEX])
    states = detect_states(snapshot.inventory)

    is_proficient = True
    body = chest_armor(snapshot.inventory)
    if body is not None:
        item_ac = body.item.armor_class or DEFAULT_ARMOR_BASE_AC
        weight = armor_weight(body.item)
        if weight == "medium":
            base = item_ac + min(dex_mod, MEDIUM_ARMOR_DEX_CAP)
        elif weight == "heavy":
            base = item_ac
        else:
            base = item_ac + dex_mod
        source = body.item.name
        is_proficient = is_proficient_with(snapshot, body.item, sources)
    else:
        result = best_ac(applicable_ac_formulas(snapshot, states), scores, dex_mod)
        base, source = result.value, result.source

    held_shield = shield(snapshot.inventory)
    if held_shield is not None:
        base += held_shield.item.armor_class or DEFAULT_SHIELD_AC
        is_proficient = is_proficient and is_proficient_with(snapshot, held_shield.item, sources)

    value = base + resolve_ac_bonus(sources)
    if snapshot.armor_class_override is not None:
        logger.debug("Armor class override in effect", computed=value, override=snapshot.armor_class_override)
        return ArmorClass(value=snapshot.armor_class_override, is_proficient=is_proficient, source="Override")
    return ArmorClass(value=value, is_proficient=is_proficient, source=source)


__all__ = [
    "ArmorClass",
    "AcResult",
    "AcFormula",
    "AC_FORMULAS",
    "applicable_ac_formulas",
    "best_ac",
    "calculate_armor_class",
]
