"""Vitals, currency, ability points and other direct character edits.

These transitions cover the single-field mutations a player makes on a
sheet: hit points, death saves, exhaustion, coins, ability scores,
conditions, spells, feats, manual proficiencies and subclass picks.
"""

from __future__ import annotations

from collections.abc import Iterable

from dnd_sheet.core.config import get_settings
from dnd_sheet.core.constants import (
    CURRENCY_ORDER,
    CURRENCY_ORDER_ELECTRUM,
    CURRENCY_VALUES_CP,
    MAX_ABILITY_SCORE,
    MAX_DEATH_SAVES,
    MIN_ABILITY_SCORE,
    SKILL_ABILITIES,
)
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import (
    CharacterSnapshot,
    Currency,
    DeathSaves,
    KnownSpell,
    SubclassDefinition,
)
from dnd_sheet.models.enums import Ability, Denomination
from dnd_sheet.models.modifiers import ModifierSource
from dnd_sheet.engine.resolver import effective_max_hp
from dnd_sheet.engine.transition import TransitionResult, working_copy


logger = get_logger(__name__)

PROFICIENCY_KINDS = ("armor", "weapons", "tools")


# =============================================================================
# Hit Points & Vitals
# =============================================================================


def take_damage(snapshot: CharacterSnapshot, amount: int) -> TransitionResult:
    """Apply damage, draining temporary hit points first.

    Args:
        snapshot: The character.
        amount: Damage taken.

    Returns:
        The transition result; current HP never drops below zero.
    """
    if amount <= 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    absorbed = min(state.temp_hp, amount)
    state.temp_hp -= absorbed
    state.hp_current = max(0, state.hp_current - (amount - absorbed))
    return TransitionResult.applied(state, f"Took {amount} damage")


def heal(snapshot: CharacterSnapshot, amount: int) -> TransitionResult:
    """Restore hit points up to the effective maximum.

    Healing a character up from zero hit points also resets their death
    saving throws.
    """
    if amount <= 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    new_hp = min(effective_max_hp(state), state.hp_current + amount)
    if state.hp_current == 0 and new_hp > 0:
        state.death_saves = DeathSaves()
    state.hp_current = max(state.hp_current, new_hp)
    return TransitionResult.applied(state, f"Healed to {state.hp_current}")


def set_hp(snapshot: CharacterSnapshot, hp: int) -> TransitionResult:
    """Set current HP, clamped to ``0..effective max``."""
    state = working_copy(snapshot)
    state.hp_current = min(effective_max_hp(state), max(0, hp))
    return TransitionResult.applied(state, f"HP set to {state.hp_current}")


def set_max_hp(snapshot: CharacterSnapshot, hp_max: int) -> TransitionResult:
    """Set stored maximum HP, clamping current HP to the new effective maximum."""
    if hp_max < 0:
        return TransitionResult.rejected(snapshot, "Maximum HP cannot be negative")
    state = working_copy(snapshot)
    state.hp_max = hp_max
    state.hp_current = min(state.hp_current, effective_max_hp(state))
    return TransitionResult.applied(state, f"Maximum HP set to {hp_max}")


def set_temp_hp(snapshot: CharacterSnapshot, amount: int) -> TransitionResult:
    """Set temporary hit points."""
    state = working_copy(snapshot)
    state.temp_hp = max(0, amount)
    return TransitionResult.applied(state, f"Temporary HP set to {state.temp_hp}")


def set_death_saves(snapshot: CharacterSnapshot, successes: int, failures: int) -> TransitionResult:
    """Set death saving throw counters, clamped to ``0..3``."""
    state = working_copy(snapshot)
    state.death_saves = DeathSaves(
        successes=max(0, min(MAX_DEATH_SAVES, successes)),
        failures=max(0, min(MAX_DEATH_SAVES, failures)),
    )
    return TransitionResult.applied(state, "Death saves updated")


def set_exhaustion(snapshot: CharacterSnapshot, level: int) -> TransitionResult:
    """Set the exhaustion level, clamped to the configured maximum."""
    state = working_copy(snapshot)
    state.exhaustion = max(0, min(get_settings().rules.max_exhaustion, level))
    return TransitionResult.applied(state, f"Exhaustion set to {state.exhaustion}")


def set_inspiration(snapshot: CharacterSnapshot, inspired: bool) -> TransitionResult:
    """Grant or spend inspiration."""
    state = working_copy(snapshot)
    state.inspiration = inspired
    return TransitionResult.applied(state, "Inspiration updated")


def toggle_inspiration(snapshot: CharacterSnapshot) -> TransitionResult:
    """Flip the inspiration flag."""
    return set_inspiration(snapshot, not snapshot.inspiration)


def set_armor_class_override(snapshot: CharacterSnapshot, value: int | None) -> TransitionResult:
    """Pin armor class to a fixed value, or pass None to calculate it again."""
    if value is not None and value < 0:
        return TransitionResult.rejected(snapshot, "Armor class cannot be negative")
    state = working_copy(snapshot)
    state.armor_class_override = value
    return TransitionResult.applied(state, "Armor class override updated")


def set_speed(snapshot: CharacterSnapshot, speed: int) -> TransitionResult:
    """Set walking speed in feet."""
    state = working_copy(snapshot)
    state.speed = max(0, speed)
    return TransitionResult.applied(state, f"Speed set to {state.speed}")


def set_initiative_bonus(snapshot: CharacterSnapshot, bonus: int) -> TransitionResult:
    """Set the flat initiative bonus."""
    state = working_copy(snapshot)
    state.initiative_bonus = bonus
    return TransitionResult.applied(state, f"Initiative bonus set to {bonus}")


# =============================================================================
# Ability Scores & Ability Points
# =============================================================================


def set_ability_score(snapshot: CharacterSnapshot, ability: str, value: int) -> TransitionResult:
    """Set a raw ability score.

    Args:
        snapshot: The character.
        ability: Ability code or name.
        value: New raw score (1-30).

    Returns:
        The transition result.
    """
    try:
        parsed = Ability.parse(ability)
    except ValueError as exc:
        return TransitionResult.rejected(snapshot, str(exc))
    if not MIN_ABILITY_SCORE <= value <= MAX_ABILITY_SCORE:
        return TransitionResult.rejected(
            snapshot,
            f"Ability score must be between {MIN_ABILITY_SCORE} and {MAX_ABILITY_SCORE}",
        )
    state = working_copy(snapshot)
    setattr(state.abilities, parsed.field_name, value)
    return TransitionResult.applied(state, f"{parsed.abbreviation} set to {value}")


def grant_ability_points(snapshot: CharacterSnapshot, amount: int) -> TransitionResult:
    """Add points to the unspent ability point pool."""
    if amount <= 0:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.ability_points += amount
    return TransitionResult.applied(state, f"{state.ability_points} ability points available")


def spend_ability_points(
    snapshot: CharacterSnapshot,
    distribution: Iterable[tuple[str, int]],
) -> TransitionResult:
    """Spend pooled ability points on raw scores.

    Args:
        snapshot: The character.
        distribution: ``(ability, amount)`` pairs.

    Returns:
        The transition result. The whole distribution is rejected when
        the pool is too small, an ability is unknown, or any score would
        pass the configured cap.
    """
    distribution = list(distribution)
    total = sum(amount for _, amount in distribution)
    if total > snapshot.ability_points:
        return TransitionResult.rejected(snapshot, "Not enough ability points")

    cap = get_settings().rules.ability_score_cap
    updates: dict[Ability, int] = {}
    for stat, amount in distribution:
        try:
            ability = Ability.parse(stat)
        except ValueError:
            return TransitionResult.rejected(snapshot, f"Invalid ability: {stat}")
        if amount < 0:
            return TransitionResult.rejected(snapshot, f"Invalid amount for {stat}: {amount}")
        new_value = updates.get(ability, snapshot.abilities.get(ability)) + amount
        if new_value > cap:
            return TransitionResult.rejected(snapshot, f"{stat} would exceed maximum of {cap}")
        updates[ability] = new_value

    state = working_copy(snapshot)
    for ability, value in updates.items():
        setattr(state.abilities, ability.field_name, value)
    state.ability_points -= total
    logger.debug("Ability points spent", spent=total, remaining=state.ability_points)
    return TransitionResult.applied(state, f"Spent {total} ability points")


# =============================================================================
# Currency
# =============================================================================


def make_change(total_cp: int, use_electrum: bool = False) -> Currency:
    """Convert a copper total into the fewest coins.

    Args:
        total_cp: Total value in copper pieces.
        use_electrum: Use electrum instead of silver.

    Returns:
        The coin distribution.

    Example:
        >>> make_change(1234).model_dump()
        {'cp': 4, 'sp': 3, 'ep': 0, 'gp': 2, 'pp': 1}
    """
    order = CURRENCY_ORDER_ELECTRUM if use_electrum else CURRENCY_ORDER
    remaining = max(0, total_cp)
    coins: dict[str, int] = {}
    for denomination in order:
        coins[denomination], remaining = divmod(remaining, CURRENCY_VALUES_CP[denomination])
    return Currency(**coins)


def set_currency(snapshot: CharacterSnapshot, denomination: Denomination, amount: int) -> TransitionResult:
    """Set the coin count of one denomination (floored at zero)."""
    state = working_copy(snapshot)
    setattr(state.currency, Denomination(denomination).value, max(0, amount))
    return TransitionResult.applied(state, f"{denomination} set to {max(0, amount)}")


def earn_currency(
    snapshot: CharacterSnapshot,
    amount: int,
    denomination: Denomination = Denomination.GP,
) -> TransitionResult:
    """Add coins and redistribute the purse into the fewest coins."""
    if amount <= 0:
        return TransitionResult.rejected(snapshot, "Amount must be positive")
    gained = amount * CURRENCY_VALUES_CP[Denomination(denomination).value]
    state = working_copy(snapshot)
    state.currency = make_change(snapshot.currency.total_cp + gained, get_settings().rules.use_electrum)
    return TransitionResult.applied(state, f"Earned {amount} {denomination}")


def spend_currency(
    snapshot: CharacterSnapshot,
    amount: int,
    denomination: Denomination = Denomination.GP,
) -> TransitionResult:
    """Pay coins from the purse, making change as needed.

    Returns:
        The transition result; rejected with "Insufficient funds" when the
        purse is worth less than the cost.
    """
    if amount <= 0:
        return TransitionResult.rejected(snapshot, "Amount must be positive")
    cost = amount * CURRENCY_VALUES_CP[Denomination(denomination).value]
    if cost > snapshot.currency.total_cp:
        return TransitionResult.rejected(snapshot, "Insufficient funds")
    state = working_copy(snapshot)
    state.currency = make_change(snapshot.currency.total_cp - cost, get_settings().rules.use_electrum)
    return TransitionResult.applied(state, f"Spent {amount} {denomination}")


# =============================================================================
# Conditions, Languages & Spells
# =============================================================================


def add_condition(snapshot: CharacterSnapshot, condition: str) -> TransitionResult:
    """Add a condition (case-insensitive, no duplicates)."""
    if condition.lower() in (c.lower() for c in snapshot.conditions):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.conditions.append(condition)
    return TransitionResult.applied(state, f"Condition added: {condition}")


def remove_condition(snapshot: CharacterSnapshot, condition: str) -> TransitionResult:
    """Remove a condition."""
    remaining = [c for c in snapshot.conditions if c.lower() != condition.lower()]
    if len(remaining) == len(snapshot.conditions):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.conditions = remaining
    return TransitionResult.applied(state, f"Condition removed: {condition}")


def add_language(snapshot: CharacterSnapshot, language: str) -> TransitionResult:
    """Learn a language."""
    if language.lower() in (lang.lower() for lang in snapshot.languages):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.languages.append(language)
    return TransitionResult.applied(state, f"Language added: {language}")


def remove_language(snapshot: CharacterSnapshot, language: str) -> TransitionResult:
    """Forget a language."""
    remaining = [lang for lang in snapshot.languages if lang.lower() != language.lower()]
    if len(remaining) == len(snapshot.languages):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.languages = remaining
    return TransitionResult.applied(state, f"Language removed: {language}")


def _find_spell(snapshot: CharacterSnapshot, spell_id: str) -> KnownSpell | None:
    return next((s for s in snapshot.spells if s.id == spell_id), None)


def learn_spell(snapshot: CharacterSnapshot, spell: KnownSpell) -> TransitionResult:
    """Add a spell to the known list."""
    if _find_spell(snapshot, spell.id) is not None:
        return TransitionResult.unchanged(snapshot, f"{spell.name} is already known")
    state = working_copy(snapshot)
    state.spells.append(spell.model_copy())
    return TransitionResult.applied(state, f"Learned {spell.name}")


def forget_spell(snapshot: CharacterSnapshot, spell_id: str) -> TransitionResult:
    """Remove a spell, ending concentration on it."""
    if _find_spell(snapshot, spell_id) is None:
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.spells = [s for s in state.spells if s.id != spell_id]
    if state.concentrating_on == spell_id:
        state.concentrating_on = None
    return TransitionResult.applied(state, f"Forgot {spell_id}")


def toggle_spell_prepared(snapshot: CharacterSnapshot, spell_id: str) -> TransitionResult:
    """Flip a known spell's prepared flag."""
    if _find_spell(snapshot, spell_id) is None:
        return TransitionResult.rejected(snapshot, f"Spell not known: {spell_id}")
    state = working_copy(snapshot)
    spell = _find_spell(state, spell_id)
    spell.prepared = not spell.prepared
    return TransitionResult.applied(state, f"{spell.name} {'prepared' if spell.prepared else 'unprepared'}")


def set_concentration(snapshot: CharacterSnapshot, spell_id: str | None) -> TransitionResult:
    """Concentrate on a known spell, replacing any current concentration.

    Passing None ends concentration.
    """
    if spell_id is not None and _find_spell(snapshot, spell_id) is None:
        return TransitionResult.rejected(snapshot, f"Spell not known: {spell_id}")
    state = working_copy(snapshot)
    state.concentrating_on = spell_id
    if spell_id is None:
        return TransitionResult.applied(state, "Concentration ended")
    return TransitionResult.applied(state, f"Concentrating on {spell_id}")


# =============================================================================
# Feats, Proficiencies & Subclass
# =============================================================================


def add_feat(snapshot: CharacterSnapshot, feat: ModifierSource) -> TransitionResult:
    """Add a feat; its modifiers apply immediately."""
    if any(f.id == feat.id for f in snapshot.feats):
        return TransitionResult.unchanged(snapshot, f"{feat.name or feat.id} already taken")
    state = working_copy(snapshot)
    state.feats.append(feat.model_copy(deep=True))
    return TransitionResult.applied(state, f"Feat added: {feat.name or feat.id}")


def remove_feat(snapshot: CharacterSnapshot, feat_id: str) -> TransitionResult:
    """Remove a feat."""
    if not any(f.id == feat_id for f in snapshot.feats):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    state.feats = [f for f in state.feats if f.id != feat_id]
    state.hp_current = min(state.hp_current, effective_max_hp(state))
    return TransitionResult.applied(state, f"Feat removed: {feat_id}")


def add_proficiency(snapshot: CharacterSnapshot, kind: str, name: str) -> TransitionResult:
    """Add a manual armor, weapon or tool proficiency."""
    if kind not in PROFICIENCY_KINDS:
        return TransitionResult.rejected(snapshot, f"Invalid proficiency kind: {kind}")
    current = getattr(snapshot.proficiencies, kind)
    if name.lower() in (p.lower() for p in current):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    getattr(state.proficiencies, kind).append(name)
    return TransitionResult.applied(state, f"Proficiency added: {name}")


def remove_proficiency(snapshot: CharacterSnapshot, kind: str, name: str) -> TransitionResult:
    """Remove a manual armor, weapon or tool proficiency."""
    if kind not in PROFICIENCY_KINDS:
        return TransitionResult.rejected(snapshot, f"Invalid proficiency kind: {kind}")
    current = getattr(snapshot.proficiencies, kind)
    remaining = [p for p in current if p.lower() != name.lower()]
    if len(remaining) == len(current):
        return TransitionResult.unchanged(snapshot)
    state = working_copy(snapshot)
    setattr(state.proficiencies, kind, remaining)
    return TransitionResult.applied(state, f"Proficiency removed: {name}")


def toggle_skill(snapshot: CharacterSnapshot, skill: str) -> TransitionResult:
    """Cycle a manual skill rank: none, proficient, expertise, none."""
    key = skill.strip().lower().replace(" ", "_")
    if key not in SKILL_ABILITIES:
        return TransitionResult.rejected(snapshot, f"Invalid skill: {skill}")
    state = working_copy(snapshot)
    ranks = dict(state.proficiencies.skills)
    current = ranks.get(key)
    if current is None:
        ranks[key] = "proficient"
    elif current == "proficient":
        ranks[key] = "expertise"
    else:
        del ranks[key]
    state.proficiencies.skills = ranks
    return TransitionResult.applied(state, f"{key} is now {ranks.get(key, 'untrained')}")


def toggle_saving_throw(snapshot: CharacterSnapshot, ability: str) -> TransitionResult:
    """Flip a manual saving throw proficiency."""
    try:
        parsed = Ability.parse(ability)
    except ValueError as exc:
        return TransitionResult.rejected(snapshot, str(exc))
    state = working_copy(snapshot)
    flags = dict(state.proficiencies.saving_throws)
    if flags.get(parsed.value):
        del flags[parsed.value]
    else:
        flags[parsed.value] = True
    state.proficiencies.saving_throws = flags
    return TransitionResult.applied(state, f"{parsed.abbreviation} saving throw toggled")


def set_subclass(
    snapshot: CharacterSnapshot,
    class_id: str,
    subclass: SubclassDefinition | None,
) -> TransitionResult:
    """Pick (or with None, clear) the subclass of one of the character's classes."""
    if snapshot.find_class(class_id) is None:
        return TransitionResult.rejected(snapshot, f"Class not found: {class_id}")
    state = working_copy(snapshot)
    state.find_class(class_id).subclass = subclass
    name = subclass.name if subclass is not None else "none"
    return TransitionResult.applied(state, f"Subclass of {class_id} set to {name}")


__all__ = [
    "PROFICIENCY_KINDS",
    "take_damage",
    "heal",
    "set_hp",
    "set_max_hp",
    "set_temp_hp",
    "set_death_saves",
    "set_exhaustion",
    "set_inspiration",
    "toggle_inspiration",
    "set_armor_class_override",
    "set_speed",
    "set_initiative_bonus",
    "set_ability_score",
    "grant_ability_points",
    "spend_ability_points",
    "make_change",
    "set_currency",
    "earn_currency",
    "spend_currency",
    "add_condition",
    "remove_condition",
    "add_language",
    "remove_language",
    "learn_spell",
    "forget_spell",
    "toggle_spell_prepared",
    "set_concentration",
    "add_feat",
    "remove_feat",
    "add_proficiency",
    "remove_proficiency",
    "toggle_skill",
    "toggle_saving_throw",
    "set_subclass",
]
