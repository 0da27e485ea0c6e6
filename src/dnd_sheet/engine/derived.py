"""Derived stat façade.

``CharacterSheet`` wraps a snapshot and answers every read-only question
presentation needs: resolved ability scores, armor class, effective
maximum HP, saving throws, skills, spellcasting stats, encumbrance and
posture states. Modifier sources are collected once per sheet.

Example:
    >>> sheet = CharacterSheet(snapshot)
    >>> sheet.armor_class().value
    15
"""

from __future__ import annotations

from functools import cached_property

from pydantic import BaseModel, ConfigDict

from dnd_sheet.core.config import get_settings
from dnd_sheet.core.constants import BASE_SPELL_SAVE_DC, SKILL_ABILITIES
from dnd_sheet.models.character import CharacterSnapshot, calculate_modifier
from dnd_sheet.models.enums import Ability, ItemCategory, PostureState
from dnd_sheet.models.modifiers import BonusModifier, ModifierSource
from dnd_sheet.engine.armor_class import ArmorClass, calculate_armor_class
from dnd_sheet.engine.proficiency import (
    granted_languages,
    has_expertise,
    has_skill_proficiency,
    is_proficient_with,
    saving_throw_proficient,
)
from dnd_sheet.engine.progression import proficiency_bonus
from dnd_sheet.engine.resolver import (
    collect_modifier_sources,
    effective_max_hp,
    iter_modifiers,
    resolve_ability_score,
    resolve_stat,
)
from dnd_sheet.engine.resources import ResourceStatus, resource_statuses
from dnd_sheet.engine.spell_slots import PactMagic, max_spell_slots, pact_magic
from dnd_sheet.engine.states import detect_states


SAVE_BONUS_TARGETS = ("saving_throws", "all_saving_throws")


# =============================================================================
# Result Models
# =============================================================================


class SavingThrow(BaseModel):
    """Resolved saving throw for one ability."""

    model_config = ConfigDict(frozen=True)

    ability: Ability
    total: int
    is_proficient: bool
    bonus: int = 0


class SkillCheck(BaseModel):
    """Resolved skill modifier."""

    model_config = ConfigDict(frozen=True)

    skill: str
    ability: Ability
    total: int
    is_proficient: bool
    is_expertise: bool
    bonus: int = 0

    @property
    def passive(self) -> int:
        """Passive score (10 + total)."""
        return 10 + self.total


class SpellcastingStats(BaseModel):
    """Spellcasting numbers for one spellcasting class.

    Attributes:
        class_id: Class the stats belong to.
        ability: Spellcasting ability.
        modifier: Modifier of the resolved spellcasting ability score.
        save_dc: ``8 + modifier + proficiency bonus``.
        attack_bonus: ``modifier + proficiency bonus``.
    """

    model_config = ConfigDict(frozen=True)

    class_id: str
    ability: Ability
    modifier: int
    save_dc: int
    attack_bonus: int


class Encumbrance(BaseModel):
    """Carried weight against carrying capacity."""

    model_config = ConfigDict(frozen=True)

    current: float
    max: int

    @property
    def is_encumbered(self) -> bool:
        """Whether the carried weight exceeds capacity."""
        return self.current > self.max


# =============================================================================
# Character Sheet
# =============================================================================


class CharacterSheet:
    """Read-only derived view of a character snapshot.

    Attributes:
        snapshot: The character the sheet resolves.
    """

    def __init__(self, snapshot: CharacterSnapshot) -> None:
        self.snapshot = snapshot

    @cached_property
    def sources(self) -> list[ModifierSource]:
        """Active modifier sources."""
        return collect_modifier_sources(self.snapshot)

    @property
    def level(self) -> int:
        return self.snapshot.total_level

    @property
    def proficiency_bonus(self) -> int:
        """Proficiency bonus for the total character level."""
        return proficiency_bonus(self.level)

    # -------------------------------------------------------------------------
    # Abilities
    # -------------------------------------------------------------------------

    def ability_score(self, ability: Ability | str) -> int:
        """Resolved ability score."""
        return resolve_ability_score(self.snapshot, _ability(ability), self.sources)

    def ability_modifier(self, ability: Ability | str) -> int:
        """Modifier of the resolved ability score."""
        return calculate_modifier(self.ability_score(ability))

    def ability_scores(self) -> dict[Ability, int]:
        """All six resolved ability scores."""
        return {ability: self.ability_score(ability) for ability in Ability}

    # -------------------------------------------------------------------------
    # Combat
    # -------------------------------------------------------------------------

    def armor_class(self) -> ArmorClass:
        """Resolved armor class and armor proficiency."""
        return calculate_armor_class(self.snapshot, self.sources)

    def effective_max_hp(self) -> int:
        """Maximum HP including per-level and flat HP bonuses."""
        return effective_max_hp(self.snapshot, self.sources)

    def initiative(self) -> int:
        """DEX modifier plus the stored and modifier-granted initiative bonuses."""
        granted = resolve_stat(0, "initiative", self.sources)
        return self.ability_modifier(Ability.DEX) + self.snapshot.initiative_bonus + granted

    def speed(self) -> int:
        """Walking speed after modifiers."""
        return resolve_stat(self.snapshot.speed, "speed", self.sources)

    def states(self) -> frozenset[PostureState]:
        """Posture states of the equipped gear."""
        return detect_states(self.snapshot.inventory)

    # -------------------------------------------------------------------------
    # Saves & Skills
    # -------------------------------------------------------------------------

    def _bonus_total(self, targets: tuple[str, ...]) -> int:
        normalized = {t.replace(" ", "_").lower() for t in targets}
        return sum(
            modifier.value
            for modifier in iter_modifiers(self.sources)
            if isinstance(modifier, BonusModifier)
            and modifier.target.replace(" ", "_").lower() in normalized
        )

    def saving_throw(self, ability: Ability | str) -> SavingThrow:
        """Resolve a saving throw.

        Args:
            ability: Ability code or name.

        Returns:
            The saving throw with ability modifier, bonuses targeting
            ``<ability>_save`` or all saving throws, and proficiency.
        """
        parsed = _ability(ability)
        proficient = saving_throw_proficient(self.snapshot, parsed, self.sources)
        bonus = self._bonus_total((f"{parsed.value}_save", *SAVE_BONUS_TARGETS))
        total = self.ability_modifier(parsed) + bonus
        if proficient:
            total += self.proficiency_bonus
        return SavingThrow(ability=parsed, total=total, is_proficient=proficient, bonus=bonus)

    def saving_throw_modifier(self, ability: Ability | str) -> int:
        """Total saving throw modifier for an ability."""
        return self.saving_throw(ability).total

    def skill(self, skill: str) -> SkillCheck:
        """Resolve a skill check.

        Expertise doubles the proficiency bonus. Manual skill ranks and
        modifier grants both count.

        Raises:
            ValueError: If the skill is unknown.
        """
        key = skill.strip().lower().replace(" ", "_")
        if key not in SKILL_ABILITIES:
            msg = f"Invalid skill: {skill}"
            raise ValueError(msg)
        ability = Ability(SKILL_ABILITIES[key])
        rank = self.snapshot.proficiencies.skills.get(key)
        expertise = rank == "expertise" or has_expertise(key, self.sources)
        proficient = expertise or rank == "proficient" or has_skill_proficiency(key, self.sources)
        bonus = self._bonus_total((key,))

        total = self.ability_modifier(ability) + bonus
        if expertise:
            total += self.proficiency_bonus * 2
        elif proficient:
            total += self.proficiency_bonus
        return SkillCheck(
            skill=key,
            ability=ability,
            total=total,
            is_proficient=proficient,
            is_expertise=expertise,
            bonus=bonus,
        )

    def skill_modifier(self, skill: str) -> int:
        """Total modifier for a skill."""
        return self.skill(skill).total

    def languages(self) -> list[str]:
        """Known languages, stored and granted, without duplicates."""
        seen: dict[str, str] = {}
        for language in [*self.snapshot.languages, *granted_languages(self.sources)]:
            seen.setdefault(language.lower(), language)
        return list(seen.values())

    # -------------------------------------------------------------------------
    # Spellcasting & Resources
    # -------------------------------------------------------------------------

    def spellcasting_stats(self) -> list[SpellcastingStats]:
        """Spell save DC and attack bonus for each spellcasting class."""
        stats: list[SpellcastingStats] = []
        for character_class in self.snapshot.classes:
            subclass = character_class.subclass
            ability = character_class.definition.spellcasting_ability
            if ability is None and subclass is not None:
                ability = subclass.spellcasting_ability
            if ability is None:
                continue
            modifier = self.ability_modifier(ability)
            stats.append(
                SpellcastingStats(
                    class_id=character_class.class_id,
                    ability=ability,
                    modifier=modifier,
                    save_dc=BASE_SPELL_SAVE_DC + modifier + self.proficiency_bonus,
                    attack_bonus=modifier + self.proficiency_bonus,
                )
            )
        return stats

    def max_spell_slots(self) -> dict[int, int]:
        """Standard spell slots by slot level."""
        return max_spell_slots(self.snapshot)

    def remaining_spell_slots(self) -> dict[int, int]:
        """Unspent standard spell slots by slot level."""
        used = self.snapshot.used_spell_slots
        return {level: max(0, count - used.get(level, 0)) for level, count in self.max_spell_slots().items()}

    def pact_magic(self) -> PactMagic | None:
        """Pact slot pool, if any."""
        return pact_magic(self.snapshot)

    def resources(self) -> list[ResourceStatus]:
        """Usage of every unlocked class resource."""
        return resource_statuses(self.snapshot)

    def can_cast_spells(self) -> bool:
        """Spellcasting is blocked while wearing armor without proficiency."""
        return all(
            is_proficient_with(self.snapshot, entry.item, self.sources)
            for entry in self.snapshot.equipped_entries
            if entry.item.category == ItemCategory.ARMOR
        )

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def encumbrance(self) -> Encumbrance:
        """Carried weight and carrying capacity.

        Items with a fixed weight count once regardless of quantity.
        Capacity is resolved STR times the configured multiplier.
        """
        current = sum(
            entry.item.weight if entry.item.fixed_weight else entry.item.weight * entry.quantity
            for entry in self.snapshot.inventory
        )
        multiplier = get_settings().rules.carry_capacity_multiplier
        return Encumbrance(current=current, max=self.ability_score(Ability.STR) * multiplier)


def _ability(value: Ability | str) -> Ability:
    if isinstance(value, Ability):
        return value
    return Ability.parse(value)


__all__ = [
    "SavingThrow",
    "SkillCheck",
    "SpellcastingStats",
    "Encumbrance",
    "CharacterSheet",
]
