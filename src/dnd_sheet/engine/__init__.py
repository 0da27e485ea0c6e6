"""Rules engine for the character sheet.

Derived-stat queries and pure state transitions over a
``CharacterSnapshot``.

Submodules:
    resolver: Modifier collection and stat resolution.
    proficiency: Proficiency and language aggregation.
    states: Posture states of the equipped gear.
    armor_class: AC formula selection.
    formula: Safe arithmetic formulas for resource amounts.
    spell_slots: Multiclass spell slots and pact magic.
    equipment: Equip, attune and identify transitions.
    resources: Class resources, slots, hit dice and rests.
    progression: Experience and level-up.
    vitals: HP, ability scores, currency and character details.
    derived: The ``CharacterSheet`` read-only façade.
    commands: Command models and ``apply_command``.

Example:
    >>> from dnd_sheet.engine import CharacterSheet, apply_command
    >>> from dnd_sheet.engine.commands import UseResource
    >>> result = apply_command(snapshot, UseResource(resource_id="rage"))
    >>> CharacterSheet(result.state).effective_max_hp()
    25
"""

from __future__ import annotations

from dnd_sheet.engine.armor_class import ArmorClass, calculate_armor_class
from dnd_sheet.engine.commands import COMMAND_ADAPTER, Command, apply_command, parse_command
from dnd_sheet.engine.derived import (
    CharacterSheet,
    Encumbrance,
    SavingThrow,
    SkillCheck,
    SpellcastingStats,
)
from dnd_sheet.engine.formula import evaluate, parse_formula, resolve_amount
from dnd_sheet.engine.progression import proficiency_bonus
from dnd_sheet.engine.resolver import collect_modifier_sources, effective_max_hp, resolve_stat
from dnd_sheet.engine.spell_slots import PactMagic, max_spell_slots, pact_magic
from dnd_sheet.engine.states import detect_states
from dnd_sheet.engine.transition import TransitionResult, working_copy


__all__ = [
    # Transitions
    "TransitionResult",
    "working_copy",
    "Command",
    "COMMAND_ADAPTER",
    "parse_command",
    "apply_command",
    # Derived stats
    "CharacterSheet",
    "SavingThrow",
    "SkillCheck",
    "SpellcastingStats",
    "Encumbrance",
    "ArmorClass",
    "calculate_armor_class",
    "collect_modifier_sources",
    "resolve_stat",
    "effective_max_hp",
    "detect_states",
    "proficiency_bonus",
    # Spellcasting
    "PactMagic",
    "max_spell_slots",
    "pact_magic",
    # Formulas
    "parse_formula",
    "evaluate",
    "resolve_amount",
]
