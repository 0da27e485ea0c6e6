"""Commands: every character mutation as a validated request.

A command is a frozen pydantic model tagged by its ``command`` field.
``apply_command`` dispatches it to the matching pure transition and
returns the TransitionResult; the input snapshot is never mutated.

Example:
    >>> result = apply_command(snapshot, EquipItem(entry_id="inv-1"))
    >>> result.success
    True
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from dnd_sheet.core.exceptions import CommandError, ValidationError
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot, ClassDefinition, KnownSpell, SubclassDefinition
from dnd_sheet.models.enums import Denomination
from dnd_sheet.models.items import ItemDefinition
from dnd_sheet.models.modifiers import ModifierSource
from dnd_sheet.models.resources import ResourceUsage
from dnd_sheet.engine import equipment, progression, resources, vitals
from dnd_sheet.engine.transition import TransitionResult


logger = get_logger(__name__)


class _CommandBase(BaseModel):
    """Fields shared by every command."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    command_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Equipment Commands
# =============================================================================


class EquipItem(_CommandBase):
    command: Literal["equip_item"] = "equip_item"
    entry_id: str


class UnequipItem(_CommandBase):
    command: Literal["unequip_item"] = "unequip_item"
    entry_id: str


class ToggleEquipped(_CommandBase):
    command: Literal["toggle_equipped"] = "toggle_equipped"
    entry_id: str


class AttuneItem(_CommandBase):
    command: Literal["attune_item"] = "attune_item"
    entry_id: str


class UnattuneItem(_CommandBase):
    command: Literal["unattune_item"] = "unattune_item"
    entry_id: str


class IdentifyItem(_CommandBase):
    command: Literal["identify_item"] = "identify_item"
    entry_id: str


class SetItemQuantity(_CommandBase):
    command: Literal["set_item_quantity"] = "set_item_quantity"
    entry_id: str
    quantity: int


class UseItem(_CommandBase):
    command: Literal["use_item"] = "use_item"
    entry_id: str


class AddItem(_CommandBase):
    command: Literal["add_item"] = "add_item"
    item: ItemDefinition
    quantity: int = 1
    entry_id: str | None = None


class RemoveItem(_CommandBase):
    command: Literal["remove_item"] = "remove_item"
    entry_id: str


# =============================================================================
# Resource & Rest Commands
# =============================================================================


class UseResource(_CommandBase):
    command: Literal["use_resource"] = "use_resource"
    resource_id: str


class RestoreResource(_CommandBase):
    command: Literal["restore_resource"] = "restore_resource"
    resource_id: str
    amount: int = Field(default=1, ge=1)


class RemoveResourceModifier(_CommandBase):
    command: Literal["remove_resource_modifier"] = "remove_resource_modifier"
    modifier_id: str


class MirrorResourceUsages(_CommandBase):
    """Adopt authoritative usage rows returned by the persistence side."""

    command: Literal["mirror_resource_usages"] = "mirror_resource_usages"
    usages: list[ResourceUsage]


class ConsumeSpellSlot(_CommandBase):
    command: Literal["consume_spell_slot"] = "consume_spell_slot"
    slot_level: int = Field(ge=1, le=9)


class RestoreSpellSlot(_CommandBase):
    command: Literal["restore_spell_slot"] = "restore_spell_slot"
    slot_level: int = Field(ge=1, le=9)


class ConsumePactSlot(_CommandBase):
    command: Literal["consume_pact_slot"] = "consume_pact_slot"


class RestorePactSlot(_CommandBase):
    command: Literal["restore_pact_slot"] = "restore_pact_slot"


class SpendHitDie(_CommandBase):
    command: Literal["spend_hit_die"] = "spend_hit_die"


class ShortRest(_CommandBase):
    command: Literal["short_rest"] = "short_rest"


class LongRest(_CommandBase):
    command: Literal["long_rest"] = "long_rest"


# =============================================================================
# Vitals Commands
# =============================================================================


class TakeDamage(_CommandBase):
    command: Literal["take_damage"] = "take_damage"
    amount: int


class Heal(_CommandBase):
    command: Literal["heal"] = "heal"
    amount: int


class SetHp(_CommandBase):
    command: Literal["set_hp"] = "set_hp"
    hp: int


class SetMaxHp(_CommandBase):
    command: Literal["set_max_hp"] = "set_max_hp"
    hp_max: int


class SetTempHp(_CommandBase):
    command: Literal["set_temp_hp"] = "set_temp_hp"
    amount: int


class SetDeathSaves(_CommandBase):
    command: Literal["set_death_saves"] = "set_death_saves"
    successes: int
    failures: int


class SetExhaustion(_CommandBase):
    command: Literal["set_exhaustion"] = "set_exhaustion"
    level: int


class SetInspiration(_CommandBase):
    command: Literal["set_inspiration"] = "set_inspiration"
    inspired: bool


class SetArmorClassOverride(_CommandBase):
    command: Literal["set_armor_class_override"] = "set_armor_class_override"
    value: int | None = None


class SetSpeed(_CommandBase):
    command: Literal["set_speed"] = "set_speed"
    speed: int


class SetInitiativeBonus(_CommandBase):
    command: Literal["set_initiative_bonus"] = "set_initiative_bonus"
    bonus: int


class SetAbilityScore(_CommandBase):
    command: Literal["set_ability_score"] = "set_ability_score"
    ability: str
    value: int


class GrantAbilityPoints(_CommandBase):
    command: Literal["grant_ability_points"] = "grant_ability_points"
    amount: int


class AbilityPointSpend(BaseModel):
    """Points put into one ability."""

    model_config = ConfigDict(frozen=True)

    stat: str
    amount: int


class SpendAbilityPoints(_CommandBase):
    command: Literal["spend_ability_points"] = "spend_ability_points"
    distribution: list[AbilityPointSpend]


class SetCurrency(_CommandBase):
    command: Literal["set_currency"] = "set_currency"
    denomination: Denomination
    amount: int


class EarnCurrency(_CommandBase):
    command: Literal["earn_currency"] = "earn_currency"
    amount: int
    denomination: Denomination = Denomination.GP


class SpendCurrency(_CommandBase):
    command: Literal["spend_currency"] = "spend_currency"
    amount: int
    denomination: Denomination = Denomination.GP


# =============================================================================
# Character Detail Commands
# =============================================================================


class AddCondition(_CommandBase):
    command: Literal["add_condition"] = "add_condition"
    condition: str


class RemoveCondition(_CommandBase):
    command: Literal["remove_condition"] = "remove_condition"
    condition: str


class AddLanguage(_CommandBase):
    command: Literal["add_language"] = "add_language"
    language: str


class RemoveLanguage(_CommandBase):
    command: Literal["remove_language"] = "remove_language"
    language: str


class LearnSpell(_CommandBase):
    command: Literal["learn_spell"] = "learn_spell"
    spell: KnownSpell


class ForgetSpell(_CommandBase):
    command: Literal["forget_spell"] = "forget_spell"
    spell_id: str


class ToggleSpellPrepared(_CommandBase):
    command: Literal["toggle_spell_prepared"] = "toggle_spell_prepared"
    spell_id: str


class SetConcentration(_CommandBase):
    command: Literal["set_concentration"] = "set_concentration"
    spell_id: str | None = None


class AddFeat(_CommandBase):
    command: Literal["add_feat"] = "add_feat"
    feat: ModifierSource


class RemoveFeat(_CommandBase):
    command: Literal["remove_feat"] = "remove_feat"
    feat_id: str


class AddProficiency(_CommandBase):
    command: Literal["add_proficiency"] = "add_proficiency"
    kind: str
    name: str


class RemoveProficiency(_CommandBase):
    command: Literal["remove_proficiency"] = "remove_proficiency"
    kind: str
    name: str


class ToggleSkill(_CommandBase):
    command: Literal["toggle_skill"] = "toggle_skill"
    skill: str


class ToggleSavingThrow(_CommandBase):
    command: Literal["toggle_saving_throw"] = "toggle_saving_throw"
    ability: str


class SetSubclass(_CommandBase):
    command: Literal["set_subclass"] = "set_subclass"
    class_id: str
    subclass: SubclassDefinition | None = None


# =============================================================================
# Progression Commands
# =============================================================================


class SetExperience(_CommandBase):
    command: Literal["set_experience"] = "set_experience"
    experience: int


class AddExperience(_CommandBase):
    command: Literal["add_experience"] = "add_experience"
    amount: int


class LevelUp(_CommandBase):
    command: Literal["level_up"] = "level_up"
    class_id: str
    hp_gain: int = 0
    definition: ClassDefinition | None = None


Command = Annotated[
    Union[
        EquipItem,
        UnequipItem,
        ToggleEquipped,
        AttuneItem,
        UnattuneItem,
        IdentifyItem,
        SetItemQuantity,
        UseItem,
        AddItem,
        RemoveItem,
        UseResource,
        RestoreResource,
        RemoveResourceModifier,
        MirrorResourceUsages,
        ConsumeSpellSlot,
        RestoreSpellSlot,
        ConsumePactSlot,
        RestorePactSlot,
        SpendHitDie,
        ShortRest,
        LongRest,
        TakeDamage,
        Heal,
        SetHp,
        SetMaxHp,
        SetTempHp,
        SetDeathSaves,
        SetExhaustion,
        SetInspiration,
        SetArmorClassOverride,
        SetSpeed,
        SetInitiativeBonus,
        SetAbilityScore,
        GrantAbilityPoints,
        SpendAbilityPoints,
        SetCurrency,
        EarnCurrency,
        SpendCurrency,
        AddCondition,
        RemoveCondition,
        AddLanguage,
        RemoveLanguage,
        LearnSpell,
        ForgetSpell,
        ToggleSpellPrepared,
        SetConcentration,
        AddFeat,
        RemoveFeat,
        AddProficiency,
        RemoveProficiency,
        ToggleSkill,
        ToggleSavingThrow,
        SetSubclass,
        SetExperience,
        AddExperience,
        LevelUp,
    ],
    Field(discriminator="command"),
]
"""Closed union of all commands."""

COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)

REST_COMMANDS = (ShortRest, LongRest)


def parse_command(payload: dict[str, Any]) -> Command:
    """Validate a raw command payload.

    Raises:
        ValidationError: If the payload matches no command.
    """
    try:
        return COMMAND_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid command payload ({exc.error_count()} errors)",
            field_name="command",
            invalid_value=payload.get("command"),
        ) from exc


# =============================================================================
# Dispatch
# =============================================================================


Handler = Callable[[CharacterSnapshot, Any], TransitionResult]

_HANDLERS: dict[str, Handler] = {
    # Equipment
    "equip_item": lambda s, c: equipment.equip_item(s, c.entry_id),
    "unequip_item": lambda s, c: equipment.unequip_item(s, c.entry_id),
    "toggle_equipped": lambda s, c: equipment.toggle_equipped(s, c.entry_id),
    "attune_item": lambda s, c: equipment.attune_item(s, c.entry_id),
    "unattune_item": lambda s, c: equipment.unattune_item(s, c.entry_id),
    "identify_item": lambda s, c: equipment.identify_item(s, c.entry_id),
    "set_item_quantity": lambda s, c: equipment.set_item_quantity(s, c.entry_id, c.quantity),
    "use_item": lambda s, c: equipment.use_item(s, c.entry_id),
    "add_item": lambda s, c: equipment.add_item(s, c.item, c.quantity, c.entry_id),
    "remove_item": lambda s, c: equipment.remove_item(s, c.entry_id),
    # Resources and rests
    "use_resource": lambda s, c: resources.use_resource(s, c.resource_id),
    "restore_resource": lambda s, c: resources.restore_resource(s, c.resource_id, c.amount),
    "remove_resource_modifier": lambda s, c: resources.remove_resource_modifier(s, c.modifier_id),
    "mirror_resource_usages": lambda s, c: resources.mirror_resource_usages(s, c.usages),
    "consume_spell_slot": lambda s, c: resources.consume_spell_slot(s, c.slot_level),
    "restore_spell_slot": lambda s, c: resources.restore_spell_slot(s, c.slot_level),
    "consume_pact_slot": lambda s, c: resources.consume_pact_slot(s),
    "restore_pact_slot": lambda s, c: resources.restore_pact_slot(s),
    "spend_hit_die": lambda s, c: resources.spend_hit_die(s),
    "short_rest": lambda s, c: resources.short_rest(s),
    "long_rest": lambda s, c: resources.long_rest(s),
    # Vitals
    "take_damage": lambda s, c: vitals.take_damage(s, c.amount),
    "heal": lambda s, c: vitals.heal(s, c.amount),
    "set_hp": lambda s, c: vitals.set_hp(s, c.hp),
    "set_max_hp": lambda s, c: vitals.set_max_hp(s, c.hp_max),
    "set_temp_hp": lambda s, c: vitals.set_temp_hp(s, c.amount),
    "set_death_saves": lambda s, c: vitals.set_death_saves(s, c.successes, c.failures),
    "set_exhaustion": lambda s, c: vitals.set_exhaustion(s, c.level),
    "set_inspiration": lambda s, c: vitals.set_inspiration(s, c.inspired),
    "set_armor_class_override": lambda s, c: vitals.set_armor_class_override(s, c.value),
    "set_speed": lambda s, c: vitals.set_speed(s, c.speed),
    "set_initiative_bonus": lambda s, c: vitals.set_initiative_bonus(s, c.bonus),
    "set_ability_score": lambda s, c: vitals.set_ability_score(s, c.ability, c.value),
    "grant_ability_points": lambda s, c: vitals.grant_ability_points(s, c.amount),
    "spend_ability_points": lambda s, c: vitals.spend_ability_points(
        s, [(d.stat, d.amount) for d in c.distribution]
    ),
    "set_currency": lambda s, c: vitals.set_currency(s, c.denomination, c.amount),
    "earn_currency": lambda s, c: vitals.earn_currency(s, c.amount, c.denomination),
    "spend_currency": lambda s, c: vitals.spend_currency(s, c.amount, c.denomination),
    # Character details
    "add_condition": lambda s, c: vitals.add_condition(s, c.condition),
    "remove_condition": lambda s, c: vitals.remove_condition(s, c.condition),
    "add_language": lambda s, c: vitals.add_language(s, c.language),
    "remove_language": lambda s, c: vitals.remove_language(s, c.language),
    "learn_spell": lambda s, c: vitals.learn_spell(s, c.spell),
    "forget_spell": lambda s, c: vitals.forget_spell(s, c.spell_id),
    "toggle_spell_prepared": lambda s, c: vitals.toggle_spell_prepared(s, c.spell_id),
    "set_concentration": lambda s, c: vitals.set_concentration(s, c.spell_id),
    "add_feat": lambda s, c: vitals.add_feat(s, c.feat),
    "remove_feat": lambda s, c: vitals.remove_feat(s, c.feat_id),
    "add_proficiency": lambda s, c: vitals.add_proficiency(s, c.kind, c.name),
    "remove_proficiency": lambda s, c: vitals.remove_proficiency(s, c.kind, c.name),
    "toggle_skill": lambda s, c: vitals.toggle_skill(s, c.skill),
    "toggle_saving_throw": lambda s, c: vitals.toggle_saving_throw(s, c.ability),
    "set_subclass": lambda s, c: vitals.set_subclass(s, c.class_id, c.subclass),
    # Progression
    "set_experience": lambda s, c: progression.set_experience(s, c.experience),
    "add_experience": lambda s, c: progression.add_experience(s, c.amount),
    "level_up": lambda s, c: progression.level_up(s, c.class_id, c.hp_gain, c.definition),
}


def registered_commands() -> frozenset[str]:
    """Command tags with a registered handler."""
    return frozenset(_HANDLERS)


def apply_command(state: CharacterSnapshot, command: Command) -> TransitionResult:
    """Apply a command to a snapshot.

    Args:
        state: Current snapshot (never mutated).
        command: The command to apply.

    Returns:
        The transition result.

    Raises:
        CommandError: If no handler is registered for the command.
    """
    handler = _HANDLERS.get(command.command)
    if handler is None:
        raise CommandError(f"No handler registered for {command.command!r}", command=command.command)

    result = handler(state, command)
    if result.success:
        logger.debug("Command applied", command=command.command, message=result.message)
    else:
        logger.debug("Command rejected", command=command.command, error=result.error)
    return result


__all__ = [
    "EquipItem",
    "UnequipItem",
    "ToggleEquipped",
    "AttuneItem",
    "UnattuneItem",
    "IdentifyItem",
    "SetItemQuantity",
    "UseItem",
    "AddItem",
    "RemoveItem",
    "UseResource",
    "RestoreResource",
    "RemoveResourceModifier",
    "MirrorResourceUsages",
    "ConsumeSpellSlot",
    "RestoreSpellSlot",
    "ConsumePactSlot",
    "RestorePactSlot",
    "SpendHitDie",
    "ShortRest",
    "LongRest",
    "TakeDamage",
    "Heal",
    "SetHp",
    "SetMaxHp",
    "SetTempHp",
    "SetDeathSaves",
    "SetExhaustion",
    "SetInspiration",
    "SetArmorClassOverride",
    "SetSpeed",
    "SetInitiativeBonus",
    "SetAbilityScore",
    "GrantAbilityPoints",
    "AbilityPointSpend",
    "SpendAbilityPoints",
    "SetCurrency",
    "EarnCurrency",
    "SpendCurrency",
    "AddCondition",
    "RemoveCondition",
    "AddLanguage",
    "RemoveLanguage",
    "LearnSpell",
    "ForgetSpell",
    "ToggleSpellPrepared",
    "SetConcentration",
    "AddFeat",
    "RemoveFeat",
    "AddProficiency",
    "RemoveProficiency",
    "ToggleSkill",
    "ToggleSavingThrow",
    "SetSubclass",
    "SetExperience",
    "AddExperience",
    "LevelUp",
    "Command",
    "COMMAND_ADAPTER",
    "REST_COMMANDS",
    "parse_command",
    "registered_commands",
    "apply_command",
]
