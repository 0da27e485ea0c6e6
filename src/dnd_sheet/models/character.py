"""Character snapshot: the mutable root the rules engine resolves over.

The snapshot holds a character's raw stored attributes together with its
associations already resolved to reference definitions (classes, items,
feats, resources). Engine transitions never mutate a snapshot in place;
they return an updated deep copy.

Components:
    AbilityScores: The six raw ability scores.
    DeathSaves: Death saving throw counters.
    Currency: Coin purse.
    ManualProficiencies: Proficiencies added by hand.
    ClassDefinition / SubclassDefinition / CharacterClass: Class levels.
    KnownSpell: Spell known or prepared by the character.
    CharacterSnapshot: The root aggregate.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, computed_field

from dnd_sheet.core.constants import CURRENCY_VALUES_CP, DEFAULT_SPEED, MAX_DEATH_SAVES
from dnd_sheet.models.enums import Ability, Denomination, SpellcastingType
from dnd_sheet.models.items import InventoryEntry
from dnd_sheet.models.modifiers import ModifierSource
from dnd_sheet.models.resources import ClassResource, ResourceModifier, ResourceUsage


AbilityScore = Annotated[int, Field(ge=1, le=30, description="Ability score (1-30)")]


def calculate_modifier(score: int) -> int:
    """Calculate the ability modifier from an ability score.

    Args:
        score: The ability score.

    Returns:
        The ability modifier, ``(score - 10) // 2``.

    Example:
        >>> calculate_modifier(14)
        2
        >>> calculate_modifier(7)
        -2
    """
    return (score - 10) // 2


# =============================================================================
# Components
# =============================================================================


class AbilityScores(BaseModel):
    """The six raw (unmodified) ability scores."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    strength: AbilityScore = 10
    dexterity: AbilityScore = 10
    constitution: AbilityScore = 10
    intelligence: AbilityScore = 10
    wisdom: AbilityScore = 10
    charisma: AbilityScore = 10

    def get(self, ability: Ability) -> int:
        """Get the raw score for an ability."""
        return getattr(self, ability.field_name)


class DeathSaves(BaseModel):
    """Death saving throw counters."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    successes: int = Field(default=0, ge=0, le=MAX_DEATH_SAVES)
    failures: int = Field(default=0, ge=0, le=MAX_DEATH_SAVES)


class Currency(BaseModel):
    """Coins held, per denomination."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    cp: int = Field(default=0, ge=0)
    sp: int = Field(default=0, ge=0)
    ep: int = Field(default=0, ge=0)
    gp: int = Field(default=0, ge=0)
    pp: int = Field(default=0, ge=0)

    def get(self, denomination: Denomination) -> int:
        """Get the coin count for a denomination."""
        return getattr(self, denomination.value)

    @property
    def total_cp(self) -> int:
        """Total purse value in copper pieces."""
        return sum(self.get(d) * CURRENCY_VALUES_CP[d.value] for d in Denomination)


class ManualProficiencies(BaseModel):
    """Proficiencies a player added by hand.

    Attributes:
        armor: Armor names or categories ('light', 'shields', 'all armor').
        weapons: Weapon names or categories ('martial weapons', 'longsword').
        tools: Tool proficiencies.
        skills: Skill ranks keyed by skill, either "proficient" or "expertise".
        saving_throws: Saving throw flags keyed by ability code.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    armor: list[str] = Field(default_factory=list)
    weapons: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    skills: dict[str, str] = Field(default_factory=dict)
    saving_throws: dict[str, bool] = Field(default_factory=dict)


class ClassFeature(BaseModel):
    """A named class or subclass feature gained at a level."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    level: int = Field(default=1, ge=1)
    description: str = ""


class ClassDefinition(BaseModel):
    """Reference definition of a class.

    Attributes:
        id: Class id (e.g. 'barbarian').
        name: Display name.
        hit_die: Hit die size.
        saving_throws: Proficient saves as upper-case codes ('STR', 'CON').
        armor_proficiencies: Armor categories granted by the class.
        weapon_proficiencies: Weapon categories granted by the class.
        spellcasting_ability: Casting ability, if the class casts.
        spellcasting_type: Slot progression.
        features: Class features by level.
        resources: Limited-use class resources.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    hit_die: int = Field(default=8, ge=4, le=12)
    saving_throws: tuple[str, ...] = ()
    armor_proficiencies: tuple[str, ...] = ()
    weapon_proficiencies: tuple[str, ...] = ()
    spellcasting_ability: Ability | None = None
    spellcasting_type: SpellcastingType = SpellcastingType.NONE
    features: tuple[ClassFeature, ...] = ()
    resources: tuple[ClassResource, ...] = ()


class SubclassDefinition(BaseModel):
    """Reference definition of a subclass.

    A subclass may carry its own spellcasting progression (Eldritch Knight,
    Arcane Trickster) which overrides the parent class progression.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    spellcasting_type: SpellcastingType | None = None
    spellcasting_ability: Ability | None = None
    features: tuple[ClassFeature, ...] = ()


class CharacterClass(BaseModel):
    """A class the character has levels in."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    definition: ClassDefinition
    level: int = Field(default=1, ge=1, le=20)
    subclass: SubclassDefinition | None = None

    @property
    def class_id(self) -> str:
        """Id of the class definition."""
        return self.definition.id

    @property
    def active_features(self) -> list[ClassFeature]:
        """Class and subclass features unlocked at the current level."""
        features = list(self.definition.features)
        if self.subclass is not None:
            features.extend(self.subclass.features)
        return [f for f in features if f.level <= self.level]

    @property
    def available_resources(self) -> list[ClassResource]:
        """Class resources unlocked at the current level."""
        return [r for r in self.definition.resources if r.unlock_level <= self.level]


class KnownSpell(BaseModel):
    """A spell the character knows."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: str
    name: str
    level: int = Field(default=0, ge=0, le=9)
    prepared: bool = False
    concentration: bool = False


# =============================================================================
# Character Snapshot
# =============================================================================


class CharacterSnapshot(BaseModel):
    """Raw character state plus resolved associations.

    This is the single input to every derived-stat query and the single
    value threaded through every state transition.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    # Identity
    id: str
    name: str = "Unnamed"

    # Abilities and vitals
    abilities: AbilityScores = Field(default_factory=AbilityScores)
    hp_current: int = Field(default=10, ge=0)
    hp_max: int = Field(default=10, ge=0)
    temp_hp: int = Field(default=0, ge=0)
    hit_dice_current: int = Field(default=1, ge=0)
    hit_dice_max: int = Field(default=1, ge=0)
    death_saves: DeathSaves = Field(default_factory=DeathSaves)
    exhaustion: int = Field(default=0, ge=0)
    inspiration: bool = False
    armor_class_override: int | None = Field(default=None, ge=0)
    speed: int = Field(default=DEFAULT_SPEED, ge=0)
    initiative_bonus: int = 0

    # Progression
    level: int = Field(default=1, ge=1, le=20, description="Cached total level")
    experience: int = Field(default=0, ge=0)
    ability_points: int = Field(default=0, ge=0)

    # Spellcasting
    used_spell_slots: dict[int, int] = Field(default_factory=dict)
    used_pact_slots: int = Field(default=0, ge=0)
    spells: list[KnownSpell] = Field(default_factory=list)
    concentrating_on: str | None = None

    # Purse and proficiencies
    currency: Currency = Field(default_factory=Currency)
    proficiencies: ManualProficiencies = Field(default_factory=ManualProficiencies)

    # Associations
    classes: list[CharacterClass] = Field(default_factory=list)
    race: ModifierSource | None = None
    background: ModifierSource | None = None
    feats: list[ModifierSource] = Field(default_factory=list)
    traits: list[ModifierSource] = Field(default_factory=list)
    inventory: list[InventoryEntry] = Field(default_factory=list)
    resources: list[ResourceUsage] = Field(default_factory=list)
    resource_modifiers: list[ResourceModifier] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def total_level(self) -> int:
        """Sum of class levels, falling back to the cached level."""
        if not self.classes:
            return self.level
        return sum(c.level for c in self.classes)

    @property
    def class_ids(self) -> list[str]:
        """Ids of the character's classes."""
        return [c.class_id for c in self.classes]

    @property
    def equipped_entries(self) -> list[InventoryEntry]:
        """Inventory entries currently equipped."""
        return [e for e in self.inventory if e.equipped]

    def find_entry(self, entry_id: str) -> InventoryEntry | None:
        """Find an inventory entry by join-row id."""
        return next((e for e in self.inventory if e.id == entry_id), None)

    def find_class(self, class_id: str) -> CharacterClass | None:
        """Find the character's levels in a class."""
        return next((c for c in self.classes if c.class_id == class_id), None)

    def find_resource(self, resource_id: str) -> tuple[CharacterClass, ClassResource] | None:
        """Find an available class resource and the class granting it."""
        for character_class in self.classes:
            for resource in character_class.available_resources:
                if resource.id == resource_id:
                    return character_class, resource
        return None

    def usage_for(self, resource_id: str) -> ResourceUsage | None:
        """Find the usage row for a resource."""
        return next((u for u in self.resources if u.resource_id == resource_id), None)

    def used_uses(self, resource_id: str) -> int:
        """Spent uses of a resource (0 when no row exists)."""
        usage = self.usage_for(resource_id)
        return usage.used_uses if usage is not None else 0


__all__ = [
    "AbilityScore",
    "calculate_modifier",
    "AbilityScores",
    "DeathSaves",
    "Currency",
    "ManualProficiencies",
    "ClassFeature",
    "ClassDefinition",
    "SubclassDefinition",
    "CharacterClass",
    "KnownSpell",
    "CharacterSnapshot",
]
