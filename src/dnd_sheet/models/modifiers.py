"""Modifier model: the closed set of effects a modifier source can carry.

Every modifier is one variant of a discriminated union keyed on ``type``.
Each variant carries the payload type its kind needs (an integer for
bonuses and overrides, a boolean for proficiency and language grants, an
optional cap for ability increases), so malformed data is rejected when a
modifier is built rather than coerced while stats are resolved.

Reference data arriving from the persistence collaborator goes through
``load_modifiers``, which drops entries that fail validation and logs
them. A dropped modifier contributes nothing, which keeps the engine
usable with incomplete rules data.

Example:
    >>> mods = load_modifiers([
    ...     {"type": "set", "target": "str", "value": 19},
    ...     {"type": "bonus", "target": "str", "value": "oops"},
    ... ])
    >>> [m.type for m in mods]
    ['set']
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from dnd_sheet.core.exceptions import InvalidModifierError
from dnd_sheet.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Modifier Variants
# =============================================================================


class _ModifierBase(BaseModel):
    """Fields shared by every modifier variant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    target: str = Field(min_length=1, description="Stat, skill or category key")
    condition: str | None = Field(
        default=None,
        description="Activation condition text; conditioned modifiers never apply",
    )

    @field_validator("condition", mode="before")
    @classmethod
    def blank_condition_is_none(cls, value: Any) -> Any:
        """Treat an empty condition string as no condition."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_conditional(self) -> bool:
        """Check whether the modifier declares an activation condition."""
        return self.condition is not None

    def targets(self, name: str) -> bool:
        """Check whether the modifier targets ``name`` (case-insensitive).

        Args:
            name: Stat, skill or category key.

        Returns:
            True when the target matches.
        """
        return self.target.lower() == name.lower()


class BonusModifier(_ModifierBase):
    """Additive bonus to a numeric target."""

    type: Literal["bonus"] = "bonus"
    value: int


class SetModifier(_ModifierBase):
    """Replaces the base value; competing overrides resolve to the highest."""

    type: Literal["set", "override"] = "set"
    value: int


class AbilityIncreaseModifier(_ModifierBase):
    """Additive ability increase with an optional hard cap on the result."""

    type: Literal["ability_increase"] = "ability_increase"
    value: int
    max: int | None = Field(default=None, ge=1, description="Cap on the resolved score")


class AbilityPointGrantModifier(_ModifierBase):
    """Adds unspent points to the character's ability point pool."""

    type: Literal["ability_point_grant"] = "ability_point_grant"
    target: str = Field(default="ability_points", min_length=1)
    value: int = Field(ge=0)


class ProficiencyGrant(_ModifierBase):
    """Boolean proficiency fact.

    ``proficiency`` is the legacy skill grant kind and applies on a target
    match alone; every other kind requires ``value`` to be true.
    """

    type: Literal[
        "skill_proficiency",
        "expertise",
        "saving_throw_proficiency",
        "armor_proficiency",
        "weapon_proficiency",
        "proficiency",
    ]
    value: bool = True


class LanguageGrant(_ModifierBase):
    """Grants the language named by ``target``."""

    type: Literal["language"] = "language"
    value: bool = True


Modifier = Annotated[
    Union[
        BonusModifier,
        SetModifier,
        AbilityIncreaseModifier,
        AbilityPointGrantModifier,
        ProficiencyGrant,
        LanguageGrant,
    ],
    Field(discriminator="type"),
]
"""Closed union of all modifier kinds."""

MODIFIER_ADAPTER: TypeAdapter[Modifier] = TypeAdapter(Modifier)


# =============================================================================
# Loading Boundary
# =============================================================================


def parse_modifier(raw: Any) -> Modifier:
    """Validate a single modifier payload.

    Args:
        raw: Dict or already-built modifier model.

    Returns:
        The validated modifier.

    Raises:
        InvalidModifierError: If the payload matches no modifier kind.
    """
    try:
        return MODIFIER_ADAPTER.validate_python(raw)
    except PydanticValidationError as exc:
        modifier_type = raw.get("type") if isinstance(raw, dict) else None
        target = raw.get("target") if isinstance(raw, dict) else None
        raise InvalidModifierError(
            f"Invalid modifier ({exc.error_count()} errors)",
            modifier_type=str(modifier_type) if modifier_type is not None else None,
            target=str(target) if target is not None else None,
        ) from exc


def load_modifiers(raw: Iterable[Any] | None, *, source: str | None = None) -> list[Modifier]:
    """Validate raw modifier payloads, dropping the malformed ones.

    Args:
        raw: Iterable of dicts or already-built modifier models.
        source: Name of the owning source, for log context.

    Returns:
        The modifiers that validated, in input order.
    """
    loaded: list[Modifier] = []
    for entry in raw or ():
        try:
            loaded.append(parse_modifier(entry))
        except InvalidModifierError as exc:
            logger.warning(
                "Dropping malformed modifier",
                source=source,
                modifier=entry,
                error=exc.message,
            )
    return loaded


class ModifierSource(BaseModel):
    """A named entity contributing modifiers to stat resolution.

    Attributes:
        id: Stable identifier of the source.
        name: Display name.
        modifiers: Modifiers carried by the source.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: str
    name: str = ""
    modifiers: list[Modifier] = Field(default_factory=list)

    @field_validator("modifiers", mode="before")
    @classmethod
    def drop_malformed_modifiers(cls, value: Any) -> Any:
        """Route raw modifier lists through the tolerant loader."""
        if value is None:
            return []
        if isinstance(value, list):
            return load_modifiers(value)
        return value


__all__ = [
    "BonusModifier",
    "SetModifier",
    "AbilityIncreaseModifier",
    "AbilityPointGrantModifier",
    "ProficiencyGrant",
    "LanguageGrant",
    "Modifier",
    "MODIFIER_ADAPTER",
    "parse_modifier",
    "load_modifiers",
    "ModifierSource",
]
