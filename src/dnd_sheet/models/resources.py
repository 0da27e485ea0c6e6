"""Class resources, their usage rows, and the modifiers they create.

A ClassResource is reference data (for example Rage, recharging on a long
rest). ResourceUsage is the per-character row counting spent uses.
ResourceModifier is a temporary modifier source created when a resource
with a bonus-mode HP grant is used.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dnd_sheet.models.enums import HpGrantMode, ModifierDuration, RechargeOn
from dnd_sheet.models.modifiers import ModifierSource


class GrantHpEffect(BaseModel):
    """On-use effect granting hit points.

    Attributes:
        type: Effect tag.
        formula: Arithmetic formula over ``level`` (e.g. '5 * level').
        mode: Temporary HP (non-stacking) or a bonus to max HP.
        duration: Expiry of the bonus-mode modifier.
        name: Optional label for the created modifier.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["grant_hp"] = "grant_hp"
    formula: str
    mode: HpGrantMode = HpGrantMode.TEMPORARY
    duration: ModifierDuration = ModifierDuration.LONG_REST
    name: str | None = None


ResourceEffect = GrantHpEffect
"""Effects a resource may trigger on use."""


class ClassResource(BaseModel):
    """Limited-use class ability.

    Attributes:
        id: Reference resource id.
        class_id: Owning class.
        name: Display name.
        max_formula: Formula for maximum uses ('proficiency', 'level', '3', ...).
        recharge_on: Rest that restores the resource.
        unlock_level: Class level at which the resource becomes available.
        on_use: Effects triggered by each use.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    class_id: str
    name: str
    max_formula: str = "1"
    recharge_on: RechargeOn = RechargeOn.LONG
    unlock_level: int = Field(default=1, ge=1)
    on_use: tuple[ResourceEffect, ...] = ()


class ResourceUsage(BaseModel):
    """Per-character usage row for a resource."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    resource_id: str
    used_uses: int = Field(default=0, ge=0)


class ResourceModifier(ModifierSource):
    """Modifier source created by using a resource.

    Attributes:
        source_resource_id: Resource that created the modifier.
        duration: Rest boundary at which the modifier expires.
    """

    source_resource_id: str
    duration: ModifierDuration = ModifierDuration.PERMANENT


__all__ = [
    "GrantHpEffect",
    "ResourceEffect",
    "ClassResource",
    "ResourceUsage",
    "ResourceModifier",
]
