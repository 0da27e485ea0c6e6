"""dnd_sheet - D&D 5E character mechanics resolution engine.

Turns a raw character snapshot plus the modifiers granted by its race,
background, classes, feats, traits, items and used resources into
derived numbers (ability scores, armor class, HP, saves, skills,
spellcasting stats), and applies rules-constrained state transitions
(equip, attune, use resource, rest, level up) as pure functions.

STATE MODEL:
- A ``CharacterSnapshot`` is the single value every query reads
- Every mutation is a command returning a ``TransitionResult``
- Rule violations are reported in the result, never raised
- ``CharacterSession`` applies commands optimistically and persists them

Example:
    >>> from dnd_sheet import CharacterSheet, CharacterSnapshot, apply_command
    >>> from dnd_sheet.engine.commands import EquipItem
    >>>
    >>> result = apply_command(snapshot, EquipItem(entry_id="inv-greatsword"))
    >>> if result.success:
    ...     print(CharacterSheet(result.state).armor_class().value)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for snapshots, items, modifiers and resources.
    engine: Resolvers, transitions, the derived-stat façade and commands.
    storage: Persistence gateway, SQLite store and sync session.
"""

from __future__ import annotations

# Core
from dnd_sheet.core.config import Settings, get_settings
from dnd_sheet.core.exceptions import DndSheetError
from dnd_sheet.core.logging import configure_logging, get_logger

# Models
from dnd_sheet.models import (
    CharacterSnapshot,
    InventoryEntry,
    ItemDefinition,
    Modifier,
    ModifierSource,
)

# Engine
from dnd_sheet.engine import (
    CharacterSheet,
    Command,
    TransitionResult,
    apply_command,
    parse_command,
)

# Storage
from dnd_sheet.storage import CharacterDatabase, CharacterSession, PersistenceGateway


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "DndSheetError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "CharacterSnapshot",
    "InventoryEntry",
    "ItemDefinition",
    "Modifier",
    "ModifierSource",
    # Engine
    "CharacterSheet",
    "Command",
    "TransitionResult",
    "apply_command",
    "parse_command",
    # Storage
    "CharacterDatabase",
    "CharacterSession",
    "PersistenceGateway",
]
