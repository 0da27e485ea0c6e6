"""Persistence collaborator boundary.

The engine never talks to a store directly. Every mutation it performs
is echoed as one of two idempotent write shapes:

- ``FieldWrite``: set these top-level fields on this character.
- ``JoinRowWrite``: set flags on (or delete) one row of a per-character
  relation such as the inventory or the resource usage table.

Rests are distinguished operations because the store resets many
resource usage rows in one atomic step and returns the authoritative
result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from dnd_sheet.models.character import CharacterSnapshot
from dnd_sheet.models.resources import ResourceUsage


Relation = Literal["inventory", "resources"]

JOIN_ROW_KEYS: dict[str, str] = {
    "inventory": "id",
    "resources": "resource_id",
}
"""Identifier key of each relation's rows."""


@dataclass(frozen=True)
class FieldWrite:
    """Set top-level fields on a character.

    Attributes:
        character_id: Target character.
        fields: Field name to JSON-compatible value.
    """

    character_id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JoinRowWrite:
    """Upsert or delete one row of a per-character relation.

    Attributes:
        character_id: Target character.
        relation: Relation name.
        row_id: Row identifier within the relation.
        values: Columns to set. For a new row this is the full row.
        deleted: Remove the row instead of updating it.
    """

    character_id: str
    relation: Relation
    row_id: str
    values: dict[str, Any] = field(default_factory=dict)
    deleted: bool = False


Write = FieldWrite | JoinRowWrite


@runtime_checkable
class PersistenceGateway(Protocol):
    """Operations the engine needs from a character store.

    Implementations raise ``PersistenceError`` (or a subclass) on failure.
    """

    def load_snapshot(self, character_id: str) -> CharacterSnapshot: ...

    def save_snapshot(self, snapshot: CharacterSnapshot) -> None: ...

    def write_fields(self, write: FieldWrite) -> None: ...

    def write_join_row(self, write: JoinRowWrite) -> None: ...

    def long_rest(self, character_id: str, fields: dict[str, Any]) -> list[ResourceUsage]: ...

    def short_rest(
        self,
        character_id: str,
        fields: dict[str, Any],
        resource_ids: list[str],
    ) -> list[ResourceUsage]: ...


__all__ = [
    "Relation",
    "JOIN_ROW_KEYS",
    "FieldWrite",
    "JoinRowWrite",
    "Write",
    "PersistenceGateway",
]
