"""SQLite character store.

Implements the persistence gateway over a single SQLite file:

- ``characters``: one row per character holding the snapshot JSON
  (everything except resource usage).
- ``resource_usages``: one row per (character, resource) so that rests
  can reset many rows in one transaction.

Storage location defaults to ``settings.persistence.database_path``.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from dnd_sheet.core.config import get_settings
from dnd_sheet.core.exceptions import CharacterNotFoundError, PersistenceError
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.character import CharacterSnapshot
from dnd_sheet.models.resources import ResourceUsage
from dnd_sheet.storage.gateway import JOIN_ROW_KEYS, FieldWrite, JoinRowWrite

logger = get_logger(__name__)


class CharacterDatabase:
    """SQLite implementation of the persistence gateway."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
        """
        if db_path is None:
            self.db_path = get_settings().persistence.database_path
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Character database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self, operation: str = "query") -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup.

        SQLite errors are re-raised as ``PersistenceError``.
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Database error: {exc}", operation=operation) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init_schema") as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    snapshot_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS resource_usages (
                    character_id TEXT NOT NULL,
                    resource_id TEXT NOT NULL,
                    used_uses INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (character_id, resource_id)
                )
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Snapshot Operations
    # =========================================================================

    def load_snapshot(self, character_id: str) -> CharacterSnapshot:
        """Load a character with its resource usage rows.

        Raises:
            CharacterNotFoundError: If no character has this id.
        """
        with self._get_connection("load_snapshot") as conn:
            data = self._read_snapshot_data(conn, character_id)
            data["resources"] = [
                usage.model_dump() for usage in self._read_usages(conn, character_id)
            ]
        return CharacterSnapshot.model_validate(data)

    def save_snapshot(self, snapshot: CharacterSnapshot) -> None:
        """Insert or fully replace a character."""
        now = datetime.now().isoformat()
        data = snapshot.model_dump(mode="json", exclude={"resources"})

        with self._get_connection("save_snapshot") as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO characters (id, name, snapshot_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    snapshot_json = excluded.snapshot_json,
                    updated_at = excluded.updated_at
            """, (snapshot.id, snapshot.name, json.dumps(data), now, now))

            cursor.execute("DELETE FROM resource_usages WHERE character_id = ?", (snapshot.id,))
            cursor.executemany("""
                INSERT INTO resource_usages (character_id, resource_id, used_uses)
                VALUES (?, ?, ?)
            """, [(snapshot.id, u.resource_id, u.used_uses) for u in snapshot.resources])

        logger.info("Saved character", character_id=snapshot.id)

    def delete_character(self, character_id: str) -> bool:
        """Delete a character and its usage rows.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection("delete_character") as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM resource_usages WHERE character_id = ?", (character_id,))
            cursor.execute("DELETE FROM characters WHERE id = ?", (character_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted character", character_id=character_id)
        return deleted

    def list_character_ids(self) -> list[str]:
        """Ids of all stored characters, most recently updated first."""
        with self._get_connection("list_characters") as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id FROM characters ORDER BY updated_at DESC")
            return [row[0] for row in cursor.fetchall()]

    # =========================================================================
    # Write Boundary
    # =========================================================================

    def write_fields(self, write: FieldWrite) -> None:
        """Set top-level fields on a character."""
        with self._get_connection("write_fields") as conn:
            self._update_fields(conn, write.character_id, write.fields)

    def write_join_row(self, write: JoinRowWrite) -> None:
        """Upsert or delete one inventory or resource usage row."""
        if write.relation not in JOIN_ROW_KEYS:
            raise PersistenceError(
                f"Unknown relation: {write.relation}",
                character_id=write.character_id,
                operation="write_join_row",
            )

        with self._get_connection("write_join_row") as conn:
            data = self._read_snapshot_data(conn, write.character_id)
            if write.relation == "resources":
                self._write_usage_row(conn, write)
                return

            key = JOIN_ROW_KEYS[write.relation]
            rows: list[dict[str, Any]] = data.get(write.relation, [])
            if write.deleted:
                rows = [row for row in rows if row.get(key) != write.row_id]
            else:
                existing = next((row for row in rows if row.get(key) == write.row_id), None)
                if existing is None:
                    rows.append({**write.values, key: write.row_id})
                else:
                    existing.update(write.values)
            data[write.relation] = rows
            self._store_snapshot_data(conn, write.character_id, data)

    # =========================================================================
    # Rests
    # =========================================================================

    def long_rest(self, character_id: str, fields: dict[str, Any]) -> list[ResourceUsage]:
        """Apply rest fields and reset every usage row in one transaction."""
        with self._get_connection("long_rest") as conn:
            self._update_fields(conn, character_id, fields)
            conn.execute(
                "UPDATE resource_usages SET used_uses = 0 WHERE character_id = ?",
                (character_id,),
            )
            usages = self._read_usages(conn, character_id)

        logger.info("Long rest persisted", character_id=character_id, resources=len(usages))
        return usages

    def short_rest(
        self,
        character_id: str,
        fields: dict[str, Any],
        resource_ids: list[str],
    ) -> list[ResourceUsage]:
        """Apply rest fields and reset the given usage rows in one transaction."""
        with self._get_connection("short_rest") as conn:
            self._update_fields(conn, character_id, fields)
            if resource_ids:
                placeholders = ", ".join("?" for _ in resource_ids)
                conn.execute(
                    f"UPDATE resource_usages SET used_uses = 0 "
                    f"WHERE character_id = ? AND resource_id IN ({placeholders})",
                    (character_id, *resource_ids),
                )
            usages = self._read_usages(conn, character_id)

        logger.info("Short rest persisted", character_id=character_id, reset=len(resource_ids))
        return usages

    # =========================================================================
    # Helpers
    # =========================================================================

    def _read_snapshot_data(self, conn: sqlite3.Connection, character_id: str) -> dict[str, Any]:
        cursor = conn.cursor()
        cursor.execute("SELECT snapshot_json FROM characters WHERE id = ?", (character_id,))
        row = cursor.fetchone()
        if row is None:
            raise CharacterNotFoundError(
                f"Character not found: {character_id}",
                character_id=character_id,
                operation="load",
            )
        return json.loads(row[0])

    def _store_snapshot_data(
        self,
        conn: sqlite3.Connection,
        character_id: str,
        data: dict[str, Any],
    ) -> None:
        conn.execute(
            "UPDATE characters SET name = ?, snapshot_json = ?, updated_at = ? WHERE id = ?",
            (data.get("name", ""), json.dumps(data), datetime.now().isoformat(), character_id),
        )

    def _update_fields(
        self,
        conn: sqlite3.Connection,
        character_id: str,
        fields: dict[str, Any],
    ) -> None:
        data = self._read_snapshot_data(conn, character_id)
        data.update(fields)
        self._store_snapshot_data(conn, character_id, data)

    def _read_usages(self, conn: sqlite3.Connection, character_id: str) -> list[ResourceUsage]:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT resource_id, used_uses FROM resource_usages WHERE character_id = ? ORDER BY resource_id",
            (character_id,),
        )
        return [ResourceUsage(resource_id=row[0], used_uses=row[1]) for row in cursor.fetchall()]

    def _write_usage_row(self, conn: sqlite3.Connection, write: JoinRowWrite) -> None:
        if write.deleted:
            conn.execute(
                "DELETE FROM resource_usages WHERE character_id = ? AND resource_id = ?",
                (write.character_id, write.row_id),
            )
            return
        # Only the usage counter is stored per row.
        used_uses = int(write.values.get("used_uses", 0))
        conn.execute("""
            INSERT INTO resource_usages (character_id, resource_id, used_uses)
            VALUES (?, ?, ?)
            ON CONFLICT(character_id, resource_id) DO UPDATE SET used_uses = excluded.used_uses
        """, (write.character_id, write.row_id, used_uses))


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: CharacterDatabase | None = None


def get_database() -> CharacterDatabase:
    """Get the global database instance.

    Returns:
        CharacterDatabase singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = CharacterDatabase()

    return _database_instance


__all__ = [
    "CharacterDatabase",
    "get_database",
]
