"""Persistence boundary for the character sheet engine.

Provides:
- The gateway protocol and its write shapes
- SQLite-based character storage
- The optimistic sync session with compensating rollback
"""

from dnd_sheet.storage.database import CharacterDatabase, get_database
from dnd_sheet.storage.gateway import FieldWrite, JoinRowWrite, PersistenceGateway
from dnd_sheet.storage.sync import CharacterSession, SyncFailure, compensate, diff_snapshots

__all__ = [
    "CharacterDatabase",
    "get_database",
    "FieldWrite",
    "JoinRowWrite",
    "PersistenceGateway",
    "CharacterSession",
    "SyncFailure",
    "compensate",
    "diff_snapshots",
]
