"""Optimistic sync adapter between the engine and a persistence gateway.

``CharacterSession`` owns the current snapshot. Every command is applied
locally first and returned to the caller at once; the resulting write set
(found by diffing the snapshots) is submitted to a worker pool without
being awaited. A write that still fails after its retries triggers the
compensating action: each written field or row is put back to its prior
value, but only where it still holds the optimistic value.

Rests are the exception. They wait for every earlier write to settle,
then the gateway resets usage rows authoritatively and the session
mirrors the returned rows, so neither a stale local usage list nor a
write still retrying in the background can overwrite the reset.

Example:
    >>> session = CharacterSession.load(get_database(), "char-1")
    >>> session.execute(EquipItem(entry_id="inv-1")).success
    True
    >>> session.flush()
    True
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dnd_sheet.core.config import PersistenceSettings, get_settings
from dnd_sheet.core.exceptions import PersistenceError, SyncError
from dnd_sheet.core.logging import get_logger, log_context
from dnd_sheet.models.character import CharacterSnapshot
from dnd_sheet.engine.commands import Command, LongRest, REST_COMMANDS, apply_command
from dnd_sheet.engine.derived import CharacterSheet
from dnd_sheet.engine.resources import mirror_resource_usages, short_rest_resource_ids
from dnd_sheet.engine.transition import TransitionResult
from dnd_sheet.storage.gateway import (
    JOIN_ROW_KEYS,
    FieldWrite,
    JoinRowWrite,
    PersistenceGateway,
    Write,
)

logger = get_logger(__name__)

T = TypeVar("T")

SNAPSHOT_FIELDS: tuple[str, ...] = tuple(
    name for name in CharacterSnapshot.model_fields if name != "id" and name not in JOIN_ROW_KEYS
)
"""Top-level fields written through ``FieldWrite``."""


# =============================================================================
# Write Sets
# =============================================================================


def diff_snapshots(previous: CharacterSnapshot, current: CharacterSnapshot) -> list[Write]:
    """Compute the writes that turn ``previous`` into ``current`` in the store.

    Args:
        previous: Snapshot before the transition.
        current: Snapshot after the transition.

    Returns:
        At most one FieldWrite (first) followed by one JoinRowWrite per
        created, changed or deleted row.
    """
    before = previous.model_dump(mode="json")
    after = current.model_dump(mode="json")

    writes: list[Write] = []
    changed = {name: after[name] for name in SNAPSHOT_FIELDS if before[name] != after[name]}
    if changed:
        writes.append(FieldWrite(character_id=current.id, fields=changed))

    for relation, key in JOIN_ROW_KEYS.items():
        old_rows = {row[key]: row for row in before[relation]}
        new_rows = {row[key]: row for row in after[relation]}
        for row_id, row in new_rows.items():
            prior = old_rows.get(row_id)
            if prior is None:
                writes.append(JoinRowWrite(current.id, relation, row_id, dict(row)))
                continue
            changes = {column: value for column, value in row.items() if prior.get(column) != value}
            if changes:
                writes.append(JoinRowWrite(current.id, relation, row_id, changes))
        for row_id in old_rows:
            if row_id not in new_rows:
                writes.append(JoinRowWrite(current.id, relation, row_id, deleted=True))

    return writes


def _find_row(rows: list[dict[str, Any]], key: str, row_id: str) -> tuple[int | None, dict[str, Any] | None]:
    for index, row in enumerate(rows):
        if row.get(key) == row_id:
            return index, row
    return None, None


def compensate(
    current: CharacterSnapshot,
    writes: list[Write],
    previous: CharacterSnapshot,
    optimistic: CharacterSnapshot,
) -> CharacterSnapshot:
    """Undo failed writes on the current snapshot.

    A field or row is restored to its value in ``previous`` only if it
    still equals its value in ``optimistic``; later local changes win.

    Args:
        current: The session's snapshot now.
        writes: Writes that did not reach the store.
        previous: Snapshot before the optimistic transition.
        optimistic: Snapshot the transition produced.

    Returns:
        The compensated snapshot.
    """
    data = current.model_dump(mode="json")
    before = previous.model_dump(mode="json")
    expected = optimistic.model_dump(mode="json")

    for write in writes:
        if isinstance(write, FieldWrite):
            for name in write.fields:
                if data[name] == expected[name]:
                    data[name] = before[name]
            continue

        key = JOIN_ROW_KEYS[write.relation]
        rows: list[dict[str, Any]] = data[write.relation]
        index, row = _find_row(rows, key, write.row_id)
        _, optimistic_row = _find_row(expected[write.relation], key, write.row_id)
        if row != optimistic_row:
            continue
        prior_index, prior_row = _find_row(before[write.relation], key, write.row_id)
        if prior_row is None:
            if index is not None:
                del rows[index]
        elif index is None:
            rows.insert(min(prior_index or 0, len(rows)), prior_row)
        else:
            rows[index] = prior_row

    return CharacterSnapshot.model_validate(data)


# =============================================================================
# Session
# =============================================================================


@dataclass(frozen=True)
class SyncFailure:
    """A command whose write was reverted locally."""

    command: str
    error: str


class CharacterSession:
    """Holds one character and keeps it in sync with a gateway.

    Attributes:
        gateway: Persistence collaborator.
        failures: Commands reverted after their write failed.
    """

    def __init__(
        self,
        snapshot: CharacterSnapshot,
        gateway: PersistenceGateway,
        *,
        executor: Executor | None = None,
        settings: PersistenceSettings | None = None,
    ) -> None:
        """Initialize a session.

        Args:
            snapshot: Starting snapshot.
            gateway: Persistence collaborator.
            executor: Runs background writes. Defaults to a private
                thread pool sized by ``sync_workers``.
            settings: Retry settings. Defaults to the global settings.
        """
        self.gateway = gateway
        self.failures: list[SyncFailure] = []
        self._settings = settings or get_settings().persistence
        self._state = snapshot
        self._lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: set[Future[bool]] = set()
        self._reported_failures = 0
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._settings.sync_workers,
            thread_name_prefix="dnd-sheet-sync",
        )
        self._closed = False

    @classmethod
    def load(cls, gateway: PersistenceGateway, character_id: str, **kwargs: Any) -> CharacterSession:
        """Open a session on a stored character."""
        return cls(gateway.load_snapshot(character_id), gateway, **kwargs)

    @property
    def state(self) -> CharacterSnapshot:
        """Current local snapshot."""
        with self._lock:
            return self._state

    @property
    def sheet(self) -> CharacterSheet:
        """Derived view of the current snapshot."""
        return CharacterSheet(self.state)

    @property
    def pending_writes(self) -> int:
        """Background writes submitted but not yet finished."""
        with self._pending_lock:
            return sum(1 for future in self._pending if not future.done())

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def execute(self, command: Command) -> TransitionResult:
        """Apply a command locally and persist it in the background.

        Raises:
            SyncError: If the session has been closed.
        """
        if self._closed:
            raise SyncError("Session is closed", character_id=self._state.id, operation=command.command)

        if isinstance(command, REST_COMMANDS):
            return self._rest(command)

        with self._lock:
            previous = self._state
            result = apply_command(previous, command)
            if not result.success:
                return result
            writes = diff_snapshots(previous, result.state)
            self._state = result.state

        if writes:
            future = self._executor.submit(self._persist, command.command, writes, previous, result.state)
            with self._pending_lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)
        return result

    def _forget(self, future: Future[bool]) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _rest(self, command: Command) -> TransitionResult:
        # Earlier writes must land before the authoritative reset.
        self._drain()
        previous = self.state
        planned = apply_command(previous, command)
        fields = next((w.fields for w in diff_snapshots(previous, planned.state) if isinstance(w, FieldWrite)), {})

        with log_context(character_id=previous.id, command=command.command):
            try:
                if isinstance(command, LongRest):
                    usages = self._with_retry("long_rest", self.gateway.long_rest, previous.id, fields)
                else:
                    usages = self._with_retry(
                        "short_rest",
                        self.gateway.short_rest,
                        previous.id,
                        fields,
                        short_rest_resource_ids(previous),
                    )
            except PersistenceError as exc:
                logger.error("Rest not persisted", error=str(exc))
                return TransitionResult.rejected(previous, f"Rest failed: {exc.message}")

            with self._lock:
                rested = apply_command(self._state, command)
                mirrored = mirror_resource_usages(rested.state, usages)
                self._state = mirrored.state

            logger.info("Rest synchronized", resources=len(usages))
        return TransitionResult.applied(mirrored.state, rested.message)

    # -------------------------------------------------------------------------
    # Background Writes
    # -------------------------------------------------------------------------

    def _with_retry(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        settings = self._settings

        def _log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                "Persistence call failed, retrying",
                operation=operation,
                attempt=retry_state.attempt_number,
            )

        @retry(
            retry=retry_if_exception_type(PersistenceError),
            stop=stop_after_attempt(settings.write_attempts),
            wait=wait_exponential(multiplier=1, min=settings.retry_wait_min, max=settings.retry_wait_max),
            before_sleep=_log_retry,
            reraise=True,
        )
        def _call() -> T:
            return func(*args)

        return _call()

    def _send(self, write: Write) -> None:
        if isinstance(write, FieldWrite):
            self._with_retry("write_fields", self.gateway.write_fields, write)
        else:
            self._with_retry("write_join_row", self.gateway.write_join_row, write)

    def _persist(
        self,
        command: str,
        writes: list[Write],
        previous: CharacterSnapshot,
        optimistic: CharacterSnapshot,
    ) -> bool:
        with log_context(character_id=optimistic.id, command=command):
            for index, write in enumerate(writes):
                try:
                    self._send(write)
                except PersistenceError as exc:
                    logger.error("Write failed, reverting local change", pending=len(writes) - index, error=str(exc))
                    with self._lock:
                        self._state = compensate(self._state, writes[index:], previous, optimistic)
                        self.failures.append(SyncFailure(command=command, error=exc.message))
                    return False
            logger.debug("Writes persisted", writes=len(writes))
        return True

    def _drain(self, timeout: float | None = None) -> bool:
        with self._pending_lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for submitted writes.

        Returns:
            True if every write finished and none was reverted since the
            previous flush.
        """
        finished = self._drain(timeout)
        with self._lock:
            reverted = len(self.failures) - self._reported_failures
            self._reported_failures = len(self.failures)
        return finished and not reverted

    def close(self) -> None:
        """Wait for pending writes and release the worker pool."""
        if self._closed:
            return
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._closed = True

    def __enter__(self) -> CharacterSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "SNAPSHOT_FIELDS",
    "diff_snapshots",
    "compensate",
    "SyncFailure",
    "CharacterSession",
]
