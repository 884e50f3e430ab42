"""Operation log, whole-world snapshots and the accounting journal."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from gekokujo.domain import models as dm
from gekokujo.repository import JsonGameRepository, SnapshotDocument, SnapshotSummary, WorldDocument

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OperationLog:
    """Capped, newest-first record of every committed action."""

    def __init__(
        self,
        repository: JsonGameRepository,
        *,
        max_records: int = 100,
        clock: Clock = _utcnow,
    ) -> None:
        self._repository = repository
        self._max_records = max_records
        self._clock = clock
        self._lock = threading.Lock()
        self._records = repository.load_operations()[:max_records]

    def record(
        self,
        actor: dm.Actor,
        action: str,
        details: dict[str, Any] | None = None,
        *,
        faction_id: dm.FactionID | None = None,
    ) -> dm.OperationRecord:
        """Prepend a record, drop anything past the cap and persist."""

        entry = dm.OperationRecord(
            id=dm.OperationID(uuid.uuid4().hex),
            timestamp=self._clock(),
            user_id=actor.user_id,
            user_type=actor.role,
            action=str(action),
            details=dict(details or {}),
            faction_id=faction_id,
        )
        with self._lock:
            self._records.insert(0, entry)
            del self._records[self._max_records :]
            self._repository.save_operations(self._records)
        return entry

    def link_snapshot(self, operation_id: dm.OperationID, snapshot_id: dm.SnapshotID) -> None:
        with self._lock:
            for entry in self._records:
                if entry.id == operation_id:
                    entry.snapshot_id = snapshot_id
                    break
            else:
                logger.warning("operation %s not in log; snapshot %s unlinked", operation_id, snapshot_id)
                return
            self._repository.save_operations(self._records)

    def get(self, operation_id: dm.OperationID) -> dm.OperationRecord | None:
        with self._lock:
            return next((entry for entry in self._records if entry.id == operation_id), None)

    def recent(
        self, limit: int = 50, *, faction_id: dm.FactionID | None = None
    ) -> list[dm.OperationRecord]:
        """Newest records first, optionally only those filed against one faction."""

        with self._lock:
            records = [
                entry
                for entry in self._records
                if faction_id is None or entry.faction_id == faction_id
            ]
        return records[: max(0, limit)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def rollbackable(self) -> list[dm.OperationRecord]:
        """Records that have a snapshot to return to."""

        with self._lock:
            return [entry for entry in self._records if entry.snapshot_id is not None]


class SnapshotStore:
    """Stores whole-world copies and prunes all but the newest few."""

    def __init__(
        self,
        repository: JsonGameRepository,
        *,
        max_snapshots: int = 20,
        clock: Clock = _utcnow,
    ) -> None:
        self._repository = repository
        self._max_snapshots = max_snapshots
        self._clock = clock
        self._lock = threading.Lock()

    def create(self, world: dm.World, operation_id: dm.OperationID) -> SnapshotDocument:
        """Copy ``world`` into a new snapshot document tied to ``operation_id``."""

        snapshot = SnapshotDocument(
            id=dm.SnapshotID(uuid.uuid4().hex),
            timestamp=self._clock(),
            operation_id=operation_id,
            data=WorldDocument.from_world(world),
        )
        with self._lock:
            self._repository.save_snapshot(snapshot)
            self._prune()
        logger.info("snapshot %s created for operation %s", snapshot.id, operation_id)
        return snapshot

    def _prune(self) -> None:
        for stale in self._repository.list_snapshots()[self._max_snapshots :]:
            self._repository.delete_snapshot(stale.id)
            logger.info("snapshot %s pruned", stale.id)

    def restore(self, snapshot_id: dm.SnapshotID) -> dm.World | None:
        """Return a fresh world rebuilt from the snapshot, or ``None`` if unknown."""

        with self._lock:
            snapshot = self._repository.load_snapshot(snapshot_id)
        if snapshot is None:
            logger.warning("snapshot %s not found", snapshot_id)
            return None
        return snapshot.data.to_world()

    def summaries(self) -> list[SnapshotSummary]:
        with self._lock:
            return self._repository.list_snapshots()


class AccountingJournal:
    """Year-keyed bookkeeping notes, newest first."""

    def __init__(self, repository: JsonGameRepository, *, clock: Clock = _utcnow) -> None:
        self._repository = repository
        self._clock = clock
        self._lock = threading.Lock()
        self._logs = repository.load_accounting_logs()

    def add(
        self,
        *,
        year: int,
        faction_id: dm.FactionID,
        faction_name: str,
        content: str,
        should_calculate: bool = False,
    ) -> dm.AccountingLog:
        entry = dm.AccountingLog(
            id=dm.AccountingLogID(uuid.uuid4().hex),
            year=year,
            faction_id=faction_id,
            faction_name=faction_name,
            content=content,
            should_calculate=should_calculate,
            timestamp=self._clock(),
        )
        with self._lock:
            self._logs.insert(0, entry)
            self._repository.save_accounting_logs(self._logs)
        return entry

    def filter(
        self,
        *,
        year: int | None = None,
        faction_id: dm.FactionID | None = None,
        should_calculate: bool | None = None,
    ) -> list[dm.AccountingLog]:
        """Notes matching every filter that is given."""

        with self._lock:
            return [
                entry
                for entry in self._logs
                if (year is None or entry.year == year)
                and (faction_id is None or entry.faction_id == faction_id)
                and (should_calculate is None or entry.should_calculate == should_calculate)
            ]

    def delete(self, log_id: dm.AccountingLogID) -> bool:
        with self._lock:
            remaining = [entry for entry in self._logs if entry.id != log_id]
            if len(remaining) == len(self._logs):
                return False
            self._logs = remaining
            self._repository.save_accounting_logs(self._logs)
        return True

    def delete_year(self, year: int) -> int:
        """Drop every note filed for ``year`` and return how many went."""

        with self._lock:
            remaining = [entry for entry in self._logs if entry.year != year]
            deleted = len(self._logs) - len(remaining)
            self._logs = remaining
            self._repository.save_accounting_logs(self._logs)
        return deleted
