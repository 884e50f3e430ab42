"""JSON-file repository for the gekokujo world, operation log and snapshots."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from gekokujo.domain import models as dm

logger = logging.getLogger(__name__)

COLLECTIONS: tuple[str, ...] = (
    "factions",
    "territories",
    "officers",
    "legions",
    "special_products",
    "game_state",
)


class WorldDocument(BaseModel):
    """Every canonical collection plus the game clock, as stored on disk."""

    factions: list[dm.Faction] = Field(default_factory=list)
    territories: list[dm.Territory] = Field(default_factory=list)
    officers: list[dm.Officer] = Field(default_factory=list)
    legions: list[dm.Legion] = Field(default_factory=list)
    special_products: list[dm.SpecialProduct] = Field(default_factory=list)
    game_state: dm.GameState = Field(default_factory=dm.GameState)

    @classmethod
    def from_world(cls, world: dm.World) -> WorldDocument:
        return cls(
            factions=list(world.factions.values()),
            territories=list(world.territories.values()),
            officers=list(world.officers.values()),
            legions=list(world.legions.values()),
            special_products=list(world.special_products.values()),
            game_state=world.game_state,
        )

    def to_world(self) -> dm.World:
        return dm.World(
            factions={faction.id: faction for faction in self.factions},
            territories={territory.id: territory for territory in self.territories},
            officers={officer.id: officer for officer in self.officers},
            legions={legion.id: legion for legion in self.legions},
            special_products={product.name: product for product in self.special_products},
            game_state=self.game_state,
        )


class SnapshotDocument(BaseModel):
    """Whole-world copy tied to the operation that triggered it."""

    id: dm.SnapshotID
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    operation_id: dm.OperationID
    data: WorldDocument


class SnapshotSummary(BaseModel):
    id: dm.SnapshotID
    timestamp: datetime
    operation_id: dm.OperationID
    current_year: int


def _write_atomic(path: Path, payload: bytes) -> None:
    """Write to a sibling temp file and swap it in."""

    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_bytes(payload)
    os.replace(tmp_path, path)


class JsonGameRepository:
    """Persist the game as one JSON document per collection.

    Layout under ``base_path``::

        factions.json  territories.json  officers.json  legions.json
        special_products.json  game_state.json  operations.json
        accounting_logs.json  snapshots/<snapshot id>.json
    """

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.snapshot_path = base_path / "snapshots"
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.snapshot_path.mkdir(parents=True, exist_ok=True)
        self._adapters: dict[str, TypeAdapter] = {
            "factions": TypeAdapter(list[dm.Faction]),
            "territories": TypeAdapter(list[dm.Territory]),
            "officers": TypeAdapter(list[dm.Officer]),
            "legions": TypeAdapter(list[dm.Legion]),
            "special_products": TypeAdapter(list[dm.SpecialProduct]),
            "game_state": TypeAdapter(dm.GameState),
        }
        self._operations: TypeAdapter[list[dm.OperationRecord]] = TypeAdapter(
            list[dm.OperationRecord]
        )
        self._accounting: TypeAdapter[list[dm.AccountingLog]] = TypeAdapter(
            list[dm.AccountingLog]
        )

    def _path_for(self, collection: str) -> Path:
        return self.base_path / f"{collection}.json"

    def has_collection(self, collection: str) -> bool:
        return self._path_for(collection).exists()

    # -- world ---------------------------------------------------------------

    def load_world(self) -> dm.World:
        """Load every collection; a missing file yields an empty collection."""

        raw: dict[str, object] = {}
        for name in COLLECTIONS:
            path = self._path_for(name)
            if not path.exists():
                logger.warning("%s missing; starting with an empty %s", path, name)
                continue
            raw[name] = self._adapters[name].validate_json(path.read_bytes())
        return WorldDocument(**raw).to_world()

    def save_world(self, world: dm.World, collections: Iterable[str] | None = None) -> None:
        """Write the given collections (all of them by default)."""

        document = WorldDocument.from_world(world)
        for name in collections or COLLECTIONS:
            payload = self._adapters[name].dump_json(getattr(document, name), indent=2)
            _write_atomic(self._path_for(name), payload)

    # -- operation log -------------------------------------------------------

    def load_operations(self) -> list[dm.OperationRecord]:
        path = self._path_for("operations")
        if not path.exists():
            return []
        return self._operations.validate_json(path.read_bytes())

    def save_operations(self, records: list[dm.OperationRecord]) -> None:
        _write_atomic(self._path_for("operations"), self._operations.dump_json(records, indent=2))

    # -- accounting logs -----------------------------------------------------

    def load_accounting_logs(self) -> list[dm.AccountingLog]:
        path = self._path_for("accounting_logs")
        if not path.exists():
            return []
        return self._accounting.validate_json(path.read_bytes())

    def save_accounting_logs(self, logs: list[dm.AccountingLog]) -> None:
        _write_atomic(self._path_for("accounting_logs"), self._accounting.dump_json(logs, indent=2))

    # -- snapshots -----------------------------------------------------------

    def _snapshot_file(self, snapshot_id: dm.SnapshotID) -> Path:
        return self.snapshot_path / f"{snapshot_id}.json"

    def save_snapshot(self, snapshot: SnapshotDocument) -> Path:
        path = self._snapshot_file(snapshot.id)
        _write_atomic(path, snapshot.model_dump_json(indent=2).encode("utf-8"))
        return path

    def load_snapshot(self, snapshot_id: dm.SnapshotID) -> SnapshotDocument | None:
        path = self._snapshot_file(snapshot_id)
        if not path.exists():
            return None
        return SnapshotDocument.model_validate_json(path.read_bytes())

    def list_snapshots(self) -> list[SnapshotSummary]:
        """Return every stored snapshot, newest first."""

        summaries: list[SnapshotSummary] = []
        for path in self.snapshot_path.glob("*.json"):
            snapshot = SnapshotDocument.model_validate_json(path.read_bytes())
            summaries.append(
                SnapshotSummary(
                    id=snapshot.id,
                    timestamp=snapshot.timestamp,
                    operation_id=snapshot.operation_id,
                    current_year=snapshot.data.game_state.current_year,
                )
            )
        return sorted(summaries, key=lambda summary: summary.timestamp, reverse=True)

    def delete_snapshot(self, snapshot_id: dm.SnapshotID) -> None:
        path = self._snapshot_file(snapshot_id)
        if path.exists():
            path.unlink()
