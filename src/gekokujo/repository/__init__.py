"""Persistence adapters for gekokujo."""

from gekokujo.repository.json_store import (
    JsonGameRepository,
    SnapshotDocument,
    SnapshotSummary,
    WorldDocument,
)

__all__ = [
    "JsonGameRepository",
    "SnapshotDocument",
    "SnapshotSummary",
    "WorldDocument",
]
