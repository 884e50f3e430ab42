"""Service layer for gekokujo.

:class:`GameService` is what outer layers (the CLI, a web front end) talk to.
It owns the in-memory world and wires together:

- LockRegistry: per-faction locks, the shared world lock and the game clock lock
- OperationLog: capped newest-first record of committed actions
- AccountingJournal: year-keyed bookkeeping notes filed by admins
- SnapshotStore: whole-world copies used for restore and rollback
- views: dashboard and admin read models

Testing Usage:
    from gekokujo.repository import JsonGameRepository
    from gekokujo.services import GameService

    service = GameService(JsonGameRepository(tmp_path), settings=settings, roller=lambda seed: 42)
    result = service.recruit_soldiers(player, faction_id, 100)
"""

from gekokujo.services.game_service import GameService
from gekokujo.services.history import AccountingJournal, OperationLog, SnapshotStore
from gekokujo.services.locks import LockRegistry

__all__ = [
    "AccountingJournal",
    "GameService",
    "LockRegistry",
    "OperationLog",
    "SnapshotStore",
]
