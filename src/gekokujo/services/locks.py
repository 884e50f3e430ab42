"""Mutual exclusion for concurrent callers of the game service."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager

from gekokujo.domain.models import FactionID


class LockRegistry:
    """One re-entrant lock per known faction, a world lock and a clock lock.

    Factions share the legion, officer and territory collections, so every
    faction operation and every read also holds ``world`` while it touches
    them.  Locks are always taken in the same order: faction locks (sorted),
    then ``world``.  Operations that touch every faction (advancing the year,
    locking the game, restoring a snapshot, flushing to disk) take the clock,
    the registry guard and then every faction lock, so two of them can never
    deadlock and no faction operation is in flight while they run.

    Locks exist only for registered factions; an unknown id is served under
    the world lock alone and never grows the registry.
    """

    def __init__(self) -> None:
        self._guard = threading.RLock()
        self._locks: dict[FactionID, threading.RLock] = {}
        self.clock = threading.RLock()
        self.world = threading.RLock()

    def __contains__(self, faction_id: object) -> bool:
        return faction_id in self._locks

    def register(self, faction_ids: Iterable[FactionID]) -> None:
        with self._guard:
            for faction_id in faction_ids:
                self._locks.setdefault(faction_id, threading.RLock())

    @contextmanager
    def faction(self, faction_id: FactionID) -> Iterator[None]:
        lock = self._locks.get(faction_id)
        with ExitStack() as stack:
            if lock is not None:
                stack.enter_context(lock)
            stack.enter_context(self.world)
            yield

    @contextmanager
    def all_factions(self, faction_ids: Iterable[FactionID] = ()) -> Iterator[None]:
        with self._guard, ExitStack() as stack:
            self.register(faction_ids)
            for faction_id in sorted(self._locks):
                stack.enter_context(self._locks[faction_id])
            stack.enter_context(self.world)
            yield

    @contextmanager
    def everything(self, faction_ids: Iterable[FactionID] = ()) -> Iterator[None]:
        with self.clock, self.all_factions(faction_ids):
            yield
