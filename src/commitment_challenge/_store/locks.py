# Area: Store
"""
commitment_challenge._store.locks — Per-game locking
====================================================

Every command and every scheduler action on a game runs while holding
that game's lock, so interactive callers and the scheduler never
interleave inside one game's mutation sequence.

Games are independent: there is no global lock spanning games. The
registry lock only guards the dictionary of per-game locks.

A game's lock is discarded once the game reaches a terminal state; a
terminal game is never mutated again, so later reads go without it.

Example:
    with locks.hold(game_id):
        game = store.get(game_id)
        ...
        store.apply_cashout(game_id, cashout, forfeited)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class GameLockRegistry:
    """Hands out one re-entrant lock per game id."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, game_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[game_id] = lock
            return lock

    def discard(self, game_id: str) -> None:
        """Drop a finished game's lock. No-op for unknown ids."""
        with self._registry_lock:
            self._locks.pop(game_id, None)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    @contextmanager
    def hold(self, game_id: str) -> Iterator[None]:
        """
        Hold a game's lock for the duration of the block.

        Re-entrant: end_game may call cash_out for the same game while
        already holding the lock.
        """
        lock = self.lock_for(game_id)
        with lock:
            yield
