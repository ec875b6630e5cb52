# Area: Scheduler
"""
commitment_challenge._scheduler.expiry_tracker — Checkpoint expiry tracking
===========================================================================

Remembers which (game, checkpoint) pairs the scheduler has already
processed, so an expired checkpoint is handled on the first pass that
sees it and skipped on every later pass.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Set, Tuple

from ..models import Game

logger = logging.getLogger("commitment_challenge.expiry_tracker")


class ExpiryTracker:
    """
    Tracks processed checkpoint expiries keyed by (game id, checkpoint number).
    """

    def __init__(self) -> None:
        self._processed: Set[Tuple[str, int]] = set()

    def newly_expired(self, game: Game, now: datetime) -> List[int]:
        """
        Return checkpoint numbers that expired at or before ``now`` and
        have not been returned before, marking them processed.
        """
        expired: List[int] = []
        for checkpoint in game.checkpoints:
            key = (game.id, checkpoint.number)
            if now >= checkpoint.expiry_date and key not in self._processed:
                self._processed.add(key)
                expired.append(checkpoint.number)

        if expired:
            logger.info(
                "Checkpoints expired: %s", expired, extra={"game_id": game.id}
            )
        return expired

    def is_processed(self, game_id: str, checkpoint_number: int) -> bool:
        return (game_id, checkpoint_number) in self._processed

    def forget(self, game_id: str) -> None:
        """Drop every entry of a finished game. No-op if none."""
        self._processed = {key for key in self._processed if key[0] != game_id}
        logger.debug("Expiry tracking cleared for %s", game_id)

    def retain(self, game_ids: Iterable[str]) -> None:
        """Drop entries of every game not in ``game_ids``."""
        keep = set(game_ids)
        dropped = {key[0] for key in self._processed if key[0] not in keep}
        if dropped:
            self._processed = {key for key in self._processed if key[0] in keep}
            logger.debug("Expiry tracking cleared for finished games %s", sorted(dropped))

    def tracked_games(self) -> Set[str]:
        return {key[0] for key in self._processed}

    def clear(self) -> None:
        """Remove all tracked expiries."""
        self._processed.clear()
