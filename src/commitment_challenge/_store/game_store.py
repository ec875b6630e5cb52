# Area: Store
"""
commitment_challenge._store.game_store — In-memory entity store
===============================================================

Owns every game and everything a game owns.

Reads return deep copies. Mutators operate on the single stored instance
and are *unchecked*: the lifecycle service validates preconditions first,
so a missing game, player or check-in here means the store and the engine
are out of sync. That raises StoreInvariantError and is never swallowed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ..enums import CheckInStatus, GameState, VerifiedBy
from ..errors import StoreInvariantError
from ..models import CheckIn, Game, Player, Transaction
from .._shared.logging_config import log_invariant_violation

logger = logging.getLogger("commitment_challenge.store")


class GameStore:
    """
    Single source of truth for game state.

    Not thread-safe on its own: callers serialize access per game
    (see GameLockRegistry).
    """

    def __init__(self) -> None:
        self._games: Dict[str, Game] = {}

    # ══════════════════════════════════════════════════════════════
    # GAME OPERATIONS
    # ══════════════════════════════════════════════════════════════

    def create(self, game: Game) -> None:
        self._games[game.id] = game.model_copy(deep=True)
        logger.debug("Game stored: %s", game.id)

    def get(self, game_id: str) -> Optional[Game]:
        game = self._games.get(game_id)
        if game is None:
            return None
        return game.model_copy(deep=True)

    def exists(self, game_id: str) -> bool:
        return game_id in self._games

    def state_of(self, game_id: str) -> Optional[GameState]:
        game = self._games.get(game_id)
        return game.state if game is not None else None

    def list_active(self) -> List[Game]:
        """Copies of every game that is not ENDED or ABORTED."""
        return [
            game.model_copy(deep=True)
            for game in self._games.values()
            if not game.state.is_terminal
        ]

    def list_by_game_master(self, game_master_id: str) -> List[Game]:
        return [
            game.model_copy(deep=True)
            for game in self._games.values()
            if game.game_master_id == game_master_id
        ]

    def mark_started(self, game_id: str, at: datetime) -> None:
        game = self._game(game_id)
        game.state = GameState.IN_PROGRESS
        game.started_at = at

    def mark_ended(self, game_id: str, state: GameState, at: datetime) -> None:
        game = self._game(game_id)
        game.state = state
        game.ended_at = at

    # ══════════════════════════════════════════════════════════════
    # FINANCIAL OPERATIONS
    # ══════════════════════════════════════════════════════════════

    def add_to_pool(self, game_id: str, amount: int) -> None:
        self._game(game_id).total_pool += amount

    def apply_cashout(self, game_id: str, cashout_amount: int, forfeited_amount: int) -> None:
        """Move the cashout out of the pool and the forfeit into the bonus pool."""
        game = self._game(game_id)
        game.total_pool -= cashout_amount
        game.total_cashouts += cashout_amount
        game.bonus_pool += forfeited_amount

    def deduct_bonus_pool(self, game_id: str, amount: int) -> None:
        self._game(game_id).bonus_pool -= amount

    def clear_bonus_pool(self, game_id: str) -> None:
        self._game(game_id).bonus_pool = 0

    def add_transaction(self, game_id: str, transaction: Transaction) -> None:
        self._game(game_id).transactions.append(transaction)

    def get_transactions(self, game_id: str) -> List[Transaction]:
        game = self._games.get(game_id)
        if game is None:
            return []
        return [t.model_copy(deep=True) for t in game.transactions]

    def get_player_transactions(self, game_id: str, player_id: str) -> List[Transaction]:
        return [t for t in self.get_transactions(game_id) if t.player_id == player_id]

    # ══════════════════════════════════════════════════════════════
    # PLAYER OPERATIONS
    # ══════════════════════════════════════════════════════════════

    def add_player(self, game_id: str, player: Player) -> None:
        self._game(game_id).players.append(player.model_copy(deep=True))

    def get_player(self, game_id: str, player_id: str) -> Optional[Player]:
        player = self._game(game_id).find_player(player_id)
        return player.model_copy(deep=True) if player else None

    def increment_progress(self, game_id: str, player_id: str) -> None:
        self._player(game_id, player_id).checkpoints_completed += 1

    def fold_player(self, game_id: str, player_id: str) -> None:
        """Freeze the player's exit at their current completed count."""
        player = self._player(game_id, player_id)
        player.folded_at_checkpoint = player.checkpoints_completed

    def set_bonus(self, game_id: str, player_id: str, bonus: int) -> None:
        self._player(game_id, player_id).bonus_won = bonus

    # ══════════════════════════════════════════════════════════════
    # CHECK-IN OPERATIONS
    # ══════════════════════════════════════════════════════════════

    def add_check_in(self, game_id: str, check_in: CheckIn) -> None:
        self._game(game_id).check_ins.append(check_in.model_copy(deep=True))

    def delete_check_in(self, game_id: str, check_in_id: str) -> None:
        game = self._game(game_id)
        self._check_in(game, check_in_id)
        game.check_ins = [c for c in game.check_ins if c.id != check_in_id]

    def set_check_in_verdict(
        self,
        game_id: str,
        check_in_id: str,
        status: CheckInStatus,
        verified_by: VerifiedBy,
        at: Optional[datetime],
        ai_confidence: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        """
        Record a verification outcome.

        A PENDING status with verifier metadata means "needs review": the AI
        looked at it (or failed to) and a human still has to decide.
        """
        check_in = self._check_in(self._game(game_id), check_in_id)
        check_in.status = status
        check_in.verified_by = verified_by
        check_in.verified_at = at
        check_in.ai_confidence = ai_confidence
        check_in.notes = notes

    def get_check_in(self, game_id: str, check_in_id: str) -> Optional[CheckIn]:
        game = self._game(game_id)
        found = next((c for c in game.check_ins if c.id == check_in_id), None)
        return found.model_copy(deep=True) if found else None

    def get_player_check_ins(self, game_id: str, player_id: str) -> List[CheckIn]:
        game = self._games.get(game_id)
        if game is None:
            return []
        return [c.model_copy(deep=True) for c in game.check_ins if c.player_id == player_id]

    # ══════════════════════════════════════════════════════════════
    # UTILITY
    # ══════════════════════════════════════════════════════════════

    def clear(self) -> None:
        self._games.clear()

    def __len__(self) -> int:
        return len(self._games)

    def _game(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise self._missing("Game", game_id, game_id)
        return game

    def _player(self, game_id: str, player_id: str) -> Player:
        player = self._game(game_id).find_player(player_id)
        if player is None:
            raise self._missing("Player", player_id, game_id)
        return player

    def _check_in(self, game: Game, check_in_id: str) -> CheckIn:
        found = next((c for c in game.check_ins if c.id == check_in_id), None)
        if found is None:
            raise self._missing("CheckIn", check_in_id, game.id)
        return found

    @staticmethod
    def _missing(entity: str, entity_id: str, game_id: str) -> StoreInvariantError:
        error = StoreInvariantError(entity, entity_id, game_id)
        log_invariant_violation(error)
        return error
