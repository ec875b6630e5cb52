# Area: Engine
"""
commitment_challenge._engine.lifecycle — Game lifecycle service
===============================================================

The command surface of the engine. Every command:

1. takes the game's lock,
2. reads a fresh copy of the game,
3. checks authorization, then state, then the remaining preconditions,
4. applies its mutations through the store,
5. returns a Result holding a fresh copy of the affected entity.

Expected failures (CommandError) come back inside the Result and leave the
game untouched. StoreInvariantError is never caught here.

Money flow:

    join      INITIAL_STAKE  total_pool += stake
    cash out  CASHOUT        total_pool -= cashout, bonus_pool += forfeited
    end       PAYOUT         stake + bonus share, bonus_pool -= shares
    abort     REFUND         full stake to every unfolded player
              BONUS_POOL_CLEARED, bonus_pool = 0
"""

from __future__ import annotations

import functools
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

from ..commands import (
    CashOutCommand,
    CreateGameCommand,
    JoinGameCommand,
    SubmitCheckInCommand,
    VerifyCheckInCommand,
)
from ..config import EngineConfig
from ..enums import (
    CheckInStatus,
    GameEvent,
    GameState,
    TransactionType,
    VerificationMethod,
    VerifiedBy,
)
from ..errors import (
    CommandError,
    GameFull,
    GameNotFound,
    InvalidGameState,
    InvalidMultiplier,
    NotEnoughPlayers,
    PlayerAlreadyFolded,
    PlayerAlreadyJoined,
    PlayerNotInGame,
    StartWindowClosed,
    UnauthorizedGameMaster,
    ValidationError,
)
from ..models import (
    AIVerificationConfig,
    CheckIn,
    Checkpoint,
    Game,
    GameSummary,
    Player,
    PlayerStats,
    Transaction,
)
from ..result import Result
from ..verifier import CheckInVerifier
from .._shared.money import format_cents
from .._store.game_store import GameStore
from .._store.locks import GameLockRegistry
from . import settlement
from .state_machine import can_transition
from .verification import VerificationWorkflow

logger = logging.getLogger("commitment_challenge.lifecycle")

INCOMPLETE_AT_END_REASON = "Incomplete at game end"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def returns_result(method):
    """Wrap a command so CommandErrors come back as Result failures."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return Result.success(method(self, *args, **kwargs))
        except CommandError as e:
            logger.info(f"{method.__name__} rejected [{e.code}]: {e}")
            return Result.failure(e)

    return wrapper


class GameLifecycleService:
    """
    Commands and reads for commitment challenge games.

    Usage:
        service = GameLifecycleService(verifier=AnthropicVerifier())
        game = service.create_game(command).unwrap()
        service.join_game(game.id, JoinGameCommand(...))
    """

    def __init__(
        self,
        store: Optional[GameStore] = None,
        verifier: Optional[CheckInVerifier] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        locks: Optional[GameLockRegistry] = None,
    ):
        self.config = config or EngineConfig()
        self.store = store if store is not None else GameStore()
        self.locks = locks or GameLockRegistry()
        self.clock = clock or utc_now
        self.verification = VerificationWorkflow(
            self.store, verifier, ai_timeout_seconds=self.config.ai_timeout_seconds
        )

    # ══════════════════════════════════════════════════════════════
    # CREATE / JOIN / START
    # ══════════════════════════════════════════════════════════════

    @returns_result
    def create_game(self, cmd: CreateGameCommand) -> Game:
        self._check_create(cmd)
        now = self.clock()
        game = Game(
            id=str(uuid.uuid4()),
            game_master_id=cmd.game_master_id,
            title=cmd.title,
            description=cmd.description,
            stake_unit=cmd.stake_unit,
            max_multiplier=cmd.max_multiplier,
            min_players=cmd.min_players,
            max_players=cmd.max_players,
            start_date=cmd.start_date,
            end_date=cmd.end_date,
            checkpoints=[
                Checkpoint(
                    number=i,
                    description=spec.description,
                    expiry_date=spec.expiry_date,
                    sample_approvals=spec.sample_approvals,
                    sample_rejections=spec.sample_rejections,
                )
                for i, spec in enumerate(cmd.checkpoints, start=1)
            ],
            verification_method=cmd.verification_method,
            ai_config=(
                AIVerificationConfig(prompt=cmd.ai_config.prompt, model=cmd.ai_config.model)
                if cmd.ai_config else None
            ),
            objective=cmd.objective,
            player_action=cmd.player_action,
            reward_description=cmd.reward_description,
            failure_condition=cmd.failure_condition,
            force_cashout_on_miss=cmd.force_cashout_on_miss,
            created_at=now,
        )
        with self.locks.hold(game.id):
            self.store.create(game)
        logger.info(
            f"Game created: {game.title!r} ({game.total_checkpoints} checkpoints, "
            f"stake unit {format_cents(game.stake_unit)})",
            extra={"game_id": game.id},
        )
        return self.store.get(game.id)

    @staticmethod
    def _check_create(cmd: CreateGameCommand) -> None:
        problems: List[str] = []
        if cmd.end_date <= cmd.start_date:
            problems.append("end_date must be after start_date")
        if cmd.min_players > cmd.max_players:
            problems.append("min_players must not exceed max_players")

        previous = None
        for i, cp in enumerate(cmd.checkpoints, start=1):
            if not cmd.start_date <= cp.expiry_date <= cmd.end_date:
                problems.append(f"checkpoint {i} expires outside the game window")
            if previous is not None and cp.expiry_date < previous:
                problems.append(f"checkpoint {i} expires before checkpoint {i - 1}")
            previous = cp.expiry_date

        is_ai = cmd.verification_method == VerificationMethod.AI
        if is_ai and cmd.ai_config is None:
            problems.append("ai_config is required for AI verification")
        if not is_ai and cmd.ai_config is not None:
            problems.append("ai_config is only allowed for AI verification")

        if problems:
            raise ValidationError(problems)

    @returns_result
    def join_game(self, game_id: str, cmd: JoinGameCommand) -> Player:
        with self.game_lock(game_id):
            game = self._load(game_id)
            if game.state != GameState.WAITING_FOR_PLAYERS:
                raise InvalidGameState(game_id, game.state.value, "join")
            if len(game.players) >= game.max_players:
                raise GameFull(len(game.players), game.max_players)
            if game.find_player(cmd.player_id) is not None:
                raise PlayerAlreadyJoined(cmd.player_id)
            if cmd.multiplier > game.max_multiplier:
                raise InvalidMultiplier(cmd.multiplier, game.max_multiplier)

            now = self.clock()
            player = Player(
                id=cmd.player_id,
                name=cmd.player_name,
                multiplier=cmd.multiplier,
                joined_at=now,
            )
            stake = settlement.stake_for(game.stake_unit, cmd.multiplier)
            self.store.add_player(game_id, player)
            self.store.add_to_pool(game_id, stake)
            self._record(
                game_id, player.id, TransactionType.INITIAL_STAKE, stake, now,
                f"Initial stake of {format_cents(stake)} ({cmd.multiplier}x)",
            )
            logger.info(
                f"Player {player.name} joined with stake {format_cents(stake)}",
                extra={"game_id": game_id, "player_id": player.id},
            )
            return self.store.get_player(game_id, player.id)

    @returns_result
    def start_game(self, game_id: str, game_master_id: str) -> Game:
        with self.game_lock(game_id):
            game = self._load(game_id)
            self._authorize(game, game_master_id)
            if not can_transition(game.state, GameEvent.START):
                raise InvalidGameState(game_id, game.state.value, "start")

            now = self.clock()
            if now < game.start_date:
                raise StartWindowClosed(game_id, "start date not reached")
            grace = timedelta(seconds=self.config.start_grace_seconds)
            if now > game.start_date + grace:
                raise StartWindowClosed(game_id, "start grace period has passed")
            if len(game.players) < game.min_players:
                raise NotEnoughPlayers(len(game.players), game.min_players)

            self.store.mark_started(game_id, now)
            logger.info(
                f"Game started with {len(game.players)} players, "
                f"pool {format_cents(game.total_pool)}",
                extra={"game_id": game_id},
            )
            return self.store.get(game_id)

    # ══════════════════════════════════════════════════════════════
    # CHECK-INS
    # ══════════════════════════════════════════════════════════════

    @returns_result
    def submit_check_in(self, game_id: str, cmd: SubmitCheckInCommand) -> CheckIn:
        with self.game_lock(game_id):
            game = self._load(game_id)
            return self.verification.submit(
                game, cmd.player_id, cmd.checkpoint_number, cmd.proof, self.clock()
            )

    @returns_result
    def verify_check_in(self, game_id: str, cmd: VerifyCheckInCommand) -> CheckIn:
        with self.game_lock(game_id):
            game = self._load(game_id)
            self._authorize(game, cmd.game_master_id)
            return self.verification.verify(
                game, cmd.check_in_id, cmd.status, VerifiedBy.GAMEMASTER, self.clock(),
                notes=cmd.notes,
            )

    @returns_result
    def approve_on_timeout(self, game_id: str, check_in_id: str) -> CheckIn:
        """
        Approve a check-in still PENDING when its checkpoint expired.

        Called by the scheduler; records TIMEOUT_APPROVAL as the verifier.
        """
        with self.game_lock(game_id):
            game = self._load(game_id)
            return self.verification.verify(
                game, check_in_id, CheckInStatus.APPROVED,
                VerifiedBy.TIMEOUT_APPROVAL, self.clock(),
            )

    # ══════════════════════════════════════════════════════════════
    # CASH OUT / END / ABORT
    # ══════════════════════════════════════════════════════════════

    @returns_result
    def cash_out(self, game_id: str, cmd: CashOutCommand) -> Player:
        with self.game_lock(game_id):
            game = self._load(game_id)
            if game.state != GameState.IN_PROGRESS:
                raise InvalidGameState(game_id, game.state.value, "cash out of")
            player = game.find_player(cmd.player_id)
            if player is None:
                raise PlayerNotInGame(cmd.player_id)
            if player.has_folded:
                raise PlayerAlreadyFolded(cmd.player_id)

            self._fold(game, player, cmd.reason, self.clock())
            return self.store.get_player(game_id, cmd.player_id)

    def _fold(self, game: Game, player: Player, reason: Optional[str], now: datetime) -> None:
        """Cash a validated, unfolded player out at their current progress."""
        stake = game.stake_for(player)
        split = settlement.settle_cashout(
            stake, player.checkpoints_completed, game.total_checkpoints
        )
        self.store.fold_player(game.id, player.id)
        self.store.apply_cashout(game.id, split.cashout, split.forfeited)

        description = (
            f"Cash out at checkpoint {player.checkpoints_completed}/{game.total_checkpoints}: "
            f"{format_cents(split.cashout)} (forfeited {format_cents(split.forfeited)})"
        )
        if reason:
            description = f"{description} - {reason}"
        self._record(game.id, player.id, TransactionType.CASHOUT, split.cashout, now, description)
        logger.info(
            f"Player {player.name} cashed out {format_cents(split.cashout)}, "
            f"{format_cents(split.forfeited)} to bonus pool",
            extra={"game_id": game.id, "player_id": player.id},
        )

    @returns_result
    def end_game(self, game_id: str, game_master_id: str) -> Game:
        with self.game_lock(game_id):
            game = self._load(game_id)
            self._authorize(game, game_master_id)
            if not can_transition(game.state, GameEvent.END):
                raise InvalidGameState(game_id, game.state.value, "end")

            now = self.clock()
            total = game.total_checkpoints
            for player in game.players:
                if not player.has_folded and player.checkpoints_completed < total:
                    self._fold(game, player, INCOMPLETE_AT_END_REASON, now)

            game = self._load(game_id)
            winners = [
                p for p in game.players
                if not p.has_folded and p.checkpoints_completed == total
            ]
            shares = settlement.bonus_shares(
                {p.id: game.stake_for(p) for p in winners}, game.bonus_pool
            )
            for player in winners:
                stake = game.stake_for(player)
                bonus = shares[player.id]
                self.store.set_bonus(game_id, player.id, bonus)
                self._record(
                    game_id, player.id, TransactionType.PAYOUT, stake + bonus, now,
                    f"Payout: stake {format_cents(stake)} + bonus {format_cents(bonus)}",
                )

            distributed = sum(shares.values())
            self.store.deduct_bonus_pool(game_id, distributed)
            self.store.mark_ended(game_id, GameState.ENDED, now)
            logger.info(
                f"Game ended: {len(winners)} winner(s), bonus distributed "
                f"{format_cents(distributed)}, retained {format_cents(game.bonus_pool - distributed)}",
                extra={"game_id": game_id},
            )
            return self.store.get(game_id)

    @returns_result
    def abort_game(self, game_id: str, game_master_id: str, reason: Optional[str] = None) -> Game:
        with self.game_lock(game_id):
            game = self._load(game_id)
            self._authorize(game, game_master_id)
            if not can_transition(game.state, GameEvent.ABORT):
                raise InvalidGameState(game_id, game.state.value, "abort")

            now = self.clock()
            suffix = f": {reason}" if reason else ""
            refunded = 0
            for player in game.players:
                if player.has_folded:
                    continue
                stake = game.stake_for(player)
                refunded += stake
                self._record(
                    game_id, player.id, TransactionType.REFUND, stake, now,
                    f"Refund of {format_cents(stake)}, game aborted{suffix}",
                )

            self._record(
                game_id, None, TransactionType.BONUS_POOL_CLEARED, game.bonus_pool, now,
                f"Bonus pool of {format_cents(game.bonus_pool)} cleared on abort",
            )
            self.store.clear_bonus_pool(game_id)
            self.store.mark_ended(game_id, GameState.ABORTED, now)
            logger.warning(
                f"Game aborted{suffix}; refunded {format_cents(refunded)}",
                extra={"game_id": game_id},
            )
            return self.store.get(game_id)

    # ══════════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════════

    @returns_result
    def get_game(self, game_id: str) -> Game:
        with self.game_lock(game_id):
            return self._load(game_id)

    @returns_result
    def get_games_by_game_master(self, game_master_id: str) -> List[Game]:
        return self.store.list_by_game_master(game_master_id)

    @returns_result
    def get_player_check_ins(self, game_id: str, player_id: str) -> List[CheckIn]:
        with self.game_lock(game_id):
            game = self._load(game_id)
            if game.find_player(player_id) is None:
                raise PlayerNotInGame(player_id)
            return self.store.get_player_check_ins(game_id, player_id)

    @returns_result
    def get_game_transactions(self, game_id: str) -> List[Transaction]:
        with self.game_lock(game_id):
            self._load(game_id)
            return self.store.get_transactions(game_id)

    @returns_result
    def get_player_transactions(self, game_id: str, player_id: str) -> List[Transaction]:
        with self.game_lock(game_id):
            game = self._load(game_id)
            if game.find_player(player_id) is None:
                raise PlayerNotInGame(player_id)
            return self.store.get_player_transactions(game_id, player_id)

    @returns_result
    def get_game_summary(self, game_id: str) -> GameSummary:
        with self.game_lock(game_id):
            game = self._load(game_id)
        return GameSummary(
            game_id=game.id,
            title=game.title,
            state=game.state,
            total_pool=game.total_pool,
            total_cashouts=game.total_cashouts,
            bonus_pool=game.bonus_pool,
            players_count=len(game.players),
            winners_count=sum(
                1 for p in game.players
                if not p.has_folded and p.checkpoints_completed == game.total_checkpoints
            ),
            ended_at=game.ended_at,
        )

    @returns_result
    def get_player_stats(self, game_id: str, player_id: str) -> PlayerStats:
        with self.game_lock(game_id):
            game = self._load(game_id)
        player = game.find_player(player_id)
        if player is None:
            raise PlayerNotInGame(player_id)

        if player.has_folded:
            status = "folded"
        elif player.checkpoints_completed == game.total_checkpoints:
            status = "completed"
        else:
            status = "active"

        paid = [
            t for t in game.transactions
            if t.player_id == player_id and t.type in (
                TransactionType.CASHOUT, TransactionType.PAYOUT, TransactionType.REFUND
            )
        ]
        cashout = next((t.amount for t in paid if t.type == TransactionType.CASHOUT), None)
        return PlayerStats(
            player_id=player.id,
            player_name=player.name,
            stake=game.stake_for(player),
            checkpoints_completed=player.checkpoints_completed,
            status=status,
            cashout_amount=cashout,
            bonus_won=player.bonus_won,
            total_payout=sum(t.amount for t in paid) if paid else None,
        )

    # ══════════════════════════════════════════════════════════════
    # HELPERS
    # ══════════════════════════════════════════════════════════════

    @contextmanager
    def game_lock(self, game_id: str) -> Iterator[None]:
        """
        Hold a game's lock for the block.

        Unknown ids raise GameNotFound before any lock is created. Terminal
        games are read without a lock, and a game that becomes terminal
        inside the block has its lock discarded on the way out.
        """
        state = self.store.state_of(game_id)
        if state is None:
            raise GameNotFound(game_id)
        if state.is_terminal:
            yield
            return
        with self.locks.hold(game_id):
            try:
                yield
            finally:
                state = self.store.state_of(game_id)
                if state is None or state.is_terminal:
                    self.locks.discard(game_id)

    def _load(self, game_id: str) -> Game:
        game = self.store.get(game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    @staticmethod
    def _authorize(game: Game, game_master_id: str) -> None:
        if game.game_master_id != game_master_id:
            raise UnauthorizedGameMaster(game_master_id)

    def _record(
        self,
        game_id: str,
        player_id: Optional[str],
        kind: TransactionType,
        amount: int,
        at: datetime,
        description: str,
    ) -> None:
        self.store.add_transaction(
            game_id,
            Transaction(
                id=str(uuid.uuid4()),
                player_id=player_id,
                type=kind,
                amount=amount,
                timestamp=at,
                description=description,
            ),
        )
