# Area: Scheduler
"""
commitment_challenge._scheduler.scheduler — Background lifecycle scheduler
==========================================================================

Drives games forward in time. Every interval it runs one pass over all
non-terminal games:

1. WAITING_FOR_PLAYERS and now >= start_date  -> try to start
   (a failure is logged and the game keeps waiting)
2. IN_PROGRESS and now >= end_date            -> end
3. IN_PROGRESS otherwise                       -> process newly expired
   checkpoints: pending check-ins are approved with TIMEOUT_APPROVAL,
   players who missed the checkpoint are cashed out when the game forces
   cashouts on a miss. When the last checkpoint expires, a one-shot timer
   ends the game at end_date.

The scheduler goes through the same command surface as interactive
callers and holds the game's lock while it works on a game. A pass never
overlaps another pass; a pass that finds the previous one still running
returns immediately.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..commands import CashOutCommand
from ..config import EngineConfig
from ..enums import CheckInStatus, GameState
from ..errors import StoreInvariantError
from ..models import Game
from .._engine.lifecycle import GameLifecycleService
from .expiry_tracker import ExpiryTracker

logger = logging.getLogger("commitment_challenge.scheduler")


class LifecycleScheduler:
    """
    Periodic driver for game start, checkpoint expiry and game end.

    Usage:
        scheduler = LifecycleScheduler(service)
        scheduler.start()
        ...
        scheduler.stop()

    Tests call run_once(now) directly instead of starting the thread.
    """

    def __init__(
        self,
        service: GameLifecycleService,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.service = service
        self.store = service.store
        self.config = config or service.config
        self.clock = clock or service.clock
        self.interval = self.config.scheduler_interval_seconds
        self.tracker = ExpiryTracker()

        self._stop_event = threading.Event()
        self._pass_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._end_timers: Dict[str, threading.Timer] = {}
        self._timers_lock = threading.Lock()

    # ── Thread control ────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread; the first pass runs immediately."""
        if self.running:
            logger.info("Scheduler is already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="lifecycle-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(f"Scheduler started - checking every {self.interval}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker thread and cancel armed end timers."""
        self._stop_event.set()
        with self._timers_lock:
            for timer in self._end_timers.values():
                timer.cancel()
            self._end_timers.clear()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Scheduler stopped")

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except StoreInvariantError:
                self._stop_event.set()
                raise
            except Exception as e:
                logger.error(f"Scheduler pass error: {e}", exc_info=True)
            self._stop_event.wait(self.interval)

    def status(self) -> Dict[str, Any]:
        with self._timers_lock:
            armed = len(self._end_timers)
        return {
            "running": self.running,
            "interval_seconds": self.interval,
            "armed_end_timers": armed,
            "pass_in_progress": self._pass_lock.locked(),
        }

    # ── Passes ────────────────────────────────────────────────

    def run_once(self, now: Optional[datetime] = None) -> bool:
        """
        Run one pass over all non-terminal games.

        Returns False without doing anything if a pass is already running.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("Previous scheduler pass still running; skipping")
            return False
        try:
            now = now or self.clock()
            games = self.store.list_active()
            self.tracker.retain(game.id for game in games)
            logger.debug(f"Scheduler pass over {len(games)} games at {now.isoformat()}")
            for game in games:
                try:
                    self._process_game(game, now)
                except StoreInvariantError:
                    raise
                except Exception as e:
                    logger.error(
                        f"Error processing game {game.id}: {e}",
                        exc_info=True, extra={"game_id": game.id},
                    )
            return True
        finally:
            self._pass_lock.release()

    def _process_game(self, game: Game, now: datetime) -> None:
        if game.state == GameState.WAITING_FOR_PLAYERS:
            if now >= game.start_date:
                self._try_start(game)
        elif game.state == GameState.IN_PROGRESS:
            if now >= game.end_date:
                self._end(game.id, game.game_master_id)
            else:
                for number in self.tracker.newly_expired(game, now):
                    self._process_expired_checkpoint(game.id, number)
                    if number == game.total_checkpoints:
                        self._arm_end_timer(game, now)

    def _try_start(self, game: Game) -> None:
        result = self.service.start_game(game.id, game.game_master_id)
        if result.ok:
            logger.info(
                f"Game started by scheduler ({len(game.players)}/{game.max_players} players)",
                extra={"game_id": game.id},
            )
        else:
            logger.warning(
                f"Game could not start: {result.error}", extra={"game_id": game.id}
            )

    def _end(self, game_id: str, game_master_id: str) -> None:
        result = self.service.end_game(game_id, game_master_id)
        if result.ok:
            logger.info("Game ended by scheduler", extra={"game_id": game_id})
            self._forget(game_id)
        else:
            logger.warning(f"Game could not end: {result.error}", extra={"game_id": game_id})

    # ── Checkpoint expiry ─────────────────────────────────────

    def _process_expired_checkpoint(self, game_id: str, number: int) -> None:
        with self.service.game_lock(game_id):
            game = self.store.get(game_id)
            if game is None or game.state != GameState.IN_PROGRESS:
                return
            for player in game.players:
                if player.has_folded:
                    continue
                latest = game.latest_check_in(player.id, number)
                if latest is not None and latest.status == CheckInStatus.APPROVED:
                    continue
                if latest is not None and latest.status == CheckInStatus.PENDING:
                    self._approve_on_timeout(game, latest.id)
                    continue

                logger.info(
                    f"Player {player.name} missed checkpoint {number}",
                    extra={"game_id": game_id, "player_id": player.id},
                )
                if game.force_cashout_on_miss:
                    self._force_cash_out(game_id, player.id, f"Missed checkpoint {number}")

    def _approve_on_timeout(self, game: Game, check_in_id: str) -> None:
        result = self.service.approve_on_timeout(game.id, check_in_id)
        if result.ok:
            logger.info(
                f"Check-in {check_in_id} approved on timeout", extra={"game_id": game.id}
            )
        else:
            logger.warning(
                f"Timeout approval of {check_in_id} failed: {result.error}",
                extra={"game_id": game.id},
            )

    def _force_cash_out(self, game_id: str, player_id: str, reason: str) -> None:
        result = self.service.cash_out(game_id, CashOutCommand(player_id=player_id, reason=reason))
        if result.ok:
            logger.info(
                f"Player force cashed out: {reason}",
                extra={"game_id": game_id, "player_id": player_id},
            )
        else:
            logger.warning(
                f"Force cashout failed: {result.error}",
                extra={"game_id": game_id, "player_id": player_id},
            )

    # ── End timers ────────────────────────────────────────────

    def _arm_end_timer(self, game: Game, now: datetime) -> None:
        """Arm at most one timer per game to end it at end_date."""
        delay = max(0.0, (game.end_date - now).total_seconds())
        with self._timers_lock:
            if game.id in self._end_timers:
                return
            timer = threading.Timer(
                delay, self._on_end_timer, args=(game.id, game.game_master_id)
            )
            timer.daemon = True
            self._end_timers[game.id] = timer
            timer.start()
        logger.info(
            f"Last checkpoint expired; game end scheduled in {delay:.0f}s",
            extra={"game_id": game.id},
        )

    def _on_end_timer(self, game_id: str, game_master_id: str) -> None:
        with self._timers_lock:
            self._end_timers.pop(game_id, None)
        game = self.store.get(game_id)
        if game is None or game.state.is_terminal:
            self.tracker.forget(game_id)
            return
        logger.info("Game end time reached", extra={"game_id": game_id})
        self._end(game_id, game_master_id)

    def _forget(self, game_id: str) -> None:
        self.tracker.forget(game_id)
        with self._timers_lock:
            timer = self._end_timers.pop(game_id, None)
        if timer is not None:
            timer.cancel()
