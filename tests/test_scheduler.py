# Area: Scheduler Tests
"""Tests for LifecycleScheduler passes, timers and the worker thread."""

import time
from datetime import timedelta

import pytest

from commitment_challenge.commands import (
    CashOutCommand,
    SubmitCheckInCommand,
    VerifyCheckInCommand,
)
from commitment_challenge.config import EngineConfig
from commitment_challenge.enums import CheckInStatus, GameState, TransactionType, VerifiedBy
from commitment_challenge.errors import StoreInvariantError
from commitment_challenge._engine.lifecycle import GameLifecycleService
from commitment_challenge._engine.verification import TIMEOUT_APPROVAL_NOTE
from commitment_challenge._scheduler.scheduler import LifecycleScheduler

from helpers import START, create_command, expiry, sample_proof


@pytest.fixture
def scheduler(service):
    sched = LifecycleScheduler(service)
    yield sched
    sched.stop(timeout=2)


def _state(service, game_id):
    return service.get_game(game_id).unwrap().state


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestAutoStart:
    """Waiting games start once their start date arrives."""

    def test_starts_at_start_date(self, service, clock, scheduler, setup_game):
        """Test that a waiting game starts once its start date arrives."""
        game_id = setup_game(start=False)
        clock.set(START - timedelta(minutes=1))
        scheduler.run_once()
        assert _state(service, game_id) == GameState.WAITING_FOR_PLAYERS

        clock.set(START + timedelta(minutes=5))
        assert scheduler.run_once() is True
        game = service.get_game(game_id).unwrap()
        assert game.state == GameState.IN_PROGRESS
        assert game.started_at == clock()

    def test_not_enough_players_keeps_waiting(self, service, clock, scheduler, setup_game):
        """Test that a game short of players keeps waiting."""
        game_id = setup_game(players=(("alice", 1),), start=False)
        clock.set(START)
        scheduler.run_once()
        assert _state(service, game_id) == GameState.WAITING_FOR_PLAYERS

    def test_grace_period_passed_keeps_waiting(self, service, clock, scheduler, setup_game):
        """Test that a game past its grace period is never forced to start."""
        game_id = setup_game(start=False)
        clock.set(START + timedelta(hours=2))
        scheduler.run_once()
        assert _state(service, game_id) == GameState.WAITING_FOR_PLAYERS


class TestAutoEnd:
    """In-progress games end at their end date."""

    def test_ends_at_end_date(self, service, clock, scheduler, setup_game, complete):
        """Test that a running game ends at its end date."""
        game_id = setup_game()
        complete(game_id, "alice", 3)
        clock.set(START + timedelta(days=4))
        scheduler.run_once()

        game = service.get_game(game_id).unwrap()
        assert game.state == GameState.ENDED
        assert game.find_player("alice").bonus_won == 1000
        assert not scheduler.tracker.is_processed(game_id, 1)

    def test_terminal_games_are_skipped(self, service, clock, scheduler, setup_game):
        """Test that aborted games are left alone."""
        game_id = setup_game()
        service.abort_game(game_id, "gm-1").unwrap()
        clock.set(START + timedelta(days=10))
        scheduler.run_once()
        assert _state(service, game_id) == GameState.ABORTED


class TestCheckpointExpiry:
    """Expired checkpoints: timeout approvals and missed-checkpoint handling."""

    def test_pending_check_in_approved_on_timeout(self, service, clock, scheduler, setup_game):
        """Test that a pending check-in is approved when its checkpoint expires."""
        game_id = setup_game()
        check_in = service.submit_check_in(
            game_id,
            SubmitCheckInCommand(player_id="alice", checkpoint_number=1, proof=sample_proof()),
        ).unwrap()

        clock.set(expiry(1))
        scheduler.run_once()

        updated = service.get_player_check_ins(game_id, "alice").unwrap()[0]
        assert updated.id == check_in.id
        assert updated.status == CheckInStatus.APPROVED
        assert updated.verified_by == VerifiedBy.TIMEOUT_APPROVAL
        assert updated.notes == TIMEOUT_APPROVAL_NOTE
        player = service.get_game(game_id).unwrap().find_player("alice")
        assert player.checkpoints_completed == 1

    def test_miss_without_forced_cashout(self, service, clock, scheduler, setup_game):
        """Test that a miss only logs when forced cash outs are off."""
        game_id = setup_game()
        clock.set(expiry(1))
        scheduler.run_once()
        game = service.get_game(game_id).unwrap()
        assert not game.find_player("bob").has_folded
        assert game.total_cashouts == 0

    def test_miss_with_forced_cashout(self, service, clock, scheduler, setup_game, complete):
        """Test that a miss cashes the player out when forced cash outs are on."""
        game_id = setup_game(cmd=create_command(force_cashout_on_miss=True))
        complete(game_id, "alice", 1)

        clock.set(expiry(1))
        scheduler.run_once()

        game = service.get_game(game_id).unwrap()
        assert not game.find_player("alice").has_folded
        bob = game.find_player("bob")
        assert bob.folded_at_checkpoint == 0
        assert game.bonus_pool == 1000

        cashout = service.get_player_transactions(game_id, "bob").unwrap()[-1]
        assert cashout.type == TransactionType.CASHOUT
        assert cashout.amount == 0
        assert "Missed checkpoint 1" in cashout.description

    def test_rejected_check_in_counts_as_miss(self, service, clock, scheduler, setup_game):
        """Test that a rejected check-in counts as a miss."""
        game_id = setup_game(cmd=create_command(force_cashout_on_miss=True))
        for player_id in ("alice", "bob"):
            check_in = service.submit_check_in(
                game_id,
                SubmitCheckInCommand(player_id=player_id, checkpoint_number=1, proof=sample_proof()),
            ).unwrap()
            status = CheckInStatus.APPROVED if player_id == "alice" else CheckInStatus.REJECTED
            service.verify_check_in(
                game_id,
                VerifyCheckInCommand(game_master_id="gm-1", check_in_id=check_in.id, status=status),
            ).unwrap()

        clock.set(expiry(1))
        scheduler.run_once()
        game = service.get_game(game_id).unwrap()
        assert game.find_player("bob").has_folded
        assert not game.find_player("alice").has_folded

    def test_folded_players_are_skipped(self, service, clock, scheduler, setup_game):
        """Test that folded players are not cashed out again."""
        game_id = setup_game(cmd=create_command(force_cashout_on_miss=True))
        service.cash_out(game_id, CashOutCommand(player_id="bob")).unwrap()
        clock.set(expiry(1))
        scheduler.run_once()
        cashouts = [
            t for t in service.get_game_transactions(game_id).unwrap()
            if t.type == TransactionType.CASHOUT and t.player_id == "bob"
        ]
        assert len(cashouts) == 1

    def test_each_checkpoint_processed_once(self, service, clock, scheduler, setup_game, monkeypatch):
        """Test that each expired checkpoint is processed on one pass only."""
        game_id = setup_game()
        seen = []
        monkeypatch.setattr(
            scheduler, "_process_expired_checkpoint", lambda gid, n: seen.append((gid, n))
        )

        clock.set(expiry(1))
        scheduler.run_once()
        scheduler.run_once()
        clock.set(expiry(2) + timedelta(minutes=1))
        scheduler.run_once()

        assert seen == [(game_id, 1), (game_id, 2)]
        assert scheduler.tracker.is_processed(game_id, 2)
        assert not scheduler.tracker.is_processed(game_id, 3)

    @pytest.mark.parametrize("finish", ["end", "abort"])
    def test_finished_games_leave_the_tracker(self, service, clock, scheduler, setup_game, finish):
        """Test that a game finished by its game master is dropped on the next pass."""
        game_id = setup_game()
        other_id = setup_game()
        clock.set(expiry(1))
        scheduler.run_once()
        assert scheduler.tracker.tracked_games() == {game_id, other_id}

        if finish == "end":
            service.end_game(game_id, "gm-1").unwrap()
        else:
            service.abort_game(game_id, "gm-1").unwrap()
        scheduler.run_once()

        assert scheduler.tracker.tracked_games() == {other_id}
        assert not scheduler.tracker.is_processed(game_id, 1)


class TestEndTimer:
    """The last checkpoint's expiry arms a single end timer."""

    def test_armed_once_and_cancelled_on_stop(self, clock, scheduler, setup_game):
        """Test that the end timer is armed once and cancelled by stop."""
        setup_game()
        clock.set(expiry(3))
        scheduler.run_once()
        assert scheduler.status()["armed_end_timers"] == 1

        clock.advance(minutes=5)
        scheduler.run_once()
        assert scheduler.status()["armed_end_timers"] == 1

        scheduler.stop()
        assert scheduler.status()["armed_end_timers"] == 0

    def test_timer_ends_game(self, service, clock, scheduler, setup_game):
        """Test that the end timer ends the game."""
        cmd = create_command(end_date=expiry(3) + timedelta(seconds=1))
        game_id = setup_game(cmd=cmd)
        clock.set(expiry(3) + timedelta(milliseconds=950))
        scheduler.run_once()

        assert _wait_for(lambda: _state(service, game_id) == GameState.ENDED)
        assert _wait_for(lambda: scheduler.status()["armed_end_timers"] == 0)


class TestPassControl:
    """Pass overlap, error isolation and the worker thread."""

    def test_busy_pass_is_skipped(self, scheduler):
        """Test that run_once returns False while a pass is running."""
        scheduler._pass_lock.acquire()
        try:
            assert scheduler.run_once() is False
            assert scheduler.status()["pass_in_progress"] is True
        finally:
            scheduler._pass_lock.release()
        assert scheduler.run_once() is True

    def test_game_errors_are_isolated(self, service, clock, scheduler, setup_game, monkeypatch):
        """Test that one failing game does not stop the pass."""
        first = setup_game(start=False)
        second = setup_game(start=False)
        original = service.start_game

        def _flaky(game_id, gm):
            if game_id == first:
                raise RuntimeError("boom")
            return original(game_id, gm)

        monkeypatch.setattr(service, "start_game", _flaky)
        clock.set(START)
        assert scheduler.run_once() is True
        assert _state(service, first) == GameState.WAITING_FOR_PLAYERS
        assert _state(service, second) == GameState.IN_PROGRESS

    def test_store_invariant_error_propagates(self, service, clock, scheduler, setup_game, monkeypatch):
        """Test that StoreInvariantError escapes the pass."""
        setup_game(start=False)

        def _broken(game_id, gm):
            raise StoreInvariantError("game", game_id)

        monkeypatch.setattr(service, "start_game", _broken)
        clock.set(START)
        with pytest.raises(StoreInvariantError):
            scheduler.run_once()
        assert scheduler._pass_lock.locked() is False

    def test_worker_thread(self, store, clock, setup_game):
        """Test the worker thread start and stop."""
        config = EngineConfig(log_file="", scheduler_interval_seconds=0.01)
        svc = GameLifecycleService(store=store, clock=clock, config=config)
        game_id = setup_game(start=False, svc=svc)
        clock.set(START)

        sched = LifecycleScheduler(svc)
        sched.start()
        try:
            assert sched.running
            assert _wait_for(lambda: _state(svc, game_id) == GameState.IN_PROGRESS)
        finally:
            sched.stop(timeout=2)
        assert not sched.running
        assert sched.status()["interval_seconds"] == 0.01

    def test_start_twice_keeps_one_thread(self, scheduler):
        """Test that a second start keeps the running thread."""
        scheduler.interval = 10
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()
        assert scheduler._thread is thread
