# Area: Engine Tests
"""Tests for cash_out, end_game and abort_game money flows."""

import pytest

from commitment_challenge.commands import CashOutCommand, SubmitCheckInCommand
from commitment_challenge.enums import GameState, TransactionType
from commitment_challenge.errors import (
    GameNotFound,
    InvalidGameState,
    PlayerAlreadyFolded,
    PlayerNotInGame,
    UnauthorizedGameMaster,
)
from commitment_challenge._engine.lifecycle import INCOMPLETE_AT_END_REASON

from helpers import GM, create_command, sample_proof


def _types(transactions):
    return [t.type for t in transactions]


def _assert_conserved(service, game_id):
    game = service.get_game(game_id).unwrap()
    staked = sum(
        t.amount for t in game.transactions if t.type == TransactionType.INITIAL_STAKE
    )
    assert game.total_pool + game.total_cashouts == staked


class TestCashOut:
    """A folding player keeps the completed fraction of their stake."""

    def test_three_of_five(self, service, setup_game, complete):
        """Test cashing out after three of five checkpoints."""
        game_id = setup_game(
            players=(("alice", 1), ("bob", 1)), cmd=create_command(count=5, stake_unit=2000)
        )
        complete(game_id, "alice", 3)

        player = service.cash_out(game_id, CashOutCommand(player_id="alice", reason="Injured")).unwrap()
        assert player.folded_at_checkpoint == 3

        game = service.get_game(game_id).unwrap()
        assert game.total_pool == 4000 - 1200
        assert game.total_cashouts == 1200
        assert game.bonus_pool == 800

        cashout = service.get_player_transactions(game_id, "alice").unwrap()[-1]
        assert cashout.type == TransactionType.CASHOUT
        assert cashout.amount == 1200
        assert "Injured" in cashout.description
        _assert_conserved(service, game_id)

    def test_cash_out_twice(self, service, setup_game, complete):
        """Test that a second cash out fails and leaves every counter unchanged."""
        game_id = setup_game()
        complete(game_id, "alice", 1)
        service.cash_out(game_id, CashOutCommand(player_id="alice")).unwrap()
        before = service.get_game(game_id).unwrap()

        for _ in range(2):
            result = service.cash_out(game_id, CashOutCommand(player_id="alice"))
            assert isinstance(result.error, PlayerAlreadyFolded)

        after = service.get_game(game_id).unwrap()
        assert after.total_pool == before.total_pool
        assert after.total_cashouts == before.total_cashouts
        assert after.bonus_pool == before.bonus_pool
        assert len(after.transactions) == len(before.transactions)
        _assert_conserved(service, game_id)

    def test_cash_out_before_start(self, service, setup_game):
        """Test that a waiting game refuses cash outs."""
        game_id = setup_game(start=False)
        result = service.cash_out(game_id, CashOutCommand(player_id="alice"))
        assert isinstance(result.error, InvalidGameState)

    def test_unknown_player(self, service, setup_game):
        """Test that an unknown player cannot cash out."""
        game_id = setup_game()
        result = service.cash_out(game_id, CashOutCommand(player_id="mallory"))
        assert isinstance(result.error, PlayerNotInGame)

    def test_folded_player_cannot_check_in(self, service, setup_game):
        """Test that a folded player cannot submit check-ins."""
        game_id = setup_game()
        service.cash_out(game_id, CashOutCommand(player_id="alice")).unwrap()
        result = service.submit_check_in(
            game_id,
            SubmitCheckInCommand(player_id="alice", checkpoint_number=1, proof=sample_proof()),
        )
        assert isinstance(result.error, PlayerAlreadyFolded)

    def test_player_stats_after_cash_out(self, service, setup_game, complete):
        """Test player stats after a cash out."""
        game_id = setup_game(cmd=create_command(count=5, stake_unit=2000))
        complete(game_id, "alice", 3)
        service.cash_out(game_id, CashOutCommand(player_id="alice")).unwrap()

        stats = service.get_player_stats(game_id, "alice").unwrap()
        assert stats.status == "folded"
        assert stats.stake == 2000
        assert stats.cashout_amount == 1200
        assert stats.total_payout == 1200
        assert stats.bonus_won is None

        assert service.get_player_stats(game_id, "bob").unwrap().status == "active"


class TestEndGame:
    """Ending force-folds the incomplete and pays the finishers."""

    def test_finishers_share_forfeits(self, service, setup_game, complete):
        """Test that finishers split the forfeited stakes."""
        game_id = setup_game(
            players=(("alice", 1), ("bob", 1), ("carol", 1)),
            cmd=create_command(count=5, stake_unit=2000),
        )
        complete(game_id, "alice", 5)
        complete(game_id, "bob", 5)
        complete(game_id, "carol", 3)

        game = service.end_game(game_id, GM).unwrap()
        assert game.state == GameState.ENDED
        assert game.ended_at is not None
        assert game.total_cashouts == 1200
        assert game.total_pool == 6000 - 1200
        assert game.bonus_pool == 0

        carol = game.find_player("carol")
        assert carol.folded_at_checkpoint == 3
        carol_txns = service.get_player_transactions(game_id, "carol").unwrap()
        assert carol_txns[-1].type == TransactionType.CASHOUT
        assert INCOMPLETE_AT_END_REASON in carol_txns[-1].description

        for player_id in ("alice", "bob"):
            assert game.find_player(player_id).bonus_won == 400
            payout = service.get_player_transactions(game_id, player_id).unwrap()[-1]
            assert payout.type == TransactionType.PAYOUT
            assert payout.amount == 2400
        _assert_conserved(service, game_id)

    def test_rounding_remainder_stays_in_pool(self, service, setup_game, complete):
        """Test that the rounding remainder stays in the bonus pool."""
        game_id = setup_game(
            players=(("alice", 1), ("bob", 1), ("carol", 1), ("dave", 1)),
            cmd=create_command(count=3, stake_unit=1000),
        )
        for player_id in ("alice", "bob", "carol"):
            complete(game_id, player_id, 3)

        game = service.end_game(game_id, GM).unwrap()
        assert [game.find_player(p).bonus_won for p in ("alice", "bob", "carol")] == [333] * 3
        assert game.bonus_pool == 1

    def test_winner_paid_stake_with_empty_bonus_pool(self, service, setup_game, complete):
        """Test that winners get their stake back when the bonus pool is empty."""
        game_id = setup_game(players=(("alice", 2), ("bob", 1)))
        complete(game_id, "alice", 3)
        complete(game_id, "bob", 3)

        game = service.end_game(game_id, GM).unwrap()
        assert game.find_player("alice").bonus_won == 0
        payouts = [
            t for t in game.transactions if t.type == TransactionType.PAYOUT
        ]
        assert sorted(t.amount for t in payouts) == [1000, 2000]

    def test_no_finishers_keeps_bonus(self, service, setup_game, complete):
        """Test that the bonus pool is kept when nobody finishes."""
        game_id = setup_game()
        complete(game_id, "alice", 1)
        game = service.end_game(game_id, GM).unwrap()
        # alice keeps 333 of 1000, bob keeps nothing
        assert game.total_cashouts == 333
        assert game.bonus_pool == 667 + 1000
        assert TransactionType.PAYOUT not in _types(game.transactions)

    def test_summary_after_end(self, service, setup_game, complete):
        """Test the game summary and player stats after the end."""
        game_id = setup_game()
        complete(game_id, "alice", 3)
        service.end_game(game_id, GM).unwrap()

        summary = service.get_game_summary(game_id).unwrap()
        assert summary.state == GameState.ENDED
        assert summary.players_count == 2
        assert summary.winners_count == 1
        assert summary.bonus_pool == 0

        stats = service.get_player_stats(game_id, "alice").unwrap()
        assert stats.status == "completed"
        assert stats.bonus_won == 1000
        assert stats.total_payout == 2000

    def test_wrong_game_master(self, service, setup_game):
        """Test that another game master is refused."""
        game_id = setup_game()
        assert isinstance(service.end_game(game_id, "intruder").error, UnauthorizedGameMaster)

    def test_waiting_game_cannot_end(self, service, setup_game):
        """Test that a waiting game cannot end."""
        game_id = setup_game(start=False)
        assert isinstance(service.end_game(game_id, GM).error, InvalidGameState)

    def test_end_twice(self, service, setup_game):
        """Test that an ended game accepts neither end nor abort."""
        game_id = setup_game()
        service.end_game(game_id, GM).unwrap()
        assert isinstance(service.end_game(game_id, GM).error, InvalidGameState)
        assert isinstance(service.abort_game(game_id, GM).error, InvalidGameState)


class TestAbortGame:
    """Aborting refunds active players and clears the bonus pool."""

    def test_refunds_active_players_only(self, service, setup_game):
        """Test that abort refunds only players still in the game."""
        game_id = setup_game(players=(("alice", 3), ("bob", 1)))
        service.cash_out(game_id, CashOutCommand(player_id="bob")).unwrap()

        game = service.abort_game(game_id, GM, reason="Venue closed").unwrap()
        assert game.state == GameState.ABORTED
        assert game.ended_at is not None
        assert game.bonus_pool == 0

        alice_txns = service.get_player_transactions(game_id, "alice").unwrap()
        assert alice_txns[-1].type == TransactionType.REFUND
        assert alice_txns[-1].amount == 3000
        assert "Venue closed" in alice_txns[-1].description

        bob_txns = service.get_player_transactions(game_id, "bob").unwrap()
        assert _types(bob_txns) == [TransactionType.INITIAL_STAKE, TransactionType.CASHOUT]

        cleared = game.transactions[-1]
        assert cleared.type == TransactionType.BONUS_POOL_CLEARED
        assert cleared.player_id is None
        assert cleared.amount == 1000

    def test_refunds_leave_pool_counters(self, service, setup_game):
        """Test that refunds leave total_pool and total_cashouts as they were."""
        game_id = setup_game()
        game = service.abort_game(game_id, GM).unwrap()
        assert game.total_pool == 2000
        assert game.total_cashouts == 0
        _assert_conserved(service, game_id)

    def test_waiting_game_cannot_abort(self, service, setup_game):
        """Test that a waiting game cannot be aborted."""
        game_id = setup_game(start=False)
        assert isinstance(service.abort_game(game_id, GM).error, InvalidGameState)

    def test_wrong_game_master(self, service, setup_game):
        """Test that another game master is refused."""
        game_id = setup_game()
        result = service.abort_game(game_id, "intruder")
        assert isinstance(result.error, UnauthorizedGameMaster)
        assert service.get_game(game_id).unwrap().state == GameState.IN_PROGRESS

    def test_nothing_accepted_after_abort(self, service, setup_game):
        """Test that an aborted game accepts no further commands."""
        game_id = setup_game()
        service.abort_game(game_id, GM).unwrap()
        assert isinstance(
            service.cash_out(game_id, CashOutCommand(player_id="alice")).error, InvalidGameState
        )
        assert isinstance(service.end_game(game_id, GM).error, InvalidGameState)


class TestConservation:
    """total_pool + total_cashouts always equals the sum of initial stakes."""

    @pytest.mark.parametrize("finish", ["end", "abort"])
    def test_mixed_sequence(self, service, setup_game, complete, finish):
        """Test that money is conserved through joins, cash outs and the finish."""
        game_id = setup_game(
            players=(("alice", 2), ("bob", 1), ("carol", 4)),
            cmd=create_command(count=4, stake_unit=750),
        )
        _assert_conserved(service, game_id)
        complete(game_id, "alice", 4)
        complete(game_id, "bob", 1)
        service.cash_out(game_id, CashOutCommand(player_id="bob")).unwrap()
        _assert_conserved(service, game_id)
        complete(game_id, "carol", 2)

        if finish == "end":
            service.end_game(game_id, GM).unwrap()
        else:
            service.abort_game(game_id, GM).unwrap()
        _assert_conserved(service, game_id)

        game = service.get_game(game_id).unwrap()
        assert game.bonus_pool >= 0


class TestGameLocks:
    """Per-game locks exist only for stored games that are still running."""

    def test_unknown_ids_create_no_locks(self, service):
        """Test that reads and commands on unknown ids leave no lock behind."""
        for i in range(50):
            assert isinstance(service.get_game(f"bogus-{i}").error, GameNotFound)
        assert isinstance(
            service.cash_out("bogus", CashOutCommand(player_id="alice")).error, GameNotFound
        )
        assert len(service.locks) == 0

    @pytest.mark.parametrize("finish", ["end", "abort"])
    def test_lock_released_when_game_finishes(self, service, setup_game, finish):
        """Test that ending or aborting a game discards its lock."""
        game_id = setup_game()
        assert len(service.locks) == 1

        if finish == "end":
            service.end_game(game_id, GM).unwrap()
        else:
            service.abort_game(game_id, GM).unwrap()
        assert len(service.locks) == 0

        assert service.get_game(game_id).ok
        assert service.get_game_summary(game_id).ok
        assert len(service.locks) == 0

    def test_rejected_command_keeps_lock(self, service, setup_game):
        """Test that a failed end keeps the running game's lock."""
        game_id = setup_game()
        service.end_game(game_id, "intruder")
        assert len(service.locks) == 1
