# Area: Test Support
"""Shared fixtures: a fake clock, a fresh store and a lifecycle service."""

from datetime import timedelta

import pytest

from commitment_challenge.commands import (
    JoinGameCommand,
    SubmitCheckInCommand,
    VerifyCheckInCommand,
)
from commitment_challenge.config import EngineConfig
from commitment_challenge.enums import CheckInStatus
from commitment_challenge._engine.lifecycle import GameLifecycleService
from commitment_challenge._store.game_store import GameStore

from helpers import GM, START, FakeClock, create_command, sample_proof


@pytest.fixture
def clock():
    return FakeClock(START - timedelta(hours=1))


@pytest.fixture
def store():
    return GameStore()


@pytest.fixture
def service(store, clock):
    return GameLifecycleService(store=store, clock=clock, config=EngineConfig(log_file=""))


@pytest.fixture
def setup_game(service, clock):
    """
    Factory: create a game, join players, optionally start it.

    Returns the game id. Players are (player_id, multiplier) pairs.
    """

    def _setup(players=(("alice", 1), ("bob", 1)), start=True, cmd=None, svc=None):
        svc = svc or service
        game = svc.create_game(cmd or create_command()).unwrap()
        for player_id, multiplier in players:
            svc.join_game(
                game.id,
                JoinGameCommand(
                    player_id=player_id,
                    player_name=player_id.title(),
                    multiplier=multiplier,
                ),
            ).unwrap()
        if start:
            clock.set(START)
            svc.start_game(game.id, GM).unwrap()
        return game.id

    return _setup


@pytest.fixture
def complete(service):
    """Factory: submit and approve checkpoints 1..upto for a player (manual games)."""

    def _complete(game_id, player_id, upto, svc=None):
        svc = svc or service
        for number in range(1, upto + 1):
            check_in = svc.submit_check_in(
                game_id,
                SubmitCheckInCommand(
                    player_id=player_id, checkpoint_number=number, proof=sample_proof()
                ),
            ).unwrap()
            svc.verify_check_in(
                game_id,
                VerifyCheckInCommand(
                    game_master_id=GM, check_in_id=check_in.id, status=CheckInStatus.APPROVED
                ),
            ).unwrap()

    return _complete
