# Area: Test Support
"""Shared builders for the test suite."""

import time
from datetime import datetime, timedelta, timezone

from commitment_challenge.commands import CheckpointSpec, CreateGameCommand
from commitment_challenge.models import Checkpoint, Game, Media, Proof
from commitment_challenge.enums import MediaType
from commitment_challenge.verifier import CheckInVerifier

UTC = timezone.utc
START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
GM = "gm-1"


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class StubVerifier(CheckInVerifier):
    """Verifier returning a canned response (or raising) and recording calls."""

    name = "stub"

    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []

    def verify_check_in(self, ctx):
        self.calls.append(ctx)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def expiry(number: int) -> datetime:
    """Checkpoint N expires N days after START."""
    return START + timedelta(days=number)


def create_command(count: int = 3, stake_unit: int = 1000, **overrides) -> CreateGameCommand:
    fields = dict(
        game_master_id=GM,
        title="Run every day",
        stake_unit=stake_unit,
        max_multiplier=5,
        min_players=2,
        max_players=10,
        start_date=START,
        end_date=START + timedelta(days=count + 1),
        checkpoints=[
            CheckpointSpec(description=f"Day {i} run", expiry_date=expiry(i))
            for i in range(1, count + 1)
        ],
        objective="Run 5km every day",
        player_action="Upload a screenshot of the run",
        reward_description="Share of the bonus pool",
        failure_condition="A missed day forfeits the rest of the stake",
    )
    fields.update(overrides)
    return CreateGameCommand(**fields)


def make_game(game_id: str = "game-1", checkpoints: int = 3, **overrides) -> Game:
    """A Game built directly, bypassing the service."""
    fields = dict(
        id=game_id,
        game_master_id=GM,
        title="Run every day",
        stake_unit=1000,
        max_multiplier=5,
        min_players=2,
        max_players=10,
        start_date=START,
        end_date=START + timedelta(days=checkpoints + 1),
        checkpoints=[
            Checkpoint(number=i, description=f"Day {i} run", expiry_date=expiry(i))
            for i in range(1, checkpoints + 1)
        ],
        created_at=START - timedelta(days=1),
    )
    fields.update(overrides)
    return Game(**fields)


def sample_proof(description: str = "Ran 5km along the river this morning") -> Proof:
    return Proof(
        description=description,
        annotations=["5.2 km", "28 minutes"],
        media=[
            Media(
                media_url="https://cdn.example.com/run.jpg",
                media_type=MediaType.IMAGE,
                file_name="run.jpg",
            )
        ],
    )


def proof_dict(description, media=True, annotations=()):
    """A ProofInfo mapping as it appears in a verification context."""
    return {
        "description": description,
        "annotations": list(annotations),
        "media": [
            {
                "media_url": "https://cdn.example.com/run.jpg",
                "media_type": "IMAGE",
                "file_name": "run.jpg",
                "description": None,
            }
        ] if media else [],
    }


def verification_ctx(proof, approvals=(), rejections=()):
    return {
        "game_id": "g1",
        "check_in_id": "c1",
        "objective": "Run 5km every day",
        "player_action": "Upload a screenshot",
        "reward_description": "",
        "failure_condition": "",
        "prompt": "Verify the run",
        "checkpoint_number": 1,
        "checkpoint_description": "Day 1 run",
        "proof": proof,
        "sample_approvals": list(approvals),
        "sample_rejections": list(rejections),
        "model": None,
    }
