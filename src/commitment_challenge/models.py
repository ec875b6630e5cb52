"""
commitment_challenge.models — Entity models
============================================

pydantic models for games and everything a game owns. All amounts are
integers in minor currency units (cents). All timestamps are UTC.

A Game owns its Players, CheckIns and Transactions by composition; none
of them outlives its Game. Only the GameStore mutates stored instances.
Everything handed to callers is a deep copy.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    CheckInStatus,
    GameState,
    MediaType,
    TransactionType,
    VerificationMethod,
    VerifiedBy,
)


class Media(BaseModel):
    """A file attached to a proof."""
    media_url: str
    media_type: MediaType
    file_name: str
    description: Optional[str] = None


class Proof(BaseModel):
    """What a player submits to prove a checkpoint."""
    description: str
    annotations: List[str] = Field(default_factory=list)
    media: List[Media] = Field(default_factory=list)


class Checkpoint(BaseModel):
    """
    An ordered milestone of a game.

    Attributes:
        number: 1-based sequence position
        description: What the player must achieve
        expiry_date: After this instant no check-in is accepted
        sample_approvals: Proofs the game master would approve
        sample_rejections: Proofs the game master would reject
    """
    number: int = Field(ge=1)
    description: str
    expiry_date: datetime
    sample_approvals: List[Proof] = Field(default_factory=list)
    sample_rejections: List[Proof] = Field(default_factory=list)


class AIVerificationConfig(BaseModel):
    """Game master's instructions for AI-assisted verification."""
    prompt: str
    model: Optional[str] = None


class Player(BaseModel):
    id: str
    name: str
    multiplier: int = Field(ge=1)
    joined_at: datetime
    checkpoints_completed: int = 0
    folded_at_checkpoint: Optional[int] = None
    bonus_won: Optional[int] = None

    @property
    def has_folded(self) -> bool:
        return self.folded_at_checkpoint is not None


class CheckIn(BaseModel):
    id: str
    player_id: str
    checkpoint_number: int
    proof: Proof
    submitted_at: datetime
    status: CheckInStatus = CheckInStatus.PENDING
    verified_at: Optional[datetime] = None
    verified_by: Optional[VerifiedBy] = None
    ai_confidence: Optional[float] = None
    notes: Optional[str] = None


class Transaction(BaseModel):
    """Immutable ledger entry. player_id is None for house entries."""

    model_config = ConfigDict(frozen=True)

    id: str
    player_id: Optional[str]
    type: TransactionType
    amount: int
    timestamp: datetime
    description: str = ""


class Game(BaseModel):
    """
    A commitment challenge.

    Configuration fields are fixed at creation. The state, roster, check-ins,
    ledger and financial counters change only through the GameStore.
    """

    id: str
    game_master_id: str
    title: str
    description: Optional[str] = None

    # Stakes
    stake_unit: int
    max_multiplier: int
    min_players: int
    max_players: int

    # Time
    start_date: datetime
    end_date: datetime

    # Challenge definition
    checkpoints: List[Checkpoint]
    verification_method: VerificationMethod = VerificationMethod.MANUAL
    ai_config: Optional[AIVerificationConfig] = None
    objective: str = ""
    player_action: str = ""
    reward_description: str = ""
    failure_condition: str = ""
    force_cashout_on_miss: bool = False

    # Mutable state
    state: GameState = GameState.WAITING_FOR_PLAYERS
    players: List[Player] = Field(default_factory=list)
    check_ins: List[CheckIn] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)

    # Financial tracking
    total_pool: int = 0
    total_cashouts: int = 0
    bonus_pool: int = 0

    # Metadata
    created_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def total_checkpoints(self) -> int:
        return len(self.checkpoints)

    def stake_for(self, player: Player) -> int:
        return self.stake_unit * player.multiplier

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def checkpoint(self, number: int) -> Optional[Checkpoint]:
        if 1 <= number <= len(self.checkpoints):
            return self.checkpoints[number - 1]
        return None

    def latest_check_in(self, player_id: str, checkpoint_number: int) -> Optional[CheckIn]:
        """Most recent check-in of a player for one checkpoint."""
        matching = [
            c for c in self.check_ins
            if c.player_id == player_id and c.checkpoint_number == checkpoint_number
        ]
        return matching[-1] if matching else None


# ============ Read models ============

class GameSummary(BaseModel):
    game_id: str
    title: str
    state: GameState
    total_pool: int
    total_cashouts: int
    bonus_pool: int
    players_count: int
    winners_count: int
    ended_at: Optional[datetime] = None


class PlayerStats(BaseModel):
    player_id: str
    player_name: str
    stake: int
    checkpoints_completed: int
    status: Literal["active", "folded", "completed"]
    cashout_amount: Optional[int] = None
    bonus_won: Optional[int] = None
    total_payout: Optional[int] = None
