# Area: Engine
"""
commitment_challenge.enums — Game, check-in and ledger enums
=============================================================

Defines the states and events of the game state machine together with
the status values used by check-ins, transactions and AI decisions.
"""

from enum import Enum


class GameState(str, Enum):
    """
    States of a game.

    State transitions:
    WAITING_FOR_PLAYERS -> IN_PROGRESS (on START)
    IN_PROGRESS -> ENDED (on END)
    IN_PROGRESS -> ABORTED (on ABORT)
    ENDED and ABORTED are terminal.
    """
    WAITING_FOR_PLAYERS = "WAITING_FOR_PLAYERS"
    IN_PROGRESS = "IN_PROGRESS"
    ENDED = "ENDED"
    ABORTED = "ABORTED"

    @property
    def is_terminal(self) -> bool:
        return self in (GameState.ENDED, GameState.ABORTED)


class GameEvent(str, Enum):
    """
    Events that trigger game state transitions.

    - START: game master (or scheduler) starts the game
    - END: game master (or scheduler) ends the game and settles bonuses
    - ABORT: game master aborts the game and refunds active players
    """
    START = "START"
    END = "END"
    ABORT = "ABORT"


class VerificationMethod(str, Enum):
    MANUAL = "MANUAL"
    AI = "AI"


class CheckInStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerifiedBy(str, Enum):
    GAMEMASTER = "GAMEMASTER"
    AI = "AI"
    TIMEOUT_APPROVAL = "TIMEOUT_APPROVAL"


class TransactionType(str, Enum):
    INITIAL_STAKE = "INITIAL_STAKE"
    CASHOUT = "CASHOUT"
    PAYOUT = "PAYOUT"
    REFUND = "REFUND"
    BONUS_POOL_CLEARED = "BONUS_POOL_CLEARED"


class AIDecision(str, Enum):
    """Decisions an AI provider may return for a check-in."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    INVALID_SUBMISSION = "INVALID_SUBMISSION"


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    TEXT = "TEXT"
