"""
commitment_challenge — Commitment Challenge Game Engine
========================================================

Players stake money on completing a sequence of checkpoints. Players who
fold keep a share of their stake proportional to their progress; the rest
goes to a bonus pool shared by the players who finish.

Quick Start:
    from commitment_challenge import GameLifecycleService, LifecycleScheduler

    service = GameLifecycleService()
    game = service.create_game(CreateGameCommand(...)).unwrap()
    service.join_game(game.id, JoinGameCommand(...))

    scheduler = LifecycleScheduler(service)
    scheduler.start()

AI verification:
    from commitment_challenge import AnthropicVerifier, DemoVerifier

    service = GameLifecycleService(verifier=AnthropicVerifier())
    service = GameLifecycleService(verifier=DemoVerifier())   # offline

Custom verifier:
    from commitment_challenge import CheckInVerifier
    class MyVerifier(CheckInVerifier): ...  # Implement verify_check_in

Every command returns a Result: ``result.ok``, ``result.value``,
``result.error`` (a CommandError with a ``code``).
"""

from .anthropic_verifier import AnthropicVerifier
from .commands import (
    CashOutCommand,
    CheckpointSpec,
    AIConfigSpec,
    CreateGameCommand,
    JoinGameCommand,
    SubmitCheckInCommand,
    VerifyCheckInCommand,
    parse_command,
)
from .config import EngineConfig, load_config
from .demo_verifier import DemoVerifier
from .enums import (
    AIDecision,
    CheckInStatus,
    GameState,
    MediaType,
    TransactionType,
    VerificationMethod,
    VerifiedBy,
)
from .errors import (
    ChallengeError,
    CommandError,
    ValidationError,
    DomainError,
    StoreInvariantError,
    AIProviderError,
    ProviderTimeoutError,
    InvalidProviderResponseError,
    ProviderSchemaError,
)
from .models import (
    Media,
    Proof,
    Checkpoint,
    AIVerificationConfig,
    Player,
    CheckIn,
    Transaction,
    Game,
    GameSummary,
    PlayerStats,
)
from .result import Result
from .types import MediaInfo, ProofInfo, VerificationContext, VerificationResponse
from .verifier import CheckInVerifier
from ._engine.lifecycle import GameLifecycleService
from ._scheduler.scheduler import LifecycleScheduler
from ._shared.logging_config import setup_logging
from ._store.game_store import GameStore

__all__ = [
    # Main classes
    "GameLifecycleService",
    "LifecycleScheduler",
    "GameStore",
    "CheckInVerifier",
    "AnthropicVerifier",
    "DemoVerifier",
    "Result",
    # Commands
    "CreateGameCommand",
    "CheckpointSpec",
    "AIConfigSpec",
    "JoinGameCommand",
    "SubmitCheckInCommand",
    "VerifyCheckInCommand",
    "CashOutCommand",
    "parse_command",
    # Config and logging
    "EngineConfig",
    "load_config",
    "setup_logging",
    # Enums
    "AIDecision",
    "CheckInStatus",
    "GameState",
    "MediaType",
    "TransactionType",
    "VerificationMethod",
    "VerifiedBy",
    # Errors
    "ChallengeError",
    "CommandError",
    "ValidationError",
    "DomainError",
    "StoreInvariantError",
    "AIProviderError",
    "ProviderTimeoutError",
    "InvalidProviderResponseError",
    "ProviderSchemaError",
    # Models
    "Media",
    "Proof",
    "Checkpoint",
    "AIVerificationConfig",
    "Player",
    "CheckIn",
    "Transaction",
    "Game",
    "GameSummary",
    "PlayerStats",
    # Provider types
    "MediaInfo",
    "ProofInfo",
    "VerificationContext",
    "VerificationResponse",
]

__version__ = "1.0.0"
