"""
commitment_challenge.errors — Exception hierarchy
==================================================

Three families of errors:

1. CommandError: expected failures returned to callers inside a Result
   (ValidationError for malformed input, DomainError for rule violations).
2. StoreInvariantError: the store and the engine disagree about an entity
   that must exist. Always raised, never returned.
3. AIProviderError: the AI decision provider failed. The verification
   workflow degrades these to a NEEDS_REVIEW outcome.
"""

from __future__ import annotations
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


class ChallengeError(Exception):
    """Base exception for all commitment_challenge errors."""
    pass


# ============ Expected command failures ============

class CommandError(ChallengeError):
    """An expected failure of a command, surfaced to the caller."""

    code = "COMMAND_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class ValidationError(CommandError):
    """Malformed command input."""

    code = "VALIDATION_ERROR"

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages) or "Invalid input")

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["errors"] = self.messages
        return result


class DomainError(CommandError):
    """A business rule rejected the command."""

    code = "DOMAIN_ERROR"


# ---- Game ----

class GameNotFound(DomainError):
    code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class InvalidGameState(DomainError):
    """The game's current state does not allow the requested action."""

    code = "INVALID_GAME_STATE"

    def __init__(self, game_id: str, state: str, action: str):
        self.game_id = game_id
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action} game {game_id} in state {state}")


class UnauthorizedGameMaster(DomainError):
    code = "UNAUTHORIZED_GAME_MASTER"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} is not the game master")


class NotEnoughPlayers(DomainError):
    code = "NOT_ENOUGH_PLAYERS"

    def __init__(self, current: int, required: int):
        self.current = current
        self.required = required
        super().__init__(f"Not enough players: {current}/{required}")


class GameFull(DomainError):
    code = "GAME_FULL"

    def __init__(self, current: int, maximum: int):
        self.current = current
        self.maximum = maximum
        super().__init__(f"Game is full: {current}/{maximum}")


class StartWindowClosed(DomainError):
    """The game can only start between start_date and start_date + grace."""

    code = "START_WINDOW_CLOSED"

    def __init__(self, game_id: str, reason: str):
        self.game_id = game_id
        self.reason = reason
        super().__init__(f"Game {game_id} cannot start now: {reason}")


# ---- Player ----

class PlayerNotInGame(DomainError):
    code = "PLAYER_NOT_IN_GAME"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not in this game")


class PlayerAlreadyJoined(DomainError):
    code = "PLAYER_ALREADY_JOINED"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} already joined this game")


class PlayerAlreadyFolded(DomainError):
    code = "PLAYER_ALREADY_FOLDED"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} has already folded")


class InvalidMultiplier(DomainError):
    code = "INVALID_MULTIPLIER"

    def __init__(self, multiplier: int, maximum: int):
        self.multiplier = multiplier
        self.maximum = maximum
        super().__init__(f"Multiplier {multiplier} exceeds maximum {maximum}")


# ---- Checkpoints and check-ins ----

class InvalidCheckpoint(DomainError):
    code = "INVALID_CHECKPOINT"

    def __init__(self, checkpoint: int, total: int):
        self.checkpoint = checkpoint
        self.total = total
        super().__init__(
            f"Invalid checkpoint {checkpoint}. Game has {total} checkpoints"
        )


class CheckpointExpired(DomainError):
    code = "CHECKPOINT_EXPIRED"

    def __init__(self, checkpoint: int):
        self.checkpoint = checkpoint
        super().__init__(f"Checkpoint {checkpoint} has expired")


class CheckInBlocked(DomainError):
    """An existing PENDING or APPROVED check-in blocks resubmission."""

    code = "CHECK_IN_BLOCKED"

    def __init__(self, checkpoint: int, status: str):
        self.checkpoint = checkpoint
        self.status = status
        super().__init__(
            f"Checkpoint {checkpoint} already has a {status} check-in"
        )


class CheckInNotFound(DomainError):
    code = "CHECK_IN_NOT_FOUND"

    def __init__(self, check_in_id: str):
        self.check_in_id = check_in_id
        super().__init__(f"CheckIn {check_in_id} not found")


class CheckInAlreadyVerified(DomainError):
    code = "CHECK_IN_ALREADY_VERIFIED"

    def __init__(self, check_in_id: str, status: str):
        self.check_in_id = check_in_id
        self.status = status
        super().__init__(
            f"CheckIn {check_in_id} has already been processed ({status})"
        )


class InvalidSubmission(DomainError):
    """The AI provider classified the submission as invalid; it was discarded."""

    code = "INVALID_SUBMISSION"

    def __init__(self, reasoning: str):
        self.reasoning = reasoning
        super().__init__(f"Submission rejected as invalid: {reasoning}")


# ============ Invariant violations ============

class StoreInvariantError(ChallengeError):
    """An entity the caller already validated is missing from the store."""

    def __init__(self, entity: str, entity_id: str, game_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        self.game_id = game_id
        where = f" in game {game_id}" if game_id and entity != "Game" else ""
        super().__init__(f"{entity} {entity_id} not found{where}")
# ============ AI provider failures ============

class AIProviderError(ChallengeError):
    """
    Base class for AI decision provider failures.

    Subclasses set ``error_type`` and describe what the provider sent back
    through ``_output()`` and ``_problems()``; ``format_error_log`` renders
    the report written to the debug log.
    """

    error_type = "PROVIDER_ERROR"

    def __init__(self, message: str, provider_name: str, input_payload: Dict[str, Any]):
        self.provider_name = provider_name
        self.input_payload = input_payload
        super().__init__(message)

    def _header(self) -> List[Tuple[str, Any]]:
        return [
            ("Error", self.error_type),
            ("Provider", self.provider_name),
            ("Game", self.input_payload.get("game_id", "-")),
            ("Check-in", self.input_payload.get("check_in_id", "-")),
        ]

    def _output(self) -> Optional[Any]:
        return None

    def _problems(self) -> List[str]:
        return []

    def format_error_log(self) -> str:
        reported_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        rule = "-" * 60
        lines = [rule, f"AI verification failed at {reported_at}; check-in left for manual review"]
        lines += [f"  {label + ':':<10} {value}" for label, value in self._header()]

        sections = [("request", _as_json(self.input_payload))]
        output = self._output()
        if output is not None:
            sections.append(("provider output", _as_json(output)))
        problems = self._problems()
        if problems:
            sections.append(("problems", "\n".join(f"  - {p}" for p in problems)))

        for title, body in sections:
            lines.append(f"[{title}]")
            lines.append(body)
        lines.append(rule)
        return "\n".join(lines)


class ProviderTimeoutError(AIProviderError):
    """Raised when the provider exceeds its deadline."""

    error_type = "PROVIDER_TIMEOUT"

    def __init__(
        self,
        provider_name: str,
        deadline_seconds: float,
        input_payload: Dict[str, Any],
    ):
        self.deadline_seconds = deadline_seconds
        super().__init__(
            f"Provider '{provider_name}' gave no answer within {deadline_seconds}s",
            provider_name,
            input_payload,
        )

    def _header(self) -> List[Tuple[str, Any]]:
        return super()._header() + [("Deadline", f"{self.deadline_seconds}s")]


class InvalidProviderResponseError(AIProviderError):
    """Raised when the provider returns something that is not a JSON object."""

    error_type = "INVALID_PROVIDER_RESPONSE"

    def __init__(
        self,
        provider_name: str,
        input_payload: Dict[str, Any],
        raw_output: Any,
    ):
        self.raw_output = raw_output
        self.raw_output_type = type(raw_output).__name__
        super().__init__(
            f"Provider '{provider_name}' answered with {self.raw_output_type}, not a JSON object",
            provider_name,
            input_payload,
        )

    def _output(self) -> Optional[Any]:
        return repr(self.raw_output)

    def _problems(self) -> List[str]:
        return [f"expected a JSON object, got {self.raw_output_type}"]


class ProviderSchemaError(AIProviderError):
    """Raised when the provider's answer is a dict but not a valid verdict."""

    error_type = "SCHEMA_VALIDATION_FAILURE"

    def __init__(
        self,
        provider_name: str,
        input_payload: Dict[str, Any],
        output_payload: Dict[str, Any],
        validation_errors: List[str],
    ):
        self.output_payload = output_payload
        self.validation_errors = validation_errors
        super().__init__(
            f"Provider '{provider_name}' verdict is invalid: {'; '.join(validation_errors)}",
            provider_name,
            input_payload,
        )

    def _output(self) -> Optional[Any]:
        return self.output_payload

    def _problems(self) -> List[str]:
        return list(self.validation_errors)


def _as_json(data: Any) -> str:
    try:
        text = json.dumps(data, indent=2, default=str)
    except (TypeError, ValueError):
        text = repr(data)
    return "\n".join("    " + line for line in text.splitlines())
