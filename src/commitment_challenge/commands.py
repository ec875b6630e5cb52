"""
commitment_challenge.commands — Command input schemas
======================================================

pydantic models for every command the lifecycle service accepts. They
normalize raw input before it reaches the engine: currency is converted
to integer cents, naive timestamps are taken as UTC, and AI verification
prompts are screened and sanitized.

    result = parse_command(JoinGameCommand, {"player_id": "p1", ...})
    if result.ok:
        service.join_game(game_id, result.value)

Cross-field rules that depend on the whole game (end after start,
checkpoint expiries inside the game window) are checked by the service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .enums import CheckInStatus, VerificationMethod
from .errors import ValidationError
from .models import Proof
from .result import Result
from ._shared.money import dollars_to_cents
from ._shared.prompt_guard import find_prompt_problems, sanitize_prompt

MAX_STAKE_UNIT = 100_000_000  # $1,000,000.00

C = TypeVar("C", bound=BaseModel)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CheckpointSpec(BaseModel):
    """One checkpoint of a new game; its number is its list position."""
    description: str = Field(min_length=1)
    expiry_date: datetime
    sample_approvals: List[Proof] = Field(default_factory=list)
    sample_rejections: List[Proof] = Field(default_factory=list)

    @field_validator("expiry_date")
    @classmethod
    def _expiry_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class AIConfigSpec(BaseModel):
    prompt: str
    model: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def _screen_prompt(cls, value: str) -> str:
        problems = find_prompt_problems(value)
        if problems:
            raise ValueError("; ".join(problems))
        return sanitize_prompt(value)


class CreateGameCommand(BaseModel):
    """
    Input for create_game.

    The stake may be given as ``stake_unit`` (cents) or ``stake_dollars``;
    dollars are converted to cents.
    """
    game_master_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    stake_unit: int = Field(ge=1, le=MAX_STAKE_UNIT)
    max_multiplier: int = Field(ge=1, le=100)
    min_players: int = Field(default=5, ge=2)
    max_players: int = Field(ge=2, le=1000)
    start_date: datetime
    end_date: datetime
    checkpoints: List[CheckpointSpec] = Field(min_length=1, max_length=100)
    verification_method: VerificationMethod = VerificationMethod.MANUAL
    ai_config: Optional[AIConfigSpec] = None
    objective: str = ""
    player_action: str = ""
    reward_description: str = ""
    failure_condition: str = ""
    force_cashout_on_miss: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def _window_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="before")
    @classmethod
    def _dollars_to_cents(cls, data: Any) -> Any:
        if isinstance(data, dict) and "stake_dollars" in data:
            data = dict(data)
            dollars = data.pop("stake_dollars")
            if "stake_unit" in data:
                raise ValueError("Give either stake_unit or stake_dollars, not both")
            if not isinstance(dollars, (int, float)) or dollars <= 0:
                raise ValueError("stake_dollars must be a positive number")
            data["stake_unit"] = dollars_to_cents(dollars)
        return data


class JoinGameCommand(BaseModel):
    player_id: str = Field(min_length=1)
    player_name: str = Field(min_length=1, max_length=50)
    multiplier: int = Field(ge=1)


class SubmitCheckInCommand(BaseModel):
    player_id: str = Field(min_length=1)
    checkpoint_number: int = Field(ge=1)
    proof: Proof

    @field_validator("proof")
    @classmethod
    def _non_empty_proof(cls, value: Proof) -> Proof:
        if not value.description.strip() and not value.media:
            raise ValueError("Proof needs a description or at least one media item")
        return value


class VerifyCheckInCommand(BaseModel):
    game_master_id: str = Field(min_length=1)
    check_in_id: str = Field(min_length=1)
    status: CheckInStatus
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _terminal_status(cls, value: CheckInStatus) -> CheckInStatus:
        if value == CheckInStatus.PENDING:
            raise ValueError("status must be APPROVED or REJECTED")
        return value


class CashOutCommand(BaseModel):
    player_id: str = Field(min_length=1)
    reason: Optional[str] = None


def _messages(error: PydanticValidationError) -> List[str]:
    messages = []
    for e in error.errors():
        location = ".".join(str(part) for part in e["loc"])
        messages.append(f"{location}: {e['msg']}" if location else e["msg"])
    return messages


def parse_command(model: Type[C], raw: Dict[str, Any]) -> Result[C]:
    """Validate raw input into a command, returning ValidationError on failure."""
    try:
        return Result.success(model.model_validate(raw))
    except PydanticValidationError as e:
        return Result.failure(ValidationError(_messages(e)))
