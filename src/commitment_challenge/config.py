"""
commitment_challenge.config — Engine configuration
===================================================

Settings come from three layers, later ones winning:

1. Defaults on EngineConfig
2. An optional JSON config file
3. Environment variables (a .env file in the working directory is loaded
   first via python-dotenv)

Environment variables:
    CHALLENGE_SCHEDULER_INTERVAL_SECONDS
    CHALLENGE_START_GRACE_SECONDS
    CHALLENGE_AI_TIMEOUT_SECONDS
    CHALLENGE_AI_MODEL
    CHALLENGE_AI_MAX_TOKENS
    CHALLENGE_LOG_FILE
    CHALLENGE_LOG_LEVEL
    DEMO_MODE
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger("commitment_challenge.config")

DEFAULT_SCHEDULER_INTERVAL_SECONDS = 5 * 60
DEFAULT_START_GRACE_SECONDS = 60 * 60
DEFAULT_AI_TIMEOUT_SECONDS = 30
DEFAULT_AI_MODEL = "claude-3-5-haiku-latest"
DEFAULT_AI_MAX_TOKENS = 1000

ENV_PREFIX = "CHALLENGE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine settings.

    Attributes:
        scheduler_interval_seconds: Delay between scheduler passes
        start_grace_seconds: How long after start_date a game may still start
        ai_timeout_seconds: Deadline for one AI provider call
        ai_model: Model used by AnthropicVerifier
        ai_max_tokens: Response budget for AnthropicVerifier
        log_file: JSON log file path ("" disables file logging)
        log_level: Logging level name
        demo_mode: Use the offline DemoVerifier instead of Anthropic
    """

    scheduler_interval_seconds: float = DEFAULT_SCHEDULER_INTERVAL_SECONDS
    start_grace_seconds: float = DEFAULT_START_GRACE_SECONDS
    ai_timeout_seconds: float = DEFAULT_AI_TIMEOUT_SECONDS
    ai_model: str = DEFAULT_AI_MODEL
    ai_max_tokens: int = DEFAULT_AI_MAX_TOKENS
    log_file: str = "commitment_challenge.log"
    log_level: str = "INFO"
    demo_mode: bool = False

    def __post_init__(self) -> None:
        validate_config(self)

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())


def validate_config(config: EngineConfig) -> None:
    """
    Validate configuration values.

    Raises:
        ValueError: If a value is out of range
    """
    problems = []
    for name in ("scheduler_interval_seconds", "ai_timeout_seconds"):
        if getattr(config, name) <= 0:
            problems.append(f"{name} must be positive")
    if config.start_grace_seconds < 0:
        problems.append("start_grace_seconds must not be negative")
    if config.ai_max_tokens <= 0:
        problems.append("ai_max_tokens must be positive")
    if not isinstance(logging.getLevelName(config.log_level.upper()), int):
        problems.append(f"unknown log_level {config.log_level!r}")
    if problems:
        raise ValueError(f"Invalid configuration: {problems}")


def _coerce(name: str, raw: Any) -> Any:
    """Convert a raw JSON/env value to the type of the named field."""
    if name == "demo_mode":
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in _TRUE_VALUES
    if name == "ai_max_tokens":
        return int(raw)
    if name.endswith("_seconds"):
        return float(raw)
    return str(raw)


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for f in fields(EngineConfig):
        env_name = "DEMO_MODE" if f.name == "demo_mode" else ENV_PREFIX + f.name.upper()
        if env_name in os.environ:
            overrides[f.name] = os.environ[env_name]
    return overrides


def load_config(config_path: Optional[str] = None, use_dotenv: bool = True) -> EngineConfig:
    """
    Load configuration from a JSON file and the environment.

    Args:
        config_path: Optional path to a JSON file with EngineConfig keys
        use_dotenv: Load a .env file before reading the environment

    Raises:
        ValueError: On unknown keys or invalid values
        FileNotFoundError: If config_path does not exist
    """
    if use_dotenv:
        load_dotenv()

    values: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        with open(path, encoding="utf-8") as f:
            values.update(json.load(f))
        logger.debug(f"Loaded config file {path}")

    values.update(_env_overrides())

    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    try:
        coerced = {name: _coerce(name, raw) for name, raw in values.items()}
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration value: {e}") from e
    return replace(EngineConfig(), **coerced)
