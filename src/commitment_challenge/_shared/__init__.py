# Area: Shared
"""
Shared utilities used by the engine, the store and the scheduler.

This package contains:
- Logging configuration
- Money conversion and formatting
- AI verification prompt guard
"""

from .logging_config import (
    setup_logging,
    log_provider_error,
    log_invariant_violation,
)
from .money import dollars_to_cents, cents_to_dollars, format_cents, parse_currency
from .prompt_guard import find_prompt_problems, looks_like_injection, sanitize_prompt

__all__ = [
    "setup_logging",
    "log_provider_error",
    "log_invariant_violation",
    "dollars_to_cents",
    "cents_to_dollars",
    "format_cents",
    "parse_currency",
    "find_prompt_problems",
    "sanitize_prompt",
    "looks_like_injection",
]
