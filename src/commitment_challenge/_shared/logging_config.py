# Area: Shared
"""
commitment_challenge._shared.logging_config — Structured logging setup
======================================================================

Every module logs under the ``commitment_challenge`` namespace. Records
may carry game context through ``extra`` (game_id, player_id,
check_in_id, error_type).

setup_logging() installs two sinks on the package logger:

    terminal   "09:41:07 WARNING  scheduler  [game 3f2a9c1e] Game could not start: ..."
    file       one JSON object per line with the same context fields
"""

from __future__ import annotations
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from ..errors import AIProviderError, StoreInvariantError

PACKAGE_LOGGER = "commitment_challenge"
CONTEXT_FIELDS = ("game_id", "player_id", "check_in_id", "error_type")

logger = logging.getLogger(PACKAGE_LOGGER)


def _short_name(name: str) -> str:
    prefix = PACKAGE_LOGGER + "."
    return name[len(prefix):] if name.startswith(prefix) else name


def _context(record: logging.LogRecord) -> Dict[str, str]:
    return {
        key: str(getattr(record, key))
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class TerminalFormatter(logging.Formatter):
    """Colored one-line output with a short logger name and game tag."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        game_id = getattr(record, "game_id", None)
        tag = f"[game {str(game_id)[:8]}] " if game_id else ""
        line = (
            f"{self.formatTime(record, self.datefmt)} {level} "
            f"{_short_name(record.name):<15} {tag}{record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JSONFormatter(logging.Formatter):
    """JSON-lines output for log files."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _file_handler(log_file_path: str) -> Optional[logging.Handler]:
    path = Path(log_file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.warning(f"File logging disabled, cannot open {path}: {e}")
        return None
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    log_file_path: str = "commitment_challenge.log",
    level: int = logging.INFO,
) -> None:
    """
    Configure the package logger. Safe to call more than once.

    Parameters
    ----------
    log_file_path : str
        JSON-lines log file. An empty string disables file logging.
    level : int
        Minimum level for both sinks.
    """
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(level)
    pkg_logger.propagate = False

    terminal = logging.StreamHandler(sys.stdout)
    terminal.setFormatter(TerminalFormatter(use_color=sys.stdout.isatty()))
    pkg_logger.addHandler(terminal)

    if log_file_path:
        handler = _file_handler(log_file_path)
        if handler is not None:
            pkg_logger.addHandler(handler)


def log_provider_error(error: "AIProviderError", check_in_id: str) -> None:
    """
    Log an AI provider failure.

    A one-line WARNING for the terminal; the full report (request, raw
    output, validation problems) at DEBUG.
    """
    logger.warning(
        f"AI provider failed for check-in {check_in_id}: {error}",
        extra={"check_in_id": check_in_id, "error_type": error.error_type},
    )
    logger.debug(error.format_error_log())


def log_invariant_violation(error: "StoreInvariantError") -> None:
    """Log a store/engine desynchronization before it propagates."""
    logger.critical(
        f"Store invariant violated: {error}",
        extra={"game_id": error.game_id, "error_type": type(error).__name__},
    )
