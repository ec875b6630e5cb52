"""
commitment_challenge.result — Command result wrapper
=====================================================

Every command on the lifecycle service returns a Result: either the
resulting entity or the CommandError explaining why nothing changed.

Example:
    >>> result = service.join_game(game_id, command)
    >>> if result.ok:
    ...     game = result.value
    ... else:
    ...     print(result.error.code)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import CommandError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a command.

    Attributes:
        value: The resulting entity when the command succeeded.
        error: The expected failure when it did not.
    """

    value: Optional[T] = None
    error: Optional[CommandError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CommandError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
