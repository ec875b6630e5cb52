# Area: Store
"""
Entity store and per-game locking.
"""

from .game_store import GameStore
from .locks import GameLockRegistry

__all__ = ["GameStore", "GameLockRegistry"]
