# Area: Scheduler
"""
Background scheduler that starts games, expires checkpoints and ends games.
"""

from .expiry_tracker import ExpiryTracker
from .scheduler import LifecycleScheduler

__all__ = ["ExpiryTracker", "LifecycleScheduler"]
