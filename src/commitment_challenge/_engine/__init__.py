# Area: Engine
"""
Engine - Game rules, settlement and check-in verification.

This package handles:
- Game state transitions
- Stake, cashout and bonus arithmetic
- Check-in submission and verification (manual, AI, timeout)
- AI provider execution with deadline and schema checks
- The lifecycle command service
"""

from .state_machine import TRANSITIONS, can_transition, next_state
from .settlement import CashoutSettlement, bonus_shares, settle_cashout
from .verification import VerificationWorkflow
from .verification_executor import ProviderVerdict, execute_verification
from .lifecycle import GameLifecycleService

__all__ = [
    "TRANSITIONS",
    "can_transition",
    "next_state",
    "CashoutSettlement",
    "bonus_shares",
    "settle_cashout",
    "VerificationWorkflow",
    "ProviderVerdict",
    "execute_verification",
    "GameLifecycleService",
]
