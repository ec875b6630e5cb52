"""
commitment_challenge.verifier — The AI decision provider interface
==================================================================

Subclass CheckInVerifier and implement verify_check_in(). The engine calls
it right after a check-in is submitted to a game whose verification method
is AI, with a deadline. Whatever the provider does wrong (times out,
raises, returns garbage) sends the check-in to manual review; it never
rejects a player.

Type Definitions
----------------
    from commitment_challenge import VerificationContext, VerificationResponse
"""

from abc import ABC, abstractmethod

from .types import VerificationContext, VerificationResponse


class CheckInVerifier(ABC):
    """
    Abstract base class for AI decision providers.

    Attributes:
        name: Used in logs and provider error reports.
    """

    name = "verifier"

    @abstractmethod
    def verify_check_in(self, ctx: VerificationContext) -> VerificationResponse:
        """
        Decide on a submitted check-in.

        Parameters
        ----------
        ctx : VerificationContext
            {
                "game_id": str,
                "check_in_id": str,
                "objective": str,
                "player_action": str,
                "reward_description": str,
                "failure_condition": str,
                "prompt": str,                  # game master's criteria
                "checkpoint_number": int,
                "checkpoint_description": str,
                "proof": {"description": str, "annotations": [...], "media": [...]},
                "sample_approvals": [proof, ...],
                "sample_rejections": [proof, ...],
                "model": str | None            # game master's model choice
            }

        Returns
        -------
        VerificationResponse
            {
                "decision": "APPROVED" | "REJECTED" | "NEEDS_REVIEW" | "INVALID_SUBMISSION",
                "reasoning": str,
                "confidence": float            # 0.0 - 1.0
            }

        Example
        -------
        >>> def verify_check_in(self, ctx):
        ...     return {"decision": "NEEDS_REVIEW", "reasoning": "unsure", "confidence": 0.4}
        """
        ...
