"""
commitment_challenge.types — TypedDict schemas for the AI decision provider
===========================================================================

This module documents the exact structure of the context dict passed to
CheckInVerifier.verify_check_in() and the dict it must return.

    from commitment_challenge import VerificationContext, VerificationResponse

Use __annotations__ to inspect fields:

    >>> VerificationResponse.__annotations__
    {'decision': ..., 'reasoning': <class 'str'>, 'confidence': <class 'float'>}
"""

from typing import List, Literal, Optional, TypedDict


class MediaInfo(TypedDict):
    """A file attached to a proof."""
    media_url: str          # e.g., "https://cdn.example.com/run-1.jpg"
    media_type: str         # "IMAGE" or "TEXT"
    file_name: str          # e.g., "run-1.jpg"
    description: Optional[str]


class ProofInfo(TypedDict):
    """A proof: submitted by a player or provided as an exemplar."""
    description: str
    annotations: List[str]
    media: List[MediaInfo]


class VerificationContext(TypedDict):
    """Context passed to verify_check_in().

    Fields
    ------
    game_id : str
        Game identifier.
    check_in_id : str
        Identifier of the check-in being verified.
    objective : str
        e.g., "Avoid using your phone for more than 1 hour/day".
    player_action : str
        e.g., "Submit a daily screenshot of Screen Time showing <1h".
    reward_description : str
        e.g., "Win a share of the bonus pool if you complete all 3 days".
    failure_condition : str
        e.g., "A screen time above 1h forfeits your stake".
    prompt : str
        The game master's verification criteria (already sanitized).
    checkpoint_number : int
        1-based checkpoint position.
    checkpoint_description : str
        What the checkpoint requires.
    proof : ProofInfo
        What the player submitted.
    sample_approvals : List[ProofInfo]
        Proofs the game master would approve.
    sample_rejections : List[ProofInfo]
        Proofs the game master would reject.
    model : Optional[str]
        Model requested by the game master, or None for the provider default.
    """
    game_id: str
    check_in_id: str
    objective: str
    player_action: str
    reward_description: str
    failure_condition: str
    prompt: str
    checkpoint_number: int
    checkpoint_description: str
    proof: ProofInfo
    sample_approvals: List[ProofInfo]
    sample_rejections: List[ProofInfo]
    model: Optional[str]


class VerificationResponse(TypedDict):
    """Expected return from verify_check_in().

    Fields
    ------
    decision : str
        APPROVED, REJECTED, NEEDS_REVIEW or INVALID_SUBMISSION.
    reasoning : str
        Why the provider decided this way.
    confidence : float
        Between 0.0 and 1.0.
    """
    decision: Literal["APPROVED", "REJECTED", "NEEDS_REVIEW", "INVALID_SUBMISSION"]
    reasoning: str
    confidence: float
