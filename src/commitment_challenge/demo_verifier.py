"""
commitment_challenge.demo_verifier — Offline demo verifier
==========================================================

A CheckInVerifier that works without network access or API keys. Its
decisions are deterministic, so demos and tests can rely on them:

    proof text matches an injection pattern       -> INVALID_SUBMISSION
    proof closer to the sample rejections          -> REJECTED
    proof with media and a real description        -> APPROVED
    anything else                                  -> NEEDS_REVIEW

Usage:
    from commitment_challenge import DemoVerifier, GameLifecycleService

    service = GameLifecycleService(verifier=DemoVerifier())
"""

import re
from typing import List, Set

from .types import ProofInfo, VerificationContext, VerificationResponse
from .verifier import CheckInVerifier
from ._shared.prompt_guard import looks_like_injection

MIN_DESCRIPTION_WORDS = 3


def _words(text: str) -> Set[str]:
    return set(re.findall(r"[a-z0-9]+", text.lower()))


def _proof_words(proof: ProofInfo) -> Set[str]:
    words = _words(proof["description"])
    for annotation in proof["annotations"]:
        words |= _words(annotation)
    return words


def _overlap(words: Set[str], proofs: List[ProofInfo]) -> float:
    """Best Jaccard similarity between ``words`` and any exemplar."""
    best = 0.0
    for proof in proofs:
        other = _proof_words(proof)
        union = words | other
        if union:
            best = max(best, len(words & other) / len(union))
    return best


class DemoVerifier(CheckInVerifier):
    """Rule-based verifier for demos and offline runs."""

    name = "demo"

    def verify_check_in(self, ctx: VerificationContext) -> VerificationResponse:
        proof = ctx["proof"]
        text = " ".join([proof["description"], *proof["annotations"]])

        if looks_like_injection(text):
            return {
                "decision": "INVALID_SUBMISSION",
                "reasoning": "Submission contains instructions aimed at the verifier",
                "confidence": 0.9,
            }

        words = _proof_words(proof)
        like_approvals = _overlap(words, ctx["sample_approvals"])
        like_rejections = _overlap(words, ctx["sample_rejections"])
        if like_rejections > like_approvals:
            return {
                "decision": "REJECTED",
                "reasoning": "Submission resembles the game master's sample rejections",
                "confidence": round(min(0.5 + like_rejections / 2, 1.0), 2),
            }

        if proof["media"] and len(proof["description"].split()) >= MIN_DESCRIPTION_WORDS:
            return {
                "decision": "APPROVED",
                "reasoning": (
                    f"Described proof with {len(proof['media'])} media item(s) "
                    f"for checkpoint {ctx['checkpoint_number']}"
                ),
                "confidence": round(min(0.6 + like_approvals / 2, 1.0), 2),
            }

        return {
            "decision": "NEEDS_REVIEW",
            "reasoning": "Not enough evidence for an automatic decision",
            "confidence": 0.4,
        }
