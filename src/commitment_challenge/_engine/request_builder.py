# Area: Engine
"""
commitment_challenge._engine.request_builder — AI verification requests
=======================================================================

Builds the VerificationContext handed to the AI decision provider from a
game and one of its check-ins.
"""

from __future__ import annotations

from typing import List

from ..models import CheckIn, Game, Proof
from ..types import ProofInfo, VerificationContext


def proof_info(proof: Proof) -> ProofInfo:
    return {
        "description": proof.description,
        "annotations": list(proof.annotations),
        "media": [
            {
                "media_url": m.media_url,
                "media_type": m.media_type.value,
                "file_name": m.file_name,
                "description": m.description,
            }
            for m in proof.media
        ],
    }


def _proof_infos(proofs: List[Proof]) -> List[ProofInfo]:
    return [proof_info(p) for p in proofs]


def build_verification_context(game: Game, check_in: CheckIn) -> VerificationContext:
    """Assemble the provider request for one check-in."""
    checkpoint = game.checkpoint(check_in.checkpoint_number)
    if checkpoint is None:
        raise ValueError(
            f"Check-in {check_in.id} targets unknown checkpoint {check_in.checkpoint_number}"
        )
    return {
        "game_id": game.id,
        "check_in_id": check_in.id,
        "objective": game.objective,
        "player_action": game.player_action,
        "reward_description": game.reward_description,
        "failure_condition": game.failure_condition,
        "prompt": game.ai_config.prompt if game.ai_config else "",
        "checkpoint_number": checkpoint.number,
        "checkpoint_description": checkpoint.description,
        "proof": proof_info(check_in.proof),
        "sample_approvals": _proof_infos(checkpoint.sample_approvals),
        "sample_rejections": _proof_infos(checkpoint.sample_rejections),
        "model": game.ai_config.model if game.ai_config else None,
    }
