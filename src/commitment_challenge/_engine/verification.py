# Area: Engine
"""
commitment_challenge._engine.verification — Check-in verification workflow
==========================================================================

Check-in state machine:

    PENDING -> APPROVED   (terminal, increments the player's progress)
    PENDING -> REJECTED   (terminal, the checkpoint may be resubmitted)

A checkpoint accepts a new submission only when the player's latest
check-in for it is absent or REJECTED.

For AI games the provider is consulted synchronously right after the
check-in is stored:

    APPROVED / REJECTED    -> applied as a verdict with verified_by=AI
    NEEDS_REVIEW           -> stays PENDING with the AI's notes attached
    INVALID_SUBMISSION     -> the check-in is deleted and the submission fails
    provider failure       -> stays PENDING, confidence 0, explanatory note

Callers hold the game's lock for the whole call, so a rolled-back
submission is never visible to anyone else.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from ..enums import AIDecision, CheckInStatus, GameState, VerificationMethod, VerifiedBy
from ..errors import (
    AIProviderError,
    CheckInAlreadyVerified,
    CheckInBlocked,
    CheckInNotFound,
    CheckpointExpired,
    InvalidCheckpoint,
    InvalidGameState,
    InvalidSubmission,
    PlayerAlreadyFolded,
    PlayerNotInGame,
    ValidationError,
)
from ..models import CheckIn, Game, Proof
from ..verifier import CheckInVerifier
from .._shared.logging_config import log_provider_error
from .._store.game_store import GameStore
from .request_builder import build_verification_context
from .verification_executor import execute_verification

logger = logging.getLogger("commitment_challenge.verification")

PROVIDER_FAILURE_NOTE = (
    "AI verification unavailable ({reason}); awaiting manual review by the game master"
)
TIMEOUT_APPROVAL_NOTE = (
    "Automated approval because the game master did not verify before the checkpoint expired"
)


class VerificationWorkflow:
    """
    Submission and verification rules for check-ins.

    Methods take a fresh copy of the game (read under the caller's lock)
    and raise DomainError subclasses on rule violations.
    """

    def __init__(
        self,
        store: GameStore,
        verifier: Optional[CheckInVerifier] = None,
        ai_timeout_seconds: float = 30,
    ):
        self.store = store
        self.verifier = verifier
        self.ai_timeout_seconds = ai_timeout_seconds

    # ══════════════════════════════════════════════════════════════
    # SUBMISSION
    # ══════════════════════════════════════════════════════════════

    def submit(
        self,
        game: Game,
        player_id: str,
        checkpoint_number: int,
        proof: Proof,
        now: datetime,
    ) -> CheckIn:
        """Store a PENDING check-in, then run AI verification if the game uses it."""
        self._check_submission(game, player_id, checkpoint_number, now)

        check_in = CheckIn(
            id=str(uuid.uuid4()),
            player_id=player_id,
            checkpoint_number=checkpoint_number,
            proof=proof,
            submitted_at=now,
            status=CheckInStatus.PENDING,
        )
        self.store.add_check_in(game.id, check_in)
        logger.info(
            "Check-in %s submitted: player %s, checkpoint %d",
            check_in.id, player_id, checkpoint_number,
            extra={"game_id": game.id, "player_id": player_id},
        )

        if game.verification_method == VerificationMethod.AI:
            self._verify_with_ai(game, check_in, now)

        return self.store.get_check_in(game.id, check_in.id)

    def _check_submission(
        self, game: Game, player_id: str, checkpoint_number: int, now: datetime
    ) -> None:
        if game.state != GameState.IN_PROGRESS:
            raise InvalidGameState(game.id, game.state.value, "submit check-ins to")

        player = game.find_player(player_id)
        if player is None:
            raise PlayerNotInGame(player_id)
        if player.has_folded:
            raise PlayerAlreadyFolded(player_id)

        checkpoint = game.checkpoint(checkpoint_number)
        if checkpoint is None:
            raise InvalidCheckpoint(checkpoint_number, game.total_checkpoints)
        if now >= checkpoint.expiry_date:
            raise CheckpointExpired(checkpoint_number)

        latest = game.latest_check_in(player_id, checkpoint_number)
        if latest is not None and latest.status != CheckInStatus.REJECTED:
            raise CheckInBlocked(checkpoint_number, latest.status.value)

    # ══════════════════════════════════════════════════════════════
    # AI VERIFICATION
    # ══════════════════════════════════════════════════════════════

    def _verify_with_ai(self, game: Game, check_in: CheckIn, now: datetime) -> None:
        if self.verifier is None:
            self._send_to_review(game.id, check_in.id, "no AI provider configured")
            return

        ctx = build_verification_context(game, check_in)
        try:
            verdict = execute_verification(self.verifier, ctx, self.ai_timeout_seconds)
        except AIProviderError as e:
            log_provider_error(e, check_in.id)
            self._send_to_review(game.id, check_in.id, e.__class__.__name__)
            return
        except Exception as e:
            logger.warning(
                "AI provider raised for check-in %s: %s", check_in.id, e,
                exc_info=True, extra={"game_id": game.id},
            )
            self._send_to_review(game.id, check_in.id, f"provider error: {e}")
            return

        if verdict.decision == AIDecision.INVALID_SUBMISSION:
            self.store.delete_check_in(game.id, check_in.id)
            logger.warning(
                "Check-in %s discarded as invalid submission: %s",
                check_in.id, verdict.reasoning, extra={"game_id": game.id},
            )
            raise InvalidSubmission(verdict.reasoning)

        if verdict.decision == AIDecision.NEEDS_REVIEW:
            self.store.set_check_in_verdict(
                game.id, check_in.id, CheckInStatus.PENDING, VerifiedBy.AI,
                at=None, ai_confidence=verdict.confidence, notes=verdict.reasoning,
            )
            logger.info("Check-in %s needs manual review", check_in.id)
            return

        status = (
            CheckInStatus.APPROVED
            if verdict.decision == AIDecision.APPROVED
            else CheckInStatus.REJECTED
        )
        self._apply_verdict(
            game.id, check_in, status, VerifiedBy.AI, now,
            ai_confidence=verdict.confidence, notes=verdict.reasoning,
        )

    def _send_to_review(self, game_id: str, check_in_id: str, reason: str) -> None:
        self.store.set_check_in_verdict(
            game_id, check_in_id, CheckInStatus.PENDING, VerifiedBy.AI,
            at=None, ai_confidence=0.0,
            notes=PROVIDER_FAILURE_NOTE.format(reason=reason),
        )

    # ══════════════════════════════════════════════════════════════
    # MANUAL / TIMEOUT VERIFICATION
    # ══════════════════════════════════════════════════════════════

    def verify(
        self,
        game: Game,
        check_in_id: str,
        status: CheckInStatus,
        verified_by: VerifiedBy,
        now: datetime,
        notes: Optional[str] = None,
    ) -> CheckIn:
        """Move a PENDING check-in to APPROVED or REJECTED."""
        if status == CheckInStatus.PENDING:
            raise ValidationError(["Verification status must be APPROVED or REJECTED"])
        if game.state != GameState.IN_PROGRESS:
            raise InvalidGameState(game.id, game.state.value, "verify check-ins in")

        check_in = next((c for c in game.check_ins if c.id == check_in_id), None)
        if check_in is None:
            raise CheckInNotFound(check_in_id)
        if check_in.status != CheckInStatus.PENDING:
            raise CheckInAlreadyVerified(check_in_id, check_in.status.value)

        player = game.find_player(check_in.player_id)
        if player is None:
            raise PlayerNotInGame(check_in.player_id)
        if player.has_folded:
            raise PlayerAlreadyFolded(player.id)

        # keep any AI confidence and notes already attached
        if notes is None:
            if verified_by == VerifiedBy.TIMEOUT_APPROVAL:
                notes = TIMEOUT_APPROVAL_NOTE
            else:
                notes = check_in.notes
        self._apply_verdict(
            game.id, check_in, status, verified_by, now,
            ai_confidence=check_in.ai_confidence, notes=notes,
        )
        return self.store.get_check_in(game.id, check_in_id)

    def _apply_verdict(
        self,
        game_id: str,
        check_in: CheckIn,
        status: CheckInStatus,
        verified_by: VerifiedBy,
        now: datetime,
        ai_confidence: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        self.store.set_check_in_verdict(
            game_id, check_in.id, status, verified_by,
            at=now, ai_confidence=ai_confidence, notes=notes,
        )
        if status == CheckInStatus.APPROVED:
            self.store.increment_progress(game_id, check_in.player_id)
        logger.info(
            "Check-in %s %s by %s",
            check_in.id, status.value, verified_by.value,
            extra={"game_id": game_id, "player_id": check_in.player_id},
        )
