# Area: Engine
"""
commitment_challenge._engine.verification_executor — Safe provider execution
============================================================================

Wraps an AI provider call with:
1. Deadline enforcement
2. JSON validation (ensure a dict was returned)
3. Schema validation (pydantic)

Every failure surfaces as an AIProviderError subclass; the verification
workflow turns those into a NEEDS_REVIEW outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..enums import AIDecision
from ..errors import InvalidProviderResponseError, ProviderSchemaError
from ..types import VerificationContext
from ..verifier import CheckInVerifier
from .timeout import call_with_deadline

logger = logging.getLogger("commitment_challenge.executor")


class ProviderVerdict(BaseModel):
    """A provider response that passed validation."""
    decision: AIDecision
    reasoning: str = "No reasoning provided"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


def _schema_errors(error: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
        for e in error.errors()
    ]


def execute_verification(
    verifier: CheckInVerifier,
    ctx: VerificationContext,
    deadline_seconds: float,
) -> ProviderVerdict:
    """
    Run the provider and validate its answer.

    Parameters
    ----------
    verifier : CheckInVerifier
        The AI decision provider.
    ctx : VerificationContext
        The verification request.
    deadline_seconds : float
        Maximum time allowed for the provider to answer.

    Returns
    -------
    ProviderVerdict
        The validated decision.

    Raises
    ------
    ProviderTimeoutError
        If the provider exceeds the deadline.
    InvalidProviderResponseError
        If the provider returns a non-dict.
    ProviderSchemaError
        If the dict fails validation.
    Exception
        Anything the provider itself raised (transport errors).
    """
    name = verifier.name
    payload: Dict[str, Any] = dict(ctx)
    logger.info(f"[PROVIDER] Executing {name} (timeout={deadline_seconds}s)")

    # ── Step 1: Execute with deadline ─────────────────────────
    result = call_with_deadline(
        verifier.verify_check_in, ctx, deadline_seconds, name, payload
    )

    # ── Step 2: Validate return type is dict ──────────────────
    if not isinstance(result, dict):
        raise InvalidProviderResponseError(
            provider_name=name,
            input_payload=payload,
            raw_output=result,
        )

    # ── Step 3: Validate against schema ───────────────────────
    try:
        verdict = ProviderVerdict.model_validate(result)
    except PydanticValidationError as e:
        raise ProviderSchemaError(
            provider_name=name,
            input_payload=payload,
            output_payload=result,
            validation_errors=_schema_errors(e),
        ) from e

    logger.info(f"[PROVIDER] {name} decided {verdict.decision.value} ({verdict.confidence:.2f})")
    return verdict
