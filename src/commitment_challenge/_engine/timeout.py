# Area: Engine
"""
commitment_challenge._engine.timeout — Deadline-bound provider calls
====================================================================

Runs an AI provider call on a daemon worker thread and waits at most
``seconds`` for it.

Signal-based alarms only work on the main thread, and check-ins are
submitted from request threads and the scheduler thread alike, so the
deadline is enforced with a thread join instead. A provider that never
returns leaves its daemon thread behind; it cannot block process exit.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, TypeVar

from ..errors import ProviderTimeoutError

T = TypeVar("T")


def call_with_deadline(
    fn: Callable[[Any], T],
    arg: Any,
    seconds: float,
    provider_name: str,
    input_payload: Dict[str, Any],
) -> T:
    """
    Call ``fn(arg)`` and return its result within ``seconds``.

    Raises:
        ProviderTimeoutError: if the call is still running at the deadline
        Exception: whatever ``fn`` raised, re-raised on the caller's thread
    """
    outcome: Dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["value"] = fn(arg)
        except BaseException as exc:  # re-raised on the caller's thread
            outcome["error"] = exc

    worker = threading.Thread(
        target=_target, name=f"provider-{provider_name}", daemon=True
    )
    worker.start()
    worker.join(seconds)

    if worker.is_alive():
        raise ProviderTimeoutError(
            provider_name=provider_name,
            deadline_seconds=seconds,
            input_payload=input_payload,
        )
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
