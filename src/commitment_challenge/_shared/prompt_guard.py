# Area: Shared
"""
commitment_challenge._shared.prompt_guard — AI verification prompt guard
========================================================================

Game masters write free-text verification criteria that end up inside
the AI system prompt. This module rejects criteria that look like prompt
injection and sanitizes the rest.
"""

from __future__ import annotations

import re
from typing import List

MIN_PROMPT_LENGTH = 10
MAX_PROMPT_LENGTH = 2000
MAX_SUSPICIOUS_KEYWORDS = 3

DANGEROUS_PATTERNS = [
    # Direct instruction attempts
    r"ignore\s+(?:previous|above|all)\s+instructions?",
    r"forget\s+(?:previous|above|all)\s+instructions?",
    r"disregard\s+(?:previous|above|all)\s+instructions?",
    # Role manipulation
    r"you\s+are\s+now\s+(?:a|an)\s+",
    r"act\s+(?:as|like)\s+(?:a|an)\s+",
    r"pretend\s+(?:to\s+be|you\s+are)\s+",
    r"roleplay\s+(?:as|being)\s+",
    # System manipulation
    r"system\s*:?\s*(?:override|change|modify)",
    r"admin\s*:?\s*(?:override|change|modify)",
    r"developer\s*:?\s*(?:override|change|modify)",
    # Response format manipulation
    r"respond\s+with\s+(?:only|just)\s+",
    r"output\s+(?:only|just)\s+",
    r"return\s+(?:only|just)\s+",
    r"say\s+(?:only|just)\s+",
    # Decision forging
    r"\{\s*\"decision\"\s*:\s*\"[^\"]*\"\s*\}",
    r"decision\s*=\s*(?:APPROVED|REJECTED)",
    # Code injection
    r"<script>",
    r"javascript:",
    r"eval\s*\(",
    r"function\s*\(",
    # Bypass markers
    r"\[SYSTEM\]",
    r"\[ADMIN\]",
    r"\[OVERRIDE\]",
    r"\[IGNORE\]",
]

_DANGEROUS = [re.compile(p, re.IGNORECASE) for p in DANGEROUS_PATTERNS]

SUSPICIOUS_KEYWORDS = [
    "ignore", "forget", "disregard", "override", "bypass", "hack",
    "jailbreak", "prompt", "instruction", "system", "admin", "developer",
    "god mode", "unlimited", "unrestricted", "uncensored", "roleplay",
    "pretend",
]

VERIFICATION_KEYWORDS = [
    "check", "verify", "ensure", "validate", "confirm", "must", "should",
    "require", "need", "expect", "look for", "criteria", "standard",
    "measure", "evaluate", "assess", "determine", "examine",
]


def find_prompt_problems(prompt: str) -> List[str]:
    """Return the reasons a verification prompt is unacceptable (empty if fine)."""
    problems: List[str] = []
    if len(prompt) < MIN_PROMPT_LENGTH:
        problems.append(
            f"AI verification prompt must be at least {MIN_PROMPT_LENGTH} characters"
        )
    if len(prompt) > MAX_PROMPT_LENGTH:
        problems.append(
            f"AI verification prompt must be less than {MAX_PROMPT_LENGTH} characters"
        )

    if looks_like_injection(prompt):
        problems.append(
            "Verification prompt contains potentially malicious instructions. "
            "Please revise your prompt."
        )

    suspicious = sum(
        len(re.findall(rf"\b{re.escape(keyword)}\b", prompt, re.IGNORECASE))
        for keyword in SUSPICIOUS_KEYWORDS
    )
    if suspicious > MAX_SUSPICIOUS_KEYWORDS:
        problems.append(
            "Verification prompt contains too many suspicious keywords. "
            "Please simplify your verification criteria."
        )

    lowered = prompt.lower()
    if not any(keyword in lowered for keyword in VERIFICATION_KEYWORDS):
        problems.append(
            "Verification prompt must contain clear verification criteria "
            "(e.g., 'check if', 'verify that', 'ensure', 'validate')"
        )
    return problems


def sanitize_prompt(prompt: str) -> str:
    """Strip angle brackets, decision-like JSON and code fences."""
    cleaned = re.sub(r"[<>]", "", prompt)
    cleaned = re.sub(
        r"\{[^}]*\"decision\"[^}]*\}", "[REMOVED_SUSPICIOUS_JSON]", cleaned,
        flags=re.IGNORECASE,
    )
    cleaned = re.sub(r"```[\s\S]*?```", "[REMOVED_CODE_BLOCK]", cleaned)
    return cleaned.strip()


def looks_like_injection(text: str) -> bool:
    """True if ``text`` matches any dangerous pattern."""
    return any(pattern.search(text) for pattern in _DANGEROUS)
