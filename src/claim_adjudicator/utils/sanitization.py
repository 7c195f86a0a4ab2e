"""Sanitization of free-text claim queries before they reach a prompt."""

import re

from claim_adjudicator.config.settings import MAX_QUERY_LENGTH

REDACTION = "[redacted]"

# Control characters except tab, newline and carriage return
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Phrases that try to steer the model instead of describing the claim
INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(?:all\s+)?(?:previous|above|prior)\s+instructions?", re.I),
    re.compile(r"disregard\s+(?:all\s+)?(?:previous|above|prior)", re.I),
    re.compile(r"forget\s+(?:everything|all)\s+(?:you\s+)?(?:know|learned)", re.I),
    re.compile(r"you\s+are\s+now\s+", re.I),
    re.compile(r"new\s+instructions?\s*:", re.I),
    re.compile(r"system\s*:\s*", re.I),
    re.compile(r"<\|[a-z_]+\|>", re.I),  # special tokens
    re.compile(r"\b(?:always|must)\s+(?:approve|deny|reject)\b", re.I),
    re.compile(r"respond\s+only\s+with\b", re.I),
]


def strip_control_characters(text: str) -> str:
    return _CONTROL_CHARACTERS.sub("", text)


def redact_injection_patterns(text: str) -> str:
    """Replace instruction-like phrases with a redaction marker."""
    for pattern in INJECTION_PATTERNS:
        text = pattern.sub(REDACTION, text)
    return text


def sanitize_query_text(text: str | None, max_length: int = MAX_QUERY_LENGTH) -> str:
    """Sanitize a free-text claim query.

    - Strips control characters and surrounding whitespace
    - Truncates to max_length
    - Replaces instruction-like phrases with "[redacted]"

    Returns an empty string for missing or non-string input.
    """
    if not isinstance(text, str):
        return ""
    cleaned = strip_control_characters(text).strip()[:max_length]
    return redact_injection_patterns(cleaned)
