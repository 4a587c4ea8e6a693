"""
Input sanitization for free-text user queries.

User queries and chat messages are interpolated straight into prompts, so
common prompt-injection phrasings are redacted and the length is capped
before they reach the Prompt Builder.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500

_INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(all\s+)?(previous|prior|above)\s+instructions", re.IGNORECASE),
    re.compile(r"you\s+are\s+now\s+(a|an)\s+", re.IGNORECASE),
    re.compile(r"<\s*/?\s*system\s*>", re.IGNORECASE),
    re.compile(r"^\s*(system|assistant)\s*:\s*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"forget\s+(everything|all|your)\s+", re.IGNORECASE),
    re.compile(r"new\s+instructions?\s*:", re.IGNORECASE),
    re.compile(r"override\s+(your\s+)?(instructions|rules|prompt)", re.IGNORECASE),
    re.compile(r"```"),
]


def sanitize_user_text(text: str, max_length: int = MAX_QUERY_LENGTH) -> str:
    """Redact injection patterns, collapse whitespace and truncate.

    Ordinary market queries ("NVDA", "is the AI sector in a bubble?") pass
    through unchanged apart from surrounding whitespace.
    """
    if not text:
        return ""

    cleaned = text
    found_any = False
    for pattern in _INJECTION_PATTERNS:
        if pattern.search(cleaned):
            found_any = True
            cleaned = pattern.sub("[REDACTED]", cleaned)

    if found_any:
        logger.warning("Prompt injection patterns redacted from user input")

    cleaned = " ".join(cleaned.split())
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip()
    return cleaned
