"""
Error types and user-facing message cleaning.

Only upstream failures are surfaced to the user. Malformed model output is
degraded silently by the parser and empty input is ignored by the
controller, so neither has an exception type here.
"""

from __future__ import annotations

import re

HIGH_TRAFFIC_MESSAGE = "Server is experiencing high traffic. Please try again in a moment."
DEFAULT_ERROR_MESSAGE = "Something went wrong."

_OVERLOAD_MARKERS = ("503", "overloaded")

# "message": "..." inside a JSON-shaped error body (handles escaped quotes)
_JSON_MESSAGE_PATTERN = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\.)*)"')


class UpstreamError(Exception):
    """The AI service (or its SDK) failed or returned nothing usable.

    Carries the upstream message verbatim; callers decide how to present it.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EmptyResponseError(UpstreamError):
    """The call succeeded but the model produced no text."""

    def __init__(self, message: str = "The model returned an empty response."):
        super().__init__(message)


def clean_error_message(error: BaseException | str | None) -> str:
    """Turn an exception or raw error text into the message shown to the user.

    Known overload signals win over everything else. Otherwise a ``message``
    field embedded in a JSON body is preferred over the surrounding text.
    """
    raw = str(error) if error is not None else ""
    raw = raw.strip()
    if not raw:
        return DEFAULT_ERROR_MESSAGE

    lowered = raw.lower()
    if any(marker in lowered for marker in _OVERLOAD_MARKERS):
        return HIGH_TRAFFIC_MESSAGE

    match = _JSON_MESSAGE_PATTERN.search(raw)
    if match:
        extracted = match.group(1).replace('\\"', '"').strip()
        if extracted:
            return extracted

    return raw
