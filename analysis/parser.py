"""
Response Parser — split a raw model response into a report and a JSON payload.

Extraction runs in two explicit stages and reports what it found instead
of using exceptions for control flow:

    1. the first fenced code block (```json ... ``` or bare ``` ... ```)
    2. otherwise the span from the first "{" to the last "}"

The parser never raises on malformed input. Worst case the caller gets
the raw text (or a placeholder) as the report and no structured data.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from analysis.schemas import AnalysisResult, Citation, StructuredData, Verdict

logger = logging.getLogger(__name__)

EMPTY_REPORT_PLACEHOLDER = "The analysis completed but produced no narrative content."

_FENCED_BLOCK = re.compile(r"```[ \t]*[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_VERDICT_TOKEN = re.compile(
    r"\[\[\[\s*(strong\s+buy|buy|hold|sell|strong\s+sell)\s*\]\]\]",
    re.IGNORECASE,
)
_SPACED_VERDICT_TOKEN = re.compile(r"[ \t]*" + _VERDICT_TOKEN.pattern, re.IGNORECASE)
# Unpaired fences left next to the braces when the model drops one side of a code block
_DANGLING_OPEN_FENCE = re.compile(r"```[ \t]*[\w+-]*[ \t]*\n?\s*\Z")
_DANGLING_CLOSE_FENCE = re.compile(r"\A\s*```[ \t]*")


@dataclass(frozen=True)
class JsonCandidate:
    """Outcome of the two-stage JSON search."""

    found: bool
    candidate: str
    remainder: str
    source: Literal["fenced", "braces", "none"]


def extract_json_candidate(text: str) -> JsonCandidate:
    """Locate the JSON candidate in *text* and return it with the leftover text."""
    if not text:
        return JsonCandidate(False, "", text or "", "none")

    match = _FENCED_BLOCK.search(text)
    if match:
        remainder = text[: match.start()] + text[match.end():]
        return JsonCandidate(True, match.group(1).strip(), remainder, "fenced")

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and start < end:
        prefix = _DANGLING_OPEN_FENCE.sub("", text[:start])
        suffix = _DANGLING_CLOSE_FENCE.sub("", text[end + 1:])
        remainder = prefix + suffix
        return JsonCandidate(True, text[start:end + 1], remainder, "braces")

    return JsonCandidate(False, "", text, "none")


def strip_trailing_commas(candidate: str) -> str:
    """Remove commas that directly precede a closing brace or bracket."""
    return _TRAILING_COMMA.sub(r"\1", candidate)


def parse_structured_data(candidate: str) -> Optional[StructuredData]:
    """Parse a JSON candidate; None on any failure or an empty/non-object payload."""
    if not candidate:
        return None
    try:
        payload = json.loads(strip_trailing_commas(candidate))
    except json.JSONDecodeError as exc:
        logger.warning(f"Structured data could not be parsed: {exc}")
        return None
    return StructuredData.from_payload(payload)


def extract_verdict(markdown: str) -> Optional[Verdict]:
    """Return the last [[[verdict]]] token in the report, if any."""
    matches = _VERDICT_TOKEN.findall(markdown or "")
    if not matches:
        return None
    label = " ".join(matches[-1].split()).title()
    return Verdict(label)


def strip_verdict_tokens(markdown: str) -> str:
    """Remove [[[verdict]]] tokens once the verdict is rendered as a badge."""
    return _SPACED_VERDICT_TOKEN.sub("", markdown or "").strip()


def parse_response(
    text: str,
    citations: Optional[Iterable[Citation]] = None,
    *,
    search_used: bool = True,
) -> AnalysisResult:
    """Turn raw model text into an ``AnalysisResult``.

    Args:
        text: Raw response text from the AI client.
        citations: Grounding sources already deduplicated by the client.
        search_used: Whether search augmentation was active for the call.
            Without it every figure is a model estimate.
    """
    text = text or ""
    extracted = extract_json_candidate(text)

    structured = parse_structured_data(extracted.candidate) if extracted.found else None
    if extracted.found and structured is None:
        logger.debug(f"JSON candidate from {extracted.source} stage discarded")

    markdown = extracted.remainder.strip() if extracted.found else text
    if not markdown.strip():
        markdown = EMPTY_REPORT_PLACEHOLDER

    is_estimated = not search_used or bool(structured and structured.is_estimated)

    return AnalysisResult(
        markdown_report=markdown,
        structured_data=structured,
        citations=list(citations) if citations is not None else None,
        is_estimated=is_estimated,
        verdict=extract_verdict(markdown),
    )
