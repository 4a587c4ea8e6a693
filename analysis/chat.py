"""
Reality Check — a sarcastic one-liner chat about the asset on screen.

The persona's tone depends on the risk score of the current analysis:
roast above 60, praise below 40, shrug in between.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from analysis.errors import EmptyResponseError
from analysis.prompts import build_chat_prompts
from analysis.schemas import AnalysisResult

logger = logging.getLogger(__name__)

HIGH_RISK_THRESHOLD = 60
LOW_RISK_THRESHOLD = 40
SPEECHLESS_REPLY = "I'm speechless."


def chat_context(title: str, result: Optional[AnalysisResult]) -> dict[str, Any]:
    """Pull the symbol, risk score and sentiment the persona needs."""
    data = result.structured_data if result else None
    sentiment = data.market_sentiment.value if data and data.market_sentiment else None
    return {
        "symbol": title or "General",
        "risk_score": data.risk_score if data and data.risk_score is not None else 0,
        "sentiment": sentiment or "Unknown",
    }


def opening_line(context: dict[str, Any]) -> str:
    symbol = context.get("symbol") or "General"
    risk = context.get("risk_score") or 0
    if risk > HIGH_RISK_THRESHOLD:
        return f"Do you hate money? 🤡 {symbol} is a gamble. Ask me why."
    if risk < LOW_RISK_THRESHOLD:
        return f"Wow, {symbol} actually looks decent. Look at you being responsible. 🧐"
    return f"It's mid. {symbol} isn't great, isn't terrible. Ask me anything. 🤷"


def reply(client, context: dict[str, Any], history: list[dict[str, str]], message: str) -> str:
    """One chat turn. Never grounded with search; errors propagate to the caller."""
    system_instruction, prompt = build_chat_prompts(context, history, message)
    try:
        raw = client.generate(system_instruction, prompt, use_search=False)
    except EmptyResponseError:
        raw = None
    text = (raw.text or "").strip() if raw else ""
    if not text:
        logger.warning("Reality Check got an empty reply")
        return SPEECHLESS_REPLY
    return text
