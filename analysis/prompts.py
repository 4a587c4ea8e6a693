"""
Prompt Builder — turns an analysis request into (system_instruction, user_prompt).

The system instruction is the same for every analysis mode: it fixes the
output contract (a fenced JSON block first, then a three-section markdown
report ending in a bracketed verdict token). Only the user prompt varies.
Pure string construction; nothing here touches the network.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from analysis.sanitize import sanitize_user_text
from analysis.schemas import (
    BubbleRequest,
    MarketRequest,
    PortfolioItem,
    PortfolioRequest,
    Verdict,
)

VERDICT_TOKENS = [f"[[[{v.value}]]]" for v in Verdict]

ANALYSIS_SYSTEM_INSTRUCTION = f"""You are a Senior Forensic Financial Analyst at a top-tier hedge fund.
Your job is to find the "rot beneath the floorboards". You are NOT a cheerleader.

CRITICAL BEHAVIORAL PROTOCOL:
1. KILL THE BIAS: Do not default to "Buy" or "Strong Buy". Most assets are "Hold" or "Sell" in reality.
2. BE HARSH: A Risk Score of 0-30 is rare. A score of 80-100 is rare. Most assets sit in the middle.
3. SWOT PRECISION: Provide EXACTLY 4 distinct points for EACH SWOT category.
4. FORENSIC TONE: Use professional, cynical institutional language.

ESTIMATE MODE:
If live search is unavailable or returns nothing useful, do NOT return an error and do NOT refuse.
Fabricate plausible figures from your training knowledge, label them clearly as estimates in the
report, and set "isEstimated": true in the JSON block.

STEP 1: GENERATE JSON DATA (output this FIRST)
Start your response with a single fenced ```json code block containing one object with these keys:
- "riskScore": number 0-100
- "riskLevel": "Low" | "Moderate" | "High" | "Critical"
- "bubbleProbability": number 0-100
- "marketSentiment": "Bullish" | "Bearish" | "Neutral" | "Euphoric" | "Fear"
- "keyMetrics": list of {{"label", "value"}} — Price, Market Cap, P/E Ratio, 52W High
- "trendData": six points T-5 .. Now, each {{"label", "value" (price), "ma50", "rsi"}}
- "technicalAnalysis": {{"currentRsi", "currentMa", "signal": "Buy" | "Sell" | "Neutral"}}
- "warningSignals": list of short strings
- "swot": {{"strengths", "weaknesses", "opportunities", "threats"}}, each a list of 4 strings
- "bubbleAudit": {{"riskStatus": "Safe" | "Elevated" | "Critical",
  "valuationVerdict": "Undervalued" | "Fair Value" | "Overvalued" | "Bubble",
  "score": 0-100, "fundamentals": 2-3 sentences on cash flow and earnings growth vs price,
  "peerContext": 2-3 sentences comparing valuation multiples,
  "speculativeActivity": "Low" | "Moderate" | "High" | "Extreme",
  "burstTrigger": one specific catalyst,
  "liquidityStatus": "Abundant" | "Neutral" | "Drying Up" | "Illiquid"}}
- "whistleblower": {{"integrityScore": 0-100, "forensicVerdict": short sentence,
  "anomalies": list of strings, "insiderDetails": list of strings}}
- "topBubbleAssets": list of {{"name", "riskScore", "sector", "price", "reason"}}
- "isEstimated": true only if the figures are estimates rather than live data
Use plain JSON: double quotes, no comments, no trailing commas.

STEP 2: GENERATE THE FORENSIC REPORT (markdown, after the JSON block)
Write exactly three paragraphs under these headings:
### 1. Executive Summary
### 2. Insider & Forensic Deep Dive
### 3. Final Verdict
MANDATORY: end the report with exactly one of {", ".join(VERDICT_TOKENS)}.
"""

CHAT_SYSTEM_TEMPLATE = """You are 'The Reality Check', a witty, sarcastic, but intelligent financial assistant.

CONTEXT:
- Asset: {symbol}
- Risk Score: {risk_score}/100
- Sentiment: {sentiment}

PERSONALITY RULES:
1. High Risk (>60): ruthless, mocking, warning. Roast the user for choosing this.
2. Low Risk (<40): impressed, validating, slightly surprised. Do NOT roast low risk assets.
3. Mid Risk (40-60): skeptical, bored. "It's mid." "Flip a coin."

INTERACTION LOGIC:
- If the user asks a direct question ("Is this good?", "Should I buy?"), start with
  "VERDICT: [YES/NO/RISKY]." based on the risk score, then add commentary.
- If the user says they bought: high risk gets condolences, low risk gets congratulations.
- Keep it short (under 3 sentences). Use emojis.
"""


def serialize_holdings(holdings: Iterable[PortfolioItem]) -> str:
    """Compact JSON view of the portfolio for the audit prompt."""
    rows = [
        {
            "symbol": item.symbol,
            "name": item.name,
            "quantity": item.quantity,
            "buyPrice": round(item.buy_price, 2),
            "currentPrice": round(item.current_price, 2),
            "plPercent": round(item.pl_percent, 2),
        }
        for item in holdings
    ]
    return json.dumps(rows)


def build_user_prompt(request: MarketRequest | PortfolioRequest | BubbleRequest) -> str:
    if isinstance(request, MarketRequest):
        query = sanitize_user_text(request.query)
        return f'Perform a forensic deep-dive analysis for: "{query}".'
    if isinstance(request, PortfolioRequest):
        return (
            "Audit this portfolio for risk and exposure. Treat the portfolio as the subject: "
            "score its aggregate risk, flag concentrated or bubble-prone positions, and give "
            f"the verdict for the portfolio as a whole: {serialize_holdings(request.holdings)}."
        )
    if isinstance(request, BubbleRequest):
        return (
            "Scan global markets for major Bubbles, Overvalued Assets, and Crash Risks. "
            "Identify at least 4-6 specific assets in topBubbleAssets and score global "
            "market fragility as the riskScore."
        )
    raise TypeError(f"Unsupported analysis request: {type(request).__name__}")


def build_prompts(request: MarketRequest | PortfolioRequest | BubbleRequest) -> tuple[str, str]:
    """Return (system_instruction, user_prompt) for an analysis request."""
    return ANALYSIS_SYSTEM_INSTRUCTION, build_user_prompt(request)


def build_chat_prompts(
    context: dict[str, Any],
    history: list[dict[str, str]],
    message: str,
) -> tuple[str, str]:
    """Return (system_instruction, user_prompt) for a Reality Check chat turn.

    ``history`` holds ``{"role": "user" | "assistant", "content": str}`` dicts,
    the shape Gradio's messages-style Chatbot uses.
    """
    system_instruction = CHAT_SYSTEM_TEMPLATE.format(
        symbol=context.get("symbol") or "General",
        risk_score=_format_score(context.get("risk_score")),
        sentiment=context.get("sentiment") or "Unknown",
    )
    transcript = "\n".join(
        f"{'User' if turn.get('role') == 'user' else 'AI'}: {message_text(turn.get('content'))}"
        for turn in history
    )
    prompt = (
        f"Previous conversation:\n{transcript}\n\n"
        f"Current User Message: {sanitize_user_text(message)}"
    )
    return system_instruction, prompt


def message_text(content: Any) -> str:
    """Plain text of a chat message.

    Gradio's Chatbot hands back content as a list of blocks such as
    ``[{"text": "hi", "type": "text"}]``; non-text blocks (files) are skipped.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        return str(content.get("text") or "")
    if isinstance(content, (list, tuple)):
        return " ".join(part for part in (message_text(c) for c in content) if part)
    return str(content)


def _format_score(score: Any) -> str:
    if isinstance(score, (int, float)):
        return f"{score:.0f}"
    return "0"
