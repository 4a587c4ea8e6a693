"""Formatting functions for analysis results and the portfolio."""
from __future__ import annotations

from typing import Iterable, Optional

from analysis.parser import strip_verdict_tokens
from analysis.schemas import (
    AnalysisResult,
    Citation,
    PortfolioItem,
    PortfolioSummary,
    StructuredData,
    Verdict,
)
from app_lib.model_factory import PROVIDER_TO_DISPLAY
from config.settings import settings

SKELETON = "_Awaiting structured data..._"
DEFAULT_SOURCE_TITLE = "Source Link"

BUBBLE_DETECTED_THRESHOLD = 60

_VERDICT_EMOJI = {
    Verdict.STRONG_BUY: "🟢🟢",
    Verdict.BUY: "🟢",
    Verdict.HOLD: "🟡",
    Verdict.SELL: "🔴",
    Verdict.STRONG_SELL: "🔴🔴",
}

_RISK_LEVEL_ADVICE = {
    "Critical": (
        "Immediate caution advised. Indicators suggest a high probability of correction. "
        "Capital preservation strategies recommended."
    ),
    "High": (
        "Significant downside risks identified. Volatility expected to increase. "
        "Monitor stop-losses closely."
    ),
}
_DEFAULT_ADVICE = (
    "Market conditions appear stable, but standard risk management protocols "
    "should remain in effect."
)

SAFE_HAVENS = [
    ("Gold (XAU)", "Strong"),
    ("Govt Bonds (TLT)", "Neutral"),
    ("Consumer Staples", "Strong"),
]


def _fmt_score(score: Optional[float]) -> str:
    return f"{score:.0f}" if score is not None else "—"


def _fmt_money(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


# ---------------------------------------------------------------------------
# Report view
# ---------------------------------------------------------------------------

def format_estimate_banner(result: Optional[AnalysisResult]) -> str:
    if not result or not result.is_estimated:
        return ""
    return (
        "> ⚠️ **Estimated data.** Live search was unavailable for this run; "
        "figures come from model knowledge and may be out of date."
    )


def format_verdict_badge(verdict: Optional[Verdict]) -> str:
    if verdict is None:
        return ""
    return f"**Verdict:** {_VERDICT_EMOJI[verdict]} **{verdict.value.upper()}**"


def format_report(result: Optional[AnalysisResult], title: str = "") -> str:
    """Header, estimate banner, verdict and the narrative report."""
    if not result:
        return ""
    lines = []
    if title:
        lines.extend([f"# {title}", ""])
    banner = format_estimate_banner(result)
    if banner:
        lines.extend([banner, ""])
    badge = format_verdict_badge(result.verdict)
    body = result.markdown_report
    if badge:
        lines.extend([badge, ""])
        body = strip_verdict_tokens(body)
    lines.append(body)
    return "\n".join(lines)


def format_key_metrics(data: Optional[StructuredData]) -> str:
    if data is None:
        return SKELETON
    lines = ["### Key Metrics", ""]
    if data.risk_level:
        lines.append(f"**Risk Level:** {data.risk_level}")
    if data.market_sentiment:
        lines.append(f"**Sentiment:** {data.market_sentiment.value}")
    if data.technical_analysis and data.technical_analysis.signal:
        lines.append(f"**Technical Signal:** {data.technical_analysis.signal}")
    if not data.key_metrics:
        lines.append("")
        lines.append("_No key metrics reported._")
        return "\n".join(lines)

    lines.extend(["", "| Metric | Value |", "|--------|-------|"])
    for metric in data.key_metrics:
        lines.append(f"| {metric.label} | **{metric.value}** |")
    return "\n".join(lines)


def format_swot(data: Optional[StructuredData]) -> str:
    if data is None:
        return SKELETON
    swot = data.swot
    if swot is None or swot.is_empty():
        return ""

    quadrants = [
        ("💪 Strengths", swot.strengths),
        ("⚠️ Weaknesses", swot.weaknesses),
        ("🚀 Opportunities", swot.opportunities),
        ("🔥 Threats", swot.threats),
    ]
    lines = ["## SWOT Analysis"]
    for heading, points in quadrants:
        lines.extend(["", f"#### {heading}"])
        if points:
            lines.extend(f"- {p}" for p in points)
        else:
            lines.append("- _None reported_")
    return "\n".join(lines)


def format_early_warning(data: Optional[StructuredData]) -> str:
    """Bubble status plus warning signals, or canned advice by risk level."""
    if data is None:
        return SKELETON

    detected = (data.bubble_probability or 0) > BUBBLE_DETECTED_THRESHOLD
    status = "🔴 **DETECTED**" if detected else "🟢 **STABLE**"
    lines = ["### Early Warning System", "", f"**Bubble Status:** {status}", ""]

    if data.warning_signals:
        lines.append("**Risk Factors & Signals:**")
        lines.extend(f"- {signal}" for signal in data.warning_signals)
    else:
        lines.append(_RISK_LEVEL_ADVICE.get(data.risk_level or "", _DEFAULT_ADVICE))
    return "\n".join(lines)


def format_bubble_audit(data: Optional[StructuredData]) -> str:
    if data is None or data.bubble_audit is None:
        return ""
    audit = data.bubble_audit
    lines = [
        "### Bubble Audit",
        "",
        "| Check | Finding |",
        "|-------|---------|",
        f"| **Status** | {audit.risk_status or '—'} |",
        f"| **Valuation** | {audit.valuation_verdict or '—'} |",
        f"| **Bubble Score** | {_fmt_score(audit.score)}/100 |",
        f"| **Speculative Activity** | {audit.speculative_activity or '—'} |",
        f"| **Liquidity** | {audit.liquidity_status or '—'} |",
    ]
    if audit.fundamentals:
        lines.extend(["", f"**Fundamentals:** {audit.fundamentals}"])
    if audit.peer_context:
        lines.extend(["", f"**Peer Context:** {audit.peer_context}"])
    if audit.burst_trigger:
        lines.extend(["", f"**Burst Trigger:** {audit.burst_trigger}"])
    return "\n".join(lines)


def format_whistleblower(data: Optional[StructuredData]) -> str:
    if data is None or data.whistleblower is None:
        return ""
    wb = data.whistleblower
    lines = [
        "### Whistleblower Report",
        "",
        f"**Integrity Score:** {_fmt_score(wb.integrity_score)}/100",
    ]
    if wb.forensic_verdict:
        lines.append(f"**Forensic Verdict:** {wb.forensic_verdict}")
    if wb.anomalies:
        lines.extend(["", "**Anomalies:**"])
        lines.extend(f"- {a}" for a in wb.anomalies)
    if wb.insider_details:
        lines.extend(["", "**Insider Activity:**"])
        lines.extend(f"- {d}" for d in wb.insider_details)
    return "\n".join(lines)


def format_citations(citations: Optional[list[Citation]]) -> str:
    if not citations:
        return ""
    lines = ["### Sources", ""]
    for i, citation in enumerate(citations, 1):
        lines.append(f"{i}. [{citation.title or DEFAULT_SOURCE_TITLE}]({citation.uri})")
    return "\n".join(lines)


def format_provider_footer() -> str:
    provider = settings.resolve_provider()
    display = PROVIDER_TO_DISPLAY.get(provider, provider.value)
    return f"_Engine: {display} · `{settings.get_model(provider)}`_"


# ---------------------------------------------------------------------------
# Bubble Scope
# ---------------------------------------------------------------------------

def format_bubble_overview(data: Optional[StructuredData]) -> str:
    """Global fragility score and critical warning signals."""
    if data is None:
        return SKELETON
    lines = [
        "### Global Fragility",
        "",
        f"# {_fmt_score(data.risk_score)} / 100",
        "",
        f"**Market Psychology:** {data.market_sentiment.value if data.market_sentiment else 'Neutral'}",
    ]
    if data.warning_signals:
        lines.extend(["", "**Critical Warning Signals:**"])
        lines.extend(f"- 🔴 {signal}" for signal in data.warning_signals)
    return "\n".join(lines)


def format_bubble_assets(data: Optional[StructuredData]) -> str:
    if data is None:
        return "## 🔥 Active Red Zones\n\n" + SKELETON
    if not data.top_bubble_assets:
        return (
            "## 🔥 Active Red Zones\n\n"
            "No specific extreme bubbles detected in structured analysis. "
            "See report for details."
        )

    lines = ["## 🔥 Active Red Zones"]
    for asset in data.top_bubble_assets:
        risk = asset.risk_score or 0
        flag = "🔴" if risk > 80 else "🟠"
        lines.extend([
            "",
            f"#### {asset.name}",
            f"{flag} **{_fmt_score(asset.risk_score)}/100 Risk** · `{asset.sector or 'Unknown'}`"
            f" · Current Valuation: **{asset.price or '—'}**",
            "",
            asset.reason or "",
        ])
    return "\n".join(lines)


def format_safe_havens() -> str:
    lines = ["### 🛡️ Safe Havens", "", "| Asset | Outlook |", "|-------|---------|"]
    lines.extend(f"| {name} | {outlook} |" for name, outlook in SAFE_HAVENS)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------

def format_portfolio_summary(summary: PortfolioSummary) -> str:
    pl_emoji = "🟢" if summary.total_pl >= 0 else "🔴"
    return "\n".join([
        "| Total Value | Total Cost | Total P/L |",
        "|-------------|------------|-----------|",
        f"| **{_fmt_money(summary.total_value)}** | {_fmt_money(summary.total_cost)} "
        f"| {pl_emoji} {_fmt_money(summary.total_pl)} ({summary.total_pl_percent:+.2f}%) |",
    ])


def portfolio_rows(items: Iterable[PortfolioItem]) -> list[list]:
    """Rows for the holdings Dataframe, one per item."""
    return [
        [
            item.id,
            item.symbol,
            item.name,
            item.quantity,
            round(item.buy_price, 2),
            round(item.current_price, 2),
            round(item.market_value, 2),
            f"{item.pl_percent:+.2f}%",
        ]
        for item in items
    ]


PORTFOLIO_HEADERS = ["ID", "Symbol", "Name", "Qty", "Avg Cost", "Price", "Value", "P/L %"]


# ---------------------------------------------------------------------------
# Status and errors
# ---------------------------------------------------------------------------

def format_analyzing(title: str) -> str:
    return f"### ⏳ Analyzing {title}...\n\nRunning forensic checks and live search."


def format_error(message: Optional[str]) -> str:
    return "\n".join([
        "## ❌ Analysis Failed",
        "",
        message or "Something went wrong.",
        "",
        "Press **Try Again** to return to the dashboard.",
    ])
