"""Tests for app_lib.formatters: markdown rendering of results and portfolio."""

from __future__ import annotations

from analysis.schemas import (
    AnalysisResult,
    Citation,
    PortfolioItem,
    PortfolioSummary,
    StructuredData,
    Verdict,
)
from app_lib.formatters import (
    DEFAULT_SOURCE_TITLE,
    SKELETON,
    format_bubble_assets,
    format_bubble_audit,
    format_citations,
    format_early_warning,
    format_error,
    format_estimate_banner,
    format_key_metrics,
    format_portfolio_summary,
    format_report,
    format_safe_havens,
    format_swot,
    format_whistleblower,
    portfolio_rows,
)


def _data(**payload) -> StructuredData:
    return StructuredData.from_payload(payload)


class TestReport:
    def test_title_verdict_and_body(self):
        result = AnalysisResult(markdown_report="Body text", verdict=Verdict.SELL)
        md = format_report(result, "NVDA")
        assert md.startswith("# NVDA")
        assert "SELL" in md
        assert md.endswith("Body text")

    def test_estimate_banner(self):
        assert format_estimate_banner(AnalysisResult(is_estimated=True))
        assert format_estimate_banner(AnalysisResult(is_estimated=False)) == ""
        assert "Estimated" in format_report(AnalysisResult(markdown_report="x", is_estimated=True))

    def test_verdict_token_replaced_by_badge(self):
        result = AnalysisResult(markdown_report="Trim exposure. [[[Sell]]]", verdict=Verdict.SELL)
        md = format_report(result, "NVDA")
        assert "**SELL**" in md
        assert "[[[" not in md
        assert md.endswith("Trim exposure.")

    def test_token_kept_without_verdict(self):
        md = format_report(AnalysisResult(markdown_report="Odd [[[Maybe]]]"))
        assert md.endswith("Odd [[[Maybe]]]")

    def test_no_result(self):
        assert format_report(None) == ""


class TestPanels:
    def test_skeletons_when_streaming(self):
        assert format_key_metrics(None) == SKELETON
        assert format_swot(None) == SKELETON
        assert format_early_warning(None) == SKELETON

    def test_key_metrics_table(self):
        md = format_key_metrics(_data(keyMetrics=[{"label": "P/E Ratio", "value": 64.2}], riskLevel="High"))
        assert "| P/E Ratio | **64.2** |" in md
        assert "**Risk Level:** High" in md

    def test_swot_quadrants(self):
        md = format_swot(_data(swot={"strengths": ["Moat"], "threats": ["Regulation"]}))
        assert "Strengths" in md and "- Moat" in md
        assert "- Regulation" in md
        assert "_None reported_" in md

    def test_swot_absent(self):
        assert format_swot(_data(riskScore=10)) == ""

    def test_bubble_detected_above_60(self):
        assert "DETECTED" in format_early_warning(_data(bubbleProbability=61))
        assert "STABLE" in format_early_warning(_data(bubbleProbability=60))

    def test_warning_signals_listed(self):
        md = format_early_warning(_data(bubbleProbability=10, warningSignals=["Margin debt at record"]))
        assert "- Margin debt at record" in md

    def test_advice_by_risk_level(self):
        assert "Immediate caution" in format_early_warning(_data(riskLevel="Critical"))
        assert "stable" in format_early_warning(_data(riskLevel="Low"))

    def test_bubble_audit_and_whistleblower(self):
        data = _data(
            bubbleAudit={"riskStatus": "Elevated", "score": 74, "burstTrigger": "Rate hike"},
            whistleblower={"integrityScore": 35, "anomalies": ["Revenue recognition"]},
        )
        assert "74/100" in format_bubble_audit(data)
        assert "Rate hike" in format_bubble_audit(data)
        assert "35/100" in format_whistleblower(data)
        assert "- Revenue recognition" in format_whistleblower(data)
        assert format_bubble_audit(_data(riskScore=1)) == ""


class TestCitations:
    def test_default_title(self):
        md = format_citations([Citation(uri="https://a.example"), Citation(uri="https://b.example", title="B")])
        assert f"1. [{DEFAULT_SOURCE_TITLE}](https://a.example)" in md
        assert "2. [B](https://b.example)" in md

    def test_none(self):
        assert format_citations(None) == ""
        assert format_citations([]) == ""


class TestBubbleScope:
    def test_assets(self):
        md = format_bubble_assets(_data(topBubbleAssets=[
            {"name": "Nvidia", "riskScore": 88, "sector": "Semis", "price": 950, "reason": "AI capex euphoria"},
        ]))
        assert "#### Nvidia" in md
        assert "88/100 Risk" in md
        assert "950" in md

    def test_no_assets(self):
        assert "No specific extreme bubbles" in format_bubble_assets(_data(riskScore=40))

    def test_streaming(self):
        assert SKELETON in format_bubble_assets(None)

    def test_safe_havens(self):
        assert "Gold (XAU)" in format_safe_havens()


class TestPortfolio:
    def test_summary(self):
        md = format_portfolio_summary(PortfolioSummary(
            total_value=1300, total_cost=1250, total_pl=50, total_pl_percent=4.0,
        ))
        assert "$1,300.00" in md
        assert "+4.00%" in md

    def test_negative_pl(self):
        md = format_portfolio_summary(PortfolioSummary(total_pl=-25, total_pl_percent=-2))
        assert "-$25.00" in md

    def test_rows(self):
        item = PortfolioItem(id="abc", symbol="NVDA", name="NVIDIA Corp.", quantity=10, buy_price=100, current_price=110)
        assert portfolio_rows([item]) == [["abc", "NVDA", "NVIDIA Corp.", 10, 100, 110, 1100, "+10.00%"]]


class TestError:
    def test_message_shown(self):
        assert "quota exceeded" in format_error("quota exceeded")
        assert "Try Again" in format_error(None)
