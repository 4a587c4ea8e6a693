"""
Tests for the View State Controller and result merging.

Uses an in-process fake AI client; no network calls.
"""

from __future__ import annotations

import pytest

from analysis.errors import HIGH_TRAFFIC_MESSAGE, UpstreamError
from analysis.schemas import (
    AnalysisResult,
    Citation,
    PortfolioItem,
    RawModelResponse,
    StructuredData,
)
from analysis.state import (
    BUBBLE_SCAN_PLACEHOLDER,
    BUBBLE_TITLE,
    PORTFOLIO_TITLE,
    AnalysisController,
    ViewState,
    merge_result,
)

RESPONSE = (
    '```json\n{"riskScore": 68, "marketSentiment": "Bearish"}\n```\n'
    "### 1. Executive Summary\nFroth everywhere. [[[Hold]]]"
)


class FakeClient:
    """Records calls and returns a canned response (or raises)."""

    def __init__(self, text: str = RESPONSE, error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[tuple[str, str, bool]] = []

    def generate(self, system_instruction, prompt, *, use_search=False):
        self.calls.append((system_instruction, prompt, use_search))
        if self.error:
            raise self.error
        return RawModelResponse(text=self.text, citations=[], search_used=use_search)


def _controller(client: FakeClient) -> tuple[AnalysisController, list[int]]:
    created = []

    def factory():
        created.append(1)
        return client

    return AnalysisController(factory), created


# ---------------------------------------------------------------------------
# merge_result()
# ---------------------------------------------------------------------------

class TestMergeResult:
    def test_partial_sequence(self):
        """[{md:"A"}, {structuredData: D}, {md:""}] → md "A", data D."""
        d = StructuredData(risk_score=70)
        state = None
        for partial in [
            AnalysisResult(markdown_report="A"),
            AnalysisResult(structured_data=d),
            AnalysisResult(markdown_report=""),
        ]:
            state = merge_result(state, partial)
        assert state.markdown_report == "A"
        assert state.structured_data == d

    def test_structured_data_never_cleared(self):
        d = StructuredData(risk_score=10)
        state = merge_result(None, AnalysisResult(structured_data=d))
        state = merge_result(state, AnalysisResult(markdown_report="report"))
        assert state.structured_data == d

    def test_citations_replaced_only_when_present(self):
        c = [Citation(uri="https://a.example")]
        state = merge_result(None, AnalysisResult(citations=c))
        state = merge_result(state, AnalysisResult(markdown_report="x"))
        assert state.citations == c
        state = merge_result(state, AnalysisResult(citations=[]))
        assert state.citations == []

    def test_is_estimated_takes_latest(self):
        state = merge_result(None, AnalysisResult(is_estimated=True))
        state = merge_result(state, AnalysisResult(is_estimated=False))
        assert state.is_estimated is False

    def test_idempotent(self):
        partial = AnalysisResult(markdown_report="Report", structured_data=StructuredData(risk_score=5))
        once = merge_result(None, partial)
        twice = merge_result(once, partial)
        assert once == twice


# ---------------------------------------------------------------------------
# AnalysisController
# ---------------------------------------------------------------------------

class TestMarketAnalysis:
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_empty_query_is_ignored(self, query):
        client = FakeClient()
        ctrl, created = _controller(client)
        assert ctrl.analyze_market(query) is False
        assert client.calls == []
        assert created == []
        assert ctrl.view == ViewState.DASHBOARD
        assert ctrl.loading is False

    def test_success_shows_report(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        assert ctrl.analyze_market("  NVDA ") is True
        assert ctrl.view == ViewState.REPORT
        assert ctrl.title == "NVDA"
        assert ctrl.loading is False
        assert ctrl.result.structured_data.risk_score == 68
        assert '"NVDA"' in client.calls[0][1]

    def test_short_report_still_leaves_spinner(self):
        ctrl, _ = _controller(FakeClient(text="OK"))
        ctrl.analyze_market("NVDA")
        assert ctrl.view == ViewState.REPORT
        assert ctrl.result.markdown_report == "OK"

    def test_ignored_while_loading(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        ctrl.loading = True
        assert ctrl.analyze_market("NVDA") is False
        assert client.calls == []

    def test_listeners_notified(self):
        ctrl, _ = _controller(FakeClient())
        views = []
        ctrl.add_listener(lambda c: views.append(c.view))
        ctrl.analyze_market("NVDA")
        assert views[0] == ViewState.ANALYZING
        assert views[-1] == ViewState.REPORT


class TestFailures:
    def test_overload_message_rewritten(self):
        error = UpstreamError('{"error": {"code": 503, "message": "The model is overloaded."}}')
        ctrl, _ = _controller(FakeClient(error=error))
        ctrl.analyze_market("NVDA")
        assert ctrl.view == ViewState.ERROR
        assert ctrl.error == HIGH_TRAFFIC_MESSAGE
        assert ctrl.result is None
        assert ctrl.loading is False

    def test_error_replaces_previous_result(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        ctrl.analyze_market("NVDA")
        assert ctrl.result is not None
        client.error = UpstreamError("quota exceeded")
        ctrl.analyze_market("AMD")
        assert ctrl.view == ViewState.ERROR
        assert ctrl.error == "quota exceeded"
        assert ctrl.result is None

    def test_client_factory_failure_surfaces(self):
        def factory():
            raise UpstreamError("Server Config Error: GOOGLE_API_KEY is missing.")

        ctrl = AnalysisController(factory)
        ctrl.analyze_market("NVDA")
        assert ctrl.view == ViewState.ERROR
        assert "GOOGLE_API_KEY" in ctrl.error

    def test_retry_resets_everything(self):
        ctrl, _ = _controller(FakeClient(error=UpstreamError("boom")))
        ctrl.analyze_market("NVDA")
        ctrl.retry()
        assert ctrl.view == ViewState.DASHBOARD
        assert ctrl.error is None
        assert ctrl.result is None
        assert ctrl.query == ""


class TestPortfolioAndBubbles:
    def test_empty_portfolio_is_ignored(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        assert ctrl.analyze_portfolio([]) is False
        assert client.calls == []

    def test_portfolio_audit(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        items = [PortfolioItem(symbol="NVDA", quantity=10, buy_price=100, current_price=110)]
        assert ctrl.analyze_portfolio(items) is True
        assert ctrl.title == PORTFOLIO_TITLE
        assert ctrl.view == ViewState.REPORT
        assert "NVDA" in client.calls[0][1]

    def test_bubble_scan_stays_in_bubble_scope(self):
        ctrl, _ = _controller(FakeClient())
        seen = []
        ctrl.add_listener(lambda c: seen.append(c.result.markdown_report if c.result else None))
        assert ctrl.analyze_bubbles() is True
        assert seen[0] == BUBBLE_SCAN_PLACEHOLDER
        assert ctrl.view == ViewState.BUBBLE_SCOPE
        assert ctrl.title == BUBBLE_TITLE
        assert "Froth everywhere" in ctrl.result.markdown_report


class TestNavigation:
    def test_show_portfolio_and_dashboard(self):
        ctrl, _ = _controller(FakeClient())
        ctrl.show_portfolio()
        assert ctrl.view == ViewState.PORTFOLIO
        ctrl.show_dashboard()
        assert ctrl.view == ViewState.DASHBOARD

    def test_bootstrap_runs_deep_link(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        assert ctrl.bootstrap({"q": "TSLA"}) is True
        assert ctrl.title == "TSLA"
        assert len(client.calls) == 1

    def test_bootstrap_without_query(self):
        client = FakeClient()
        ctrl, _ = _controller(client)
        assert ctrl.bootstrap({}) is False
        assert ctrl.bootstrap({"q": ""}) is False
        assert client.calls == []
