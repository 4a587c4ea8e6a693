"""
View State Controller — the single owner of "what the user is looking at".

One ``AnalysisController`` exists per UI session. It holds the current
screen, the current analysis result and the loading flag, and every
change to them goes through one of its methods. Partial results are
folded in with ``merge_result``, which never discards structured data or
report text that has already been shown.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from analysis.errors import clean_error_message
from analysis.pipeline import run_analysis
from analysis.schemas import (
    AnalysisResult,
    BubbleRequest,
    MarketRequest,
    PortfolioItem,
    PortfolioRequest,
)

logger = logging.getLogger(__name__)

# Reports longer than this are worth showing instead of the spinner
TRIVIAL_REPORT_LENGTH = 5

BUBBLE_SCAN_PLACEHOLDER = "Initiating Global Market Scan..."
PORTFOLIO_TITLE = "Portfolio Risk Audit"
BUBBLE_TITLE = "Global Market Bubble Scope"


class ViewState(str, Enum):
    DASHBOARD = "DASHBOARD"
    ANALYZING = "ANALYZING"
    REPORT = "REPORT"
    PORTFOLIO = "PORTFOLIO"
    BUBBLE_SCOPE = "BUBBLE_SCOPE"
    ERROR = "ERROR"


def merge_result(previous: Optional[AnalysisResult], partial: AnalysisResult) -> AnalysisResult:
    """Fold a partial result into the previous one, field by field.

    - markdown_report: the new text if non-empty, else the previous text
    - structured_data: the new payload if present, else the previous one
    - citations: the new list if present, else the previous list
    - is_estimated: always the latest value

    Applying the same partial twice yields the same state.
    """
    previous = previous or AnalysisResult()

    if partial.markdown_report:
        markdown, verdict = partial.markdown_report, partial.verdict
    else:
        markdown, verdict = previous.markdown_report, previous.verdict

    return AnalysisResult(
        markdown_report=markdown,
        structured_data=(
            partial.structured_data
            if partial.structured_data is not None
            else previous.structured_data
        ),
        citations=partial.citations if partial.citations is not None else previous.citations,
        is_estimated=partial.is_estimated,
        verdict=verdict,
    )


ClientFactory = Callable[[], object]
Listener = Callable[["AnalysisController"], None]


class AnalysisController:
    """Owns view, result, error and loading state for one session.

    ``client_factory`` is called once per request so that a missing API
    key surfaces as an error screen rather than at startup.
    """

    def __init__(self, client_factory: ClientFactory):
        self._client_factory = client_factory
        self._listeners: list[Listener] = []
        self.view = ViewState.DASHBOARD
        self.result: Optional[AnalysisResult] = None
        self.title = ""
        self.query = ""
        self.error: Optional[str] = None
        self.loading = False

    # -- listeners ---------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    # -- starting requests -------------------------------------------------

    def _begin(self, title: str, view: ViewState, initial: Optional[AnalysisResult] = None) -> None:
        self.loading = True
        self.error = None
        self.title = title
        self.view = view
        self.result = initial
        self._notify()

    def start_market(self, query: str) -> Optional[MarketRequest]:
        """Switch to the spinner and return the request, or None if nothing to do."""
        if not query or not query.strip() or self.loading:
            return None
        query = query.strip()
        self.query = query
        self._begin(query, ViewState.ANALYZING)
        return MarketRequest(query=query)

    def start_portfolio(self, items: Sequence[PortfolioItem]) -> Optional[PortfolioRequest]:
        if not items or self.loading:
            return None
        self._begin(PORTFOLIO_TITLE, ViewState.ANALYZING)
        return PortfolioRequest(holdings=tuple(items))

    def start_bubbles(self) -> Optional[BubbleRequest]:
        if self.loading:
            return None
        self._begin(
            BUBBLE_TITLE,
            ViewState.BUBBLE_SCOPE,
            AnalysisResult(markdown_report=BUBBLE_SCAN_PLACEHOLDER),
        )
        return BubbleRequest()

    def execute(self, request: MarketRequest | PortfolioRequest | BubbleRequest) -> None:
        """Run a started request to completion or failure. Never raises."""
        try:
            client = self._client_factory()
            run_analysis(request, client, on_update=self.apply_update)
        except Exception as exc:
            logger.exception(f"{request.kind} analysis failed")
            self.fail(exc)
        else:
            # A finished request never leaves the spinner up, however short the report
            if self.view == ViewState.ANALYZING:
                self.view = ViewState.REPORT
        finally:
            self.loading = False
            self._notify()

    def analyze_market(self, query: str) -> bool:
        """Start and run a market analysis. False when the input was skipped."""
        request = self.start_market(query)
        if request is None:
            return False
        self.execute(request)
        return True

    def analyze_portfolio(self, items: Sequence[PortfolioItem]) -> bool:
        request = self.start_portfolio(items)
        if request is None:
            return False
        self.execute(request)
        return True

    def analyze_bubbles(self) -> bool:
        request = self.start_bubbles()
        if request is None:
            return False
        self.execute(request)
        return True

    # -- updates -----------------------------------------------------------

    def apply_update(self, partial: AnalysisResult) -> None:
        """Merge a (possibly partial) result and leave the spinner once there is text."""
        self.result = merge_result(self.result, partial)
        if (
            self.view == ViewState.ANALYZING
            and len(self.result.markdown_report) > TRIVIAL_REPORT_LENGTH
        ):
            self.view = ViewState.REPORT
        self._notify()

    def fail(self, error: BaseException | str) -> None:
        """Replace whatever was showing with the error screen."""
        self.error = clean_error_message(error)
        self.result = None
        self.view = ViewState.ERROR
        self._notify()

    # -- navigation --------------------------------------------------------

    def retry(self) -> None:
        """'Try Again': drop all analysis state and go back to the dashboard."""
        self.view = ViewState.DASHBOARD
        self.error = None
        self.result = None
        self.query = ""
        self.title = ""
        self._notify()

    def show_dashboard(self) -> None:
        self.view = ViewState.DASHBOARD
        self._notify()

    def show_portfolio(self) -> None:
        self.view = ViewState.PORTFOLIO
        self._notify()

    def bootstrap(self, query_params: Mapping[str, str]) -> bool:
        """Run a market analysis for a legacy ``?q=`` deep link."""
        q = query_params.get("q") if query_params else None
        if not q:
            return False
        return self.analyze_market(q)
