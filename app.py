"""
FinCap Forensic Engine — Gradio Application

Main entry point. Users search an asset (or audit their portfolio, or scan
global markets for bubbles) and get a forensic report: a narrative with a
closing verdict plus gauges, charts and panels driven by the structured
data the model returns alongside it.

Supported LLM providers:
    - Google (Gemini, with Google Search grounding)
    - Anthropic (Claude)
    - OpenAI (GPT)
    - Ollama (local open-source models)

Providers without search produce output flagged as estimated.

Architecture:
    User Input → Prompt Builder → AI Client → Response Parser
               → View State Controller → Presentation
"""

from __future__ import annotations

import logging

import gradio as gr

from analysis.chat import chat_context, opening_line, reply
from analysis.errors import clean_error_message
from analysis.state import AnalysisController, ViewState
from app_lib.charts import (
    build_allocation_chart,
    build_divergence_chart,
    build_risk_gauge,
    build_trend_chart,
)
from app_lib.formatters import (
    PORTFOLIO_HEADERS,
    format_analyzing,
    format_bubble_assets,
    format_bubble_audit,
    format_bubble_overview,
    format_citations,
    format_early_warning,
    format_error,
    format_key_metrics,
    format_portfolio_summary,
    format_provider_footer,
    format_report,
    format_safe_havens,
    format_swot,
    format_whistleblower,
    portfolio_rows,
)
from app_lib.model_factory import PROVIDER_TO_DISPLAY, create_client
from config.settings import settings
from portfolio.stocks import STOCKS, suggest
from portfolio.store import PortfolioStore

logging.basicConfig(level=getattr(logging, settings.log_level))
logger = logging.getLogger(__name__)

QUICK_PICKS = ["NVDA", "Bitcoin", "S&P 500", "Crypto Market Outlook"]

_TAB_FOR_VIEW = {
    ViewState.DASHBOARD: "dashboard",
    ViewState.ANALYZING: "report",
    ViewState.REPORT: "report",
    ViewState.PORTFOLIO: "portfolio",
    ViewState.BUBBLE_SCOPE: "bubbles",
}

_PROGRESS_HTML = (
    '<div style="background:#1a3a5c;color:#7dd3fc;padding:12px 20px;border-radius:8px;'
    'font-size:1.1rem;font-weight:600;text-align:center;animation:pulse 2s infinite">'
    "&#128269; {message}</div>"
    "<style>@keyframes pulse{{0%,100%{{opacity:1}}50%{{opacity:.6}}}}</style>"
)


def _controller(ctrl: AnalysisController | None) -> AnalysisController:
    """Per-session controller, created on first use."""
    return ctrl if ctrl is not None else AnalysisController(create_client)


# ---------------------------------------------------------------------------
# Rendering: every analysis handler returns the same set of outputs
# ---------------------------------------------------------------------------

def render(ctrl: AnalysisController) -> tuple:
    """Derive every analysis-related component from the controller state."""
    result = ctrl.result
    data = result.structured_data if result else None
    is_error = ctrl.view == ViewState.ERROR

    if ctrl.view == ViewState.ANALYZING:
        report_md = format_analyzing(ctrl.title)
    else:
        report_md = format_report(result, ctrl.title)

    tab = _TAB_FOR_VIEW.get(ctrl.view)
    tabs_update = gr.update(selected=tab) if tab else gr.update()

    if ctrl.view in (ViewState.REPORT, ViewState.BUBBLE_SCOPE) and data is not None and not ctrl.loading:
        chat_history = [{"role": "assistant", "content": opening_line(chat_context(ctrl.title, result))}]
    else:
        chat_history = gr.update()

    return (
        tabs_update,
        gr.update(visible=is_error),
        format_error(ctrl.error) if is_error else "",
        report_md,
        format_citations(result.citations if result else None),
        build_risk_gauge(data.risk_score if data else None, "Risk Score"),
        build_risk_gauge(data.bubble_probability if data else None, "Bubble Probability"),
        format_key_metrics(data) if result else "",
        format_early_warning(data) if result else "",
        build_trend_chart(data, f"{ctrl.title} — Technical Trend" if ctrl.title else "Technical Trend"),
        format_swot(data),
        format_bubble_audit(data),
        format_whistleblower(data),
        format_bubble_overview(data),
        build_risk_gauge(data.risk_score if data else None, "Global Fragility"),
        format_bubble_assets(data),
        format_report(result),
        build_divergence_chart(data),
        chat_history,
        ctrl,
    )


def render_portfolio(store: PortfolioStore) -> tuple:
    items = store.items
    choices = [(f"{i.symbol} · {i.quantity:g} @ {i.buy_price:.2f}", i.id) for i in items]
    return (
        format_portfolio_summary(store.summary()),
        build_allocation_chart(items),
        portfolio_rows(items),
        gr.update(choices=choices, value=None),
    )


# ---------------------------------------------------------------------------
# Analysis handlers (generators: spinner first, then the final view)
# ---------------------------------------------------------------------------

def run_market_analysis(query: str, ctrl: AnalysisController | None):
    ctrl = _controller(ctrl)
    request = ctrl.start_market(query or "")
    if request is None:
        yield render(ctrl)
        return
    yield render(ctrl)
    ctrl.execute(request)
    yield render(ctrl)


def run_bubble_scan(ctrl: AnalysisController | None):
    ctrl = _controller(ctrl)
    request = ctrl.start_bubbles()
    if request is None:
        yield render(ctrl)
        return
    yield render(ctrl)
    ctrl.execute(request)
    yield render(ctrl)


def run_portfolio_audit(ctrl: AnalysisController | None, store: PortfolioStore):
    ctrl = _controller(ctrl)
    request = ctrl.start_portfolio(store.items)
    if request is None:
        if not store.items:
            gr.Warning("Add at least one holding before running an audit.")
        yield render(ctrl)
        return
    yield render(ctrl)
    ctrl.execute(request)
    yield render(ctrl)


def retry(ctrl: AnalysisController | None):
    ctrl = _controller(ctrl)
    ctrl.retry()
    return render(ctrl)


def bootstrap(ctrl: AnalysisController | None, request: gr.Request):
    """Honour a ``?q=`` deep link on page load."""
    ctrl = _controller(ctrl)
    params = dict(request.query_params) if request is not None else {}
    query = params.get("q")
    if not query:
        yield render(ctrl)
        return
    logger.info(f"Deep link analysis for {query!r}")
    yield from run_market_analysis(query, ctrl)


# ---------------------------------------------------------------------------
# Reality Check chat
# ---------------------------------------------------------------------------

def send_chat(message: str, history: list | None, ctrl: AnalysisController | None):
    history = list(history or [])
    if not message or not message.strip():
        return history, ""
    ctrl = _controller(ctrl)
    history.append({"role": "user", "content": message})
    try:
        client = create_client()
        answer = reply(client, chat_context(ctrl.title, ctrl.result), history[:-1], message)
    except Exception as e:
        logger.exception("Reality Check failed")
        answer = f"⚠️ {clean_error_message(e)}"
    history.append({"role": "assistant", "content": answer})
    return history, ""


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------

def build_ui(store: PortfolioStore | None = None) -> gr.Blocks:
    """Build the Gradio interface: dashboard, report, bubble scope, portfolio, chat."""

    store = store or PortfolioStore(settings.portfolio_path)

    resolved = settings.resolve_provider()
    if resolved != settings.llm_provider:
        logger.info(
            "No API key for %s — auto-selected %s",
            settings.llm_provider.value, resolved.value,
        )

    with gr.Blocks(title="FinCap Forensic Engine") as app:
        session_state = gr.State(value=None)

        gr.Markdown(
            """<div class="header">

# FinCap Forensic Engine

<span class="tagline">Forensic market analysis &middot; Bubble detection &middot; Portfolio risk audit</span>
</div>""",
        )

        # ── Search controls ──
        with gr.Group(elem_classes=["controls-group"]):
            with gr.Row(equal_height=True):
                query_input = gr.Dropdown(
                    choices=[(f"{s.symbol} - {s.name}", s.symbol) for s in STOCKS],
                    value=None,
                    label="Search an asset, sector or market",
                    allow_custom_value=True,
                    filterable=True,
                    scale=4,
                )
                analyze_btn = gr.Button("Analyze", variant="primary", scale=1)
                bubble_btn = gr.Button("Bubble Scope", variant="stop", scale=1)
            with gr.Row():
                pick_btns = [gr.Button(pick, size="sm") for pick in QUICK_PICKS]

        progress_status = gr.HTML(value="", elem_classes=["progress-bar"], show_label=False)

        # ── Error screen ──
        with gr.Group(visible=False) as error_group:
            error_md = gr.Markdown()
            retry_btn = gr.Button("Try Again", variant="primary")

        # ── Views ──
        with gr.Tabs(selected="dashboard", elem_classes=["result-tabs"]) as main_tabs:
            with gr.TabItem("Dashboard", id="dashboard") as dashboard_tab:
                gr.Markdown(
                    "### Find the rot beneath the floorboards\n\n"
                    "Search any stock, crypto asset or market theme for a forensic deep dive: "
                    "risk and bubble gauges, technicals, SWOT, insider red flags and a hard verdict. "
                    "Use **Bubble Scope** to scan global markets for overvalued assets, or audit "
                    "your holdings from the **Portfolio** tab."
                )
                gr.Markdown(
                    f"{format_provider_footer()}  \n"
                    f"_Provider: {PROVIDER_TO_DISPLAY.get(resolved, resolved.value)}_"
                )

            with gr.TabItem("Report", id="report"):
                with gr.Row():
                    risk_gauge = gr.Plot(label="Risk Score")
                    bubble_gauge = gr.Plot(label="Bubble Probability")
                with gr.Row():
                    with gr.Column(scale=2):
                        trend_plot = gr.Plot(label="Technical Trend")
                    with gr.Column(scale=1):
                        metrics_md = gr.Markdown()
                        warning_md = gr.Markdown()
                report_md = gr.Markdown()
                swot_md = gr.Markdown()
                with gr.Row():
                    audit_md = gr.Markdown()
                    whistle_md = gr.Markdown()
                sources_md = gr.Markdown()

            with gr.TabItem("Bubble Scope", id="bubbles"):
                gr.Markdown(
                    "## Global Systemic Risk Monitor\n\n"
                    "Detecting disconnected valuations, irrational exuberance, and market fragility."
                )
                with gr.Row():
                    with gr.Column(scale=2):
                        bubble_overview_md = gr.Markdown()
                        bubble_assets_md = gr.Markdown()
                        gr.Markdown("## Forensic Analysis")
                        bubble_report_md = gr.Markdown()
                    with gr.Column(scale=1):
                        fragility_gauge = gr.Plot(label="Global Fragility")
                        divergence_plot = gr.Plot(label="Price vs Reality Divergence")
                        gr.Markdown(format_safe_havens())

            with gr.TabItem("Portfolio", id="portfolio") as portfolio_tab:
                portfolio_summary_md = gr.Markdown()
                with gr.Row():
                    with gr.Column(scale=2):
                        holdings_df = gr.Dataframe(
                            headers=PORTFOLIO_HEADERS,
                            interactive=False,
                            wrap=True,
                        )
                    with gr.Column(scale=1):
                        allocation_plot = gr.Plot(label="Allocation")
                with gr.Row(equal_height=True):
                    symbol_input = gr.Textbox(label="Symbol", placeholder="e.g. AAPL", max_lines=1)
                    qty_input = gr.Number(label="Quantity", minimum=0)
                    cost_input = gr.Number(label="Avg Cost", minimum=0)
                    add_btn = gr.Button("Add Asset", variant="primary")
                symbol_hint = gr.Markdown()
                with gr.Row(equal_height=True):
                    remove_dropdown = gr.Dropdown(label="Holding", choices=[], scale=3)
                    remove_btn = gr.Button("Remove", variant="stop", scale=1)
                    refresh_btn = gr.Button("Refresh Prices", scale=1)
                    audit_btn = gr.Button("Audit Portfolio", variant="primary", scale=1)

            with gr.TabItem("Reality Check", id="chat"):
                chatbot = gr.Chatbot(label="The Reality Check", height=420)
                with gr.Row(equal_height=True):
                    chat_input = gr.Textbox(
                        placeholder="Ask if it's a good buy...",
                        show_label=False,
                        max_lines=1,
                        scale=5,
                    )
                    chat_send = gr.Button("Send", scale=1)

        gr.Markdown(
            """<div class="disclaimer">

**Disclaimer:** AI-generated forensic analysis — NOT financial advice.
Figures may be estimated when live search is unavailable. Consult qualified
professionals for investment decisions.

</div>""",
        )

        view_outputs = [
            main_tabs, error_group, error_md, report_md, sources_md,
            risk_gauge, bubble_gauge, metrics_md, warning_md, trend_plot,
            swot_md, audit_md, whistle_md,
            bubble_overview_md, fragility_gauge, bubble_assets_md, bubble_report_md,
            divergence_plot, chatbot, session_state,
        ]
        portfolio_outputs = [portfolio_summary_md, allocation_plot, holdings_df, remove_dropdown]

        # ── Lock inputs during execution ──
        _lockable = [query_input, analyze_btn, bubble_btn, audit_btn, *pick_btns]

        def _lock_inputs():
            return [gr.update(interactive=False) for _ in _lockable]

        def _unlock_inputs():
            return [gr.update(interactive=True) for _ in _lockable]

        def _progress(message: str):
            return lambda: _PROGRESS_HTML.format(message=message)

        def _chain(trigger, fn, inputs, message):
            trigger(
                fn=_lock_inputs, inputs=[], outputs=_lockable,
            ).then(
                fn=_progress(message), inputs=[], outputs=[progress_status],
            ).then(
                fn=fn, inputs=inputs, outputs=view_outputs, show_progress="hidden",
            ).then(
                fn=lambda: "", inputs=[], outputs=[progress_status],
            ).then(
                fn=_unlock_inputs, inputs=[], outputs=_lockable,
            )

        _chain(analyze_btn.click, run_market_analysis, [query_input, session_state],
               "Running forensic analysis &mdash; searching filings, news and price action...")
        _chain(query_input.select, run_market_analysis, [query_input, session_state],
               "Running forensic analysis &mdash; searching filings, news and price action...")
        _chain(bubble_btn.click, run_bubble_scan, [session_state],
               "Initiating Global Market Scan...")

        def _pick_handler(pick):
            def handler(ctrl):
                yield from run_market_analysis(pick, ctrl)
            return handler

        for btn, pick in zip(pick_btns, QUICK_PICKS):
            _chain(btn.click, _pick_handler(pick), [session_state],
                   f"Running forensic analysis on {pick}...")

        def audit_portfolio(ctrl):
            yield from run_portfolio_audit(ctrl, store)

        _chain(audit_btn.click, audit_portfolio, [session_state],
               "Auditing portfolio risk and exposure...")

        retry_btn.click(fn=retry, inputs=[session_state], outputs=view_outputs)

        # ── Navigation keeps the controller in sync with manual tab switches ──
        def _on_dashboard(ctrl):
            ctrl = _controller(ctrl)
            if not ctrl.loading:
                ctrl.show_dashboard()
            return ctrl

        def _on_portfolio(ctrl):
            ctrl = _controller(ctrl)
            if not ctrl.loading:
                ctrl.show_portfolio()
            return ctrl

        dashboard_tab.select(fn=_on_dashboard, inputs=[session_state], outputs=[session_state])
        portfolio_tab.select(fn=_on_portfolio, inputs=[session_state], outputs=[session_state])

        # ── Portfolio CRUD ──
        def add_asset(symbol, quantity, cost):
            if not symbol or not quantity or cost is None:
                gr.Warning("Symbol, quantity and cost are all required.")
                return (*render_portfolio(store), symbol, quantity, cost)
            try:
                store.add(symbol, float(quantity), float(cost))
            except ValueError as e:
                gr.Warning(f"Could not add {symbol}: {e}")
                return (*render_portfolio(store), symbol, quantity, cost)
            return (*render_portfolio(store), "", None, None)

        def remove_asset(item_id):
            if item_id:
                store.remove(item_id)
            return render_portfolio(store)

        def refresh_prices():
            store.simulate_market_data()
            return render_portfolio(store)

        def show_suggestions(text):
            matches = suggest(text, limit=5)
            if not matches:
                return ""
            return "Matches: " + " · ".join(f"**{s.symbol}** {s.name}" for s in matches)

        add_btn.click(
            fn=add_asset,
            inputs=[symbol_input, qty_input, cost_input],
            outputs=[*portfolio_outputs, symbol_input, qty_input, cost_input],
        )
        remove_btn.click(fn=remove_asset, inputs=[remove_dropdown], outputs=portfolio_outputs)
        refresh_btn.click(fn=refresh_prices, inputs=[], outputs=portfolio_outputs)
        symbol_input.input(fn=show_suggestions, inputs=[symbol_input], outputs=[symbol_hint])

        # ── Reality Check ──
        chat_send.click(
            fn=send_chat,
            inputs=[chat_input, chatbot, session_state],
            outputs=[chatbot, chat_input],
        )
        chat_input.submit(
            fn=send_chat,
            inputs=[chat_input, chatbot, session_state],
            outputs=[chatbot, chat_input],
        )

        # ── Page load: portfolio table and ?q= deep link ──
        app.load(fn=lambda: render_portfolio(store), inputs=[], outputs=portfolio_outputs)
        app.load(fn=bootstrap, inputs=[session_state], outputs=view_outputs)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app = build_ui()
    app.launch(
        server_name="0.0.0.0",
        server_port=settings.server_port,
        share=False,
        inbrowser=True,
        theme=gr.themes.Soft(),
        css="""
        .header { text-align: center; margin-bottom: 4px; }
        .header h1 { margin-bottom: 2px !important; font-size: 1.6rem !important; }
        .tagline { font-size: 0.85rem; color: #666; letter-spacing: 0.02em; }
        .controls-group { padding: 10px 16px !important; }
        .result-tabs { margin-top: 12px !important; }
        .disclaimer { font-size: 0.78em; color: #888; margin-top: 80px; padding: 10px 14px;
                       border: 1px solid #ddd; border-radius: 5px; line-height: 1.5; }
        .progress-bar { min-height: 0 !important; }
        """,
    )
