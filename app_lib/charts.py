"""
Plotly charts for the Gradio UI.

Public builders:
    build_risk_gauge        — 0-100 dial for risk score / bubble probability
    build_trend_chart       — price vs MA50 with an RSI panel (70/30 bands)
    build_divergence_chart  — market price vs fair-value line (Bubble Scope)
    build_allocation_chart  — portfolio allocation by market value

Every builder returns a skeleton figure when its data is absent, so the
layout doesn't jump while a request is in flight.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

if TYPE_CHECKING:
    from analysis.schemas import PortfolioItem, StructuredData

# ── Palette ────────────────────────────────────────────────────────────────
GREEN = "#10b981"
YELLOW = "#eab308"
RED = "#f43f5e"
SKY = "#38bdf8"
PURPLE = "#a855f7"

RSI_OVERBOUGHT = 70
RSI_OVERSOLD = 30


def score_color(score: float) -> str:
    """Green below 30, yellow below 70, red otherwise."""
    if score < 30:
        return GREEN
    if score < 70:
        return YELLOW
    return RED


def _empty_figure(title: str, message: str = "Awaiting data...", height: int = 300) -> go.Figure:
    """Return a placeholder figure when there's no data."""
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref="paper", yref="paper",
        x=0.5, y=0.5,
        showarrow=False,
        font=dict(size=14, color="#888"),
    )
    fig.update_layout(
        title=title,
        height=height,
        template="plotly_dark",
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
    )
    return fig


# ── Public API ─────────────────────────────────────────────────────────────

def build_risk_gauge(score: Optional[float], label: str) -> go.Figure:
    if score is None:
        return _empty_figure(label, height=250)

    color = score_color(score)
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=round(score),
        number=dict(suffix=" / 100", font=dict(color=color)),
        title=dict(text=label),
        gauge=dict(
            axis=dict(range=[0, 100], tickwidth=1),
            bar=dict(color=color),
            bgcolor="#1e293b",
            steps=[
                dict(range=[0, 30], color="rgba(16, 185, 129, 0.15)"),
                dict(range=[30, 70], color="rgba(234, 179, 8, 0.15)"),
                dict(range=[70, 100], color="rgba(244, 63, 94, 0.15)"),
            ],
        ),
    ))
    fig.update_layout(height=250, template="plotly_dark", margin=dict(t=60, b=20, l=30, r=30))
    return fig


def build_trend_chart(data: Optional[StructuredData], title: str = "Technical Trend") -> go.Figure:
    """
    Price and 50-day moving average on top, RSI below.

    Uses ``trendData`` when present, otherwise the series assembled from
    ``technicalAnalysis``. Points without a price are skipped.
    """
    series = data.trend_series() if data else []
    series = [p for p in series if p.value is not None]
    if not series:
        return _empty_figure(title, height=450)

    labels = [p.label for p in series]
    fig = make_subplots(
        rows=2, cols=1,
        shared_xaxes=True,
        row_heights=[0.7, 0.3],
        vertical_spacing=0.06,
    )

    fig.add_trace(go.Scatter(
        x=labels,
        y=[p.value for p in series],
        mode="lines+markers",
        name="Price",
        line=dict(color=SKY, width=2.5),
        fill="tozeroy",
        fillcolor="rgba(56, 189, 248, 0.08)",
    ), row=1, col=1)

    if any(p.ma50 is not None for p in series):
        fig.add_trace(go.Scatter(
            x=labels,
            y=[p.ma50 for p in series],
            mode="lines",
            name="MA 50",
            line=dict(color=YELLOW, width=1.5, dash="dash"),
            connectgaps=True,
        ), row=1, col=1)

    if any(p.rsi is not None for p in series):
        fig.add_trace(go.Scatter(
            x=labels,
            y=[p.rsi for p in series],
            mode="lines",
            name="RSI",
            line=dict(color=PURPLE, width=2),
            connectgaps=True,
        ), row=2, col=1)
        fig.add_hline(y=RSI_OVERBOUGHT, line_dash="dot", line_color=RED, row=2, col=1)
        fig.add_hline(y=RSI_OVERSOLD, line_dash="dot", line_color=GREEN, row=2, col=1)
        fig.update_yaxes(range=[0, 100], title_text="RSI", row=2, col=1)

    fig.update_yaxes(title_text="Price", row=1, col=1)
    fig.update_layout(
        title=title,
        height=450,
        template="plotly_dark",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="center", x=0.5),
        margin=dict(t=80, b=40),
    )
    return fig


def build_divergence_chart(data: Optional[StructuredData]) -> go.Figure:
    """Market price against the fair-value estimate (the MA50 line). Wide gaps mean bubble risk."""
    title = "Price vs Reality Divergence"
    series = data.trend_series() if data else []
    series = [p for p in series if p.value is not None]
    if not series:
        return _empty_figure(title)

    labels = [p.label for p in series]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=labels,
        y=[p.value for p in series],
        mode="lines",
        name="Market Price",
        line=dict(color=RED, width=2.5),
        fill="tozeroy",
        fillcolor="rgba(244, 63, 94, 0.15)",
    ))
    fig.add_trace(go.Scatter(
        x=labels,
        y=[p.ma50 for p in series],
        mode="lines",
        name="Fair Value Est",
        line=dict(color=GREEN, width=2, dash="dash"),
        connectgaps=True,
    ))
    fig.update_layout(
        title=title,
        height=300,
        template="plotly_dark",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="center", x=0.5),
        margin=dict(t=70, b=30),
    )
    return fig


def build_allocation_chart(items: Iterable[PortfolioItem]) -> go.Figure:
    items = [i for i in items if i.market_value > 0]
    if not items:
        return _empty_figure("Allocation", message="No assets yet")

    fig = go.Figure(go.Pie(
        labels=[i.symbol for i in items],
        values=[round(i.market_value, 2) for i in items],
        hole=0.55,
        textinfo="label+percent",
        hovertemplate="<b>%{label}</b><br>$%{value:,.2f}<extra></extra>",
    ))
    fig.update_layout(
        title="Allocation",
        height=300,
        template="plotly_dark",
        showlegend=False,
        margin=dict(t=60, b=20),
    )
    return fig
