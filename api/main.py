"""
FastAPI application for the forensic analysis engine.

Endpoints:
    POST /api/analyze      — Run a market, portfolio or bubble analysis
    POST /analyze          — Legacy proxy route (never fails the client)
    GET  /health           — Health check with the active provider

Usage:
    uvicorn api.main:app --reload --port 8000
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from analysis.errors import UpstreamError, clean_error_message
from analysis.pipeline import run_analysis
from analysis.schemas import (
    AnalysisResult,
    BubbleRequest,
    MarketRequest,
    PortfolioItem,
    PortfolioRequest,
)
from api.models import (
    AnalyzeRequest,
    ErrorResponse,
    HealthResponse,
    ProxyAnalysis,
    ProxyRequest,
    ProxyResponse,
)
from app_lib.model_factory import create_client
from config.settings import settings

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

NO_DATA_MESSAGE = "No analysis data received."

# Returned by POST /analyze whenever anything goes wrong upstream
FALLBACK_ANALYSIS = ProxyAnalysis(
    risk_score=50,
    sentiment="Neutral",
    summary="Analysis is temporarily unavailable. Please try again shortly.",
    red_flags=[],
    outlook="Unavailable",
)

app = FastAPI(
    title="FinCap Forensic Engine API",
    description="Forensic market, portfolio and bubble analysis backed by search-grounded LLMs.",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.get("/health", response_model=HealthResponse)
def health():
    """Health check with the provider that would serve the next request."""
    provider = settings.resolve_provider()
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        provider=provider.value,
        model=settings.get_model(provider),
    )


@app.post(
    "/api/analyze",
    response_model=AnalysisResult,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def analyze(req: AnalyzeRequest):
    """
    Run one analysis and return the parsed result.

    Upstream failures are surfaced as 502 with the cleaned message.
    """
    if req.mode == "market":
        query = req.data if isinstance(req.data, str) else ""
        if not query.strip():
            return _error(400, "A search query is required.")
        request = MarketRequest(query=query.strip())
    elif req.mode == "portfolio":
        if not isinstance(req.data, list) or not req.data:
            return _error(400, "At least one portfolio item is required.")
        try:
            holdings = tuple(PortfolioItem.model_validate(item) for item in req.data)
        except ValidationError as e:
            return _error(400, f"Invalid portfolio item: {e.errors()[0]['msg']}")
        request = PortfolioRequest(holdings=holdings)
    else:
        request = BubbleRequest()

    try:
        client = create_client()
        return run_analysis(request, client)
    except UpstreamError as e:
        logger.warning(f"{req.mode} analysis failed upstream: {e}")
        return _error(502, clean_error_message(e))
    except Exception as e:
        logger.exception(f"{req.mode} analysis failed")
        return _error(502, clean_error_message(e))


def _query_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value) if value else ""
    return str(value)


def _proxy_request(req: ProxyRequest) -> MarketRequest | PortfolioRequest | None:
    query = _query_text(req.data).strip() or _query_text(req.query).strip()
    if query:
        return MarketRequest(query=query)
    if req.portfolio_data:
        raw = req.portfolio_data
        if isinstance(raw, dict):
            raw = raw.get("items") or raw.get("holdings") or [raw]
        if not isinstance(raw, list):
            raw = [raw]
        holdings = tuple(PortfolioItem.model_validate(item) for item in raw)
        return PortfolioRequest(holdings=holdings)
    return None


def _condense(result: AnalysisResult) -> ProxyAnalysis:
    data = result.structured_data
    return ProxyAnalysis(
        risk_score=data.risk_score if data and data.risk_score is not None else 50,
        sentiment=data.market_sentiment.value if data and data.market_sentiment else "Neutral",
        summary=result.markdown_report,
        red_flags=list(data.warning_signals) if data else [],
        outlook=result.verdict.value if result.verdict else "Hold",
    )


@app.post("/analyze", response_model=ProxyResponse, responses={400: {"model": ErrorResponse}})
def analyze_proxy(req: ProxyRequest):
    """
    Legacy proxy route.

    Always answers 200 with an analysis, falling back to a fixed neutral
    analysis on any internal failure. A non-string ``data`` is stringified.
    Only a body with no data is rejected (400); a body that is not a JSON
    object at all fails request validation (422) before reaching this route.
    """
    try:
        request = _proxy_request(req)
        if request is None:
            return _error(400, NO_DATA_MESSAGE)
        client = create_client()
        result = run_analysis(request, client)
        return ProxyResponse(analysis=_condense(result))
    except Exception:
        logger.exception(
            f"Proxy analysis failed, returning fallback: {json.dumps(req.model_dump(by_alias=True), default=str)[:200]}"
        )
        return ProxyResponse(analysis=FALLBACK_ANALYSIS)
