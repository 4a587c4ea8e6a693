"""
API request/response models for the FastAPI endpoint.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalyzeRequest(BaseModel):
    """Request body for POST /api/analyze."""

    mode: Literal["market", "portfolio", "bubbles"] = Field(
        default="market",
        description="market: query in data; portfolio: holdings list in data; bubbles: no data",
    )
    data: Any = Field(
        default=None,
        description="Search query (market) or list of portfolio items (portfolio)",
    )


class ErrorResponse(BaseModel):
    error: str


class ProxyRequest(BaseModel):
    """Request body for the legacy POST /analyze proxy route."""

    model_config = ConfigDict(populate_by_name=True)

    data: Optional[Any] = Field(default=None, description="Market query; non-string values are stringified")
    query: Optional[Any] = Field(default=None, description="Alias for data")
    portfolio_data: Optional[Any] = Field(default=None, alias="portfolioData")


class ProxyAnalysis(BaseModel):
    """Condensed analysis returned by POST /analyze."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    risk_score: float = 50
    sentiment: str = "Neutral"
    summary: str = ""
    red_flags: list[str] = Field(default_factory=list)
    outlook: str = ""


class ProxyResponse(BaseModel):
    analysis: ProxyAnalysis


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""
    provider: str = ""
    model: str = ""
