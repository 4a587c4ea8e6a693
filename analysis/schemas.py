"""
Data model for the forensic analysis pipeline.

The model is asked to emit a JSON payload alongside its narrative, but it
does not always honour the requested schema. ``StructuredData`` therefore
treats every field as optional and validates leniently: a field with the
wrong shape is dropped instead of failing the whole payload.

Wire names are the camelCase keys the model (and the persisted portfolio)
uses; Python attributes are snake_case.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


def _clamp_score(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Verdict(str, Enum):
    STRONG_BUY = "Strong Buy"
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"
    STRONG_SELL = "Strong Sell"


class Sentiment(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"
    EUPHORIC = "Euphoric"
    FEAR = "Fear"


# ---------------------------------------------------------------------------
# Structured payload (model-defined, every field optional)
# ---------------------------------------------------------------------------

class KeyMetric(_CamelModel):
    label: str
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        return v


class TrendPoint(_CamelModel):
    label: str = ""
    value: Optional[float] = None
    ma50: Optional[float] = None
    rsi: Optional[float] = None


class PricePoint(_CamelModel):
    date: str = ""
    price: Optional[float] = None
    ma50: Optional[float] = None


class RsiPoint(_CamelModel):
    date: str = ""
    value: Optional[float] = None


class TechnicalAnalysis(_CamelModel):
    price_data: list[PricePoint] = Field(default_factory=list)
    rsi_data: list[RsiPoint] = Field(default_factory=list)
    current_rsi: Optional[float] = None
    current_ma: Optional[float] = None
    signal: Optional[str] = None


class Swot(_CamelModel):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.strengths or self.weaknesses or self.opportunities or self.threats)


class BubbleAudit(_CamelModel):
    """Bubble audit of the searched asset."""

    risk_status: Optional[str] = None
    valuation_verdict: Optional[str] = None
    score: Optional[float] = None
    fundamentals: Optional[str] = None
    peer_context: Optional[str] = None
    speculative_activity: Optional[str] = None
    burst_trigger: Optional[str] = None
    liquidity_status: Optional[str] = None

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_score(v)


class Whistleblower(_CamelModel):
    """Forensic/insider findings."""

    integrity_score: Optional[float] = None
    forensic_verdict: Optional[str] = None
    anomalies: list[str] = Field(default_factory=list)
    insider_details: list[str] = Field(default_factory=list)

    @field_validator("integrity_score")
    @classmethod
    def clamp_score(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_score(v)


class BubbleAsset(_CamelModel):
    name: str
    risk_score: Optional[float] = None
    sector: str = ""
    price: str = ""
    reason: str = ""

    @field_validator("risk_score")
    @classmethod
    def clamp_score(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_score(v)

    @field_validator("price", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        return v


class StructuredData(_CamelModel):
    """The optional JSON payload that drives gauges, charts and panels.

    No field is guaranteed; consumers must check presence before use.
    """

    risk_score: Optional[float] = None
    risk_level: Optional[str] = None
    bubble_probability: Optional[float] = None
    market_sentiment: Optional[Sentiment] = None
    key_metrics: list[KeyMetric] = Field(default_factory=list)
    trend_data: list[TrendPoint] = Field(default_factory=list)
    technical_analysis: Optional[TechnicalAnalysis] = None
    warning_signals: list[str] = Field(default_factory=list)
    swot: Optional[Swot] = None
    bubble_audit: Optional[BubbleAudit] = None
    whistleblower: Optional[Whistleblower] = None
    top_bubble_assets: list[BubbleAsset] = Field(default_factory=list)
    is_estimated: Optional[bool] = None

    @field_validator("risk_score", "bubble_probability")
    @classmethod
    def clamp_scores(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_score(v)

    @field_validator("market_sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().title()
        return v

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["StructuredData"]:
        """Validate a parsed JSON value, dropping top-level keys that don't fit.

        Returns None for anything that isn't a non-empty JSON object.
        """
        if not isinstance(payload, dict) or not payload:
            return None

        data = dict(payload)
        # Each failed pass removes at least one key, so this terminates.
        for _ in range(len(data) + 1):
            try:
                return cls.model_validate(data)
            except ValidationError as exc:
                bad_keys = {err["loc"][0] for err in exc.errors() if err.get("loc")}
                bad_keys &= set(data)
                if not bad_keys:
                    return None
                logger.warning(f"Dropping malformed structured fields: {sorted(bad_keys)}")
                for key in bad_keys:
                    data.pop(key, None)
                if not data:
                    return None
        return None

    def trend_series(self) -> list[TrendPoint]:
        """Return trendData, or a series assembled from technicalAnalysis."""
        if self.trend_data:
            return self.trend_data
        ta = self.technical_analysis
        if not ta or not ta.price_data:
            return []
        rsi_by_date = {p.date: p.value for p in ta.rsi_data}
        return [
            TrendPoint(label=p.date, value=p.price, ma50=p.ma50, rsi=rsi_by_date.get(p.date))
            for p in ta.price_data
        ]


# ---------------------------------------------------------------------------
# Model responses and results
# ---------------------------------------------------------------------------

class Citation(_CamelModel):
    """A grounding source reported by the model."""

    uri: str
    title: str = ""


def dedupe_citations(citations: Iterable[Citation]) -> list[Citation]:
    """Drop repeated URIs, keeping the first occurrence and the original order."""
    seen: set[str] = set()
    unique: list[Citation] = []
    for citation in citations:
        if not citation.uri or citation.uri in seen:
            continue
        seen.add(citation.uri)
        unique.append(citation)
    return unique


class RawModelResponse(BaseModel):
    """Raw text plus grounding metadata from a single AI call."""

    text: str = ""
    citations: list[Citation] = Field(default_factory=list)
    search_used: bool = False


class AnalysisResult(_CamelModel):
    """The merged, display-ready analysis record."""

    markdown_report: str = ""
    structured_data: Optional[StructuredData] = None
    citations: Optional[list[Citation]] = None
    is_estimated: bool = False
    verdict: Optional[Verdict] = None


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------

class PortfolioItem(_CamelModel):
    """A single holding owned by the portfolio store."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    symbol: str
    name: str = ""
    quantity: float = Field(gt=0)
    buy_price: float = Field(ge=0)
    current_price: float = Field(ge=0)

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def cost_basis(self) -> float:
        return self.quantity * self.buy_price

    @property
    def pl(self) -> float:
        return self.market_value - self.cost_basis

    @property
    def pl_percent(self) -> float:
        return (self.pl / self.cost_basis) * 100 if self.cost_basis > 0 else 0.0


class PortfolioSummary(BaseModel):
    total_value: float = 0.0
    total_cost: float = 0.0
    total_pl: float = 0.0
    total_pl_percent: float = 0.0

    @classmethod
    def from_items(cls, items: Iterable[PortfolioItem]) -> "PortfolioSummary":
        items = list(items)
        total_value = sum(i.market_value for i in items)
        total_cost = sum(i.cost_basis for i in items)
        total_pl = total_value - total_cost
        return cls(
            total_value=total_value,
            total_cost=total_cost,
            total_pl=total_pl,
            total_pl_percent=(total_pl / total_cost) * 100 if total_cost > 0 else 0.0,
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class MarketRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["market"] = "market"
    query: str


class PortfolioRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["portfolio"] = "portfolio"
    holdings: tuple[PortfolioItem, ...] = ()


class BubbleRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["bubbles"] = "bubbles"


AnalysisRequest = Annotated[
    Union[MarketRequest, PortfolioRequest, BubbleRequest],
    Field(discriminator="kind"),
]
