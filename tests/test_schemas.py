"""
Tests for the pydantic data model.

Focus on the lenient StructuredData validation, the trend series
fallback, citation dedup, and the portfolio item wire format.
"""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from analysis.schemas import (
    AnalysisRequest,
    BubbleRequest,
    Citation,
    MarketRequest,
    PortfolioItem,
    PortfolioRequest,
    PortfolioSummary,
    StructuredData,
    dedupe_citations,
)


class TestStructuredDataFromPayload:
    def test_non_object_rejected(self):
        assert StructuredData.from_payload(None) is None
        assert StructuredData.from_payload([1, 2]) is None
        assert StructuredData.from_payload({}) is None

    def test_camel_case_keys(self):
        data = StructuredData.from_payload({"riskScore": 42, "bubbleProbability": 70})
        assert data.risk_score == 42
        assert data.bubble_probability == 70

    def test_bad_nested_field_dropped(self):
        data = StructuredData.from_payload({
            "riskScore": 30,
            "keyMetrics": "not a list",
            "topBubbleAssets": [{"name": "X", "riskScore": 99}],
        })
        assert data.risk_score == 30
        assert data.key_metrics == []
        assert data.top_bubble_assets[0].name == "X"

    def test_all_fields_bad(self):
        assert StructuredData.from_payload({"swot": 5}) is None

    def test_unknown_keys_kept(self):
        data = StructuredData.from_payload({"riskScore": 1, "extraThing": "ok"})
        assert data.model_dump(by_alias=True)["extraThing"] == "ok"

    def test_numeric_metric_value_stringified(self):
        data = StructuredData.from_payload({"keyMetrics": [{"label": "Beta", "value": 1.8}]})
        assert data.key_metrics[0].value == "1.8"

    def test_nested_scores_clamped(self):
        data = StructuredData.from_payload({"whistleblower": {"integrityScore": 140}})
        assert data.whistleblower.integrity_score == 100


class TestTrendSeries:
    def test_trend_data_preferred(self):
        data = StructuredData.from_payload({
            "trendData": [{"label": "Now", "value": 5}],
            "technicalAnalysis": {"priceData": [{"date": "Mon", "price": 1}]},
        })
        assert [p.label for p in data.trend_series()] == ["Now"]

    def test_assembled_from_technical_analysis(self):
        data = StructuredData.from_payload({
            "technicalAnalysis": {
                "priceData": [{"date": "Mon", "price": 10, "ma50": 9}, {"date": "Tue", "price": 12}],
                "rsiData": [{"date": "Tue", "value": 71}],
            },
        })
        series = data.trend_series()
        assert [(p.label, p.value, p.ma50, p.rsi) for p in series] == [
            ("Mon", 10, 9, None),
            ("Tue", 12, None, 71),
        ]

    def test_nothing_to_plot(self):
        assert StructuredData(risk_score=5).trend_series() == []


class TestDedupeCitations:
    def test_first_occurrence_kept_in_order(self):
        citations = [
            Citation(uri="https://b.example", title="B"),
            Citation(uri="https://a.example"),
            Citation(uri="https://b.example", title="B2"),
            Citation(uri=""),
        ]
        unique = dedupe_citations(citations)
        assert [c.uri for c in unique] == ["https://b.example", "https://a.example"]
        assert unique[0].title == "B"


class TestPortfolioItem:
    def test_wire_aliases(self):
        item = PortfolioItem.model_validate(
            {"id": "1", "symbol": "AMD", "quantity": 4, "buyPrice": 100, "currentPrice": 125}
        )
        assert item.buy_price == 100
        dumped = item.model_dump(by_alias=True)
        assert dumped["currentPrice"] == 125
        assert "buyPrice" in dumped

    def test_derived_values(self):
        item = PortfolioItem(symbol="AMD", quantity=4, buy_price=100, current_price=125)
        assert item.market_value == 500
        assert item.cost_basis == 400
        assert item.pl == 100
        assert item.pl_percent == pytest.approx(25.0)

    def test_zero_cost_basis(self):
        item = PortfolioItem(symbol="FREE", quantity=1, buy_price=0, current_price=10)
        assert item.pl_percent == 0.0

    def test_ids_unique(self):
        a = PortfolioItem(symbol="A", quantity=1, buy_price=1, current_price=1)
        b = PortfolioItem(symbol="A", quantity=1, buy_price=1, current_price=1)
        assert a.id != b.id

    @pytest.mark.parametrize("field,value", [("quantity", 0), ("buy_price", -1), ("current_price", -5)])
    def test_invalid_numbers(self, field, value):
        kwargs = {"symbol": "A", "quantity": 1, "buy_price": 1, "current_price": 1, field: value}
        with pytest.raises(ValidationError):
            PortfolioItem(**kwargs)


class TestPortfolioSummary:
    def test_totals(self):
        items = [
            PortfolioItem(symbol="A", quantity=10, buy_price=100, current_price=110),
            PortfolioItem(symbol="B", quantity=5, buy_price=50, current_price=40),
        ]
        summary = PortfolioSummary.from_items(items)
        assert summary.total_value == 1300
        assert summary.total_cost == 1250
        assert summary.total_pl == 50
        assert summary.total_pl_percent == pytest.approx(4.0)

    def test_empty(self):
        assert PortfolioSummary.from_items([]) == PortfolioSummary()


class TestAnalysisRequest:
    adapter = TypeAdapter(AnalysisRequest)

    def test_discriminated_by_kind(self):
        assert isinstance(self.adapter.validate_python({"kind": "market", "query": "NVDA"}), MarketRequest)
        assert isinstance(self.adapter.validate_python({"kind": "bubbles"}), BubbleRequest)
        req = self.adapter.validate_python({"kind": "portfolio", "holdings": []})
        assert isinstance(req, PortfolioRequest)

    def test_requests_frozen(self):
        req = MarketRequest(query="NVDA")
        with pytest.raises(ValidationError):
            req.query = "AMD"
