"""
test_extraction.py — Tests for rfpflow/services/extraction.py

Covers the regex heuristic (RFP text, proposal emails, local scoring),
the Claude-backed extractor's failure handling (Claude mocked), the
fallback composition, and backend selection from settings.

Called by: pytest
Depends on: rfpflow/services/extraction.py
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from rfpflow.config import Settings
from rfpflow.exceptions import ExtractionError
from rfpflow.services.extraction import (
    COMPARISON,
    PROPOSAL,
    RFP,
    ClaudeExtractor,
    FallbackExtractor,
    HeuristicExtractor,
    build_extractor,
    parse_proposal_text,
    parse_rfp_text,
    score_proposals,
)

LAPTOP_REQUEST = (
    "I need 20 laptops with 16GB RAM, budget $50,000, net 30 payment, delivery in 30 days"
)

VENDOR_REPLY = """Thank you for the RFP. Our quote:

20 Laptops (16GB RAM) - $800 each = $16,000
15 Monitors (27-inch) - $300 each = $4,500

Total: $20,500
Payment Terms: Net 30
Warranty: 1 year
Delivery: Within 25 days
"""


class TestParseRfpText:
    def test_laptop_request(self):
        data = parse_rfp_text(LAPTOP_REQUEST)
        assert data["budget"] == 50000
        assert "net 30" in data["payment_terms"]
        assert data["delivery_days"] == 30
        assert data["delivery_date"] is None
        assert len(data["requirements"]) == 1
        req = data["requirements"][0]
        assert req["quantity"] == 20
        assert req["item"] == "laptops"
        assert req["specifications"] == "16GB RAM"
        assert data["title"] == "Procurement of Laptops"

    def test_budget_with_k_suffix(self):
        assert parse_rfp_text("5 printers, budget 10k")["budget"] == 10000

    def test_absolute_dates(self):
        data = parse_rfp_text("10 chairs, deliver by 2026-12-01, responses due 2026-11-15")
        assert data["delivery_date"] == "2026-12-01"
        assert data["deadline"] == "2026-11-15"

    def test_warranty_inline(self):
        assert parse_rfp_text("3 servers with 2 year warranty")["warranty_period"] == "2 years"

    def test_nothing_to_find(self):
        data = parse_rfp_text("We want better office furniture")
        assert data["requirements"] == []
        assert data["budget"] is None
        assert data["payment_terms"] is None
        assert data["title"] == "We want better office furniture"


class TestParseProposalText:
    def test_demo_reply(self):
        data = parse_proposal_text("Re: RFP: Laptops", VENDOR_REPLY)
        assert data["total_price"] == 20500
        assert data["payment_terms"] == "Net 30"
        assert data["warranty_period"] == "1 year"
        assert data["delivery_date"] == (date.today() + timedelta(days=25)).isoformat()
        assert [li["quantity"] for li in data["line_items"]] == [20, 15]
        assert data["line_items"][0]["unit_price"] == 800
        assert data["line_items"][0]["total_price"] == 16000

    def test_one_line_reply(self):
        data = parse_proposal_text("", "Total: $20,500. Payment Terms: Net 30. Warranty: 1 year.")
        assert data["total_price"] == 20500
        assert data["payment_terms"] == "Net 30"
        assert data["warranty_period"] == "1 year"
        assert data["line_items"] == []

    def test_total_from_line_items_when_no_total(self):
        data = parse_proposal_text("", "2 Desks - $100 each\n3 Chairs - $50 each")
        assert data["total_price"] == 350

    def test_no_prices(self):
        assert parse_proposal_text("", "We will get back to you soon.")["total_price"] is None


class TestScoreProposals:
    def _proposals(self):
        return [
            {"id": 1, "vendor_name": "Pricey", "total_price": 40000, "payment_terms": "net 30"},
            {"id": 2, "vendor_name": "Cheap", "total_price": 20000, "payment_terms": "net 45"},
        ]

    def test_cheapest_is_best(self):
        result = score_proposals(self._proposals(), {"budget": 50000})
        assert result["best_proposal_id"] == 2
        scores = {p["id"]: p for p in result["proposals"]}
        assert scores[2]["price_score"] == 60.0
        assert scores[1]["price_score"] == 20.0
        assert scores[2]["terms_score"] == 70.0
        assert scores[2]["completeness_score"] == 70.0
        assert scores[2]["overall_score"] == round((60 + 70 + 70) / 3, 1)
        assert any("Payment terms" in d for d in result["key_differences"])

    def test_over_budget_clamped_to_zero(self):
        result = score_proposals([{"id": 1, "total_price": 90000}, {"id": 2, "total_price": 60000}],
                                 {"budget": 50000})
        assert all(p["price_score"] == 0.0 for p in result["proposals"])

    def test_no_budget_relative_to_cheapest(self):
        result = score_proposals(self._proposals(), {})
        scores = {p["id"]: p["price_score"] for p in result["proposals"]}
        assert scores == {2: 100.0, 1: 50.0}

    def test_missing_price_scores_zero_and_ranks_last(self):
        result = score_proposals([{"id": 1, "total_price": None}, {"id": 2, "total_price": 100}], {})
        assert result["best_proposal_id"] == 2
        assert {p["id"]: p["price_score"] for p in result["proposals"]}[1] == 0.0

    def test_empty_rejected(self):
        with pytest.raises(ExtractionError):
            score_proposals([], {})


class TestExtractors:
    @pytest.mark.asyncio
    async def test_heuristic_dispatches_by_kind(self):
        ex = HeuristicExtractor()
        assert (await ex.extract(RFP, {"text": LAPTOP_REQUEST}))["budget"] == 50000
        assert (await ex.extract(PROPOSAL, {"subject": "", "body": VENDOR_REPLY}))["total_price"] == 20500
        result = await ex.extract(COMPARISON, {"proposals": [{"id": 1, "total_price": 5}], "rfp": {}})
        assert result["best_proposal_id"] == 1

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        with pytest.raises(ExtractionError):
            await HeuristicExtractor().extract("invoice", {})

    @pytest.mark.asyncio
    async def test_claude_none_raises(self):
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=None):
            with pytest.raises(ExtractionError):
                await ClaudeExtractor().extract(RFP, {"text": LAPTOP_REQUEST})

    @pytest.mark.asyncio
    async def test_claude_decodes_stringified_arrays(self):
        payload = {"title": "Laptops", "description": "x",
                   "requirements": '[{"item": "laptop", "quantity": 20}]'}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            result = await ClaudeExtractor().extract(RFP, {"text": LAPTOP_REQUEST})
        assert result["requirements"] == [{"item": "laptop", "quantity": 20}]

    @pytest.mark.asyncio
    async def test_fallback_used_on_failure(self):
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=None):
            ex = FallbackExtractor(ClaudeExtractor(), HeuristicExtractor())
            result = await ex.extract(RFP, {"text": LAPTOP_REQUEST})
        assert result["budget"] == 50000

    @pytest.mark.asyncio
    async def test_fallback_prefers_primary(self):
        payload = {"title": "From Claude", "description": "x", "requirements": []}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            ex = FallbackExtractor(ClaudeExtractor(), HeuristicExtractor())
            result = await ex.extract(RFP, {"text": LAPTOP_REQUEST})
        assert result["title"] == "From Claude"

    @pytest.mark.asyncio
    async def test_claude_wrong_typed_field_raises(self):
        payload = {"total_price": 20500, "line_items": [], "payment_terms": {"net": 30}}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            with pytest.raises(ExtractionError, match="malformed proposal"):
                await ClaudeExtractor().extract(PROPOSAL, {"subject": "", "body": VENDOR_REPLY})

    @pytest.mark.asyncio
    async def test_claude_bad_line_item_falls_back(self):
        payload = {"total_price": 1, "line_items": [{"item": "x", "unit_price": "cheap"}]}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            ex = FallbackExtractor(ClaudeExtractor(), HeuristicExtractor())
            result = await ex.extract(PROPOSAL, {"subject": "", "body": VENDOR_REPLY})
        assert result["total_price"] == 20500
        assert result["payment_terms"] == "Net 30"

    @pytest.mark.asyncio
    async def test_claude_comparison_must_cover_every_proposal(self):
        payload = {
            "proposals": [{"id": 1, "overall_score": 80, "price_score": 80,
                           "terms_score": 80, "completeness_score": 80}],
            "best_proposal_id": 1,
            "summary": "",
            "key_differences": [],
        }
        inputs = {"proposals": [{"id": 1, "total_price": 5}, {"id": 2, "total_price": 6}],
                  "rfp": {}}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            with pytest.raises(ExtractionError, match=r"\[2\]"):
                await ClaudeExtractor().extract(COMPARISON, inputs)

    @pytest.mark.asyncio
    async def test_claude_numeric_strings_accepted(self):
        payload = {"title": "Chairs", "budget": "1500", "requirements": ["office chair"]}
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            result = await ClaudeExtractor().extract(RFP, {"text": "chairs"})
        assert result["budget"] == "1500"


class TestBuildExtractor:
    def test_no_key_is_heuristic(self):
        assert build_extractor(Settings(anthropic_api_key="")).name == "heuristic"

    def test_forced_heuristic(self):
        s = Settings(anthropic_api_key="sk-test", extraction_backend="heuristic")
        assert build_extractor(s).name == "heuristic"

    def test_claude_only(self):
        s = Settings(anthropic_api_key="sk-test", extraction_backend="claude")
        assert build_extractor(s).name == "claude"

    def test_auto_with_key_falls_back(self):
        s = Settings(anthropic_api_key="sk-test", extraction_backend="auto")
        assert build_extractor(s).name == "claude+heuristic"
