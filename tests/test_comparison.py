"""
test_comparison.py — Tests for GET /api/proposals/compare/{rfp_id}

Covers the two-proposal precondition, one persisted score per proposal,
overwrite on re-run, and sanitizing of extractor output (clamped scores,
best_proposal_id pinned to a compared proposal).

Called by: pytest
Depends on: rfpflow/services/comparison_service.py, tests/conftest.py
"""

from unittest.mock import AsyncMock, patch

import pytest

from rfpflow.exceptions import ExtractionError
from rfpflow.models import Proposal, ProposalScore
from rfpflow.services.comparison_service import (
    clamp_score,
    compare_proposals,
    sanitize_comparison,
)
from rfpflow.services.extraction import ClaudeExtractor, FallbackExtractor, HeuristicExtractor


@pytest.fixture()
def two_proposals(db_session, rfp, make_vendor):
    a = make_vendor(name="Alpha", email="a@alpha.com")
    b = make_vendor(name="Beta", email="b@beta.com")
    pa = Proposal(rfp_id=rfp.id, vendor_id=a.id, total_price=40000, payment_terms="net 30")
    pb = Proposal(rfp_id=rfp.id, vendor_id=b.id, total_price=20000, payment_terms="net 45")
    db_session.add_all([pa, pb])
    db_session.commit()
    return pa, pb


class TestCompareRoute:
    def test_needs_two_proposals(self, client, rfp, vendor, db_session):
        db_session.add(Proposal(rfp_id=rfp.id, vendor_id=vendor.id, total_price=1000))
        db_session.commit()
        resp = client.get(f"/api/proposals/compare/{rfp.id}")
        assert resp.status_code == 400
        assert "At least two proposals" in resp.json()["error"]
        assert db_session.query(ProposalScore).count() == 0

    def test_missing_rfp(self, client):
        assert client.get("/api/proposals/compare/999").status_code == 404

    def test_scores_every_proposal(self, client, rfp, two_proposals, db_session):
        pa, pb = two_proposals
        resp = client.get(f"/api/proposals/compare/{rfp.id}")
        assert resp.status_code == 200
        data = resp.json()["data"]
        comparison = data["comparison"]
        assert comparison["best_proposal_id"] == pb.id
        assert {p["id"] for p in comparison["proposals"]} == {pa.id, pb.id}
        assert all(0 <= p["price_score"] <= 100 for p in comparison["proposals"])
        assert {p["id"] for p in data["proposals"]} == {pa.id, pb.id}
        assert all(p["score"] is not None for p in data["proposals"])

        db_session.expire_all()
        scores = db_session.query(ProposalScore).all()
        assert len(scores) == 2
        assert scores[0].ai_analysis["best_proposal_id"] == pb.id

    def test_rerun_overwrites_scores(self, client, rfp, two_proposals, db_session):
        client.get(f"/api/proposals/compare/{rfp.id}")
        client.get(f"/api/proposals/compare/{rfp.id}")
        db_session.expire_all()
        assert db_session.query(ProposalScore).count() == 2


class TestSanitize:
    def test_clamp(self):
        assert clamp_score(-40) == 0.0
        assert clamp_score(130) == 100.0
        assert clamp_score("85.5") == 85.5
        assert clamp_score(None) is None

    def test_best_id_forced_to_known_proposal(self):
        raw = {
            "proposals": [
                {"id": 1, "overall_score": 55, "price_score": 150},
                {"id": 2, "overall_score": 90},
                {"id": 77, "overall_score": 99},
            ],
            "best_proposal_id": 77,
            "summary": "s",
            "key_differences": "only one",
        }
        clean = sanitize_comparison(raw, [1, 2])
        assert clean["best_proposal_id"] == 2
        assert [p["id"] for p in clean["proposals"]] == [1, 2]
        assert clean["proposals"][0]["price_score"] == 100.0
        assert clean["key_differences"] == ["only one"]

    def test_empty_result_picks_first(self):
        clean = sanitize_comparison({}, [5, 6])
        assert clean["best_proposal_id"] == 5
        assert clean["proposals"] == []



class TestIncompleteComparison:
    @pytest.mark.asyncio
    async def test_partial_result_stores_nothing(self, db_session, rfp, two_proposals):
        pa, pb = two_proposals
        extractor = AsyncMock()
        extractor.extract.return_value = {
            "proposals": [{"id": pb.id, "overall_score": 88, "price_score": 90,
                           "terms_score": 80, "completeness_score": 95,
                           "recommendation_reason": "Cheapest"}],
            "best_proposal_id": pb.id,
            "summary": "Beta wins",
            "key_differences": [],
        }
        with pytest.raises(ExtractionError):
            await compare_proposals(db_session, rfp.id, extractor)
        assert db_session.query(ProposalScore).count() == 0

    @pytest.mark.asyncio
    async def test_unknown_ids_from_claude_fall_back_to_heuristic(self, db_session, rfp,
                                                                  two_proposals):
        pa, pb = two_proposals
        payload = {
            "proposals": [{"id": 999, "overall_score": 90, "price_score": 90,
                           "terms_score": 90, "completeness_score": 90,
                           "recommendation_reason": "?"}],
            "best_proposal_id": 999,
            "summary": "",
            "key_differences": [],
        }
        extractor = FallbackExtractor(ClaudeExtractor(), HeuristicExtractor())
        with patch("rfpflow.services.extraction.claude_structured", new_callable=AsyncMock,
                   return_value=payload):
            result = await compare_proposals(db_session, rfp.id, extractor)

        assert result["comparison"]["best_proposal_id"] == pb.id
        scores = db_session.query(ProposalScore).order_by(ProposalScore.proposal_id).all()
        assert [s.proposal_id for s in scores] == [pa.id, pb.id]
        assert all(s.overall_score is not None and s.price_score is not None for s in scores)
