"""
comparison_service.py — Score and rank all proposals for one RFP

Business Rules:
- Comparing needs at least two proposals for the RFP
- Every score is clamped to 0-100 before it is stored
- A result that leaves any proposal without all four scores is an
  ExtractionError; nothing is stored for it
- best_proposal_id always names one of the compared proposals; when the
  extractor returns anything else, the highest overall score wins
- Exactly one ProposalScore per proposal, overwritten on every run, with
  the full comparison payload kept in ai_analysis

Called by: routers/proposals.py
Depends on: models, services/extraction.py
"""

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import ExtractionError, InsufficientProposals
from ..models import Proposal, ProposalScore
from ..utils import safe_float, safe_int
from .extraction import COMPARISON, Extractor
from .rfp_service import get_rfp

SCORE_FIELDS = ("overall_score", "price_score", "terms_score", "completeness_score")


def project_proposal(p: Proposal) -> dict:
    """Compact view of a proposal handed to the extractor."""
    return {
        "id": p.id,
        "vendor_id": p.vendor_id,
        "vendor_name": p.vendor.name if p.vendor else None,
        "total_price": p.total_price,
        "line_items": p.line_items or [],
        "payment_terms": p.payment_terms,
        "warranty_period": p.warranty_period,
        "delivery_date": p.delivery_date.isoformat() if p.delivery_date else None,
        "additional_notes": p.additional_notes,
    }


def clamp_score(value) -> float | None:
    value = safe_float(value)
    if value is None:
        return None
    return round(max(0.0, min(100.0, value)), 1)


def sanitize_comparison(result: dict, proposal_ids: list[int]) -> dict:
    """Clamp scores, drop unknown ids and pin best_proposal_id to a real proposal."""
    entries = {}
    for entry in result.get("proposals") or []:
        if not isinstance(entry, dict):
            continue
        pid = safe_int(entry.get("id"))
        if pid not in proposal_ids or pid in entries:
            continue
        clean = {"id": pid}
        for field in SCORE_FIELDS:
            clean[field] = clamp_score(entry.get(field))
        clean["recommendation_reason"] = entry.get("recommendation_reason") or None
        entries[pid] = clean

    best = safe_int(result.get("best_proposal_id"))
    if best not in proposal_ids:
        ranked = sorted(
            entries.values(), key=lambda e: e["overall_score"] or 0.0, reverse=True
        )
        best = ranked[0]["id"] if ranked else proposal_ids[0]

    differences = result.get("key_differences") or []
    if not isinstance(differences, list):
        differences = [str(differences)]

    return {
        "proposals": [entries[pid] for pid in proposal_ids if pid in entries],
        "best_proposal_id": best,
        "summary": result.get("summary") or "",
        "key_differences": [str(d) for d in differences],
    }


def fully_scored(comparison: dict, expected: int) -> bool:
    entries = comparison["proposals"]
    return len(entries) == expected and all(
        e[field] is not None for e in entries for field in SCORE_FIELDS
    )


def _save_scores(db: Session, proposals: list[Proposal], comparison: dict) -> None:
    by_id = {e["id"]: e for e in comparison["proposals"]}
    for p in proposals:
        entry = by_id.get(p.id, {})
        score = db.query(ProposalScore).filter_by(proposal_id=p.id).first()
        if score is None:
            score = ProposalScore(proposal_id=p.id)
            db.add(score)
        for field in SCORE_FIELDS:
            setattr(score, field, entry.get(field))
        score.recommendation_reason = entry.get("recommendation_reason")
        score.ai_analysis = comparison
    db.commit()


async def compare_proposals(db: Session, rfp_id: int, extractor: Extractor) -> dict:
    rfp = get_rfp(db, rfp_id)
    proposals = (
        db.query(Proposal).filter(Proposal.rfp_id == rfp_id).order_by(Proposal.id).all()
    )
    if len(proposals) < 2:
        raise InsufficientProposals(
            f"At least two proposals are required for comparison (found {len(proposals)})"
        )

    inputs = {
        "proposals": [project_proposal(p) for p in proposals],
        "rfp": {
            "budget": rfp.budget,
            "delivery_date": rfp.delivery_date.isoformat() if rfp.delivery_date else None,
            "payment_terms": rfp.payment_terms,
            "warranty_period": rfp.warranty_period,
        },
    }
    raw = await extractor.extract(COMPARISON, inputs)
    comparison = sanitize_comparison(raw, [p.id for p in proposals])
    if not fully_scored(comparison, len(proposals)):
        raise ExtractionError("Comparison did not score every proposal")
    _save_scores(db, proposals, comparison)

    logger.info("RFP {} compared {} proposals, best={}",
                rfp_id, len(proposals), comparison["best_proposal_id"])
    for p in proposals:
        db.refresh(p)
    return {
        "comparison": comparison,
        "proposals": [
            {**p.to_dict(), "score": p.score.to_dict() if p.score else None} for p in proposals
        ],
    }
