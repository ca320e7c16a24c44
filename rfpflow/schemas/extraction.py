"""
schemas/extraction.py — Pydantic models for Claude extraction output

Shape checks applied to what the model returns before anything reaches a
column. A payload that fails here is treated as an extraction failure, so
the heuristic parser takes over.

Business Rules:
- Text fields must be strings or null; numbers may arrive as numeric strings
- Requirements may be objects or bare item strings
- A comparison must score every proposal it was given on all four axes

Called by: services/extraction.py (ClaudeExtractor)
Depends on: schemas/rfps.py, schemas/proposals.py
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .proposals import LineItem
from .rfps import RequirementItem


class RFPExtraction(BaseModel):
    title: str | None = None
    description: str | None = None
    budget: float | None = None
    deadline: str | None = None
    delivery_date: str | None = None
    delivery_days: int | None = None
    payment_terms: str | None = None
    warranty_period: str | None = None
    requirements: list[RequirementItem | str] = Field(default_factory=list)


class ProposalExtraction(BaseModel):
    total_price: float | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    payment_terms: str | None = None
    warranty_period: str | None = None
    delivery_date: str | None = None
    additional_notes: str | None = None


class ScoredProposal(BaseModel):
    id: int
    overall_score: float
    price_score: float
    terms_score: float
    completeness_score: float
    recommendation_reason: str | None = None


class ComparisonExtraction(BaseModel):
    proposals: list[ScoredProposal]
    best_proposal_id: int | None = None
    summary: str = ""
    key_differences: list[str] = Field(default_factory=list)

    def missing_ids(self, expected: list[int]) -> list[int]:
        scored = {p.id for p in self.proposals}
        return [pid for pid in expected if pid not in scored]
