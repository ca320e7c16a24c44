"""
schemas/rfps.py — Pydantic models for RFP endpoints

Typed shapes for the structured RFP fields (requirements) and the
request bodies of the RFP routes. Request bodies accept the camelCase
names the web client sends as well as snake_case.

Business Rules:
- naturalLanguage must be non-blank
- Send requires an RFP id and a non-empty list of vendor ids
- A requirement always has an item; quantity/specifications are optional

Called by: routers/rfps.py, services/rfp_service.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import date

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RequirementItem(BaseModel):
    item: str
    quantity: int | None = None
    specifications: str | None = None


class RFPDraft(BaseModel):
    """Normalized extraction output, before (or without) persisting."""

    title: str
    description: str | None = None
    budget: float | None = None
    deadline: date | None = None
    delivery_date: date | None = None
    payment_terms: str | None = None
    warranty_period: str | None = None
    requirements: list[RequirementItem] = Field(default_factory=list)


class NaturalLanguageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    natural_language: str = Field(
        validation_alias=AliasChoices("naturalLanguage", "natural_language", "text")
    )

    @field_validator("natural_language")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Natural language input is required")
        return v


class SendRFPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rfp_id: int = Field(validation_alias=AliasChoices("rfpId", "rfp_id"))
    vendor_ids: list[int] = Field(validation_alias=AliasChoices("vendorIds", "vendor_ids"))

    @field_validator("vendor_ids")
    @classmethod
    def non_empty(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("At least one vendor id is required")
        # Keep first occurrence order, drop repeats
        return list(dict.fromkeys(v))
