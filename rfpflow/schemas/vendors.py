"""
schemas/vendors.py — Pydantic models for Vendor endpoints

Business Rules:
- Name is required, 2-100 characters
- Email must look like an address, max 255 chars, stored lowercased
- Contact person max 100 chars, address max 500 chars (optional)
- Phone is optional; when given it must be exactly 10 digits once
  punctuation is stripped, and is stored as those 10 digits

Called by: routers/vendors.py
Depends on: pydantic
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank_to_none(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class VendorCreate(BaseModel):
    """Create or fully replace a vendor record."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    email: str
    contact_person: str | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        if not 2 <= len(v) <= 100:
            raise ValueError("Name must be between 2 and 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Email is required")
        if len(v) > 255:
            raise ValueError("Email must be at most 255 characters")
        if not EMAIL_RE.match(v):
            raise ValueError("Email must be a valid email address")
        return v

    @field_validator("contact_person", mode="before")
    @classmethod
    def contact_length(cls, v):
        v = _blank_to_none(v)
        if v and len(v) > 100:
            raise ValueError("Contact person must be at most 100 characters")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def phone_digits(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return None
        digits = re.sub(r"\D", "", v)
        if len(digits) != 10:
            raise ValueError("Phone must contain exactly 10 digits")
        return digits

    @field_validator("address", mode="before")
    @classmethod
    def address_length(cls, v):
        v = _blank_to_none(v)
        if v and len(v) > 500:
            raise ValueError("Address must be at most 500 characters")
        return v


class VendorUpdate(VendorCreate):
    """PUT body: same rules as create, every field replaced."""
