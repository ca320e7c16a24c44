"""
schemas/proposals.py — Pydantic models for proposal ingestion endpoints

Business Rules:
- Sender email and body are required; subject and message id are optional
- Sender email is reduced to the bare address and lowercased (vendors are
  matched on exact email); "Name <addr>" headers are accepted

Called by: routers/proposals.py, routers/mock.py, services/proposal_service.py
Depends on: pydantic, services/mailer.py (bare_address), schemas/vendors.py (EMAIL_RE)
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..services.mailer import bare_address
from .vendors import EMAIL_RE


def sender_address(value: str) -> str:
    """Reduce a From header to its lower-cased address and check its shape."""
    address = bare_address(value)
    if len(address) > 255 or not EMAIL_RE.match(address):
        raise ValueError("A valid sender email is required")
    return address


class LineItem(BaseModel):
    item: str
    quantity: int | None = None
    unit_price: float | None = None
    total_price: float | None = None


class VendorReplyIn(BaseModel):
    """Manual submission of a vendor reply (POST /api/proposals/process)."""

    model_config = ConfigDict(populate_by_name=True)

    email_body: str = Field(validation_alias=AliasChoices("emailBody", "email_body", "body"))
    email_subject: str = Field(
        "", validation_alias=AliasChoices("emailSubject", "email_subject", "subject")
    )
    from_email: str = Field(validation_alias=AliasChoices("fromEmail", "from_email"))
    message_id: str | None = Field(
        None, validation_alias=AliasChoices("messageId", "message_id")
    )

    @field_validator("email_body")
    @classmethod
    def body_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Email body is required")
        return v

    @field_validator("from_email")
    @classmethod
    def sender_required(cls, v: str) -> str:
        return sender_address(v)


class MockInboundEmail(BaseModel):
    """Demo bypass of the mail transport (POST /api/mock/inbound-email)."""

    model_config = ConfigDict(populate_by_name=True)

    from_email: str = Field(validation_alias=AliasChoices("fromEmail", "from_email", "from"))
    subject: str = Field("", validation_alias=AliasChoices("subject", "emailSubject"))
    body: str = Field(validation_alias=AliasChoices("body", "emailBody"))

    @field_validator("from_email")
    @classmethod
    def sender_required(cls, v: str) -> str:
        return sender_address(v)

    @field_validator("body")
    @classmethod
    def body_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Email body is required")
        return v
