"""Vendor proposal and comparison score models."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import JSONText, UTCDateTime
from .base import Base


class Proposal(Base):
    """A vendor's reply to an RFP, with the fields extracted from it."""

    __tablename__ = "proposals"
    id = Column(Integer, primary_key=True)
    rfp_id = Column(Integer, ForeignKey("rfps.id", ondelete="CASCADE"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    email_message_id = Column(String(500))
    email_subject = Column(String(500))
    email_body = Column(Text)
    total_price = Column(Numeric(14, 2, asdecimal=False))
    line_items = Column(JSONText, default=list)  # [{item, quantity, unit_price, total_price}]
    payment_terms = Column(String(255))
    warranty_period = Column(String(255))
    delivery_date = Column(Date)
    additional_notes = Column(Text)
    extracted_data = Column(JSONText)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    rfp = relationship("RFP", back_populates="proposals")
    vendor = relationship("Vendor", back_populates="proposals")
    score = relationship(
        "ProposalScore",
        back_populates="proposal",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("rfp_id", "vendor_id", name="uq_proposal_rfp_vendor"),
        Index("ix_proposals_rfp", "rfp_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rfp_id": self.rfp_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "vendor_email": self.vendor.email if self.vendor else None,
            "email_message_id": self.email_message_id,
            "email_subject": self.email_subject,
            "email_body": self.email_body,
            "total_price": self.total_price,
            "line_items": self.line_items or [],
            "payment_terms": self.payment_terms,
            "warranty_period": self.warranty_period,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "additional_notes": self.additional_notes,
            "extracted_data": self.extracted_data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProposalScore(Base):
    __tablename__ = "proposal_scores"
    id = Column(Integer, primary_key=True)
    proposal_id = Column(
        Integer, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    overall_score = Column(Float)
    price_score = Column(Float)
    terms_score = Column(Float)
    completeness_score = Column(Float)
    recommendation_reason = Column(Text)
    ai_analysis = Column(JSONText)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    proposal = relationship("Proposal", back_populates="score")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "vendor_id": self.proposal.vendor_id if self.proposal else None,
            "overall_score": self.overall_score,
            "price_score": self.price_score,
            "terms_score": self.terms_score,
            "completeness_score": self.completeness_score,
            "recommendation_reason": self.recommendation_reason,
            "ai_analysis": self.ai_analysis,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
