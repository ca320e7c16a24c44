"""RFP and RFP-to-vendor dispatch models."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
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

RFP_STATUSES = ("draft", "sent", "closed")


class RFP(Base):
    """A structured procurement ask built from a natural-language prompt."""

    __tablename__ = "rfps"
    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    budget = Column(Numeric(14, 2, asdecimal=False))
    deadline = Column(Date)
    delivery_date = Column(Date)
    payment_terms = Column(String(255))
    warranty_period = Column(String(255))
    requirements = Column(JSONText, default=list)  # [{item, quantity, specifications}]
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    vendor_links = relationship(
        "RFPVendor", back_populates="rfp", cascade="all, delete-orphan", passive_deletes=True
    )
    proposals = relationship(
        "Proposal", back_populates="rfp", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_rfps_status", "status"),
        Index("ix_rfps_created", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "budget": self.budget,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "payment_terms": self.payment_terms,
            "warranty_period": self.warranty_period,
            "requirements": self.requirements or [],
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class RFPVendor(Base):
    """One row per (rfp, vendor) dispatch; re-sending updates it in place."""

    __tablename__ = "rfp_vendors"
    id = Column(Integer, primary_key=True)
    rfp_id = Column(Integer, ForeignKey("rfps.id", ondelete="CASCADE"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    sent_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    email_subject = Column(String(500))
    email_body = Column(Text)
    email_message_id = Column(String(500))

    rfp = relationship("RFP", back_populates="vendor_links")
    vendor = relationship("Vendor", back_populates="rfp_links")

    __table_args__ = (
        UniqueConstraint("rfp_id", "vendor_id", name="uq_rfp_vendor"),
        Index("ix_rfp_vendors_vendor_sent", "vendor_id", "sent_at"),
    )
