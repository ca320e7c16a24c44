"""Vendor model."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Vendor(Base):
    __tablename__ = "vendors"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    contact_person = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Deleting a vendor removes its dispatch records and proposals
    rfp_links = relationship(
        "RFPVendor", back_populates="vendor", cascade="all, delete-orphan", passive_deletes=True
    )
    proposals = relationship(
        "Proposal", back_populates="vendor", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "address": self.address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
