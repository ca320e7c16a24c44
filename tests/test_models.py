"""
test_models.py — Tests for the ORM models and shared column types

Covers JSON round-trips of requirements / line items / extracted data,
UTC tagging of loaded datetimes, and the unique (rfp, vendor) pairs.

Called by: pytest
Depends on: rfpflow/models/, rfpflow/database.py
"""

from datetime import timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from rfpflow.models import RFP, Proposal, RFPVendor


def test_requirements_round_trip(db_session, database):
    reqs = [
        {"item": "laptop", "quantity": 20, "specifications": "16GB RAM"},
        {"item": "monitor", "quantity": 15, "specifications": None},
    ]
    rfp = RFP(title="Laptops", requirements=reqs)
    db_session.add(rfp)
    db_session.commit()

    other = database.session()
    try:
        loaded = other.get(RFP, rfp.id)
        assert loaded.requirements == reqs
    finally:
        other.close()


def test_json_stored_as_text(db_session):
    db_session.add(RFP(title="Laptops", requirements=[{"item": "laptop"}]))
    db_session.commit()
    raw = db_session.execute(text("SELECT requirements FROM rfps")).scalar()
    assert isinstance(raw, str)
    assert raw == '[{"item": "laptop"}]'


def test_proposal_json_fields_round_trip(db_session, rfp, vendor):
    line_items = [{"item": "laptop", "quantity": 20, "unit_price": 800.0, "total_price": 16000.0}]
    extracted = {"total_price": 16000, "notes": {"nested": [1, 2, 3]}}
    db_session.add(Proposal(rfp_id=rfp.id, vendor_id=vendor.id,
                            line_items=line_items, extracted_data=extracted))
    db_session.commit()
    db_session.expire_all()
    loaded = db_session.query(Proposal).one()
    assert loaded.line_items == line_items
    assert loaded.extracted_data == extracted


def test_datetimes_loaded_as_utc(db_session, vendor):
    db_session.expire_all()
    assert db_session.get(type(vendor), vendor.id).created_at.tzinfo == timezone.utc


def test_rfp_defaults(db_session):
    rfp = RFP(title="Chairs")
    db_session.add(rfp)
    db_session.commit()
    assert rfp.status == "draft"
    assert rfp.to_dict()["requirements"] == []


def test_unique_dispatch_pair(db_session, rfp, vendor):
    db_session.add(RFPVendor(rfp_id=rfp.id, vendor_id=vendor.id))
    db_session.commit()
    db_session.add(RFPVendor(rfp_id=rfp.id, vendor_id=vendor.id))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_unique_proposal_pair(db_session, rfp, vendor):
    db_session.add(Proposal(rfp_id=rfp.id, vendor_id=vendor.id))
    db_session.commit()
    db_session.add(Proposal(rfp_id=rfp.id, vendor_id=vendor.id))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
