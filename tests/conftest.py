"""
conftest.py — Shared Test Fixtures for RFPFlow

Provides an in-memory SQLite database, a FastAPI TestClient with the
database, extractor and mailer dependencies overridden, and factory
fixtures for vendors, RFPs and dispatch records.

Business Rules:
- All tests run against an isolated in-memory DB
- Extraction always uses the local heuristic (no network)
- The mailer is a MagicMock; no SMTP/IMAP connections are made
- Each test function gets fresh tables

Called by: all test files via pytest autodiscovery
Depends on: rfpflow.database (Database, get_db), rfpflow.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing rfpflow modules
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ANTHROPIC_API_KEY"] = ""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from rfpflow.database import Database, get_db
from rfpflow.dependencies import get_extractor, get_mailer
from rfpflow.models import RFP, Base, RFPVendor, Vendor
from rfpflow.services.extraction import HeuristicExtractor
from rfpflow.services.mailer import Mailer

# ── In-memory SQLite database ────────────────────────────────────────

test_db = Database("sqlite://")  # StaticPool: one shared in-memory connection


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=test_db.engine)
    session = test_db.session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_db.engine)


@pytest.fixture()
def database() -> Database:
    """The shared in-memory Database handle (tables created by db_session)."""
    return test_db


@pytest.fixture()
def mock_mailer() -> MagicMock:
    """Mailer that 'sends' successfully and has an empty mailbox."""
    mailer = MagicMock(spec=Mailer)
    mailer.send.side_effect = lambda to, subject, body: f"<test-{to}@rfpflow.test>"
    mailer.fetch_unseen.return_value = []
    return mailer


@pytest.fixture()
def client(db_session: Session, mock_mailer: MagicMock) -> TestClient:
    """TestClient with DB, extractor and mailer overridden."""
    from rfpflow.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_extractor] = lambda: HeuristicExtractor()
    app.dependency_overrides[get_mailer] = lambda: mock_mailer

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# ── Factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_vendor(db_session: Session):
    def _make(name="Tech Solutions Inc.", email="contact@techsolutions.com", **kw) -> Vendor:
        vendor = Vendor(name=name, email=email, **kw)
        db_session.add(vendor)
        db_session.commit()
        db_session.refresh(vendor)
        return vendor

    return _make


@pytest.fixture()
def make_rfp(db_session: Session):
    def _make(title="Procurement of Laptops", **kw) -> RFP:
        kw.setdefault("description", "I need 20 laptops with 16GB RAM")
        kw.setdefault("budget", 50000.0)
        kw.setdefault("payment_terms", "net 30")
        kw.setdefault("warranty_period", "1 year")
        kw.setdefault("requirements", [{"item": "laptops", "quantity": 20, "specifications": "16GB RAM"}])
        rfp = RFP(title=title, **kw)
        db_session.add(rfp)
        db_session.commit()
        db_session.refresh(rfp)
        return rfp

    return _make


@pytest.fixture()
def make_dispatch(db_session: Session):
    """Record that an RFP was sent to a vendor ``minutes_ago`` minutes ago."""

    def _make(rfp: RFP, vendor: Vendor, minutes_ago: int = 0) -> RFPVendor:
        link = RFPVendor(
            rfp_id=rfp.id,
            vendor_id=vendor.id,
            sent_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
            email_subject=f"RFP: {rfp.title}",
            email_body="...",
            email_message_id=f"<seed-{rfp.id}-{vendor.id}@rfpflow.test>",
        )
        db_session.add(link)
        db_session.commit()
        return link

    return _make


@pytest.fixture()
def vendor(make_vendor) -> Vendor:
    return make_vendor()


@pytest.fixture()
def rfp(make_rfp) -> RFP:
    return make_rfp()
