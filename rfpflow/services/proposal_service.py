"""
proposal_service.py — Vendor reply ingestion (manual, mailbox, mock)

Every path ends in ``ingest_vendor_reply``: find the vendor by sender
address, attribute the reply to the RFP most recently sent to that vendor,
extract structured proposal fields, and upsert the proposal.

Business Rules:
- Vendors are matched on exact, lower-cased email; unknown senders are
  rejected (VendorNotFound) except on the mock path, which creates them
- A reply belongs to the RFP with the latest sent_at for its vendor
- One proposal per (rfp, vendor); re-ingesting overwrites it in place
- A mailbox batch never fails as a whole because of one message
- The mock path returns the raw extraction without persisting when the
  vendor has never been sent an RFP

Called by: routers/proposals.py, routers/mock.py
Depends on: models, services/extraction.py, services/mailer.py
"""

import asyncio

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import AppError, NoAssociatedRFP, VendorNotFound
from ..models import Proposal, RFPVendor, Vendor
from ..schemas.proposals import LineItem
from ..utils import safe_date, safe_float, safe_int
from .extraction import PROPOSAL, Extractor
from .mailer import Mailer, bare_address


def find_vendor_by_email(db: Session, email: str) -> Vendor | None:
    return db.query(Vendor).filter(Vendor.email == (email or "").strip().lower()).first()


def latest_rfp_id_for_vendor(db: Session, vendor_id: int) -> int | None:
    """RFP most recently dispatched to this vendor."""
    link = (
        db.query(RFPVendor)
        .filter(RFPVendor.vendor_id == vendor_id)
        .order_by(RFPVendor.sent_at.desc(), RFPVendor.id.desc())
        .first()
    )
    return link.rfp_id if link else None


def normalize_line_items(raw) -> list[dict]:
    if not isinstance(raw, list):
        return []
    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("item") or entry.get("name") or entry.get("description") or "").strip()
        if not name:
            continue
        items.append(
            LineItem(
                item=name,
                quantity=safe_int(entry.get("quantity", entry.get("qty"))),
                unit_price=safe_float(entry.get("unit_price")),
                total_price=safe_float(entry.get("total_price", entry.get("total"))),
            ).model_dump()
        )
    return items


async def extract_proposal(extractor: Extractor, subject: str, body: str) -> dict:
    return await extractor.extract(PROPOSAL, {"subject": subject or "", "body": body or ""})


def _upsert_proposal(db: Session, rfp_id: int, vendor: Vendor, subject: str, body: str,
                     message_id: str | None, parsed: dict) -> Proposal:
    proposal = db.query(Proposal).filter_by(rfp_id=rfp_id, vendor_id=vendor.id).first()
    created = proposal is None
    if created:
        proposal = Proposal(rfp_id=rfp_id, vendor_id=vendor.id)
        db.add(proposal)

    proposal.email_message_id = message_id
    proposal.email_subject = subject or ""
    proposal.email_body = body
    proposal.total_price = safe_float(parsed.get("total_price"))
    proposal.line_items = normalize_line_items(parsed.get("line_items"))
    proposal.payment_terms = parsed.get("payment_terms") or None
    proposal.warranty_period = parsed.get("warranty_period") or None
    proposal.delivery_date = safe_date(parsed.get("delivery_date"))
    proposal.additional_notes = parsed.get("additional_notes") or None
    proposal.extracted_data = parsed
    db.commit()
    db.refresh(proposal)

    logger.info("Proposal {} {} for RFP {} from {}",
                proposal.id, "created" if created else "updated", rfp_id, vendor.email)
    return proposal


async def ingest_vendor_reply(db: Session, from_email: str, subject: str, body: str,
                              message_id: str | None, extractor: Extractor) -> Proposal:
    vendor = find_vendor_by_email(db, from_email)
    if vendor is None:
        raise VendorNotFound()

    rfp_id = latest_rfp_id_for_vendor(db, vendor.id)
    if rfp_id is None:
        raise NoAssociatedRFP()

    parsed = await extract_proposal(extractor, subject, body)
    return _upsert_proposal(db, rfp_id, vendor, subject, body, message_id, parsed)


async def check_mailbox(db: Session, mailer: Mailer, extractor: Extractor) -> dict:
    """Poll unread mail and ingest each message; report per-message outcomes."""
    messages = await asyncio.to_thread(mailer.fetch_unseen)

    emails = []
    for msg in messages:
        sender = bare_address(msg.from_address)
        entry = {
            "from": sender,
            "subject": msg.subject,
            "message_id": msg.message_id,
            "date": msg.date.isoformat() if msg.date else None,
        }
        try:
            proposal = await ingest_vendor_reply(
                db, sender, msg.subject, msg.body, msg.message_id, extractor
            )
            entry.update(processed=True, proposal_id=proposal.id, rfp_id=proposal.rfp_id)
        except AppError as e:
            db.rollback()
            logger.warning("Skipping email from {}: {}", sender, e.message)
            entry.update(processed=False, error=e.message)
        except Exception as e:
            db.rollback()
            logger.opt(exception=e).error("Failed to ingest email from {}", sender)
            entry.update(processed=False, error=f"Processing failed: {type(e).__name__}")
        emails.append(entry)

    ok_count = sum(1 for e in emails if e["processed"])
    return {
        "processed": len(emails),
        "succeeded": ok_count,
        "failed": len(emails) - ok_count,
        "emails": emails,
    }


async def mock_inbound_email(db: Session, from_email: str, subject: str, body: str,
                             extractor: Extractor) -> dict:
    """Demo path: behave as if the email arrived in the mailbox."""
    email = from_email.strip().lower()
    vendor = find_vendor_by_email(db, email)
    vendor_created = False
    if vendor is None:
        vendor = Vendor(name=email.split("@")[0] or email, email=email)
        db.add(vendor)
        db.commit()
        db.refresh(vendor)
        vendor_created = True
        logger.info("Mock inbound email created vendor {} ({})", vendor.id, email)

    rfp_id = latest_rfp_id_for_vendor(db, vendor.id)
    parsed = await extract_proposal(extractor, subject, body)

    if rfp_id is None:
        return {
            "vendor": vendor.to_dict(),
            "vendor_created": vendor_created,
            "proposal": None,
            "extracted": parsed,
            "message": "No RFP has been sent to this vendor; extraction shown but not saved",
        }

    proposal = _upsert_proposal(db, rfp_id, vendor, subject, body, None, parsed)
    return {
        "vendor": vendor.to_dict(),
        "vendor_created": vendor_created,
        "proposal": proposal.to_dict(),
        "extracted": parsed,
        "message": f"Proposal recorded for RFP {rfp_id}",
    }
