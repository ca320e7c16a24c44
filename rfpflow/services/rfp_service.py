"""
rfp_service.py — RFP creation, listing, detail and vendor dispatch

Turns a natural-language purchase request into a structured RFP, renders
the outbound RFP email, and sends it to selected vendors one at a time.

Business Rules:
- A "delivery in N days" hint becomes an absolute delivery_date (today + N)
  when no explicit date was extracted
- Requirement entries are normalized to {item, quantity, specifications};
  entries without an item are dropped
- New RFPs start as "draft"; they become "sent" once at least one vendor
  dispatch has been recorded
- A failed email never aborts the batch: the dispatch is still recorded
  with a local message id and the vendor result carries a warning
- Unknown vendor ids produce a failed result and no dispatch record
- Re-sending to the same vendor updates the dispatch in place (new sent_at)

Called by: routers/rfps.py
Depends on: models, services/extraction.py, services/mailer.py
"""

import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import MailDeliveryError, RFPNotFound
from ..models import RFP, Proposal, ProposalScore, RFPVendor, Vendor
from ..schemas.rfps import RequirementItem, RFPDraft
from ..utils import safe_date, safe_float, safe_int
from .extraction import RFP as RFP_KIND
from .extraction import Extractor
from .mailer import Mailer

NOT_SPECIFIED = "Not specified"


# ── Normalization ──────────────────────────────────────────────────────


def _specifications(entry: dict) -> str | None:
    specs = entry.get("specifications")
    if specs is None:
        specs = entry.get("specs", entry.get("spec"))
    if isinstance(specs, (list, tuple)):
        specs = ", ".join(str(s) for s in specs if s)
    elif isinstance(specs, dict):
        specs = ", ".join(f"{k}: {v}" for k, v in specs.items())
    specs = str(specs).strip() if specs is not None else ""
    return specs or None


def normalize_requirements(raw) -> list[RequirementItem]:
    if not isinstance(raw, list):
        return []
    items = []
    for entry in raw:
        if isinstance(entry, str):
            entry = {"item": entry}
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("item") or entry.get("name") or "").strip()
        if not name:
            continue
        qty = entry.get("quantity", entry.get("qty"))
        items.append(
            RequirementItem(item=name, quantity=safe_int(qty), specifications=_specifications(entry))
        )
    return items


def normalize_rfp(raw: dict, text: str = "", today: date | None = None) -> RFPDraft:
    """Extraction output -> RFPDraft with dates resolved and types coerced."""
    today = today or date.today()
    delivery_date = safe_date(raw.get("delivery_date"))
    if delivery_date is None:
        days = safe_int(raw.get("delivery_days"))
        if days is not None and days >= 0:
            delivery_date = today + timedelta(days=days)

    title = str(raw.get("title") or "").strip() or text.strip()[:80] or "Untitled RFP"
    return RFPDraft(
        title=title[:500],
        description=raw.get("description") or text or None,
        budget=safe_float(raw.get("budget")),
        deadline=safe_date(raw.get("deadline")),
        delivery_date=delivery_date,
        payment_terms=raw.get("payment_terms") or None,
        warranty_period=raw.get("warranty_period") or None,
        requirements=normalize_requirements(raw.get("requirements")),
    )


# ── Create / read ──────────────────────────────────────────────────────


async def preview_rfp(text: str, extractor: Extractor) -> RFPDraft:
    """Extract and normalize without persisting."""
    raw = await extractor.extract(RFP_KIND, {"text": text})
    return normalize_rfp(raw, text)


async def create_rfp(db: Session, text: str, extractor: Extractor) -> RFP:
    draft = await preview_rfp(text, extractor)
    rfp = RFP(
        title=draft.title,
        description=draft.description,
        budget=draft.budget,
        deadline=draft.deadline,
        delivery_date=draft.delivery_date,
        payment_terms=draft.payment_terms,
        warranty_period=draft.warranty_period,
        requirements=[r.model_dump() for r in draft.requirements],
        status="draft",
    )
    db.add(rfp)
    db.commit()
    db.refresh(rfp)
    logger.info("RFP {} created via {} extractor: {}", rfp.id, extractor.name, rfp.title)
    return rfp


def list_rfps(db: Session) -> list[RFP]:
    return db.query(RFP).order_by(RFP.created_at.desc(), RFP.id.desc()).all()


def get_rfp(db: Session, rfp_id: int) -> RFP:
    rfp = db.get(RFP, rfp_id)
    if not rfp:
        raise RFPNotFound()
    return rfp


def get_rfp_detail(db: Session, rfp_id: int) -> dict:
    """RFP plus its proposals (with vendor name/email) and their scores."""
    rfp = get_rfp(db, rfp_id)
    proposals = (
        db.query(Proposal)
        .filter(Proposal.rfp_id == rfp_id)
        .order_by(Proposal.created_at.desc(), Proposal.id.desc())
        .all()
    )
    scores = (
        db.query(ProposalScore)
        .join(Proposal, ProposalScore.proposal_id == Proposal.id)
        .filter(Proposal.rfp_id == rfp_id)
        .order_by(ProposalScore.overall_score.desc())
        .all()
    )
    return {
        "rfp": rfp.to_dict(),
        "proposals": [p.to_dict() for p in proposals],
        "scores": [s.to_dict() for s in scores],
    }


# ── Outbound email ─────────────────────────────────────────────────────


def _money(amount: float) -> str:
    if float(amount).is_integer():
        return f"${amount:,.0f}"
    return f"${amount:,.2f}"


def _requirement_line(idx: int, req: dict) -> str:
    line = f"{idx}. {req.get('item')}"
    if req.get("quantity"):
        line += f" (Quantity: {req['quantity']})"
    if req.get("specifications"):
        line += f" - {req['specifications']}"
    return line


def render_rfp_email(rfp: RFP, vendor: Vendor) -> tuple[str, str]:
    """Return (subject, body) for one vendor."""
    requirements = rfp.requirements or []
    req_lines = "\n".join(_requirement_line(i, r) for i, r in enumerate(requirements, start=1))
    budget = _money(rfp.budget) if rfp.budget else NOT_SPECIFIED

    body = f"""Dear {vendor.name or 'Vendor'},

We are requesting a proposal for the following procurement:

{rfp.title}

Description:
{rfp.description or ''}

Requirements:
{req_lines or 'See details in RFP'}

Budget: {budget}
Delivery Date Required: {rfp.delivery_date.isoformat() if rfp.delivery_date else NOT_SPECIFIED}
Payment Terms: {rfp.payment_terms or NOT_SPECIFIED}
Warranty Required: {rfp.warranty_period or NOT_SPECIFIED}
Deadline for Response: {rfp.deadline.isoformat() if rfp.deadline else NOT_SPECIFIED}

Please reply to this email with your proposal, including:
- Detailed pricing for all items
- Payment terms
- Delivery timeline
- Warranty information
- Any additional terms or conditions

Thank you for your interest.

Best regards,
Procurement Team"""
    return f"RFP: {rfp.title}", body


def local_message_id() -> str:
    """Message id recorded when the email could not actually be sent."""
    return f"<local-{uuid.uuid4().hex}@rfpflow.local>"


def _record_dispatch(db: Session, rfp: RFP, vendor: Vendor, subject: str, body: str,
                     message_id: str) -> RFPVendor:
    link = db.query(RFPVendor).filter_by(rfp_id=rfp.id, vendor_id=vendor.id).first()
    if link is None:
        link = RFPVendor(rfp_id=rfp.id, vendor_id=vendor.id)
        db.add(link)
    link.sent_at = datetime.now(timezone.utc)
    link.email_subject = subject
    link.email_body = body
    link.email_message_id = message_id
    db.commit()
    return link


def dispatch_message(sent: int, recorded: int, total: int) -> str:
    if total and sent == total:
        return f"RFP sent to {sent} vendor(s)"
    if sent:
        return f"RFP sent to {sent} of {total} vendor(s); see results for failures"
    if recorded:
        return (
            f"RFP recorded for {recorded} vendor(s) but no email could be sent; "
            "check the SMTP configuration"
        )
    return "RFP was not sent to any vendor"


async def send_rfp_to_vendors(db: Session, rfp_id: int, vendor_ids: list[int],
                              mailer: Mailer) -> dict:
    """Email the RFP to each vendor in turn; failures accumulate per vendor."""
    rfp = get_rfp(db, rfp_id)
    results = []
    recorded = 0
    sent = 0

    for vendor_id in vendor_ids:
        vendor = db.get(Vendor, vendor_id)
        if vendor is None:
            results.append({
                "vendor_id": vendor_id,
                "success": False,
                "error": "Vendor not found",
            })
            continue

        subject, body = render_rfp_email(rfp, vendor)
        warning = None
        try:
            message_id = await asyncio.to_thread(mailer.send, vendor.email, subject, body)
        except MailDeliveryError as e:
            logger.warning("RFP {} email to {} failed: {}", rfp.id, vendor.email, e.message)
            message_id = local_message_id()
            warning = f"Email not sent: {e.message}"
        except Exception as e:
            logger.opt(exception=e).error("RFP {} email to {} crashed", rfp.id, vendor.email)
            message_id = local_message_id()
            warning = f"Email not sent: {type(e).__name__}"

        _record_dispatch(db, rfp, vendor, subject, body, message_id)
        recorded += 1
        result = {
            "vendor_id": vendor.id,
            "vendor_name": vendor.name,
            "email": vendor.email,
            "success": warning is None,
            "message_id": message_id,
        }
        if warning:
            result["warning"] = warning
        else:
            sent += 1
        results.append(result)

    if recorded:
        rfp.status = "sent"
        db.commit()

    logger.info("RFP {} dispatch: {} sent, {} recorded, {} requested",
                rfp.id, sent, recorded, len(vendor_ids))
    return {
        "rfp": rfp.to_dict(),
        "results": results,
        "sent": sent,
        "recorded": recorded,
        "message": dispatch_message(sent, recorded, len(vendor_ids)),
    }
