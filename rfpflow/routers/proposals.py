"""
routers/proposals.py — Vendor reply ingestion, mailbox polling and comparison

Business Rules:
- Mailbox polling is rate limited (it logs in to the mail server)
- Comparison needs two or more proposals for the RFP

Called by: main.py (router mount)
Depends on: services/proposal_service.py, services/comparison_service.py
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_extractor, get_mailer
from ..rate_limit import OUTBOUND_EMAIL_LIMIT, limiter
from ..schemas.proposals import VendorReplyIn
from ..schemas.responses import ERROR_RESPONSES, ok
from ..services import comparison_service, proposal_service
from ..services.extraction import Extractor
from ..services.mailer import Mailer

router = APIRouter(prefix="/api/proposals", tags=["proposals"], responses=ERROR_RESPONSES)


@router.post("/process")
async def process_vendor_reply(
    payload: VendorReplyIn,
    db: Session = Depends(get_db),
    extractor: Extractor = Depends(get_extractor),
):
    proposal = await proposal_service.ingest_vendor_reply(
        db,
        payload.from_email,
        payload.email_subject,
        payload.email_body,
        payload.message_id,
        extractor,
    )
    return ok({"proposal": proposal.to_dict()}, "Proposal processed")


@router.get("/compare/{rfp_id}")
async def compare_proposals(
    rfp_id: int,
    db: Session = Depends(get_db),
    extractor: Extractor = Depends(get_extractor),
):
    return ok(await comparison_service.compare_proposals(db, rfp_id, extractor))


@router.post("/check-emails")
@limiter.limit(OUTBOUND_EMAIL_LIMIT)
async def check_emails(
    request: Request,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    extractor: Extractor = Depends(get_extractor),
):
    result = await proposal_service.check_mailbox(db, mailer, extractor)
    return ok(result, f"Processed {result['processed']} email(s)")
