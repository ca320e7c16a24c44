"""
routers/mock.py — Demo inbound email

Simulates a vendor reply arriving in the mailbox so the workflow can be
shown without IMAP configuration.

Called by: main.py (router mount)
Depends on: services/proposal_service.py
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_extractor
from ..schemas.proposals import MockInboundEmail
from ..schemas.responses import ERROR_RESPONSES, ok
from ..services import proposal_service
from ..services.extraction import Extractor

router = APIRouter(prefix="/api/mock", tags=["mock"], responses=ERROR_RESPONSES)


@router.post("/inbound-email")
async def inbound_email(
    payload: MockInboundEmail,
    db: Session = Depends(get_db),
    extractor: Extractor = Depends(get_extractor),
):
    result = await proposal_service.mock_inbound_email(
        db, payload.from_email, payload.subject, payload.body, extractor
    )
    message = result.pop("message")
    return ok(result, message)
