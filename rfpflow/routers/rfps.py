"""
routers/rfps.py — RFP creation, listing, detail and dispatch routes

Business Rules:
- Creation and parse-preview take a free-text purchase request
- Dispatch is rate limited (it sends real email)

Called by: main.py (router mount)
Depends on: services/rfp_service.py, dependencies.py, rate_limit.py
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_extractor, get_mailer
from ..rate_limit import OUTBOUND_EMAIL_LIMIT, limiter
from ..schemas.responses import ERROR_RESPONSES, ok
from ..schemas.rfps import NaturalLanguageRequest, SendRFPRequest
from ..services import rfp_service
from ..services.extraction import Extractor
from ..services.mailer import Mailer

router = APIRouter(prefix="/api/rfps", tags=["rfps"], responses=ERROR_RESPONSES)


@router.post("/parse")
async def parse_rfp(payload: NaturalLanguageRequest, extractor: Extractor = Depends(get_extractor)):
    """Preview the structured RFP without saving it."""
    draft = await rfp_service.preview_rfp(payload.natural_language, extractor)
    return ok({"rfp": draft.model_dump(mode="json")})


@router.post("/create-from-natural-language")
async def create_rfp(
    payload: NaturalLanguageRequest,
    db: Session = Depends(get_db),
    extractor: Extractor = Depends(get_extractor),
):
    rfp = await rfp_service.create_rfp(db, payload.natural_language, extractor)
    return ok({"rfp": rfp.to_dict()}, "RFP created")


@router.get("")
def list_rfps(db: Session = Depends(get_db)):
    return ok({"rfps": [r.to_dict() for r in rfp_service.list_rfps(db)]})


@router.get("/{rfp_id}")
def get_rfp(rfp_id: int, db: Session = Depends(get_db)):
    return ok(rfp_service.get_rfp_detail(db, rfp_id))


@router.post("/send")
@limiter.limit(OUTBOUND_EMAIL_LIMIT)
async def send_rfp(
    request: Request,
    payload: SendRFPRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    result = await rfp_service.send_rfp_to_vendors(db, payload.rfp_id, payload.vendor_ids, mailer)
    message = result.pop("message")
    return ok(result, message)
