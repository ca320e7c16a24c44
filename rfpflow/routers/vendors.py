"""
routers/vendors.py — Vendor registry routes

Called by: main.py (router mount)
Depends on: services/vendor_service.py, schemas/vendors.py
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.responses import ERROR_RESPONSES, ok
from ..schemas.vendors import VendorCreate, VendorUpdate
from ..services import vendor_service

router = APIRouter(prefix="/api/vendors", tags=["vendors"], responses=ERROR_RESPONSES)


@router.get("")
def list_vendors(db: Session = Depends(get_db)):
    return ok({"vendors": [v.to_dict() for v in vendor_service.list_vendors(db)]})


@router.post("", status_code=201)
def create_vendor(payload: VendorCreate, db: Session = Depends(get_db)):
    vendor = vendor_service.create_vendor(db, payload)
    return ok({"vendor": vendor.to_dict()}, "Vendor created")


@router.put("/{vendor_id}")
def update_vendor(vendor_id: int, payload: VendorUpdate, db: Session = Depends(get_db)):
    vendor = vendor_service.update_vendor(db, vendor_id, payload)
    return ok({"vendor": vendor.to_dict()}, "Vendor updated")


@router.delete("/{vendor_id}")
def delete_vendor(vendor_id: int, db: Session = Depends(get_db)):
    vendor_service.delete_vendor(db, vendor_id)
    return ok(None, "Vendor deleted successfully")
