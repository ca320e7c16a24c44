"""
vendor_service.py — Vendor registry CRUD

Business Rules:
- Vendor email is unique; a clash on create or update is DuplicateVendor
- Update replaces every field; a missing id is VendorNotFound
- Delete is unconditional and removes the vendor's dispatch records,
  proposals and proposal scores with it

Called by: routers/vendors.py
Depends on: models, schemas/vendors.py
"""

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateVendor, VendorNotFound
from ..models import Vendor
from ..schemas.vendors import VendorCreate, VendorUpdate


def list_vendors(db: Session) -> list[Vendor]:
    return db.query(Vendor).order_by(Vendor.name).all()


def get_vendor(db: Session, vendor_id: int) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise VendorNotFound("Vendor not found")
    return vendor


def _commit_unique(db: Session, email: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Duplicate vendor email rejected: {}", email)
        raise DuplicateVendor() from e


def create_vendor(db: Session, data: VendorCreate) -> Vendor:
    vendor = Vendor(**data.model_dump())
    db.add(vendor)
    _commit_unique(db, data.email)
    db.refresh(vendor)
    logger.info("Vendor {} created: {}", vendor.id, vendor.email)
    return vendor


def update_vendor(db: Session, vendor_id: int, data: VendorUpdate) -> Vendor:
    vendor = get_vendor(db, vendor_id)
    for field, value in data.model_dump().items():
        setattr(vendor, field, value)
    _commit_unique(db, data.email)
    db.refresh(vendor)
    return vendor


def delete_vendor(db: Session, vendor_id: int) -> None:
    vendor = get_vendor(db, vendor_id)
    db.delete(vendor)
    db.commit()
    logger.info("Vendor {} deleted", vendor_id)
