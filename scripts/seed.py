#!/usr/bin/env python3
"""Seed sample vendors.

Inserts three demo vendors through the query adapter. Safe to re-run:
vendors whose email already exists are left untouched.

Usage:
    python scripts/seed.py [--database-url URL] [--create-tables]
"""

import argparse
import os
import sys

# Must set up path before rfpflow imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from loguru import logger

from rfpflow.config import settings
from rfpflow.database import Database
from rfpflow.logging_config import setup_logging
from rfpflow.query_adapter import QueryAdapter

SAMPLE_VENDORS = [
    ("Tech Solutions Inc.", "contact@techsolutions.com", "John Smith", "5551234567",
     "123 Tech Street, San Francisco, CA 94105"),
    ("Global Equipment Co.", "sales@globalequip.com", "Sarah Johnson", "5552345678",
     "456 Commerce Ave, New York, NY 10001"),
    ("Office Supplies Pro", "info@officesuppliespro.com", "Mike Davis", "5553456789",
     "789 Business Blvd, Chicago, IL 60601"),
]

INSERT_VENDOR = """
    INSERT INTO vendors (name, email, contact_person, phone, address, created_at, updated_at)
    VALUES ($1, $2, $3, $4, $5, NOW(), NOW())
    ON CONFLICT (email) DO NOTHING
    RETURNING *
"""


def seed(adapter: QueryAdapter) -> int:
    inserted = 0
    for name, email, contact, phone, address in SAMPLE_VENDORS:
        result = adapter.query(INSERT_VENDOR, [name, email, contact, phone, address])
        if result.rows:
            inserted += 1
            logger.info("Added vendor {} ({})", name, email)
        else:
            logger.info("Vendor {} already exists, skipped", email)
    return inserted


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed RFPFlow with sample vendors")
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--create-tables", action="store_true",
                        help="create missing tables before seeding")
    args = parser.parse_args(argv)

    setup_logging()
    database = Database(args.database_url)
    try:
        if args.create_tables:
            database.create_tables()
        inserted = seed(QueryAdapter(database.engine))
    finally:
        database.dispose()
    logger.info("Seeding complete: {} new vendor(s)", inserted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
