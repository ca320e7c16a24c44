"""
dependencies.py — Shared FastAPI Dependencies

The extractor and mailer are built once in the app lifespan and kept on
``app.state``; routers receive them through these functions so tests can
swap them with ``app.dependency_overrides``.

Called by: all routers
Depends on: services/extraction.py, services/mailer.py
"""

from fastapi import Request

from .services.extraction import Extractor
from .services.mailer import Mailer


def get_extractor(request: Request) -> Extractor:
    return request.app.state.extractor


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
