"""
RFPFlow — procurement RFP workflow API

App factory pieces: lifespan (database handle, extractor, mailer),
middleware (CORS, request ID + timing), exception handlers that render
every error in the ``{success: false, error, details?}`` envelope, and
router mounts.

Called by: uvicorn (rfpflow.main:app), tests/conftest.py
Depends on: config, logging_config, database, query_adapter, routers/*
"""

import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from .config import config_warnings, settings
from .database import Database
from .exceptions import AppError
from .logging_config import setup_logging
from .query_adapter import QueryAdapter
from .rate_limit import limiter
from .routers import mock, proposals, rfps, vendors
from .schemas.responses import fail
from .services.extraction import build_extractor
from .services.mailer import Mailer

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    database = Database.from_settings(settings)
    if not os.environ.get("TESTING"):
        database.create_tables()
    if QueryAdapter(database.engine).ping():
        logger.info("Database connected ({})", database.engine.dialect.name)

    for warning in config_warnings(settings):
        logger.warning(warning)

    app.state.database = database
    app.state.extractor = build_extractor(settings)
    app.state.mailer = Mailer(settings)
    logger.info("Extraction backend: {}", app.state.extractor.name)
    yield
    database.dispose()
    logger.info("Database pool disposed")


app = FastAPI(title="RFPFlow", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag each request with a short ID and log method, path, status, duration."""
    request_id = uuid.uuid4().hex[:8]
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} -> {} ({:.1f}ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error envelope ───────────────────────────────────────────────────


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("{} {}: {}", request.method, request.url.path, exc.message)
    return fail(exc.message, exc.status_code, exc.details)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return fail(message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", "").removeprefix("Value error, "),
        }
        for err in exc.errors()
    ]
    message = details[0]["message"] if len(details) == 1 else "Invalid request"
    return fail(message, 400, details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


# ── Routes ───────────────────────────────────────────────────────────

app.include_router(rfps.router)
app.include_router(vendors.router)
app.include_router(proposals.router)
app.include_router(mock.router)


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/")
async def index():
    return {
        "message": "RFP Management System API",
        "version": APP_VERSION,
        "endpoints": {
            "rfps": "/api/rfps",
            "vendors": "/api/vendors",
            "proposals": "/api/proposals",
            "mock": "/api/mock/inbound-email",
            "health": "/health",
        },
    }
