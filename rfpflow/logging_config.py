"""
logging_config.py — Loguru setup for the RFPFlow API

One stdout sink. JSON lines when the app is deployed behind an https URL,
a coloured single-line format everywhere else. Every record carries the
request_id the HTTP middleware binds, or "-" outside a request.

Business Rules:
- Loguru is the only backend; stdlib loggers (uvicorn, sqlalchemy, httpx)
  are forwarded into it
- Chatty third-party loggers are held at WARNING

Called by: rfpflow/main.py (lifespan startup)
Depends on: rfpflow/config.py (log_level, app_url)
"""

import logging
import sys

from loguru import logger

from .config import Settings, settings

DEV_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def is_production(s: Settings) -> bool:
    return s.app_url.startswith("https://") and "localhost" not in s.app_url


class _InterceptHandler(logging.Handler):
    """Forward stdlib log records to Loguru, keeping the original caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging() -> None:
    logger.remove()
    logger.configure(extra={"request_id": "-"})

    level = settings.log_level.upper()
    production = is_production(settings)
    if production:
        logger.add(sys.stdout, level=level, format="{message}", serialize=True)
    else:
        logger.add(sys.stdout, level=level, format=DEV_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging ready (level={}, json={})", level, production)
