"""Shared rate limiter (in-memory storage).

Limits are per client address and per process. Outbound-email routes
carry a tighter limit than the default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

OUTBOUND_EMAIL_LIMIT = "5/minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)
