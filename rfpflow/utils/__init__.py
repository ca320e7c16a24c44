"""Shared utility helpers used across services."""

from datetime import date, datetime


def safe_int(v):
    """Safely convert a value to int, returning None on failure."""
    if v is None:
        return None
    try:
        return int(v)
    except (ValueError, TypeError):
        try:
            return int(float(str(v).replace(",", "")))
        except (ValueError, TypeError):
            return None


def safe_float(v):
    """Safely convert a value to float, returning None on failure.

    Accepts currency-formatted strings such as "$20,500.00".
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    try:
        return float(str(v).replace("$", "").replace(",", "").strip())
    except (ValueError, TypeError):
        return None


def safe_date(v):
    """Parse a date from a date/datetime or an ISO-ish string, else None.

    Only the leading ``YYYY-MM-DD`` of a string is read, so timestamps work.
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v).strip()[:10])
    except ValueError:
        return None
