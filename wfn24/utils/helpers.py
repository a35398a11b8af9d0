"""
Utility helper functions for safe data handling.
"""
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Optional

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def safe_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """
    Safely convert value to int, handling None and invalid values.

    Args:
        value: Any value to convert
        default: Default if conversion fails

    Returns:
        Integer or default
    """
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def slugify(value: Any) -> str:
    """
    URL slug: lowercase ascii, runs of anything else collapsed to '-'.

    "Salah's Hat-Trick!" -> "salah-s-hat-trick"
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value)).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", text.lower()).strip("-")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (API-Football dates) into naive UTC; None when unparseable."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
