"""Utility helpers: slugify, timestamps, month keys, rounding."""
import math
import re
import unicodedata
from datetime import datetime, timezone
from typing import Optional


def slugify(text: str, max_len: int = 50) -> str:
    """Convert text to URL-safe slug."""
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^\w\s-]", "", text.lower())
    text = re.sub(r"[\s_-]+", "-", text).strip("-")
    return text[:max_len].strip("-")


def truncate(text: str, max_len: int = 200, suffix: str = "...") -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - len(suffix)] + suffix


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 export timestamp into an aware datetime.
    Returns None for empty or unparsable values. Naive values are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def month_key(dt: datetime) -> str:
    """'YYYY-MM' bucket of a timestamp, as written in the export (no tz shift)."""
    return dt.strftime("%Y-%m")


def fmt_date(dt: Optional[datetime], fmt: str = "%Y-%m-%d", default: str = "") -> str:
    if dt is None:
        return default
    return dt.strftime(fmt)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like JavaScript's Math.round (ties go up), not banker's rounding."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: int, whole: int) -> float:
    """part / whole as a one-decimal percentage; 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return math.floor(part / whole * 1000 + 0.5) / 10
