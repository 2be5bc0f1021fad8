# core/utils.py

import re
import unicodedata
from datetime import date, datetime, time, timezone


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data before it is written to Supabase:
    - Empty strings → None
    - Strip string whitespace
    - Preserve booleans, numbers, lists and None values

    Numeric strings are left alone: postal codes, phone numbers and
    employee codes are text columns in this schema.
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped if stripped else None
            continue

        clean[k] = v

    return clean


def strip_accents(value: str) -> str:
    """'Área Jardín' → 'Area Jardin'"""
    normalized = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")


def safe_filename(filename: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", filename)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value) -> datetime | None:
    """
    Parse Supabase timestamps (ISO strings, sometimes with a trailing Z)
    into aware datetimes. Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def end_of_day(value):
    """
    A bare date (or "YYYY-MM-DD") used as a cutoff covers the whole day:
    it becomes 23:59:59.999999 UTC. Anything else is returned untouched.
    """
    if isinstance(value, str) and re.fullmatch(r"\d{4}-\d{2}-\d{2}", value.strip()):
        value = date.fromisoformat(value.strip())
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.max, tzinfo=timezone.utc)
    return value


def parse_deadline(value) -> datetime | None:
    return parse_timestamp(end_of_day(value))


def to_float(value, default: float = 0.0) -> float:
    """Numeric columns come back from PostgREST as strings; coerce leniently."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
