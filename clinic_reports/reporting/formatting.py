"""Display helpers: fallbacks, names, dates, units and filenames."""
import re
from datetime import date, datetime
from typing import Any, Dict, Optional

NOT_SPECIFIED = "Not specified"
NOT_PROVIDED = "Not provided"
NOT_RECORDED = "Not recorded"
NOT_AVAILABLE = "N/A"

_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def is_present(value: Any) -> bool:
    """A value is absent when missing, None or a blank string."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def display(value: Any, fallback: str = NOT_SPECIFIED) -> str:
    """Render a record value for display, substituting the fallback when absent."""
    if not is_present(value):
        return fallback
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def with_unit(value: Any, unit: str, fallback: str = NOT_RECORDED, separator: str = " ") -> str:
    """Render a measurement with its unit ("72 kg", "98%")."""
    if not is_present(value):
        return fallback
    return f"{display(value)}{separator}{unit}"


def full_name(record: Optional[Dict[str, Any]], prefix: str = "", fallback: str = NOT_PROVIDED) -> str:
    """Join first, middle and last name fields, skipping absent parts.

    Args:
        record: Person-like record
        prefix: Field prefix, e.g. "ec_" for the emergency contact
        fallback: Returned when no name part is present
    """
    if not record:
        return fallback
    parts = [
        record.get(f"{prefix}first_name"),
        record.get(f"{prefix}middle_name"),
        record.get(f"{prefix}last_name"),
    ]
    name = " ".join(str(p).strip() for p in parts if is_present(p))
    return name or fallback


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date or timestamp; None when it cannot be parsed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_short_date(value: date) -> str:
    """US short date without padding, e.g. 3/7/2025."""
    return f"{value.month}/{value.day}/{value.year}"


def display_date(value: Any, fallback: str = NOT_SPECIFIED) -> str:
    """Render a date field; unparseable values are shown verbatim."""
    if not is_present(value):
        return fallback
    parsed = parse_date(value)
    if parsed is None:
        return str(value).strip()
    return format_short_date(parsed)


def sanitize_filename(name: str) -> str:
    """Best-effort filename cleanup for Content-Disposition."""
    cleaned = _FILENAME_UNSAFE.sub("_", name).strip("._")
    return cleaned or "report"
