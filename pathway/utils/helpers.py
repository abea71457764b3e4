"""Shared timestamp and input helpers.

parse_timestamp:   stored ISO strings → aware datetimes (None on empty input)
to_iso:            aware datetimes → ISO strings for the document body
require_text:      non-blank string or ValidationError
"""
from datetime import date, datetime, timezone

from pathway.core.exceptions import ValidationError


def parse_timestamp(value):
    """Parse an ISO-8601 timestamp into a timezone-aware UTC datetime.

    Returns None for empty input. Naive values are assumed to be UTC, and a
    bare ``YYYY-MM-DD`` date is read as midnight UTC. Raises ValueError on
    anything else so corrupt documents are not silently accepted.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value):
    """Render an aware datetime the way documents store it (None passes through)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp_input(value, field: str):
    """Same as parse_timestamp() but raises ValidationError on bad input.

    Used by form parsing where callers surface the error to the user.
    """
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field} must be an ISO-8601 timestamp",
            details={field: "invalid timestamp"},
        ) from None


def require_text(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value.strip()


def optional_text(data: dict, field: str) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "invalid type"})
    return value.strip() or None
