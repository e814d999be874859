from datetime import UTC, datetime


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for stored session timestamps."""
    return datetime.now(UTC).replace(tzinfo=None)


def isoformat_or_none(value):
    return value.isoformat() if value else None


def parse_iso_or_none(raw_value):
    raw = str(raw_value or '').strip()
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
