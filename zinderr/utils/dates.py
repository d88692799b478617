from datetime import datetime, timezone
from dateutil import parser


def utcnow():
    # Columns are naive UTC, so keep everything naive at the boundary.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_instant(value):
    """Parse an ISO-8601 string into naive UTC. Raises ValueError on junk."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    try:
        parsed = parser.isoparse(value)
    except (TypeError, OverflowError) as e:
        raise ValueError(str(e))
    return to_naive_utc(parsed)


def isoformat_z(value):
    return value.isoformat() + "Z" if value else None
