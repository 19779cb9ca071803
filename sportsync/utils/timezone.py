"""
Timezone utilities for provider timestamps.

All times are stored as naive UTC datetimes. Providers report kickoff
times as ISO 8601 strings with an offset (api_football) or as UTC
strings with a trailing ``Z`` (highlightly); both are converted here.
"""
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


def parse_provider_datetime(value) -> Optional[datetime]:
    """
    Parse a provider timestamp into a naive UTC datetime.

    Accepts ISO 8601 strings (with ``Z`` or an explicit offset), unix
    timestamps (int/float seconds) and datetime objects.

    Returns:
        Naive UTC datetime, or None when the value is empty

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, UTC)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
