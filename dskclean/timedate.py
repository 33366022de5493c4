import datetime
import re
from typing import Optional

_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime.datetime:
    """Current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def utc_stamp(moment: Optional[datetime.datetime] = None) -> str:
    """
    ISO 8601 UTC time to the second, e.g. '2024-03-01T10:00:00Z'. Defaults to now.
    """
    moment = (moment or utc_now()).astimezone(datetime.timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_runtime_timestamp(value) -> Optional[datetime.datetime]:
    """
    Parse a creation timestamp reported by the container runtime.

    The Docker API reports RFC 3339 strings with nanosecond precision
    ("2024-03-01T10:00:00.123456789Z"), and some legacy endpoints report Unix
    seconds. Fractions are truncated to microseconds.

    Args:
        value: An RFC 3339 string, a Unix timestamp or None.

    Returns:
        Optional[datetime.datetime]: An aware UTC datetime, or None when the value is empty
        or cannot be parsed.

    Example:
        >>> parse_runtime_timestamp("2024-03-01T10:00:00.123456789Z").microsecond
        123456
        >>> parse_runtime_timestamp(0).year
        1970
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)
