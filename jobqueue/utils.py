from datetime import datetime, timedelta, timezone
import re

# e.g., "20s", "5m", "1h30m", "2d3h", "90m", "  2h  "
DELAY_RE = re.compile(r"(?i)^\s*(?:(\d+)\s*d)?\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?\s*(?:(\d+)\s*s)?\s*$")


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def parse_delay_to_seconds(s: str) -> int:
    """
    Parse delay strings like '20s', '5m', '1h30m', '2d3h', '90m'.
    Returns total seconds (int). Raises ValueError on bad input or zero.
    """
    if not s:
        raise ValueError("delay string is empty")
    m = DELAY_RE.match(s)
    if not m:
        raise ValueError(f"Invalid delay format: {s!r}")
    d, h, m_, s_ = m.groups()
    total = 0
    if d:
        total += int(d) * 86400
    if h:
        total += int(h) * 3600
    if m_:
        total += int(m_) * 60
    if s_:
        total += int(s_)
    if total <= 0:
        raise ValueError("delay must be > 0 seconds")
    return total


def parse_run_at(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid run_at format: {value} ({e})") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def seconds_from_now(seconds: float) -> datetime:
    """Return the UTC time `seconds` from now."""
    return utcnow() + timedelta(seconds=seconds)
