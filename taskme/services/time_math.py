"""Clock-time and duration parsing for user-entered task fields.

Every function here is total: malformed text degrades to None or 0 instead
of raising, so a single bad task never breaks scheduling or display.
"""
import math
import re
from datetime import datetime, timedelta
from typing import Optional

_MERIDIEM_RE = re.compile(r"(am|pm)\b", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+)\s*h", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*m", re.IGNORECASE)
_SECONDS_RE = re.compile(r"(\d+)\s*s", re.IGNORECASE)
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _parse_int(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not _INT_RE.fullmatch(raw):
        return None
    return int(raw)


def _first_int(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def parse_clock_time(spec: Optional[str], reference: datetime) -> Optional[datetime]:
    """Resolve a time of day like "7:00 AM", "7:00pm" or "19:05" on reference's day.

    Returns None when the hour or minute is not an integer or falls outside
    a valid wall-clock range.
    """
    if not spec:
        return None
    raw = spec.strip()

    meridiem = None
    match = _MERIDIEM_RE.search(raw)
    if match:
        meridiem = match.group(1).lower()
        raw = (raw[:match.start()] + raw[match.end():]).strip()

    parts = raw.split(":")
    hour = _parse_int(parts[0])
    minute = _parse_int(parts[1]) if len(parts) >= 2 else 0
    if hour is None or minute is None:
        return None

    if meridiem == "am" and hour == 12:
        hour = 0
    elif meridiem == "pm" and hour != 12:
        hour += 12

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return reference.replace(hour=hour, minute=minute, second=0, microsecond=0)


def parse_duration_ms(spec: Optional[str]) -> int:
    """Convert "2h 30m 10s" (any subset of units) to milliseconds."""
    if not spec:
        return 0
    text = spec.strip()
    hours = _first_int(_HOURS_RE, text)
    minutes = _first_int(_MINUTES_RE, text)
    seconds = _first_int(_SECONDS_RE, text)
    return ((hours * 60 + minutes) * 60 + seconds) * 1000


def build_duration_spec(hours: int, minutes: int, seconds: int) -> str:
    """Inverse of parse_duration_ms for the creation form: zero units are omitted."""
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    return " ".join(parts) if parts else "0s"


def add_calendar_days(instant: datetime, days: int) -> datetime:
    """Move to the same wall-clock time on another local calendar day."""
    return instant + timedelta(days=days)


def next_grid_occurrence(anchor: datetime, step_ms: int, now: datetime) -> datetime:
    """Smallest point of the grid anchor + k*step that is at or after now.

    The anchor itself is returned when it is still ahead of now or when the
    step is not positive.
    """
    if step_ms <= 0 or anchor >= now:
        return anchor
    elapsed_ms = (now - anchor) / timedelta(milliseconds=1)
    k = math.ceil(elapsed_ms / step_ms)
    return anchor + timedelta(milliseconds=k * step_ms)


def to_epoch_ms(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


def from_epoch_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000)
