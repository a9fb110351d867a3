"""Time formatting utilities for task labels.

Converts instants and offsets to the short strings shown on task cards,
like "7:00 AM (in 15mins)" or "9:30 PM (tomorrow)".
"""
from datetime import datetime


class TimeFormatter:
    """Unified time formatting utilities for the application."""

    @staticmethod
    def time_label(instant: datetime) -> str:
        """Format a wall-clock time like '7:00 AM'."""
        hour = instant.hour % 12 or 12
        suffix = "AM" if instant.hour < 12 else "PM"
        return f"{hour}:{instant.minute:02d} {suffix}"

    @staticmethod
    def relative(reference: datetime, now: datetime) -> str:
        """Describe reference relative to now, e.g. '5mins ago' or 'in 1hr 10mins'."""
        diff_ms = (now - reference).total_seconds() * 1000
        mins = round(abs(diff_ms) / 60000)
        past = diff_ms >= 0

        if mins < 1:
            return "just now" if past else "in a moment"
        if mins < 60:
            return f"{mins}mins ago" if past else f"in {mins}mins"

        hours, rem = divmod(mins, 60)
        if hours < 24:
            return f"{hours}hr {rem}mins ago" if past else f"in {hours}hr {rem}mins"

        days = hours // 24
        return f"{days}d ago" if past else f"in {days}d"

    @classmethod
    def started_label(cls, instant: datetime, now: datetime) -> str:
        return f"{cls.time_label(instant)} ({cls.relative(instant, now)})"

    @classmethod
    def tomorrow_label(cls, instant: datetime) -> str:
        return f"{cls.time_label(instant)} (tomorrow)"

    @staticmethod
    def every_label(minutes: int) -> str:
        return f"{minutes}mins"
