"""Application configuration - single source of truth for all constants.

Contains the task enums (TaskCategory, TaskPhase, Importance), scheduling
limits, notification channel settings, and environment-driven paths.
Import from here instead of hardcoding values elsewhere to ensure consistency across the app.
"""
import logging
import os
from enum import Enum
from pathlib import Path

# Load .env if available (desktop only - not bundled in mobile builds)
try:
    from dotenv import load_dotenv
    load_dotenv(Path(__file__).parent / ".env")
except ImportError:
    pass  # dotenv not available on mobile, skip loading .env


class TaskCategory(Enum):
    """Enum for task categories.

    Assigned once when a task enters the store. Legacy free-text categories
    are mapped with from_text().
    """
    ROUTINE = "Routine"
    ONE_TIME = "One-time"
    REMINDER = "Reminder"
    UNKNOWN = "Unknown"

    @classmethod
    def from_text(cls, text) -> "TaskCategory":
        """Classify a free-text category label.

        "reminder" wins over "routine", which wins over "one".
        """
        if isinstance(text, cls):
            return text
        lowered = (text or "").lower()
        if "reminder" in lowered:
            return cls.REMINDER
        if "routine" in lowered:
            return cls.ROUTINE
        if "one" in lowered:
            return cls.ONE_TIME
        return cls.UNKNOWN


class TaskPhase(Enum):
    """Lifecycle phase of a task relative to the current time."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    AWAITING_RESET = "awaiting_reset"


class Importance(Enum):
    """Enum for task importance levels (informational only)."""
    NOT_TOO_IMPORTANT = "Not too important"
    MID = "Mid"
    VERY_IMPORTANT = "Very Important"
    EXTREMELY_IMPORTANT = "Extremely important"

    @classmethod
    def from_text(cls, text) -> "Importance":
        if isinstance(text, cls):
            return text
        for member in cls:
            if member.value.lower() == (text or "").strip().lower():
                return member
        return cls.MID


class NotificationType(Enum):
    """Enum for notification types."""
    FOCUS = "focus"
    REMINDER = "reminder"


class PermissionResult(Enum):
    """Result of notification permission request."""
    GRANTED = "granted"
    DENIED = "denied"
    NOT_REQUIRED = "not_required"  # Desktop platforms don't need runtime permission


APP_TITLE = "Task Me"

# Scheduling
SCHEDULING_HORIZON_DAYS = 7
MAX_REMINDER_OCCURRENCES = 60  # iOS caps pending local notifications at 64
LEDGER_RETENTION_DAYS = 10
CLOCK_SKEW_GUARD_MS = 1000
LEDGER_SETTING_KEY = "scheduled_alarms.v1"

# Display refresh
REFRESH_INTERVAL_SECONDS = 15

# Desktop polling loop for pending notifications
SCHEDULER_INTERVAL_SECONDS = 60

# Android channel sound cannot be changed once created; bump the id when it changes.
ANDROID_CHANNEL_ID = "task-alarms-v2"
ANDROID_CHANNEL_NAME = "Task Alarms"

DEFAULT_IMPORTANCE = Importance.MID
DEFAULT_CATEGORY = TaskCategory.ROUTINE

# Environment
DB_PATH = Path(os.getenv("TASKME_DB_PATH", "") or "taskme.db")
LOG_DIR = Path(os.getenv("TASKME_LOG_DIR", "") or ".local/taskme")
LOG_LEVEL = logging.getLevelName(os.getenv("TASKME_LOG_LEVEL", "INFO").upper())
if not isinstance(LOG_LEVEL, int):
    LOG_LEVEL = logging.INFO
