from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from config import (
    DEFAULT_IMPORTANCE,
    Importance,
    TaskCategory,
    TaskPhase,
)


@dataclass
class Task:
    """Task entity as stored by the task store.

    Treated as immutable input by the scheduling and display code.
    """
    id: str
    title: str
    duration: str
    category: TaskCategory
    start_time: str
    importance: Importance = DEFAULT_IMPORTANCE
    reminder_every_mins: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def reminder_interval_ms(self) -> int:
        """Reminder step in milliseconds, 0 when the task has no usable interval."""
        if self.category != TaskCategory.REMINDER or not self.reminder_every_mins:
            return 0
        return max(0, self.reminder_every_mins) * 60 * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for database storage."""
        return {
            "id": self.id,
            "title": self.title,
            "duration": self.duration,
            "importance": self.importance.value,
            "category": self.category.value,
            "start_time": self.start_time,
            "reminder_every_mins": self.reminder_every_mins,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        """Create Task from dictionary.

        Category and importance accept either enum values or legacy free text.
        """
        created = d.get("created_at")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        every = d.get("reminder_every_mins")
        return cls(
            id=str(d["id"]),
            title=str(d["title"]),
            duration=str(d.get("duration") or ""),
            importance=Importance.from_text(d.get("importance")),
            category=TaskCategory.from_text(d.get("category")),
            start_time=str(d.get("start_time") or ""),
            reminder_every_mins=int(every) if every is not None else None,
            created_at=created or datetime.now(),
        )


@dataclass
class ScheduledTrigger:
    """Ledger entry: an external notification handle and its trigger time."""
    notification_id: str
    trigger_at: int  # epoch milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return {"notification_id": self.notification_id, "trigger_at": self.trigger_at}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScheduledTrigger":
        return cls(
            notification_id=str(d["notification_id"]),
            trigger_at=int(d["trigger_at"]),
        )


@dataclass
class TaskViewState:
    """Computed display state for a task at a given instant. Never persisted."""
    task: Task
    phase: TaskPhase
    progress: float
    next_relevant: Optional[datetime]
    sort_key: float
    started_label: str
    every_label: Optional[str] = None
    periodic: bool = False
    incomplete: bool = False

    @property
    def percent_label(self) -> str:
        return f"{round(self.progress * 100)}%"
