import random
import string
import time
from typing import Any, Dict


class DatabaseError(Exception):
    """Custom exception for database operations."""
    pass


_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_task_id() -> str:
    """Local-only task id: base36 epoch millis plus 8 random base36 chars."""
    suffix = "".join(random.choices(_BASE36, k=8))
    return f"{_to_base36(int(time.time() * 1000))}-{suffix}"


def _deserialize_task_row(row) -> Dict[str, Any]:
    """Convert a raw database row into a task dict.

    reminder_every_mins may be NULL for older rows and non-reminder tasks.
    """
    task_dict = dict(row)
    every = task_dict.get("reminder_every_mins")
    task_dict["reminder_every_mins"] = int(every) if every is not None else None
    return task_dict
