import logging
import sys
from pathlib import Path
from typing import Optional, Union

from config import LOG_DIR, LOG_LEVEL


class _ConsoleNoiseFilter(logging.Filter):
    """Keep Task Me logs on the console, third-party libraries only from ERROR."""

    _OWN_PREFIXES = (
        "api", "core", "config", "database", "events", "formatters",
        "models", "services", "__main__",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.split(".")[0] in self._OWN_PREFIXES:
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    log_dir: Union[Path, str, None] = None,
    console_level: Optional[int] = None,
    file_level: int = logging.DEBUG,
) -> None:
    """Configure a filtered console handler and a full file log.

    Call this once, very early, before the first log record.
    """
    log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level if console_level is not None else LOG_LEVEL)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_dir / "taskme.log"), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
