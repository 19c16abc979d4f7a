from __future__ import annotations

import traceback
from datetime import datetime, timezone
from pathlib import Path

from .constants import ERROR_LOG_PATH


def now_ts() -> str:
    # Records carry UTC timestamps with a trailing Z, like the seed data.
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class ErrorLogger:
    """Appends unexpected UI failures to ``error_log.txt``."""

    def __init__(self, path: Path = ERROR_LOG_PATH):
        self.path = path

    def log_exception(self, exc: BaseException, context: str = "") -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        header = f"[{now_ts()}] {context or 'unhandled'}: {type(exc).__name__}"
        with self.path.open("a", encoding="utf-8") as f:
            f.write(header + "\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            f.write("\n")
