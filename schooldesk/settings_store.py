from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import MANAGER, PARENT, SETTINGS_JSON_PATH, STUDENT, TEACHER


def _clamped_int(raw: Any, default: int, low: int, high: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    return max(low, min(high, value))


@dataclass
class Settings:
    student_id_prefix: str = "STU-"
    teacher_id_prefix: str = "TCH-"
    parent_id_prefix: str = "PAR-"
    manager_id_prefix: str = "MGR-"
    mock_delay_ms: int = 50  # Simulated latency of every store call
    table_dynamic_columns: int = 2  # Template fields shown as table columns

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Settings":
        return Settings(
            student_id_prefix=str(d.get("student_id_prefix", "STU-") or "STU-"),
            teacher_id_prefix=str(d.get("teacher_id_prefix", "TCH-") or "TCH-"),
            parent_id_prefix=str(d.get("parent_id_prefix", "PAR-") or "PAR-"),
            manager_id_prefix=str(d.get("manager_id_prefix", "MGR-") or "MGR-"),
            # Keep latency bounded so the UI never stalls for long.
            mock_delay_ms=_clamped_int(d.get("mock_delay_ms", 50), 50, 0, 2000),
            table_dynamic_columns=_clamped_int(d.get("table_dynamic_columns", 2), 2, 0, 5),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id_prefix": self.student_id_prefix,
            "teacher_id_prefix": self.teacher_id_prefix,
            "parent_id_prefix": self.parent_id_prefix,
            "manager_id_prefix": self.manager_id_prefix,
            "mock_delay_ms": self.mock_delay_ms,
            "table_dynamic_columns": self.table_dynamic_columns,
        }

    def id_prefixes(self) -> dict[str, str]:
        return {
            STUDENT: self.student_id_prefix,
            TEACHER: self.teacher_id_prefix,
            PARENT: self.parent_id_prefix,
            MANAGER: self.manager_id_prefix,
        }


class SettingsStore:
    def __init__(self, path: Path = SETTINGS_JSON_PATH):
        self.path = path

    def load(self) -> Settings:
        if not self.path.exists():
            settings = Settings()
            self.save(settings)
            return settings

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return Settings.from_dict(data if isinstance(data, dict) else {})

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
            f.write("\n")
