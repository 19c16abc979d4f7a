from __future__ import annotations

from pathlib import Path

APP_NAME = "SchoolDesk"

WORKSPACE_ROOT = Path(__file__).resolve().parents[1]
SETTINGS_JSON_PATH = WORKSPACE_ROOT / "settings.json"
ERROR_LOG_PATH = WORKSPACE_ROOT / "error_log.txt"

STUDENT = "student"
TEACHER = "teacher"
PARENT = "parent"
MANAGER = "manager"
ENTITY_TYPES = (STUDENT, TEACHER, PARENT, MANAGER)
ATTENDANCE_ENTITY_TYPES = (STUDENT, TEACHER, MANAGER)

ENTITY_LABELS = {
    STUDENT: "Student",
    TEACHER: "Teacher",
    PARENT: "Parent",
    MANAGER: "Manager",
}

EMPTY_DISPLAY = "—"
