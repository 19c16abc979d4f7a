from __future__ import annotations

import copy
import time
from typing import Any

from . import seed
from .constants import ENTITY_LABELS, ENTITY_TYPES, MANAGER, PARENT, STUDENT, TEACHER
from .errors import NotFoundError, UnknownEntityTypeError, ValidationError
from .logger import now_ts
from .templates import EntityTemplate, FieldDescriptor, TemplateStore

LEVEL = "level"
CLASS = "class"
SUBJECT = "subject"
CATALOG_KINDS = (LEVEL, CLASS, SUBJECT)
CATALOG_LABELS = {LEVEL: "Level", CLASS: "Class", SUBJECT: "Subject"}
CATALOG_PREFIXES = {LEVEL: "LVL-", CLASS: "CLS-", SUBJECT: "SUB-"}

DEFAULT_ID_PREFIXES = {STUDENT: "STU-", TEACHER: "TCH-", PARENT: "PAR-", MANAGER: "MGR-"}

# Relation attributes every record of a kind carries, with their empty values.
RELATION_DEFAULTS: dict[str, dict[str, Any]] = {
    STUDENT: {"level_id": "", "class_id": "", "parent_ids": [], "default_parent_id": ""},
    TEACHER: {"subject_ids": [], "class_ids": [], "photo": ""},
    PARENT: {"student_ids": []},
    MANAGER: {"class_ids": [], "photo": ""},
}

CATALOG_DEFAULTS: dict[str, dict[str, Any]] = {
    LEVEL: {"name": "", "description": ""},
    CLASS: {"name": "", "section": "", "capacity": 0, "level_id": ""},
    SUBJECT: {"name": "", "code": "", "description": ""},
}


def next_id(prefix: str, existing_ids: list[str]) -> str:
    """Next ``{prefix}NNNN`` after the highest number already issued with that prefix."""
    max_n = 0
    for eid in existing_ids:
        if not eid.startswith(prefix):
            continue
        tail = eid[len(prefix):]
        digits = "".join(ch for ch in tail if ch.isdigit())
        if digits:
            max_n = max(max_n, int(digits))
    return f"{prefix}{max_n + 1:04d}"


def full_name(record: dict[str, Any]) -> str:
    return f"{record.get('firstname', '') or ''} {record.get('lastname', '') or ''}".strip()


def _clean_names(data: dict[str, Any], *, partial: bool) -> dict[str, str]:
    errors: dict[str, str] = {}
    cleaned: dict[str, str] = {}
    for key, label in (("firstname", "First name"), ("lastname", "Last name")):
        if partial and key not in data:
            continue
        value = str(data.get(key, "") or "").strip()
        if not value:
            errors[key] = f"{label} is required"
        cleaned[key] = value
    if errors:
        raise ValidationError(errors)
    return cleaned


class MemoryStore:
    """Process-local stand-in for the school backend.

    Every public call sleeps ``delay_ms`` first and hands out deep copies, so
    callers can mutate what they get without touching stored state.
    """

    def __init__(self, delay_ms: int = 0, id_prefixes: dict[str, str] | None = None):
        self.delay_ms = max(0, int(delay_ms))
        self.id_prefixes = dict(DEFAULT_ID_PREFIXES)
        self.id_prefixes.update(id_prefixes or {})

        self.templates = TemplateStore(seed.default_templates())
        self._entities: dict[str, list[dict[str, Any]]] = {
            STUDENT: seed.students(),
            TEACHER: seed.teachers(),
            PARENT: seed.parents(),
            MANAGER: seed.managers(),
        }
        self._catalogs: dict[str, list[dict[str, Any]]] = {
            LEVEL: seed.levels(),
            CLASS: seed.classes(),
            SUBJECT: seed.subjects(),
        }
        self._sessions: list[str] = list(seed.DEFAULT_SESSIONS)
        self._tables: dict[Any, list[dict[str, Any]]] = dict(seed.attendance())
        self._tables.update(
            {
                "units": seed.units(),
                "lessons": seed.lessons(),
                "questions": seed.questions(),
                "exams": [],
                "attempts": [],
            }
        )

    # ---------- plumbing shared with the attendance and exam services ----------
    def latency(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)

    def table(self, key: Any) -> list[dict[str, Any]]:
        """Live backing list for a collection (services mutate it in place)."""
        return self._tables.setdefault(key, [])

    def new_id(self, prefix: str, rows: list[dict[str, Any]]) -> str:
        return next_id(prefix, [str(r.get("id", "")) for r in rows])

    def configure(self, *, delay_ms: int | None = None, id_prefixes: dict[str, str] | None = None) -> None:
        if delay_ms is not None:
            self.delay_ms = max(0, int(delay_ms))
        if id_prefixes:
            self.id_prefixes.update(id_prefixes)

    # ---------- templates ----------
    def get_template(self, entity_type: str) -> EntityTemplate:
        self.latency()
        return self.templates.get(entity_type)

    def update_template(self, entity_type: str, fields: list[FieldDescriptor]) -> EntityTemplate:
        self.latency()
        return self.templates.update(entity_type, fields)

    # ---------- people ----------
    def _rows(self, entity_type: str) -> list[dict[str, Any]]:
        if entity_type not in ENTITY_TYPES:
            raise UnknownEntityTypeError(entity_type)
        return self._entities[entity_type]

    def _find(self, entity_type: str, record_id: str) -> dict[str, Any]:
        for r in self._rows(entity_type):
            if r["id"] == record_id:
                return r
        raise NotFoundError(ENTITY_LABELS[entity_type], record_id)

    def list_entities(self, entity_type: str) -> list[dict[str, Any]]:
        self.latency()
        return copy.deepcopy(self._rows(entity_type))

    def get_entity(self, entity_type: str, record_id: str) -> dict[str, Any]:
        self.latency()
        return copy.deepcopy(self._find(entity_type, record_id))

    def create_entity(self, entity_type: str, data: dict[str, Any]) -> dict[str, Any]:
        self.latency()
        rows = self._rows(entity_type)
        names = _clean_names(data, partial=False)
        now = now_ts()
        record: dict[str, Any] = copy.deepcopy(RELATION_DEFAULTS[entity_type])
        for key in record:
            if key in data:
                record[key] = copy.deepcopy(data[key])
        record.update(names)
        record["id"] = self.new_id(self.id_prefixes[entity_type], rows)
        record["dynamic_fields"] = copy.deepcopy(dict(data.get("dynamic_fields") or {}))
        record["created_at"] = now
        record["updated_at"] = now
        if entity_type == STUDENT and not record["default_parent_id"] and record["parent_ids"]:
            record["default_parent_id"] = record["parent_ids"][0]
        rows.append(record)
        return copy.deepcopy(record)

    def update_entity(self, entity_type: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.latency()
        record = self._find(entity_type, record_id)
        names = _clean_names(changes, partial=True)
        for key, value in changes.items():
            if key in ("id", "created_at", "updated_at", "firstname", "lastname"):
                continue
            if key == "dynamic_fields":
                record["dynamic_fields"].update(copy.deepcopy(dict(value or {})))
            else:
                record[key] = copy.deepcopy(value)
        record.update(names)
        if entity_type == STUDENT and record.get("default_parent_id") not in record.get("parent_ids", []):
            record["default_parent_id"] = record["parent_ids"][0] if record.get("parent_ids") else ""
        record["updated_at"] = now_ts()
        return copy.deepcopy(record)

    def delete_entity(self, entity_type: str, record_id: str) -> None:
        self.latency()
        rows = self._rows(entity_type)
        record = self._find(entity_type, record_id)
        rows.remove(record)

    # ---------- catalogs ----------
    def _catalog(self, kind: str) -> list[dict[str, Any]]:
        if kind not in CATALOG_KINDS:
            raise UnknownEntityTypeError(kind)
        return self._catalogs[kind]

    def _find_item(self, kind: str, item_id: str) -> dict[str, Any]:
        for r in self._catalog(kind):
            if r["id"] == item_id:
                return r
        raise NotFoundError(CATALOG_LABELS[kind], item_id)

    @staticmethod
    def _clean_item(kind: str, data: dict[str, Any], base: dict[str, Any]) -> dict[str, Any]:
        item = dict(base)
        for key in CATALOG_DEFAULTS[kind]:
            if key in data:
                item[key] = data[key]
        item["name"] = str(item.get("name", "") or "").strip()
        if not item["name"]:
            raise ValidationError({"name": "Name is required"})
        if kind == CLASS:
            try:
                item["capacity"] = int(item.get("capacity") or 0)
            except (TypeError, ValueError):
                raise ValidationError({"capacity": "Capacity must be a number"}) from None
        return item

    def list_catalog(self, kind: str) -> list[dict[str, Any]]:
        self.latency()
        return copy.deepcopy(self._catalog(kind))

    def get_catalog_item(self, kind: str, item_id: str) -> dict[str, Any]:
        self.latency()
        return copy.deepcopy(self._find_item(kind, item_id))

    def create_catalog_item(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        self.latency()
        rows = self._catalog(kind)
        item = self._clean_item(kind, data, CATALOG_DEFAULTS[kind])
        item["id"] = self.new_id(CATALOG_PREFIXES[kind], rows)
        rows.append(item)
        return copy.deepcopy(item)

    def update_catalog_item(self, kind: str, item_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.latency()
        current = self._find_item(kind, item_id)
        current.update(self._clean_item(kind, changes, current))
        return copy.deepcopy(current)

    def delete_catalog_item(self, kind: str, item_id: str) -> None:
        self.latency()
        rows = self._catalog(kind)
        rows.remove(self._find_item(kind, item_id))

    # ---------- cross-collection queries ----------
    def global_search(self, query: str) -> list[dict[str, Any]]:
        """Case-insensitive name match over people; students also match by id."""
        self.latency()
        q = (query or "").strip().lower()
        if not q:
            return []
        hits: list[dict[str, Any]] = []
        for entity_type in ENTITY_TYPES:
            for r in self._entities[entity_type]:
                name = full_name(r)
                blob = name.lower()
                if entity_type == STUDENT:
                    blob = f"{blob} {r['id'].lower()}"
                if q in blob:
                    hits.append({"entity_type": entity_type, "id": r["id"], "name": name})
        return hits

    def dashboard_stats(self) -> dict[str, int]:
        self.latency()
        return {
            "students": len(self._entities[STUDENT]),
            "teachers": len(self._entities[TEACHER]),
            "parents": len(self._entities[PARENT]),
            "managers": len(self._entities[MANAGER]),
            "classes": len(self._catalogs[CLASS]),
            "levels": len(self._catalogs[LEVEL]),
            "subjects": len(self._catalogs[SUBJECT]),
        }

    def students_by_class(self) -> dict[str, int]:
        self.latency()
        counts = {c["name"]: 0 for c in self._catalogs[CLASS]}
        names = {c["id"]: c["name"] for c in self._catalogs[CLASS]}
        for s in self._entities[STUDENT]:
            cls = names.get(s.get("class_id", ""))
            if cls is not None:
                counts[cls] += 1
        return counts

    # ---------- predefined settings ----------
    def get_sessions(self) -> list[str]:
        self.latency()
        return list(self._sessions)

    def update_sessions(self, sessions: list[str]) -> list[str]:
        self.latency()
        cleaned: list[str] = []
        for s in sessions:
            s = str(s or "").strip()
            if s and s not in cleaned:
                cleaned.append(s)
        if not cleaned:
            raise ValidationError({"sessions": "At least one session is required"})
        self._sessions = cleaned
        return list(cleaned)
