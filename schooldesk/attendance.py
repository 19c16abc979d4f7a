"""Absence and late tracking for students, teachers and managers.

Students and managers get at most one record of each kind per day. Teachers are
tracked per teaching session, so the uniqueness key also includes ``session``.
"""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Any

from .constants import ATTENDANCE_ENTITY_TYPES, ENTITY_LABELS, MANAGER, STUDENT, TEACHER
from .errors import DuplicateRecordError, NotFoundError, UnknownEntityTypeError, ValidationError
from .logger import now_ts

ABSENCE = "absence"
LATE = "late"
KINDS = (ABSENCE, LATE)
KIND_LABELS = {ABSENCE: "Absence", LATE: "Late"}

ID_PREFIXES = {
    (STUDENT, ABSENCE): "SA-",
    (STUDENT, LATE): "SL-",
    (TEACHER, ABSENCE): "TA-",
    (TEACHER, LATE): "TL-",
    (MANAGER, ABSENCE): "MA-",
    (MANAGER, LATE): "ML-",
}


@dataclass
class AttendanceFilter:
    entity_id: str = ""
    date_from: str = ""
    date_to: str = ""
    is_justified: bool | None = None

    def matches(self, record: dict[str, Any]) -> bool:
        if self.entity_id and record.get("entity_id") != self.entity_id:
            return False
        # ISO dates compare correctly as strings.
        if self.date_from and record.get("date", "") < self.date_from:
            return False
        if self.date_to and record.get("date", "") > self.date_to:
            return False
        if self.is_justified is not None and bool(record.get("is_justified")) != self.is_justified:
            return False
        return True


@dataclass
class AttendanceStats:
    total_absences: int = 0
    justified_absences: int = 0
    unjustified_absences: int = 0
    total_lates: int = 0
    justified_lates: int = 0
    unjustified_lates: int = 0
    average_late_period: int = 0

    def summary(self) -> str:
        return (
            f"Absences: {self.total_absences} ({self.justified_absences} justified, "
            f"{self.unjustified_absences} unjustified) | "
            f"Lates: {self.total_lates} ({self.justified_lates} justified) | "
            f"Avg late: {self.average_late_period} min"
        )


@dataclass
class BulkResult:
    created: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    message: str = ""


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _key(entity_type: str, record: dict[str, Any]) -> tuple[str, ...]:
    if entity_type == TEACHER:
        return (record.get("entity_id", ""), record.get("session", ""), record.get("date", ""))
    return (record.get("entity_id", ""), record.get("date", ""))


def _duplicate_message(entity_type: str, kind: str) -> str:
    where = "this session/date" if entity_type == TEACHER else "this date"
    return f"{KIND_LABELS[kind]} already exists for this {entity_type} on {where}"


def _describe(entity_type: str, record: dict[str, Any]) -> str:
    if entity_type == TEACHER:
        return f"{record.get('entity_id', '')} {record.get('session', '')} on {record.get('date', '')}"
    return f"{record.get('entity_id', '')} on {record.get('date', '')}"


class AttendanceService:
    def __init__(self, store):
        self.store = store

    def _table(self, entity_type: str, kind: str) -> list[dict[str, Any]]:
        if entity_type not in ATTENDANCE_ENTITY_TYPES:
            raise UnknownEntityTypeError(entity_type)
        if kind not in KINDS:
            raise ValueError(f"Unknown attendance kind: {kind!r}")
        return self.store.table((entity_type, kind))

    @staticmethod
    def _clean(entity_type: str, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        errors: dict[str, str] = {}
        record = {
            "entity_id": str(data.get("entity_id", "") or "").strip(),
            "date": str(data.get("date", "") or "").strip(),
            "is_justified": bool(data.get("is_justified", False)),
            "reason": str(data.get("reason", "") or ""),
        }
        if not record["entity_id"]:
            errors["entity_id"] = f"{ENTITY_LABELS[entity_type]} is required"
        if not record["date"]:
            errors["date"] = "Date is required"
        if entity_type == TEACHER:
            record["session"] = str(data.get("session", "") or "").strip()
            if not record["session"]:
                errors["session"] = "Session is required"
        if kind == LATE:
            try:
                record["period"] = int(data.get("period", 0) or 0)
            except (TypeError, ValueError):
                errors["period"] = "Period must be a number"
            else:
                if record["period"] < 0:
                    errors["period"] = "Period cannot be negative"
        if errors:
            raise ValidationError(errors)
        return record

    def _is_duplicate(self, entity_type: str, rows: list[dict[str, Any]], record: dict[str, Any], exclude_id: str = "") -> bool:
        key = _key(entity_type, record)
        return any(_key(entity_type, r) == key and r.get("id") != exclude_id for r in rows)

    def list_records(self, entity_type: str, kind: str, flt: AttendanceFilter | None = None) -> list[dict[str, Any]]:
        self.store.latency()
        flt = flt or AttendanceFilter()
        return [copy.deepcopy(r) for r in self._table(entity_type, kind) if flt.matches(r)]

    def create_record(self, entity_type: str, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        rows = self._table(entity_type, kind)
        record = self._clean(entity_type, kind, data)
        if self._is_duplicate(entity_type, rows, record):
            raise DuplicateRecordError(_duplicate_message(entity_type, kind))
        record["id"] = self.store.new_id(ID_PREFIXES[(entity_type, kind)], rows)
        record["created_at"] = now_ts()
        rows.append(record)
        return copy.deepcopy(record)

    def create_bulk(self, entity_type: str, kind: str, records: list[dict[str, Any]]) -> BulkResult:
        """Create many records, skipping duplicates of stored or earlier batch rows."""
        self.store.latency()
        rows = self._table(entity_type, kind)
        result = BulkResult()
        batch: list[dict[str, Any]] = []
        for data in records:
            record = self._clean(entity_type, kind, data)
            if self._is_duplicate(entity_type, rows, record) or self._is_duplicate(entity_type, batch, record):
                result.skipped.append(_describe(entity_type, record))
                continue
            record["id"] = self.store.new_id(ID_PREFIXES[(entity_type, kind)], rows + batch)
            record["created_at"] = now_ts()
            batch.append(record)
        rows.extend(batch)
        result.created = copy.deepcopy(batch)
        noun = "absences" if kind == ABSENCE else "lates"
        if result.skipped:
            result.message = f"{len(batch)} added, {len(result.skipped)} duplicates skipped"
        else:
            result.message = f"{len(batch)} {noun} added"
        return result

    def update_record(self, entity_type: str, kind: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        rows = self._table(entity_type, kind)
        for r in rows:
            if r["id"] == record_id:
                break
        else:
            raise NotFoundError(KIND_LABELS[kind], record_id)
        merged = dict(r)
        merged.update(changes)
        cleaned = self._clean(entity_type, kind, merged)
        if self._is_duplicate(entity_type, rows, cleaned, exclude_id=record_id):
            raise DuplicateRecordError(_duplicate_message(entity_type, kind))
        r.update(cleaned)
        return copy.deepcopy(r)

    def delete_record(self, entity_type: str, kind: str, record_id: str) -> None:
        self.store.latency()
        rows = self._table(entity_type, kind)
        rows[:] = [r for r in rows if r["id"] != record_id]

    def stats(self, entity_type: str, flt: AttendanceFilter | None = None) -> AttendanceStats:
        self.store.latency()
        flt = flt or AttendanceFilter()
        absences = [r for r in self._table(entity_type, ABSENCE) if flt.matches(r)]
        lates = [r for r in self._table(entity_type, LATE) if flt.matches(r)]
        total_lates = len(lates)
        average = 0
        if total_lates:
            average = round_half_up(sum(int(r.get("period", 0) or 0) for r in lates) / total_lates)
        return AttendanceStats(
            total_absences=len(absences),
            justified_absences=sum(1 for r in absences if r.get("is_justified")),
            unjustified_absences=sum(1 for r in absences if not r.get("is_justified")),
            total_lates=total_lates,
            justified_lates=sum(1 for r in lates if r.get("is_justified")),
            unjustified_lates=sum(1 for r in lates if not r.get("is_justified")),
            average_late_period=average,
        )
