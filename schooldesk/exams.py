"""Question bank: units, lessons, questions, generated exams and attempts."""
from __future__ import annotations

import copy
import math
import random
from dataclasses import dataclass, field
from typing import Any, Iterable

from .errors import NotFoundError, ValidationError
from .logger import now_ts
from .storage import next_id

DIFFICULTIES = ("easy", "medium", "hard")
QUESTION_TYPES = ("true_false", "multiple_choice")
TRUE_FALSE_OPTIONS = ("True", "False")


@dataclass
class Page:
    items: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int


@dataclass
class ExamConfig:
    name: str
    level_id: str
    subject_id: str
    lesson_ids: list[str]
    mode: str = "auto"  # "auto" or "manual"
    max_score: int | None = None
    easy_count: int = 0
    medium_count: int = 0
    hard_count: int = 0
    question_ids: list[str] = field(default_factory=list)


def search_filter(items: Iterable[dict[str, Any]], search: str = "") -> list[dict[str, Any]]:
    """Keep items where any string attribute contains ``search`` (case-insensitive)."""
    items = list(items)
    if not search:
        return items
    q = search.lower()
    return [it for it in items if any(isinstance(v, str) and q in v.lower() for v in it.values())]


def paginate(items: list[dict[str, Any]], page: int = 1, limit: int = 10) -> Page:
    page = max(1, int(page))
    limit = max(1, int(limit))
    total = len(items)
    start = (page - 1) * limit
    return Page(
        items=items[start:start + limit],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


def _require_text(data: dict[str, Any], key: str, label: str, errors: dict[str, str]) -> str:
    value = str(data.get(key, "") or "").strip()
    if not value:
        errors[key] = f"{label} is required"
    return value


def _optional_int(data: dict[str, Any], key: str, label: str, errors: dict[str, str]) -> int | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        errors[key] = f"{label} must be a number"
        return None


class ExamService:
    def __init__(self, store, rng: random.Random | None = None):
        self.store = store
        self.rng = rng or random.Random()

    @property
    def _units(self) -> list[dict[str, Any]]:
        return self.store.table("units")

    @property
    def _lessons(self) -> list[dict[str, Any]]:
        return self.store.table("lessons")

    @property
    def _questions(self) -> list[dict[str, Any]]:
        return self.store.table("questions")

    @property
    def _exams(self) -> list[dict[str, Any]]:
        return self.store.table("exams")

    @property
    def _attempts(self) -> list[dict[str, Any]]:
        return self.store.table("attempts")

    @staticmethod
    def _find(rows: list[dict[str, Any]], record_id: str, kind: str) -> dict[str, Any]:
        for r in rows:
            if r["id"] == record_id:
                return r
        raise NotFoundError(kind, record_id)

    @staticmethod
    def _reorder(rows: list[dict[str, Any]], ids: list[str]) -> None:
        by_id = {r["id"]: r for r in rows}
        for pos, rid in enumerate(ids, start=1):
            if rid in by_id:
                by_id[rid]["order"] = pos

    # ---------- units ----------
    def list_units(self, subject_id: str = "", level_id: str = "") -> list[dict[str, Any]]:
        self.store.latency()
        items = [
            u for u in self._units
            if (not subject_id or u["subject_id"] == subject_id) and (not level_id or u["level_id"] == level_id)
        ]
        return copy.deepcopy(sorted(items, key=lambda u: u["order"]))

    def create_unit(self, data: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        errors: dict[str, str] = {}
        unit = {
            "name": _require_text(data, "name", "Name", errors),
            "subject_id": _require_text(data, "subject_id", "Subject", errors),
            "level_id": _require_text(data, "level_id", "Level", errors),
        }
        order = _optional_int(data, "order", "Order", errors)
        if errors:
            raise ValidationError(errors)
        scope = [u for u in self._units if u["subject_id"] == unit["subject_id"] and u["level_id"] == unit["level_id"]]
        unit["order"] = order or len(scope) + 1
        unit["id"] = self.store.new_id("UNIT-", self._units)
        unit["created_at"] = now_ts()
        self._units.append(unit)
        return copy.deepcopy(unit)

    def update_unit(self, unit_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        unit = self._find(self._units, unit_id, "Unit")
        unit.update({k: v for k, v in changes.items() if k not in ("id", "created_at")})
        return copy.deepcopy(unit)

    def delete_unit(self, unit_id: str) -> None:
        self.store.latency()
        self._units[:] = [u for u in self._units if u["id"] != unit_id]
        # Lessons survive their unit and become unassigned.
        for lesson in self._lessons:
            if lesson["unit_id"] == unit_id:
                lesson["unit_id"] = ""

    def reorder_units(self, unit_ids: list[str]) -> None:
        self.store.latency()
        self._reorder(self._units, unit_ids)

    # ---------- lessons ----------
    def list_lessons(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        subject_id: str = "",
        level_id: str = "",
        unit_id: str = "",
    ) -> Page:
        self.store.latency()
        items = [
            l for l in self._lessons
            if (not subject_id or l["subject_id"] == subject_id)
            and (not level_id or l["level_id"] == level_id)
            and (not unit_id or l["unit_id"] == unit_id)
        ]
        items = sorted(search_filter(items, search), key=lambda l: l["order"])
        return paginate(copy.deepcopy(items), page, limit)

    def all_lessons(self) -> list[dict[str, Any]]:
        self.store.latency()
        return copy.deepcopy(self._lessons)

    def lessons_for(self, subject_id: str, level_id: str) -> list[dict[str, Any]]:
        self.store.latency()
        items = [l for l in self._lessons if l["subject_id"] == subject_id and l["level_id"] == level_id]
        return copy.deepcopy(sorted(items, key=lambda l: l["order"]))

    def get_lesson(self, lesson_id: str) -> dict[str, Any]:
        self.store.latency()
        return copy.deepcopy(self._find(self._lessons, lesson_id, "Lesson"))

    def create_lesson(self, data: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        errors: dict[str, str] = {}
        lesson = {
            "name": _require_text(data, "name", "Name", errors),
            "description": str(data.get("description", "") or ""),
            "subject_id": _require_text(data, "subject_id", "Subject", errors),
            "level_id": _require_text(data, "level_id", "Level", errors),
            "unit_id": str(data.get("unit_id", "") or ""),
        }
        order = _optional_int(data, "order", "Order", errors)
        if errors:
            raise ValidationError(errors)
        scope = [
            l for l in self._lessons
            if l["subject_id"] == lesson["subject_id"]
            and l["level_id"] == lesson["level_id"]
            and l["unit_id"] == lesson["unit_id"]
        ]
        lesson["order"] = order or len(scope) + 1
        # Inserting at a taken position pushes the rest of the scope down.
        for l in scope:
            if l["order"] >= lesson["order"]:
                l["order"] += 1
        lesson["id"] = self.store.new_id("LES-", self._lessons)
        lesson["created_at"] = now_ts()
        self._lessons.append(lesson)
        return copy.deepcopy(lesson)

    def update_lesson(self, lesson_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        lesson = self._find(self._lessons, lesson_id, "Lesson")
        lesson.update({k: v for k, v in changes.items() if k not in ("id", "created_at")})
        return copy.deepcopy(lesson)

    def delete_lesson(self, lesson_id: str) -> None:
        self.store.latency()
        self._lessons[:] = [l for l in self._lessons if l["id"] != lesson_id]
        self._questions[:] = [q for q in self._questions if q["lesson_id"] != lesson_id]

    def reorder_lessons(self, lesson_ids: list[str]) -> None:
        self.store.latency()
        self._reorder(self._lessons, lesson_ids)

    # ---------- questions ----------
    def _clean_question(self, data: dict[str, Any]) -> dict[str, Any]:
        errors: dict[str, str] = {}
        question = {
            "lesson_id": _require_text(data, "lesson_id", "Lesson", errors),
            "text": _require_text(data, "text", "Question text", errors),
            "type": str(data.get("type", "multiple_choice") or "multiple_choice"),
            "difficulty": str(data.get("difficulty", "easy") or "easy"),
        }
        if question["type"] not in QUESTION_TYPES:
            errors["type"] = "Unknown question type"
        if question["difficulty"] not in DIFFICULTIES:
            errors["difficulty"] = "Unknown difficulty"

        options: list[dict[str, str]] = []
        used = [str(o.get("id", "")) for q in self._questions for o in q.get("options", [])]
        for raw in data.get("options") or []:
            text = str(raw.get("text", "") or "").strip()
            if not text:
                continue
            oid = str(raw.get("id", "") or "")
            if not oid:
                oid = next_id("OPT-", used)
                used.append(oid)
            options.append({"id": oid, "text": text})
        if len(options) < 2:
            errors["options"] = "At least two options are required"

        correct = str(data.get("correct_answer_id", "") or "")
        if "correct_index" in data and options:
            idx = _optional_int(data, "correct_index", "Correct answer", errors)
            correct = options[idx]["id"] if idx is not None and 0 <= idx < len(options) else ""
        if options and correct not in {o["id"] for o in options}:
            errors["correct_answer_id"] = "Select the correct answer"
        if errors:
            raise ValidationError(errors)
        question["options"] = options
        question["correct_answer_id"] = correct
        return question

    def list_questions(self, *, page: int = 1, limit: int = 10, search: str = "", lesson_id: str = "", difficulty: str = "") -> Page:
        self.store.latency()
        items = [
            q for q in self._questions
            if (not lesson_id or q["lesson_id"] == lesson_id) and (not difficulty or q["difficulty"] == difficulty)
        ]
        return paginate(copy.deepcopy(search_filter(items, search)), page, limit)

    def questions_for_lessons(self, lesson_ids: Iterable[str]) -> list[dict[str, Any]]:
        self.store.latency()
        wanted = set(lesson_ids)
        return copy.deepcopy([q for q in self._questions if q["lesson_id"] in wanted])

    def create_question(self, data: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        question = self._clean_question(data)
        question["id"] = self.store.new_id("Q-", self._questions)
        question["created_at"] = now_ts()
        self._questions.append(question)
        return copy.deepcopy(question)

    def update_question(self, question_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        self.store.latency()
        current = self._find(self._questions, question_id, "Question")
        merged = dict(current)
        merged.update(changes)
        current.update(self._clean_question(merged))
        return copy.deepcopy(current)

    def delete_question(self, question_id: str) -> None:
        self.store.latency()
        self._questions[:] = [q for q in self._questions if q["id"] != question_id]

    # ---------- exams ----------
    def list_exams(self, *, page: int = 1, limit: int = 10, search: str = "") -> Page:
        self.store.latency()
        return paginate(copy.deepcopy(search_filter(self._exams, search)), page, limit)

    def get_exam(self, exam_id: str) -> dict[str, Any]:
        self.store.latency()
        return copy.deepcopy(self._find(self._exams, exam_id, "Exam"))

    def exam_questions(self, exam_id: str) -> list[dict[str, Any]]:
        self.store.latency()
        exam = self._find(self._exams, exam_id, "Exam")
        by_id = {q["id"]: q for q in self._questions}
        return copy.deepcopy([by_id[qid] for qid in exam["question_ids"] if qid in by_id])

    def generate(self, config: ExamConfig) -> dict[str, Any]:
        self.store.latency()
        errors: dict[str, str] = {}
        if not config.name.strip():
            errors["name"] = "Name is required"
        if not config.lesson_ids:
            errors["lesson_ids"] = "Select at least one lesson"
        if config.mode not in ("auto", "manual"):
            errors["mode"] = "Unknown generation mode"
        if errors:
            raise ValidationError(errors)

        if config.mode == "manual":
            selected = list(config.question_ids)
        else:
            pool = [q for q in self._questions if q["lesson_id"] in config.lesson_ids]
            selected = []
            for difficulty, count in zip(DIFFICULTIES, (config.easy_count, config.medium_count, config.hard_count)):
                bucket = [q["id"] for q in pool if q["difficulty"] == difficulty]
                selected += self.rng.sample(bucket, min(max(count, 0), len(bucket)))

        exam = {
            "id": self.store.new_id("EXM-", self._exams),
            "name": config.name.strip(),
            "level_id": config.level_id,
            "subject_id": config.subject_id,
            "lesson_ids": list(config.lesson_ids),
            "question_ids": selected,
            "max_score": 100 if config.max_score is None else config.max_score,
            "created_at": now_ts(),
            "status": "published",
        }
        self._exams.append(exam)
        return copy.deepcopy(exam)

    def delete_exam(self, exam_id: str) -> None:
        self.store.latency()
        self._exams[:] = [e for e in self._exams if e["id"] != exam_id]

    # ---------- attempts ----------
    def submit_attempt(self, exam_id: str, student_id: str, answers: dict[str, str]) -> dict[str, Any]:
        self.store.latency()
        exam = self._find(self._exams, exam_id, "Exam")
        exam_questions = [q for q in self._questions if q["id"] in exam["question_ids"]]
        score = sum(1 for q in exam_questions if answers.get(q["id"]) == q["correct_answer_id"])
        attempt = {
            "id": self.store.new_id("ATT-", self._attempts),
            "exam_id": exam_id,
            "student_id": student_id,
            "answers": dict(answers),
            "score": score,
            "total_questions": len(exam_questions),
            "completed_at": now_ts(),
        }
        self._attempts.append(attempt)
        return copy.deepcopy(attempt)

    def attempts_for(self, exam_id: str) -> list[dict[str, Any]]:
        self.store.latency()
        return copy.deepcopy([a for a in self._attempts if a["exam_id"] == exam_id])

