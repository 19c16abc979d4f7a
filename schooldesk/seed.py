"""Demo data loaded into every new ``MemoryStore``.

Builders return fresh structures so stores never share mutable state.
"""
from __future__ import annotations

from typing import Any

from .constants import MANAGER, PARENT, STUDENT, TEACHER
from .templates import EntityTemplate, FieldDescriptor

SEED_TS = "2024-01-01T00:00:00Z"

DEFAULT_SESSIONS = [
    "Session 1 - 08:00",
    "Session 2 - 09:00",
    "Session 3 - 10:00",
    "Session 4 - 11:00",
    "Session 5 - 13:00",
    "Session 6 - 14:00",
    "Session 7 - 15:00",
    "Session 8 - 16:00",
]

BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "O+", "O-", "AB+", "AB-"]


def _fields(*rows: dict[str, Any]) -> list[FieldDescriptor]:
    return [FieldDescriptor.from_dict(dict(r, order=i)) for i, r in enumerate(rows, start=1)]


def default_templates() -> dict[str, EntityTemplate]:
    student = _fields(
        {"name": "date_of_birth", "label": "Date of Birth", "type": "date", "required": True},
        {
            "name": "gender",
            "label": "Gender",
            "type": "select",
            "required": True,
            "options": [
                {"value": "male", "label": "Male"},
                {"value": "female", "label": "Female"},
                {"value": "other", "label": "Other"},
            ],
        },
        {"name": "email", "label": "Email", "type": "email", "placeholder": "student@school.com"},
        {"name": "phone", "label": "Phone", "type": "phone", "placeholder": "+1 234 567 890"},
        {"name": "address", "label": "Address", "type": "textarea", "placeholder": "Full address"},
        {
            "name": "blood_group",
            "label": "Blood Group",
            "type": "select",
            "options": [{"value": g, "label": g} for g in BLOOD_GROUPS],
        },
    )
    teacher = _fields(
        {"name": "email", "label": "Email", "type": "email", "required": True, "placeholder": "teacher@school.com"},
        {"name": "phone", "label": "Phone", "type": "phone"},
        {"name": "qualification", "label": "Qualification", "type": "text", "placeholder": "e.g. M.Ed, PhD"},
        {"name": "experience_years", "label": "Years of Experience", "type": "number"},
    )
    parent = _fields(
        {"name": "email", "label": "Email", "type": "email", "required": True},
        {"name": "phone", "label": "Phone", "type": "phone", "required": True},
        {"name": "address", "label": "Address", "type": "textarea"},
        {"name": "occupation", "label": "Occupation", "type": "text"},
    )
    manager = _fields(
        {"name": "email", "label": "Email", "type": "email", "required": True},
        {"name": "phone", "label": "Phone", "type": "phone"},
        {"name": "department", "label": "Department", "type": "text"},
    )
    return {
        STUDENT: EntityTemplate(fields=student, version=1, last_updated=SEED_TS),
        TEACHER: EntityTemplate(fields=teacher, version=1, last_updated=SEED_TS),
        PARENT: EntityTemplate(fields=parent, version=1, last_updated=SEED_TS),
        MANAGER: EntityTemplate(fields=manager, version=1, last_updated=SEED_TS),
    }


def levels() -> list[dict[str, Any]]:
    return [
        {"id": "LVL-0001", "name": "Primary", "description": "Primary education level (Grades 1-5)"},
        {"id": "LVL-0002", "name": "Middle", "description": "Middle school education (Grades 6-8)"},
        {"id": "LVL-0003", "name": "High", "description": "High school education (Grades 9-12)"},
    ]


def classes() -> list[dict[str, Any]]:
    rows = [
        ("1A", "A", 30, "LVL-0001"),
        ("1B", "B", 30, "LVL-0001"),
        ("6A", "A", 25, "LVL-0002"),
        ("6B", "B", 25, "LVL-0002"),
        ("9A", "A", 20, "LVL-0003"),
        ("9B", "B", 20, "LVL-0003"),
    ]
    return [
        {"id": f"CLS-{i:04d}", "name": name, "section": sec, "capacity": cap, "level_id": lvl}
        for i, (name, sec, cap, lvl) in enumerate(rows, start=1)
    ]


def subjects() -> list[dict[str, Any]]:
    rows = [
        ("Mathematics", "MATH", "Core mathematics"),
        ("English", "ENG", "English language and literature"),
        ("Science", "SCI", "General science"),
        ("History", "HIST", "World history"),
        ("Art", "ART", "Visual arts"),
    ]
    return [
        {"id": f"SUB-{i:04d}", "name": name, "code": code, "description": desc}
        for i, (name, code, desc) in enumerate(rows, start=1)
    ]


def _person(pid: str, first: str, last: str, created: str, dynamic: dict[str, Any], **relations: Any) -> dict[str, Any]:
    d = {
        "id": pid,
        "firstname": first,
        "lastname": last,
        "created_at": created,
        "updated_at": created,
        "dynamic_fields": dynamic,
    }
    d.update(relations)
    return d


def parents() -> list[dict[str, Any]]:
    return [
        _person("PAR-0001", "Robert", "Doe", "2024-01-10T08:00:00Z",
                {"email": "robert.doe@email.com", "phone": "+1 555 0101", "address": "123 Oak Street", "occupation": "Engineer"},
                student_ids=["STU-0001", "STU-0005"]),
        _person("PAR-0002", "Sarah", "Smith", "2024-01-10T08:00:00Z",
                {"email": "sarah.smith@email.com", "phone": "+1 555 0102", "occupation": "Doctor"},
                student_ids=["STU-0002"]),
        _person("PAR-0003", "Tom", "Johnson", "2024-01-11T08:00:00Z",
                {"email": "tom.j@email.com", "phone": "+1 555 0103", "occupation": "Teacher"},
                student_ids=["STU-0003"]),
        _person("PAR-0004", "Lisa", "Williams", "2024-01-11T08:00:00Z",
                {"email": "lisa.w@email.com", "phone": "+1 555 0104", "address": "789 Pine Road", "occupation": "Lawyer"},
                student_ids=["STU-0004"]),
    ]


def students() -> list[dict[str, Any]]:
    rows = [
        ("John", "Doe", "PAR-0001", "CLS-0001", "LVL-0001", "2024-01-15T10:00:00Z",
         {"date_of_birth": "2015-05-15", "gender": "male", "email": "john.doe@school.com", "blood_group": "A+"}),
        ("Jane", "Smith", "PAR-0002", "CLS-0002", "LVL-0001", "2024-01-15T10:00:00Z",
         {"date_of_birth": "2015-08-22", "gender": "female", "blood_group": "B+"}),
        ("Mike", "Johnson", "PAR-0003", "CLS-0003", "LVL-0002", "2024-02-01T10:00:00Z",
         {"date_of_birth": "2012-03-10", "gender": "male", "blood_group": "O+"}),
        ("Emily", "Williams", "PAR-0004", "CLS-0004", "LVL-0002", "2024-02-01T10:00:00Z",
         {"date_of_birth": "2012-11-05", "gender": "female", "address": "789 Pine Road"}),
        ("David", "Brown", "PAR-0001", "CLS-0005", "LVL-0003", "2024-02-15T10:00:00Z",
         {"date_of_birth": "2009-07-20", "gender": "male", "phone": "+1 555 9999"}),
    ]
    return [
        _person(f"STU-{i:04d}", first, last, created, dyn,
                level_id=lvl, class_id=cls, parent_ids=[par], default_parent_id=par)
        for i, (first, last, par, cls, lvl, created, dyn) in enumerate(rows, start=1)
    ]


def teachers() -> list[dict[str, Any]]:
    return [
        _person("TCH-0001", "Alice", "Cooper", "2024-01-05T08:00:00Z",
                {"email": "alice.cooper@school.com", "phone": "+1 555 1001", "qualification": "M.Ed Mathematics", "experience_years": 8},
                subject_ids=["SUB-0001", "SUB-0002"], class_ids=["CLS-0001", "CLS-0002"], photo=""),
        _person("TCH-0002", "Bob", "Martin", "2024-01-05T08:00:00Z",
                {"email": "bob.martin@school.com", "qualification": "PhD Science", "experience_years": 12},
                subject_ids=["SUB-0003"], class_ids=["CLS-0003", "CLS-0004"], photo=""),
        _person("TCH-0003", "Carol", "Davis", "2024-01-06T08:00:00Z",
                {"email": "carol.davis@school.com", "phone": "+1 555 1003", "experience_years": 5},
                subject_ids=["SUB-0004", "SUB-0005"], class_ids=["CLS-0005", "CLS-0006"], photo=""),
    ]


def managers() -> list[dict[str, Any]]:
    return [
        _person("MGR-0001", "Frank", "Wilson", "2024-01-03T08:00:00Z",
                {"email": "frank.w@school.com", "phone": "+1 555 2001", "department": "Academic Affairs"},
                class_ids=["CLS-0001", "CLS-0002", "CLS-0003"], photo=""),
        _person("MGR-0002", "Grace", "Taylor", "2024-01-03T08:00:00Z",
                {"email": "grace.t@school.com", "phone": "+1 555 2002", "department": "Administration"},
                class_ids=["CLS-0004", "CLS-0005", "CLS-0006"], photo=""),
    ]


def _mark(rid: str, entity_id: str, day: str, justified: bool, reason: str = "", **extra: Any) -> dict[str, Any]:
    d = {
        "id": rid,
        "entity_id": entity_id,
        "date": day,
        "is_justified": justified,
        "reason": reason,
        "created_at": f"{day}T08:00:00Z",
    }
    d.update(extra)
    return d


def attendance() -> dict[tuple[str, str], list[dict[str, Any]]]:
    """Records keyed by ``(entity_type, kind)`` where kind is absence or late."""
    return {
        (STUDENT, "absence"): [
            _mark("SA-0001", "STU-0001", "2025-02-10", True, "Medical appointment"),
            _mark("SA-0002", "STU-0002", "2025-02-12", False),
            _mark("SA-0003", "STU-0003", "2025-02-15", True, "Family emergency"),
            _mark("SA-0004", "STU-0001", "2025-02-18", False),
        ],
        (STUDENT, "late"): [
            _mark("SL-0001", "STU-0001", "2025-02-11", False, period=15),
            _mark("SL-0002", "STU-0004", "2025-02-13", True, "Bus delay", period=5),
            _mark("SL-0003", "STU-0002", "2025-02-14", False, period=20),
        ],
        (TEACHER, "absence"): [
            _mark("TA-0001", "TCH-0001", "2025-02-10", True, "Conference", session="Session 1 - 08:00"),
            _mark("TA-0002", "TCH-0002", "2025-02-14", False, session="Session 3 - 10:00"),
        ],
        (TEACHER, "late"): [
            _mark("TL-0001", "TCH-0001", "2025-02-12", False, session="Session 2 - 09:00", period=10),
            _mark("TL-0002", "TCH-0003", "2025-02-16", True, "Traffic", session="Session 1 - 08:00", period=5),
        ],
        (MANAGER, "absence"): [
            _mark("MA-0001", "MGR-0001", "2025-02-11", True, "Sick leave"),
        ],
        (MANAGER, "late"): [
            _mark("ML-0001", "MGR-0002", "2025-02-13", False, period=10),
        ],
    }


def units() -> list[dict[str, Any]]:
    rows = [
        ("Basic Operations", "SUB-0001", "LVL-0001", 1),
        ("Advanced Arithmetic", "SUB-0001", "LVL-0001", 2),
        ("Language Foundations", "SUB-0002", "LVL-0001", 1),
        ("Algebra Fundamentals", "SUB-0001", "LVL-0002", 1),
    ]
    return [
        {"id": f"UNIT-{i:04d}", "name": name, "subject_id": sub, "level_id": lvl, "order": order, "created_at": SEED_TS}
        for i, (name, sub, lvl, order) in enumerate(rows, start=1)
    ]


def lessons() -> list[dict[str, Any]]:
    rows = [
        ("Addition & Subtraction", "Basic arithmetic operations", "SUB-0001", "LVL-0001", "UNIT-0001", 1),
        ("Multiplication", "Multiplication tables and methods", "SUB-0001", "LVL-0001", "UNIT-0001", 2),
        ("Grammar Basics", "Parts of speech and sentence structure", "SUB-0002", "LVL-0001", "UNIT-0003", 1),
        ("Algebra Intro", "Introduction to algebraic expressions", "SUB-0001", "LVL-0002", "UNIT-0004", 1),
    ]
    return [
        {
            "id": f"LES-{i:04d}",
            "name": name,
            "description": desc,
            "subject_id": sub,
            "level_id": lvl,
            "unit_id": unit,
            "order": order,
            "created_at": SEED_TS,
        }
        for i, (name, desc, sub, lvl, unit, order) in enumerate(rows, start=1)
    ]


def questions() -> list[dict[str, Any]]:
    rows = [
        ("LES-0001", "5 + 3 = 8", "true_false", "easy", ["True", "False"], 0),
        ("LES-0001", "What is 12 - 7?", "multiple_choice", "easy", ["4", "5", "6", "7"], 1),
        ("LES-0001", "15 + 27 = 43", "true_false", "medium", ["True", "False"], 1),
        ("LES-0002", "What is 6 × 7?", "multiple_choice", "medium", ["36", "42", "48", "49"], 1),
        ("LES-0003", "A noun is a person, place, or thing.", "true_false", "easy", ["True", "False"], 0),
        ("LES-0004", "Solve: 2x = 10, x = ?", "multiple_choice", "medium", ["3", "5", "7", "10"], 1),
    ]
    out = []
    opt_no = 0
    for i, (lesson, text, qtype, difficulty, option_texts, correct) in enumerate(rows, start=1):
        options = []
        for t in option_texts:
            opt_no += 1
            options.append({"id": f"OPT-{opt_no:04d}", "text": t})
        out.append(
            {
                "id": f"Q-{i:04d}",
                "lesson_id": lesson,
                "text": text,
                "type": qtype,
                "difficulty": difficulty,
                "options": options,
                "correct_answer_id": options[correct]["id"],
                "created_at": SEED_TS,
            }
        )
    return out
