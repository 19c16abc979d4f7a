import random

import pytest

from schooldesk.errors import NotFoundError, ValidationError
from schooldesk.exams import ExamConfig, ExamService, paginate, search_filter


@pytest.fixture
def svc(store):
    return ExamService(store, rng=random.Random(0))


def test_paginate():
    items = [{"id": str(i)} for i in range(23)]
    page = paginate(items, page=3, limit=10)
    assert [it["id"] for it in page.items] == ["20", "21", "22"]
    assert page.total == 23
    assert page.total_pages == 3
    empty = paginate([], page=0, limit=0)
    assert empty.page == 1 and empty.limit == 1 and empty.total_pages == 0


def test_search_filter_checks_every_string_attribute():
    items = [{"name": "Algebra", "code": "X"}, {"name": "Art", "code": "ALG"}, {"name": "Music", "n": 3}]
    assert [it["name"] for it in search_filter(items, "alg")] == ["Algebra", "Art"]
    assert len(search_filter(items, "")) == 3


def test_units_sorted_and_scoped(svc):
    units = svc.list_units(subject_id="SUB-0001", level_id="LVL-0001")
    assert [u["id"] for u in units] == ["UNIT-0001", "UNIT-0002"]
    created = svc.create_unit({"name": "Fractions", "subject_id": "SUB-0001", "level_id": "LVL-0001"})
    assert created["id"] == "UNIT-0005"
    assert created["order"] == 3
    with pytest.raises(ValidationError) as exc:
        svc.create_unit({"name": " "})
    assert set(exc.value.errors) == {"name", "subject_id", "level_id"}


def test_reorder_and_update_unit(svc):
    svc.reorder_units(["UNIT-0002", "UNIT-0001"])
    units = svc.list_units(subject_id="SUB-0001", level_id="LVL-0001")
    assert [u["id"] for u in units] == ["UNIT-0002", "UNIT-0001"]
    renamed = svc.update_unit("UNIT-0002", {"name": "Arithmetic II", "id": "nope"})
    assert renamed["id"] == "UNIT-0002" and renamed["name"] == "Arithmetic II"
    with pytest.raises(NotFoundError):
        svc.update_unit("UNIT-9999", {"name": "x"})


def test_delete_unit_keeps_lessons(svc):
    svc.delete_unit("UNIT-0001")
    assert svc.get_lesson("LES-0001")["unit_id"] == ""
    assert svc.get_lesson("LES-0002")["unit_id"] == ""
    assert len(svc.all_lessons()) == 4


def test_create_lesson_at_taken_position_shifts_scope(svc):
    created = svc.create_lesson(
        {"name": "Counting", "subject_id": "SUB-0001", "level_id": "LVL-0001", "unit_id": "UNIT-0001", "order": 1}
    )
    assert created["id"] == "LES-0005"
    lessons = svc.lessons_for("SUB-0001", "LVL-0001")
    assert [(l["id"], l["order"]) for l in lessons] == [("LES-0005", 1), ("LES-0001", 2), ("LES-0002", 3)]
    assert svc.get_lesson("LES-0004")["order"] == 1


def test_create_lesson_appends_by_default(svc):
    created = svc.create_lesson({"name": "Division", "subject_id": "SUB-0001", "level_id": "LVL-0001", "unit_id": "UNIT-0001"})
    assert created["order"] == 3


def test_list_lessons_filters_and_pages(svc):
    page = svc.list_lessons(subject_id="SUB-0001", limit=2)
    assert page.total == 3
    assert page.total_pages == 2
    assert [l["id"] for l in svc.list_lessons(search="grammar").items] == ["LES-0003"]


def test_delete_lesson_cascades_to_questions(svc):
    svc.delete_lesson("LES-0001")
    assert svc.questions_for_lessons(["LES-0001"]) == []
    assert svc.list_questions(limit=100).total == 3
    with pytest.raises(NotFoundError):
        svc.get_lesson("LES-0001")


def test_create_question_assigns_option_ids(svc):
    created = svc.create_question(
        {
            "lesson_id": "LES-0002",
            "text": "What is 3 × 3?",
            "type": "multiple_choice",
            "difficulty": "hard",
            "options": [{"text": "6"}, {"text": " "}, {"text": "9"}],
            "correct_index": 1,
        }
    )
    assert created["id"] == "Q-0007"
    assert [o["id"] for o in created["options"]] == ["OPT-0019", "OPT-0020"]
    assert created["correct_answer_id"] == "OPT-0020"


def test_question_validation(svc):
    with pytest.raises(ValidationError) as exc:
        svc.create_question({"lesson_id": "LES-0001", "text": "Only one", "options": [{"text": "A"}]})
    assert "options" in exc.value.errors
    with pytest.raises(ValidationError) as exc:
        svc.create_question(
            {"lesson_id": "LES-0001", "text": "Q", "options": [{"text": "A"}, {"text": "B"}], "correct_index": 5}
        )
    assert exc.value.errors == {"correct_answer_id": "Select the correct answer"}
    with pytest.raises(ValidationError) as exc:
        svc.create_question({"lesson_id": "LES-0001", "text": "Q", "difficulty": "brutal", "options": []})
    assert {"difficulty", "options"} <= set(exc.value.errors)


def test_update_question(svc):
    updated = svc.update_question("Q-0002", {"difficulty": "hard"})
    assert updated["difficulty"] == "hard"
    assert updated["correct_answer_id"] == "OPT-0004"
    assert [q["id"] for q in svc.list_questions(difficulty="hard").items] == ["Q-0002"]


def test_generate_auto_respects_counts(svc):
    exam = svc.generate(
        ExamConfig(
            name=" Quiz 1 ",
            level_id="LVL-0001",
            subject_id="SUB-0001",
            lesson_ids=["LES-0001", "LES-0002"],
            easy_count=1,
            medium_count=5,
            hard_count=2,
        )
    )
    assert exam["id"] == "EXM-0001"
    assert exam["name"] == "Quiz 1"
    assert exam["max_score"] == 100
    picked = svc.exam_questions(exam["id"])
    difficulties = sorted(q["difficulty"] for q in picked)
    assert difficulties == ["easy", "medium", "medium"]
    assert all(q["lesson_id"] in ("LES-0001", "LES-0002") for q in picked)


def test_generate_manual_and_validation(svc):
    exam = svc.generate(
        ExamConfig(
            name="Picked",
            level_id="LVL-0001",
            subject_id="SUB-0001",
            lesson_ids=["LES-0001"],
            mode="manual",
            question_ids=["Q-0003", "Q-0001"],
            max_score=20,
        )
    )
    assert exam["question_ids"] == ["Q-0003", "Q-0001"]
    assert exam["max_score"] == 20
    assert svc.list_exams(search="pick").total == 1
    with pytest.raises(ValidationError) as exc:
        svc.generate(ExamConfig(name="", level_id="", subject_id="", lesson_ids=[]))
    assert set(exc.value.errors) == {"name", "lesson_ids"}


def test_submit_attempt_scores_correct_answers(svc):
    exam = svc.generate(
        ExamConfig(
            name="Manual",
            level_id="LVL-0001",
            subject_id="SUB-0001",
            lesson_ids=["LES-0001"],
            mode="manual",
            question_ids=["Q-0001", "Q-0002", "Q-0003"],
        )
    )
    attempt = svc.submit_attempt(exam["id"], "STU-0001", {"Q-0001": "OPT-0001", "Q-0002": "OPT-0003"})
    assert attempt["score"] == 1
    assert attempt["total_questions"] == 3
    assert [a["id"] for a in svc.attempts_for(exam["id"])] == [attempt["id"]]
    svc.delete_exam(exam["id"])
    with pytest.raises(NotFoundError):
        svc.get_exam(exam["id"])


def test_update_lesson_moves_it_between_units(svc):
    moved = svc.update_lesson("LES-0002", {"unit_id": "UNIT-0002", "created_at": "x"})
    assert moved["unit_id"] == "UNIT-0002"
    assert moved["created_at"] != "x"
    assert [l["id"] for l in svc.list_lessons(unit_id="UNIT-0002").items] == ["LES-0002"]


def test_non_numeric_positions_are_validation_errors(svc):
    with pytest.raises(ValidationError) as exc:
        svc.create_question(
            {"lesson_id": "LES-0001", "text": "Q", "options": [{"text": "A"}, {"text": "B"}], "correct_index": "first"}
        )
    assert exc.value.errors["correct_index"] == "Correct answer must be a number"
    with pytest.raises(ValidationError) as exc:
        svc.create_unit({"name": "U", "subject_id": "SUB-0001", "level_id": "LVL-0001", "order": "top"})
    assert exc.value.errors == {"order": "Order must be a number"}
    with pytest.raises(ValidationError) as exc:
        svc.create_lesson({"name": "L", "subject_id": "SUB-0001", "level_id": "LVL-0001", "order": "2nd"})
    assert exc.value.errors == {"order": "Order must be a number"}
    assert len(svc.all_lessons()) == 4
