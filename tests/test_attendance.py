import pytest

from schooldesk.attendance import (
    ABSENCE,
    LATE,
    AttendanceFilter,
    AttendanceService,
    round_half_up,
)
from schooldesk.constants import MANAGER, PARENT, STUDENT, TEACHER
from schooldesk.errors import DuplicateRecordError, NotFoundError, UnknownEntityTypeError, ValidationError


@pytest.fixture
def svc(store):
    return AttendanceService(store)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(13.33) == 13
    assert round_half_up(2.5) == 3


def test_seed_student_stats(svc):
    stats = svc.stats(STUDENT)
    assert stats.total_absences == 4
    assert stats.justified_absences == 2
    assert stats.unjustified_absences == 2
    assert stats.total_lates == 3
    assert stats.justified_lates == 1
    assert stats.unjustified_lates == 2
    assert stats.average_late_period == 13


def test_stats_for_one_person(svc):
    stats = svc.stats(STUDENT, AttendanceFilter(entity_id="STU-0001"))
    assert stats.total_absences == 2
    assert stats.total_lates == 1
    assert stats.average_late_period == 15
    assert "Absences: 2" in stats.summary()


def test_stats_without_lates(svc):
    stats = svc.stats(STUDENT, AttendanceFilter(entity_id="STU-0005"))
    assert stats.total_lates == 0
    assert stats.average_late_period == 0


def test_create_and_reject_duplicate(svc):
    created = svc.create_record(STUDENT, ABSENCE, {"entity_id": "STU-0005", "date": "2025-03-01"})
    assert created["id"] == "SA-0005"
    assert created["is_justified"] is False
    with pytest.raises(DuplicateRecordError) as exc:
        svc.create_record(STUDENT, ABSENCE, {"entity_id": "STU-0005", "date": "2025-03-01", "is_justified": True})
    assert "already exists for this student on this date" in str(exc.value)
    # the other kind is an independent table
    svc.create_record(STUDENT, LATE, {"entity_id": "STU-0005", "date": "2025-03-01", "period": 7})


def test_teacher_uniqueness_includes_session(svc):
    base = {"entity_id": "TCH-0001", "date": "2025-03-03", "session": "Session 1 - 08:00"}
    svc.create_record(TEACHER, ABSENCE, base)
    svc.create_record(TEACHER, ABSENCE, dict(base, session="Session 2 - 09:00"))
    with pytest.raises(DuplicateRecordError):
        svc.create_record(TEACHER, ABSENCE, base)


def test_required_fields(svc):
    with pytest.raises(ValidationError) as exc:
        svc.create_record(TEACHER, LATE, {"entity_id": "", "date": "", "period": "soon"})
    assert set(exc.value.errors) == {"entity_id", "date", "session", "period"}
    with pytest.raises(ValidationError):
        svc.create_record(MANAGER, LATE, {"entity_id": "MGR-0001", "date": "2025-03-01", "period": -1})


def test_parents_have_no_attendance(svc):
    with pytest.raises(UnknownEntityTypeError):
        svc.list_records(PARENT, ABSENCE)


def test_bulk_skips_duplicates(svc):
    result = svc.create_bulk(
        STUDENT,
        ABSENCE,
        [
            {"entity_id": "STU-0001", "date": "2025-02-10"},
            {"entity_id": "STU-0004", "date": "2025-02-10"},
            {"entity_id": "STU-0005", "date": "2025-02-10"},
            {"entity_id": "STU-0005", "date": "2025-02-10"},
        ],
    )
    assert [r["entity_id"] for r in result.created] == ["STU-0004", "STU-0005"]
    assert [r["id"] for r in result.created] == ["SA-0005", "SA-0006"]
    assert result.message == "2 added, 2 duplicates skipped"
    assert len(svc.list_records(STUDENT, ABSENCE)) == 6


def test_bulk_message_without_duplicates(svc):
    result = svc.create_bulk(
        MANAGER,
        LATE,
        [{"entity_id": "MGR-0001", "date": "2025-03-01", "period": 3}],
    )
    assert result.message == "1 lates added"
    result = svc.create_bulk(MANAGER, ABSENCE, [])
    assert result.message == "0 absences added"


def test_update_record(svc):
    updated = svc.update_record(STUDENT, LATE, "SL-0001", {"period": 25, "is_justified": True})
    assert updated["period"] == 25
    assert updated["date"] == "2025-02-11"
    assert svc.stats(STUDENT).average_late_period == round_half_up((25 + 5 + 20) / 3)
    with pytest.raises(DuplicateRecordError):
        svc.update_record(STUDENT, ABSENCE, "SA-0004", {"date": "2025-02-10"})
    with pytest.raises(NotFoundError):
        svc.update_record(STUDENT, LATE, "SL-9999", {"period": 1})


def test_delete_record(svc):
    svc.delete_record(STUDENT, ABSENCE, "SA-0001")
    svc.delete_record(STUDENT, ABSENCE, "SA-9999")
    assert [r["id"] for r in svc.list_records(STUDENT, ABSENCE)] == ["SA-0002", "SA-0003", "SA-0004"]


def test_filters(svc):
    flt = AttendanceFilter(date_from="2025-02-12", date_to="2025-02-15")
    assert [r["id"] for r in svc.list_records(STUDENT, ABSENCE, flt)] == ["SA-0002", "SA-0003"]
    justified = svc.list_records(STUDENT, ABSENCE, AttendanceFilter(is_justified=True))
    assert {r["id"] for r in justified} == {"SA-0001", "SA-0003"}
    unjustified = svc.list_records(STUDENT, LATE, AttendanceFilter(is_justified=False, entity_id="STU-0002"))
    assert [r["id"] for r in unjustified] == ["SL-0003"]
