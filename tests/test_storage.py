import pytest

from schooldesk.constants import MANAGER, PARENT, STUDENT, TEACHER
from schooldesk.errors import NotFoundError, ValidationError
from schooldesk.storage import CLASS, LEVEL, SUBJECT, MemoryStore, full_name, next_id


def test_next_id_uses_highest_number():
    assert next_id("STU-", []) == "STU-0001"
    assert next_id("STU-", ["STU-0001", "STU-0007", "TCH-0099"]) == "STU-0008"


def test_ids_never_collide_after_delete(store):
    first = store.create_entity(MANAGER, {"firstname": "A", "lastname": "B"})
    store.delete_entity(MANAGER, "MGR-0001")
    second = store.create_entity(MANAGER, {"firstname": "C", "lastname": "D"})
    assert first["id"] == "MGR-0003"
    assert second["id"] == "MGR-0004"


def test_seed_counts(store):
    assert store.dashboard_stats() == {
        "students": 5,
        "teachers": 3,
        "parents": 4,
        "managers": 2,
        "classes": 6,
        "levels": 3,
        "subjects": 5,
    }


def test_create_entity_fills_defaults(store):
    created = store.create_entity(
        STUDENT,
        {"firstname": "  Ada ", "lastname": "Lovelace", "parent_ids": ["PAR-0002"], "dynamic_fields": {"gender": "female"}},
    )
    assert created["id"] == "STU-0006"
    assert created["firstname"] == "Ada"
    assert created["default_parent_id"] == "PAR-0002"
    assert created["class_id"] == ""
    assert created["created_at"] == created["updated_at"]
    assert store.get_entity(STUDENT, "STU-0006")["dynamic_fields"] == {"gender": "female"}


def test_create_requires_names(store):
    with pytest.raises(ValidationError) as exc:
        store.create_entity(TEACHER, {"firstname": "", "lastname": " "})
    assert exc.value.errors == {"firstname": "First name is required", "lastname": "Last name is required"}


def test_custom_prefix():
    s = MemoryStore(id_prefixes={PARENT: "P-"})
    assert s.create_entity(PARENT, {"firstname": "X", "lastname": "Y"})["id"] == "P-0001"


def test_update_merges_dynamic_fields_and_protects_id(store):
    updated = store.update_entity(
        STUDENT,
        "STU-0001",
        {"id": "HACK", "created_at": "x", "lastname": "Dough", "dynamic_fields": {"phone": "123"}},
    )
    assert updated["id"] == "STU-0001"
    assert updated["created_at"] == "2024-01-15T10:00:00Z"
    assert updated["lastname"] == "Dough"
    assert updated["firstname"] == "John"
    assert updated["dynamic_fields"]["phone"] == "123"
    assert updated["dynamic_fields"]["blood_group"] == "A+"
    assert updated["updated_at"] != "2024-01-15T10:00:00Z"


def test_update_rejects_blank_name(store):
    with pytest.raises(ValidationError):
        store.update_entity(STUDENT, "STU-0001", {"firstname": "   "})
    assert store.get_entity(STUDENT, "STU-0001")["firstname"] == "John"


def test_default_parent_follows_parent_list(store):
    updated = store.update_entity(STUDENT, "STU-0001", {"parent_ids": ["PAR-0003", "PAR-0004"]})
    assert updated["default_parent_id"] == "PAR-0003"


def test_missing_records(store):
    with pytest.raises(NotFoundError):
        store.get_entity(TEACHER, "TCH-9999")
    with pytest.raises(NotFoundError):
        store.update_entity(TEACHER, "TCH-9999", {"firstname": "x"})
    with pytest.raises(NotFoundError):
        store.delete_entity(TEACHER, "TCH-9999")


def test_returned_records_are_copies(store):
    rows = store.list_entities(STUDENT)
    rows[0]["firstname"] = "Mutated"
    rows[0]["dynamic_fields"]["gender"] = "other"
    fresh = store.get_entity(STUDENT, rows[0]["id"])
    assert fresh["firstname"] != "Mutated"
    assert fresh["dynamic_fields"]["gender"] == "male"


def test_catalog_crud(store):
    created = store.create_catalog_item(CLASS, {"name": " 2A ", "capacity": "28", "level_id": "LVL-0001"})
    assert created["id"] == "CLS-0007"
    assert created["name"] == "2A"
    assert created["capacity"] == 28
    updated = store.update_catalog_item(CLASS, created["id"], {"section": "A"})
    assert updated["section"] == "A" and updated["capacity"] == 28
    store.delete_catalog_item(CLASS, created["id"])
    with pytest.raises(NotFoundError):
        store.get_catalog_item(CLASS, created["id"])


def test_catalog_validation(store):
    with pytest.raises(ValidationError):
        store.create_catalog_item(SUBJECT, {"name": ""})
    with pytest.raises(ValidationError) as exc:
        store.create_catalog_item(CLASS, {"name": "X", "capacity": "lots"})
    assert "capacity" in exc.value.errors
    assert len(store.list_catalog(LEVEL)) == 3


def test_global_search(store):
    hits = store.global_search("doe")
    assert {(h["entity_type"], h["id"]) for h in hits} == {(STUDENT, "STU-0001"), (PARENT, "PAR-0001")}
    assert store.global_search("stu-0003") == [{"entity_type": STUDENT, "id": "STU-0003", "name": "Mike Johnson"}]
    assert store.global_search("   ") == []


def test_students_by_class(store):
    counts = store.students_by_class()
    assert counts["1A"] == 1
    assert counts["9B"] == 0
    assert sum(counts.values()) == 5


def test_sessions(store):
    assert len(store.get_sessions()) == 8
    assert store.update_sessions([" Morning ", "Morning", "", "Evening"]) == ["Morning", "Evening"]
    with pytest.raises(ValidationError):
        store.update_sessions(["  "])
    assert store.get_sessions() == ["Morning", "Evening"]


def test_configure_and_full_name(store):
    store.configure(delay_ms=-5, id_prefixes={TEACHER: "T-"})
    assert store.delay_ms == 0
    assert store.create_entity(TEACHER, {"firstname": "A", "lastname": "B"})["id"] == "T-0001"
    assert full_name({"firstname": "A", "lastname": ""}) == "A"
