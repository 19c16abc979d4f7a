import pytest

from schooldesk.constants import EMPTY_DISPLAY, MANAGER, PARENT, STUDENT, TEACHER
from schooldesk.excel_io import export_rows, expected_columns, import_entities, read_rows, rows_to_payloads
from schooldesk.templates import FieldDescriptor
from schooldesk.view import display_text, table_columns


def test_export_then_read(tmp_path):
    path = export_rows(
        tmp_path / "out" / "students.xlsx",
        ["ID", "First Name", "Age"],
        [["STU-0001", "John", 9], ["STU-0002", None, 10]],
    )
    assert path.exists()
    assert read_rows(path) == [
        {"ID": "STU-0001", "First Name": "John", "Age": 9},
        {"ID": "STU-0002", "First Name": "", "Age": 10},
    ]


def test_read_skips_blank_rows(tmp_path):
    path = export_rows(tmp_path / "blank.xlsx", ["A", "B"], [["x", "y"], [None, None], ["z", None]])
    assert read_rows(path) == [{"A": "x", "B": "y"}, {"A": "z", "B": ""}]


def test_expected_columns(store):
    fields = store.get_template(STUDENT).fields
    assert expected_columns(fields) == [
        "First Name",
        "Last Name",
        "Date of Birth",
        "Gender",
        "Email",
        "Phone",
        "Address",
        "Blood Group",
    ]


def test_rows_to_payloads_matches_headers_loosely():
    fields = [
        FieldDescriptor.from_dict({"name": "hobbies", "label": "Hobbies", "type": "multi-select", "order": 1}),
        FieldDescriptor.from_dict({"name": "nick", "label": "Nickname", "type": "text", "order": 2}),
    ]
    rows = [
        {"first name": " Ann ", "LASTNAME": "Lee", "hobbies": "chess, music ,", "NICKNAME": "Annie"},
        {"First Name": "NoLast"},
    ]
    assert rows_to_payloads(rows, fields) == [
        {"firstname": "Ann", "lastname": "Lee", "dynamic_fields": {"hobbies": ["chess", "music"], "nick": "Annie"}}
    ]


def test_import_skips_invalid_rows(store):
    rows = [
        {"First Name": "Ann", "Last Name": "Lee", "Gender": "female", "Date of Birth": "2014-01-02"},
        {"First Name": "Bo", "Last Name": "Ray", "Email": "not-an-email"},
        {"First Name": "", "Last Name": "Nobody"},
        {"First Name": "Cy", "Last Name": "Fox"},
    ]
    result = import_entities(store, STUDENT, rows)
    assert [r["firstname"] for r in result.created] == ["Ann", "Cy"]
    assert result.created[0]["id"] == "STU-0006"
    assert result.created[0]["dynamic_fields"]["gender"] == "female"
    assert result.skipped == 2
    assert result.errors == ["Bo Ray: Invalid email"]
    assert result.message == "2 imported, 2 skipped"
    assert len(store.list_entities(STUDENT)) == 7


@pytest.mark.parametrize("entity_type", [STUDENT, TEACHER, PARENT, MANAGER])
def test_exported_sheet_imports_back(store, tmp_path, entity_type):
    fields = store.get_template(entity_type).fields
    shown = table_columns(fields, limit=len(fields))
    people = store.list_entities(entity_type)
    path = export_rows(
        tmp_path / f"{entity_type}.xlsx",
        ["ID", "First Name", "Last Name"] + [fd.label for fd in shown],
        [
            [p["id"], p["firstname"], p["lastname"]]
            + [display_text(fd, p["dynamic_fields"].get(fd.name)) for fd in shown]
            for p in people
        ],
    )

    result = import_entities(store, entity_type, read_rows(path))

    assert result.errors == []
    assert len(result.created) == len(people)
    for original, imported in zip(people, result.created):
        assert (imported["firstname"], imported["lastname"]) == (original["firstname"], original["lastname"])
        filled = {k: v for k, v in imported["dynamic_fields"].items() if v not in ("", [], None)}
        assert filled == original["dynamic_fields"]


def test_choice_cells_accept_labels_and_placeholders():
    fields = [
        FieldDescriptor.from_dict(
            {"name": "house", "label": "House", "type": "select", "order": 1, "options": [{"value": "red", "label": "Red Team"}]}
        ),
        FieldDescriptor.from_dict(
            {
                "name": "clubs",
                "label": "Clubs",
                "type": "multi-select",
                "order": 2,
                "options": [{"value": "chess", "label": "Chess Club"}, {"value": "art", "label": "Art"}],
            }
        ),
        FieldDescriptor.from_dict({"name": "email", "label": "Email", "type": "email", "order": 3}),
    ]
    rows = [{"First Name": "A", "Last Name": "B", "House": "red team", "Clubs": "Chess Club, art", "Email": EMPTY_DISPLAY}]
    assert rows_to_payloads(rows, fields) == [
        {"firstname": "A", "lastname": "B", "dynamic_fields": {"house": "red", "clubs": ["chess", "art"]}}
    ]
