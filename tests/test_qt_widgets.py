import pytest
from PySide6 import QtCore, QtWidgets

from schooldesk.constants import EMPTY_DISPLAY, STUDENT, TEACHER
from schooldesk.errors import ValidationError
from schooldesk.logger import ErrorLogger
from schooldesk.qt_common import RecordFilterProxyModel, RecordTableModel, text_column
from schooldesk.qt_forms import DynamicForm, DynamicView, badge_row
from schooldesk.settings_store import Settings, SettingsStore
from schooldesk.templates import FieldDescriptor


def make_fields():
    rows = [
        {"name": "nickname", "label": "Nickname", "type": "text", "required": True},
        {"name": "age", "label": "Age", "type": "number", "validation": {"min": 3}},
        {
            "name": "clubs",
            "label": "Clubs",
            "type": "multi-select",
            "options": [{"value": "chess", "label": "Chess"}, {"value": "art", "label": "Art"}],
        },
        {"name": "joined", "label": "Joined", "type": "date"},
        {"name": "badge", "label": "Badge", "type": "text", "editable": False},
    ]
    return [FieldDescriptor.from_dict(dict(r, order=i)) for i, r in enumerate(rows)]


def test_form_starts_from_defaults(qapp):
    form = DynamicForm(make_fields())
    assert form.values() == {"nickname": "", "age": "", "clubs": [], "joined": "", "badge": ""}
    assert not form.inputs["badge"].editor.isReadOnly()


def test_form_validation_shows_messages(qapp):
    form = DynamicForm(make_fields())
    form.inputs["age"].set_value("1")
    assert form.validate() is None
    assert form.error_labels["nickname"].text() == "Nickname is required"
    assert form.error_labels["age"].text() == "Age must be at least 3"

    form.inputs["nickname"].set_value("Ace")
    form.inputs["age"].set_value("7")
    form.inputs["clubs"].set_value(["art"])
    form.inputs["joined"].set_value("2024-09-01")
    cleaned = form.validate()
    assert cleaned == {"nickname": "Ace", "age": 7, "clubs": ["art"], "joined": "2024-09-01", "badge": ""}
    assert form.error_labels["nickname"].text() == ""


def test_edit_form_locks_non_editable_fields(qapp):
    form = DynamicForm(make_fields(), initial={"nickname": "Ace", "badge": "B-7"})
    assert form.inputs["badge"].editor.isReadOnly()
    assert form.values()["badge"] == "B-7"
    assert form.values()["nickname"] == "Ace"


def test_table_model_emits_trimmed_edits(qapp):
    model = RecordTableModel(
        [text_column("ID", "id"), text_column("First Name", "firstname", edit=True)],
        [{"id": "STU-0001", "firstname": "Ann"}],
    )
    edits = []
    model.cell_edited.connect(lambda *args: edits.append(args))

    assert model.flags(model.index(0, 1)) & QtCore.Qt.ItemIsEditable
    assert not model.flags(model.index(0, 0)) & QtCore.Qt.ItemIsEditable
    assert model.setData(model.index(0, 1), "  Bo ") is True
    assert model.setData(model.index(0, 1), "Ann") is False
    assert model.setData(model.index(0, 1), "   ") is False
    assert model.setData(model.index(0, 0), "X") is False
    assert edits == [("STU-0001", "firstname", "Bo")]
    # the row itself is left for the page to reload
    assert model.data(model.index(0, 1)) == "Ann"


def test_proxy_search(qapp):
    model = RecordTableModel(
        [text_column("ID", "id"), text_column("Name", "name")],
        [{"id": "A-1", "name": "Primary"}, {"id": "A-2", "name": "Middle"}],
    )
    proxy = RecordFilterProxyModel()
    proxy.setSourceModel(model)
    proxy.set_filters(search=" mid ")
    assert proxy.rowCount() == 1
    proxy.set_filters(search="a-")
    assert proxy.rowCount() == 2


@pytest.fixture
def window(qapp, tmp_path, monkeypatch):
    from schooldesk import qt_app

    settings_store = SettingsStore(tmp_path / "settings.json")
    settings_store.save(Settings(mock_delay_ms=0))
    shown = []
    monkeypatch.setattr(qt_app.MainWindow, "_show_error", lambda self, title, exc: shown.append((title, str(exc))))
    win = qt_app.MainWindow(settings_store)
    win.err_logger = ErrorLogger(tmp_path / "error_log.txt")
    win.shown_errors = shown
    yield win
    win.close()


def test_main_window_pages_load(window):
    window.show_page(STUDENT)
    assert window.page_widgets[STUDENT].model.rowCount() == 5
    window.show_page("class")
    assert window.page_widgets["class"].model.rowCount() == 6
    window.show_page("nowhere")
    assert window.top_title.text() == "Dashboard"


def test_inline_edit_saves_through_store(window):
    window.show_page(STUDENT)
    window.page_widgets[STUDENT].inline_edit("STU-0002", "firstname", "Janet")
    assert window.store.get_entity(STUDENT, "STU-0002")["firstname"] == "Janet"
    assert window.statusBar().currentMessage() == "Updated"


def test_report_routes_errors(window, tmp_path):
    window.report(ValidationError({"firstname": "First name is required"}), "ctx", "Save failed")
    assert window.statusBar().currentMessage() == "Save failed: First name is required"
    assert window.shown_errors == []

    window.report(RuntimeError("boom"), "qt_test", "Crashed")
    assert window.shown_errors == [("Crashed", "boom")]
    assert "qt_test" in (tmp_path / "error_log.txt").read_text(encoding="utf-8")


def test_apply_settings_reconfigures_store(window, tmp_path):
    window.apply_settings(Settings(teacher_id_prefix="T-", mock_delay_ms=0))
    created = window.store.create_entity(TEACHER, {"firstname": "New", "lastname": "Hire"})
    assert created["id"] == "T-0001"
    assert SettingsStore(tmp_path / "settings.json").load().teacher_id_prefix == "T-"


def house_field():
    return FieldDescriptor.from_dict(
        {"name": "house", "label": "House", "type": "select", "order": 1, "options": [{"value": "red", "label": "Red"}]}
    )


def test_edit_form_keeps_value_of_removed_option(qapp):
    form = DynamicForm([house_field()], initial={"house": "blue"})
    assert form.values() == {"house": "blue"}
    assert form.validate() is None
    assert form.error_labels["house"].text() == "Select a valid option"


def test_edit_form_keeps_unknown_multi_select_values(qapp):
    clubs = FieldDescriptor.from_dict(
        {"name": "clubs", "label": "Clubs", "type": "multi-select", "options": [{"value": "art", "label": "Art"}]}
    )
    form = DynamicForm([clubs], initial={"clubs": ["art", "drama"]})
    assert form.values() == {"clubs": ["art", "drama"]}
    assert form.validate() is None


def test_form_with_broken_pattern_reports_instead_of_raising(qapp):
    code = FieldDescriptor.from_dict({"name": "code", "label": "Code", "validation": {"pattern": "[a-"}})
    form = DynamicForm([code])
    form.inputs["code"].set_value("abc")
    assert form.validate() is None
    assert form.error_labels["code"].text().startswith("Invalid validation pattern")


def badge_texts(widget):
    return [lbl.text() for lbl in widget.findChildren(QtWidgets.QLabel) if lbl.objectName() == "Badge"]


def test_view_shows_chosen_labels_as_badges(qapp):
    fields = make_fields()
    view = DynamicView(fields, {"nickname": "Ace", "clubs": ["art", "chess"]})
    assert badge_texts(view) == ["Art", "Chess"]
    texts = [lbl.text() for lbl in view.findChildren(QtWidgets.QLabel)]
    assert "Ace" in texts


def test_view_uses_placeholder_for_empty_values(qapp):
    view = DynamicView(make_fields(), {"clubs": []})
    assert badge_texts(view) == []
    texts = [lbl.text() for lbl in view.findChildren(QtWidgets.QLabel)]
    # nickname, age, clubs, joined and badge are all empty
    assert texts.count(EMPTY_DISPLAY) == 5
    assert badge_texts(badge_row([])) == []
    assert [lbl.text() for lbl in badge_row([]).findChildren(QtWidgets.QLabel)] == [EMPTY_DISPLAY]
