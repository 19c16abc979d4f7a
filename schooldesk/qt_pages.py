"""Qt pages for people, catalogs and attendance."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from PySide6 import QtCore, QtWidgets

from .attendance import ABSENCE, KIND_LABELS, LATE, AttendanceFilter
from .constants import ATTENDANCE_ENTITY_TYPES, EMPTY_DISPLAY, ENTITY_LABELS, MANAGER, PARENT, STUDENT, TEACHER
from .errors import ValidationError
from .excel_io import expected_columns, export_rows, import_entities, read_rows
from .qt_common import (
    CheckList,
    Column,
    RecordFilterProxyModel,
    RecordTableModel,
    button,
    fill_combo,
    make_table_view,
    selected_row,
    text_column,
    tool_card,
)
from .qt_forms import DynamicForm, DynamicView, FieldInput, badge_row
from .storage import CATALOG_LABELS, CLASS, LEVEL, SUBJECT, full_name
from .templates import FieldDescriptor, FieldType
from .view import display_text, table_columns

PLURALS = {STUDENT: "Students", TEACHER: "Teachers", PARENT: "Parents", MANAGER: "Managers"}


def load_lookups(store) -> dict[str, dict[str, str]]:
    """id -> display name maps for every collection a relation can point at."""
    classes = store.list_catalog(CLASS)
    return {
        LEVEL: {r["id"]: r["name"] for r in store.list_catalog(LEVEL)},
        CLASS: {r["id"]: r["name"] for r in classes},
        SUBJECT: {r["id"]: r["name"] for r in store.list_catalog(SUBJECT)},
        STUDENT: {r["id"]: full_name(r) for r in store.list_entities(STUDENT)},
        TEACHER: {r["id"]: full_name(r) for r in store.list_entities(TEACHER)},
        PARENT: {r["id"]: full_name(r) for r in store.list_entities(PARENT)},
        MANAGER: {r["id"]: full_name(r) for r in store.list_entities(MANAGER)},
    }


def _names(lookup: dict[str, str], ids: list[str]) -> list[str]:
    return [lookup.get(i, i) for i in ids or []]


def relation_columns(entity_type: str, lookups: dict[str, dict[str, str]]) -> list[Column]:
    if entity_type == STUDENT:
        return [
            Column("Class", lambda r: lookups[CLASS].get(r.get("class_id", ""), "")),
            Column("Level", lambda r: lookups[LEVEL].get(r.get("level_id", ""), "")),
        ]
    if entity_type == TEACHER:
        return [Column("Subjects", lambda r: ", ".join(_names(lookups[SUBJECT], r.get("subject_ids", []))))]
    if entity_type == PARENT:
        return [Column("Children", lambda r: ", ".join(_names(lookups[STUDENT], r.get("student_ids", []))))]
    return [Column("Classes", lambda r: ", ".join(_names(lookups[CLASS], r.get("class_ids", []))))]


def relation_rows(entity_type: str, record: dict[str, Any], lookups: dict[str, dict[str, str]]) -> list[tuple[str, list[str] | str]]:
    """Label/value pairs for a record's relations; lists render as badges."""
    if entity_type == STUDENT:
        parents = []
        for pid in record.get("parent_ids", []):
            name = lookups[PARENT].get(pid, pid)
            parents.append(f"{name} (default)" if pid == record.get("default_parent_id") else name)
        return [
            ("Level", lookups[LEVEL].get(record.get("level_id", ""), "") or EMPTY_DISPLAY),
            ("Class", lookups[CLASS].get(record.get("class_id", ""), "") or EMPTY_DISPLAY),
            ("Parents", parents),
        ]
    if entity_type == TEACHER:
        return [
            ("Subjects", _names(lookups[SUBJECT], record.get("subject_ids", []))),
            ("Classes", _names(lookups[CLASS], record.get("class_ids", []))),
            ("Photo", record.get("photo") or EMPTY_DISPLAY),
        ]
    if entity_type == PARENT:
        return [("Children", _names(lookups[STUDENT], record.get("student_ids", [])))]
    return [
        ("Classes", _names(lookups[CLASS], record.get("class_ids", []))),
        ("Photo", record.get("photo") or EMPTY_DISPLAY),
    ]


class EntityDialog(QtWidgets.QDialog):
    """Add/edit a person: names, relation pickers, then the template's fields."""

    def __init__(
        self,
        parent: QtWidgets.QWidget,
        *,
        title: str,
        entity_type: str,
        fields: list[FieldDescriptor],
        lookups: dict[str, dict[str, str]],
        initial: dict[str, Any] | None,
    ):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.setMinimumWidth(560)

        self.entity_type = entity_type
        self.initial = initial or {}
        self._data: dict[str, Any] = {}

        root = QtWidgets.QVBoxLayout(self)
        hdr = QtWidgets.QLabel(title)
        hdr.setObjectName("TopTitle")
        root.addWidget(hdr)
        if initial is not None:
            root.addWidget(QtWidgets.QLabel(f"{ENTITY_LABELS[entity_type]} ID: {initial.get('id', '')}"))

        scroll = QtWidgets.QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QtWidgets.QFrame.NoFrame)
        body = QtWidgets.QWidget()
        body_lay = QtWidgets.QVBoxLayout(body)

        form = QtWidgets.QFormLayout()
        self.first = QtWidgets.QLineEdit(str(self.initial.get("firstname", "") or ""))
        self.last = QtWidgets.QLineEdit(str(self.initial.get("lastname", "") or ""))
        form.addRow("First name *", self.first)
        form.addRow("Last name *", self.last)

        self.level = self.cls = self.default_parent = None
        self.parents = self.subjects = self.classes = self.students = None
        self.photo: FieldInput | None = None

        if entity_type == STUDENT:
            self.level = QtWidgets.QComboBox()
            fill_combo(self.level, lookups[LEVEL].items(), first="", current=self.initial.get("level_id", ""))
            self.cls = QtWidgets.QComboBox()
            fill_combo(self.cls, lookups[CLASS].items(), first="", current=self.initial.get("class_id", ""))
            self.parents = CheckList()
            self.parents.set_choices(lookups[PARENT].items(), self.initial.get("parent_ids", []))
            self.default_parent = QtWidgets.QComboBox()
            self._parent_names = lookups[PARENT]
            self._refresh_default_parent(self.initial.get("default_parent_id", ""))
            self.parents.itemChanged.connect(lambda *_: self._refresh_default_parent(self.default_parent.currentData() or ""))
            form.addRow("Level", self.level)
            form.addRow("Class", self.cls)
            form.addRow("Parents", self.parents)
            form.addRow("Default parent", self.default_parent)
        elif entity_type == TEACHER:
            self.subjects = CheckList()
            self.subjects.set_choices(lookups[SUBJECT].items(), self.initial.get("subject_ids", []))
            self.classes = CheckList()
            self.classes.set_choices(lookups[CLASS].items(), self.initial.get("class_ids", []))
            form.addRow("Subjects", self.subjects)
            form.addRow("Classes", self.classes)
        elif entity_type == PARENT:
            self.students = CheckList()
            self.students.set_choices(lookups[STUDENT].items(), self.initial.get("student_ids", []))
            form.addRow("Children", self.students)
        else:
            self.classes = CheckList()
            self.classes.set_choices(lookups[CLASS].items(), self.initial.get("class_ids", []))
            form.addRow("Classes", self.classes)

        if entity_type in (TEACHER, MANAGER):
            self.photo = FieldInput(FieldDescriptor(name="photo", label="Photo", type=FieldType.FILE))
            self.photo.set_value(self.initial.get("photo", ""))
            form.addRow("Photo", self.photo)

        body_lay.addLayout(form)

        sep = QtWidgets.QLabel("Additional information")
        sep.setObjectName("SectionTitle")
        body_lay.addSpacing(6)
        body_lay.addWidget(sep)
        dyn_initial = self.initial.get("dynamic_fields", {}) if initial is not None else None
        self.dynamic = DynamicForm(fields, dyn_initial)
        body_lay.addWidget(self.dynamic)
        body_lay.addStretch(1)

        scroll.setWidget(body)
        root.addWidget(scroll, 1)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _refresh_default_parent(self, keep: str) -> None:
        chosen = self.parents.checked_ids()
        fill_combo(self.default_parent, [(pid, self._parent_names.get(pid, pid)) for pid in chosen], current=keep)

    def _on_ok(self) -> None:
        if not self.first.text().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "First name is required.")
            self.first.setFocus()
            return
        if not self.last.text().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "Last name is required.")
            self.last.setFocus()
            return
        dynamic = self.dynamic.validate()
        if dynamic is None:
            return

        d: dict[str, Any] = {
            "firstname": self.first.text().strip(),
            "lastname": self.last.text().strip(),
            "dynamic_fields": dynamic,
        }
        if self.entity_type == STUDENT:
            d["level_id"] = self.level.currentData() or ""
            d["class_id"] = self.cls.currentData() or ""
            d["parent_ids"] = self.parents.checked_ids()
            d["default_parent_id"] = self.default_parent.currentData() or ""
        elif self.entity_type == TEACHER:
            d["subject_ids"] = self.subjects.checked_ids()
            d["class_ids"] = self.classes.checked_ids()
        elif self.entity_type == PARENT:
            d["student_ids"] = self.students.checked_ids()
        else:
            d["class_ids"] = self.classes.checked_ids()
        if self.photo is not None:
            d["photo"] = self.photo.value()
        self._data = d
        self.accept()

    def get_data(self) -> dict[str, Any]:
        return dict(self._data)


class DetailDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, main_window, entity_type: str, record_id: str):
        super().__init__(parent)
        store = main_window.store
        record = store.get_entity(entity_type, record_id)
        template = store.get_template(entity_type)
        lookups = load_lookups(store)

        name = full_name(record)
        self.setWindowTitle(f"{ENTITY_LABELS[entity_type]}: {name}")
        self.setMinimumSize(620, 520)

        root = QtWidgets.QVBoxLayout(self)
        hdr = QtWidgets.QLabel(name)
        hdr.setObjectName("TopTitle")
        root.addWidget(hdr)

        tabs = QtWidgets.QTabWidget()
        root.addWidget(tabs, 1)

        profile = QtWidgets.QWidget()
        ply = QtWidgets.QVBoxLayout(profile)
        base = QtWidgets.QFormLayout()
        base.addRow("ID", QtWidgets.QLabel(record["id"]))
        base.addRow("First name", QtWidgets.QLabel(record.get("firstname", "")))
        base.addRow("Last name", QtWidgets.QLabel(record.get("lastname", "")))
        for label, value in relation_rows(entity_type, record, lookups):
            base.addRow(label, badge_row(value) if isinstance(value, list) else QtWidgets.QLabel(value))
        base.addRow("Created", QtWidgets.QLabel(record.get("created_at", "") or EMPTY_DISPLAY))
        base.addRow("Updated", QtWidgets.QLabel(record.get("updated_at", "") or EMPTY_DISPLAY))
        ply.addLayout(base)

        sep = QtWidgets.QLabel("Additional information")
        sep.setObjectName("SectionTitle")
        ply.addSpacing(8)
        ply.addWidget(sep)
        ply.addWidget(DynamicView(template.fields, record.get("dynamic_fields", {})))
        ply.addStretch(1)
        tabs.addTab(profile, "Profile")

        if entity_type in ATTENDANCE_ENTITY_TYPES:
            tabs.addTab(self._attendance_tab(main_window, entity_type, record_id), "Attendance")

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Close)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    @staticmethod
    def _attendance_tab(main_window, entity_type: str, record_id: str) -> QtWidgets.QWidget:
        svc = main_window.attendance
        flt = AttendanceFilter(entity_id=record_id)
        w = QtWidgets.QWidget()
        lay = QtWidgets.QVBoxLayout(w)
        stats = QtWidgets.QLabel(svc.stats(entity_type, flt).summary())
        stats.setObjectName("CardLabel")
        stats.setWordWrap(True)
        lay.addWidget(stats)
        for kind in (ABSENCE, LATE):
            lay.addWidget(QtWidgets.QLabel(f"{KIND_LABELS[kind]}s"))
            model = RecordTableModel(attendance_columns(entity_type, kind, {}), svc.list_records(entity_type, kind, flt))
            view = make_table_view()
            view.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
            view.setModel(model)
            model.setParent(view)
            lay.addWidget(view, 1)
        return w


class EntityPage(QtWidgets.QWidget):
    """List page for one person type: search, inline name edit, CRUD, Excel."""

    def __init__(self, parent: QtWidgets.QWidget, main_window, entity_type: str):
        super().__init__(parent)
        self.main_window = main_window
        self.entity_type = entity_type
        self.lookups: dict[str, dict[str, str]] = {}

        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        tools, tlay = tool_card()
        self.search = QtWidgets.QLineEdit()
        self.search.setPlaceholderText(f"Search {PLURALS[entity_type].lower()}")
        self.btn_add = button(f"Add {ENTITY_LABELS[entity_type]}", "Primary")
        self.btn_view = button("View")
        self.btn_edit = button("Edit")
        self.btn_del = button("Delete", "Danger")
        self.btn_import = button("Import")
        self.btn_export = button("Export")

        tlay.addWidget(self.search, 2)
        tlay.addStretch(1)
        for b in (self.btn_add, self.btn_view, self.btn_edit, self.btn_del, self.btn_import, self.btn_export):
            tlay.addWidget(b)
        root.addWidget(tools)

        self.table = make_table_view()
        self.model = RecordTableModel()
        self.proxy = RecordFilterProxyModel()
        self.proxy.setSourceModel(self.model)
        self.table.setModel(self.proxy)
        root.addWidget(self.table, 1)

        self.search.textChanged.connect(lambda t: self.proxy.set_filters(search=t))
        self.model.cell_edited.connect(self.inline_edit)
        self.table.doubleClicked.connect(self._on_double_click)
        self.btn_add.clicked.connect(self.add_record)
        self.btn_view.clicked.connect(self.view_record)
        self.btn_edit.clicked.connect(self.edit_record)
        self.btn_del.clicked.connect(self.delete_record)
        self.btn_import.clicked.connect(self.import_records)
        self.btn_export.clicked.connect(self.export_records)

    # ---------- data ----------
    def refresh(self) -> None:
        try:
            store = self.main_window.store
            template = store.get_template(self.entity_type)
            self.lookups = load_lookups(store)
            keep = self._selected_id()

            columns = [
                text_column("ID", "id"),
                text_column("First Name", "firstname", edit=True),
                text_column("Last Name", "lastname", edit=True),
            ]
            columns += relation_columns(self.entity_type, self.lookups)
            limit = self.main_window.settings.table_dynamic_columns
            for fd in table_columns(template.fields, limit):
                columns.append(Column(fd.label, lambda r, fd=fd: display_text(fd, r.get("dynamic_fields", {}).get(fd.name))))

            rows = store.list_entities(self.entity_type)
            rows.sort(key=lambda r: r["id"])
            self.model.set_columns(columns)
            self.model.set_rows(rows)
            self.proxy.set_filters(search=self.search.text())
            if keep:
                self._select_by_id(keep)
            self.main_window.statusBar().showMessage(f"{PLURALS[self.entity_type]} loaded: {len(rows)}")
        except Exception as e:
            self.main_window.report(e, f"qt_refresh_{self.entity_type}", f"Load {PLURALS[self.entity_type].lower()} failed")

    def _selected_id(self) -> str:
        row = selected_row(self.table, self.proxy, self.model)
        return str((row or {}).get("id", "") or "")

    def _select_by_id(self, record_id: str) -> None:
        for r in range(self.model.rowCount()):
            if (self.model.row_dict(r) or {}).get("id") == record_id:
                proxy = self.proxy.mapFromSource(self.model.index(r, 0))
                if proxy.isValid():
                    self.table.selectRow(proxy.row())
                    self.table.scrollTo(proxy)
                break

    def _on_double_click(self, index: QtCore.QModelIndex) -> None:
        src = self.proxy.mapToSource(index)
        if not self.model.columns[src.column()].edit_key:
            self.view_record()

    # ---------- CRUD ----------
    def add_record(self) -> None:
        try:
            store = self.main_window.store
            dlg = EntityDialog(
                self,
                title=f"Add {ENTITY_LABELS[self.entity_type]}",
                entity_type=self.entity_type,
                fields=store.get_template(self.entity_type).fields,
                lookups=load_lookups(store),
                initial=None,
            )
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            created = store.create_entity(self.entity_type, dlg.get_data())
            self.refresh()
            self._select_by_id(created["id"])
            self.main_window.notify(f"{ENTITY_LABELS[self.entity_type]} created: {created['id']}")
        except Exception as e:
            self.main_window.report(e, f"qt_add_{self.entity_type}", f"Add {self.entity_type} failed")

    def edit_record(self) -> None:
        try:
            rid = self._selected_id()
            if not rid:
                return
            store = self.main_window.store
            current = store.get_entity(self.entity_type, rid)
            dlg = EntityDialog(
                self,
                title=f"Edit {ENTITY_LABELS[self.entity_type]}",
                entity_type=self.entity_type,
                fields=store.get_template(self.entity_type).fields,
                lookups=load_lookups(store),
                initial=current,
            )
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            store.update_entity(self.entity_type, rid, dlg.get_data())
            self.refresh()
            self._select_by_id(rid)
            self.main_window.notify(f"{ENTITY_LABELS[self.entity_type]} updated: {rid}")
        except Exception as e:
            self.main_window.report(e, f"qt_edit_{self.entity_type}", f"Edit {self.entity_type} failed")

    def view_record(self) -> None:
        rid = self._selected_id()
        if rid:
            self.main_window.open_detail(self.entity_type, rid)

    def delete_record(self) -> None:
        try:
            rid = self._selected_id()
            if not rid:
                return
            if QtWidgets.QMessageBox.question(self, "Confirm", f"Delete {self.entity_type} {rid}?") != QtWidgets.QMessageBox.Yes:
                return
            self.main_window.store.delete_entity(self.entity_type, rid)
            self.refresh()
            self.main_window.notify(f"{ENTITY_LABELS[self.entity_type]} deleted: {rid}")
        except Exception as e:
            self.main_window.report(e, f"qt_delete_{self.entity_type}", f"Delete {self.entity_type} failed")

    def inline_edit(self, record_id: str, key: str, value: str) -> None:
        try:
            self.main_window.store.update_entity(self.entity_type, record_id, {key: value})
            self.main_window.notify("Updated")
            # Let the editor close before the model resets.
            QtCore.QTimer.singleShot(0, self.refresh)
        except Exception as e:
            self.main_window.report(e, f"qt_inline_edit_{self.entity_type}", "Update failed")

    # ---------- Excel ----------
    def export_records(self) -> None:
        try:
            path, _ = QtWidgets.QFileDialog.getSaveFileName(
                self, "Export", f"{PLURALS[self.entity_type].lower()}.xlsx", "Excel files (*.xlsx)"
            )
            if not path:
                return
            headers = [c.title for c in self.model.columns]
            rows = []
            for r in range(self.proxy.rowCount()):
                rows.append([self.proxy.data(self.proxy.index(r, c)) for c in range(self.proxy.columnCount())])
            export_rows(path, headers, rows)
            self.main_window.notify(f"Exported {len(rows)} rows to {Path(path).name}")
        except Exception as e:
            self.main_window.report(e, f"qt_export_{self.entity_type}", "Export failed")

    def import_records(self) -> None:
        try:
            path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Import", "", "Excel files (*.xlsx)")
            if not path:
                return
            store = self.main_window.store
            rows = read_rows(path)
            columns = ", ".join(expected_columns(store.get_template(self.entity_type).fields))
            answer = QtWidgets.QMessageBox.question(
                self,
                "Import",
                f"Found {len(rows)} rows in {Path(path).name}.\n\nExpected columns: {columns}\n\nImport them?",
            )
            if answer != QtWidgets.QMessageBox.Yes:
                return
            result = import_entities(store, self.entity_type, rows)
            self.refresh()
            if result.errors:
                QtWidgets.QMessageBox.information(self, "Import", result.message + "\n\n" + "\n".join(result.errors[:20]))
            else:
                self.main_window.notify(result.message)
        except Exception as e:
            self.main_window.report(e, f"qt_import_{self.entity_type}", "Import failed")


def catalog_fields(kind: str, levels: dict[str, str]) -> list[FieldDescriptor]:
    """Static descriptors so catalogs reuse the dynamic form and view."""
    rows: list[dict[str, Any]]
    if kind == LEVEL:
        rows = [
            {"name": "name", "label": "Name", "required": True},
            {"name": "description", "label": "Description", "type": "textarea"},
        ]
    elif kind == CLASS:
        rows = [
            {"name": "name", "label": "Name", "required": True, "placeholder": "e.g. 1A"},
            {"name": "section", "label": "Section"},
            {"name": "capacity", "label": "Capacity", "type": "number", "validation": {"min": 0}},
            {
                "name": "level_id",
                "label": "Level",
                "type": "select",
                "required": True,
                "options": [{"value": k, "label": v} for k, v in levels.items()],
            },
        ]
    else:
        rows = [
            {"name": "name", "label": "Name", "required": True},
            {"name": "code", "label": "Code", "required": True},
            {"name": "description", "label": "Description", "type": "textarea"},
        ]
    return [FieldDescriptor.from_dict(dict(r, order=i)) for i, r in enumerate(rows, start=1)]


class CatalogDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, *, title: str, fields: list[FieldDescriptor], initial: dict[str, Any] | None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.setMinimumWidth(420)
        self._data: dict[str, Any] = {}

        root = QtWidgets.QVBoxLayout(self)
        hdr = QtWidgets.QLabel(title)
        hdr.setObjectName("TopTitle")
        root.addWidget(hdr)
        self.form = DynamicForm(fields, initial)
        root.addWidget(self.form)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _on_ok(self) -> None:
        values = self.form.validate()
        if values is None:
            return
        self._data = values
        self.accept()

    def get_data(self) -> dict[str, Any]:
        return dict(self._data)


class CatalogDetailDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, main_window, kind: str, item_id: str):
        super().__init__(parent)
        store = main_window.store
        item = store.get_catalog_item(kind, item_id)
        lookups = load_lookups(store)
        self.setWindowTitle(f"{CATALOG_LABELS[kind]}: {item['name']}")
        self.setMinimumWidth(480)

        root = QtWidgets.QVBoxLayout(self)
        hdr = QtWidgets.QLabel(item["name"])
        hdr.setObjectName("TopTitle")
        root.addWidget(hdr)
        root.addWidget(DynamicView(catalog_fields(kind, lookups[LEVEL]), item))

        if kind == LEVEL:
            related = ("Classes", [c["name"] for c in store.list_catalog(CLASS) if c.get("level_id") == item_id])
        elif kind == CLASS:
            related = ("Students", [full_name(s) for s in store.list_entities(STUDENT) if s.get("class_id") == item_id])
        else:
            related = ("Teachers", [full_name(t) for t in store.list_entities(TEACHER) if item_id in t.get("subject_ids", [])])
        form = QtWidgets.QFormLayout()
        form.addRow(related[0], badge_row(related[1]))
        root.addLayout(form)
        root.addStretch(1)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Close)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)


class CatalogPage(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window, kind: str):
        super().__init__(parent)
        self.main_window = main_window
        self.kind = kind
        self.levels: dict[str, str] = {}

        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        tools, tlay = tool_card()
        self.search = QtWidgets.QLineEdit()
        self.search.setPlaceholderText(f"Search {CATALOG_LABELS[kind].lower()}s")
        self.btn_add = button(f"Add {CATALOG_LABELS[kind]}", "Primary")
        self.btn_view = button("View")
        self.btn_edit = button("Edit")
        self.btn_del = button("Delete", "Danger")
        tlay.addWidget(self.search, 2)
        tlay.addStretch(1)
        for b in (self.btn_add, self.btn_view, self.btn_edit, self.btn_del):
            tlay.addWidget(b)
        root.addWidget(tools)

        self.table = make_table_view()
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.model = RecordTableModel()
        self.proxy = RecordFilterProxyModel()
        self.proxy.setSourceModel(self.model)
        self.table.setModel(self.proxy)
        root.addWidget(self.table, 1)

        self.search.textChanged.connect(lambda t: self.proxy.set_filters(search=t))
        self.table.doubleClicked.connect(lambda *_: self.view_item())
        self.btn_add.clicked.connect(self.add_item)
        self.btn_view.clicked.connect(self.view_item)
        self.btn_edit.clicked.connect(self.edit_item)
        self.btn_del.clicked.connect(self.delete_item)

    def refresh(self) -> None:
        try:
            store = self.main_window.store
            self.levels = {r["id"]: r["name"] for r in store.list_catalog(LEVEL)}
            columns = [text_column("ID", "id")]
            for fd in catalog_fields(self.kind, self.levels):
                columns.append(Column(fd.label, lambda r, fd=fd: display_text(fd, r.get(fd.name))))
            self.model.set_columns(columns)
            self.model.set_rows(store.list_catalog(self.kind))
            self.proxy.set_filters(search=self.search.text())
        except Exception as e:
            self.main_window.report(e, f"qt_refresh_{self.kind}", "Load failed")

    def _selected_id(self) -> str:
        row = selected_row(self.table, self.proxy, self.model)
        return str((row or {}).get("id", "") or "")

    def add_item(self) -> None:
        try:
            label = CATALOG_LABELS[self.kind]
            dlg = CatalogDialog(self, title=f"Add {label}", fields=catalog_fields(self.kind, self.levels), initial=None)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            item = self.main_window.store.create_catalog_item(self.kind, dlg.get_data())
            self.refresh()
            self.main_window.notify(f"{label} created: {item['name']}")
        except Exception as e:
            self.main_window.report(e, f"qt_add_{self.kind}", "Add failed")

    def edit_item(self) -> None:
        try:
            item_id = self._selected_id()
            if not item_id:
                return
            store = self.main_window.store
            label = CATALOG_LABELS[self.kind]
            current = store.get_catalog_item(self.kind, item_id)
            dlg = CatalogDialog(self, title=f"Edit {label}", fields=catalog_fields(self.kind, self.levels), initial=current)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            store.update_catalog_item(self.kind, item_id, dlg.get_data())
            self.refresh()
            self.main_window.notify(f"{label} updated")
        except Exception as e:
            self.main_window.report(e, f"qt_edit_{self.kind}", "Edit failed")

    def view_item(self) -> None:
        try:
            item_id = self._selected_id()
            if item_id:
                CatalogDetailDialog(self, self.main_window, self.kind, item_id).exec()
        except Exception as e:
            self.main_window.report(e, f"qt_view_{self.kind}", "Open failed")

    def delete_item(self) -> None:
        try:
            item_id = self._selected_id()
            if not item_id:
                return
            if QtWidgets.QMessageBox.question(self, "Confirm", f"Delete {self.kind} {item_id}?") != QtWidgets.QMessageBox.Yes:
                return
            self.main_window.store.delete_catalog_item(self.kind, item_id)
            self.refresh()
            self.main_window.notify(f"{CATALOG_LABELS[self.kind]} deleted")
        except Exception as e:
            self.main_window.report(e, f"qt_delete_{self.kind}", "Delete failed")


def attendance_columns(entity_type: str, kind: str, people: dict[str, str]) -> list[Column]:
    cols = [text_column("ID", "id")]
    if people:
        cols.append(Column(ENTITY_LABELS[entity_type], lambda r: people.get(r.get("entity_id", ""), r.get("entity_id", ""))))
    cols.append(text_column("Date", "date"))
    if entity_type == TEACHER:
        cols.append(text_column("Session", "session"))
    if kind == LATE:
        cols.append(Column("Period (min)", lambda r: r.get("period", 0)))
    cols.append(Column("Justified", lambda r: "Yes" if r.get("is_justified") else "No"))
    cols.append(Column("Reason", lambda r: r.get("reason") or EMPTY_DISPLAY))
    return cols


class AttendanceDialog(QtWidgets.QDialog):
    """New records (one per checked person) or an edit of one record."""

    def __init__(
        self,
        parent: QtWidgets.QWidget,
        *,
        entity_type: str,
        kind: str,
        people: dict[str, str],
        sessions: list[str],
        record: dict[str, Any] | None = None,
    ):
        super().__init__(parent)
        verb = "Edit" if record else "Add"
        self.setWindowTitle(f"{verb} {KIND_LABELS[kind]}")
        self.setModal(True)
        self.setMinimumWidth(440)
        self.entity_type = entity_type
        self.kind = kind
        self.record = record or {}

        root = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()

        self.people_list: CheckList | None = None
        self.person: QtWidgets.QComboBox | None = None
        if record:
            self.person = QtWidgets.QComboBox()
            fill_combo(self.person, people.items(), current=record.get("entity_id", ""))
            form.addRow(ENTITY_LABELS[entity_type], self.person)
        else:
            self.people_list = CheckList(height=150)
            self.people_list.set_choices(people.items())
            form.addRow(f"{ENTITY_LABELS[entity_type]}s", self.people_list)

        self.date = QtWidgets.QDateEdit()
        self.date.setCalendarPopup(True)
        self.date.setDisplayFormat("yyyy-MM-dd")
        d = QtCore.QDate.fromString(str(self.record.get("date", "")), "yyyy-MM-dd")
        self.date.setDate(d if d.isValid() else QtCore.QDate.currentDate())
        form.addRow("Date", self.date)

        self.session: QtWidgets.QComboBox | None = None
        if entity_type == TEACHER:
            self.session = QtWidgets.QComboBox()
            self.session.addItems(sessions)
            if self.record.get("session"):
                self.session.setCurrentText(self.record["session"])
            form.addRow("Session", self.session)

        self.period: QtWidgets.QSpinBox | None = None
        if kind == LATE:
            self.period = QtWidgets.QSpinBox()
            self.period.setRange(0, 600)
            self.period.setSuffix(" min")
            self.period.setValue(int(self.record.get("period", 5) or 0))
            form.addRow("Period", self.period)

        self.justified = QtWidgets.QCheckBox("Justified")
        self.justified.setChecked(bool(self.record.get("is_justified")))
        self.reason = QtWidgets.QLineEdit(str(self.record.get("reason", "") or ""))
        form.addRow("", self.justified)
        form.addRow("Reason", self.reason)
        root.addLayout(form)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _entity_ids(self) -> list[str]:
        if self.person is not None:
            return [self.person.currentData() or ""]
        return self.people_list.checked_ids() if self.people_list is not None else []

    def _on_ok(self) -> None:
        if not [i for i in self._entity_ids() if i]:
            QtWidgets.QMessageBox.warning(self, "Validation", f"Select at least one {self.entity_type}.")
            return
        self.accept()

    def get_records(self) -> list[dict[str, Any]]:
        common: dict[str, Any] = {
            "date": self.date.date().toString("yyyy-MM-dd"),
            "is_justified": self.justified.isChecked(),
            "reason": self.reason.text().strip(),
        }
        if self.session is not None:
            common["session"] = self.session.currentText()
        if self.period is not None:
            common["period"] = self.period.value()
        return [dict(common, entity_id=eid) for eid in self._entity_ids() if eid]


class AttendancePage(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        self.people: dict[str, str] = {}

        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        controls, cly = tool_card()
        cly.addWidget(QtWidgets.QLabel("Entity:"))
        self.entity_combo = QtWidgets.QComboBox()
        for et in ATTENDANCE_ENTITY_TYPES:
            self.entity_combo.addItem(PLURALS[et], et)
        cly.addWidget(self.entity_combo)

        cly.addWidget(QtWidgets.QLabel("Type:"))
        self.kind_combo = QtWidgets.QComboBox()
        self.kind_combo.addItem("Absences", ABSENCE)
        self.kind_combo.addItem("Lates", LATE)
        cly.addWidget(self.kind_combo)

        self.person_combo = QtWidgets.QComboBox()
        cly.addWidget(self.person_combo, 1)

        self.date_from = QtWidgets.QLineEdit()
        self.date_from.setPlaceholderText("From YYYY-MM-DD")
        self.date_to = QtWidgets.QLineEdit()
        self.date_to.setPlaceholderText("To YYYY-MM-DD")
        cly.addWidget(self.date_from)
        cly.addWidget(self.date_to)

        self.justified_combo = QtWidgets.QComboBox()
        self.justified_combo.addItems(["All", "Justified", "Unjustified"])
        cly.addWidget(self.justified_combo)

        self.btn_add = button("Add", "Primary")
        self.btn_edit = button("Edit")
        self.btn_del = button("Delete", "Danger")
        for b in (self.btn_add, self.btn_edit, self.btn_del):
            cly.addWidget(b)
        root.addWidget(controls)

        summary_card, sly = tool_card()
        self.lbl_summary = QtWidgets.QLabel("")
        self.lbl_summary.setObjectName("CardLabel")
        sly.addWidget(self.lbl_summary)
        root.addWidget(summary_card)

        self.table = make_table_view()
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.model = RecordTableModel()
        self.proxy = RecordFilterProxyModel()
        self.proxy.setSourceModel(self.model)
        self.table.setModel(self.proxy)
        root.addWidget(self.table, 1)

        self.entity_combo.currentIndexChanged.connect(lambda *_: self.refresh(reload_people=True))
        self.kind_combo.currentIndexChanged.connect(lambda *_: self.refresh())
        self.person_combo.currentIndexChanged.connect(lambda *_: self.refresh())
        self.justified_combo.currentIndexChanged.connect(lambda *_: self.refresh())
        self.date_from.editingFinished.connect(self.refresh)
        self.date_to.editingFinished.connect(self.refresh)
        self.btn_add.clicked.connect(self.add_records)
        self.btn_edit.clicked.connect(self.edit_record)
        self.btn_del.clicked.connect(self.delete_record)

    @property
    def entity_type(self) -> str:
        return self.entity_combo.currentData() or STUDENT

    @property
    def kind(self) -> str:
        return self.kind_combo.currentData() or ABSENCE

    def current_filter(self) -> AttendanceFilter:
        errors = {}
        dates = {}
        for key, edit in (("date_from", self.date_from), ("date_to", self.date_to)):
            text = edit.text().strip()
            if text and not QtCore.QDate.fromString(text, "yyyy-MM-dd").isValid():
                errors[key] = "Use YYYY-MM-DD"
            dates[key] = text
        if errors:
            raise ValidationError(errors)
        justified = {"Justified": True, "Unjustified": False}.get(self.justified_combo.currentText())
        return AttendanceFilter(
            entity_id=self.person_combo.currentData() or "",
            date_from=dates["date_from"],
            date_to=dates["date_to"],
            is_justified=justified,
        )

    def refresh(self, reload_people: bool = False) -> None:
        try:
            store = self.main_window.store
            if reload_people or not self.people:
                self.people = {r["id"]: full_name(r) for r in store.list_entities(self.entity_type)}
                fill_combo(self.person_combo, self.people.items(), first=f"(All {PLURALS[self.entity_type].lower()})")
            flt = self.current_filter()
            svc = self.main_window.attendance
            rows = svc.list_records(self.entity_type, self.kind, flt)
            rows.sort(key=lambda r: (r.get("date", ""), r["id"]), reverse=True)
            self.model.set_columns(attendance_columns(self.entity_type, self.kind, self.people))
            self.model.set_rows(rows)
            self.lbl_summary.setText(svc.stats(self.entity_type, flt).summary())
        except Exception as e:
            self.main_window.report(e, "qt_refresh_attendance", "Load attendance failed")

    def _selected(self) -> dict[str, Any] | None:
        return selected_row(self.table, self.proxy, self.model)

    def add_records(self) -> None:
        try:
            dlg = AttendanceDialog(
                self,
                entity_type=self.entity_type,
                kind=self.kind,
                people=self.people,
                sessions=self.main_window.store.get_sessions(),
            )
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            records = dlg.get_records()
            svc = self.main_window.attendance
            if len(records) == 1:
                svc.create_record(self.entity_type, self.kind, records[0])
                self.main_window.notify(f"{KIND_LABELS[self.kind]} added")
            else:
                result = svc.create_bulk(self.entity_type, self.kind, records)
                self.main_window.notify(result.message)
            self.refresh()
        except Exception as e:
            self.main_window.report(e, "qt_add_attendance", "Add attendance failed")

    def edit_record(self) -> None:
        try:
            row = self._selected()
            if not row:
                return
            dlg = AttendanceDialog(
                self,
                entity_type=self.entity_type,
                kind=self.kind,
                people=self.people,
                sessions=self.main_window.store.get_sessions(),
                record=row,
            )
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            self.main_window.attendance.update_record(self.entity_type, self.kind, row["id"], dlg.get_records()[0])
            self.main_window.notify("Updated")
            self.refresh()
        except Exception as e:
            self.main_window.report(e, "qt_edit_attendance", "Edit attendance failed")

    def delete_record(self) -> None:
        try:
            row = self._selected()
            if not row:
                return
            if QtWidgets.QMessageBox.question(self, "Confirm", f"Delete record {row['id']}?") != QtWidgets.QMessageBox.Yes:
                return
            self.main_window.attendance.delete_record(self.entity_type, self.kind, row["id"])
            self.main_window.notify("Deleted")
            self.refresh()
        except Exception as e:
            self.main_window.report(e, "qt_delete_attendance", "Delete attendance failed")
