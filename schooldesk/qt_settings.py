"""Settings page: form templates, teaching sessions and application settings."""
from __future__ import annotations

from typing import Any

from PySide6 import QtCore, QtWidgets

from .constants import ENTITY_LABELS, ENTITY_TYPES, MANAGER, PARENT, STUDENT, TEACHER
from .errors import TemplateError
from .qt_common import button
from .settings_store import Settings
from .templates import CHOICE_TYPES, FieldDescriptor, FieldType, TemplateDraft, normalize_field_name, pattern_error

TYPE_LABELS = {
    FieldType.TEXT: "Text",
    FieldType.EMAIL: "Email",
    FieldType.PHONE: "Phone",
    FieldType.NUMBER: "Number",
    FieldType.DATE: "Date",
    FieldType.TEXTAREA: "Long text",
    FieldType.SELECT: "Select",
    FieldType.MULTI_SELECT: "Multi-select",
    FieldType.FILE: "File",
}


def _card(title: str) -> tuple[QtWidgets.QFrame, QtWidgets.QVBoxLayout]:
    card = QtWidgets.QFrame()
    card.setObjectName("Card")
    lay = QtWidgets.QVBoxLayout(card)
    lay.setContentsMargins(16, 16, 16, 16)
    lbl = QtWidgets.QLabel(title)
    lbl.setObjectName("TopTitle")
    lay.addWidget(lbl)
    return card, lay


class FieldEditorDialog(QtWidgets.QDialog):
    """Create or edit one field descriptor. The name is fixed once created."""

    def __init__(self, parent: QtWidgets.QWidget, fd: FieldDescriptor | None = None):
        super().__init__(parent)
        self.setWindowTitle("Edit Field" if fd else "Add Field")
        self.setModal(True)
        self.setMinimumWidth(520)
        self.original = fd
        self._descriptor: FieldDescriptor | None = None

        root = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()

        self.label = QtWidgets.QLineEdit()
        self.name = QtWidgets.QLineEdit()
        self.name.setPlaceholderText("generated from the label")
        self.type = QtWidgets.QComboBox()
        for t, text in TYPE_LABELS.items():
            self.type.addItem(text, t.value)
        self.required = QtWidgets.QCheckBox("Required")
        self.visible = QtWidgets.QCheckBox("Visible")
        self.visible.setChecked(True)
        self.editable = QtWidgets.QCheckBox("Editable after creation")
        self.editable.setChecked(True)
        self.placeholder = QtWidgets.QLineEdit()
        self.default_value = QtWidgets.QLineEdit()
        self.default_value.setPlaceholderText("Comma-separated for multi-select")

        flags = QtWidgets.QHBoxLayout()
        for cb in (self.required, self.visible, self.editable):
            flags.addWidget(cb)
        flags.addStretch(1)

        form.addRow("Label *", self.label)
        form.addRow("Name", self.name)
        form.addRow("Type", self.type)
        form.addRow("", flags)
        form.addRow("Placeholder", self.placeholder)
        form.addRow("Default value", self.default_value)
        root.addLayout(form)

        self.options_box = QtWidgets.QGroupBox("Options")
        oly = QtWidgets.QVBoxLayout(self.options_box)
        self.options = QtWidgets.QTableWidget(0, 2)
        self.options.setHorizontalHeaderLabels(["Value", "Label"])
        self.options.horizontalHeader().setStretchLastSection(True)
        self.options.verticalHeader().setVisible(False)
        self.options.setFixedHeight(140)
        orow = QtWidgets.QHBoxLayout()
        btn_add_opt = button("Add option")
        btn_del_opt = button("Remove option")
        orow.addWidget(btn_add_opt)
        orow.addWidget(btn_del_opt)
        orow.addStretch(1)
        oly.addWidget(self.options)
        oly.addLayout(orow)
        root.addWidget(self.options_box)

        rules = QtWidgets.QGroupBox("Validation")
        rly = QtWidgets.QFormLayout(rules)
        self.v_min = QtWidgets.QLineEdit()
        self.v_max = QtWidgets.QLineEdit()
        self.v_pattern = QtWidgets.QLineEdit()
        self.v_message = QtWidgets.QLineEdit()
        self.v_min.setPlaceholderText("value, length or count")
        self.v_max.setPlaceholderText("value, length or count")
        rly.addRow("Min", self.v_min)
        rly.addRow("Max", self.v_max)
        rly.addRow("Pattern", self.v_pattern)
        rly.addRow("Message", self.v_message)
        root.addWidget(rules)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

        btn_add_opt.clicked.connect(lambda: self._add_option_row("", ""))
        btn_del_opt.clicked.connect(self._remove_option_row)
        self.type.currentIndexChanged.connect(lambda *_: self._sync_type())

        if fd is not None:
            self._load(fd)
        self._sync_type()

    def _load(self, fd: FieldDescriptor) -> None:
        self.label.setText(fd.label)
        self.name.setText(fd.name)
        self.name.setEnabled(False)
        self.type.setCurrentIndex(max(self.type.findData(fd.type.value), 0))
        self.required.setChecked(fd.required)
        self.visible.setChecked(fd.visible)
        self.editable.setChecked(fd.editable)
        self.placeholder.setText(fd.placeholder)
        dv = fd.default_value
        self.default_value.setText(", ".join(map(str, dv)) if isinstance(dv, list) else ("" if dv is None else str(dv)))
        for opt in fd.options:
            self._add_option_row(opt.value, opt.label)
        v = fd.validation
        if v is not None:
            self.v_min.setText("" if v.min is None else f"{v.min:g}")
            self.v_max.setText("" if v.max is None else f"{v.max:g}")
            self.v_pattern.setText(v.pattern or "")
            self.v_message.setText(v.message or "")

    def _add_option_row(self, value: str, label: str) -> None:
        r = self.options.rowCount()
        self.options.insertRow(r)
        self.options.setItem(r, 0, QtWidgets.QTableWidgetItem(value))
        self.options.setItem(r, 1, QtWidgets.QTableWidgetItem(label))

    def _remove_option_row(self) -> None:
        r = self.options.currentRow()
        if r >= 0:
            self.options.removeRow(r)

    def _sync_type(self) -> None:
        self.options_box.setVisible(FieldType.parse(self.type.currentData()) in CHOICE_TYPES)

    def _option_dicts(self) -> list[dict[str, str]]:
        out = []
        for r in range(self.options.rowCount()):
            value = (self.options.item(r, 0).text() if self.options.item(r, 0) else "").strip()
            label = (self.options.item(r, 1).text() if self.options.item(r, 1) else "").strip()
            if value:
                out.append({"value": value, "label": label or value})
        return out

    def _default_value(self, ftype: FieldType) -> Any:
        text = self.default_value.text().strip()
        if not text:
            return None
        if ftype == FieldType.MULTI_SELECT:
            return [v.strip() for v in text.split(",") if v.strip()]
        if ftype == FieldType.NUMBER:
            try:
                n = float(text)
            except ValueError:
                return None
            return int(n) if n.is_integer() else n
        return text

    def _on_ok(self) -> None:
        label = self.label.text().strip()
        if not label:
            QtWidgets.QMessageBox.warning(self, "Validation", "Label is required.")
            return
        ftype = FieldType.parse(self.type.currentData())
        if ftype in CHOICE_TYPES and not self._option_dicts():
            QtWidgets.QMessageBox.warning(self, "Validation", "Add at least one option.")
            return
        bad_pattern = pattern_error(self.v_pattern.text().strip())
        if bad_pattern:
            QtWidgets.QMessageBox.warning(self, "Validation", bad_pattern)
            return
        name = self.name.text().strip() or normalize_field_name(label)
        validation = {
            "min": self.v_min.text().strip(),
            "max": self.v_max.text().strip(),
            "pattern": self.v_pattern.text().strip(),
            "message": self.v_message.text().strip(),
        }
        self._descriptor = FieldDescriptor.from_dict({
            "name": name,
            "label": label,
            "type": ftype.value,
            "required": self.required.isChecked(),
            "visible": self.visible.isChecked(),
            "editable": self.editable.isChecked(),
            "placeholder": self.placeholder.text().strip(),
            "default_value": self._default_value(ftype),
            "options": self._option_dicts() if ftype in CHOICE_TYPES else [],
            "validation": validation if any(validation.values()) else None,
        })
        self.accept()

    def get_descriptor(self) -> FieldDescriptor | None:
        return self._descriptor


class TemplateEditor(QtWidgets.QWidget):
    """Field list for one entity type, edited through a TemplateDraft and saved as a whole."""

    def __init__(self, parent: QtWidgets.QWidget, main_window, entity_type: str):
        super().__init__(parent)
        self.main_window = main_window
        self.entity_type = entity_type
        self.draft: TemplateDraft | None = None

        root = QtWidgets.QHBoxLayout(self)
        root.setContentsMargins(0, 8, 0, 0)

        self.list = QtWidgets.QListWidget()
        self.list.setDragDropMode(QtWidgets.QAbstractItemView.InternalMove)
        root.addWidget(self.list, 1)

        side = QtWidgets.QVBoxLayout()
        self.lbl_version = QtWidgets.QLabel("")
        self.lbl_version.setObjectName("CardLabel")
        self.btn_add = button("Add field", "Primary")
        self.btn_edit = button("Edit")
        self.btn_remove = button("Remove", "Danger")
        self.btn_up = button("Move up")
        self.btn_down = button("Move down")
        self.btn_save = button("Save template", "Primary")
        self.btn_revert = button("Discard changes")
        side.addWidget(self.lbl_version)
        for b in (self.btn_add, self.btn_edit, self.btn_remove, self.btn_up, self.btn_down):
            side.addWidget(b)
        side.addStretch(1)
        side.addWidget(self.btn_revert)
        side.addWidget(self.btn_save)
        root.addLayout(side)

        self.list.model().rowsMoved.connect(lambda *_: self._on_dragged())
        self.list.itemDoubleClicked.connect(lambda *_: self.edit_field())
        self.btn_add.clicked.connect(self.add_field)
        self.btn_edit.clicked.connect(self.edit_field)
        self.btn_remove.clicked.connect(self.remove_field)
        self.btn_up.clicked.connect(lambda: self._move(-1))
        self.btn_down.clicked.connect(lambda: self._move(1))
        self.btn_save.clicked.connect(self.save)
        self.btn_revert.clicked.connect(self.load)

    def load(self) -> None:
        try:
            template = self.main_window.store.get_template(self.entity_type)
            self.draft = TemplateDraft(template)
            self._render()
        except Exception as e:
            self.main_window.report(e, f"qt_load_template_{self.entity_type}", "Load template failed")

    def _render(self, select: int | None = None) -> None:
        if self.draft is None:
            return
        self.list.blockSignals(True)
        self.list.clear()
        for fd in self.draft.fields:
            flags = []
            if fd.required:
                flags.append("required")
            if not fd.visible:
                flags.append("hidden")
            if not fd.editable:
                flags.append("locked")
            text = f"{fd.order}. {fd.label}  [{fd.name}]  {TYPE_LABELS[fd.type]}"
            if flags:
                text += f"  ({', '.join(flags)})"
            item = QtWidgets.QListWidgetItem(text)
            item.setData(QtCore.Qt.UserRole, fd.name)
            self.list.addItem(item)
        self.list.blockSignals(False)
        if select is not None and 0 <= select < self.list.count():
            self.list.setCurrentRow(select)
        state = "unsaved changes" if self.draft.dirty else "saved"
        self.lbl_version.setText(f"Version {self.draft.base_version} ({state})")

    def _on_dragged(self) -> None:
        try:
            names = [self.list.item(i).data(QtCore.Qt.UserRole) for i in range(self.list.count())]
            self.draft.reorder(names)
            # Re-render on the next tick; the view is still finishing the drop.
            QtCore.QTimer.singleShot(0, lambda: self._render(self.list.currentRow()))
        except Exception as e:
            self.main_window.report(e, "qt_reorder_fields", "Reorder failed")

    def _move(self, step: int) -> None:
        row = self.list.currentRow()
        if row < 0 or self.draft is None:
            return
        if step < 0:
            self.draft.move_up(row)
        else:
            self.draft.move_down(row)
        self._render(max(0, min(row + step, len(self.draft.fields) - 1)))

    def add_field(self) -> None:
        try:
            dlg = FieldEditorDialog(self)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            self.draft.add_field(dlg.get_descriptor())
            self._render(len(self.draft.fields) - 1)
        except TemplateError as e:
            QtWidgets.QMessageBox.warning(self, "Validation", "\n".join(e.errors.values()))
        except Exception as e:
            self.main_window.report(e, "qt_add_field", "Add field failed")

    def edit_field(self) -> None:
        try:
            row = self.list.currentRow()
            if row < 0:
                return
            dlg = FieldEditorDialog(self, self.draft.fields[row])
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            self.draft.update_field(row, dlg.get_descriptor())
            self._render(row)
        except TemplateError as e:
            QtWidgets.QMessageBox.warning(self, "Validation", "\n".join(e.errors.values()))
        except Exception as e:
            self.main_window.report(e, "qt_edit_field", "Edit field failed")

    def remove_field(self) -> None:
        row = self.list.currentRow()
        if row < 0:
            return
        fd = self.draft.fields[row]
        msg = f"Remove field '{fd.label}'? Values already stored for it are kept but no longer shown."
        if QtWidgets.QMessageBox.question(self, "Confirm", msg) != QtWidgets.QMessageBox.Yes:
            return
        self.draft.remove_field(row)
        self._render(min(row, len(self.draft.fields) - 1))

    def save(self) -> None:
        try:
            saved = self.draft.commit(self.main_window.store, self.entity_type)
            self._render(self.list.currentRow())
            self.main_window.notify(f"{ENTITY_LABELS[self.entity_type]} template saved (version {saved.version})")
            self.main_window.refresh_pages()
        except Exception as e:
            self.main_window.report(e, f"qt_save_template_{self.entity_type}", "Save template failed")


class SessionsEditor(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        root = QtWidgets.QHBoxLayout(self)
        root.setContentsMargins(0, 8, 0, 0)

        self.list = QtWidgets.QListWidget()
        root.addWidget(self.list, 1)

        side = QtWidgets.QVBoxLayout()
        self.new_session = QtWidgets.QLineEdit()
        self.new_session.setPlaceholderText("e.g. 08:00-09:00")
        self.btn_add = button("Add")
        self.btn_remove = button("Remove", "Danger")
        self.btn_save = button("Save sessions", "Primary")
        side.addWidget(self.new_session)
        side.addWidget(self.btn_add)
        side.addWidget(self.btn_remove)
        side.addStretch(1)
        side.addWidget(self.btn_save)
        root.addLayout(side)

        self.btn_add.clicked.connect(self._add)
        self.new_session.returnPressed.connect(self._add)
        self.btn_remove.clicked.connect(self._remove)
        self.btn_save.clicked.connect(self.save)

    def load(self) -> None:
        try:
            self.list.clear()
            for s in self.main_window.store.get_sessions():
                self._append(s)
        except Exception as e:
            self.main_window.report(e, "qt_load_sessions", "Load sessions failed")

    def _append(self, text: str) -> None:
        item = QtWidgets.QListWidgetItem(text)
        item.setFlags(item.flags() | QtCore.Qt.ItemIsEditable)
        self.list.addItem(item)

    def _add(self) -> None:
        text = self.new_session.text().strip()
        if text:
            self._append(text)
            self.new_session.clear()

    def _remove(self) -> None:
        row = self.list.currentRow()
        if row >= 0:
            self.list.takeItem(row)

    def save(self) -> None:
        try:
            sessions = [self.list.item(i).text() for i in range(self.list.count())]
            saved = self.main_window.store.update_sessions(sessions)
            self.load()
            self.main_window.notify(f"{len(saved)} sessions saved")
        except Exception as e:
            self.main_window.report(e, "qt_save_sessions", "Save sessions failed")


class AppSettingsTab(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(0, 8, 0, 0)
        root.setSpacing(16)

        id_card, id_layout = _card("ID Prefixes")
        id_form = QtWidgets.QFormLayout()
        self.prefixes: dict[str, QtWidgets.QLineEdit] = {}
        for et in ENTITY_TYPES:
            self.prefixes[et] = QtWidgets.QLineEdit()
            id_form.addRow(f"{ENTITY_LABELS[et]} ID prefix", self.prefixes[et])
        id_layout.addLayout(id_form)
        root.addWidget(id_card)

        ui_card, ui_layout = _card("Data and Display")
        ui_form = QtWidgets.QFormLayout()
        self.delay = QtWidgets.QSpinBox()
        self.delay.setRange(0, 2000)
        self.delay.setSuffix(" ms")
        self.columns = QtWidgets.QSpinBox()
        self.columns.setRange(0, 5)
        ui_form.addRow("Simulated latency", self.delay)
        ui_form.addRow("Custom fields shown in tables", self.columns)
        ui_layout.addLayout(ui_form)
        root.addWidget(ui_card)

        actions = QtWidgets.QHBoxLayout()
        actions.addStretch(1)
        self.btn_save = button("Save Settings", "Primary")
        actions.addWidget(self.btn_save)
        root.addLayout(actions)
        root.addStretch(1)

        self.btn_save.clicked.connect(self.save)

    def load_settings(self, settings: Settings) -> None:
        for et, prefix in settings.id_prefixes().items():
            self.prefixes[et].setText(prefix)
        self.delay.setValue(settings.mock_delay_ms)
        self.columns.setValue(settings.table_dynamic_columns)

    def get_settings(self) -> Settings:
        return Settings.from_dict({
            "student_id_prefix": self.prefixes[STUDENT].text().strip(),
            "teacher_id_prefix": self.prefixes[TEACHER].text().strip(),
            "parent_id_prefix": self.prefixes[PARENT].text().strip(),
            "manager_id_prefix": self.prefixes[MANAGER].text().strip(),
            "mock_delay_ms": self.delay.value(),
            "table_dynamic_columns": self.columns.value(),
        })

    def save(self) -> None:
        try:
            self.main_window.apply_settings(self.get_settings())
            self.main_window.notify("Settings saved")
        except Exception as e:
            self.main_window.report(e, "qt_save_settings", "Save settings failed")


class SettingsPage(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        tabs = QtWidgets.QTabWidget()
        templates = QtWidgets.QTabWidget()
        self.editors = {et: TemplateEditor(self, main_window, et) for et in ENTITY_TYPES}
        for et, editor in self.editors.items():
            templates.addTab(editor, ENTITY_LABELS[et])
        self.sessions = SessionsEditor(self, main_window)
        self.app_settings = AppSettingsTab(self, main_window)

        tabs.addTab(templates, "Form Templates")
        tabs.addTab(self.sessions, "Teaching Sessions")
        tabs.addTab(self.app_settings, "Application")
        root.addWidget(tabs, 1)

    def refresh(self) -> None:
        for editor in self.editors.values():
            # Keep unsaved edits when the page is revisited.
            if editor.draft is None or not editor.draft.dirty:
                editor.load()
        self.sessions.load()
        self.app_settings.load_settings(self.main_window.settings)
