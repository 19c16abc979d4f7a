"""Qt widgets generated from field descriptors: input form and read-only view."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from PySide6 import QtCore, QtGui, QtWidgets

from .constants import EMPTY_DISPLAY
from .errors import TemplateError
from .schema import compile_schema, dynamic_defaults
from .templates import FieldDescriptor, FieldType, visible_fields
from .view import display_value

EMPTY_DATE = QtCore.QDate(1900, 1, 1)


class FieldInput(QtWidgets.QWidget):
    """One input bound to a descriptor; ``value()`` returns raw form state."""

    def __init__(self, fd: FieldDescriptor, parent: QtWidgets.QWidget | None = None):
        super().__init__(parent)
        self.fd = fd
        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(6)

        t = fd.type
        self.editor: QtWidgets.QWidget
        self.browse: QtWidgets.QPushButton | None = None
        if t == FieldType.TEXTAREA:
            self.editor = QtWidgets.QPlainTextEdit()
            self.editor.setPlaceholderText(fd.placeholder)
            self.editor.setFixedHeight(72)
        elif t == FieldType.DATE:
            self.editor = QtWidgets.QDateEdit()
            self.editor.setCalendarPopup(True)
            self.editor.setDisplayFormat("yyyy-MM-dd")
            self.editor.setMinimumDate(EMPTY_DATE)
            # The minimum date doubles as "no value".
            self.editor.setSpecialValueText(" ")
            self.editor.setDate(EMPTY_DATE)
        elif t == FieldType.SELECT:
            self.editor = QtWidgets.QComboBox()
            self.editor.addItem(fd.placeholder or "", "")
            for opt in fd.options:
                self.editor.addItem(opt.label or opt.value, opt.value)
        elif t == FieldType.MULTI_SELECT:
            if fd.options:
                self.editor = QtWidgets.QListWidget()
                self.editor.setFixedHeight(min(120, 26 * len(fd.options) + 6))
                for opt in fd.options:
                    item = QtWidgets.QListWidgetItem(opt.label or opt.value)
                    item.setData(QtCore.Qt.UserRole, opt.value)
                    item.setFlags(item.flags() | QtCore.Qt.ItemIsUserCheckable)
                    item.setCheckState(QtCore.Qt.Unchecked)
                    self.editor.addItem(item)
            else:
                self.editor = QtWidgets.QLabel("No options configured")
                self.editor.setObjectName("CardLabel")
        elif t == FieldType.FILE:
            self.editor = QtWidgets.QLineEdit()
            self.editor.setReadOnly(True)
            self.editor.setPlaceholderText(fd.placeholder or "No file chosen")
            self.browse = QtWidgets.QPushButton("Browse…")
            self.browse.clicked.connect(self._pick_file)
        else:
            self.editor = QtWidgets.QLineEdit()
            self.editor.setPlaceholderText(fd.placeholder)
            if t == FieldType.EMAIL:
                self.editor.setInputMethodHints(QtCore.Qt.ImhEmailCharactersOnly)
            elif t == FieldType.PHONE:
                self.editor.setInputMethodHints(QtCore.Qt.ImhDialableCharactersOnly)
            elif t == FieldType.NUMBER:
                validator = QtGui.QDoubleValidator(self.editor)
                validator.setNotation(QtGui.QDoubleValidator.StandardNotation)
                self.editor.setValidator(validator)

        lay.addWidget(self.editor, 1)
        if self.browse is not None:
            lay.addWidget(self.browse)

    def _pick_file(self) -> None:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, f"Choose {self.fd.label}")
        if path:
            # Only the file name is kept; nothing is uploaded.
            self.editor.setText(Path(path).name)

    def value(self) -> Any:
        e = self.editor
        if isinstance(e, QtWidgets.QPlainTextEdit):
            return e.toPlainText()
        if isinstance(e, QtWidgets.QDateEdit):
            d = e.date()
            return "" if d == EMPTY_DATE else d.toString("yyyy-MM-dd")
        if isinstance(e, QtWidgets.QComboBox):
            return e.currentData() or ""
        if isinstance(e, QtWidgets.QListWidget):
            return [
                e.item(i).data(QtCore.Qt.UserRole)
                for i in range(e.count())
                if e.item(i).checkState() == QtCore.Qt.Checked
            ]
        if isinstance(e, QtWidgets.QLineEdit):
            return e.text()
        return []

    def set_value(self, value: Any) -> None:
        e = self.editor
        if isinstance(e, QtWidgets.QPlainTextEdit):
            e.setPlainText("" if value is None else str(value))
        elif isinstance(e, QtWidgets.QDateEdit):
            d = QtCore.QDate.fromString(str(value or ""), "yyyy-MM-dd")
            e.setDate(d if d.isValid() else EMPTY_DATE)
        elif isinstance(e, QtWidgets.QComboBox):
            raw = "" if value is None else str(value)
            idx = e.findData(raw)
            if idx < 0 and raw:
                # Keep values whose option was removed so validation flags them.
                e.addItem(f"{raw} (not an option)", raw)
                idx = e.count() - 1
            e.setCurrentIndex(max(idx, 0))
        elif isinstance(e, QtWidgets.QListWidget):
            chosen = [str(v) for v in value] if isinstance(value, (list, tuple)) else ([str(value)] if value else [])
            known = {e.item(i).data(QtCore.Qt.UserRole) for i in range(e.count())}
            for raw in chosen:
                if raw not in known:
                    item = QtWidgets.QListWidgetItem(f"{raw} (not an option)")
                    item.setData(QtCore.Qt.UserRole, raw)
                    item.setFlags(item.flags() | QtCore.Qt.ItemIsUserCheckable)
                    e.addItem(item)
                    known.add(raw)
            for i in range(e.count()):
                item = e.item(i)
                item.setCheckState(QtCore.Qt.Checked if item.data(QtCore.Qt.UserRole) in chosen else QtCore.Qt.Unchecked)
        elif isinstance(e, QtWidgets.QLineEdit):
            e.setText("" if value is None else str(value))

    def set_read_only(self, read_only: bool) -> None:
        e = self.editor
        if isinstance(e, (QtWidgets.QLineEdit, QtWidgets.QPlainTextEdit)):
            if self.fd.type != FieldType.FILE:
                e.setReadOnly(read_only)
        elif isinstance(e, QtWidgets.QDateEdit):
            e.setReadOnly(read_only)
        else:
            e.setEnabled(not read_only)
        if self.browse is not None:
            self.browse.setEnabled(not read_only)


class DynamicForm(QtWidgets.QWidget):
    def __init__(
        self,
        fields: Iterable[FieldDescriptor],
        initial: dict[str, Any] | None = None,
        parent: QtWidgets.QWidget | None = None,
    ):
        super().__init__(parent)
        self.fields = visible_fields(fields)
        self.editing = initial is not None
        self.inputs: dict[str, FieldInput] = {}
        self.error_labels: dict[str, QtWidgets.QLabel] = {}

        form = QtWidgets.QFormLayout(self)
        form.setContentsMargins(0, 0, 0, 0)
        for fd in self.fields:
            inp = FieldInput(fd)
            err = QtWidgets.QLabel("")
            err.setObjectName("FieldError")
            err.setVisible(False)

            cell = QtWidgets.QWidget()
            cly = QtWidgets.QVBoxLayout(cell)
            cly.setContentsMargins(0, 0, 0, 0)
            cly.setSpacing(2)
            cly.addWidget(inp)
            cly.addWidget(err)

            form.addRow(f"{fd.label} *" if fd.required else fd.label, cell)
            if self.editing and not fd.editable:
                inp.set_read_only(True)
            self.inputs[fd.name] = inp
            self.error_labels[fd.name] = err

        self.set_values(dynamic_defaults(self.fields, initial))

    def values(self) -> dict[str, Any]:
        return {name: inp.value() for name, inp in self.inputs.items()}

    def set_values(self, values: dict[str, Any]) -> None:
        for name, inp in self.inputs.items():
            if name in values:
                inp.set_value(values[name])

    def clear_errors(self) -> None:
        for lbl in self.error_labels.values():
            lbl.clear()
            lbl.setVisible(False)

    def show_errors(self, errors: dict[str, str]) -> None:
        self.clear_errors()
        for name, msg in errors.items():
            lbl = self.error_labels.get(name)
            if lbl is not None:
                lbl.setText(msg)
                lbl.setVisible(True)
        first = next((n for n in self.inputs if n in errors), None)
        if first:
            self.inputs[first].editor.setFocus()

    def validate(self) -> dict[str, Any] | None:
        try:
            schema = compile_schema(self.fields)
        except TemplateError as e:
            # A broken field rule blocks saving until the template is fixed.
            self.show_errors(e.errors)
            return None
        values = self.values()
        errors = schema.errors(values)
        if errors:
            self.show_errors(errors)
            return None
        self.clear_errors()
        return schema.validate(values)


class DynamicView(QtWidgets.QWidget):
    def __init__(
        self,
        fields: Iterable[FieldDescriptor],
        data: dict[str, Any] | None,
        parent: QtWidgets.QWidget | None = None,
    ):
        super().__init__(parent)
        data = data or {}
        form = QtWidgets.QFormLayout(self)
        form.setContentsMargins(0, 0, 0, 0)
        fields = visible_fields(fields)
        if not fields:
            form.addRow(QtWidgets.QLabel("No additional fields configured"))
        for fd in fields:
            shown = display_value(fd, data.get(fd.name))
            label = QtWidgets.QLabel(fd.label)
            label.setObjectName("CardLabel")
            form.addRow(label, self._value_widget(shown))

    @staticmethod
    def _value_widget(shown: str | list[str]) -> QtWidgets.QWidget:
        if not isinstance(shown, list):
            lbl = QtWidgets.QLabel(shown)
            lbl.setWordWrap(True)
            lbl.setTextInteractionFlags(QtCore.Qt.TextSelectableByMouse)
            return lbl
        return badge_row(shown)


def badge_row(labels: list[str]) -> QtWidgets.QWidget:
    row = QtWidgets.QWidget()
    lay = QtWidgets.QHBoxLayout(row)
    lay.setContentsMargins(0, 0, 0, 0)
    lay.setSpacing(4)
    if not labels:
        lay.addWidget(QtWidgets.QLabel(EMPTY_DISPLAY))
    for text in labels:
        b = QtWidgets.QLabel(text)
        b.setObjectName("Badge")
        lay.addWidget(b)
    lay.addStretch(1)
    return row
