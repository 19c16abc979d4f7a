"""Table models and small widgets shared by the Qt pages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from PySide6 import QtCore, QtWidgets


@dataclass
class Column:
    title: str
    value: Callable[[dict[str, Any]], Any]
    edit_key: str = ""  # record key written back by inline edits


def text_column(title: str, key: str, *, edit: bool = False) -> Column:
    return Column(title, lambda r: r.get(key, ""), key if edit else "")


class RecordTableModel(QtCore.QAbstractTableModel):
    """Rows are plain record dicts; columns are ``Column`` getters.

    Editing an editable cell does not touch the row: it emits ``cell_edited``
    with ``(record_id, key, new_text)`` and the page decides what to save.
    """

    cell_edited = QtCore.Signal(str, str, str)

    def __init__(self, columns: list[Column] | None = None, rows: list[dict[str, Any]] | None = None):
        super().__init__()
        self.columns: list[Column] = columns or []
        self._rows: list[dict[str, Any]] = rows or []

    def set_columns(self, columns: list[Column]) -> None:
        self.beginResetModel()
        self.columns = columns
        self.endResetModel()

    def set_rows(self, rows: list[dict[str, Any]]) -> None:
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()

    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:  # noqa: N802
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:  # noqa: N802
        return 0 if parent.isValid() else len(self.columns)

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation, role: int = QtCore.Qt.DisplayRole):  # noqa: N802
        if role != QtCore.Qt.DisplayRole:
            return None
        if orientation == QtCore.Qt.Horizontal and 0 <= section < len(self.columns):
            return self.columns[section].title
        return None

    def flags(self, index: QtCore.QModelIndex) -> QtCore.Qt.ItemFlags:
        base = super().flags(index)
        if index.isValid() and self.columns[index.column()].edit_key:
            return base | QtCore.Qt.ItemIsEditable
        return base

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole):
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None
        r = self._rows[index.row()]
        if role in (QtCore.Qt.DisplayRole, QtCore.Qt.EditRole):
            v = self.columns[index.column()].value(r)
            return "" if v is None else str(v)
        if role == QtCore.Qt.UserRole:
            return r
        return None

    def setData(self, index: QtCore.QModelIndex, value: Any, role: int = QtCore.Qt.EditRole) -> bool:  # noqa: N802
        if role != QtCore.Qt.EditRole or not index.isValid():
            return False
        key = self.columns[index.column()].edit_key
        row = self.row_dict(index.row())
        if not key or row is None:
            return False
        new = str(value or "").strip()
        if not new or new == str(row.get(key, "") or ""):
            return False
        self.cell_edited.emit(str(row.get("id", "")), key, new)
        return True

    def row_dict(self, row: int) -> dict[str, Any] | None:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def rows(self) -> list[dict[str, Any]]:
        return list(self._rows)


class RecordFilterProxyModel(QtCore.QSortFilterProxyModel):
    def __init__(self):
        super().__init__()
        self.search_text = ""
        self.setSortCaseSensitivity(QtCore.Qt.CaseInsensitive)

    def set_filters(self, *, search: str) -> None:
        self.search_text = (search or "").strip().lower()
        self.invalidateFilter()

    def filterAcceptsRow(self, source_row: int, source_parent: QtCore.QModelIndex) -> bool:  # noqa: N802
        q = self.search_text
        if not q:
            return True
        model = self.sourceModel()
        if model is None:
            return True
        blob = " ".join(
            str(model.data(model.index(source_row, c, source_parent)) or "")
            for c in range(model.columnCount())
        )
        return q in blob.lower()


def make_table_view() -> QtWidgets.QTableView:
    table = QtWidgets.QTableView()
    table.setSortingEnabled(True)
    table.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
    table.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
    table.setEditTriggers(QtWidgets.QAbstractItemView.DoubleClicked | QtWidgets.QAbstractItemView.EditKeyPressed)
    table.horizontalHeader().setStretchLastSection(True)
    table.verticalHeader().setVisible(False)
    return table


def tool_card() -> tuple[QtWidgets.QFrame, QtWidgets.QHBoxLayout]:
    tools = QtWidgets.QFrame()
    tools.setObjectName("Card")
    tools.setProperty("class", "Card")
    tlay = QtWidgets.QHBoxLayout(tools)
    tlay.setContentsMargins(12, 12, 12, 12)
    tlay.setSpacing(10)
    return tools, tlay


def button(text: str, kind: str = "") -> QtWidgets.QPushButton:
    b = QtWidgets.QPushButton(text)
    if kind:
        b.setProperty("class", kind)
    return b


def selected_row(table: QtWidgets.QTableView, proxy: QtCore.QSortFilterProxyModel, model: RecordTableModel) -> dict[str, Any] | None:
    idxs = table.selectionModel().selectedRows() if table.selectionModel() else []
    if not idxs:
        return None
    src = proxy.mapToSource(idxs[0])
    return model.row_dict(src.row())


class CheckList(QtWidgets.QListWidget):
    """Checkable list of ``(id, label)`` choices."""

    def __init__(self, parent: QtWidgets.QWidget | None = None, *, height: int = 110):
        super().__init__(parent)
        self.setFixedHeight(height)

    def set_choices(self, choices: Iterable[tuple[str, str]], checked: Iterable[str] = ()) -> None:
        chosen = set(checked)
        self.clear()
        for cid, label in choices:
            item = QtWidgets.QListWidgetItem(label)
            item.setData(QtCore.Qt.UserRole, cid)
            item.setFlags(item.flags() | QtCore.Qt.ItemIsUserCheckable)
            item.setCheckState(QtCore.Qt.Checked if cid in chosen else QtCore.Qt.Unchecked)
            self.addItem(item)

    def checked_ids(self) -> list[str]:
        return [
            self.item(i).data(QtCore.Qt.UserRole)
            for i in range(self.count())
            if self.item(i).checkState() == QtCore.Qt.Checked
        ]


def fill_combo(combo: QtWidgets.QComboBox, choices: Iterable[tuple[str, str]], *, first: str | None = None, current: str = "") -> None:
    combo.blockSignals(True)
    combo.clear()
    if first is not None:
        combo.addItem(first, "")
    for cid, label in choices:
        combo.addItem(label, cid)
    idx = combo.findData(current) if current else -1
    combo.setCurrentIndex(idx if idx >= 0 else 0)
    combo.blockSignals(False)
