"""Spreadsheet export and bulk import of people (openpyxl)."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from openpyxl import Workbook, load_workbook

from .constants import EMPTY_DISPLAY
from .errors import ValidationError
from .schema import compile_schema
from .templates import FieldDescriptor, FieldType, visible_fields

EXPORT_SHEET = "Data"
FIRST_NAME_HEADERS = ("first name", "firstname")
LAST_NAME_HEADERS = ("last name", "lastname")


@dataclass
class ImportResult:
    created: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        msg = f"{len(self.created)} imported"
        if self.skipped:
            msg += f", {self.skipped} skipped"
        return msg


def export_rows(path: Path | str, headers: list[str], rows: Iterable[Iterable[Any]]) -> Path:
    path = Path(path)
    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET
    ws.append(list(headers))
    for row in rows:
        ws.append(["" if v is None else v for v in row])
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path


def read_rows(path: Path | str) -> list[dict[str, Any]]:
    """Rows of the first sheet as dicts keyed by the row-1 headers."""
    wb = load_workbook(Path(path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        it = ws.iter_rows(values_only=True)
        try:
            header_row = next(it)
        except StopIteration:
            return []
        headers = ["" if h is None else str(h).strip() for h in header_row]
        rows: list[dict[str, Any]] = []
        for r in it:
            if all(v is None or v == "" for v in r):
                continue
            values = list(r) + [None] * (len(headers) - len(r))
            rows.append({h: ("" if values[i] is None else values[i]) for i, h in enumerate(headers) if h})
        return rows
    finally:
        wb.close()


def expected_columns(fields: Iterable[FieldDescriptor]) -> list[str]:
    return ["First Name", "Last Name"] + [f.label for f in visible_fields(fields)]


def _lookup(row: dict[str, Any], names: Iterable[str]) -> Any:
    lowered = {str(k).strip().lower(): v for k, v in row.items()}
    for n in names:
        if n.lower() in lowered:
            return lowered[n.lower()]
    return None


def _option_value(fd: FieldDescriptor, raw: Any) -> Any:
    text = str(raw).strip().lower()
    for opt in fd.options:
        if text == opt.value.lower():
            return opt.value
    for opt in fd.options:
        if text == opt.label.lower():
            return opt.value
    return raw


def _cell_value(fd: FieldDescriptor, value: Any) -> Any:
    """Turn an exported display cell back into a stored value."""
    if isinstance(value, str) and value.strip() == EMPTY_DISPLAY:
        return None
    if fd.type == FieldType.SELECT:
        return _option_value(fd, value)
    if fd.type == FieldType.MULTI_SELECT:
        items = [v.strip() for v in value.split(",") if v.strip()] if isinstance(value, str) else [value]
        return [_option_value(fd, v) for v in items]
    return value


def rows_to_payloads(rows: Iterable[dict[str, Any]], fields: Iterable[FieldDescriptor]) -> list[dict[str, Any]]:
    """Map spreadsheet rows onto ``{firstname, lastname, dynamic_fields}`` payloads.

    Headers match case-insensitively on a field's label or name, and choice
    cells accept option labels as well as values, so an exported sheet imports
    back unchanged. Rows missing either name are dropped.
    """
    fields = visible_fields(fields)
    payloads: list[dict[str, Any]] = []
    for row in rows:
        first = str(_lookup(row, FIRST_NAME_HEADERS) or "").strip()
        last = str(_lookup(row, LAST_NAME_HEADERS) or "").strip()
        if not first or not last:
            continue
        dynamic: dict[str, Any] = {}
        for fd in fields:
            value = _lookup(row, (fd.label, fd.name))
            if value is None or value == "":
                continue
            value = _cell_value(fd, value)
            if value is None or value == []:
                continue
            dynamic[fd.name] = value
        payloads.append({"firstname": first, "lastname": last, "dynamic_fields": dynamic})
    return payloads


def import_entities(store, entity_type: str, rows: Iterable[dict[str, Any]]) -> ImportResult:
    rows = list(rows)
    fields = store.get_template(entity_type).fields
    schema = compile_schema(fields, partial=True)
    payloads = rows_to_payloads(rows, fields)
    result = ImportResult(skipped=len(rows) - len(payloads))
    for payload in payloads:
        name = f"{payload['firstname']} {payload['lastname']}"
        try:
            payload["dynamic_fields"] = schema.validate(payload["dynamic_fields"])
        except ValidationError as e:
            result.skipped += 1
            result.errors.append(f"{name}: {'; '.join(e.errors.values())}")
            continue
        result.created.append(store.create_entity(entity_type, payload))
    return result
