"""Read-only rendering of dynamic field values (widget-free)."""
from __future__ import annotations

from typing import Any, Iterable

from .constants import EMPTY_DISPLAY
from .templates import FieldDescriptor, FieldType, visible_fields


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == ()


def badge_labels(fd: FieldDescriptor, value: Any) -> list[str]:
    # Multi-select values are stored as lists; anything else has no badges.
    if not isinstance(value, (list, tuple)):
        return []
    return [fd.option_label(v) for v in value]


def display_value(fd: FieldDescriptor, value: Any) -> str | list[str]:
    if _is_empty(value):
        return EMPTY_DISPLAY
    if fd.type == FieldType.MULTI_SELECT:
        return badge_labels(fd, value) or EMPTY_DISPLAY
    if fd.type == FieldType.SELECT:
        return fd.option_label(value)
    return str(value)


def display_text(fd: FieldDescriptor, value: Any) -> str:
    shown = display_value(fd, value)
    return ", ".join(shown) if isinstance(shown, list) else shown


def render_view(fields: Iterable[FieldDescriptor], data: dict[str, Any] | None) -> list[tuple[str, str | list[str]]]:
    data = data or {}
    return [(fd.label, display_value(fd, data.get(fd.name))) for fd in visible_fields(fields)]


def table_columns(fields: Iterable[FieldDescriptor], limit: int = 2) -> list[FieldDescriptor]:
    """First ``limit`` visible fields, in display order, for list tables."""
    if limit <= 0:
        return []
    return visible_fields(fields)[:limit]
