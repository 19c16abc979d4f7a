"""Field descriptors and the per-entity template store.

A template is the ordered list of dynamic fields an admin configured for one
entity kind. Forms, tables and detail views are all driven from it.
"""
from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable

from .constants import ENTITY_TYPES
from .errors import TemplateError, UnknownEntityTypeError
from .logger import now_ts


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTI_SELECT = "multi-select"
    FILE = "file"

    @classmethod
    def parse(cls, raw: Any) -> "FieldType":
        try:
            return cls(str(raw))
        except ValueError:
            return cls.TEXT


CHOICE_TYPES = (FieldType.SELECT, FieldType.MULTI_SELECT)
STRING_TYPES = (
    FieldType.TEXT,
    FieldType.EMAIL,
    FieldType.PHONE,
    FieldType.DATE,
    FieldType.TEXTAREA,
    FieldType.SELECT,
)


@dataclass
class FieldOption:
    value: str
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"value": self.value, "label": self.label}


@dataclass
class FieldValidation:
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    message: str | None = None

    @staticmethod
    def from_dict(d: dict[str, Any] | None) -> "FieldValidation | None":
        if not d:
            return None

        def num(key: str) -> float | None:
            try:
                return float(d[key]) if d.get(key) not in (None, "") else None
            except (TypeError, ValueError):
                return None

        return FieldValidation(
            min=num("min"),
            max=num("max"),
            pattern=str(d["pattern"]) if d.get("pattern") else None,
            message=str(d["message"]) if d.get("message") else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "pattern": self.pattern, "message": self.message}


@dataclass
class FieldDescriptor:
    name: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: list[FieldOption] = field(default_factory=list)
    order: int = 0
    visible: bool = True
    editable: bool = True
    placeholder: str = ""
    default_value: Any = None
    validation: FieldValidation | None = None

    @property
    def has_options(self) -> bool:
        return self.type in CHOICE_TYPES

    def option_label(self, value: Any) -> str:
        for opt in self.options:
            if opt.value == value:
                return opt.label or opt.value
        return str(value)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "FieldDescriptor":
        options = []
        for raw in d.get("options") or []:
            if isinstance(raw, dict):
                value = str(raw.get("value", "") or "")
                options.append(FieldOption(value=value, label=str(raw.get("label", "") or value)))
        try:
            order = int(d.get("order", 0) or 0)
        except (TypeError, ValueError):
            order = 0
        return FieldDescriptor(
            name=str(d.get("name", "") or ""),
            label=str(d.get("label", "") or ""),
            type=FieldType.parse(d.get("type", "text")),
            required=bool(d.get("required", False)),
            options=options,
            order=order,
            visible=bool(d.get("visible", True)),
            editable=bool(d.get("editable", True)),
            placeholder=str(d.get("placeholder", "") or ""),
            default_value=d.get("default_value"),
            validation=FieldValidation.from_dict(d.get("validation")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "options": [o.to_dict() for o in self.options],
            "order": self.order,
            "visible": self.visible,
            "editable": self.editable,
            "placeholder": self.placeholder,
            "default_value": self.default_value,
            "validation": self.validation.to_dict() if self.validation else None,
        }


@dataclass
class EntityTemplate:
    fields: list[FieldDescriptor]
    version: int = 1
    last_updated: str = ""

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "EntityTemplate":
        return EntityTemplate(
            fields=[FieldDescriptor.from_dict(f) for f in d.get("fields") or []],
            version=int(d.get("version", 1) or 1),
            last_updated=str(d.get("last_updated", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "version": self.version,
            "last_updated": self.last_updated,
        }

    def get_field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


def sorted_fields(fields: Iterable[FieldDescriptor]) -> list[FieldDescriptor]:
    # sorted() is stable: fields sharing an order keep their list position.
    return sorted(fields, key=lambda f: f.order)


def visible_fields(fields: Iterable[FieldDescriptor]) -> list[FieldDescriptor]:
    return sorted_fields(f for f in fields if f.visible)


def normalize_field_name(name: str) -> str:
    return re.sub(r"\s+", "", name or "")


def pattern_error(pattern: str | None) -> str:
    """Why ``pattern`` does not compile, or ``""`` when it is usable."""
    if not pattern:
        return ""
    try:
        re.compile(pattern)
    except re.error as e:
        return f"Invalid validation pattern: {e}"
    return ""


def check_field_names(fields: Iterable[FieldDescriptor]) -> None:
    errors: dict[str, str] = {}
    seen: set[str] = set()
    for f in fields:
        bad_pattern = pattern_error(f.validation.pattern if f.validation else None)
        if not f.name:
            errors[f.label or "(unnamed)"] = "Field name is required"
        elif f.name in seen:
            errors[f.name] = "Field name must be unique"
        elif bad_pattern:
            errors[f.name] = bad_pattern
        seen.add(f.name)
    if errors:
        raise TemplateError(errors)


class TemplateStore:
    def __init__(self, templates: dict[str, EntityTemplate]):
        self._templates = {k: copy.deepcopy(v) for k, v in templates.items()}

    def _require(self, entity_type: str) -> EntityTemplate:
        if entity_type not in ENTITY_TYPES or entity_type not in self._templates:
            raise UnknownEntityTypeError(entity_type)
        return self._templates[entity_type]

    def get(self, entity_type: str) -> EntityTemplate:
        return copy.deepcopy(self._require(entity_type))

    def update(self, entity_type: str, fields: list[FieldDescriptor]) -> EntityTemplate:
        current = self._require(entity_type)
        check_field_names(fields)
        self._templates[entity_type] = EntityTemplate(
            fields=copy.deepcopy(list(fields)),
            version=current.version + 1,
            last_updated=now_ts(),
        )
        return self.get(entity_type)


class TemplateDraft:
    """Editable working copy of a template's field list.

    Every structural change renumbers ``order`` to follow list position, so
    the saved template always has a dense 1..n sequence.
    """

    def __init__(self, template: EntityTemplate):
        self.base_version = template.version
        self.fields: list[FieldDescriptor] = sorted_fields(copy.deepcopy(template.fields))
        self.dirty = False

    def _renumber(self) -> None:
        for idx, f in enumerate(self.fields, start=1):
            f.order = idx
        self.dirty = True

    @staticmethod
    def _check_basics(descriptor: FieldDescriptor) -> None:
        errors = {}
        if not descriptor.name:
            errors["name"] = "Field name is required"
        if not descriptor.label.strip():
            errors["label"] = "Label is required"
        bad_pattern = pattern_error(descriptor.validation.pattern if descriptor.validation else None)
        if bad_pattern:
            errors["pattern"] = bad_pattern
        if errors:
            raise TemplateError(errors)

    def add_field(self, descriptor: FieldDescriptor) -> FieldDescriptor:
        descriptor = replace(descriptor, name=normalize_field_name(descriptor.name))
        self._check_basics(descriptor)
        if any(f.name == descriptor.name for f in self.fields):
            raise TemplateError({"name": "Field name must be unique"})
        descriptor.order = len(self.fields) + 1
        self.fields.append(descriptor)
        self.dirty = True
        return descriptor

    def update_field(self, index: int, descriptor: FieldDescriptor) -> FieldDescriptor:
        current = self.fields[index]
        # Names key stored values, so they never change after creation.
        descriptor = replace(descriptor, name=current.name, order=current.order)
        self._check_basics(descriptor)
        self.fields[index] = descriptor
        self.dirty = True
        return descriptor

    def remove_field(self, index: int) -> FieldDescriptor:
        removed = self.fields.pop(index)
        self._renumber()
        return removed

    def move(self, src: int, dst: int) -> None:
        if src == dst or not (0 <= src < len(self.fields)) or not (0 <= dst < len(self.fields)):
            return
        f = self.fields.pop(src)
        self.fields.insert(dst, f)
        self._renumber()

    def move_up(self, index: int) -> None:
        if index > 0:
            self.move(index, index - 1)

    def move_down(self, index: int) -> None:
        if index < len(self.fields) - 1:
            self.move(index, index + 1)

    def reorder(self, names: list[str]) -> None:
        """Apply a full ordering by name (what a drag-and-drop list reports)."""
        by_name = {f.name: f for f in self.fields}
        if sorted(names) != sorted(by_name):
            raise TemplateError({"order": "Reordered names do not match the template"})
        self.fields = [by_name[n] for n in names]
        self._renumber()

    def commit(self, store: Any, entity_type: str) -> EntityTemplate:
        saved = store.update_template(entity_type, self.fields)
        self.base_version = saved.version
        self.dirty = False
        return saved
