"""Compile a template's field descriptors into a pydantic validation model.

Each visible descriptor becomes one model field whose before-validator applies
the per-type rules and returns the cleaned value. Error messages are raised as
``PydanticCustomError`` so they reach the form verbatim.
"""
from __future__ import annotations

import copy
import re
from datetime import date, datetime
from typing import Annotated, Any, Callable, Iterable

from email_validator import EmailNotValidError, validate_email
from pydantic import BeforeValidator, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from .errors import TemplateError, ValidationError
from .templates import FieldDescriptor, FieldType, visible_fields

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _fail(message: str) -> PydanticCustomError:
    # Labels may contain braces, so the text travels through the context.
    return PydanticCustomError("field_rule", "{message}", {"message": message})


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value if isinstance(value, str) else str(value)


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [_as_text(v) for v in value]
    return [_as_text(value)]


def _as_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = value
    else:
        try:
            num = float(str(value).strip())
        except ValueError:
            return None
    if isinstance(num, float) and num.is_integer():
        return int(num)
    return num


def _valid_date(text: str) -> bool:
    if not _DATE_RE.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def _valid_email(text: str) -> bool:
    try:
        validate_email(text, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _make_validator(fd: FieldDescriptor, *, partial: bool) -> Callable[[Any], Any]:
    required = fd.required and not partial
    rules = fd.validation
    pattern = None
    if rules is not None and rules.pattern:
        try:
            pattern = re.compile(rules.pattern)
        except re.error as e:
            raise TemplateError({fd.name: f"Invalid validation pattern: {e}"}) from e
    option_values = {o.value for o in fd.options}

    def message(default: str) -> str:
        return rules.message if rules is not None and rules.message else default

    def check_bounds(measure: float, what: str) -> None:
        if rules is None:
            return
        if rules.min is not None and measure < rules.min:
            raise _fail(message(f"{fd.label} must be at least {rules.min:g}{what}"))
        if rules.max is not None and measure > rules.max:
            raise _fail(message(f"{fd.label} must be at most {rules.max:g}{what}"))

    def check_pattern(text: str) -> None:
        if pattern is not None and not pattern.fullmatch(text):
            raise _fail(message(f"{fd.label} has an invalid format"))

    def clean_number(value: Any) -> Any:
        if _is_empty(value) or (isinstance(value, str) and not value.strip()):
            if required:
                raise _fail(f"{fd.label} is required")
            return None
        num = _as_number(value)
        if num is None:
            raise _fail(f"{fd.label} must be a number")
        check_bounds(num, "")
        return num

    def clean_multi(value: Any) -> list[str]:
        items = _as_list(value)
        if required and not items:
            raise _fail("Select at least one")
        if option_values:
            for item in items:
                if item not in option_values:
                    raise _fail("Select a valid option")
        if items:
            check_bounds(len(items), " selections")
        return items

    def clean_file(value: Any) -> Any:
        if required and _is_empty(value):
            raise _fail(f"{fd.label} is required")
        return "" if value is None else value

    def clean_text(value: Any) -> str:
        text = _as_text(value)
        if text == "":
            if required:
                raise _fail(f"{fd.label} is required")
            return text
        if fd.type == FieldType.EMAIL and not _valid_email(text):
            raise _fail("Invalid email")
        if fd.type == FieldType.DATE and not _valid_date(text):
            raise _fail("Invalid date")
        if fd.type == FieldType.SELECT and option_values and text not in option_values:
            raise _fail("Select a valid option")
        check_bounds(len(text), " characters")
        check_pattern(text)
        return text

    if fd.type == FieldType.NUMBER:
        return clean_number
    if fd.type == FieldType.MULTI_SELECT:
        return clean_multi
    if fd.type == FieldType.FILE:
        return clean_file
    return clean_text


class FormSchema:
    """Validator for one template's visible fields."""

    def __init__(self, fields: Iterable[FieldDescriptor], *, partial: bool = False):
        self.fields = visible_fields(fields)
        self.partial = partial
        definitions: dict[str, Any] = {}
        self._keys: dict[str, str] = {}
        for idx, fd in enumerate(self.fields):
            # Descriptor names are free-form, so they ride in as aliases.
            key = f"field_{idx}"
            self._keys[key] = fd.name
            default: Any = [] if fd.type == FieldType.MULTI_SELECT else ""
            definitions[key] = (
                Annotated[Any, BeforeValidator(_make_validator(fd, partial=partial))],
                Field(default=default, alias=fd.name, validate_default=True),
            )
        self.model = create_model(
            "DynamicFieldsModel",
            __config__=ConfigDict(extra="ignore", populate_by_name=False),
            **definitions,
        )

    def errors(self, values: dict[str, Any] | None) -> dict[str, str]:
        try:
            self.model.model_validate(dict(values or {}))
        except PydanticValidationError as exc:
            return self._collect(exc)
        return {}

    def validate(self, values: dict[str, Any] | None) -> dict[str, Any]:
        try:
            instance = self.model.model_validate(dict(values or {}))
        except PydanticValidationError as exc:
            raise ValidationError(self._collect(exc)) from exc
        return instance.model_dump(by_alias=True)

    def _collect(self, exc: PydanticValidationError) -> dict[str, str]:
        errors: dict[str, str] = {}
        for err in exc.errors():
            loc = err.get("loc") or ("",)
            name = str(loc[0])
            name = self._keys.get(name, name)
            errors.setdefault(name, str(err.get("msg", "Invalid value")))
        return errors


def compile_schema(fields: Iterable[FieldDescriptor], partial: bool = False) -> FormSchema:
    return FormSchema(fields, partial=partial)


def dynamic_defaults(
    fields: Iterable[FieldDescriptor], existing: dict[str, Any] | None = None
) -> dict[str, Any]:
    existing = existing or {}
    defaults: dict[str, Any] = {}
    for fd in visible_fields(fields):
        if existing.get(fd.name) is not None:
            defaults[fd.name] = copy.deepcopy(existing[fd.name])
        elif fd.default_value is not None:
            defaults[fd.name] = copy.deepcopy(fd.default_value)
        elif fd.type == FieldType.MULTI_SELECT:
            defaults[fd.name] = []
        else:
            defaults[fd.name] = ""
    return defaults
