from __future__ import annotations


class SchoolDeskError(Exception):
    """Base class for failures the UI reports to the user."""


class NotFoundError(SchoolDeskError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ValidationError(SchoolDeskError):
    """Validation failed; ``errors`` maps a field name to its first message."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        summary = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(f"Validation failed ({summary})" if summary else "Validation failed")


class TemplateError(ValidationError):
    pass


class DuplicateRecordError(SchoolDeskError):
    pass


class UnknownEntityTypeError(SchoolDeskError, ValueError):
    def __init__(self, entity_type: str):
        super().__init__(f"Unknown entity type: {entity_type!r}")
        self.entity_type = entity_type
