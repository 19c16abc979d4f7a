import pytest

from schooldesk.constants import ENTITY_TYPES, STUDENT, TEACHER
from schooldesk.errors import TemplateError, UnknownEntityTypeError
from schooldesk.seed import default_templates
from schooldesk.templates import (
    FieldDescriptor,
    FieldType,
    TemplateDraft,
    check_field_names,
    sorted_fields,
    visible_fields,
)


def fd(name, order=0, **kw):
    return FieldDescriptor(name=name, label=kw.pop("label", name.title()), order=order, **kw)


def test_seed_templates_have_unique_names():
    for entity_type, template in default_templates().items():
        assert entity_type in ENTITY_TYPES
        check_field_names(template.fields)
        assert template.version == 1


def test_duplicate_names_rejected():
    with pytest.raises(TemplateError) as exc:
        check_field_names([fd("email"), fd("email")])
    assert exc.value.errors == {"email": "Field name must be unique"}


def test_sorted_fields_is_stable_for_equal_orders():
    fields = [fd("c", 2), fd("a", 1), fd("b", 1), fd("d", 0)]
    assert [f.name for f in sorted_fields(fields)] == ["d", "a", "b", "c"]
    assert [f.name for f in sorted_fields(reversed(fields))] == ["d", "b", "a", "c"]


def test_visible_fields_drops_hidden():
    fields = [fd("a", 1), fd("b", 2, visible=False), fd("c", 3)]
    assert [f.name for f in visible_fields(fields)] == ["a", "c"]


def test_descriptor_from_dict_tolerates_bad_input():
    d = FieldDescriptor.from_dict({"name": "x", "label": "X", "type": "bogus", "order": "n/a", "validation": {"min": "abc", "max": "5"}})
    assert d.type == FieldType.TEXT
    assert d.order == 0
    assert d.validation.min is None
    assert d.validation.max == 5


def test_descriptor_round_trips_through_dict():
    raw = {
        "name": "gender",
        "label": "Gender",
        "type": "select",
        "required": True,
        "options": [{"value": "m", "label": "Male"}],
        "order": 2,
    }
    d = FieldDescriptor.from_dict(raw)
    assert d.has_options
    assert d.option_label("m") == "Male"
    assert d.option_label("zz") == "zz"
    assert FieldDescriptor.from_dict(d.to_dict()) == d


def test_store_update_bumps_version(store):
    template = store.get_template(TEACHER)
    template.fields.append(fd("office", len(template.fields) + 1))
    saved = store.update_template(TEACHER, template.fields)
    assert saved.version == 2
    assert saved.last_updated.endswith("Z")
    assert saved.get_field("office") is not None
    assert store.get_template(TEACHER).version == 2


def test_store_update_rejects_duplicate_names(store):
    fields = store.get_template(STUDENT).fields
    fields.append(fd("email", 99))
    with pytest.raises(TemplateError):
        store.update_template(STUDENT, fields)
    assert store.get_template(STUDENT).version == 1


def test_unknown_entity_type(store):
    with pytest.raises(UnknownEntityTypeError):
        store.get_template("janitor")
    with pytest.raises(ValueError):
        store.list_entities("janitor")


def test_returned_template_is_a_copy(store):
    t = store.get_template(STUDENT)
    t.fields[0].label = "Changed"
    assert store.get_template(STUDENT).fields[0].label != "Changed"


class TestDraft:
    def make(self, store):
        return TemplateDraft(store.get_template(TEACHER))

    def test_add_normalizes_name_and_appends(self, store):
        draft = self.make(store)
        added = draft.add_field(FieldDescriptor(name="Office Room", label="Office Room"))
        assert added.name == "OfficeRoom"
        assert added.order == len(draft.fields)
        assert draft.dirty

    def test_add_rejects_duplicate_or_blank(self, store):
        draft = self.make(store)
        with pytest.raises(TemplateError):
            draft.add_field(FieldDescriptor(name="email", label="Email again"))
        with pytest.raises(TemplateError):
            draft.add_field(FieldDescriptor(name="x", label="  "))

    def test_update_keeps_name(self, store):
        draft = self.make(store)
        updated = draft.update_field(0, FieldDescriptor(name="renamed", label="Work email", type=FieldType.EMAIL))
        assert updated.name == "email"
        assert draft.fields[0].label == "Work email"

    def test_move_renumbers(self, store):
        draft = self.make(store)
        names = [f.name for f in draft.fields]
        draft.move_down(0)
        assert [f.name for f in draft.fields][:2] == [names[1], names[0]]
        assert [f.order for f in draft.fields] == list(range(1, len(names) + 1))
        draft.move_up(0)  # no-op at the top
        assert draft.fields[0].name == names[1]

    def test_reorder_by_names(self, store):
        draft = self.make(store)
        names = [f.name for f in draft.fields][::-1]
        draft.reorder(names)
        assert [f.name for f in draft.fields] == names
        with pytest.raises(TemplateError):
            draft.reorder(names[:-1])

    def test_remove_then_commit(self, store):
        draft = self.make(store)
        removed = draft.remove_field(1)
        saved = draft.commit(store, TEACHER)
        assert saved.version == 2
        assert saved.get_field(removed.name) is None
        assert [f.order for f in saved.fields] == list(range(1, len(saved.fields) + 1))
        assert draft.base_version == 2 and not draft.dirty


def test_store_update_rejects_broken_pattern(store):
    fields = store.get_template(TEACHER).fields
    fields.append(FieldDescriptor.from_dict({"name": "code", "label": "Code", "order": 9, "validation": {"pattern": "(x"}}))
    with pytest.raises(TemplateError) as exc:
        store.update_template(TEACHER, fields)
    assert "code" in exc.value.errors
    assert store.get_template(TEACHER).version == 1


def test_draft_rejects_broken_pattern(store):
    draft = TemplateDraft(store.get_template(TEACHER))
    with pytest.raises(TemplateError) as exc:
        draft.add_field(FieldDescriptor.from_dict({"name": "code", "label": "Code", "validation": {"pattern": "[a-"}}))
    assert "pattern" in exc.value.errors
    assert not draft.dirty
