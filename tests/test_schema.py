import pytest

from schooldesk.errors import TemplateError, ValidationError
from schooldesk.schema import compile_schema, dynamic_defaults
from schooldesk.templates import FieldDescriptor

STRING_TYPES = ["text", "email", "phone", "date", "textarea", "select"]
SAMPLE = {
    "text": "hello",
    "email": "someone@school.org",
    "phone": "+1 555",
    "date": "2020-02-29",
    "textarea": "multi\nline",
    "select": "a",
}


def field(**kw):
    kw.setdefault("name", "f")
    kw.setdefault("label", "Field")
    return FieldDescriptor.from_dict(kw)


OPTIONS = [{"value": "a", "label": "Alpha"}, {"value": "b", "label": "Beta"}]


@pytest.mark.parametrize("ftype", STRING_TYPES)
def test_required_string_fields(ftype):
    schema = compile_schema([field(type=ftype, required=True, options=OPTIONS)])
    assert schema.errors({"f": ""}) == {"f": "Field is required"}
    assert schema.errors({}) == {"f": "Field is required"}
    assert schema.errors({"f": SAMPLE[ftype]}) == {}


def test_email_and_date_formats():
    schema = compile_schema([field(name="e", type="email"), field(name="d", label="Day", type="date")])
    errors = schema.errors({"e": "not-an-email", "d": "2021-02-30"})
    assert errors == {"e": "Invalid email", "d": "Invalid date"}
    assert schema.errors({"e": "", "d": ""}) == {}


def test_select_must_use_an_option():
    schema = compile_schema([field(type="select", options=OPTIONS)])
    assert schema.errors({"f": "zzz"}) == {"f": "Select a valid option"}


def test_number_rules():
    schema = compile_schema([field(type="number", label="Age", required=True, validation={"min": 1, "max": 10})])
    assert schema.errors({"f": ""}) == {"f": "Age is required"}
    assert schema.errors({"f": "abc"}) == {"f": "Age must be a number"}
    assert schema.errors({"f": True}) == {"f": "Age must be a number"}
    assert schema.errors({"f": 0}) == {"f": "Age must be at least 1"}
    assert schema.errors({"f": "11"}) == {"f": "Age must be at most 10"}
    assert schema.validate({"f": "7"}) == {"f": 7}
    assert schema.validate({"f": 2.5}) == {"f": 2.5}


def test_optional_number_is_none_when_empty():
    schema = compile_schema([field(type="number")])
    assert schema.validate({"f": ""}) == {"f": None}


def test_multi_select_rules():
    schema = compile_schema([field(type="multi-select", required=True, options=OPTIONS, validation={"max": 1})])
    assert schema.errors({"f": []}) == {"f": "Select at least one"}
    assert schema.errors({"f": ["a", "x"]}) == {"f": "Select a valid option"}
    assert schema.errors({"f": ["a", "b"]}) == {"f": "Field must be at most 1 selections"}
    assert schema.validate({"f": "a"}) == {"f": ["a"]}


def test_length_pattern_and_custom_message():
    schema = compile_schema([
        field(name="code", label="Code", validation={"min": 2, "max": 4}),
        field(name="zip", label="Zip", validation={"pattern": r"\d{5}", "message": "Five digits please"}),
    ])
    assert schema.errors({"code": "x", "zip": "123"}) == {
        "code": "Code must be at least 2 characters",
        "zip": "Five digits please",
    }
    assert schema.errors({"code": "abcd", "zip": "12345"}) == {}


def test_partial_schema_skips_required():
    schema = compile_schema([field(required=True), field(name="n", type="number", required=True)], partial=True)
    assert schema.validate({}) == {"f": "", "n": None}
    assert schema.errors({"n": "x"}) == {"n": "Field must be a number"}


def test_hidden_fields_are_not_validated():
    schema = compile_schema([field(required=True, visible=False)])
    assert schema.validate({}) == {}


def test_field_names_with_odd_characters():
    schema = compile_schema([field(name="Blood Group{x}", label="Blood {Group}", required=True)])
    assert schema.errors({}) == {"Blood Group{x}": "Blood {Group} is required"}


def test_validate_raises_domain_error():
    schema = compile_schema([field(required=True)])
    with pytest.raises(ValidationError) as exc:
        schema.validate({"f": ""})
    assert exc.value.errors == {"f": "Field is required"}


def test_dynamic_defaults():
    fields = [
        field(name="a"),
        field(name="b", type="multi-select", options=OPTIONS),
        field(name="c", default_value="x"),
        field(name="h", visible=False),
    ]
    assert dynamic_defaults(fields) == {"a": "", "b": [], "c": "x"}
    assert dynamic_defaults(fields, {"a": "kept", "c": None}) == {"a": "kept", "b": [], "c": "x"}


def test_broken_pattern_is_a_template_error():
    fields = [field(name="code", label="Code", validation={"pattern": "[a-"})]
    with pytest.raises(TemplateError) as exc:
        compile_schema(fields)
    assert exc.value.errors["code"].startswith("Invalid validation pattern")
