from schooldesk.constants import EMPTY_DISPLAY
from schooldesk.templates import FieldDescriptor
from schooldesk.view import badge_labels, display_text, display_value, render_view, table_columns

OPTIONS = [{"value": "a", "label": "Alpha"}, {"value": "b", "label": "Beta"}, {"value": "c", "label": "Gamma"}]


def field(**kw):
    kw.setdefault("name", "f")
    kw.setdefault("label", "Field")
    return FieldDescriptor.from_dict(kw)


def test_multi_select_shows_exactly_the_chosen_labels():
    fd = field(type="multi-select", options=OPTIONS)
    assert display_value(fd, ["a", "b"]) == ["Alpha", "Beta"]
    assert display_text(fd, ["c"]) == "Gamma"


def test_select_shows_label_and_falls_back_to_raw():
    fd = field(type="select", options=OPTIONS)
    assert display_value(fd, "b") == "Beta"
    assert display_value(fd, "legacy") == "legacy"


def test_empty_values_use_placeholder():
    for ftype in ("text", "number", "multi-select", "select"):
        fd = field(type=ftype, options=OPTIONS)
        for empty in (None, "", []):
            assert display_value(fd, empty) == EMPTY_DISPLAY


def test_numbers_render_as_text():
    assert display_value(field(type="number"), 0) == "0"
    assert display_value(field(type="number"), 12) == "12"


def test_render_view_follows_visible_order():
    fields = [
        field(name="b", label="B", order=2),
        field(name="a", label="A", order=1),
        field(name="h", label="Hidden", order=0, visible=False),
    ]
    rows = render_view(fields, {"a": "x", "h": "secret"})
    assert rows == [("A", "x"), ("B", EMPTY_DISPLAY)]


def test_table_columns_limit():
    fields = [field(name=n, label=n, order=i) for i, n in enumerate("abc")]
    assert [f.name for f in table_columns(fields)] == ["a", "b"]
    assert [f.name for f in table_columns(fields, 5)] == ["a", "b", "c"]
    assert table_columns(fields, 0) == []


def test_scalar_multi_select_value_has_no_badges():
    fd = field(type="multi-select", options=OPTIONS)
    assert badge_labels(fd, "a") == []
    assert display_value(fd, "a") == EMPTY_DISPLAY
    assert badge_labels(fd, ["b", "a"]) == ["Beta", "Alpha"]
