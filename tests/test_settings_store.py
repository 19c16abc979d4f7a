import json

from schooldesk.constants import STUDENT, TEACHER
from schooldesk.settings_store import Settings, SettingsStore


def test_first_load_writes_defaults(tmp_path):
    path = tmp_path / "conf" / "settings.json"
    settings = SettingsStore(path).load()
    assert settings == Settings()
    assert json.loads(path.read_text(encoding="utf-8"))["mock_delay_ms"] == 50


def test_values_are_clamped():
    s = Settings.from_dict({"mock_delay_ms": 99999, "table_dynamic_columns": -3, "student_id_prefix": ""})
    assert s.mock_delay_ms == 2000
    assert s.table_dynamic_columns == 0
    assert s.student_id_prefix == "STU-"
    assert Settings.from_dict({"mock_delay_ms": "fast"}).mock_delay_ms == 50


def test_save_and_reload(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(teacher_id_prefix="T-", mock_delay_ms=0, table_dynamic_columns=4))
    loaded = store.load()
    assert loaded.mock_delay_ms == 0
    assert loaded.table_dynamic_columns == 4
    assert loaded.id_prefixes()[TEACHER] == "T-"
    assert loaded.id_prefixes()[STUDENT] == "STU-"


def test_non_object_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert SettingsStore(path).load() == Settings()
