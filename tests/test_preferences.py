from __future__ import annotations

import json

import pytest

from quizforge import preferences as prefs_mod
from quizforge.preferences import (
    PreferenceError,
    PreferenceStore,
    UiPreferences,
)


def test_load_missing_file_returns_defaults(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.json")

    assert store.load() == UiPreferences()


def test_load_corrupt_file_returns_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")

    assert PreferenceStore(path).load() == UiPreferences()


def test_load_non_mapping_returns_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert PreferenceStore(path).load() == UiPreferences()


def test_invalid_value_falls_back_per_key(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(
        json.dumps(
            {"theme": "plaid", "font": "Lora", "colorCombo": "ocean"}
        ),
        encoding="utf-8",
    )

    loaded = PreferenceStore(path).load()

    assert loaded.theme == "nebula"
    assert loaded.font == "lora"
    assert loaded.color_combo == "ocean"
    assert loaded.animations is True


def test_update_persists_wire_keys(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    store = PreferenceStore(path)

    updated = store.update(card_style="solid", animations="off")

    assert updated.card_style == "solid"
    assert updated.animations is False
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["cardStyle"] == "solid"
    assert saved["animations"] is False
    assert store.load() == updated
    assert list(path.parent.iterdir()) == [path]


def test_update_rejects_invalid_values(tmp_path):
    path = tmp_path / "prefs.json"
    store = PreferenceStore(path)

    with pytest.raises(PreferenceError, match="'theme' must be one of"):
        store.update(theme="plaid")
    with pytest.raises(PreferenceError, match="Unknown preference"):
        store.update(volume="loud")
    assert not path.exists()


def test_reset_restores_defaults(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.json")
    store.update(theme="midnight")

    assert store.reset() == UiPreferences()
    assert store.load().theme == "nebula"


def test_save_failure_raises_preference_error(tmp_path, monkeypatch):
    def boom(path, payload):
        raise OSError("disk full")

    monkeypatch.setattr(prefs_mod, "_atomic_write_json", boom)

    with pytest.raises(PreferenceError, match="disk full"):
        PreferenceStore(tmp_path / "p.json").save(UiPreferences())


def _shown(output: str) -> dict[str, str]:
    return dict(line.split(None, 1) for line in output.splitlines())


def test_cli_show_uses_workspace_default(data_home, capsys):
    code = prefs_mod.main(["show"])

    captured = capsys.readouterr()
    assert code == 0
    assert _shown(captured.out) == {
        "theme": "nebula",
        "font": "inter",
        "color_combo": "violet",
        "animations": "on",
        "card_style": "glass",
    }
    assert not (data_home / "config" / "preferences.json").exists()


def test_cli_set_and_reset(tmp_path, capsys):
    path = tmp_path / "prefs.json"

    assert prefs_mod.main(["--file", str(path), "set", "animations", "no"]) == 0
    assert _shown(capsys.readouterr().out)["animations"] == "off"
    assert json.loads(path.read_text(encoding="utf-8"))["animations"] is False

    assert prefs_mod.main(["--file", str(path), "reset"]) == 0
    assert _shown(capsys.readouterr().out)["animations"] == "on"
    assert json.loads(path.read_text(encoding="utf-8"))["animations"] is True


def test_cli_set_invalid_value(tmp_path, capsys):
    code = prefs_mod.main(
        ["--file", str(tmp_path / "p.json"), "set", "font", "comic"]
    )

    captured = capsys.readouterr()
    assert code == 2
    assert captured.err.startswith("Error: 'font' must be one of")
