import json
import re
import types

import pytest

from quizforge import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "quizforge"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def test_version_command_handles_missing_package(monkeypatch, capsys):
    def missing(name: str) -> str:
        raise cli.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(cli.metadata, "version", missing)
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: quizforge" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: quizforge" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    for name in ("init", "generate", "take", "prefs"):
        assert name in captured.out
    assert "(interactive)" in captured.out


def test_help_known_command(capsys):
    code = cli.main(["help", "take"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.startswith("take: ")
    assert "Run `quizforge take --help`" in captured.out


def test_help_unknown_command(capsys):
    code = cli.main(["help", "does-not-exist"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("argv", [["version"], ["--version"], ["-V"]])
def test_version_outputs(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "0.0-test"


def test_unknown_command_errors(capsys):
    code = cli.main(["bogus"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err


def _stub_module(monkeypatch, expected_module, **functions):
    def fake_import(module_name: str):
        assert module_name == expected_module
        return types.SimpleNamespace(**functions)

    monkeypatch.setattr(cli, "import_module", fake_import)


def test_dispatch_invokes_named_function_with_passthrough(monkeypatch):
    captured: dict[str, list[str]] = {}

    def generate_main(argv):
        captured["argv"] = list(argv)
        return 7

    _stub_module(
        monkeypatch, "quizforge.quiz._main", generate_main=generate_main
    )
    code = cli.main(["generate", "notes.md", "--count", "3"])
    assert code == 7
    assert captured["argv"] == ["notes.md", "--count", "3"]


def test_dispatch_propagates_system_exit_code(monkeypatch):
    def take_main(argv):
        raise SystemExit(5)

    _stub_module(monkeypatch, "quizforge.quiz._main", take_main=take_main)
    assert cli.main(["take"]) == 5


def test_dispatch_handles_system_exit_message(monkeypatch, capsys):
    def main(argv):
        raise SystemExit("boom")

    _stub_module(monkeypatch, "quizforge.preferences", main=main)
    code = cli.main(["prefs"])
    captured = capsys.readouterr()
    assert code == 1
    assert captured.err.strip() == "boom"


def test_dispatch_treats_system_exit_none_and_non_int(monkeypatch):
    def main(argv):
        raise SystemExit()

    _stub_module(monkeypatch, "quizforge.preferences", main=main)
    assert cli.main(["prefs"]) == 0

    _stub_module(monkeypatch, "quizforge.preferences", main=lambda argv: "ok")
    assert cli.main(["prefs"]) == 0


def test_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "quizzes"):
        assert (target / entry).is_dir()
    assert (target / "config" / "quizforge.toml").exists()


def test_cli_runs_prefs_end_to_end(tmp_path, capsys):
    prefs = tmp_path / "prefs.json"

    code = cli.main(
        ["prefs", "--file", str(prefs), "set", "theme", "midnight"]
    )

    assert code == 0
    saved = json.loads(prefs.read_text(encoding="utf-8"))
    assert saved["theme"] == "midnight"
    assert re.search(r"^theme\s+midnight$", capsys.readouterr().out, re.M)
