from __future__ import annotations

import types
from pathlib import Path

import pytest

from quizforge.core import files as core_files
from quizforge.core import iter_source_files, read_excerpt, read_source_excerpt


def test_iter_source_files_keeps_input_order(tmp_path: Path) -> None:
    second = tmp_path / "b.md"
    first = tmp_path / "a.md"
    for path in (second, first):
        path.write_text(path.name, encoding="utf-8")

    assert list(iter_source_files([second, first])) == [second, first]


def test_iter_source_files_expands_directories(tmp_path: Path) -> None:
    folder = tmp_path / "notes"
    folder.mkdir()
    for name in ("Beta.txt", "alpha.md", ".hidden"):
        (folder / name).write_text(name, encoding="utf-8")
    (folder / "nested").mkdir()

    names = [path.name for path in iter_source_files([folder])]

    assert names == ["alpha.md", "Beta.txt"]


def test_iter_source_files_errors_on_missing_path(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Input not found"):
        list(iter_source_files([tmp_path / "missing"]))


def test_read_excerpt_replaces_invalid_bytes(tmp_path: Path) -> None:
    target = tmp_path / "sample.txt"
    target.write_bytes(b"caf\xe9 notes")

    assert read_excerpt(target, 100) == "caf\ufffd notes"


def test_read_excerpt_truncates(tmp_path: Path) -> None:
    target = tmp_path / "long.txt"
    target.write_text("abcdefghij", encoding="utf-8")

    assert read_excerpt(target, 4) == "abcd"
    assert read_excerpt(target, 100) == "abcdefghij"
    assert read_excerpt(target, 0) == ""


def test_read_source_excerpt_reads_plain_text_directly(tmp_path: Path) -> None:
    target = tmp_path / "notes.MD"
    target.write_text("# Cells\nMitochondria", encoding="utf-8")

    def refuse(source: Path) -> str:
        raise AssertionError("plain text must not be converted")

    assert read_source_excerpt(target, 7, converter=refuse) == "# Cells"


def test_read_source_excerpt_converts_binary_formats(tmp_path: Path) -> None:
    target = tmp_path / "lecture.pdf"
    target.write_bytes(b"%PDF-1.4\n\x00\xff binary")
    seen: list[Path] = []

    def convert(source: Path) -> str:
        seen.append(source)
        return "Photosynthesis converts light"

    text = read_source_excerpt(target, 14, converter=convert)

    assert text == "Photosynthesis"
    assert seen == [target]


def test_markitdown_converter_returns_markdown(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []

    class FakeEngine:
        def convert(self, source: str):
            calls.append(source)
            return types.SimpleNamespace(text_content="Slide one")

    monkeypatch.setattr(core_files, "MarkItDown", FakeEngine)
    target = tmp_path / "deck.pptx"

    assert core_files.markitdown_converter()(target) == "Slide one"
    assert calls == [str(target)]


def test_markitdown_converter_wraps_failures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    class BrokenEngine:
        def convert(self, source: str):
            raise core_files.MarkItDownException("no converter")

    monkeypatch.setattr(core_files, "MarkItDown", BrokenEngine)

    with pytest.raises(core_files.DocumentConversionError, match="deck.pptx"):
        core_files.markitdown_converter()(tmp_path / "deck.pptx")


def test_markitdown_converter_rejects_unknown_result(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    class OddEngine:
        def convert(self, source: str):
            return object()

    monkeypatch.setattr(core_files, "MarkItDown", OddEngine)

    with pytest.raises(core_files.DocumentConversionError, match="unsupported"):
        core_files.markitdown_converter()(tmp_path / "a.docx")
