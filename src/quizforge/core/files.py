"""File helpers for collecting quiz source documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence

from markitdown import MarkItDown, MarkItDownException

__all__ = [
    "PLAIN_TEXT_EXTENSIONS",
    "DocumentConversionError",
    "DocumentConverter",
    "iter_source_files",
    "is_plain_text",
    "markitdown_converter",
    "read_excerpt",
    "read_source_excerpt",
]

PLAIN_TEXT_EXTENSIONS = frozenset(
    {"txt", "text", "md", "markdown", "rst", "csv", "tsv", "json", "tex"}
)

DocumentConverter = Callable[[Path], str]


class DocumentConversionError(RuntimeError):
    """Raised when a document cannot be turned into Markdown text."""


def iter_source_files(paths: Sequence[Path]) -> Iterator[Path]:
    """Yield files from ``paths`` in input order.

    Directories expand to their direct children sorted by name; hidden files
    are skipped. Missing inputs raise ``FileNotFoundError`` so the CLI can
    report them before any request is built.
    """
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            yield path
            continue
        if not path.exists():
            raise FileNotFoundError(f"Input not found: {path}")
        if path.is_dir():
            yield from _sorted_children(path)


def _sorted_children(root: Path) -> List[Path]:
    return sorted(
        (
            child
            for child in root.iterdir()
            if child.is_file() and not child.name.startswith(".")
        ),
        key=lambda p: p.name.lower(),
    )


def is_plain_text(path: Path) -> bool:
    return Path(path).suffix.lower().lstrip(".") in PLAIN_TEXT_EXTENSIONS


def read_excerpt(path: Path, max_chars: int) -> str:
    """Return at most ``max_chars`` characters from the start of ``path``."""
    if max_chars <= 0:
        return ""
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        return fh.read(max_chars)


def _coerce_markdown_result(result: Any) -> Optional[str]:
    for attribute in ("markdown", "text_content"):
        value = getattr(result, attribute, None)
        if isinstance(value, str):
            return value
    if isinstance(result, str):
        return result
    return None


def markitdown_converter() -> DocumentConverter:
    """Return a converter that renders PDF, DOCX, PPTX and friends as text."""
    engine = MarkItDown()

    def convert(source: Path) -> str:
        try:
            result = engine.convert(str(source))
        except MarkItDownException as exc:
            raise DocumentConversionError(
                f"Could not convert {source.name}: {exc}"
            ) from exc
        markdown = _coerce_markdown_result(result)
        if markdown is None:
            raise DocumentConversionError(
                "markitdown returned an unsupported response; "
                "expected Markdown text."
            )
        return markdown

    return convert


def read_source_excerpt(
    path: Path,
    max_chars: int,
    *,
    converter: Optional[DocumentConverter] = None,
) -> str:
    """Return up to ``max_chars`` characters of readable text from ``path``.

    Plain-text formats are read directly; everything else goes through
    ``converter`` (markitdown by default).
    """
    if max_chars <= 0:
        return ""
    source = Path(path)
    if is_plain_text(source):
        return read_excerpt(source, max_chars)
    convert = converter or markitdown_converter()
    return convert(source)[:max_chars]
