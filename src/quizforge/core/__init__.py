"""Core shared helpers for quizforge commands."""

from __future__ import annotations

from .ai import load_client
from .config import (
    TomlConfigError,
    load_toml,
    merged_tree,
    write_toml_template,
)
from .files import (
    DocumentConversionError,
    iter_source_files,
    read_excerpt,
    read_source_excerpt,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "load_client",
    "TomlConfigError",
    "load_toml",
    "merged_tree",
    "write_toml_template",
    "iter_source_files",
    "read_excerpt",
    "read_source_excerpt",
    "DocumentConversionError",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
