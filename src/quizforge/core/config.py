"""TOML layering for quizforge settings.

A settings tree is a nested mapping of defaults. User files may only
override keys that already exist in it; every problem in a file is
collected and reported in a single :class:`TomlConfigError`.
"""

from __future__ import annotations

import copy
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any, List, Mapping, MutableMapping, Optional

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merged_tree",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML settings file cannot be read or applied."""


def load_toml(path: Path) -> dict[str, Any]:
    target = Path(path)
    if target.is_dir():
        raise TomlConfigError(f"Config path is a directory: {target}")
    try:
        raw = target.read_bytes()
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {target}") from exc
    except OSError as exc:
        raise TomlConfigError(f"Could not read {target}: {exc}") from exc
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise TomlConfigError(
            f"Failed to parse config TOML {target.name}: {exc}"
        ) from exc


def _overlay(
    tree: MutableMapping[str, Any],
    override: Mapping[str, Any],
    prefix: str,
    problems: List[str],
) -> None:
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in tree:
            problems.append(f"Unknown configuration key '{dotted}'.")
            continue
        current = tree[key]
        if isinstance(current, MutableMapping):
            if isinstance(value, Mapping):
                _overlay(current, value, f"{dotted}.", problems)
            else:
                problems.append(
                    f"Expected table for '{dotted}', "
                    f"found {type(value).__name__}."
                )
        elif isinstance(value, Mapping):
            problems.append(f"Expected a value for '{dotted}', found table.")
        else:
            tree[key] = value


def merged_tree(
    defaults: Mapping[str, Any],
    override: Optional[Mapping[str, Any]],
    *,
    source: Optional[Path] = None,
) -> dict[str, Any]:
    """Return a copy of ``defaults`` with ``override`` laid over it.

    ``defaults`` is never modified. ``source`` only labels the error.
    """
    tree = copy.deepcopy(dict(defaults))
    problems: List[str] = []
    _overlay(tree, override or {}, "", problems)
    if problems:
        where = f" ({source})" if source is not None else ""
        raise TomlConfigError(" ".join(problems) + where)
    return tree


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Atomically write ``template`` to ``path``.

    An existing file is only replaced when ``overwrite`` is set.
    """
    target = Path(path)
    if target.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, staging = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(template)
        os.chmod(staging, mode)
        os.replace(staging, target)
    except OSError:
        Path(staging).unlink(missing_ok=True)
        raise
    return target
