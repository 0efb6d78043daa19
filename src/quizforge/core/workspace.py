"""Workspace bootstrap helpers for quizforge commands."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, MutableMapping


WORKSPACE_ENV = "QUIZFORGE_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".quizforge-data"

_SUBDIRS = {
    "config": "config",
    "logs": "logs",
    "quizzes": "quizzes",
}


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace paths and creation metadata."""

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        try:
            return self.directories[key]
        except KeyError as exc:
            raise KeyError(f"Unknown workspace directory '{key}'.") from exc

    def items(self) -> tuple[tuple[str, Path], ...]:
        """Return a tuple of directory name/path pairs."""

        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Ensure the workspace exists and return its layout.

    Without an explicit ``path`` or ``QUIZFORGE_DATA_HOME`` the home-directory
    default is used, falling back to the system temp directory when the home
    directory is not writable.
    """

    env_map = os.environ if env is None else env
    base, has_override = _resolve_base(env_map, override=path)

    candidates = [base]
    if create and not has_override:
        candidates.append(Path(tempfile.gettempdir()) / "quizforge-data")

    last_error: Exception | None = None
    for candidate in candidates:
        try:
            return _materialize_layout(base=candidate, create=create)
        except PermissionError as exc:
            last_error = exc
    raise WorkspaceError(f"Unable to prepare workspace at {base}") from (
        last_error
    )


def _resolve_base(
    env: Mapping[str, str], *, override: Path | None
) -> tuple[Path, bool]:
    if override is not None:
        return Path(override).expanduser().absolute(), True
    custom = (env.get(WORKSPACE_ENV) or "").strip()
    if custom:
        return Path(custom).expanduser().absolute(), True
    return DEFAULT_WORKSPACE, False


def _materialize_layout(*, base: Path, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {base}"
        )

    created: MutableMapping[str, bool] = {
        "home": _ensure_dir(base) if create else False
    }
    directories: MutableMapping[str, Path] = {}
    for key, relative in _SUBDIRS.items():
        candidate = base / relative
        if create:
            created[key] = _ensure_dir(candidate)
        else:
            created[key] = False
            if candidate.exists() and not candidate.is_dir():
                raise WorkspaceError(
                    "Expected workspace directory for '{0}' but found a "
                    "file: {1}".format(key, candidate)
                )
        directories[key] = candidate

    return WorkspaceLayout(
        home=base,
        directories=MappingProxyType(dict(directories)),
        created=MappingProxyType(dict(created)),
    )


def _ensure_dir(path: Path) -> bool:
    existed = path.exists()
    if existed and not path.is_dir():
        raise WorkspaceError(
            f"Expected directory but found a non-directory entry: {path}"
        )
    path.mkdir(parents=True, exist_ok=True)
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
    return not existed
