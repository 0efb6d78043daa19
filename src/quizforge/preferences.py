"""Persisted interface preferences.

Preferences are cosmetic and never affect grading. They are stored as a small
JSON document in the workspace ``config`` directory and are saved on every
change. Loading is forgiving: a missing file, unreadable JSON or any invalid
value falls back to the default for that key only.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Sequence

from .core import workspace as workspace_mod

__all__ = [
    "PREFERENCES_FILENAME",
    "ALLOWED_VALUES",
    "PreferenceError",
    "UiPreferences",
    "PreferenceStore",
    "main",
]

PREFERENCES_FILENAME = "preferences.json"

ALLOWED_VALUES: Mapping[str, tuple[str, ...]] = {
    "theme": ("nebula", "sunrise", "emerald", "midnight"),
    "font": ("inter", "poppins", "space", "lora"),
    "color_combo": ("violet", "ocean", "sunset", "forest"),
    "card_style": ("glass", "solid"),
}

_WIRE_KEYS = {
    "theme": "theme",
    "font": "font",
    "color_combo": "colorCombo",
    "animations": "animations",
    "card_style": "cardStyle",
}


class PreferenceError(RuntimeError):
    """Raised when a preference is invalid or cannot be persisted."""


@dataclass(frozen=True)
class UiPreferences:
    theme: str = "nebula"
    font: str = "inter"
    color_combo: str = "violet"
    animations: bool = True
    card_style: str = "glass"

    def to_dict(self) -> dict[str, Any]:
        return {_WIRE_KEYS[key]: value for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UiPreferences":
        """Build preferences, keeping the default for each bad key."""
        values: dict[str, Any] = {}
        for name, wire in _WIRE_KEYS.items():
            raw = payload.get(wire, payload.get(name))
            try:
                values[name] = _coerce(name, raw)
            except PreferenceError:
                continue
        return cls(**values)


def _coerce(name: str, value: Any) -> Any:
    if name not in _WIRE_KEYS:
        known = ", ".join(_WIRE_KEYS)
        raise PreferenceError(
            f"Unknown preference '{name}'. Expected one of: {known}."
        )
    if name == "animations":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"true", "on", "yes", "1"}:
                return True
            if lowered in {"false", "off", "no", "0"}:
                return False
        raise PreferenceError("'animations' must be on or off.")
    allowed = ALLOWED_VALUES[name]
    normalized = value.strip().lower() if isinstance(value, str) else value
    if normalized not in allowed:
        raise PreferenceError(
            f"'{name}' must be one of: {', '.join(allowed)}."
        )
    return normalized


class PreferenceStore:
    """Load and save :class:`UiPreferences` at ``path``."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UiPreferences:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return UiPreferences()
        if not isinstance(payload, Mapping):
            return UiPreferences()
        return UiPreferences.from_dict(payload)

    def save(self, prefs: UiPreferences) -> None:
        try:
            _atomic_write_json(self._path, prefs.to_dict())
        except OSError as exc:
            raise PreferenceError(
                f"Failed to save preferences to {self._path}: {exc}"
            ) from exc

    def update(self, **changes: Any) -> UiPreferences:
        """Validate ``changes``, persist them and return the result."""
        coerced = {name: _coerce(name, value) for name, value in changes.items()}
        updated = replace(self.load(), **coerced)
        self.save(updated)
        return updated

    def reset(self) -> UiPreferences:
        defaults = UiPreferences()
        self.save(defaults)
        return defaults


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
    )
    try:
        json.dump(payload, handle, indent=2, sort_keys=True)
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)


def default_store(*, env: Mapping[str, str] | None = None) -> PreferenceStore:
    layout = workspace_mod.ensure_workspace(env=env)
    return PreferenceStore(layout.path_for("config") / PREFERENCES_FILENAME)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizforge prefs",
        description="Show or change persisted interface preferences.",
    )
    parser.add_argument(
        "--file",
        type=Path,
        help="Preference file to use instead of the workspace default.",
    )
    sub = parser.add_subparsers(dest="action", required=True)
    sub.add_parser("show", help="Print the current preferences")
    sp_set = sub.add_parser("set", help="Change one preference")
    sp_set.add_argument("key", choices=[f.name for f in fields(UiPreferences)])
    sp_set.add_argument("value")
    sub.add_parser("reset", help="Restore every preference to its default")
    return parser


def _format(prefs: UiPreferences) -> str:
    width = max(len(f.name) for f in fields(UiPreferences))
    lines = []
    for name, value in asdict(prefs).items():
        shown = ("on" if value else "off") if isinstance(value, bool) else value
        lines.append(f"{name.ljust(width)}  {shown}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    store = PreferenceStore(args.file) if args.file else default_store()

    try:
        if args.action == "set":
            prefs = store.update(**{args.key: args.value})
        elif args.action == "reset":
            prefs = store.reset()
        else:
            prefs = store.load()
    except PreferenceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    sys.stdout.write(_format(prefs) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
