"""``quizforge init``: create the workspace and its config template."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from quizforge import config as config_mod
from quizforge.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizforge init",
        description=(
            "Bootstrap the quizforge workspace, ensure required "
            "subdirectories exist and write a config template."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to QUIZFORGE_DATA_HOME "
            "or ~/.quizforge-data)."
        ),
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file with the template.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1

    config_path = layout.path_for("config") / config_mod.CONFIG_FILENAME
    if config_path.exists() and not args.force:
        config_status = "exists"
    else:
        config_mod.write_template(config_path, overwrite=True)
        config_status = "written"

    if args.quiet:
        return 0

    created = layout.created
    home_status = _format_created(created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]

    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    lines.append(f"Config: {config_path} ({config_status})")

    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
