"""Logging helpers shared across quizforge commands."""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

_FILE_MARKER = "_quizforge_file"
_CONSOLE_MARKER = "_quizforge_console"


class JsonLogFormatter(logging.Formatter):
    """Emit log records as structured JSON lines."""

    _RESERVED = frozenset(
        logging.LogRecord(
            "probe", logging.INFO, __file__, 0, "", None, None
        ).__dict__
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: _coerce_value(value)
            for key, value in record.__dict__.items()
            if key not in self._RESERVED
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Configure and return a namespaced logger with JSON file output.

    Calling this repeatedly for the same logger reuses the managed file
    handler instead of stacking duplicates.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    file_level = logging.DEBUG if verbose else _coerce_level(level)
    log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
    handler, active_path = _ensure_file_handler(
        logger,
        _prepare_log_file(log_dir, log_name),
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    handler.setLevel(file_level)

    if verbose:
        _enable_console_handler(logger)
    else:
        _disable_console_handler(logger)
    return logger, active_path


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(str(level).upper())
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _ensure_file_handler(
    logger: logging.Logger,
    path: Path,
    *,
    max_bytes: int,
    backup_count: int,
) -> tuple[RotatingFileHandler, Path]:
    for handler in logger.handlers:
        if getattr(handler, _FILE_MARKER, False):
            current = getattr(handler, "baseFilename", "")
            if current != os.path.abspath(path):
                logger.removeHandler(handler)
                handler.close()
                break
            return handler, path  # type: ignore[return-value]

    managed = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    managed.setFormatter(JsonLogFormatter())
    setattr(managed, _FILE_MARKER, True)
    logger.addHandler(managed)
    return managed, path


def _enable_console_handler(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        if getattr(handler, _CONSOLE_MARKER, False):
            return
    console = logging.StreamHandler(stream=sys.stderr)
    console.setLevel(logging.DEBUG)
    console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    setattr(console, _CONSOLE_MARKER, True)
    logger.addHandler(console)


def _disable_console_handler(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _CONSOLE_MARKER, False):
            logger.removeHandler(handler)
            handler.close()


def _coerce_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _coerce_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce_value(item) for item in value]
    return repr(value)


def _prepare_log_file(log_dir: Path, filename: str) -> Path:
    for directory in (Path(log_dir), _fallback_log_dir()):
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / filename
            path.touch(exist_ok=True)
        except PermissionError:
            continue
        try:
            path.chmod(0o600)
        except PermissionError:  # pragma: no cover - depends on filesystem
            pass
        return path
    raise PermissionError(f"Unable to create log file {filename!r}")


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "quizforge-logs"
