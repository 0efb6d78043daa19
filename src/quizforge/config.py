"""Configuration management for the quizforge CLI.

Settings live in a small TOML file under the workspace ``config`` directory.
Every key has a default, so a missing file simply means defaults; keys the
loader does not know about are rejected so typos surface immediately.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .core.config import (
    TomlConfigError,
    load_toml,
    merged_tree,
    write_toml_template,
)

CONFIG_PATH_ENV = "QUIZFORGE_CONFIG"
CONFIG_FILENAME = "quizforge.toml"


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class GeneratorConfig:
    model: str
    temperature: float
    max_tokens: int
    max_source_chars: int


@dataclass(frozen=True)
class ScoringConfig:
    partial_matching: bool


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizforgeConfig:
    generator: GeneratorConfig
    scoring: ScoringConfig
    logging: LoggingConfig


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise ConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _build_generator(section: Mapping[str, Any]) -> GeneratorConfig:
    return GeneratorConfig(
        model=_require_string(section.get("model"), field="generator.model"),
        temperature=_require_float_range(
            section.get("temperature"),
            field="generator.temperature",
            min_value=0.0,
            max_value=2.0,
        ),
        max_tokens=_require_positive_int(
            section.get("max_tokens"), field="generator.max_tokens"
        ),
        max_source_chars=_require_positive_int(
            section.get("max_source_chars"),
            field="generator.max_source_chars",
        ),
    )


def _build_scoring(section: Mapping[str, Any]) -> ScoringConfig:
    return ScoringConfig(
        partial_matching=_require_bool(
            section.get("partial_matching"),
            field="scoring.partial_matching",
        )
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(section.get("level"), field="logging.level").upper()
    allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if level not in allowed:
        raise ConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(tree: Mapping[str, Any]) -> QuizforgeConfig:
    return QuizforgeConfig(
        generator=_build_generator(tree["generator"]),
        scoring=_build_scoring(tree["scoring"]),
        logging=_build_logging(tree["logging"]),
    )


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    config_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Pick the config file: explicit path, then env var, then workspace."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return Path(explicit_path).expanduser().resolve()
    env_override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser().resolve()
    if config_dir is not None:
        return Path(config_dir) / CONFIG_FILENAME
    return None


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    config_dir: Optional[Path] = None,
) -> QuizforgeConfig:
    """Load the TOML config, applying defaults and validation.

    An explicitly requested file must exist; the workspace default may be
    absent, in which case the built-in defaults apply.
    """

    path = resolve_config_path(
        explicit_path=explicit_path, env=env, config_dir=config_dir
    )
    env_map = os.environ if env is None else env
    required = explicit_path is not None or bool(
        (env_map.get(CONFIG_PATH_ENV) or "").strip()
    )
    override: Mapping[str, Any] = {}
    if path is not None and (required or path.exists()):
        try:
            override = load_toml(path)
        except TomlConfigError as exc:
            raise ConfigError(str(exc)) from exc
    try:
        tree = merged_tree(_DEFAULTS, override, source=path)
    except TomlConfigError as exc:
        raise ConfigError(str(exc)) from exc
    return _build_config(tree)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return merged_tree(_DEFAULTS, None)


def config_template() -> str:
    """Return the TOML template written by ``quizforge init``."""

    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return write_toml_template(
            path, template=config_template(), overwrite=overwrite
        )
    except TomlConfigError as exc:
        raise ConfigError(str(exc)) from exc


_DEFAULTS: Dict[str, Any] = {
    "generator": {
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "max_tokens": 4000,
        "max_source_chars": 24000,
    },
    "scoring": {
        "partial_matching": False,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# QuizForge configuration

[generator]
# Chat completion model used to write quizzes
model = "gpt-4o-mini"
# Sampling temperature (0.0-2.0)
temperature = 0.2
max_tokens = 4000
# Characters of source material sent per request, split across files
max_source_chars = 24000

[scoring]
# Award a fraction of a point for partially correct matching questions
partial_matching = false

[logging]
level = "INFO"
# Mirror log records to stderr
verbose = false
"""
