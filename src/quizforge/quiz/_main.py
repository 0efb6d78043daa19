"""``quizforge generate`` and ``quizforge take`` command implementations."""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console

from ..config import ConfigError, QuizforgeConfig, load_config
from ..core import configure_logger, iter_source_files, load_client
from ..core import workspace as workspace_mod
from ..preferences import PREFERENCES_FILENAME, PreferenceStore, UiPreferences
from .contract import (
    DEFAULT_QUESTION_COUNT,
    GenerationResult,
    InputConstraintError,
    QuizStrategy,
    SourceDocument,
    resolve_generator_output,
)
from .generator import OpenAIQuizGenerator, generate_quiz
from .runner import InputProvider, run_quiz_session
from .session import (
    QuizSession,
    SessionPhase,
    add_documents,
    apply_generation_result,
    begin_generation,
    new_session,
)
from .view import render_diagnostics

_DIFFICULTY_CHOICES = ["balanced", "easy", "medium", "hard"]


@dataclass(frozen=True)
class _Runtime:
    config: QuizforgeConfig
    layout: workspace_mod.WorkspaceLayout
    logger: logging.Logger
    log_path: Path
    preferences: UiPreferences


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to quizforge.toml (defaults to the workspace config).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )


def _add_generation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--count",
        default=DEFAULT_QUESTION_COUNT,
        help="Number of questions to request (clamped to 1-100).",
    )
    parser.add_argument(
        "--type",
        dest="quiz_type",
        default=QuizStrategy.MCQ.value,
        choices=[member.value for member in QuizStrategy],
        help="Question type, or 'mixed' to let the generator choose.",
    )
    parser.add_argument(
        "--difficulty",
        default="balanced",
        choices=_DIFFICULTY_CHOICES,
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Where to write the generation result JSON.",
    )


def build_generate_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizforge generate",
        description="Generate a quiz from up to 10 source documents.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "files", nargs="+", type=Path, help="Source files or directories"
    )
    _add_generation_arguments(parser)
    _add_common_arguments(parser)
    return parser


def build_take_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizforge take",
        description=(
            "Take a quiz in the terminal, from a saved result JSON or "
            "generated on the spot from source documents."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "files", nargs="*", type=Path, help="Source files or directories"
    )
    parser.add_argument(
        "--quiz",
        type=Path,
        help="Saved generation result (or bare quiz JSON) to take.",
    )
    _add_generation_arguments(parser)
    parser.add_argument(
        "--no-review",
        dest="review",
        action="store_false",
        help="Skip the per-question review after submitting.",
    )
    parser.add_argument(
        "--partial-matching",
        dest="partial_matching",
        action="store_true",
        default=None,
        help="Give partial credit on matching questions.",
    )
    _add_common_arguments(parser)
    return parser


def _prepare_runtime(args: argparse.Namespace) -> _Runtime:
    layout = workspace_mod.ensure_workspace()
    config = load_config(
        explicit_path=args.config, config_dir=layout.path_for("config")
    )
    logger, log_path = configure_logger(
        "quizforge.quiz",
        log_dir=layout.path_for("logs"),
        level=config.logging.level,
        verbose=bool(args.verbose or config.logging.verbose),
    )
    store = PreferenceStore(layout.path_for("config") / PREFERENCES_FILENAME)
    return _Runtime(
        config=config,
        layout=layout,
        logger=logger,
        log_path=log_path,
        preferences=store.load(),
    )


def _collect_documents(paths: Sequence[Path]) -> list[SourceDocument]:
    return [SourceDocument.from_path(path) for path in iter_source_files(paths)]


def _build_generator(runtime: _Runtime) -> OpenAIQuizGenerator:
    settings = runtime.config.generator
    return OpenAIQuizGenerator(
        load_client(),
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        max_source_chars=settings.max_source_chars,
        logger=runtime.logger,
    )


def _status(console: Console, runtime: _Runtime, message: str):
    if runtime.preferences.animations:
        return console.status(message)
    console.print(message)
    return contextlib.nullcontext()


def _generate_session(
    args: argparse.Namespace, runtime: _Runtime, console: Console
) -> tuple[QuizSession, GenerationResult]:
    """Run Collecting -> Generating -> Answering/Collecting for ``args``.

    Raises ``OSError`` or :class:`InputConstraintError` for bad
    input and ``RuntimeError`` when no client can be created.
    """
    session = add_documents(new_session(), _collect_documents(args.files))
    session, request = begin_generation(
        session,
        question_count=args.count,
        strategy=args.quiz_type,
        difficulty=args.difficulty,
    )
    assert request is not None
    generator = _build_generator(runtime)
    files = len(request.documents)
    with _status(
        console,
        runtime,
        f"Generating {request.question_count} question(s) from "
        f"{files} file(s)...",
    ):
        result = generate_quiz(request, generator, logger=runtime.logger)
    session = apply_generation_result(
        session, result, request_id=session.request_id
    )
    return session, result


def _load_saved_session(
    path: Path, runtime: _Runtime
) -> tuple[QuizSession, GenerationResult]:
    text = path.read_text(encoding="utf-8")
    result = resolve_generator_output(text, debug={"source": str(path)})
    session = add_documents(new_session(), [SourceDocument.from_path(path)])
    count = len(result.quiz) if result.quiz else DEFAULT_QUESTION_COUNT
    session, _ = begin_generation(
        session, question_count=count, strategy=QuizStrategy.MIXED
    )
    runtime.logger.info(
        "Loaded saved quiz",
        extra={"event": "quiz.load", "path": str(path), "ok": result.ok},
    )
    session = apply_generation_result(
        session, result, request_id=session.request_id
    )
    return session, result


def _default_output(runtime: _Runtime) -> Path:
    stamp = time.strftime("%Y%m%d-%H%M%S")
    return runtime.layout.path_for("quizzes") / f"quiz-{stamp}.json"


def _write_result(result: GenerationResult, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def _report_failure(
    console: Console, session: QuizSession, runtime: _Runtime
) -> None:
    render_diagnostics(
        console, session.diagnostics, error=session.last_error
    )
    console.print(f"[dim]Log file: {runtime.log_path}[/]")


def _print_error(console: Console, message: Any) -> None:
    console.print(f"[bold red]Error:[/] {message}", highlight=False)


def generate_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
) -> int:
    args = build_generate_parser().parse_args(
        list(argv) if argv is not None else None
    )
    console = console or Console()
    try:
        runtime = _prepare_runtime(args)
    except (ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(console, exc)
        return 2

    try:
        session, result = _generate_session(args, runtime, console)
    except (OSError, InputConstraintError, RuntimeError) as exc:
        runtime.logger.warning(
            "Generation input rejected: %s",
            exc,
            extra={"event": "generation.input_error"},
        )
        _print_error(console, exc)
        return 2

    output = _write_result(result, args.output or _default_output(runtime))
    if session.phase is not SessionPhase.ANSWERING or session.quiz is None:
        _report_failure(console, session, runtime)
        console.print(f"Saved diagnostics -> {output}")
        return 1

    console.print(f"Generated {len(session.quiz)} question(s) -> {output}")
    mismatch = session.quiz.count_mismatch
    if mismatch:
        console.print(
            f"[yellow]Requested {session.quiz.requested_count} but "
            f"received {len(session.quiz)} usable question(s).[/]"
        )
    if session.diagnostics.details:
        console.print(f"[dim]{session.diagnostics.details}[/]")
    return 0


def take_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = build_take_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.quiz is None and not args.files:
        parser.error("provide source FILES or --quiz PATH")
    console = console or Console()
    try:
        runtime = _prepare_runtime(args)
    except (ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(console, exc)
        return 2

    try:
        if args.quiz is not None:
            session, result = _load_saved_session(args.quiz, runtime)
        else:
            session, result = _generate_session(args, runtime, console)
            if result.ok:
                saved = _write_result(
                    result, args.output or _default_output(runtime)
                )
                console.print(f"[dim]Saved quiz -> {saved}[/]")
    except (
        OSError,
        InputConstraintError,
        RuntimeError,
        UnicodeDecodeError,
    ) as exc:
        _print_error(console, exc)
        return 2

    if session.phase is not SessionPhase.ANSWERING:
        _report_failure(console, session, runtime)
        return 1

    partial = (
        runtime.config.scoring.partial_matching
        if args.partial_matching is None
        else args.partial_matching
    )
    outcome = run_quiz_session(
        session,
        console,
        input_provider or (lambda: console.input("[bold cyan]> [/]")),
        partial_matching=partial,
        show_review=args.review,
        logger=runtime.logger,
    )
    if outcome.exit_action == "error":
        console.print(f"[dim]Log file: {runtime.log_path}[/]")
        return 1
    return 0
