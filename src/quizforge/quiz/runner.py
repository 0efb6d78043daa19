"""Interactive terminal loop driving a :class:`QuizSession`.

The loop renders the current question with Rich, reads one command per
prompt and feeds it through the session transitions. It never grades or
validates on its own; everything goes through the session and scoring
modules.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .models import MatchingQuestion, McqQuestion, Question
from .scoring import ScoreResult
from .session import (
    QuizSession,
    SessionPhase,
    elapsed_seconds,
    finish,
    next_question,
    previous_question,
    record_answer,
    record_match,
    session_score,
)
from .view import (
    RichTextRenderer,
    choice_label,
    render_question,
    render_review,
    render_rich_text,
    render_score_report,
)

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "quit", "empty", "error"]
CommandType = Literal[
    "next", "prev", "submit", "quit", "clear", "answer", "match"
]

_NAV_WORDS: dict[str, CommandType] = {
    "n": "next",
    "next": "next",
    "p": "prev",
    "prev": "prev",
    "previous": "prev",
    "back": "prev",
    "s": "submit",
    "submit": "submit",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
    "clear": "clear",
}
_MATCH_RE = re.compile(r"^(\d+)\s*[:=\-]?\s*([A-Za-z])$")
_ESCAPE = "="


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    value: object = None
    pair_index: Optional[int] = None
    text: str = ""


@dataclass(frozen=True)
class SessionOutcome:
    """Return value from :func:`run_quiz_session`."""

    session: QuizSession
    exit_action: ExitAction
    result: Optional[ScoreResult] = None


def _parse_mcq(text: str) -> Optional[SessionCommand]:
    if text.isdigit():
        return SessionCommand("answer", int(text) - 1, text=text)
    if len(text) == 1 and text.isalpha():
        index = ord(text.upper()) - ord("A")
        return SessionCommand("answer", index, text=text.upper())
    return None


def _parse_matching(text: str) -> Optional[SessionCommand]:
    match = _MATCH_RE.match(text)
    if not match:
        return None
    item, letter = match.groups()
    option = ord(letter.upper()) - ord("A")
    return SessionCommand(
        "match", option, pair_index=int(item) - 1, text=text
    )


def parse_session_command(
    raw: Optional[str], question: Question
) -> Optional[SessionCommand]:
    """Parse raw user input for ``question`` into a structured command.

    Navigation words win over answers; prefix an answer with ``=`` to send a
    word such as ``next`` as the answer itself.
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.startswith(_ESCAPE):
        text = text[len(_ESCAPE):].strip()
        if not text:
            return None
    else:
        nav = _NAV_WORDS.get(text.lower())
        if nav is not None:
            return SessionCommand(nav)
    if isinstance(question, McqQuestion):
        return _parse_mcq(text)
    if isinstance(question, MatchingQuestion):
        return _parse_matching(text)
    return SessionCommand("answer", text, text=text)


def _apply_command(
    command: SessionCommand,
    session: QuizSession,
    console: Console,
) -> tuple[QuizSession, Optional[ExitAction]]:
    question = session.current_question
    if question is None:
        return session, "empty"
    if command.type == "next":
        return next_question(session), None
    if command.type == "prev":
        return previous_question(session), None
    if command.type == "clear":
        return record_answer(session, question.id, None), None
    if command.type == "quit":
        console.print("\n[bold yellow]Ending session without submission.[/]")
        return session, "quit"
    if command.type == "submit":
        return finish(session), "submitted"
    if command.type == "match" and isinstance(question, MatchingQuestion):
        options = question.right_options
        index = command.value
        if not (
            isinstance(index, int)
            and 0 <= index < len(options)
            and command.pair_index is not None
            and 0 <= command.pair_index < len(question.pairs)
        ):
            console.print(
                f"[red]'{escape(command.text)}' does not name an item "
                "and option shown for this question.[/red]"
            )
            return session, None
        updated = record_match(
            session, question.id, command.pair_index, options[index]
        )
        console.print(
            f"Matched item [bold]{command.pair_index + 1}[/] with "
            f"[bold]{choice_label(index)}[/]."
        )
        return updated, None
    if command.type == "answer" and isinstance(question, McqQuestion):
        index = command.value
        if not (isinstance(index, int) and 0 <= index < len(question.choices)):
            console.print(
                f"[red]'{escape(command.text)}' is not a valid choice for this "
                "question.[/red]"
            )
            return session, None
        console.print(f"Selected [bold]{choice_label(index)}[/].")
        return record_answer(session, question.id, index), None
    if command.type == "answer":
        return record_answer(session, question.id, command.value), None
    console.print("[red]Unrecognized command. Try again.[/]")
    return session, None


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    renderer: RichTextRenderer = render_rich_text,
    partial_matching: bool = False,
    show_review: bool = True,
    logger: Optional[logging.Logger] = None,
) -> SessionOutcome:
    """Run an interactive session over a quiz in the Answering phase.

    Returns the final session value. On submit the session is Finished and
    the score report (plus the detailed review when ``show_review``) has been
    printed; on quit or interruption the session is returned still
    Answering.
    """
    log = logger or logging.getLogger(__name__)
    if session.phase is not SessionPhase.ANSWERING or session.quiz is None:
        console.print(
            Panel(
                "There is no quiz to take.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return SessionOutcome(session, "empty")

    log.info(
        "Quiz session started",
        extra={"event": "session.start", "questions": len(session.quiz)},
    )
    exit_action: ExitAction = "quit"
    while True:
        question = session.current_question
        if question is None:
            exit_action = "empty"
            break
        try:
            render_question(
                console,
                session.quiz,
                session.cursor,
                session.answer_for(question.id),
                renderer=renderer,
            )
        except Exception:
            log.exception(
                "Failed to render question %s",
                question.id,
                extra={"event": "session.render_error"},
            )
            console.print(
                "[bold red]Something went wrong while displaying the quiz.[/]"
            )
            console.print(
                "Rerun the command to reload the session; details are in "
                "the log file."
            )
            return SessionOutcome(session, "error")
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            exit_action = "quit"
            break
        command = parse_session_command(raw, question)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        session, exit_candidate = _apply_command(command, session, console)
        if exit_candidate:
            exit_action = exit_candidate
            break

    if exit_action != "submitted":
        log.info(
            "Quiz session ended without submission",
            extra={"event": "session.quit", "answered": len(session.answers)},
        )
        return SessionOutcome(session, exit_action)

    result = session_score(session, partial_matching=partial_matching)
    assert result is not None
    log.info(
        "Quiz submitted",
        extra={
            "event": "session.submit",
            "percent": round(result.percent, 2),
            "correct": result.correct_count,
            "total": result.possible,
        },
    )
    render_score_report(console, result, elapsed=elapsed_seconds(session))
    if show_review:
        render_review(console, session.quiz, result, renderer=renderer)
    return SessionOutcome(session, "submitted", result)
