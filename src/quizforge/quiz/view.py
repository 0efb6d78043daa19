"""Rich renderables for questions, score reports and diagnostics."""

from __future__ import annotations

import json
from typing import Callable, Optional

from rich import box
from rich.console import Console, Group, RenderableType
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from .models import (
    MatchingQuestion,
    McqQuestion,
    Question,
    Quiz,
    TextQuestion,
)
from .scoring import ScoreResult, grade_band, is_answered, matching_selections
from .session import Diagnostics

RichTextRenderer = Callable[[str], RenderableType]

_BAND_STYLES = {
    "success": "green",
    "warning": "yellow",
    "danger": "red",
}
_RAW_PREVIEW_CHARS = 4000


def render_rich_text(text: str) -> RenderableType:
    """Default rich-text collaborator: Markdown with highlighted code."""
    return Markdown(text or "")


def choice_label(index: int) -> str:
    return chr(ord("A") + index)


def format_duration(seconds: float) -> str:
    total = int(max(0.0, seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _mcq_body(
    question: McqQuestion, answer: object, renderer: RichTextRenderer
) -> RenderableType:
    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan", width=3)
    table.add_column("Choice")
    for index, choice in enumerate(question.choices):
        selected = answer == index and not isinstance(answer, bool)
        marker = Text("• " if selected else "  ", style="bold green")
        body = renderer(choice)
        table.add_row(
            choice_label(index),
            Group(marker, body) if selected else body,
        )
    return table


def _text_body(answer: object) -> RenderableType:
    current = answer if isinstance(answer, str) and answer.strip() else None
    if current is None:
        return Text("Type your answer and press Enter.", style="dim")
    return Text.assemble(("Your answer: ", "dim"), (current, "bold green"))


def _matching_body(
    question: MatchingQuestion, answer: object, renderer: RichTextRenderer
) -> RenderableType:
    selections = matching_selections(answer)
    pairs = Table(box=box.SIMPLE, expand=True, title="Match each item")
    pairs.add_column("#", justify="right", style="cyan", width=3)
    pairs.add_column("Item")
    pairs.add_column("Your match", style="green")
    for index, pair in enumerate(question.pairs):
        pairs.add_row(
            str(index + 1),
            renderer(pair.left),
            selections.get(index, "—"),
        )
    options = Table(show_header=False, box=box.SIMPLE, expand=True)
    options.add_column("Key", justify="center", style="cyan", width=3)
    options.add_column("Option")
    for index, right in enumerate(question.right_options):
        options.add_row(choice_label(index), right)
    return Group(pairs, options)


def question_hint(question: Question) -> str:
    if isinstance(question, McqQuestion):
        keys = ", ".join(
            choice_label(i) for i in range(len(question.choices))
        )
        return f"Answer with a letter [{keys}]"
    if isinstance(question, MatchingQuestion):
        return "Match with '<item #> <letter>', e.g. '1 B'"
    return "Type your answer (prefix with '=' to answer a command word)"


def render_question(
    console: Console,
    quiz: Quiz,
    cursor: int,
    answer: object,
    *,
    renderer: RichTextRenderer = render_rich_text,
) -> None:
    question = quiz.questions[cursor]
    total = len(quiz)
    progress = round(100 * (cursor + 1) / total) if total else 0
    header = Text.assemble(
        (f"Question {cursor + 1}", "bold cyan"),
        (f" / {total}", "dim"),
        ("  ", ""),
        (question.type.value.upper(), "magenta"),
    )
    console.print()
    console.rule(header)
    status = "Answered" if is_answered(question, answer) else "Unanswered"
    console.print(Text(f"{status} | Progress {progress}%", style="dim"))
    console.print(renderer(question.prompt))

    if isinstance(question, McqQuestion):
        console.print(_mcq_body(question, answer, renderer))
    elif isinstance(question, MatchingQuestion):
        console.print(_matching_body(question, answer, renderer))
    else:
        console.print(_text_body(answer))

    nav = "n (next), p (back), submit, quit"
    console.print(Text(f"{question_hint(question)} | {nav}", style="dim"))


def render_score_report(
    console: Console,
    result: ScoreResult,
    *,
    elapsed: Optional[float] = None,
) -> None:
    band = _BAND_STYLES[grade_band(result.percent)]
    console.print()
    console.rule(Text("Performance Report", style="bold magenta"))
    overview = Table(
        show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row(
        "Score", Text(f"{round(result.percent)}%", style=f"bold {band}")
    )
    overview.add_row("Points", f"{result.earned:g} / {result.possible}")
    overview.add_row(
        "Correct", f"{result.correct_count} / {len(result.per_question)}"
    )
    if elapsed is not None:
        overview.add_row("Duration", format_duration(elapsed))
    console.print(overview)


def render_review(
    console: Console,
    quiz: Quiz,
    result: ScoreResult,
    *,
    renderer: RichTextRenderer = render_rich_text,
) -> None:
    """Per-question breakdown with explanations."""
    console.print()
    console.rule(Text("Detailed Review", style="bold"))
    for number, question in enumerate(quiz.questions, start=1):
        graded = result.for_question(question.id)
        correct = bool(graded and graded.correct)
        badge = (
            Text("✓ Correct", style="bold green")
            if correct
            else Text("✗ Needs review", style="bold red")
        )
        parts: list[RenderableType] = [badge, renderer(question.prompt)]
        parts.append(Text.assemble(("Answer: ", "dim"), _answer_key(question)))
        if question.explanation:
            parts.append(
                Text.assemble(("Explanation: ", "dim"), question.explanation)
            )
        console.print(
            Panel(
                Group(*parts),
                title=f"Q{number}",
                border_style="green" if correct else "red",
            )
        )


def _answer_key(question: Question) -> str:
    if isinstance(question, McqQuestion):
        label = choice_label(question.correct_index)
        return f"{label}) {question.correct_choice}"
    if isinstance(question, TextQuestion):
        return " / ".join(question.acceptable())
    return "; ".join(f"{pair.left} → {pair.right}" for pair in question.pairs)


def render_diagnostics(
    console: Console,
    diagnostics: Diagnostics,
    *,
    error: Optional[str] = None,
) -> None:
    """Show the diagnostic channel of a failed (or suspicious) generation."""
    if error:
        console.print(
            Panel(Text(error), title="Generation failed", border_style="red")
        )
    if not diagnostics:
        return
    if diagnostics.details:
        console.print(
            Panel(
                Text(diagnostics.details),
                title="Details",
                border_style="yellow",
            )
        )
    if diagnostics.debug:
        dump = json.dumps(diagnostics.debug, indent=2, default=str)
        console.print(
            Panel(
                Syntax(dump, "json", word_wrap=True),
                title="Debug payload",
                border_style="blue",
            )
        )
    if diagnostics.raw:
        preview = diagnostics.raw[:_RAW_PREVIEW_CHARS]
        if len(diagnostics.raw) > _RAW_PREVIEW_CHARS:
            omitted = len(diagnostics.raw) - _RAW_PREVIEW_CHARS
            preview += f"\n… ({omitted} more characters)"
        console.print(
            Panel(Text(preview), title="Raw output", border_style="dim")
        )
