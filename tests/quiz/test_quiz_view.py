from __future__ import annotations

import pytest
from rich.console import Console
from rich.text import Text

from quizforge.quiz.contract import resolve_generator_output
from quizforge.quiz.scoring import score
from quizforge.quiz.session import Diagnostics
from quizforge.quiz.view import (
    choice_label,
    format_duration,
    question_hint,
    render_diagnostics,
    render_question,
    render_review,
    render_score_report,
)


def _console() -> Console:
    return Console(record=True, width=120, force_terminal=True)


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0s"),
        (45, "45s"),
        (45.9, "45s"),
        (185, "3m 05s"),
        (3723, "1h 02m 03s"),
        (-5, "0s"),
    ],
)
def test_format_duration(seconds, expected) -> None:
    assert format_duration(seconds) == expected


def test_choice_label() -> None:
    assert [choice_label(i) for i in range(3)] == ["A", "B", "C"]


def test_render_mcq_question_shows_choices_and_progress(sample_quiz) -> None:
    console = _console()

    render_question(console, sample_quiz, 0, None)

    text = console.export_text()
    assert "Question 1 / 4" in text
    assert "MCQ" in text
    assert "Unanswered | Progress 25%" in text
    assert "Chloroplast" in text
    assert "Answer with a letter [A, B, C]" in text
    assert "n (next), p (back), submit, quit" in text


def test_render_marks_answered_question(sample_quiz) -> None:
    console = _console()

    render_question(console, sample_quiz, 0, 1)

    assert "Answered | Progress 25%" in console.export_text()


def test_render_text_question_shows_current_answer(sample_quiz) -> None:
    console = _console()

    render_question(console, sample_quiz, 2, "chlorophyl")

    text = console.export_text()
    assert "IDENTIFICATION" in text
    assert "Your answer: chlorophyl" in text


def test_render_matching_question_lists_selections(sample_quiz) -> None:
    console = _console()

    render_question(console, sample_quiz, 3, {0: "Roots"})

    text = console.export_text()
    assert "Progress 100%" in text
    assert "Match each item" in text
    assert "Carbon dioxide" in text
    assert "Roots" in text
    assert "Stomata" in text
    assert "e.g. '1 B'" in text


def test_render_question_uses_custom_renderer(sample_quiz) -> None:
    console = _console()

    render_question(
        console, sample_quiz, 0, None, renderer=lambda s: Text(s.upper())
    )

    assert "WHICH ORGANELLE RUNS PHOTOSYNTHESIS?" in console.export_text()


def test_question_hint_for_text(sample_quiz) -> None:
    assert "prefix with '='" in question_hint(sample_quiz.questions[1])


def test_render_score_report(sample_quiz) -> None:
    console = _console()
    result = score(sample_quiz, {"q1": 1})

    render_score_report(console, result, elapsed=65)

    text = console.export_text()
    assert "Performance Report" in text
    assert "25%" in text
    assert "1 / 4" in text
    assert "1m 05s" in text


def test_render_review_shows_answer_key(sample_quiz) -> None:
    console = _console()
    result = score(sample_quiz, {"q1": 1})

    render_review(console, sample_quiz, result)

    text = console.export_text()
    assert "Detailed Review" in text
    assert "✓ Correct" in text
    assert "✗ Needs review" in text
    assert "B) Chloroplast" in text
    assert "Oxygen / O2" in text
    assert "Water → Roots" in text
    assert "Chloroplasts hold chlorophyll." in text


def test_render_diagnostics_truncates_raw_output() -> None:
    console = _console()
    result = resolve_generator_output("x" * 4100, debug={"model": "m"})

    render_diagnostics(
        console, Diagnostics.from_result(result), error=result.error
    )

    text = console.export_text()
    assert "Generation failed" in text
    assert "Debug payload" in text
    assert '"model": "m"' in text
    assert "Raw output" in text
    assert "(100 more characters)" in text


def test_render_diagnostics_without_payload() -> None:
    console = _console()

    render_diagnostics(console, Diagnostics())

    assert console.export_text().strip() == ""
