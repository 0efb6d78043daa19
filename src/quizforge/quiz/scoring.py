"""Grade a quiz against collected answers.

Every question is worth one unit. Grading never raises for odd answer data:
answers keyed by unknown ids are ignored and malformed answer shapes grade as
incorrect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from .models import (
    AnswerMap,
    MatchingQuestion,
    McqQuestion,
    Question,
    Quiz,
    TextQuestion,
)

__all__ = [
    "QuestionScore",
    "ScoreResult",
    "score",
    "grade_question",
    "is_answered",
    "matching_selections",
    "grade_band",
]


@dataclass(frozen=True)
class QuestionScore:
    id: str
    correct: bool
    credit: float = 0.0


@dataclass(frozen=True)
class ScoreResult:
    earned: float
    possible: int
    percent: float
    per_question: Tuple[QuestionScore, ...]

    @property
    def correct_count(self) -> int:
        return sum(1 for item in self.per_question if item.correct)

    def for_question(self, question_id: str) -> Optional[QuestionScore]:
        for item in self.per_question:
            if item.id == question_id:
                return item
        return None


def _normalize_text(value: str) -> str:
    return value.strip().casefold()


def matching_selections(answer: object) -> dict[int, str]:
    """Return ``{pair index: chosen right value}`` from a stored answer.

    Accepts a mapping keyed by int or decimal-string index (JSON objects only
    have string keys) or a list ordered by pair index. Anything else yields an
    empty selection.
    """
    selections: dict[int, str] = {}
    if isinstance(answer, Mapping):
        items = answer.items()
    elif isinstance(answer, Sequence) and not isinstance(answer, (str, bytes)):
        items = enumerate(answer)
    else:
        return selections
    for key, value in items:
        if isinstance(key, bool):
            continue
        if isinstance(key, str) and key.strip().isdigit():
            key = int(key.strip())
        if not isinstance(key, int) or not isinstance(value, str):
            continue
        if value.strip():
            selections[key] = value
    return selections


def _grade_mcq(question: McqQuestion, answer: object) -> float:
    if isinstance(answer, bool) or not isinstance(answer, int):
        return 0.0
    return 1.0 if answer == question.correct_index else 0.0


def _grade_text(question: TextQuestion, answer: object) -> float:
    if not isinstance(answer, str):
        return 0.0
    given = _normalize_text(answer)
    if not given:
        return 0.0
    accepted = {_normalize_text(option) for option in question.acceptable()}
    return 1.0 if given in accepted else 0.0


def _grade_matching(
    question: MatchingQuestion, answer: object, partial: bool
) -> float:
    selections = matching_selections(answer)
    matched = sum(
        1
        for index, pair in enumerate(question.pairs)
        if selections.get(index, "").strip() == pair.right
    )
    if matched == len(question.pairs):
        return 1.0
    if partial:
        return matched / len(question.pairs)
    return 0.0


def grade_question(
    question: Question, answer: object, *, partial_matching: bool = False
) -> QuestionScore:
    """Grade a single question; ``answer`` may be ``None`` (unanswered)."""
    if isinstance(question, McqQuestion):
        credit = _grade_mcq(question, answer)
    elif isinstance(question, TextQuestion):
        credit = _grade_text(question, answer)
    elif isinstance(question, MatchingQuestion):
        credit = _grade_matching(question, answer, partial_matching)
    else:  # pragma: no cover - closed union
        raise TypeError(f"Unsupported question: {type(question).__name__}")
    return QuestionScore(id=question.id, correct=credit == 1.0, credit=credit)


def is_answered(question: Question, answer: object) -> bool:
    """Whether ``answer`` holds a usable response for ``question``."""
    if answer is None:
        return False
    if isinstance(question, McqQuestion):
        return isinstance(answer, int) and not isinstance(answer, bool)
    if isinstance(question, TextQuestion):
        return isinstance(answer, str) and bool(answer.strip())
    return bool(matching_selections(answer))


def score(
    quiz: Quiz, answers: AnswerMap, *, partial_matching: bool = False
) -> ScoreResult:
    """Grade ``quiz`` against ``answers``.

    ``possible`` is the number of questions and ``percent`` is
    ``100 * earned / possible`` (``0`` for an empty quiz). With
    ``partial_matching`` a matching question earns the fraction of pairs
    matched, but its ``correct`` flag still requires every pair.
    """
    per_question = tuple(
        grade_question(
            question,
            answers.get(question.id),
            partial_matching=partial_matching,
        )
        for question in quiz.questions
    )
    possible = len(per_question)
    earned = sum(item.credit for item in per_question)
    percent = (100.0 * earned / possible) if possible else 0.0
    return ScoreResult(
        earned=earned,
        possible=possible,
        percent=percent,
        per_question=per_question,
    )


def grade_band(percent: float) -> str:
    """Bucket a percentage for display: success, warning or danger."""
    if percent >= 80:
        return "success"
    if percent >= 50:
        return "warning"
    return "danger"
