"""Quiz session lifecycle as an explicit, immutable state value.

Each transition takes a :class:`QuizSession` and returns the next one; the
caller owns the loop and keeps whichever value it was handed last. Phases
move Collecting -> Generating -> Answering -> Finished -> Collecting, with
Generating falling back to Collecting when generation fails. Transitions
requested from the wrong phase return the session unchanged.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple

from .contract import (
    Difficulty,
    GenerationRequest,
    GenerationResult,
    QuizStrategy,
    SourceDocument,
    check_documents,
)
from .models import MatchingQuestion, Question, Quiz
from .scoring import ScoreResult, matching_selections, score

__all__ = [
    "SessionPhase",
    "Diagnostics",
    "QuizSession",
    "new_session",
    "add_documents",
    "clear_documents",
    "begin_generation",
    "apply_generation_result",
    "move_cursor",
    "next_question",
    "previous_question",
    "record_answer",
    "record_match",
    "finish",
    "restart",
    "session_score",
    "elapsed_seconds",
]


class SessionPhase(Enum):
    COLLECTING = "collecting"
    GENERATING = "generating"
    ANSWERING = "answering"
    FINISHED = "finished"


@dataclass(frozen=True)
class Diagnostics:
    """Diagnostic channel captured from the most recent generation."""

    raw: str = ""
    debug: Mapping[str, Any] = field(default_factory=dict)
    details: str = ""

    @classmethod
    def from_result(cls, result: GenerationResult) -> "Diagnostics":
        return cls(
            raw=result.raw, debug=dict(result.debug), details=result.details
        )

    def __bool__(self) -> bool:
        return bool(self.raw or self.debug or self.details)


@dataclass(frozen=True)
class QuizSession:
    phase: SessionPhase = SessionPhase.COLLECTING
    documents: Tuple[SourceDocument, ...] = ()
    quiz: Optional[Quiz] = None
    answers: Mapping[str, object] = field(default_factory=dict)
    cursor: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    request_id: int = 0
    last_error: Optional[str] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def current_question(self) -> Optional[Question]:
        if self.quiz is None or not self.quiz.questions:
            return None
        return self.quiz.questions[self.cursor]

    @property
    def total_questions(self) -> int:
        return len(self.quiz) if self.quiz else 0

    @property
    def is_last_question(self) -> bool:
        return self.cursor >= self.total_questions - 1

    def answer_for(self, question_id: str) -> object:
        return self.answers.get(question_id)


def new_session() -> QuizSession:
    return QuizSession()


def add_documents(
    session: QuizSession, documents: Iterable[SourceDocument]
) -> QuizSession:
    """Append documents while collecting.

    Raises :class:`~quizforge.quiz.contract.InputConstraintError` when the
    combined selection breaks a limit; the given session is not changed.
    """
    if session.phase is not SessionPhase.COLLECTING:
        return session
    combined = check_documents(session.documents, documents)
    return replace(session, documents=combined)


def clear_documents(session: QuizSession) -> QuizSession:
    if session.phase is not SessionPhase.COLLECTING:
        return session
    return replace(session, documents=())


def begin_generation(
    session: QuizSession,
    *,
    question_count: object,
    strategy: "str | QuizStrategy",
    difficulty: "str | Difficulty | None" = Difficulty.BALANCED,
) -> Tuple[QuizSession, Optional[GenerationRequest]]:
    """Move Collecting -> Generating and return the request to dispatch.

    Input errors raise before any transition. Outside Collecting (including a
    second submit while a request is in flight) this is a no-op returning
    ``(session, None)``.
    """
    if session.phase is not SessionPhase.COLLECTING:
        return session, None
    request = GenerationRequest.build(
        session.documents,
        question_count=question_count,
        strategy=strategy,
        difficulty=difficulty,
    )
    updated = replace(
        session,
        phase=SessionPhase.GENERATING,
        request_id=session.request_id + 1,
        last_error=None,
    )
    return updated, request


def apply_generation_result(
    session: QuizSession,
    result: GenerationResult,
    *,
    request_id: int,
    now: Optional[float] = None,
) -> QuizSession:
    """Settle an in-flight generation.

    Results for a superseded request, or arriving after the session left
    Generating, are ignored.
    """
    if session.phase is not SessionPhase.GENERATING:
        return session
    if request_id != session.request_id:
        return session
    diagnostics = Diagnostics.from_result(result)
    if not result.ok or result.quiz is None or not result.quiz.questions:
        return replace(
            session,
            phase=SessionPhase.COLLECTING,
            quiz=None,
            last_error=result.error or "Generation failed",
            diagnostics=diagnostics,
        )
    return replace(
        session,
        phase=SessionPhase.ANSWERING,
        quiz=result.quiz,
        answers={},
        cursor=0,
        started_at=time.time() if now is None else now,
        finished_at=None,
        last_error=None,
        diagnostics=diagnostics,
    )


def move_cursor(session: QuizSession, delta: int) -> QuizSession:
    if session.phase is not SessionPhase.ANSWERING:
        return session
    last = max(0, session.total_questions - 1)
    cursor = min(last, max(0, session.cursor + delta))
    if cursor == session.cursor:
        return session
    return replace(session, cursor=cursor)


def next_question(session: QuizSession) -> QuizSession:
    return move_cursor(session, 1)


def previous_question(session: QuizSession) -> QuizSession:
    return move_cursor(session, -1)


def record_answer(
    session: QuizSession, question_id: str, value: object
) -> QuizSession:
    """Store (or with ``None`` clear) the answer for ``question_id``."""
    if session.phase is not SessionPhase.ANSWERING or session.quiz is None:
        return session
    if session.quiz.get(question_id) is None:
        return session
    answers = dict(session.answers)
    if value is None:
        answers.pop(question_id, None)
    else:
        answers[question_id] = value
    return replace(session, answers=answers)


def record_match(
    session: QuizSession,
    question_id: str,
    pair_index: int,
    right_value: Optional[str],
) -> QuizSession:
    """Set one pair of a matching question, keeping the other selections."""
    if session.phase is not SessionPhase.ANSWERING or session.quiz is None:
        return session
    question = session.quiz.get(question_id)
    if not isinstance(question, MatchingQuestion):
        return session
    if not 0 <= pair_index < len(question.pairs):
        return session
    selections = matching_selections(session.answers.get(question_id))
    if right_value is None or not right_value.strip():
        selections.pop(pair_index, None)
    else:
        selections[pair_index] = right_value
    return record_answer(session, question_id, selections or None)


def finish(session: QuizSession, *, now: Optional[float] = None) -> QuizSession:
    """Submit from any cursor position; unanswered questions grade as 0."""
    if session.phase is not SessionPhase.ANSWERING:
        return session
    return replace(
        session,
        phase=SessionPhase.FINISHED,
        finished_at=time.time() if now is None else now,
    )


def restart(session: QuizSession) -> QuizSession:
    """Finished -> Collecting with quiz, answers and documents cleared."""
    if session.phase is not SessionPhase.FINISHED:
        return session
    return QuizSession(request_id=session.request_id)


def session_score(
    session: QuizSession, *, partial_matching: bool = False
) -> Optional[ScoreResult]:
    if session.quiz is None:
        return None
    return score(
        session.quiz, session.answers, partial_matching=partial_matching
    )


def elapsed_seconds(
    session: QuizSession, *, now: Optional[float] = None
) -> float:
    if session.started_at is None:
        return 0.0
    end = session.finished_at
    if end is None:
        end = time.time() if now is None else now
    return max(0.0, end - session.started_at)
