"""Typed quiz domain model.

Questions form a closed set of frozen dataclasses keyed by
:class:`QuestionType`. Instances are only built by
:mod:`quizforge.quiz.validation` (or directly in tests); everything downstream
of validation (scoring, rendering, the session loop) relies on the invariants
documented on each class and never sees raw generator payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

__all__ = [
    "QuestionType",
    "McqQuestion",
    "TextQuestion",
    "MatchPair",
    "MatchingQuestion",
    "Question",
    "Quiz",
    "AnswerMap",
    "TEXT_TYPES",
]


class QuestionType(Enum):
    """Concrete question kinds a quiz may contain."""

    MCQ = "mcq"
    FILL_BLANK = "fill_blank"
    IDENTIFICATION = "identification"
    MATCHING = "matching"

    @classmethod
    def parse(cls, value: object) -> Optional["QuestionType"]:
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


TEXT_TYPES = frozenset({QuestionType.FILL_BLANK, QuestionType.IDENTIFICATION})


@dataclass(frozen=True)
class McqQuestion:
    """Single-answer multiple choice; ``correct_index`` indexes ``choices``."""

    id: str
    prompt: str
    choices: Tuple[str, ...]
    correct_index: int
    explanation: str = ""

    @property
    def type(self) -> QuestionType:
        return QuestionType.MCQ

    @property
    def correct_choice(self) -> str:
        return self.choices[self.correct_index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "prompt": self.prompt,
            "explanation": self.explanation,
            "choices": list(self.choices),
            "correctIndex": self.correct_index,
        }


@dataclass(frozen=True)
class TextQuestion:
    """Free-text question graded by case-insensitive comparison."""

    id: str
    prompt: str
    correct_answer: str
    kind: QuestionType = QuestionType.FILL_BLANK
    accepted_answers: Tuple[str, ...] = ()
    explanation: str = ""

    @property
    def type(self) -> QuestionType:
        return self.kind

    def acceptable(self) -> Tuple[str, ...]:
        """Return the canonical answer followed by every alternate."""
        return (self.correct_answer, *self.accepted_answers)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "prompt": self.prompt,
            "explanation": self.explanation,
            "correctAnswer": self.correct_answer,
        }
        if self.accepted_answers:
            payload["acceptedAnswers"] = list(self.accepted_answers)
        return payload


def _option_key(value: str) -> Tuple[str, str]:
    return value.casefold(), value


@dataclass(frozen=True)
class MatchPair:
    left: str
    right: str


@dataclass(frozen=True)
class MatchingQuestion:
    """Pair each ``left`` item with its ``right`` value.

    ``pairs`` is non-empty and every ``right`` value is distinct, so the
    right-hand column doubles as the option list shown to the user. Options
    are listed alphabetically so their letters do not follow item order.
    """

    id: str
    prompt: str
    pairs: Tuple[MatchPair, ...]
    explanation: str = ""

    @property
    def type(self) -> QuestionType:
        return QuestionType.MATCHING

    @property
    def right_options(self) -> Tuple[str, ...]:
        return tuple(
            sorted((pair.right for pair in self.pairs), key=_option_key)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "prompt": self.prompt,
            "explanation": self.explanation,
            "pairs": [
                {"left": pair.left, "right": pair.right}
                for pair in self.pairs
            ],
        }


Question = Union[McqQuestion, TextQuestion, MatchingQuestion]

# question id -> int (mcq) | str (text kinds) | {pair index: right} (matching)
AnswerMap = Mapping[str, object]


@dataclass(frozen=True)
class Quiz:
    """Ordered, validated questions plus the count originally requested."""

    questions: Tuple[Question, ...]
    requested_count: Optional[int] = None
    _index: Dict[str, Question] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        self._index.update({q.id: q for q in self.questions})

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self):
        return iter(self.questions)

    def get(self, question_id: str) -> Optional[Question]:
        return self._index.get(question_id)

    @property
    def count_mismatch(self) -> Optional[int]:
        """Delivered minus requested, or ``None`` when they agree."""
        if self.requested_count is None:
            return None
        delta = len(self.questions) - self.requested_count
        return delta or None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "questions": [q.to_dict() for q in self.questions]
        }
        if self.requested_count is not None:
            payload["requestedCount"] = self.requested_count
        return payload
