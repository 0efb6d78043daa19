"""Validate untyped generator payloads into the quiz model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import (
    MatchingQuestion,
    MatchPair,
    McqQuestion,
    Question,
    QuestionType,
    Quiz,
    TextQuestion,
)

__all__ = [
    "QuestionValidationError",
    "ValidationReport",
    "validate_question",
    "validate_quiz",
    "extract_question_list",
]


class QuestionValidationError(ValueError):
    """A single question failed validation.

    Carries the question position (0-based), its id when known, and the
    offending field so failures can be reported on the diagnostic channel.
    """

    def __init__(
        self,
        message: str,
        *,
        index: int,
        field: str,
        question_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.index = index
        self.field = field
        self.question_id = question_id

    def describe(self) -> str:
        if self.index < 0:
            return f"payload: {self.field}: {self.message}"
        label = f"question {self.index + 1}"
        if self.question_id:
            label += f" (id={self.question_id})"
        return f"{label}: {self.field}: {self.message}"


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a whole generator payload."""

    quiz: Optional[Quiz]
    issues: Tuple[QuestionValidationError, ...]
    delivered: int
    requested: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.quiz is not None

    def describe(self) -> str:
        lines: List[str] = []
        valid = len(self.quiz) if self.quiz else 0
        lines.append(
            f"{valid} of {self.delivered} question(s) passed validation."
        )
        if self.requested is not None and self.delivered != self.requested:
            lines.append(
                f"Requested {self.requested} question(s); generator "
                f"delivered {self.delivered}."
            )
        lines.extend(issue.describe() for issue in self.issues)
        return "\n".join(lines)


def _fail(index: int, field: str, message: str, qid: Optional[str] = None):
    return QuestionValidationError(
        message, index=index, field=field, question_id=qid
    )


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _require_text(
    payload: Mapping[str, Any], keys: Sequence[str], index: int, qid: str
) -> str:
    value = _first_present(payload, *keys)
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise _fail(index, keys[0], "is required", qid)
    text = str(value).strip()
    if not text:
        raise _fail(index, keys[0], "must be non-empty", qid)
    return text


def _question_id(payload: Mapping[str, Any], index: int) -> str:
    raw = payload.get("id")
    if raw is None or isinstance(raw, bool):
        return f"q{index + 1}"
    if not isinstance(raw, (str, int)):
        raise _fail(index, "id", "must be a string")
    text = str(raw).strip()
    return text or f"q{index + 1}"


def _normalize_choices(raw: Any, index: int, qid: str) -> Tuple[str, ...]:
    if not isinstance(raw, list):
        raise _fail(index, "choices", "must be a list", qid)
    out: List[str] = []
    for position, item in enumerate(raw):
        if isinstance(item, Mapping):
            text = str(item.get("text", "")).strip()
        elif isinstance(item, (str, int, float)) and not isinstance(
            item, bool
        ):
            text = str(item).strip()
        else:
            text = ""
        if not text:
            raise _fail(
                index, f"choices[{position}]", "choice text is empty", qid
            )
        out.append(text)
    if len(out) < 2:
        raise _fail(index, "choices", "needs at least two choices", qid)
    return tuple(out)


def _build_mcq(
    payload: Mapping[str, Any], index: int, qid: str, prompt: str
) -> McqQuestion:
    choices = _normalize_choices(payload.get("choices"), index, qid)
    raw_index = _first_present(payload, "correctIndex", "correct_index")
    if not isinstance(raw_index, int) or isinstance(raw_index, bool):
        raise _fail(index, "correctIndex", "must be an integer", qid)
    if not 0 <= raw_index < len(choices):
        raise _fail(
            index,
            "correctIndex",
            f"{raw_index} is out of range for {len(choices)} choices",
            qid,
        )
    return McqQuestion(
        id=qid,
        prompt=prompt,
        choices=choices,
        correct_index=raw_index,
        explanation=_explanation(payload),
    )


def _build_text(
    payload: Mapping[str, Any],
    index: int,
    qid: str,
    prompt: str,
    kind: QuestionType,
) -> TextQuestion:
    answer = _require_text(
        payload, ("correctAnswer", "correct_answer", "answer"), index, qid
    )
    raw_alternates = _first_present(payload, "acceptedAnswers", "alternates")
    alternates: List[str] = []
    if raw_alternates is not None:
        if not isinstance(raw_alternates, list):
            raise _fail(index, "acceptedAnswers", "must be a list", qid)
        for item in raw_alternates:
            if not isinstance(item, (str, int, float)) or isinstance(
                item, bool
            ):
                continue
            text = str(item).strip()
            if text and text not in alternates:
                alternates.append(text)
    return TextQuestion(
        id=qid,
        prompt=prompt,
        correct_answer=answer,
        kind=kind,
        accepted_answers=tuple(alternates),
        explanation=_explanation(payload),
    )


def _build_matching(
    payload: Mapping[str, Any], index: int, qid: str, prompt: str
) -> MatchingQuestion:
    raw_pairs = payload.get("pairs")
    if not isinstance(raw_pairs, list) or not raw_pairs:
        raise _fail(index, "pairs", "must be a non-empty list", qid)
    pairs: List[MatchPair] = []
    seen_rights: Dict[str, int] = {}
    for position, item in enumerate(raw_pairs):
        where = f"pairs[{position}]"
        if not isinstance(item, Mapping):
            raise _fail(index, where, "must be an object", qid)
        left = str(item.get("left") or "").strip()
        right = str(item.get("right") or "").strip()
        if not left:
            raise _fail(index, f"{where}.left", "must be non-empty", qid)
        if not right:
            raise _fail(index, f"{where}.right", "must be non-empty", qid)
        key = right.casefold()
        if key in seen_rights:
            raise _fail(
                index,
                f"{where}.right",
                f"duplicates pairs[{seen_rights[key]}].right",
                qid,
            )
        seen_rights[key] = position
        pairs.append(MatchPair(left=left, right=right))
    return MatchingQuestion(
        id=qid,
        prompt=prompt,
        pairs=tuple(pairs),
        explanation=_explanation(payload),
    )


def _explanation(payload: Mapping[str, Any]) -> str:
    value = payload.get("explanation")
    return str(value).strip() if value is not None else ""


def validate_question(payload: Any, index: int = 0) -> Question:
    """Validate one raw question mapping.

    Raises :class:`QuestionValidationError` naming the offending field. Extra
    keys are ignored.
    """
    if not isinstance(payload, Mapping):
        raise _fail(index, "question", "must be an object")
    qid = _question_id(payload, index)
    raw_type = payload.get("type")
    kind = QuestionType.parse(raw_type)
    if kind is None:
        raise _fail(
            index, "type", f"unsupported question type {raw_type!r}", qid
        )
    prompt = _require_text(payload, ("prompt", "question"), index, qid)
    if kind is QuestionType.MCQ:
        return _build_mcq(payload, index, qid, prompt)
    if kind is QuestionType.MATCHING:
        return _build_matching(payload, index, qid, prompt)
    return _build_text(payload, index, qid, prompt, kind)


def extract_question_list(payload: Any) -> Optional[List[Any]]:
    """Return the raw question list from a generator payload, if any.

    Accepts a bare list, ``{"questions": [...]}``, or the same nested under
    ``"quiz"``.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, Mapping):
        return None
    quiz = payload.get("quiz")
    if isinstance(quiz, (Mapping, list)):
        return extract_question_list(quiz)
    questions = payload.get("questions")
    return questions if isinstance(questions, list) else None


def validate_quiz(
    payload: Any, requested_count: Optional[int] = None
) -> ValidationReport:
    """Validate every question, keeping the ones that pass.

    The resulting quiz is ``None`` when the payload has no question list or
    when no question survives; otherwise it holds only valid questions, in
    their original order, with duplicate ids dropped after the first.
    """
    raw_questions = extract_question_list(payload)
    if raw_questions is None:
        issue = _fail(-1, "questions", "payload has no question list")
        return ValidationReport(
            quiz=None,
            issues=(issue,),
            delivered=0,
            requested=requested_count,
        )

    accepted: List[Question] = []
    issues: List[QuestionValidationError] = []
    seen_ids: set[str] = set()
    for index, raw in enumerate(raw_questions):
        try:
            question = validate_question(raw, index)
        except QuestionValidationError as exc:
            issues.append(exc)
            continue
        if question.id in seen_ids:
            issues.append(
                _fail(index, "id", "duplicate question id", question.id)
            )
            continue
        seen_ids.add(question.id)
        accepted.append(question)

    quiz = (
        Quiz(questions=tuple(accepted), requested_count=requested_count)
        if accepted
        else None
    )
    return ValidationReport(
        quiz=quiz,
        issues=tuple(issues),
        delivered=len(raw_questions),
        requested=requested_count,
    )
