"""Request/response contract between the quiz front end and the generator.

Input constraints (file count, file size, question count) are enforced here,
before any request leaves the process. Whatever comes back from the generator
is resolved into a :class:`GenerationResult`; failures always keep the
received text and any structured debug payload on the diagnostic channel
(``raw``, ``debug``, ``details``).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .models import Quiz
from .validation import ValidationReport, validate_quiz

__all__ = [
    "MAX_FILES",
    "MAX_FILE_BYTES",
    "MIN_QUESTION_COUNT",
    "MAX_QUESTION_COUNT",
    "DEFAULT_QUESTION_COUNT",
    "InputConstraintError",
    "SourceDocument",
    "QuizStrategy",
    "Difficulty",
    "GenerationRequest",
    "GenerationResult",
    "check_documents",
    "clamp_question_count",
    "resolve_generator_output",
    "transport_failure",
]

MAX_FILES = 10
MAX_FILE_BYTES = 20 * 1024 * 1024
MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 100
DEFAULT_QUESTION_COUNT = 10

_FENCE_RE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL | re.IGNORECASE)


class InputConstraintError(ValueError):
    """Raised when request input is rejected before dispatch."""


class QuizStrategy(Enum):
    """Requested question-type mix."""

    MCQ = "mcq"
    FILL_BLANK = "fill_blank"
    IDENTIFICATION = "identification"
    MATCHING = "matching"
    MIXED = "mixed"

    @classmethod
    def from_value(cls, value: "str | QuizStrategy") -> "QuizStrategy":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise InputConstraintError(
            f"Unknown quiz type '{value}'. Expected one of: {expected}."
        )


class Difficulty(Enum):
    """Difficulty tier; ``BALANCED`` leaves the mix to the generator."""

    BALANCED = ""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def from_value(
        cls, value: "str | Difficulty | None"
    ) -> "Difficulty":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == "balanced":
            return cls.BALANCED
        for member in cls:
            if member.value == normalized:
                return member
        raise InputConstraintError(
            f"Unknown difficulty '{value}'. Expected one of: "
            "balanced, easy, medium, hard."
        )

    @property
    def label(self) -> str:
        return self.value or "balanced"


@dataclass(frozen=True)
class SourceDocument:
    """A document selected as quiz source material."""

    name: str
    size: int
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Path) -> "SourceDocument":
        resolved = Path(path)
        return cls(
            name=resolved.name, size=resolved.stat().st_size, path=resolved
        )

    @property
    def size_mib(self) -> float:
        return self.size / (1024 * 1024)


def check_documents(
    current: Iterable[SourceDocument],
    incoming: Iterable[SourceDocument],
) -> Tuple[SourceDocument, ...]:
    """Return ``current + incoming`` or raise when a limit is exceeded.

    Neither input is modified, so a rejected batch leaves the caller's
    selection exactly as it was.
    """
    combined = (*tuple(current), *tuple(incoming))
    if len(combined) > MAX_FILES:
        raise InputConstraintError(f"Maximum {MAX_FILES} files allowed.")
    for document in combined:
        if document.size > MAX_FILE_BYTES:
            limit = MAX_FILE_BYTES // (1024 * 1024)
            raise InputConstraintError(
                f"{document.name} exceeds {limit}MB."
            )
    return combined


def clamp_question_count(value: object) -> int:
    """Coerce ``value`` into ``[MIN_QUESTION_COUNT, MAX_QUESTION_COUNT]``.

    Empty or non-numeric input falls back to ``DEFAULT_QUESTION_COUNT``.
    """
    if isinstance(value, bool):
        count = DEFAULT_QUESTION_COUNT
    elif isinstance(value, int):
        count = value
    elif isinstance(value, float):
        count = int(value)
    else:
        text = str(value or "").strip()
        try:
            count = int(float(text)) if text else DEFAULT_QUESTION_COUNT
        except ValueError:
            count = DEFAULT_QUESTION_COUNT
    return min(MAX_QUESTION_COUNT, max(MIN_QUESTION_COUNT, count))


@dataclass(frozen=True)
class GenerationRequest:
    """Validated input for one generator call."""

    documents: Tuple[SourceDocument, ...]
    question_count: int
    strategy: QuizStrategy
    difficulty: Difficulty = Difficulty.BALANCED

    @classmethod
    def build(
        cls,
        documents: Iterable[SourceDocument],
        *,
        question_count: object = DEFAULT_QUESTION_COUNT,
        strategy: "str | QuizStrategy" = QuizStrategy.MCQ,
        difficulty: "str | Difficulty | None" = Difficulty.BALANCED,
    ) -> "GenerationRequest":
        """Build a request, re-checking every constraint.

        Raises :class:`InputConstraintError` for an empty or oversized
        document set and for unknown strategy/difficulty values. The
        question count is clamped rather than rejected.
        """
        docs = check_documents((), documents)
        if not docs:
            raise InputConstraintError("Select at least one source file.")
        return cls(
            documents=docs,
            question_count=clamp_question_count(question_count),
            strategy=QuizStrategy.from_value(strategy),
            difficulty=Difficulty.from_value(difficulty),
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "questionCount": self.question_count,
            "quizType": self.strategy.value,
            "difficulty": self.difficulty.value,
            "files": [doc.name for doc in self.documents],
        }


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a generation attempt, successful or not."""

    ok: bool
    quiz: Optional[Quiz] = None
    error: Optional[str] = None
    raw: str = ""
    debug: Mapping[str, Any] = field(default_factory=dict)
    details: str = ""

    @classmethod
    def success(
        cls,
        quiz: Quiz,
        *,
        raw: str = "",
        debug: Optional[Mapping[str, Any]] = None,
        details: str = "",
    ) -> "GenerationResult":
        return cls(
            ok=True,
            quiz=quiz,
            raw=raw,
            debug=dict(debug or {}),
            details=details,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        raw: str = "",
        debug: Optional[Mapping[str, Any]] = None,
        details: str = "",
    ) -> "GenerationResult":
        return cls(
            ok=False,
            error=error or "Generation failed",
            raw=raw,
            debug=dict(debug or {}),
            details=details,
        )

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.raw or self.debug or self.details)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": self.ok}
        if self.quiz is not None:
            payload["quiz"] = self.quiz.to_dict()
        if self.error:
            payload["error"] = self.error
        if self.raw:
            payload["raw"] = self.raw
        if self.debug:
            payload["debug"] = dict(self.debug)
        if self.details:
            payload["details"] = self.details
        return payload

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        requested_count: Optional[int] = None,
    ) -> "GenerationResult":
        """Rebuild a result from its wire shape, validating any quiz."""
        raw = _as_text(payload.get("raw"))
        details = _as_text(payload.get("details"))
        debug = payload.get("debug")
        if isinstance(debug, Mapping):
            debug_map = dict(debug)
        else:
            debug_map = {} if debug is None else {"value": debug}
        if not payload.get("ok"):
            return cls.failure(
                _as_text(payload.get("error")) or "Generation failed",
                raw=raw,
                debug=debug_map,
                details=details,
            )
        report = validate_quiz(
            payload.get("quiz"), requested_count=requested_count
        )
        merged_details = _join_details(details, _issue_details(report))
        if report.quiz is None:
            return cls.failure(
                "Generator output failed quiz validation.",
                raw=raw or json.dumps(payload.get("quiz"), default=str),
                debug=debug_map,
                details=merged_details,
            )
        return cls.success(
            report.quiz, raw=raw, debug=debug_map, details=merged_details
        )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _join_details(*parts: str) -> str:
    return "\n".join(part for part in parts if part)


def _issue_details(report: ValidationReport) -> str:
    if not report.issues and report.requested in (None, report.delivered):
        return ""
    return report.describe()


def _candidate_payloads(content: str) -> Iterable[str]:
    fenced = _FENCE_RE.search(content)
    if fenced:
        yield fenced.group(1).strip()
    yield content.strip()
    for opener, closer in (("{", "}"), ("[", "]")):
        start = content.find(opener)
        end = content.rfind(closer)
        if start != -1 and end > start:
            yield content[start : end + 1]


def _parse_json(content: str) -> Tuple[bool, Any]:
    for candidate in _candidate_payloads(content):
        try:
            return True, json.loads(candidate)
        except ValueError:
            continue
    return False, None


def resolve_generator_output(
    raw_text: Optional[str],
    *,
    request: Optional[GenerationRequest] = None,
    debug: Optional[Mapping[str, Any]] = None,
) -> GenerationResult:
    """Turn raw generator text into a :class:`GenerationResult`.

    Prose (nothing parseable as JSON) and schema violations both resolve to
    ``ok=False`` with ``raw`` preserved; schema issues are itemized in
    ``details``. A payload that is already a result envelope (has an ``ok``
    key) is honoured, but any quiz inside it is still validated.
    """
    text = raw_text or ""
    requested = request.question_count if request else None
    debug_map = dict(debug or {})
    if not text.strip():
        return GenerationResult.failure(
            "Generator returned an empty response.", raw=text, debug=debug_map
        )

    parsed_ok, payload = _parse_json(text)
    if not parsed_ok:
        return GenerationResult.failure(
            "Generator returned unstructured output instead of quiz JSON.",
            raw=text,
            debug=debug_map,
        )

    if isinstance(payload, Mapping) and "ok" in payload:
        envelope = dict(payload)
        envelope.setdefault("raw", text)
        inner_debug = envelope.get("debug")
        if isinstance(inner_debug, Mapping):
            envelope["debug"] = {**debug_map, **inner_debug}
        elif debug_map:
            envelope["debug"] = debug_map
        return GenerationResult.from_dict(
            envelope, requested_count=requested
        )

    report = validate_quiz(payload, requested_count=requested)
    details = _issue_details(report)
    if report.quiz is None:
        return GenerationResult.failure(
            "Generator output failed quiz validation.",
            raw=text,
            debug=debug_map,
            details=details or report.describe(),
        )
    return GenerationResult.success(
        report.quiz, raw=text, debug=debug_map, details=details
    )


def transport_failure(
    exc: BaseException,
    *,
    request: Optional[GenerationRequest] = None,
    debug: Optional[Mapping[str, Any]] = None,
) -> GenerationResult:
    """Describe a failed round trip to the generator."""
    payload: Dict[str, Any] = dict(debug or {})
    payload["exception"] = type(exc).__name__
    payload["message"] = str(exc)
    if request is not None:
        payload.setdefault("request", request.describe())
    message = str(exc).strip()
    error = (
        f"Generation request failed: {message}"
        if message
        else "Generation request failed."
    )
    return GenerationResult.failure(error, debug=payload)
