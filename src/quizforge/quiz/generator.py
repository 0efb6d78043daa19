"""OpenAI-backed quiz generator client.

The model is treated as an opaque, unreliable service: one chat completion
is requested per generation and whatever text comes back is resolved through
:func:`quizforge.quiz.contract.resolve_generator_output`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..core.files import (
    DocumentConversionError,
    DocumentConverter,
    is_plain_text,
    markitdown_converter,
    read_source_excerpt,
)
from .contract import (
    Difficulty,
    GenerationRequest,
    GenerationResult,
    QuizStrategy,
    SourceDocument,
    resolve_generator_output,
    transport_failure,
)

__all__ = [
    "QuizGenerator",
    "OpenAIQuizGenerator",
    "build_prompts",
    "generate_quiz",
]

DEFAULT_MODEL = "gpt-4o-mini"

_SYSTEM_PROMPT = (
    "You write accurate, unambiguous study quizzes from source material. "
    "Reply with JSON only."
)

_SCHEMA_LINES = {
    QuizStrategy.MCQ: (
        '{"id": str, "type": "mcq", "prompt": str, "choices": [str, ...], '
        '"correctIndex": int, "explanation": str}'
    ),
    QuizStrategy.FILL_BLANK: (
        '{"id": str, "type": "fill_blank", "prompt": str (use ____ for the '
        'blank), "correctAnswer": str, "acceptedAnswers": [str], '
        '"explanation": str}'
    ),
    QuizStrategy.IDENTIFICATION: (
        '{"id": str, "type": "identification", "prompt": str, '
        '"correctAnswer": str, "acceptedAnswers": [str], "explanation": str}'
    ),
    QuizStrategy.MATCHING: (
        '{"id": str, "type": "matching", "prompt": str, '
        '"pairs": [{"left": str, "right": str}, ...], "explanation": str}'
    ),
}

_DIFFICULTY_HINTS = {
    Difficulty.BALANCED: "Mix easy, medium and hard questions.",
    Difficulty.EASY: "Keep questions introductory: recall of key facts.",
    Difficulty.MEDIUM: "Target intermediate understanding and application.",
    Difficulty.HARD: "Target advanced analysis; use plausible distractors.",
}


class QuizGenerator(Protocol):
    def generate(self, request: GenerationRequest) -> GenerationResult:
        ...


def _strategy_instructions(strategy: QuizStrategy) -> Tuple[str, List[str]]:
    if strategy is QuizStrategy.MIXED:
        schemas = [
            _SCHEMA_LINES[kind]
            for kind in (
                QuizStrategy.MCQ,
                QuizStrategy.FILL_BLANK,
                QuizStrategy.IDENTIFICATION,
                QuizStrategy.MATCHING,
            )
        ]
        return (
            "Use a mix of question types; choose the best type per question "
            "and set each question's concrete type.",
            schemas,
        )
    return (
        f"Every question must have type \"{strategy.value}\".",
        [_SCHEMA_LINES[strategy]],
    )


def _source_block(
    documents: Tuple[SourceDocument, ...],
    max_chars: int,
    converter: Optional[DocumentConverter] = None,
) -> Tuple[str, List[str]]:
    readable = [doc for doc in documents if doc.path is not None]
    if not readable:
        return "", []
    if converter is None and not all(
        is_plain_text(doc.path) for doc in readable  # type: ignore[arg-type]
    ):
        converter = markitdown_converter()
    share = max(1, max_chars // len(readable))
    parts: List[str] = []
    skipped: List[str] = []
    for doc in readable:
        try:
            text = read_source_excerpt(
                doc.path, share, converter=converter  # type: ignore[arg-type]
            ).strip()
        except (OSError, DocumentConversionError):
            skipped.append(doc.name)
            continue
        if not text:
            skipped.append(doc.name)
            continue
        parts.append(f"Source: {doc.name}\n{text}")
    return "\n\n".join(parts), skipped


def build_prompts(
    request: GenerationRequest,
    *,
    max_source_chars: int = 24000,
    converter: Optional[DocumentConverter] = None,
) -> Tuple[str, str, List[str]]:
    """Return ``(system_prompt, user_prompt, skipped_files)``.

    Non-text sources (PDF, DOCX, PPTX, ...) are converted to Markdown with
    ``converter``, markitdown by default.
    """
    type_rule, schemas = _strategy_instructions(request.strategy)
    sources, skipped = _source_block(
        request.documents, max_source_chars, converter
    )
    schema_block = "\n".join(schemas)
    user_prompt = (
        f"Create exactly {request.question_count} quiz questions covering "
        "the source material below.\n"
        f"{type_rule}\n"
        f"{_DIFFICULTY_HINTS[request.difficulty]}\n"
        "Question ids must be unique. Multiple-choice questions need at "
        "least two choices and a zero-based correctIndex. Matching pairs "
        "need distinct right-hand values. Prompts may use Markdown, "
        "fenced code and LaTeX.\n\n"
        'Output a single JSON object: {"questions": [...]} where each '
        "question follows one of these shapes:\n"
        f"{schema_block}\n\n"
        f"{sources}"
    ).rstrip()
    return _SYSTEM_PROMPT, user_prompt, skipped


class OpenAIQuizGenerator:
    """Generate quizzes with an OpenAI chat-completions client.

    ``client`` is anything exposing ``chat.completions.create`` (the
    ``openai.OpenAI`` client or a test double).
    """

    def __init__(
        self,
        client: Any,
        *,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.2,
        max_tokens: int = 4000,
        max_source_chars: int = 24000,
        converter: Optional[DocumentConverter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.converter = converter
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_source_chars = max_source_chars
        self.logger = logger or logging.getLogger(__name__)

    def _debug_payload(
        self, request: GenerationRequest, skipped: List[str]
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "request": request.describe(),
        }
        if skipped:
            payload["unreadableFiles"] = list(skipped)
        return payload

    def generate(self, request: GenerationRequest) -> GenerationResult:
        system_prompt, user_prompt, skipped = build_prompts(
            request,
            max_source_chars=self.max_source_chars,
            converter=self.converter,
        )
        debug = self._debug_payload(request, skipped)
        self.logger.info(
            "Requesting quiz generation",
            extra={"event": "generation.request", **request.describe()},
        )
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            content = response.choices[0].message.content or ""
        except Exception as exc:
            self.logger.warning(
                "Generation transport failure: %s",
                exc,
                extra={"event": "generation.transport_error"},
            )
            return transport_failure(exc, request=request, debug=debug)

        finish_reason = getattr(response.choices[0], "finish_reason", None)
        if finish_reason:
            debug["finishReason"] = finish_reason
        result = resolve_generator_output(
            content, request=request, debug=debug
        )
        self._log_result(result)
        return result

    def _log_result(self, result: GenerationResult) -> None:
        if result.ok and result.quiz is not None:
            self.logger.info(
                "Generated %d question(s)",
                len(result.quiz),
                extra={
                    "event": "generation.success",
                    "mismatch": result.quiz.count_mismatch,
                },
            )
            return
        self.logger.warning(
            "Generation rejected: %s",
            result.error,
            extra={
                "event": "generation.rejected",
                "details": result.details,
                "raw_chars": len(result.raw),
            },
        )


def generate_quiz(
    request: GenerationRequest,
    generator: QuizGenerator,
    *,
    logger: Optional[logging.Logger] = None,
) -> GenerationResult:
    """Dispatch ``request`` and guarantee a :class:`GenerationResult`.

    Generators are expected to resolve their own failures; anything that
    still escapes is reported as a transport failure rather than raised.
    """
    log = logger or logging.getLogger(__name__)
    try:
        return generator.generate(request)
    except Exception as exc:
        log.exception(
            "Generator raised unexpectedly",
            extra={"event": "generation.crash"},
        )
        return transport_failure(exc, request=request)
