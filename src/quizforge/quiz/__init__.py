from .models import (
    MatchPair,
    MatchingQuestion,
    McqQuestion,
    Question,
    QuestionType,
    Quiz,
    TextQuestion,
)
from .validation import (
    QuestionValidationError,
    ValidationReport,
    validate_question,
    validate_quiz,
)
from .contract import (
    MAX_FILE_BYTES,
    MAX_FILES,
    MAX_QUESTION_COUNT,
    MIN_QUESTION_COUNT,
    Difficulty,
    GenerationRequest,
    GenerationResult,
    InputConstraintError,
    QuizStrategy,
    SourceDocument,
    clamp_question_count,
    resolve_generator_output,
    transport_failure,
)
from .scoring import QuestionScore, ScoreResult, grade_band, score
from .session import (
    QuizSession,
    SessionPhase,
    add_documents,
    apply_generation_result,
    begin_generation,
    finish,
    next_question,
    previous_question,
    record_answer,
    record_match,
    restart,
)
from .generator import OpenAIQuizGenerator, QuizGenerator, generate_quiz
from .runner import parse_session_command, run_quiz_session

__all__ = [
    "MatchPair",
    "MatchingQuestion",
    "McqQuestion",
    "Question",
    "QuestionType",
    "Quiz",
    "TextQuestion",
    "QuestionValidationError",
    "ValidationReport",
    "validate_question",
    "validate_quiz",
    "MAX_FILE_BYTES",
    "MAX_FILES",
    "MAX_QUESTION_COUNT",
    "MIN_QUESTION_COUNT",
    "Difficulty",
    "GenerationRequest",
    "GenerationResult",
    "InputConstraintError",
    "QuizStrategy",
    "SourceDocument",
    "clamp_question_count",
    "resolve_generator_output",
    "transport_failure",
    "QuestionScore",
    "ScoreResult",
    "grade_band",
    "score",
    "QuizSession",
    "SessionPhase",
    "add_documents",
    "apply_generation_result",
    "begin_generation",
    "finish",
    "next_question",
    "previous_question",
    "record_answer",
    "record_match",
    "restart",
    "OpenAIQuizGenerator",
    "QuizGenerator",
    "generate_quiz",
    "parse_session_command",
    "run_quiz_session",
]
