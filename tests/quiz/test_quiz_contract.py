from __future__ import annotations

import json

import pytest

from quizforge.quiz.contract import (
    MAX_FILE_BYTES,
    Difficulty,
    GenerationRequest,
    GenerationResult,
    InputConstraintError,
    QuizStrategy,
    SourceDocument,
    check_documents,
    clamp_question_count,
    resolve_generator_output,
    transport_failure,
)


def _docs(count: int, size: int = 10) -> list[SourceDocument]:
    return [SourceDocument(name=f"doc{i}.txt", size=size) for i in range(count)]


MCQ = {
    "id": "m1",
    "type": "mcq",
    "prompt": "Pick B",
    "choices": ["A", "B"],
    "correctIndex": 1,
}


def test_check_documents_allows_ten_files() -> None:
    combined = check_documents(_docs(4), _docs(6))

    assert len(combined) == 10


def test_check_documents_rejects_eleventh_file() -> None:
    current = _docs(10)

    with pytest.raises(InputConstraintError, match="Maximum 10 files allowed."):
        check_documents(current, _docs(1))

    assert len(current) == 10


def test_check_documents_rejects_oversized_file() -> None:
    at_limit = SourceDocument(name="ok.pdf", size=MAX_FILE_BYTES)
    too_big = SourceDocument(name="huge.pdf", size=MAX_FILE_BYTES + 1)

    assert check_documents((), [at_limit]) == (at_limit,)
    with pytest.raises(InputConstraintError, match="huge.pdf exceeds 20MB."):
        check_documents([at_limit], [too_big])


def test_source_document_from_path(tmp_path) -> None:
    path = tmp_path / "notes.md"
    path.write_text("hello", encoding="utf-8")

    doc = SourceDocument.from_path(path)

    assert doc.name == "notes.md"
    assert doc.size == 5
    assert doc.path == path


@pytest.mark.parametrize(
    "raw, expected",
    [
        (0, 1),
        (-4, 1),
        (150, 100),
        (100, 100),
        (7, 7),
        ("12", 12),
        (" 3 ", 3),
        ("2.9", 2),
        (3.9, 3),
        ("", 10),
        (None, 10),
        ("many", 10),
        (True, 10),
    ],
)
def test_clamp_question_count(raw, expected) -> None:
    assert clamp_question_count(raw) == expected


def test_generation_request_build_clamps_and_normalizes() -> None:
    request = GenerationRequest.build(
        _docs(2),
        question_count=500,
        strategy="Mixed",
        difficulty="Balanced",
    )

    assert request.question_count == 100
    assert request.strategy is QuizStrategy.MIXED
    assert request.difficulty is Difficulty.BALANCED
    assert request.describe() == {
        "questionCount": 100,
        "quizType": "mixed",
        "difficulty": "",
        "files": ["doc0.txt", "doc1.txt"],
    }


def test_generation_request_build_rejects_bad_input() -> None:
    with pytest.raises(InputConstraintError, match="at least one"):
        GenerationRequest.build([])
    with pytest.raises(InputConstraintError, match="Unknown quiz type"):
        GenerationRequest.build(_docs(1), strategy="essay")
    with pytest.raises(InputConstraintError, match="Unknown difficulty"):
        GenerationRequest.build(_docs(1), difficulty="brutal")
    with pytest.raises(InputConstraintError, match="Maximum 10"):
        GenerationRequest.build(_docs(11))


def test_difficulty_label() -> None:
    assert Difficulty.from_value(None).label == "balanced"
    assert Difficulty.from_value("HARD") is Difficulty.HARD


def test_resolve_prose_keeps_raw_text() -> None:
    result = resolve_generator_output(
        "not json", debug={"model": "test-model"}
    )

    assert result.ok is False
    assert result.quiz is None
    assert result.raw == "not json"
    assert result.debug == {"model": "test-model"}
    assert "unstructured" in result.error


def test_resolve_empty_response() -> None:
    result = resolve_generator_output("   ")

    assert not result.ok
    assert result.error == "Generator returned an empty response."


def test_resolve_fenced_json() -> None:
    text = "Here is your quiz:\n```json\n" + json.dumps([MCQ]) + "\n```\nEnjoy"

    result = resolve_generator_output(text)

    assert result.ok
    assert result.quiz.questions[0].id == "m1"
    assert result.raw == text


def test_resolve_json_embedded_in_prose() -> None:
    text = "Sure! " + json.dumps({"questions": [MCQ]}) + " Good luck."

    result = resolve_generator_output(text)

    assert result.ok
    assert len(result.quiz) == 1


def test_resolve_partial_quiz_reports_dropped_questions() -> None:
    request = GenerationRequest.build(_docs(1), question_count=3)
    payload = {
        "questions": [
            MCQ,
            {**MCQ, "id": "m2", "correctIndex": 5},
            {**MCQ, "id": "m3"},
        ]
    }

    result = resolve_generator_output(json.dumps(payload), request=request)

    assert result.ok
    assert [q.id for q in result.quiz.questions] == ["m1", "m3"]
    assert result.quiz.requested_count == 3
    assert result.quiz.count_mismatch == -1
    assert "2 of 3 question(s) passed validation." in result.details
    assert "question 2 (id=m2): correctIndex" in result.details


def test_resolve_schema_violation_is_failure_with_details() -> None:
    payload = {"questions": [{**MCQ, "choices": ["only one"]}]}

    result = resolve_generator_output(json.dumps(payload))

    assert not result.ok
    assert result.error == "Generator output failed quiz validation."
    assert "needs at least two choices" in result.details
    assert result.raw == json.dumps(payload)


def test_resolve_honours_failure_envelope() -> None:
    envelope = {
        "ok": False,
        "error": "Quota exceeded",
        "raw": "upstream said no",
        "debug": {"status": 429},
        "details": "retry later",
    }

    result = resolve_generator_output(
        json.dumps(envelope), debug={"model": "m"}
    )

    assert not result.ok
    assert result.error == "Quota exceeded"
    assert result.raw == "upstream said no"
    assert result.debug == {"model": "m", "status": 429}
    assert result.details == "retry later"


def test_resolve_success_envelope_is_still_validated() -> None:
    envelope = {"ok": True, "quiz": {"questions": [{"type": "mcq"}]}}

    result = resolve_generator_output(json.dumps(envelope))

    assert not result.ok
    assert "prompt" in result.details


def test_generation_result_to_dict_and_back(sample_quiz) -> None:
    result = GenerationResult.success(
        sample_quiz, raw="{}", debug={"model": "m"}
    )

    payload = json.loads(json.dumps(result.to_dict()))
    restored = GenerationResult.from_dict(payload)

    assert payload["ok"] is True
    assert "error" not in payload
    assert restored.ok
    assert restored.quiz.questions == sample_quiz.questions
    assert restored.debug == {"model": "m"}


def test_generation_result_from_dict_wraps_scalar_debug() -> None:
    restored = GenerationResult.from_dict(
        {"ok": False, "debug": "trace-id-1", "raw": {"partial": True}}
    )

    assert restored.error == "Generation failed"
    assert restored.debug == {"value": "trace-id-1"}
    assert restored.raw == '{"partial": true}'
    assert restored.has_diagnostics


def test_transport_failure_describes_exception() -> None:
    request = GenerationRequest.build(_docs(1), question_count=5)

    result = transport_failure(
        TimeoutError("timed out"), request=request, debug={"model": "m"}
    )

    assert not result.ok
    assert result.error == "Generation request failed: timed out"
    assert result.debug["exception"] == "TimeoutError"
    assert result.debug["message"] == "timed out"
    assert result.debug["request"]["questionCount"] == 5
    assert result.debug["model"] == "m"


def test_transport_failure_without_message() -> None:
    result = transport_failure(ConnectionError())

    assert result.error == "Generation request failed."
