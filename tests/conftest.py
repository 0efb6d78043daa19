from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from fixtures import FakeChatClient  # noqa: E402
from quizforge.quiz.models import (  # noqa: E402
    MatchingQuestion,
    MatchPair,
    McqQuestion,
    QuestionType,
    Quiz,
    TextQuestion,
)


@pytest.fixture
def fake_client() -> FakeChatClient:
    """A chat client double that records calls and replays queued replies."""

    return FakeChatClient()


@pytest.fixture
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the workspace at a per-test directory."""

    home = tmp_path / "data-home"
    monkeypatch.setenv("QUIZFORGE_DATA_HOME", str(home))
    monkeypatch.delenv("QUIZFORGE_CONFIG", raising=False)
    return home


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[..., Path]:
    """Write a source document under ``tmp_path/sources``."""

    def _write(name: str, content: str = "Photosynthesis makes sugar.") -> Path:
        path = tmp_path / "sources" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_quiz() -> Quiz:
    """One question of every kind, in a fixed order."""

    return Quiz(
        questions=(
            McqQuestion(
                id="q1",
                prompt="Which organelle runs photosynthesis?",
                choices=("Mitochondrion", "Chloroplast", "Nucleus"),
                correct_index=1,
                explanation="Chloroplasts hold chlorophyll.",
            ),
            TextQuestion(
                id="q2",
                prompt="Plants release ____ as a by-product.",
                correct_answer="Oxygen",
                accepted_answers=("O2",),
            ),
            TextQuestion(
                id="q3",
                prompt="Name the green pigment.",
                correct_answer="Chlorophyll",
                kind=QuestionType.IDENTIFICATION,
            ),
            MatchingQuestion(
                id="q4",
                prompt="Match each input to its source.",
                pairs=(
                    MatchPair("Water", "Roots"),
                    MatchPair("Carbon dioxide", "Stomata"),
                    MatchPair("Light", "Sun"),
                ),
            ),
        ),
        requested_count=4,
    )
