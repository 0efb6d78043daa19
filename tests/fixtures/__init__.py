"""Shared testing fixtures for the quizforge test suite."""

from .openai import FakeChatClient, quiz_payload  # noqa: F401

__all__ = ["FakeChatClient", "quiz_payload"]
