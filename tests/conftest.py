"""Shared fixtures: settings, a scripted model, a temp history DB."""

from __future__ import annotations

import json
from concurrent.futures import Future

import pytest

from config.settings import Settings
from core import history as hist
from core.model_client import GenerativeModel, ModelRequest
from core.transcriber import SpokenSegment, Transcription


class FakeModel:
    """Scripted stand-in for GenerativeModel; records every request."""

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.requests: list[ModelRequest] = []

    def supports_media(self, mime_type: str) -> bool:
        return mime_type in GenerativeModel.IMAGE_TYPES or mime_type in GenerativeModel.DOCUMENT_TYPES

    def generate(self, request: ModelRequest) -> str:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeTranscriber:
    """Stand-in for SpeechTranscriber returning fixed ``(start_seconds, text)`` segments."""

    def __init__(self, *segments: tuple[float, str], error: Exception | None = None) -> None:
        self.segments = segments
        self.error = error
        self.calls: list[bytes] = []

    def transcribe(self, data: bytes) -> Transcription:
        self.calls.append(data)
        if self.error is not None:
            raise self.error
        return Transcription(
            segments=[SpokenSegment(start, start + 5, text) for start, text in self.segments],
            language="en",
        )


class InlineExecutor:
    """Runs submitted work immediately so background quiz results are deterministic."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        pass


def quiz_json(count: int = 2) -> str:
    return json.dumps({"questions": [
        {"question": f"Q{i}", "options": ["a", "b", "c", "d"], "correctAnswer": 0, "explanation": ""}
        for i in range(count)
    ]})


def analysis_json(**overrides) -> str:
    data = {
        "videoId": "dQw4w9WgXcQ",
        "title": "Never Gonna Give You Up",
        "summary": "A song about commitment.",
        "videoType": "Entertainment",
        "timestamps": [{"time": "00:43", "description": "Chorus"}],
        "themes": [
            {"topic": "Loyalty", "details": "Never giving up", "emoji": "🤝"},
            {"topic": "Dance", "details": "Iconic moves", "emoji": "💃"},
        ],
        "quotes": [],
        "speakers": [{"name": "Rick Astley", "role": "Singer"}],
        "subTopics": [],
        "sentiment": {
            "positivePercent": 80, "negativePercent": 5, "neutralPercent": 15, "summary": "Beloved",
        },
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def settings() -> Settings:
    return Settings(anthropic_api_key="test-key", youtube_api_key="")


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point DB_PATH to a fresh temp file for each test."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "test_history.db"))
    hist.init_db()
    yield tmp_path / "test_history.db"
