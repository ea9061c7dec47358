"""
Analysis session: the controller that owns all mutable application state.

An ``AnalysisSession`` holds the active ``AnalysisRecord``, the current
``ResearchResult``, the chat router and the background quiz slot. A new
analysis replaces the record wholesale only after every step succeeded
(strategy → identity guard → history save); on failure the previous state
is kept and the caller gets the exception.

The quiz for a record is requested once, in the background, as soon as the
record is committed. Its outcome sits in a single-resolution future so a
later ``quiz()`` call sees the same result instead of re-generating. Loading
another record replaces the slot; results of the old one are ignored.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import anthropic

from core import history, youtube
from core.analyzer import Analyzer
from core.chat import ChatContext, ConversationRouter
from core.errors import (
    ConfigurationError,
    EmptyResponseError,
    InputValidationError,
    MalformedResponseError,
    MismatchError,
    NetworkError,
    NotFoundError,
)
from core.export import export_filename, to_markdown
from core.guard import verify_identity
from core.models import AnalysisRecord, ChatMessage, HistoryItem, Quiz, ResearchResult

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

_SIZE_SIGNALS = ("too large", "413", "request entity")


def describe_error(exc: BaseException) -> str:
    """Turn any analysis failure into the single message shown to the user."""
    if isinstance(exc, (InputValidationError, MismatchError, NotFoundError, ConfigurationError)):
        return str(exc)
    if isinstance(exc, NetworkError):
        return f"{exc} {exc.hint}".strip()
    if isinstance(exc, MalformedResponseError):
        return "The AI returned a response that could not be read. Please try again."
    if isinstance(exc, EmptyResponseError):
        return "The AI returned an empty response. Please try again."

    message = str(exc)
    if any(signal in message.lower() for signal in _SIZE_SIGNALS):
        return "Failed to process the file. It might be too large; try a smaller file."
    if isinstance(exc, anthropic.APIError):
        return f"The AI service reported an error: {message}"
    return message or "An unexpected error occurred."


@dataclass
class QuizSlot:
    """Background quiz request bound to one committed record."""

    generation: int
    future: Future


class AnalysisSession:
    """Single-owner controller for the active analysis and everything derived from it."""

    def __init__(
        self,
        settings: Settings,
        analyzer: Optional[Analyzer] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.settings = settings
        self.analyzer = analyzer or Analyzer(settings)
        self.record: Optional[AnalysisRecord] = None
        self.research: Optional[ResearchResult] = None
        self.router = ConversationRouter(self.analyzer)
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="quiz")
        self._generation = 0
        self._quiz: Optional[QuizSlot] = None
        self._lock = threading.Lock()

    # ── Analysis entry points ──────────────────────────────────────────────

    def analyze(self, kind: str, **inputs) -> AnalysisRecord:
        """Dispatch to ``analyze_<kind>``; *kind* is url, transcript, media or pdf."""
        handler = {
            "url": self.analyze_url,
            "transcript": self.analyze_transcript,
            "media": self.analyze_media,
            "pdf": self.analyze_pdf,
        }.get(kind)
        if handler is None:
            raise InputValidationError(f"Unknown analysis kind: {kind!r}")
        return handler(**inputs)

    def analyze_url(
        self, url: str, content_type_hint: str | None = None, fetch_transcript: bool = True
    ) -> AnalysisRecord:
        """Analyze a YouTube URL, preferring real captions when *fetch_transcript*."""
        requested_id = youtube.validate_youtube_url(url)
        if fetch_transcript:
            record = self.analyzer.analyze_url_with_transcript(url, content_type_hint)
        else:
            record = self.analyzer.analyze_url(url, content_type_hint)
        verify_identity(requested_id, record)
        if not record.video_id:
            record = record.model_copy(update={"video_id": requested_id})
        return self._commit(record, thumbnail=youtube.thumbnail_url(requested_id))

    def analyze_transcript(
        self, text: str, context: str | None = None, content_type_hint: str | None = None
    ) -> AnalysisRecord:
        record = self.analyzer.analyze_transcript(text, context, content_type_hint)
        return self._commit(record, thumbnail=youtube.thumbnail_url(record.video_id))

    def analyze_media(
        self,
        data: bytes,
        mime_type: str,
        frames: list[bytes] | None = None,
        content_type_hint: str | None = None,
    ) -> AnalysisRecord:
        record = self.analyzer.analyze_media(data, mime_type, frames, content_type_hint)
        return self._commit(record)

    def analyze_pdf(
        self, data: bytes, content_type_hint: str | None = None, filename: str = "document.pdf"
    ) -> AnalysisRecord:
        record = self.analyzer.analyze_pdf(data, content_type_hint, filename)
        return self._commit(record)

    def load_from_history(self, item_id: str) -> Optional[HistoryItem]:
        """Make a stored analysis active again without re-saving it."""
        item = history.get_by_id(item_id)
        if item is not None:
            self._activate(item.data)
        return item

    def _commit(self, record: AnalysisRecord, thumbnail: Optional[str] = None) -> AnalysisRecord:
        history.save(record, thumbnail=thumbnail, limit=self.settings.history_limit)
        self._activate(record)
        logger.info("Committed analysis title=%r type=%s", record.title, record.video_type)
        return record

    def _activate(self, record: AnalysisRecord) -> None:
        with self._lock:
            self.record = record
            self.research = None
            self.router = ConversationRouter(self.analyzer)
            self.router.attach_record(record)
            self._generation += 1
            self._start_quiz(record, self._generation)

    # ── Quiz ───────────────────────────────────────────────────────────────

    def _start_quiz(self, record: AnalysisRecord, generation: int) -> None:
        if self._quiz is not None:
            self._quiz.future.cancel()
        logger.info("Pre-fetching quiz in background (generation=%d)", generation)
        future = self._executor.submit(self.analyzer.generate_quiz, record)
        future.add_done_callback(lambda f: self._log_quiz_outcome(f, generation))
        self._quiz = QuizSlot(generation=generation, future=future)

    def _log_quiz_outcome(self, future: Future, generation: int) -> None:
        if future.cancelled():
            return
        if generation != self._generation:
            logger.info("Ignoring stale quiz result (generation=%d)", generation)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background quiz generation failed: %s", exc)

    def quiz(self, timeout: Optional[float] = None) -> Quiz:
        """Return the quiz for the active record, waiting for the background request.

        Raises:
            InputValidationError: If there is no active record or the quiz came back empty.
            Whatever the background request raised.
        """
        with self._lock:
            slot = self._quiz
        if slot is None:
            raise InputValidationError("Analyze a video before starting a quiz.")
        quiz = slot.future.result(timeout=timeout)
        if not quiz.questions:
            raise InputValidationError("Could not generate questions from this content.")
        return quiz

    def regenerate_quiz(self) -> None:
        """Start a fresh quiz request for the active record."""
        with self._lock:
            if self.record is None:
                raise InputValidationError("Analyze a video before starting a quiz.")
            self._start_quiz(self.record, self._generation)

    # ── Research & chat ────────────────────────────────────────────────────

    def deep_research(self, topic: str) -> ResearchResult:
        if self.record is None:
            raise InputValidationError("Analyze a video before researching its themes.")
        research = self.analyzer.deep_research(topic)
        with self._lock:
            self.research = research
            self.router.attach_research(research)
        return research

    def ask(self, question: str, context: ChatContext | str | None = None) -> ChatMessage:
        if self.record is None:
            raise InputValidationError("Analyze a video before asking questions.")
        return self.router.ask(question, context)

    # ── Export ─────────────────────────────────────────────────────────────

    def export(self) -> tuple[str, str]:
        """Return ``(filename, markdown)`` for the active record."""
        if self.record is None:
            raise InputValidationError("Nothing to export yet.")
        return export_filename(self.record.title), to_markdown(self.record)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
