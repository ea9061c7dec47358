"""
Analysis strategies for Video Insight.

One method per input kind, all converging on a sanitized ``AnalysisRecord``:

    analyze_url(url, hint)                      → Grounded (web search) → extractor → sanitizer
    analyze_url_with_transcript(url, hint)      → captions found: Strict; else analyze_url
    analyze_transcript(text, context, hint)     → Grounded when context names a video, else Strict
    analyze_media(data, mime, frames, hint)     → Whisper transcript (audio/video) + frames → Strict
    analyze_pdf(data, hint, filename)           → pypdf text → analyze_transcript

Plus the side channels built on the same record:

    deep_research(topic)                        → ResearchResult (Grounded)
    generate_quiz(record)                       → Quiz (Strict)
    ask_question / ask_research_question        → free text (Plain)

Validation errors are raised before any network call. Identity checks
against the requested video live in ``core.guard``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from core import prompts, youtube
from core.errors import InputValidationError
from core.extractor import extract_json
from core.model_client import (
    GenerativeModel,
    Grounded,
    MediaPart,
    ModelRequest,
    OutputMode,
    Plain,
    Strict,
)
from core.models import AnalysisRecord, ChatMessage, Quiz, ResearchResult
from core.pdf import extract_text_from_pdf
from core.sanitizer import sanitize_analysis, sanitize_quiz, sanitize_research
from core.transcriber import SpeechTranscriber, Transcription

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

NO_ANSWER = "I couldn't generate an answer."


class Analyzer:
    """Builds model requests per input kind and returns sanitized records."""

    def __init__(
        self,
        settings: Settings,
        model: Optional[GenerativeModel] = None,
        transcriber: Optional[SpeechTranscriber] = None,
    ) -> None:
        self.settings = settings
        self.model = model or GenerativeModel(settings)
        self.transcriber = transcriber or SpeechTranscriber(settings)

    # ── Guards ─────────────────────────────────────────────────────────────

    def check_upload_size(self, size: int, label: str = "File") -> None:
        """Reject payloads above the configured admission limit."""
        limit = self.settings.max_upload_bytes
        if size > limit:
            raise InputValidationError(
                f"{label} is too large ({size / 1_048_576:.1f} MB). "
                f"The limit is {limit / 1_048_576:.0f} MB; try a smaller file."
            )

    def _truncate(self, text: str, budget: int) -> str:
        if len(text) > budget:
            logger.info("Truncating transcript from %d to %d chars", len(text), budget)
            return text[:budget]
        return text

    def _structured(self, prompt: str, mode: OutputMode, media: list[MediaPart] | None = None) -> dict:
        text = self.model.generate(
            ModelRequest(prompt=prompt, mode=mode, media=media or [], max_tokens=8192)
        )
        return extract_json(text)

    # ── ByUrl ──────────────────────────────────────────────────────────────

    def analyze_url(self, url: str, content_type_hint: str | None = None) -> AnalysisRecord:
        """Search-grounded analysis of a YouTube URL.

        Raises:
            InputValidationError: If *url* has no recognizable video ID.
        """
        video_id = youtube.validate_youtube_url(url)
        metadata = youtube.fetch_oembed_metadata(video_id)
        title = metadata.title if metadata else youtube.DEFAULT_VIDEO_TITLE
        return self._grounded_url_analysis(video_id, title, content_type_hint)

    def _grounded_url_analysis(
        self, video_id: str, title: str, hint: str | None, description: str = ""
    ) -> AnalysisRecord:
        logger.info("Grounded URL analysis video_id=%s title=%r", video_id, title)
        prompt = prompts.url_prompt(
            video_id, title, hint, description[: self.settings.description_char_budget]
        )
        return sanitize_analysis(self._structured(prompt, Grounded()))

    def analyze_url_with_transcript(
        self, url: str, content_type_hint: str | None = None
    ) -> AnalysisRecord:
        """Server-side URL analysis: prefer real captions, fall back to search grounding.

        When captions are found the full caption text is attached to the
        record after parsing, so the model never has to echo it back.
        """
        video_id = youtube.validate_youtube_url(url)
        metadata = youtube.fetch_metadata(video_id, self.settings.youtube_api_key)
        title = metadata.title if metadata else youtube.DEFAULT_VIDEO_TITLE
        description = metadata.description if metadata else ""

        transcript = youtube.fetch_transcript(video_id)
        if not transcript:
            return self._grounded_url_analysis(video_id, title, content_type_hint, description)

        logger.info("Transcript analysis video_id=%s chars=%d", video_id, len(transcript))
        prompt = prompts.transcript_prompt(
            self._truncate(transcript, self.settings.server_transcript_char_budget),
            context=f'Title: "{title}" (ID: {video_id})',
            hint=content_type_hint,
            video_id=video_id,
        )
        data = self._structured(prompt, Strict(prompts.ANALYSIS_SCHEMA))
        data["transcript"] = transcript
        data["videoId"] = video_id
        return sanitize_analysis(data)

    # ── ByTranscript ───────────────────────────────────────────────────────

    def analyze_transcript(
        self,
        text: str,
        context: str | None = None,
        content_type_hint: str | None = None,
    ) -> AnalysisRecord:
        """Analyze user-supplied transcript text.

        Text beyond ``transcript_char_budget`` is dropped, not rejected. When
        *context* is a YouTube URL the request is search-grounded so the
        sentiment section can use real audience comments.
        """
        if not text or not text.strip():
            raise InputValidationError("Please provide a transcript.")

        is_url = bool(context and context.startswith("http"))
        video_id = youtube.extract_video_id(context) if is_url else None
        grounded = video_id is not None

        prompt = prompts.transcript_prompt(
            self._truncate(text, self.settings.transcript_char_budget),
            context=context,
            hint=content_type_hint,
            video_id=video_id,
            grounded=grounded,
        )
        mode = Grounded() if grounded else Strict(prompts.ANALYSIS_SCHEMA)
        record = sanitize_analysis(self._structured(prompt, mode))
        if record.transcript is None:
            record = record.model_copy(update={"transcript": text})
        return record

    # ── ByMultimodal ───────────────────────────────────────────────────────

    def analyze_media(
        self,
        data: bytes,
        mime_type: str,
        frames: list[bytes] | None = None,
        content_type_hint: str | None = None,
        frame_mime_type: str = "image/jpeg",
    ) -> AnalysisRecord:
        """Transcribe and analyze one audio/video payload plus optional still frames.

        Images and PDFs go to the model as attachments. Audio and video are
        transcribed locally first; the verbatim transcript replaces whatever
        the model would have written into ``transcript``.
        """
        frames = frames or []
        if not data:
            raise InputValidationError("The uploaded file is empty.")
        self.check_upload_size(len(data) + sum(len(f) for f in frames), "Upload")

        mime_type = (mime_type or "audio/mpeg").lower()
        media_kind = "video" if mime_type.startswith("video/") else "audio"
        media = [MediaPart(frame_mime_type, frame) for frame in frames]
        spoken: Optional[Transcription] = None

        if self.model.supports_media(mime_type):
            media.insert(0, MediaPart(mime_type, data))
        elif mime_type.startswith(("audio/", "video/")):
            spoken = self.transcriber.transcribe(data)
            if not spoken.text and not frames:
                raise InputValidationError(
                    "No speech could be detected in the upload. "
                    "Try a clip with spoken content or paste the transcript."
                )
        else:
            raise InputValidationError(
                f"Unsupported file type '{mime_type}'. Upload audio, video, an image or a PDF."
            )

        spoken_text = None
        if spoken is not None:
            spoken_text = self._truncate(spoken.timed_text(), self.settings.transcript_char_budget)
        prompt = prompts.media_prompt(content_type_hint, media_kind, len(frames), spoken_text)
        parsed = self._structured(prompt, Strict(prompts.ANALYSIS_SCHEMA), media)
        if spoken is not None and spoken.text:
            parsed["transcript"] = spoken.text
        return sanitize_analysis(parsed)

    # ── PDF ────────────────────────────────────────────────────────────────

    def analyze_pdf(
        self, data: bytes, content_type_hint: str | None = None, filename: str = "document.pdf"
    ) -> AnalysisRecord:
        """Extract the PDF's text and analyze it as a transcript."""
        self.check_upload_size(len(data), "PDF")
        text = extract_text_from_pdf(data)
        return self.analyze_transcript(text, context=f"PDF document: {filename}",
                                       content_type_hint=content_type_hint)

    # ── Side channels ──────────────────────────────────────────────────────

    def deep_research(self, topic: str) -> ResearchResult:
        """Search-grounded background research on *topic*."""
        topic = (topic or "").strip()
        if not topic:
            raise InputValidationError("Research topic must not be empty.")
        logger.info("Deep research topic=%r", topic)
        return sanitize_research(
            self._structured(prompts.research_prompt(topic), Grounded()), topic=topic
        )

    def generate_quiz(self, record: AnalysisRecord) -> Quiz:
        return sanitize_quiz(
            self._structured(prompts.quiz_prompt(record), Strict(prompts.QUIZ_SCHEMA))
        )

    def _answer(self, prompt: str) -> str:
        text = self.model.generate(
            ModelRequest(prompt=prompt, mode=Plain(), max_tokens=1024,
                         model=self.settings.chat_model)
        )
        return text or NO_ANSWER

    def ask_question(
        self, question: str, record: AnalysisRecord, history: list[ChatMessage]
    ) -> str:
        """Answer *question* from the analysed video's content."""
        return self._answer(prompts.video_question_prompt(question, record, history))

    def ask_research_question(
        self, question: str, research: ResearchResult, history: list[ChatMessage]
    ) -> str:
        """Answer *question* from a deep-research result."""
        return self._answer(prompts.research_question_prompt(question, research, history))
