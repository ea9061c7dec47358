"""
Speech-to-text for uploaded audio and video.

The hosted model cannot take audio, so uploads are transcribed locally with
``faster-whisper`` and the text is analyzed instead. The Whisper weights are
loaded on first use, like the Anthropic client in ``core.model_client``.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from faster_whisper import WhisperModel

from core.errors import ConfigurationError, InputValidationError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


def format_offset(seconds: float) -> str:
    """``75.4`` → ``"01:15"``; hours are added past the hour mark."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class SpokenSegment:
    start: float
    end: float
    text: str


@dataclass
class Transcription:
    segments: list[SpokenSegment] = field(default_factory=list)
    language: str = ""

    @property
    def text(self) -> str:
        """Verbatim transcript, segments joined by spaces."""
        return " ".join(s.text for s in self.segments if s.text).strip()

    def timed_text(self) -> str:
        """One ``[MM:SS] text`` line per segment, for prompts."""
        return "\n".join(f"[{format_offset(s.start)}] {s.text}" for s in self.segments if s.text)


class SpeechTranscriber:
    """Thin wrapper around ``faster_whisper.WhisperModel``."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._model: object = None  # Lazy-initialised WhisperModel

    @property
    def model(self) -> object:
        if self._model is None:
            name = self.settings.whisper_model
            logger.info("Loading Whisper model %r on %s", name, self.settings.whisper_device)
            try:
                self._model = WhisperModel(
                    name,
                    device=self.settings.whisper_device,
                    compute_type=self.settings.whisper_compute_type,
                )
            except (OSError, RuntimeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Could not load the speech-to-text model {name!r}: {exc}"
                ) from exc
        return self._model

    def transcribe(self, data: bytes) -> Transcription:
        """Transcribe an audio or video payload.

        Raises:
            ConfigurationError: If the Whisper model cannot be loaded.
            InputValidationError: If the payload cannot be decoded as media.
        """
        model = self.model
        try:
            segments, info = model.transcribe(io.BytesIO(data), vad_filter=True)
            spoken = [
                SpokenSegment(start=s.start, end=s.end, text=s.text.strip()) for s in segments
            ]
        except (ValueError, OSError) as exc:
            logger.warning("Speech-to-text failed: %s", exc)
            raise InputValidationError(
                "Could not decode the uploaded audio. Try an MP3, WAV or MP4 file."
            ) from exc

        result = Transcription(segments=spoken, language=getattr(info, "language", "") or "")
        logger.info(
            "Transcribed %d segments (%d chars, language=%s)",
            len(spoken), len(result.text), result.language or "?",
        )
        return result
