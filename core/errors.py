"""
Error taxonomy for Video Insight.

Every failure a caller is expected to handle derives from ``InsightError``
so the web layer can map it to a status code and a single user message.
Third-party exceptions (``anthropic.APIError`` and friends) are not wrapped
unless noted.
"""

from __future__ import annotations


class InsightError(Exception):
    """Base class for all expected Video Insight failures."""


class ConfigurationError(InsightError, ValueError):
    """A required setting (usually an API key) is missing. Never retried."""


class InputValidationError(InsightError, ValueError):
    """User input was rejected before any network call was made."""


class MalformedResponseError(InsightError):
    """No JSON object could be recovered from the model's text."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_length = len(raw_text)
        self.snippet = raw_text[:200]


class EmptyResponseError(InsightError):
    """The model returned no text at all."""


class MismatchError(InsightError):
    """The model analysed a different video than the one requested."""

    def __init__(self, requested_id: str, resolved_id: str) -> None:
        super().__init__(
            f"Analysis Mismatch: The AI analyzed a different video (ID: {resolved_id}) "
            f"than the one requested ({requested_id}). This often happens with new or "
            "unindexed videos. Please use 'Audio Mode' or paste the transcript."
        )
        self.requested_id = requested_id
        self.resolved_id = resolved_id


class NotFoundError(InsightError):
    """The model explicitly reported that it could not locate the content."""

    def __init__(self, video_id: str | None = None, title: str = "this video") -> None:
        super().__init__(
            f"Video Not Found: The AI could not locate a transcript, description, or "
            f'detailed summary for "{title}".\n\n'
            "Tip: Try 'Audio / Upload' mode to analyze it directly."
        )
        self.video_id = video_id


class NetworkError(InsightError):
    """Transport-level failure talking to the model."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.hint = hint


class CorruptStateError(InsightError):
    """Persisted history could not be read. Logged and reset, never surfaced."""


class ContextBusyError(InsightError):
    """A question is already awaiting a response in this chat context."""
