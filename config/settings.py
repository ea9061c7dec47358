"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ConfigurationError if ANTHROPIC_API_KEY is missing
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from core.errors import ConfigurationError


def _int_env(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ``.
    """

    # ── API Keys ────────────────────────────────────────────────────────────
    anthropic_api_key: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", "")
    )
    #: Optional; enables YouTube Data API title/description lookups.
    youtube_api_key: str = field(
        default_factory=lambda: os.environ.get("YOUTUBE_API_KEY", "")
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(default_factory=lambda: _int_env("PORT", 8080))

    # ── AI Models ───────────────────────────────────────────────────────────
    #: Model used for analysis, research and quiz passes.
    analysis_model: str = field(
        default_factory=lambda: os.environ.get("ANALYSIS_MODEL", "claude-haiku-4-5")
    )
    #: Model used for chat answers.
    chat_model: str = field(
        default_factory=lambda: os.environ.get("CHAT_MODEL", "claude-haiku-4-5")
    )
    max_web_searches: int = field(default_factory=lambda: _int_env("MAX_WEB_SEARCHES", 3))
    max_retries: int = field(default_factory=lambda: _int_env("MAX_RETRIES", 2))
    #: Seconds before a model request is abandoned.
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "120"))
    )

    # ── Speech-to-text (faster-whisper) ─────────────────────────────────────
    whisper_model: str = field(
        default_factory=lambda: os.environ.get("WHISPER_MODEL", "base")
    )
    #: "cpu", "cuda" or "auto".
    whisper_device: str = field(
        default_factory=lambda: os.environ.get("WHISPER_DEVICE", "auto")
    )
    whisper_compute_type: str = field(
        default_factory=lambda: os.environ.get("WHISPER_COMPUTE_TYPE", "default")
    )

    # ── Input limits ────────────────────────────────────────────────────────
    #: Pasted/extracted transcripts are cut to this many characters.
    transcript_char_budget: int = field(
        default_factory=lambda: _int_env("TRANSCRIPT_CHAR_BUDGET", 40_000)
    )
    #: Server-fetched captions are cut to this many characters.
    server_transcript_char_budget: int = field(
        default_factory=lambda: _int_env("SERVER_TRANSCRIPT_CHAR_BUDGET", 30_000)
    )
    description_char_budget: int = 500
    #: Uploads above this size are rejected before any network call.
    max_upload_bytes: int = field(
        default_factory=lambda: _int_env("MAX_UPLOAD_BYTES", 20 * 1024 * 1024)
    )

    # ── History ─────────────────────────────────────────────────────────────
    history_limit: int = field(default_factory=lambda: _int_env("HISTORY_LIMIT", 10))

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if any required setting is missing."""
        if not self.anthropic_api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Copy .env.example to .env and add your key."
            )
