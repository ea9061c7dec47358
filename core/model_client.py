"""
Request contract for the hosted generative model (Claude via ``anthropic``).

A request carries a prompt, optional media attachments and exactly one
output mode:

* ``Grounded`` — web-search tool enabled. The API cannot combine tool use
  with schema-enforced output, so the JSON shape travels in the prompt and
  the reply goes through ``core.extractor``.
* ``Strict``   — JSON schema enforced by the API, no tools.
* ``Plain``    — free text (chat answers).

``GenerativeModel.generate`` returns the concatenated text blocks of the
reply. The Anthropic client is lazy-initialised so the class can be built in
tests without a live key.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

import anthropic

from core.errors import ConfigurationError, EmptyResponseError, InputValidationError, NetworkError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

#: Beta header name for the Claude web_search tool.
WEB_SEARCH_BETA = "web-search-2025-03-05"
#: Tool definition passed to the Claude beta messages API.
WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search"}

SMALLER_FILE_HINT = "The file might be too large. Try a smaller file or a shorter clip."
CONNECTION_HINT = "Check your connection and try again; large uploads can also time out."


# ── Request shapes ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Grounded:
    """Search-grounded generation; output shape lives in the prompt text."""

    tools: tuple[dict, ...] = (WEB_SEARCH_TOOL,)


@dataclass(frozen=True)
class Strict:
    """Schema-enforced JSON output; no tools."""

    schema: dict


@dataclass(frozen=True)
class Plain:
    """Free-text answer."""


OutputMode = Union[Grounded, Strict, Plain]


@dataclass(frozen=True)
class MediaPart:
    """A binary attachment sent alongside the prompt."""

    mime_type: str
    data: bytes


@dataclass
class ModelRequest:
    prompt: str
    mode: OutputMode = field(default_factory=Plain)
    media: list[MediaPart] = field(default_factory=list)
    max_tokens: int = 4096
    model: str | None = None


# ── Client ─────────────────────────────────────────────────────────────────

class GenerativeModel:
    """Thin adapter from ``ModelRequest`` to the Anthropic Messages API."""

    #: Attachment types the Messages API accepts as content blocks.
    IMAGE_TYPES = frozenset(["image/jpeg", "image/png", "image/gif", "image/webp"])
    DOCUMENT_TYPES = frozenset(["application/pdf"])

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: object = None  # Lazy-initialised anthropic.Anthropic

    @property
    def client(self) -> object:
        """Lazy-initialise and return the Anthropic SDK client."""
        if self._client is None:
            if not self.settings.anthropic_api_key:
                raise ConfigurationError(
                    "ANTHROPIC_API_KEY environment variable is not set. "
                    "Copy .env.example to .env and add your key."
                )
            self._client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key,
                max_retries=self.settings.max_retries,
                timeout=self.settings.request_timeout,
            )
        return self._client

    def supports_media(self, mime_type: str) -> bool:
        mime_type = (mime_type or "").lower()
        return mime_type in self.IMAGE_TYPES or mime_type in self.DOCUMENT_TYPES

    def generate(self, request: ModelRequest) -> str:
        """Send *request* and return the reply text.

        Raises:
            ConfigurationError: If no API key is configured.
            InputValidationError: If an attachment type is not accepted.
            EmptyResponseError: If the reply carries no text.
            NetworkError: On connection failures or an oversized payload (HTTP 413).
            anthropic.APIError: Any other API failure, unchanged.
        """
        client = self.client
        content = [self._content_block(part) for part in request.media]
        content.append({"type": "text", "text": request.prompt})

        kwargs: dict = {
            "model": request.model or self.settings.analysis_model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }

        mode = request.mode
        logger.info(
            "Model request mode=%s model=%s media=%d prompt_chars=%d",
            type(mode).__name__, kwargs["model"], len(request.media), len(request.prompt),
        )

        try:
            if isinstance(mode, Grounded):
                tools = [
                    {**tool, "max_uses": self.settings.max_web_searches}
                    for tool in mode.tools
                ]
                response = client.beta.messages.create(
                    betas=[WEB_SEARCH_BETA], tools=tools, **kwargs
                )
            elif isinstance(mode, Strict):
                response = client.messages.create(
                    output_config={"format": {"type": "json_schema", "schema": mode.schema}},
                    **kwargs,
                )
            else:
                response = client.messages.create(**kwargs)
        except anthropic.APIConnectionError as exc:
            raise NetworkError(f"Could not reach the model: {exc}", CONNECTION_HINT) from exc
        except anthropic.APIStatusError as exc:
            if exc.status_code == 413:
                raise NetworkError("Request payload too large.", SMALLER_FILE_HINT) from exc
            raise

        text = "".join(
            getattr(block, "text", "") or ""
            for block in getattr(response, "content", []) or []
            if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise EmptyResponseError("No response from the model.")
        return text

    def _content_block(self, part: MediaPart) -> dict:
        mime_type = part.mime_type.lower()
        encoded = base64.standard_b64encode(part.data).decode("ascii")
        if mime_type in self.IMAGE_TYPES:
            block_type = "image"
        elif mime_type in self.DOCUMENT_TYPES:
            block_type = "document"
        else:
            raise InputValidationError(
                f"The configured model cannot accept '{part.mime_type}' attachments."
            )
        return {
            "type": block_type,
            "source": {"type": "base64", "media_type": mime_type, "data": encoded},
        }
