"""
YouTube identity resolution and auxiliary lookups.

* ``extract_video_id`` / ``validate_youtube_url`` — pure, no network.
* ``fetch_oembed_metadata`` / ``fetch_data_api_metadata`` — title lookups that
  improve prompt grounding. Failures are logged and return ``None``.
* ``fetch_transcript`` — captions via ``youtube-transcript-api``. Failures
  return an empty string.

None of the lookups here ever raise on network trouble; the analysis they
feed degrades to a generic title or to search grounding instead.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlparse

import requests
from youtube_transcript_api import YouTubeTranscriptApi

from core.errors import InputValidationError
from core.models import VideoMetadata

logger = logging.getLogger(__name__)

NOT_FOUND = "NOT_FOUND"
DEFAULT_VIDEO_TITLE = "YouTube Video"

OEMBED_URL = "https://noembed.com/embed"
DATA_API_URL = "https://www.googleapis.com/youtube/v3/videos"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"

_VIDEO_ID = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|shorts/|watch\?v=|&v=)([^#&?]*).*")
_VIDEO_ID_LENGTH = 11
_LOOKUP_TIMEOUT = 5


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video ID in *url*, or ``None``.

    Examples:
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_video_id("https://example.com/video") is None
        True
    """
    if not url:
        return None
    match = _VIDEO_ID.match(url.strip())
    if match and len(match.group(2)) == _VIDEO_ID_LENGTH:
        return match.group(2)
    return None


def validate_youtube_url(url: str) -> str:
    """Check *url* and return its video ID.

    Raises:
        InputValidationError: With a user-facing message describing the problem.
    """
    if not url or not url.strip():
        raise InputValidationError("Please enter a YouTube URL.")

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        raise InputValidationError(
            "Invalid URL format. Please ensure it starts with http:// or https://"
        )

    hostname = (parsed.hostname or "").lower()
    if "youtube.com" not in hostname and "youtu.be" not in hostname:
        raise InputValidationError(
            "Please provide a valid YouTube URL (youtube.com or youtu.be)."
        )

    video_id = extract_video_id(url)
    if not video_id:
        raise InputValidationError(
            "Could not find a valid Video ID. Please check the link format."
        )
    return video_id


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def thumbnail_url(video_id: Optional[str]) -> Optional[str]:
    if not video_id or video_id == NOT_FOUND:
        return None
    return THUMBNAIL_URL.format(video_id=video_id)


# ── Metadata lookups ───────────────────────────────────────────────────────

def fetch_oembed_metadata(video_id: str) -> Optional[VideoMetadata]:
    """Look up title/author through the public noembed proxy (no key needed)."""
    try:
        response = requests.get(
            OEMBED_URL, params={"url": watch_url(video_id)}, timeout=_LOOKUP_TIMEOUT
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("oEmbed lookup failed for video_id=%s: %s", video_id, exc)
        return None

    title = data.get("title") if isinstance(data, dict) else None
    if not title:
        return None
    return VideoMetadata(title=title, author=data.get("author_name") or "")


def fetch_data_api_metadata(video_id: str, api_key: str) -> Optional[VideoMetadata]:
    """Look up title/description through the YouTube Data API v3."""
    try:
        response = requests.get(
            DATA_API_URL,
            params={"part": "snippet", "id": video_id, "key": api_key},
            timeout=_LOOKUP_TIMEOUT,
        )
        response.raise_for_status()
        items = response.json().get("items") or []
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.warning("Data API lookup failed for video_id=%s: %s", video_id, exc)
        return None

    if not items:
        return None
    snippet = items[0].get("snippet") or {}
    return VideoMetadata(
        title=snippet.get("title") or DEFAULT_VIDEO_TITLE,
        author=snippet.get("channelTitle") or "",
        description=snippet.get("description") or "",
    )


def fetch_metadata(video_id: str, api_key: str = "") -> Optional[VideoMetadata]:
    """Prefer the Data API when a key is configured, else fall back to oEmbed."""
    if api_key:
        metadata = fetch_data_api_metadata(video_id, api_key)
        if metadata is not None:
            return metadata
    return fetch_oembed_metadata(video_id)


def fetch_transcript(video_id: str) -> str:
    """Return the caption text for *video_id*, or ``""`` if unavailable."""
    try:
        fetched = YouTubeTranscriptApi().fetch(video_id)
    except Exception as exc:
        # The library raises a family of its own errors plus requests errors.
        logger.info("No transcript for video_id=%s: %s", video_id, exc)
        return ""
    return " ".join(snippet.text for snippet in fetched).strip()
