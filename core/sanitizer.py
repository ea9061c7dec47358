"""
Domain sanitizer: untrusted parsed JSON → fully-shaped domain records.

All null/undefined handling for model output happens here, once. Every
function is total: it accepts anything and returns a valid model whose
sequence fields are lists (possibly empty), never ``None``.

Rules
─────
* A sequence field whose value is not a list becomes ``[]``.
* List elements keep their received order; elements of the wrong shape
  (non-objects in object lists, non-scalars in string lists) are dropped.
* Missing strings fall back to a placeholder.
* ``reviewDetails`` stays absent when the source had no review object;
  a review object with missing parts gets each part defaulted.
* Feeding a dumped record back in yields the same record.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Optional, TypeVar

from core.models import (
    AnalysisRecord,
    Quiz,
    QuizQuestion,
    Quote,
    ResearchResult,
    ReviewDetails,
    SentimentSummary,
    Speaker,
    StudySection,
    SubTopic,
    Theme,
    Timestamp,
)

T = TypeVar("T")

DEFAULT_TITLE = "Untitled"
DEFAULT_SUMMARY = "No summary available."
DEFAULT_VIDEO_TYPE = "General"
DEFAULT_REVIEW_ITEM = "Unknown Item"
DEFAULT_VERDICT = "No verdict provided."

_TIME_LABEL = re.compile(r"(?:(\d+):)?(\d{1,2}):(\d{2})")


# ── Scalar helpers ─────────────────────────────────────────────────────────

def _text(value: Any, default: str = "") -> str:
    """Return *value* as a stripped string, or *default* if empty/unusable."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _number(value: Any) -> float:
    """Coerce a percentage-like value (``10``, ``"10"``, ``"10%"``) to float."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%"))
        except ValueError:
            return 0.0
    return 0.0


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def parse_time_label(label: str) -> Optional[float]:
    """Convert ``"HH:MM:SS"`` / ``"MM:SS"`` (optionally bracketed) to seconds."""
    match = _TIME_LABEL.search(label or "")
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return float(int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds))


def _seconds(item: dict, label: str) -> Optional[float]:
    explicit = _optional_number(item.get("seconds"))
    return explicit if explicit is not None else parse_time_label(label)


# ── Sequence helpers ───────────────────────────────────────────────────────

def _objects(value: Any, build: Callable[[dict], T]) -> list[T]:
    if not isinstance(value, list):
        return []
    return [build(item) for item in value if isinstance(item, dict)]


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [s for s in (_text(item) for item in value) if s]


# ── Element builders ───────────────────────────────────────────────────────

def _timestamp(item: dict) -> Timestamp:
    time = _text(item.get("time"))
    return Timestamp(
        time=time,
        description=_text(item.get("description")),
        seconds=_seconds(item, time),
    )


def _theme(item: dict) -> Theme:
    return Theme(
        topic=_text(item.get("topic"), "Untitled theme"),
        details=_text(item.get("details")),
        emoji=_text(item.get("emoji")),
    )


def _study_section(item: dict) -> StudySection:
    return StudySection(
        title=_text(item.get("title"), "Notes"),
        points=_strings(item.get("points")),
    )


def _quote(item: dict) -> Quote:
    time = _text(item.get("time"))
    return Quote(
        text=_text(item.get("text")),
        time=time,
        speaker=_optional_text(item.get("speaker")),
        seconds=_seconds(item, time),
    )


def _speaker(item: dict) -> Speaker:
    return Speaker(
        name=_text(item.get("name"), "Unknown speaker"),
        role=_optional_text(item.get("role")),
    )


def _sub_topic(item: dict) -> SubTopic:
    time = _text(item.get("time"))
    return SubTopic(
        title=_text(item.get("title"), "Untitled section"),
        time=time,
        summary=_text(item.get("summary")),
        speaker=_optional_text(item.get("speaker")),
        seconds=_seconds(item, time),
    )


def _review(value: Any) -> Optional[ReviewDetails]:
    if not isinstance(value, dict):
        return None
    return ReviewDetails(
        item=_text(value.get("item"), DEFAULT_REVIEW_ITEM),
        rating=_optional_text(value.get("rating")),
        pros=_strings(value.get("pros")),
        cons=_strings(value.get("cons")),
        verdict=_text(value.get("verdict"), DEFAULT_VERDICT),
    )


def _sentiment(value: Any) -> Optional[SentimentSummary]:
    if not isinstance(value, dict):
        return None
    return SentimentSummary(
        positive_percent=_number(_pick(value, "positivePercent", "positive_percent")),
        negative_percent=_number(_pick(value, "negativePercent", "negative_percent")),
        neutral_percent=_number(_pick(value, "neutralPercent", "neutral_percent")),
        summary=_text(value.get("summary")),
    )


def _pick(data: dict, *keys: str) -> Any:
    """Return the first present key; the model is told camelCase but may drift."""
    for key in keys:
        if key in data:
            return data[key]
    return None


# ── Public sanitizers ──────────────────────────────────────────────────────

def sanitize_analysis(parsed: Any) -> AnalysisRecord:
    """Return a fully-shaped ``AnalysisRecord`` from anything the model produced."""
    data = parsed if isinstance(parsed, dict) else {}

    return AnalysisRecord(
        video_id=_optional_text(_pick(data, "videoId", "video_id")),
        title=_text(data.get("title"), DEFAULT_TITLE),
        summary=_text(data.get("summary"), DEFAULT_SUMMARY),
        video_type=_text(_pick(data, "videoType", "video_type"), DEFAULT_VIDEO_TYPE),
        transcript=_optional_text(data.get("transcript")),
        timestamps=_objects(data.get("timestamps"), _timestamp),
        themes=_objects(data.get("themes"), _theme),
        study_notes=_objects(_pick(data, "studyNotes", "study_notes"), _study_section),
        quotes=_objects(data.get("quotes"), _quote),
        speakers=_objects(data.get("speakers"), _speaker),
        sub_topics=_objects(_pick(data, "subTopics", "sub_topics"), _sub_topic),
        review_details=_review(_pick(data, "reviewDetails", "review_details")),
        sentiment=_sentiment(data.get("sentiment")),
    )


def sanitize_research(parsed: Any, topic: str = "") -> ResearchResult:
    """Return a fully-shaped ``ResearchResult``; *topic* overrides the model's."""
    data = parsed if isinstance(parsed, dict) else {}

    return ResearchResult(
        topic=_text(topic) or _text(data.get("topic"), "Unknown topic"),
        definition=_text(data.get("definition"), "No definition available."),
        history=_text(data.get("history")),
        key_concepts=_strings(_pick(data, "keyConcepts", "key_concepts")),
        relevance=_text(data.get("relevance")),
        sources=_strings(data.get("sources")),
    )


def _quiz_question(item: dict) -> Optional[QuizQuestion]:
    options = _strings(item.get("options"))
    question = _text(item.get("question"))
    if not question or len(options) < 2:
        return None

    answer = _optional_number(_pick(item, "correctAnswer", "correct_answer"))
    index = int(answer) if answer is not None else 0
    return QuizQuestion(
        question=question,
        options=options,
        correct_answer=min(max(index, 0), len(options) - 1),
        explanation=_text(item.get("explanation")),
    )


def sanitize_quiz(parsed: Any) -> Quiz:
    """Return a ``Quiz`` holding only answerable questions."""
    data = parsed if isinstance(parsed, dict) else {}
    questions = _objects(data.get("questions"), _quiz_question)
    return Quiz(questions=[q for q in questions if q is not None])
