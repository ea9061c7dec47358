"""
Pydantic models shared across the Video Insight core.

Field names are snake_case in Python; the JSON form (``model_dump(by_alias=True)``)
uses the camelCase keys exchanged with the model and the browser UI.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting either snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Timestamp(CamelModel):
    time: str
    description: str
    seconds: Optional[float] = None


class Theme(CamelModel):
    topic: str
    details: str
    emoji: str = ""


class StudySection(CamelModel):
    title: str
    points: list[str] = Field(default_factory=list)


class Quote(CamelModel):
    text: str
    time: str = ""
    speaker: Optional[str] = None
    seconds: Optional[float] = None


class Speaker(CamelModel):
    name: str
    role: Optional[str] = None


class SubTopic(CamelModel):
    title: str
    time: str = ""
    summary: str = ""
    speaker: Optional[str] = None
    seconds: Optional[float] = None


class ReviewDetails(CamelModel):
    item: str
    rating: Optional[str] = None
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    verdict: str


class SentimentSummary(CamelModel):
    positive_percent: float = 0.0
    negative_percent: float = 0.0
    neutral_percent: float = 0.0
    summary: str = ""


class AnalysisRecord(CamelModel):
    """Canonical result of one analysis. Build it through ``core.sanitizer``."""

    video_id: Optional[str] = None
    title: str
    summary: str
    video_type: str = "General"
    transcript: Optional[str] = None
    timestamps: list[Timestamp] = Field(default_factory=list)
    themes: list[Theme] = Field(default_factory=list)
    study_notes: list[StudySection] = Field(default_factory=list)
    quotes: list[Quote] = Field(default_factory=list)
    speakers: list[Speaker] = Field(default_factory=list)
    sub_topics: list[SubTopic] = Field(default_factory=list)
    review_details: Optional[ReviewDetails] = None
    sentiment: Optional[SentimentSummary] = None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class ResearchResult(CamelModel):
    """Search-grounded background on a topic picked from an analysis."""

    topic: str
    definition: str
    history: str
    key_concepts: list[str] = Field(default_factory=list)
    relevance: str
    sources: list[str] = Field(default_factory=list)


class QuizQuestion(CamelModel):
    question: str
    options: list[str]
    correct_answer: int
    explanation: str = ""


class Quiz(CamelModel):
    questions: list[QuizQuestion] = Field(default_factory=list)


class ChatMessage(CamelModel):
    role: Literal["user", "model"]
    content: str
    timestamp: float
    """Epoch milliseconds."""


class HistoryItem(CamelModel):
    """A persisted analysis, keyed by video ID or a synthetic ``local-`` key."""

    id: str
    title: str
    timestamp: float
    video_type: str
    thumbnail: Optional[str] = None
    data: AnalysisRecord


class VideoMetadata(BaseModel):
    """Title/author/description looked up before prompting."""

    title: str
    author: str = ""
    description: str = ""
