"""
Prompt templates and JSON schemas for every model call.

Schemas are used with ``Strict`` requests; ``JSON_STRUCTURE_PROMPT`` carries
the same shape as plain text for ``Grounded`` requests, where the API does
not allow a schema next to the search tool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.models import AnalysisRecord, ChatMessage, ResearchResult

AUTO = "Auto"
VIDEO_TYPES = ["Auto", "Educational", "Product Review", "Entertainment", "Vlog", "News"]


# ── Output shapes ──────────────────────────────────────────────────────────

JSON_STRUCTURE_PROMPT = """
RESPONSE FORMAT:
You MUST return a VALID JSON object with the following structure. Do not return markdown text outside the JSON.
Ensure all strings are properly escaped. Do not use trailing commas.
{
  "videoId": "The YouTube Video ID (string) or 'NOT_FOUND'",
  "title": "Video Title (string)",
  "videoType": "Educational" | "Product Review" | "Entertainment" | "Vlog" | "News",
  "summary": "Executive summary (string)",
  "transcript": "Full transcript text (string, optional)",
  "timestamps": [{ "time": "HH:MM:SS", "description": "string" }],
  "themes": [{ "topic": "string", "details": "string", "emoji": "string" }],
  "studyNotes": [{ "title": "string", "points": ["string"] }],
  "reviewDetails": { "item": "string", "rating": "string", "pros": ["string"], "cons": ["string"], "verdict": "string" },
  "quotes": [{ "text": "string", "time": "string", "speaker": "string" }],
  "speakers": [{ "name": "string", "role": "string" }],
  "subTopics": [{ "title": "string", "time": "string", "summary": "string", "speaker": "string" }],
  "sentiment": { "positivePercent": number, "negativePercent": number, "neutralPercent": number, "summary": "string" }
}
"""

RESEARCH_STRUCTURE_PROMPT = """
RESPONSE FORMAT:
Return ONLY a VALID JSON object, no markdown text outside it, no trailing commas:
{
  "topic": "string",
  "definition": "One or two sentence definition (string)",
  "history": "Origins and evolution (string)",
  "keyConcepts": ["string"],
  "relevance": "Why it matters today (string)",
  "sources": ["URL or source name (string)"]
}
"""


def _string() -> dict:
    return {"type": "string"}


def _strings() -> dict:
    return {"type": "array", "items": {"type": "string"}}


def _object(properties: dict, required: list[str] | None = None) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": required if required is not None else list(properties),
        "additionalProperties": False,
    }


ANALYSIS_SCHEMA: dict = _object(
    {
        "videoId": _string(),
        "title": _string(),
        "videoType": _string(),
        "summary": _string(),
        "transcript": _string(),
        "timestamps": {"type": "array", "items": _object({"time": _string(), "description": _string()})},
        "themes": {
            "type": "array",
            "items": _object({"topic": _string(), "details": _string(), "emoji": _string()}),
        },
        "studyNotes": {"type": "array", "items": _object({"title": _string(), "points": _strings()})},
        "reviewDetails": _object(
            {
                "item": _string(),
                "rating": _string(),
                "pros": _strings(),
                "cons": _strings(),
                "verdict": _string(),
            }
        ),
        "quotes": {
            "type": "array",
            "items": _object({"text": _string(), "time": _string(), "speaker": _string()}, ["text", "time"]),
        },
        "speakers": {"type": "array", "items": _object({"name": _string(), "role": _string()}, ["name"])},
        "subTopics": {
            "type": "array",
            "items": _object(
                {"title": _string(), "time": _string(), "summary": _string(), "speaker": _string()},
                ["title", "time", "summary"],
            ),
        },
        "sentiment": _object(
            {
                "positivePercent": {"type": "number"},
                "negativePercent": {"type": "number"},
                "neutralPercent": {"type": "number"},
                "summary": _string(),
            }
        ),
    },
    required=[
        "title", "summary", "videoType", "timestamps", "themes",
        "quotes", "speakers", "subTopics", "sentiment",
    ],
)

QUIZ_SCHEMA: dict = _object(
    {
        "questions": {
            "type": "array",
            "items": _object(
                {
                    "question": _string(),
                    "options": _strings(),
                    "correctAnswer": {"type": "integer"},
                    "explanation": _string(),
                }
            ),
        }
    }
)


# ── Shared fragments ───────────────────────────────────────────────────────

def type_context(content_type_hint: str | None) -> str:
    """Instruction pinning the user's chosen video type, or ``""`` for Auto."""
    if not content_type_hint or content_type_hint == AUTO:
        return ""
    return (
        f'IMPORTANT: The user has specified this is a "{content_type_hint}" video. '
        "Prioritize analysis for this type."
    )


ADAPTIVE_SECTIONS = """
       - **Educational/Tutorial**: Generate detailed 'studyNotes'.
       - **Product/Movie/Service Review**: Generate 'reviewDetails' (Item name, Pros, Cons, Rating, Verdict). Omit 'studyNotes'.
       - **Entertainment/Vlog**: Omit 'studyNotes' and 'reviewDetails'. Focus on Themes/Entertainment value."""


# ── Analysis prompts ───────────────────────────────────────────────────────

def url_prompt(video_id: str, title: str, hint: str | None, description: str = "") -> str:
    ctx = type_context(hint)
    desc = f'Description: "{description}..."' if description else ""
    return f"""
    Perform a deep analysis of the YouTube video: "{title}" (ID: {video_id}).
    {desc}
    {ctx}

    Step 1: SEARCH
    Use web search to find:
    - The official transcript, closed captions, or subtitles for video ID "{video_id}".
    - Comprehensive text summaries, reviews, or articles discussing "{title}".
    - User comments and sentiment for this specific video.

    Step 2: ANALYZE & VERIFY
    - **Primary Source**: If a transcript/caption is found, analyze it directly.
    - **Secondary Source**: If NO transcript is found, synthesize an analysis based on the detailed reviews/articles found.
      *CRITICAL*: If relying on secondary sources, ensure they are about THIS specific video.
    - **Verification**: Check if the content matches the title "{title}".

    Step 3: EXTRACTION TASKS
    1. **Classification**: Determine the 'videoType'. {ctx}
    2. **Adaptive Analysis**:{ADAPTIVE_SECTIONS}
    3. **Summary**: Concise executive summary (150 words).
    4. **Timestamps**: Key moments (infer from text context or description).
    5. **Themes, Quotes, Speakers, Sub-topics**: Extract what the sources support.
    6. **Sentiment**: Summarize audience reaction from comments/reviews found for video ID "{video_id}".
       CRITICAL: Discard any comment or review you cannot verify belongs to video ID "{video_id}".

    Set "videoId" to "{video_id}".
    FAILURE CONDITION:
    If you cannot find ANY specific information (transcript, summary, or reviews) about this video, set "videoId" to "NOT_FOUND".
    Do NOT include the 'transcript' field.

    {JSON_STRUCTURE_PROMPT}
    """


def transcript_prompt(
    transcript: str,
    context: str | None,
    hint: str | None,
    video_id: str | None = None,
    grounded: bool = False,
) -> str:
    ctx = type_context(hint)
    if grounded and video_id:
        sentiment = (
            f'Use web search to find **real comments** and audience reactions specifically for video ID "{video_id}".\n'
            f'       CRITICAL: You must VERIFY that the comments belong to video ID "{video_id}".\n'
            "       If search results are for a different video, ignore them and return a neutral summary."
        )
    else:
        sentiment = "Analyze the **tone** of the transcript."

    return f"""
    Analyze the following video transcript.
    Context: {context or "No URL provided"}
    {f"Target Video ID: {video_id}" if video_id else ""}
    {ctx}

    TASKS:
    1. **Classification**: Determine the 'videoType'. {ctx}
    2. **Adaptive Analysis**:{ADAPTIVE_SECTIONS}
    3. **Summary**: Concise executive summary (150 words).
    4. **Timestamps**: Key moments.
    5. **Themes**: Main topics.
    6. **Quotes**: Impactful quotes.
    7. **Speakers**: Identify speakers/roles.
    8. **Sub-topics**: Detailed breakdown.
    9. **Sentiment Analysis**: {sentiment}
    Do NOT include the 'transcript' field.

    {JSON_STRUCTURE_PROMPT if grounded else ""}

    TRANSCRIPT:
    {transcript}
    (Transcript truncated if too long)
    """


def media_prompt(
    hint: str | None, media_kind: str, frame_count: int, spoken_text: str | None = None
) -> str:
    """Prompt for an upload; *spoken_text* is the speech-to-text output, if any."""
    ctx = type_context(hint)
    frames = (
        f"{frame_count} still frame(s) captured from the video are attached in order. "
        "Use them for visual context (on-screen text, products, slides)."
        if frame_count else ""
    )
    if spoken_text is None:
        source = f"Review the attached {media_kind} content carefully."
        transcription = "Transcribe the spoken content verbatim into 'transcript'."
    else:
        source = f"""The {media_kind} track was transcribed by a speech-to-text model; [MM:SS] marks are offsets from the start.
    TRANSCRIPT START:
    {spoken_text or "(no speech detected)"}
    TRANSCRIPT END."""
        transcription = "Already provided above. Do NOT include the 'transcript' field; use the [MM:SS] marks for timestamps."
    return f"""
    {source}
    {frames}
    {ctx}

    TASKS:
    1. **Transcription**: {transcription}
    2. **Classification**: Determine the 'videoType'. {ctx}
    3. **Analysis**:
       - If Educational/Tutorial: Create 'studyNotes'.
       - If Review: Create 'reviewDetails' (Item, Rating, Pros, Cons).
       - Else: Return empty 'studyNotes' and omit 'reviewDetails'.
    4. **Summary**: Concise executive summary (150 words).
    5. **Timestamps**: Key moments with timestamps (infer time from progress).
    6. **Themes**: Main topics.
    7. **Quotes**: Impactful quotes.
    8. **Speakers**: Identify speakers/roles.
    9. **Sub-topics**: Detailed breakdown.
    10. **Sentiment**: Analyze the tone of the content.
    """


def research_prompt(topic: str) -> str:
    return f"""
    Research the topic "{topic}" using web search.
    Find an authoritative definition, its history and origin, the key concepts a
    newcomer must know, and why it is relevant today. Record the URLs you relied on
    in 'sources'.

    {RESEARCH_STRUCTURE_PROMPT}
    """


def quiz_prompt(record: AnalysisRecord) -> str:
    themes = ", ".join(t.topic for t in record.themes)
    notes = "\n".join(
        f"- {section.title}: {'; '.join(section.points)}" for section in record.study_notes
    )
    return f"""
    Create a 5 question multiple-choice quiz testing understanding of this video.
    Title: {record.title}
    Summary: {record.summary}
    Themes: {themes}
    {f"Study notes:{chr(10)}{notes}" if notes else ""}

    Each question has exactly 4 options, 'correctAnswer' is the zero-based index of the
    right option, and 'explanation' says briefly why it is right.
    """


# ── Chat prompts ───────────────────────────────────────────────────────────

def _history_text(history: list[ChatMessage]) -> str:
    return "\n".join(
        f"{'User' if msg.role == 'user' else 'Assistant'}: {msg.content}" for msg in history
    )


def video_question_prompt(
    question: str, record: AnalysisRecord, history: list[ChatMessage]
) -> str:
    transcript = record.transcript or (
        "Transcript not available. Answer based on the summary and themes provided."
    )
    return f"""
    You are a helpful assistant answering questions specifically about the YouTube video titled "{record.title}".

    VIDEO CONTEXT:
    Title: {record.title}
    Type: {record.video_type}
    Summary: {record.summary}
    Themes: {", ".join(t.topic for t in record.themes)}

    TRANSCRIPT/CONTENT START:
    {transcript}
    TRANSCRIPT/CONTENT END.

    PREVIOUS CHAT HISTORY:
    {_history_text(history)}

    USER QUESTION: {question}

    INSTRUCTIONS:
    1. Answer ONLY based on the video content provided above.
    2. If the answer is not in the video, say "I couldn't find that information in the video."
    3. Be concise and direct.
    """


def research_question_prompt(
    question: str, research: ResearchResult, history: list[ChatMessage]
) -> str:
    return f"""
    You are a knowledgeable tutor answering questions about the topic "{research.topic}".

    RESEARCH CONTEXT:
    Definition: {research.definition}
    History: {research.history}
    Key Concepts: {", ".join(research.key_concepts)}
    Relevance: {research.relevance}

    PREVIOUS CHAT HISTORY:
    {_history_text(history)}

    USER QUESTION: {question}

    INSTRUCTIONS:
    1. Answer from the research context first; add general knowledge only where it helps.
    2. Be concise and direct.
    """
