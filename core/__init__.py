"""
video-insight core package.

Modules
───────
errors       — error taxonomy (InsightError and subclasses)
models       — Pydantic data models (AnalysisRecord, ResearchResult, HistoryItem, ...)
extractor    — tolerant JSON extraction from free-text model output
sanitizer    — untrusted parsed JSON → fully-shaped domain records
youtube      — video ID resolution, metadata and caption lookups
model_client — Grounded / Strict / Plain requests to Claude
prompts      — prompt templates and output schemas
pdf          — PDF text extraction
transcriber  — faster-whisper speech-to-text for audio/video uploads
analyzer     — one analysis strategy per input kind
guard        — requested vs. resolved video identity check
history      — SQLite-backed analysis history (save, load_all, get_by_id, delete)
chat         — video / research chat context router
export       — Markdown study-notes export
session      — controller owning the active analysis, chat and quiz
"""
