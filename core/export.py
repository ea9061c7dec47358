"""Markdown study-notes export for an analysed video."""

from __future__ import annotations

import re

from core.models import AnalysisRecord

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def export_filename(title: str) -> str:
    """``"My Video: Part 1"`` → ``"my_video__part_1_notes.md"``."""
    return f"{_NON_ALNUM.sub('_', title or 'untitled').lower()}_notes.md"


def to_markdown(record: AnalysisRecord) -> str:
    """Render summary, study notes, themes and review verdict as Markdown."""
    lines = [f"# {record.title}", "", "**Summary:**", record.summary, ""]

    if record.study_notes:
        lines.append("## Study Notes")
        for section in record.study_notes:
            lines.append(f"### {section.title}")
            lines.extend(f"- {point}" for point in section.points)
            lines.append("")

    if record.themes:
        lines.append("## Key Themes")
        lines.extend(f"- **{theme.topic}**: {theme.details}" for theme in record.themes)
        lines.append("")

    review = record.review_details
    if review:
        lines.append(f"## Review Verdict: {review.verdict}")
        lines.append("")
        lines.append("### Pros")
        lines.extend(f"- {pro}" for pro in review.pros)
        lines.append("### Cons")
        lines.extend(f"- {con}" for con in review.cons)

    return "\n".join(lines).rstrip() + "\n"
