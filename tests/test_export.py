"""Tests for core/export.py"""

from core.export import export_filename, to_markdown
from core.sanitizer import sanitize_analysis


class TestFilename:
    def test_non_alphanumerics_replaced(self):
        assert export_filename("My Video: Part 1") == "my_video__part_1_notes.md"

    def test_empty_title(self):
        assert export_filename("") == "untitled_notes.md"


class TestMarkdown:
    def test_educational_record(self):
        record = sanitize_analysis({
            "title": "Intro to Qubits",
            "summary": "Basics of quantum bits.",
            "studyNotes": [{"title": "Superposition", "points": ["Both states", "Until measured"]}],
            "themes": [{"topic": "Physics", "details": "Quantum mechanics"}],
        })
        md = to_markdown(record)
        assert md.startswith("# Intro to Qubits\n")
        assert "Basics of quantum bits." in md
        assert "### Superposition\n- Both states\n- Until measured" in md
        assert "- **Physics**: Quantum mechanics" in md
        assert "Review Verdict" not in md

    def test_review_record(self):
        record = sanitize_analysis({
            "title": "Phone Review",
            "reviewDetails": {"item": "Phone", "pros": ["Fast"], "cons": ["Pricey"], "verdict": "Buy it"},
        })
        md = to_markdown(record)
        assert "## Review Verdict: Buy it" in md
        assert "### Pros\n- Fast" in md
        assert "### Cons\n- Pricey" in md
        assert "## Study Notes" not in md
