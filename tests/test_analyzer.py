"""Tests for core/analyzer.py"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from conftest import FakeModel, FakeTranscriber, analysis_json
from core.analyzer import Analyzer
from core.errors import EmptyResponseError, InputValidationError, MalformedResponseError
from core.model_client import Grounded, Plain, Strict
from core.models import ChatMessage, ResearchResult, VideoMetadata
from core.sanitizer import sanitize_analysis

URL = "https://youtu.be/dQw4w9WgXcQ"


class TestAnalyzeUrl:
    @patch("core.analyzer.youtube.fetch_oembed_metadata")
    def test_grounded_request_with_metadata_title(self, mock_meta, settings):
        mock_meta.return_value = VideoMetadata(title="Never Gonna Give You Up", author="Rick")
        model = FakeModel("Here:\n```json\n" + analysis_json() + "\n```")

        record = Analyzer(settings, model).analyze_url(URL, "Auto")

        assert record.video_id == "dQw4w9WgXcQ"
        assert record.video_type == "Entertainment"
        request = model.requests[0]
        assert isinstance(request.mode, Grounded)
        assert '"Never Gonna Give You Up"' in request.prompt
        assert "videoId" in request.prompt  # shape embedded as text

    @patch("core.analyzer.youtube.fetch_oembed_metadata", return_value=None)
    def test_metadata_failure_degrades_to_generic_title(self, mock_meta, settings):
        model = FakeModel(analysis_json())
        Analyzer(settings, model).analyze_url(URL)
        assert '"YouTube Video"' in model.requests[0].prompt

    @patch("core.analyzer.youtube.fetch_oembed_metadata")
    def test_invalid_url_rejected_before_network(self, mock_meta, settings):
        model = FakeModel()
        with pytest.raises(InputValidationError):
            Analyzer(settings, model).analyze_url("https://example.com/video")
        mock_meta.assert_not_called()
        assert model.requests == []

    @patch("core.analyzer.youtube.fetch_oembed_metadata", return_value=None)
    def test_user_type_hint_in_prompt(self, mock_meta, settings):
        model = FakeModel(analysis_json())
        Analyzer(settings, model).analyze_url(URL, "Product Review")
        assert 'specified this is a "Product Review" video' in model.requests[0].prompt

    @patch("core.analyzer.youtube.fetch_oembed_metadata", return_value=None)
    def test_malformed_reply_propagates(self, mock_meta, settings):
        with pytest.raises(MalformedResponseError):
            Analyzer(settings, FakeModel("Sorry, I can't do that.")).analyze_url(URL)

    @patch("core.analyzer.youtube.fetch_oembed_metadata", return_value=None)
    def test_empty_reply_propagates(self, mock_meta, settings):
        model = FakeModel(EmptyResponseError("No response from the model."))
        with pytest.raises(EmptyResponseError):
            Analyzer(settings, model).analyze_url(URL)


class TestAnalyzeUrlWithTranscript:
    @patch("core.analyzer.youtube.fetch_transcript", return_value="full caption text")
    @patch("core.analyzer.youtube.fetch_metadata", return_value=VideoMetadata(title="T"))
    def test_transcript_injected_after_parse(self, mock_meta, mock_transcript, settings):
        model = FakeModel(analysis_json(videoId="zzzzzzzzzzz"))
        record = Analyzer(settings, model).analyze_url_with_transcript(URL)

        assert isinstance(model.requests[0].mode, Strict)
        assert record.transcript == "full caption text"
        assert record.video_id == "dQw4w9WgXcQ"

    @patch("core.analyzer.youtube.fetch_transcript", return_value="")
    @patch("core.analyzer.youtube.fetch_metadata", return_value=None)
    def test_falls_back_to_grounded(self, mock_meta, mock_transcript, settings):
        model = FakeModel(analysis_json())
        Analyzer(settings, model).analyze_url_with_transcript(URL)
        assert isinstance(model.requests[0].mode, Grounded)

    @patch("core.analyzer.youtube.fetch_transcript", return_value="x" * 50)
    @patch("core.analyzer.youtube.fetch_metadata", return_value=None)
    def test_server_budget_applies(self, mock_meta, mock_transcript, settings):
        settings.server_transcript_char_budget = 10
        model = FakeModel(analysis_json())
        record = Analyzer(settings, model).analyze_url_with_transcript(URL)
        assert "x" * 11 not in model.requests[0].prompt
        assert record.transcript == "x" * 50


class TestAnalyzeTranscript:
    def test_plain_context_uses_strict_schema(self, settings):
        model = FakeModel(analysis_json(videoId=None))
        record = Analyzer(settings, model).analyze_transcript("hello world", "My lecture")
        assert isinstance(model.requests[0].mode, Strict)
        assert record.transcript == "hello world"

    def test_url_context_uses_grounding(self, settings):
        model = FakeModel(analysis_json())
        Analyzer(settings, model).analyze_transcript("hello", URL)
        request = model.requests[0]
        assert isinstance(request.mode, Grounded)
        assert 'VERIFY that the comments belong to video ID "dQw4w9WgXcQ"' in request.prompt

    def test_long_transcript_is_truncated(self, settings):
        settings.transcript_char_budget = 20
        model = FakeModel(analysis_json())
        Analyzer(settings, model).analyze_transcript("a" * 19 + "b" * 100)
        prompt = model.requests[0].prompt
        assert "a" * 19 + "b" in prompt
        assert "bb" not in prompt

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_transcript_rejected(self, text, settings):
        model = FakeModel()
        with pytest.raises(InputValidationError):
            Analyzer(settings, model).analyze_transcript(text)
        assert model.requests == []


class TestAnalyzeMedia:
    def test_image_frames_and_supported_media_attached(self, settings):
        model = FakeModel(analysis_json(transcript="spoken words"))
        record = Analyzer(settings, model).analyze_media(
            b"pdfbytes", "application/pdf", frames=[b"f1", b"f2"]
        )
        request = model.requests[0]
        assert [part.mime_type for part in request.media] == [
            "application/pdf", "image/jpeg", "image/jpeg",
        ]
        assert isinstance(request.mode, Strict)
        assert record.transcript == "spoken words"

    def test_oversized_upload_rejected_before_call(self, settings):
        settings.max_upload_bytes = 10
        model = FakeModel()
        with pytest.raises(InputValidationError, match="too large"):
            Analyzer(settings, model).analyze_media(b"x" * 11, "image/png")
        assert model.requests == []

    def test_audio_is_transcribed_then_analyzed(self, settings):
        model = FakeModel(analysis_json(transcript="model paraphrase"))
        transcriber = FakeTranscriber((0, "Never gonna give you up."), (75, "Never gonna let you down."))

        record = Analyzer(settings, model, transcriber).analyze_media(b"ID3audio", "audio/mpeg")

        assert transcriber.calls == [b"ID3audio"]
        request = model.requests[0]
        assert request.media == []
        assert isinstance(request.mode, Strict)
        assert "[00:00] Never gonna give you up." in request.prompt
        assert "[01:15] Never gonna let you down." in request.prompt
        assert record.transcript == "Never gonna give you up. Never gonna let you down."
        assert record.title == "Never Gonna Give You Up"

    def test_video_transcribed_with_frames_attached(self, settings):
        model = FakeModel(analysis_json())
        transcriber = FakeTranscriber((3, "Welcome back."))
        record = Analyzer(settings, model, transcriber).analyze_media(
            b"mp4", "video/mp4", frames=[b"frame"]
        )
        request = model.requests[0]
        assert [part.mime_type for part in request.media] == ["image/jpeg"]
        assert "1 still frame(s)" in request.prompt
        assert "video track was transcribed" in request.prompt
        assert record.transcript == "Welcome back."

    def test_silent_video_uses_frames_only(self, settings):
        model = FakeModel(analysis_json())
        record = Analyzer(settings, model, FakeTranscriber()).analyze_media(
            b"mp4", "video/mp4", frames=[b"frame"]
        )
        assert "(no speech detected)" in model.requests[0].prompt
        assert record.transcript is None

    def test_silent_audio_rejected(self, settings):
        model = FakeModel()
        with pytest.raises(InputValidationError, match="No speech"):
            Analyzer(settings, model, FakeTranscriber()).analyze_media(b"mp3", "audio/mpeg")
        assert model.requests == []

    def test_undecodable_audio_propagates(self, settings):
        model = FakeModel()
        transcriber = FakeTranscriber(error=InputValidationError("Could not decode the uploaded audio."))
        with pytest.raises(InputValidationError, match="decode"):
            Analyzer(settings, model, transcriber).analyze_media(b"junk", "audio/wav")
        assert model.requests == []

    def test_unknown_type_rejected(self, settings):
        transcriber = FakeTranscriber()
        with pytest.raises(InputValidationError, match="Unsupported file type"):
            Analyzer(settings, FakeModel(), transcriber).analyze_media(b"zip", "application/zip")
        assert transcriber.calls == []


class TestAnalyzePdf:
    @patch("core.analyzer.extract_text_from_pdf", return_value="[Page 1]\nchapter one\n")
    def test_pdf_analyzed_as_transcript(self, mock_extract, settings):
        model = FakeModel(analysis_json(videoId=None))
        record = Analyzer(settings, model).analyze_pdf(b"%PDF", filename="notes.pdf")
        assert "chapter one" in model.requests[0].prompt
        assert "PDF document: notes.pdf" in model.requests[0].prompt
        assert record.transcript.startswith("[Page 1]")


class TestSideChannels:
    def test_deep_research_forces_topic(self, settings):
        reply = json.dumps({
            "topic": "Something else", "definition": "D", "history": "H",
            "keyConcepts": ["K1"], "relevance": "R", "sources": ["https://a.example"],
        })
        model = FakeModel("```json\n" + reply + "\n```")
        result = Analyzer(settings, model).deep_research("Loyalty")
        assert isinstance(model.requests[0].mode, Grounded)
        assert result.topic == "Loyalty"
        assert result.key_concepts == ["K1"]

    def test_blank_research_topic(self, settings):
        with pytest.raises(InputValidationError):
            Analyzer(settings, FakeModel()).deep_research(" ")

    def test_generate_quiz(self, settings):
        reply = json.dumps({"questions": [
            {"question": "Q", "options": ["a", "b"], "correctAnswer": 1, "explanation": "e"},
        ]})
        model = FakeModel(reply)
        record = sanitize_analysis(json.loads(analysis_json()))
        quiz = Analyzer(settings, model).generate_quiz(record)
        assert isinstance(model.requests[0].mode, Strict)
        assert quiz.questions[0].correct_answer == 1

    def test_ask_question_builds_rag_prompt(self, settings):
        model = FakeModel("It is about loyalty.")
        record = sanitize_analysis(json.loads(analysis_json()))
        history = [ChatMessage(role="user", content="Earlier question", timestamp=1)]

        answer = Analyzer(settings, model).ask_question("What is it about?", record, history)

        assert answer == "It is about loyalty."
        request = model.requests[0]
        assert isinstance(request.mode, Plain)
        assert request.model == settings.chat_model
        assert "Themes: Loyalty, Dance" in request.prompt
        assert "User: Earlier question" in request.prompt
        assert "Transcript not available" in request.prompt

    def test_ask_research_question(self, settings):
        model = FakeModel("Because.")
        research = ResearchResult(topic="Qubits", definition="D", history="H",
                                  key_concepts=["Superposition"], relevance="R")
        answer = Analyzer(settings, model).ask_research_question("Why?", research, [])
        assert answer == "Because."
        assert "Key Concepts: Superposition" in model.requests[0].prompt
