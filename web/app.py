"""
Flask web server for Video Insight.

Routes
──────
GET    /api/health                  Liveness probe
POST   /api/analyze                 {url, videoType} → AnalysisRecord (JSON)
POST   /api/analyze/transcript      {transcript, context, videoType}
POST   /api/analyze/media           multipart: file, frames*, videoType
POST   /api/analyze/pdf             multipart: file, videoType
POST   /api/research                {topic} → ResearchResult
GET    /api/quiz                    Quiz for the active analysis
POST   /api/quiz/regenerate         Start a new quiz request
POST   /api/chat                    {question, context?} → reply message
GET    /api/chat/<context>          Messages + suggested questions
POST   /api/chat/context            {context} switch the active chat
GET    /api/export                  Markdown study notes (attachment)
GET    /api/history                 Stored analyses, newest first
GET    /api/history/<id>            Load a stored analysis as active
DELETE /api/history/<id>            Delete one stored analysis
DELETE /api/history                 Clear the history
GET    /*                           Built front-end (dist/) if present

Every failure answers ``{"error": "<user message>"}`` with a non-2xx status.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import anthropic
from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request, send_from_directory
from werkzeug.exceptions import RequestEntityTooLarge

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from core import history as hist
from core.errors import (
    ConfigurationError,
    ContextBusyError,
    EmptyResponseError,
    InputValidationError,
    InsightError,
    MalformedResponseError,
    MismatchError,
    NetworkError,
    NotFoundError,
)
from core.session import AnalysisSession, describe_error

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DIST_DIR = Path(__file__).resolve().parent.parent / "dist"
UPLOAD_MARGIN_BYTES = 64 * 1024

_STATUS: list[tuple[type[InsightError], int]] = [
    (InputValidationError, 400),
    (ContextBusyError, 409),
    (MismatchError, 422),
    (NotFoundError, 422),
    (MalformedResponseError, 502),
    (EmptyResponseError, 502),
    (NetworkError, 502),
    (ConfigurationError, 500),
]


def _status_for(exc: Exception) -> int:
    for error_type, status in _STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


def _error(exc: Exception):
    return jsonify({"error": describe_error(exc)}), _status_for(exc)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app(settings: Settings | None = None, session: AnalysisSession | None = None) -> Flask:
    """Build the Flask app around one analysis session."""
    settings = settings or Settings()
    app = Flask(__name__, static_folder=None)
    app.config["SETTINGS"] = settings
    app.config["ANALYSIS_SESSION"] = session or AnalysisSession(settings)
    # Bodies above the upload limit (plus form framing) fail with 413 before buffering.
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + UPLOAD_MARGIN_BYTES

    hist.init_db()

    def current() -> AnalysisSession:
        return app.config["ANALYSIS_SESSION"]

    # ── Errors ─────────────────────────────────────────────────────────────

    @app.errorhandler(InsightError)
    def handle_insight_error(exc: InsightError):
        logger.warning("%s: %s", type(exc).__name__, exc)
        return _error(exc)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(exc: RequestEntityTooLarge):
        logger.warning("Rejected upload above %d bytes", app.config["MAX_CONTENT_LENGTH"])
        return jsonify({"error": describe_error(exc)}), 413

    @app.errorhandler(anthropic.APIError)
    def handle_model_error(exc: anthropic.APIError):
        logger.exception("Model request failed")
        return jsonify({"error": describe_error(exc)}), 502

    # ── Health ─────────────────────────────────────────────────────────────

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "model_configured": bool(settings.anthropic_api_key)})

    # ── Analysis ───────────────────────────────────────────────────────────

    @app.route("/api/analyze", methods=["POST"])
    def analyze_url():
        body = _json_body()
        record = current().analyze_url(body.get("url", ""), body.get("videoType"))
        return jsonify(record.to_json())

    @app.route("/api/analyze/transcript", methods=["POST"])
    def analyze_transcript():
        body = _json_body()
        record = current().analyze_transcript(
            body.get("transcript", ""), body.get("context"), body.get("videoType")
        )
        return jsonify(record.to_json())

    @app.route("/api/analyze/media", methods=["POST"])
    def analyze_media():
        upload = request.files.get("file")
        if upload is None:
            raise InputValidationError("No file was uploaded.")
        frames = [frame.read() for frame in request.files.getlist("frames")]
        record = current().analyze_media(
            upload.read(), upload.mimetype, frames, request.form.get("videoType")
        )
        return jsonify(record.to_json())

    @app.route("/api/analyze/pdf", methods=["POST"])
    def analyze_pdf():
        upload = request.files.get("file")
        if upload is None:
            raise InputValidationError("No file was uploaded.")
        record = current().analyze_pdf(
            upload.read(), request.form.get("videoType"), upload.filename or "document.pdf"
        )
        return jsonify(record.to_json())

    # ── Research, quiz, chat ───────────────────────────────────────────────

    @app.route("/api/research", methods=["POST"])
    def research():
        result = current().deep_research(_json_body().get("topic", ""))
        return jsonify(result.model_dump(by_alias=True))

    @app.route("/api/quiz")
    def quiz():
        try:
            result = current().quiz(timeout=settings.request_timeout)
        except InsightError:
            raise
        except Exception as exc:
            logger.exception("Quiz generation failed")
            return jsonify({"error": f"Failed to generate quiz. {describe_error(exc)}"}), 502
        return jsonify(result.model_dump(by_alias=True))

    @app.route("/api/quiz/regenerate", methods=["POST"])
    def regenerate_quiz():
        current().regenerate_quiz()
        return jsonify({"status": "started"}), 202

    @app.route("/api/chat", methods=["POST"])
    def chat():
        body = _json_body()
        reply = current().ask(body.get("question", ""), body.get("context"))
        return jsonify(reply.model_dump(by_alias=True))

    @app.route("/api/chat/context", methods=["POST"])
    def chat_context():
        try:
            active = current().router.force_context(_json_body().get("context", ""))
        except ValueError:
            raise InputValidationError("context must be 'video' or 'research'.") from None
        return jsonify({"context": active.value})

    @app.route("/api/chat/<context>")
    def chat_messages(context: str):
        router = current().router
        try:
            messages = router.messages(context)
        except ValueError:
            return jsonify({"error": "Unknown chat context"}), 404
        return jsonify(
            {
                "context": context,
                "state": router.state(context).value,
                "messages": [m.model_dump(by_alias=True) for m in messages],
                "suggestions": router.suggested_questions(context),
            }
        )

    # ── Export ─────────────────────────────────────────────────────────────

    @app.route("/api/export")
    def export():
        filename, markdown = current().export()
        return Response(
            markdown,
            mimetype="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    # ── History ────────────────────────────────────────────────────────────

    @app.route("/api/history")
    def list_history():
        """Return stored analyses (without embedded records) newest first."""
        return jsonify(
            [
                item.model_dump(by_alias=True, exclude={"data"})
                for item in hist.load_all()
            ]
        )

    @app.route("/api/history/<item_id>")
    def get_history_item(item_id: str):
        item = current().load_from_history(item_id)
        if item is None:
            return jsonify({"error": "Not found"}), 404
        return jsonify(item.model_dump(by_alias=True))

    @app.route("/api/history/<item_id>", methods=["DELETE"])
    def delete_history_item(item_id: str):
        if not hist.delete(item_id):
            return jsonify({"error": "Not found"}), 404
        return jsonify({"deleted": item_id})

    @app.route("/api/history", methods=["DELETE"])
    def clear_history():
        hist.clear()
        return jsonify({"cleared": True})

    # ── Front-end ──────────────────────────────────────────────────────────

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def frontend(path: str):
        if path and (DIST_DIR / path).is_file():
            return send_from_directory(DIST_DIR, path)
        if (DIST_DIR / "index.html").is_file():
            return send_from_directory(DIST_DIR, "index.html")
        return jsonify({"error": "Front-end build not found"}), 404

    return app


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    settings = Settings()
    settings.validate()
    create_app(settings).run(debug=settings.debug, host="0.0.0.0", port=settings.port)
