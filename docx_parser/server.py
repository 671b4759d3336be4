"""
HTTP Microservice
=================
Flask-based HTTP API for the DOCX question engine.

Conversions are synchronous and stateless: the upload is decoded in
memory and nothing is written to disk.

Endpoints:
    POST   /api/docx-to-questions  → Convert an uploaded .docx
    GET    /api/health             → Health check
    GET    /api/info               → Parser version info
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .builder import DEFAULT_CATEGORY, DEFAULT_MEDIA_URL_TEMPLATE
from .engine import ConversionEngine, ConverterConfig
from .exceptions import InputRejectedError
from .segmenter import NUMBER_PREFIX_PATTERN
from .state_machine import ANSWER_PATTERN, CHOICE_PATTERN

logger = logging.getLogger(__name__)

EXTENSION_NAME = "docx_parser"

DOCX_MIMETYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)

app = Flask(__name__)
CORS(app)


def create_app(config: Optional[dict] = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    app.config.setdefault("MAX_CONTENT_LENGTH", 50 * 1024 * 1024)  # 50MB
    app.config.setdefault("QUESTION_CATEGORY", DEFAULT_CATEGORY)
    app.config.setdefault("MEDIA_URL_TEMPLATE", DEFAULT_MEDIA_URL_TEMPLATE)
    app.config.setdefault("LOG_LEVEL", "INFO")

    # One engine per app, shared by every request
    app.extensions[EXTENSION_NAME] = _build_engine()

    return app


def _build_engine() -> ConversionEngine:
    config = ConverterConfig(
        category=app.config.get("QUESTION_CATEGORY", DEFAULT_CATEGORY),
        media_url_template=app.config.get(
            "MEDIA_URL_TEMPLATE", DEFAULT_MEDIA_URL_TEMPLATE
        ),
        log_level=app.config.get("LOG_LEVEL", "INFO"),
    )
    return ConversionEngine(config)


def _engine() -> ConversionEngine:
    engine = app.extensions.get(EXTENSION_NAME)
    if engine is None:
        engine = app.extensions[EXTENSION_NAME] = _build_engine()
    return engine


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "docx-parser",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Parser version and capability info."""
    return jsonify({
        "version": __version__,
        "engine": "python-docx",
        "capabilities": [
            "block_segmentation",
            "choice_detection",
            "answer_detection",
            "numbering_audit",
            "diagnostics",
        ],
        "grammars": {
            "question": NUMBER_PREFIX_PATTERN.pattern,
            "choice": CHOICE_PATTERN.pattern,
            "answer": ANSWER_PATTERN.pattern,
        },
        "supported_formats": ["docx"],
    })


# ─── Convert Endpoint ─────────────────────────────────────────────────────────


@app.route("/api/docx-to-questions", methods=["POST"])
def docx_to_questions():
    """
    Convert an uploaded .docx into questions.

    Form fields:
        file             The .docx document (required)
        withDiagnostics  "1" to receive {questions, unparsed, stats}

    Returns the bare question list unless diagnostics are requested.
    """
    file = request.files.get("file")
    if file is None:
        return jsonify({"error": "No file uploaded"}), 400

    filename = (file.filename or "").lower()
    if file.mimetype != DOCX_MIMETYPE and not filename.endswith(".docx"):
        return jsonify({"error": "Please upload a .docx file"}), 400

    with_diagnostics = request.form.get("withDiagnostics") == "1"

    try:
        data = file.read()
        if not data:
            raise InputRejectedError("Uploaded file is empty")

        result = _engine().convert_document(data)
    except InputRejectedError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception(f"Conversion failed for {file.filename}")
        return jsonify({"error": str(e) or "Conversion failed"}), 500

    return jsonify(result.to_payload(with_diagnostics=with_diagnostics)), 200


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
