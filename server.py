"""
Vibe Writer — Flask API Server
Bridges the editor front-end to the writing session.

Endpoints:
  GET   /api/status                     — health check + current state
  GET   /api/document                   — document content, mode and stats
  PUT   /api/document                   — replace content (re-arms the 30s live-context timer)
  GET   /api/library                    — list research snippets
  POST  /api/library                    — add a snippet
  POST  /api/library/upload             — add an uploaded text or PDF document (multipart or JSON)
  GET   /api/export/bib                 — download the library as BibTeX
  GET   /api/suggestions                — live context feed
  POST  /api/citations/find             — up to 3 citations for a selection
  POST  /api/citations/insert           — insert \\cite{} for a snippet into the document
  GET   /api/style                      — active style profile
  PUT   /api/style                      — replace the profile (missing fields take defaults)
  POST  /api/style/calibrate            — analyze document (or given text) into a new profile
  POST  /api/style/draft/open           — start editing a copy of the active profile
  GET   /api/style/draft                — current settings draft
  PATCH /api/style/draft                — edit draft fields
  POST  /api/style/draft/preset/<name>  — apply a preset to the draft
  POST  /api/style/draft/punctuation    — toggle an allowed punctuation mark
  POST  /api/style/draft/save           — make the draft the active profile
  POST  /api/style/draft/sample         — generate sample text from the draft
  POST  /api/ghostwrite                 — append an AI paragraph to the document
  POST  /api/rewrite                    — rewrite a selection in the active style
  POST  /api/continue                   — continue after a selection
"""

import sys
from pathlib import Path
from datetime import datetime
from io import BytesIO
from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

# ── Path setup ────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BASE_DIR))

from vibewriter.library import read_upload, to_bibtex
from vibewriter.models import ResearchSnippet
from vibewriter.profiles import UnknownPresetError, PRESETS, PUNCTUATION_OPTIONS
from vibewriter.session import (
    WritingSession,
    UnknownSnippetError,
    GenerationInProgress,
)
from vibewriter.utils import setup_logger, new_snippet_id
from vibewriter.writing import GenerationError

logger = setup_logger(__name__)


app = Flask(__name__)
CORS(app)  # Allow the editor front-end to call the API

# ── Session state ─────────────────────────────────────────
writing_session = WritingSession()


# ── Helpers ───────────────────────────────────────────────
def _body() -> dict:
    """JSON request body; anything that is not an object counts as empty."""
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


def _optional_int(value):
    return None if value is None else int(value)


def _snippets(items):
    return [s.to_dict() for s in items]


def _error(e: Exception, context: str):
    """Map a session exception to a JSON error response."""
    if isinstance(e, UnknownSnippetError):
        return jsonify({"error": f"Unknown snippet: {e.args[0]}"}), 404
    if isinstance(e, UnknownPresetError):
        return jsonify({"error": f"Unknown preset: {e.args[0]}", "presets": sorted(PRESETS)}), 404
    if isinstance(e, ValueError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, GenerationInProgress):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, GenerationError):
        logger.error(f"{context} error: {e}")
        return jsonify({"error": f"Generation failed: {e}"}), 502
    logger.error(f"{context} error: {e}")
    return jsonify({"error": str(e)}), 500


# ── Routes ────────────────────────────────────────────────

@app.route("/api/status")
def api_status():
    s = writing_session
    return jsonify({
        "ok": True,
        "provider": s.provider,
        "library_size": len(s.library),
        "live_suggestions": len(s.live_suggestions),
        "ghost_writing": s.ghost_writing,
        "live_context_pending": s.watcher.pending,
        "stats": s.stats(),
        "mode": s.mode,
        "timestamp": datetime.now().isoformat(),
    })


# ── Document ──────────────────────────────────────────────

@app.route("/api/document")
def api_document():
    s = writing_session
    return jsonify({"content": s.content, "mode": s.mode, "stats": s.stats()})


@app.route("/api/document", methods=["PUT"])
def api_document_update():
    body = _body()
    content = body.get("content")
    if not isinstance(content, str):
        return jsonify({"error": "content (string) is required"}), 400
    try:
        writing_session.set_content(content, mode=body.get("mode"))
        return jsonify({"ok": True, "stats": writing_session.stats(), "mode": writing_session.mode})
    except Exception as e:
        return _error(e, "Document")


# ── Library ───────────────────────────────────────────────

@app.route("/api/library")
def api_library():
    library = writing_session.library
    return jsonify({"snippets": _snippets(library), "count": len(library)})


@app.route("/api/library", methods=["POST"])
def api_library_add():
    body = _body()
    if not body.get("content"):
        return jsonify({"error": "content is required"}), 400
    try:
        data = dict(body)
        data.setdefault("id", new_snippet_id((s.id for s in writing_session.library), prefix="user"))
        snippet = writing_session.add_snippet(ResearchSnippet.from_dict(data))
        return jsonify({"snippet": snippet.to_dict()}), 201
    except Exception as e:
        return _error(e, "Library")


@app.route("/api/library/upload", methods=["POST"])
def api_library_upload():
    try:
        upload = request.files.get("file")
        if upload is not None:
            filename = upload.filename or "upload.txt"
            text = read_upload(filename, upload.read())
        else:
            body = _body()
            filename = body.get("filename") or "upload.txt"
            text = body.get("text") or ""
        if not text.strip():
            return jsonify({"error": "Uploaded document is empty"}), 400

        snippet = writing_session.add_uploaded_document(filename, text)
        return jsonify({"snippet": snippet.to_dict()}), 201
    except Exception as e:
        return _error(e, "Upload")


@app.route("/api/export/bib")
def api_export_bib():
    """Return the research library as a downloadable BibTeX file."""
    bibtex = to_bibtex(writing_session.library)
    return send_file(
        BytesIO(bibtex.encode("utf-8")),
        as_attachment=True,
        download_name="references.bib",
        mimetype="text/plain",
    )


# ── Citations ─────────────────────────────────────────────

@app.route("/api/suggestions")
def api_suggestions():
    return jsonify({"suggestions": _snippets(writing_session.live_suggestions)})


@app.route("/api/citations/find", methods=["POST"])
def api_citations_find():
    selection = _body().get("selection", "")
    if not isinstance(selection, str):
        return jsonify({"error": "selection must be a string"}), 400
    try:
        citations = writing_session.find_citations(selection)
        return jsonify({"citations": _snippets(citations), "count": len(citations)})
    except Exception as e:
        return _error(e, "Citation")


@app.route("/api/citations/insert", methods=["POST"])
def api_citations_insert():
    body = _body()
    snippet_id = body.get("id")
    if not snippet_id:
        return jsonify({"error": "id is required"}), 400
    try:
        command = writing_session.insert_citation(str(snippet_id), _optional_int(body.get("position")))
        return jsonify({"citation": command, "content": writing_session.content})
    except Exception as e:
        return _error(e, "Citation")


# ── Style ─────────────────────────────────────────────────

@app.route("/api/style")
def api_style():
    return jsonify({
        "profile": writing_session.profile.to_dict(),
        "presets": sorted(PRESETS),
        "punctuation_options": PUNCTUATION_OPTIONS,
    })


@app.route("/api/style", methods=["PUT"])
def api_style_replace():
    try:
        profile = writing_session.replace_profile(_body())
        return jsonify({"profile": profile.to_dict()})
    except Exception as e:
        return _error(e, "Style")


@app.route("/api/style/calibrate", methods=["POST"])
def api_style_calibrate():
    try:
        profile = writing_session.calibrate(_body().get("text"))
        return jsonify({"profile": profile.to_dict()})
    except Exception as e:
        return _error(e, "Calibration")


@app.route("/api/style/draft/open", methods=["POST"])
def api_style_draft_open():
    return jsonify({"draft": writing_session.open_settings().to_dict()})


@app.route("/api/style/draft")
def api_style_draft():
    return jsonify({"draft": writing_session.draft.to_dict()})


@app.route("/api/style/draft", methods=["PATCH"])
def api_style_draft_update():
    try:
        draft = writing_session.update_draft(_body())
        return jsonify({"draft": draft.to_dict()})
    except Exception as e:
        return _error(e, "Settings")


@app.route("/api/style/draft/preset/<name>", methods=["POST"])
def api_style_draft_preset(name):
    try:
        return jsonify({"draft": writing_session.apply_preset(name).to_dict()})
    except Exception as e:
        return _error(e, "Preset")


@app.route("/api/style/draft/punctuation", methods=["POST"])
def api_style_draft_punctuation():
    mark = _body().get("mark")
    if not mark:
        return jsonify({"error": "mark is required"}), 400
    try:
        return jsonify({"draft": writing_session.toggle_punctuation(mark).to_dict()})
    except Exception as e:
        return _error(e, "Settings")


@app.route("/api/style/draft/save", methods=["POST"])
def api_style_draft_save():
    try:
        profile = writing_session.save_settings(_body().get("banned_words"))
        return jsonify({"profile": profile.to_dict()})
    except Exception as e:
        return _error(e, "Settings")


@app.route("/api/style/draft/sample", methods=["POST"])
def api_style_draft_sample():
    try:
        text = writing_session.generate_style_sample(_body().get("banned_words"))
        return jsonify({"sample": text})
    except Exception as e:
        return _error(e, "Sample")


# ── Ghost writing ─────────────────────────────────────────

@app.route("/api/ghostwrite", methods=["POST"])
def api_ghostwrite():
    try:
        content = writing_session.ghost_write()
        return jsonify({
            "content": content,
            "suggestions": _snippets(writing_session.live_suggestions),
            "stats": writing_session.stats(),
        })
    except Exception as e:
        return _error(e, "Ghost write")


@app.route("/api/rewrite", methods=["POST"])
def api_rewrite():
    body = _body()
    selection = body.get("selection", "")
    if not isinstance(selection, str) or not selection.strip():
        return jsonify({"error": "selection is required"}), 400
    try:
        rewritten = writing_session.rewrite(
            selection, _optional_int(body.get("start")), _optional_int(body.get("end"))
        )
        return jsonify({"text": rewritten, "content": writing_session.content})
    except Exception as e:
        return _error(e, "Rewrite")


@app.route("/api/continue", methods=["POST"])
def api_continue():
    body = _body()
    selection = body.get("selection", "")
    if not isinstance(selection, str) or not selection.strip():
        return jsonify({"error": "selection is required"}), 400
    try:
        continuation = writing_session.continue_text(selection, _optional_int(body.get("end")))
        return jsonify({"text": continuation, "content": writing_session.content})
    except Exception as e:
        return _error(e, "Continue")


# ── Run ───────────────────────────────────────────────────

if __name__ == "__main__":
    print("\n" + "="*50)
    print("  VIBE WRITER — API SERVER")
    print("  http://localhost:5000")
    print("="*50 + "\n")
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
