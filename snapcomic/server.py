import asyncio
import io
import json
import queue
import threading
from typing import Any, Dict, Generator, Optional

from flask import Flask, Response, jsonify, request, send_file

from .compositor import comic_data_uri, download_filename, stitch_document
from .config import DEFAULT_COMIC_TITLE, DEFAULT_PANEL_COUNT, ClientConfig
from .errors import ConfigurationError, PipelineError
from .genai_client import ComicGenAI
from .models import UploadedImage
from .pipeline import RunProgress, run_comic
from .preview import columns_for_width, preview_state, preview_tiles, render_preview_grid
from .utils import pil_to_png_bytes

app = Flask(__name__, static_folder=None)

MAX_PANEL_COUNT = 12


class ComicSession:
    """One pipeline run: its progress, event queue, worker thread and result."""

    def __init__(self, title: str):
        self.title = title
        self.events: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.progress = RunProgress(listener=self.events.put)
        self.thread: Optional[threading.Thread] = None
        self.comic_png: Optional[bytes] = None


class RunState:
    def __init__(self):
        self.upload: Optional[UploadedImage] = None
        self.session: Optional[ComicSession] = None
        self.genai: Optional[ComicGenAI] = None


state = RunState()


def get_genai() -> ComicGenAI:
    """Build the generation client once, from the environment."""
    if state.genai is None:
        state.genai = ComicGenAI(ClientConfig.from_env())
    return state.genai


def pipeline_worker(g: ComicGenAI, upload: UploadedImage, panel_count: int, session: ComicSession):
    events = session.events
    try:
        events.put({"type": "start", "panel_count": panel_count})
        document = asyncio.run(run_comic(g, upload, panel_count, session.title, session.progress))

        events.put({"type": "step", "step": "final",
                    "message": "Creating final comic layout..."})
        session.comic_png = stitch_document(document)
        events.put({"type": "done", "filename": download_filename(session.title)})
    except PipelineError as e:
        events.put({"type": "error", "message": str(e), "kind": e.kind})
    except Exception as e:
        print(f"[ERROR] Comic run failed: {e}")
        events.put({"type": "error", "message": str(e)})


@app.route("/api/upload", methods=["POST"])
def api_upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400
    file = request.files["file"]
    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400
    mime_type = file.mimetype or ""
    if not mime_type.startswith("image/"):
        return jsonify({"error": "Only image files are allowed"}), 400

    data = file.read()
    if not data:
        return jsonify({"error": "Uploaded file is empty"}), 400
    state.upload = UploadedImage(data=data, filename=file.filename, mime_type=mime_type)
    return jsonify({"filename": file.filename, "mime_type": mime_type, "size": len(data)})


@app.route("/api/start", methods=["POST"])
def api_start():
    data = request.get_json(silent=True) or {}
    if state.upload is None:
        return jsonify({"error": "No image uploaded"}), 400

    try:
        panel_count = int(data.get("panel_count", DEFAULT_PANEL_COUNT))
    except (TypeError, ValueError):
        return jsonify({"error": "panel_count must be an integer"}), 400
    if not 1 <= panel_count <= MAX_PANEL_COUNT:
        return jsonify({"error": f"panel_count must be between 1 and {MAX_PANEL_COUNT}"}), 400
    title = (data.get("title") or DEFAULT_COMIC_TITLE).strip() or DEFAULT_COMIC_TITLE

    session = state.session
    if session and session.thread and session.thread.is_alive():
        return jsonify({"error": "A comic is already being generated"}), 409

    try:
        g = get_genai()
    except ConfigurationError as e:
        return jsonify({"error": str(e)}), 500

    session = ComicSession(title)
    t = threading.Thread(target=pipeline_worker, args=(
        g, state.upload, panel_count, session), daemon=True)
    session.thread = t
    state.session = session
    t.start()
    return jsonify({"panel_count": panel_count, "title": title})


@app.route("/api/stream")
def api_stream() -> Response:
    session = state.session
    if session is None:
        return jsonify({"error": "No comic run"}), 404

    def gen() -> Generator[str, None, None]:
        yield "event: ping\n" "data: {}\n\n"
        while True:
            try:
                evt = session.events.get(timeout=60)
            except queue.Empty:
                yield "event: ping\n" "data: {}\n\n"
                continue
            yield f"data: {json.dumps(evt)}\n\n"
            if evt.get("type") in {"done", "error"}:
                break
    return Response(gen(), mimetype="text/event-stream")


def _current_preview():
    progress = state.session.progress if state.session else RunProgress()
    return preview_state(progress)


@app.route("/api/preview")
def api_preview():
    session = state.session
    width = request.args.get("width", type=int) or 1024
    pv = _current_preview()
    return jsonify({
        "state": type(pv).__name__,
        "in_progress": bool(session and session.progress.in_progress),
        "error": session.progress.error if session else None,
        "columns": columns_for_width(width),
        "tiles": [t.model_dump() for t in preview_tiles(pv)],
    })


@app.route("/api/preview.png")
def api_preview_png():
    width = request.args.get("width", type=int) or 1024
    img = render_preview_grid(_current_preview(), columns=columns_for_width(width))
    return send_file(io.BytesIO(pil_to_png_bytes(img)), mimetype="image/png")


def _finished_comic():
    session = state.session
    if session is None or session.comic_png is None:
        return None, None
    return session, session.comic_png


@app.route("/api/comic")
def api_comic():
    session, png = _finished_comic()
    if png is None:
        return jsonify({"error": "Comic not ready"}), 409
    return send_file(io.BytesIO(png), mimetype="image/png", as_attachment=True,
                     download_name=download_filename(session.title))


@app.route("/api/comic/data_uri")
def api_comic_data_uri():
    session, png = _finished_comic()
    if png is None:
        return jsonify({"error": "Comic not ready"}), 409
    return jsonify({"data_uri": comic_data_uri(png),
                    "filename": download_filename(session.title)})


@app.route("/api/reset", methods=["POST"])
def api_reset():
    # requests already issued by a running worker are not cancelled
    state.upload = None
    state.session = None
    return jsonify({"success": True})


if __name__ == "__main__":
    app.run(host="127.0.0.1", port=5001, debug=True, threaded=True)
