#!/usr/bin/env python3
"""appforge - HTTP server: run trigger, SSE progress stream, artifact queries."""

import logging
import os
import queue
import threading

from flask import Flask, Response, jsonify, request

from config.stacks import STACKS
from core.categories import category_for_path, normalize_category
from core.errors import AuthorizationError, GenerationPipelineError
from core.events import ProgressEvent
from core.pipeline import build_pipeline
from core.sse import encode_event
from core.state import GeneratedFile
from core.store import ArtifactStore
from core.validator import CodeValidator
from utils.llm import LLMClient

logger = logging.getLogger(__name__)


def load_tokens(raw=None):
    """Parse APPFORGE_AUTH_TOKENS ("token:user,token:user") into {token: user}."""
    raw = os.environ.get("APPFORGE_AUTH_TOKENS", "") if raw is None else raw
    tokens = {}
    for pair in raw.split(","):
        token, _, user = pair.strip().partition(":")
        if token and user:
            tokens[token] = user
    return tokens


def _default_llm_factory(model=None):
    return LLMClient(model=model)


def create_app(store=None, llm_factory=None, tokens=None):
    app = Flask(__name__)
    app.config["STORE"] = store or ArtifactStore()
    app.config["LLM_FACTORY"] = llm_factory or _default_llm_factory
    app.config["AUTH_TOKENS"] = load_tokens() if tokens is None else dict(tokens)

    def _store():
        return app.config["STORE"]

    def _authenticate(data=None):
        """Return the calling user or raise AuthorizationError (401)."""
        header = request.headers.get("Authorization", "")
        token = header[7:].strip() if header.startswith("Bearer ") else ""
        if not token and data:
            token = data.get("authToken", "")
        user = app.config["AUTH_TOKENS"].get(token) if token else None
        if not user:
            raise AuthorizationError("Missing or invalid auth token", status=401)
        return user

    def _owned_project(project_id, user):
        project = _store().get_project(project_id)
        if project is None:
            return None
        if project.owner != user:
            raise AuthorizationError("Project belongs to another user", status=403)
        return project

    @app.errorhandler(AuthorizationError)
    def _auth_error(e):
        return jsonify({"error": str(e)}), e.status

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/projects", methods=["POST"])
    def api_create_project():
        data = request.get_json(silent=True) or {}
        user = _authenticate(data)
        name = (data.get("name") or "").strip()
        if not name:
            return jsonify({"error": "Missing name"}), 400
        project = _store().create_project(user, name)
        return jsonify(project.to_dict()), 201

    @app.route("/api/projects/<project_id>/artifacts")
    def api_artifacts(project_id):
        user = _authenticate()
        if _owned_project(project_id, user) is None:
            return jsonify({"error": "Project not found"}), 404
        artifacts = _store().list_artifacts_by_project(project_id)
        return jsonify([a.to_dict() for a in artifacts])

    @app.route("/api/projects/<project_id>/runs", methods=["POST"])
    def api_create_run(project_id):
        data = request.get_json(silent=True) or {}
        user = _authenticate(data)
        if _owned_project(project_id, user) is None:
            return jsonify({"error": "Project not found"}), 404
        run, error = _new_run(project_id, data)
        if error:
            return jsonify({"error": error}), 400
        return jsonify(run.to_dict()), 201

    @app.route("/api/runs/<run_id>")
    def api_run(run_id):
        user = _authenticate()
        run = _store().get_run(run_id)
        if run is None or _owned_project(run.project_id, user) is None:
            return jsonify({"error": "Run not found"}), 404
        return jsonify(run.to_dict())

    @app.route("/api/validate", methods=["POST"])
    def api_validate():
        data = request.get_json(silent=True) or {}
        items = data.get("files")
        if not isinstance(items, list) or not items:
            return jsonify({"error": "Missing files"}), 400
        files = []
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("path"), str) or not item["path"] \
                    or not isinstance(item.get("content"), str):
                return jsonify({"error": "Each file needs a path and string content"}), 400
            if not all(isinstance(item.get(key, []), list) for key in ("imports", "exports")):
                return jsonify({"error": "imports and exports must be lists"}), 400
            category = item.get("type") or item.get("category")
            files.append(GeneratedFile(
                path=item["path"],
                content=item["content"],
                category=normalize_category(category) if category else category_for_path(item["path"]),
                imports=tuple(item.get("imports", ())),
                exports=tuple(item.get("exports", ())),
            ))
        report = CodeValidator().validate_project(files, project_type=data.get("projectType", "nextjs"))
        return jsonify(report.to_dict())

    def _new_run(project_id, data):
        specification = (data.get("specification") or data.get("inputSpec") or "").strip()
        if not specification:
            return None, "Missing specification"
        project_type = data.get("projectType") or ""
        if project_type and project_type not in STACKS:
            return None, f"Unknown projectType: {project_type}"
        run = _store().create_run(
            project_id, specification,
            project_type=project_type,
            preferences=data.get("preferences") or {},
            model=data.get("model") or "",
        )
        return run, None

    @app.route("/api/stream-generate", methods=["POST"])
    def api_stream_generate():
        """Start (or resume a pending) run and stream its progress as server-sent events."""
        data = request.get_json(silent=True) or {}
        user = _authenticate(data)

        run_id = data.get("runId")
        if run_id:
            run = _store().get_run(run_id)
            if run is None or _owned_project(run.project_id, user) is None:
                return jsonify({"error": "Run not found"}), 404
            if run.status != "pending":
                return jsonify({"error": f"Run already {run.status}"}), 409
        else:
            project_id = data.get("projectId")
            if not project_id:
                return jsonify({"error": "Missing projectId"}), 400
            if _owned_project(project_id, user) is None:
                return jsonify({"error": "Project not found"}), 404
            run, error = _new_run(project_id, data)
            if error:
                return jsonify({"error": error}), 400

        events = queue.Queue()
        cancel = threading.Event()
        worker = threading.Thread(
            target=_run_worker,
            args=(run, bool(data.get("batch")), events, cancel),
            name=f"run-{run.id}",
            daemon=True,
        )
        worker.start()

        def generate():
            try:
                yield encode_event(ProgressEvent.connection_test())
                while True:
                    event = events.get()
                    if event is None:
                        break
                    yield encode_event(event)
            finally:
                # caller disconnected or stream finished: stop issuing model calls
                cancel.set()

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no", "X-Run-Id": run.id},
        )

    def _run_worker(run, batch, events, cancel):
        terminal = []

        def emit(event):
            if terminal:
                return
            if event.is_terminal:
                terminal.append(event)
            events.put(event)

        try:
            with app.config["LLM_FACTORY"](run.model or None) as llm:
                build_pipeline(llm, _store(), batch=batch).run(run, emit, cancel)
        except GenerationPipelineError as e:
            logger.warning("Run %s failed before generation: %s", run.id, e)
            _store().update_run(run.id, status="failed", error=str(e))
            emit(ProgressEvent.run_failed(str(e), runId=run.id))
        except Exception as e:
            logger.exception("Run %s crashed", run.id)
            _store().update_run(run.id, status="failed", error=f"Internal error: {e}")
            emit(ProgressEvent.run_failed(f"Internal error: {e}", runId=run.id))
        finally:
            events.put(None)

    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 5001))
    print(f"appforge running at http://localhost:{port}")
    app.run(debug=False, port=port, threaded=True)
