# src/stardust/web/app.py

"""
HTTP connector: a small Flask app over the task API.

Routes:
- GET  /                 plain-text liveness line
- GET  /api/health       storage probe (per call, never cached)
- GET  /api/tasks        list (public)
- POST /api/tasks        create            (secret required)
- PUT  /api/tasks        replace-all       (secret required)
- PUT  /api/tasks/<id>   merge-update      (secret required)
- DELETE /api/tasks/<id> idempotent delete (secret required)

Every response, errors and preflights included, carries CORS headers
computed by OriginGate.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.errors import InvalidArgument, StardustError, Unauthorized
from ..core.state import AppState
from ..tasks import task_api

logger = logging.getLogger(__name__)

HEALTH_TEXT = "Stardust backend is alive and well."


def _json_body() -> Any:
    # Browsers send JSON as text/plain to skip the preflight; parse it anyway.
    data = request.get_json(force=True, silent=True)
    if data is None:
        raise InvalidArgument("request body must be valid JSON")
    return data


def _require_secret(state: AppState) -> None:
    secret = state.secret_password
    supplied = request.headers.get("Authorization")
    if not secret or supplied is None:
        raise Unauthorized("Invalid passphrase")
    if not hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8")):
        raise Unauthorized("Invalid passphrase")


def create_app(state: AppState) -> Flask:
    app = Flask(__name__)
    app.json.sort_keys = False  # type: ignore[attr-defined]
    app.extensions["stardust_state"] = state

    store = state.task_store
    gate = state.origin_gate

    # ---- CORS ----

    @app.before_request
    def _preflight() -> Response | None:
        if request.method == "OPTIONS":
            return Response(status=204)
        return None

    @app.after_request
    def _cors(response: Response) -> Response:
        for name, value in gate.cors_headers(request.headers.get("Origin")).items():
            response.headers[name] = value
        return response

    # ---- errors ----

    @app.errorhandler(StardustError)
    def _stardust_error(exc: StardustError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc.message, exc_info=exc)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.path, exc.status_code, exc.message)
        body: dict[str, Any] = {"message": exc.message}
        if exc.retryable:
            body["retryable"] = True
        return jsonify(body), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        # Unknown paths and unsupported methods look the same to clients.
        if exc.code in (404, 405):
            return jsonify({"message": "Not Found"}), 404
        return jsonify({"message": exc.description or exc.name}), exc.code or 500

    # ---- routes ----

    @app.get("/")
    def health_text():
        return Response(HEALTH_TEXT, status=200, mimetype="text/plain")

    @app.get("/api/health")
    def health():
        ok = store.ping()
        body: dict[str, Any] = {"status": "ok" if ok else "degraded", "storage": ok}
        if ok:
            body["tasks"] = store.count_tasks()
        return jsonify(body), 200 if ok else 503

    @app.get("/api/tasks")
    def list_tasks():
        return jsonify([t.to_dict() for t in task_api.list_tasks(store)])

    @app.post("/api/tasks")
    def create_task():
        _require_secret(state)
        task = task_api.create_task(store, _json_body())
        return jsonify(task.to_dict()), 201

    @app.put("/api/tasks")
    def replace_tasks():
        _require_secret(state)
        tasks = task_api.replace_tasks(store, _json_body())
        return jsonify([t.to_dict() for t in tasks])

    @app.put("/api/tasks/<task_id>")
    def update_task(task_id: str):
        _require_secret(state)
        task = task_api.update_task(store, task_id, _json_body())
        return jsonify(task.to_dict())

    @app.delete("/api/tasks/<task_id>")
    def delete_task(task_id: str):
        _require_secret(state)
        task_api.delete_task(store, task_id)
        return Response(status=204)

    logger.info(
        "Web app ready (origins=%d, secret=%s)",
        len(gate.allowlist),
        "set" if state.secret_password else "missing",
    )
    return app
