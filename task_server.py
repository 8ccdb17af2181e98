#!/usr/bin/env python3
"""
Taskboard Server
----------------
JSON API for the task board, backed by a SQLite database.

Usage:
    python task_server.py
    python task_server.py --port 8080 --db /tmp/taskboard.db

    # or, once installed
    taskboard-server --config taskboard.yaml

API (all responses: { success, data?, message?, count? }):
    POST   /api/auth/register   body { name, email, password }  → 201 user + token
    POST   /api/auth/login      body { email, password }        → user + token
    GET    /api/auth/profile                                    → user
    PUT    /api/auth/profile    body { name?, email?, password? } → user + token
    DELETE /api/auth/profile                                    → removes user and tasks

    GET    /api/tasks?status=pending|in-progress|completed      → { count, data: [task] }
    GET    /api/tasks/<id>                                      → task | 403 | 404
    POST   /api/tasks           body { title, description, due_date, status? } → 201 task
    PUT    /api/tasks/<id>      body: any subset of the above   → task
    DELETE /api/tasks/<id>                                      → { message, data: {} }

    GET    /health

Every /api/tasks and /api/auth/profile call needs
    Authorization: Bearer <token>
"""

import logging
import secrets
import sys
from functools import wraps

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from pkg.taskboard.auth import AuthService
from pkg.taskboard.config import Config
from pkg.taskboard.errors import TaskboardError, Unauthorized
from pkg.taskboard.resource import TaskResource
from pkg.taskboard.store import TaskStore

logger = logging.getLogger("taskboard.server")

app = Flask(__name__)


# ── Config ───────────────────────────────────────────────────────────────────

def configure(cfg: Config) -> None:
    """Copy a Config into app.config. A missing secret gets a throwaway one."""
    secret = cfg.secret_key
    if not secret:
        logger.warning("TASKBOARD_SECRET_KEY not set; tokens will not survive a restart")
        secret = secrets.token_urlsafe(32)
    app.config.update(
        TASKBOARD_DB=cfg.db_path,
        SECRET_KEY=secret,
        TOKEN_MAX_AGE=cfg.token_max_age,
    )


configure(Config.load())


def get_db_path() -> str:
    return app.config["TASKBOARD_DB"]


def get_store() -> TaskStore:
    """One store per request context."""
    if "store" not in g:
        g.store = TaskStore(get_db_path())
    return g.store


def get_auth() -> AuthService:
    return AuthService(get_store(), app.config["SECRET_KEY"], app.config["TOKEN_MAX_AGE"])


def get_tasks() -> TaskResource:
    return TaskResource(get_store())


# ── Envelope + errors ────────────────────────────────────────────────────────

def envelope(status: int = 200, **fields):
    return jsonify({"success": 200 <= status < 300, **fields}), status


def json_body() -> dict:
    """Request body as a dict; anything else counts as empty."""
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


@app.errorhandler(TaskboardError)
def handle_taskboard_error(e: TaskboardError):
    if e.status_code >= 500:
        logger.error(f"{request.method} {request.path} failed: {e.message}")
    return envelope(e.status_code, message=e.message)


@app.errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return envelope(e.code or 500, message=e.description)


@app.errorhandler(Exception)
def handle_unexpected(e: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.path}")
    return envelope(500, message="Server error")


# ── Auth ─────────────────────────────────────────────────────────────────────

def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return ""


def protect(f):
    """Decorator: resolve the bearer token to g.user or answer 401."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise Unauthorized("Not authorized, no token")
        g.user = get_auth().verify(token)
        return f(*args, **kwargs)
    return decorated


def current_principal() -> str:
    """Id of the authenticated caller; only valid inside @protect routes."""
    return g.user.id


def user_with_token(user, token: str) -> dict:
    return {**user.to_dict(), "token": token}


@app.route("/api/auth/register", methods=["POST"])
def api_register():
    data = json_body()
    user, token = get_auth().register(data.get("name"), data.get("email"), data.get("password"))
    return envelope(201, data=user_with_token(user, token))


@app.route("/api/auth/login", methods=["POST"])
def api_login():
    data = json_body()
    user, token = get_auth().login(data.get("email"), data.get("password"))
    return envelope(200, data=user_with_token(user, token))


@app.route("/api/auth/profile", methods=["GET"])
@protect
def api_profile():
    return envelope(200, data=g.user.to_dict())


@app.route("/api/auth/profile", methods=["PUT"])
@protect
def api_update_profile():
    user, token = get_auth().update_profile(current_principal(), json_body())
    return envelope(200, data=user_with_token(user, token))


@app.route("/api/auth/profile", methods=["DELETE"])
@protect
def api_delete_profile():
    get_auth().delete_account(current_principal())
    return envelope(200, message="Account deleted successfully", data={})


# ── Tasks ────────────────────────────────────────────────────────────────────

@app.route("/api/tasks", methods=["GET"])
@protect
def api_list_tasks():
    tasks = get_tasks().list(current_principal(), request.args.get("status"))
    return envelope(200, count=len(tasks), data=[t.to_dict() for t in tasks])


@app.route("/api/tasks/<task_id>", methods=["GET"])
@protect
def api_get_task(task_id):
    task = get_tasks().get(current_principal(), task_id)
    return envelope(200, data=task.to_dict())


@app.route("/api/tasks", methods=["POST"])
@protect
def api_create_task():
    task = get_tasks().create(current_principal(), json_body())
    return envelope(201, data=task.to_dict())


@app.route("/api/tasks/<task_id>", methods=["PUT"])
@protect
def api_update_task(task_id):
    task = get_tasks().update(current_principal(), task_id, json_body())
    return envelope(200, data=task.to_dict())


@app.route("/api/tasks/<task_id>", methods=["DELETE"])
@protect
def api_delete_task(task_id):
    get_tasks().delete(current_principal(), task_id)
    return envelope(200, message="Task deleted successfully", data={})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "db": get_db_path(), "tasks": get_store().count_tasks()})


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Taskboard Server")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to taskboard.db (overrides TASKBOARD_DB env var)")
    args = parser.parse_args(argv)

    cfg = Config.load(args.config)
    if args.db:
        cfg.db_path = args.db
        cfg.resolve_paths()
    host = args.host or cfg.host
    port = args.port or cfg.port

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    configure(cfg)
    TaskStore(cfg.db_path)

    logger.info(f"Serving on http://{host}:{port}  db={cfg.db_path}")
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
