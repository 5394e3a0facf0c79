from __future__ import annotations

import logging
import os
import signal

from flask import Blueprint, jsonify, request

from flask_app.background_jobs import stop_background_jobs
from flask_app.deps import get_state
from flask_app.http import ok, error


admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/health")
def health_check():
    state = get_state()
    if state.init_state != "Ready":
        payload = {"status": "not_ready", "init_state": state.init_state}
        if state.init_error:
            payload["error"] = state.init_error
        return jsonify(payload), 503

    payload = {"status": "OK"}
    if state.init_warnings:
        payload["warnings"] = list(state.init_warnings)
    return jsonify(payload), 200


@admin_bp.route("/shutdown", methods=["GET", "POST"])
def shutdown():
    """Shutdown the Flask server."""
    try:
        logging.info("Shutdown request received")
        stop_background_jobs(get_state())

        # For Windows
        if os.name == "nt":
            os.kill(os.getpid(), signal.SIGTERM)
        else:
            # For Unix-like systems
            func = request.environ.get("werkzeug.server.shutdown")
            if func is None:
                os.kill(os.getpid(), signal.SIGTERM)
            else:
                func()

        return ok(message="Server shutting down...")
    except Exception as e:
        logging.error("Error during shutdown: %s", e)
        return error(message=str(e))
