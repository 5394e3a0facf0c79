from __future__ import annotations

import logging

from flask import Flask

from werkzeug.exceptions import HTTPException

from flask_app.http import error
from flask_app.state import AppState, state as default_state

from moon_reactions.application.errors import ServiceError

from flask_app.routes.admin import admin_bp
from flask_app.routes.reactions import reactions_bp


def create_app(app_state: AppState | None = None) -> Flask:
    app = Flask(__name__)

    # Routes resolve the state through flask_app.deps.get_state, so tests and
    # the CLI can hand in their own instance.
    app.extensions["app_state"] = app_state or default_state

    @app.errorhandler(HTTPException)
    def _handle_http_exception(e: HTTPException):
        return error(message=e.description, status_code=e.code or 500)

    @app.errorhandler(ServiceError)
    def _handle_service_error(e: ServiceError):
        extra = {}
        if e.data is not None:
            extra["data"] = e.data
        if e.meta is not None:
            extra["meta"] = e.meta
        return error(message=e.message, status_code=e.status_code, code=type(e).__name__, **extra)

    @app.errorhandler(RuntimeError)
    def _handle_runtime_error(e: RuntimeError):
        # Raised by require_ready() until bootstrap has finished.
        msg = str(e)
        if msg.startswith("Application not ready:"):
            return error(message=msg, status_code=503)
        logging.exception("Unhandled RuntimeError")
        return error(message=msg, status_code=500)

    @app.errorhandler(Exception)
    def _handle_unhandled_exception(e: Exception):
        logging.exception("Unhandled exception")
        return error(message=str(e), status_code=500)

    @app.errorhandler(404)
    def _handle_not_found(_):
        return error(message="Not found", status_code=404)

    # Blueprints
    app.register_blueprint(admin_bp)
    app.register_blueprint(reactions_bp)

    return app
