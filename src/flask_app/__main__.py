from __future__ import annotations

from flask_app.app import create_app
from flask_app.bootstrap import start_background_initialization
from flask_app.settings import flask_debug, flask_host, flask_port, warm_prices_on_startup
from utils.logging_setup import configure_logging


def run_server(*, host: str | None = None, port: int | None = None) -> None:
    app = create_app()

    # Loading is quick, but price warm-up may hit the network; /health reports progress.
    start_background_initialization(app_state=app.extensions.get("app_state"), warm_prices=warm_prices_on_startup())

    # Avoid Werkzeug reloader to prevent double-starting.
    app.run(host=host or flask_host(), port=port or flask_port(), debug=flask_debug(), use_reloader=False)


def main() -> None:
    configure_logging(default_level="INFO")
    run_server()


if __name__ == "__main__":
    main()
