from __future__ import annotations

import logging
import threading

from flask_app.deps import get_state
from flask_app.state import AppState
from flask_app.background_jobs import register_thread

from moon_reactions.application.errors import ServiceError

# App initialization imports
from utils.app_init import (
    init_analyzer,
    init_catalog,
    init_ore_mappings,
    init_price_oracle,
    init_site_inventory,
)


def _shutting_down(state: AppState) -> bool:
    if state.shutdown_event.is_set():
        state.init_state = "Shutdown"
        return True
    return False


def initialize_application(app_state: AppState | None = None, *, warm_prices: bool = False) -> None:
    """Load the bundled data and wire up the analysis components.

    With `warm_prices`, the price cache is filled for every catalog material
    before the app reports Ready; a failure there is only a warning.
    """
    state = app_state or get_state()
    try:
        if _shutting_down(state):
            return

        state.init_state = "Starting Initialization"

        logging.info("Loading reaction formulas...")
        state.init_state = "Loading Formulas"
        state.catalog = init_catalog()

        logging.info("Loading ore mappings...")
        state.init_state = "Loading Ore Mappings"
        state.ore_mappings = init_ore_mappings()

        if _shutting_down(state):
            return

        logging.info("Initializing analyzer...")
        state.init_state = "Initializing Analyzer"
        state.site_inventory = init_site_inventory(state.ore_mappings)
        state.price_oracle = init_price_oracle(state.catalog)
        state.analyzer = init_analyzer(state.catalog, state.price_oracle)

        if warm_prices:
            state.init_state = "Warming Prices"
            try:
                state.price_oracle.warm(state.catalog.material_ids())
            except ServiceError as e:
                state.init_warnings.append(f"Price warm-up failed: {e}")
                logging.warning("Price warm-up failed; continuing startup: %s", e)

        logging.info("All done. Formulas: %s, Ores: %s", len(state.catalog), len(state.ore_mappings))

        state.init_state = "Ready"
        state.init_error = None
    except Exception as e:
        state.init_error = str(e)
        logging.error("Failed to initialize application: %s", e, exc_info=True)
        state.init_state = f"Initialization Failed at step: {state.init_state}"


def start_background_initialization(app_state: AppState | None = None, *, warm_prices: bool = False) -> None:
    """Start initialization in a background thread (idempotent)."""
    state = app_state or get_state()
    if state.shutdown_event.is_set():
        return

    with state.init_lock:
        if state.init_started:
            return
        state.init_started = True

    t = threading.Thread(
        target=initialize_application,
        kwargs={"app_state": state, "warm_prices": warm_prices},
        daemon=True,
        name="app-initializer",
    )
    register_thread(state, "app-initializer", t)
    t.start()


def require_ready(app_state: AppState | None = None) -> AppState:
    s = app_state or get_state()
    if s.init_state != "Ready":
        raise RuntimeError(f"Application not ready: {s.init_state}")
    return s
