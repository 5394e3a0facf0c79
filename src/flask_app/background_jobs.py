from __future__ import annotations

import time
from typing import TYPE_CHECKING

import threading

if TYPE_CHECKING:
    from flask_app.state import AppState


def register_thread(app_state: AppState, name: str, thread: threading.Thread) -> None:
    with app_state.background_threads_lock:
        app_state.background_threads[name] = thread


def stop_background_jobs(app_state: AppState, *, join_timeout_seconds: float = 2.0) -> None:
    """Signal background jobs to stop and join them within the timeout."""

    app_state.shutdown_event.set()

    # Snapshot threads to avoid holding the lock during joins.
    with app_state.background_threads_lock:
        threads = dict(app_state.background_threads)

    deadline = time.time() + float(join_timeout_seconds)
    for t in threads.values():
        if t is threading.current_thread():
            continue
        remaining = deadline - time.time()
        if remaining <= 0:
            break
        t.join(timeout=remaining)
