from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any, Optional

import threading


@dataclass
class AppState:
    # Lifecycle
    init_state: str = "Not Started"
    init_error: Optional[str] = None
    init_warnings: list[str] = field(default_factory=list)
    init_lock: threading.Lock = field(default_factory=threading.Lock)
    init_started: bool = False

    # Background job lifecycle
    shutdown_event: threading.Event = field(default_factory=threading.Event)
    background_threads_lock: threading.Lock = field(default_factory=threading.Lock)
    background_threads: dict[str, threading.Thread] = field(default_factory=dict)

    # Components, wired by bootstrap (or directly in tests)
    catalog: Any = None
    ore_mappings: Any = None
    site_inventory: Any = None
    price_oracle: Any = None
    analyzer: Any = None


state = AppState()
