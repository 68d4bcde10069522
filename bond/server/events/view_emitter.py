"""
ViewEmitter: fan-out of view events to registered listeners (sockets,
loggers, tests).

The core calls fire() synchronously from inside a mutation; listeners that
need to do async work schedule it themselves and return immediately.
"""
from __future__ import annotations

import time
from logging import getLogger
from typing import Callable, List

from .view_types import ViewEvent

logger = getLogger(__name__)


class ViewEmitter:
    def __init__(self) -> None:
        self._listeners: List[Callable[[ViewEvent], None]] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_event(self, callback: Callable[[ViewEvent], None]) -> None:
        """Register a callback that receives every emitted view event."""
        self._listeners.append(callback)

    def off_event(self, callback: Callable[[ViewEvent], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: ViewEvent) -> None:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if "ts" not in payload:
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                # A broken listener must not undo a mutation that already happened.
                logger.exception(f"ViewEmitter: listener {cb!r} failed")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

global_emitter = ViewEmitter()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)
