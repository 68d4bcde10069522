"""
GraphState: the process-wide wiring of store, synchronizer and intake.

The routes and the socket server share one GraphState. It is built from the
environment settings when this module is first imported; tests rebuild it on
fresh storage with reload().
"""
from __future__ import annotations

from logging import getLogger
from typing import Optional

from bond.core.ConnectionIntake import ConnectionIntake
from bond.core.GraphStore import STORAGE_KEY, GraphStore
from bond.core.Storage import KeyValueStorage
from bond.core.ViewSynchronizer import Projection, ViewSynchronizer
from bond.server.config import load_settings
from bond.server.events.view_emitter import ViewEmitter, global_emitter
from bond.server.events.view_types import ProjectionEvent, ResetEvent
from bond.server.serializers.graph_serializer import serialize_projection

logger = getLogger(__name__)


class GraphState:
    """Holds the graph store and the view state derived from it."""

    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY, emitter: Optional[ViewEmitter] = None) -> None:
        self.emitter = emitter or global_emitter
        self._wire(storage, key)

    def _wire(self, storage: KeyValueStorage, key: str) -> None:
        self.store = GraphStore(storage, key=key)
        self.sync = ViewSynchronizer(self.store)
        self.intake = ConnectionIntake(self.store, self.sync)
        self.sync.subscribe(self._broadcast)

    def reload(self, storage: KeyValueStorage, key: str = STORAGE_KEY) -> None:
        """Drop all in-memory state and rehydrate from ``storage``."""
        self.sync.unsubscribe(self._broadcast)
        self._wire(storage, key)
        logger.info(f"GraphState: reloaded from {type(storage).__name__} key {key!r}")
        self._broadcast(self.sync.projection)

    def reset(self) -> None:
        self.store.reset()
        self.intake.select_pair_source(None)
        self.intake.select_pair_target(None)
        event: ResetEvent = {"type": "RESET"}
        self.emitter.fire(event)

    # ── Broadcast ────────────────────────────────────────────────────────────

    def _broadcast(self, projection: Projection) -> None:
        event: ProjectionEvent = {"type": "PROJECTION", **serialize_projection(projection)}
        self.emitter.fire(event)


# ---------------------------------------------------------------------------
# Module-level singleton, created once when this module is first imported.
# ---------------------------------------------------------------------------

_settings = load_settings()
graph_state = GraphState(_settings.create_storage(), key=_settings.storage_key)
