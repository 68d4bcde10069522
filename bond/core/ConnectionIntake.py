from logging import getLogger
from typing import Optional

from .GraphPrimitives import Connection
from .GraphStore import GraphStore
from .ViewSynchronizer import ViewSynchronizer

logger = getLogger(__name__)


class ConnectionIntake:
    """
    The three ways a user can ask for a connection. All of them end up in
    GraphStore.add_connection, which decides whether the connection is made.

    - select_node: click one node to arm it, click another to connect
      (clicking the armed node again cancels).
    - connect_gesture: a drag from one node's anchor onto another's.
    - select_pair_source / select_pair_target / confirm_pair: two pickers and
      a confirm button. After confirming, the source picker is cleared and the
      target is kept, so one person can be connected to many in a row.
    """

    def __init__(self, store: GraphStore, sync: ViewSynchronizer):
        self.store = store
        self.sync = sync
        self.pair_source_id: Optional[str] = None
        self.pair_target_id: Optional[str] = None

        sync.node_select_handler = self.select_node
        sync.rebuild()

    # ── Sequential selection ─────────────────────────────────────────────────

    def select_node(self, person_id: str) -> Optional[Connection]:
        source_id = self.sync.connection_source_id

        if source_id is None:
            if self.store.get_person(person_id) is not None:
                self.sync.set_connection_source(person_id)
            return None

        if source_id == person_id:
            self.sync.set_connection_source(None)
            return None

        # Disarm first: a rejected attempt must not leave the source armed.
        self.sync.set_connection_source(None)
        conn = self.store.add_connection(source_id, person_id)
        if conn is None:
            logger.debug(f"ConnectionIntake: {source_id} -> {person_id} rejected")
        return conn

    def cancel_selection(self) -> None:
        self.sync.set_connection_source(None)

    # ── Drag gesture ─────────────────────────────────────────────────────────

    def connect_gesture(self, source_id: str, target_id: str) -> Optional[Connection]:
        return self.store.add_connection(source_id, target_id)

    # ── Explicit pair ────────────────────────────────────────────────────────

    def select_pair_source(self, person_id: Optional[str]) -> None:
        self.pair_source_id = person_id or None

    def select_pair_target(self, person_id: Optional[str]) -> None:
        self.pair_target_id = person_id or None

    def confirm_pair(self) -> Optional[Connection]:
        conn = self.store.add_connection(self.pair_source_id or "", self.pair_target_id or "")
        self.pair_source_id = None
        return conn
