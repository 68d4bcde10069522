import random
from logging import getLogger
from typing import Callable, Iterator, List, Optional, Tuple

from .GraphPrimitives import Connection, Graph, Person, Position
from .Storage import KeyValueStorage

logger = getLogger(__name__)

STORAGE_KEY = "bond-app-data"

# Where a node sits when it has no stored position.
DEFAULT_POSITION = Position(x=250, y=200)

# New people spawn at a random point inside this square so they do not land
# on top of each other.
PLACEMENT_ORIGIN = 100
PLACEMENT_SPAN = 300

UNKNOWN_NAME = "Unknown"

GraphListener = Callable[[Graph], None]


class GraphStore:
    """
    Owns the authoritative graph.

    Every mutation goes through one of the operations below. Rejected input
    (empty names, self-connections, duplicate pairs, unknown ids) is a silent
    no-op: the graph is left untouched, nothing is written and no listener
    fires. Every mutation that does change state writes the whole blob to
    storage, replaces the graph and then notifies subscribers, in that order,
    before returning. If the write raises, the graph is left as it was.
    """

    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY, rng: Optional[random.Random] = None):
        self.storage = storage
        self.key = key
        self._rng = rng or random.Random()
        self._listeners: List[GraphListener] = []
        self._graph = Graph.from_json(storage.get(key))
        logger.debug(f"GraphStore: loaded {len(self._graph.people)} people, {len(self._graph.connections)} connections")

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def user(self) -> Optional[Person]:
        return self._graph.find_user()

    def get_person(self, person_id: str) -> Optional[Person]:
        return self._graph.find_person(person_id)

    def person_name(self, person_id: str) -> str:
        person = self._graph.find_person(person_id)
        return person.name if person else UNKNOWN_NAME

    def describe_connections(self) -> Iterator[Tuple[Connection, str]]:
        for conn in self._graph.connections:
            yield conn, f"{self.person_name(conn.from_id)} ↔ {self.person_name(conn.to_id)}"

    def snapshot(self) -> Graph:
        return self._graph.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def subscribe(self, callback: GraphListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: GraphListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_as_user(self, name: str) -> Optional[Person]:
        """Start over with ``name`` as the only person. Identity is a reset boundary."""
        name = (name or "").strip()
        if not name:
            return None

        user = Person(name=name, is_user=True, position=DEFAULT_POSITION.model_copy())
        self._commit(Graph(people=[user], connections=[]))
        logger.debug(f"GraphStore: user set to {user!r}")
        return user

    def add_person(self, name: str) -> Optional[Person]:
        name = (name or "").strip()
        if not name:
            return None

        person = Person(
            name=name,
            is_user=False,
            position=Position(
                x=self._rng.random() * PLACEMENT_SPAN + PLACEMENT_ORIGIN,
                y=self._rng.random() * PLACEMENT_SPAN + PLACEMENT_ORIGIN,
            ),
        )
        self._commit(Graph(
            people=[*self._graph.people, person],
            connections=list(self._graph.connections),
        ))
        logger.debug(f"GraphStore: added {person!r}")
        return person

    def remove_person(self, person_id: str) -> bool:
        # Connections touching the person go in the same commit.
        if self._graph.find_person(person_id) is None:
            return False

        self._commit(Graph(
            people=[p for p in self._graph.people if p.id != person_id],
            connections=[c for c in self._graph.connections if not c.touches(person_id)],
        ))
        logger.debug(f"GraphStore: removed person {person_id}")
        return True

    def add_connection(self, from_id: str, to_id: str) -> Optional[Connection]:
        """
        The single validator for every way of creating a connection.

        Returns the new connection, or None when the request is rejected
        (empty or equal ids, an endpoint not in the graph, or the unordered
        pair already connected).
        """
        if not from_id or not to_id:
            return None
        if from_id == to_id:
            return None
        ids = self._graph.person_ids()
        if from_id not in ids or to_id not in ids:
            return None
        if self._graph.has_connection_between(from_id, to_id):
            return None

        conn = Connection(from_id=from_id, to_id=to_id)
        self._commit(Graph(
            people=list(self._graph.people),
            connections=[*self._graph.connections, conn],
        ))
        logger.debug(f"GraphStore: connected {from_id} <-> {to_id}")
        return conn

    def remove_connection(self, connection_id: str) -> bool:
        if not any(c.id == connection_id for c in self._graph.connections):
            return False

        self._commit(Graph(
            people=list(self._graph.people),
            connections=[c for c in self._graph.connections if c.id != connection_id],
        ))
        return True

    def update_person_position(self, person_id: str, position: Position) -> bool:
        if self._graph.find_person(person_id) is None:
            return False
        if not position.is_finite():
            logger.warning(f"GraphStore: ignoring non-finite position for {person_id}")
            return False

        moved = Position(x=position.x, y=position.y)
        self._commit(Graph(
            people=[
                p.model_copy(update={"position": moved}) if p.id == person_id else p
                for p in self._graph.people
            ],
            connections=list(self._graph.connections),
        ))
        return True

    def reset(self) -> None:
        """Drop everything, including the stored blob."""
        self.storage.remove(self.key)
        self._graph = Graph.empty()
        logger.info("GraphStore: graph reset")
        self._notify()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, graph: Graph) -> None:
        # A failed write propagates and leaves the current graph in place.
        self.storage.set(self.key, graph.to_json())
        self._graph = graph
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self._graph)
            except Exception:
                logger.exception(f"GraphStore: listener {callback!r} failed")
