"""
ViewSynchronizer: keeps the rendered node/edge list in step with the store.

The store's graph is authoritative. The render projection is derived from it
(plus transient interaction state such as the pending connection source) and
is thrown away and rebuilt whenever the graph changes. The only time two
copies of a position exist is during a drag: the surface's position change is
applied to the render node straight away so the drag stays responsive, then
forwarded to the store. Once the whole change batch has been forwarded, the
projection is rebuilt from the stored positions and listeners are notified
once. The projection is never edited and persisted independently, so the two
copies cannot drift apart.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

from .Geometry import Box, EdgePath, floating_edge
from .GraphPrimitives import Graph, Position
from .GraphStore import DEFAULT_POSITION, GraphStore
from .Types import EdgeChangeType, NodeChangeType

logger = getLogger(__name__)

NODE_TYPE = "person"
EDGE_TYPE = "floating"
EDGE_STYLE = {"strokeWidth": 2, "stroke": "#64748b"}


@dataclass
class RenderNode:
    id: str
    position: Position
    data: Dict[str, object]
    type: str = NODE_TYPE
    selected: bool = False
    # In-process affordances; never serialized.
    on_remove: Optional[Callable[[], object]] = field(default=None, repr=False, compare=False)
    on_select: Optional[Callable[[], object]] = field(default=None, repr=False, compare=False)


@dataclass
class RenderEdge:
    id: str
    source: str
    target: str
    type: str = EDGE_TYPE
    style: Dict[str, object] = field(default_factory=lambda: dict(EDGE_STYLE))
    selected: bool = False


@dataclass
class NodeChange:
    """One entry of a node change batch reported by the rendering surface."""
    type: NodeChangeType
    id: str
    position: Optional[Position] = None
    dragging: bool = False
    width: Optional[float] = None
    height: Optional[float] = None
    selected: Optional[bool] = None


@dataclass
class EdgeChange:
    type: EdgeChangeType
    id: str
    selected: Optional[bool] = None


class Projection(NamedTuple):
    nodes: List[RenderNode]
    edges: List[RenderEdge]
    connection_source_id: Optional[str]


ProjectionListener = Callable[[Projection], None]


def project(
    graph: Graph,
    connection_source_id: Optional[str] = None,
    selected_node_ids: FrozenSet[str] = frozenset(),
    selected_edge_ids: FrozenSet[str] = frozenset(),
    on_remove: Optional[Callable[[str], object]] = None,
    on_select: Optional[Callable[[str], object]] = None,
) -> Projection:
    """Build the render projection for ``graph``. Pure apart from binding callbacks."""
    nodes = []
    for person in graph.people:
        position = person.position or DEFAULT_POSITION
        removable = not person.is_user
        nodes.append(RenderNode(
            id=person.id,
            position=Position(x=position.x, y=position.y),
            data={
                "name": person.name,
                "isUser": person.is_user,
                "isConnectionSource": person.id == connection_source_id,
                "removable": removable,
            },
            selected=person.id in selected_node_ids,
            on_remove=partial(on_remove, person.id) if on_remove and removable else None,
            on_select=partial(on_select, person.id) if on_select else None,
        ))

    edges = [
        RenderEdge(
            id=conn.id,
            source=conn.from_id,
            target=conn.to_id,
            selected=conn.id in selected_edge_ids,
        )
        for conn in graph.connections
    ]
    return Projection(nodes, edges, connection_source_id)


class ViewSynchronizer:
    def __init__(self, store: GraphStore):
        self.store = store
        self.connection_source_id: Optional[str] = None
        # Measured (width, height) per node, as reported by the surface.
        self.dimensions: Dict[str, Tuple[float, float]] = {}
        self.selected_node_ids: Set[str] = set()
        self.selected_edge_ids: Set[str] = set()
        # Set by ConnectionIntake; bound into each node's on_select.
        self.node_select_handler: Optional[Callable[[str], object]] = None

        self.nodes: List[RenderNode] = []
        self.edges: List[RenderEdge] = []
        self._listeners: List[ProjectionListener] = []
        # While a change batch is forwarded, store notifications only mark the
        # projection stale; it is rebuilt once when the batch ends.
        self._batching = False
        self._stale = False

        store.subscribe(self._on_graph_changed)
        self.rebuild()

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def subscribe(self, callback: ProjectionListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: ProjectionListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    @property
    def projection(self) -> Projection:
        return Projection(self.nodes, self.edges, self.connection_source_id)

    def get_node(self, node_id: str) -> Optional[RenderNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def rebuild(self) -> Projection:
        """Discard the transient visual copy and project the store's graph again."""
        graph = self.store.graph
        ids = graph.person_ids()

        # Transient state pointing at people that no longer exist is dropped.
        if self.connection_source_id is not None and self.connection_source_id not in ids:
            logger.debug(f"ViewSynchronizer: clearing stale connection source {self.connection_source_id}")
            self.connection_source_id = None
        self.dimensions = {k: v for k, v in self.dimensions.items() if k in ids}
        self.selected_node_ids &= ids
        self.selected_edge_ids &= {c.id for c in graph.connections}

        self.nodes, self.edges, _ = project(
            graph,
            connection_source_id=self.connection_source_id,
            selected_node_ids=frozenset(self.selected_node_ids),
            selected_edge_ids=frozenset(self.selected_edge_ids),
            on_remove=self.store.remove_person,
            on_select=self.node_select_handler,
        )
        self._notify()
        return self.projection

    def set_connection_source(self, person_id: Optional[str]) -> None:
        if person_id == self.connection_source_id:
            return
        self.connection_source_id = person_id
        self.rebuild()

    # ------------------------------------------------------------------
    # Feedback from the rendering surface
    # ------------------------------------------------------------------

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> Projection:
        moved: List[Tuple[str, Position]] = []
        removed: List[str] = []
        visual_change = False

        for change in changes:
            node = self.get_node(change.id)
            if node is None:
                continue

            if change.type == NodeChangeType.POSITION:
                if change.position is None:
                    continue
                node.position = Position(x=change.position.x, y=change.position.y)
                moved.append((node.id, node.position))
                visual_change = True

            elif change.type == NodeChangeType.DIMENSIONS:
                if change.width is None or change.height is None:
                    continue
                self.dimensions[node.id] = (change.width, change.height)
                visual_change = True

            elif change.type == NodeChangeType.SELECT:
                node.selected = bool(change.selected)
                if node.selected:
                    self.selected_node_ids.add(node.id)
                else:
                    self.selected_node_ids.discard(node.id)
                visual_change = True

            elif change.type == NodeChangeType.REMOVE:
                # Deleting from the canvas is a remove affordance, which the
                # user node does not have.
                if node.data.get("removable"):
                    removed.append(node.id)

        graph_before = self.store.graph
        with self._deferred_rebuild():
            for node_id, position in moved:
                self.store.update_person_position(node_id, position)
            for node_id in removed:
                self.store.remove_person(node_id)

        # Store changes already rebuilt and notified.
        if visual_change and self.store.graph is graph_before:
            self._notify()
        return self.projection

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> Projection:
        visual_change = False
        graph_before = self.store.graph

        with self._deferred_rebuild():
            for change in changes:
                if change.type == EdgeChangeType.REMOVE:
                    self.store.remove_connection(change.id)
                elif change.type == EdgeChangeType.SELECT:
                    edge = next((e for e in self.edges if e.id == change.id), None)
                    if edge is None:
                        continue
                    edge.selected = bool(change.selected)
                    if edge.selected:
                        self.selected_edge_ids.add(edge.id)
                    else:
                        self.selected_edge_ids.discard(edge.id)
                    visual_change = True

        # Store changes already rebuilt and notified.
        if visual_change and self.store.graph is graph_before:
            self._notify()
        return self.projection

    # ------------------------------------------------------------------
    # Edge geometry
    # ------------------------------------------------------------------

    def node_box(self, node_id: str) -> Optional[Box]:
        node = self.get_node(node_id)
        size = self.dimensions.get(node_id)
        if node is None or size is None:
            return None
        return Box(node.position.x, node.position.y, size[0], size[1])

    def edge_paths(self) -> List[Tuple[RenderEdge, EdgePath]]:
        """
        Compute floating-edge geometry for every edge whose endpoints can be
        resolved right now. Edges with an unresolved endpoint are left out of
        this pass and come back once both ends are measured.
        """
        paths = []
        for edge in self.edges:
            geometry = floating_edge(self.node_box(edge.source), self.node_box(edge.target))
            if geometry is None:
                continue
            paths.append((edge, geometry))
        return paths

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _deferred_rebuild(self) -> Iterator[None]:
        """Rebuild and notify once for all store changes made inside the block."""
        self._batching = True
        try:
            yield
        finally:
            self._batching = False
            if self._stale:
                self._stale = False
                self.rebuild()

    def _on_graph_changed(self, graph: Graph) -> None:
        if self._batching:
            self._stale = True
            return
        self.rebuild()

    def _notify(self) -> None:
        projection = self.projection
        for callback in list(self._listeners):
            try:
                callback(projection)
            except Exception:
                logger.exception(f"ViewSynchronizer: listener {callback!r} failed")
