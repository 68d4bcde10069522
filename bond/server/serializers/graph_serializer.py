"""
Graph serializer.

Converts the core's Graph, render projection and edge geometry into JSON-safe
dicts matching the wire shapes the canvas expects. In-process callbacks on
render nodes are dropped here.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from bond.core.Geometry import EdgePath, Point
from bond.core.GraphPrimitives import Connection, Graph
from bond.core.ViewSynchronizer import Projection, RenderEdge, RenderNode

# ── Wire shapes (dicts, not TypedDicts, for easy JSON serialisation) ──────────

# SerializedNode keys: id, type, position, selected, data
# SerializedEdge keys: id, source, target, type, style, selected
# SerializedProjection keys: nodes, edges, connectionSourceId
# SerializedEdgePath keys: id, source, target, path, sourcePoint, targetPoint,
#                          sourcePosition, targetPosition, label


# ── Helpers ───────────────────────────────────────────────────────────────────

def _point(point: Point) -> Dict[str, float]:
    return {"x": point.x, "y": point.y}


def _serialize_node(node: RenderNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type,
        "position": {"x": node.position.x, "y": node.position.y},
        "selected": node.selected,
        "data": dict(node.data),
    }


def _serialize_edge(edge: RenderEdge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "type": edge.type,
        "style": dict(edge.style),
        "selected": edge.selected,
    }


# ── Public API ─────────────────────────────────────────────────────────────────

def serialize_graph(graph: Graph) -> Dict[str, Any]:
    """The stored shape: camelCase keys, positions omitted when unset."""
    return graph.to_dict()


def serialize_projection(projection: Projection) -> Dict[str, Any]:
    return {
        "nodes": [_serialize_node(n) for n in projection.nodes],
        "edges": [_serialize_edge(e) for e in projection.edges],
        "connectionSourceId": projection.connection_source_id,
    }


def serialize_edge_path(edge: RenderEdge, geometry: EdgePath) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "path": geometry.path,
        "sourcePoint": _point(geometry.source),
        "targetPoint": _point(geometry.target),
        "sourcePosition": geometry.source_side.value,
        "targetPosition": geometry.target_side.value,
        "label": _point(geometry.label),
    }


def serialize_edge_paths(paths: Iterable[Tuple[RenderEdge, EdgePath]]) -> List[Dict[str, Any]]:
    return [serialize_edge_path(edge, geometry) for edge, geometry in paths]


def serialize_connection_list(entries: Iterable[Tuple[Connection, str]]) -> List[Dict[str, Any]]:
    return [
        {"id": conn.id, "from": conn.from_id, "to": conn.to_id, "label": label}
        for conn, label in entries
    ]


def serialize_pair_selection(source_id: Optional[str], target_id: Optional[str]) -> Dict[str, Any]:
    return {"sourceId": source_id, "targetId": target_id}
