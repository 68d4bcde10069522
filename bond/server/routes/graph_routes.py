"""
Graph REST routes.

All routes are mounted under /api by main.py. Rejected input (empty names,
self or duplicate connections, unknown ids) is not an HTTP error: the
operation is a no-op and the unchanged state is returned.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel, Field

from bond.core.GraphPrimitives import Position
from bond.core.Types import EdgeChangeType, NodeChangeType
from bond.core.ViewSynchronizer import EdgeChange, NodeChange
from bond.server.serializers.graph_serializer import (
    serialize_connection_list,
    serialize_edge_paths,
    serialize_graph,
    serialize_pair_selection,
    serialize_projection,
)
from bond.server.state import graph_state

router = APIRouter()


# ── GET /graph ────────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph() -> Dict[str, Any]:
    return serialize_graph(graph_state.store.graph)


# ── GET /user ─────────────────────────────────────────────────────────────────

@router.get("/user")
async def get_user() -> Optional[Dict[str, Any]]:
    user = graph_state.store.user
    if user is None:
        return None
    return user.model_dump(by_alias=True, exclude_none=True)


# ── POST /user ────────────────────────────────────────────────────────────────

class NameBody(BaseModel):
    name: str


@router.post("/user")
async def set_user(body: NameBody) -> Dict[str, Any]:
    graph_state.store.set_as_user(body.name)
    return serialize_graph(graph_state.store.graph)


# ── POST /people ──────────────────────────────────────────────────────────────

@router.post("/people")
async def add_person(body: NameBody) -> Dict[str, Any]:
    graph_state.store.add_person(body.name)
    return serialize_graph(graph_state.store.graph)


# ── DELETE /people/:id ────────────────────────────────────────────────────────

@router.delete("/people/{person_id}", status_code=204)
async def remove_person(person_id: str) -> Response:
    """
    Remove a person and their connections. This is the store operation and
    does remove the user; only the canvas withholds the remove affordance
    from the user node.
    """
    graph_state.store.remove_person(person_id)
    return Response(status_code=204)


# ── PUT /people/:id/position ──────────────────────────────────────────────────

@router.put("/people/{person_id}/position", status_code=204)
async def set_person_position(person_id: str, body: Position) -> Response:
    graph_state.store.update_person_position(person_id, body)
    return Response(status_code=204)


# ── GET /connections ──────────────────────────────────────────────────────────

@router.get("/connections")
async def list_connections() -> List[Dict[str, Any]]:
    return serialize_connection_list(graph_state.store.describe_connections())


# ── POST /connections ─────────────────────────────────────────────────────────

class ConnectionBody(BaseModel):
    fromId: str
    toId: str


@router.post("/connections")
async def add_connection(body: ConnectionBody) -> Dict[str, Any]:
    graph_state.store.add_connection(body.fromId, body.toId)
    return serialize_graph(graph_state.store.graph)


# ── DELETE /connections/:id ───────────────────────────────────────────────────

@router.delete("/connections/{connection_id}", status_code=204)
async def remove_connection(connection_id: str) -> Response:
    graph_state.store.remove_connection(connection_id)
    return Response(status_code=204)


# ── POST /reset ───────────────────────────────────────────────────────────────

@router.post("/reset", status_code=204)
async def reset(
    confirm: bool = Query(False, description="Must be true; reset cannot be undone"),
) -> Response:
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail="Reset deletes all people and connections; resend with confirm=true",
        )
    graph_state.reset()
    return Response(status_code=204)


# ── GET /view ─────────────────────────────────────────────────────────────────

@router.get("/view")
async def get_view() -> Dict[str, Any]:
    return serialize_projection(graph_state.sync.projection)


# ── POST /view/nodes/changes ──────────────────────────────────────────────────

class DimensionsBody(BaseModel):
    width: float = Field(..., ge=0, allow_inf_nan=False)
    height: float = Field(..., ge=0, allow_inf_nan=False)


class NodeChangeBody(BaseModel):
    type: NodeChangeType
    id: str
    position: Optional[Position] = None
    dragging: bool = False
    dimensions: Optional[DimensionsBody] = None
    selected: Optional[bool] = None

    def to_change(self) -> NodeChange:
        return NodeChange(
            type=self.type,
            id=self.id,
            position=self.position,
            dragging=self.dragging,
            width=self.dimensions.width if self.dimensions else None,
            height=self.dimensions.height if self.dimensions else None,
            selected=self.selected,
        )


@router.post("/view/nodes/changes")
async def apply_node_changes(body: List[NodeChangeBody]) -> Dict[str, Any]:
    projection = graph_state.sync.apply_node_changes([c.to_change() for c in body])
    return serialize_projection(projection)


# ── POST /view/edges/changes ──────────────────────────────────────────────────

class EdgeChangeBody(BaseModel):
    type: EdgeChangeType
    id: str
    selected: Optional[bool] = None


@router.post("/view/edges/changes")
async def apply_edge_changes(body: List[EdgeChangeBody]) -> Dict[str, Any]:
    projection = graph_state.sync.apply_edge_changes(
        [EdgeChange(type=c.type, id=c.id, selected=c.selected) for c in body]
    )
    return serialize_projection(projection)


# ── POST /view/connect ────────────────────────────────────────────────────────

class ConnectGestureBody(BaseModel):
    source: str
    target: str


@router.post("/view/connect")
async def connect_gesture(body: ConnectGestureBody) -> Dict[str, Any]:
    graph_state.intake.connect_gesture(body.source, body.target)
    return serialize_projection(graph_state.sync.projection)


# ── POST /view/select/:id, DELETE /view/select ────────────────────────────────

@router.post("/view/select/{person_id}")
async def select_node(person_id: str) -> Dict[str, Any]:
    graph_state.intake.select_node(person_id)
    return serialize_projection(graph_state.sync.projection)


@router.delete("/view/select")
async def cancel_selection() -> Dict[str, Any]:
    graph_state.intake.cancel_selection()
    return serialize_projection(graph_state.sync.projection)


# ── GET /view/edges/paths ─────────────────────────────────────────────────────

@router.get("/view/edges/paths")
async def get_edge_paths() -> List[Dict[str, Any]]:
    return serialize_edge_paths(graph_state.sync.edge_paths())


# ── Pair selection ────────────────────────────────────────────────────────────

class PairSelectionBody(BaseModel):
    id: Optional[str] = None


@router.get("/intake/pair")
async def get_pair_selection() -> Dict[str, Any]:
    intake = graph_state.intake
    return serialize_pair_selection(intake.pair_source_id, intake.pair_target_id)


@router.put("/intake/pair/source")
async def set_pair_source(body: PairSelectionBody) -> Dict[str, Any]:
    intake = graph_state.intake
    intake.select_pair_source(body.id)
    return serialize_pair_selection(intake.pair_source_id, intake.pair_target_id)


@router.put("/intake/pair/target")
async def set_pair_target(body: PairSelectionBody) -> Dict[str, Any]:
    intake = graph_state.intake
    intake.select_pair_target(body.id)
    return serialize_pair_selection(intake.pair_source_id, intake.pair_target_id)


@router.post("/intake/pair/confirm")
async def confirm_pair() -> Dict[str, Any]:
    intake = graph_state.intake
    intake.confirm_pair()
    return {
        "graph": serialize_graph(graph_state.store.graph),
        "selection": serialize_pair_selection(intake.pair_source_id, intake.pair_target_id),
    }
