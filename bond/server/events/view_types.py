"""
Event payloads pushed to the rendering surface over Socket.IO.
All events are plain dicts so they can be emitted without Pydantic overhead.
"""
from typing import Any, Dict, List, Literal, Optional, TypedDict, Union


class _Stamped(TypedDict, total=False):
    # Filled in by ViewEmitter.fire().
    ts: int


class ProjectionEvent(_Stamped):
    type: Literal["PROJECTION"]
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    connectionSourceId: Optional[str]


class ResetEvent(_Stamped):
    type: Literal["RESET"]


ViewEvent = Union[ProjectionEvent, ResetEvent]

# Socket.IO event name per payload type.
SOCKET_EVENT_NAMES = {
    "PROJECTION": "projection",
    "RESET": "reset",
}
