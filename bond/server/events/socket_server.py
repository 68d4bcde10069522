"""
Socket.IO server.

Uses python-socketio in ASGI mode so it can wrap FastAPI.
`create_socket_app(fastapi_app)` returns the composite ASGI application to
pass to uvicorn.
"""
from __future__ import annotations

import asyncio
from typing import Any, Set

import socketio

from .view_emitter import global_emitter
from .view_types import SOCKET_EVENT_NAMES, ViewEvent

# ---------------------------------------------------------------------------
# Socket.IO instance (async, ASGI mode)
# ---------------------------------------------------------------------------

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    logger=False,
    engineio_logger=False,
)

# ---------------------------------------------------------------------------
# View fan-out: wire global_emitter → Socket.IO emit
# ---------------------------------------------------------------------------

# Pending emits; the loop only holds weak references to tasks.
_pending_emits: Set[asyncio.Task] = set()


def _on_view_event(event: ViewEvent) -> None:
    """
    Called synchronously by ViewEmitter.fire().
    Schedules an async emit on the running event loop; outside a loop (tests,
    scripts) there is nobody to push to and the event is dropped.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    task = loop.create_task(sio.emit(SOCKET_EVENT_NAMES.get(event["type"], "view"), event))
    _pending_emits.add(task)
    task.add_done_callback(_pending_emits.discard)


global_emitter.on_event(_on_view_event)


# ---------------------------------------------------------------------------
# Socket.IO lifecycle events
# ---------------------------------------------------------------------------

@sio.event
async def connect(sid: str, environ: dict) -> None:
    """Send the current projection so a fresh client can draw immediately."""
    # Imported here: state pulls in the whole core and settings.
    from bond.server.serializers.graph_serializer import serialize_projection
    from bond.server.state import graph_state

    await sio.emit("projection", serialize_projection(graph_state.sync.projection), to=sid)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_socket_app(fastapi_app: Any) -> socketio.ASGIApp:
    """Wrap *fastapi_app* inside a Socket.IO ASGI application."""
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
