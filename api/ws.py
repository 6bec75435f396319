"""WebSocket endpoint streaming battle events to presentation clients."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from models.events import BattleEvent

router = APIRouter()

# Connected presentation clients
connections: list[WebSocket] = []
_pending: set[asyncio.Task] = set()


async def broadcast(message: dict[str, Any]) -> None:
    """Send a message to all connected WebSocket clients.

    Args:
        message: The JSON-serializable message to send.
    """
    disconnected = []
    for i, ws in enumerate(connections):
        try:
            await ws.send_json(message)
        except Exception:
            disconnected.append(i)
    # Clean up disconnected clients
    for i in reversed(disconnected):
        connections.pop(i)


def forward_event(event: BattleEvent) -> None:
    """Event-channel listener: queue a broadcast of the event.

    Battle events fire synchronously from request handlers and timer
    callbacks, both of which run on the event loop.
    """
    if not connections:
        return
    message = {"type": event.type.value, "payload": event.payload.model_dump(mode="json")}
    task = asyncio.get_running_loop().create_task(broadcast(message))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Stream every battle event as ``{"type": ..., "payload": ...}``."""
    await websocket.accept()
    connections.append(websocket)

    try:
        await websocket.send_json({"type": "connected"})

        # Keep connection alive, listen for client messages (optional)
        while True:
            try:
                await websocket.receive_text()
            except WebSocketDisconnect:
                break
    finally:
        if websocket in connections:
            connections.remove(websocket)
