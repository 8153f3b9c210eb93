"""WebSocket handlers for real-time session updates."""

import asyncio
import json
import logging
from typing import Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .schemas import SessionSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 30.0


class ConnectionManager:
    """Tracks open session sockets and their pending-update queues."""

    def __init__(self):
        self.active_connections: dict[WebSocket, asyncio.Queue] = {}

    async def connect(self, websocket: WebSocket) -> asyncio.Queue:
        """Accept a connection and return its update queue."""
        await websocket.accept()
        # One pending update is enough: the snapshot is read when sent
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self.active_connections[websocket] = queue
        return queue

    def disconnect(self, websocket: WebSocket):
        self.active_connections.pop(websocket, None)

    def notify_all(self) -> None:
        """Mark every connection as needing a fresh snapshot."""
        for queue in self.active_connections.values():
            if queue.empty():
                queue.put_nowait(None)


async def stop_task(task: asyncio.Task) -> None:
    """Cancel a helper task and collect its outcome."""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Session socket sender failed", exc_info=True)


def _subscribe(session, callback: Callable[[object], None]) -> list[Callable[[], None]]:
    observables = [
        session.map_mode,
        session.map_view,
        session.selection_changed,
        session.active_fantasy_map,
        session.can_generate,
        session.requirement_hint,
        session.generation_state,
        session.save_result,
    ]
    return [observable.subscribe(callback) for observable in observables]


@router.websocket("/ws/session")
async def session_websocket(websocket: WebSocket):
    """WebSocket endpoint for session updates.

    Sends a snapshot on connect and after every state change.

    Message format:
    {
        "type": "snapshot" | "pong" | "keepalive",
        "data": SessionSnapshot (for "snapshot")
    }
    """
    session = websocket.app.state.session
    manager: ConnectionManager = websocket.app.state.connections
    queue = await manager.connect(websocket)

    unsubscribers = _subscribe(session, lambda _: manager.notify_all())

    async def send_snapshot():
        snapshot = SessionSnapshot.from_session(session)
        await websocket.send_json({"type": "snapshot", "data": snapshot.model_dump(mode="json")})

    async def pump_updates():
        while True:
            await queue.get()
            await send_snapshot()

    sender = asyncio.create_task(pump_updates())
    try:
        await send_snapshot()
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=KEEPALIVE_SECONDS)
                msg = json.loads(data)
                if msg.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
                elif msg.get("type") == "refresh":
                    await send_snapshot()
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "keepalive"})
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON message on session socket")
    except WebSocketDisconnect:
        pass
    finally:
        await stop_task(sender)
        for unsubscribe in unsubscribers:
            unsubscribe()
        manager.disconnect(websocket)
