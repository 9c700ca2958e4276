import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.realtime import RealtimeNotifier, branch_channel, build_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])


class ConnectionManager(RealtimeNotifier):
    """Tracks connected sockets and the branch groups they joined."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self.channels: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)

    def join(self, websocket: WebSocket, channel: str):
        self.channels.setdefault(channel, set()).add(websocket)

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)
        for channel in list(self.channels):
            self.channels[channel].discard(websocket)
            if not self.channels[channel]:
                del self.channels[channel]

    async def send_to_channel(self, message: dict, channel: str):
        await self._send(message, set(self.channels.get(channel, ())))

    async def broadcast(self, message: dict):
        await self._send(message, set(self.active_connections))

    async def _send(self, message: dict, connections: Set[WebSocket]):
        dead_connections = set()
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception:
                dead_connections.add(connection)

        for conn in dead_connections:
            self.disconnect(conn)

    async def publish(self, event: str, data: Dict[str, Any], channel: Optional[str] = None):
        message = build_message(event, data)
        if channel is None:
            await self.broadcast(message)
        else:
            await self.send_to_channel(message, channel)


manager = ConnectionManager()


def _requested_branch(message: Any) -> Optional[str]:
    if not isinstance(message, dict) or message.get("event") != "join":
        return None
    payload = message.get("data")
    if not isinstance(payload, dict):
        payload = message
    branch_id = payload.get("branchId")
    if not isinstance(branch_id, str):
        return None
    return branch_id.strip() or None


@router.websocket("/orders")
async def websocket_endpoint(websocket: WebSocket):
    """Live order feed. Send ``{"event": "join", "data": {"branchId": ...}}``
    to also receive that branch's group messages."""
    await manager.connect(websocket)
    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except ValueError:
                continue
            branch_id = _requested_branch(message)
            if branch_id:
                manager.join(websocket, branch_channel(branch_id))
                logger.debug("Socket joined branch %s", branch_id)
    except WebSocketDisconnect:
        manager.disconnect(websocket)
