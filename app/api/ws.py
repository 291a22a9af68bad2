"""
WebSocket manager for real-time backoffice updates
"""

import json
import logging
from typing import Dict, List
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

BACKOFFICE_CHANNEL = "backoffice"


def event_channel(event_id: str) -> str:
    return f"event:{event_id}"


class WebSocketManager:
    """Manages WebSocket connections grouped by channel"""

    def __init__(self):
        # channel -> list of websockets
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, channel: str):
        """Accept WebSocket connection and add it to a channel"""
        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        logger.info(f"WebSocket connected to {channel}. Total connections: {len(self.active_connections[channel])}")

    def disconnect(self, websocket: WebSocket, channel: str):
        """Remove WebSocket connection from a channel"""
        connections = self.active_connections.get(channel)
        if not connections or websocket not in connections:
            return
        connections.remove(websocket)
        logger.info(f"WebSocket disconnected from {channel}. Remaining connections: {len(connections)}")
        if not connections:
            del self.active_connections[channel]

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast(self, channel: str, message: dict):
        """Broadcast message to all WebSockets listening on a channel"""
        if channel not in self.active_connections:
            logger.debug(f"No active connections for {channel}")
            return

        # Copy: sockets may be dropped while iterating
        connections = self.active_connections[channel].copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            self.disconnect(websocket, channel)

    def get_connection_count(self, channel: str) -> int:
        return len(self.active_connections.get(channel, []))

    def get_all_connection_counts(self) -> Dict[str, int]:
        return {
            channel: len(connections)
            for channel, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()


async def _serve(websocket: WebSocket, channel: str):
    await websocket_manager.connect(websocket, channel)
    try:
        await websocket_manager.send_personal_message({
            "type": "connection",
            "channel": channel,
            "connection_count": websocket_manager.get_connection_count(channel),
        }, websocket)

        # Clients only talk to us for heartbeats
        while True:
            data = await websocket.receive_text()
            try:
                client_message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from WebSocket: {data}")
                continue
            if client_message.get("type") == "ping":
                await websocket_manager.send_personal_message({
                    "type": "pong",
                    "timestamp": client_message.get("timestamp"),
                }, websocket)
    except WebSocketDisconnect:
        pass
    finally:
        websocket_manager.disconnect(websocket, channel)


@router.websocket("/backoffice")
async def backoffice_updates(websocket: WebSocket):
    """Event lifecycle and order updates for the backoffice"""
    await _serve(websocket, BACKOFFICE_CHANNEL)


@router.websocket("/events/{event_id}")
async def event_order_updates(websocket: WebSocket, event_id: str):
    """Order updates scoped to one event"""
    await _serve(websocket, event_channel(event_id))


@router.get("/stats")
async def websocket_stats():
    """Get WebSocket connection statistics (for debugging)"""
    counts = websocket_manager.get_all_connection_counts()
    return {
        "total_channels": len(counts),
        "connection_counts": counts,
        "total_connections": sum(counts.values()),
    }
