"""
Real-time broadcasting of order and event changes
"""

from typing import List

from fastapi.encoders import jsonable_encoder

from app.api.ws import BACKOFFICE_CHANNEL, WebSocketManager, event_channel, websocket_manager
from app.schemas.event import EventRecord
from app.schemas.order import OrderRecord
from app.utils.clock import utcnow


class NotificationService:
    """Pushes backoffice updates to connected WebSocket clients"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def _publish(self, message: dict, event_id: str = None):
        message["timestamp"] = utcnow().isoformat()
        message = jsonable_encoder(message)
        await self.websocket_manager.broadcast(BACKOFFICE_CHANNEL, message)
        if event_id:
            await self.websocket_manager.broadcast(event_channel(event_id), message)

    async def order_created(self, order: OrderRecord):
        await self._publish({"type": "order_created", "order": order.model_dump()}, order.event_id)

    async def order_status_changed(self, order: OrderRecord):
        await self._publish({
            "type": "order_status_changed",
            "order_id": order.id,
            "status": order.status.value,
        }, order.event_id)

    async def event_changed(self, action: str, event_id: str, event: EventRecord = None):
        await self._publish({
            "type": "event_changed",
            "action": action,
            "event_id": event_id,
            "event": event.model_dump() if event else None,
        })

    async def events_reconciled(self, events: List[EventRecord]):
        active = next((e for e in events if e.is_active), None)
        await self._publish({
            "type": "events_reconciled",
            "active_event_id": active.id if active else None,
        })


# Shared by the API routes and the reconciliation scheduler
notification_service = NotificationService(websocket_manager)
