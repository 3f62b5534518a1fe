"""
WebSocket consumers for real-time stock updates.

Clients connect to ws://host/ws/stock/ and receive:
{
    "type": "movement.recorded" | "summary.generated" | "production.executed",
    "payload": {...}
}
"""
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

logger = logging.getLogger(__name__)

STOCK_GROUP = 'stock'


class StockConsumer(AsyncWebsocketConsumer):
    """Broadcast-only feed of ledger and summary events."""

    async def connect(self):
        self.group_name = STOCK_GROUP
        if self.channel_layer:
            await self.channel_layer.group_add(self.group_name, self.channel_name)
        else:
            logger.warning("Channel layer is None, WebSocket will work but no group messaging")
        await self.accept()

    async def disconnect(self, close_code):
        if self.channel_layer and hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        pass

    async def _forward(self, event):
        await self.send(text_data=json.dumps({
            'type': event['type'],
            'payload': event['payload'],
        }))

    async def movement_recorded(self, event):
        await self._forward({**event, 'type': 'movement.recorded'})

    async def summary_generated(self, event):
        await self._forward({**event, 'type': 'summary.generated'})

    async def production_executed(self, event):
        await self._forward({**event, 'type': 'production.executed'})
