import json
from channels.generic.websocket import AsyncWebsocketConsumer

from .notifications import ORDER_GROUP


class OrderFeedConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        self.group_name = ORDER_GROUP
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    # Relay order lifecycle events from the services to the floor screens
    async def order_event(self, event):
        await self.send(text_data=json.dumps({"event": event['event'], "order": event['order']}))
