"""Websocket consumer streaming registration activity to dashboards."""

from __future__ import annotations

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .audit import broadcast_group


class RegistrationFeedConsumer(AsyncJsonWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close()
            return
        self.group_name = broadcast_group()
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code):  # pragma: no cover - infrastructure
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def broadcast(self, event):
        await self.send_json(event["event"])
