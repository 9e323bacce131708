import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from apps.cores.realtime import dashboard_group, user_group

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):
    """
    Per-user socket: receives new notifications and dashboard refresh events.
    """

    async def connect(self):
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            await self.close()
            return

        self.groups_joined = [user_group(user.id), dashboard_group(user.id)]
        for group in self.groups_joined:
            await self.channel_layer.group_add(group, self.channel_name)

        await self.accept()
        logger.debug("notification socket opened for user %s", user.id)

    async def disconnect(self, close_code):
        for group in getattr(self, "groups_joined", []):
            await self.channel_layer.group_discard(group, self.channel_name)

    async def send_notification(self, event):
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(text_data=json.dumps({"event": "notification", **payload}))

    async def dashboard_update(self, event):
        await self.send(text_data=json.dumps({
            "event": "dashboard_update",
            "reason": event.get("reason"),
            "data": event.get("data", {}),
        }))
