import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from apps.cores.realtime import project_group

logger = logging.getLogger(__name__)


class ProjectConsumer(AsyncWebsocketConsumer):
    """
    Project room: bid updates, milestone changes and work submissions.
    """

    async def connect(self):
        user = self.scope.get("user")
        self.project_id = self.scope.get("url_route", {}).get("kwargs", {}).get("project_id")

        if not user or not user.is_authenticated:
            await self.close()
            return

        if not await self.project_exists():
            logger.info("project socket rejected, project %s not found", self.project_id)
            await self.close()
            return

        self.group_name = project_group(self.project_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def project_event(self, event):
        await self.send(text_data=json.dumps({
            "event": event.get("event"),
            "data": event.get("data", {}),
        }))

    @database_sync_to_async
    def project_exists(self):
        from .models import Project
        return Project.objects.filter(pk=self.project_id).exists()
