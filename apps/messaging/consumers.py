import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from apps.cores.realtime import chat_group

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncWebsocketConsumer):

    async def connect(self):
        self.conversation_id = self.scope.get("url_route", {}).get("kwargs", {}).get("conversation_id")
        self.chat_group_name = chat_group(self.conversation_id)

        if not await self.is_participant():
            logger.info("chat socket rejected for conversation %s", self.conversation_id)
            await self.close()
            return

        await self.channel_layer.group_add(self.chat_group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.chat_group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "")
        except json.JSONDecodeError:
            logger.debug("invalid chat payload on conversation %s", self.conversation_id)
            return

        content = (data.get("content") or "").strip()
        if not content:
            return

        # post_message stores the message and broadcasts it to the group
        await self.create_message(content, data.get("metadata"))

    async def chat_message(self, event):
        await self.send(text_data=json.dumps(event["message"]))

    @database_sync_to_async
    def is_participant(self):
        from .models import Conversation

        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            return False

        conversation = Conversation.objects.filter(pk=self.conversation_id).first()
        return conversation is not None and conversation.has_participant(user)

    @database_sync_to_async
    def create_message(self, content, metadata):
        from .models import Conversation
        from .services import post_message

        conversation = Conversation.objects.get(pk=self.conversation_id)
        return post_message(conversation, self.scope["user"], content, metadata).pk
