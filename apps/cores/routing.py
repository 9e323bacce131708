from django.urls import re_path, path

from apps.messaging.consumers import ChatConsumer
from apps.notifications.consumers import NotificationConsumer
from apps.projects.consumers import ProjectConsumer

websocket_urlpatterns = [
    # Chat
    re_path(r"ws/chat/(?P<conversation_id>\d+)/$", ChatConsumer.as_asgi()),

    # Project rooms (bid updates, work submissions)
    re_path(r"ws/projects/(?P<project_id>\d+)/$", ProjectConsumer.as_asgi()),

    # Notifications and dashboard refreshes
    path("ws/notifications/", NotificationConsumer.as_asgi()),
]
