import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def user_group(user_id):
    return f"user_{user_id}"


def dashboard_group(user_id):
    return f"dashboard_{user_id}"


def project_group(project_id):
    return f"project_{project_id}"


def chat_group(conversation_id):
    return f"chat_{conversation_id}"


def push_to_group(group, event_type, payload):
    """
    Fire-and-forget broadcast to a channel layer group. Delivery problems are
    logged and never propagate to the caller.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    try:
        async_to_sync(channel_layer.group_send)(
            group,
            {"type": event_type, **payload},
        )
    except Exception:
        logger.exception("Realtime push to %s failed", group)
        return False
    return True


def push_dashboard_update(user_id, reason, data=None):
    return push_to_group(
        dashboard_group(user_id),
        "dashboard_update",
        {"reason": reason, "data": data or {}},
    )


def push_project_event(project_id, event, data=None):
    return push_to_group(
        project_group(project_id),
        "project_event",
        {"event": event, "data": data or {}},
    )
