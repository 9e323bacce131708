import logging

from apps.cores.realtime import push_to_group, user_group
from apps.notifications.models import Notification

logger = logging.getLogger(__name__)


def notify_user(recipient, notif_type, title, message="", link="", related=None, data=None):
    """
    Save an in-app notification and push it to the recipient's socket group.
    Returns None when the recipient switched in-app notifications of this
    type off.
    """
    if not recipient.wants_notification("in_app", notif_type):
        logger.debug("in-app %s notification muted for user %s", notif_type, recipient.pk)
        return None

    if data is None:
        data = {}

    related_id = related.pk if related is not None else None
    related_model = related.__class__.__name__ if related is not None else ""

    notif = Notification.objects.create(
        recipient=recipient,
        notif_type=notif_type,
        title=title,
        message=message,
        link=link,
        related_id=related_id,
        related_model=related_model,
        data=data,
    )

    push_to_group(
        user_group(recipient.id),
        "send_notification",
        {
            "id": notif.id,
            "title": title,
            "message": message,
            "notif_type": notif_type,
            "link": notif.resolved_link,
            "data": data,
            "created_at": notif.created_at.isoformat(),
            "is_read": False,
        },
    )

    return notif


def safe_notify(recipient, notif_type, title, message="", **kwargs):
    """
    notify_user for side-effect paths: a failure is logged and swallowed so the
    state change that triggered it stays committed.
    """
    try:
        return notify_user(recipient, notif_type, title, message, **kwargs)
    except Exception:
        logger.exception(
            "Failed to create %s notification for user %s", notif_type, getattr(recipient, "pk", None)
        )
        return None
