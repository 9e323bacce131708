import logging
import uuid

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import Context, Template, TemplateSyntaxError
from django.utils.html import strip_tags
from rest_framework.exceptions import NotFound

from apps.notifications.models import NOTIFICATION_TYPES, NotificationTemplate
from .create_notifications import notify_user

logger = logging.getLogger(__name__)

IN_APP_TYPES = {value for value, _ in NOTIFICATION_TYPES}


def render_template(content, data=None):
    """
    Render template text with Django's template engine. A broken template is
    logged and delivered unrendered rather than dropped.
    """
    try:
        return Template(content).render(Context(data or {}))
    except TemplateSyntaxError:
        logger.exception("Template rendering failed, sending raw content")
        return content


def send_email(to, subject, html_content):
    msg = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_content),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to] if isinstance(to, str) else list(to),
    )
    msg.attach_alternative(html_content, "text/html")
    msg.send()
    logger.info("Email '%s' sent to %s", subject, to)
    return True


def send_sms(phone, message):
    # No SMS provider is wired in; deliveries are recorded in the log only.
    sid = uuid.uuid4().hex
    logger.info("SMS %s to %s: %s", sid, phone, message)
    return {"status": "sent", "sid": sid, "to": phone}


def get_active_template(name):
    template = NotificationTemplate.objects.filter(name=name, is_active=True).first()
    if template is None:
        raise NotFound(f"Notification template '{name}' not found or inactive.")
    return template


def send_notification_by_template(template, recipient, data=None, channels=None):
    """
    Deliver ``template`` to ``recipient`` on each requested channel the user
    has not muted for the template's category.

    Returns a per-channel outcome: ``"sent"`` or ``"skipped: <reason>"``.
    """
    if isinstance(template, str):
        template = get_active_template(template)

    channels = channels or [template.channel]
    context = {
        "name": recipient.display_name,
        "email": recipient.email,
        **(data or {}),
    }
    body = render_template(template.content, context)
    outcome = {}

    for channel in channels:
        if not recipient.wants_notification(channel, template.category):
            outcome[channel] = "skipped: disabled by user preferences"
            continue

        if channel == "email":
            subject = render_template(template.subject or template.name, context)
            send_email(recipient.email, subject, body)
            outcome[channel] = "sent"

        elif channel == "sms":
            if not recipient.phone:
                outcome[channel] = "skipped: no phone number"
                continue
            send_sms(recipient.phone, strip_tags(body))
            outcome[channel] = "sent"

        elif channel == "in_app":
            notif_type = template.category if template.category in IN_APP_TYPES else "system"
            title = render_template(template.subject or template.name, context)
            notify_user(recipient, notif_type, title, strip_tags(body), data=data or {})
            outcome[channel] = "sent"

        else:
            outcome[channel] = "skipped: unknown channel"

    return outcome
