import logging
from datetime import datetime

from croniter import croniter
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.notifications.models import ScheduledNotification
from .dispatch import send_notification_by_template

logger = logging.getLogger(__name__)

User = get_user_model()


class ScheduleError(Exception):
    pass


# ---------- cron helpers ----------
def cron_expression_for(schedule):
    """
    Cron expression of a recurring schedule. daily/weekly/monthly repeat at the
    clock time (and weekday / day of month) of ``scheduled_for``.
    """
    if schedule.recurrence == "custom":
        if not schedule.cron_expression:
            raise ScheduleError("Custom recurrence requires a cron expression.")
        return schedule.cron_expression

    at = timezone.localtime(schedule.scheduled_for, timezone.get_default_timezone())
    if schedule.recurrence == "daily":
        return f"{at.minute} {at.hour} * * *"
    if schedule.recurrence == "weekly":
        # cron counts weekdays from Sunday=0, Python from Monday=0
        return f"{at.minute} {at.hour} * * {(at.weekday() + 1) % 7}"
    if schedule.recurrence == "monthly":
        return f"{at.minute} {at.hour} {at.day} * *"
    raise ScheduleError(f"'{schedule.recurrence}' is not a recurring pattern.")


def is_valid_cron(expression):
    return bool(expression) and croniter.is_valid(expression)


def next_run_after(schedule, after):
    """Next fire time strictly after ``after``, or None once past ``end_date``."""
    base = timezone.localtime(after, timezone.get_default_timezone())
    upcoming = croniter(cron_expression_for(schedule), base).get_next(datetime)
    if schedule.end_date and upcoming > schedule.end_date:
        return None
    return upcoming


# ---------- queueing ----------
def schedule_notification(schedule):
    """
    Queue the next run of ``schedule`` on Celery. One-shot schedules whose time
    has already passed run immediately.
    """
    from apps.notifications.tasks import execute_scheduled_notification

    now = timezone.now()
    if schedule.is_recurring and schedule.scheduled_for <= now:
        eta = next_run_after(schedule, now)
        if eta is None:
            logger.info("Scheduled notification %s is past its end date", schedule.pk)
            schedule.status = "completed"
            schedule.save(update_fields=["status", "updated_at"])
            return None
        schedule.scheduled_for = eta
    else:
        eta = max(schedule.scheduled_for, now)

    result = execute_scheduled_notification.apply_async(args=[schedule.pk], eta=eta)
    schedule.task_id = result.id or ""
    schedule.save(update_fields=["scheduled_for", "task_id", "updated_at"])

    logger.info("Scheduled notification %s queued for %s", schedule.pk, eta.isoformat())
    return eta


def cancel_scheduled_notification(schedule):
    from SkillSwap.celery import app

    if schedule.status not in ("scheduled", "processing"):
        raise ScheduleError(f"Cannot cancel a notification that is {schedule.status}.")

    if schedule.task_id:
        try:
            app.control.revoke(schedule.task_id)
        except Exception:
            # run_scheduled_notification skips rows that are no longer scheduled
            logger.warning("Could not revoke task %s", schedule.task_id, exc_info=True)

    schedule.status = "cancelled"
    schedule.save(update_fields=["status", "updated_at"])
    logger.info("Scheduled notification %s cancelled", schedule.pk)
    return schedule


def reschedule_pending():
    """
    Re-queue every still-scheduled notification whose time is in the future.
    Returns how many were queued.
    """
    count = 0
    pending = ScheduledNotification.objects.filter(
        status="scheduled", scheduled_for__gt=timezone.now()
    )
    for schedule in pending:
        schedule_notification(schedule)
        count += 1
    return count


# ---------- execution ----------
def resolve_recipients(schedule):
    explicit = list(schedule.recipients.all())
    if explicit:
        return explicit

    query = User.objects.filter(account_status="active")
    rules = schedule.recipient_filter or {}

    roles = rules.get("roles")
    if roles:
        query = query.filter(role__in=roles)

    last_active = rules.get("last_active")
    if last_active:
        since = parse_datetime(last_active) if isinstance(last_active, str) else last_active
        if since is None:
            raise ScheduleError(f"Invalid last_active value: {last_active}")
        query = query.filter(last_login__gte=since)

    return list(query.order_by("id"))


def run_scheduled_notification(schedule_id):
    with transaction.atomic():
        schedule = (
            ScheduledNotification.objects
            .select_for_update()
            .select_related("template")
            .filter(pk=schedule_id)
            .first()
        )
        if schedule is None:
            logger.warning("Scheduled notification %s no longer exists", schedule_id)
            return None
        if schedule.status != "scheduled":
            logger.info(
                "Skipping scheduled notification %s in status %s", schedule_id, schedule.status
            )
            return None
        schedule.status = "processing"
        schedule.save(update_fields=["status", "updated_at"])

    results = {"sent": 0, "failed": 0, "errors": []}
    try:
        template = schedule.template
        if not template.is_active:
            raise ScheduleError("Template not found or inactive")

        for recipient in resolve_recipients(schedule):
            try:
                send_notification_by_template(template, recipient, schedule.data, schedule.channels)
                results["sent"] += 1
            except Exception as exc:
                logger.warning("Scheduled send to user %s failed: %s", recipient.pk, exc)
                results["failed"] += 1
                results["errors"].append(f"Error sending to {recipient.pk}: {exc}")

        schedule.status = "completed"
    except Exception as exc:
        logger.exception("Scheduled notification %s failed", schedule.pk)
        schedule.status = "failed"
        results["errors"].append(str(exc))

    now = timezone.now()
    schedule.result = results
    schedule.last_run_at = now
    schedule.save(update_fields=["status", "result", "last_run_at", "updated_at"])

    if schedule.status == "completed" and schedule.is_recurring:
        upcoming = next_run_after(schedule, now)
        if upcoming is not None:
            schedule.status = "scheduled"
            schedule.scheduled_for = upcoming
            schedule.save(update_fields=["status", "scheduled_for", "updated_at"])
            schedule_notification(schedule)

    return results
