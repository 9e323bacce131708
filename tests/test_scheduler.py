from datetime import datetime, timezone as dt_timezone

import pytest
from django.core.management import call_command
from django.utils import timezone

from apps.notifications.models import Notification, NotificationTemplate, ScheduledNotification
from apps.notifications.services import scheduler

pytestmark = pytest.mark.django_db


def at(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


@pytest.fixture
def template():
    return NotificationTemplate.objects.create(
        name="reminder", channel="in_app", subject="Reminder", content="Hi {{ name }}, {{ note }}"
    )


@pytest.fixture
def make_schedule(template):
    def _make(recipients=(), **fields):
        fields.setdefault("scheduled_for", timezone.now() + timezone.timedelta(hours=1))
        fields.setdefault("data", {"note": "check your bids"})
        schedule = ScheduledNotification.objects.create(template=template, **fields)
        schedule.recipients.set(recipients)
        return schedule
    return _make


# ---------- cron ----------
@pytest.mark.parametrize(
    "recurrence, expected",
    [
        ("daily", "30 9 * * *"),
        # 2024-03-06 is a Wednesday
        ("weekly", "30 9 * * 3"),
        ("monthly", "30 9 6 * *"),
    ],
)
def test_cron_expression_for_recurrence(recurrence, expected):
    schedule = ScheduledNotification(scheduled_for=at(2024, 3, 6, 9, 30), recurrence=recurrence)
    assert scheduler.cron_expression_for(schedule) == expected


def test_custom_recurrence_needs_expression():
    schedule = ScheduledNotification(scheduled_for=at(2024, 3, 6), recurrence="custom")
    with pytest.raises(scheduler.ScheduleError):
        scheduler.cron_expression_for(schedule)


def test_next_run_after_and_end_date():
    schedule = ScheduledNotification(
        scheduled_for=at(2024, 3, 6, 9, 30),
        recurrence="daily",
        end_date=at(2024, 3, 8, 0, 0),
    )

    assert scheduler.next_run_after(schedule, at(2024, 3, 6, 9, 30)) == at(2024, 3, 7, 9, 30)
    assert scheduler.next_run_after(schedule, at(2024, 3, 7, 9, 30)) is None


# ---------- queueing ----------
def test_admin_creates_schedule_and_it_is_queued(
    auth_client, admin_user, client_user, template, queued_tasks, django_capture_on_commit_callbacks
):
    run_at = timezone.now() + timezone.timedelta(days=1)

    with django_capture_on_commit_callbacks(execute=True):
        response = auth_client(admin_user).post(
            "/api/notify/scheduled/",
            {
                "template": "reminder",
                "recipients": [client_user.pk],
                "scheduled_for": run_at.isoformat(),
                "recurrence": "once",
            },
            format="json",
        )

    assert response.status_code == 201
    schedule = ScheduledNotification.objects.get(pk=response.data["id"])
    assert schedule.created_by == admin_user
    assert schedule.task_id == "task-1"
    assert queued_tasks[0]["args"] == [schedule.pk]
    assert queued_tasks[0]["eta"] == schedule.scheduled_for


@pytest.mark.parametrize(
    "overrides",
    [
        {"recurrence": "custom", "cron_expression": "not a cron"},
        {"recipient_filter": {"country": "PT"}},
        {"send_in_app": False},
        {"template": "nope"},
    ],
)
def test_schedule_validation(overrides, auth_client, admin_user, template):
    payload = {
        "template": "reminder",
        "scheduled_for": (timezone.now() + timezone.timedelta(days=1)).isoformat(),
        **overrides,
    }
    response = auth_client(admin_user).post("/api/notify/scheduled/", payload, format="json")
    assert response.status_code == 400


def test_scheduling_is_admin_only(auth_client, client_user):
    assert auth_client(client_user).get("/api/notify/scheduled/").status_code == 403


def test_past_recurring_schedule_moves_to_next_run(make_schedule, queued_tasks):
    schedule = make_schedule(
        scheduled_for=timezone.now() - timezone.timedelta(days=3), recurrence="daily"
    )

    eta = scheduler.schedule_notification(schedule)

    assert eta > timezone.now()
    schedule.refresh_from_db()
    assert schedule.scheduled_for == eta
    assert len(queued_tasks) == 1


def test_cancel_schedule(auth_client, admin_user, make_schedule):
    schedule = make_schedule(task_id="task-9")
    client = auth_client(admin_user)

    response = client.put(f"/api/notify/scheduled/{schedule.pk}/cancel/")
    assert response.status_code == 200
    assert response.data["scheduled_notification"]["status"] == "cancelled"

    again = client.put(f"/api/notify/scheduled/{schedule.pk}/cancel/")
    assert again.status_code == 400


def test_reschedule_command_requeues_future_schedules(make_schedule, queued_tasks):
    future = make_schedule()
    make_schedule(scheduled_for=timezone.now() - timezone.timedelta(hours=1))
    make_schedule(status="cancelled")

    call_command("reschedule_notifications")

    assert [task["args"] for task in queued_tasks] == [[future.pk]]


# ---------- recipients ----------
def test_explicit_recipients_win(make_schedule, client_user, freelancer_user):
    schedule = make_schedule(recipients=[freelancer_user], recipient_filter={"roles": ["client"]})
    assert scheduler.resolve_recipients(schedule) == [freelancer_user]


def test_recipient_filter_by_role_and_activity(make_schedule, make_user):
    recent = make_user("client", last_login=timezone.now())
    make_user("client", last_login=timezone.now() - timezone.timedelta(days=90))
    make_user("freelancer", last_login=timezone.now())
    make_user("client", account_status="suspended", last_login=timezone.now())

    since = (timezone.now() - timezone.timedelta(days=7)).isoformat()
    schedule = make_schedule(recipient_filter={"roles": ["client"], "last_active": since})

    assert scheduler.resolve_recipients(schedule) == [recent]


def test_invalid_last_active(make_schedule):
    schedule = make_schedule(recipient_filter={"last_active": "yesterday"})
    with pytest.raises(scheduler.ScheduleError):
        scheduler.resolve_recipients(schedule)


# ---------- execution ----------
def test_run_sends_to_every_recipient(make_schedule, client_user, freelancer_user):
    schedule = make_schedule(recipients=[client_user, freelancer_user])

    results = scheduler.run_scheduled_notification(schedule.pk)

    assert results == {"sent": 2, "failed": 0, "errors": []}
    schedule.refresh_from_db()
    assert schedule.status == "completed"
    assert schedule.last_run_at is not None
    notification = Notification.objects.get(recipient=client_user)
    assert notification.message == f"Hi {client_user.display_name}, check your bids"


def test_run_skips_cancelled_schedule(make_schedule, client_user):
    schedule = make_schedule(recipients=[client_user], status="cancelled")
    assert scheduler.run_scheduled_notification(schedule.pk) is None
    assert not Notification.objects.exists()


def test_run_with_inactive_template_fails(make_schedule, template, client_user):
    schedule = make_schedule(recipients=[client_user])
    template.is_active = False
    template.save()

    results = scheduler.run_scheduled_notification(schedule.pk)

    assert results["errors"] == ["Template not found or inactive"]
    schedule.refresh_from_db()
    assert schedule.status == "failed"


def test_recurring_run_is_rescheduled(make_schedule, client_user, queued_tasks):
    schedule = make_schedule(
        recipients=[client_user],
        recurrence="daily",
        scheduled_for=timezone.now() - timezone.timedelta(minutes=1),
    )

    scheduler.run_scheduled_notification(schedule.pk)

    schedule.refresh_from_db()
    assert schedule.status == "scheduled"
    assert schedule.scheduled_for > timezone.now()
    assert schedule.result["sent"] == 1
    assert len(queued_tasks) == 1


def test_task_runs_schedule(make_schedule, client_user):
    from apps.notifications.tasks import execute_scheduled_notification

    schedule = make_schedule(recipients=[client_user])
    assert execute_scheduled_notification(schedule.pk)["sent"] == 1


def test_scheduled_sends_are_not_retried():
    from apps.notifications import tasks

    assert getattr(tasks.execute_scheduled_notification, "autoretry_for", ()) == ()
    assert not hasattr(tasks, "send_template_notification")
