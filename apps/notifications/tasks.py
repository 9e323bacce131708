from celery import shared_task

from apps.notifications.services import scheduler


@shared_task(name="notifications.execute_scheduled_notification")
def execute_scheduled_notification(schedule_id):
    # not retried: failures are recorded on the schedule's result
    return scheduler.run_scheduled_notification(schedule_id)

