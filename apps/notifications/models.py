from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


NOTIFICATION_TYPES = [
    ("project", "Project"),
    ("bid", "Bid"),
    ("message", "Message"),
    ("review", "Review"),
    ("verification", "Verification"),
    ("payment", "Payment"),
    ("system", "System"),
]

DEFAULT_LINKS = {
    "project": "/projects/{related_id}",
    "bid": "/projects/{related_id}",
    "message": "/messages",
    "review": "/reviews",
    "verification": "/profile",
    "payment": "/dashboard",
    "system": "/dashboard",
}


class Notification(models.Model):
    """
    In-app notification addressed to a single user.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications"
    )

    notif_type = models.CharField(
        max_length=20,
        choices=NOTIFICATION_TYPES
    )

    title = models.CharField(max_length=255)

    message = models.TextField(blank=True)

    link = models.CharField(max_length=255, blank=True)

    # Optional pointer to the entity the notification is about
    related_id = models.PositiveBigIntegerField(null=True, blank=True)
    related_model = models.CharField(max_length=50, blank=True)

    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
        ]

    def __str__(self):
        return f"Notification({self.recipient_id}, {self.notif_type})"

    @property
    def resolved_link(self):
        if self.link:
            return self.link
        template = DEFAULT_LINKS.get(self.notif_type, "/dashboard")
        if "{related_id}" in template and not self.related_id:
            return "/dashboard"
        return template.format(related_id=self.related_id)


class NotificationTemplate(models.Model):
    CHANNEL_CHOICES = [
        ("email", "Email"),
        ("sms", "SMS"),
        ("in_app", "In-App"),
    ]

    CATEGORY_CHOICES = NOTIFICATION_TYPES + [("marketing", "Marketing")]

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES)
    subject = models.CharField(max_length=255, blank=True)
    # Django template syntax, e.g. "Hello {{ name }}"
    content = models.TextField()
    variables = models.JSONField(default=list, blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="system")
    is_active = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="+"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def clean(self):
        if self.channel == "email" and not self.subject:
            raise ValidationError("Email templates require a subject.")


class ScheduledNotification(models.Model):
    RECURRENCE_CHOICES = [
        ("once", "Once"),
        ("daily", "Daily"),
        ("weekly", "Weekly"),
        ("monthly", "Monthly"),
        ("custom", "Custom"),
    ]

    STATUS_CHOICES = [
        ("scheduled", "Scheduled"),
        ("processing", "Processing"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
    ]

    template = models.ForeignKey(
        NotificationTemplate, on_delete=models.PROTECT, related_name="schedules"
    )
    recipients = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True, related_name="scheduled_notifications"
    )
    # {"roles": ["client"], "last_active": "2024-01-01T00:00:00Z"}
    recipient_filter = models.JSONField(default=dict, blank=True)
    data = models.JSONField(default=dict, blank=True)

    scheduled_for = models.DateTimeField()
    recurrence = models.CharField(max_length=10, choices=RECURRENCE_CHOICES, default="once")
    cron_expression = models.CharField(max_length=100, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    send_email = models.BooleanField(default=False)
    send_sms = models.BooleanField(default=False)
    send_in_app = models.BooleanField(default=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="scheduled")
    result = models.JSONField(default=dict, blank=True)
    last_run_at = models.DateTimeField(null=True, blank=True)
    task_id = models.CharField(max_length=255, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["scheduled_for"]
        indexes = [
            models.Index(fields=["status", "scheduled_for"]),
        ]

    def __str__(self):
        return f"{self.template.name} @ {self.scheduled_for:%Y-%m-%d %H:%M}"

    @property
    def is_recurring(self):
        return self.recurrence != "once"

    @property
    def channels(self):
        selected = []
        if self.send_email:
            selected.append("email")
        if self.send_sms:
            selected.append("sms")
        if self.send_in_app:
            selected.append("in_app")
        return selected
