from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.cores.uploads import project_upload_path, submission_upload_path
from apps.freelancer.models import Category, FreelancerProfile, Skill
from apps.users.models import ClientProfile


class Project(models.Model):
    STATUS = [
        ('open', 'Open'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    client = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, related_name="projects")

    title = models.CharField(max_length=255)
    description = models.TextField()

    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="projects")
    skills = models.ManyToManyField(Skill, related_name="projects", blank=True)

    budget = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    deadline = models.DateField()

    status = models.CharField(max_length=20, choices=STATUS, default='open')
    assigned_freelancer = models.ForeignKey(
        FreelancerProfile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_projects",
    )

    progress = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    # seconds
    time_tracked = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"]),
        ]

    def __str__(self):
        return f"Project: {self.title}"

    def is_owned_by(self, user):
        return self.client.user_id == user.id

    def is_assigned_to(self, user):
        return (
            self.assigned_freelancer_id is not None
            and self.assigned_freelancer.user_id == user.id
        )


class Milestone(models.Model):
    STATUS = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('approved', 'Approved'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="milestones")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    due_date = models.DateField(null=True, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS, default='pending')
    completed_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["due_date", "id"]


class Submission(models.Model):
    STATUS = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="submissions")
    submitted_by = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="submissions")
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS, default='pending')
    client_feedback = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]


def attachment_upload_path(instance, filename):
    if instance.submission_id:
        return submission_upload_path(instance, filename)
    return project_upload_path(instance, filename)


class Attachment(models.Model):
    project = models.ForeignKey(
        Project, on_delete=models.CASCADE, related_name="attachments", null=True, blank=True
    )
    submission = models.ForeignKey(
        Submission, on_delete=models.CASCADE, related_name="attachments", null=True, blank=True
    )
    name = models.CharField(max_length=255)
    file = models.FileField(upload_to=attachment_upload_path)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-uploaded_at"]
