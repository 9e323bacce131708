import hashlib

from django.db import models
from django.utils import timezone

from apps.freelancer.models import FreelancerProfile
from apps.projects.models import Project
from apps.users.models import ClientProfile


def hash_terms(terms):
    return hashlib.sha256(terms.encode("utf-8")).hexdigest()


class Contract(models.Model):
    STATUS_CHOICES = (
        ("draft", "Draft"),
        ("pending", "Pending"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("terminated", "Terminated"),
    )

    # One contract per awarded project
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name="contract")
    client = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, related_name="contracts")
    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="contracts")

    terms = models.TextField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    start_date = models.DateField()
    end_date = models.DateField()

    client_signed = models.BooleanField(default=False)
    client_signed_at = models.DateTimeField(null=True, blank=True)
    freelancer_signed = models.BooleanField(default=False)
    freelancer_signed_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")
    # SHA-256 of the current terms
    hash = models.CharField(max_length=64, editable=False)

    completed_at = models.DateTimeField(null=True, blank=True)
    terminated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"]),
        ]

    def __str__(self):
        return f"Contract #{self.id} | Project #{self.project_id}"

    def save(self, *args, **kwargs):
        self.hash = hash_terms(self.terms)
        super().save(*args, **kwargs)

    def get_client_user(self):
        return self.client.user

    def get_freelancer_user(self):
        return self.freelancer.user

    def is_party(self, user):
        return user.id in (self.client.user_id, self.freelancer.user_id)

    @property
    def fully_signed(self):
        return self.client_signed and self.freelancer_signed

    def terminate(self):
        self.status = "terminated"
        self.terminated_at = timezone.now()
        self.save(update_fields=["status", "terminated_at", "updated_at"])


class ContractVersion(models.Model):
    """Snapshot of the terms taken every time they change after creation."""

    contract = models.ForeignKey(Contract, on_delete=models.CASCADE, related_name="versions")
    terms = models.TextField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    start_date = models.DateField()
    end_date = models.DateField()
    hash = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
