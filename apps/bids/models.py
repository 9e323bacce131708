from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.freelancer.models import FreelancerProfile
from apps.projects.models import Project


class Bid(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('withdrawn', 'Withdrawn'),
    ]

    COUNTER_STATUS_CHOICES = [
        ('none', 'None'),
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
    ]

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="bids"
    )

    freelancer = models.ForeignKey(
        FreelancerProfile,
        on_delete=models.CASCADE,
        related_name="bids"
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    # days
    delivery_time = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    proposal = models.TextField()

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending'
    )

    # Client proposed amendment of the bid terms
    counter_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    counter_delivery_time = models.PositiveIntegerField(null=True, blank=True)
    counter_message = models.TextField(blank=True)
    counter_status = models.CharField(max_length=20, choices=COUNTER_STATUS_CHOICES, default='none')
    counter_created_at = models.DateTimeField(null=True, blank=True)
    counter_responded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('project', 'freelancer')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=["project", "status"]),
        ]

    def __str__(self):
        return f"Bid #{self.pk} by {self.freelancer_id} on {self.project_id}"
