from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone

from apps.cores.uploads import profile_upload_path


NOTIFICATION_CATEGORIES = (
    "project",
    "bid",
    "message",
    "review",
    "verification",
    "payment",
    "system",
    "marketing",
)


def default_notification_preferences():
    return {
        "email": {
            "enabled": True,
            "types": {name: name != "marketing" for name in NOTIFICATION_CATEGORIES},
            "frequency": "immediate",
        },
        "sms": {
            "enabled": False,
            "types": {name: name == "verification" for name in NOTIFICATION_CATEGORIES},
            "frequency": "immediate",
        },
        "in_app": {
            "enabled": True,
            "types": {name: True for name in NOTIFICATION_CATEGORIES},
        },
    }


class UserManager(BaseUserManager):
    """Custom user manager supporting email authentication."""

    def create_user(self, email, username=None, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required")

        email = self.normalize_email(email).lower()
        username = username or email

        user = self.model(
            email=email,
            username=username,
            **extra_fields
        )
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, username=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", "admin")

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, username, password, **extra_fields)


class User(AbstractUser):
    ROLE_CHOICES = (
        ("client", "Client"),
        ("freelancer", "Freelancer"),
        ("admin", "Admin"),
    )

    ACCOUNT_STATUS_CHOICES = (
        ("active", "Active"),
        ("suspended", "Suspended"),
        ("deactivated", "Deactivated"),
    )

    email = models.EmailField(unique=True, db_index=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="client")
    is_verified = models.BooleanField(default=True)
    account_status = models.CharField(
        max_length=20, choices=ACCOUNT_STATUS_CHOICES, default="active"
    )

    phone = models.CharField(max_length=20, blank=True)
    street = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)

    profile_image = models.ImageField(upload_to=profile_upload_path, blank=True, null=True)

    linkedin = models.URLField(blank=True)
    github = models.URLField(blank=True)
    twitter = models.URLField(blank=True)
    website = models.URLField(blank=True)

    notification_preferences = models.JSONField(default=default_notification_preferences)

    created_at = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        db_table = "users"
        indexes = [
            models.Index(fields=["role", "is_active"]),
            models.Index(fields=["account_status"]),
        ]

    def __str__(self):
        return f"{self.email} ({self.role})"

    def save(self, *args, **kwargs):
        # is_active is what Django auth checks; account_status is the source of truth
        self.is_active = self.account_status == "active"
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    def has_admin_access(self):
        return self.role == "admin"

    def wants_notification(self, channel, category):
        prefs = self.notification_preferences or default_notification_preferences()
        channel_prefs = prefs.get(channel) or {}
        if not channel_prefs.get("enabled", False):
            return False
        return bool((channel_prefs.get("types") or {}).get(category, False))


class ClientProfile(models.Model):
    VERIFICATION_LEVELS = (
        ("basic", "Basic"),
        ("verified", "Verified"),
        ("premium", "Premium"),
    )

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="client_profile")
    company_name = models.CharField(max_length=255, blank=True)
    position = models.CharField(max_length=120, blank=True)
    industry = models.CharField(max_length=120, blank=True)
    company_size = models.CharField(max_length=50, blank=True)
    bio = models.TextField(blank=True)
    projects_posted = models.PositiveIntegerField(default=0)
    completed_projects = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    preferred_categories = models.JSONField(default=list, blank=True)
    billing_address = models.JSONField(default=dict, blank=True)
    tax_id = models.CharField(max_length=64, blank=True)
    verification_level = models.CharField(
        max_length=20, choices=VERIFICATION_LEVELS, default="basic"
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "client_profiles"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Client Profile: {self.user.email}"


class LoginHistory(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="login_history")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True)
    logged_in_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-logged_in_at"]
