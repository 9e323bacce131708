from django.conf import settings
from django.db import models

from apps.cores.uploads import document_upload_path, portfolio_upload_path

User = settings.AUTH_USER_MODEL


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Skill(models.Model):
    name = models.CharField(max_length=100, unique=True)
    category = models.ForeignKey(Category, on_delete=models.CASCADE, null=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class FreelancerProfile(models.Model):
    AVAILABILITY_CHOICES = [
        ("full_time", "Full Time"),
        ("part_time", "Part Time"),
        ("not_available", "Not Available"),
    ]

    VERIFICATION_LEVELS = [
        ("basic", "Basic"),
        ("verified", "Verified"),
        ("premium", "Premium"),
    ]

    VERIFICATION_STATUS = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="freelancer_profile")
    title = models.CharField(max_length=120, blank=True)
    bio = models.TextField(blank=True)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    availability = models.CharField(max_length=20, choices=AVAILABILITY_CHOICES, default="full_time")
    hours_per_week = models.PositiveSmallIntegerField(default=40)
    categories = models.ManyToManyField(Category, blank=True, related_name="freelancers")

    verification_level = models.CharField(max_length=20, choices=VERIFICATION_LEVELS, default="basic")
    verification_status = models.CharField(max_length=20, choices=VERIFICATION_STATUS, default="pending")
    verification_notes = models.TextField(blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)

    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_reviews = models.PositiveIntegerField(default=0)
    completed_projects = models.PositiveIntegerField(default=0)
    ongoing_projects = models.PositiveIntegerField(default=0)
    total_earned = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Freelancer Profile: {self.user.email}"

    @property
    def is_verified(self):
        return self.verification_status == "approved"


class FreelancerSkill(models.Model):
    LEVEL_CHOICES = [
        ("beginner", "Beginner"),
        ("intermediate", "Intermediate"),
        ("advanced", "Advanced"),
        ("expert", "Expert"),
    ]

    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="skills")
    skill = models.ForeignKey(Skill, on_delete=models.CASCADE)
    level = models.CharField(max_length=20, choices=LEVEL_CHOICES, default="intermediate")
    years_of_experience = models.PositiveSmallIntegerField(default=0)

    class Meta:
        unique_together = ('freelancer', 'skill')


class PortfolioProject(models.Model):
    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="portfolio")
    title = models.CharField(max_length=200)
    description = models.TextField()
    link = models.URLField(null=True, blank=True)
    image = models.FileField(upload_to=portfolio_upload_path, null=True, blank=True)
    technologies = models.JSONField(default=list, blank=True)
    completed_at = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)


class EmploymentHistory(models.Model):
    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="experience")
    company = models.CharField(max_length=120)
    role = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    is_current = models.BooleanField(default=False)

    class Meta:
        ordering = ["-start_date"]


class Education(models.Model):
    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="education")
    institution = models.CharField(max_length=150)
    degree = models.CharField(max_length=120)
    field_of_study = models.CharField(max_length=120, blank=True)
    year_completed = models.IntegerField(null=True, blank=True)


class Language(models.Model):
    PROFICIENCY_CHOICES = [
        ("basic", "Basic"),
        ("conversational", "Conversational"),
        ("fluent", "Fluent"),
        ("native", "Native"),
    ]

    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="languages")
    name = models.CharField(max_length=60)
    proficiency = models.CharField(max_length=20, choices=PROFICIENCY_CHOICES, default="conversational")

    class Meta:
        unique_together = ("freelancer", "name")


class Certification(models.Model):
    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="certifications")
    name = models.CharField(max_length=200)
    issuer = models.CharField(max_length=200)
    issued_at = models.DateField(null=True, blank=True)
    expires_at = models.DateField(null=True, blank=True)
    credential_url = models.URLField(blank=True)


class VerificationDocument(models.Model):
    DOCUMENT_TYPES = [
        ("id_card", "ID Card"),
        ("passport", "Passport"),
        ("drivers_license", "Driver's License"),
        ("certificate", "Certificate"),
        ("other", "Other"),
    ]

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    freelancer = models.ForeignKey(FreelancerProfile, on_delete=models.CASCADE, related_name="documents")
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPES)
    file = models.FileField(upload_to=document_upload_path)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    notes = models.TextField(blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-uploaded_at"]
