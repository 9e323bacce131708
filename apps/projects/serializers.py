from django.db import transaction
from django.utils import timezone
from rest_framework import serializers

from apps.cores.uploads import validate_uploads
from apps.freelancer.models import Category, FreelancerProfile, Skill
from apps.freelancer.serializers import FlexibleJSONField
from apps.users.serializers import PublicUserSerializer
from .models import Attachment, Milestone, Project, Submission


class ClientMiniSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    company_name = serializers.CharField(read_only=True)
    rating = serializers.DecimalField(max_digits=3, decimal_places=2, read_only=True)
    user = PublicUserSerializer(read_only=True)


class FreelancerMiniSerializer(serializers.ModelSerializer):
    user = PublicUserSerializer(read_only=True)

    class Meta:
        model = FreelancerProfile
        fields = ["id", "title", "hourly_rate", "average_rating", "completed_projects", "user"]
        read_only_fields = fields


class AttachmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Attachment
        fields = ["id", "name", "file", "uploaded_at"]
        read_only_fields = fields


class MilestoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = Milestone
        fields = [
            "id", "title", "description", "due_date", "amount", "status",
            "completed_at", "approved_at", "created_at",
        ]
        read_only_fields = ["id", "completed_at", "approved_at", "created_at"]
        extra_kwargs = {"status": {"required": False}}

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Milestone title is required.")
        return value.strip()

    def validate_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Amount cannot be negative.")
        return value


class SubmissionSerializer(serializers.ModelSerializer):
    attachments = AttachmentSerializer(many=True, read_only=True)
    submitted_by = FreelancerMiniSerializer(read_only=True)

    class Meta:
        model = Submission
        fields = [
            "id", "description", "status", "client_feedback", "submitted_by",
            "attachments", "created_at", "reviewed_at",
        ]
        read_only_fields = fields


class SubmitWorkSerializer(serializers.Serializer):
    description = serializers.CharField()
    files = serializers.ListField(child=serializers.FileField(), required=False, default=list)

    def validate_files(self, value):
        validate_uploads(value, "submissions")
        return value


class ReviewSubmissionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["approve", "reject"])
    feedback = serializers.CharField(required=False, allow_blank=True, default="")


# ---------- project ----------
class ProjectSerializer(serializers.ModelSerializer):
    """
    Read/write representation of a project. ``category`` and ``skills`` are
    written as names and created on the fly when unknown.
    """
    client = ClientMiniSerializer(read_only=True)
    assigned_freelancer = FreelancerMiniSerializer(read_only=True)
    category = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    skills = FlexibleJSONField(required=False)
    bid_count = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            "id", "title", "description", "category", "skills", "budget", "deadline",
            "status", "client", "assigned_freelancer", "progress", "time_tracked",
            "bid_count", "created_at", "updated_at", "started_at", "completed_at",
        ]
        read_only_fields = [
            "id", "status", "client", "assigned_freelancer", "progress", "time_tracked",
            "created_at", "updated_at", "started_at", "completed_at",
        ]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["category"] = instance.category.name if instance.category_id else None
        data["skills"] = [skill.name for skill in instance.skills.all()]
        return data

    def get_bid_count(self, obj):
        annotated = getattr(obj, "bid_count", None)
        if annotated is not None:
            return annotated
        return obj.bids.count()

    # ------------------- VALIDATIONS ------------------- #

    def validate_title(self, value):
        if len(value.strip()) < 5:
            raise serializers.ValidationError("Title must be at least 5 characters long.")
        return value.strip()

    def validate_description(self, value):
        if len(value.strip()) < 20:
            raise serializers.ValidationError("Description must be at least 20 characters long.")
        return value

    def validate_budget(self, value):
        if value <= 0:
            raise serializers.ValidationError("Budget must be greater than zero.")
        return value

    def validate_deadline(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Deadline cannot be in the past.")
        return value

    def validate_skills(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Skills must be a list of names.")
        names = []
        for name in value:
            name = str(name).strip()
            if name and name.lower() not in [n.lower() for n in names]:
                names.append(name)
        return names

    def _apply_relations(self, project, category, skills):
        if category is not None:
            project.category = (
                Category.objects.get_or_create(name=category.strip())[0]
                if category.strip() else None
            )
            project.save(update_fields=["category"])
        if skills is not None:
            resolved = []
            for name in skills:
                skill = Skill.objects.filter(name__iexact=name).first()
                if skill is None:
                    skill = Skill.objects.create(name=name, category=project.category)
                resolved.append(skill)
            project.skills.set(resolved)

    @transaction.atomic
    def create(self, validated_data):
        category = validated_data.pop("category", None)
        skills = validated_data.pop("skills", None)
        project = Project.objects.create(**validated_data)
        self._apply_relations(project, category, skills)
        return project

    @transaction.atomic
    def update(self, instance, validated_data):
        category = validated_data.pop("category", None)
        skills = validated_data.pop("skills", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        self._apply_relations(instance, category, skills)
        return instance


class ProjectDetailSerializer(ProjectSerializer):
    milestones = MilestoneSerializer(many=True, read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)
    submissions = SubmissionSerializer(many=True, read_only=True)

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ["milestones", "attachments", "submissions"]


# ---------- lifecycle payloads ----------
class AssignFreelancerSerializer(serializers.Serializer):
    freelancer_id = serializers.IntegerField()
    bid_id = serializers.IntegerField()


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[value for value, _ in Project.STATUS])


class ProgressSerializer(serializers.Serializer):
    progress = serializers.IntegerField()


class TimeTrackingSerializer(serializers.Serializer):
    time_tracked = serializers.IntegerField()


class AttachmentUploadSerializer(serializers.Serializer):
    files = serializers.ListField(child=serializers.FileField(), allow_empty=False)

    def validate_files(self, value):
        validate_uploads(value, "projects")
        return value
