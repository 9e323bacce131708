import json
import logging

from django.db import transaction
from rest_framework import serializers

from apps.cores.uploads import validate_upload
from .models import (
    Category, Skill, FreelancerProfile, FreelancerSkill,
    PortfolioProject, EmploymentHistory, Education, Language,
    Certification, VerificationDocument,
)

logger = logging.getLogger(__name__)


# ----------------------------
# Custom Field for Flexible JSON/List Input
# ----------------------------
class FlexibleJSONField(serializers.Field):
    """
    Accepts JSON strings, Python lists or comma-separated strings.
    Multipart forms send lists as JSON text, JSON requests send real lists.
    """
    def to_internal_value(self, data):
        if isinstance(data, (list, dict)):
            return data

        if isinstance(data, str):
            try:
                return json.loads(data)
            except (json.JSONDecodeError, ValueError):
                if ',' in data:
                    return [item.strip() for item in data.split(',') if item.strip()]
                return [data.strip()] if data.strip() else []

        if data is None:
            return []

        raise serializers.ValidationError("Expected a list or a JSON string.")

    def to_representation(self, value):
        return value


# ----------------------------
# Base Serializers
# ----------------------------
class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name']


class SkillSerializer(serializers.ModelSerializer):
    category = CategorySerializer(read_only=True)

    class Meta:
        model = Skill
        fields = ['id', 'name', 'category']


class FreelancerSkillSerializer(serializers.ModelSerializer):
    skill = SkillSerializer(read_only=True)
    skill_name = serializers.CharField(write_only=True, max_length=100)

    class Meta:
        model = FreelancerSkill
        fields = ['id', 'skill', 'skill_name', 'level', 'years_of_experience']
        read_only_fields = ['id']

    def validate_skill_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Skill name is required.")
        return value

    def _resolve_skill(self, validated_data):
        name = validated_data.pop("skill_name", None)
        if name:
            skill, _ = Skill.objects.get_or_create(name__iexact=name, defaults={"name": name})
            validated_data["skill"] = skill
        return validated_data

    def create(self, validated_data):
        validated_data = self._resolve_skill(validated_data)
        freelancer = validated_data["freelancer"]
        if FreelancerSkill.objects.filter(freelancer=freelancer, skill=validated_data["skill"]).exists():
            raise serializers.ValidationError({"skill_name": "Skill already added."})
        return super().create(validated_data)

    def update(self, instance, validated_data):
        return super().update(instance, self._resolve_skill(validated_data))


class PortfolioProjectSerializer(serializers.ModelSerializer):
    technologies = FlexibleJSONField(required=False)

    class Meta:
        model = PortfolioProject
        fields = ['id', 'title', 'description', 'link', 'image', 'technologies', 'completed_at', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_image(self, value):
        if value:
            validate_upload(value, "portfolio")
        return value


class EmploymentHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = EmploymentHistory
        fields = ['id', 'company', 'role', 'description', 'start_date', 'end_date', 'is_current']
        read_only_fields = ['id']

    def validate(self, data):
        start = data.get('start_date', getattr(self.instance, 'start_date', None))
        end = data.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError("End date cannot be before start date.")
        return data


class EducationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Education
        fields = ['id', 'institution', 'degree', 'field_of_study', 'year_completed']
        read_only_fields = ['id']

    def validate_year_completed(self, value):
        if value is not None and (value > 2100 or value < 1950):
            raise serializers.ValidationError("Year is unrealistic.")
        return value


class LanguageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Language
        fields = ['id', 'name', 'proficiency']
        read_only_fields = ['id']


class CertificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Certification
        fields = ['id', 'name', 'issuer', 'issued_at', 'expires_at', 'credential_url']
        read_only_fields = ['id']

    def validate(self, data):
        issued = data.get('issued_at')
        expires = data.get('expires_at')
        if issued and expires and expires < issued:
            raise serializers.ValidationError("Expiry date cannot be before issue date.")
        return data


class VerificationDocumentSerializer(serializers.ModelSerializer):
    class Meta:
        model = VerificationDocument
        fields = ['id', 'document_type', 'file', 'status', 'notes', 'uploaded_at', 'reviewed_at']
        read_only_fields = ['id', 'status', 'notes', 'uploaded_at', 'reviewed_at']

    def validate_file(self, value):
        return validate_upload(value, "documents")


# ----------------------------
# Freelancer Profile
# ----------------------------
class FreelancerProfileSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source="user.id", read_only=True)
    name = serializers.CharField(source="user.name", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    profile_image = serializers.ImageField(source="user.profile_image", read_only=True)

    skills = FreelancerSkillSerializer(many=True, read_only=True)
    categories = CategorySerializer(many=True, read_only=True)
    category_names = FlexibleJSONField(write_only=True, required=False)

    class Meta:
        model = FreelancerProfile
        fields = [
            'id', 'user_id', 'name', 'email', 'profile_image',
            'title', 'bio', 'hourly_rate', 'availability', 'hours_per_week',
            'skills', 'categories', 'category_names',
            'verification_level', 'verification_status',
            'average_rating', 'total_reviews', 'completed_projects',
            'ongoing_projects', 'total_earned', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'verification_level', 'verification_status',
            'average_rating', 'total_reviews', 'completed_projects',
            'ongoing_projects', 'total_earned', 'created_at', 'updated_at',
        ]

    def validate_hourly_rate(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Hourly rate cannot be negative.")
        return value

    @transaction.atomic
    def update(self, instance, validated_data):
        category_names = validated_data.pop("category_names", None)
        instance = super().update(instance, validated_data)

        if category_names is not None:
            categories = [
                Category.objects.get_or_create(name=name.strip())[0]
                for name in category_names if str(name).strip()
            ]
            instance.categories.set(categories)
            logger.info("Freelancer %s categories set to %s", instance.pk, category_names)

        return instance


class FreelancerProfileDetailSerializer(FreelancerProfileSerializer):
    """Profile with every child collection, used by admins and profile owners."""
    portfolio = PortfolioProjectSerializer(many=True, read_only=True)
    experience = EmploymentHistorySerializer(many=True, read_only=True)
    education = EducationSerializer(many=True, read_only=True)
    languages = LanguageSerializer(many=True, read_only=True)
    certifications = CertificationSerializer(many=True, read_only=True)
    documents = VerificationDocumentSerializer(many=True, read_only=True)

    class Meta(FreelancerProfileSerializer.Meta):
        fields = FreelancerProfileSerializer.Meta.fields + [
            'verification_notes', 'verified_at',
            'portfolio', 'experience', 'education', 'languages',
            'certifications', 'documents',
        ]
