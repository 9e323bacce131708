from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.freelancer.models import FreelancerProfile
from apps.users.serializers import UserSerializer, validate_password_strength

User = get_user_model()


class AdminUserSerializer(UserSerializer):
    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["is_active", "last_login"]
        read_only_fields = fields


class AdminUserCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=[value for value, _ in User.ROLE_CHOICES])
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    country = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_email(self, value):
        return value.lower()

    def validate_password(self, value):
        return validate_password_strength(value)


class AdminUserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    phone = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True)
    account_status = serializers.ChoiceField(
        choices=[value for value, _ in User.ACCOUNT_STATUS_CHOICES], required=False
    )


class AccountStatusSerializer(serializers.Serializer):
    account_status = serializers.ChoiceField(
        choices=[value for value, _ in User.ACCOUNT_STATUS_CHOICES], required=False
    )
    is_active = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if "account_status" not in attrs:
            if "is_active" not in attrs:
                raise serializers.ValidationError("account_status or is_active is required.")
            attrs["account_status"] = "active" if attrs["is_active"] else "deactivated"
        return attrs


class PendingFreelancerSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="user.display_name", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    is_verified = serializers.BooleanField(source="user.is_verified", read_only=True)
    pending_documents = serializers.SerializerMethodField()

    class Meta:
        model = FreelancerProfile
        fields = [
            "id", "name", "email", "is_verified", "title", "verification_level",
            "verification_status", "pending_documents", "created_at",
        ]
        read_only_fields = fields

    def get_pending_documents(self, obj):
        return sum(1 for doc in obj.documents.all() if doc.status == "pending")


class VerifyFreelancerSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["approve", "reject"], default="approve")
    verification_level = serializers.ChoiceField(
        choices=[value for value, _ in FreelancerProfile.VERIFICATION_LEVELS], required=False
    )
    verification_notes = serializers.CharField(required=False, allow_blank=True, default="")
    document_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)


class RejectFreelancerSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    document_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)


class DocumentReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["approved", "rejected"])
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BulkVerifySerializer(serializers.Serializer):
    freelancer_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    action = serializers.ChoiceField(choices=["approve", "reject"])


class AdminProjectStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["open", "in_progress", "completed", "cancelled"])
    reason = serializers.CharField(required=False, allow_blank=True, default="")

