import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from apps.freelancer.models import FreelancerProfile
from apps.freelancer.serializers import FreelancerProfileSerializer
from .models import ClientProfile
from .utils import create_and_send_otp, verify_otp

logger = logging.getLogger(__name__)

User = get_user_model()


def validate_password_strength(value):
    if not re.search(r"[A-Z]", value):
        raise serializers.ValidationError("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", value):
        raise serializers.ValidationError("Password must contain at least one lowercase letter.")
    if not re.search(r"\d", value):
        raise serializers.ValidationError("Password must contain at least one digit.")
    return value


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    return {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
    }


# ---------- Read serializers ----------
class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id", "email", "name", "role", "is_verified", "account_status",
            "phone", "city", "country", "profile_image",
            "linkedin", "github", "twitter", "website", "created_at",
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "name", "role", "profile_image", "city", "country", "created_at"]
        read_only_fields = fields


class ClientProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientProfile
        fields = [
            "id", "company_name", "position", "industry", "company_size", "bio",
            "projects_posted", "completed_projects", "total_spent", "rating",
            "preferred_categories", "billing_address", "tax_id", "verification_level",
        ]
        read_only_fields = [
            "id", "projects_posted", "completed_projects", "total_spent",
            "rating", "verification_level",
        ]


class MeSerializer(UserSerializer):
    street = serializers.CharField(read_only=True)
    state = serializers.CharField(read_only=True)
    zip_code = serializers.CharField(read_only=True)
    profile = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + [
            "street", "state", "zip_code", "notification_preferences", "profile",
        ]
        read_only_fields = fields

    def get_profile(self, obj):
        if obj.role == "client":
            profile = ClientProfile.objects.filter(user=obj).first()
            return ClientProfileSerializer(profile).data if profile else None
        if obj.role == "freelancer":
            profile = FreelancerProfile.objects.filter(user=obj).first()
            return FreelancerProfileSerializer(profile, context=self.context).data if profile else None
        return None


# ---------- 1. Signup ----------
class SignupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8, style={'input_type': 'password'})
    role = serializers.ChoiceField(choices=[("client", "Client"), ("freelancer", "Freelancer")])
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_email(self, value):
        value = value.lower().strip()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already registered.")
        return value

    def validate_password(self, value):
        return validate_password_strength(value)

    @transaction.atomic
    def create(self, validated_data):
        password = validated_data.pop("password")
        require_verification = settings.REQUIRE_EMAIL_VERIFICATION

        user = User.objects.create_user(
            email=validated_data["email"],
            password=password,
            name=validated_data["name"],
            role=validated_data["role"],
            phone=validated_data.get("phone", ""),
            is_verified=not require_verification,
        )

        if user.role == "client":
            ClientProfile.objects.create(user=user)
        else:
            FreelancerProfile.objects.create(user=user)

        if require_verification:
            transaction.on_commit(
                lambda: create_and_send_otp(user.email, purpose="verify_email")
            )

        logger.info("New %s account created: %s", user.role, user.email)
        return user


# ---------- 2. Email verification ----------
class VerifyEmailSerializer(serializers.Serializer):
    email = serializers.EmailField()
    otp = serializers.CharField(write_only=True)

    def validate(self, data):
        email = data["email"].lower().strip()
        user = User.objects.filter(email=email).first()
        if not user:
            raise serializers.ValidationError({"email": "Email not found."})
        if not verify_otp(email, data["otp"], purpose="verify_email"):
            raise serializers.ValidationError({"otp": "Invalid or expired OTP."})
        data["user"] = user
        return data

    def save(self):
        user = self.validated_data["user"]
        user.is_verified = True
        user.save(update_fields=["is_verified", "is_active"])
        return user


class ResendVerificationSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        value = value.lower().strip()
        user = User.objects.filter(email=value).first()
        if not user:
            raise serializers.ValidationError("Email not found.")
        if user.is_verified:
            raise serializers.ValidationError("Email is already verified.")
        return value

    def save(self):
        create_and_send_otp(self.validated_data["email"], purpose="verify_email")


# ---------- 3. Login / Logout ----------
class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})

    def validate(self, data):
        email = data.get('email').lower().strip()
        password = data.get('password')

        user = User.objects.filter(email=email).first()
        if not user or not user.check_password(password):
            raise AuthenticationFailed("Invalid email or password.")

        if user.account_status != "active":
            raise PermissionDenied(f"Your account is {user.account_status}. Please contact support.")

        data["user"] = user
        return data


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()

    def save(self):
        try:
            RefreshToken(self.validated_data["refresh"]).blacklist()
        except TokenError:
            raise serializers.ValidationError({"refresh": "Invalid or expired refresh token."})


# ---------- 4. Password reset ----------
class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def save(self):
        email = self.validated_data["email"].lower().strip()
        if User.objects.filter(email=email).exists():
            create_and_send_otp(email, purpose="password_reset")
        else:
            logger.info("Password reset requested for unknown email %s", email)


class ResetPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()
    otp = serializers.CharField(write_only=True)
    new_password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={'input_type': 'password'},
    )

    def validate_new_password(self, value):
        return validate_password_strength(value)

    def validate(self, data):
        email = data["email"].lower().strip()
        user = User.objects.filter(email=email).first()
        if not user or not verify_otp(email, data["otp"], purpose="password_reset"):
            raise serializers.ValidationError({"otp": "Invalid or expired OTP."})
        data["user"] = user
        return data

    def save(self):
        user = self.validated_data["user"]
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        return user


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value):
        return validate_password_strength(value)

    def validate(self, data):
        if data["current_password"] == data["new_password"]:
            raise serializers.ValidationError({"new_password": "New password must differ from the current one."})
        return data

    def save(self):
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        return user


# ---------- 5. Profile update ----------
class UpdateProfileSerializer(serializers.ModelSerializer):
    client_profile = ClientProfileSerializer(required=False)

    class Meta:
        model = User
        fields = [
            "name", "phone", "street", "city", "state", "zip_code", "country",
            "linkedin", "github", "twitter", "website", "client_profile",
        ]

    @transaction.atomic
    def update(self, instance, validated_data):
        client_data = validated_data.pop("client_profile", None)

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if client_data and instance.role == "client":
            profile, _ = ClientProfile.objects.get_or_create(user=instance)
            for attr, value in client_data.items():
                setattr(profile, attr, value)
            profile.save()

        return instance
