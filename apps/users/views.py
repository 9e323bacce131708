import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.models import update_last_login
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.freelancer.models import FreelancerProfile
from apps.freelancer.serializers import FreelancerProfileSerializer
from .models import LoginHistory
from .serializers import (
    SignupSerializer,
    VerifyEmailSerializer,
    ResendVerificationSerializer,
    LoginSerializer,
    LogoutSerializer,
    ForgotPasswordSerializer,
    ResetPasswordSerializer,
    ChangePasswordSerializer,
    UpdateProfileSerializer,
    MeSerializer,
    PublicUserSerializer,
    UserSerializer,
    issue_tokens,
)
from .utils import client_ip

logger = logging.getLogger(__name__)

User = get_user_model()


# ---------- 1. Signup ----------
class SignupView(generics.GenericAPIView):
    serializer_class = SignupSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        message = (
            "Account created. Please verify your email."
            if not user.is_verified
            else "Account created successfully."
        )
        return Response(
            {
                "success": True,
                "message": message,
                "data": {**issue_tokens(user), "user": UserSerializer(user).data},
            },
            status=status.HTTP_201_CREATED,
        )


# ---------- 2. Email verification ----------
class VerifyEmailView(generics.GenericAPIView):
    serializer_class = VerifyEmailSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": True, "message": "Email verified successfully."})


class ResendVerificationView(generics.GenericAPIView):
    serializer_class = ResendVerificationSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": True, "message": "Verification code sent."})


# ---------- 3. Login / Logout ----------
class LoginView(generics.GenericAPIView):
    """
    Login using email and password.
    Returns access and refresh JWT tokens and records the login.
    """
    serializer_class = LoginSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]

        update_last_login(None, user)
        LoginHistory.objects.create(
            user=user,
            ip_address=client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "")[:512],
        )

        return Response(
            {
                "success": True,
                "message": "Login successful.",
                "data": {**issue_tokens(user), "user": UserSerializer(user).data},
            },
            status=status.HTTP_200_OK,
        )


class LogoutView(generics.GenericAPIView):
    serializer_class = LogoutSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": True, "message": "Logged out successfully."})


class MeView(generics.RetrieveAPIView):
    serializer_class = MeSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


# ---------- 4. Passwords ----------
class ForgotPasswordView(generics.GenericAPIView):
    serializer_class = ForgotPasswordSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(
            {
                "success": True,
                "message": "If the email exists, a password reset code has been sent.",
            },
            status=status.HTTP_200_OK,
        )


class ResetPasswordView(generics.GenericAPIView):
    serializer_class = ResetPasswordSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": True, "message": "Password reset successfully."})


class ChangePasswordView(generics.GenericAPIView):
    serializer_class = ChangePasswordSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": True, "message": "Password changed successfully."})


class UpdateProfileView(generics.UpdateAPIView):
    serializer_class = UpdateProfileSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(MeSerializer(user, context={"request": request}).data)


# ---------- 5. Users ----------
class FreelancerSearchView(generics.ListAPIView):
    """
    Public freelancer directory, filterable by skill, category, hourly rate
    and minimum rating.
    """
    serializer_class = FreelancerProfileSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        params = self.request.query_params
        qs = (
            FreelancerProfile.objects
            .select_related("user")
            .prefetch_related("skills__skill", "categories")
            .filter(user__account_status="active")
        )

        keyword = params.get("q") or params.get("keyword")
        if keyword:
            qs = qs.filter(
                Q(title__icontains=keyword)
                | Q(bio__icontains=keyword)
                | Q(user__name__icontains=keyword)
            )

        skills = params.get("skills")
        if skills:
            names = [s.strip() for s in skills.split(",") if s.strip()]
            qs = qs.filter(skills__skill__name__in=names)

        category = params.get("category")
        if category:
            qs = qs.filter(categories__name__iexact=category)

        if params.get("min_rate"):
            qs = qs.filter(hourly_rate__gte=params["min_rate"])
        if params.get("max_rate"):
            qs = qs.filter(hourly_rate__lte=params["max_rate"])
        if params.get("min_rating"):
            qs = qs.filter(average_rating__gte=params["min_rating"])
        if params.get("verified") in ("1", "true"):
            qs = qs.filter(verification_status="approved")

        return qs.distinct().order_by("-average_rating", "-completed_projects")


@api_view(["GET"])
@permission_classes([AllowAny])
def user_exists(request, user_id):
    return Response({"exists": User.objects.filter(id=user_id).exists()})


class UserDetailView(generics.RetrieveAPIView):
    serializer_class = PublicUserSerializer
    permission_classes = [IsAuthenticated]
    queryset = User.objects.all()
    lookup_url_kwarg = "user_id"

    def retrieve(self, request, *args, **kwargs):
        user = get_object_or_404(User, id=kwargs["user_id"])
        data = PublicUserSerializer(user).data
        if user.role == "freelancer":
            profile = FreelancerProfile.objects.filter(user=user).first()
            data["freelancer_profile"] = (
                FreelancerProfileSerializer(profile, context={"request": request}).data
                if profile else None
            )
        return Response(data)
