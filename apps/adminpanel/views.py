import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.bids.serializers import BidSerializer
from apps.cores.permissions import IsAdmin
from apps.freelancer.models import FreelancerProfile
from apps.freelancer.serializers import FreelancerProfileDetailSerializer, VerificationDocumentSerializer
from apps.projects.selectors import ProjectSelector
from apps.projects.serializers import ProjectDetailSerializer, ProjectSerializer
from apps.users.serializers import ClientProfileSerializer
from apps.users.selectors import ProfileSelector
from . import services
from .selectors import (
    ProjectAnalyticsSelector,
    RevenueSelector,
    SkillAnalyticsSelector,
    UserAnalyticsSelector,
    VerificationSelector,
)
from .serializers import (
    AccountStatusSerializer,
    AdminProjectStatusSerializer,
    AdminUserCreateSerializer,
    AdminUserSerializer,
    AdminUserUpdateSerializer,
    BulkVerifySerializer,
    DocumentReviewSerializer,
    PendingFreelancerSerializer,
    RejectFreelancerSerializer,
    VerifyFreelancerSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()

ADMIN_PERMISSIONS = [IsAuthenticated, IsAdmin]


def _int_param(request, name, default, upper=None):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: "Must be an integer."})
    if value < 1:
        raise ValidationError({name: "Must be positive."})
    return min(value, upper) if upper else value


# ---------- Freelancer verification ----------
class PendingFreelancersView(generics.ListAPIView):
    serializer_class = PendingFreelancerSerializer
    permission_classes = ADMIN_PERMISSIONS

    def get_queryset(self):
        return VerificationSelector.pending_freelancers().prefetch_related("documents")


class FreelancerVerificationListView(generics.ListAPIView):
    serializer_class = PendingFreelancerSerializer
    permission_classes = ADMIN_PERMISSIONS
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["verification_status", "verification_level"]

    def get_queryset(self):
        return FreelancerProfile.objects.select_related("user").prefetch_related("documents")


class FreelancerAdminDetailView(generics.RetrieveAPIView):
    serializer_class = FreelancerProfileDetailSerializer
    permission_classes = ADMIN_PERMISSIONS
    queryset = FreelancerProfile.objects.select_related("user")


class VerifyFreelancerView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request, pk):
        serializer = VerifyFreelancerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        profile = services.verify_freelancer(
            pk,
            action=data["action"],
            level=data.get("verification_level"),
            notes=data["verification_notes"],
            document_ids=data["document_ids"],
        )
        verdict = "verified" if profile.verification_status == "approved" else "rejected"
        return Response({
            "message": f"Freelancer {verdict} successfully",
            "freelancer": FreelancerProfileDetailSerializer(profile).data,
        })


class RejectFreelancerView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request, pk):
        serializer = RejectFreelancerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = services.reject_freelancer(pk, **serializer.validated_data)
        return Response({
            "message": "Freelancer verification rejected",
            "freelancer": FreelancerProfileDetailSerializer(profile).data,
        })


class DocumentReviewView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request, pk, document_id):
        serializer = DocumentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = services.review_document(pk, document_id, **serializer.validated_data)
        return Response({
            "message": f"Document {document.status} successfully",
            "document": VerificationDocumentSerializer(document).data,
        })


class BulkVerifyView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request):
        serializer = BulkVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data["action"]
        updated = services.bulk_verify(serializer.validated_data["freelancer_ids"], action)
        verdict = "approved" if action == "approve" else "rejected"
        return Response({"message": f"{updated} freelancers {verdict} successfully", "updated": updated})


class UserDocumentsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        if user.role != "freelancer":
            return Response({"documents": []})
        profile = ProfileSelector.freelancer_or_none(user)
        if profile is None:
            return Response({"detail": "Freelancer profile not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response({
            "documents": VerificationDocumentSerializer(profile.documents.all(), many=True).data
        })


# ---------- Users ----------
class AdminUserListCreateView(generics.ListCreateAPIView):
    serializer_class = AdminUserSerializer
    permission_classes = ADMIN_PERMISSIONS

    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = ["role", "account_status", "is_verified"]
    search_fields = ["email", "name", "username"]
    ordering_fields = ["created_at", "id", "name"]

    def get_queryset(self):
        return User.objects.all().order_by("-created_at")

    def create(self, request, *args, **kwargs):
        serializer = AdminUserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.create_user(**serializer.validated_data)
        return Response(
            {"message": "User created successfully", "user": AdminUserSerializer(user).data},
            status=status.HTTP_201_CREATED,
        )


class AdminUserDetailView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        profile = None
        if user.role == "client":
            client = ProfileSelector.client_or_none(user)
            profile = ClientProfileSerializer(client).data if client else None
        elif user.role == "freelancer":
            freelancer = ProfileSelector.freelancer_or_none(user)
            profile = FreelancerProfileDetailSerializer(freelancer).data if freelancer else None
        return Response({"user": AdminUserSerializer(user).data, "profile": profile})

    def put(self, request, pk):
        serializer = AdminUserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.update_user(pk, **serializer.validated_data)
        return Response({"message": "User updated successfully", "user": AdminUserSerializer(user).data})

    def delete(self, request, pk):
        services.delete_user(pk)
        return Response({"message": "User deleted successfully"})


class AdminUserStatusView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request, pk):
        serializer = AccountStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.set_account_status(pk, serializer.validated_data["account_status"])
        return Response({
            "message": f"User {user.get_account_status_display().lower()} successfully",
            "user": AdminUserSerializer(user).data,
        })


# ---------- Projects ----------
class AdminProjectListView(generics.ListAPIView):
    serializer_class = ProjectSerializer
    permission_classes = ADMIN_PERMISSIONS

    def get_queryset(self):
        qs = ProjectSelector.public_list({"status": self.request.query_params.get("status") or "all"})
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))
        return qs


class AdminProjectDetailView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request, pk):
        project = ProjectSelector.get(pk)
        data = ProjectDetailSerializer(project).data
        data["bids"] = BidSerializer(project.bids.select_related("freelancer__user"), many=True).data
        return Response(data)

    def delete(self, request, pk):
        services.delete_project(pk)
        return Response({"message": "Project deleted successfully"})


class AdminProjectStatusView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request, pk):
        serializer = AdminProjectStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = services.override_project_status(pk, **serializer.validated_data)
        return Response({
            "message": "Project status updated successfully",
            "project": ProjectSerializer(ProjectSelector.get(project.pk)).data,
        })


# ---------- Analytics ----------
class UserAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(UserAnalyticsSelector.summary())


class ProjectAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(ProjectAnalyticsSelector.summary())


class RevenueAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(RevenueSelector.summary(_int_param(request, "months", 12, upper=60)))


class SkillsAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(SkillAnalyticsSelector.summary(_int_param(request, "limit", 20, upper=100)))


class UserGrowthAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(UserAnalyticsSelector.growth(_int_param(request, "months", 12, upper=60)))


class TransactionAnalyticsView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        limit = _int_param(request, "limit", 50, upper=500)
        summary = RevenueSelector.summary()
        return Response({
            "total_volume": summary["total_revenue"],
            "transaction_count": summary["completed_projects"],
            "transactions": RevenueSelector.transactions(limit),
        })
