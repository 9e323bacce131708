import logging

from django.db import transaction
from django.db.models import F
from rest_framework import generics, permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.permissions import IsClient, IsFreelancer, IsVerified
from apps.cores.realtime import push_dashboard_update
from apps.users.models import ClientProfile
from apps.users.selectors import ProfileSelector
from .exceptions import InvalidTransition
from .models import Attachment
from .selectors import ProjectSelector
from .serializers import (
    AssignFreelancerSerializer,
    AttachmentSerializer,
    AttachmentUploadSerializer,
    MilestoneSerializer,
    ProgressSerializer,
    ProjectDetailSerializer,
    ProjectSerializer,
    ReviewSubmissionSerializer,
    StatusSerializer,
    SubmissionSerializer,
    SubmitWorkSerializer,
    TimeTrackingSerializer,
)
from .services import lifecycle

logger = logging.getLogger(__name__)


def _require_party(project, user):
    if user.role == "admin":
        return
    if not (project.is_owned_by(user) or project.is_assigned_to(user)):
        raise PermissionDenied("Not authorized to access this project.")


def _require_editable(project, user):
    if not project.is_owned_by(user):
        raise PermissionDenied("Not authorized to modify this project.")
    if project.status != "open":
        raise InvalidTransition("Only open projects can be modified.")


# ---------- Listing ----------
class ProjectListCreateView(generics.ListCreateAPIView):
    """
    GET is public and lists open projects by default (``?status=`` overrides,
    ``all`` disables the filter). POST creates a project for the client.
    """
    serializer_class = ProjectSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsClient(), IsVerified()]

    def get_queryset(self):
        return ProjectSelector.public_list(self.request.query_params)

    def perform_create(self, serializer):
        client = ProfileSelector.client_for(self.request.user)
        with transaction.atomic():
            project = serializer.save(client=client)
            ClientProfile.objects.filter(pk=client.pk).update(
                projects_posted=F("projects_posted") + 1
            )
        logger.info("Project %s created by client %s", project.pk, client.pk)
        push_dashboard_update(self.request.user.id, "project_created")


class ProjectSearchView(generics.ListAPIView):
    serializer_class = ProjectSerializer
    permission_classes = [permissions.AllowAny]

    def get_queryset(self):
        return ProjectSelector.search(self.request.query_params)


class ClientProjectsView(generics.ListAPIView):
    serializer_class = ProjectSerializer
    permission_classes = [permissions.IsAuthenticated, IsClient]

    def get_queryset(self):
        client = ProfileSelector.client_for(self.request.user)
        return ProjectSelector.for_client(client, self.request.query_params.get("status"))


class FreelancerProjectsView(generics.ListAPIView):
    serializer_class = ProjectSerializer
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]

    def get_queryset(self):
        freelancer = ProfileSelector.freelancer_for(self.request.user)
        return ProjectSelector.for_freelancer(freelancer, self.request.query_params.get("status"))


# ---------- Single project ----------
class ProjectDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = ProjectDetailSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_object(self):
        return ProjectSelector.get(self.kwargs["pk"])

    def perform_update(self, serializer):
        _require_editable(serializer.instance, self.request.user)
        serializer.save()

    def destroy(self, request, *args, **kwargs):
        project = self.get_object()
        _require_editable(project, request.user)
        project.delete()
        logger.info("Project %s deleted by user %s", kwargs["pk"], request.user.pk)
        return Response({"detail": "Project deleted successfully."}, status=status.HTTP_200_OK)


class ProjectAttachmentView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def get(self, request, pk):
        project = ProjectSelector.get(pk)
        return Response(AttachmentSerializer(project.attachments.all(), many=True).data)

    def post(self, request, pk):
        project = ProjectSelector.get(pk)
        if not project.is_owned_by(request.user):
            raise PermissionDenied("Not authorized to modify this project.")

        serializer = AttachmentUploadSerializer(data={"files": request.FILES.getlist("files")})
        serializer.is_valid(raise_exception=True)

        created = [
            Attachment.objects.create(
                project=project, name=upload.name, file=upload, uploaded_by=request.user
            )
            for upload in serializer.validated_data["files"]
        ]
        return Response(
            AttachmentSerializer(created, many=True).data, status=status.HTTP_201_CREATED
        )


# ---------- Lifecycle ----------
class AssignFreelancerView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsClient]

    def post(self, request, pk):
        serializer = AssignFreelancerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project, _ = lifecycle.assign_freelancer(
            request.user, pk,
            serializer.validated_data["freelancer_id"],
            serializer.validated_data["bid_id"],
        )
        return Response(ProjectSerializer(ProjectSelector.get(project.pk)).data)


class ProjectStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, pk):
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = lifecycle.update_status(request.user, pk, serializer.validated_data["status"])
        return Response(ProjectSerializer(ProjectSelector.get(project.pk)).data)

    patch = put


class ProjectProgressView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]

    def put(self, request, pk):
        serializer = ProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = lifecycle.update_progress(request.user, pk, serializer.validated_data["progress"])
        return Response({"id": project.pk, "progress": project.progress})


class TimeTrackingView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]

    def put(self, request, pk):
        serializer = TimeTrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = lifecycle.update_time_tracking(
            request.user, pk, serializer.validated_data["time_tracked"]
        )
        return Response({"id": project.pk, "time_tracked": project.time_tracked})


class MilestoneListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        project = ProjectSelector.get(pk)
        _require_party(project, request.user)
        return Response(MilestoneSerializer(project.milestones.all(), many=True).data)

    def post(self, request, pk):
        serializer = MilestoneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        milestone = lifecycle.add_milestone(
            request.user, pk,
            title=data["title"],
            description=data.get("description", ""),
            due_date=data.get("due_date"),
            amount=data.get("amount", 0),
        )
        return Response(MilestoneSerializer(milestone).data, status=status.HTTP_201_CREATED)


class MilestoneDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, pk, milestone_id):
        serializer = MilestoneSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        milestone = lifecycle.update_milestone(
            request.user, pk, milestone_id, **serializer.validated_data
        )
        return Response(MilestoneSerializer(milestone).data)

    patch = put


class SubmissionListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request, pk):
        project = ProjectSelector.get(pk)
        _require_party(project, request.user)
        submissions = project.submissions.select_related("submitted_by__user").prefetch_related("attachments")
        return Response(SubmissionSerializer(submissions, many=True).data)

    def post(self, request, pk):
        payload = {"description": request.data.get("description")}
        files = request.FILES.getlist("files")
        if files:
            payload["files"] = files
        serializer = SubmitWorkSerializer(data=payload)
        serializer.is_valid(raise_exception=True)

        submission = lifecycle.submit_work(
            request.user, pk,
            serializer.validated_data["description"],
            serializer.validated_data["files"],
        )
        return Response(SubmissionSerializer(submission).data, status=status.HTTP_201_CREATED)


class SubmissionReviewView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsClient]

    def put(self, request, pk, submission_id):
        serializer = ReviewSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = lifecycle.review_submission(
            request.user, pk, submission_id,
            serializer.validated_data["action"],
            serializer.validated_data["feedback"],
        )
        return Response(SubmissionSerializer(submission).data)

    post = put
