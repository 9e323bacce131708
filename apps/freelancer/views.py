import logging

from rest_framework import generics, permissions, status, viewsets
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response

from apps.cores.permissions import IsFreelancer
from apps.cores.uploads import validate_upload
from apps.users.selectors import ProfileSelector
from .models import (
    Category, Skill, FreelancerSkill, PortfolioProject, EmploymentHistory,
    Education, Language, Certification, VerificationDocument,
)
from .serializers import (
    CategorySerializer, SkillSerializer, FreelancerProfileDetailSerializer,
    FreelancerSkillSerializer, PortfolioProjectSerializer, EmploymentHistorySerializer,
    EducationSerializer, LanguageSerializer, CertificationSerializer,
    VerificationDocumentSerializer,
)
from .services import calculate_profile_completeness

logger = logging.getLogger(__name__)


# ---------------------------
# Skill / Category lookups
# ---------------------------
class CategoryListView(generics.ListAPIView):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None


class SkillListView(generics.ListAPIView):
    queryset = Skill.objects.select_related("category")
    serializer_class = SkillSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None


# ---------------------------
# Freelancer Profile
# ---------------------------
class FreelancerProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = FreelancerProfileDetailSerializer
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get_object(self):
        return ProfileSelector.freelancer_for(self.request.user)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsFreelancer])
@parser_classes([MultiPartParser, FormParser])
def upload_profile_image(request):
    image = request.FILES.get("image")
    validate_upload(image, "profiles")

    user = request.user
    user.profile_image = image
    user.save(update_fields=["profile_image"])

    logger.info("Profile image updated for user %s", user.pk)
    return Response(
        {"message": "Profile image updated.", "profile_image": user.profile_image.url},
        status=status.HTTP_200_OK,
    )


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsFreelancer])
def profile_completeness(request):
    profile = ProfileSelector.freelancer_for(request.user)
    return Response(calculate_profile_completeness(profile))


# ---------------------------
# Owner scoped profile collections
# ---------------------------
class FreelancerOwnedViewSet(viewsets.ModelViewSet):
    """
    CRUD over one child collection of the requesting freelancer's profile.
    Rows of other freelancers are invisible, so foreign ids return 404.
    """
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    pagination_class = None
    model = None

    def get_profile(self):
        if not hasattr(self, "_profile"):
            self._profile = ProfileSelector.freelancer_for(self.request.user)
        return self._profile

    def get_queryset(self):
        return self.model.objects.filter(freelancer=self.get_profile())

    def perform_create(self, serializer):
        serializer.save(freelancer=self.get_profile())


class SkillViewSet(FreelancerOwnedViewSet):
    model = FreelancerSkill
    serializer_class = FreelancerSkillSerializer

    def get_queryset(self):
        return super().get_queryset().select_related("skill__category")


class PortfolioViewSet(FreelancerOwnedViewSet):
    model = PortfolioProject
    serializer_class = PortfolioProjectSerializer


class ExperienceViewSet(FreelancerOwnedViewSet):
    model = EmploymentHistory
    serializer_class = EmploymentHistorySerializer


class EducationViewSet(FreelancerOwnedViewSet):
    model = Education
    serializer_class = EducationSerializer


class LanguageViewSet(FreelancerOwnedViewSet):
    model = Language
    serializer_class = LanguageSerializer

    def perform_create(self, serializer):
        profile = self.get_profile()
        if Language.objects.filter(freelancer=profile, name__iexact=serializer.validated_data["name"]).exists():
            raise ValidationError({"name": "Language already added."})
        serializer.save(freelancer=profile)


class CertificationViewSet(FreelancerOwnedViewSet):
    model = Certification
    serializer_class = CertificationSerializer


class DocumentViewSet(FreelancerOwnedViewSet):
    model = VerificationDocument
    serializer_class = VerificationDocumentSerializer
    http_method_names = ["get", "post", "delete"]

    def perform_create(self, serializer):
        profile = self.get_profile()
        serializer.save(freelancer=profile)
        if profile.verification_status == "rejected":
            # a fresh upload puts the freelancer back in the review queue
            profile.verification_status = "pending"
            profile.save(update_fields=["verification_status", "updated_at"])
