from django.contrib.auth import get_user_model
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.permissions import IsVerified
from apps.projects.models import Project
from . import services
from .models import Review
from .serializers import (
    ReviewCreateSerializer,
    ReviewResponseSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
)

User = get_user_model()

USER_REVIEW_SORTS = {"created_at", "rating"}


def _reviews():
    return Review.objects.select_related("reviewer", "reviewee", "project")


class ReviewCreateView(APIView):
    permission_classes = [IsAuthenticated, IsVerified]

    def post(self, request):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.create_review(request.user, **serializer.validated_data)
        return Response(
            {"message": "Review created successfully", "review": ReviewSerializer(review).data},
            status=status.HTTP_201_CREATED,
        )


class UserReviewsView(generics.ListAPIView):
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        user = get_object_or_404(User, pk=self.kwargs["user_id"])
        sort = self.request.query_params.get("sort", "created_at")
        if sort not in USER_REVIEW_SORTS:
            raise ValidationError({"sort": f"Cannot sort by '{sort}'."})
        prefix = "" if self.request.query_params.get("order") == "asc" else "-"
        return _reviews().filter(reviewee=user).order_by(f"{prefix}{sort}", "-id")


class ProjectReviewsView(generics.ListAPIView):
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        return _reviews().filter(project=project)


class ReviewDetailView(APIView):

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request, pk):
        return Response(ReviewSerializer(get_object_or_404(_reviews(), pk=pk)).data)

    def put(self, request, pk):
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.update_review(request.user, pk, **serializer.validated_data)
        return Response(
            {"message": "Review updated successfully", "review": ReviewSerializer(review).data}
        )

    def delete(self, request, pk):
        services.delete_review(request.user, pk)
        return Response({"message": "Review deleted successfully"})


class ReviewResponseView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = ReviewResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.add_response(request.user, pk, serializer.validated_data["comment"])
        return Response(
            {"message": "Response added successfully", "review": ReviewSerializer(review).data}
        )


class ReviewStatisticsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        return Response(services.review_statistics(user))
