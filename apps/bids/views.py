import logging

from rest_framework import generics, permissions, status
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.permissions import IsClient, IsFreelancer, IsVerified
from apps.projects.selectors import ProjectSelector
from apps.projects.services import lifecycle
from apps.users.selectors import ProfileSelector
from .models import Bid
from .selectors import BidAnalyticsSelector
from .serializers import (
    BidSerializer,
    BidWriteSerializer,
    CounterOfferCreateSerializer,
    CounterOfferResponseSerializer,
    MyBidSerializer,
)

logger = logging.getLogger(__name__)


def _bid_for(project_id, bid_id):
    bid = (
        Bid.objects
        .select_related("project__client", "freelancer__user")
        .filter(pk=bid_id, project_id=project_id)
        .first()
    )
    if bid is None:
        raise NotFound("Bid not found.")
    return bid


def _fresh(bid):
    return Bid.objects.select_related("freelancer__user").get(pk=bid.pk)


# ---------- Project bids ----------
class ProjectBidListCreateView(generics.ListCreateAPIView):
    """
    GET lists every bid on a project (public). POST places a bid for the
    requesting freelancer.
    """
    serializer_class = BidSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsFreelancer(), IsVerified()]

    def get_queryset(self):
        project = ProjectSelector.get(self.kwargs["pk"])
        status_filter = self.request.query_params.get("status")
        qs = project.bids.select_related("freelancer__user")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = BidWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        bid = lifecycle.submit_bid(request.user, self.kwargs["pk"], **serializer.validated_data)
        return Response(BidSerializer(_fresh(bid)).data, status=status.HTTP_201_CREATED)


class BidDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk, bid_id):
        bid = _bid_for(pk, bid_id)
        user = request.user
        if not (
            user.role == "admin"
            or bid.freelancer.user_id == user.id
            or bid.project.is_owned_by(user)
        ):
            raise PermissionDenied("Not authorized to view this bid.")
        return Response(BidSerializer(bid).data)

    def put(self, request, pk, bid_id):
        serializer = BidWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        bid = lifecycle.update_bid(request.user, pk, bid_id, **serializer.validated_data)
        return Response(BidSerializer(_fresh(bid)).data)

    patch = put

    def delete(self, request, pk, bid_id):
        bid = lifecycle.withdraw_bid(request.user, pk, bid_id)
        return Response(BidSerializer(_fresh(bid)).data)


class AcceptBidView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsClient]

    def post(self, request, pk, bid_id):
        project, bid = lifecycle.accept_bid(request.user, pk, bid_id)
        return Response({
            "message": "Bid accepted successfully.",
            "bid": BidSerializer(_fresh(bid)).data,
            "project": {
                "id": project.pk,
                "status": project.status,
                "assigned_freelancer": project.assigned_freelancer_id,
            },
        })

    put = post


class CounterOfferView(APIView):
    """
    POST: the project owner proposes new terms. PUT: the bidder answers.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk, bid_id):
        serializer = CounterOfferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        bid = lifecycle.create_counter_offer(request.user, pk, bid_id, **serializer.validated_data)
        return Response(BidSerializer(_fresh(bid)).data, status=status.HTTP_201_CREATED)

    def put(self, request, pk, bid_id):
        serializer = CounterOfferResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        bid = lifecycle.respond_to_counter_offer(
            request.user, pk, bid_id, serializer.validated_data["response"]
        )
        return Response(BidSerializer(_fresh(bid)).data)


# ---------- Per user ----------
class MyBidsView(generics.ListAPIView):
    serializer_class = MyBidSerializer
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]

    def get_queryset(self):
        freelancer = ProfileSelector.freelancer_for(self.request.user)
        qs = Bid.objects.filter(freelancer=freelancer).select_related("project", "freelancer__user")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs


class BidAnalyticsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        if user.role == "freelancer":
            data = BidAnalyticsSelector.for_freelancer(ProfileSelector.freelancer_for(user))
        elif user.role == "client":
            data = BidAnalyticsSelector.for_client(ProfileSelector.client_for(user))
        else:
            data = BidAnalyticsSelector.platform()
        return Response({"role": user.role, **data})
