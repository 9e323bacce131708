from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.bids.serializers import MyBidSerializer
from apps.cores.permissions import IsAdmin, IsClient, IsFreelancer
from apps.projects.serializers import ProjectSerializer
from apps.users.selectors import ProfileSelector
from .selectors import AdminDashboardSelector, ClientDashboardSelector, FreelancerDashboardSelector


def _months(request):
    raw = request.query_params.get("months", 12)
    try:
        months = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({"months": "Must be an integer."})
    if not 1 <= months <= 60:
        raise ValidationError({"months": "Must be between 1 and 60."})
    return months


# ---------- Dashboards ----------
class ClientDashboardView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    def get(self, request):
        data = ClientDashboardSelector.overview(ProfileSelector.client_for(request.user))
        data["recent_projects"] = ProjectSerializer(data["recent_projects"], many=True).data
        data["recent_bids"] = MyBidSerializer(data["recent_bids"], many=True).data
        return Response(data)


class FreelancerDashboardView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    def get(self, request):
        data = FreelancerDashboardSelector.overview(ProfileSelector.freelancer_for(request.user))
        data["active_projects"] = ProjectSerializer(data["active_projects"], many=True).data
        data["recent_bids"] = MyBidSerializer(data["recent_bids"], many=True).data
        return Response(data)


class AdminDashboardView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request):
        data = AdminDashboardSelector.overview(request.user)
        data["recent_projects"] = ProjectSerializer(data["recent_projects"], many=True).data
        return Response(data)


# ---------- Analytics ----------
class ClientAnalyticsView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    def get(self, request):
        client = ProfileSelector.client_for(request.user)
        return Response(ClientDashboardSelector.analytics(client, _months(request)))


class FreelancerAnalyticsView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    def get(self, request):
        freelancer = ProfileSelector.freelancer_for(request.user)
        return Response(FreelancerDashboardSelector.analytics(freelancer, _months(request)))


class AdminAnalyticsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request):
        return Response(AdminDashboardSelector.analytics(_months(request)))
