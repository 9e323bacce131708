from django.db.models import Q
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.contract.models import Contract
from apps.contract.permissions import IsContractParty
from apps.contract.serializers import (
    ContractCreateSerializer,
    ContractSerializer,
    ContractTermsSerializer,
)
from apps.contract import services


def _contracts():
    return (
        Contract.objects
        .select_related("project", "client__user", "freelancer__user")
        .prefetch_related("versions")
    )


class ContractListCreateView(generics.ListCreateAPIView):
    """
    Contracts the requesting user is a party to, newest first.
    """
    serializer_class = ContractSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        qs = _contracts()
        if user.role != "admin":
            qs = qs.filter(Q(client__user=user) | Q(freelancer__user=user))
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = ContractCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = services.create_contract(request.user, **serializer.validated_data)
        return Response(
            ContractSerializer(_contracts().get(pk=contract.pk)).data,
            status=status.HTTP_201_CREATED,
        )


class ContractDetailView(generics.RetrieveAPIView):
    serializer_class = ContractSerializer
    permission_classes = [permissions.IsAuthenticated, IsContractParty]

    def get_queryset(self):
        return _contracts()


class ContractSignView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        contract = services.sign_contract(request.user, pk)
        return Response(ContractSerializer(_contracts().get(pk=contract.pk)).data)

    put = post


class ContractTermsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, pk):
        serializer = ContractTermsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = services.update_terms(request.user, pk, **serializer.validated_data)
        return Response(ContractSerializer(_contracts().get(pk=contract.pk)).data)


class ContractTerminateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        contract = services.terminate_contract(request.user, pk)
        return Response(ContractSerializer(_contracts().get(pk=contract.pk)).data)
