from django.urls import path

from apps.contract.views import (
    ContractDetailView,
    ContractListCreateView,
    ContractSignView,
    ContractTermsView,
    ContractTerminateView,
)

urlpatterns = [
    path("", ContractListCreateView.as_view(), name="contracts"),
    path("<int:pk>/", ContractDetailView.as_view(), name="contract-detail"),
    path("<int:pk>/sign/", ContractSignView.as_view(), name="contract-sign"),
    path("<int:pk>/terms/", ContractTermsView.as_view(), name="contract-terms"),
    path("<int:pk>/terminate/", ContractTerminateView.as_view(), name="contract-terminate"),
]
