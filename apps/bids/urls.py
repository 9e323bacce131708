from django.urls import path

from . import views

urlpatterns = [
    path("freelancer/my-bids/", views.MyBidsView.as_view(), name="my-bids"),
    path("stats/bid-analytics/", views.BidAnalyticsView.as_view(), name="bid-analytics"),

    path("<int:pk>/bids/", views.ProjectBidListCreateView.as_view(), name="project-bids"),
    path("<int:pk>/bids/<int:bid_id>/", views.BidDetailView.as_view(), name="bid-detail"),
    path("<int:pk>/bids/<int:bid_id>/accept/", views.AcceptBidView.as_view(), name="bid-accept"),
    path(
        "<int:pk>/bids/<int:bid_id>/counter-offer/",
        views.CounterOfferView.as_view(),
        name="bid-counter-offer",
    ),
]
