from django.urls import path

from . import views

urlpatterns = [
    path("", views.ReviewCreateView.as_view(), name="review-create"),
    path("user/<int:user_id>/", views.UserReviewsView.as_view(), name="user-reviews"),
    path("project/<int:project_id>/", views.ProjectReviewsView.as_view(), name="project-reviews"),
    path("stats/<int:user_id>/", views.ReviewStatisticsView.as_view(), name="review-stats"),
    path("<int:pk>/", views.ReviewDetailView.as_view(), name="review-detail"),
    path("<int:pk>/response/", views.ReviewResponseView.as_view(), name="review-response"),
]
