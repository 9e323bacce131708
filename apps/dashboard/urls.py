from django.urls import path

from . import views

urlpatterns = [
    path("dashboard/client/", views.ClientDashboardView.as_view(), name="dashboard-client"),
    path("dashboard/freelancer/", views.FreelancerDashboardView.as_view(), name="dashboard-freelancer"),
    path("dashboard/admin/", views.AdminDashboardView.as_view(), name="dashboard-admin"),

    path("analytics/client/", views.ClientAnalyticsView.as_view(), name="analytics-client"),
    path("analytics/freelancer/", views.FreelancerAnalyticsView.as_view(), name="analytics-freelancer"),
    path("analytics/admin/", views.AdminAnalyticsView.as_view(), name="analytics-admin"),
]
