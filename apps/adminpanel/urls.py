from django.urls import path

from . import views

urlpatterns = [
    # Freelancer verification
    path("freelancers/pending/", views.PendingFreelancersView.as_view(), name="admin-freelancers-pending"),
    path("freelancers/verification/", views.FreelancerVerificationListView.as_view(), name="admin-freelancers-verification"),
    path("freelancers/bulk-verify/", views.BulkVerifyView.as_view(), name="admin-freelancers-bulk-verify"),
    path("freelancers/<int:pk>/", views.FreelancerAdminDetailView.as_view(), name="admin-freelancer-detail"),
    path("freelancers/<int:pk>/verify/", views.VerifyFreelancerView.as_view(), name="admin-freelancer-verify"),
    path("freelancers/<int:pk>/reject/", views.RejectFreelancerView.as_view(), name="admin-freelancer-reject"),
    path(
        "freelancers/<int:pk>/documents/<int:document_id>/",
        views.DocumentReviewView.as_view(),
        name="admin-freelancer-document",
    ),
    path("documents/<int:user_id>/", views.UserDocumentsView.as_view(), name="admin-user-documents"),

    # Users
    path("users/", views.AdminUserListCreateView.as_view(), name="admin-users"),
    path("users/<int:pk>/", views.AdminUserDetailView.as_view(), name="admin-user-detail"),
    path("users/<int:pk>/status/", views.AdminUserStatusView.as_view(), name="admin-user-status"),

    # Projects
    path("projects/", views.AdminProjectListView.as_view(), name="admin-projects"),
    path("projects/<int:pk>/", views.AdminProjectDetailView.as_view(), name="admin-project-detail"),
    path("projects/<int:pk>/status/", views.AdminProjectStatusView.as_view(), name="admin-project-status"),

    # Analytics
    path("analytics/users/", views.UserAnalyticsView.as_view(), name="admin-analytics-users"),
    path("analytics/projects/", views.ProjectAnalyticsView.as_view(), name="admin-analytics-projects"),
    path("analytics/revenue/", views.RevenueAnalyticsView.as_view(), name="admin-analytics-revenue"),
    path("analytics/skills/", views.SkillsAnalyticsView.as_view(), name="admin-analytics-skills"),
    path("analytics/user-growth/", views.UserGrowthAnalyticsView.as_view(), name="admin-analytics-user-growth"),
    path("analytics/transactions/", views.TransactionAnalyticsView.as_view(), name="admin-analytics-transactions"),
]
