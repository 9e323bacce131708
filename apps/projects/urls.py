from django.urls import path

from . import views

urlpatterns = [
    path("", views.ProjectListCreateView.as_view(), name="project-list"),
    path("search/filter/", views.ProjectSearchView.as_view(), name="project-search"),
    path("client/my-projects/", views.ClientProjectsView.as_view(), name="client-projects"),
    path("freelancer/my-projects/", views.FreelancerProjectsView.as_view(), name="freelancer-projects"),

    path("<int:pk>/", views.ProjectDetailView.as_view(), name="project-detail"),
    path("<int:pk>/attachments/", views.ProjectAttachmentView.as_view(), name="project-attachments"),
    path("<int:pk>/assign/", views.AssignFreelancerView.as_view(), name="project-assign"),
    path("<int:pk>/status/", views.ProjectStatusView.as_view(), name="project-status"),
    path("<int:pk>/progress/", views.ProjectProgressView.as_view(), name="project-progress"),
    path("<int:pk>/time-tracking/", views.TimeTrackingView.as_view(), name="project-time-tracking"),

    path("<int:pk>/milestones/", views.MilestoneListCreateView.as_view(), name="project-milestones"),
    path(
        "<int:pk>/milestones/<int:milestone_id>/",
        views.MilestoneDetailView.as_view(),
        name="project-milestone-detail",
    ),

    path("<int:pk>/submissions/", views.SubmissionListCreateView.as_view(), name="project-submissions"),
    path(
        "<int:pk>/submissions/<int:submission_id>/review/",
        views.SubmissionReviewView.as_view(),
        name="project-submission-review",
    ),
]
