import pytest
from django.utils import timezone

from apps.freelancer.models import FreelancerProfile
from apps.messaging import services as messaging
from apps.notifications.services.create_notifications import notify_user
from apps.projects.models import Project

pytestmark = pytest.mark.django_db


def test_client_dashboard(auth_client, client_user, freelancer_user, make_project, make_bid):
    open_project = make_project(client_user)
    make_project(client_user, status="completed")
    make_bid(open_project, freelancer_user)
    notify_user(client_user, "bid", "New Bid Received")
    conversation, _ = messaging.get_or_create_conversation(freelancer_user, client_user.pk)
    messaging.post_message(conversation, freelancer_user, "Hello")

    response = auth_client(client_user).get("/api/dashboard/client/")

    assert response.status_code == 200
    stats = response.data["stats"]
    assert stats["total"] == 2
    assert stats["open"] == 1
    assert stats["completed"] == 1
    assert stats["pending_bids"] == 1
    assert len(response.data["recent_projects"]) == 2
    assert response.data["recent_bids"][0]["project"]["id"] == open_project.pk
    assert response.data["unread_messages"] == 1
    # the bid notification plus the one for the new message
    assert response.data["unread_notifications"] == 2


def test_freelancer_dashboard(auth_client, freelancer_user, awarded_project):
    FreelancerProfile.objects.filter(user=freelancer_user).update(average_rating=4.5, total_reviews=2)

    response = auth_client(freelancer_user).get("/api/dashboard/freelancer/")

    assert response.status_code == 200
    assert response.data["stats"]["active_projects"] == 1
    assert response.data["stats"]["average_rating"] == 4.5
    assert response.data["stats"]["success_rate"] == 100.0
    assert [p["id"] for p in response.data["active_projects"]] == [awarded_project.project.pk]


def test_dashboards_are_role_scoped(auth_client, client_user, freelancer_user):
    assert auth_client(client_user).get("/api/dashboard/freelancer/").status_code == 403
    assert auth_client(freelancer_user).get("/api/dashboard/client/").status_code == 403
    assert auth_client(client_user).get("/api/dashboard/admin/").status_code == 403


def test_admin_dashboard(auth_client, admin_user, client_user, make_project):
    make_project(client_user)

    response = auth_client(admin_user).get("/api/dashboard/admin/")

    assert response.status_code == 200
    assert response.data["stats"]["total_users"] == 2
    assert response.data["stats"]["open"] == 1
    assert len(response.data["recent_projects"]) == 1


def test_monthly_earnings_and_spending(auth_client, client_user, freelancer_user, awarded_project):
    Project.objects.filter(pk=awarded_project.project.pk).update(
        status="completed", completed_at=timezone.now()
    )
    month = timezone.now().strftime("%Y-%m")

    earnings = auth_client(freelancer_user).get("/api/analytics/freelancer/?months=1").data
    spending = auth_client(client_user).get("/api/analytics/client/").data

    assert earnings["monthly_earnings"] == [{"month": month, "amount": 950.0, "projects": 1}]
    assert spending["monthly_spending"] == [{"month": month, "amount": 950.0, "projects": 1}]
    assert spending["project_status"]["completed"] == 1


def test_admin_analytics(auth_client, admin_user):
    response = auth_client(admin_user).get("/api/analytics/admin/?months=6")
    assert response.status_code == 200
    assert set(response.data) == {"users", "projects", "revenue", "bids"}


@pytest.mark.parametrize("months", ["0", "61", "many"])
def test_analytics_months_are_bounded(months, auth_client, client_user):
    response = auth_client(client_user).get(f"/api/analytics/client/?months={months}")
    assert response.status_code == 400
