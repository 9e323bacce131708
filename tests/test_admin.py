import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from apps.bids.models import Bid
from apps.freelancer.models import FreelancerProfile, VerificationDocument
from apps.notifications.models import Notification
from apps.projects.models import Project

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db

User = get_user_model()


@pytest.fixture
def admin(auth_client, admin_user):
    return auth_client(admin_user)


@pytest.fixture
def document(freelancer_user):
    return VerificationDocument.objects.create(
        freelancer=freelancer_user.freelancer_profile,
        document_type="passport",
        file=SimpleUploadedFile("passport.pdf", b"%PDF-1.4"),
    )


def test_admin_routes_require_admin(auth_client, client_user):
    client = auth_client(client_user)
    assert client.get("/api/admin/users/").status_code == 403
    assert client.get("/api/admin/analytics/users/").status_code == 403


# ---------- verification ----------
def test_pending_freelancers_lists_open_documents(admin, freelancer_user, other_freelancer, document):
    response = admin.get("/api/admin/freelancers/pending/")

    assert response.status_code == 200
    assert [row["email"] for row in response.data["results"]] == [freelancer_user.email]
    assert response.data["results"][0]["pending_documents"] == 1


def test_verify_freelancer_settles_documents(admin, freelancer_user, document):
    profile = freelancer_user.freelancer_profile

    response = admin.put(
        f"/api/admin/freelancers/{profile.pk}/verify/",
        {"verification_level": "premium", "verification_notes": "Checked"},
        format="json",
    )

    assert response.status_code == 200
    profile.refresh_from_db()
    assert profile.verification_status == "approved"
    assert profile.verification_level == "premium"
    assert profile.verified_at is not None
    document.refresh_from_db()
    assert document.status == "approved"
    assert Notification.objects.filter(recipient=freelancer_user, title="Verification Approved").exists()


def test_reject_freelancer(admin, freelancer_user, document):
    profile = freelancer_user.freelancer_profile

    response = admin.put(
        f"/api/admin/freelancers/{profile.pk}/reject/", {"reason": "Blurry scan"}, format="json"
    )

    assert response.status_code == 200
    profile.refresh_from_db()
    assert profile.verification_status == "rejected"
    assert profile.verification_notes == "Blurry scan"
    assert Notification.objects.get(recipient=freelancer_user).message == "Blurry scan"


def test_review_single_document(admin, freelancer_user, other_freelancer, document):
    url = f"/api/admin/freelancers/{freelancer_user.freelancer_profile.pk}/documents/{document.pk}/"

    response = admin.put(url, {"status": "rejected", "notes": "Expired"}, format="json")

    assert response.status_code == 200
    document.refresh_from_db()
    assert document.status == "rejected"
    assert document.notes == "Expired"

    elsewhere = f"/api/admin/freelancers/{other_freelancer.freelancer_profile.pk}/documents/{document.pk}/"
    assert admin.put(elsewhere, {"status": "approved"}, format="json").status_code == 404


def test_bulk_verify(admin, freelancer_user, other_freelancer):
    ids = [freelancer_user.freelancer_profile.pk, other_freelancer.freelancer_profile.pk]

    response = admin.put("/api/admin/freelancers/bulk-verify/", {"freelancer_ids": ids, "action": "approve"}, format="json")

    assert response.data["updated"] == 2
    assert FreelancerProfile.objects.filter(verification_status="approved").count() == 2


def test_verification_list_filters(admin, freelancer_user, other_freelancer):
    FreelancerProfile.objects.filter(user=other_freelancer).update(verification_status="approved")

    response = admin.get("/api/admin/freelancers/verification/?verification_status=approved")

    assert [row["email"] for row in response.data["results"]] == [other_freelancer.email]


def test_user_documents(admin, freelancer_user, client_user, document):
    assert len(admin.get(f"/api/admin/documents/{freelancer_user.pk}/").data["documents"]) == 1
    assert admin.get(f"/api/admin/documents/{client_user.pk}/").data == {"documents": []}


# ---------- users ----------
def test_admin_creates_user_with_profile(admin):
    response = admin.post(
        "/api/admin/users/",
        {"name": "Fay", "email": "Fay@Example.com", "password": PASSWORD, "role": "freelancer"},
        format="json",
    )

    assert response.status_code == 201
    user = User.objects.get(email="fay@example.com")
    assert user.freelancer_profile.verification_status == "approved"
    assert Notification.objects.filter(recipient=user, title="Welcome to SkillSwap").exists()


def test_admin_user_list_filters_and_search(admin, client_user, freelancer_user):
    by_role = admin.get("/api/admin/users/?role=freelancer")
    assert [u["id"] for u in by_role.data["results"]] == [freelancer_user.pk]

    searched = admin.get(f"/api/admin/users/?search={client_user.email}")
    assert [u["id"] for u in searched.data["results"]] == [client_user.pk]


def test_admin_user_detail_includes_profile(admin, client_user):
    response = admin.get(f"/api/admin/users/{client_user.pk}/")
    assert response.data["user"]["email"] == client_user.email
    assert response.data["profile"]["projects_posted"] == 0


def test_suspend_and_reactivate(admin, client_user):
    suspended = admin.put(f"/api/admin/users/{client_user.pk}/status/", {"account_status": "suspended"}, format="json")
    assert suspended.status_code == 200
    client_user.refresh_from_db()
    assert client_user.is_active is False

    admin.put(f"/api/admin/users/{client_user.pk}/status/", {"is_active": True}, format="json")
    client_user.refresh_from_db()
    assert client_user.account_status == "active"
    assert client_user.is_active is True


def test_admin_accounts_are_protected(admin, make_user):
    other_admin = make_user("admin")

    assert admin.put(
        f"/api/admin/users/{other_admin.pk}/status/", {"account_status": "suspended"}, format="json"
    ).status_code == 403
    assert admin.delete(f"/api/admin/users/{other_admin.pk}/").status_code == 403


def test_admin_deletes_user(admin, client_user):
    assert admin.delete(f"/api/admin/users/{client_user.pk}/").status_code == 200
    assert not User.objects.filter(pk=client_user.pk).exists()


# ---------- projects ----------
def test_admin_project_list_includes_every_status(admin, client_user, make_project):
    make_project(client_user)
    make_project(client_user, status="cancelled", title="Old idea")

    assert admin.get("/api/admin/projects/").data["total"] == 2
    assert admin.get("/api/admin/projects/?search=old").data["total"] == 1


def test_admin_project_detail_lists_bids(admin, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    make_bid(project, freelancer_user)

    response = admin.get(f"/api/admin/projects/{project.pk}/")

    assert len(response.data["bids"]) == 1


def test_status_override_rejects_pending_bids(admin, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = admin.put(
        f"/api/admin/projects/{project.pk}/status/", {"status": "cancelled", "reason": "Spam"}, format="json"
    )

    assert response.status_code == 200
    assert Project.objects.get(pk=project.pk).status == "cancelled"
    assert Bid.objects.get(pk=bid.pk).status == "rejected"
    assert Notification.objects.filter(recipient=client_user, title="Project Status Updated").exists()


def test_admin_deletes_project(admin, client_user, make_project):
    project = make_project(client_user)

    response = admin.delete(f"/api/admin/projects/{project.pk}/")

    assert response.status_code == 200
    assert not Project.objects.filter(pk=project.pk).exists()
    assert Notification.objects.filter(recipient=client_user, title="Project Deleted").exists()


# ---------- analytics ----------
def test_user_analytics(admin, client_user, freelancer_user):
    data = admin.get("/api/admin/analytics/users/").data
    assert data["total_users"] == 3
    assert data["clients"] == 1
    assert data["freelancers"] == 1
    assert data["admins"] == 1


def test_revenue_and_transactions(admin, awarded_project):
    Project.objects.filter(pk=awarded_project.project.pk).update(status="completed", completed_at=timezone.now())

    revenue = admin.get("/api/admin/analytics/revenue/?months=3").data
    assert revenue["total_revenue"] == 950.0
    assert revenue["monthly"][0]["revenue"] == 950.0

    transactions = admin.get("/api/admin/analytics/transactions/").data
    assert transactions["transaction_count"] == 1
    assert transactions["transactions"][0]["amount"] == 950.0


def test_project_analytics(admin, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user, budget=1000)
    make_project(client_user, budget=3000)
    make_bid(project, freelancer_user, amount=800)

    data = admin.get("/api/admin/analytics/projects/").data

    assert data["total_projects"] == 2
    assert data["average_budget"] == 2000.0
    assert data["bids_per_project"] == 0.5


def test_user_growth_and_skills(admin):
    assert admin.get("/api/admin/analytics/user-growth/?months=6").data["months"] == 6
    assert admin.get("/api/admin/analytics/skills/").data == {"in_demand": [], "most_common": []}


def test_analytics_params_are_checked(admin):
    assert admin.get("/api/admin/analytics/revenue/?months=abc").status_code == 400
    assert admin.get("/api/admin/analytics/skills/?limit=0").status_code == 400
