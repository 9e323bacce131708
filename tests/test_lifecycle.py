import pytest
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.bids.models import Bid
from apps.freelancer.models import FreelancerProfile
from apps.notifications.models import Notification
from apps.projects.exceptions import InvalidTransition
from apps.projects.models import Milestone, Project, Submission
from apps.projects.services import lifecycle
from apps.users.models import ClientProfile

pytestmark = pytest.mark.django_db


def accept_url(project, bid):
    return f"/api/projects/{project.pk}/bids/{bid.pk}/accept/"


# ---------- accept bid ----------
def test_accepting_a_bid_awards_the_project(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    winner = make_bid(project, freelancer_user, amount=950)
    loser = make_bid(project, other_freelancer, amount=800)

    response = auth_client(client_user).post(accept_url(project, winner))

    assert response.status_code == 200
    assert response.data["project"]["status"] == "in_progress"

    project.refresh_from_db()
    winner.refresh_from_db()
    loser.refresh_from_db()
    assert winner.status == "accepted"
    assert loser.status == "rejected"
    assert project.status == "in_progress"
    assert project.assigned_freelancer_id == freelancer_user.freelancer_profile.pk
    assert project.started_at is not None
    assert FreelancerProfile.objects.get(user=freelancer_user).ongoing_projects == 1


def test_accepting_on_a_closed_project_changes_nothing(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user, status="cancelled")
    bid = make_bid(project, freelancer_user)

    response = auth_client(client_user).post(accept_url(project, bid))

    assert response.status_code == 400
    project.refresh_from_db()
    bid.refresh_from_db()
    assert project.status == "cancelled"
    assert project.assigned_freelancer_id is None
    assert bid.status == "pending"


def test_second_accept_on_the_same_project_is_rejected(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    first = make_bid(project, freelancer_user)
    second = make_bid(project, other_freelancer)
    client = auth_client(client_user)

    assert client.post(accept_url(project, first)).status_code == 200
    assert client.post(accept_url(project, second)).status_code == 400

    assert Bid.objects.filter(project=project, status="accepted").count() == 1
    project.refresh_from_db()
    assert project.assigned_freelancer_id == freelancer_user.freelancer_profile.pk


def test_only_the_owner_can_accept(
    auth_client, make_user, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)
    stranger = make_user("client")

    response = auth_client(stranger).post(accept_url(project, bid))

    assert response.status_code == 403
    bid.refresh_from_db()
    assert bid.status == "pending"


def test_accept_unknown_bid_is_not_found(auth_client, client_user, make_project):
    project = make_project(client_user)
    response = auth_client(client_user).post(f"/api/projects/{project.pk}/bids/999/accept/")
    assert response.status_code == 404


def test_award_rejects_every_sibling_bid(
    client_user, freelancer_user, other_freelancer, make_user, make_project, make_bid
):
    project = make_project(client_user)
    winner = make_bid(project, freelancer_user)
    withdrawn = make_bid(project, other_freelancer, status="withdrawn")
    late = make_bid(project, make_user("freelancer"))

    lifecycle.accept_bid(client_user, project.pk, winner.pk)

    withdrawn.refresh_from_db()
    late.refresh_from_db()
    assert withdrawn.status == "rejected"
    assert late.status == "rejected"
    # only bidders still in the running hear about the award
    assert not Notification.objects.filter(recipient=other_freelancer, title="Bid Not Selected").exists()
    assert Notification.objects.filter(recipient=late.freelancer.user, title="Bid Not Selected").exists()


def test_award_notifies_winner_and_losers(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    winner = make_bid(project, freelancer_user)
    make_bid(project, other_freelancer)

    auth_client(client_user).post(accept_url(project, winner))

    assert Notification.objects.filter(recipient=freelancer_user, title="Bid Accepted").exists()
    assert Notification.objects.filter(recipient=other_freelancer, title="Bid Not Selected").exists()
    assert Notification.objects.filter(recipient=client_user, title="Project Started").exists()


def test_failed_notification_does_not_undo_the_award(
    monkeypatch, auth_client, client_user, freelancer_user, make_project, make_bid
):
    def broken(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr("apps.notifications.services.create_notifications.notify_user", broken)
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(client_user).post(accept_url(project, bid))

    assert response.status_code == 200
    project.refresh_from_db()
    assert project.status == "in_progress"
    assert not Notification.objects.exists()


# ---------- assign freelancer ----------
def test_assign_freelancer_uses_the_bid(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)
    other = make_bid(project, other_freelancer)

    response = auth_client(client_user).post(
        f"/api/projects/{project.pk}/assign/",
        {"freelancer_id": freelancer_user.freelancer_profile.pk, "bid_id": bid.pk},
        format="json",
    )

    assert response.status_code == 200
    assert response.data["status"] == "in_progress"
    other.refresh_from_db()
    assert other.status == "rejected"


def test_assign_freelancer_with_mismatched_bid(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(client_user).post(
        f"/api/projects/{project.pk}/assign/",
        {"freelancer_id": other_freelancer.freelancer_profile.pk, "bid_id": bid.pk},
        format="json",
    )

    assert response.status_code == 404
    project.refresh_from_db()
    assert project.status == "open"


# ---------- withdraw ----------
def test_withdraw_pending_bid(auth_client, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(freelancer_user).delete(f"/api/projects/{project.pk}/bids/{bid.pk}/")

    assert response.status_code == 200
    assert response.data["status"] == "withdrawn"


@pytest.mark.parametrize("status", ["accepted", "rejected", "withdrawn"])
def test_withdraw_non_pending_bid_fails(
    status, auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user, status=status)

    response = auth_client(freelancer_user).delete(f"/api/projects/{project.pk}/bids/{bid.pk}/")

    assert response.status_code == 400
    bid.refresh_from_db()
    assert bid.status == status


def test_withdraw_someone_elses_bid_is_forbidden(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(other_freelancer).delete(f"/api/projects/{project.pk}/bids/{bid.pk}/")

    assert response.status_code == 403


# ---------- status transitions ----------
def test_client_cancels_open_project(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(client_user).put(
        f"/api/projects/{project.pk}/status/", {"status": "cancelled"}, format="json"
    )

    assert response.status_code == 200
    assert response.data["status"] == "cancelled"
    bid.refresh_from_db()
    assert bid.status == "rejected"


@pytest.mark.parametrize("status", ["in_progress", "completed", "cancelled"])
def test_cancelling_a_non_open_project_fails(status, auth_client, client_user, make_project):
    project = make_project(client_user, status=status)

    response = auth_client(client_user).put(
        f"/api/projects/{project.pk}/status/", {"status": "cancelled"}, format="json"
    )

    assert response.status_code == 400
    project.refresh_from_db()
    assert project.status == status


def test_cancel_project_service_requires_open(client_user, awarded_project):
    with pytest.raises(InvalidTransition):
        lifecycle.cancel_project(client_user, awarded_project.project.pk)


def test_cancel_project_service_locks_once(monkeypatch, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)
    locks = []
    lock = lifecycle._lock_project
    monkeypatch.setattr(lifecycle, "_lock_project", lambda pk: locks.append(pk) or lock(pk))

    cancelled = lifecycle.cancel_project(client_user, project.pk)

    assert locks == [project.pk]
    assert cancelled.status == "cancelled"
    assert Bid.objects.get(pk=bid.pk).status == "rejected"


def test_cancel_project_service_is_owner_only(make_user, make_project):
    project = make_project(make_user("client"))
    with pytest.raises(PermissionDenied):
        lifecycle.cancel_project(make_user("client"), project.pk)
    assert Project.objects.get(pk=project.pk).status == "open"


def test_freelancer_cannot_cancel(auth_client, freelancer_user, awarded_project):
    response = auth_client(freelancer_user).put(
        f"/api/projects/{awarded_project.project.pk}/status/", {"status": "cancelled"}, format="json"
    )
    assert response.status_code == 400


def test_outsider_cannot_change_status(auth_client, make_user, awarded_project):
    response = auth_client(make_user("client")).put(
        f"/api/projects/{awarded_project.project.pk}/status/", {"status": "completed"}, format="json"
    )
    assert response.status_code == 403


def test_completed_is_terminal(auth_client, client_user, make_project):
    project = make_project(client_user, status="completed")
    response = auth_client(client_user).put(
        f"/api/projects/{project.pk}/status/", {"status": "in_progress"}, format="json"
    )
    assert response.status_code == 400


def test_completion_waits_for_milestone_approval(
    auth_client, client_user, freelancer_user, awarded_project
):
    project = awarded_project.project
    milestone = Milestone.objects.create(project=project, title="Design", status="completed")
    owner = auth_client(client_user)
    status_url = f"/api/projects/{project.pk}/status/"

    assert owner.put(status_url, {"status": "completed"}, format="json").status_code == 400

    approved = owner.put(
        f"/api/projects/{project.pk}/milestones/{milestone.pk}/", {"status": "approved"}, format="json"
    )
    assert approved.status_code == 200

    response = owner.put(status_url, {"status": "completed"}, format="json")
    assert response.status_code == 200
    project.refresh_from_db()
    assert project.status == "completed"
    assert project.progress == 100


def test_completion_updates_profile_totals(client_user, freelancer_user, awarded_project):
    lifecycle.update_status(freelancer_user, awarded_project.project.pk, "completed")

    freelancer = FreelancerProfile.objects.get(user=freelancer_user)
    client = ClientProfile.objects.get(user=client_user)
    assert freelancer.completed_projects == 1
    assert freelancer.total_earned == 950
    assert client.completed_projects == 1
    assert client.total_spent == 950


# ---------- submit work ----------
def test_assigned_freelancer_submits_work(auth_client, freelancer_user, awarded_project):
    project = awarded_project.project

    response = auth_client(freelancer_user).post(
        f"/api/projects/{project.pk}/submissions/",
        {"description": "Final build and source files."},
        format="json",
    )

    assert response.status_code == 201
    project.refresh_from_db()
    assert project.status == "completed"
    assert project.completed_at is not None
    assert Submission.objects.filter(project=project).count() == 1


def test_unassigned_freelancer_cannot_submit_work(auth_client, other_freelancer, awarded_project):
    project = awarded_project.project
    updated_at = Project.objects.get(pk=project.pk).updated_at

    response = auth_client(other_freelancer).post(
        f"/api/projects/{project.pk}/submissions/",
        {"description": "Not my project."},
        format="json",
    )

    assert response.status_code == 403
    project.refresh_from_db()
    assert project.status == "in_progress"
    assert project.updated_at == updated_at
    assert not Submission.objects.exists()


def test_submit_work_before_award_is_forbidden(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    make_bid(project, freelancer_user)

    response = auth_client(freelancer_user).post(
        f"/api/projects/{project.pk}/submissions/", {"description": "Too early."}, format="json"
    )

    assert response.status_code == 403


def test_client_reviews_submission(auth_client, client_user, freelancer_user, awarded_project):
    submission = lifecycle.submit_work(freelancer_user, awarded_project.project.pk, "Done.")

    response = auth_client(client_user).put(
        f"/api/projects/{awarded_project.project.pk}/submissions/{submission.pk}/review/",
        {"action": "approve", "feedback": "Great work"},
        format="json",
    )

    assert response.status_code == 200
    assert response.data["status"] == "approved"
    assert response.data["client_feedback"] == "Great work"


# ---------- progress and milestones ----------
def test_progress_is_clamped(freelancer_user, awarded_project):
    project = lifecycle.update_progress(freelancer_user, awarded_project.project.pk, 140)
    assert project.progress == 100
    project = lifecycle.update_progress(freelancer_user, awarded_project.project.pk, -5)
    assert project.progress == 0


def test_client_cannot_update_progress(client_user, awarded_project):
    with pytest.raises(PermissionDenied):
        lifecycle.update_progress(client_user, awarded_project.project.pk, 50)


def test_time_tracking(auth_client, freelancer_user, awarded_project):
    response = auth_client(freelancer_user).put(
        f"/api/projects/{awarded_project.project.pk}/time-tracking/", {"time_tracked": 3600}, format="json"
    )
    assert response.status_code == 200
    assert response.data["time_tracked"] == 3600


def test_milestone_flow_recomputes_progress(client_user, freelancer_user, awarded_project):
    project_id = awarded_project.project.pk
    first = lifecycle.add_milestone(client_user, project_id, "Wireframes")
    lifecycle.add_milestone(freelancer_user, project_id, "Implementation")

    lifecycle.update_milestone(freelancer_user, project_id, first.pk, status="completed")
    lifecycle.update_milestone(client_user, project_id, first.pk, status="approved")

    assert Project.objects.get(pk=project_id).progress == 50
    with pytest.raises(InvalidTransition):
        lifecycle.update_milestone(freelancer_user, project_id, first.pk, title="Renamed")


def test_client_cannot_approve_unfinished_milestone(client_user, awarded_project):
    milestone = lifecycle.add_milestone(client_user, awarded_project.project.pk, "Docs")
    with pytest.raises(InvalidTransition):
        lifecycle.update_milestone(client_user, awarded_project.project.pk, milestone.pk, status="approved")


# ---------- end to end ----------
def test_post_bid_accept_scenario(auth_client, client_user, freelancer_user):
    owner = auth_client(client_user)
    bidder = auth_client(freelancer_user)

    created = owner.post(
        "/api/projects/",
        {
            "title": "Inventory dashboard",
            "description": "Internal dashboard that tracks warehouse stock levels.",
            "budget": "1200.00",
            "deadline": str(timezone.localdate() + timezone.timedelta(days=14)),
            "category": "Web Development",
            "skills": ["Django", "React"],
        },
        format="json",
    )
    assert created.status_code == 201
    assert created.data["status"] == "open"
    project_id = created.data["id"]

    bid = bidder.post(
        f"/api/projects/{project_id}/bids/",
        {"amount": "950.00", "delivery_time": 10, "proposal": "Built three of these last year."},
        format="json",
    )
    assert bid.status_code == 201
    bid_id = bid.data["id"]

    accepted = owner.post(f"/api/projects/{project_id}/bids/{bid_id}/accept/")
    assert accepted.status_code == 200

    project = Project.objects.get(pk=project_id)
    assert project.status == "in_progress"
    assert Bid.objects.get(pk=bid_id).status == "accepted"
    assert Bid.objects.get(pk=bid_id).amount == 950
    assert project.assigned_freelancer_id == freelancer_user.freelancer_profile.pk
