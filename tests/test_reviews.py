import pytest
from django.utils import timezone

from apps.freelancer.models import FreelancerProfile
from apps.notifications.models import Notification
from apps.reviews import services
from apps.reviews.models import Review
from apps.users.models import ClientProfile

pytestmark = pytest.mark.django_db


@pytest.fixture
def completed_project(awarded_project):
    project = awarded_project.project
    project.status = "completed"
    project.completed_at = timezone.now()
    project.save()
    return project


def review_payload(project, reviewee, rating=5, comment="Great work"):
    return {"project_id": project.pk, "reviewee_id": reviewee.pk, "rating": rating, "comment": comment}


def test_client_reviews_freelancer(auth_client, client_user, freelancer_user, completed_project):
    response = auth_client(client_user).post(
        "/api/reviews/", review_payload(completed_project, freelancer_user, rating=4), format="json"
    )

    assert response.status_code == 201
    assert response.data["review"]["project_title"] == completed_project.title
    profile = FreelancerProfile.objects.get(user=freelancer_user)
    assert profile.average_rating == 4
    assert profile.total_reviews == 1
    assert Notification.objects.filter(recipient=freelancer_user, title="New Review Received").exists()


def test_freelancer_reviews_client(auth_client, client_user, freelancer_user, completed_project):
    response = auth_client(freelancer_user).post(
        "/api/reviews/", review_payload(completed_project, client_user, rating=3), format="json"
    )
    assert response.status_code == 201
    assert ClientProfile.objects.get(user=client_user).rating == 3


def test_duplicate_review(auth_client, client_user, freelancer_user, completed_project):
    client = auth_client(client_user)
    client.post("/api/reviews/", review_payload(completed_project, freelancer_user), format="json")

    response = client.post("/api/reviews/", review_payload(completed_project, freelancer_user), format="json")

    assert response.status_code == 400
    assert Review.objects.count() == 1


def test_project_must_be_completed(auth_client, client_user, freelancer_user, awarded_project):
    response = auth_client(client_user).post(
        "/api/reviews/", review_payload(awarded_project.project, freelancer_user), format="json"
    )
    assert response.status_code == 400


def test_only_counterpart_can_be_reviewed(
    auth_client, client_user, other_freelancer, completed_project
):
    response = auth_client(client_user).post(
        "/api/reviews/", review_payload(completed_project, other_freelancer), format="json"
    )
    assert response.status_code == 403


def test_outsider_cannot_review(auth_client, other_freelancer, client_user, completed_project):
    response = auth_client(other_freelancer).post(
        "/api/reviews/", review_payload(completed_project, client_user), format="json"
    )
    assert response.status_code == 403


def test_rating_range(auth_client, client_user, freelancer_user, completed_project):
    response = auth_client(client_user).post(
        "/api/reviews/", review_payload(completed_project, freelancer_user, rating=6), format="json"
    )
    assert response.status_code == 400


def test_update_and_delete_refresh_rating(client_user, freelancer_user, completed_project):
    review = services.create_review(client_user, completed_project.pk, freelancer_user.pk, 2)

    services.update_review(client_user, review.pk, rating=5)
    assert FreelancerProfile.objects.get(user=freelancer_user).average_rating == 5

    services.delete_review(client_user, review.pk)
    profile = FreelancerProfile.objects.get(user=freelancer_user)
    assert profile.average_rating == 0
    assert profile.total_reviews == 0


def test_edit_window_expires(auth_client, client_user, freelancer_user, completed_project):
    review = services.create_review(client_user, completed_project.pk, freelancer_user.pk, 4)
    Review.objects.filter(pk=review.pk).update(created_at=timezone.now() - timezone.timedelta(days=60))

    response = auth_client(client_user).put(f"/api/reviews/{review.pk}/", {"rating": 1}, format="json")

    assert response.status_code == 400


def test_only_reviewer_can_edit(auth_client, client_user, freelancer_user, completed_project):
    review = services.create_review(client_user, completed_project.pk, freelancer_user.pk, 4)
    response = auth_client(freelancer_user).put(f"/api/reviews/{review.pk}/", {"rating": 5}, format="json")
    assert response.status_code == 403


def test_reviewee_responds_once(auth_client, client_user, freelancer_user, completed_project):
    review = services.create_review(client_user, completed_project.pk, freelancer_user.pk, 4)
    client = auth_client(freelancer_user)
    url = f"/api/reviews/{review.pk}/response/"

    first = client.post(url, {"comment": "Thanks!"}, format="json")
    second = client.post(url, {"comment": "Again"}, format="json")

    assert first.status_code == 200
    assert first.data["review"]["response"] == "Thanks!"
    assert second.status_code == 400
    assert auth_client(client_user).post(url, {"comment": "Me too"}, format="json").status_code == 403


def test_public_listings_and_statistics(
    api_client, client_user, freelancer_user, completed_project, make_project, make_user
):
    services.create_review(client_user, completed_project.pk, freelancer_user.pk, 5)
    other_client = make_user("client")
    second = make_project(
        other_client, status="completed", assigned_freelancer=freelancer_user.freelancer_profile
    )
    services.create_review(other_client, second.pk, freelancer_user.pk, 3)

    by_rating = api_client.get(f"/api/reviews/user/{freelancer_user.pk}/?sort=rating&order=asc")
    assert [r["rating"] for r in by_rating.data["results"]] == [3, 5]

    assert len(api_client.get(f"/api/reviews/project/{completed_project.pk}/").data) == 1

    stats = api_client.get(f"/api/reviews/stats/{freelancer_user.pk}/").data
    assert stats["total_reviews"] == 2
    assert stats["average_rating"] == 4
    assert stats["distribution"]["5"] == {"count": 1, "percentage": 50.0}
    assert stats["distribution"]["1"] == {"count": 0, "percentage": 0}


def test_bad_sort_field(api_client, freelancer_user):
    response = api_client.get(f"/api/reviews/user/{freelancer_user.pk}/?sort=reviewer__password")
    assert response.status_code == 400
