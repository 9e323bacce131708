import pytest

from apps.bids.models import Bid
from apps.notifications.models import Notification

pytestmark = pytest.mark.django_db

BID = {"amount": "750.00", "delivery_time": 5, "proposal": "Clean code, fast turnaround."}


def bids_url(project):
    return f"/api/projects/{project.pk}/bids/"


def test_freelancer_places_bid(auth_client, client_user, freelancer_user, make_project):
    project = make_project(client_user)

    response = auth_client(freelancer_user).post(bids_url(project), BID, format="json")

    assert response.status_code == 201
    assert response.data["status"] == "pending"
    assert response.data["counter_offer"] is None
    assert Notification.objects.filter(recipient=client_user, title="New Bid Received").exists()


def test_second_bid_on_same_project_is_rejected(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    make_bid(project, freelancer_user)

    response = auth_client(freelancer_user).post(bids_url(project), BID, format="json")

    assert response.status_code == 400
    assert Bid.objects.filter(project=project).count() == 1


def test_bidding_on_closed_project_fails(auth_client, client_user, freelancer_user, make_project):
    project = make_project(client_user, status="in_progress")
    response = auth_client(freelancer_user).post(bids_url(project), BID, format="json")
    assert response.status_code == 400


def test_clients_cannot_bid(auth_client, make_user, client_user, make_project):
    project = make_project(client_user)
    response = auth_client(make_user("client")).post(bids_url(project), BID, format="json")
    assert response.status_code == 403


@pytest.mark.parametrize(
    "payload",
    [
        {**BID, "amount": "0"},
        {**BID, "delivery_time": 0},
        {**BID, "proposal": "short"},
    ],
)
def test_bid_validation(payload, auth_client, client_user, freelancer_user, make_project):
    project = make_project(client_user)
    response = auth_client(freelancer_user).post(bids_url(project), payload, format="json")
    assert response.status_code == 400
    assert response.data["success"] is False


def test_bid_list_is_public(api_client, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    make_bid(project, freelancer_user)

    response = api_client.get(bids_url(project))

    assert response.status_code == 200
    assert response.data["total"] == 1


def test_update_pending_bid(auth_client, client_user, freelancer_user, make_project, make_bid):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(freelancer_user).patch(
        f"{bids_url(project)}{bid.pk}/", {"amount": "820.00"}, format="json"
    )

    assert response.status_code == 200
    bid.refresh_from_db()
    assert bid.amount == 820
    assert bid.delivery_time == 7


def test_bid_detail_hidden_from_outsiders(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)
    url = f"{bids_url(project)}{bid.pk}/"

    assert auth_client(client_user).get(url).status_code == 200
    assert auth_client(freelancer_user).get(url).status_code == 200
    assert auth_client(other_freelancer).get(url).status_code == 403


# ---------- counter offers ----------
def test_counter_offer_accepted_overwrites_terms(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user, amount=900, delivery_time=7)
    url = f"{bids_url(project)}{bid.pk}/counter-offer/"

    offered = auth_client(client_user).post(
        url, {"amount": "800.00", "delivery_time": 10, "message": "Can you stretch?"}, format="json"
    )
    assert offered.status_code == 201
    assert offered.data["counter_offer"]["status"] == "pending"

    answered = auth_client(freelancer_user).put(url, {"response": "accept"}, format="json")
    assert answered.status_code == 200

    bid.refresh_from_db()
    assert bid.amount == 800
    assert bid.delivery_time == 10
    assert bid.counter_status == "accepted"
    assert bid.status == "pending"


def test_counter_offer_rejected_keeps_terms(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user, amount=900)
    url = f"{bids_url(project)}{bid.pk}/counter-offer/"

    auth_client(client_user).post(url, {"amount": "500.00", "delivery_time": 3}, format="json")
    auth_client(freelancer_user).put(url, {"response": "reject"}, format="json")

    bid.refresh_from_db()
    assert bid.amount == 900
    assert bid.counter_status == "rejected"


def test_respond_without_counter_offer_fails(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(freelancer_user).put(
        f"{bids_url(project)}{bid.pk}/counter-offer/", {"response": "accept"}, format="json"
    )

    assert response.status_code == 400


def test_only_owner_can_counter(
    auth_client, make_user, client_user, freelancer_user, make_project, make_bid
):
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user)

    response = auth_client(make_user("client")).post(
        f"{bids_url(project)}{bid.pk}/counter-offer/",
        {"amount": "500.00", "delivery_time": 3},
        format="json",
    )

    assert response.status_code == 403


# ---------- per user ----------
def test_my_bids_filters_by_status(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    make_bid(make_project(client_user), freelancer_user)
    make_bid(make_project(client_user), freelancer_user, status="rejected")

    response = auth_client(freelancer_user).get("/api/projects/freelancer/my-bids/?status=pending")

    assert response.status_code == 200
    assert response.data["total"] == 1
    assert response.data["results"][0]["project"]["title"] == "Build a landing page"


def test_bid_analytics_for_freelancer(
    auth_client, client_user, freelancer_user, make_project, make_bid
):
    make_bid(make_project(client_user), freelancer_user, status="accepted")
    make_bid(make_project(client_user), freelancer_user, status="rejected")
    make_bid(make_project(client_user), freelancer_user)

    response = auth_client(freelancer_user).get("/api/projects/stats/bid-analytics/")

    assert response.status_code == 200
    assert response.data["role"] == "freelancer"
    assert response.data["total"] == 3
    assert response.data["success_rate"] == 50.0


def test_bid_analytics_for_client(
    auth_client, client_user, freelancer_user, other_freelancer, make_project, make_bid
):
    project = make_project(client_user)
    make_bid(project, freelancer_user, amount=100)
    make_bid(project, other_freelancer, amount=300)

    response = auth_client(client_user).get("/api/projects/stats/bid-analytics/")

    assert response.data["projects"][0]["bids"] == 2
    assert response.data["projects"][0]["average_amount"] == 200.0
