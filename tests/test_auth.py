import re

import pytest
from django.contrib.auth import get_user_model
from django.core import mail

from apps.freelancer.models import FreelancerProfile
from apps.users.models import ClientProfile, LoginHistory

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db

User = get_user_model()


def sent_code():
    return re.search(r"code is (\d{6})", mail.outbox[-1].body).group(1)


# ---------- signup ----------
@pytest.mark.parametrize("role, profile_model", [("client", ClientProfile), ("freelancer", FreelancerProfile)])
def test_signup_creates_role_profile(role, profile_model, api_client):
    response = api_client.post(
        "/api/auth/signup/",
        {"name": "Ada", "email": "Ada@Example.com", "password": PASSWORD, "role": role},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["data"]["access"]
    user = User.objects.get(email="ada@example.com")
    assert user.role == role
    assert profile_model.objects.filter(user=user).exists()


def test_signup_rejects_weak_password(api_client):
    response = api_client.post(
        "/api/auth/signup/",
        {"name": "Ada", "email": "ada@example.com", "password": "alllowercase1", "role": "client"},
        format="json",
    )
    assert response.status_code == 400
    assert "uppercase" in response.data["message"]


def test_signup_rejects_admin_role(api_client):
    response = api_client.post(
        "/api/auth/signup/",
        {"name": "Eve", "email": "eve@example.com", "password": PASSWORD, "role": "admin"},
        format="json",
    )
    assert response.status_code == 400


def test_duplicate_email(api_client, client_user):
    response = api_client.post(
        "/api/auth/signup/",
        {"name": "Dup", "email": client_user.email.upper(), "password": PASSWORD, "role": "client"},
        format="json",
    )
    assert response.status_code == 400


def test_email_verification_flow(settings, api_client, django_capture_on_commit_callbacks):
    settings.REQUIRE_EMAIL_VERIFICATION = True

    with django_capture_on_commit_callbacks(execute=True):
        response = api_client.post(
            "/api/auth/signup/",
            {"name": "Bo", "email": "bo@example.com", "password": PASSWORD, "role": "client"},
            format="json",
        )
    assert response.status_code == 201
    assert User.objects.get(email="bo@example.com").is_verified is False

    bad = api_client.post("/api/auth/verify-email/", {"email": "bo@example.com", "otp": "000000x"}, format="json")
    assert bad.status_code == 400

    good = api_client.post(
        "/api/auth/verify-email/", {"email": "bo@example.com", "otp": sent_code()}, format="json"
    )
    assert good.status_code == 200
    assert User.objects.get(email="bo@example.com").is_verified is True


# ---------- login / logout ----------
def test_login_records_history(api_client, client_user):
    response = api_client.post(
        "/api/auth/login/", {"email": client_user.email, "password": PASSWORD}, format="json"
    )

    assert response.status_code == 200
    assert response.data["data"]["refresh"]
    assert LoginHistory.objects.filter(user=client_user).count() == 1


def test_login_with_wrong_password(api_client, client_user):
    response = api_client.post(
        "/api/auth/login/", {"email": client_user.email, "password": "Wrong1234"}, format="json"
    )
    assert response.status_code == 401
    assert response.data["success"] is False


def test_suspended_account_cannot_login(api_client, make_user):
    user = make_user("client", account_status="suspended")
    response = api_client.post(
        "/api/auth/login/", {"email": user.email, "password": PASSWORD}, format="json"
    )
    assert response.status_code == 403


def test_logout_blacklists_refresh_token(api_client, auth_client, client_user):
    tokens = api_client.post(
        "/api/auth/login/", {"email": client_user.email, "password": PASSWORD}, format="json"
    ).data["data"]

    response = auth_client(client_user).post("/api/auth/logout/", {"refresh": tokens["refresh"]}, format="json")
    assert response.status_code == 200

    refreshed = api_client.post("/api/auth/token/refresh/", {"refresh": tokens["refresh"]}, format="json")
    assert refreshed.status_code == 401


def test_bearer_token_authenticates(api_client, client_user):
    access = api_client.post(
        "/api/auth/login/", {"email": client_user.email, "password": PASSWORD}, format="json"
    ).data["data"]["access"]

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    response = api_client.get("/api/auth/me/")

    assert response.status_code == 200
    assert response.data["email"] == client_user.email
    assert response.data["profile"]["projects_posted"] == 0


# ---------- passwords ----------
def test_password_reset_with_emailed_code(api_client, client_user):
    api_client.post("/api/auth/forgot-password/", {"email": client_user.email}, format="json")
    assert len(mail.outbox) == 1

    response = api_client.post(
        "/api/auth/reset-password/",
        {"email": client_user.email, "otp": sent_code(), "new_password": "NewPassw0rd"},
        format="json",
    )

    assert response.status_code == 200
    client_user.refresh_from_db()
    assert client_user.check_password("NewPassw0rd")


def test_forgot_password_for_unknown_email_sends_nothing(api_client):
    response = api_client.post("/api/auth/forgot-password/", {"email": "ghost@example.com"}, format="json")
    assert response.status_code == 200
    assert mail.outbox == []


def test_change_password(auth_client, client_user):
    client = auth_client(client_user)

    wrong = client.post(
        "/api/auth/change-password/",
        {"current_password": "nope", "new_password": "Another1Pass"},
        format="json",
    )
    assert wrong.status_code == 400

    ok = client.post(
        "/api/auth/change-password/",
        {"current_password": PASSWORD, "new_password": "Another1Pass"},
        format="json",
    )
    assert ok.status_code == 200
    client_user.refresh_from_db()
    assert client_user.check_password("Another1Pass")


# ---------- profile & users ----------
def test_update_profile_with_client_details(auth_client, client_user):
    response = auth_client(client_user).patch(
        "/api/auth/update-profile/",
        {"city": "Lisbon", "client_profile": {"company_name": "Acme"}},
        format="json",
    )

    assert response.status_code == 200
    assert response.data["city"] == "Lisbon"
    assert ClientProfile.objects.get(user=client_user).company_name == "Acme"


def test_public_user_detail_includes_freelancer_profile(auth_client, client_user, freelancer_user):
    response = auth_client(client_user).get(f"/api/users/{freelancer_user.pk}/")

    assert response.status_code == 200
    assert "email" not in response.data
    assert response.data["freelancer_profile"]["user_id"] == freelancer_user.pk


def test_user_exists(api_client, client_user):
    assert api_client.get(f"/api/users/exists/{client_user.pk}/").data == {"exists": True}
    assert api_client.get("/api/users/exists/987654/").data == {"exists": False}


def test_freelancer_search(api_client, make_user):
    found = make_user("freelancer")
    FreelancerProfile.objects.filter(user=found).update(title="Senior Django developer", hourly_rate=60)
    make_user("freelancer")

    response = api_client.get("/api/users/freelancers/search/?q=django&max_rate=80")

    assert response.status_code == 200
    assert [row["user_id"] for row in response.data["results"]] == [found.pk]
