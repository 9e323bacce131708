import itertools
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.bids.models import Bid
from apps.freelancer.models import FreelancerProfile
from apps.notifications.tasks import execute_scheduled_notification
from apps.projects.models import Project
from apps.users.models import ClientProfile
from SkillSwap.celery import app as celery_app

User = get_user_model()

PASSWORD = "Passw0rd!"


@pytest.fixture(autouse=True)
def isolated_services(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "uploads"
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.REQUIRE_EMAIL_VERIFICATION = False
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

    # The app reads Django settings under the CELERY namespace, so the
    # namespaced key is the one that takes effect.
    eager = celery_app.conf.CELERY_TASK_ALWAYS_EAGER
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    yield
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = eager


@pytest.fixture(autouse=True)
def queued_tasks(monkeypatch):
    """Scheduled notification runs are recorded instead of hitting a broker."""
    queued = []

    def fake_apply_async(args=None, kwargs=None, **options):
        queued.append({"args": args, **options})
        return SimpleNamespace(id=f"task-{len(queued)}")

    monkeypatch.setattr(execute_scheduled_notification, "apply_async", fake_apply_async)
    monkeypatch.setattr(celery_app.control, "revoke", lambda *args, **kwargs: None)
    return queued


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role="client", **extra):
        n = next(counter)
        user = User.objects.create_user(
            email=extra.pop("email", f"{role}{n}@example.com"),
            password=extra.pop("password", PASSWORD),
            name=extra.pop("name", f"{role.title()} {n}"),
            role=role,
            **extra,
        )
        if role == "client":
            ClientProfile.objects.create(user=user)
        elif role == "freelancer":
            FreelancerProfile.objects.create(user=user)
        return user
    return _make


@pytest.fixture
def client_user(make_user):
    return make_user("client")


@pytest.fixture
def freelancer_user(make_user):
    return make_user("freelancer")


@pytest.fixture
def other_freelancer(make_user):
    return make_user("freelancer")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", is_staff=True)


@pytest.fixture
def make_project(db):
    def _make(owner, **fields):
        fields.setdefault("title", "Build a landing page")
        fields.setdefault("description", "A responsive landing page for a product launch.")
        fields.setdefault("budget", 1000)
        fields.setdefault("deadline", timezone.localdate() + timezone.timedelta(days=30))
        return Project.objects.create(client=owner.client_profile, **fields)
    return _make


@pytest.fixture
def make_bid(db):
    def _make(project, freelancer, **fields):
        fields.setdefault("amount", 900)
        fields.setdefault("delivery_time", 7)
        fields.setdefault("proposal", "I have shipped a dozen similar pages.")
        return Bid.objects.create(project=project, freelancer=freelancer.freelancer_profile, **fields)
    return _make


@pytest.fixture
def awarded_project(make_project, make_bid, client_user, freelancer_user):
    """An in-progress project whose accepted bid belongs to ``freelancer_user``."""
    project = make_project(client_user)
    bid = make_bid(project, freelancer_user, amount=950, status="accepted")
    project.status = "in_progress"
    project.assigned_freelancer = freelancer_user.freelancer_profile
    project.started_at = timezone.now()
    project.save()
    return SimpleNamespace(project=project, bid=bid)
