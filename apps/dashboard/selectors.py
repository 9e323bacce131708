from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth

from apps.adminpanel.selectors import (
    ProjectAnalyticsSelector,
    RevenueSelector,
    UserAnalyticsSelector,
    VerificationSelector,
    months_ago,
)
from apps.bids.models import Bid
from apps.bids.selectors import BidAnalyticsSelector
from apps.messaging.services import unread_total
from apps.notifications.models import Notification
from apps.projects.models import Project

RECENT_LIMIT = 5


def _status_counts(qs):
    return qs.aggregate(
        total=Count("id"),
        open=Count("id", filter=Q(status="open")),
        in_progress=Count("id", filter=Q(status="in_progress")),
        completed=Count("id", filter=Q(status="completed")),
        cancelled=Count("id", filter=Q(status="cancelled")),
    )


def _unread(user):
    return {
        "unread_messages": unread_total(user),
        "unread_notifications": Notification.objects.filter(recipient=user, is_read=False).count(),
    }


def _monthly_amounts(bids, date_field, months):
    rows = (
        bids.filter(**{f"{date_field}__gte": months_ago(months)})
        .annotate(month=TruncMonth(date_field))
        .values("month")
        .annotate(amount=Sum("amount"), projects=Count("id"))
        .order_by("month")
    )
    return [
        {"month": row["month"].strftime("%Y-%m"), "amount": float(row["amount"] or 0), "projects": row["projects"]}
        for row in rows
        if row["month"] is not None
    ]


class ClientDashboardSelector:
    @staticmethod
    def overview(client):
        projects = Project.objects.filter(client=client)
        counts = _status_counts(projects)
        recent = projects.select_related("assigned_freelancer__user").order_by("-created_at")[:RECENT_LIMIT]
        pending_bids = (
            Bid.objects.filter(project__client=client, status="pending")
            .select_related("project", "freelancer__user")
            .order_by("-created_at")[:RECENT_LIMIT]
        )
        return {
            "stats": {
                **counts,
                "projects_posted": client.projects_posted,
                "total_spent": float(client.total_spent or 0),
                "pending_bids": Bid.objects.filter(project__client=client, status="pending").count(),
            },
            "recent_projects": list(recent),
            "recent_bids": list(pending_bids),
            **_unread(client.user),
        }

    @staticmethod
    def analytics(client, months=12):
        awarded = Bid.objects.filter(project__client=client, status="accepted", project__status="completed")
        return {
            "project_status": _status_counts(Project.objects.filter(client=client)),
            "monthly_spending": _monthly_amounts(awarded, "project__completed_at", months),
            "bids": BidAnalyticsSelector.for_client(client),
        }


class FreelancerDashboardSelector:
    @staticmethod
    def overview(freelancer):
        active = (
            Project.objects.filter(assigned_freelancer=freelancer, status="in_progress")
            .select_related("client__user")
            .order_by("-started_at")[:RECENT_LIMIT]
        )
        recent_bids = (
            Bid.objects.filter(freelancer=freelancer)
            .select_related("project")
            .order_by("-created_at")[:RECENT_LIMIT]
        )
        bids = BidAnalyticsSelector.for_freelancer(freelancer)
        return {
            "stats": {
                "active_projects": Project.objects.filter(assigned_freelancer=freelancer, status="in_progress").count(),
                "completed_projects": freelancer.completed_projects,
                "total_earned": float(freelancer.total_earned or 0),
                "average_rating": float(freelancer.average_rating or 0),
                "total_reviews": freelancer.total_reviews,
                "pending_bids": bids["pending"],
                "success_rate": bids["success_rate"],
            },
            "active_projects": list(active),
            "recent_bids": list(recent_bids),
            **_unread(freelancer.user),
        }

    @staticmethod
    def analytics(freelancer, months=12):
        won = Bid.objects.filter(freelancer=freelancer, status="accepted", project__status="completed")
        return {
            "project_status": _status_counts(Project.objects.filter(assigned_freelancer=freelancer)),
            "monthly_earnings": _monthly_amounts(won, "project__completed_at", months),
            "bids": BidAnalyticsSelector.for_freelancer(freelancer),
        }


class AdminDashboardSelector:
    @staticmethod
    def overview(user):
        users = UserAnalyticsSelector.summary()
        return {
            "stats": {
                "total_users": users["total_users"],
                "clients": users["clients"],
                "freelancers": users["freelancers"],
                **_status_counts(Project.objects.all()),
                "pending_verifications": VerificationSelector.pending_freelancers().count(),
                "pending_documents": VerificationSelector.pending_documents(),
                "total_revenue": RevenueSelector.summary()["total_revenue"],
            },
            "recent_projects": list(
                Project.objects.select_related("client__user").order_by("-created_at")[:RECENT_LIMIT]
            ),
            **_unread(user),
        }

    @staticmethod
    def analytics(months=12):
        return {
            "users": UserAnalyticsSelector.growth(months),
            "projects": ProjectAnalyticsSelector.summary(),
            "revenue": RevenueSelector.summary(months),
            "bids": BidAnalyticsSelector.platform(),
        }
