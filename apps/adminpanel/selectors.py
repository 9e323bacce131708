from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, F, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.bids.models import Bid
from apps.freelancer.models import FreelancerProfile, FreelancerSkill, VerificationDocument
from apps.projects.models import Project

User = get_user_model()


def months_ago(months):
    return timezone.now() - timezone.timedelta(days=30 * months)


def _month_rows(qs, **aggregates):
    rows = (
        qs.annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(**aggregates)
        .order_by("month")
    )
    return [
        {**row, "month": row["month"].strftime("%Y-%m")}
        for row in rows
        if row["month"] is not None
    ]


def _num(value):
    return float(value or 0)


class UserAnalyticsSelector:
    """
    Account level aggregations (ADMIN ONLY)
    """
    @staticmethod
    def summary():
        by_role = dict(User.objects.values_list("role").annotate(n=Count("id")))
        by_status = dict(User.objects.values_list("account_status").annotate(n=Count("id")))
        levels = dict(
            FreelancerProfile.objects.values_list("verification_level").annotate(n=Count("id"))
        )
        trends = _month_rows(
            User.objects.filter(created_at__gte=months_ago(6)),
            count=Count("id"),
            clients=Count("id", filter=Q(role="client")),
            freelancers=Count("id", filter=Q(role="freelancer")),
        )
        return {
            "total_users": sum(by_role.values()),
            "clients": by_role.get("client", 0),
            "freelancers": by_role.get("freelancer", 0),
            "admins": by_role.get("admin", 0),
            "account_status": by_status,
            "verified_users": User.objects.filter(is_verified=True).count(),
            "unverified_users": User.objects.filter(is_verified=False).count(),
            "freelancer_verification_levels": levels,
            "registration_trends": trends,
        }

    @staticmethod
    def growth(months=12):
        start = months_ago(months)
        baseline = User.objects.filter(created_at__lt=start).count()
        rows = _month_rows(
            User.objects.filter(created_at__gte=start),
            new_users=Count("id"),
            clients=Count("id", filter=Q(role="client")),
            freelancers=Count("id", filter=Q(role="freelancer")),
        )
        running = baseline
        for row in rows:
            running += row["new_users"]
            row["total_users"] = running
        return {"months": months, "starting_total": baseline, "growth": rows}


class ProjectAnalyticsSelector:
    @staticmethod
    def summary():
        by_status = dict(Project.objects.values_list("status").annotate(n=Count("id")))
        budgets = Project.objects.aggregate(avg=Avg("budget"), total=Sum("budget"))
        by_category = list(
            Project.objects.exclude(category=None)
            .values(name=F("category__name"))
            .annotate(count=Count("id"))
            .order_by("-count")[:10]
        )
        bids = Bid.objects.aggregate(total=Count("id"), avg=Avg("amount"))
        project_count = sum(by_status.values())
        return {
            "total_projects": project_count,
            "status": by_status,
            "average_budget": round(_num(budgets["avg"]), 2),
            "total_budget": _num(budgets["total"]),
            "top_categories": by_category,
            "total_bids": bids["total"],
            "average_bid_amount": round(_num(bids["avg"]), 2),
            "bids_per_project": round(bids["total"] / project_count, 2) if project_count else 0,
            "monthly": _month_rows(Project.objects.filter(created_at__gte=months_ago(6)), count=Count("id")),
        }


class RevenueSelector:
    """
    Platform volume: the accepted bid amount of every completed project.
    """
    @staticmethod
    def _completed_bids():
        return Bid.objects.filter(status="accepted", project__status="completed")

    @staticmethod
    def summary(months=12):
        qs = RevenueSelector._completed_bids()
        totals = qs.aggregate(total=Sum("amount"), avg=Avg("amount"), count=Count("id"))
        monthly = (
            qs.filter(project__completed_at__gte=months_ago(months))
            .annotate(month=TruncMonth("project__completed_at"))
            .values("month")
            .annotate(revenue=Sum("amount"), projects=Count("id"))
            .order_by("month")
        )
        return {
            "total_revenue": _num(totals["total"]),
            "average_project_value": round(_num(totals["avg"]), 2),
            "completed_projects": totals["count"],
            "monthly": [
                {"month": row["month"].strftime("%Y-%m"), "revenue": _num(row["revenue"]), "projects": row["projects"]}
                for row in monthly
                if row["month"] is not None
            ],
        }

    @staticmethod
    def transactions(limit=50):
        qs = (
            RevenueSelector._completed_bids()
            .select_related("project__client__user", "freelancer__user")
            .order_by("-project__completed_at")[:limit]
        )
        return [
            {
                "project_id": bid.project_id,
                "project_title": bid.project.title,
                "client": bid.project.client.user.display_name,
                "freelancer": bid.freelancer.user.display_name,
                "amount": _num(bid.amount),
                "completed_at": bid.project.completed_at,
            }
            for bid in qs
        ]


class SkillAnalyticsSelector:
    @staticmethod
    def summary(limit=20):
        demand = list(
            Project.objects.values(name=F("skills__name"))
            .exclude(name=None)
            .annotate(projects=Count("id", distinct=True), average_budget=Avg("budget"))
            .order_by("-projects")[:limit]
        )
        supply = dict(
            FreelancerSkill.objects.values_list("skill__name")
            .annotate(n=Count("freelancer", distinct=True))
        )
        for row in demand:
            row["average_budget"] = round(_num(row["average_budget"]), 2)
            row["freelancers"] = supply.get(row["name"], 0)
        top_supply = sorted(supply.items(), key=lambda item: item[1], reverse=True)[:limit]
        return {
            "in_demand": demand,
            "most_common": [{"name": name, "freelancers": n} for name, n in top_supply],
        }


class VerificationSelector:
    @staticmethod
    def pending_freelancers():
        return (
            FreelancerProfile.objects
            .filter(documents__status="pending")
            .select_related("user")
            .distinct()
        )

    @staticmethod
    def pending_documents():
        return VerificationDocument.objects.filter(status="pending").count()
