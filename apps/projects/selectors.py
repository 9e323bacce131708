from django.db.models import Count, Q
from rest_framework.exceptions import NotFound, ValidationError

from .models import Project

SORTABLE_FIELDS = {"created_at", "budget", "deadline", "title"}


def _base():
    return (
        Project.objects
        .select_related("client__user", "category", "assigned_freelancer__user")
        .prefetch_related("skills")
        .annotate(bid_count=Count("bids", distinct=True))
    )


def _decimal_param(params, name):
    raw = params.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: "Must be a number."})


class ProjectSelector:
    """
    Read access to projects for the listing, search and "my projects" views.
    """

    @staticmethod
    def get(project_id):
        project = _base().filter(pk=project_id).first()
        if project is None:
            raise NotFound("Project not found.")
        return project

    @staticmethod
    def public_list(params):
        status = params.get("status") or "open"
        qs = _base()
        if status != "all":
            qs = qs.filter(status=status)
        return qs

    @staticmethod
    def search(params):
        qs = ProjectSelector.public_list(params)

        keyword = (params.get("keyword") or params.get("q") or "").strip()
        if keyword:
            qs = qs.filter(Q(title__icontains=keyword) | Q(description__icontains=keyword))

        category = (params.get("category") or "").strip()
        if category:
            qs = qs.filter(category__name__iexact=category)

        min_budget = _decimal_param(params, "min_budget")
        if min_budget is not None:
            qs = qs.filter(budget__gte=min_budget)
        max_budget = _decimal_param(params, "max_budget")
        if max_budget is not None:
            qs = qs.filter(budget__lte=max_budget)

        skills = [s.strip() for s in (params.get("skills") or "").split(",") if s.strip()]
        if skills:
            skill_q = Q()
            for name in skills:
                skill_q |= Q(skills__name__iexact=name)
            qs = qs.filter(skill_q).distinct()

        sort_by = params.get("sort_by") or "created_at"
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError({"sort_by": f"Cannot sort by '{sort_by}'."})
        prefix = "" if params.get("order") == "asc" else "-"
        return qs.order_by(f"{prefix}{sort_by}", "-id")

    @staticmethod
    def for_client(client, status=None):
        qs = _base().filter(client=client)
        if status:
            qs = qs.filter(status=status)
        return qs

    @staticmethod
    def for_freelancer(freelancer, status=None):
        qs = _base().filter(assigned_freelancer=freelancer)
        if status:
            qs = qs.filter(status=status)
        return qs
