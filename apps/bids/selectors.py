from django.db.models import Avg, Count, Q

from .models import Bid


def _status_breakdown(qs):
    counts = qs.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status="pending")),
        accepted=Count("id", filter=Q(status="accepted")),
        rejected=Count("id", filter=Q(status="rejected")),
        withdrawn=Count("id", filter=Q(status="withdrawn")),
        average_amount=Avg("amount"),
        average_delivery_time=Avg("delivery_time"),
    )
    counts["average_amount"] = round(float(counts["average_amount"] or 0), 2)
    counts["average_delivery_time"] = round(float(counts["average_delivery_time"] or 0), 1)
    return counts


class BidAnalyticsSelector:
    """
    Bid statistics from the point of view of the requesting role.
    """

    @staticmethod
    def for_freelancer(freelancer):
        stats = _status_breakdown(Bid.objects.filter(freelancer=freelancer))
        decided = stats["accepted"] + stats["rejected"]
        stats["success_rate"] = round(stats["accepted"] / decided * 100, 1) if decided else 0
        return stats

    @staticmethod
    def for_client(client):
        qs = Bid.objects.filter(project__client=client)
        stats = _status_breakdown(qs)
        per_project = (
            qs.values("project_id", "project__title")
            .annotate(bids=Count("id"), average_amount=Avg("amount"))
            .order_by("-bids")
        )
        stats["projects"] = [
            {
                "project_id": row["project_id"],
                "title": row["project__title"],
                "bids": row["bids"],
                "average_amount": round(float(row["average_amount"] or 0), 2),
            }
            for row in per_project
        ]
        return stats

    @staticmethod
    def platform():
        return _status_breakdown(Bid.objects.all())
