import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from apps.freelancer.models import FreelancerProfile
from apps.notifications.services.create_notifications import safe_notify
from apps.projects.models import Project
from apps.users.models import ClientProfile
from .models import Review

logger = logging.getLogger(__name__)

User = get_user_model()


def _edit_window():
    return timezone.timedelta(days=settings.REVIEW_EDIT_WINDOW_DAYS)


def refresh_rating(user):
    """Recompute the cached rating on the reviewee's role profile."""
    stats = Review.objects.filter(reviewee=user).aggregate(avg=Avg("rating"), total=Count("id"))
    average = round(stats["avg"] or 0, 2)

    if user.role == "freelancer":
        FreelancerProfile.objects.filter(user=user).update(
            average_rating=average, total_reviews=stats["total"]
        )
    elif user.role == "client":
        ClientProfile.objects.filter(user=user).update(rating=average)
    return average


def _counterpart(project, reviewer):
    """The only user ``reviewer`` may review on ``project``."""
    if reviewer.role == "client":
        if not project.is_owned_by(reviewer):
            raise PermissionDenied("You are not authorized to review this project.")
        if project.assigned_freelancer_id is None:
            raise ValidationError("This project has no assigned freelancer.")
        return project.assigned_freelancer.user
    if reviewer.role == "freelancer":
        if not project.is_assigned_to(reviewer):
            raise PermissionDenied("You are not authorized to review this project.")
        return project.client.user
    raise PermissionDenied("Only clients and freelancers can create reviews.")


def create_review(reviewer, project_id, reviewee_id, rating, comment=""):
    project = Project.objects.select_related("client__user", "assigned_freelancer__user").filter(
        pk=project_id
    ).first()
    if project is None:
        raise NotFound("Project not found.")
    if project.status != "completed":
        raise ValidationError("Cannot review a project that is not completed.")

    reviewee = User.objects.filter(pk=reviewee_id).first()
    if reviewee is None:
        raise NotFound("Reviewee not found.")
    if _counterpart(project, reviewer).pk != reviewee.pk:
        raise PermissionDenied("You can only review the other party of this project.")

    try:
        with transaction.atomic():
            review = Review.objects.create(
                project=project, reviewer=reviewer, reviewee=reviewee,
                rating=rating, comment=comment,
            )
            refresh_rating(reviewee)
    except IntegrityError:
        raise ValidationError("You have already reviewed this user for this project.")

    logger.info("Review %s created on project %s", review.pk, project.pk)
    safe_notify(
        reviewee, "review", "New Review Received",
        f"You have received a new review for project: {project.title}",
        link=f"/reviews/{review.pk}", related=review,
    )
    return review


def _owned_recent(user, review_id, action):
    review = Review.objects.select_related("reviewee").filter(pk=review_id).first()
    if review is None:
        raise NotFound("Review not found.")
    if review.reviewer_id != user.id:
        raise PermissionDenied(f"You are not authorized to {action} this review.")
    if review.created_at < timezone.now() - _edit_window():
        raise ValidationError(
            f"Reviews can only be {action}d within {settings.REVIEW_EDIT_WINDOW_DAYS} days of creation."
        )
    return review


def update_review(user, review_id, rating=None, comment=None):
    review = _owned_recent(user, review_id, "update")
    with transaction.atomic():
        if rating is not None:
            review.rating = rating
        if comment is not None:
            review.comment = comment
        review.save()
        refresh_rating(review.reviewee)

    safe_notify(
        review.reviewee, "review", "Review Updated",
        "A review about you has been updated.",
        link=f"/reviews/{review.pk}", related=review,
    )
    return review


def delete_review(user, review_id):
    review = _owned_recent(user, review_id, "delete")
    reviewee = review.reviewee
    with transaction.atomic():
        review.delete()
        refresh_rating(reviewee)


def add_response(user, review_id, comment):
    review = Review.objects.filter(pk=review_id).first()
    if review is None:
        raise NotFound("Review not found.")
    if review.reviewee_id != user.id:
        raise PermissionDenied("You are not authorized to respond to this review.")
    if review.response:
        raise ValidationError("You have already responded to this review.")

    review.response = comment
    review.response_at = timezone.now()
    review.save(update_fields=["response", "response_at", "updated_at"])

    safe_notify(
        review.reviewer, "review", "Review Response",
        "Someone has responded to your review.",
        link=f"/reviews/{review.pk}", related=review,
    )
    return review


def review_statistics(user):
    qs = Review.objects.filter(reviewee=user)
    total = qs.count()
    counts = dict(qs.values_list("rating").annotate(n=Count("id")))
    average = qs.aggregate(avg=Avg("rating"))["avg"] or 0

    distribution = {}
    for rating in range(5, 0, -1):
        count = counts.get(rating, 0)
        distribution[str(rating)] = {
            "count": count,
            "percentage": round(count / total * 100, 1) if total else 0,
        }

    return {
        "total_reviews": total,
        "average_rating": round(average, 2),
        "distribution": distribution,
    }
