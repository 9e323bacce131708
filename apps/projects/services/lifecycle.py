"""
Project and bid state machine.

Project: open -> in_progress -> completed | cancelled (open -> cancelled only).
Bid: pending -> accepted | rejected | withdrawn, with an orthogonal
counter-offer: none -> pending -> accepted | rejected.

Every mutating operation locks the project row and re-checks state under the
lock, so two concurrent accepts on one project yield exactly one winner.
Notifications and realtime pushes run once the transaction block has exited;
their failures are logged and never undo the transition.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from apps.bids.models import Bid
from apps.cores.realtime import push_dashboard_update, push_project_event
from apps.freelancer.models import FreelancerProfile
from apps.notifications.services.create_notifications import safe_notify
from apps.projects.exceptions import InvalidTransition
from apps.projects.models import Attachment, Milestone, Project, Submission
from apps.users.models import ClientProfile
from apps.users.selectors import ProfileSelector

logger = logging.getLogger(__name__)

PROJECT_STATUSES = {value for value, _ in Project.STATUS}

CLIENT_TRANSITIONS = {
    ("open", "cancelled"),
    ("in_progress", "completed"),
}
FREELANCER_TRANSITIONS = {
    ("in_progress", "completed"),
}


# ---------- lookups ----------
def _lock_project(project_id):
    try:
        return Project.objects.select_for_update().get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFound("Project not found.")


def _get_bid(project, bid_id, lock=True):
    qs = Bid.objects.select_for_update() if lock else Bid.objects
    try:
        return qs.get(pk=bid_id, project=project)
    except Bid.DoesNotExist:
        raise NotFound("Bid not found.")


def _require_owner(project, user):
    if not project.is_owned_by(user):
        raise PermissionDenied("Not authorized to manage this project.")


def _require_assigned(project, user):
    if not project.is_assigned_to(user):
        raise PermissionDenied("Only the assigned freelancer can perform this action.")


def _require_bid_owner(bid, user):
    if bid.freelancer.user_id != user.id:
        raise PermissionDenied("Not authorized to modify this bid.")


# ---------- side effects ----------
def _project_link(project):
    return f"/projects/{project.pk}"


def _refresh_dashboards(reason, *users):
    for user in users:
        if user is not None:
            push_dashboard_update(user.id, reason)


def _bid_payload(bid):
    return {
        "bid_id": bid.pk,
        "project_id": bid.project_id,
        "freelancer_id": bid.freelancer_id,
        "status": bid.status,
        "amount": str(bid.amount),
        "delivery_time": bid.delivery_time,
        "counter_status": bid.counter_status,
    }


# ---------- bids ----------
def submit_bid(user, project_id, amount, delivery_time, proposal):
    freelancer = ProfileSelector.freelancer_for(user)

    with transaction.atomic():
        project = _lock_project(project_id)
        if project.status != "open":
            raise InvalidTransition("Project is not open for bidding.")
        if Bid.objects.filter(project=project, freelancer=freelancer).exists():
            raise ValidationError("You have already placed a bid on this project.")

        bid = Bid.objects.create(
            project=project,
            freelancer=freelancer,
            amount=amount,
            delivery_time=delivery_time,
            proposal=proposal,
        )

    logger.info("Bid %s placed on project %s by freelancer %s", bid.pk, project.pk, freelancer.pk)

    client_user = project.client.user
    safe_notify(
        client_user, "bid", "New Bid Received",
        f"{user.display_name} placed a bid of {bid.amount} on '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "bid_submitted", _bid_payload(bid))
    _refresh_dashboards("bid_submitted", client_user, user)
    return bid


def update_bid(user, project_id, bid_id, **changes):
    with transaction.atomic():
        project = _lock_project(project_id)
        bid = _get_bid(project, bid_id)
        _require_bid_owner(bid, user)

        if project.status != "open":
            raise InvalidTransition("Project is not open for bidding.")
        if bid.status != "pending":
            raise InvalidTransition("Only pending bids can be updated.")

        for field in ("amount", "delivery_time", "proposal"):
            if changes.get(field) is not None:
                setattr(bid, field, changes[field])
        bid.save()

    safe_notify(
        project.client.user, "bid", "Bid Updated",
        f"{user.display_name} updated their bid on '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "bid_updated", _bid_payload(bid))
    return bid


def withdraw_bid(user, project_id, bid_id):
    with transaction.atomic():
        project = _lock_project(project_id)
        bid = _get_bid(project, bid_id)
        _require_bid_owner(bid, user)

        if bid.status != "pending":
            raise InvalidTransition("Cannot withdraw a bid that is not pending.")

        bid.status = "withdrawn"
        bid.save(update_fields=["status", "updated_at"])

    logger.info("Bid %s withdrawn", bid.pk)
    client_user = project.client.user
    safe_notify(
        client_user, "bid", "Bid Withdrawn",
        f"{user.display_name} withdrew their bid on '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "bid_withdrawn", _bid_payload(bid))
    _refresh_dashboards("bid_withdrawn", client_user, user)
    return bid


def create_counter_offer(user, project_id, bid_id, amount, delivery_time, message=""):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_owner(project, user)
        bid = _get_bid(project, bid_id)

        if project.status != "open":
            raise InvalidTransition("Project is not open for bidding.")
        if bid.status != "pending":
            raise InvalidTransition("Counter-offers can only be made on pending bids.")

        bid.counter_amount = amount
        bid.counter_delivery_time = delivery_time
        bid.counter_message = message
        bid.counter_status = "pending"
        bid.counter_created_at = timezone.now()
        bid.counter_responded_at = None
        bid.save()

    safe_notify(
        bid.freelancer.user, "bid", "Counter Offer Received",
        f"The client proposed {amount} over {delivery_time} days for '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "counter_offer", _bid_payload(bid))
    return bid


def respond_to_counter_offer(user, project_id, bid_id, response):
    if response not in ("accept", "reject"):
        raise ValidationError({"response": "Response must be 'accept' or 'reject'."})

    with transaction.atomic():
        project = _lock_project(project_id)
        bid = _get_bid(project, bid_id)
        _require_bid_owner(bid, user)

        if bid.counter_status != "pending":
            raise InvalidTransition("There is no pending counter-offer on this bid.")
        if bid.status != "pending":
            raise InvalidTransition("Bid is no longer pending.")

        if response == "accept":
            bid.amount = bid.counter_amount
            bid.delivery_time = bid.counter_delivery_time
            bid.counter_status = "accepted"
        else:
            bid.counter_status = "rejected"
        bid.counter_responded_at = timezone.now()
        bid.save()

    safe_notify(
        project.client.user, "bid", f"Counter Offer {bid.counter_status.title()}",
        f"{user.display_name} {bid.counter_status} your counter-offer on '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "counter_offer_response", _bid_payload(bid))
    return bid


# ---------- awarding ----------
def _award(project, bid):
    if project.status != "open":
        raise InvalidTransition("Project is not open for bidding.")
    if bid.status != "pending":
        raise InvalidTransition("Only pending bids can be accepted.")

    bid.status = "accepted"
    bid.save(update_fields=["status", "updated_at"])

    siblings = Bid.objects.filter(project=project).exclude(pk=bid.pk)
    outbid = list(siblings.filter(status="pending").values_list("pk", flat=True))
    rejected = siblings.update(status="rejected", updated_at=timezone.now())

    project.status = "in_progress"
    project.assigned_freelancer = bid.freelancer
    project.started_at = timezone.now()
    project.save(update_fields=["status", "assigned_freelancer", "started_at", "updated_at"])

    FreelancerProfile.objects.filter(pk=bid.freelancer_id).update(
        ongoing_projects=F("ongoing_projects") + 1
    )
    logger.info(
        "Project %s awarded to freelancer %s via bid %s (%s sibling bids rejected)",
        project.pk, bid.freelancer_id, bid.pk, rejected,
    )
    return outbid


def _after_award(project, bid, outbid):
    freelancer_user = bid.freelancer.user
    client_user = project.client.user

    safe_notify(
        freelancer_user, "bid", "Bid Accepted",
        f"Your bid on '{project.title}' has been accepted.",
        link=_project_link(project), related=project,
    )
    safe_notify(
        client_user, "project", "Project Started",
        f"'{project.title}' is now in progress.",
        link=_project_link(project), related=project,
    )

    for other in Bid.objects.filter(pk__in=outbid).select_related("freelancer__user"):
        safe_notify(
            other.freelancer.user, "bid", "Bid Not Selected",
            f"Another freelancer was selected for '{project.title}'.",
            link=_project_link(project), related=project,
        )

    push_project_event(project.pk, "bid_accepted", _bid_payload(bid))
    _refresh_dashboards("project_started", client_user, freelancer_user)


def accept_bid(user, project_id, bid_id):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_owner(project, user)
        if project.status != "open":
            raise InvalidTransition("Project is not open for bidding.")
        bid = _get_bid(project, bid_id)
        outbid = _award(project, bid)

    _after_award(project, bid, outbid)
    return project, bid


def assign_freelancer(user, project_id, freelancer_id, bid_id):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_owner(project, user)
        if project.status != "open":
            raise InvalidTransition("Project is not open for bidding.")
        bid = _get_bid(project, bid_id)
        if bid.freelancer_id != int(freelancer_id):
            raise NotFound("Bid not found for this freelancer.")
        outbid = _award(project, bid)

    _after_award(project, bid, outbid)
    return project, bid


# ---------- status ----------
def _complete(project):
    now = timezone.now()
    project.status = "completed"
    project.progress = 100
    project.completed_at = now
    project.save(update_fields=["status", "progress", "completed_at", "updated_at"])

    accepted = Bid.objects.filter(project=project, status="accepted").first()
    amount = accepted.amount if accepted else project.budget

    ClientProfile.objects.filter(pk=project.client_id).update(
        completed_projects=F("completed_projects") + 1,
        total_spent=F("total_spent") + amount,
    )
    if project.assigned_freelancer_id:
        FreelancerProfile.objects.filter(pk=project.assigned_freelancer_id).update(
            completed_projects=F("completed_projects") + 1,
            ongoing_projects=Greatest(F("ongoing_projects") - 1, 0),
            total_earned=F("total_earned") + amount,
        )

    from apps.contract.models import Contract
    Contract.objects.filter(project=project, status="active").update(
        status="completed", completed_at=now, updated_at=now
    )


def _cancel(project):
    project.status = "cancelled"
    project.save(update_fields=["status", "updated_at"])
    Bid.objects.filter(project=project, status="pending").update(
        status="rejected", updated_at=timezone.now()
    )


def update_status(user, project_id, new_status):
    if new_status not in PROJECT_STATUSES:
        raise ValidationError({"status": f"'{new_status}' is not a valid project status."})

    with transaction.atomic():
        project = _lock_project(project_id)
        transition = (project.status, new_status)

        if project.is_owned_by(user):
            actor = "client"
            if transition not in CLIENT_TRANSITIONS:
                raise InvalidTransition("Invalid status transition for client.")
        elif project.is_assigned_to(user):
            actor = "freelancer"
            if transition not in FREELANCER_TRANSITIONS:
                raise InvalidTransition("Invalid status transition for freelancer.")
        else:
            raise PermissionDenied("Not authorized to update this project.")

        if new_status == "completed":
            if project.milestones.exclude(status="approved").exists():
                raise InvalidTransition("All milestones must be approved before completion.")
            _complete(project)
        else:
            _cancel(project)

    _after_status_change(project, user, actor, transition[0])
    return project


def _after_status_change(project, user, actor, previous):
    new_status = project.status
    logger.info("Project %s moved %s -> %s by %s %s", project.pk, previous, new_status, actor, user.pk)

    client_user = project.client.user
    freelancer_user = project.assigned_freelancer.user if project.assigned_freelancer_id else None
    counterpart = freelancer_user if actor == "client" else client_user
    if counterpart is not None:
        safe_notify(
            counterpart, "project", f"Project {project.get_status_display()}",
            f"'{project.title}' was marked as {project.get_status_display().lower()}.",
            link=_project_link(project), related=project,
        )
    push_project_event(project.pk, "status_changed", {"status": project.status})
    _refresh_dashboards(f"project_{new_status}", client_user, freelancer_user)


def cancel_project(user, project_id):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_owner(project, user)
        if project.status != "open":
            raise InvalidTransition("Only open projects can be cancelled.")
        _cancel(project)

    _after_status_change(project, user, "client", "open")
    return project


# ---------- work ----------
def submit_work(user, project_id, description, files=()):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_assigned(project, user)
        if project.status != "in_progress":
            raise InvalidTransition("Work can only be submitted on a project in progress.")

        submission = Submission.objects.create(
            project=project,
            submitted_by=project.assigned_freelancer,
            description=description,
        )
        for upload in files:
            Attachment.objects.create(
                submission=submission,
                name=upload.name,
                file=upload,
                uploaded_by=user,
            )
        _complete(project)

    logger.info("Work submitted on project %s (submission %s)", project.pk, submission.pk)

    client_user = project.client.user
    safe_notify(
        client_user, "project", "Work Submitted",
        f"{user.display_name} submitted work for '{project.title}'.",
        link=_project_link(project), related=project,
    )
    push_project_event(project.pk, "work_submitted", {
        "submission_id": submission.pk,
        "status": project.status,
    })
    _refresh_dashboards("work_submitted", client_user, user)
    return submission


def review_submission(user, project_id, submission_id, action, feedback=""):
    if action not in ("approve", "reject"):
        raise ValidationError({"action": "Action must be 'approve' or 'reject'."})

    with transaction.atomic():
        project = _lock_project(project_id)
        _require_owner(project, user)
        try:
            submission = Submission.objects.select_for_update().get(pk=submission_id, project=project)
        except Submission.DoesNotExist:
            raise NotFound("Submission not found.")
        if submission.status != "pending":
            raise InvalidTransition("Submission has already been reviewed.")

        submission.status = "approved" if action == "approve" else "rejected"
        submission.client_feedback = feedback
        submission.reviewed_at = timezone.now()
        submission.save(update_fields=["status", "client_feedback", "reviewed_at"])

    safe_notify(
        submission.submitted_by.user, "project", f"Submission {submission.get_status_display()}",
        feedback or f"Your submission for '{project.title}' was {submission.status}.",
        link=_project_link(project), related=project,
    )
    return submission


# ---------- milestones ----------
def _recompute_progress(project):
    total = project.milestones.count()
    if total == 0:
        return project.progress
    approved = project.milestones.filter(status="approved").count()
    project.progress = round(approved / total * 100)
    project.save(update_fields=["progress", "updated_at"])
    return project.progress


def add_milestone(user, project_id, title, description="", due_date=None, amount=0):
    with transaction.atomic():
        project = _lock_project(project_id)
        if project.is_owned_by(user):
            if project.status not in ("open", "in_progress"):
                raise InvalidTransition("Milestones cannot be added to a closed project.")
        elif project.is_assigned_to(user):
            if project.status != "in_progress":
                raise InvalidTransition("Milestones can only be added while the project is in progress.")
        else:
            raise PermissionDenied("Not authorized to add milestones to this project.")

        milestone = Milestone.objects.create(
            project=project,
            title=title,
            description=description,
            due_date=due_date,
            amount=amount,
        )
        _recompute_progress(project)

    return milestone


def update_milestone(user, project_id, milestone_id, **changes):
    new_status = changes.pop("status", None)

    with transaction.atomic():
        project = _lock_project(project_id)
        try:
            milestone = Milestone.objects.select_for_update().get(pk=milestone_id, project=project)
        except Milestone.DoesNotExist:
            raise NotFound("Milestone not found.")

        if milestone.status == "approved":
            raise InvalidTransition("Approved milestones cannot be changed.")
        if project.status in ("completed", "cancelled"):
            raise InvalidTransition("Milestones of a closed project cannot be changed.")

        if project.is_owned_by(user):
            actor = "client"
            if new_status is not None:
                if new_status != "approved":
                    raise InvalidTransition("Clients can only approve milestones.")
                if milestone.status != "completed":
                    raise InvalidTransition("Only completed milestones can be approved.")
        elif project.is_assigned_to(user):
            actor = "freelancer"
            if project.status != "in_progress":
                raise InvalidTransition("Project is not in progress.")
            if new_status is not None and new_status not in ("in_progress", "completed"):
                raise InvalidTransition("Freelancers can only start or complete milestones.")
        else:
            raise PermissionDenied("Not authorized to update this milestone.")

        for field in ("title", "description", "due_date", "amount"):
            if field in changes and changes[field] is not None:
                setattr(milestone, field, changes[field])

        if new_status is not None:
            milestone.status = new_status
            if new_status == "completed":
                milestone.completed_at = timezone.now()
            elif new_status == "approved":
                milestone.approved_at = timezone.now()
        milestone.save()
        _recompute_progress(project)

    if new_status is not None:
        counterpart = (
            project.assigned_freelancer.user if actor == "client" and project.assigned_freelancer_id
            else project.client.user
        )
        safe_notify(
            counterpart, "project", f"Milestone {milestone.get_status_display()}",
            f"Milestone '{milestone.title}' on '{project.title}' is now {milestone.get_status_display().lower()}.",
            link=_project_link(project), related=project,
        )
        push_project_event(project.pk, "milestone_updated", {
            "milestone_id": milestone.pk,
            "status": milestone.status,
            "progress": project.progress,
        })
    return milestone


# ---------- tracking ----------
def update_progress(user, project_id, progress):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_assigned(project, user)
        if project.status != "in_progress":
            raise InvalidTransition("Progress can only be updated while the project is in progress.")

        project.progress = max(0, min(100, int(progress)))
        project.save(update_fields=["progress", "updated_at"])

    push_project_event(project.pk, "progress_updated", {"progress": project.progress})
    push_dashboard_update(project.client.user_id, "progress_updated")
    return project


def update_time_tracking(user, project_id, time_tracked):
    with transaction.atomic():
        project = _lock_project(project_id)
        _require_assigned(project, user)
        if project.status not in ("in_progress", "completed"):
            raise InvalidTransition("Time can only be tracked on active or completed projects.")

        project.time_tracked = max(0, int(time_tracked))
        project.save(update_fields=["time_tracked", "updated_at"])

    return project
