import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from apps.bids.models import Bid
from apps.freelancer.models import FreelancerProfile, VerificationDocument
from apps.notifications.models import Notification
from apps.notifications.services.create_notifications import safe_notify
from apps.projects.models import Project
from apps.users.models import ClientProfile

logger = logging.getLogger(__name__)

User = get_user_model()


# ---------- freelancer verification ----------
def _freelancer(freelancer_id):
    profile = FreelancerProfile.objects.select_related("user").filter(pk=freelancer_id).first()
    if profile is None:
        raise NotFound("Freelancer not found.")
    return profile


def _settle_documents(profile, status, document_ids=None):
    qs = profile.documents.all()
    qs = qs.filter(pk__in=document_ids) if document_ids else qs.filter(status="pending")
    return qs.update(status=status, reviewed_at=timezone.now())


def verify_freelancer(freelancer_id, action="approve", level=None, notes="", document_ids=None):
    profile = _freelancer(freelancer_id)
    status = "approved" if action == "approve" else "rejected"

    with transaction.atomic():
        profile.verification_status = status
        if level:
            profile.verification_level = level
        if notes:
            profile.verification_notes = notes
        profile.verified_at = timezone.now() if status == "approved" else None
        profile.save()
        _settle_documents(profile, status, document_ids)

    logger.info("Freelancer %s verification %s", profile.pk, status)
    if status == "approved":
        title = "Verification Approved"
        message = (
            f"Your verification has been approved. Your account is now "
            f"{profile.get_verification_level_display()} verified."
        )
    else:
        title = "Verification Rejected"
        message = "Your verification has been rejected. Please contact support for more information."
    safe_notify(profile.user, "verification", title, message, link="/profile", related=profile)
    return profile


def reject_freelancer(freelancer_id, reason="", document_ids=None):
    profile = _freelancer(freelancer_id)
    with transaction.atomic():
        profile.verification_status = "rejected"
        profile.verified_at = None
        if reason:
            profile.verification_notes = reason
        profile.save()
        _settle_documents(profile, "rejected", document_ids)

    safe_notify(
        profile.user, "verification", "Verification Rejected",
        reason or "Your verification documents have been rejected. Please submit new documents.",
        link="/profile/verification", related=profile,
    )
    return profile


def review_document(freelancer_id, document_id, status, notes=""):
    profile = _freelancer(freelancer_id)
    document = VerificationDocument.objects.filter(pk=document_id, freelancer=profile).first()
    if document is None:
        raise NotFound("Document not found.")

    document.status = status
    if notes:
        document.notes = notes
    document.reviewed_at = timezone.now()
    document.save(update_fields=["status", "notes", "reviewed_at"])

    verdict = "approved" if status == "approved" else "rejected"
    safe_notify(
        profile.user, "verification", f"Document {verdict.title()}",
        f"Your {document.get_document_type_display()} has been {verdict}."
        + (f" Note: {notes}" if notes else ""),
        link="/freelancer/profile", related=profile,
    )
    return document


def bulk_verify(freelancer_ids, action):
    status = "approved" if action == "approve" else "rejected"
    profiles = list(FreelancerProfile.objects.filter(pk__in=freelancer_ids).select_related("user"))

    with transaction.atomic():
        updated = FreelancerProfile.objects.filter(pk__in=[p.pk for p in profiles]).update(
            verification_status=status,
            verified_at=timezone.now() if status == "approved" else None,
        )

    for profile in profiles:
        safe_notify(
            profile.user, "verification",
            "Verification Approved" if status == "approved" else "Verification Rejected",
            "Your verification has been approved. You can now access all freelancer features."
            if status == "approved"
            else "Your verification has been rejected. Please contact support for more information.",
            link="/profile/verification", related=profile,
        )
    return updated


# ---------- users ----------
def create_user(name, email, password, role, phone="", country=""):
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError({"email": "Email already in use."})

    with transaction.atomic():
        user = User.objects.create_user(
            email=email,
            password=password,
            name=name,
            role=role,
            phone=phone,
            country=country,
            is_verified=True,
            account_status="active",
        )
        if role == "client":
            ClientProfile.objects.create(user=user)
        elif role == "freelancer":
            FreelancerProfile.objects.create(user=user, verification_status="approved")

    logger.info("Admin created %s account %s", role, user.pk)
    safe_notify(
        user, "system", "Welcome to SkillSwap",
        "Your account has been created by an administrator. Welcome to the platform!",
        link="/profile", related=user,
    )
    return user


def _user(user_id):
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found.")
    return user


def update_user(user_id, **changes):
    user = _user(user_id)
    for field in ("name", "phone", "country", "account_status"):
        if changes.get(field):
            setattr(user, field, changes[field])
    if user.role == "admin" and user.account_status != "active":
        raise PermissionDenied("Cannot deactivate admin accounts.")
    user.save()

    safe_notify(
        user, "system", "Profile Updated",
        "Your profile information has been updated by an administrator.",
        link="/profile", related=user,
    )
    return user


def set_account_status(user_id, account_status):
    user = _user(user_id)
    if user.role == "admin" and account_status != "active":
        raise PermissionDenied("Cannot deactivate admin accounts.")

    user.account_status = account_status
    user.save(update_fields=["account_status", "is_active"])

    active = account_status == "active"
    safe_notify(
        user, "system",
        "Account Activated" if active else f"Account {user.get_account_status_display()}",
        "Your account has been activated. You can now use all platform features."
        if active
        else "Your account has been deactivated. Please contact support for more information.",
        link="/profile", related=user,
    )
    logger.info("Account %s set to %s", user.pk, account_status)
    return user


def delete_user(user_id):
    user = _user(user_id)
    if user.role == "admin":
        raise PermissionDenied("Cannot delete admin accounts.")
    user.delete()
    logger.info("Account %s deleted", user_id)


# ---------- projects ----------
def _project(project_id):
    project = (
        Project.objects
        .select_related("client__user", "assigned_freelancer__user")
        .filter(pk=project_id)
        .first()
    )
    if project is None:
        raise NotFound("Project not found.")
    return project


def _notify_parties(project, notif_type, title, message, link):
    parties = [project.client.user]
    if project.assigned_freelancer_id:
        parties.append(project.assigned_freelancer.user)
    for user in parties:
        safe_notify(user, notif_type, title, message, link=link, related=project)


def override_project_status(project_id, status, reason=""):
    """
    Admin override: sets any status without the lifecycle rules. Pending bids
    of a project leaving ``open`` are rejected so they cannot be accepted later.
    """
    with transaction.atomic():
        project = Project.objects.select_for_update().filter(pk=project_id).first()
        if project is None:
            raise NotFound("Project not found.")
        project.status = status
        if status == "completed" and project.completed_at is None:
            project.completed_at = timezone.now()
        project.save()
        if status != "open":
            Bid.objects.filter(project=project, status="pending").update(status="rejected")

    project = _project(project_id)
    _notify_parties(
        project, "project", "Project Status Updated",
        f'Project "{project.title}" status has been updated to {status} by an admin'
        + (f": {reason}" if reason else ""),
        link=f"/projects/{project.pk}",
    )
    return project


def delete_project(project_id):
    project = _project(project_id)
    title = project.title
    parties = [project.client.user]
    if project.assigned_freelancer_id:
        parties.append(project.assigned_freelancer.user)

    with transaction.atomic():
        Notification.objects.filter(related_id=project.pk, related_model="Project").delete()
        project.delete()

    for user in parties:
        safe_notify(
            user, "system", "Project Deleted",
            f'Project "{title}" has been deleted by an administrator.',
            link="/dashboard",
        )
