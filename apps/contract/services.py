import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from apps.bids.models import Bid
from apps.notifications.services.create_notifications import safe_notify
from apps.projects.exceptions import InvalidTransition
from apps.projects.models import Project
from .models import Contract, ContractVersion

logger = logging.getLogger(__name__)


def _notify_other_party(contract, actor, title, message):
    other = (
        contract.get_freelancer_user()
        if actor.id == contract.client.user_id
        else contract.get_client_user()
    )
    safe_notify(
        other, "project", title, message,
        link=f"/contracts/{contract.pk}", related=contract,
    )


def create_contract(user, project_id, terms, start_date, end_date, amount=None):
    """
    Draft a contract between the owner of an awarded project and its
    freelancer. ``amount`` defaults to the accepted bid.
    """
    project = Project.objects.select_related("client__user", "assigned_freelancer__user").filter(
        pk=project_id
    ).first()
    if project is None:
        raise NotFound("Project not found.")
    if not project.is_owned_by(user):
        raise PermissionDenied("Only the project owner can draft a contract.")
    if project.status != "in_progress" or project.assigned_freelancer_id is None:
        raise InvalidTransition("Contracts can only be drafted for projects in progress.")
    if end_date < start_date:
        raise ValidationError({"end_date": "End date must be after the start date."})

    if amount is None:
        accepted = Bid.objects.filter(project=project, status="accepted").first()
        amount = accepted.amount if accepted else project.budget

    try:
        with transaction.atomic():
            contract = Contract.objects.create(
                project=project,
                client=project.client,
                freelancer=project.assigned_freelancer,
                terms=terms,
                amount=amount,
                start_date=start_date,
                end_date=end_date,
            )
    except IntegrityError:
        raise ValidationError("A contract already exists for this project.")

    logger.info("Contract %s drafted for project %s", contract.pk, project.pk)
    _notify_other_party(
        contract, user, "Contract Drafted",
        f"A contract for '{project.title}' is waiting for your signature.",
    )
    return contract


def _lock(contract_id):
    contract = (
        Contract.objects.select_for_update()
        .filter(pk=contract_id)
        .first()
    )
    if contract is None:
        raise NotFound("Contract not found.")
    return contract


def sign_contract(user, contract_id):
    with transaction.atomic():
        contract = _lock(contract_id)
        if not contract.is_party(user):
            raise PermissionDenied("You are not a party to this contract.")
        if contract.status not in ("draft", "pending"):
            raise InvalidTransition(f"Cannot sign a contract that is {contract.status}.")

        now = timezone.now()
        if user.id == contract.client.user_id:
            if contract.client_signed:
                raise InvalidTransition("You have already signed this contract.")
            contract.client_signed, contract.client_signed_at = True, now
        else:
            if contract.freelancer_signed:
                raise InvalidTransition("You have already signed this contract.")
            contract.freelancer_signed, contract.freelancer_signed_at = True, now

        contract.status = "active" if contract.fully_signed else "pending"
        contract.save()

    logger.info("Contract %s signed by user %s, now %s", contract.pk, user.pk, contract.status)
    _notify_other_party(
        contract, user,
        "Contract Active" if contract.status == "active" else "Contract Signed",
        f"{user.display_name} signed the contract for project #{contract.project_id}.",
    )
    return contract


def update_terms(user, contract_id, **changes):
    """
    Replace the terms of an unsigned or half-signed contract. The previous
    terms are kept as a ContractVersion and both signatures are cleared.
    """
    with transaction.atomic():
        contract = _lock(contract_id)
        if contract.client.user_id != user.id:
            raise PermissionDenied("Only the client can change the contract terms.")
        if contract.status not in ("draft", "pending"):
            raise InvalidTransition("Terms of an active or closed contract cannot change.")

        ContractVersion.objects.create(
            contract=contract,
            terms=contract.terms,
            amount=contract.amount,
            start_date=contract.start_date,
            end_date=contract.end_date,
            hash=contract.hash,
        )

        for field in ("terms", "amount", "start_date", "end_date"):
            if changes.get(field) is not None:
                setattr(contract, field, changes[field])
        if contract.end_date < contract.start_date:
            raise ValidationError({"end_date": "End date must be after the start date."})

        contract.client_signed = contract.freelancer_signed = False
        contract.client_signed_at = contract.freelancer_signed_at = None
        contract.status = "draft"
        contract.save()

    _notify_other_party(
        contract, user, "Contract Updated",
        f"The terms of the contract for project #{contract.project_id} changed.",
    )
    return contract


def terminate_contract(user, contract_id):
    with transaction.atomic():
        contract = _lock(contract_id)
        if not contract.is_party(user):
            raise PermissionDenied("You are not a party to this contract.")
        if contract.status in ("completed", "terminated"):
            raise InvalidTransition(f"Contract is already {contract.status}.")
        contract.terminate()

    _notify_other_party(
        contract, user, "Contract Terminated",
        f"The contract for project #{contract.project_id} was terminated.",
    )
    return contract
