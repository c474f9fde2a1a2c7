# parties/services.py
from django.core.exceptions import ValidationError
from django.db import transaction
from django.forms.models import model_to_dict

from core.exceptions import NotFoundError
from core.models import AuditLog
from core.services.audit import log_event

from .forms import PartyForm
from .models import Party


def serialize_party(party: Party) -> dict:
    return {
        "id": party.pk,
        "name": party.name,
        "gstin": party.gstin,
        "party_type": party.party_type,
        "address": party.address,
        "contact_person": party.contact_person,
        "phone": party.phone,
        "email": party.email,
        "is_active": party.is_active,
        "created_at": party.created_at,
        "updated_at": party.updated_at,
    }


def get_party(pk) -> Party:
    try:
        return Party.objects.get(pk=pk)
    except (Party.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Party not found.")


def list_parties(search: str = ""):
    qs = Party.objects.all()
    if search:
        qs = qs.search(search)
    return qs.order_by("name", "id")


@transaction.atomic
def create_party(data: dict, *, actor=None) -> Party:
    form = PartyForm(data=data)
    if not form.is_valid():
        raise ValidationError(form.errors.as_data())

    party = form.save(commit=False)
    if getattr(actor, "is_authenticated", False):
        party.created_by = actor
        party.updated_by = actor
    party.save()

    log_event(
        action=AuditLog.Action.CREATE,
        message=f"Party {party.name} created.",
        actor=actor,
        target=party,
        extra={"gstin": party.gstin},
    )
    return party


@transaction.atomic
def update_party(party: Party, data: dict, *, actor=None) -> Party:
    """
    Merge `data` over the stored values and validate the result as a whole,
    so a payload with only {"phone": "..."} is accepted.
    """
    merged = model_to_dict(party, fields=PartyForm.Meta.fields)
    merged.update(data)

    form = PartyForm(data=merged, instance=party)
    if not form.is_valid():
        raise ValidationError(form.errors.as_data())

    party = form.save(commit=False)
    if getattr(actor, "is_authenticated", False):
        party.updated_by = actor
    party.save()

    log_event(
        action=AuditLog.Action.UPDATE,
        message=f"Party {party.name} updated.",
        actor=actor,
        target=party,
        extra={"fields": sorted(data.keys())},
    )
    return party


@transaction.atomic
def delete_party(party: Party, *, actor=None) -> None:
    log_event(
        action=AuditLog.Action.DELETE,
        message=f"Party {party.name} deleted.",
        actor=actor,
        target=party,
        extra={"gstin": party.gstin},
    )
    party.delete()
