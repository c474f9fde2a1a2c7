# transport/services.py
"""
Create, update and delete bilties and challans.

Creating a document goes through these states:

    absent -> validated -> numbered -> persisted

Validation happens before a number is allocated, so a rejected payload never
consumes a number. Allocation commits on its own; persisting the header and
items runs in a separate atomic block afterwards. If that block fails the
number stays consumed (a gap) and PersistError is raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.forms.models import model_to_dict
from django.utils.translation import gettext_lazy as _

from core.api import parse_date_param
from core.domain.dispatcher import emit
from core.exceptions import NotFoundError, PersistError
from core.models import AuditLog, DocumentType
from core.services.audit import log_event
from core.services.numbering import Allocator, next_number

from .domain import DocumentCreated, DocumentDeleted
from .forms import (
    BiltyChargesForm,
    BiltyForm,
    BiltyItemForm,
    ChallanForm,
    ChallanItemForm,
)
from .models import Bilty, BiltyItem, Challan, ChallanItem

logger = logging.getLogger(__name__)


@dataclass
class CleanedDocument:
    """
    A payload that passed validation: header values and one dict per item.
    """
    header: dict
    items: list = field(default_factory=list)


def _is_number(value) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _collect(errors: dict, form, prefix: str = "") -> None:
    for name, errs in form.errors.as_data().items():
        if name == "__all__":
            key = prefix.rstrip(".") or "__all__"
        else:
            key = f"{prefix}{name}"
        errors.setdefault(key, []).extend(errs)


class DocumentService:
    """
    Shared create/update/delete flow. Subclasses name the model, the forms
    and the item relation.
    """

    document_type: str = ""
    model = None
    item_model = None
    item_fk: str = ""
    form_class = None
    item_form_class = None
    date_field: str = ""
    label: str = ""

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @classmethod
    def get(cls, pk):
        try:
            return cls.model.objects.prefetch_related("items").get(pk=pk)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"{cls.label} not found.")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    @classmethod
    def _form_data(cls, form_class, payload: dict) -> dict:
        data = {}
        for name in form_class._meta.fields:
            value = payload.get(name)
            if value is None:
                continue
            if name == cls.date_field and isinstance(value, str):
                parsed = parse_date_param(value)
                value = parsed.isoformat() if parsed else value
            data[name] = value
        return data

    @classmethod
    def _clean_extra(cls, payload: dict, errors: dict) -> dict:
        """
        Hook for blocks other than the header and the items.
        Returns extra header values.
        """
        return {}

    @classmethod
    def validate(cls, payload: Any, instance=None) -> CleanedDocument:
        """
        Validate a whole document payload.
        Raises ValidationError keyed by field, "items", "items.<i>.<field>"
        or "charges.<field>".
        """
        if not isinstance(payload, dict):
            raise ValidationError(_("Document payload must be an object."))

        errors: dict = {}

        form = cls.form_class(
            data=cls._form_data(cls.form_class, payload),
            instance=instance if instance is not None else cls.model(),
        )
        header = {}
        if form.is_valid():
            header = dict(form.cleaned_data)
        else:
            _collect(errors, form)

        header.update(cls._clean_extra(payload, errors))

        items = []
        raw_items = payload.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            errors["items"] = [ValidationError(_("Items cannot be empty."), code="required")]
        else:
            for index, raw in enumerate(raw_items):
                prefix = f"items.{index}."
                if not isinstance(raw, dict):
                    errors[f"items.{index}"] = [ValidationError(_("Item must be an object."), code="invalid")]
                    continue
                item_form = cls.item_form_class(data=cls._form_data(cls.item_form_class, raw))
                if item_form.is_valid():
                    items.append(dict(item_form.cleaned_data))
                else:
                    _collect(errors, item_form, prefix)

        if errors:
            raise ValidationError(errors)

        return CleanedDocument(header=header, items=items)

    # ------------------------------------------------------------------
    # Current values, used to merge partial updates
    # ------------------------------------------------------------------
    @classmethod
    def current_payload(cls, document) -> dict:
        payload = model_to_dict(document, fields=cls.form_class._meta.fields)
        payload["items"] = [
            model_to_dict(item, fields=cls.item_form_class._meta.fields)
            for item in document.items.all()
        ]
        return payload

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    @classmethod
    def _write_items(cls, document, items: list) -> None:
        cls.item_model.objects.bulk_create(
            [cls.item_model(**{cls.item_fk: document}, **values) for values in items]
        )

    @classmethod
    def _after_items_written(cls, document) -> None:
        pass

    @staticmethod
    def _apply(document, values: dict) -> None:
        for name, value in values.items():
            setattr(document, name, value)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    @classmethod
    def create(cls, payload: Any, *, actor=None, allocator: Optional[Allocator] = None):
        cleaned = cls.validate(payload)

        allocation = next_number(
            cls.document_type,
            on_date=cleaned.header.get(cls.date_field),
            allocator=allocator,
        )

        document = cls.model(number=allocation.number, scope_key=allocation.scope_key)
        cls._apply(document, cleaned.header)
        if getattr(actor, "is_authenticated", False):
            document.created_by = actor
            document.updated_by = actor

        try:
            with transaction.atomic():
                document.save()
                cls._write_items(document, cleaned.items)
                cls._after_items_written(document)
                log_event(
                    action=AuditLog.Action.CREATE,
                    message=f"{cls.label} {document.display_number} created.",
                    actor=actor,
                    target=document,
                    extra={"number": document.number, "scope_key": document.scope_key},
                )
        except DatabaseError as exc:
            logger.exception(
                "Persisting %s number %s [%s] failed; the number stays consumed",
                cls.document_type,
                allocation.number,
                allocation.scope_key,
            )
            raise PersistError(
                f"Could not save the {cls.label.lower()}, number {allocation.number} was not used.",
                number=allocation.number,
                scope_key=allocation.scope_key,
            ) from exc

        emit(
            DocumentCreated(
                document_type=cls.document_type,
                document_id=document.pk,
                number=document.number,
                scope_key=document.scope_key,
            )
        )
        return document

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    @classmethod
    def update(cls, document, payload: Any, *, actor=None):
        """
        Replace the editable fields and the items of a document.
        Keys missing from `payload` keep their stored value; `number`,
        `scope_key` and `id` never change.
        """
        if not isinstance(payload, dict):
            raise ValidationError(_("Document payload must be an object."))

        merged = cls.current_payload(document)
        merged.update(payload)
        cleaned = cls.validate(merged, instance=document)

        cls._apply(document, cleaned.header)
        if getattr(actor, "is_authenticated", False):
            document.updated_by = actor

        try:
            with transaction.atomic():
                document.save()
                document.items.all().delete()
                cls._write_items(document, cleaned.items)
                cls._after_items_written(document)
                log_event(
                    action=AuditLog.Action.UPDATE,
                    message=f"{cls.label} {document.display_number} updated.",
                    actor=actor,
                    target=document,
                    extra={"fields": sorted(payload.keys())},
                )
        except DatabaseError as exc:
            logger.exception("Updating %s %s failed", cls.document_type, document.pk)
            raise PersistError(f"Could not save the {cls.label.lower()}.") from exc

        return document

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    @classmethod
    @transaction.atomic
    def delete(cls, document, *, actor=None) -> None:
        """
        Hard delete. The counter is not touched, so the number is never reused.
        """
        document_id, number, scope_key = document.pk, document.number, document.scope_key
        log_event(
            action=AuditLog.Action.DELETE,
            message=f"{cls.label} {document.display_number} deleted.",
            actor=actor,
            target=document,
            extra={"number": number, "scope_key": scope_key},
        )
        document.delete()

        transaction.on_commit(
            lambda: emit(
                DocumentDeleted(
                    document_type=cls.document_type,
                    document_id=document_id,
                    number=number,
                    scope_key=scope_key,
                )
            )
        )


# ===================================================================
# Bilty
# ===================================================================

class BiltyService(DocumentService):
    document_type = DocumentType.BILTY
    model = Bilty
    item_model = BiltyItem
    item_fk = "bilty"
    form_class = BiltyForm
    item_form_class = BiltyItemForm
    date_field = "bilty_date"
    label = "Bilty"

    @classmethod
    def _clean_extra(cls, payload: dict, errors: dict) -> dict:
        charges = payload.get("charges")
        if not isinstance(charges, dict):
            errors["charges"] = [ValidationError(_("Charges are required."), code="required")]
            return {}

        if not _is_number(charges.get("grand_total")):
            errors["charges.grand_total"] = [
                ValidationError(_("Grand total must be a number."), code="invalid")
            ]
            return {}

        form = BiltyChargesForm(data=cls._form_data(BiltyChargesForm, charges), instance=Bilty())
        if not form.is_valid():
            _collect(errors, form, "charges.")
            return {}
        return dict(form.cleaned_data)

    @classmethod
    def current_payload(cls, document) -> dict:
        payload = super().current_payload(document)
        payload["charges"] = model_to_dict(document, fields=list(Bilty.CHARGE_FIELDS))
        return payload


# ===================================================================
# Challan
# ===================================================================

class ChallanService(DocumentService):
    document_type = DocumentType.CHALLAN
    model = Challan
    item_model = ChallanItem
    item_fk = "challan"
    form_class = ChallanForm
    item_form_class = ChallanItemForm
    date_field = "date"
    label = "Challan"

    @classmethod
    def _after_items_written(cls, document) -> None:
        document.recompute_totals(save=True)
