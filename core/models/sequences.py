# core/models/sequences.py
from django.db import models
from django.utils.translation import gettext_lazy as _

from .numbering import DocumentType


class DocumentCounter(models.Model):
    """
    Stores the last number handed out for a document type within a scope.

    Example:
    - document_type: "bilty"
    - scope_key: "" (reset="never") or "2025-26" (reset="fiscal_year")
    - current_value: 42 -> next will be 43

    Rows are only ever changed through a conditional update
    (see core.services.numbering.CounterStore), and never deleted.
    """

    document_type = models.CharField(
        max_length=20,
        choices=DocumentType.choices,
        verbose_name=_("Document type"),
    )
    scope_key = models.CharField(
        max_length=16,
        blank=True,
        default="",
        verbose_name=_("Scope"),
    )
    current_value = models.PositiveBigIntegerField(
        default=0,
        verbose_name=_("Last issued number"),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Document counter")
        verbose_name_plural = _("Document counters")
        constraints = [
            models.UniqueConstraint(
                fields=["document_type", "scope_key"],
                name="uniq_counter_per_type_scope",
            ),
        ]

    def __str__(self) -> str:
        if self.scope_key:
            return f"{self.document_type} [{self.scope_key}] → {self.current_value}"
        return f"{self.document_type} → {self.current_value}"
