# core/models/numbering.py
import datetime

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.utils.translation import gettext_lazy as _


class DocumentType(models.TextChoices):
    BILTY = "bilty", _("Bilty (consignment note)")
    CHALLAN = "challan", _("Challan (truck manifest)")


class NumberingScheme(models.Model):
    """
    Numbering configuration per document type.

    Example row:
    - document_type: "challan"
    - reset: "fiscal_year"  -> numbers restart every April, scope "2025-26"
    - start: 1
    - prefix: "CH"          -> printed as "CH/2025-26/17"
    """

    class ResetPolicy(models.TextChoices):
        NEVER = "never", _("Never (one running sequence)")
        YEAR = "year", _("Every calendar year")
        FISCAL_YEAR = "fiscal_year", _("Every fiscal year (April - March)")

    document_type = models.CharField(
        max_length=20,
        choices=DocumentType.choices,
        unique=True,
        verbose_name=_("Document type"),
    )

    reset = models.CharField(
        max_length=20,
        choices=ResetPolicy.choices,
        default=ResetPolicy.NEVER,
        verbose_name=_("Reset policy"),
    )

    start = models.PositiveIntegerField(
        default=1,
        verbose_name=_("First number of a sequence"),
    )

    prefix = models.CharField(
        max_length=20,
        blank=True,
        verbose_name=_("Printed prefix"),
        help_text=_("Optional, e.g. 'GR' or 'CH'. Only used on printed documents."),
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("Updated at"),
    )

    class Meta:
        verbose_name = _("Numbering scheme")
        verbose_name_plural = _("Numbering schemes")

    def __str__(self) -> str:
        return f"{self.document_type} ({self.reset})"

    def clean(self):
        super().clean()
        if self.start < 1:
            raise ValidationError({"start": _("The first number must be at least 1.")})

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------
    def scope_for(self, on_date: datetime.date | None = None) -> str:
        """
        Build the scope key a number belongs to, based on the reset policy.
        """
        if self.reset == self.ResetPolicy.NEVER:
            return ""

        if on_date is None:
            from django.utils import timezone
            on_date = timezone.localdate()

        if self.reset == self.ResetPolicy.YEAR:
            return str(on_date.year)  # "2025"

        # Indian fiscal year starts on 1 April
        first_year = on_date.year if on_date.month >= 4 else on_date.year - 1
        return f"{first_year}-{(first_year + 1) % 100:02d}"  # "2025-26"

    def display_number(self, number: int, scope_key: str = "") -> str:
        parts = [p for p in (self.prefix, scope_key, str(number)) if p]
        return "/".join(parts)

    @classmethod
    def _default_reset(cls) -> str:
        default_reset = getattr(settings, "NUMBERING", {}).get(
            "DEFAULT_RESET", cls.ResetPolicy.NEVER
        )
        if default_reset not in cls.ResetPolicy.values:
            return cls.ResetPolicy.NEVER
        return default_reset

    @classmethod
    def lookup(cls, document_type: str) -> "NumberingScheme":
        """
        Read-only variant of get_for(): a missing row is returned unsaved,
        with the project defaults.
        """
        scheme = cls.objects.filter(document_type=document_type).first()
        if scheme is None:
            scheme = cls(document_type=document_type, reset=cls._default_reset(), start=1)
        return scheme

    @classmethod
    def get_for(cls, document_type: str) -> "NumberingScheme":
        """
        Return the scheme for a document type.
        Missing rows are created with the project defaults on first use.
        """
        try:
            return cls.objects.get(document_type=document_type)
        except cls.DoesNotExist:
            pass

        try:
            with transaction.atomic():
                return cls.objects.create(
                    document_type=document_type,
                    reset=cls._default_reset(),
                    start=1,
                )
        except IntegrityError:
            # Another request created it first
            return cls.objects.get(document_type=document_type)
