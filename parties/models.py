# parties/models.py
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from .managers import PartyManager
from .validators import validate_gstin


class Party(BaseModel):
    """
    A customer of the carrier: somebody who sends (consignor) or receives
    (consignee) goods, or both.

    GSTIN uniqueness is not enforced: the same registration can appear twice
    (e.g. two branches entered separately). Use Party.objects.with_gstin()
    to spot duplicates.
    """

    class PartyType(models.TextChoices):
        CONSIGNOR = "consignor", _("Consignor")
        CONSIGNEE = "consignee", _("Consignee")
        BOTH = "both", _("Consignor & consignee")
        OTHER = "other", _("Other")

    name = models.CharField(
        max_length=255,
        verbose_name=_("Name"),
    )

    gstin = models.CharField(
        max_length=15,
        validators=[validate_gstin],
        db_index=True,
        verbose_name=_("GSTIN"),
        help_text=_("15 characters, e.g. 27AAPFU0939F1ZV."),
    )

    party_type = models.CharField(
        max_length=20,
        choices=PartyType.choices,
        default=PartyType.BOTH,
        verbose_name=_("Type"),
    )

    # --------- contact details ---------
    address = models.TextField(blank=True, verbose_name=_("Address"))
    contact_person = models.CharField(max_length=255, blank=True, verbose_name=_("Contact person"))
    phone = models.CharField(max_length=50, blank=True, verbose_name=_("Phone"))
    email = models.EmailField(blank=True, verbose_name=_("Email"))

    is_active = models.BooleanField(default=True, verbose_name=_("Active"))

    objects = PartyManager()

    class Meta:
        ordering = ("name", "id")
        verbose_name = _("Party")
        verbose_name_plural = _("Parties")

    def __str__(self) -> str:
        return f"{self.name} ({self.gstin})"

    @property
    def state_code(self) -> str:
        """
        First two digits of the GSTIN: the GST state code (e.g. "08" for Rajasthan).
        """
        return self.gstin[:2] if self.gstin else ""

    @property
    def pan(self) -> str:
        return self.gstin[2:12] if self.gstin else ""
