# transport/models.py
from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, DocumentType, NumberingScheme
from parties.validators import validate_gstin

from .managers import BiltyManager, ChallanManager

# Decimal constants
DECIMAL_ZERO = Decimal("0.00")
WEIGHT_ZERO = Decimal("0.000")


def money_field(verbose_name, **kwargs):
    kwargs.setdefault("default", DECIMAL_ZERO)
    return models.DecimalField(
        max_digits=14,
        decimal_places=2,
        verbose_name=verbose_name,
        **kwargs,
    )


def weight_field(verbose_name, **kwargs):
    kwargs.setdefault("default", WEIGHT_ZERO)
    return models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=verbose_name,
        **kwargs,
    )


class NumberedDocument(BaseModel):
    """
    Common part of bilties and challans.

    `number` is allocated once by core.services.numbering when the document
    is created and is never edited afterwards. (number, scope_key) is unique
    per document type.
    """

    document_type: str = ""

    number = models.PositiveBigIntegerField(
        editable=False,
        db_index=True,
        verbose_name=_("Number"),
    )
    scope_key = models.CharField(
        max_length=16,
        blank=True,
        default="",
        editable=False,
        verbose_name=_("Numbering scope"),
    )

    truck_no = models.CharField(max_length=20, verbose_name=_("Truck no."))
    from_city = models.CharField(max_length=100, verbose_name=_("From"))
    to_city = models.CharField(max_length=100, verbose_name=_("To"))

    class Meta:
        abstract = True

    def format_number(self, scheme: NumberingScheme | None = None) -> str:
        """
        Printed number. Pass `scheme` when formatting many documents of one type.
        """
        if self.number is None:
            return f"{self.document_type.upper()}-NEW"
        if scheme is None:
            scheme = NumberingScheme.lookup(self.document_type)
        return scheme.display_number(self.number, self.scope_key)

    @property
    def display_number(self) -> str:
        return self.format_number()


# ===================================================================
# Bilty (consignment note)
# ===================================================================

class Bilty(NumberedDocument):

    document_type = DocumentType.BILTY

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        IN_TRANSIT = "in_transit", _("In transit")
        DELIVERED = "delivered", _("Delivered")
        CANCELLED = "cancelled", _("Cancelled")

    bilty_date = models.DateField(
        default=timezone.localdate,
        db_index=True,
        verbose_name=_("Bilty date"),
    )

    # ========== Parties ==========
    consignor_name = models.CharField(max_length=255, verbose_name=_("Consignor"))
    consignor_gstin = models.CharField(
        max_length=15,
        blank=True,
        validators=[validate_gstin],
        verbose_name=_("Consignor GSTIN"),
    )
    consignee_name = models.CharField(max_length=255, verbose_name=_("Consignee"))
    consignee_gstin = models.CharField(
        max_length=15,
        blank=True,
        validators=[validate_gstin],
        verbose_name=_("Consignee GSTIN"),
    )

    # ========== Shipment references ==========
    transporter_id = models.CharField(max_length=50, blank=True, verbose_name=_("Transporter id"))
    invoice_no = models.CharField(max_length=50, blank=True, verbose_name=_("Invoice no."))
    eway_no = models.CharField(max_length=50, blank=True, verbose_name=_("E-way bill no."))
    gross_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Goods value"),
    )
    special_instruction = models.TextField(blank=True, verbose_name=_("Special instruction"))
    total_packages = models.CharField(max_length=50, blank=True, verbose_name=_("Total packages"))
    paid_by = models.CharField(max_length=50, blank=True, verbose_name=_("Paid by"))

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        verbose_name=_("Status"),
    )

    # ========== Charges ==========
    freight = money_field(_("Freight"))
    pf = money_field(_("P.F."))
    lc = money_field(_("L.C."))
    bc = money_field(_("B.C."))
    total = money_field(_("Sub total"))
    cgst = money_field(_("CGST"))
    sgst = money_field(_("SGST"))
    igst = money_field(_("IGST"))
    advance = money_field(_("Advance"))
    grand_total = money_field(_("Grand total"))

    objects = BiltyManager()

    CHARGE_FIELDS = (
        "freight", "pf", "lc", "bc", "total",
        "cgst", "sgst", "igst", "advance", "grand_total",
    )

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name = _("Bilty")
        verbose_name_plural = _("Bilties")
        constraints = [
            models.UniqueConstraint(
                fields=["number", "scope_key"],
                name="uniq_bilty_number_per_scope",
            ),
        ]

    def __str__(self) -> str:
        return f"Bilty {self.display_number} - {self.consignor_name} → {self.consignee_name}"

    @property
    def charges(self) -> dict:
        return {name: getattr(self, name) for name in self.CHARGE_FIELDS}

    @property
    def total_gst(self) -> Decimal:
        return (self.cgst or DECIMAL_ZERO) + (self.sgst or DECIMAL_ZERO) + (self.igst or DECIMAL_ZERO)

    def compute_sub_total(self) -> Decimal:
        return sum(
            (getattr(self, f) or DECIMAL_ZERO for f in ("freight", "pf", "lc", "bc")),
            DECIMAL_ZERO,
        )

    def compute_grand_total(self) -> Decimal:
        """
        Sub total + GST - advance, the way the booking form computes it.
        """
        return self.compute_sub_total() + self.total_gst - (self.advance or DECIMAL_ZERO)


class BiltyItem(models.Model):
    bilty = models.ForeignKey(
        Bilty,
        on_delete=models.CASCADE,
        related_name="items",
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("1.000"),
        verbose_name=_("Quantity"),
    )
    goods_description = models.CharField(max_length=255, verbose_name=_("Description of goods"))
    hsn_code = models.CharField(max_length=20, blank=True, verbose_name=_("HSN code"))
    weight = weight_field(_("Actual weight"))
    charged_weight = weight_field(_("Charged weight"))
    rate = models.CharField(max_length=50, blank=True, verbose_name=_("Rate"))

    class Meta:
        ordering = ("id",)
        verbose_name = _("Bilty item")

    def __str__(self) -> str:
        return f"{self.goods_description} x {self.quantity}"


# ===================================================================
# Challan (truck manifest)
# ===================================================================

class Challan(NumberedDocument):

    document_type = DocumentType.CHALLAN

    class Settlement(models.TextChoices):
        CASH = "cash", _("Cash")
        DUE = "due", _("Due")

    date = models.DateField(
        default=timezone.localdate,
        db_index=True,
        verbose_name=_("Date"),
    )
    truck_owner_name = models.CharField(max_length=255, verbose_name=_("Truck owner"))
    license_no = models.CharField(max_length=50, blank=True, verbose_name=_("Driver licence no."))
    cash_or_due = models.CharField(
        max_length=10,
        choices=Settlement.choices,
        default=Settlement.CASH,
        verbose_name=_("Cash / due"),
    )
    transport_name = models.CharField(max_length=255, blank=True, verbose_name=_("Transport"))
    commission = money_field(_("Commission"))
    payment_mode = models.CharField(max_length=50, blank=True, default="Cash", verbose_name=_("Payment mode"))

    total_freight = money_field(_("Total freight"))
    total_commission = money_field(_("Total commission"))

    objects = ChallanManager()

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name = _("Challan")
        verbose_name_plural = _("Challans")
        constraints = [
            models.UniqueConstraint(
                fields=["number", "scope_key"],
                name="uniq_challan_number_per_scope",
            ),
        ]

    def __str__(self) -> str:
        return f"Challan {self.display_number} - {self.truck_no}"

    def recompute_totals(self, save: bool = True) -> None:
        """
        Total freight is the sum of the item totals; the commission is carried over.
        """
        agg = self.items.aggregate(s=models.Sum("total"))
        self.total_freight = agg.get("s") or DECIMAL_ZERO
        self.total_commission = self.commission or DECIMAL_ZERO

        if save:
            self.save(update_fields=["total_freight", "total_commission", "updated_at"])


class ChallanItem(models.Model):
    challan = models.ForeignKey(
        Challan,
        on_delete=models.CASCADE,
        related_name="items",
    )
    bilty_no = models.CharField(max_length=30, verbose_name=_("Bilty no."))
    freight = money_field(_("Freight"))
    weight = weight_field(_("Weight"))
    rate = money_field(_("Rate"))
    total = money_field(_("Total"))

    class Meta:
        ordering = ("id",)
        verbose_name = _("Challan item")

    def __str__(self) -> str:
        return f"{self.challan_id} / bilty {self.bilty_no}"

    def compute_total(self) -> Decimal:
        return ((self.weight or WEIGHT_ZERO) * (self.rate or DECIMAL_ZERO)).quantize(Decimal("0.01"))

    def save(self, *args, **kwargs):
        # Rows entered without a total are priced as weight x rate
        if not self.total:
            self.total = self.compute_total()
        super().save(*args, **kwargs)
