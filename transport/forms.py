# transport/forms.py
from decimal import Decimal

from django import forms
from django.utils.translation import gettext_lazy as _

from .models import Bilty, BiltyItem, Challan, ChallanItem, DECIMAL_ZERO


class DateInput(forms.DateInput):
    """HTML5 date input widget."""
    input_type = "date"


class OptionalDecimalsMixin:
    """
    Decimal fields listed in `optional_decimals` may be left out of a payload;
    they are then stored as zero.
    """

    optional_decimals: tuple = ()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in self.optional_decimals:
            if name in self.fields:
                self.fields[name].required = False

    def clean(self):
        cleaned_data = super().clean()
        for name in self.optional_decimals:
            if name in self.fields and cleaned_data.get(name) is None and name not in self.errors:
                cleaned_data[name] = DECIMAL_ZERO
        return cleaned_data


# ===================================================================
# Bilty
# ===================================================================

class BiltyForm(forms.ModelForm):
    """
    Bilty header. Charges and items are validated by their own forms.
    """

    class Meta:
        model = Bilty
        fields = [
            "bilty_date",
            "truck_no",
            "from_city",
            "to_city",
            "consignor_name",
            "consignor_gstin",
            "consignee_name",
            "consignee_gstin",
            "transporter_id",
            "invoice_no",
            "eway_no",
            "gross_value",
            "special_instruction",
            "total_packages",
            "paid_by",
            "status",
        ]
        widgets = {
            "bilty_date": DateInput(attrs={"class": "form-control"}),
            "special_instruction": forms.Textarea(attrs={"class": "form-control", "rows": 2}),
        }
        error_messages = {
            "bilty_date": {"required": _("Bilty date is required.")},
            "truck_no": {"required": _("Truck number is required.")},
            "from_city": {"required": _("Origin is required.")},
            "to_city": {"required": _("Destination is required.")},
            "consignor_name": {"required": _("Consignor is required.")},
            "consignee_name": {"required": _("Consignee is required.")},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["status"].required = False

    def clean_status(self):
        return self.cleaned_data.get("status") or self.instance.status or Bilty.Status.PENDING

    def clean_truck_no(self):
        return (self.cleaned_data.get("truck_no") or "").strip().upper()


class BiltyChargesForm(OptionalDecimalsMixin, forms.ModelForm):
    """
    The charges block of a bilty. Only the grand total is mandatory;
    a missing sub total is freight + P.F. + L.C. + B.C.
    """

    optional_decimals = ("freight", "pf", "lc", "bc", "total", "cgst", "sgst", "igst", "advance")

    class Meta:
        model = Bilty
        fields = list(Bilty.CHARGE_FIELDS)
        error_messages = {
            "grand_total": {"required": _("Grand total is required.")},
        }

    def clean(self):
        # Detect a missing total before the mixin fills it with zero
        total_given = self.data.get("total") not in (None, "")
        cleaned_data = super().clean()
        if not total_given and not self.errors:
            cleaned_data["total"] = sum(
                (cleaned_data.get(f) or DECIMAL_ZERO for f in ("freight", "pf", "lc", "bc")),
                DECIMAL_ZERO,
            )
        return cleaned_data


class BiltyItemForm(OptionalDecimalsMixin, forms.ModelForm):

    optional_decimals = ("weight", "charged_weight")

    class Meta:
        model = BiltyItem
        fields = [
            "quantity",
            "goods_description",
            "hsn_code",
            "weight",
            "charged_weight",
            "rate",
        ]
        error_messages = {
            "goods_description": {"required": _("Description of goods is required.")},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["quantity"].required = False

    def clean_quantity(self):
        qty = self.cleaned_data.get("quantity")
        if qty is None:
            return Decimal("1.000")
        if qty <= 0:
            raise forms.ValidationError(_("Quantity must be greater than zero."))
        return qty


# ===================================================================
# Challan
# ===================================================================

class ChallanForm(OptionalDecimalsMixin, forms.ModelForm):

    optional_decimals = ("commission",)

    class Meta:
        model = Challan
        fields = [
            "date",
            "truck_no",
            "truck_owner_name",
            "from_city",
            "to_city",
            "license_no",
            "cash_or_due",
            "transport_name",
            "commission",
            "payment_mode",
        ]
        widgets = {
            "date": DateInput(attrs={"class": "form-control"}),
        }
        error_messages = {
            "date": {"required": _("Date is required.")},
            "truck_no": {"required": _("Truck number is required.")},
            "truck_owner_name": {"required": _("Truck owner is required.")},
            "from_city": {"required": _("Origin is required.")},
            "to_city": {"required": _("Destination is required.")},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["cash_or_due"].required = False

    def clean_cash_or_due(self):
        return self.cleaned_data.get("cash_or_due") or Challan.Settlement.CASH

    def clean_payment_mode(self):
        return self.cleaned_data.get("payment_mode") or "Cash"

    def clean_truck_no(self):
        return (self.cleaned_data.get("truck_no") or "").strip().upper()


class ChallanItemForm(OptionalDecimalsMixin, forms.ModelForm):

    optional_decimals = ("freight", "weight", "rate", "total")

    class Meta:
        model = ChallanItem
        fields = ["bilty_no", "freight", "weight", "rate", "total"]
        error_messages = {
            "bilty_no": {"required": _("Bilty number is required.")},
        }

    def clean(self):
        total_given = self.data.get("total") not in (None, "")
        cleaned_data = super().clean()
        if not total_given and not self.errors:
            weight = cleaned_data.get("weight") or DECIMAL_ZERO
            rate = cleaned_data.get("rate") or DECIMAL_ZERO
            cleaned_data["total"] = (weight * rate).quantize(Decimal("0.01"))
        return cleaned_data
