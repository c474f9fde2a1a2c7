# parties/forms.py
from django import forms
from django.utils.translation import gettext_lazy as _

from .models import Party


class PartyForm(forms.ModelForm):
    """
    Validates party payloads coming from the JSON API and the admin.

    Only `name` and `gstin` are required; `party_type` falls back to "both".
    """

    class Meta:
        model = Party
        fields = [
            "name",
            "gstin",
            "party_type",
            "address",
            "contact_person",
            "phone",
            "email",
            "is_active",
        ]
        error_messages = {
            "name": {"required": _("Name is required.")},
            "gstin": {"required": _("GSTIN is required.")},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["party_type"].required = False

    def clean_party_type(self):
        return self.cleaned_data.get("party_type") or Party.PartyType.BOTH

    def clean_is_active(self):
        # Missing key in a JSON payload means "leave it active"
        if "is_active" not in self.data:
            return self.instance.is_active if self.instance.pk else True
        return self.cleaned_data.get("is_active")
