from django.contrib import admin

from .forms import PartyForm
from .models import Party


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    form = PartyForm
    list_display = ("name", "gstin", "party_type", "phone", "is_active")
    list_filter = ("party_type", "is_active")
    search_fields = ("name", "gstin", "contact_person", "phone")
