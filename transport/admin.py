from django.contrib import admin

from .models import Bilty, BiltyItem, Challan, ChallanItem


class BiltyItemInline(admin.TabularInline):
    model = BiltyItem
    extra = 0


class ChallanItemInline(admin.TabularInline):
    model = ChallanItem
    extra = 0


@admin.register(Bilty)
class BiltyAdmin(admin.ModelAdmin):
    list_display = (
        "number",
        "scope_key",
        "bilty_date",
        "consignor_name",
        "consignee_name",
        "from_city",
        "to_city",
        "grand_total",
        "status",
    )
    list_filter = ("status", "bilty_date")
    search_fields = ("consignor_name", "consignee_name", "truck_no", "consignor_gstin", "consignee_gstin")
    readonly_fields = ("number", "scope_key", "created_at", "updated_at", "created_by", "updated_by")
    inlines = [BiltyItemInline]

    # New bilties need a number from the allocator; create them through the API
    def has_add_permission(self, request):
        return False


@admin.register(Challan)
class ChallanAdmin(admin.ModelAdmin):
    list_display = ("number", "scope_key", "date", "truck_no", "truck_owner_name", "total_freight")
    list_filter = ("date", "cash_or_due")
    search_fields = ("truck_no", "truck_owner_name", "transport_name")
    readonly_fields = ("number", "scope_key", "total_freight", "total_commission", "created_at", "updated_at")
    inlines = [ChallanItemInline]

    def has_add_permission(self, request):
        return False
