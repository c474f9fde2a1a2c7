from django.contrib import admin

from .models import AuditLog, DocumentCounter, NumberingScheme


@admin.register(NumberingScheme)
class NumberingSchemeAdmin(admin.ModelAdmin):
    list_display = ("document_type", "reset", "start", "prefix", "updated_at")


@admin.register(DocumentCounter)
class DocumentCounterAdmin(admin.ModelAdmin):
    list_display = ("document_type", "scope_key", "current_value", "updated_at")
    list_filter = ("document_type",)
    # Counters are moved only by the allocator
    readonly_fields = ("document_type", "scope_key", "current_value", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "actor", "target_content_type", "target_object_id", "message")
    list_filter = ("action", "target_content_type")
    search_fields = ("message", "target_object_id")
