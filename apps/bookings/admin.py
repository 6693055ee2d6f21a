"""Admin registration for reservations and failed-request records."""

from __future__ import annotations

from django.contrib import admin

from .models import EmergencyBackup, Reservation, SystemErrorRecord
from .tasks import replay_emergency_backup


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "item",
        "customer",
        "status",
        "start_date",
        "end_date",
        "group_id",
        "created_at",
    )
    list_filter = ("status", "start_date", "end_date")
    search_fields = ("item__name", "item__sku", "customer__email", "fingerprint")
    readonly_fields = ("id", "group_id", "fingerprint", "created_at", "updated_at")
    list_select_related = ("item", "customer")


@admin.register(EmergencyBackup)
class EmergencyBackupAdmin(admin.ModelAdmin):
    list_display = ("fingerprint", "status", "last_error", "group_id", "created_at", "converted_at")
    list_filter = ("status",)
    search_fields = ("fingerprint",)
    readonly_fields = ("id", "fingerprint", "payload", "group_id", "created_at", "converted_at")
    actions = ["replay_selected"]

    @admin.action(description="Replay selected requests")
    def replay_selected(self, request, queryset):
        queued = 0
        for backup in queryset.exclude(status=EmergencyBackup.Status.CONVERTED):
            replay_emergency_backup.delay(str(backup.pk))
            queued += 1
        self.message_user(request, f"Queued {queued} request(s) for replay.")


@admin.register(SystemErrorRecord)
class SystemErrorRecordAdmin(admin.ModelAdmin):
    list_display = ("error_type", "resolved", "retry_count", "created_at")
    list_filter = ("error_type", "resolved")
    readonly_fields = ("error_type", "payload", "retry_count", "created_at")
