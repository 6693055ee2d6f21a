"""Admin registration for application settings."""

from __future__ import annotations

from django.contrib import admin

from .models import AppSettings


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = ("__str__", "turnaround_buffer", "updated_at")
    readonly_fields = ("updated_at",)

    def has_add_permission(self, request):  # type: ignore
        return not AppSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
