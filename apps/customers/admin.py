"""Admin registration for customers."""

from __future__ import annotations

from django.contrib import admin

from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("email", "full_name", "company_name", "organization_domain", "role", "created_at")
    list_filter = ("role", "organization_domain")
    search_fields = ("email", "full_name", "company_name")
    readonly_fields = ("id", "created_at")
