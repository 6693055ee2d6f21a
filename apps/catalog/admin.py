"""Admin registration for catalog items."""

from __future__ import annotations

from django.contrib import admin

from .models import Item


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "category", "rental_price", "status", "created_at")
    list_filter = ("status", "category")
    search_fields = ("name", "sku")
    readonly_fields = ("id", "created_at", "updated_at")
