"""URL routing for the booking engine."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import (
    BookingCreateView,
    BulkBookingCreateView,
    ItemAvailabilityView,
    ItemUnavailableRangesView,
)

urlpatterns = [
    path("", BookingCreateView.as_view(), name="booking-create"),
    path("bulk/", BulkBookingCreateView.as_view(), name="booking-bulk-create"),
    path(
        "items/<uuid:item_id>/availability/",
        ItemAvailabilityView.as_view(),
        name="item-availability",
    ),
    path(
        "items/<uuid:item_id>/unavailable-ranges/",
        ItemUnavailableRangesView.as_view(),
        name="item-unavailable-ranges",
    ),
]
