"""Availability calculation for catalog items.

Reads are never cached: every call looks at the current reservation
rows. Outside a transaction the answer is advisory only; the booking
handlers repeat the check under an item lock before inserting.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional
from uuid import UUID

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.catalog.models import Item
from shared.domain.value_objects import DateRange

from .domain.inventory import Allocation, Inventory
from .models import Reservation


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_items(item_ids: Iterable) -> dict:
    """Lock the given item rows (sorted by id) and return them keyed by id.

    Must run inside ``transaction.atomic()`` for the row locks to be held
    until commit. Missing ids are simply absent from the result.
    """
    ordered = sorted({str(item_id) for item_id in item_ids})
    queryset = _lock_queryset_if_possible(Item.objects.filter(pk__in=ordered).order_by("pk"))
    return {str(item.pk): item for item in queryset}


def load_inventory(
    item_id,
    buffer_days: int,
    *,
    window: Optional[DateRange] = None,
) -> Inventory:
    """Build the inventory aggregate from the item's blocking reservations.

    With ``window`` only reservations whose buffered range can reach the
    window are loaded; the result is the same for checks inside it.
    """
    queryset = Reservation.objects.blocking().for_item(item_id)
    if window is not None:
        queryset = queryset.filter(
            start_date__lte=window.end_date,
            end_date__gte=window.start_date - timedelta(days=buffer_days),
        )
    allocations = [
        Allocation(reservation_id=reservation_id, dates=DateRange(start, end))
        for reservation_id, start, end in queryset.order_by("start_date").values_list(
            "id", "start_date", "end_date"
        )
    ]
    return Inventory(item_id=item_id, buffer_days=buffer_days, allocations=allocations)


def is_available(
    item_id,
    start_date: date,
    end_date: date,
    *,
    buffer_days: int,
    exclude_reservation_id: Optional[UUID] = None,
) -> bool:
    """True when the item is bookable and no buffered reservation touches the range.

    Raises ValueError when ``start_date`` is after ``end_date``.
    """
    dates = DateRange(start_date, end_date)
    if not Item.objects.bookable().filter(pk=item_id).exists():
        return False
    inventory = load_inventory(item_id, buffer_days, window=dates)
    return inventory.can_allocate(dates, exclude_reservation_id=exclude_reservation_id)


def list_unavailable_ranges(
    item_id,
    *,
    buffer_days: int,
    since: Optional[date] = None,
) -> list[dict[str, date]]:
    """Blocked windows (reservation plus buffer) for calendar hints.

    ``since`` drops windows that ended before that day.
    """
    windows = load_inventory(item_id, buffer_days).blocked_windows()
    if since is not None:
        windows = [window for window in windows if window.end_date >= since]
    return [{"from": window.start_date, "to": window.end_date} for window in windows]
