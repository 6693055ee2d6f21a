"""
Inventory Aggregate

Consistency boundary for the reservations of ONE item. Every new
reservation is checked against it, and the repository loads it under a
row lock so the check and the insert see the same state.

Availability rule:
    Each blocking reservation occupies [start, end + buffer_days]
    (inclusive). A candidate range is available when it intersects
    none of these windows. The buffer is only ever added after a
    reservation's end, never before its start.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID, uuid4

from shared.domain.base import Aggregate
from shared.domain.value_objects import DateRange


@dataclass
class Allocation:
    """A blocking reservation already holding dates on the item"""
    reservation_id: Optional[UUID]
    dates: DateRange

    def __post_init__(self):
        if not self.dates:
            raise ValueError("Allocation must have dates")

    def blocked_window(self, buffer_days: int) -> DateRange:
        return self.dates.extended_by(buffer_days)


@dataclass(eq=False)
class Inventory(Aggregate):
    """
    Inventory Aggregate Root

    Usage:
        items = reservation_repo.lock_items([item_id])
        inventory = reservation_repo.load_inventory(item_id, buffer_days, window=dates)
        if inventory.can_allocate(dates):
            allocation = inventory.allocate(dates)
    """

    item_id: UUID = None
    buffer_days: int = 1
    allocations: List[Allocation] = field(default_factory=list)

    def __post_init__(self):
        if self.item_id is None:
            raise ValueError("Inventory requires an item id")
        if self.buffer_days < 0:
            raise ValueError("Buffer days cannot be negative")

    def blocked_windows(self) -> List[DateRange]:
        """Buffer-extended windows, ordered by start date"""
        return sorted(
            (a.blocked_window(self.buffer_days) for a in self.allocations),
            key=lambda window: (window.start_date, window.end_date),
        )

    def conflicts_with(self, dates: DateRange, exclude_reservation_id: Optional[UUID] = None) -> List[Allocation]:
        return [
            allocation for allocation in self.allocations
            if exclude_reservation_id is None or allocation.reservation_id != exclude_reservation_id
            if allocation.blocked_window(self.buffer_days).overlaps_with(dates)
        ]

    def can_allocate(self, dates: DateRange, exclude_reservation_id: Optional[UUID] = None) -> bool:
        return not self.conflicts_with(dates, exclude_reservation_id)

    def allocate(self, dates: DateRange, reservation_id: Optional[UUID] = None) -> Allocation:
        """
        Reserve ``dates`` on this item

        Raises:
            ValueError: if the dates intersect an existing blocked window
        """
        overlapping = self.conflicts_with(dates)
        if overlapping:
            raise ValueError(
                f"Dates {dates} are not available for item {self.item_id}; "
                f"{len(overlapping)} blocking reservation(s) overlap"
            )

        allocation = Allocation(reservation_id=reservation_id or uuid4(), dates=dates)
        self.allocations.append(allocation)

        from apps.bookings.domain.events import InventoryAllocated

        self.add_event(InventoryAllocated(
            aggregate_id=self.id,
            item_id=self.item_id,
            reservation_id=allocation.reservation_id,
            dates=dates,
        ))
        return allocation

    def __str__(self):
        return f"Inventory(item={self.item_id}, allocations={len(self.allocations)})"
