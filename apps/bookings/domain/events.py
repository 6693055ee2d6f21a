"""
Booking Domain Events

Published after the reservation transaction commits.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass
class InventoryAllocated(DomainEvent):
    """Dates were reserved on one item"""
    item_id: UUID = None
    reservation_id: UUID = None
    dates: DateRange = None


@dataclass
class ReservationsRequested(DomainEvent):
    """
    Event: a customer submitted a booking that was committed

    One event per request; a single-item booking has no group id.
    Approval, invoicing and email are triggered later by staff, not here.
    """
    customer_id: UUID = None
    dates: DateRange = None
    reservation_ids: List[UUID] = field(default_factory=list)
    item_ids: List[UUID] = field(default_factory=list)
    group_id: Optional[UUID] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'customer_id': str(self.customer_id),
            'start_date': self.dates.start_date.isoformat() if self.dates else None,
            'end_date': self.dates.end_date.isoformat() if self.dates else None,
            'reservation_ids': [str(r) for r in self.reservation_ids],
            'item_ids': [str(i) for i in self.item_ids],
            'group_id': str(self.group_id) if self.group_id else None,
        })
        return data
