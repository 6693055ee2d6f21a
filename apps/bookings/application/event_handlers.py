"""
Booking Event Handlers

Subscribers run after the reservation transaction has committed.
Customer notification is driven by the staff approval workflow, so the
engine itself only leaves an audit trail here.
"""

import structlog

from shared.application.message_bus import message_bus
from apps.bookings.domain.events import InventoryAllocated, ReservationsRequested

logger = structlog.get_logger(__name__)


def log_reservations_requested(event: ReservationsRequested):
    logger.info("reservations_requested", **event.to_dict())


def log_inventory_allocated(event: InventoryAllocated):
    logger.debug(
        "inventory_allocated",
        item_id=str(event.item_id),
        reservation_id=str(event.reservation_id),
        dates=str(event.dates),
    )


def register_handlers(bus=message_bus):
    bus.register_event_handler(ReservationsRequested, log_reservations_requested)
    bus.register_event_handler(InventoryAllocated, log_inventory_allocated)
