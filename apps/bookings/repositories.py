"""Persistence for reservations.

Handlers talk to this repository instead of the ORM so the locking and
insert steps stay together and can be replaced in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from shared.domain.value_objects import DateRange

from . import services
from .domain.inventory import Inventory
from .models import EmergencyBackup, Reservation, SystemErrorRecord

logger = logging.getLogger(__name__)


@dataclass
class NewReservation:
    reservation_id: UUID
    item_id: UUID
    customer_id: UUID
    dates: DateRange
    group_id: Optional[UUID] = None
    fingerprint: Optional[str] = None
    dispatch_notes: Optional[str] = None
    address: Optional[dict] = None


class DjangoReservationRepository:

    def lock_items(self, item_ids: Iterable[UUID]) -> dict:
        return services.lock_items(item_ids)

    def load_inventory(self, item_id: UUID, buffer_days: int, window: Optional[DateRange] = None) -> Inventory:
        return services.load_inventory(item_id, buffer_days, window=window)

    def is_available(self, item_id: UUID, dates: DateRange, buffer_days: int) -> bool:
        return services.is_available(item_id, dates.start_date, dates.end_date, buffer_days=buffer_days)

    def add(self, reservations: Sequence[NewReservation]) -> List[UUID]:
        rows = [
            Reservation(
                id=new.reservation_id,
                item_id=new.item_id,
                customer_id=new.customer_id,
                start_date=new.dates.start_date,
                end_date=new.dates.end_date,
                status=Reservation.Status.PENDING,
                group_id=new.group_id,
                fingerprint=new.fingerprint,
                dispatch_notes=new.dispatch_notes,
                **(new.address or {}),
            )
            for new in reservations
        ]
        Reservation.objects.bulk_create(rows)
        return [row.id for row in rows]

    def find_by_fingerprints(self, fingerprints: Sequence[str]) -> Optional[tuple[Optional[UUID], List[UUID]]]:
        """Group id and reservation ids already committed under these fingerprints."""
        rows = list(
            Reservation.objects.filter(fingerprint__in=list(fingerprints))
            .order_by("created_at", "id")
            .values_list("id", "group_id")
        )
        if not rows:
            return None
        return rows[0][1], [reservation_id for reservation_id, _ in rows]

    def save_emergency_backup(self, fingerprint: str, payload: dict, error: str) -> Optional[UUID]:
        """Store the failed request; returns None when even that fails."""
        try:
            backup = EmergencyBackup.objects.create(fingerprint=fingerprint, payload=payload, last_error=error)
            SystemErrorRecord.objects.create(
                error_type="REQUEST_SUBMISSION_FAILED",
                payload={"error": error, "backup_id": str(backup.id), "data": payload},
            )
        except Exception:
            logger.exception("Emergency backup failed for request %s", fingerprint)
            return None
        return backup.id
