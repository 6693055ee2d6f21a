"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from .application.command_handlers import CreateBulkBookingCommand, CreateBulkBookingHandler
from .models import EmergencyBackup, SystemErrorRecord

logger = logging.getLogger(__name__)

_COMMAND_FIELDS = {
    "item_ids",
    "email",
    "full_name",
    "start_date",
    "end_date",
    "company_name",
    "notes",
    "country",
    "city_region",
    "address_line1",
    "address_line2",
    "postcode",
    "fingerprint",
}


def command_from_backup(backup: EmergencyBackup) -> CreateBulkBookingCommand:
    """Rebuild the bulk command stored in a backup.

    The stored password is redacted, so the access gate is skipped: a
    replay is a staff action on a request that already passed it.
    """
    data = {key: value for key, value in (backup.payload or {}).items() if key in _COMMAND_FIELDS}
    data.setdefault("fingerprint", backup.fingerprint)
    data.setdefault("item_ids", [])
    for key in ("email", "full_name", "start_date", "end_date"):
        data.setdefault(key, "")
    return CreateBulkBookingCommand(**data, from_backup=True)


@shared_task(name="bookings.replay_emergency_backup")
def replay_emergency_backup(backup_id: str) -> dict:
    """Turn a stored request into reservations.

    Returns ``{"status": ..., "group_id": ..., "error": ...}``. A backup
    that was already converted is left untouched.
    """
    try:
        backup = EmergencyBackup.objects.get(pk=backup_id)
    except EmergencyBackup.DoesNotExist:
        logger.warning("Emergency backup %s not found", backup_id)
        return {"status": "missing", "group_id": None, "error": None}

    if backup.status == EmergencyBackup.Status.CONVERTED:
        return {"status": backup.status, "group_id": str(backup.group_id), "error": None}

    result = CreateBulkBookingHandler().handle(command_from_backup(backup))

    with transaction.atomic():
        if result.success:
            backup.status = EmergencyBackup.Status.CONVERTED
            backup.group_id = result.group_id
            backup.converted_at = timezone.now()
            backup.last_error = ""
            SystemErrorRecord.objects.filter(
                error_type="REQUEST_SUBMISSION_FAILED",
                resolved=False,
                payload__backup_id=str(backup.pk),
            ).update(resolved=True)
        else:
            backup.status = EmergencyBackup.Status.FAILED
            backup.last_error = result.error.value
            SystemErrorRecord.objects.filter(
                error_type="REQUEST_SUBMISSION_FAILED",
                resolved=False,
                payload__backup_id=str(backup.pk),
            ).update(retry_count=F("retry_count") + 1)
        backup.save(update_fields=["status", "group_id", "converted_at", "last_error"])

    logger.info("Replayed emergency backup %s: %s", backup.pk, backup.status)
    return {
        "status": backup.status,
        "group_id": str(backup.group_id) if backup.group_id else None,
        "error": backup.last_error or None,
    }
