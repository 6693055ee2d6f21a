"""Reservation models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ReservationQuerySet(models.QuerySet):
    def blocking(self):
        return self.filter(status__in=Reservation.BLOCKING_STATUSES)

    def for_item(self, item_id):
        return self.filter(item_id=item_id)


class Reservation(models.Model):
    """A booking of one item for an inclusive date range."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ACTIVE = "active", _("Active")
        RETURNED = "returned", _("Returned")
        CANCELLED = "cancelled", _("Cancelled")
        ARCHIVED = "archived", _("Archived")

    # Statuses whose date range counts against availability.
    BLOCKING_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.ACTIVE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(
        "catalog.Item",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    customer = models.ForeignKey(
        "customers.Profile",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    start_date = models.DateField()
    end_date = models.DateField(help_text=_("Inclusive."))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    group_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text=_("Shared by reservations submitted together."),
    )
    fingerprint = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text=_("Client request id plus item id; makes resubmission idempotent."),
    )
    country = models.CharField(max_length=100, blank=True)
    city_region = models.CharField(max_length=100, blank=True)
    address_line1 = models.CharField(max_length=255, blank=True)
    address_line2 = models.CharField(max_length=255, blank=True)
    postcode = models.CharField(max_length=20, blank=True)
    dispatch_notes = models.TextField(null=True, blank=True)
    dispatch_image_paths = models.JSONField(default=list, blank=True)
    return_notes = models.TextField(null=True, blank=True)
    return_image_paths = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="reservation_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["item", "status", "start_date", "end_date"], name="reservation_item_window_idx"),
            models.Index(fields=["status"], name="reservation_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.pk} of {self.item_id} ({self.start_date} - {self.end_date})"

    @property
    def is_blocking(self) -> bool:
        return self.status in self.BLOCKING_STATUSES


class EmergencyBackup(models.Model):
    """Payload of a bulk request whose reservations could not be written."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONVERTED = "converted", _("Converted")
        FAILED = "failed", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fingerprint = models.CharField(max_length=255, db_index=True)
    payload = models.JSONField(help_text=_("Original request, password redacted."))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    group_id = models.UUIDField(null=True, blank=True)
    last_error = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    converted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Emergency backup")
        verbose_name_plural = _("Emergency backups")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Backup {self.fingerprint} ({self.status})"


class SystemErrorRecord(models.Model):
    """Infrastructure failure kept for staff follow-up."""

    error_type = models.CharField(max_length=64)
    payload = models.JSONField(default=dict)
    resolved = models.BooleanField(default=False)
    retry_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("System error")
        verbose_name_plural = _("System errors")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.error_type} at {self.created_at:%Y-%m-%d %H:%M}"
