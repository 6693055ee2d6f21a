"""Read-only settings access for the booking engine.

Handlers never touch ``AppSettings`` directly: they receive a provider and
take one ``SettingsSnapshot`` per request, so a test can substitute fixed
values with ``StaticSettingsProvider``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from django.conf import settings as django_settings  # type: ignore
from django.db import DatabaseError  # type: ignore

from .models import AppSettings

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_DAYS = 1


class SettingsUnavailable(Exception):
    """The settings store could not be read."""


def default_buffer_days() -> int:
    return max(int(getattr(django_settings, "BOOKING_DEFAULT_BUFFER_DAYS", DEFAULT_BUFFER_DAYS)), 0)


@dataclass(frozen=True)
class SettingsSnapshot:
    booking_password: Optional[str] = None
    turnaround_buffer_days: int = DEFAULT_BUFFER_DAYS

    @property
    def password_required(self) -> bool:
        return bool(self.booking_password and self.booking_password.strip())

    def password_matches(self, supplied: Optional[str]) -> bool:
        """Exact, case-sensitive comparison; any value passes when no password is set."""
        if not self.password_required:
            return True
        return supplied is not None and supplied == self.booking_password


class SettingsProvider(Protocol):
    def get_booking_password(self) -> Optional[str]: ...

    def get_turnaround_buffer_days(self) -> int: ...

    def snapshot(self) -> SettingsSnapshot: ...


class DatabaseSettingsProvider:
    """Reads the ``AppSettings`` singleton; a missing row means defaults."""

    def snapshot(self) -> SettingsSnapshot:
        try:
            record = AppSettings.load()
        except DatabaseError as exc:
            logger.error("Could not read application settings: %s", exc)
            raise SettingsUnavailable("Application settings are unavailable") from exc

        if record is None:
            return SettingsSnapshot(None, default_buffer_days())

        buffer_days = record.turnaround_buffer
        if buffer_days is None:
            buffer_days = default_buffer_days()
        return SettingsSnapshot(
            booking_password=record.booking_password or None,
            turnaround_buffer_days=max(buffer_days, 0),
        )

    def get_booking_password(self) -> Optional[str]:
        return self.snapshot().booking_password

    def get_turnaround_buffer_days(self) -> int:
        return self.snapshot().turnaround_buffer_days


class StaticSettingsProvider:
    """Fixed values, for tests and maintenance scripts."""

    def __init__(self, booking_password: Optional[str] = None, turnaround_buffer_days: int = DEFAULT_BUFFER_DAYS):
        if turnaround_buffer_days < 0:
            raise ValueError("turnaround_buffer_days must be >= 0")
        self._snapshot = SettingsSnapshot(booking_password, turnaround_buffer_days)

    def snapshot(self) -> SettingsSnapshot:
        return self._snapshot

    def get_booking_password(self) -> Optional[str]:
        return self._snapshot.booking_password

    def get_turnaround_buffer_days(self) -> int:
        return self._snapshot.turnaround_buffer_days
