"""Singleton settings record."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class AppSettings(models.Model):
    """Global booking settings. Only the row with pk=1 is ever used."""

    SINGLETON_PK = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_PK, editable=False)
    booking_password = models.CharField(
        max_length=128,
        null=True,
        blank=True,
        help_text=_("Shared password required to submit bookings. Leave empty to disable the gate."),
    )
    turnaround_buffer = models.IntegerField(
        null=True,
        blank=True,
        help_text=_("Days an item stays unavailable after a reservation ends. Empty means the default."),
    )
    company_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Application settings")
        verbose_name_plural = _("Application settings")

    def __str__(self) -> str:
        return "Application settings"

    def save(self, *args, **kwargs):  # type: ignore
        self.pk = self.SINGLETON_PK
        # An unsaved instance over an existing row must UPDATE it, not INSERT.
        if self._state.adding and type(self).objects.filter(pk=self.pk).exists():
            self._state.adding = False
        super().save(*args, **kwargs)

    @classmethod
    def load(cls) -> "AppSettings | None":
        return cls.objects.filter(pk=cls.SINGLETON_PK).first()
