"""Customer profile models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Profile(models.Model):
    """A person or organization contact that books items."""

    class RoleChoices(models.TextChoices):
        CUSTOMER = "customer", _("Customer")
        ADMIN = "admin", _("Admin")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(
        _("Email"),
        unique=True,
        help_text=_("Stored lowercased and trimmed."),
    )
    full_name = models.CharField(max_length=255, blank=True)
    company_name = models.CharField(max_length=255, null=True, blank=True)
    organization_domain = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text=_("Email domain when it is not a public webmail provider."),
    )
    role = models.CharField(
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.CUSTOMER,
    )
    country = models.CharField(max_length=100, blank=True)
    city_region = models.CharField(max_length=100, blank=True)
    address_line1 = models.CharField(max_length=255, blank=True)
    address_line2 = models.CharField(max_length=255, blank=True)
    postcode = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Customer")
        verbose_name_plural = _("Customers")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization_domain"], name="customers_org_domain_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>" if self.full_name else self.email

    def save(self, *args, **kwargs):  # type: ignore
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)
