"""Identity resolution for guest bookings."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction  # type: ignore

from .models import Profile

logger = logging.getLogger(__name__)

# Webmail providers: an address here says nothing about the customer's organization.
PUBLIC_EMAIL_DOMAINS = frozenset(
    {
        "gmail.com",
        "outlook.com",
        "hotmail.com",
        "icloud.com",
        "me.com",
        "yahoo.com",
        "msn.com",
        "qq.com",
        "163.com",
        "126.com",
        "live.com",
        "aol.com",
        "protonmail.com",
        "mail.com",
    }
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ProfileWriteError(Exception):
    """A customer profile could not be read or written."""


@dataclass(frozen=True)
class ShippingAddress:
    country: str = ""
    city_region: str = ""
    address_line1: str = ""
    address_line2: str = ""
    postcode: str = ""

    def as_fields(self) -> dict[str, str]:
        return {key: (value or "").strip() for key, value in asdict(self).items()}

    def is_empty(self) -> bool:
        return not any(self.as_fields().values())


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    """Loose ``local@domain.tld`` shape check, no whitespace anywhere."""
    if not email:
        return False
    return bool(EMAIL_RE.match(email.strip()))


def extract_organization_domain(email: str) -> Optional[str]:
    """Domain part of the address, or None for webmail providers and malformed input."""
    _, sep, domain = normalize_email(email).rpartition("@")
    if not sep or not domain:
        return None
    if domain in PUBLIC_EMAIL_DOMAINS:
        return None
    return domain


def _backfill(profile: Profile, organization_domain: Optional[str], address: Optional[ShippingAddress]) -> None:
    """Fill empty fields only; existing values are never overwritten."""
    updates: dict[str, str] = {}
    if organization_domain and profile.organization_domain is None:
        updates["organization_domain"] = organization_domain
    if address is not None:
        for field, value in address.as_fields().items():
            if value and not getattr(profile, field):
                updates[field] = value
    if not updates:
        return

    # Filtering on the null domain keeps a concurrent backfill from being clobbered.
    queryset = Profile.objects.filter(pk=profile.pk)
    if "organization_domain" in updates:
        domain_updated = queryset.filter(organization_domain__isnull=True).update(
            organization_domain=updates.pop("organization_domain")
        )
        if domain_updated:
            logger.info("Backfilled organization domain for profile %s", profile.pk)
    if updates:
        queryset.update(**updates)


def resolve_customer(
    email: str,
    full_name: str,
    company_name: Optional[str] = None,
    address: Optional[ShippingAddress] = None,
) -> uuid.UUID:
    """Return the id of the profile owning ``email``, creating it when absent.

    The lookup is case-insensitive and whitespace-insensitive. When two
    requests create the same address concurrently, the loser of the
    unique constraint resolves to the winner's id.

    Raises ProfileWriteError on any database failure.
    """
    normalized = normalize_email(email)
    organization_domain = extract_organization_domain(normalized)

    try:
        existing = Profile.objects.filter(email=normalized).first()
        if existing is not None:
            _backfill(existing, organization_domain, address)
            return existing.pk

        fields = address.as_fields() if address is not None else {}
        try:
            with transaction.atomic():
                profile = Profile.objects.create(
                    id=uuid.uuid4(),
                    email=normalized,
                    full_name=(full_name or "").strip(),
                    company_name=(company_name or "").strip() or None,
                    organization_domain=organization_domain,
                    role=Profile.RoleChoices.CUSTOMER,
                    **fields,
                )
        except IntegrityError:
            winner = Profile.objects.filter(email=normalized).first()
            if winner is None:
                raise
            logger.info("Profile for %s created concurrently, reusing %s", normalized, winner.pk)
            return winner.pk
    except DatabaseError as exc:
        logger.error("Profile resolution failed for %s: %s", normalized, exc)
        raise ProfileWriteError(f"Could not resolve profile for {normalized}") from exc

    logger.info("Created profile %s for %s", profile.pk, normalized)
    return profile.pk
