import threading

import pytest
from django.db import DatabaseError, connection

from apps.customers.models import Profile
from apps.customers.services import (
    ProfileWriteError,
    ShippingAddress,
    extract_organization_domain,
    is_valid_email,
    resolve_customer,
)


@pytest.mark.parametrize(
    "email, domain",
    [
        ("jane@acme.com", "acme.com"),
        ("Jane@ACME.com ", "acme.com"),
        ("someone@gmail.com", None),
        ("someone@Outlook.com", None),
        ("someone@protonmail.com", None),
        ("no-at-sign", None),
    ],
)
def test_extract_organization_domain(email, domain):
    assert extract_organization_domain(email) == domain


@pytest.mark.parametrize(
    "email, valid",
    [
        ("jane@example.com", True),
        ("  jane@example.com  ", True),
        ("jane@example", False),
        ("jane example@example.com", False),
        ("@example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_email(email, valid):
    assert is_valid_email(email) is valid


@pytest.mark.django_db
def test_email_case_and_whitespace_resolve_to_one_profile():
    first = resolve_customer("Jane@Example.com", "Jane Doe")
    second = resolve_customer("  jane@example.com ", "Someone Else")

    assert first == second
    profile = Profile.objects.get()
    assert profile.email == "jane@example.com"
    assert profile.full_name == "Jane Doe"


@pytest.mark.django_db
def test_new_profile_fields():
    profile = Profile.objects.get(pk=resolve_customer("jane@acme.com", " Jane ", company_name="Acme Ltd"))

    assert profile.full_name == "Jane"
    assert profile.company_name == "Acme Ltd"
    assert profile.organization_domain == "acme.com"
    assert profile.role == Profile.RoleChoices.CUSTOMER


@pytest.mark.django_db
def test_webmail_profile_has_no_organization_domain():
    profile = Profile.objects.get(pk=resolve_customer("jane@gmail.com", "Jane"))

    assert profile.organization_domain is None


@pytest.mark.django_db
def test_missing_organization_domain_is_backfilled():
    Profile.objects.create(email="jane@acme.com", full_name="Jane", organization_domain=None)

    resolve_customer("jane@acme.com", "Jane")

    assert Profile.objects.get().organization_domain == "acme.com"


@pytest.mark.django_db
def test_backfill_never_overwrites_existing_values():
    Profile.objects.create(
        email="jane@acme.com",
        full_name="Jane",
        organization_domain="acme-group.com",
        country="France",
    )

    resolve_customer(
        "jane@acme.com",
        "Other Name",
        company_name="Other Co",
        address=ShippingAddress(country="UK", postcode="SW1A 1AA"),
    )

    profile = Profile.objects.get()
    assert profile.organization_domain == "acme-group.com"
    assert profile.country == "France"
    assert profile.postcode == "SW1A 1AA"
    assert profile.full_name == "Jane"
    assert profile.company_name is None


@pytest.mark.django_db
def test_database_failure_becomes_profile_write_error(monkeypatch):
    def broken_filter(*args, **kwargs):
        raise DatabaseError("no such table")

    monkeypatch.setattr(Profile.objects, "filter", broken_filter)

    with pytest.raises(ProfileWriteError):
        resolve_customer("jane@acme.com", "Jane")


@pytest.mark.django_db(transaction=True)
def test_concurrent_first_bookings_share_one_profile():
    barrier = threading.Barrier(4)
    resolved = []
    errors = []

    def worker():
        try:
            barrier.wait(timeout=10)
            resolved.append(resolve_customer("new.customer@acme.com", "New Customer"))
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert not errors, errors
    assert len(set(resolved)) == 1
    assert Profile.objects.count() == 1
