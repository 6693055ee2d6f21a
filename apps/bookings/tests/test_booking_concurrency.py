"""Concurrent submissions against a real (file-based) database.

Each thread uses its own database connection, so these tests need
``transaction=True`` and the IMMEDIATE transaction mode of the test
settings.
"""

import threading
from datetime import date, timedelta
from itertools import combinations

import pytest
from django.db import connection

from apps.bookings.application.command_handlers import (
    CreateBookingCommand,
    CreateBookingHandler,
    CreateBulkBookingCommand,
    CreateBulkBookingHandler,
)
from apps.bookings.domain.errors import BookingErrorKind
from apps.bookings.models import Reservation
from apps.catalog.models import Item
from apps.customers.models import Profile
from apps.site_settings.provider import StaticSettingsProvider
from shared.domain.value_objects import DateRange

BUFFER_DAYS = 1


def _run_concurrently(calls):
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = []

    def worker(index, call):
        try:
            barrier.wait(timeout=10)
            results[index] = call()
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert not errors, errors
    return results


def _assert_no_double_booking(item):
    reservations = list(Reservation.objects.blocking().for_item(item.id).order_by("created_at", "id"))
    booked = [DateRange(r.start_date, r.end_date) for r in reservations]
    for first, second in combinations(booked, 2):
        assert not first.overlaps_with(second), (first, second)
    # The buffer only trails reservations that were already committed.
    for earlier, later in combinations(booked, 2):
        assert not earlier.extended_by(BUFFER_DAYS).overlaps_with(later), (earlier, later)


@pytest.mark.django_db(transaction=True)
def test_identical_concurrent_requests_book_the_item_once():
    item = Item.objects.create(name="Diamond tiara")
    # Existing webmail customer: identity resolution only reads.
    Profile.objects.create(email="racer@gmail.com", full_name="Racer")
    handler = CreateBookingHandler(settings_provider=StaticSettingsProvider(None, BUFFER_DAYS))

    def submit():
        return handler.handle(CreateBookingCommand(
            item_id=str(item.id),
            email="racer@gmail.com",
            full_name="Racer",
            start_date="2024-06-10",
            end_date="2024-06-12",
        ))

    results = _run_concurrently([submit] * 6)

    successes = [r for r in results if r.success]
    assert len(successes) == 1
    assert Reservation.objects.count() == 1
    assert {r.error for r in results if not r.success} <= {BookingErrorKind.NOT_AVAILABLE}


@pytest.mark.django_db(transaction=True)
def test_staggered_concurrent_requests_never_overlap():
    item = Item.objects.create(name="Pearl choker")
    Profile.objects.create(email="racer@gmail.com", full_name="Racer")
    handler = CreateBookingHandler(settings_provider=StaticSettingsProvider(None, BUFFER_DAYS))
    start = date(2024, 6, 1)

    def submit(offset):
        return lambda: handler.handle(CreateBookingCommand(
            item_id=str(item.id),
            email="racer@gmail.com",
            full_name="Racer",
            start_date=start + timedelta(days=offset),
            end_date=start + timedelta(days=offset + 2),
        ))

    results = _run_concurrently([submit(offset) for offset in range(8)])

    assert any(r.success for r in results)
    assert Reservation.objects.count() == sum(1 for r in results if r.success)
    _assert_no_double_booking(item)


@pytest.mark.django_db(transaction=True)
def test_bulk_requests_in_opposite_order_do_not_deadlock():
    first = Item.objects.create(name="Ring")
    second = Item.objects.create(name="Bracelet")
    Profile.objects.create(email="racer@gmail.com", full_name="Racer")
    handler = CreateBulkBookingHandler(settings_provider=StaticSettingsProvider(None, BUFFER_DAYS))

    def submit(items, fingerprint):
        return lambda: handler.handle(CreateBulkBookingCommand(
            item_ids=[str(i.id) for i in items],
            email="racer@gmail.com",
            full_name="Racer",
            start_date="2024-06-10",
            end_date="2024-06-11",
            fingerprint=fingerprint,
        ))

    results = _run_concurrently([
        submit([first, second], "REQ-A"),
        submit([second, first], "REQ-B"),
    ])

    assert sorted(r.success for r in results) == [False, True]
    assert Reservation.objects.count() == 2
    assert Reservation.objects.values("group_id").distinct().count() == 1
    _assert_no_double_booking(first)
    _assert_no_double_booking(second)
