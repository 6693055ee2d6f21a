"""Command handler tests: validation order, password gate, bulk atomicity and recovery."""

from datetime import date
from uuid import UUID, uuid4

import pytest
from django.db import DatabaseError

from apps.bookings.application.command_handlers import (
    CreateBookingCommand,
    CreateBookingHandler,
    CreateBulkBookingCommand,
    CreateBulkBookingHandler,
)
from apps.bookings.domain.errors import BookingErrorKind
from apps.bookings.domain.events import ReservationsRequested
from apps.bookings.models import EmergencyBackup, Reservation, SystemErrorRecord
from apps.bookings.repositories import DjangoReservationRepository
from apps.catalog.models import Item
from apps.customers.models import Profile
from apps.customers.services import ProfileWriteError
from apps.site_settings.provider import SettingsUnavailable, StaticSettingsProvider
from shared.application.locks import KeyedLockRegistry
from shared.application.message_bus import message_bus


def _single(item, **overrides):
    data = {
        "item_id": str(item.id),
        "email": "Jane@Example.com",
        "full_name": "Jane Doe",
        "start_date": "2024-06-10",
        "end_date": "2024-06-12",
    }
    data.update(overrides)
    return CreateBookingCommand(**data)


def _bulk(items, **overrides):
    data = {
        "item_ids": [str(item.id) for item in items],
        "email": "jane@example.com",
        "full_name": "Jane Doe",
        "start_date": "2024-06-10",
        "end_date": "2024-06-12",
    }
    data.update(overrides)
    return CreateBulkBookingCommand(**data)


def _handler(cls=CreateBookingHandler, password=None, buffer_days=1, **kwargs):
    return cls(settings_provider=StaticSettingsProvider(password, buffer_days), **kwargs)


class FailingInsertRepository(DjangoReservationRepository):
    def add(self, reservations):
        raise DatabaseError("disk I/O error")


class BrokenSettingsProvider:
    def snapshot(self):
        raise SettingsUnavailable("settings table is gone")


# ===== single item =====

@pytest.mark.django_db
def test_create_booking_writes_a_pending_reservation(item):
    result = _handler().handle(_single(item, notes="  Deliver before noon  "))

    assert result.success, result.error
    reservation = Reservation.objects.get()
    assert reservation.id == result.reservation_id
    assert reservation.status == Reservation.Status.PENDING
    assert (reservation.start_date, reservation.end_date) == (date(2024, 6, 10), date(2024, 6, 12))
    assert reservation.group_id is None
    assert reservation.dispatch_notes == "Request Notes: Deliver before noon"
    assert reservation.customer.email == "jane@example.com"
    assert result.to_dict() == {"success": True, "reservation_id": str(reservation.id)}


@pytest.mark.django_db
def test_blank_notes_are_not_stored(item):
    _handler().handle(_single(item, notes="   "))

    assert Reservation.objects.get().dispatch_notes is None


@pytest.mark.django_db
@pytest.mark.parametrize(
    "configured, supplied, success",
    [
        (None, None, True),
        (None, "anything", True),
        ("", "anything", True),
        ("secret", "secret", True),
        ("secret", "Secret", False),
        ("secret", "", False),
        ("secret", None, False),
    ],
)
def test_access_password_gate(item, configured, supplied, success):
    result = _handler(password=configured).handle(_single(item, access_password=supplied))

    assert result.success is success
    if not success:
        assert result.error is BookingErrorKind.ACCESS_DENIED
        assert not Profile.objects.exists()
        assert not Reservation.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize(
    "overrides, kind",
    [
        ({"email": "not-an-email"}, BookingErrorKind.INVALID_EMAIL),
        ({"email": ""}, BookingErrorKind.INVALID_EMAIL),
        ({"email": "jane doe@example.com"}, BookingErrorKind.INVALID_EMAIL),
        ({"start_date": "2024-06-12", "end_date": "2024-06-10"}, BookingErrorKind.INVALID_DATES),
        ({"start_date": "tomorrow"}, BookingErrorKind.INVALID_DATES),
        ({"end_date": None}, BookingErrorKind.INVALID_DATES),
        ({"item_id": "not-a-uuid"}, BookingErrorKind.NOT_AVAILABLE),
        ({"item_id": str(uuid4())}, BookingErrorKind.NOT_AVAILABLE),
    ],
)
def test_invalid_input_writes_nothing(item, overrides, kind):
    result = _handler().handle(_single(item, **overrides))

    assert not result.success
    assert result.error is kind
    assert result.to_dict() == {"success": False, "error": kind.value, "message": kind.user_message}
    assert not Profile.objects.exists()
    assert not Reservation.objects.exists()


@pytest.mark.django_db
def test_email_is_checked_before_dates(item):
    result = _handler().handle(_single(item, email="nope", start_date="2024-06-12", end_date="2024-06-10"))

    assert result.error is BookingErrorKind.INVALID_EMAIL


@pytest.mark.django_db
def test_item_under_maintenance_is_not_available(make_item):
    item = make_item(status=Item.Status.MAINTENANCE)

    result = _handler().handle(_single(item))

    assert result.error is BookingErrorKind.NOT_AVAILABLE


@pytest.mark.django_db
def test_turnaround_buffer_comes_from_settings(item, make_reservation):
    make_reservation(item, "2024-06-01", "2024-06-05")
    handler = _handler(buffer_days=2)

    rejected = handler.handle(_single(item, start_date="2024-06-06", end_date="2024-06-07"))
    accepted = handler.handle(_single(item, start_date="2024-06-08", end_date="2024-06-10"))

    assert rejected.error is BookingErrorKind.NOT_AVAILABLE
    assert accepted.success


@pytest.mark.django_db
def test_second_overlapping_request_is_rejected(item):
    handler = _handler(buffer_days=0)

    first = handler.handle(_single(item))
    second = handler.handle(_single(item, email="other@example.org", start_date="2024-06-12", end_date="2024-06-14"))
    back_to_back = handler.handle(_single(item, start_date="2024-06-13", end_date="2024-06-14"))

    assert first.success
    assert second.error is BookingErrorKind.NOT_AVAILABLE
    assert back_to_back.success
    assert Reservation.objects.count() == 2


@pytest.mark.django_db
def test_settings_failure_is_reported_without_writing(item):
    handler = CreateBookingHandler(settings_provider=BrokenSettingsProvider())

    result = handler.handle(_single(item))

    assert result.error is BookingErrorKind.SETTINGS_UNAVAILABLE
    assert result.error.is_infrastructure
    assert not Reservation.objects.exists()


@pytest.mark.django_db
def test_profile_failure_is_reported_without_writing(item):
    def failing_resolver(*args, **kwargs):
        raise ProfileWriteError("profiles table locked")

    result = _handler(customer_resolver=failing_resolver).handle(_single(item))

    assert result.error is BookingErrorKind.PROFILE_WRITE_FAILED
    assert not Reservation.objects.exists()


@pytest.mark.django_db
def test_lock_timeout_is_a_write_failure(item):
    locks = KeyedLockRegistry()
    handler = _handler(locks=locks, lock_timeout=0.01)

    with locks.hold([item.id]):
        result = handler.handle(_single(item))

    assert result.error is BookingErrorKind.RESERVATION_WRITE_FAILED
    assert not Reservation.objects.exists()
    # Single bookings are not backed up
    assert not EmergencyBackup.objects.exists()


@pytest.mark.django_db
def test_event_is_published_after_commit(item, django_capture_on_commit_callbacks):
    received = []
    message_bus.register_event_handler(ReservationsRequested, received.append)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            result = _handler().handle(_single(item))
    finally:
        message_bus.unregister_event_handler(ReservationsRequested, received.append)

    [event] = received
    assert event.reservation_ids == [result.reservation_id]
    assert event.item_ids == [item.id]


# ===== bulk =====

@pytest.mark.django_db
def test_bulk_booking_reserves_every_item_under_one_group(make_item):
    items = [make_item("Ring"), make_item("Earrings"), make_item("Tiara")]
    command = _bulk(items, fingerprint="REQ-1", country="UK", postcode="SW1A 1AA", notes="Gift")

    result = _handler(CreateBulkBookingHandler).handle(command)

    assert result.success, result.error
    assert not result.replayed
    reservations = Reservation.objects.filter(group_id=result.group_id)
    assert reservations.count() == 3
    assert set(reservations.values_list("id", flat=True)) == set(result.reservation_ids)
    assert set(reservations.values_list("fingerprint", flat=True)) == {f"REQ-1-{item.id}" for item in items}
    assert set(reservations.values_list("postcode", flat=True)) == {"SW1A 1AA"}
    assert set(reservations.values_list("dispatch_notes", flat=True)) == {"Request Notes: Gift"}
    profile = Profile.objects.get()
    assert (profile.country, profile.postcode) == ("UK", "SW1A 1AA")
    assert result.to_dict()["group_id"] == str(result.group_id)


@pytest.mark.django_db
def test_bulk_booking_is_all_or_nothing(make_item, make_reservation):
    free, taken = make_item("Ring"), make_item("Tiara")
    make_reservation(taken, "2024-06-11", "2024-06-11")

    result = _handler(CreateBulkBookingHandler).handle(_bulk([free, taken]))

    assert result.error is BookingErrorKind.NOT_AVAILABLE
    assert not Reservation.objects.filter(item=free).exists()
    assert Reservation.objects.count() == 1


@pytest.mark.django_db
@pytest.mark.parametrize("item_ids", [[], None])
def test_bulk_booking_without_items(item_ids):
    result = _handler(CreateBulkBookingHandler).handle(
        CreateBulkBookingCommand(
            item_ids=item_ids, email="jane@example.com", full_name="Jane",
            start_date="2024-06-10", end_date="2024-06-12",
        )
    )

    assert result.error is BookingErrorKind.NO_ITEMS


@pytest.mark.django_db
def test_bulk_booking_collapses_duplicate_items(item):
    result = _handler(CreateBulkBookingHandler).handle(_bulk([item, item]))

    assert result.success
    assert len(result.reservation_ids) == 1


@pytest.mark.django_db
def test_bulk_booking_password_gate(item):
    handler = _handler(CreateBulkBookingHandler, password="secret")

    assert handler.handle(_bulk([item], access_password="Secret")).error is BookingErrorKind.ACCESS_DENIED
    assert handler.handle(_bulk([item], access_password="secret")).success


@pytest.mark.django_db
def test_resubmitting_a_fingerprint_returns_the_first_group(make_item):
    items = [make_item("Ring"), make_item("Tiara")]
    handler = _handler(CreateBulkBookingHandler)

    first = handler.handle(_bulk(items, fingerprint="REQ-42"))
    again = handler.handle(_bulk(items, fingerprint="REQ-42"))

    assert first.success and again.success
    assert again.replayed
    assert again.group_id == first.group_id
    assert set(again.reservation_ids) == set(first.reservation_ids)
    assert Reservation.objects.count() == 2


@pytest.mark.django_db
def test_missing_fingerprint_is_generated(item):
    result = _handler(CreateBulkBookingHandler).handle(_bulk([item]))

    fingerprint = Reservation.objects.get().fingerprint
    assert fingerprint.startswith("REQ-")
    assert fingerprint.endswith(f"-{item.id}")
    assert result.success


@pytest.mark.django_db
def test_write_failure_stores_an_emergency_backup(make_item):
    items = [make_item("Ring"), make_item("Tiara")]
    handler = _handler(
        CreateBulkBookingHandler,
        password="secret",
        reservation_repo=FailingInsertRepository(),
    )

    result = handler.handle(_bulk(items, fingerprint="REQ-7", access_password="secret", city_region="London"))

    assert result.error is BookingErrorKind.RESERVATION_WRITE_FAILED
    assert result.message == BookingErrorKind.RESERVATION_WRITE_FAILED.user_message
    assert not Reservation.objects.exists()

    backup = EmergencyBackup.objects.get()
    assert backup.fingerprint == "REQ-7"
    assert backup.status == EmergencyBackup.Status.PENDING
    assert backup.last_error == "RESERVATION_WRITE_FAILED"
    assert backup.payload["access_password"] == "[REDACTED]"
    assert "secret" not in str(backup.payload)
    assert backup.payload["item_ids"] == [str(item.id) for item in items]
    assert backup.payload["city_region"] == "London"

    record = SystemErrorRecord.objects.get()
    assert record.error_type == "REQUEST_SUBMISSION_FAILED"
    assert record.payload["backup_id"] == str(backup.id)
    assert not record.resolved


@pytest.mark.django_db
def test_rejections_are_not_backed_up(item, make_reservation):
    make_reservation(item, "2024-06-10", "2024-06-10")

    result = _handler(CreateBulkBookingHandler).handle(_bulk([item]))

    assert result.error is BookingErrorKind.NOT_AVAILABLE
    assert not EmergencyBackup.objects.exists()


@pytest.mark.django_db
def test_bulk_customer_is_shared_with_single_bookings(make_item):
    first, second = make_item("Ring"), make_item("Tiara")

    single = _handler().handle(_single(first, email="JANE@example.com "))
    bulk = _handler(CreateBulkBookingHandler).handle(_bulk([second], email="jane@example.com"))

    assert single.success and bulk.success
    assert Profile.objects.count() == 1
    assert isinstance(Reservation.objects.get(item=second).customer_id, UUID)


@pytest.mark.django_db
@pytest.mark.parametrize("start_date, end_date", [("2024-W23-1", "2024-06-12"), ("2024-06-10", "20240612")])
def test_dates_must_be_calendar_dates(item, start_date, end_date):
    result = _handler().handle(_single(item, start_date=start_date, end_date=end_date))

    assert result.error is BookingErrorKind.INVALID_DATES
    assert not Profile.objects.exists()
    assert not Reservation.objects.exists()


class CommitRacingRepository(DjangoReservationRepository):
    """Runs ``before_lock`` just before the row locks are taken."""

    def __init__(self, before_lock):
        self.before_lock = before_lock

    def lock_items(self, item_ids):
        self.before_lock()
        return super().lock_items(item_ids)


@pytest.mark.django_db
def test_identical_submission_committed_before_the_lock_is_replayed(make_item, customer):
    items = [make_item("Ring"), make_item("Tiara")]
    competing_group = uuid4()

    def commit_identical_request():
        for item in items:
            Reservation.objects.create(
                item=item,
                customer=customer,
                start_date=date(2024, 6, 10),
                end_date=date(2024, 6, 12),
                group_id=competing_group,
                fingerprint=f"REQ-R-{item.id}",
            )

    handler = _handler(CreateBulkBookingHandler, reservation_repo=CommitRacingRepository(commit_identical_request))

    result = handler.handle(_bulk(items, fingerprint="REQ-R"))

    assert result.success
    assert result.replayed
    assert result.group_id == competing_group
    assert Reservation.objects.count() == 2
    assert set(Reservation.objects.values_list("group_id", flat=True)) == {competing_group}


@pytest.mark.django_db
def test_blank_item_id_in_bulk_is_not_available(item):
    result = _handler(CreateBulkBookingHandler).handle(_bulk([item], item_ids=[str(item.id), ""]))

    assert result.error is BookingErrorKind.NOT_AVAILABLE
    assert not Reservation.objects.exists()
