"""
Booking Command Handlers

Use cases of the booking engine. Each handler validates a request,
resolves the customer and commits the reservations, and always answers
with a BookingResult: expected rejections are results, not exceptions.

Commands:
- CreateBookingCommand: reserve one item
- CreateBulkBookingCommand: reserve several items as one group

Double booking prevention:
1. Advisory availability check (cheap early rejection)
2. Per-item process mutex, acquired in sorted order
3. Transaction with SELECT FOR UPDATE on the item rows
4. Availability re-checked on the Inventory aggregate inside the lock
5. Insert, commit, release; events are published after commit
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional, Sequence
from uuid import UUID, uuid4
import re
import secrets

import structlog
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from apps.customers.services import (
    ProfileWriteError,
    ShippingAddress,
    is_valid_email,
    normalize_email,
    resolve_customer,
)
from apps.site_settings.provider import (
    DatabaseSettingsProvider,
    SettingsProvider,
    SettingsSnapshot,
    SettingsUnavailable,
)
from shared.application.locks import KeyedLockRegistry, LockTimeout, item_locks
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange
from apps.bookings.domain.errors import BookingError, BookingErrorKind
from apps.bookings.domain.events import ReservationsRequested
from apps.bookings.repositories import DjangoReservationRepository, NewReservation

logger = structlog.get_logger(__name__)

ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """Reserve a single item. Dates accept ``date`` objects or ISO strings."""
    item_id: Any
    email: str
    full_name: str
    start_date: Any
    end_date: Any
    company_name: Optional[str] = None
    access_password: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class CreateBulkBookingCommand:
    """
    Reserve several items for the same customer and dates

    ``fingerprint`` identifies the submission; sending the same
    fingerprint again returns the group created the first time.
    """
    item_ids: List[Any]
    email: str
    full_name: str
    start_date: Any
    end_date: Any
    company_name: Optional[str] = None
    notes: Optional[str] = None
    access_password: Optional[str] = None
    country: str = ''
    city_region: str = ''
    address_line1: str = ''
    address_line2: str = ''
    postcode: str = ''
    fingerprint: Optional[str] = None
    # Only set by staff replays of an emergency backup, whose password was redacted.
    from_backup: bool = False

    @property
    def address(self) -> ShippingAddress:
        return ShippingAddress(
            country=self.country or '',
            city_region=self.city_region or '',
            address_line1=self.address_line1 or '',
            address_line2=self.address_line2 or '',
            postcode=self.postcode or '',
        )


@dataclass
class BookingResult:
    success: bool
    reservation_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    reservation_ids: List[UUID] = field(default_factory=list)
    error: Optional[BookingErrorKind] = None
    replayed: bool = False

    @classmethod
    def failure(cls, kind: BookingErrorKind) -> 'BookingResult':
        return cls(success=False, error=kind)

    @property
    def message(self) -> Optional[str]:
        return self.error.user_message if self.error else None

    def to_dict(self) -> dict:
        if not self.success:
            return {'success': False, 'error': self.error.value, 'message': self.message}
        if self.group_id is not None:
            return {
                'success': True,
                'group_id': str(self.group_id),
                'reservation_ids': [str(r) for r in self.reservation_ids],
            }
        return {'success': True, 'reservation_id': str(self.reservation_id)}


# ===== Shared steps =====

def generate_fingerprint() -> str:
    """Request id used when the client did not send one: REQ-<ms>-<random>"""
    return f"REQ-{int(timezone.now().timestamp() * 1000)}-{secrets.token_hex(4)}"


class BaseBookingHandler:
    """
    Validation and commit steps shared by single and bulk bookings

    Collaborators are injected so tests can swap the settings source,
    the repository or the lock registry.
    """

    def __init__(
        self,
        settings_provider: Optional[SettingsProvider] = None,
        reservation_repo: Optional[DjangoReservationRepository] = None,
        locks: Optional[KeyedLockRegistry] = None,
        customer_resolver=resolve_customer,
        lock_timeout: Optional[float] = None,
    ):
        self.settings_provider = settings_provider or DatabaseSettingsProvider()
        self.reservation_repo = reservation_repo or DjangoReservationRepository()
        self.locks = locks if locks is not None else item_locks
        self.customer_resolver = customer_resolver
        if lock_timeout is None:
            lock_timeout = getattr(settings, 'BOOKING_LOCK_TIMEOUT_SECONDS', 10)
        self.lock_timeout = lock_timeout

    # --- validation ---

    @staticmethod
    def _validate_email(email: Optional[str]) -> str:
        if not is_valid_email(email):
            raise BookingError(BookingErrorKind.INVALID_EMAIL)
        return normalize_email(email)

    @staticmethod
    def _parse_date(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str) and value.strip():
            # fromisoformat also takes week dates and the basic format
            if not ISO_DATE_RE.fullmatch(value.strip()):
                raise ValueError(f"expected YYYY-MM-DD, got {value!r}")
            return date.fromisoformat(value.strip())
        raise ValueError("missing date")

    def _validate_dates(self, start: Any, end: Any) -> DateRange:
        try:
            return DateRange(self._parse_date(start), self._parse_date(end))
        except (TypeError, ValueError) as exc:
            raise BookingError(BookingErrorKind.INVALID_DATES, str(exc)) from exc

    def _load_settings(self) -> SettingsSnapshot:
        try:
            return self.settings_provider.snapshot()
        except SettingsUnavailable as exc:
            raise BookingError(BookingErrorKind.SETTINGS_UNAVAILABLE, str(exc)) from exc

    @staticmethod
    def _check_access(snapshot: SettingsSnapshot, supplied: Optional[str]) -> None:
        if not snapshot.password_matches(supplied):
            raise BookingError(BookingErrorKind.ACCESS_DENIED)

    @staticmethod
    def _parse_item_id(value: Any) -> UUID:
        """An id that cannot name an item can never be booked."""
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except (TypeError, ValueError, AttributeError) as exc:
            raise BookingError(BookingErrorKind.NOT_AVAILABLE, f"unknown item {value!r}") from exc

    def _ensure_available(self, item_ids: Sequence[UUID], dates: DateRange, buffer_days: int) -> None:
        """Advisory pre-check; authoritative check happens in _commit()"""
        try:
            unavailable = [
                item_id for item_id in item_ids
                if not self.reservation_repo.is_available(item_id, dates, buffer_days)
            ]
        except DatabaseError as exc:
            raise BookingError(BookingErrorKind.RESERVATION_WRITE_FAILED, str(exc)) from exc
        if unavailable:
            raise BookingError(
                BookingErrorKind.NOT_AVAILABLE,
                f"unavailable items: {', '.join(str(i) for i in unavailable)}",
            )

    def _resolve_customer(self, email: str, full_name: str, company_name: Optional[str],
                          address: Optional[ShippingAddress] = None) -> UUID:
        try:
            return self.customer_resolver(email, full_name, company_name, address)
        except ProfileWriteError as exc:
            raise BookingError(BookingErrorKind.PROFILE_WRITE_FAILED, str(exc)) from exc

    # --- commit ---

    def _commit(
        self,
        new_reservations: Sequence[NewReservation],
        dates: DateRange,
        buffer_days: int,
        customer_id: UUID,
        group_id: Optional[UUID] = None,
        fingerprints: Sequence[str] = (),
    ):
        """
        Lock, re-check and insert all reservations in one transaction

        Returns the list of reservation ids, or the (group_id, ids) pair
        of an earlier commit when ``fingerprints`` were already used.

        Raises:
            BookingError: NOT_AVAILABLE if any item lost its availability,
                RESERVATION_WRITE_FAILED on lock timeout or database error.
                Nothing is written in either case.
        """
        item_ids = [new.item_id for new in new_reservations]
        try:
            with self.locks.hold(item_ids, timeout=self.lock_timeout):
                with DjangoUnitOfWork() as uow:
                    items = self.reservation_repo.lock_items(item_ids)

                    # Looked up under the row locks so an identical submission
                    # committed by another process is seen here.
                    if fingerprints:
                        existing = self.reservation_repo.find_by_fingerprints(fingerprints)
                        if existing is not None:
                            return existing

                    for new in new_reservations:
                        item = items.get(str(new.item_id))
                        if item is None or not item.is_bookable:
                            raise BookingError(BookingErrorKind.NOT_AVAILABLE, f"item {new.item_id} is not bookable")

                        inventory = self.reservation_repo.load_inventory(new.item_id, buffer_days, window=dates)
                        if not inventory.can_allocate(dates):
                            raise BookingError(BookingErrorKind.NOT_AVAILABLE, f"item {new.item_id} is taken")
                        inventory.allocate(dates, reservation_id=new.reservation_id)
                        uow.collect_events(inventory)

                    reservation_ids = self.reservation_repo.add(new_reservations)
                    uow.add_event(ReservationsRequested(
                        aggregate_id=group_id or reservation_ids[0],
                        customer_id=customer_id,
                        dates=dates,
                        reservation_ids=reservation_ids,
                        item_ids=item_ids,
                        group_id=group_id,
                    ))
                    return reservation_ids
        except LockTimeout as exc:
            raise BookingError(BookingErrorKind.RESERVATION_WRITE_FAILED, str(exc)) from exc
        except DatabaseError as exc:
            raise BookingError(BookingErrorKind.RESERVATION_WRITE_FAILED, str(exc)) from exc

    @staticmethod
    def _notes(notes: Optional[str]) -> Optional[str]:
        notes = (notes or '').strip()
        return f"Request Notes: {notes}" if notes else None


# ===== Command Handlers =====

class CreateBookingHandler(BaseBookingHandler):
    """Handler for CreateBooking command"""

    def handle(self, command: CreateBookingCommand) -> BookingResult:
        log = logger.bind(
            item_id=str(command.item_id),
            email=normalize_email(command.email or ''),
            start_date=str(command.start_date),
            end_date=str(command.end_date),
        )
        try:
            reservation_id = self._create(command)
        except BookingError as exc:
            if exc.kind.is_infrastructure:
                log.error("booking_failed", error=exc.kind.value, detail=exc.detail)
            else:
                log.info("booking_rejected", error=exc.kind.value, detail=exc.detail)
            return BookingResult.failure(exc.kind)

        log.info("booking_created", reservation_id=str(reservation_id))
        return BookingResult(success=True, reservation_id=reservation_id, reservation_ids=[reservation_id])

    def _create(self, command: CreateBookingCommand) -> UUID:
        email = self._validate_email(command.email)
        dates = self._validate_dates(command.start_date, command.end_date)
        snapshot = self._load_settings()
        self._check_access(snapshot, command.access_password)

        item_id = self._parse_item_id(command.item_id)
        buffer_days = snapshot.turnaround_buffer_days
        self._ensure_available([item_id], dates, buffer_days)

        customer_id = self._resolve_customer(email, command.full_name, command.company_name)

        new = NewReservation(
            reservation_id=uuid4(),
            item_id=item_id,
            customer_id=customer_id,
            dates=dates,
            dispatch_notes=self._notes(command.notes),
        )
        reservation_ids = self._commit([new], dates, buffer_days, customer_id)
        return reservation_ids[0]


class CreateBulkBookingHandler(BaseBookingHandler):
    """
    Handler for CreateBulkBooking command

    All items are reserved or none are. When the reservation write fails
    for infrastructure reasons the request is stored as an emergency
    backup so staff can replay it; the caller still gets a plain
    RESERVATION_WRITE_FAILED.
    """

    def handle(self, command: CreateBulkBookingCommand) -> BookingResult:
        fingerprint = (command.fingerprint or '').strip() or generate_fingerprint()
        log = logger.bind(
            item_ids=[str(i) for i in command.item_ids or []],
            email=normalize_email(command.email or ''),
            start_date=str(command.start_date),
            end_date=str(command.end_date),
            fingerprint=fingerprint,
        )
        try:
            result = self._create(command, fingerprint)
        except BookingError as exc:
            if not exc.kind.is_infrastructure:
                log.info("bulk_booking_rejected", error=exc.kind.value, detail=exc.detail)
                return BookingResult.failure(exc.kind)

            log.error("bulk_booking_failed", error=exc.kind.value, detail=exc.detail)
            if exc.kind is BookingErrorKind.RESERVATION_WRITE_FAILED and not command.from_backup:
                backup_id = self.reservation_repo.save_emergency_backup(
                    fingerprint, self._backup_payload(command, fingerprint), exc.kind.value,
                )
                log.warning("emergency_backup", backup_id=str(backup_id) if backup_id else None)
            return BookingResult.failure(exc.kind)

        log.info(
            "bulk_booking_created" if not result.replayed else "bulk_booking_replayed",
            group_id=str(result.group_id),
            reservation_ids=[str(r) for r in result.reservation_ids],
        )
        return result

    def _create(self, command: CreateBulkBookingCommand, fingerprint: str) -> BookingResult:
        if not command.item_ids:
            raise BookingError(BookingErrorKind.NO_ITEMS)
        email = self._validate_email(command.email)
        dates = self._validate_dates(command.start_date, command.end_date)
        snapshot = self._load_settings()
        if not command.from_backup:
            self._check_access(snapshot, command.access_password)

        item_ids = list(dict.fromkeys(self._parse_item_id(i) for i in command.item_ids))
        fingerprints = [f"{fingerprint}-{item_id}" for item_id in item_ids]

        existing = self._find_existing(fingerprints)
        if existing is not None:
            return existing

        buffer_days = snapshot.turnaround_buffer_days
        self._ensure_available(item_ids, dates, buffer_days)

        address = command.address
        customer_id = self._resolve_customer(
            email, command.full_name, command.company_name, None if address.is_empty() else address,
        )

        group_id = uuid4()
        notes = self._notes(command.notes)
        new_reservations = [
            NewReservation(
                reservation_id=uuid4(),
                item_id=item_id,
                customer_id=customer_id,
                dates=dates,
                group_id=group_id,
                fingerprint=item_fingerprint,
                dispatch_notes=notes,
                address=address.as_fields(),
            )
            for item_id, item_fingerprint in zip(item_ids, fingerprints)
        ]
        committed = self._commit(
            new_reservations, dates, buffer_days, customer_id,
            group_id=group_id, fingerprints=fingerprints,
        )
        if isinstance(committed, tuple):
            existing_group, reservation_ids = committed
            return BookingResult(success=True, group_id=existing_group, reservation_ids=reservation_ids, replayed=True)
        return BookingResult(success=True, group_id=group_id, reservation_ids=committed)

    def _find_existing(self, fingerprints: Sequence[str]) -> Optional[BookingResult]:
        try:
            existing = self.reservation_repo.find_by_fingerprints(fingerprints)
        except DatabaseError as exc:
            raise BookingError(BookingErrorKind.RESERVATION_WRITE_FAILED, str(exc)) from exc
        if existing is None:
            return None
        group_id, reservation_ids = existing
        return BookingResult(success=True, group_id=group_id, reservation_ids=reservation_ids, replayed=True)

    @staticmethod
    def _backup_payload(command: CreateBulkBookingCommand, fingerprint: str) -> dict:
        payload = asdict(command)
        payload['item_ids'] = [str(i) for i in command.item_ids or []]
        payload['start_date'] = str(command.start_date)
        payload['end_date'] = str(command.end_date)
        payload['access_password'] = '[REDACTED]'
        payload['fingerprint'] = fingerprint
        payload.pop('from_backup', None)
        return payload
