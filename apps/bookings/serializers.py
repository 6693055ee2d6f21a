"""Serializers for the booking API.

Request serializers are deliberately loose: they only coerce JSON into
strings and lists. Email, date and password rules live in the command
handlers so that every rejection comes back as a BookingErrorKind.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.errors import BookingErrorKind


# Field name -> error kind, checked in the same order the handlers validate.
_FIELD_ERROR_KINDS = (
    ("item_ids", BookingErrorKind.NO_ITEMS),
    ("email", BookingErrorKind.INVALID_EMAIL),
    ("start_date", BookingErrorKind.INVALID_DATES),
    ("end_date", BookingErrorKind.INVALID_DATES),
)


def error_kind_for(errors: dict) -> BookingErrorKind:
    """Map DRF validation errors onto the closed set of booking error kinds."""

    # A list whose entries failed (errors keyed by index) still names items.
    if isinstance(errors.get("item_ids"), dict):
        return BookingErrorKind.NOT_AVAILABLE
    for field_name, kind in _FIELD_ERROR_KINDS:
        if field_name in errors:
            return kind
    if set(errors) == {"item_id"}:
        return BookingErrorKind.NOT_AVAILABLE
    return BookingErrorKind.INVALID_REQUEST


class _OptionalText(serializers.CharField):
    def __init__(self, **kwargs):
        kwargs.setdefault("required", False)
        kwargs.setdefault("allow_blank", True)
        kwargs.setdefault("allow_null", True)
        super().__init__(**kwargs)


class _BookingFieldsSerializer(serializers.Serializer):
    email = serializers.CharField(allow_blank=True, allow_null=True)
    full_name = serializers.CharField(max_length=255)
    company_name = _OptionalText(max_length=255)
    start_date = serializers.CharField(allow_blank=True, allow_null=True)
    end_date = serializers.CharField(allow_blank=True, allow_null=True)
    access_password = _OptionalText(trim_whitespace=False)
    notes = _OptionalText()


class BookingRequestSerializer(_BookingFieldsSerializer):
    """Body of ``POST /bookings/``."""

    item_id = serializers.CharField()


class BulkBookingRequestSerializer(_BookingFieldsSerializer):
    """Body of ``POST /bookings/bulk/``."""

    # Blank or unknown ids are left to the handler, which reports NOT_AVAILABLE.
    item_ids = serializers.ListField(child=serializers.CharField(allow_blank=True), allow_empty=True)
    # Shipping address is optional here; a bulk request without one is still
    # accepted and the customer profile keeps whatever address it already has.
    country = _OptionalText(max_length=100)
    city_region = _OptionalText(max_length=100)
    address_line1 = _OptionalText(max_length=255)
    address_line2 = _OptionalText(max_length=255)
    postcode = _OptionalText(max_length=20)
    fingerprint = _OptionalText(max_length=200)


class BookingResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    reservation_id = serializers.UUIDField(required=False)
    group_id = serializers.UUIDField(required=False)
    reservation_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    error = serializers.ChoiceField(choices=[kind.value for kind in BookingErrorKind], required=False)
    message = serializers.CharField(required=False)


class AvailabilityQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(input_formats=["%Y-%m-%d"])
    end_date = serializers.DateField(input_formats=["%Y-%m-%d"])

    def validate(self, attrs):  # type: ignore
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError("start_date must not be after end_date.")
        return attrs


class AvailabilityResponseSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    available = serializers.BooleanField()


class UnavailableRangesQuerySerializer(serializers.Serializer):
    since = serializers.DateField(required=False, input_formats=["%Y-%m-%d"])


class UnavailableRangesResponseSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    buffer_days = serializers.IntegerField()
    ranges = serializers.ListField(child=serializers.DictField(child=serializers.DateField()))
