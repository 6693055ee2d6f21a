"""API views for the booking engine."""

from __future__ import annotations

import structlog
from django.db import DatabaseError
from drf_spectacular.utils import OpenApiParameter, extend_schema  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.site_settings.provider import DatabaseSettingsProvider, SettingsUnavailable

from . import services
from .application.command_handlers import (
    BookingResult,
    CreateBookingCommand,
    CreateBookingHandler,
    CreateBulkBookingCommand,
    CreateBulkBookingHandler,
)
from .domain.errors import BookingErrorKind
from .serializers import (
    AvailabilityQuerySerializer,
    AvailabilityResponseSerializer,
    BookingRequestSerializer,
    BookingResponseSerializer,
    BulkBookingRequestSerializer,
    UnavailableRangesQuerySerializer,
    UnavailableRangesResponseSerializer,
    error_kind_for,
)

logger = structlog.get_logger(__name__)


def status_for(result: BookingResult) -> int:
    if result.success:
        return status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
    if result.error is BookingErrorKind.ACCESS_DENIED:
        return status.HTTP_403_FORBIDDEN
    if result.error is BookingErrorKind.NOT_AVAILABLE:
        return status.HTTP_409_CONFLICT
    if result.error.is_infrastructure:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


def failure_response(kind: BookingErrorKind) -> Response:
    result = BookingResult.failure(kind)
    return Response(result.to_dict(), status=status_for(result))


class PublicBookingAPIView(APIView):
    """Open endpoints: the booking form is gated by the access password, not by login."""

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]


_BOOKING_RESPONSES = {
    201: BookingResponseSerializer,
    400: BookingResponseSerializer,
    403: BookingResponseSerializer,
    409: BookingResponseSerializer,
    503: BookingResponseSerializer,
}


class BookingCreateView(PublicBookingAPIView):
    """Reserve a single item."""

    @extend_schema(request=BookingRequestSerializer, responses=_BOOKING_RESPONSES)
    def post(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return failure_response(error_kind_for(serializer.errors))

        result = CreateBookingHandler().handle(CreateBookingCommand(**serializer.validated_data))
        return Response(result.to_dict(), status=status_for(result))


class BulkBookingCreateView(PublicBookingAPIView):
    """Reserve several items at once; all of them or none."""

    @extend_schema(
        request=BulkBookingRequestSerializer,
        responses={200: BookingResponseSerializer, **_BOOKING_RESPONSES},
    )
    def post(self, request):  # type: ignore
        serializer = BulkBookingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return failure_response(error_kind_for(serializer.errors))

        result = CreateBulkBookingHandler().handle(CreateBulkBookingCommand(**serializer.validated_data))
        return Response(result.to_dict(), status=status_for(result))


class ItemAvailabilityView(PublicBookingAPIView):
    """Advisory availability of one item for a date range."""

    @extend_schema(
        parameters=[
            OpenApiParameter("start_date", str, description="YYYY-MM-DD, inclusive"),
            OpenApiParameter("end_date", str, description="YYYY-MM-DD, inclusive"),
        ],
        responses={200: AvailabilityResponseSerializer, 400: BookingResponseSerializer, 503: BookingResponseSerializer},
    )
    def get(self, request, item_id):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return failure_response(BookingErrorKind.INVALID_DATES)

        try:
            snapshot = DatabaseSettingsProvider().snapshot()
        except SettingsUnavailable:
            return failure_response(BookingErrorKind.SETTINGS_UNAVAILABLE)

        start_date = query.validated_data["start_date"]
        end_date = query.validated_data["end_date"]
        try:
            available = services.is_available(
                item_id, start_date, end_date, buffer_days=snapshot.turnaround_buffer_days,
            )
        except DatabaseError as exc:
            logger.bind(item_id=str(item_id), start_date=str(start_date), end_date=str(end_date)).error(
                "availability_read_failed", detail=str(exc),
            )
            return failure_response(BookingErrorKind.RESERVATION_WRITE_FAILED)
        return Response({"item_id": item_id, "available": available})


class ItemUnavailableRangesView(PublicBookingAPIView):
    """Blocked windows of an item, buffer included, for greying out a calendar."""

    @extend_schema(
        parameters=[OpenApiParameter("since", str, required=False, description="Drop windows ending before this day")],
        responses={200: UnavailableRangesResponseSerializer, 400: BookingResponseSerializer, 503: BookingResponseSerializer},
    )
    def get(self, request, item_id):  # type: ignore
        query = UnavailableRangesQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return failure_response(BookingErrorKind.INVALID_DATES)

        try:
            snapshot = DatabaseSettingsProvider().snapshot()
        except SettingsUnavailable:
            return failure_response(BookingErrorKind.SETTINGS_UNAVAILABLE)

        since = query.validated_data.get("since")
        try:
            ranges = services.list_unavailable_ranges(
                item_id, buffer_days=snapshot.turnaround_buffer_days, since=since,
            )
        except DatabaseError as exc:
            logger.bind(item_id=str(item_id), since=str(since)).error(
                "unavailable_ranges_read_failed", detail=str(exc),
            )
            return failure_response(BookingErrorKind.RESERVATION_WRITE_FAILED)
        payload = {"item_id": item_id, "buffer_days": snapshot.turnaround_buffer_days, "ranges": ranges}
        return Response(UnavailableRangesResponseSerializer(payload).data)
