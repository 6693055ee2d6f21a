"""
Booking error kinds

Every rejection a booking request can produce. Callers branch on the
kind; ``user_message`` is what a customer sees.
"""

from enum import Enum


GENERIC_RETRY_MESSAGE = "Something went wrong while saving your request. Please try again."


class BookingErrorKind(str, Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    NO_ITEMS = "NO_ITEMS"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_DATES = "INVALID_DATES"
    ACCESS_DENIED = "ACCESS_DENIED"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    PROFILE_WRITE_FAILED = "PROFILE_WRITE_FAILED"
    RESERVATION_WRITE_FAILED = "RESERVATION_WRITE_FAILED"
    SETTINGS_UNAVAILABLE = "SETTINGS_UNAVAILABLE"

    @property
    def is_infrastructure(self) -> bool:
        return self in _INFRASTRUCTURE_KINDS

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES.get(self, GENERIC_RETRY_MESSAGE)


_INFRASTRUCTURE_KINDS = frozenset({
    BookingErrorKind.PROFILE_WRITE_FAILED,
    BookingErrorKind.RESERVATION_WRITE_FAILED,
    BookingErrorKind.SETTINGS_UNAVAILABLE,
})

_USER_MESSAGES = {
    BookingErrorKind.INVALID_REQUEST: "Some of the submitted details are invalid. Please check the form and try again.",
    BookingErrorKind.NO_ITEMS: "Please select at least one item.",
    BookingErrorKind.INVALID_EMAIL: "Please enter a valid email address.",
    BookingErrorKind.INVALID_DATES: "Please choose a valid date range: the start date cannot be after the end date.",
    BookingErrorKind.ACCESS_DENIED: "The access password is missing or incorrect. Please check it and try again.",
    BookingErrorKind.NOT_AVAILABLE: "The selected dates are not available. Please choose different dates.",
}


class BookingError(Exception):
    """
    Raised by a booking step to reject the request

    Converted into a failed BookingResult at the handler boundary; it
    never reaches the HTTP layer as an exception.
    """

    def __init__(self, kind: BookingErrorKind, detail: str = ''):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

    @property
    def user_message(self) -> str:
        return self.kind.user_message
