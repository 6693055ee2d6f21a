"""
Common Value Objects

- DateRange: an inclusive range of calendar dates (rental period,
  blocked window, calendar hint)
"""

from dataclasses import dataclass
from datetime import date, timedelta

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Both ends are inclusive: a one-day rental has start_date == end_date.
    Dates carry no time-of-day component.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if not isinstance(self.start_date, date) or not isinstance(self.end_date, date):
            raise TypeError("DateRange bounds must be dates")
        if self.start_date > self.end_date:
            raise ValueError(
                f"Start date ({self.start_date}) must not be after end date ({self.end_date})"
            )

    @classmethod
    def from_iso(cls, start: str, end: str) -> 'DateRange':
        """
        Build a range from ``YYYY-MM-DD`` strings

        Raises ValueError for unparseable strings or a reversed range.
        """
        return cls(date.fromisoformat(start), date.fromisoformat(end))

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range shares at least one day with another

        Examples:
            - DateRange(1, 5) overlaps with DateRange(5, 7) -> True (day 5)
            - DateRange(1, 5) overlaps with DateRange(6, 7) -> False
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return (self.start_date <= other.end_date and
                self.end_date >= other.start_date)

    def extended_by(self, days: int) -> 'DateRange':
        """Return the range with ``days`` added after its end"""
        if days < 0:
            raise ValueError("Cannot extend a range by a negative number of days")
        return DateRange(self.start_date, self.end_date + timedelta(days=days))

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def __len__(self) -> int:
        """Number of rental days, counting both ends"""
        return (self.end_date - self.start_date).days + 1

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
