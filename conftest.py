from datetime import date

import pytest

from apps.bookings.models import Reservation
from apps.catalog.models import Item
from apps.customers.models import Profile


@pytest.fixture
def make_item(db):
    def factory(name="Pearl necklace", status=Item.Status.ACTIVE, **fields):
        return Item.objects.create(name=name, status=status, **fields)

    return factory


@pytest.fixture
def item(make_item):
    return make_item()


@pytest.fixture
def customer(db):
    return Profile.objects.create(email="regular@gmail.com", full_name="Regular Customer")


@pytest.fixture
def make_reservation(customer):
    def factory(item, start, end, status=Reservation.Status.CONFIRMED, **fields):
        if isinstance(start, str):
            start, end = date.fromisoformat(start), date.fromisoformat(end)
        return Reservation.objects.create(
            item=item,
            customer=customer,
            start_date=start,
            end_date=end,
            status=status,
            **fields,
        )

    return factory
