"""
Tests for `domain/booking.py`.

Covers contract rules:
- Only the documented status transitions are allowed.
- The first purchase moves open -> assigned; later ones change nothing.
- Redacted contacts hide everything but the area.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.booking import REDACTED_CONTACT_TEXT, Booking, BookingStatus, CustomerContact
from domain.errors import InvalidStatusTransition

T0 = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)

CONTACT = CustomerContact(
    name="Aoife Byrne",
    email="aoife@example.com",
    phone="+353 87 123 4567",
    address="12 Main Street, Naas, Co. Kildare",
)


def _booking(status: BookingStatus = BookingStatus.OPEN) -> Booking:
    return Booking(
        booking_id=UUID("00000000-0000-0000-0000-000000000201"),
        contact=CONTACT,
        service_type="silver",
        tv_size=55,
        wall_type="drywall",
        mount_type="tilting",
        total_price=Decimal("189.00"),
        lead_fee=Decimal("25.00"),
        qr_code="BK-0000000000",
        status=status,
        created_at=T0,
        updated_at=T0,
    )


def test_first_engagement_moves_open_to_assigned() -> None:
    engaged = _booking().with_installer_engaged(T1)

    assert engaged.status is BookingStatus.ASSIGNED
    assert engaged.updated_at == T1


def test_further_engagement_is_a_no_op() -> None:
    assigned = _booking(BookingStatus.ASSIGNED)

    assert assigned.with_installer_engaged(T1) is assigned


def test_confirmation_sets_schedule() -> None:
    confirmed = _booking(BookingStatus.ASSIGNED).confirmed(date(2025, 6, 14), "9:00 AM - 11:00 AM", T1)

    assert confirmed.status is BookingStatus.CONFIRMED
    assert confirmed.scheduled_date == date(2025, 6, 14)
    assert confirmed.scheduled_time == "9:00 AM - 11:00 AM"
    assert confirmed.is_lead_open is False
    assert confirmed.is_schedulable is True


def test_reconfirmation_keeps_confirmed() -> None:
    first = _booking(BookingStatus.CONFIRMED)

    again = first.confirmed(date(2025, 6, 20), "1:00 PM - 3:00 PM", T1)

    assert again.status is BookingStatus.CONFIRMED
    assert again.scheduled_date == date(2025, 6, 20)


def test_job_progression() -> None:
    completed = _booking(BookingStatus.CONFIRMED).started(T1).completed(T1)

    assert completed.status is BookingStatus.COMPLETED


@pytest.mark.parametrize(
    "status, move",
    [
        (BookingStatus.OPEN, "started"),
        (BookingStatus.ASSIGNED, "completed"),
        (BookingStatus.IN_PROGRESS, "cancelled"),
        (BookingStatus.COMPLETED, "cancelled"),
        (BookingStatus.CANCELLED, "with_installer_engaged"),
    ],
)
def test_invalid_transitions_raise(status: BookingStatus, move: str) -> None:
    with pytest.raises(InvalidStatusTransition):
        getattr(_booking(status), move)(T1)


def test_cancelled_booking_cannot_be_confirmed() -> None:
    with pytest.raises(InvalidStatusTransition):
        _booking(BookingStatus.CANCELLED).confirmed(date(2025, 6, 14), "9:00 AM - 11:00 AM", T1)


def test_redacted_contact_keeps_only_area() -> None:
    redacted = CONTACT.redacted()

    assert redacted.name == REDACTED_CONTACT_TEXT
    assert redacted.email == ""
    assert redacted.phone == ""
    assert redacted.address == "Co. Kildare"
