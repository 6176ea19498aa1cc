"""
Domain: Customer bookings.

A Booking is a customer's installation request. It is created by the intake
flow, exposed to installers as a lead, and only ever status-transitioned:

    open -> assigned            (first lead purchase)
    open | assigned | confirmed -> confirmed     (schedule accepted / rescheduled)
    confirmed -> in_progress -> completed
    open | assigned | confirmed -> cancelled

Bookings are never deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .errors import InvalidStatusTransition
from .time import require_utc_timestamp
from .wallet import ZERO

REDACTED_CONTACT_TEXT = "Customer details available after lead purchase"


class BookingStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses in which installers may still buy the lead.
LEAD_OPEN_STATUSES = frozenset({BookingStatus.OPEN, BookingStatus.ASSIGNED})

# Statuses in which a schedule may still be proposed or accepted.
SCHEDULABLE_STATUSES = frozenset(
    {BookingStatus.OPEN, BookingStatus.ASSIGNED, BookingStatus.CONFIRMED}
)

_TRANSITIONS = {
    BookingStatus.OPEN: {BookingStatus.ASSIGNED, BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.ASSIGNED: {BookingStatus.ASSIGNED, BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


@dataclass(frozen=True, slots=True)
class CustomerContact:
    name: str
    email: str
    phone: str
    address: str

    def redacted(self) -> "CustomerContact":
        """Contact as shown to installers who have not bought the lead."""

        return CustomerContact(
            name=REDACTED_CONTACT_TEXT,
            email="",
            phone="",
            address=_area_only(self.address),
        )


def _area_only(address: str) -> str:
    # Keep only the last address component (town/county) for lead browsing.
    parts = [p.strip() for p in address.split(",") if p.strip()]
    return parts[-1] if parts else ""


@dataclass(frozen=True, slots=True)
class Booking:
    """
    Pure domain entity for a booking.

    lead_fee is fixed at intake time by the pricing service so that every
    installer pays the same fee for the same lead.
    """

    booking_id: UUID
    contact: CustomerContact
    service_type: str
    tv_size: int
    wall_type: str
    mount_type: str
    total_price: Decimal
    lead_fee: Decimal
    qr_code: str
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    addons: Tuple[str, ...] = field(default_factory=tuple)
    referral_discount: Decimal = ZERO
    preferred_date: Optional[date] = None
    preferred_time: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    customer_notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        if self.lead_fee < ZERO:
            raise ValueError("lead_fee must be >= 0")

    @property
    def is_lead_open(self) -> bool:
        return self.status in LEAD_OPEN_STATUSES

    @property
    def is_schedulable(self) -> bool:
        return self.status in SCHEDULABLE_STATUSES

    def _moved_to(self, target: BookingStatus, at: datetime, **changes) -> "Booking":
        require_utc_timestamp("at", at)
        if target not in _TRANSITIONS[self.status]:
            raise InvalidStatusTransition("booking", self.status.value, target.value)
        return replace(self, status=target, updated_at=at, **changes)

    def with_installer_engaged(self, at: datetime) -> "Booking":
        """First purchase moves an open booking to assigned; later ones change nothing."""

        if self.status is BookingStatus.ASSIGNED:
            return self
        return self._moved_to(BookingStatus.ASSIGNED, at)

    def confirmed(self, scheduled_date: date, scheduled_time: str, at: datetime) -> "Booking":
        return self._moved_to(
            BookingStatus.CONFIRMED,
            at,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
        )

    def started(self, at: datetime) -> "Booking":
        return self._moved_to(BookingStatus.IN_PROGRESS, at)

    def completed(self, at: datetime) -> "Booking":
        return self._moved_to(BookingStatus.COMPLETED, at)

    def cancelled(self, at: datetime) -> "Booking":
        return self._moved_to(BookingStatus.CANCELLED, at)


__all__ = [
    "Booking",
    "BookingStatus",
    "CustomerContact",
    "LEAD_OPEN_STATUSES",
    "REDACTED_CONTACT_TEXT",
    "SCHEDULABLE_STATUSES",
]
