"""
Lead allocation service.

Turns bookings into purchasable leads and sells installers access to them.

Purchase flow (one atomic store operation):
1. The booking must exist and its lead must be open (LeadNotFound).
2. The installer must not have bought it already (AlreadyPurchased).
3. final_cost = lead fee, reduced by the first-lead voucher when the
   voucher system is enabled and the voucher is still eligible.
4. A positive final_cost is debited from the wallet (InsufficientFunds
   leaves everything untouched, including the voucher).
5. The AssignmentGrant is recorded and an open booking becomes assigned.

Contact details are revealed only to installers holding a grant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple
from uuid import UUID, uuid4

from domain.booking import LEAD_OPEN_STATUSES, Booking, BookingStatus, CustomerContact
from domain.errors import AlreadyPurchased, InsufficientFunds, LeadNotFound, Unauthorized
from domain.lead import AssignmentGrant, LeadView, view_lead_for
from domain.time import utc_now
from domain.wallet import ZERO, to_credits
from repositories.store import MarketplaceStore
from services.notification_service import (
    LoggingNotifier,
    NotificationEvent,
    NotificationType,
    Notifier,
    dispatch_safely,
)
from services.pricing_service import calculate_lead_fee
from services.voucher_engine import VoucherEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BookingIntake:
    """A booking as submitted by the customer intake flow."""

    contact: CustomerContact
    service_type: str
    tv_size: int
    wall_type: str
    mount_type: str
    total_price: Decimal
    addons: Tuple[str, ...] = field(default_factory=tuple)
    referral_discount: Decimal = ZERO
    preferred_date: Optional[date] = None
    preferred_time: Optional[str] = None
    customer_notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PurchaseResult:
    grant: AssignmentGrant
    final_cost: Decimal
    voucher_discount: Decimal
    new_balance: Decimal
    contact: CustomerContact


@dataclass(frozen=True, slots=True)
class PurchasedLead:
    booking: Booking
    grant: AssignmentGrant


def generate_qr_code(booking_id: UUID) -> str:
    """Public tracking code, e.g. 'BK-3F2A9C1D7E'."""

    return f"BK-{booking_id.hex[:10].upper()}"


class LeadAllocationService:
    def __init__(
        self,
        store: MarketplaceStore,
        vouchers: VoucherEngine,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._vouchers = vouchers
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------
    def register_booking(self, intake: BookingIntake) -> Booking:
        """Create an open booking whose lead fee is fixed from now on."""

        quote = calculate_lead_fee(intake.service_type, intake.addons, intake.referral_discount)
        now = self._clock()
        booking_id = uuid4()
        booking = Booking(
            booking_id=booking_id,
            contact=intake.contact,
            service_type=intake.service_type,
            tv_size=intake.tv_size,
            wall_type=intake.wall_type,
            mount_type=intake.mount_type,
            total_price=to_credits(intake.total_price),
            lead_fee=quote.total_fee,
            qr_code=generate_qr_code(booking_id),
            status=BookingStatus.OPEN,
            created_at=now,
            updated_at=now,
            addons=tuple(intake.addons),
            referral_discount=quote.subsidy_amount,
            preferred_date=intake.preferred_date,
            preferred_time=intake.preferred_time,
            customer_notes=intake.customer_notes,
        )
        self._store.add_booking(booking)
        logger.info(
            "Booking registered",
            extra={
                "booking_id": str(booking_id),
                "service_type": booking.service_type,
                "lead_fee": str(booking.lead_fee),
                "fee_breakdown": list(quote.breakdown),
            },
        )
        return booking

    def cancel_booking(self, booking_id: UUID) -> Booking:
        booking = self._store.cancel_booking(booking_id, self._clock())
        logger.info("Booking cancelled", extra={"booking_id": str(booking_id)})
        dispatch_safely(
            self._notifier,
            NotificationEvent(NotificationType.BOOKING_CANCELLED, booking_id, booking.updated_at),
        )
        return booking

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------
    def list_available_leads(self, installer_id: UUID) -> List[LeadView]:
        """Open leads, newest first; contact redacted unless purchased by the caller."""

        bookings = self._store.list_bookings(sorted(LEAD_OPEN_STATUSES, key=lambda s: s.value))
        return [
            view_lead_for(installer_id, booking, self._store.list_grants_for_booking(booking.booking_id))
            for booking in bookings
        ]

    def get_lead(self, installer_id: UUID, booking_id: UUID) -> LeadView:
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise LeadNotFound(booking_id)
        grants = self._store.list_grants_for_booking(booking_id)
        view = view_lead_for(installer_id, booking, grants)
        # Closed leads stay visible to the installers who bought them.
        if not booking.is_lead_open and not view.purchased:
            raise LeadNotFound(booking_id, f"Lead is no longer available (booking status: {booking.status.value})")
        return view

    def has_grant(self, installer_id: UUID, booking_id: UUID) -> bool:
        return self._store.get_grant(installer_id, booking_id) is not None

    def get_contact_details(self, installer_id: UUID, booking_id: UUID) -> CustomerContact:
        if not self.has_grant(installer_id, booking_id):
            raise Unauthorized(
                "Purchase this lead to see the customer's contact details",
                installer_id=str(installer_id),
                booking_id=str(booking_id),
            )
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise LeadNotFound(booking_id)
        return booking.contact

    def list_purchased_leads(self, installer_id: UUID) -> List[PurchasedLead]:
        """Leads bought by the installer, most recent purchase first."""

        purchased: List[PurchasedLead] = []
        for grant in self._store.list_grants_for_installer(installer_id):
            booking = self._store.get_booking(grant.booking_id)
            if booking is None:
                raise RuntimeError(f"Booking not found for grant {grant.grant_id}: {grant.booking_id}")
            purchased.append(PurchasedLead(booking=booking, grant=grant))
        return purchased

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------
    def purchase_lead(self, installer_id: UUID, booking_id: UUID) -> PurchaseResult:
        """
        Buy access to a lead.

        Raises:
            LeadNotFound: unknown booking or closed lead
            AlreadyPurchased: the installer already holds a grant
            WalletNotFound: the installer was never onboarded
            InsufficientFunds: nothing was charged or consumed
        """

        try:
            plan = self._store.purchase_lead(installer_id, booking_id, self._vouchers.enabled, self._clock())
        except InsufficientFunds as e:
            logger.info(
                "Lead purchase declined: insufficient funds",
                extra={
                    "installer_id": str(installer_id),
                    "booking_id": str(booking_id),
                    "required": str(e.required),
                    "available": str(e.available),
                },
            )
            raise
        except (AlreadyPurchased, LeadNotFound) as e:
            logger.info(
                "Lead purchase rejected",
                extra={"installer_id": str(installer_id), "booking_id": str(booking_id), "error": e.code},
            )
            raise

        logger.info(
            "Lead purchased",
            extra={
                "installer_id": str(installer_id),
                "booking_id": str(booking_id),
                "lead_fee": str(plan.grant.lead_fee),
                "voucher_discount": str(plan.voucher_discount),
                "final_cost": str(plan.final_cost),
                "new_balance": str(plan.wallet.balance),
            },
        )
        dispatch_safely(
            self._notifier,
            NotificationEvent(
                NotificationType.LEAD_PURCHASED,
                booking_id,
                plan.grant.granted_at,
                installer_id=installer_id,
                payload={"final_cost": str(plan.final_cost)},
            ),
        )

        return PurchaseResult(
            grant=plan.grant,
            final_cost=plan.final_cost,
            voucher_discount=plan.voucher_discount,
            new_balance=plan.wallet.balance,
            contact=plan.booking.contact,
        )


__all__ = [
    "BookingIntake",
    "LeadAllocationService",
    "PurchaseResult",
    "PurchasedLead",
    "generate_qr_code",
]
