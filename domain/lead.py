"""
Domain: Leads and lead purchases.

Rules implemented here:
- A Lead is a purchasable view over a Booking; it has no life of its own.
- A lead is open while its booking is `open` or `assigned`. Confirmation
  (an accepted schedule) establishes exclusivity and closes it.
- Several installers may each buy the same open lead (competing proposals).
- An installer buys a given lead at most once: buying is not re-chargeable.
- The final cost is the lead fee minus the first-lead voucher discount
  (floored at zero); a positive final cost is debited from the wallet.

`plan_purchase` decides the complete outcome of a purchase from a consistent
snapshot. Repositories apply the resulting PurchasePlan atomically, so either
every part of it takes effect (voucher, debit, grant, booking) or none does.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple
from uuid import UUID

from .booking import Booking, CustomerContact
from .errors import AlreadyPurchased, LeadNotFound, WalletNotFound
from .time import require_utc_timestamp
from .voucher import VoucherGrant
from .wallet import ZERO, LedgerEntry, LedgerEntryType, WalletAccount, ledger_entry_for


@dataclass(frozen=True, slots=True)
class AssignmentGrant:
    """
    Record of one successful lead purchase.

    Holding a grant is what lets an installer see the customer's contact
    details and propose schedules for the booking.
    """

    grant_id: UUID
    booking_id: UUID
    installer_id: UUID
    lead_fee: Decimal
    voucher_discount: Decimal
    amount_charged: Decimal
    granted_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("granted_at", self.granted_at)


@dataclass(frozen=True, slots=True)
class Lead:
    booking_id: UUID
    fee: Decimal
    purchaser_ids: Tuple[UUID, ...]
    is_open: bool

    @staticmethod
    def from_booking(booking: Booking, grants: Iterable[AssignmentGrant]) -> "Lead":
        return Lead(
            booking_id=booking.booking_id,
            fee=booking.lead_fee,
            purchaser_ids=tuple(g.installer_id for g in grants if g.booking_id == booking.booking_id),
            is_open=booking.is_lead_open,
        )

    def purchased_by(self, installer_id: UUID) -> bool:
        return installer_id in self.purchaser_ids


@dataclass(frozen=True, slots=True)
class LeadView:
    """What an installer sees when browsing a lead."""

    booking: Booking
    lead: Lead
    contact: CustomerContact
    purchased: bool


def view_lead_for(installer_id: UUID, booking: Booking, grants: Iterable[AssignmentGrant]) -> LeadView:
    """Contact details are only revealed to installers who bought the lead."""

    lead = Lead.from_booking(booking, grants)
    purchased = lead.purchased_by(installer_id)
    return LeadView(
        booking=booking,
        lead=lead,
        contact=booking.contact if purchased else booking.contact.redacted(),
        purchased=purchased,
    )


@dataclass(frozen=True, slots=True)
class PurchasePlan:
    """Everything a successful purchase changes, to be committed atomically."""

    grant: AssignmentGrant
    booking: Booking
    wallet: WalletAccount
    voucher: Optional[VoucherGrant]  # consumed voucher, None when no voucher was used
    ledger_entry: Optional[LedgerEntry]  # None when nothing was debited

    @property
    def final_cost(self) -> Decimal:
        return self.grant.amount_charged

    @property
    def voucher_discount(self) -> Decimal:
        return self.grant.voucher_discount


def plan_purchase(
    *,
    installer_id: UUID,
    booking: Optional[Booking],
    booking_id: UUID,
    existing_grant: Optional[AssignmentGrant],
    wallet: Optional[WalletAccount],
    voucher: Optional[VoucherGrant],
    vouchers_enabled: bool,
    grant_id: UUID,
    entry_id: UUID,
    at: datetime,
) -> PurchasePlan:
    """
    Decide the outcome of `installer_id` buying the lead for `booking_id`.

    Raises (nothing is planned in any of these cases):
        LeadNotFound: booking unknown, or its lead is closed
        AlreadyPurchased: a grant already exists for this installer and booking
        WalletNotFound: installer was never onboarded
        InsufficientFunds: final cost exceeds the wallet balance
    """

    require_utc_timestamp("at", at)

    if booking is None:
        raise LeadNotFound(booking_id)
    if not booking.is_lead_open:
        raise LeadNotFound(booking_id, f"Lead is no longer available (booking status: {booking.status.value})")
    if existing_grant is not None:
        raise AlreadyPurchased(installer_id, booking_id)
    if wallet is None:
        raise WalletNotFound(installer_id)

    lead_fee = booking.lead_fee
    final_cost = lead_fee
    discount = ZERO
    consumed_voucher: Optional[VoucherGrant] = None

    if vouchers_enabled and voucher is not None and voucher.is_eligible:
        consumed_voucher, discount = voucher.consume(lead_fee, at, booking_id=booking_id)
        final_cost = max(ZERO, lead_fee - discount)

    wallet_after = wallet
    entry: Optional[LedgerEntry] = None
    if final_cost > ZERO:
        # Raises InsufficientFunds before anything is planned, which is what
        # rolls back the voucher consumption above.
        wallet_after = wallet.debit(final_cost, at)
        entry = ledger_entry_for(
            entry_id=entry_id,
            wallet_after=wallet_after,
            entry_type=LedgerEntryType.LEAD_PURCHASE,
            signed_amount=-final_cost,
            description=f"Lead access fee for booking {booking_id}",
            reference_id=str(booking_id),
            at=at,
        )

    grant = AssignmentGrant(
        grant_id=grant_id,
        booking_id=booking_id,
        installer_id=installer_id,
        lead_fee=lead_fee,
        voucher_discount=discount,
        amount_charged=final_cost,
        granted_at=at,
    )

    return PurchasePlan(
        grant=grant,
        booking=booking.with_installer_engaged(at),
        wallet=wallet_after,
        voucher=consumed_voucher,
        ledger_entry=entry,
    )


__all__ = [
    "AssignmentGrant",
    "Lead",
    "LeadView",
    "PurchasePlan",
    "plan_purchase",
    "view_lead_for",
]
