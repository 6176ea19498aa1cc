"""
Domain: First-lead vouchers.

A VoucherGrant is issued once, at installer onboarding, and moves from
ELIGIBLE to CONSUMED exactly once. It is never re-issued.

The discount applied on consumption is min(voucher amount, lead fee).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import VoucherAlreadyConsumed
from .time import require_utc_timestamp
from .wallet import ZERO, to_credits


class VoucherStatus(str, Enum):
    ELIGIBLE = "eligible"
    CONSUMED = "consumed"


@dataclass(frozen=True, slots=True)
class VoucherGrant:
    installer_id: UUID
    amount: Decimal
    status: VoucherStatus
    created_at: datetime
    consumed_at: Optional[datetime] = None
    consumed_booking_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.consumed_at is not None:
            require_utc_timestamp("consumed_at", self.consumed_at)
        if self.amount < ZERO:
            raise ValueError("voucher amount must be >= 0")

    @staticmethod
    def issue(installer_id: UUID, amount: Decimal, at: datetime) -> "VoucherGrant":
        return VoucherGrant(
            installer_id=installer_id,
            amount=to_credits(amount),
            status=VoucherStatus.ELIGIBLE,
            created_at=at,
        )

    @property
    def is_eligible(self) -> bool:
        return self.status is VoucherStatus.ELIGIBLE

    def discount_for(self, lead_fee: Decimal) -> Decimal:
        """Discount this voucher would apply to `lead_fee` (no state change)."""

        return min(self.amount, to_credits(lead_fee))

    def consume(
        self,
        lead_fee: Decimal,
        at: datetime,
        booking_id: Optional[UUID] = None,
    ) -> tuple["VoucherGrant", Decimal]:
        """
        Mark the voucher consumed.

        Returns the consumed grant and the discount applied.
        Raises VoucherAlreadyConsumed if it was used before.
        """

        require_utc_timestamp("at", at)
        if not self.is_eligible:
            raise VoucherAlreadyConsumed(self.installer_id)

        consumed = replace(
            self,
            status=VoucherStatus.CONSUMED,
            consumed_at=at,
            consumed_booking_id=booking_id,
        )
        return consumed, self.discount_for(lead_fee)


__all__ = ["VoucherGrant", "VoucherStatus"]
