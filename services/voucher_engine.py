"""
First-lead voucher engine.

An installer receives one voucher at onboarding. It discounts one lead
purchase by min(voucher amount, lead fee) and is then consumed for good.
The whole system can be switched off with FIRST_LEAD_VOUCHER_ENABLED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from domain.errors import VoucherAlreadyConsumed
from domain.time import utc_now
from domain.wallet import ZERO, to_credits
from repositories.store import MarketplaceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VoucherEligibility:
    eligible: bool
    amount: Decimal
    reason: Optional[str] = None


class VoucherEngine:
    def __init__(
        self,
        store: MarketplaceStore,
        enabled: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._enabled

    def check_eligibility(self, installer_id: UUID) -> VoucherEligibility:
        if not self._enabled:
            return VoucherEligibility(eligible=False, amount=ZERO, reason="Voucher system is disabled")

        voucher = self._store.get_voucher(installer_id)
        if voucher is None:
            return VoucherEligibility(eligible=False, amount=ZERO, reason="No first lead voucher issued")
        if not voucher.is_eligible:
            return VoucherEligibility(
                eligible=False, amount=ZERO, reason="First lead voucher has already been used"
            )
        return VoucherEligibility(eligible=True, amount=voucher.amount)

    def consume(self, installer_id: UUID, lead_fee: Decimal, booking_id: Optional[UUID] = None) -> Decimal:
        """
        Consume the installer's voucher and return the discount.

        Exactly one of several concurrent callers succeeds; the others get
        VoucherAlreadyConsumed.
        """

        if not self._enabled:
            raise VoucherAlreadyConsumed(installer_id)

        discount = self._store.consume_voucher(installer_id, to_credits(lead_fee), booking_id, self._clock())
        logger.info(
            "First lead voucher consumed",
            extra={
                "installer_id": str(installer_id),
                "booking_id": str(booking_id) if booking_id else None,
                "discount": str(discount),
            },
        )
        return discount


__all__ = ["VoucherEligibility", "VoucherEngine"]
