"""
Installer onboarding.

Creates an installer's wallet and, when the voucher system is enabled, the
first-lead voucher. Both are created together; an installer is onboarded
only once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

from domain.time import utc_now
from domain.voucher import VoucherGrant
from domain.wallet import ZERO, WalletAccount, to_credits
from repositories.store import MarketplaceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OnboardingResult:
    wallet: WalletAccount
    voucher: Optional[VoucherGrant]


class OnboardingService:
    def __init__(
        self,
        store: MarketplaceStore,
        vouchers_enabled: bool,
        voucher_amount: Decimal,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._vouchers_enabled = vouchers_enabled
        self._voucher_amount = voucher_amount
        self._clock = clock

    def onboard_installer(self, installer_id: UUID, opening_balance: Any = ZERO) -> OnboardingResult:
        """
        Raises:
            InstallerAlreadyRegistered: the installer already has a wallet
            ValueError: opening_balance is negative
        """

        balance = to_credits(opening_balance)
        if balance < ZERO:
            raise ValueError("opening_balance must be >= 0")

        now = self._clock()
        wallet = WalletAccount.open(installer_id, now, balance)
        voucher = VoucherGrant.issue(installer_id, self._voucher_amount, now) if self._vouchers_enabled else None

        self._store.register_installer(wallet, voucher)
        logger.info(
            "Installer onboarded",
            extra={
                "installer_id": str(installer_id),
                "opening_balance": str(balance),
                "voucher_amount": str(voucher.amount) if voucher else None,
            },
        )
        return OnboardingResult(wallet=wallet, voucher=voucher)


__all__ = ["OnboardingResult", "OnboardingService"]
