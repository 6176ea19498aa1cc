"""
Wallet ledger service.

Installer credit balances and their append-only ledger. Every balance change
goes through the store's atomic debit/credit, which serializes operations per
installer and records a LedgerEntry in the same step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, List, Optional
from uuid import UUID

from domain.errors import WalletNotFound
from domain.time import utc_now
from domain.wallet import LedgerEntry, LedgerEntryType, WalletAccount, require_positive_amount
from repositories.store import MarketplaceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalletSummary:
    installer_id: UUID
    balance: Decimal
    total_spent: Decimal
    total_credited: Decimal
    updated_at: datetime


class WalletLedger:
    def __init__(self, store: MarketplaceStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    def _wallet(self, installer_id: UUID) -> WalletAccount:
        wallet = self._store.get_wallet(installer_id)
        if wallet is None:
            raise WalletNotFound(installer_id)
        return wallet

    def get_balance(self, installer_id: UUID) -> Decimal:
        return self._wallet(installer_id).balance

    def get_summary(self, installer_id: UUID) -> WalletSummary:
        wallet = self._wallet(installer_id)
        return WalletSummary(
            installer_id=wallet.installer_id,
            balance=wallet.balance,
            total_spent=wallet.total_spent,
            total_credited=wallet.total_credited,
            updated_at=wallet.updated_at,
        )

    def debit(
        self,
        installer_id: UUID,
        amount: Any,
        reason: LedgerEntryType,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Remove `amount` credits from the wallet.

        Raises:
            InvalidAmount: amount is not strictly positive
            WalletNotFound: installer has no wallet
            InsufficientFunds: amount exceeds the balance (nothing changes)
        """

        amount = require_positive_amount(amount)
        entry = self._store.debit_wallet(
            installer_id,
            amount,
            reason,
            description or f"Wallet debit ({reason.value})",
            reference_id,
            self._clock(),
        )
        logger.info(
            "Wallet debited",
            extra={
                "installer_id": str(installer_id),
                "amount": str(amount),
                "entry_type": reason.value,
                "balance_after": str(entry.balance_after),
            },
        )
        return entry

    def credit(
        self,
        installer_id: UUID,
        amount: Any,
        reason: LedgerEntryType,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        amount = require_positive_amount(amount)
        entry = self._store.credit_wallet(
            installer_id,
            amount,
            reason,
            description or f"Wallet credit ({reason.value})",
            reference_id,
            self._clock(),
        )
        logger.info(
            "Wallet credited",
            extra={
                "installer_id": str(installer_id),
                "amount": str(amount),
                "entry_type": reason.value,
                "balance_after": str(entry.balance_after),
            },
        )
        return entry

    def top_up(self, installer_id: UUID, amount: Any, payment_reference: Optional[str] = None) -> LedgerEntry:
        """Credits bought through the payment gateway."""

        return self.credit(
            installer_id,
            amount,
            LedgerEntryType.CREDIT_PURCHASE,
            description="Credit purchase",
            reference_id=payment_reference,
        )

    def refund(self, installer_id: UUID, amount: Any, booking_id: UUID) -> LedgerEntry:
        return self.credit(
            installer_id,
            amount,
            LedgerEntryType.REFUND,
            description=f"Refund for booking {booking_id}",
            reference_id=str(booking_id),
        )

    def get_transaction_history(self, installer_id: UUID, limit: int = 50) -> List[LedgerEntry]:
        """Ledger entries, newest first."""

        self._wallet(installer_id)
        if limit <= 0:
            raise ValueError("limit must be > 0")
        return self._store.list_ledger_entries(installer_id, limit)


__all__ = ["WalletLedger", "WalletSummary"]
