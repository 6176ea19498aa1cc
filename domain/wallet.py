"""
Domain: Installer wallets and the credit ledger.

Rules implemented here:
- One WalletAccount per installer; balance is never negative.
- A debit larger than the balance is rejected (InsufficientFunds), never clamped.
- Every balance change is described by an append-only LedgerEntry.
- Amounts are credits (Decimal, two places) and must be strictly positive.

This module contains only pure domain entities: no I/O, no locking. Atomicity
is the repository's job; these types only decide what the new state is.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from .errors import InsufficientFunds, InvalidAmount
from .time import require_utc_timestamp

_CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_credits(value: Any) -> Decimal:
    """Normalize a numeric value to a two-place credit amount."""

    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(value, f"Not a valid credit amount: {value!r}") from None


def require_positive_amount(value: Any) -> Decimal:
    amount = to_credits(value)
    if amount <= ZERO:
        raise InvalidAmount(amount)
    return amount


class LedgerEntryType(str, Enum):
    LEAD_PURCHASE = "lead_purchase"
    CREDIT_PURCHASE = "credit_purchase"  # wallet top-up through the payment gateway
    REFUND = "refund"


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """
    Immutable ledger line.

    amount is signed: negative for debits, positive for credits.
    balance_after is the wallet balance once this entry was applied.
    """

    entry_id: UUID
    installer_id: UUID
    entry_type: LedgerEntryType
    amount: Decimal
    balance_after: Decimal
    description: str
    created_at: datetime
    reference_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    @property
    def is_debit(self) -> bool:
        return self.amount < ZERO


@dataclass(frozen=True, slots=True)
class WalletAccount:
    """
    Spendable credit balance of one installer.

    Transitions return new instances; the original is never modified.
    """

    installer_id: UUID
    balance: Decimal
    created_at: datetime
    updated_at: datetime
    total_spent: Decimal = ZERO
    total_credited: Decimal = ZERO

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        if self.balance < ZERO:
            raise ValueError("balance must be >= 0")

    @staticmethod
    def open(installer_id: UUID, at: datetime, opening_balance: Any = ZERO) -> "WalletAccount":
        balance = to_credits(opening_balance)
        return WalletAccount(
            installer_id=installer_id,
            balance=balance,
            created_at=at,
            updated_at=at,
            total_credited=balance,
        )

    def debit(self, amount: Any, at: datetime) -> "WalletAccount":
        """Return the wallet after removing `amount`; raises InsufficientFunds."""

        amount = require_positive_amount(amount)
        require_utc_timestamp("at", at)
        if amount > self.balance:
            raise InsufficientFunds(self.installer_id, required=amount, available=self.balance)
        return replace(
            self,
            balance=self.balance - amount,
            total_spent=self.total_spent + amount,
            updated_at=at,
        )

    def credit(self, amount: Any, at: datetime) -> "WalletAccount":
        amount = require_positive_amount(amount)
        require_utc_timestamp("at", at)
        return replace(
            self,
            balance=self.balance + amount,
            total_credited=self.total_credited + amount,
            updated_at=at,
        )


def ledger_entry_for(
    *,
    entry_id: UUID,
    wallet_after: WalletAccount,
    entry_type: LedgerEntryType,
    signed_amount: Decimal,
    description: str,
    reference_id: Optional[str],
    at: datetime,
) -> LedgerEntry:
    """Build the ledger line that records a wallet transition."""

    return LedgerEntry(
        entry_id=entry_id,
        installer_id=wallet_after.installer_id,
        entry_type=entry_type,
        amount=signed_amount,
        balance_after=wallet_after.balance,
        description=description,
        reference_id=reference_id,
        created_at=at,
    )


__all__ = [
    "ZERO",
    "LedgerEntry",
    "LedgerEntryType",
    "WalletAccount",
    "ledger_entry_for",
    "require_positive_amount",
    "to_credits",
]
