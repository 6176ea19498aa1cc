"""
Tests for `domain/wallet.py`.

Covers contract rules:
- Balance is never negative; an oversized debit raises InsufficientFunds.
- Amounts are normalized to two places and must be strictly positive.
- Transitions return new instances; the original wallet is unchanged.
- Timestamps must be UTC.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.errors import InsufficientFunds, InvalidAmount
from domain.wallet import LedgerEntryType, WalletAccount, ledger_entry_for, to_credits

INSTALLER = UUID("00000000-0000-0000-0000-000000000101")
T0 = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


def test_open_wallet_records_opening_balance_as_credited() -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "50")

    assert wallet.balance == Decimal("50.00")
    assert wallet.total_credited == Decimal("50.00")
    assert wallet.total_spent == Decimal("0.00")


def test_debit_returns_new_wallet_and_leaves_original_unchanged() -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "50")

    after = wallet.debit(Decimal("40"), T0 + timedelta(minutes=1))

    assert after.balance == Decimal("10.00")
    assert after.total_spent == Decimal("40.00")
    assert wallet.balance == Decimal("50.00")


def test_debit_more_than_balance_raises_with_required_and_available() -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "5")

    with pytest.raises(InsufficientFunds) as exc_info:
        wallet.debit("40", T0)

    assert exc_info.value.required == Decimal("40.00")
    assert exc_info.value.available == Decimal("5.00")
    assert exc_info.value.code == "INSUFFICIENT_FUNDS"


def test_debit_of_entire_balance_is_allowed() -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "40")

    assert wallet.debit("40", T0).balance == Decimal("0.00")


@pytest.mark.parametrize("amount", ["0", "-5", "not-a-number"])
def test_non_positive_or_invalid_amounts_are_rejected(amount: str) -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "50")

    with pytest.raises(InvalidAmount):
        wallet.debit(amount, T0)
    with pytest.raises(InvalidAmount):
        wallet.credit(amount, T0)


def test_to_credits_rounds_half_up_to_cents() -> None:
    assert to_credits("10.005") == Decimal("10.01")
    assert to_credits(2.5) == Decimal("2.50")


def test_wallet_timestamps_must_be_utc() -> None:
    with pytest.raises(ValueError):
        WalletAccount.open(INSTALLER, datetime(2025, 6, 10, 12, 0, 0))

    wallet = WalletAccount.open(INSTALLER, T0, "10")
    with pytest.raises(ValueError):
        wallet.credit("5", datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone(timedelta(hours=1))))


def test_wallet_is_immutable() -> None:
    wallet = WalletAccount.open(INSTALLER, T0, "10")

    with pytest.raises(FrozenInstanceError):
        wallet.balance = Decimal("1000")  # type: ignore[misc]


def test_ledger_entry_records_balance_after_and_sign() -> None:
    after = WalletAccount.open(INSTALLER, T0, "50").debit("15", T0)

    entry = ledger_entry_for(
        entry_id=UUID("00000000-0000-0000-0000-000000000901"),
        wallet_after=after,
        entry_type=LedgerEntryType.LEAD_PURCHASE,
        signed_amount=Decimal("-15.00"),
        description="Lead access fee",
        reference_id=None,
        at=T0,
    )

    assert entry.balance_after == Decimal("35.00")
    assert entry.is_debit is True
    assert entry.installer_id == INSTALLER
