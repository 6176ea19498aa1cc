"""
Tests for `domain/voucher.py` and `services/voucher_engine.py`.

Covers contract rules:
- A voucher moves eligible -> consumed exactly once.
- The discount is min(voucher amount, lead fee).
- Eligibility reports a reason when the voucher cannot be used.
- Under concurrency, exactly one consumer wins.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from domain.errors import VoucherAlreadyConsumed
from domain.voucher import VoucherGrant, VoucherStatus

INSTALLER = UUID("00000000-0000-0000-0000-000000000102")
T0 = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


def test_consume_returns_discount_capped_at_lead_fee() -> None:
    voucher = VoucherGrant.issue(INSTALLER, Decimal("40"), T0)

    consumed, discount = voucher.consume(Decimal("25.00"), T0)

    assert discount == Decimal("25.00")
    assert consumed.status is VoucherStatus.CONSUMED
    assert consumed.consumed_at == T0
    assert voucher.is_eligible is True


def test_consume_returns_full_amount_when_fee_is_higher() -> None:
    voucher = VoucherGrant.issue(INSTALLER, Decimal("40"), T0)

    _, discount = voucher.consume(Decimal("55.00"), T0)

    assert discount == Decimal("40.00")


def test_consumed_voucher_cannot_be_consumed_again() -> None:
    consumed, _ = VoucherGrant.issue(INSTALLER, Decimal("40"), T0).consume(Decimal("30"), T0)

    with pytest.raises(VoucherAlreadyConsumed):
        consumed.consume(Decimal("30"), T0)


def test_eligibility_for_fresh_installer(marketplace, installer_factory) -> None:
    installer_id = installer_factory()

    eligibility = marketplace.vouchers.check_eligibility(installer_id)

    assert eligibility.eligible is True
    assert eligibility.amount == Decimal("40.00")
    assert eligibility.reason is None


def test_eligibility_without_grant(marketplace) -> None:
    eligibility = marketplace.vouchers.check_eligibility(uuid4())

    assert eligibility.eligible is False
    assert eligibility.reason == "No first lead voucher issued"


def test_eligibility_when_voucher_system_disabled(marketplace_factory, installer_factory) -> None:
    installer_id = installer_factory()
    disabled = marketplace_factory(first_lead_voucher_enabled=False)

    eligibility = disabled.vouchers.check_eligibility(installer_id)

    assert eligibility.eligible is False
    assert eligibility.reason == "Voucher system is disabled"


def test_engine_consume_then_eligibility_reports_used(marketplace, installer_factory) -> None:
    installer_id = installer_factory()

    assert marketplace.vouchers.consume(installer_id, Decimal("30.00")) == Decimal("30.00")

    eligibility = marketplace.vouchers.check_eligibility(installer_id)
    assert eligibility.eligible is False
    assert eligibility.reason == "First lead voucher has already been used"
    with pytest.raises(VoucherAlreadyConsumed):
        marketplace.vouchers.consume(installer_id, Decimal("30.00"))


def test_concurrent_consumption_has_exactly_one_winner(marketplace, installer_factory) -> None:
    installer_id = installer_factory()

    def attempt(_):
        try:
            return marketplace.vouchers.consume(installer_id, Decimal("30.00"))
        except VoucherAlreadyConsumed:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(16)))

    winners = [r for r in results if r is not None]
    assert winners == [Decimal("30.00")]
    assert marketplace.store.get_voucher(installer_id).status is VoucherStatus.CONSUMED
