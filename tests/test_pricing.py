"""
Tests for `services/pricing_service.py`.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from services.pricing_service import DEFAULT_LEAD_FEE, calculate_lead_fee, normalize_addon


@pytest.mark.parametrize(
    "service_type, fee",
    [
        ("bronze", "20.00"),
        ("silver", "25.00"),
        ("Gold", "30.00"),
        (" emergency ", "40.00"),
        ("table-top-small", "12.00"),
    ],
)
def test_base_fee_by_service_type(service_type: str, fee: str) -> None:
    assert calculate_lead_fee(service_type).total_fee == Decimal(fee)


def test_unknown_service_type_uses_default_fee() -> None:
    assert calculate_lead_fee("ceiling-projector").total_fee == DEFAULT_LEAD_FEE


def test_addons_and_referral_subsidy_are_added() -> None:
    quote = calculate_lead_fee(
        "silver",
        ["Cable Concealment", "soundbar-mounting", "Unknown Extra"],
        referral_discount=Decimal("10"),
    )

    assert quote.base_fee == Decimal("25.00")
    assert quote.addon_fees == Decimal("12.00")
    assert quote.subsidy_amount == Decimal("10.00")
    assert quote.total_fee == Decimal("47.00")
    assert quote.breakdown == (
        "Base service: 25.00",
        "cable-concealment: 5.00",
        "soundbar-mounting: 7.00",
        "Referral subsidy: 10.00",
    )


def test_negative_referral_discount_is_rejected() -> None:
    with pytest.raises(ValueError):
        calculate_lead_fee("silver", referral_discount=Decimal("-5"))


def test_normalize_addon() -> None:
    assert normalize_addon("  Additional   Devices ") == "additional-devices"
