"""
Lead fee pricing.

Calculates what an installer pays to access a booking's lead. The fee is
fixed once, at booking intake, and stored on the booking.

    total_fee = base fee (by service type)
              + add-on fees
              + referral subsidy (the customer's referral discount, carried
                by the installer)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Tuple

from domain.wallet import ZERO, to_credits

SERVICE_LEAD_FEES: Mapping[str, Decimal] = {
    "table-top-small": Decimal("12.00"),
    "table-top-medium": Decimal("15.00"),
    "table-top-large": Decimal("18.00"),
    "bronze": Decimal("20.00"),
    "silver": Decimal("25.00"),
    "gold": Decimal("30.00"),
    "platinum": Decimal("35.00"),
    "emergency": Decimal("40.00"),
    "weekend": Decimal("30.00"),
}
DEFAULT_LEAD_FEE = Decimal("15.00")

ADDON_LEAD_FEES: Mapping[str, Decimal] = {
    "cable-concealment": Decimal("5.00"),
    "soundbar-mounting": Decimal("7.00"),
    "additional-devices": Decimal("3.00"),
}


@dataclass(frozen=True, slots=True)
class LeadFeeQuote:
    """
    Lead fee with its itemized breakdown.

    breakdown holds human-readable lines, e.g. ("Base service: 25.00",
    "cable-concealment: 5.00").
    """

    base_fee: Decimal
    addon_fees: Decimal
    subsidy_amount: Decimal
    total_fee: Decimal
    breakdown: Tuple[str, ...]


def normalize_addon(name: str) -> str:
    """'Cable Concealment' -> 'cable-concealment'."""

    return "-".join(name.strip().lower().split())


def calculate_lead_fee(
    service_type: str,
    addons: Iterable[str] = (),
    referral_discount: Any = ZERO,
) -> LeadFeeQuote:
    """
    Calculate the lead fee for a booking.

    Unknown service types fall back to DEFAULT_LEAD_FEE; unknown add-ons add
    nothing.

    Example:
        quote = calculate_lead_fee("silver", ["Cable Concealment"])
        # quote.total_fee == Decimal("30.00")
    """

    base_fee = SERVICE_LEAD_FEES.get(service_type.strip().lower(), DEFAULT_LEAD_FEE)
    breakdown = [f"Base service: {base_fee}"]

    addon_fees = ZERO
    for addon in addons:
        key = normalize_addon(addon)
        fee = ADDON_LEAD_FEES.get(key)
        if fee:
            addon_fees += fee
            breakdown.append(f"{key}: {fee}")

    subsidy = to_credits(referral_discount or ZERO)
    if subsidy < ZERO:
        raise ValueError("referral_discount must be >= 0")
    if subsidy > ZERO:
        breakdown.append(f"Referral subsidy: {subsidy}")

    return LeadFeeQuote(
        base_fee=base_fee,
        addon_fees=addon_fees,
        subsidy_amount=subsidy,
        total_fee=base_fee + addon_fees + subsidy,
        breakdown=tuple(breakdown),
    )


__all__ = [
    "ADDON_LEAD_FEES",
    "DEFAULT_LEAD_FEE",
    "LeadFeeQuote",
    "SERVICE_LEAD_FEES",
    "calculate_lead_fee",
    "normalize_addon",
]
