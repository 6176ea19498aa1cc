"""
Tests for `services/lead_export_service.py`.

Covers contract rules:
- Only leads the installer purchased are exported, with full contact details.
- Formula-triggering leading characters are stripped and logged.
- International phone numbers keep their leading "+".
"""

from __future__ import annotations

import csv
import logging
from io import StringIO

from domain.booking import CustomerContact
from services.lead_export_service import sanitize_csv_field, sanitize_phone_field


def _rows(text: str):
    return list(csv.DictReader(StringIO(text)))


def test_export_contains_only_purchased_leads(marketplace, installer_factory, booking_factory) -> None:
    installer_id = installer_factory("100")
    bought = booking_factory("silver", addons=("Cable Concealment",))
    booking_factory("gold")
    marketplace.leads.purchase_lead(installer_id, bought.booking_id)

    rows = _rows(marketplace.exports.generate_csv_for_installer(installer_id))

    assert len(rows) == 1
    row = rows[0]
    assert row["Booking ID"] == str(bought.booking_id)
    assert row["Customer Name"] == "Aoife Byrne"
    assert row["Phone"] == "+353 87 123 4567"
    assert row["Lead Fee"] == "30.00"
    assert row["Voucher Discount"] == "30.00"
    assert row["Amount Charged"] == "0.00"
    assert row["Add-ons"] == "Cable Concealment"


def test_export_without_purchases_is_header_only(marketplace, installer_factory) -> None:
    text = marketplace.exports.generate_csv_for_installer(installer_factory())

    assert text.splitlines()[0].startswith("Booking ID,QR Code")
    assert _rows(text) == []


def test_export_strips_formula_characters(marketplace, installer_factory, booking_factory) -> None:
    installer_id = installer_factory("100")
    booking = booking_factory(
        contact=CustomerContact(
            name="=HYPERLINK(\"http://evil\")",
            email="aoife@example.com",
            phone="+353 87 123 4567",
            address="@12 Main Street, Naas",
        ),
        customer_notes="-please call first",
    )
    marketplace.leads.purchase_lead(installer_id, booking.booking_id)

    row = _rows(marketplace.exports.generate_csv_for_installer(installer_id))[0]

    assert row["Customer Name"] == "HYPERLINK(\"http://evil\")"
    assert row["Phone"] == "+353 87 123 4567"
    assert row["Address"] == "12 Main Street, Naas"
    assert row["Customer Notes"] == "please call first"


def test_sanitize_logs_stripped_characters(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="services.lead_export_service"):
        assert sanitize_csv_field("=+1+1", "customer_name") == "1+1"

    assert "customer_name" in caplog.text


def test_sanitize_handles_empty_values() -> None:
    assert sanitize_csv_field(None) == ""
    assert sanitize_csv_field("") == ""
    assert sanitize_csv_field("  plain  ") == "plain"


def test_international_phone_numbers_keep_plus_sign(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="services.lead_export_service"):
        assert sanitize_phone_field("+353 87 123 4567") == "+353 87 123 4567"
        assert sanitize_phone_field(" +1 (555) 010-9999 ") == "+1 (555) 010-9999"

    assert caplog.text == ""


def test_phone_with_formula_is_still_stripped(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="services.lead_export_service"):
        assert sanitize_phone_field("=CMD|' /C calc'!A0") == "CMD|' /C calc'!A0"
        assert sanitize_phone_field("+SUM(A1:A2)") == "SUM(A1:A2)"

    assert "phone" in caplog.text
    assert sanitize_phone_field(None) == ""
