"""
CSV export service for purchased leads.

Generates CSV files containing full customer and job details for every lead
an installer has purchased.

Security:
- Authorization: only leads the installer holds a grant for are exported
- CSV Injection Prevention: Sanitizes all fields to prevent formula execution
- Security Logging: Logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
import re
from io import StringIO
from typing import List
from uuid import UUID

from services.lead_allocation_service import LeadAllocationService, PurchasedLead

logger = logging.getLogger(__name__)

_DANGEROUS_LEADING_CHARS = {"=", "+", "-", "@", "\t", "\r"}

# "+353 87 123 4567", "+1 (555) 010-9999": digits and separators only, no formula.
_INTERNATIONAL_PHONE = re.compile(r"\+[0-9][0-9 ()\-]*")

_HEADER = [
    "Booking ID",
    "QR Code",
    "Purchased At",
    "Lead Fee",
    "Voucher Discount",
    "Amount Charged",
    "Booking Status",
    # Customer
    "Customer Name",
    "Email",
    "Phone",
    "Address",
    # Job
    "Service Type",
    "TV Size",
    "Wall Type",
    "Mount Type",
    "Add-ons",
    "Preferred Date",
    "Preferred Time",
    "Scheduled Date",
    "Scheduled Time",
    "Customer Notes",
]


def sanitize_csv_field(value: object, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    If dangerous characters are found and stripped, a warning is logged for
    security monitoring.

    Example:
        sanitize_csv_field("=1+1", "customer_name")
        # Returns "1+1" and logs warning about stripped "=" character
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text

    stripped_chars = []
    while text and text[0] in _DANGEROUS_LEADING_CHARS:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention",
            },
        )

    return text


def sanitize_phone_field(value: object) -> str:
    """
    Sanitize a phone number, keeping the leading "+" of international numbers.

    Anything that is not a plain international number goes through
    `sanitize_csv_field`.
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    if _INTERNATIONAL_PHONE.fullmatch(text):
        return text
    return sanitize_csv_field(text, "phone")


def _row_for(item: PurchasedLead) -> List[str]:
    booking, grant = item.booking, item.grant
    contact = booking.contact
    return [
        str(booking.booking_id),
        sanitize_csv_field(booking.qr_code, "qr_code"),
        grant.granted_at.isoformat(),
        str(grant.lead_fee),
        str(grant.voucher_discount),
        str(grant.amount_charged),
        booking.status.value,
        sanitize_csv_field(contact.name, "customer_name"),
        sanitize_csv_field(contact.email, "email"),
        sanitize_phone_field(contact.phone),
        sanitize_csv_field(contact.address, "address"),
        sanitize_csv_field(booking.service_type, "service_type"),
        str(booking.tv_size),
        sanitize_csv_field(booking.wall_type, "wall_type"),
        sanitize_csv_field(booking.mount_type, "mount_type"),
        sanitize_csv_field(", ".join(booking.addons), "addons"),
        booking.preferred_date.isoformat() if booking.preferred_date else "",
        sanitize_csv_field(booking.preferred_time, "preferred_time"),
        booking.scheduled_date.isoformat() if booking.scheduled_date else "",
        sanitize_csv_field(booking.scheduled_time, "scheduled_time"),
        sanitize_csv_field(booking.customer_notes, "customer_notes"),
    ]


class LeadExportService:
    def __init__(self, leads: LeadAllocationService) -> None:
        self._leads = leads

    def generate_csv_for_installer(self, installer_id: UUID) -> str:
        """
        CSV of every lead the installer purchased, most recent first.

        Only grant-holding leads are listed, so an installer can never export
        another installer's customers. An installer with no purchases gets a
        header-only file.
        """

        purchased = self._leads.list_purchased_leads(installer_id)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(_HEADER)
        for item in purchased:
            writer.writerow(_row_for(item))

        logger.info(
            "Purchased leads exported",
            extra={"installer_id": str(installer_id), "rows": len(purchased)},
        )
        return output.getvalue()


__all__ = ["LeadExportService", "sanitize_csv_field", "sanitize_phone_field"]
