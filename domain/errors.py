"""
Domain errors for the lead marketplace.

Every error is recoverable from the caller's point of view: it carries a
stable `code` (used by the API layer), a human-readable message and a
`context` mapping with enough detail to retry or correct the request
(e.g. top up the wallet, refresh the proposal list).

Persistence failures are NOT modelled here; repositories raise RuntimeError
for those.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


class MarketplaceError(Exception):
    """Base class for recoverable marketplace errors."""

    code: str = "MARKETPLACE_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class InsufficientFunds(MarketplaceError):
    """Raised when a debit would drive a wallet balance below zero."""

    code = "INSUFFICIENT_FUNDS"

    def __init__(self, installer_id: UUID, required: Decimal, available: Decimal):
        self.installer_id = installer_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient wallet balance. Required: {required}, Available: {available}",
            installer_id=str(installer_id),
            required=str(required),
            available=str(available),
        )


class VoucherAlreadyConsumed(MarketplaceError):
    """Raised when an installer's first-lead voucher has already been used."""

    code = "VOUCHER_ALREADY_CONSUMED"

    def __init__(self, installer_id: UUID):
        self.installer_id = installer_id
        super().__init__(
            "First lead voucher has already been used",
            installer_id=str(installer_id),
        )


class LeadNotFound(MarketplaceError):
    """Raised when a booking has no open lead (unknown, confirmed, cancelled...)."""

    code = "LEAD_NOT_FOUND"

    def __init__(self, booking_id: UUID, reason: str = "Lead not found"):
        self.booking_id = booking_id
        super().__init__(reason, booking_id=str(booking_id))


class AlreadyPurchased(MarketplaceError):
    """Raised when an installer tries to buy a lead they already own."""

    code = "ALREADY_PURCHASED"

    def __init__(self, installer_id: UUID, booking_id: UUID):
        self.installer_id = installer_id
        self.booking_id = booking_id
        super().__init__(
            "Lead already purchased by this installer",
            installer_id=str(installer_id),
            booking_id=str(booking_id),
        )


class ProposalNotPending(MarketplaceError):
    """Raised when a proposal has already been accepted, rejected or superseded."""

    code = "PROPOSAL_NOT_PENDING"

    def __init__(self, proposal_id: UUID, status: str):
        self.proposal_id = proposal_id
        self.status = status
        super().__init__(
            f"Proposal is no longer pending (status: {status})",
            proposal_id=str(proposal_id),
            status=status,
        )


class Unauthorized(MarketplaceError):
    """Raised when a party acts on a booking it has no right to act on."""

    code = "UNAUTHORIZED"


class BookingNotFound(MarketplaceError):
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: Optional[UUID] = None, *, qr_code: Optional[str] = None):
        self.booking_id = booking_id
        if qr_code is not None:
            super().__init__("No booking matches this QR code", qr_code=qr_code)
        else:
            super().__init__("Booking not found", booking_id=str(booking_id))


class ProposalNotFound(MarketplaceError):
    code = "PROPOSAL_NOT_FOUND"

    def __init__(self, proposal_id: UUID):
        self.proposal_id = proposal_id
        super().__init__("Schedule proposal not found", proposal_id=str(proposal_id))


class WalletNotFound(MarketplaceError):
    code = "WALLET_NOT_FOUND"

    def __init__(self, installer_id: UUID):
        self.installer_id = installer_id
        super().__init__("Wallet not found", installer_id=str(installer_id))


class JobAssignmentNotFound(MarketplaceError):
    code = "JOB_ASSIGNMENT_NOT_FOUND"

    def __init__(self, booking_id: UUID):
        self.booking_id = booking_id
        super().__init__("No installer has been assigned to this booking", booking_id=str(booking_id))


class InstallerAlreadyRegistered(MarketplaceError):
    code = "INSTALLER_ALREADY_REGISTERED"

    def __init__(self, installer_id: UUID):
        self.installer_id = installer_id
        super().__init__("Installer already has a wallet", installer_id=str(installer_id))


class BookingNotSchedulable(MarketplaceError):
    """Raised when a booking is in progress, completed or cancelled."""

    code = "BOOKING_NOT_SCHEDULABLE"

    def __init__(self, booking_id: UUID, status: str):
        self.booking_id = booking_id
        self.status = status
        super().__init__(
            f"Booking can no longer be scheduled (status: {status})",
            booking_id=str(booking_id),
            status=status,
        )


class InvalidStatusTransition(MarketplaceError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            entity=entity,
            current=current,
            target=target,
        )


class InvalidProposal(MarketplaceError):
    code = "INVALID_PROPOSAL"


class InvalidAmount(MarketplaceError):
    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any, reason: Optional[str] = None):
        super().__init__(reason or f"Amount must be positive: {amount}", amount=str(amount))


__all__ = [
    "MarketplaceError",
    "InsufficientFunds",
    "VoucherAlreadyConsumed",
    "LeadNotFound",
    "AlreadyPurchased",
    "ProposalNotPending",
    "Unauthorized",
    "BookingNotFound",
    "ProposalNotFound",
    "WalletNotFound",
    "JobAssignmentNotFound",
    "InstallerAlreadyRegistered",
    "BookingNotSchedulable",
    "InvalidStatusTransition",
    "InvalidProposal",
    "InvalidAmount",
]
