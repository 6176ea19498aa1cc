"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.booking import Booking, CustomerContact
from domain.schedule import ProposerRole, ScheduleProposal
from domain.wallet import LedgerEntry


# ============================================================================
# Booking Models
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Booking submitted by the customer intake flow."""
    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., min_length=3)
    customer_phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    service_type: str = Field(..., min_length=1, description="e.g. 'silver', 'table-top-small'")
    tv_size: int = Field(..., ge=1, description="Screen size in inches")
    wall_type: str
    mount_type: str
    total_price: Decimal = Field(..., ge=0)
    addons: List[str] = Field(default_factory=list)
    referral_discount: Decimal = Field(Decimal("0.00"), ge=0)
    preferred_date: Optional[date] = None
    preferred_time: Optional[str] = None
    customer_notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "customer_name": "Aoife Byrne",
                "customer_email": "aoife@example.com",
                "customer_phone": "+353 87 123 4567",
                "address": "12 Main Street, Naas, Co. Kildare",
                "service_type": "silver",
                "tv_size": 55,
                "wall_type": "drywall",
                "mount_type": "tilting",
                "total_price": "189.00",
                "addons": ["cable-concealment"],
                "referral_discount": "0.00",
                "preferred_date": "2025-06-14",
                "preferred_time": "morning",
            }
        }


class BookingResponse(BaseModel):
    booking_id: UUID
    qr_code: str
    status: str
    service_type: str
    total_price: Decimal
    lead_fee: Decimal
    created_at: datetime
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        return cls(
            booking_id=booking.booking_id,
            qr_code=booking.qr_code,
            status=booking.status.value,
            service_type=booking.service_type,
            total_price=booking.total_price,
            lead_fee=booking.lead_fee,
            created_at=booking.created_at,
            scheduled_date=booking.scheduled_date,
            scheduled_time=booking.scheduled_time,
        )


class TrackingResponse(BaseModel):
    """Public booking status (QR tracking)."""
    booking_id: UUID
    qr_code: str
    status: str
    service_type: str
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    installer_id: Optional[UUID] = None
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    pending_proposals: int

    class Config:
        json_schema_extra = {
            "example": {
                "booking_id": "123e4567-e89b-12d3-a456-426614174000",
                "qr_code": "BK-123E4567E8",
                "status": "installer_confirmed",
                "service_type": "silver",
                "scheduled_date": "2025-06-14",
                "scheduled_time": "9:00 AM - 11:00 AM",
                "installer_id": "123e4567-e89b-12d3-a456-426614174009",
                "assigned_at": "2025-06-10T12:00:00Z",
                "accepted_at": "2025-06-10T12:00:00Z",
                "completed_at": None,
                "pending_proposals": 0,
            }
        }


# ============================================================================
# Lead Models
# ============================================================================

class ContactResponse(BaseModel):
    name: str
    email: str
    phone: str
    address: str

    @classmethod
    def from_domain(cls, contact: CustomerContact) -> "ContactResponse":
        return cls(name=contact.name, email=contact.email, phone=contact.phone, address=contact.address)


class LeadResponse(BaseModel):
    """A lead as seen by one installer. Contact is redacted until purchased."""
    booking_id: UUID
    service_type: str
    tv_size: int
    wall_type: str
    mount_type: str
    addons: List[str]
    lead_fee: Decimal
    status: str
    is_open: bool
    purchased: bool
    purchaser_count: int
    preferred_date: Optional[date] = None
    preferred_time: Optional[str] = None
    created_at: datetime
    contact: ContactResponse


class LeadListResponse(BaseModel):
    items: List[LeadResponse]
    total_count: int


class PurchaseResponse(BaseModel):
    """Response after a successful lead purchase."""
    success: bool = True
    grant_id: UUID
    booking_id: UUID
    installer_id: UUID
    lead_fee: Decimal
    voucher_discount: Decimal
    final_cost: Decimal
    new_balance: Decimal
    purchased_at: datetime
    contact: ContactResponse

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "grant_id": "123e4567-e89b-12d3-a456-426614174003",
                "booking_id": "123e4567-e89b-12d3-a456-426614174000",
                "installer_id": "123e4567-e89b-12d3-a456-426614174009",
                "lead_fee": "30.00",
                "voucher_discount": "30.00",
                "final_cost": "0.00",
                "new_balance": "50.00",
                "purchased_at": "2025-06-10T12:00:00Z",
                "contact": {
                    "name": "Aoife Byrne",
                    "email": "aoife@example.com",
                    "phone": "+353 87 123 4567",
                    "address": "12 Main Street, Naas, Co. Kildare",
                },
            }
        }


class PurchasedLeadResponse(BaseModel):
    booking_id: UUID
    qr_code: str
    status: str
    service_type: str
    lead_fee: Decimal
    voucher_discount: Decimal
    amount_charged: Decimal
    purchased_at: datetime
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    contact: ContactResponse


class PurchasedLeadListResponse(BaseModel):
    items: List[PurchasedLeadResponse]
    total_count: int


# ============================================================================
# Wallet Models
# ============================================================================

class WalletResponse(BaseModel):
    installer_id: UUID
    balance: Decimal
    total_spent: Decimal
    total_credited: Decimal
    updated_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "installer_id": "123e4567-e89b-12d3-a456-426614174009",
                "balance": "50.00",
                "total_spent": "40.00",
                "total_credited": "90.00",
                "updated_at": "2025-06-10T12:00:00Z",
            }
        }


class LedgerEntryResponse(BaseModel):
    entry_id: UUID
    entry_type: str
    amount: Decimal
    balance_after: Decimal
    description: str
    reference_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            entry_id=entry.entry_id,
            entry_type=entry.entry_type.value,
            amount=entry.amount,
            balance_after=entry.balance_after,
            description=entry.description,
            reference_id=entry.reference_id,
            created_at=entry.created_at,
        )


class TransactionListResponse(BaseModel):
    items: List[LedgerEntryResponse]
    total_count: int


class CreditRequest(BaseModel):
    """Credits bought through the payment gateway."""
    amount: Decimal = Field(..., gt=0)
    payment_reference: Optional[str] = Field(None, description="Payment gateway transaction ID")

    class Config:
        json_schema_extra = {"example": {"amount": "50.00", "payment_reference": "pi_3PabcXYZ"}}


class VoucherEligibilityResponse(BaseModel):
    eligible: bool
    amount: Decimal
    reason: Optional[str] = None


class RegisterInstallerRequest(BaseModel):
    opening_balance: Decimal = Field(Decimal("0.00"), ge=0)


class RegisterInstallerResponse(BaseModel):
    installer_id: UUID
    balance: Decimal
    voucher_amount: Optional[Decimal] = None


# ============================================================================
# Schedule Negotiation Models
# ============================================================================

class ProposalCreateRequest(BaseModel):
    """
    A proposed installation date.

    installer_id is the proposing installer for installer proposals; for
    customer proposals it optionally addresses one installer.
    """
    booking_id: UUID
    proposer_role: ProposerRole
    installer_id: Optional[UUID] = None
    proposed_date: date
    time_slot: str = Field(..., description="'09:00', '11:00', '13:00', '15:00', '17:00' or 'specific-time'")
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    message: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "booking_id": "123e4567-e89b-12d3-a456-426614174000",
                "proposer_role": "installer",
                "installer_id": "123e4567-e89b-12d3-a456-426614174009",
                "proposed_date": "2025-06-14",
                "time_slot": "09:00",
                "message": "I can come Saturday morning.",
            }
        }


class ProposalResponse(BaseModel):
    proposal_id: UUID
    booking_id: UUID
    proposer_role: str
    installer_id: Optional[UUID] = None
    proposed_date: date
    time_slot: str
    time_window: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    message: Optional[str] = None
    status: str
    is_reschedule: bool
    proposed_at: datetime
    responded_at: Optional[datetime] = None
    response_message: Optional[str] = None

    @classmethod
    def from_domain(cls, proposal: ScheduleProposal) -> "ProposalResponse":
        return cls(
            proposal_id=proposal.proposal_id,
            booking_id=proposal.booking_id,
            proposer_role=proposal.proposer_role.value,
            installer_id=proposal.installer_id,
            proposed_date=proposal.proposed_date,
            time_slot=proposal.time_slot,
            time_window=proposal.time_window,
            start_time=proposal.start_time,
            end_time=proposal.end_time,
            message=proposal.message,
            status=proposal.status.value,
            is_reschedule=proposal.is_reschedule,
            proposed_at=proposal.proposed_at,
            responded_at=proposal.responded_at,
            response_message=proposal.response_message,
        )


class ProposalListResponse(BaseModel):
    items: List[ProposalResponse]
    total_count: int


class ActiveNegotiationResponse(BaseModel):
    proposal: Optional[ProposalResponse] = None


class AcceptProposalRequest(BaseModel):
    acting_role: ProposerRole
    installer_id: Optional[UUID] = Field(None, description="Required when acting_role is 'installer'")
    response_message: Optional[str] = None

    class Config:
        json_schema_extra = {"example": {"acting_role": "customer", "response_message": "Saturday works."}}


class RejectProposalRequest(BaseModel):
    response_message: Optional[str] = None


class AcceptanceResponse(BaseModel):
    proposal: ProposalResponse
    superseded_proposal_ids: List[UUID]
    assignment_id: UUID
    installer_id: UUID
    booking_status: str
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None


# ============================================================================
# Job Models
# ============================================================================

class JobActionRequest(BaseModel):
    installer_id: UUID


class JobResponse(BaseModel):
    assignment_id: UUID
    booking_id: UUID
    installer_id: UUID
    status: str
    booking_status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
    context: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "INSUFFICIENT_FUNDS",
                "detail": "Insufficient wallet balance. Required: 40.00, Available: 5.00",
                "status_code": 402,
                "context": {"required": "40.00", "available": "5.00"},
            }
        }
