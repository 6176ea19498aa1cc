"""
Persistence port for the marketplace.

Services talk to a MarketplaceStore. Two implementations exist:

- InMemoryStore (repositories/memory_store.py): process-local, used for
  development and tests. Atomic operations run under per-installer and
  per-booking locks.
- SupabaseStore (repositories/supabase_store.py): durable. Atomic operations
  are PostgreSQL functions (sql/schema.sql) invoked through Supabase RPC, each
  running in a single transaction with row locks.

Every method documented as *atomic* either applies all of its changes or
none of them, and raises the domain error that explains why not.
Persistence failures raise RuntimeError.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Protocol, Sequence, Tuple
from uuid import UUID

from domain.booking import Booking, BookingStatus
from domain.job_assignment import JobAssignment, JobStatus
from domain.lead import AssignmentGrant, PurchasePlan
from domain.schedule import AcceptancePlan, Party, ProposalPlan, ScheduleProposal
from domain.voucher import VoucherGrant
from domain.wallet import LedgerEntry, LedgerEntryType, WalletAccount
from settings import Settings


class MarketplaceStore(Protocol):
    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    def add_booking(self, booking: Booking) -> Booking: ...

    def get_booking(self, booking_id: UUID) -> Optional[Booking]: ...

    def get_booking_by_qr_code(self, qr_code: str) -> Optional[Booking]: ...

    def list_bookings(self, statuses: Sequence[BookingStatus]) -> List[Booking]: ...

    def cancel_booking(self, booking_id: UUID, at: datetime) -> Booking:
        """Atomic. Raises BookingNotFound / InvalidStatusTransition."""

    # ------------------------------------------------------------------
    # Wallets and vouchers
    # ------------------------------------------------------------------
    def register_installer(self, wallet: WalletAccount, voucher: Optional[VoucherGrant]) -> None:
        """Atomic. Raises InstallerAlreadyRegistered."""

    def get_wallet(self, installer_id: UUID) -> Optional[WalletAccount]: ...

    def list_ledger_entries(self, installer_id: UUID, limit: int) -> List[LedgerEntry]:
        """Newest first."""

    def debit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        """Atomic, serialized per installer. Raises WalletNotFound / InsufficientFunds."""

    def credit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        """Atomic, serialized per installer. Raises WalletNotFound."""

    def get_voucher(self, installer_id: UUID) -> Optional[VoucherGrant]: ...

    def consume_voucher(
        self, installer_id: UUID, lead_fee: Decimal, booking_id: Optional[UUID], at: datetime
    ) -> Decimal:
        """Atomic, serialized per installer. Returns the discount. Raises VoucherAlreadyConsumed."""

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------
    def purchase_lead(
        self, installer_id: UUID, booking_id: UUID, vouchers_enabled: bool, at: datetime
    ) -> PurchasePlan:
        """
        Atomic: voucher consumption, wallet debit, grant insertion and booking
        status change commit together. Raises LeadNotFound / AlreadyPurchased /
        WalletNotFound / InsufficientFunds.
        """

    def get_grant(self, installer_id: UUID, booking_id: UUID) -> Optional[AssignmentGrant]: ...

    def list_grants_for_booking(self, booking_id: UUID) -> List[AssignmentGrant]: ...

    def list_grants_for_installer(self, installer_id: UUID) -> List[AssignmentGrant]: ...

    # ------------------------------------------------------------------
    # Schedule negotiation
    # ------------------------------------------------------------------
    def create_proposal(self, draft: ScheduleProposal, today: date) -> ProposalPlan:
        """Atomic per booking. Supersedes the party's earlier pending proposal."""

    def accept_proposal(
        self, proposal_id: UUID, acting: Party, response_message: Optional[str], at: datetime
    ) -> AcceptancePlan:
        """Atomic, serialized per booking. Raises ProposalNotPending when the race is lost."""

    def reject_proposal(
        self, proposal_id: UUID, response_message: Optional[str], at: datetime
    ) -> ScheduleProposal:
        """Atomic. Raises ProposalNotFound / ProposalNotPending."""

    def expire_pending_proposals(self, proposed_before: datetime, at: datetime) -> List[ScheduleProposal]:
        """Reject every pending proposal proposed before `proposed_before`."""

    def get_proposal(self, proposal_id: UUID) -> Optional[ScheduleProposal]: ...

    def list_proposals_for_booking(self, booking_id: UUID) -> List[ScheduleProposal]:
        """Newest first."""

    def list_proposals_for_installer(self, installer_id: UUID) -> List[ScheduleProposal]:
        """Newest first."""

    # ------------------------------------------------------------------
    # Job assignments
    # ------------------------------------------------------------------
    def get_job_assignment(self, booking_id: UUID) -> Optional[JobAssignment]: ...

    def advance_job(
        self, booking_id: UUID, installer_id: UUID, target: JobStatus, at: datetime
    ) -> Tuple[JobAssignment, Booking]:
        """
        Atomic per booking: move the assignment to `target` (in_progress or
        completed) and the booking along with it.
        """


def create_store(settings: Settings) -> MarketplaceStore:
    """Build the store selected by MARKETPLACE_STORE."""

    if settings.store_backend == "supabase":
        from repositories.client import get_supabase_client
        from repositories.supabase_store import SupabaseStore

        return SupabaseStore(get_supabase_client(settings))

    from repositories.memory_store import InMemoryStore

    return InMemoryStore()


__all__ = ["MarketplaceStore", "create_store"]
