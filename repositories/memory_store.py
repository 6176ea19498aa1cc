"""
In-memory marketplace store.

Holds every record in process memory. Atomic operations take keyed locks:

- ("installer", id) serializes wallet debits/credits and voucher consumption
  for one installer;
- ("booking", id) serializes purchases, proposals, acceptances and job
  transitions for one booking.

Lock order is always installer before booking. Each atomic operation reads a
consistent snapshot under its locks, asks the domain for a plan, and writes
the whole plan before releasing the locks. Reads return immutable records
and need no lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Hashable, Iterator, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from domain.booking import Booking, BookingStatus
from domain.errors import (
    BookingNotFound,
    InstallerAlreadyRegistered,
    JobAssignmentNotFound,
    ProposalNotFound,
    Unauthorized,
    VoucherAlreadyConsumed,
    WalletNotFound,
)
from domain.job_assignment import JobAssignment, JobStatus
from domain.lead import AssignmentGrant, PurchasePlan, plan_purchase
from domain.schedule import (
    AcceptancePlan,
    Party,
    ProposalPlan,
    ProposalStatus,
    ScheduleProposal,
    plan_acceptance,
    plan_proposal,
)
from domain.voucher import VoucherGrant
from domain.wallet import LedgerEntry, LedgerEntryType, WalletAccount, ledger_entry_for


class _KeyedLocks:
    """One lock per key, created on demand."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def get(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        acquired: List[threading.Lock] = []
        try:
            for key in keys:
                lock = self.get(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


def _installer_key(installer_id: UUID) -> Tuple[str, UUID]:
    return ("installer", installer_id)


def _booking_key(booking_id: UUID) -> Tuple[str, UUID]:
    return ("booking", booking_id)


class InMemoryStore:
    def __init__(self) -> None:
        self._locks = _KeyedLocks()
        self._registry_lock = threading.Lock()
        self._bookings: Dict[UUID, Booking] = {}
        self._wallets: Dict[UUID, WalletAccount] = {}
        self._ledger: Dict[UUID, List[LedgerEntry]] = {}
        self._vouchers: Dict[UUID, VoucherGrant] = {}
        self._grants: Dict[Tuple[UUID, UUID], AssignmentGrant] = {}  # (installer_id, booking_id)
        self._proposals: Dict[UUID, ScheduleProposal] = {}
        self._assignments: Dict[UUID, JobAssignment] = {}  # by booking_id

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    def add_booking(self, booking: Booking) -> Booking:
        with self._locks.hold(_booking_key(booking.booking_id)):
            if booking.booking_id in self._bookings:
                raise ValueError(f"Booking already exists: {booking.booking_id}")
            self._bookings[booking.booking_id] = booking
        return booking

    def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def get_booking_by_qr_code(self, qr_code: str) -> Optional[Booking]:
        return next((b for b in list(self._bookings.values()) if b.qr_code == qr_code), None)

    def list_bookings(self, statuses: Sequence[BookingStatus]) -> List[Booking]:
        wanted = set(statuses)
        bookings = [b for b in list(self._bookings.values()) if b.status in wanted]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def cancel_booking(self, booking_id: UUID, at: datetime) -> Booking:
        with self._locks.hold(_booking_key(booking_id)):
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            cancelled = booking.cancelled(at)
            self._bookings[booking_id] = cancelled
            return cancelled

    # ------------------------------------------------------------------
    # Wallets and vouchers
    # ------------------------------------------------------------------
    def register_installer(self, wallet: WalletAccount, voucher: Optional[VoucherGrant]) -> None:
        with self._locks.hold(_installer_key(wallet.installer_id)):
            if wallet.installer_id in self._wallets:
                raise InstallerAlreadyRegistered(wallet.installer_id)
            self._wallets[wallet.installer_id] = wallet
            self._ledger[wallet.installer_id] = []
            if voucher is not None:
                self._vouchers[wallet.installer_id] = voucher

    def get_wallet(self, installer_id: UUID) -> Optional[WalletAccount]:
        return self._wallets.get(installer_id)

    def list_ledger_entries(self, installer_id: UUID, limit: int) -> List[LedgerEntry]:
        entries = list(self._ledger.get(installer_id, ()))
        return list(reversed(entries))[:limit]

    def _apply_wallet_change(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
        *,
        debit: bool,
    ) -> LedgerEntry:
        with self._locks.hold(_installer_key(installer_id)):
            wallet = self._wallets.get(installer_id)
            if wallet is None:
                raise WalletNotFound(installer_id)
            updated = wallet.debit(amount, at) if debit else wallet.credit(amount, at)
            delta = updated.balance - wallet.balance
            entry = ledger_entry_for(
                entry_id=uuid4(),
                wallet_after=updated,
                entry_type=entry_type,
                signed_amount=delta,
                description=description,
                reference_id=reference_id,
                at=at,
            )
            self._wallets[installer_id] = updated
            self._ledger[installer_id].append(entry)
            return entry

    def debit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        return self._apply_wallet_change(
            installer_id, amount, entry_type, description, reference_id, at, debit=True
        )

    def credit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        return self._apply_wallet_change(
            installer_id, amount, entry_type, description, reference_id, at, debit=False
        )

    def get_voucher(self, installer_id: UUID) -> Optional[VoucherGrant]:
        return self._vouchers.get(installer_id)

    def consume_voucher(
        self, installer_id: UUID, lead_fee: Decimal, booking_id: Optional[UUID], at: datetime
    ) -> Decimal:
        with self._locks.hold(_installer_key(installer_id)):
            voucher = self._vouchers.get(installer_id)
            if voucher is None:
                raise VoucherAlreadyConsumed(installer_id)
            consumed, discount = voucher.consume(lead_fee, at, booking_id=booking_id)
            self._vouchers[installer_id] = consumed
            return discount

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------
    def purchase_lead(
        self, installer_id: UUID, booking_id: UUID, vouchers_enabled: bool, at: datetime
    ) -> PurchasePlan:
        with self._locks.hold(_installer_key(installer_id), _booking_key(booking_id)):
            plan = plan_purchase(
                installer_id=installer_id,
                booking=self._bookings.get(booking_id),
                booking_id=booking_id,
                existing_grant=self._grants.get((installer_id, booking_id)),
                wallet=self._wallets.get(installer_id),
                voucher=self._vouchers.get(installer_id),
                vouchers_enabled=vouchers_enabled,
                grant_id=uuid4(),
                entry_id=uuid4(),
                at=at,
            )

            # Commit: nothing below can fail.
            if plan.voucher is not None:
                self._vouchers[installer_id] = plan.voucher
            if plan.ledger_entry is not None:
                self._ledger[installer_id].append(plan.ledger_entry)
            self._wallets[installer_id] = plan.wallet
            self._grants[(installer_id, booking_id)] = plan.grant
            self._bookings[booking_id] = plan.booking
            return plan

    def get_grant(self, installer_id: UUID, booking_id: UUID) -> Optional[AssignmentGrant]:
        return self._grants.get((installer_id, booking_id))

    def list_grants_for_booking(self, booking_id: UUID) -> List[AssignmentGrant]:
        grants = [g for g in list(self._grants.values()) if g.booking_id == booking_id]
        return sorted(grants, key=lambda g: g.granted_at)

    def list_grants_for_installer(self, installer_id: UUID) -> List[AssignmentGrant]:
        grants = [g for g in list(self._grants.values()) if g.installer_id == installer_id]
        return sorted(grants, key=lambda g: g.granted_at, reverse=True)

    # ------------------------------------------------------------------
    # Schedule negotiation
    # ------------------------------------------------------------------
    def _booking_proposals(self, booking_id: UUID) -> List[ScheduleProposal]:
        return [p for p in list(self._proposals.values()) if p.booking_id == booking_id]

    def create_proposal(self, draft: ScheduleProposal, today: date) -> ProposalPlan:
        with self._locks.hold(_booking_key(draft.booking_id)):
            plan = plan_proposal(
                draft=draft,
                booking=self._bookings.get(draft.booking_id),
                existing=self._booking_proposals(draft.booking_id),
                grants=self.list_grants_for_booking(draft.booking_id),
                today=today,
            )
            for proposal in plan.superseded:
                self._proposals[proposal.proposal_id] = proposal
            self._proposals[plan.proposal.proposal_id] = plan.proposal
            return plan

    def accept_proposal(
        self, proposal_id: UUID, acting: Party, response_message: Optional[str], at: datetime
    ) -> AcceptancePlan:
        target = self._proposals.get(proposal_id)
        if target is None:
            raise ProposalNotFound(proposal_id)

        booking_id = target.booking_id
        with self._locks.hold(_booking_key(booking_id)):
            plan = plan_acceptance(
                proposal_id=proposal_id,
                acting=acting,
                booking=self._bookings.get(booking_id),
                proposals=self._booking_proposals(booking_id),
                grants=self.list_grants_for_booking(booking_id),
                assignment=self._assignments.get(booking_id),
                new_assignment_id=uuid4(),
                at=at,
                response_message=response_message,
            )
            self._proposals[proposal_id] = plan.accepted
            for proposal in plan.superseded:
                self._proposals[proposal.proposal_id] = proposal
            self._assignments[booking_id] = plan.assignment
            self._bookings[booking_id] = plan.booking
            return plan

    def reject_proposal(
        self, proposal_id: UUID, response_message: Optional[str], at: datetime
    ) -> ScheduleProposal:
        target = self._proposals.get(proposal_id)
        if target is None:
            raise ProposalNotFound(proposal_id)

        with self._locks.hold(_booking_key(target.booking_id)):
            rejected = self._proposals[proposal_id].rejected(at, response_message)
            self._proposals[proposal_id] = rejected
            return rejected

    def expire_pending_proposals(self, proposed_before: datetime, at: datetime) -> List[ScheduleProposal]:
        stale_by_booking: Dict[UUID, List[UUID]] = {}
        for p in list(self._proposals.values()):
            if p.status is ProposalStatus.PENDING and p.proposed_at < proposed_before:
                stale_by_booking.setdefault(p.booking_id, []).append(p.proposal_id)

        expired: List[ScheduleProposal] = []
        for booking_id, proposal_ids in stale_by_booking.items():
            with self._locks.hold(_booking_key(booking_id)):
                for proposal_id in proposal_ids:
                    current = self._proposals[proposal_id]
                    # Someone may have acted on it since the scan.
                    if not current.is_pending:
                        continue
                    rejected = current.rejected(at, "Proposal expired")
                    self._proposals[proposal_id] = rejected
                    expired.append(rejected)
        return expired

    def get_proposal(self, proposal_id: UUID) -> Optional[ScheduleProposal]:
        return self._proposals.get(proposal_id)

    def list_proposals_for_booking(self, booking_id: UUID) -> List[ScheduleProposal]:
        return sorted(self._booking_proposals(booking_id), key=lambda p: p.proposed_at, reverse=True)

    def list_proposals_for_installer(self, installer_id: UUID) -> List[ScheduleProposal]:
        proposals = [p for p in list(self._proposals.values()) if p.installer_id == installer_id]
        return sorted(proposals, key=lambda p: p.proposed_at, reverse=True)

    # ------------------------------------------------------------------
    # Job assignments
    # ------------------------------------------------------------------
    def get_job_assignment(self, booking_id: UUID) -> Optional[JobAssignment]:
        return self._assignments.get(booking_id)

    def advance_job(
        self, booking_id: UUID, installer_id: UUID, target: JobStatus, at: datetime
    ) -> Tuple[JobAssignment, Booking]:
        with self._locks.hold(_booking_key(booking_id)):
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            assignment = self._assignments.get(booking_id)
            if assignment is None:
                raise JobAssignmentNotFound(booking_id)
            if assignment.installer_id != installer_id:
                raise Unauthorized(
                    "Only the assigned installer can update this job",
                    booking_id=str(booking_id),
                    installer_id=str(installer_id),
                )

            if target is JobStatus.IN_PROGRESS:
                updated, moved = assignment.started(at), booking.started(at)
            elif target is JobStatus.COMPLETED:
                updated, moved = assignment.completed(at), booking.completed(at)
            else:
                raise ValueError(f"Jobs can only be advanced to in_progress or completed, not {target.value}")

            self._assignments[booking_id] = updated
            self._bookings[booking_id] = moved
            return updated, moved


__all__ = ["InMemoryStore"]
