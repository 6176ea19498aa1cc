"""
Domain: Schedule negotiation.

Each ScheduleProposal follows a small state machine:

    pending -> accepted | rejected | superseded      (all terminal)

Rules implemented here:
- Proposals from different installers for the same booking may be pending
  at the same time (competing proposals).
- A party has at most one pending proposal per booking: a new one supersedes
  the party's earlier pending proposal.
- Only the counter-party accepts: the customer accepts installer proposals,
  a purchasing installer accepts customer proposals.
- Accepting a proposal supersedes every other pending proposal for the
  booking and any previously accepted one (reschedule), so a booking never
  has more than one accepted proposal.
- There is no automatic ranking of proposals.

`plan_proposal` and `plan_acceptance` are pure. Repositories apply their
results atomically under a per-booking lock (or in one database transaction).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from .booking import Booking
from .errors import (
    BookingNotFound,
    BookingNotSchedulable,
    InvalidProposal,
    ProposalNotFound,
    ProposalNotPending,
    Unauthorized,
)
from .job_assignment import JobAssignment
from .lead import AssignmentGrant
from .time import require_utc_timestamp

# Two-hour installation windows offered to both parties.
TIME_SLOTS = {
    "09:00": "9:00 AM - 11:00 AM",
    "11:00": "11:00 AM - 1:00 PM",
    "13:00": "1:00 PM - 3:00 PM",
    "15:00": "3:00 PM - 5:00 PM",
    "17:00": "5:00 PM - 7:00 PM",
}
SPECIFIC_TIME_SLOT = "specific-time"


class ProposerRole(str, Enum):
    INSTALLER = "installer"
    CUSTOMER = "customer"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


@dataclass(frozen=True, slots=True)
class Party:
    """The party performing an action: the customer, or a specific installer."""

    role: ProposerRole
    installer_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        if self.role is ProposerRole.INSTALLER and self.installer_id is None:
            raise ValueError("installer parties must carry an installer_id")

    @staticmethod
    def customer() -> "Party":
        return Party(role=ProposerRole.CUSTOMER)

    @staticmethod
    def installer(installer_id: UUID) -> "Party":
        return Party(role=ProposerRole.INSTALLER, installer_id=installer_id)


@dataclass(frozen=True, slots=True)
class ScheduleProposal:
    """
    One candidate installation date/time.

    installer_id is the proposing installer for installer proposals. For
    customer proposals it is the installer the proposal is addressed to, or
    None when any purchasing installer may accept it.
    """

    proposal_id: UUID
    booking_id: UUID
    proposer_role: ProposerRole
    installer_id: Optional[UUID]
    proposed_date: date
    time_slot: str
    status: ProposalStatus
    proposed_at: datetime
    message: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_reschedule: bool = False
    responded_at: Optional[datetime] = None
    response_message: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("proposed_at", self.proposed_at)
        if self.responded_at is not None:
            require_utc_timestamp("responded_at", self.responded_at)
        if self.proposer_role is ProposerRole.INSTALLER and self.installer_id is None:
            raise InvalidProposal("Installer proposals must identify the installer")
        if self.time_slot == SPECIFIC_TIME_SLOT:
            if self.start_time is None or self.end_time is None:
                raise InvalidProposal("A specific time proposal needs a start and an end time")
            if self.start_time >= self.end_time:
                raise InvalidProposal("start_time must be before end_time")
        elif self.time_slot not in TIME_SLOTS:
            raise InvalidProposal(
                f"Unknown time slot: {self.time_slot}",
                allowed=sorted(TIME_SLOTS) + [SPECIFIC_TIME_SLOT],
            )

    @property
    def is_pending(self) -> bool:
        return self.status is ProposalStatus.PENDING

    @property
    def time_window(self) -> str:
        """Human-readable window, e.g. '9:00 AM - 11:00 AM' or '10:30 - 12:00'."""

        if self.time_slot == SPECIFIC_TIME_SLOT:
            return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"
        return TIME_SLOTS[self.time_slot]

    def _responded(
        self, status: ProposalStatus, at: datetime, response_message: Optional[str] = None
    ) -> "ScheduleProposal":
        require_utc_timestamp("at", at)
        if not self.is_pending:
            raise ProposalNotPending(self.proposal_id, self.status.value)
        return replace(self, status=status, responded_at=at, response_message=response_message)

    def accepted(self, at: datetime, response_message: Optional[str] = None) -> "ScheduleProposal":
        return self._responded(ProposalStatus.ACCEPTED, at, response_message)

    def rejected(self, at: datetime, response_message: Optional[str] = None) -> "ScheduleProposal":
        return self._responded(ProposalStatus.REJECTED, at, response_message)

    def superseded(self, at: datetime) -> "ScheduleProposal":
        return self._responded(ProposalStatus.SUPERSEDED, at)

    def replaced_by_reschedule(self, at: datetime) -> "ScheduleProposal":
        """An accepted proposal loses its place to a newly accepted reschedule."""

        if self.status is not ProposalStatus.ACCEPTED:
            raise ProposalNotPending(self.proposal_id, self.status.value)
        return replace(self, status=ProposalStatus.SUPERSEDED, responded_at=at)


def _has_grant(grants: Iterable[AssignmentGrant], installer_id: Optional[UUID]) -> bool:
    return installer_id is not None and any(g.installer_id == installer_id for g in grants)


@dataclass(frozen=True, slots=True)
class ProposalPlan:
    proposal: ScheduleProposal
    superseded: Tuple[ScheduleProposal, ...]


def plan_proposal(
    *,
    draft: ScheduleProposal,
    booking: Optional[Booking],
    existing: Sequence[ScheduleProposal],
    grants: Sequence[AssignmentGrant],
    today: date,
) -> ProposalPlan:
    """
    Validate a new proposal against the booking's negotiation state.

    `draft` is the proposal as submitted (status pending). Returns the proposal
    to insert (reschedule flag set) and the party's earlier pending proposals,
    now superseded.
    """

    if booking is None:
        raise BookingNotFound(draft.booking_id)
    if not booking.is_schedulable:
        raise BookingNotSchedulable(booking.booking_id, booking.status.value)
    if draft.proposed_date < today:
        raise InvalidProposal("Proposed date is in the past", proposed_date=draft.proposed_date.isoformat())

    if draft.proposer_role is ProposerRole.INSTALLER:
        if not _has_grant(grants, draft.installer_id):
            raise Unauthorized(
                "Installer must purchase this lead before proposing a schedule",
                installer_id=str(draft.installer_id),
                booking_id=str(booking.booking_id),
            )
    elif draft.installer_id is not None and not _has_grant(grants, draft.installer_id):
        raise Unauthorized(
            "Schedule proposals can only be addressed to installers who purchased this lead",
            installer_id=str(draft.installer_id),
            booking_id=str(booking.booking_id),
        )

    # Customer proposals are tracked per addressed installer.
    superseded = tuple(
        p.superseded(draft.proposed_at)
        for p in existing
        if p.booking_id == draft.booking_id
        and p.is_pending
        and p.proposer_role is draft.proposer_role
        and p.installer_id == draft.installer_id
    )
    is_reschedule = any(
        p.booking_id == draft.booking_id and p.status is ProposalStatus.ACCEPTED for p in existing
    )

    return ProposalPlan(
        proposal=replace(draft, status=ProposalStatus.PENDING, is_reschedule=is_reschedule),
        superseded=superseded,
    )


@dataclass(frozen=True, slots=True)
class AcceptancePlan:
    accepted: ScheduleProposal
    superseded: Tuple[ScheduleProposal, ...]
    assignment: JobAssignment
    booking: Booking


def plan_acceptance(
    *,
    proposal_id: UUID,
    acting: Party,
    booking: Optional[Booking],
    proposals: Sequence[ScheduleProposal],
    grants: Sequence[AssignmentGrant],
    assignment: Optional[JobAssignment],
    new_assignment_id: UUID,
    at: datetime,
    response_message: Optional[str] = None,
) -> AcceptancePlan:
    """
    Decide the outcome of `acting` accepting `proposal_id`.

    `proposals` must be every proposal of the booking, read under the same
    lock the plan will be committed under.
    """

    target = next((p for p in proposals if p.proposal_id == proposal_id), None)
    if target is None:
        raise ProposalNotFound(proposal_id)
    if not target.is_pending:
        raise ProposalNotPending(proposal_id, target.status.value)
    if booking is None:
        raise BookingNotFound(target.booking_id)
    if not booking.is_schedulable:
        raise BookingNotSchedulable(booking.booking_id, booking.status.value)

    if target.proposer_role is ProposerRole.INSTALLER:
        if acting.role is not ProposerRole.CUSTOMER:
            raise Unauthorized(
                "Installer proposals can only be accepted by the customer",
                proposal_id=str(proposal_id),
            )
        assigned_installer = target.installer_id
    else:
        if acting.role is not ProposerRole.INSTALLER:
            raise Unauthorized(
                "Customer proposals can only be accepted by an installer",
                proposal_id=str(proposal_id),
            )
        if target.installer_id is not None and target.installer_id != acting.installer_id:
            raise Unauthorized(
                "This proposal is addressed to a different installer",
                proposal_id=str(proposal_id),
            )
        if (
            target.installer_id is None
            and assignment is not None
            and assignment.installer_id != acting.installer_id
        ):
            # An unaddressed reschedule belongs to the installer who holds the job.
            raise Unauthorized(
                "This booking is assigned to a different installer",
                proposal_id=str(proposal_id),
                installer_id=str(acting.installer_id),
            )
        if not _has_grant(grants, acting.installer_id):
            raise Unauthorized(
                "Installer must purchase this lead before accepting a schedule",
                proposal_id=str(proposal_id),
                installer_id=str(acting.installer_id),
            )
        assigned_installer = acting.installer_id

    accepted = target.accepted(at, response_message)

    others: List[ScheduleProposal] = []
    for p in proposals:
        if p.proposal_id == proposal_id or p.booking_id != target.booking_id:
            continue
        if p.is_pending:
            others.append(p.superseded(at))
        elif p.status is ProposalStatus.ACCEPTED:
            others.append(p.replaced_by_reschedule(at))

    if assignment is None:
        new_assignment = JobAssignment.accepted_now(
            assignment_id=new_assignment_id,
            booking_id=booking.booking_id,
            installer_id=assigned_installer,
            at=at,
        )
    else:
        new_assignment = assignment.reaccepted(assigned_installer, at)

    return AcceptancePlan(
        accepted=accepted,
        superseded=tuple(others),
        assignment=new_assignment,
        booking=booking.confirmed(target.proposed_date, target.time_window, at),
    )


def active_proposal(proposals: Sequence[ScheduleProposal]) -> Optional[ScheduleProposal]:
    """Newest pending proposal, else the accepted one, else None."""

    pending = [p for p in proposals if p.is_pending]
    if pending:
        return max(pending, key=lambda p: p.proposed_at)
    return next((p for p in proposals if p.status is ProposalStatus.ACCEPTED), None)


__all__ = [
    "AcceptancePlan",
    "Party",
    "ProposalPlan",
    "ProposalStatus",
    "ProposerRole",
    "SPECIFIC_TIME_SLOT",
    "ScheduleProposal",
    "TIME_SLOTS",
    "active_proposal",
    "plan_acceptance",
    "plan_proposal",
]
