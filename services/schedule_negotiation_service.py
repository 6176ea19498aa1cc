"""
Schedule negotiation service.

Installers who bought a lead (and the customer) propose installation dates;
the counter-party accepts one. Accepting resolves the whole negotiation for
the booking in one atomic step: the accepted proposal wins, every other
pending proposal (and any earlier accepted one) is superseded, the job
assignment is created or re-accepted, and the booking is confirmed.

Two parties accepting competing proposals at the same time is an expected
race: the loser gets ProposalNotPending, which is logged at info level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional, Tuple
from uuid import UUID, uuid4

from domain.errors import ProposalNotPending
from domain.job_assignment import JobAssignment
from domain.schedule import (
    Party,
    ProposalStatus,
    ProposerRole,
    ScheduleProposal,
    active_proposal,
)
from domain.booking import Booking
from domain.time import utc_now
from repositories.store import MarketplaceStore
from services.notification_service import (
    LoggingNotifier,
    NotificationEvent,
    NotificationType,
    Notifier,
    dispatch_safely,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AcceptanceOutcome:
    proposal: ScheduleProposal
    superseded: Tuple[ScheduleProposal, ...]
    assignment: JobAssignment
    booking: Booking


class ScheduleNegotiationProtocol:
    def __init__(
        self,
        store: MarketplaceStore,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
        proposal_expiry_hours: Optional[int] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._proposal_expiry_hours = proposal_expiry_hours

    def propose(
        self,
        booking_id: UUID,
        proposer_role: ProposerRole,
        installer_id: Optional[UUID],
        proposed_date: date,
        time_slot: str,
        message: Optional[str] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
    ) -> ScheduleProposal:
        """
        Record a new pending proposal.

        For installer proposals installer_id is the proposer; for customer
        proposals it optionally addresses one installer.

        Raises:
            BookingNotFound, BookingNotSchedulable, InvalidProposal, Unauthorized
        """

        now = self._clock()
        draft = ScheduleProposal(
            proposal_id=uuid4(),
            booking_id=booking_id,
            proposer_role=proposer_role,
            installer_id=installer_id,
            proposed_date=proposed_date,
            time_slot=time_slot,
            status=ProposalStatus.PENDING,
            proposed_at=now,
            message=message,
            start_time=start_time,
            end_time=end_time,
        )
        plan = self._store.create_proposal(draft, today=now.date())
        proposal = plan.proposal

        logger.info(
            "Schedule proposed",
            extra={
                "proposal_id": str(proposal.proposal_id),
                "booking_id": str(booking_id),
                "proposer_role": proposer_role.value,
                "installer_id": str(installer_id) if installer_id else None,
                "proposed_date": proposed_date.isoformat(),
                "time_slot": time_slot,
                "is_reschedule": proposal.is_reschedule,
                "superseded": len(plan.superseded),
            },
        )
        dispatch_safely(
            self._notifier,
            NotificationEvent(
                NotificationType.PROPOSAL_CREATED,
                booking_id,
                now,
                installer_id=installer_id,
                payload={"proposal_id": str(proposal.proposal_id), "proposer_role": proposer_role.value},
            ),
        )
        return proposal

    def accept(
        self, proposal_id: UUID, acting: Party, response_message: Optional[str] = None
    ) -> AcceptanceOutcome:
        """
        Accept a pending proposal on behalf of the counter-party.

        Raises:
            ProposalNotFound, ProposalNotPending, Unauthorized,
            BookingNotFound, BookingNotSchedulable
        """

        try:
            plan = self._store.accept_proposal(proposal_id, acting, response_message, self._clock())
        except ProposalNotPending as e:
            logger.info(
                "Proposal acceptance lost: proposal no longer pending",
                extra={"proposal_id": str(proposal_id), "status": e.status, "acting_role": acting.role.value},
            )
            raise

        logger.info(
            "Schedule accepted",
            extra={
                "proposal_id": str(proposal_id),
                "booking_id": str(plan.booking.booking_id),
                "installer_id": str(plan.assignment.installer_id),
                "scheduled_date": plan.booking.scheduled_date.isoformat() if plan.booking.scheduled_date else None,
                "superseded": len(plan.superseded),
            },
        )
        dispatch_safely(
            self._notifier,
            NotificationEvent(
                NotificationType.PROPOSAL_ACCEPTED,
                plan.booking.booking_id,
                plan.accepted.responded_at or self._clock(),
                installer_id=plan.assignment.installer_id,
                payload={
                    "proposal_id": str(proposal_id),
                    "scheduled_date": plan.booking.scheduled_date.isoformat() if plan.booking.scheduled_date else None,
                    "scheduled_time": plan.booking.scheduled_time,
                },
            ),
        )
        return AcceptanceOutcome(
            proposal=plan.accepted,
            superseded=plan.superseded,
            assignment=plan.assignment,
            booking=plan.booking,
        )

    def reject(self, proposal_id: UUID, response_message: Optional[str] = None) -> ScheduleProposal:
        """Reject one proposal; its siblings are untouched."""

        rejected = self._store.reject_proposal(proposal_id, response_message, self._clock())
        logger.info(
            "Schedule rejected",
            extra={"proposal_id": str(proposal_id), "booking_id": str(rejected.booking_id)},
        )
        dispatch_safely(
            self._notifier,
            NotificationEvent(
                NotificationType.PROPOSAL_REJECTED,
                rejected.booking_id,
                rejected.responded_at or self._clock(),
                installer_id=rejected.installer_id,
                payload={"proposal_id": str(proposal_id)},
            ),
        )
        return rejected

    def list_for_booking(self, booking_id: UUID) -> List[ScheduleProposal]:
        return self._store.list_proposals_for_booking(booking_id)

    def list_for_installer(self, installer_id: UUID) -> List[ScheduleProposal]:
        return self._store.list_proposals_for_installer(installer_id)

    def get_active(self, booking_id: UUID) -> Optional[ScheduleProposal]:
        return active_proposal(self._store.list_proposals_for_booking(booking_id))

    def expire_stale_proposals(self) -> List[ScheduleProposal]:
        """Reject pending proposals older than PROPOSAL_EXPIRY_HOURS (no-op when unset)."""

        if self._proposal_expiry_hours is None:
            return []

        now = self._clock()
        expired = self._store.expire_pending_proposals(
            now - timedelta(hours=self._proposal_expiry_hours), now
        )
        if expired:
            logger.info(
                "Stale schedule proposals expired",
                extra={"count": len(expired), "expiry_hours": self._proposal_expiry_hours},
            )
        return expired


__all__ = ["AcceptanceOutcome", "ScheduleNegotiationProtocol"]
