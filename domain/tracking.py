"""
Domain: Public booking status (QR tracking).

The tracking status is a projection of the booking, its job assignment and
its negotiation state. It is computed on every read and never stored, so it
cannot drift from the records it is derived from.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Sequence
from uuid import UUID

from .booking import Booking, BookingStatus
from .job_assignment import JobAssignment, JobStatus
from .schedule import ScheduleProposal


class TrackingStatus(str, Enum):
    RECEIVED = "received"
    INSTALLER_ASSIGNED = "installer_assigned"
    INSTALLER_CONFIRMED = "installer_confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def project_status(
    booking: Booking,
    assignment: Optional[JobAssignment],
    proposals: Sequence[ScheduleProposal] = (),
) -> TrackingStatus:
    """
    Derive the single public status of a booking.

    The job assignment drives the status. `proposals` is the booking's
    negotiation state; it never changes the result, because accepting a
    proposal is what creates or updates the assignment. Open or superseded
    proposals surface only as `TrackingView.pending_proposals`. A cancelled
    booking reports `cancelled` whatever else is recorded.
    """

    if booking.status is BookingStatus.CANCELLED:
        return TrackingStatus.CANCELLED
    if assignment is None:
        return TrackingStatus.RECEIVED

    status = assignment.status
    if status is JobStatus.ASSIGNED:
        return TrackingStatus.INSTALLER_ASSIGNED
    if status is JobStatus.ACCEPTED:
        return TrackingStatus.INSTALLER_CONFIRMED
    if status is JobStatus.IN_PROGRESS:
        return TrackingStatus.IN_PROGRESS
    if status is JobStatus.COMPLETED:
        return TrackingStatus.COMPLETED
    raise ValueError(f"Unhandled job status: {status!r}")


@dataclass(frozen=True, slots=True)
class TrackingView:
    booking_id: UUID
    qr_code: str
    status: TrackingStatus
    service_type: str
    scheduled_date: Optional[date]
    scheduled_time: Optional[str]
    installer_id: Optional[UUID]
    assigned_at: Optional[datetime]
    accepted_at: Optional[datetime]
    completed_at: Optional[datetime]
    pending_proposals: int


def build_tracking_view(
    booking: Booking,
    assignment: Optional[JobAssignment],
    proposals: Sequence[ScheduleProposal],
) -> TrackingView:
    return TrackingView(
        booking_id=booking.booking_id,
        qr_code=booking.qr_code,
        status=project_status(booking, assignment, proposals),
        service_type=booking.service_type,
        scheduled_date=booking.scheduled_date,
        scheduled_time=booking.scheduled_time,
        installer_id=assignment.installer_id if assignment else None,
        assigned_at=assignment.assigned_at if assignment else None,
        accepted_at=assignment.accepted_at if assignment else None,
        completed_at=assignment.completed_at if assignment else None,
        pending_proposals=sum(1 for p in proposals if p.is_pending),
    )


__all__ = ["TrackingStatus", "TrackingView", "build_tracking_view", "project_status"]
