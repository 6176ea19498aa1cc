"""
Tests for `services/job_lifecycle_service.py`, `services/booking_status_service.py`
and `domain/tracking.py`.

Covers contract rules:
- Tracking status is derived from the booking and its job assignment:
  received -> installer_confirmed -> in_progress -> completed.
- Only the assigned installer moves the job forward, one step at a time.
- A cancelled booking always reports cancelled.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from domain.booking import Booking, BookingStatus, CustomerContact
from domain.errors import BookingNotFound, InvalidStatusTransition, JobAssignmentNotFound, Unauthorized
from domain.job_assignment import JobAssignment, JobStatus
from domain.schedule import Party, ProposerRole
from domain.tracking import TrackingStatus, project_status

T0 = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def scheduled_job(marketplace, installer_factory, booking_factory):
    installer_id = installer_factory("100")
    booking = booking_factory("gold")
    marketplace.leads.purchase_lead(installer_id, booking.booking_id)
    proposal = marketplace.schedules.propose(
        booking.booking_id, ProposerRole.INSTALLER, installer_id, date(2025, 6, 14), "11:00"
    )
    marketplace.schedules.accept(proposal.proposal_id, Party.customer())
    return booking, installer_id


def _booking(status: BookingStatus) -> Booking:
    return Booking(
        booking_id=UUID("00000000-0000-0000-0000-000000000301"),
        contact=CustomerContact("Aoife Byrne", "aoife@example.com", "+353 87 123 4567", "Naas"),
        service_type="gold",
        tv_size=65,
        wall_type="brick",
        mount_type="full-motion",
        total_price=Decimal("249.00"),
        lead_fee=Decimal("30.00"),
        qr_code="BK-0000000301",
        status=status,
        created_at=T0,
        updated_at=T0,
    )


def _assignment(status: JobStatus) -> JobAssignment:
    return JobAssignment(
        assignment_id=uuid4(),
        booking_id=UUID("00000000-0000-0000-0000-000000000301"),
        installer_id=uuid4(),
        status=status,
        assigned_at=T0,
    )


@pytest.mark.parametrize(
    "job_status, expected",
    [
        (None, TrackingStatus.RECEIVED),
        (JobStatus.ASSIGNED, TrackingStatus.INSTALLER_ASSIGNED),
        (JobStatus.ACCEPTED, TrackingStatus.INSTALLER_CONFIRMED),
        (JobStatus.IN_PROGRESS, TrackingStatus.IN_PROGRESS),
        (JobStatus.COMPLETED, TrackingStatus.COMPLETED),
    ],
)
def test_status_follows_job_assignment(job_status, expected) -> None:
    assignment = _assignment(job_status) if job_status else None

    assert project_status(_booking(BookingStatus.CONFIRMED), assignment) is expected


def test_cancelled_booking_reports_cancelled() -> None:
    assert project_status(_booking(BookingStatus.CANCELLED), _assignment(JobStatus.ACCEPTED)) is (
        TrackingStatus.CANCELLED
    )


def test_new_and_purchased_bookings_are_received(marketplace, installer_factory, booking_factory) -> None:
    booking = booking_factory()
    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.RECEIVED

    marketplace.leads.purchase_lead(installer_factory("100"), booking.booking_id)
    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.RECEIVED


def test_pending_proposals_show_in_view_not_status(marketplace, installer_factory, booking_factory) -> None:
    installer_id = installer_factory("100")
    booking = booking_factory()
    marketplace.leads.purchase_lead(installer_id, booking.booking_id)
    marketplace.schedules.propose(booking.booking_id, ProposerRole.INSTALLER, installer_id, date(2025, 6, 14), "09:00")

    view = marketplace.tracking.get_tracking(booking.booking_id)

    assert view.status is TrackingStatus.RECEIVED
    assert view.pending_proposals == 1
    assert view.installer_id is None


def test_full_job_round_trip(marketplace, scheduled_job, clock, notifier) -> None:
    booking, installer_id = scheduled_job
    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.INSTALLER_CONFIRMED

    clock.advance(days=4)
    assignment, started = marketplace.jobs.start_job(booking.booking_id, installer_id)
    assert assignment.status is JobStatus.IN_PROGRESS
    assert assignment.started_at == clock.now
    assert started.status is BookingStatus.IN_PROGRESS
    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.IN_PROGRESS

    clock.advance(hours=2)
    assignment, completed = marketplace.jobs.complete_job(booking.booking_id, installer_id)
    assert assignment.completed_at == clock.now
    assert completed.status is BookingStatus.COMPLETED

    view = marketplace.tracking.get_tracking(booking.booking_id)
    assert view.status is TrackingStatus.COMPLETED
    assert view.installer_id == installer_id
    assert view.scheduled_time == "11:00 AM - 1:00 PM"
    assert notifier.types()[-2:] == ["job_started", "job_completed"]


def test_job_cannot_skip_steps(marketplace, scheduled_job) -> None:
    booking, installer_id = scheduled_job

    with pytest.raises(InvalidStatusTransition):
        marketplace.jobs.complete_job(booking.booking_id, installer_id)

    marketplace.jobs.start_job(booking.booking_id, installer_id)
    with pytest.raises(InvalidStatusTransition):
        marketplace.jobs.start_job(booking.booking_id, installer_id)


def test_only_assigned_installer_advances_job(marketplace, scheduled_job, installer_factory) -> None:
    booking, _ = scheduled_job

    with pytest.raises(Unauthorized):
        marketplace.jobs.start_job(booking.booking_id, installer_factory("0"))
    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.INSTALLER_CONFIRMED


def test_job_without_assignment(marketplace, booking_factory, installer_factory) -> None:
    booking = booking_factory()

    with pytest.raises(JobAssignmentNotFound):
        marketplace.jobs.start_job(booking.booking_id, installer_factory())
    with pytest.raises(BookingNotFound):
        marketplace.jobs.start_job(uuid4(), installer_factory())


def test_lookup_by_qr_code(marketplace, scheduled_job) -> None:
    booking, _ = scheduled_job

    view = marketplace.tracking.get_by_qr_code(f"  {booking.qr_code} ")

    assert view.booking_id == booking.booking_id
    assert view.pending_proposals == 0
    with pytest.raises(BookingNotFound) as exc_info:
        marketplace.tracking.get_by_qr_code(" BK-NOPE")
    assert exc_info.value.booking_id is None
    assert exc_info.value.context == {"qr_code": "BK-NOPE"}


def test_cancelled_booking_tracking(marketplace, booking_factory) -> None:
    booking = booking_factory()
    marketplace.leads.cancel_booking(booking.booking_id)

    assert marketplace.tracking.get_status(booking.booking_id) is TrackingStatus.CANCELLED
