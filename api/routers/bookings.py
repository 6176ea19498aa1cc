"""
Bookings API Endpoints.

Booking intake and cancellation, public status tracking (by booking ID or
QR code), the active negotiation, and job start / completion.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_marketplace
from api.models import (
    ActiveNegotiationResponse,
    BookingCreateRequest,
    BookingResponse,
    JobActionRequest,
    JobResponse,
    ProposalResponse,
    TrackingResponse,
)
from domain.booking import Booking, CustomerContact
from domain.errors import MarketplaceError
from domain.job_assignment import JobAssignment
from domain.tracking import TrackingView
from services.lead_allocation_service import BookingIntake
from services.marketplace import Marketplace

logger = logging.getLogger(__name__)

router = APIRouter()


def _tracking_response(view: TrackingView) -> TrackingResponse:
    return TrackingResponse(
        booking_id=view.booking_id,
        qr_code=view.qr_code,
        status=view.status.value,
        service_type=view.service_type,
        scheduled_date=view.scheduled_date,
        scheduled_time=view.scheduled_time,
        installer_id=view.installer_id,
        assigned_at=view.assigned_at,
        accepted_at=view.accepted_at,
        completed_at=view.completed_at,
        pending_proposals=view.pending_proposals,
    )


def _job_response(assignment: JobAssignment, booking: Booking) -> JobResponse:
    return JobResponse(
        assignment_id=assignment.assignment_id,
        booking_id=assignment.booking_id,
        installer_id=assignment.installer_id,
        status=assignment.status.value,
        booking_status=booking.status.value,
        started_at=assignment.started_at,
        completed_at=assignment.completed_at,
    )


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=201,
    summary="Create Booking",
    description="Register a customer booking; it becomes an open lead with a fixed lead fee.",
)
def create_booking(request: BookingCreateRequest, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        intake = BookingIntake(
            contact=CustomerContact(
                name=request.customer_name,
                email=request.customer_email,
                phone=request.customer_phone,
                address=request.address,
            ),
            service_type=request.service_type,
            tv_size=request.tv_size,
            wall_type=request.wall_type,
            mount_type=request.mount_type,
            total_price=request.total_price,
            addons=tuple(request.addons),
            referral_discount=request.referral_discount,
            preferred_date=request.preferred_date,
            preferred_time=request.preferred_time,
            customer_notes=request.customer_notes,
        )
        return BookingResponse.from_domain(marketplace.leads.register_booking(intake))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to create booking")
        raise HTTPException(status_code=500, detail=f"Failed to create booking: {str(e)}")


@router.post(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel Booking",
)
def cancel_booking(booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        return BookingResponse.from_domain(marketplace.leads.cancel_booking(booking_id))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to cancel booking", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to cancel booking: {str(e)}")


@router.get(
    "/bookings/{booking_id}/status",
    response_model=TrackingResponse,
    summary="Booking Status",
    description="Public status, recomputed on every request.",
)
def get_booking_status(booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        return _tracking_response(marketplace.tracking.get_tracking(booking_id))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to get booking status", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to get booking status: {str(e)}")


@router.get(
    "/bookings/qr/{qr_code}",
    response_model=TrackingResponse,
    summary="Track Booking by QR Code",
)
def track_by_qr_code(qr_code: str, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        return _tracking_response(marketplace.tracking.get_by_qr_code(qr_code))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to track booking", extra={"qr_code": qr_code})
        raise HTTPException(status_code=500, detail=f"Failed to track booking: {str(e)}")


@router.get(
    "/bookings/{booking_id}/active-negotiation",
    response_model=ActiveNegotiationResponse,
    summary="Active Negotiation",
    description="Newest pending proposal, else the accepted one, else null.",
)
def get_active_negotiation(booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        proposal = marketplace.schedules.get_active(booking_id)
        return ActiveNegotiationResponse(
            proposal=ProposalResponse.from_domain(proposal) if proposal else None
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to get active negotiation", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to get active negotiation: {str(e)}")


@router.post(
    "/bookings/{booking_id}/job/start",
    response_model=JobResponse,
    summary="Start Job",
)
def start_job(booking_id: UUID, request: JobActionRequest, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        assignment, booking = marketplace.jobs.start_job(booking_id, request.installer_id)
        return _job_response(assignment, booking)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to start job", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to start job: {str(e)}")


@router.post(
    "/bookings/{booking_id}/job/complete",
    response_model=JobResponse,
    summary="Complete Job",
)
def complete_job(booking_id: UUID, request: JobActionRequest, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        assignment, booking = marketplace.jobs.complete_job(booking_id, request.installer_id)
        return _job_response(assignment, booking)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to complete job", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to complete job: {str(e)}")
