"""
Schedule Negotiation API Endpoints.

Propose installation dates, list a booking's proposals, and accept or
reject a proposal.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_marketplace
from api.models import (
    AcceptanceResponse,
    AcceptProposalRequest,
    ProposalCreateRequest,
    ProposalListResponse,
    ProposalResponse,
    RejectProposalRequest,
)
from domain.errors import MarketplaceError
from domain.schedule import Party, ProposerRole
from services.marketplace import Marketplace

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/schedule-negotiations",
    response_model=ProposalResponse,
    status_code=201,
    summary="Propose Schedule",
)
def propose_schedule(request: ProposalCreateRequest, marketplace: Marketplace = Depends(get_marketplace)):
    """
    Propose an installation date for a booking.

    **Rules:**
    - Installers must have purchased the lead before proposing
    - A new proposal replaces the same party's earlier pending proposal
    - Proposals from different installers compete until one is accepted
    """
    try:
        if request.proposer_role is ProposerRole.INSTALLER and request.installer_id is None:
            raise HTTPException(status_code=422, detail="installer_id is required for installer proposals")

        proposal = marketplace.schedules.propose(
            booking_id=request.booking_id,
            proposer_role=request.proposer_role,
            installer_id=request.installer_id,
            proposed_date=request.proposed_date,
            time_slot=request.time_slot,
            message=request.message,
            start_time=request.start_time,
            end_time=request.end_time,
        )
        return ProposalResponse.from_domain(proposal)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to create proposal", extra={"booking_id": str(request.booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to create proposal: {str(e)}")


@router.get(
    "/bookings/{booking_id}/schedule-negotiations",
    response_model=ProposalListResponse,
    summary="Booking Schedule Negotiations",
    description="All proposals for the booking, newest first.",
)
def list_booking_proposals(booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        proposals = marketplace.schedules.list_for_booking(booking_id)
        return ProposalListResponse(
            items=[ProposalResponse.from_domain(p) for p in proposals],
            total_count=len(proposals),
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to list proposals", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to list proposals: {str(e)}")


@router.post(
    "/schedule-negotiations/{proposal_id}/accept",
    response_model=AcceptanceResponse,
    summary="Accept Proposal",
)
def accept_proposal(
    proposal_id: UUID,
    request: AcceptProposalRequest,
    marketplace: Marketplace = Depends(get_marketplace),
):
    """
    Accept a pending proposal.

    The customer accepts installer proposals; an installer who purchased the
    lead accepts customer proposals. Every other pending proposal for the
    booking is superseded and the booking is confirmed.

    **Failure responses:**
    - 403 `UNAUTHORIZED`: the caller is not the counter-party
    - 409 `PROPOSAL_NOT_PENDING`: the proposal was already decided; refresh and retry
    """
    try:
        if request.acting_role is ProposerRole.INSTALLER:
            if request.installer_id is None:
                raise HTTPException(status_code=422, detail="installer_id is required when an installer accepts")
            acting = Party.installer(request.installer_id)
        else:
            acting = Party.customer()

        outcome = marketplace.schedules.accept(proposal_id, acting, request.response_message)
        return AcceptanceResponse(
            proposal=ProposalResponse.from_domain(outcome.proposal),
            superseded_proposal_ids=[p.proposal_id for p in outcome.superseded],
            assignment_id=outcome.assignment.assignment_id,
            installer_id=outcome.assignment.installer_id,
            booking_status=outcome.booking.status.value,
            scheduled_date=outcome.booking.scheduled_date,
            scheduled_time=outcome.booking.scheduled_time,
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to accept proposal", extra={"proposal_id": str(proposal_id)})
        raise HTTPException(status_code=500, detail=f"Failed to accept proposal: {str(e)}")


@router.post(
    "/schedule-negotiations/{proposal_id}/reject",
    response_model=ProposalResponse,
    summary="Reject Proposal",
)
def reject_proposal(
    proposal_id: UUID,
    request: Optional[RejectProposalRequest] = None,
    marketplace: Marketplace = Depends(get_marketplace),
):
    try:
        rejected = marketplace.schedules.reject(proposal_id, request.response_message if request else None)
        return ProposalResponse.from_domain(rejected)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to reject proposal", extra={"proposal_id": str(proposal_id)})
        raise HTTPException(status_code=500, detail=f"Failed to reject proposal: {str(e)}")
