"""
Leads API Endpoints.

Endpoints for browsing open leads, purchasing lead access and downloading
purchased lead data.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_marketplace
from api.models import (
    ContactResponse,
    LeadListResponse,
    LeadResponse,
    PurchasedLeadListResponse,
    PurchasedLeadResponse,
    PurchaseResponse,
)
from domain.errors import MarketplaceError
from domain.lead import LeadView
from services.marketplace import Marketplace

logger = logging.getLogger(__name__)

router = APIRouter()


def _lead_response(view: LeadView) -> LeadResponse:
    booking = view.booking
    return LeadResponse(
        booking_id=booking.booking_id,
        service_type=booking.service_type,
        tv_size=booking.tv_size,
        wall_type=booking.wall_type,
        mount_type=booking.mount_type,
        addons=list(booking.addons),
        lead_fee=booking.lead_fee,
        status=booking.status.value,
        is_open=view.lead.is_open,
        purchased=view.purchased,
        purchaser_count=len(view.lead.purchaser_ids),
        preferred_date=booking.preferred_date,
        preferred_time=booking.preferred_time,
        created_at=booking.created_at,
        contact=ContactResponse.from_domain(view.contact),
    )


@router.get(
    "/installers/{installer_id}/leads",
    response_model=LeadListResponse,
    summary="List Available Leads",
    description="Open leads, newest first. Customer details stay hidden until the lead is purchased.",
)
def list_available_leads(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        views = marketplace.leads.list_available_leads(installer_id)
        return LeadListResponse(items=[_lead_response(v) for v in views], total_count=len(views))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to list leads", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to list leads: {str(e)}")


@router.get(
    "/installers/{installer_id}/leads/purchased",
    response_model=PurchasedLeadListResponse,
    summary="List Purchased Leads",
)
def list_purchased_leads(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        purchased = marketplace.leads.list_purchased_leads(installer_id)
        items = [
            PurchasedLeadResponse(
                booking_id=p.booking.booking_id,
                qr_code=p.booking.qr_code,
                status=p.booking.status.value,
                service_type=p.booking.service_type,
                lead_fee=p.grant.lead_fee,
                voucher_discount=p.grant.voucher_discount,
                amount_charged=p.grant.amount_charged,
                purchased_at=p.grant.granted_at,
                scheduled_date=p.booking.scheduled_date,
                scheduled_time=p.booking.scheduled_time,
                contact=ContactResponse.from_domain(p.booking.contact),
            )
            for p in purchased
        ]
        return PurchasedLeadListResponse(items=items, total_count=len(items))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to list purchased leads", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to list purchased leads: {str(e)}")


@router.get(
    "/installers/{installer_id}/leads/purchased/export",
    summary="Download Purchased Leads CSV",
    description="CSV file with full customer details for every lead the installer purchased.",
    response_class=Response,
)
def download_purchased_leads_csv(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    """
    Download CSV export of purchased leads.

    **Security:**
    - Only leads purchased by this installer are included
    - CSV injection prevention (dangerous characters stripped)
    - All data modifications are logged for audit trail
    """
    try:
        csv_content = marketplace.exports.generate_csv_for_installer(installer_id)
        return Response(
            content=csv_content,
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename=purchased_leads_{installer_id}.csv"
            },
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to generate CSV", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to generate CSV: {str(e)}")


@router.get(
    "/installers/{installer_id}/leads/{booking_id}",
    response_model=LeadResponse,
    summary="Get Lead",
)
def get_lead(installer_id: UUID, booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        return _lead_response(marketplace.leads.get_lead(installer_id, booking_id))
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to get lead", extra={"booking_id": str(booking_id)})
        raise HTTPException(status_code=500, detail=f"Failed to get lead: {str(e)}")


@router.post(
    "/installers/{installer_id}/leads/{booking_id}/purchase",
    response_model=PurchaseResponse,
    summary="Purchase Lead",
    description="Buy access to a lead's customer details with wallet credits.",
)
def purchase_lead(installer_id: UUID, booking_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    """
    Purchase access to a lead.

    **Process:**
    1. Checks the lead is still open and not already purchased by this installer
    2. Applies the first-lead voucher if the installer still has one
    3. Debits the remaining fee from the installer's wallet
    4. Records the purchase and reveals the customer's contact details

    All steps succeed together or not at all.

    **Failure responses:**
    - 402 `INSUFFICIENT_FUNDS`: top up the wallet and retry
    - 404 `LEAD_NOT_FOUND`: the lead is unknown or no longer available
    - 409 `ALREADY_PURCHASED`: this installer already owns the lead
    """
    try:
        result = marketplace.leads.purchase_lead(installer_id, booking_id)
        return PurchaseResponse(
            success=True,
            grant_id=result.grant.grant_id,
            booking_id=result.grant.booking_id,
            installer_id=result.grant.installer_id,
            lead_fee=result.grant.lead_fee,
            voucher_discount=result.voucher_discount,
            final_cost=result.final_cost,
            new_balance=result.new_balance,
            purchased_at=result.grant.granted_at,
            contact=ContactResponse.from_domain(result.contact),
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception(
            "Lead purchase failed",
            extra={"installer_id": str(installer_id), "booking_id": str(booking_id)},
        )
        raise HTTPException(status_code=500, detail=f"Failed to purchase lead: {str(e)}")
