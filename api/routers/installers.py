"""
Installer API Endpoints.

Installer onboarding and the installer's view of schedule negotiations.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_marketplace
from api.models import (
    ProposalListResponse,
    ProposalResponse,
    RegisterInstallerRequest,
    RegisterInstallerResponse,
)
from domain.errors import MarketplaceError
from services.marketplace import Marketplace

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/installers/{installer_id}/register",
    response_model=RegisterInstallerResponse,
    status_code=201,
    summary="Register Installer",
    description="Create the installer's wallet and, when enabled, the first-lead voucher.",
)
def register_installer(
    installer_id: UUID,
    request: Optional[RegisterInstallerRequest] = None,
    marketplace: Marketplace = Depends(get_marketplace),
):
    try:
        opening_balance = request.opening_balance if request else 0
        result = marketplace.onboarding.onboard_installer(installer_id, opening_balance)
        return RegisterInstallerResponse(
            installer_id=installer_id,
            balance=result.wallet.balance,
            voucher_amount=result.voucher.amount if result.voucher else None,
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to register installer", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to register installer: {str(e)}")


@router.get(
    "/installers/{installer_id}/schedule-negotiations",
    response_model=ProposalListResponse,
    summary="Installer Schedule Negotiations",
    description="Proposals made by or addressed to the installer, newest first.",
)
def list_installer_proposals(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        proposals = marketplace.schedules.list_for_installer(installer_id)
        return ProposalListResponse(
            items=[ProposalResponse.from_domain(p) for p in proposals],
            total_count=len(proposals),
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to list proposals", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to list proposals: {str(e)}")
