"""
Wallet API Endpoints.

Installer credit balances, transaction history, credit top-ups and the
first-lead voucher.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_marketplace
from api.models import (
    CreditRequest,
    LedgerEntryResponse,
    TransactionListResponse,
    VoucherEligibilityResponse,
    WalletResponse,
)
from domain.errors import MarketplaceError
from services.marketplace import Marketplace

logger = logging.getLogger(__name__)

router = APIRouter()


def _wallet_response(marketplace: Marketplace, installer_id: UUID) -> WalletResponse:
    summary = marketplace.wallets.get_summary(installer_id)
    return WalletResponse(
        installer_id=summary.installer_id,
        balance=summary.balance,
        total_spent=summary.total_spent,
        total_credited=summary.total_credited,
        updated_at=summary.updated_at,
    )


@router.get(
    "/installers/{installer_id}/wallet",
    response_model=WalletResponse,
    summary="Wallet Balance",
)
def get_wallet(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        return _wallet_response(marketplace, installer_id)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to get wallet", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to get wallet: {str(e)}")


@router.get(
    "/installers/{installer_id}/wallet/transactions",
    response_model=TransactionListResponse,
    summary="Wallet Transactions",
    description="Ledger entries, newest first.",
)
def get_wallet_transactions(
    installer_id: UUID,
    limit: int = Query(50, ge=1, le=500, description="Maximum number of entries to return"),
    marketplace: Marketplace = Depends(get_marketplace),
):
    try:
        entries = marketplace.wallets.get_transaction_history(installer_id, limit=limit)
        return TransactionListResponse(
            items=[LedgerEntryResponse.from_domain(e) for e in entries],
            total_count=len(entries),
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to list transactions", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to list transactions: {str(e)}")


@router.post(
    "/installers/{installer_id}/wallet/credits",
    response_model=WalletResponse,
    summary="Add Credits",
    description="Record credits bought through the payment gateway.",
)
def add_credits(installer_id: UUID, request: CreditRequest, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        marketplace.wallets.top_up(installer_id, request.amount, request.payment_reference)
        return _wallet_response(marketplace, installer_id)
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to add credits", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to add credits: {str(e)}")


@router.get(
    "/installers/{installer_id}/voucher",
    response_model=VoucherEligibilityResponse,
    summary="First Lead Voucher Eligibility",
)
def get_voucher_eligibility(installer_id: UUID, marketplace: Marketplace = Depends(get_marketplace)):
    try:
        eligibility = marketplace.vouchers.check_eligibility(installer_id)
        return VoucherEligibilityResponse(
            eligible=eligibility.eligible,
            amount=eligibility.amount,
            reason=eligibility.reason,
        )
    except (HTTPException, MarketplaceError):
        raise
    except Exception as e:
        logger.exception("Failed to check voucher", extra={"installer_id": str(installer_id)})
        raise HTTPException(status_code=500, detail=f"Failed to check voucher eligibility: {str(e)}")
