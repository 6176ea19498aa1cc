"""
Installer Lead Marketplace API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from domain.errors import (
    AlreadyPurchased,
    BookingNotFound,
    BookingNotSchedulable,
    InstallerAlreadyRegistered,
    InsufficientFunds,
    InvalidAmount,
    InvalidProposal,
    InvalidStatusTransition,
    JobAssignmentNotFound,
    LeadNotFound,
    MarketplaceError,
    ProposalNotFound,
    ProposalNotPending,
    Unauthorized,
    VoucherAlreadyConsumed,
    WalletNotFound,
)
from settings import load_settings

logger = logging.getLogger(__name__)

settings = load_settings()

# Create FastAPI application
app = FastAPI(
    title="Installer Lead Marketplace API",
    description="REST API for lead purchases, installer wallets and schedule negotiation",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS_CODES = {
    InsufficientFunds: 402,
    VoucherAlreadyConsumed: 409,
    LeadNotFound: 404,
    AlreadyPurchased: 409,
    ProposalNotPending: 409,
    Unauthorized: 403,
    BookingNotFound: 404,
    ProposalNotFound: 404,
    WalletNotFound: 404,
    JobAssignmentNotFound: 404,
    BookingNotSchedulable: 409,
    InvalidStatusTransition: 409,
    InstallerAlreadyRegistered: 409,
    InvalidProposal: 422,
    InvalidAmount: 422,
}


def status_code_for(error: MarketplaceError) -> int:
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 400


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Return recoverable domain errors as {"error", "detail", "status_code", "context"}."""

    status_code = status_code_for(exc)
    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "error": exc.code, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "error": exc.code,
                "detail": exc.message,
                "status_code": status_code,
                "context": exc.context,
            }
        ),
    )


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "installer-lead-marketplace-api",
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Installer Lead Marketplace API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from api.routers import bookings, installers, leads, schedules, wallets

app.include_router(bookings.router, prefix="/api/v1", tags=["Bookings"])
app.include_router(installers.router, prefix="/api/v1", tags=["Installers"])
app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
app.include_router(wallets.router, prefix="/api/v1", tags=["Wallets"])
app.include_router(schedules.router, prefix="/api/v1", tags=["Schedule Negotiation"])
