"""
Service wiring.

Builds every marketplace service over one shared store, clock and notifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from domain.time import utc_now
from repositories.store import MarketplaceStore, create_store
from services.booking_status_service import BookingStatusService
from services.job_lifecycle_service import JobLifecycleService
from services.lead_allocation_service import LeadAllocationService
from services.lead_export_service import LeadExportService
from services.notification_service import LoggingNotifier, Notifier
from services.onboarding_service import OnboardingService
from services.schedule_negotiation_service import ScheduleNegotiationProtocol
from services.voucher_engine import VoucherEngine
from services.wallet_ledger import WalletLedger
from settings import Settings


@dataclass(frozen=True)
class Marketplace:
    settings: Settings
    store: MarketplaceStore
    wallets: WalletLedger
    vouchers: VoucherEngine
    onboarding: OnboardingService
    leads: LeadAllocationService
    schedules: ScheduleNegotiationProtocol
    jobs: JobLifecycleService
    tracking: BookingStatusService
    exports: LeadExportService


def build_marketplace(
    settings: Settings,
    store: Optional[MarketplaceStore] = None,
    clock: Callable[[], datetime] = utc_now,
    notifier: Optional[Notifier] = None,
) -> Marketplace:
    store = store if store is not None else create_store(settings)
    notifier = notifier or LoggingNotifier()

    vouchers = VoucherEngine(store, enabled=settings.first_lead_voucher_enabled, clock=clock)
    leads = LeadAllocationService(store, vouchers, notifier=notifier, clock=clock)

    return Marketplace(
        settings=settings,
        store=store,
        wallets=WalletLedger(store, clock=clock),
        vouchers=vouchers,
        onboarding=OnboardingService(
            store,
            vouchers_enabled=settings.first_lead_voucher_enabled,
            voucher_amount=settings.first_lead_voucher_amount,
            clock=clock,
        ),
        leads=leads,
        schedules=ScheduleNegotiationProtocol(
            store,
            notifier=notifier,
            clock=clock,
            proposal_expiry_hours=settings.proposal_expiry_hours,
        ),
        jobs=JobLifecycleService(store, notifier=notifier, clock=clock),
        tracking=BookingStatusService(store),
        exports=LeadExportService(leads),
    )


__all__ = ["Marketplace", "build_marketplace"]
