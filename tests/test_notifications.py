"""
Tests for `services/notification_service.py`.

A failing notifier never undoes or fails the operation that emitted the event.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from services.marketplace import build_marketplace
from services.notification_service import (
    LoggingNotifier,
    NotificationEvent,
    NotificationType,
    dispatch_safely,
)
from settings import Settings

T0 = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


class ExplodingNotifier:
    def notify(self, event) -> None:
        raise ConnectionError("SMTP unavailable")


def test_dispatch_reports_failure_and_logs(caplog) -> None:
    event = NotificationEvent(NotificationType.JOB_STARTED, uuid4(), T0)

    with caplog.at_level(logging.WARNING, logger="services.notification_service"):
        assert dispatch_safely(ExplodingNotifier(), event) is False

    assert "Notification delivery failed" in caplog.text


def test_logging_notifier_records_event(caplog) -> None:
    event = NotificationEvent(NotificationType.LEAD_PURCHASED, uuid4(), T0, installer_id=uuid4())

    with caplog.at_level(logging.INFO, logger="services.notification_service"):
        assert dispatch_safely(LoggingNotifier(), event) is True

    assert "lead_purchased" in caplog.text


def test_failing_notifier_does_not_undo_purchase(store, clock) -> None:
    from conftest import make_intake

    marketplace = build_marketplace(Settings(), store=store, clock=clock, notifier=ExplodingNotifier())
    installer_id = uuid4()
    marketplace.onboarding.onboard_installer(installer_id, Decimal("100"))
    booking = marketplace.leads.register_booking(make_intake("silver"))

    result = marketplace.leads.purchase_lead(installer_id, booking.booking_id)

    assert result.final_cost == Decimal("0.00")
    assert store.get_grant(installer_id, booking.booking_id) is not None
