"""
Notification dispatch.

Email/SMS delivery belongs to an external collaborator. The engine only
emits events after a successful commit; a failing notifier is logged and
never undoes or fails the operation that triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    LEAD_PURCHASED = "lead_purchased"
    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_ACCEPTED = "proposal_accepted"
    PROPOSAL_REJECTED = "proposal_rejected"
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    BOOKING_CANCELLED = "booking_cancelled"


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    event_type: NotificationType
    booking_id: UUID
    occurred_at: datetime
    installer_id: Optional[UUID] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    def notify(self, event: NotificationEvent) -> None: ...


class LoggingNotifier:
    """Default notifier: records events in the application log."""

    def notify(self, event: NotificationEvent) -> None:
        logger.info(
            f"Notification: {event.event_type.value}",
            extra={
                "event_type": event.event_type.value,
                "booking_id": str(event.booking_id),
                "installer_id": str(event.installer_id) if event.installer_id else None,
                "payload": event.payload,
            },
        )


def dispatch_safely(notifier: Notifier, event: NotificationEvent) -> bool:
    """Deliver `event`; returns False (and logs) if the notifier fails."""

    try:
        notifier.notify(event)
    except Exception as e:
        logger.warning(
            "Notification delivery failed",
            extra={
                "event_type": event.event_type.value,
                "booking_id": str(event.booking_id),
                "error": str(e),
            },
        )
        return False
    return True


__all__ = [
    "LoggingNotifier",
    "NotificationEvent",
    "NotificationType",
    "Notifier",
    "dispatch_safely",
]
