"""
Job lifecycle: the assigned installer starts and completes the installation.

    job assignment:  accepted -> in_progress -> completed
    booking:         confirmed -> in_progress -> completed
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Tuple
from uuid import UUID

from domain.booking import Booking
from domain.job_assignment import JobAssignment, JobStatus
from domain.time import utc_now
from repositories.store import MarketplaceStore
from services.notification_service import (
    LoggingNotifier,
    NotificationEvent,
    NotificationType,
    Notifier,
    dispatch_safely,
)

logger = logging.getLogger(__name__)


class JobLifecycleService:
    def __init__(
        self,
        store: MarketplaceStore,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock

    def _advance(
        self, booking_id: UUID, installer_id: UUID, target: JobStatus, event_type: NotificationType
    ) -> Tuple[JobAssignment, Booking]:
        now = self._clock()
        assignment, booking = self._store.advance_job(booking_id, installer_id, target, now)
        logger.info(
            f"Job {target.value}",
            extra={"booking_id": str(booking_id), "installer_id": str(installer_id)},
        )
        dispatch_safely(
            self._notifier,
            NotificationEvent(event_type, booking_id, now, installer_id=installer_id),
        )
        return assignment, booking

    def start_job(self, booking_id: UUID, installer_id: UUID) -> Tuple[JobAssignment, Booking]:
        """
        Raises:
            BookingNotFound, JobAssignmentNotFound,
            Unauthorized (not the assigned installer), InvalidStatusTransition
        """

        return self._advance(booking_id, installer_id, JobStatus.IN_PROGRESS, NotificationType.JOB_STARTED)

    def complete_job(self, booking_id: UUID, installer_id: UUID) -> Tuple[JobAssignment, Booking]:
        return self._advance(booking_id, installer_id, JobStatus.COMPLETED, NotificationType.JOB_COMPLETED)


__all__ = ["JobLifecycleService"]
