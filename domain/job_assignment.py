"""
Domain: Job assignments.

A JobAssignment links one installer to a booking once a schedule has been
accepted. There is at most one per booking:

    assigned -> accepted -> in_progress -> completed

A reschedule re-accepts the assignment (possibly for a different installer)
as long as the job has not started. A completed assignment is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import InvalidStatusTransition
from .time import require_utc_timestamp


class JobStatus(str, Enum):
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class JobAssignment:
    assignment_id: UUID
    booking_id: UUID
    installer_id: UUID
    status: JobStatus
    assigned_at: datetime
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("assigned_at", self.assigned_at)
        for name in ("accepted_at", "started_at", "completed_at"):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    @staticmethod
    def accepted_now(
        *, assignment_id: UUID, booking_id: UUID, installer_id: UUID, at: datetime
    ) -> "JobAssignment":
        return JobAssignment(
            assignment_id=assignment_id,
            booking_id=booking_id,
            installer_id=installer_id,
            status=JobStatus.ACCEPTED,
            assigned_at=at,
            accepted_at=at,
        )

    def _require(self, target: JobStatus, *allowed: JobStatus) -> None:
        if self.status not in allowed:
            raise InvalidStatusTransition("job assignment", self.status.value, target.value)

    def reaccepted(self, installer_id: UUID, at: datetime) -> "JobAssignment":
        """Confirm a (re)scheduled appointment, possibly for another installer."""

        self._require(JobStatus.ACCEPTED, JobStatus.ASSIGNED, JobStatus.ACCEPTED)
        if installer_id != self.installer_id:
            return replace(
                self,
                installer_id=installer_id,
                status=JobStatus.ACCEPTED,
                assigned_at=at,
                accepted_at=at,
            )
        return replace(self, status=JobStatus.ACCEPTED, accepted_at=at)

    def started(self, at: datetime) -> "JobAssignment":
        require_utc_timestamp("at", at)
        self._require(JobStatus.IN_PROGRESS, JobStatus.ACCEPTED)
        return replace(self, status=JobStatus.IN_PROGRESS, started_at=at)

    def completed(self, at: datetime) -> "JobAssignment":
        require_utc_timestamp("at", at)
        self._require(JobStatus.COMPLETED, JobStatus.IN_PROGRESS)
        return replace(self, status=JobStatus.COMPLETED, completed_at=at)


__all__ = ["JobAssignment", "JobStatus"]
