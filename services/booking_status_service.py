"""
Booking status reads for customer-facing (QR code) tracking.

The status is recomputed from the booking, its job assignment and its
proposals on every call; nothing here is cached or stored.
"""

from __future__ import annotations

from uuid import UUID

from domain.booking import Booking
from domain.errors import BookingNotFound
from domain.tracking import TrackingStatus, TrackingView, build_tracking_view
from repositories.store import MarketplaceStore


class BookingStatusService:
    def __init__(self, store: MarketplaceStore) -> None:
        self._store = store

    def _view(self, booking: Booking) -> TrackingView:
        return build_tracking_view(
            booking,
            self._store.get_job_assignment(booking.booking_id),
            self._store.list_proposals_for_booking(booking.booking_id),
        )

    def get_tracking(self, booking_id: UUID) -> TrackingView:
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return self._view(booking)

    def get_status(self, booking_id: UUID) -> TrackingStatus:
        return self.get_tracking(booking_id).status

    def get_by_qr_code(self, qr_code: str) -> TrackingView:
        booking = self._store.get_booking_by_qr_code(qr_code.strip())
        if booking is None:
            raise BookingNotFound(qr_code=qr_code.strip())
        return self._view(booking)


__all__ = ["BookingStatusService"]
