"""
Pytest configuration.

This file adds the project root to the Python path so that tests can import
domain, repositories, services and api, and provides the shared fixtures:
a controllable clock, an in-memory store and a fully wired marketplace.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.booking import CustomerContact  # noqa: E402
from repositories.memory_store import InMemoryStore  # noqa: E402
from services.lead_allocation_service import BookingIntake  # noqa: E402
from services.marketplace import build_marketplace  # noqa: E402
from settings import Settings  # noqa: E402

NOW = datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.events = []

    def notify(self, event) -> None:
        self.events.append(event)

    def types(self):
        return [e.event_type.value for e in self.events]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def marketplace_factory(store, clock, notifier):
    def _build(**overrides):
        return build_marketplace(Settings(**overrides), store=store, clock=clock, notifier=notifier)

    return _build


@pytest.fixture
def marketplace(marketplace_factory):
    return marketplace_factory()


def make_intake(service_type: str = "silver", **overrides) -> BookingIntake:
    values = dict(
        contact=CustomerContact(
            name="Aoife Byrne",
            email="aoife@example.com",
            phone="+353 87 123 4567",
            address="12 Main Street, Naas, Co. Kildare",
        ),
        service_type=service_type,
        tv_size=55,
        wall_type="drywall",
        mount_type="tilting",
        total_price=Decimal("189.00"),
    )
    values.update(overrides)
    return BookingIntake(**values)


@pytest.fixture
def booking_factory(marketplace):
    def _create(service_type: str = "silver", **overrides):
        return marketplace.leads.register_booking(make_intake(service_type, **overrides))

    return _create


@pytest.fixture
def installer_factory(marketplace):
    def _create(balance="0.00", installer_id: UUID = None) -> UUID:
        installer_id = installer_id or uuid4()
        marketplace.onboarding.onboard_installer(installer_id, Decimal(balance))
        return installer_id

    return _create
