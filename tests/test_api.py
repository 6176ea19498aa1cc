"""
Tests for the FastAPI layer (`api/`).

The marketplace dependency is replaced with one built over the in-memory
store, so every request runs the real services end to end.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_marketplace
from api.main import app, status_code_for
from domain.errors import InvalidStatusTransition, MarketplaceError, ProposalNotPending, Unauthorized

BOOKING_PAYLOAD = {
    "customer_name": "Aoife Byrne",
    "customer_email": "aoife@example.com",
    "customer_phone": "+353 87 123 4567",
    "address": "12 Main Street, Naas, Co. Kildare",
    "service_type": "emergency",
    "tv_size": 55,
    "wall_type": "drywall",
    "mount_type": "tilting",
    "total_price": "189.00",
}


@pytest.fixture
def client(marketplace):
    app.dependency_overrides[get_marketplace] = lambda: marketplace
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _register(client, balance: str = "50.00") -> str:
    installer_id = str(uuid4())
    response = client.post(f"/api/v1/installers/{installer_id}/register", json={"opening_balance": balance})
    assert response.status_code == 201
    return installer_id


def _create_booking(client, **overrides) -> dict:
    response = client.post("/api/v1/bookings", json={**BOOKING_PAYLOAD, **overrides})
    assert response.status_code == 201
    return response.json()


def _buy(client, installer_id: str, booking_id: str):
    return client.post(f"/api/v1/installers/{installer_id}/leads/{booking_id}/purchase")


def test_health_and_root(client) -> None:
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["health"] == "/health"


def test_register_installer_defaults(client) -> None:
    installer_id = str(uuid4())

    response = client.post(f"/api/v1/installers/{installer_id}/register")

    assert response.status_code == 201
    body = response.json()
    assert Decimal(body["balance"]) == Decimal("0")
    assert Decimal(body["voucher_amount"]) == Decimal("40.00")

    again = client.post(f"/api/v1/installers/{installer_id}/register")
    assert again.status_code == 409
    assert again.json()["error"] == "INSTALLER_ALREADY_REGISTERED"


def test_create_booking_and_browse_redacted(client) -> None:
    installer_id = _register(client)
    booking = _create_booking(client)

    assert booking["status"] == "open"
    assert Decimal(booking["lead_fee"]) == Decimal("40.00")

    leads = client.get(f"/api/v1/installers/{installer_id}/leads").json()
    assert leads["total_count"] == 1
    lead = leads["items"][0]
    assert lead["purchased"] is False
    assert lead["contact"]["phone"] == ""
    assert lead["contact"]["address"] == "Co. Kildare"


def test_purchase_flow(client) -> None:
    installer_id = _register(client, "5.00")
    booking_id = _create_booking(client)["booking_id"]

    response = _buy(client, installer_id, booking_id)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert Decimal(body["final_cost"]) == Decimal("0")
    assert Decimal(body["voucher_discount"]) == Decimal("40.00")
    assert Decimal(body["new_balance"]) == Decimal("5.00")
    assert body["contact"]["name"] == "Aoife Byrne"

    duplicate = _buy(client, installer_id, booking_id)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "ALREADY_PURCHASED"

    purchased = client.get(f"/api/v1/installers/{installer_id}/leads/purchased").json()
    assert [item["booking_id"] for item in purchased["items"]] == [booking_id]

    lead = client.get(f"/api/v1/installers/{installer_id}/leads/{booking_id}").json()
    assert lead["purchased"] is True
    assert lead["contact"]["email"] == "aoife@example.com"

    voucher = client.get(f"/api/v1/installers/{installer_id}/voucher").json()
    assert voucher["eligible"] is False


def test_insufficient_funds_returns_402_with_context(client, marketplace_factory, marketplace) -> None:
    installer_id = uuid4()
    marketplace_factory(first_lead_voucher_enabled=False).onboarding.onboard_installer(installer_id, Decimal("5"))
    booking_id = _create_booking(client)["booking_id"]

    response = _buy(client, str(installer_id), booking_id)

    assert response.status_code == 402
    body = response.json()
    assert body["error"] == "INSUFFICIENT_FUNDS"
    assert body["status_code"] == 402
    assert body["context"]["required"] == "40.00"
    assert body["context"]["available"] == "5.00"


def test_unknown_lead_returns_404(client) -> None:
    installer_id = _register(client)

    response = _buy(client, installer_id, str(uuid4()))

    assert response.status_code == 404
    assert response.json()["error"] == "LEAD_NOT_FOUND"


def test_wallet_endpoints(client) -> None:
    installer_id = _register(client, "10.00")

    topped_up = client.post(
        f"/api/v1/installers/{installer_id}/wallet/credits",
        json={"amount": "25.50", "payment_reference": "pi_42"},
    )
    assert topped_up.status_code == 200
    assert Decimal(topped_up.json()["balance"]) == Decimal("35.50")

    transactions = client.get(f"/api/v1/installers/{installer_id}/wallet/transactions").json()
    assert transactions["total_count"] == 1
    assert transactions["items"][0]["entry_type"] == "credit_purchase"
    assert transactions["items"][0]["reference_id"] == "pi_42"

    assert client.get(f"/api/v1/installers/{installer_id}/wallet/transactions?limit=0").status_code == 422
    assert client.post(
        f"/api/v1/installers/{installer_id}/wallet/credits", json={"amount": "0"}
    ).status_code == 422
    assert client.get(f"/api/v1/installers/{uuid4()}/wallet").status_code == 404


def test_negotiation_to_completion(client) -> None:
    installer_a = _register(client, "100.00")
    installer_b = _register(client, "100.00")
    booking = _create_booking(client)
    booking_id = booking["booking_id"]
    assert _buy(client, installer_a, booking_id).status_code == 200
    assert _buy(client, installer_b, booking_id).status_code == 200

    proposal_a = client.post(
        "/api/v1/schedule-negotiations",
        json={
            "booking_id": booking_id,
            "proposer_role": "installer",
            "installer_id": installer_a,
            "proposed_date": "2099-06-14",
            "time_slot": "09:00",
        },
    )
    proposal_b = client.post(
        "/api/v1/schedule-negotiations",
        json={
            "booking_id": booking_id,
            "proposer_role": "installer",
            "installer_id": installer_b,
            "proposed_date": "2099-06-15",
            "time_slot": "13:00",
        },
    )
    assert proposal_a.status_code == 201
    assert proposal_b.status_code == 201

    listed = client.get(f"/api/v1/bookings/{booking_id}/schedule-negotiations").json()
    assert listed["total_count"] == 2

    accepted = client.post(
        f"/api/v1/schedule-negotiations/{proposal_a.json()['proposal_id']}/accept",
        json={"acting_role": "customer"},
    )
    assert accepted.status_code == 200
    body = accepted.json()
    assert body["booking_status"] == "confirmed"
    assert body["installer_id"] == installer_a
    assert body["superseded_proposal_ids"] == [proposal_b.json()["proposal_id"]]

    late = client.post(
        f"/api/v1/schedule-negotiations/{proposal_b.json()['proposal_id']}/accept",
        json={"acting_role": "customer"},
    )
    assert late.status_code == 409
    assert late.json()["error"] == "PROPOSAL_NOT_PENDING"

    status = client.get(f"/api/v1/bookings/{booking_id}/status").json()
    assert status["status"] == "installer_confirmed"
    assert client.get(f"/api/v1/bookings/qr/{booking['qr_code']}").json()["booking_id"] == booking_id

    forbidden = client.post(f"/api/v1/bookings/{booking_id}/job/start", json={"installer_id": installer_b})
    assert forbidden.status_code == 403

    started = client.post(f"/api/v1/bookings/{booking_id}/job/start", json={"installer_id": installer_a})
    assert started.json()["status"] == "in_progress"
    completed = client.post(f"/api/v1/bookings/{booking_id}/job/complete", json={"installer_id": installer_a})
    assert completed.json()["booking_status"] == "completed"
    assert client.get(f"/api/v1/bookings/{booking_id}/status").json()["status"] == "completed"


def test_installer_proposal_requires_installer_id(client) -> None:
    booking_id = _create_booking(client)["booking_id"]

    response = client.post(
        "/api/v1/schedule-negotiations",
        json={
            "booking_id": booking_id,
            "proposer_role": "installer",
            "proposed_date": "2099-06-14",
            "time_slot": "09:00",
        },
    )

    assert response.status_code == 422


def test_reject_without_body(client) -> None:
    installer_id = _register(client, "100.00")
    booking_id = _create_booking(client)["booking_id"]
    _buy(client, installer_id, booking_id)
    proposal_id = client.post(
        "/api/v1/schedule-negotiations",
        json={
            "booking_id": booking_id,
            "proposer_role": "customer",
            "installer_id": installer_id,
            "proposed_date": "2099-06-14",
            "time_slot": "17:00",
        },
    ).json()["proposal_id"]

    response = client.post(f"/api/v1/schedule-negotiations/{proposal_id}/reject")

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    active = client.get(f"/api/v1/bookings/{booking_id}/active-negotiation").json()
    assert active["proposal"] is None


def test_cancel_booking(client) -> None:
    booking_id = _create_booking(client)["booking_id"]

    assert client.post(f"/api/v1/bookings/{booking_id}/cancel").json()["status"] == "cancelled"
    again = client.post(f"/api/v1/bookings/{booking_id}/cancel")
    assert again.status_code == 409
    assert again.json()["error"] == "INVALID_STATUS_TRANSITION"


def test_export_csv(client) -> None:
    installer_id = _register(client, "100.00")
    booking_id = _create_booking(client)["booking_id"]
    _buy(client, installer_id, booking_id)

    response = client.get(f"/api/v1/installers/{installer_id}/leads/purchased/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert booking_id in response.text


def test_status_code_lookup() -> None:
    assert status_code_for(Unauthorized("nope")) == 403
    assert status_code_for(ProposalNotPending(uuid4(), "accepted")) == 409
    assert status_code_for(InvalidStatusTransition("booking", "open", "completed")) == 409
    assert status_code_for(MarketplaceError("generic")) == 400
