"""
Supabase-backed marketplace store (persistence).

Plain reads and single-row conditional updates go through the table API.
Operations that must change several rows together (purchase, wallet debit /
credit, voucher consumption, proposal creation and acceptance, job
transitions) are PostgreSQL functions defined in sql/schema.sql and invoked
through `supabase.rpc(...)`. Each runs in one transaction and takes row
locks (SELECT ... FOR UPDATE) in the same order as the in-memory store:
wallet before booking.

RPC functions return JSON of the form:
    {"success": true, ...rows}
    {"success": false, "error": "<ERROR_CODE>", "message": "...", ...context}

Failure codes are mapped back to the domain errors in domain/errors.py.
Anything else (network, malformed response) raises RuntimeError.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from postgrest.exceptions import APIError

from domain.booking import Booking, BookingStatus, CustomerContact
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
from domain.job_assignment import JobAssignment, JobStatus
from domain.lead import AssignmentGrant, PurchasePlan
from domain.schedule import (
    AcceptancePlan,
    Party,
    ProposalPlan,
    ProposalStatus,
    ProposerRole,
    ScheduleProposal,
    plan_proposal,
)
from domain.time import to_iso_utc
from domain.voucher import VoucherGrant, VoucherStatus
from domain.wallet import LedgerEntry, LedgerEntryType, WalletAccount

logger = logging.getLogger(__name__)

# Supabase table names. Keep these aligned with sql/schema.sql.
_BOOKINGS_TABLE = "bookings"
_WALLETS_TABLE = "wallets"
_LEDGER_TABLE = "ledger_entries"
_VOUCHERS_TABLE = "vouchers"
_GRANTS_TABLE = "lead_grants"
_PROPOSALS_TABLE = "schedule_proposals"
_ASSIGNMENTS_TABLE = "job_assignments"

_CANCELLABLE = [BookingStatus.OPEN.value, BookingStatus.ASSIGNED.value, BookingStatus.CONFIRMED.value]


# ----------------------------------------------------------------------
# Value conversion
# ----------------------------------------------------------------------
def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _optional_datetime(value: Any) -> Optional[datetime]:
    return _parse_utc_datetime(value) if value else None


def _optional_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _optional_time(value: Any) -> Optional[time]:
    if not value:
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def _credits(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------
def _row_to_booking(row: Mapping[str, Any]) -> Booking:
    return Booking(
        booking_id=UUID(str(row["booking_id"])),
        contact=CustomerContact(
            name=str(row["customer_name"]),
            email=str(row["customer_email"]),
            phone=str(row["customer_phone"]),
            address=str(row["address"]),
        ),
        service_type=str(row["service_type"]),
        tv_size=int(row["tv_size"]),
        wall_type=str(row["wall_type"]),
        mount_type=str(row["mount_type"]),
        total_price=_credits(row["total_price"]),
        lead_fee=_credits(row["lead_fee"]),
        qr_code=str(row["qr_code"]),
        status=BookingStatus(str(row["status"])),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        updated_at=_parse_utc_datetime(row["updated_at_utc"]),
        addons=tuple(row.get("addons") or ()),
        referral_discount=_credits(row.get("referral_discount") or 0),
        preferred_date=_optional_date(row.get("preferred_date")),
        preferred_time=row.get("preferred_time"),
        scheduled_date=_optional_date(row.get("scheduled_date")),
        scheduled_time=row.get("scheduled_time"),
        customer_notes=row.get("customer_notes"),
    )


def _booking_to_row(booking: Booking) -> Dict[str, Any]:
    return {
        "booking_id": str(booking.booking_id),
        "customer_name": booking.contact.name,
        "customer_email": booking.contact.email,
        "customer_phone": booking.contact.phone,
        "address": booking.contact.address,
        "service_type": booking.service_type,
        "tv_size": booking.tv_size,
        "wall_type": booking.wall_type,
        "mount_type": booking.mount_type,
        "addons": list(booking.addons),
        "total_price": str(booking.total_price),
        "lead_fee": str(booking.lead_fee),
        "referral_discount": str(booking.referral_discount),
        "qr_code": booking.qr_code,
        "status": booking.status.value,
        "preferred_date": booking.preferred_date.isoformat() if booking.preferred_date else None,
        "preferred_time": booking.preferred_time,
        "scheduled_date": booking.scheduled_date.isoformat() if booking.scheduled_date else None,
        "scheduled_time": booking.scheduled_time,
        "customer_notes": booking.customer_notes,
        "created_at_utc": to_iso_utc(booking.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(booking.updated_at, name="updated_at"),
    }


def _row_to_wallet(row: Mapping[str, Any]) -> WalletAccount:
    return WalletAccount(
        installer_id=UUID(str(row["installer_id"])),
        balance=_credits(row["balance"]),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        updated_at=_parse_utc_datetime(row["updated_at_utc"]),
        total_spent=_credits(row.get("total_spent") or 0),
        total_credited=_credits(row.get("total_credited") or 0),
    )


def _row_to_ledger_entry(row: Mapping[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        entry_id=UUID(str(row["entry_id"])),
        installer_id=UUID(str(row["installer_id"])),
        entry_type=LedgerEntryType(str(row["entry_type"])),
        amount=_credits(row["amount"]),
        balance_after=_credits(row["balance_after"]),
        description=str(row.get("description") or ""),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        reference_id=row.get("reference_id"),
    )


def _row_to_voucher(row: Mapping[str, Any]) -> VoucherGrant:
    return VoucherGrant(
        installer_id=UUID(str(row["installer_id"])),
        amount=_credits(row["amount"]),
        status=VoucherStatus(str(row["status"])),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        consumed_at=_optional_datetime(row.get("consumed_at_utc")),
        consumed_booking_id=_optional_uuid(row.get("consumed_booking_id")),
    )


def _row_to_grant(row: Mapping[str, Any]) -> AssignmentGrant:
    return AssignmentGrant(
        grant_id=UUID(str(row["grant_id"])),
        booking_id=UUID(str(row["booking_id"])),
        installer_id=UUID(str(row["installer_id"])),
        lead_fee=_credits(row["lead_fee"]),
        voucher_discount=_credits(row["voucher_discount"]),
        amount_charged=_credits(row["amount_charged"]),
        granted_at=_parse_utc_datetime(row["granted_at_utc"]),
    )


def _row_to_proposal(row: Mapping[str, Any]) -> ScheduleProposal:
    return ScheduleProposal(
        proposal_id=UUID(str(row["proposal_id"])),
        booking_id=UUID(str(row["booking_id"])),
        proposer_role=ProposerRole(str(row["proposer_role"])),
        installer_id=_optional_uuid(row.get("installer_id")),
        proposed_date=_optional_date(row["proposed_date"]),
        time_slot=str(row["time_slot"]),
        status=ProposalStatus(str(row["status"])),
        proposed_at=_parse_utc_datetime(row["proposed_at_utc"]),
        message=row.get("message"),
        start_time=_optional_time(row.get("start_time")),
        end_time=_optional_time(row.get("end_time")),
        is_reschedule=bool(row.get("is_reschedule")),
        responded_at=_optional_datetime(row.get("responded_at_utc")),
        response_message=row.get("response_message"),
    )


def _row_to_assignment(row: Mapping[str, Any]) -> JobAssignment:
    return JobAssignment(
        assignment_id=UUID(str(row["assignment_id"])),
        booking_id=UUID(str(row["booking_id"])),
        installer_id=UUID(str(row["installer_id"])),
        status=JobStatus(str(row["status"])),
        assigned_at=_parse_utc_datetime(row["assigned_at_utc"]),
        accepted_at=_optional_datetime(row.get("accepted_at_utc")),
        started_at=_optional_datetime(row.get("started_at_utc")),
        completed_at=_optional_datetime(row.get("completed_at_utc")),
    )


# ----------------------------------------------------------------------
# RPC error mapping
# ----------------------------------------------------------------------
def _uuid_field(data: Mapping[str, Any], key: str) -> UUID:
    return UUID(str(data[key]))


_ERROR_FACTORIES: Dict[str, Callable[[Mapping[str, Any]], MarketplaceError]] = {
    InsufficientFunds.code: lambda d: InsufficientFunds(
        _uuid_field(d, "installer_id"), required=_credits(d["required"]), available=_credits(d["available"])
    ),
    VoucherAlreadyConsumed.code: lambda d: VoucherAlreadyConsumed(_uuid_field(d, "installer_id")),
    LeadNotFound.code: lambda d: LeadNotFound(_uuid_field(d, "booking_id"), d.get("message") or "Lead not found"),
    AlreadyPurchased.code: lambda d: AlreadyPurchased(_uuid_field(d, "installer_id"), _uuid_field(d, "booking_id")),
    ProposalNotPending.code: lambda d: ProposalNotPending(_uuid_field(d, "proposal_id"), str(d["status"])),
    Unauthorized.code: lambda d: Unauthorized(d.get("message") or "Not allowed"),
    BookingNotFound.code: lambda d: BookingNotFound(_uuid_field(d, "booking_id")),
    ProposalNotFound.code: lambda d: ProposalNotFound(_uuid_field(d, "proposal_id")),
    WalletNotFound.code: lambda d: WalletNotFound(_uuid_field(d, "installer_id")),
    JobAssignmentNotFound.code: lambda d: JobAssignmentNotFound(_uuid_field(d, "booking_id")),
    InstallerAlreadyRegistered.code: lambda d: InstallerAlreadyRegistered(_uuid_field(d, "installer_id")),
    BookingNotSchedulable.code: lambda d: BookingNotSchedulable(_uuid_field(d, "booking_id"), str(d["status"])),
    InvalidStatusTransition.code: lambda d: InvalidStatusTransition(
        str(d["entity"]), str(d["current"]), str(d["target"])
    ),
    InvalidProposal.code: lambda d: InvalidProposal(d.get("message") or "Invalid proposal"),
    InvalidAmount.code: lambda d: InvalidAmount(d.get("amount"), d.get("message")),
}


def _raise_for_rpc_failure(function: str, data: Mapping[str, Any]) -> None:
    code = data.get("error")
    factory = _ERROR_FACTORIES.get(str(code))
    if factory is None:
        raise RuntimeError(f"RPC {function} failed: {code}: {data.get('message')}")
    raise factory(data)


class SupabaseStore:
    def __init__(self, client: Any) -> None:
        self._client = client

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _table(self, name: str):
        return self._client.table(name)

    @staticmethod
    def _rows(response: Any, action: str) -> List[Mapping[str, Any]]:
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to {action}: {error}")
        return getattr(response, "data", None) or []

    def _rpc(self, function: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        """Call a PostgreSQL function and return its JSON result on success."""

        try:
            response = self._client.rpc(function, dict(params)).execute()
        except APIError as e:
            # supabase-py raises APIError when a PostgreSQL function returns
            # JSON, for success and failure payloads alike.
            try:
                data = e.json() if callable(getattr(e, "json", None)) else {}
            except ValueError:
                data = {}
            if data.get("success") is None:
                logger.error("RPC call failed", extra={"function": function, "error": str(e)})
                raise RuntimeError(f"RPC {function} failed: {e}") from e
        else:
            error = getattr(response, "error", None)
            if error:
                raise RuntimeError(f"RPC {function} failed: {error}")
            data = response.data or {}

        if not isinstance(data, Mapping):
            raise RuntimeError(f"RPC {function} returned an unexpected payload: {data!r}")
        if not data.get("success"):
            _raise_for_rpc_failure(function, data)
        return data

    def _fetch_one(self, table: str, column: str, value: Any, action: str) -> Optional[Mapping[str, Any]]:
        response = self._table(table).select("*").eq(column, str(value)).limit(1).execute()
        rows = self._rows(response, action)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    def add_booking(self, booking: Booking) -> Booking:
        response = self._table(_BOOKINGS_TABLE).insert(_booking_to_row(booking)).execute()
        self._rows(response, "create booking")
        return booking

    def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        row = self._fetch_one(_BOOKINGS_TABLE, "booking_id", booking_id, "get booking")
        return _row_to_booking(row) if row else None

    def get_booking_by_qr_code(self, qr_code: str) -> Optional[Booking]:
        row = self._fetch_one(_BOOKINGS_TABLE, "qr_code", qr_code, "get booking by QR code")
        return _row_to_booking(row) if row else None

    def list_bookings(self, statuses: Sequence[BookingStatus]) -> List[Booking]:
        response = (
            self._table(_BOOKINGS_TABLE)
            .select("*")
            .in_("status", [s.value for s in statuses])
            .order("created_at_utc", desc=True)
            .execute()
        )
        return [_row_to_booking(row) for row in self._rows(response, "list bookings")]

    def cancel_booking(self, booking_id: UUID, at: datetime) -> Booking:
        response = (
            self._table(_BOOKINGS_TABLE)
            .update({"status": BookingStatus.CANCELLED.value, "updated_at_utc": to_iso_utc(at, name="at")})
            .eq("booking_id", str(booking_id))
            .in_("status", _CANCELLABLE)
            .execute()
        )
        rows = self._rows(response, "cancel booking")
        if rows:
            return _row_to_booking(rows[0])

        current = self.get_booking(booking_id)
        if current is None:
            raise BookingNotFound(booking_id)
        raise InvalidStatusTransition("booking", current.status.value, BookingStatus.CANCELLED.value)

    # ------------------------------------------------------------------
    # Wallets and vouchers
    # ------------------------------------------------------------------
    def register_installer(self, wallet: WalletAccount, voucher: Optional[VoucherGrant]) -> None:
        self._rpc(
            "register_installer",
            {
                "p_installer_id": str(wallet.installer_id),
                "p_opening_balance": str(wallet.balance),
                "p_voucher_amount": str(voucher.amount) if voucher else None,
                "p_at": to_iso_utc(wallet.created_at, name="created_at"),
            },
        )

    def get_wallet(self, installer_id: UUID) -> Optional[WalletAccount]:
        row = self._fetch_one(_WALLETS_TABLE, "installer_id", installer_id, "get wallet")
        return _row_to_wallet(row) if row else None

    def list_ledger_entries(self, installer_id: UUID, limit: int) -> List[LedgerEntry]:
        response = (
            self._table(_LEDGER_TABLE)
            .select("*")
            .eq("installer_id", str(installer_id))
            .order("created_at_utc", desc=True)
            .limit(limit)
            .execute()
        )
        return [_row_to_ledger_entry(row) for row in self._rows(response, "list ledger entries")]

    def _wallet_change(
        self,
        function: str,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        data = self._rpc(
            function,
            {
                "p_installer_id": str(installer_id),
                "p_amount": str(amount),
                "p_entry_type": entry_type.value,
                "p_description": description,
                "p_reference_id": reference_id,
                "p_at": to_iso_utc(at, name="at"),
            },
        )
        return _row_to_ledger_entry(data["ledger_entry"])

    def debit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        return self._wallet_change("wallet_debit", installer_id, amount, entry_type, description, reference_id, at)

    def credit_wallet(
        self,
        installer_id: UUID,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str,
        reference_id: Optional[str],
        at: datetime,
    ) -> LedgerEntry:
        return self._wallet_change("wallet_credit", installer_id, amount, entry_type, description, reference_id, at)

    def get_voucher(self, installer_id: UUID) -> Optional[VoucherGrant]:
        row = self._fetch_one(_VOUCHERS_TABLE, "installer_id", installer_id, "get voucher")
        return _row_to_voucher(row) if row else None

    def consume_voucher(
        self, installer_id: UUID, lead_fee: Decimal, booking_id: Optional[UUID], at: datetime
    ) -> Decimal:
        data = self._rpc(
            "consume_voucher",
            {
                "p_installer_id": str(installer_id),
                "p_lead_fee": str(lead_fee),
                "p_booking_id": str(booking_id) if booking_id else None,
                "p_at": to_iso_utc(at, name="at"),
            },
        )
        return _credits(data["discount"])

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------
    def purchase_lead(
        self, installer_id: UUID, booking_id: UUID, vouchers_enabled: bool, at: datetime
    ) -> PurchasePlan:
        data = self._rpc(
            "purchase_lead",
            {
                "p_installer_id": str(installer_id),
                "p_booking_id": str(booking_id),
                "p_vouchers_enabled": vouchers_enabled,
                "p_at": to_iso_utc(at, name="at"),
            },
        )
        return PurchasePlan(
            grant=_row_to_grant(data["grant"]),
            booking=_row_to_booking(data["booking"]),
            wallet=_row_to_wallet(data["wallet"]),
            voucher=_row_to_voucher(data["voucher"]) if data.get("voucher") else None,
            ledger_entry=_row_to_ledger_entry(data["ledger_entry"]) if data.get("ledger_entry") else None,
        )

    def get_grant(self, installer_id: UUID, booking_id: UUID) -> Optional[AssignmentGrant]:
        response = (
            self._table(_GRANTS_TABLE)
            .select("*")
            .eq("installer_id", str(installer_id))
            .eq("booking_id", str(booking_id))
            .limit(1)
            .execute()
        )
        rows = self._rows(response, "get lead grant")
        return _row_to_grant(rows[0]) if rows else None

    def list_grants_for_booking(self, booking_id: UUID) -> List[AssignmentGrant]:
        response = (
            self._table(_GRANTS_TABLE)
            .select("*")
            .eq("booking_id", str(booking_id))
            .order("granted_at_utc")
            .execute()
        )
        return [_row_to_grant(row) for row in self._rows(response, "list lead grants")]

    def list_grants_for_installer(self, installer_id: UUID) -> List[AssignmentGrant]:
        response = (
            self._table(_GRANTS_TABLE)
            .select("*")
            .eq("installer_id", str(installer_id))
            .order("granted_at_utc", desc=True)
            .execute()
        )
        return [_row_to_grant(row) for row in self._rows(response, "list lead grants")]

    # ------------------------------------------------------------------
    # Schedule negotiation
    # ------------------------------------------------------------------
    def create_proposal(self, draft: ScheduleProposal, today: date) -> ProposalPlan:
        # Validate against a snapshot for early, precise errors; the function
        # re-checks booking status and grants under the booking lock.
        plan_proposal(
            draft=draft,
            booking=self.get_booking(draft.booking_id),
            existing=self.list_proposals_for_booking(draft.booking_id),
            grants=self.list_grants_for_booking(draft.booking_id),
            today=today,
        )
        data = self._rpc(
            "propose_schedule",
            {
                "p_proposal_id": str(draft.proposal_id),
                "p_booking_id": str(draft.booking_id),
                "p_proposer_role": draft.proposer_role.value,
                "p_installer_id": str(draft.installer_id) if draft.installer_id else None,
                "p_proposed_date": draft.proposed_date.isoformat(),
                "p_time_slot": draft.time_slot,
                "p_start_time": draft.start_time.isoformat() if draft.start_time else None,
                "p_end_time": draft.end_time.isoformat() if draft.end_time else None,
                "p_message": draft.message,
                "p_at": to_iso_utc(draft.proposed_at, name="proposed_at"),
            },
        )
        return ProposalPlan(
            proposal=_row_to_proposal(data["proposal"]),
            superseded=tuple(_row_to_proposal(row) for row in data.get("superseded") or ()),
        )

    def accept_proposal(
        self, proposal_id: UUID, acting: Party, response_message: Optional[str], at: datetime
    ) -> AcceptancePlan:
        target = self.get_proposal(proposal_id)
        if target is None:
            raise ProposalNotFound(proposal_id)

        data = self._rpc(
            "accept_proposal",
            {
                "p_proposal_id": str(proposal_id),
                "p_acting_role": acting.role.value,
                "p_acting_installer_id": str(acting.installer_id) if acting.installer_id else None,
                # Proposals are immutable apart from status, so the window
                # computed here matches the row the function locks.
                "p_scheduled_time": target.time_window,
                "p_response_message": response_message,
                "p_at": to_iso_utc(at, name="at"),
            },
        )
        return AcceptancePlan(
            accepted=_row_to_proposal(data["accepted"]),
            superseded=tuple(_row_to_proposal(row) for row in data.get("superseded") or ()),
            assignment=_row_to_assignment(data["assignment"]),
            booking=_row_to_booking(data["booking"]),
        )

    def reject_proposal(
        self, proposal_id: UUID, response_message: Optional[str], at: datetime
    ) -> ScheduleProposal:
        response = (
            self._table(_PROPOSALS_TABLE)
            .update(
                {
                    "status": ProposalStatus.REJECTED.value,
                    "responded_at_utc": to_iso_utc(at, name="at"),
                    "response_message": response_message,
                }
            )
            .eq("proposal_id", str(proposal_id))
            .eq("status", ProposalStatus.PENDING.value)
            .execute()
        )
        rows = self._rows(response, "reject proposal")
        if rows:
            return _row_to_proposal(rows[0])

        current = self.get_proposal(proposal_id)
        if current is None:
            raise ProposalNotFound(proposal_id)
        raise ProposalNotPending(proposal_id, current.status.value)

    def expire_pending_proposals(self, proposed_before: datetime, at: datetime) -> List[ScheduleProposal]:
        response = (
            self._table(_PROPOSALS_TABLE)
            .update(
                {
                    "status": ProposalStatus.REJECTED.value,
                    "responded_at_utc": to_iso_utc(at, name="at"),
                    "response_message": "Proposal expired",
                }
            )
            .eq("status", ProposalStatus.PENDING.value)
            .lt("proposed_at_utc", to_iso_utc(proposed_before, name="proposed_before"))
            .execute()
        )
        return [_row_to_proposal(row) for row in self._rows(response, "expire proposals")]

    def get_proposal(self, proposal_id: UUID) -> Optional[ScheduleProposal]:
        row = self._fetch_one(_PROPOSALS_TABLE, "proposal_id", proposal_id, "get proposal")
        return _row_to_proposal(row) if row else None

    def list_proposals_for_booking(self, booking_id: UUID) -> List[ScheduleProposal]:
        response = (
            self._table(_PROPOSALS_TABLE)
            .select("*")
            .eq("booking_id", str(booking_id))
            .order("proposed_at_utc", desc=True)
            .execute()
        )
        return [_row_to_proposal(row) for row in self._rows(response, "list proposals")]

    def list_proposals_for_installer(self, installer_id: UUID) -> List[ScheduleProposal]:
        response = (
            self._table(_PROPOSALS_TABLE)
            .select("*")
            .eq("installer_id", str(installer_id))
            .order("proposed_at_utc", desc=True)
            .execute()
        )
        return [_row_to_proposal(row) for row in self._rows(response, "list proposals")]

    # ------------------------------------------------------------------
    # Job assignments
    # ------------------------------------------------------------------
    def get_job_assignment(self, booking_id: UUID) -> Optional[JobAssignment]:
        row = self._fetch_one(_ASSIGNMENTS_TABLE, "booking_id", booking_id, "get job assignment")
        return _row_to_assignment(row) if row else None

    def advance_job(
        self, booking_id: UUID, installer_id: UUID, target: JobStatus, at: datetime
    ) -> Tuple[JobAssignment, Booking]:
        if target not in (JobStatus.IN_PROGRESS, JobStatus.COMPLETED):
            raise ValueError(f"Jobs can only be advanced to in_progress or completed, not {target.value}")

        data = self._rpc(
            "advance_job",
            {
                "p_booking_id": str(booking_id),
                "p_installer_id": str(installer_id),
                "p_target": target.value,
                "p_at": to_iso_utc(at, name="at"),
            },
        )
        return _row_to_assignment(data["assignment"]), _row_to_booking(data["booking"])


__all__ = ["SupabaseStore"]
