"""
Runtime configuration.

Values are read from the environment. A `.env` file in the project root is
loaded first so local development does not need exported variables.

Environment variables:
- MARKETPLACE_STORE: "memory" (default) or "supabase"
- SUPABASE_URL / SUPABASE_KEY: required when MARKETPLACE_STORE=supabase
  (use a server-side key only on the backend)
- FIRST_LEAD_VOUCHER_ENABLED: "true" (default) / "false"
- FIRST_LEAD_VOUCHER_AMOUNT: voucher credit amount (default 40.00)
- PROPOSAL_EXPIRY_HOURS: optional; pending proposals older than this are
  rejected by the expiry sweep. Unset disables expiry.
- CORS_ALLOW_ORIGINS: comma-separated list (default "*")
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

_STORE_BACKENDS = ("memory", "supabase")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    first_lead_voucher_enabled: bool = True
    first_lead_voucher_amount: Decimal = Decimal("40.00")
    proposal_expiry_hours: Optional[int] = None
    cors_allow_origins: Tuple[str, ...] = ("*",)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def _parse_amount(name: str, raw: str) -> Decimal:
    try:
        amount = Decimal(raw.strip()).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if amount < 0:
        raise ValueError(f"{name} must be >= 0, got {raw!r}")
    return amount


def _parse_hours(name: str, raw: str) -> Optional[int]:
    if not raw.strip():
        return None
    try:
        hours = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a whole number of hours, got {raw!r}") from None
    if hours <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    return hours


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """Build Settings from a mapping of environment variables."""

    backend = env.get("MARKETPLACE_STORE", "memory").strip().lower()
    if backend not in _STORE_BACKENDS:
        raise ValueError(f"MARKETPLACE_STORE must be one of {_STORE_BACKENDS}, got {backend!r}")

    origins = tuple(o.strip() for o in env.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip())

    return Settings(
        store_backend=backend,
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_KEY") or None,
        first_lead_voucher_enabled=_parse_bool(
            "FIRST_LEAD_VOUCHER_ENABLED", env.get("FIRST_LEAD_VOUCHER_ENABLED", "true")
        ),
        first_lead_voucher_amount=_parse_amount(
            "FIRST_LEAD_VOUCHER_AMOUNT", env.get("FIRST_LEAD_VOUCHER_AMOUNT", "40.00")
        ),
        proposal_expiry_hours=_parse_hours("PROPOSAL_EXPIRY_HOURS", env.get("PROPOSAL_EXPIRY_HOURS", "")),
        cors_allow_origins=origins or ("*",),
    )


def load_settings() -> Settings:
    """Load `.env` from the project root, then read the process environment."""

    env_path = Path(__file__).parent / ".env"
    load_dotenv(dotenv_path=env_path)
    return settings_from_env(os.environ)


__all__ = ["Settings", "load_settings", "settings_from_env"]
