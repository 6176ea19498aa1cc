"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created on first use so that the in-memory store (development, tests) never
needs Supabase credentials.
"""

from __future__ import annotations

from typing import Optional

# The dependency is `supabase` (supabase-py): `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from settings import Settings

_client: Optional[Client] = None


def get_supabase_client(settings: Settings) -> Client:
    """Return the process-wide Supabase client, creating it if needed."""

    global _client

    if _client is not None:
        return _client

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = create_client(settings.supabase_url, settings.supabase_key)
    return _client


__all__ = ["get_supabase_client"]
