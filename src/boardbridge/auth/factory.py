"""Factory for creating the auth subsystem client based on configuration."""

from __future__ import annotations

import os

from ..config import Settings, settings
from .adapters.base import SecondaryAuthClient
from .adapters.none import InMemoryAuthClient

# Optional Supabase client - imported conditionally
try:
    from .adapters.supabase import SupabaseAuthClient

    SUPABASE_AVAILABLE = True
except ImportError:
    SUPABASE_AVAILABLE = False
    SupabaseAuthClient = None  # type: ignore


def get_auth_client(config: Settings | None = None) -> SecondaryAuthClient:
    """Create and return the configured auth subsystem client."""
    config = config or settings
    provider = config.auth_provider

    if provider == "none":
        return InMemoryAuthClient()

    elif provider == "supabase":
        if not SUPABASE_AVAILABLE:
            raise ValueError(
                "Supabase auth provider is not available. "
                "Install the supabase package: pip install supabase"
            )

        url = config.supabase_url or os.getenv("SUPABASE_URL")
        anon_key = config.supabase_anon_key or os.getenv("SUPABASE_ANON_KEY")

        if not url or not anon_key:
            raise ValueError(
                "Supabase URL and anon key are required. "
                "Set BOARDBRIDGE_SUPABASE_URL and BOARDBRIDGE_SUPABASE_ANON_KEY."
            )

        return SupabaseAuthClient(url=url, anon_key=anon_key)  # type: ignore

    else:
        raise ValueError(f"Unsupported auth provider: {provider}")
