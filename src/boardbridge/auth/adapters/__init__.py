"""Clients for the secondary auth subsystem."""

from .base import (
    AuthenticationError,
    AuthProviderError,
    AuthResult,
    AuthTokens,
    SecondaryAuthClient,
    classify_auth_error,
)
from .none import InMemoryAuthClient

# Always available clients
__all__ = [
    "AuthenticationError",
    "AuthProviderError",
    "AuthResult",
    "AuthTokens",
    "SecondaryAuthClient",
    "classify_auth_error",
    "InMemoryAuthClient",
]

# Optional auth providers - imported conditionally to avoid import errors
try:
    from .supabase import SupabaseAuthClient

    __all__.append("SupabaseAuthClient")
except ImportError:
    pass
