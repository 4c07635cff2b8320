"""Derived credentials and the bridge into the secondary auth subsystem."""

from .adapters.base import AuthProviderError, AuthResult, AuthTokens, SecondaryAuthClient
from .bridge import BridgeState, EstablishedAccount, SecondaryAuthBridge
from .credentials import derive_secret
from .factory import get_auth_client

__all__ = [
    "AuthProviderError",
    "AuthResult",
    "AuthTokens",
    "SecondaryAuthClient",
    "BridgeState",
    "EstablishedAccount",
    "SecondaryAuthBridge",
    "derive_secret",
    "get_auth_client",
]
