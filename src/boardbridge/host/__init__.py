"""Host platform integration: SDK boundary and identity extraction."""

from .identity import (
    HostBoardContext,
    HostIdentity,
    HostIdentityAdapter,
    HostTokenVerifier,
    email_from_id_token,
)
from .sdk import HostSDK, RequestHostSDK, wait_for_sdk

__all__ = [
    "HostBoardContext",
    "HostIdentity",
    "HostIdentityAdapter",
    "HostSDK",
    "HostTokenVerifier",
    "RequestHostSDK",
    "email_from_id_token",
    "wait_for_sdk",
]
