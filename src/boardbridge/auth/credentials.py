"""Deterministic derivation of auth subsystem secrets from host user ids."""

from __future__ import annotations

import hashlib

from ..errors import InvalidInput

SALT_PREFIX = "miro-auth-salt:"
ITERATIONS = 100_000
DIGEST_BYTES = 32
SECRET_LENGTH = 32


def derive_secret(host_user_id: str, key: str | None) -> str:
    """
    Derive the auth subsystem password for a host user.

    PBKDF2-HMAC-SHA256 keyed by the deployment secret, salted with the host user
    id, hex encoded and truncated to 32 characters (128 bits). The result is
    never stored; it is recomputed on demand.

    Raises:
        InvalidInput: if the host user id or the deployment key is empty
    """
    if not host_user_id or not host_user_id.strip():
        raise InvalidInput("Host user ID is required to derive credentials")
    if not key:
        raise InvalidInput("Auth secret is not configured. Cannot derive credentials securely.")

    digest = hashlib.pbkdf2_hmac(
        "sha256",
        key.encode("utf-8"),
        f"{SALT_PREFIX}{host_user_id}".encode(),
        ITERATIONS,
        dklen=DIGEST_BYTES,
    )
    return digest.hex()[:SECRET_LENGTH]
