"""
Bridge between host-asserted identity and the credentialed auth subsystem.

Flow:
1. The host identity has been resolved to a directory user
2. A password is derived from the host user id and the deployment secret
3. The auth subsystem account is signed in, or provisioned on first use
4. The account id is linked to the directory user so row-level security
   policies can map the session subject back to the directory row

The password is deterministic, not guessable without the deployment secret,
and never stored.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from ..directory.models import normalize_email
from ..directory.store import DirectoryStore
from ..errors import (
    AuthSignInFailed,
    BridgeError,
    EmailConflict,
    InvalidInput,
    LinkFailed,
    Unexpected,
)
from ..logging import get_logger
from .adapters.base import AuthProviderError, AuthResult, AuthTokens, SecondaryAuthClient
from .credentials import derive_secret

logger = get_logger(__name__)


class BridgeState(str, Enum):
    START = "start"
    ATTEMPT_SIGN_IN = "attempt_sign_in"
    VERIFY_IDENTITY_MATCH = "verify_identity_match"
    ATTEMPT_PROVISION = "attempt_provision"
    RETRY_SIGN_IN = "retry_sign_in"
    LINK_ACCOUNT = "link_account"
    ESTABLISHED = "established"
    FAILED = "failed"


@dataclass(frozen=True)
class EstablishedAccount:
    """Terminal success of the bridge."""

    account_id: UUID
    via: BridgeState
    linked: bool
    tokens: AuthTokens | None = None
    link_error: str | None = None
    trace: tuple[BridgeState, ...] = field(default=())


class SecondaryAuthBridge:
    """
    Sign-in-or-provision state machine for the auth subsystem.

    Concurrent ``establish`` calls for the same email are serialized within this
    instance, so the loser of a first-time provisioning race signs in with the
    deterministic secret instead of colliding on sign-up.
    """

    def __init__(
        self,
        client: SecondaryAuthClient,
        store: DirectoryStore,
        auth_secret: str | None,
    ):
        self.client = client
        self.store = store
        self.auth_secret = auth_secret
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _single_flight(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def establish(
        self, directory_user_id: UUID, email: str | None, host_user_id: str
    ) -> EstablishedAccount:
        normalized = normalize_email(email)
        if normalized is None:
            raise InvalidInput("Email is required to establish an auth session")

        trace: list[BridgeState] = [BridgeState.START]
        try:
            async with self._single_flight(normalized):
                return await self._run(directory_user_id, normalized, host_user_id, trace)
        except BridgeError as e:
            trace.append(BridgeState.FAILED)
            logger.warning(
                "Auth bridge failed",
                error_kind=e.kind,
                user_id=str(directory_user_id),
                trace=[s.value for s in trace],
            )
            raise
        except Exception as e:
            trace.append(BridgeState.FAILED)
            logger.error("Unexpected error in auth bridge", error=str(e))
            raise Unexpected.wrap(e) from e

    async def _run(
        self,
        user_id: UUID,
        email: str,
        host_user_id: str,
        trace: list[BridgeState],
    ) -> EstablishedAccount:
        secret = derive_secret(host_user_id, self.auth_secret)

        trace.append(BridgeState.ATTEMPT_SIGN_IN)
        try:
            result = await self.client.sign_in(email, secret)
            via = BridgeState.ATTEMPT_SIGN_IN
        except AuthProviderError as e:
            if e.reason != "invalid_credentials":
                logger.error("Auth sign in failed", reason=e.reason, error=e.message)
                raise AuthSignInFailed(e.message or "Sign in failed") from e

            logger.info("User not in auth subsystem, provisioning", user_id=str(user_id))
            result = await self._provision(user_id, email, host_user_id, secret, trace)
            via = BridgeState.ATTEMPT_PROVISION

        account_id = self._account_id(result)

        conflict = False
        if via is BridgeState.ATTEMPT_SIGN_IN:
            trace.append(BridgeState.VERIFY_IDENTITY_MATCH)
            conflict = await self._linked_elsewhere(user_id, account_id)

        if conflict:
            linked, link_error = False, "Auth account is linked to a different directory user"
        else:
            trace.append(BridgeState.LINK_ACCOUNT)
            linked, link_error = await self._link(user_id, account_id)

        trace.append(BridgeState.ESTABLISHED)
        logger.info(
            "Auth session established",
            user_id=str(user_id),
            account_id=str(account_id),
            via=via.value,
            linked=linked,
        )
        return EstablishedAccount(
            account_id=account_id,
            via=via,
            linked=linked,
            tokens=result.tokens,
            link_error=link_error,
            trace=tuple(trace),
        )

    async def _provision(
        self,
        user_id: UUID,
        email: str,
        host_user_id: str,
        secret: str,
        trace: list[BridgeState],
    ) -> AuthResult:
        trace.append(BridgeState.ATTEMPT_PROVISION)
        try:
            created = await self.client.sign_up(
                email,
                secret,
                {"public_user_id": str(user_id), "miro_user_id": host_user_id},
            )
        except AuthProviderError as e:
            if e.reason == "already_registered":
                logger.warning(
                    "Email already registered with a different secret", user_id=str(user_id)
                )
                raise EmailConflict(email) from e
            logger.error("Failed to create auth account", error=e.message)
            raise AuthSignInFailed(e.message or "Sign up failed") from e

        if created.has_session:
            return created

        # Confirmation-gated subsystems return no session from sign-up
        trace.append(BridgeState.RETRY_SIGN_IN)
        try:
            return await self.client.sign_in(email, secret)
        except AuthProviderError as e:
            logger.error("Failed to sign in after sign up", error=e.message)
            raise AuthSignInFailed("Account created but sign in failed") from e

    @staticmethod
    def _account_id(result: AuthResult) -> UUID:
        if not result.account_id:
            raise AuthSignInFailed("Auth subsystem returned no account id")
        try:
            return UUID(result.account_id)
        except ValueError as e:
            raise AuthSignInFailed(f"Malformed auth account id: {result.account_id}") from e

    async def _linked_elsewhere(self, user_id: UUID, account_id: UUID) -> bool:
        holder = await self.store.get_by_auth_user_id(account_id)
        if holder is not None and holder.id != user_id:
            logger.warning(
                "Auth account already linked to a different directory user",
                user_id=str(user_id),
                linked_user_id=str(holder.id),
                account_id=str(account_id),
            )
            return True
        return False

    async def _link(self, user_id: UUID, account_id: UUID) -> tuple[bool, str | None]:
        try:
            if await self.store.link_auth_user(user_id, account_id):
                return True, None
            error = LinkFailed(f"Directory user {user_id} not found")
        except Exception as e:
            error = LinkFailed(str(e))

        # Session stays valid; policy-checked queries fail until the link exists
        logger.error(
            "Failed to link auth account",
            error_kind=error.kind,
            error=error.message,
            user_id=str(user_id),
            account_id=str(account_id),
        )
        return False, error.message
