"""In-process auth subsystem for local development without Supabase."""

from __future__ import annotations

import asyncio
import os
import secrets
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from ...logging import get_logger
from .base import AuthenticationError, AuthProviderError, AuthResult, AuthTokens

logger = get_logger(__name__)

SESSION_TTL_SECONDS = 3600


@dataclass
class _Account:
    id: str
    email: str
    password: str
    metadata: dict[str, Any] = field(default_factory=dict)
    confirmed: bool = True


class InMemoryAuthClient:
    """
    Auth subsystem kept in process memory.

    Accounts and sessions vanish with the process. WARNING: Only use this in
    development environments!
    """

    def __init__(self, require_confirmation: bool = False, auto_confirm: bool = True):
        environment = os.getenv("BOARDBRIDGE_ENVIRONMENT", "").lower()
        if environment in ("production", "prod"):
            logger.error(
                "InMemoryAuthClient detected in production environment!",
                environment=environment,
            )
            raise RuntimeError(
                "InMemoryAuthClient cannot be used in production environments. "
                "Please configure the supabase auth provider."
            )

        self.require_confirmation = require_confirmation
        self.auto_confirm = auto_confirm
        self.accounts: dict[str, _Account] = {}
        self.sessions: dict[str, str] = {}
        self.sign_up_calls = 0

        logger.warning(
            "InMemoryAuthClient is active - accounts are not persisted! "
            "This should ONLY be used in development."
        )

    def _issue(self, account: _Account) -> AuthResult:
        access_token = secrets.token_urlsafe(24)
        self.sessions[access_token] = account.id
        return AuthResult(
            account_id=account.id,
            email=account.email,
            tokens=AuthTokens(
                access_token=access_token,
                refresh_token=secrets.token_urlsafe(24),
                expires_at=int(time.time()) + SESSION_TTL_SECONDS,
            ),
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        # Yield so concurrent callers interleave the way network calls would
        await asyncio.sleep(0)
        account = self.accounts.get(email.lower())
        if account is None or account.password != password:
            raise AuthProviderError("invalid_credentials", "Invalid login credentials")
        if not account.confirmed:
            raise AuthProviderError("other", "Email not confirmed")
        return self._issue(account)

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> AuthResult:
        await asyncio.sleep(0)
        self.sign_up_calls += 1
        key = email.lower()
        if key in self.accounts:
            raise AuthProviderError("already_registered", "User already registered")

        account = _Account(
            id=str(uuid4()),
            email=key,
            password=password,
            metadata=dict(metadata),
            confirmed=self.auto_confirm,
        )
        self.accounts[key] = account

        if self.require_confirmation:
            return AuthResult(account_id=account.id, email=account.email, tokens=None)
        return self._issue(account)

    async def sign_out(self, access_token: str) -> None:
        await asyncio.sleep(0)
        self.sessions.pop(access_token, None)

    async def get_session(self, access_token: str) -> AuthResult:
        await asyncio.sleep(0)
        account_id = self.sessions.get(access_token)
        if account_id is None:
            raise AuthenticationError("Invalid or expired token")
        account = next(a for a in self.accounts.values() if a.id == account_id)
        return AuthResult(
            account_id=account.id,
            email=account.email,
            tokens=AuthTokens(access_token=access_token),
        )
