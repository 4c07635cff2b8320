"""Supabase Auth client for the secondary auth subsystem."""

from __future__ import annotations

from typing import Any

from supabase import AsyncClient, create_async_client

from ...logging import get_logger
from .base import AuthenticationError, AuthProviderError, AuthResult, AuthTokens, classify_auth_error

logger = get_logger(__name__)


class SupabaseAuthClient:
    """
    Supabase Auth client.

    Each call uses a fresh client so one server process can sign in many users
    without sharing client-side session state between them.
    """

    def __init__(self, url: str, anon_key: str):
        """
        Initialize Supabase client.

        Args:
            url: Supabase project URL
            anon_key: Public anon key; row-level security applies to the sessions it creates
        """
        self.url = url
        self.anon_key = anon_key

    async def _client(self) -> AsyncClient:
        return await create_async_client(self.url, self.anon_key)

    @staticmethod
    def _to_result(response: Any) -> AuthResult:
        user = getattr(response, "user", None)
        session = getattr(response, "session", None)

        tokens = None
        if session is not None and getattr(session, "access_token", None):
            tokens = AuthTokens(
                access_token=session.access_token,
                refresh_token=getattr(session, "refresh_token", None),
                expires_at=getattr(session, "expires_at", None),
            )

        return AuthResult(
            account_id=str(user.id) if user is not None and user.id else None,
            email=getattr(user, "email", None) if user is not None else None,
            tokens=tokens,
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        client = await self._client()
        try:
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            reason = classify_auth_error(e)
            logger.debug("Supabase sign in failed", reason=reason, error=str(e))
            raise AuthProviderError(reason, str(e) or "Sign in failed") from e

        result = self._to_result(response)
        if not result.has_session:
            raise AuthProviderError("other", "Sign in returned no session")
        return result

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> AuthResult:
        client = await self._client()
        try:
            response = await client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except Exception as e:
            reason = classify_auth_error(e)
            logger.debug("Supabase sign up failed", reason=reason, error=str(e))
            raise AuthProviderError(reason, str(e) or "Sign up failed") from e

        return self._to_result(response)

    async def sign_out(self, access_token: str) -> None:
        client = await self._client()
        try:
            await client.auth.admin.sign_out(access_token)
        except Exception as e:
            logger.warning("Supabase sign out failed", error=str(e))
            raise AuthProviderError("other", str(e) or "Sign out failed") from e

    async def get_session(self, access_token: str) -> AuthResult:
        client = await self._client()
        try:
            response = await client.auth.get_user(access_token)
        except Exception as e:
            logger.warning("Supabase token validation failed", error=str(e))
            raise AuthenticationError(f"Invalid token: {e}") from e

        if not response or not response.user:
            raise AuthenticationError("Invalid or expired token")

        return AuthResult(
            account_id=str(response.user.id),
            email=response.user.email,
            tokens=AuthTokens(access_token=access_token),
        )
