"""Secondary auth subsystem client interface and types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

FailureReason = Literal["invalid_credentials", "already_registered", "other"]


@dataclass(frozen=True)
class AuthTokens:
    """Session tokens issued by the auth subsystem."""

    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful sign-in or sign-up call."""

    account_id: str | None
    email: str | None = None
    tokens: AuthTokens | None = None

    @property
    def has_session(self) -> bool:
        return self.tokens is not None


class SecondaryAuthClient(Protocol):
    """Provider-agnostic client for the credentialed auth subsystem."""

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Raises:
            AuthProviderError: reason ``invalid_credentials`` when the account does not
                exist or the password does not match, ``other`` otherwise
        """
        ...

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> AuthResult:
        """
        Create an account. The result has no tokens when confirmation is required.

        Raises:
            AuthProviderError: reason ``already_registered`` when the email exists
        """
        ...

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        ...

    async def get_session(self, access_token: str) -> AuthResult:
        """
        Verify an access token and return the account it belongs to.

        Raises:
            AuthenticationError: if the token is invalid or expired
        """
        ...


class AuthProviderError(Exception):
    """Typed failure returned by the auth subsystem."""

    def __init__(self, reason: FailureReason, message: str):
        super().__init__(message)
        self.reason: FailureReason = reason
        self.message = message


class AuthenticationError(Exception):
    """Raised when an access token cannot be verified."""

    pass


def classify_auth_error(error: BaseException) -> FailureReason:
    """Map an auth subsystem error onto the failure reasons the bridge acts on."""
    code = str(getattr(error, "code", "") or "").lower()
    message = str(getattr(error, "message", "") or error).lower()

    if code == "invalid_credentials" or "invalid login credentials" in message:
        return "invalid_credentials"
    if code in ("user_already_exists", "email_exists") or "already registered" in message:
        return "already_registered"
    return "other"
