"""Best-effort extraction of the acting user's identity from the host platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from ..errors import HostIdentityRejected, HostUnavailable
from ..logging import get_logger
from .sdk import HostSDK, SdkLocator, wait_for_sdk

logger = get_logger(__name__)

EMAIL_CLAIMS = ("email", "user_email")
USER_CLAIMS = ("sub", "user")


@dataclass(frozen=True)
class HostIdentity:
    """Identity asserted by the host. Rebuilt on every bootstrap, never persisted."""

    host_user_id: str
    display_name: str
    email: str | None = None


def email_from_claims(claims: dict[str, Any]) -> str | None:
    for claim in EMAIL_CLAIMS:
        value = claims.get(claim)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return None


def email_from_id_token(token: str | None) -> str | None:
    """
    Read the email claim from a host identity token without verifying it.

    Returns None for anything that is not a three segment token with an email claim.
    Only call this on tokens that HostTokenVerifier has already accepted.
    """
    if not token or not isinstance(token, str) or token.count(".") != 2:
        return None

    claims = jwt.decode(token, options={"verify_signature": False})
    return email_from_claims(claims)


class HostTokenVerifier:
    """
    Verify identity tokens the host signs with the app's client secret.

    The verified claims are the only trusted source of the acting user's id and
    email; everything else the panel forwards is display data.
    """

    def __init__(self, secret: str, audience: str | None = None, algorithm: str = "HS256"):
        self.secret = secret
        self.audience = audience
        self.algorithm = algorithm

    def verify(self, token: str | None) -> dict[str, Any]:
        """Return the token's claims, raising HostIdentityRejected if it does not verify."""
        if not token:
            raise HostIdentityRejected("Host identity token is required")

        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={
                    "require": ["exp"],
                    "verify_exp": True,
                    "verify_aud": self.audience is not None,
                },
            )
        except InvalidTokenError as e:
            logger.warning("Host identity token validation failed", error=str(e))
            raise HostIdentityRejected("Invalid host identity token") from e

        if not self.user_id(claims):
            raise HostIdentityRejected("Host identity token has no user claim")
        return claims

    def verify_for(self, token: str | None, host_user_id: str) -> dict[str, Any]:
        """Verify ``token`` and require it to be issued for ``host_user_id``."""
        claims = self.verify(token)
        if self.user_id(claims) != host_user_id:
            logger.warning(
                "Host identity token issued for another user",
                host_user_id=host_user_id,
            )
            raise HostIdentityRejected("Host identity token was issued for another user")
        return claims

    @staticmethod
    def user_id(claims: dict[str, Any]) -> str | None:
        for claim in USER_CLAIMS:
            value = claims.get(claim)
            if value is not None and str(value).strip():
                return str(value).strip()
        return None


def fallback_display_name(host_user_id: str, name: str | None, email: str | None) -> str:
    if name:
        return name
    if email:
        return email.split("@")[0]
    return f"User-{host_user_id[:8]}"


class HostIdentityAdapter:
    """Resolve the current host user into a HostIdentity."""

    def __init__(self, locator: SdkLocator, timeout: float = 3.0, poll_interval: float = 0.1):
        self.locator = locator
        self.timeout = timeout
        self.poll_interval = poll_interval

    async def resolve(self) -> HostIdentity:
        sdk = await wait_for_sdk(self.locator, self.timeout, self.poll_interval)
        if sdk is None:
            raise HostUnavailable(
                "Host SDK not available. Please ensure the app is running inside the host."
            )

        try:
            user_info = await sdk.get_user_info()
        except Exception as e:
            logger.error("Failed to get current user from host SDK", error=str(e))
            raise HostUnavailable(f"Failed to get user information from host: {e}") from e

        if not user_info or not user_info.get("id"):
            logger.warning("Host SDK returned no current user")
            raise HostUnavailable("Could not get the current user ID from the host")

        host_user_id = str(user_info["id"])
        email = (user_info.get("email") or "").strip().lower() or None

        if email is None:
            email = await self._email_from_token(sdk)

        identity = HostIdentity(
            host_user_id=host_user_id,
            display_name=fallback_display_name(host_user_id, user_info.get("name"), email),
            email=email,
        )
        logger.debug("Resolved host identity", host_user_id=host_user_id, has_email=bool(email))
        return identity

    async def _email_from_token(self, sdk: HostSDK) -> str | None:
        try:
            return email_from_id_token(await sdk.get_id_token())
        except Exception as e:
            logger.warning("Could not get email from host identity token", error=str(e))
            return None


class HostBoardContext:
    """
    Board id of the hosting board, cached for the lifetime of this object.

    Owners call ``invalidate()`` when the panel moves to another board.
    """

    def __init__(self, sdk: HostSDK):
        self.sdk = sdk
        self._board_id: str | None = None

    async def get_board_id(self) -> str | None:
        if self._board_id is None:
            info = await self.sdk.get_board_info()
            board_id = (info or {}).get("id")
            self._board_id = str(board_id) if board_id else None
        return self._board_id

    def invalidate(self) -> None:
        self._board_id = None
