"""Typed failures of the session bootstrap pipeline."""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for every failure that crosses the pipeline boundary."""

    kind = "unexpected"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class HostUnavailable(BridgeError):
    """The host SDK never became available, or it reported no current user."""

    kind = "host_unavailable"
    status_code = 503


class HostIdentityRejected(BridgeError):
    """The host identity token is missing, fails verification, or names another user."""

    kind = "host_identity_rejected"
    status_code = 401


class DirectoryNotFound(BridgeError):
    """No directory user matches the host identity."""

    kind = "directory_not_found"
    status_code = 404

    def __init__(self, host_user_id: str, message: str | None = None):
        super().__init__(
            message
            or (
                f"User not found. Your host user ID is: {host_user_id}. "
                "Please contact an administrator to link your account."
            )
        )
        self.host_user_id = host_user_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["host_user_id"] = self.host_user_id
        return data


class InvalidInput(BridgeError):
    """Input rejected before any credential could be derived."""

    kind = "invalid_input"
    status_code = 400


class AuthSignInFailed(BridgeError):
    """The secondary auth subsystem refused to establish a session."""

    kind = "auth_sign_in_failed"
    status_code = 401


class EmailConflict(BridgeError):
    """Provisioning collided with an existing account holding a different secret."""

    kind = "email_conflict"
    status_code = 409

    def __init__(self, email: str, message: str | None = None):
        super().__init__(message or "Email already registered. Please contact support.")
        self.email = email


class LinkFailed(BridgeError):
    """The linkage record could not be written. Never aborts the pipeline."""

    kind = "link_failed"
    status_code = 500


class Unexpected(BridgeError):
    """Catch-all that preserves the underlying message."""

    kind = "unexpected"
    status_code = 500

    @classmethod
    def wrap(cls, exc: BaseException) -> Unexpected:
        err = cls(str(exc) or type(exc).__name__)
        err.__cause__ = exc
        return err
