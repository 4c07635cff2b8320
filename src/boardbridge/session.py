"""Session and routing decision for a bridged user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal
from uuid import UUID

from .auth.bridge import EstablishedAccount
from .directory.models import DirectoryUser, Role

RedirectKind = Literal["board", "admin", "dashboard"]


@dataclass(frozen=True)
class RedirectTarget:
    kind: RedirectKind
    board_id: str | None = None

    @property
    def path(self) -> str:
        if self.kind == "board":
            return f"/board/{self.board_id}"
        return f"/{self.kind}"


def redirect_for(user: DirectoryUser) -> RedirectTarget:
    """Clients with a board go to that board, admins to the admin surface, everyone else to the dashboard."""
    if user.role is Role.CLIENT and user.primary_board_id:
        return RedirectTarget("board", user.primary_board_id)
    if user.role is Role.ADMIN:
        return RedirectTarget("admin")
    return RedirectTarget("dashboard")


@dataclass(frozen=True)
class Session:
    """Per-request result of a successful bridge. Never stored."""

    directory_user: DirectoryUser
    secondary_auth_account_id: UUID
    redirect_target: RedirectTarget
    linked: bool = True
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        user = self.directory_user
        return {
            "user": {
                "id": str(user.id),
                "email": user.email,
                "name": user.name,
                "role": user.role.value,
                "primary_board_id": user.primary_board_id,
                "is_super_admin": user.is_super_admin,
                "host_user_id": user.host_user_id,
                "permissions": user.permissions,
            },
            "secondary_auth_account_id": str(self.secondary_auth_account_id),
            "redirect": {
                "kind": self.redirect_target.kind,
                "board_id": self.redirect_target.board_id,
                "path": self.redirect_target.path,
            },
            "linked": self.linked,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }


def build_session(directory_user: DirectoryUser, established: EstablishedAccount) -> Session:
    tokens = established.tokens
    return Session(
        directory_user=directory_user,
        secondary_auth_account_id=established.account_id,
        redirect_target=redirect_for(directory_user),
        linked=established.linked,
        access_token=tokens.access_token if tokens else None,
        refresh_token=tokens.refresh_token if tokens else None,
        expires_at=tokens.expires_at if tokens else None,
    )
