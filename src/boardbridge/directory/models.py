"""Directory user value types, roles and permissions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from ..dbmodels import Users


class Role(str, Enum):
    ADMIN = "admin"
    DESIGNER = "designer"
    CLIENT = "client"


ROLE_PERMISSIONS: dict[Role, dict[str, bool]] = {
    Role.ADMIN: {
        "can_manage_users": True,
        "can_manage_all_projects": True,
        "can_assign_designers": True,
        "can_view_reports": True,
        "can_approve_deliverables": True,
        "can_create_projects": True,
        "can_sync_all_projects": True,
        "can_create_stages": True,
        "can_modify_board_layout": True,
        "can_delete_from_board": True,
    },
    Role.DESIGNER: {
        "can_manage_users": False,
        "can_manage_all_projects": False,
        "can_assign_designers": False,
        "can_view_reports": False,
        "can_approve_deliverables": False,
        "can_create_projects": False,
        "can_sync_all_projects": False,
        "can_create_stages": True,
        "can_modify_board_layout": False,
        "can_delete_from_board": False,
    },
    Role.CLIENT: {
        "can_manage_users": False,
        "can_manage_all_projects": False,
        "can_assign_designers": False,
        "can_view_reports": False,
        "can_approve_deliverables": True,
        "can_create_projects": True,
        "can_sync_all_projects": False,
        "can_create_stages": True,
        "can_modify_board_layout": False,
        "can_delete_from_board": False,
    },
}


def normalize_email(email: str | None) -> str | None:
    """Lowercase and strip an email; empty values become None."""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


@dataclass(frozen=True)
class DirectoryUser:
    """Authoritative account record: role, board assignment and admin flag."""

    id: UUID
    email: str
    name: str
    role: Role
    primary_board_id: str | None = None
    is_super_admin: bool = False
    host_user_id: str | None = None
    auth_user_id: UUID | None = None

    @classmethod
    def from_row(cls, row: Users) -> DirectoryUser:
        return cls(
            id=row.id,
            email=row.email,
            name=row.name,
            role=Role(row.role),
            primary_board_id=row.primary_board_id,
            is_super_admin=bool(row.is_super_admin),
            host_user_id=row.host_user_id,
            auth_user_id=row.auth_user_id,
        )

    def as_main_admin(self) -> DirectoryUser:
        """View of this record as the configured main admin."""
        return replace(self, role=Role.ADMIN, primary_board_id=None, is_super_admin=True)

    @property
    def permissions(self) -> dict[str, bool]:
        return dict(ROLE_PERMISSIONS[self.role])
