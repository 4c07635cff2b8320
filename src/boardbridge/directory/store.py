"""Directory store: point lookups, inserts and idempotent updates of directory users."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..dbmodels import Users
from ..logging import get_logger
from .models import DirectoryUser, Role, normalize_email

logger = get_logger(__name__)


class DuplicateUserError(Exception):
    """Raised when a write collides with the email or host user id uniqueness constraint."""


class LinkageConflictError(Exception):
    """Raised when a directory user is already linked to a different auth account."""

    def __init__(self, user_id: UUID, existing_auth_user_id: UUID | None):
        if existing_auth_user_id is None:
            message = f"Auth account is already linked to a directory user other than {user_id}"
        else:
            message = (
                f"Directory user {user_id} is already linked to auth account "
                f"{existing_auth_user_id}"
            )
        super().__init__(message)
        self.user_id = user_id
        self.existing_auth_user_id = existing_auth_user_id


class DirectoryStore(Protocol):
    """Storage interface consumed by the directory resolver and the auth bridge."""

    async def get_by_id(self, user_id: UUID) -> DirectoryUser | None: ...

    async def get_by_host_user_id(self, host_user_id: str) -> DirectoryUser | None: ...

    async def get_by_email(self, email: str) -> DirectoryUser | None: ...

    async def get_by_auth_user_id(self, auth_user_id: UUID) -> DirectoryUser | None: ...

    async def insert(
        self,
        *,
        email: str,
        name: str,
        role: Role,
        host_user_id: str | None = None,
        primary_board_id: str | None = None,
        is_super_admin: bool = False,
    ) -> DirectoryUser:
        """Insert a user, raising DuplicateUserError on a uniqueness collision."""
        ...

    async def attach_host_user_id(self, user_id: UUID, host_user_id: str) -> DirectoryUser | None:
        """Set host_user_id when it is still empty and return the current row."""
        ...

    async def promote_super_admin(self, user_id: UUID) -> DirectoryUser | None: ...

    async def link_auth_user(self, user_id: UUID, auth_user_id: UUID) -> bool:
        """Bind a directory user to an auth account; no-op when already bound to it."""
        ...

    async def list_users(self, role: Role | None = None) -> list[DirectoryUser]: ...


class SqlDirectoryStore:
    """DirectoryStore backed by SQLAlchemy async sessions.

    Every method runs in its own short transaction so a write is acknowledged
    before the caller moves on to the next pipeline stage.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _get_one(self, *criteria) -> DirectoryUser | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Users).where(*criteria))
            row = result.scalar_one_or_none()
            return DirectoryUser.from_row(row) if row else None

    async def get_by_id(self, user_id: UUID) -> DirectoryUser | None:
        return await self._get_one(Users.id == user_id)

    async def get_by_host_user_id(self, host_user_id: str) -> DirectoryUser | None:
        return await self._get_one(Users.host_user_id == host_user_id)

    async def get_by_email(self, email: str) -> DirectoryUser | None:
        normalized = normalize_email(email)
        if normalized is None:
            return None
        return await self._get_one(Users.email == normalized)

    async def get_by_auth_user_id(self, auth_user_id: UUID) -> DirectoryUser | None:
        return await self._get_one(Users.auth_user_id == auth_user_id)

    async def insert(
        self,
        *,
        email: str,
        name: str,
        role: Role,
        host_user_id: str | None = None,
        primary_board_id: str | None = None,
        is_super_admin: bool = False,
    ) -> DirectoryUser:
        normalized = normalize_email(email)
        if normalized is None:
            raise ValueError("email is required to create a directory user")

        user = Users(
            email=normalized,
            name=name,
            role=Role(role).value,
            host_user_id=host_user_id,
            primary_board_id=primary_board_id,
            is_super_admin=is_super_admin,
        )

        async with self.session_factory() as db:
            db.add(user)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateUserError(str(e.orig)) from e
            await db.refresh(user)

            logger.info(
                "Created directory user",
                user_id=str(user.id),
                role=user.role,
                is_super_admin=user.is_super_admin,
            )
            return DirectoryUser.from_row(user)

    async def attach_host_user_id(self, user_id: UUID, host_user_id: str) -> DirectoryUser | None:
        async with self.session_factory() as db:
            stmt = (
                update(Users)
                .where(Users.id == user_id, Users.host_user_id.is_(None))
                .values(host_user_id=host_user_id, updated_at=func.now())
            )
            try:
                result = await db.execute(stmt)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateUserError(str(e.orig)) from e

            if result.rowcount:
                logger.info("Attached host user id to directory user", user_id=str(user_id))

        return await self.get_by_id(user_id)

    async def promote_super_admin(self, user_id: UUID) -> DirectoryUser | None:
        async with self.session_factory() as db:
            stmt = (
                update(Users)
                .where(
                    Users.id == user_id,
                    or_(Users.is_super_admin.is_(False), Users.role != Role.ADMIN.value),
                )
                .values(role=Role.ADMIN.value, is_super_admin=True, updated_at=func.now())
            )
            result = await db.execute(stmt)
            await db.commit()

            if result.rowcount:
                logger.info("Promoted directory user to super admin", user_id=str(user_id))

        return await self.get_by_id(user_id)

    async def link_auth_user(self, user_id: UUID, auth_user_id: UUID) -> bool:
        existing = await self.get_by_id(user_id)
        if existing is None:
            return False
        if existing.auth_user_id == auth_user_id:
            return True

        async with self.session_factory() as db:
            # Single conditional update keeps the link atomic under concurrent callers
            stmt = (
                update(Users)
                .where(
                    Users.id == user_id,
                    or_(Users.auth_user_id.is_(None), Users.auth_user_id == auth_user_id),
                )
                .values(auth_user_id=auth_user_id, updated_at=func.now())
            )
            try:
                result = await db.execute(stmt)
                await db.commit()
            except IntegrityError as e:
                # The auth account is already bound to another directory user
                await db.rollback()
                raise LinkageConflictError(user_id, None) from e

        if result.rowcount:
            return True

        current = await self.get_by_id(user_id)
        if current is None:
            return False
        raise LinkageConflictError(user_id, current.auth_user_id)

    async def list_users(self, role: Role | None = None) -> list[DirectoryUser]:
        stmt = select(Users).order_by(Users.email)
        if role is not None:
            stmt = stmt.where(Users.role == Role(role).value)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [DirectoryUser.from_row(row) for row in result.scalars().all()]
