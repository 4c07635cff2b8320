"""Resolve a host identity to its authoritative directory user."""

from __future__ import annotations

from typing import Any

from ..config import is_main_admin
from ..errors import BridgeError, DirectoryNotFound, Unexpected
from ..host.identity import HostIdentity
from ..logging import get_logger
from .models import DirectoryUser, Role, normalize_email
from .store import DirectoryStore, DuplicateUserError

logger = get_logger(__name__)


class DirectoryResolver:
    """
    Look up, and for the main admin create, the directory user for a host identity.

    Resolution order, first match wins:
    1. configured main admin email -> ensured super admin
    2. lookup by host user id
    3. lookup by lowercase email, attaching the host user id
    4. DirectoryNotFound carrying the host user id

    Clients and designers are never created here; they are provisioned out of band.
    """

    def __init__(self, store: DirectoryStore, main_admin_email: str | None = None):
        self.store = store
        self.main_admin_email = main_admin_email

    async def resolve(self, identity: HostIdentity) -> DirectoryUser:
        try:
            return await self._resolve(identity)
        except BridgeError:
            raise
        except Exception as e:
            logger.error("Directory resolution failed", error=str(e))
            raise Unexpected.wrap(e) from e

    async def _resolve(self, identity: HostIdentity) -> DirectoryUser:
        email = normalize_email(identity.email)

        if email and is_main_admin(email, self.main_admin_email or ""):
            return await self.ensure_main_admin(identity, email)

        user = await self.store.get_by_host_user_id(identity.host_user_id)
        if user:
            logger.debug("Found directory user by host user id", user_id=str(user.id))
            return user

        if email:
            user = await self.store.get_by_email(email)
            if user:
                logger.debug("Found directory user by email", user_id=str(user.id))
                return await self._attach_host_user_id(user, identity.host_user_id)
            logger.debug("No directory user with email")

        logger.warning(
            "Directory user not found",
            host_user_id=identity.host_user_id,
            has_email=email is not None,
        )
        raise DirectoryNotFound(identity.host_user_id)

    async def ensure_main_admin(self, identity: HostIdentity, email: str) -> DirectoryUser:
        """Create or update the super admin row for the configured main admin email."""
        user = await self.store.get_by_email(email)

        if user is None:
            user, created = await self._create_main_admin(identity, email)
            if created:
                return user.as_main_admin()

        if user.host_user_id is None:
            user = await self._attach_host_user_id(user, identity.host_user_id)
        elif user.host_user_id != identity.host_user_id:
            logger.warning(
                "Main admin email presented by a different host user id",
                user_id=str(user.id),
                host_user_id=identity.host_user_id,
            )

        if user.role != Role.ADMIN or not user.is_super_admin:
            user = await self.store.promote_super_admin(user.id) or user

        return user.as_main_admin()

    async def _create_main_admin(
        self, identity: HostIdentity, email: str
    ) -> tuple[DirectoryUser, bool]:
        """
        Insert the main admin row, returning it and whether this call created it.

        A host user id already held by another row is left where it is and the
        admin row is created without one.
        """
        fields: dict[str, Any] = {
            "email": email,
            "name": identity.display_name or "Admin",
            "role": Role.ADMIN,
            "is_super_admin": True,
        }
        try:
            return await self.store.insert(**fields, host_user_id=identity.host_user_id), True
        except DuplicateUserError:
            pass

        # A concurrent bootstrap may have created the row first
        user = await self.store.get_by_email(email)
        if user is not None:
            logger.info("Main admin created concurrently, using existing row")
            return user, False

        logger.warning(
            "Host user id belongs to another directory user, creating main admin without it",
            host_user_id=identity.host_user_id,
        )
        try:
            return await self.store.insert(**fields), True
        except DuplicateUserError:
            user = await self.store.get_by_email(email)
            if user is None:
                raise
            return user, False

    async def _attach_host_user_id(self, user: DirectoryUser, host_user_id: str) -> DirectoryUser:
        if user.host_user_id == host_user_id:
            return user
        if user.host_user_id is not None:
            logger.warning(
                "Directory user matched by email is bound to another host user id",
                user_id=str(user.id),
                host_user_id=host_user_id,
            )
            return user

        try:
            updated = await self.store.attach_host_user_id(user.id, host_user_id)
        except DuplicateUserError:
            logger.warning(
                "Host user id already attached to another directory user",
                user_id=str(user.id),
                host_user_id=host_user_id,
            )
            return user
        return updated or user
