"""
Session bootstrap pipeline.

Host identity -> directory user -> derived credential -> auth subsystem
session -> routing decision. Each stage ends the pipeline with a BridgeError
subclass; no stage retries an earlier stage's decision.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from .auth.adapters.base import AuthenticationError, AuthProviderError, SecondaryAuthClient
from .auth.bridge import SecondaryAuthBridge
from .auth.factory import get_auth_client
from .config import Settings, is_main_admin, settings
from .database.connection import get_session_factory
from .directory.resolver import DirectoryResolver
from .directory.store import DirectoryStore, SqlDirectoryStore
from .errors import AuthSignInFailed, BridgeError, InvalidInput, Unexpected
from .host.identity import HostIdentity, HostIdentityAdapter
from .logging import bind_session_context, get_logger
from .session import Session, build_session, redirect_for

logger = get_logger(__name__)


class BridgeService:
    """Single entry point the presentation layer calls to obtain a session."""

    def __init__(
        self,
        resolver: DirectoryResolver,
        bridge: SecondaryAuthBridge,
        auth_client: SecondaryAuthClient,
        store: DirectoryStore,
    ):
        self.resolver = resolver
        self.bridge = bridge
        self.auth_client = auth_client
        self.store = store

    async def bootstrap_session(self, identity: HostIdentity) -> Session:
        """
        Resolve a host identity into a directory user and an auth subsystem session.

        Raises:
            BridgeError: the typed failure of whichever stage ended the pipeline
        """
        if not identity.host_user_id or not identity.host_user_id.strip():
            raise InvalidInput("Host user id is required")

        bind_session_context(host_user_id=identity.host_user_id)
        try:
            user = await self.resolver.resolve(identity)
            bind_session_context(directory_user_id=str(user.id))
            established = await self.bridge.establish(user.id, user.email, identity.host_user_id)
        except BridgeError as e:
            logger.info("Session bootstrap failed", error_kind=e.kind)
            raise
        except Exception as e:
            logger.error("Unexpected error during session bootstrap", error=str(e))
            raise Unexpected.wrap(e) from e

        if established.linked and user.auth_user_id != established.account_id:
            user = replace(user, auth_user_id=established.account_id)

        session = build_session(user, established)
        logger.info(
            "Session bootstrapped",
            user_id=str(user.id),
            role=user.role.value,
            redirect=session.redirect_target.path,
            linked=session.linked,
        )
        return session

    async def bootstrap_from_host(self, adapter: HostIdentityAdapter) -> Session:
        identity = await adapter.resolve()
        return await self.bootstrap_session(identity)

    async def restore_session(self, access_token: str) -> Session:
        """
        Rebuild a session from an auth subsystem access token.

        The directory row is re-read so role and board changes take effect
        without a new bootstrap.
        """
        try:
            result = await self.auth_client.get_session(access_token)
        except AuthenticationError as e:
            raise AuthSignInFailed(str(e)) from e

        try:
            account_id = UUID(str(result.account_id))
            user = await self.store.get_by_auth_user_id(account_id)
        except ValueError as e:
            raise AuthSignInFailed("Session has a malformed account id") from e
        except Exception as e:
            logger.error("Failed to load directory user for session", error=str(e))
            raise Unexpected.wrap(e) from e

        if user is None:
            logger.warning("Session is not linked to a directory user", account_id=str(account_id))
            raise AuthSignInFailed("Session is not linked to a directory user")

        bind_session_context(host_user_id=user.host_user_id, directory_user_id=str(user.id))
        if is_main_admin(user.email, self.resolver.main_admin_email or ""):
            user = user.as_main_admin()

        return Session(
            directory_user=user,
            secondary_auth_account_id=account_id,
            redirect_target=redirect_for(user),
            linked=True,
            access_token=access_token,
        )

    async def sign_out(self, access_token: str) -> None:
        try:
            await self.auth_client.sign_out(access_token)
        except AuthProviderError as e:
            raise Unexpected(e.message) from e
        logger.info("Signed out of auth subsystem")


def create_bridge_service(config: Settings | None = None) -> BridgeService:
    """Wire the pipeline against the configured database and auth subsystem."""
    config = config or settings
    store = SqlDirectoryStore(get_session_factory())
    auth_client = get_auth_client(config)
    return BridgeService(
        resolver=DirectoryResolver(store, main_admin_email=config.main_admin_email),
        bridge=SecondaryAuthBridge(auth_client, store, config.auth_secret),
        auth_client=auth_client,
        store=store,
    )
