"""
Shared pytest fixtures and configuration for all tests.
"""

import os
import sys
from collections.abc import AsyncGenerator, Generator
from dataclasses import replace
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add src directory to path so imports work
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from boardbridge.auth.adapters.none import InMemoryAuthClient
from boardbridge.auth.bridge import SecondaryAuthBridge
from boardbridge.dbmodels import Base
from boardbridge.directory.models import DirectoryUser, Role, normalize_email
from boardbridge.directory.resolver import DirectoryResolver
from boardbridge.directory.store import DuplicateUserError, LinkageConflictError, SqlDirectoryStore
from boardbridge.service import BridgeService

TEST_AUTH_SECRET = "test-deployment-secret-0123456789abcdef"
MAIN_ADMIN_EMAIL = "owner@studio.example"


class MemoryDirectoryStore:
    """DirectoryStore kept in a dict, counting writes so tests can assert idempotence."""

    def __init__(self) -> None:
        self.users: dict[UUID, DirectoryUser] = {}
        self.writes = 0
        self.links = 0
        self.email_lookups = 0
        self.link_error: Exception | None = None

    def seed(self, **fields: Any) -> DirectoryUser:
        fields.setdefault("id", uuid4())
        fields.setdefault("name", "Seeded User")
        fields.setdefault("role", Role.CLIENT)
        fields["email"] = normalize_email(fields["email"])
        user = DirectoryUser(**fields)
        self.users[user.id] = user
        return user

    def _find(self, predicate: Any) -> DirectoryUser | None:
        return next((u for u in self.users.values() if predicate(u)), None)

    async def get_by_id(self, user_id: UUID) -> DirectoryUser | None:
        return self.users.get(user_id)

    async def get_by_host_user_id(self, host_user_id: str) -> DirectoryUser | None:
        return self._find(lambda u: u.host_user_id == host_user_id)

    async def get_by_email(self, email: str) -> DirectoryUser | None:
        self.email_lookups += 1
        normalized = normalize_email(email)
        return self._find(lambda u: u.email == normalized)

    async def get_by_auth_user_id(self, auth_user_id: UUID) -> DirectoryUser | None:
        return self._find(lambda u: u.auth_user_id == auth_user_id)

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
        if self._find(lambda u: u.email == normalized):
            raise DuplicateUserError(normalized)
        if host_user_id and self._find(lambda u: u.host_user_id == host_user_id):
            raise DuplicateUserError(host_user_id)
        self.writes += 1
        user = DirectoryUser(
            id=uuid4(),
            email=normalized,
            name=name,
            role=Role(role),
            primary_board_id=primary_board_id,
            is_super_admin=is_super_admin,
            host_user_id=host_user_id,
        )
        self.users[user.id] = user
        return user

    async def attach_host_user_id(self, user_id: UUID, host_user_id: str) -> DirectoryUser | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        if user.host_user_id is None:
            if self._find(lambda u: u.host_user_id == host_user_id):
                raise DuplicateUserError(host_user_id)
            self.writes += 1
            user = self.users[user_id] = replace(user, host_user_id=host_user_id)
        return user

    async def promote_super_admin(self, user_id: UUID) -> DirectoryUser | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        if user.role is not Role.ADMIN or not user.is_super_admin:
            self.writes += 1
            user = self.users[user_id] = replace(user, role=Role.ADMIN, is_super_admin=True)
        return user

    async def link_auth_user(self, user_id: UUID, auth_user_id: UUID) -> bool:
        if self.link_error is not None:
            raise self.link_error
        user = self.users.get(user_id)
        if user is None:
            return False
        if user.auth_user_id == auth_user_id:
            return True
        if user.auth_user_id is not None:
            raise LinkageConflictError(user_id, user.auth_user_id)
        if self._find(lambda u: u.auth_user_id == auth_user_id):
            raise LinkageConflictError(user_id, None)
        self.links += 1
        self.users[user_id] = replace(user, auth_user_id=auth_user_id)
        return True

    async def list_users(self, role: Role | None = None) -> list[DirectoryUser]:
        users = [u for u in self.users.values() if role is None or u.role is role]
        return sorted(users, key=lambda u: u.email)


@pytest.fixture
def memory_store() -> MemoryDirectoryStore:
    return MemoryDirectoryStore()


@pytest.fixture
def auth_client() -> InMemoryAuthClient:
    return InMemoryAuthClient()


@pytest.fixture
def bridge(auth_client: InMemoryAuthClient, memory_store: MemoryDirectoryStore) -> SecondaryAuthBridge:
    return SecondaryAuthBridge(auth_client, memory_store, TEST_AUTH_SECRET)


@pytest.fixture
def resolver(memory_store: MemoryDirectoryStore) -> DirectoryResolver:
    return DirectoryResolver(memory_store, main_admin_email=MAIN_ADMIN_EMAIL)


@pytest.fixture
def bridge_service(
    resolver: DirectoryResolver,
    bridge: SecondaryAuthBridge,
    auth_client: InMemoryAuthClient,
    memory_store: MemoryDirectoryStore,
) -> BridgeService:
    return BridgeService(resolver, bridge, auth_client, memory_store)


@pytest_asyncio.fixture(scope="function")
async def sql_store() -> AsyncGenerator[SqlDirectoryStore, None]:
    """SqlDirectoryStore over an in-memory SQLite database with the schema created."""
    # StaticPool keeps every session on the one connection that owns the database
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)
    yield SqlDirectoryStore(factory)

    await engine.dispose()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")
