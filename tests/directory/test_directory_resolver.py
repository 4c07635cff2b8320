"""Tests for resolving host identities to directory users."""

from unittest.mock import AsyncMock

import pytest

from boardbridge.directory.models import Role
from boardbridge.directory.resolver import DirectoryResolver
from boardbridge.errors import DirectoryNotFound, Unexpected
from boardbridge.host.identity import HostIdentity

MAIN_ADMIN_EMAIL = "owner@studio.example"


class TestMainAdmin:
    @pytest.mark.asyncio
    async def test_created_when_absent(self, resolver, memory_store):
        identity = HostIdentity("u-1", "Owner", "Owner@Studio.Example")
        user = await resolver.resolve(identity)

        assert user.role is Role.ADMIN
        assert user.is_super_admin is True
        assert user.primary_board_id is None
        assert user.host_user_id == "u-1"
        assert memory_store.writes == 1

    @pytest.mark.asyncio
    async def test_existing_client_row_is_promoted(self, resolver, memory_store):
        seeded = memory_store.seed(
            email=MAIN_ADMIN_EMAIL, role=Role.CLIENT, primary_board_id="b9"
        )
        user = await resolver.resolve(HostIdentity("u-1", "Owner", MAIN_ADMIN_EMAIL))

        assert user.id == seeded.id
        assert user.role is Role.ADMIN
        assert user.is_super_admin is True
        assert user.primary_board_id is None
        stored = memory_store.users[seeded.id]
        assert stored.role is Role.ADMIN
        assert stored.host_user_id == "u-1"

    @pytest.mark.asyncio
    async def test_admin_regardless_of_host_binding(self, resolver, memory_store):
        memory_store.seed(
            email=MAIN_ADMIN_EMAIL,
            role=Role.ADMIN,
            is_super_admin=True,
            host_user_id="u-original",
        )
        user = await resolver.resolve(HostIdentity("u-other", "Owner", MAIN_ADMIN_EMAIL))

        assert user.role is Role.ADMIN
        assert user.is_super_admin is True
        assert user.host_user_id == "u-original"
        assert memory_store.writes == 0

    @pytest.mark.asyncio
    async def test_never_consults_host_id_lookup(self, resolver, memory_store):
        memory_store.seed(email="someone@else.example", host_user_id="u-1", role=Role.CLIENT)
        memory_store.get_by_host_user_id = AsyncMock(side_effect=AssertionError("not used"))

        user = await resolver.resolve(HostIdentity("u-2", "Owner", MAIN_ADMIN_EMAIL))
        assert user.email == MAIN_ADMIN_EMAIL

    @pytest.mark.asyncio
    async def test_concurrent_creation_rereads_existing_row(self, memory_store):
        winner = memory_store.seed(
            email=MAIN_ADMIN_EMAIL, role=Role.ADMIN, is_super_admin=True, host_user_id="u-1"
        )
        # First lookup misses, the insert collides, the re-read finds the winner's row
        memory_store.get_by_email = AsyncMock(side_effect=[None, winner])
        resolver = DirectoryResolver(memory_store, main_admin_email=MAIN_ADMIN_EMAIL)

        user = await resolver.resolve(HostIdentity("u-1", "Owner", MAIN_ADMIN_EMAIL))
        assert user.id == winner.id
        assert user.is_super_admin is True

    @pytest.mark.asyncio
    async def test_host_user_id_held_by_another_row(self, resolver, memory_store):
        other = memory_store.seed(
            email="someone@else.example", host_user_id="u-2", role=Role.CLIENT
        )

        user = await resolver.resolve(HostIdentity("u-2", "Owner", MAIN_ADMIN_EMAIL))

        assert user.email == MAIN_ADMIN_EMAIL
        assert user.role is Role.ADMIN
        assert user.is_super_admin is True
        assert user.host_user_id is None
        assert memory_store.users[other.id] == other

        again = await resolver.resolve(HostIdentity("u-2", "Owner", MAIN_ADMIN_EMAIL))
        assert again.id == user.id
        assert again.is_super_admin is True
        assert memory_store.writes == 1

    @pytest.mark.asyncio
    async def test_no_main_admin_configured(self, memory_store):
        resolver = DirectoryResolver(memory_store, main_admin_email=None)
        with pytest.raises(DirectoryNotFound):
            await resolver.resolve(HostIdentity("u-1", "Owner", MAIN_ADMIN_EMAIL))
        assert memory_store.writes == 0


class TestLookup:
    @pytest.mark.asyncio
    async def test_by_host_user_id(self, resolver, memory_store):
        seeded = memory_store.seed(
            email="client@x.com", role=Role.CLIENT, primary_board_id="b9", host_user_id="u-42"
        )
        user = await resolver.resolve(HostIdentity("u-42", "Client", None))

        assert user == seeded
        assert memory_store.email_lookups == 0

    @pytest.mark.asyncio
    async def test_email_match_attaches_host_user_id(self, resolver, memory_store):
        seeded = memory_store.seed(email="designer@x.com", role=Role.DESIGNER)

        user = await resolver.resolve(HostIdentity("u-7", "Designer", "Designer@X.com"))
        assert user.id == seeded.id
        assert user.host_user_id == "u-7"
        assert memory_store.email_lookups == 1

        # Later bootstraps find the row by host id without scanning by email
        again = await resolver.resolve(HostIdentity("u-7", "Designer", None))
        assert again.id == seeded.id
        assert memory_store.email_lookups == 1
        assert memory_store.writes == 1

    @pytest.mark.asyncio
    async def test_email_match_bound_to_other_host_id_is_not_rebound(self, resolver, memory_store):
        seeded = memory_store.seed(email="designer@x.com", role=Role.DESIGNER, host_user_id="u-7")

        user = await resolver.resolve(HostIdentity("u-8", "Designer", "designer@x.com"))
        assert user.id == seeded.id
        assert memory_store.users[seeded.id].host_user_id == "u-7"
        assert memory_store.writes == 0

    @pytest.mark.asyncio
    async def test_attach_collision_returns_matched_user(self, resolver, memory_store):
        memory_store.seed(email="first@x.com", host_user_id="u-9")
        seeded = memory_store.seed(email="second@x.com")
        # The host id lookup misses, as if the other row gained it concurrently
        memory_store.get_by_host_user_id = AsyncMock(return_value=None)

        user = await resolver.resolve(HostIdentity("u-9", "Second", "second@x.com"))
        assert user.id == seeded.id
        assert user.host_user_id is None


class TestNotFound:
    @pytest.mark.asyncio
    async def test_no_email_and_no_match(self, resolver):
        with pytest.raises(DirectoryNotFound) as exc_info:
            await resolver.resolve(HostIdentity("u-404", "Nobody", None))

        assert exc_info.value.host_user_id == "u-404"
        assert "u-404" in exc_info.value.message
        assert exc_info.value.to_dict()["host_user_id"] == "u-404"

    @pytest.mark.asyncio
    async def test_clients_are_never_auto_created(self, resolver, memory_store):
        with pytest.raises(DirectoryNotFound) as exc_info:
            await resolver.resolve(HostIdentity("u-42", "Client", "client@x.com"))

        assert exc_info.value.host_user_id == "u-42"
        assert memory_store.users == {}
        assert memory_store.writes == 0


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_store_error_becomes_unexpected(self, resolver, memory_store):
        memory_store.get_by_host_user_id = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(Unexpected, match="db down") as exc_info:
            await resolver.resolve(HostIdentity("u-1", "Someone", None))
        assert isinstance(exc_info.value.__cause__, RuntimeError)
