"""Unit tests for the auth subsystem client factory."""

import os
from unittest.mock import patch

import pytest

from boardbridge.auth.adapters.none import InMemoryAuthClient
from boardbridge.auth.adapters.supabase import SupabaseAuthClient
from boardbridge.auth.factory import get_auth_client
from boardbridge.config import Settings


class TestAuthFactory:
    def test_none_provider(self):
        client = get_auth_client(Settings(auth_provider="none"))
        assert isinstance(client, InMemoryAuthClient)

    def test_supabase_provider(self):
        client = get_auth_client(
            Settings(
                auth_provider="supabase",
                supabase_url="https://project.supabase.co",
                supabase_anon_key="anon-key",
            )
        )
        assert isinstance(client, SupabaseAuthClient)
        assert client.url == "https://project.supabase.co"

    @patch.dict(
        os.environ,
        {"SUPABASE_URL": "https://env.supabase.co", "SUPABASE_ANON_KEY": "env-anon-key"},
    )
    def test_supabase_falls_back_to_unprefixed_env(self):
        client = get_auth_client(
            Settings(auth_provider="supabase", supabase_url=None, supabase_anon_key=None)
        )
        assert client.anon_key == "env-anon-key"

    @patch.dict(os.environ, {}, clear=True)
    def test_supabase_missing_keys(self):
        with pytest.raises(ValueError, match="Supabase URL and anon key are required"):
            get_auth_client(
                Settings(auth_provider="supabase", supabase_url=None, supabase_anon_key=None)
            )

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported auth provider: ldap"):
            get_auth_client(Settings(auth_provider="ldap"))

    @patch.dict(os.environ, {"BOARDBRIDGE_ENVIRONMENT": "production"})
    def test_in_memory_client_refused_in_production(self):
        with pytest.raises(RuntimeError):
            get_auth_client(Settings(auth_provider="none"))
