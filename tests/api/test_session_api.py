"""HTTP tests for the session endpoints."""

import asyncio
import time

import jwt
import pytest
from fastapi.testclient import TestClient

from boardbridge.api.app import create_app
from boardbridge.directory.models import Role
from boardbridge.host.identity import HostTokenVerifier

MAIN_ADMIN_EMAIL = "owner@studio.example"
HOST_APP_SECRET = "host-signing-key-for-tests-0123456789"


def host_token(sub, key=HOST_APP_SECRET, expires_in=300, **claims):
    payload = {"sub": sub, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, key, algorithm="HS256")


def bootstrap(client, host_user_id, token=None, **headers):
    headers["X-Host-Id-Token"] = token or host_token(host_user_id)
    return client.post("/api/session/bootstrap", json={"id": host_user_id}, headers=headers)


@pytest.fixture
def client(bridge_service):
    app = create_app(
        bridge_service=bridge_service,
        host_token_verifier=HostTokenVerifier(HOST_APP_SECRET),
    )
    return TestClient(app)


@pytest.fixture
def seeded_client(memory_store):
    return memory_store.seed(
        email="client@x.com", role=Role.CLIENT, primary_board_id="b9", host_user_id="u-42"
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestBootstrapEndpoint:
    def test_bootstraps_known_client(self, client, seeded_client):
        response = client.post(
            "/api/session/bootstrap",
            json={"id": "u-42", "name": "Client"},
            headers={"X-Host-Id-Token": host_token("u-42"), "X-Host-Board-Id": "b-host"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(seeded_client.id)
        assert data["user"]["role"] == "client"
        assert data["redirect"] == {"kind": "board", "board_id": "b9", "path": "/board/b9"}
        assert data["linked"] is True
        assert data["access_token"]
        assert data["host_board_id"] == "b-host"

    def test_email_read_from_identity_token(self, client):
        response = bootstrap(client, "u-1", host_token("u-1", email=MAIN_ADMIN_EMAIL))

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role"] == "admin"
        assert data["user"]["is_super_admin"] is True
        assert data["redirect"]["path"] == "/admin"
        assert data["host_board_id"] is None

    def test_email_in_body_is_not_trusted(self, client):
        response = client.post(
            "/api/session/bootstrap",
            json={"id": "u-1", "email": MAIN_ADMIN_EMAIL},
            headers={"X-Host-Id-Token": host_token("u-1")},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "directory_not_found"

    def test_unknown_user(self, client):
        response = bootstrap(client, "u-404")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "directory_not_found"
        assert data["host_user_id"] == "u-404"
        assert "u-404" in data["message"]

    def test_email_conflict(self, client, seeded_client, auth_client):
        asyncio.run(auth_client.sign_up("client@x.com", "set-elsewhere", {}))

        response = bootstrap(client, "u-42")

        assert response.status_code == 409
        assert response.json()["error"] == "email_conflict"

    def test_missing_id_rejected(self, client):
        response = client.post("/api/session/bootstrap", json={"name": "No Id"})
        assert response.status_code == 422

    def test_blank_id_rejected(self, client):
        response = client.post("/api/session/bootstrap", json={"id": ""})
        assert response.status_code == 422


class TestHostTokenVerification:
    def test_forged_token_rejected(self, client, memory_store):
        memory_store.seed(email="admin@x.com", role=Role.ADMIN, host_user_id="u-admin")

        response = bootstrap(client, "u-admin", host_token("u-admin", key="attacker-key"))

        assert response.status_code == 401
        data = response.json()
        assert data["error"] == "host_identity_rejected"
        assert "access_token" not in data

    def test_token_for_another_user_rejected(self, client, seeded_client):
        response = bootstrap(client, "u-42", host_token("u-7"))

        assert response.status_code == 401
        assert response.json()["error"] == "host_identity_rejected"

    def test_missing_token_rejected(self, client, seeded_client):
        response = client.post("/api/session/bootstrap", json={"id": "u-42"})

        assert response.status_code == 401
        assert response.json()["message"] == "Host identity token is required"

    def test_expired_token_rejected(self, client, seeded_client):
        response = bootstrap(client, "u-42", host_token("u-42", expires_in=-60))
        assert response.status_code == 401

    def test_rejected_token_never_touches_directory(self, client, memory_store, seeded_client):
        bootstrap(client, "u-42", host_token("u-42", key="attacker-key"))
        assert memory_store.email_lookups == 0
        assert memory_store.links == 0

    def test_verification_not_configured(self, bridge_service, monkeypatch):
        monkeypatch.setattr("boardbridge.api.app.settings.host_app_secret", None)
        client = TestClient(create_app(bridge_service=bridge_service))

        response = bootstrap(client, "u-42")
        assert response.status_code == 503


class TestSessionEndpoint:
    def _bootstrap(self, client):
        response = bootstrap(client, "u-42")
        assert response.status_code == 200
        return response.json()["access_token"]

    def test_restores_session(self, client, seeded_client):
        token = self._bootstrap(client)

        response = client.get("/api/session", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(seeded_client.id)
        assert response.json()["access_token"] == token

    def test_missing_authorization(self, client):
        response = client.get("/api/session")
        assert response.status_code == 401

    def test_malformed_authorization(self, client):
        response = client.get("/api/session", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/session", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "auth_sign_in_failed"

    def test_sign_out(self, client, seeded_client):
        token = self._bootstrap(client)
        headers = {"Authorization": f"Bearer {token}"}

        response = client.post("/api/session/sign-out", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"status": "signed_out"}

        assert client.get("/api/session", headers=headers).status_code == 401


def test_service_not_initialized():
    client = TestClient(create_app())
    response = client.post("/api/session/bootstrap", json={"id": "u-42"})
    assert response.status_code == 503

