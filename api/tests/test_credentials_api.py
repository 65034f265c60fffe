"""Tests for credential upserts and health endpoints."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from api.src.main import app
from controller.src.services.executor import ExecutionController
from controller.src.stores import RedisCredentialStore
from controller.tests.fakes import FakeBackend, FakeRedis, make_settings, make_stores

@pytest.fixture
def redis():
    return FakeRedis()

@pytest.fixture
def client(redis):
    settings = make_settings(credential_namespace="api:creds")
    app.state.credential_store = RedisCredentialStore(client=redis, settings=settings)
    app.state.controller = ExecutionController(FakeBackend(), make_stores(), settings=settings)
    yield TestClient(app)
    del app.state.controller
    del app.state.credential_store

def test_put_server_credential(client, redis):
    response = client.put("/api/credentials/servers", json={
        "host": "Bastion.Example.com", "port": 2222, "username": "jump", "password": "pw",
    })
    assert response.status_code == 200
    assert response.json() == {"status": "stored", "kind": "server", "key": "bastion.example.com:2222"}
    stored = json.loads(redis.hashes["api:creds:servers"]["bastion.example.com:2222"])
    assert stored["username"] == "jump"

def test_put_git_credential_is_readable_from_snapshot(client):
    response = client.put("/api/credentials/git", json={
        "base_url": "https://git.example.com/", "token": "glpat-2",
    })
    assert response.json()["key"] == "https://git.example.com"

    stores = asyncio.run(app.state.credential_store.snapshot())
    assert stores.git.get("https://git.example.com").token == "glpat-2"

def test_put_registry_credential_requires_password(client):
    response = client.put("/api/credentials/registries", json={
        "registry_url": "harbor.example.com", "username": "robot",
    })
    assert response.status_code == 422

def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"

def test_full_health_check(client):
    data = client.get("/health/all").json()
    assert data["status"] == "healthy"
    assert data["services"]["backend"] == "healthy"
    assert data["services"]["redis"] == "healthy"
    assert data["services"]["polling"] is False

def test_backend_health_reports_failure(client):
    class BrokenBackend(FakeBackend):
        async def list_services(self):
            raise ConnectionError("backend down")

    app.state.controller.client = BrokenBackend()
    data = client.get("/health/backend").json()
    assert data["status"] == "unhealthy"
    assert "backend down" in data["backend"]

def test_delete_server_credential(client, redis):
    client.put("/api/credentials/servers", json={
        "host": "10.0.0.1", "username": "deploy", "password": "pw",
    })

    response = client.delete("/api/credentials/servers", params={"host": "10.0.0.1"})
    assert response.status_code == 200
    assert response.json() == {"status": "removed", "kind": "server", "key": "10.0.0.1:22"}
    assert redis.hashes["api:creds:servers"] == {}

    again = client.delete("/api/credentials/servers", params={"host": "10.0.0.1"})
    assert again.status_code == 404

def test_delete_git_and_registry_credentials(client):
    client.put("/api/credentials/git", json={"base_url": "https://git.example.com", "token": "t"})
    client.put("/api/credentials/registries", json={
        "registry_url": "harbor.example.com", "username": "robot", "password": "p",
    })

    git = client.delete("/api/credentials/git", params={"base_url": "https://git.example.com/"})
    registry = client.delete("/api/credentials/registries", params={"registry_url": "harbor.example.com"})
    assert git.json()["key"] == "https://git.example.com"
    assert registry.status_code == 200

    stores = asyncio.run(app.state.credential_store.snapshot())
    assert stores.git.all() == []
    assert stores.registries.all() == []
