# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from parley_relay.core.context import ServiceContext, build_context
from parley_relay.core.settings import Settings
from parley_relay.main import create_app
from parley_relay.services.identity import AuthResult

TEST_DB_URL = "sqlite://"
TEST_SECRET_KEY = "parley-test-secret"


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a private in-memory database and media directory."""
    return Settings(
        database_url=TEST_DB_URL,
        secret_key=TEST_SECRET_KEY,
        password_hash_profile="min",
        media_root=str(tmp_path / "media"),
        storage_timeout_seconds=2.0,
        push_timeout_seconds=1.0,
        subscription_queue_size=50,
        read_batch_size=3,
        log_level="DEBUG",
    )


@pytest.fixture()
def context(test_settings: Settings) -> Iterator[ServiceContext]:
    """A fresh service graph over an empty database."""
    ctx = build_context(test_settings)
    try:
        yield ctx
    finally:
        ctx.close()


@pytest.fixture()
def alice(context: ServiceContext) -> AuthResult:
    return context.identity.authenticate()


@pytest.fixture()
def bob(context: ServiceContext) -> AuthResult:
    return context.identity.authenticate()


@pytest.fixture()
def carol(context: ServiceContext) -> AuthResult:
    return context.identity.authenticate()


@pytest.fixture()
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def api_context(client: TestClient) -> ServiceContext:
    """The service context owned by the running test application."""
    ctx: ServiceContext = client.app.state.context  # type: ignore[attr-defined]
    return ctx


@pytest.fixture()
def sign_in(client: TestClient) -> Callable[[], dict[str, Any]]:
    """Return a helper that creates an anonymous identity over the API."""

    def _sign_in() -> dict[str, Any]:
        response = client.post("/api/v1/auth/anonymous")
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "user_id": body["user_id"],
            "token": body["access_token"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
        }

    return _sign_in


@pytest.fixture()
def auth_user(sign_in: Callable[[], dict[str, Any]]) -> dict[str, Any]:
    """Primary API user."""
    return sign_in()


@pytest.fixture()
def other_user(sign_in: Callable[[], dict[str, Any]]) -> dict[str, Any]:
    """Secondary API user."""
    return sign_in()
