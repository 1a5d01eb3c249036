# tests/conftest.py

from __future__ import annotations

import itertools
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tasknest.config import Settings
from tasknest.db import get_engine
from tasknest.main import create_app

from .fakes import FakeOracle


@pytest.fixture()
def settings() -> Settings:
    """Settings built by hand so tests never read the developer's .env."""
    return Settings(
        app_name="tasknest-test",
        log_level="DEBUG",
        cors_origins=["*"],
        database_url="sqlite://",
        jwt_secret="test-secret",
        jwt_ttl_seconds=3600,
        gemini_api_key=None,
        gemini_model="fake-model",
        gemini_base_url="http://oracle.invalid",
        oracle_timeout_seconds=1.0,
    )


@pytest.fixture()
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture()
def app(settings: Settings, oracle: FakeOracle) -> FastAPI:
    # Fresh in-memory database per test.
    return create_app(settings=settings, engine=get_engine("sqlite://"), oracle=oracle)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def ordered_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strictly increasing creation timestamps so newest-first ordering is deterministic."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    monkeypatch.setattr("tasknest.todos.now_ms", lambda: next(ticks))


def register(client: TestClient, username: str, password: str = "secret123") -> dict:
    r = client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture()
def alice(client: TestClient) -> dict:
    return register(client, "alice")


@pytest.fixture()
def bob(client: TestClient) -> dict:
    return register(client, "bob")
