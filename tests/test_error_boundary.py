# tests/test_error_boundary.py

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tasknest.db import todos

from .fakes import FakeOracle


def test_database_error_hides_raw_message(client: TestClient, app: FastAPI, alice: dict,
                                          caplog: pytest.LogCaptureFixture) -> None:
    todos.drop(app.state.engine)

    with caplog.at_level(logging.ERROR, logger="tasknest"):
        r = client.get("/api/todos", headers=alice)

    assert r.status_code == 500
    assert r.json() == {"message": "Server error"}
    assert "no such table" not in r.text
    assert "no such table" in caplog.text


def test_unexpected_error_becomes_json(app: FastAPI, oracle: FakeOracle,
                                       caplog: pytest.LogCaptureFixture) -> None:
    oracle.error = RuntimeError("boom")

    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.post("/api/auth/register",
                   json={"username": "zoe", "email": "zoe@example.com", "password": "secret123"})
        headers = {"Authorization": f"Bearer {r.json()['token']}"}
        c.post("/api/todos", json={"text": "Anything"}, headers=headers)

        with caplog.at_level(logging.ERROR, logger="tasknest"):
            r = c.post("/api/ai/summarize", headers=headers)

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"message": "Server error"}
    assert "boom" in caplog.text
