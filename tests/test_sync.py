# tests/test_sync.py

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from tasknest.sync import TodoSync, from_wire

from .fakes import FakeOracle


class Notes:
    """Collects notifications instead of showing them."""

    def __init__(self) -> None:
        self.items: list[tuple[str, str]] = []

    def __call__(self, level: str, message: str) -> None:
        self.items.append((level, message))

    @property
    def errors(self) -> list[str]:
        return [m for lvl, m in self.items if lvl == "error"]


@pytest.fixture()
def notes() -> Notes:
    return Notes()


@pytest.fixture()
def sync(client: TestClient, notes: Notes) -> TodoSync:
    s = TodoSync(client=client, notify=notes)
    assert s.register("sam", "sam@example.com", "secret123") is not None
    return s


def test_from_wire_renames_id_and_parses_dates() -> None:
    todo = from_wire({
        "_id": "abc", "text": "t", "completed": False, "priority": "low", "category": "General",
        "createdAt": "2026-10-19T10:00:00Z", "dueDate": None, "subtasks": [], "userId": "u",
    })

    assert todo.id == "abc"
    assert todo.createdAt == datetime(2026, 10, 19, 10, tzinfo=timezone.utc)
    assert todo.dueDate is None


def test_fetch_without_token_clears_state_silently(notes: Notes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    s = TodoSync(client=httpx.Client(base_url="http://x", transport=httpx.MockTransport(handler)), notify=notes)

    assert s.fetch() == []
    assert notes.items == []


def test_add_fetch_and_view(sync: TodoSync) -> None:
    due = datetime.now(tz=timezone.utc) - timedelta(days=1)
    sync.add("Pay bills", priority="high", due_date=due)
    sync.add("Water plants", priority="low")

    assert [t.text for t in sync.todos] == ["Water plants", "Pay bills"]
    assert sync.todos[1].dueDate is not None

    sync.todos = []
    sync.fetch()
    assert [t.text for t in sync.todos] == ["Water plants", "Pay bills"]

    sync.sort = "priority"
    assert [t.text for t in sync.visible] == ["Pay bills", "Water plants"]
    sync.search = "water"
    assert [t.text for t in sync.visible] == ["Water plants"]

    assert sync.stats.total == 2
    assert sync.stats.overdue == 1


def test_toggle_applies_server_state(sync: TodoSync, notes: Notes) -> None:
    todo = sync.add("Overdue thing", due_date=datetime.now(tz=timezone.utc) - timedelta(hours=2))
    assert sync.stats.overdue == 1

    toggled = sync.toggle(todo.id)

    assert toggled is not None and toggled.completed is True
    assert sync.stats.overdue == 0
    assert sync.stats.completed == 1
    assert ("success", "Task completed!") in notes.items


def test_update_and_clear_due_date(sync: TodoSync) -> None:
    todo = sync.add("Call bank", due_date=datetime(2030, 1, 1, tzinfo=timezone.utc))

    updated = sync.update(todo.id, text="Call the bank", dueDate=None)

    assert updated.text == "Call the bank"
    assert updated.dueDate is None
    assert sync.todos[0].text == "Call the bank"


def test_failed_mutation_keeps_state(sync: TodoSync, notes: Notes) -> None:
    sync.add("Keep me")
    before = list(sync.todos)

    assert sync.delete("does-not-exist") is False
    assert sync.update("does-not-exist", text="x") is None

    assert sync.todos == before
    assert notes.errors == ["Failed to delete task", "Failed to update task"]


def test_delete_and_clear_completed(sync: TodoSync) -> None:
    a = sync.add("a")
    b = sync.add("b")
    sync.add("c")
    sync.toggle(b.id)

    assert sync.delete(a.id) is True
    assert sync.clear_completed() is True
    assert [t.text for t in sync.todos] == ["c"]

    sync.fetch()
    assert [t.text for t in sync.todos] == ["c"]


def test_generate_subtasks(sync: TodoSync, oracle: FakeOracle) -> None:
    oracle.reply = json.dumps(["Find recipe", "Buy ingredients"])
    todo = sync.add("Bake cake")

    updated = sync.generate_subtasks(todo.id, "Bake cake")

    assert [s.text for s in updated.subtasks] == ["Find recipe", "Buy ingredients"]
    assert [s.text for s in sync.todos[0].subtasks] == ["Find recipe", "Buy ingredients"]


def test_generate_subtasks_failure_keeps_state(sync: TodoSync, oracle: FakeOracle, notes: Notes) -> None:
    oracle.reply = "no idea"
    todo = sync.add("Mystery")

    assert sync.generate_subtasks(todo.id, "Mystery") is None
    assert sync.todos[0].subtasks == []
    assert notes.errors == ["Failed to generate subtasks"]


def test_summarize_and_prioritize(sync: TodoSync, oracle: FakeOracle) -> None:
    oracle.reply = "All good."
    sync.add("Something")

    assert sync.summarize() == "All good."
    assert sync.prioritize() == "All good."


def test_fetch_401_is_suppressed(client: TestClient, notes: Notes) -> None:
    s = TodoSync(client=client, token="expired", notify=notes)
    s.todos = []

    assert s.fetch() == []
    assert notes.items == []


def test_fetch_server_error_is_reported(notes: Notes) -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(500, json={"message": "Server error"}))
    s = TodoSync(client=httpx.Client(base_url="http://x", transport=transport), token="t", notify=notes)

    s.fetch()

    assert notes.errors == ["Failed to load todos"]


def test_fetch_network_error_is_reported(notes: Notes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    s = TodoSync(client=httpx.Client(base_url="http://x", transport=httpx.MockTransport(handler)),
                 token="t", notify=notes)

    s.fetch()

    assert notes.errors == ["Failed to load todos: Network or Server Issue"]


def test_login_failure_is_reported(client: TestClient, notes: Notes) -> None:
    s = TodoSync(client=client, notify=notes)

    assert s.login("nobody@example.com", "whatever") is None
    assert s.is_authenticated is False
    assert notes.errors == ["Login failed"]


def test_non_json_success_body_is_reported_once(notes: Notes) -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html>proxy page</html>"))
    s = TodoSync(client=httpx.Client(base_url="http://x", transport=transport), token="t", notify=notes)

    assert s.add("Anything") is None
    assert s.delete("whatever") is False
    s.fetch()

    assert s.todos == []
    assert notes.errors == ["Failed to add task", "Failed to delete task", "Failed to load todos"]
