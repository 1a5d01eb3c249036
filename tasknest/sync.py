"""Client sync layer: mirrors a user's todos against the HTTP API.

Local state only changes after the server confirmed the call. A failed call
leaves ``todos`` untouched and emits a single notification.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

import httpx

from .views import Filter, Sort, Stats, Todo, compute_stats, derive_view

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]

_NOTIFY_LEVELS = {"success": logging.INFO, "info": logging.INFO, "error": logging.WARNING}


def log_notify(level: str, message: str) -> None:
    logger.log(_NOTIFY_LEVELS.get(level, logging.INFO), message)


def from_wire(data: dict) -> Todo:
    return Todo.model_validate({**data, "id": data.get("_id") or data.get("id")})


def to_wire(changes: dict) -> dict:
    out = {}
    for k, v in changes.items():
        if isinstance(v, datetime):
            v = v.isoformat()
        elif k == "subtasks" and v is not None:
            v = [s.model_dump() if hasattr(s, "model_dump") else dict(s) for s in v]
        out[k] = v
    return out


class TodoSync:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3001",
        token: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
        notify: Optional[Notify] = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url)
        self.token = token
        self.notify: Notify = notify or log_notify
        self.todos: List[Todo] = []
        self.filter: Filter = "all"
        self.sort: Sort = "created"
        self.search: str = ""
        self.user: Optional[dict] = None

    # ---- derived state ----

    @property
    def visible(self) -> List[Todo]:
        return derive_view(self.todos, self.filter, self.sort, self.search)

    @property
    def stats(self) -> Stats:
        return compute_stats(self.todos)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    # ---- transport ----

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        resp = self._client.request(method, path, headers=self._headers(), **kwargs)
        resp.raise_for_status()
        return resp

    def _call(self, method: str, path: str, failure: str, **kwargs) -> Optional[Any]:
        """Run one request; on any failure notify ``failure`` and return None."""
        try:
            return self._send(method, path, **kwargs).json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            self.notify("error", failure)
            return None

    def _replace(self, todo: Todo) -> None:
        self.todos = [todo if t.id == todo.id else t for t in self.todos]

    def _find(self, todo_id: str) -> Optional[Todo]:
        return next((t for t in self.todos if t.id == todo_id), None)

    # ---- auth ----

    def _authenticate(self, path: str, body: dict, failure: str) -> Optional[dict]:
        data = self._call("POST", path, failure, json=body)
        if data is None:
            return None
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def register(self, username: str, email: str, password: str) -> Optional[dict]:
        return self._authenticate("/api/auth/register",
                                  {"username": username, "email": email, "password": password},
                                  "Registration failed")

    def login(self, email: str, password: str) -> Optional[dict]:
        return self._authenticate("/api/auth/login", {"email": email, "password": password}, "Login failed")

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.todos = []

    # ---- todos ----

    def fetch(self) -> List[Todo]:
        if not self.is_authenticated:
            self.todos = []
            return self.todos
        try:
            data = self._send("GET", "/api/todos").json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                # the auth layer deals with expired sessions
                logger.debug("Fetching todos rejected with 401")
            else:
                logger.error("Failed to load todos after successful auth: %s", e)
                self.notify("error", "Failed to load todos")
            return self.todos
        except httpx.HTTPError as e:
            logger.error("Network error or backend unreachable when fetching todos: %s", e)
            self.notify("error", "Failed to load todos: Network or Server Issue")
            return self.todos
        except ValueError as e:
            logger.error("Unreadable todo list from server: %s", e)
            self.notify("error", "Failed to load todos")
            return self.todos
        self.todos = [from_wire(d) for d in data]
        return self.todos

    def add(self, text: str, priority: str = "medium", category: str = "General",
            due_date: Optional[datetime] = None) -> Optional[Todo]:
        body = to_wire({"text": text.strip(), "priority": priority, "category": category, "dueDate": due_date})
        data = self._call("POST", "/api/todos", "Failed to add task", json=body)
        if data is None:
            return None
        todo = from_wire(data)
        self.todos = [todo, *self.todos]
        self.notify("success", "Task added successfully!")
        return todo

    def toggle(self, todo_id: str) -> Optional[Todo]:
        cur = self._find(todo_id)
        if cur is None:
            return None
        data = self._call("PUT", f"/api/todos/{todo_id}", "Failed to update task",
                          json={"completed": not cur.completed})
        if data is None:
            return None
        todo = from_wire(data)
        self._replace(todo)
        self.notify("success", "Task completed!" if todo.completed else "Task marked as incomplete")
        return todo

    def update(self, todo_id: str, **changes) -> Optional[Todo]:
        data = self._call("PUT", f"/api/todos/{todo_id}", "Failed to update task", json=to_wire(changes))
        if data is None:
            return None
        todo = from_wire(data)
        self._replace(todo)
        self.notify("success", "Task updated successfully!")
        return todo

    def delete(self, todo_id: str) -> bool:
        if self._call("DELETE", f"/api/todos/{todo_id}", "Failed to delete task") is None:
            return False
        self.todos = [t for t in self.todos if t.id != todo_id]
        self.notify("success", "Task deleted successfully!")
        return True

    def clear_completed(self) -> bool:
        if self._call("DELETE", "/api/todos/completed/clear", "Failed to clear completed tasks") is None:
            return False
        self.todos = [t for t in self.todos if not t.completed]
        self.notify("success", "Completed tasks cleared!")
        return True

    # ---- assist ----

    def generate_subtasks(self, todo_id: str, task_text: str = "") -> Optional[Todo]:
        data = self._call("POST", "/api/ai/subtasks", "Failed to generate subtasks",
                          json={"todoId": todo_id, "taskText": task_text})
        if not data or not data.get("todo"):
            return None
        todo = from_wire(data["todo"])
        self._replace(todo)
        self.notify("success", "Subtasks generated successfully!")
        return todo

    def summarize(self) -> Optional[str]:
        data = self._call("POST", "/api/ai/summarize", "Failed to generate summary")
        return data["summary"] if data else None

    def prioritize(self) -> Optional[str]:
        data = self._call("POST", "/api/ai/prioritize", "Failed to get suggestions")
        return data["suggestions"] if data else None

    def close(self) -> None:
        self._client.close()
