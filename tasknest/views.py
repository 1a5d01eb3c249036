"""Client-side view of a user's todos: local model, filtered/sorted projection, stats.

Everything here is pure. ``derive_view`` and ``compute_stats`` are recomputed
from the full collection on every call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

Priority = Literal["low", "medium", "high"]
Filter = Literal["all", "active", "completed"]
Sort = Literal["created", "priority", "dueDate", "alphabetical"]

PRIORITY_WEIGHT = {"high": 3, "medium": 2, "low": 1}

FILTERS = ("all", "active", "completed")
SORTS = ("created", "priority", "dueDate", "alphabetical")


class Subtask(BaseModel):
    text: str
    completed: bool = False


class Todo(BaseModel):
    """Local representation: ``id`` instead of the wire ``_id``, real datetimes."""

    id: str
    text: str
    completed: bool = False
    priority: Priority = "medium"
    category: str = "General"
    createdAt: datetime
    dueDate: Optional[datetime] = None
    subtasks: List[Subtask] = Field(default_factory=list)

    @field_validator("createdAt", "dueDate")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Stats(NamedTuple):
    total: int
    completed: int
    active: int
    overdue: int


def _matches(todo: Todo, filter: Filter, needle: str) -> bool:
    if filter == "active" and todo.completed:
        return False
    if filter == "completed" and not todo.completed:
        return False
    if needle and needle not in todo.text.casefold():
        return False
    return True


def _sort_key(sort: Sort):
    if sort == "priority":
        return lambda t: -PRIORITY_WEIGHT[t.priority]
    if sort == "dueDate":
        # undated todos go last
        return lambda t: (t.dueDate is None, t.dueDate.timestamp() if t.dueDate else 0.0)
    if sort == "alphabetical":
        return lambda t: (t.text.casefold(), t.text)
    return lambda t: -t.createdAt.timestamp()


def derive_view(
    todos: Iterable[Todo],
    filter: Filter = "all",
    sort: Sort = "created",
    search: str = "",
) -> List[Todo]:
    if filter not in FILTERS:
        raise ValueError(f"Unknown filter: {filter!r}")
    if sort not in SORTS:
        raise ValueError(f"Unknown sort: {sort!r}")

    needle = (search or "").casefold()
    # Identifier order first, so ties end up identifier-ordered through the stable sort.
    kept = sorted((t for t in todos if _matches(t, filter, needle)), key=lambda t: t.id)
    return sorted(kept, key=_sort_key(sort))


def compute_stats(todos: Iterable[Todo], now: Optional[datetime] = None) -> Stats:
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    todos = list(todos)
    completed = sum(1 for t in todos if t.completed)
    overdue = sum(
        1 for t in todos
        if not t.completed and t.dueDate is not None and t.dueDate < now
    )
    return Stats(total=len(todos), completed=completed, active=len(todos) - completed, overdue=overdue)
