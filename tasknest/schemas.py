from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .db import ms_to_datetime, parse_subtasks_json

Priority = Literal["low", "medium", "high"]


class Subtask(BaseModel):
    text: str = Field(min_length=1, max_length=500)
    completed: bool = False


class TodoCreate(BaseModel):
    text: str = Field(min_length=1, max_length=500)
    priority: Priority = "medium"
    category: str = Field(default="General", max_length=60)
    dueDate: Optional[datetime] = None


class TodoUpdate(BaseModel):
    """Partial update: only fields present in the body are applied; ``dueDate: null`` clears it."""

    text: Optional[str] = Field(default=None, max_length=500)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category: Optional[str] = Field(default=None, max_length=60)
    dueDate: Optional[datetime] = None
    subtasks: Optional[List[Subtask]] = None


class TodoOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    text: str
    completed: bool
    priority: Priority
    category: str
    userId: str
    createdAt: datetime
    updatedAt: datetime
    dueDate: Optional[datetime] = None
    subtasks: List[Subtask] = Field(default_factory=list)


class SubtasksRequest(BaseModel):
    todoId: Optional[str] = None
    taskText: Optional[str] = Field(default=None, max_length=500)


class SummaryOut(BaseModel):
    summary: str


class SuggestionsOut(BaseModel):
    suggestions: str


class SubtasksOut(BaseModel):
    todo: TodoOut


class MessageOut(BaseModel):
    message: str


class ClearOut(BaseModel):
    message: str
    deleted: int


class AuthRegister(BaseModel):
    username: str = Field(min_length=3, max_length=40)
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(min_length=6, max_length=200)


class AuthLogin(BaseModel):
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(min_length=1, max_length=200)


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    createdAt: datetime


class AuthOut(BaseModel):
    token: str
    user: UserOut


def to_user_out(r) -> UserOut:
    return UserOut(id=r["id"], username=r["username"], email=r["email"], createdAt=ms_to_datetime(r["created_at"]))


def to_todo_out(r) -> TodoOut:
    return TodoOut(
        id=r["id"], text=r["text"], completed=bool(r["completed"]),
        priority=r["priority"], category=r["category"], userId=r["user_id"],
        createdAt=ms_to_datetime(r["created_at"]),
        updatedAt=ms_to_datetime(r["updated_at"] or r["created_at"]),
        dueDate=ms_to_datetime(r["due_date"]),
        subtasks=[Subtask(**st) for st in parse_subtasks_json(r["subtasks_json"])],
    )
