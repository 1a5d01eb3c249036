from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select, update
from sqlalchemy.engine import Engine

from .auth import get_db, require_user
from .db import dumps_subtasks, ms_to_datetime, now_ms, todos
from .errors import GenerationError, NotFoundError, ValidationError
from .oracle import Oracle
from .schemas import SubtasksOut, SubtasksRequest, SuggestionsOut, SummaryOut, to_todo_out
from .subtasks import parse_subtasks
from .todos import load_user_todos, owned

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

NO_TASKS_SUMMARY = "You don't have any tasks yet. Start by adding your first task!"
NO_PENDING_SUGGESTIONS = "No pending tasks to prioritize!"

# subtask records share the todo text length limit
SUBTASK_MAX_LEN = 500


def get_oracle(request: Request) -> Oracle:
    return request.app.state.oracle


def _due_str(ms) -> str:
    dt: datetime = ms_to_datetime(ms)
    return dt.strftime("%a %b %d %Y")


def build_summary_prompt(rows: Sequence) -> str:
    todo_list = "\n".join(
        f"- {r['text']} (Priority: {r['priority']}, Category: {r['category']}, "
        f"Status: {'Completed' if r['completed'] else 'Pending'})"
        for r in rows
    )
    return (
        "You are a helpful assistant that summarizes todo lists. Provide a concise, encouraging "
        "summary of the user's tasks, highlighting priorities and progress.\n\n"
        f"Please summarize this todo list:\n{todo_list}"
    )


def build_prioritize_prompt(rows: Sequence) -> str:
    todo_list = "\n".join(
        f"- {r['text']} (Current Priority: {r['priority']}, Category: {r['category']}"
        + (f", Due: {_due_str(r['due_date'])}" if r["due_date"] is not None else "")
        + ")"
        for r in rows
    )
    return (
        "You are a productivity expert. Analyze the todo list and suggest how to prioritize tasks "
        "based on urgency, importance, and deadlines. Be specific and actionable.\n\n"
        f"Please suggest how to prioritize these tasks:\n{todo_list}"
    )


def build_subtasks_prompt(task_text: str) -> str:
    return (
        "You are a task management expert. Break down a task into smaller, actionable subtasks. "
        "Respond with ONLY a valid JSON array of strings, where each string is a subtask. "
        "Do not include any other text or explanations. "
        'For example: ["Subtask 1", "Subtask 2", "Subtask 3"]\n\n'
        f'Break down this task into 3-5 smaller subtasks: "{task_text}"'
    )


@router.post("/summarize", response_model=SummaryOut)
def summarize(engine: Engine = Depends(get_db), oracle: Oracle = Depends(get_oracle),
              user=Depends(require_user)):
    with engine.connect() as conn:
        rows = load_user_todos(conn, user["id"])
    if not rows:
        return SummaryOut(summary=NO_TASKS_SUMMARY)
    return SummaryOut(summary=oracle.generate(build_summary_prompt(rows)))


@router.post("/prioritize", response_model=SuggestionsOut)
def prioritize(engine: Engine = Depends(get_db), oracle: Oracle = Depends(get_oracle),
               user=Depends(require_user)):
    with engine.connect() as conn:
        rows = load_user_todos(conn, user["id"], "active")
    if not rows:
        return SuggestionsOut(suggestions=NO_PENDING_SUGGESTIONS)
    return SuggestionsOut(suggestions=oracle.generate(build_prioritize_prompt(rows)))


@router.post("/subtasks", response_model=SubtasksOut)
def generate_subtasks(payload: SubtasksRequest, engine: Engine = Depends(get_db),
                      oracle: Oracle = Depends(get_oracle), user=Depends(require_user)):
    todo_id = (payload.todoId or "").strip()
    if not todo_id:
        raise ValidationError("todoId is required")

    with engine.connect() as conn:
        cur = conn.execute(select(todos).where(owned(todo_id, user["id"]))).mappings().first()
    if not cur:
        raise NotFoundError("Todo not found")

    task_text = (payload.taskText or "").strip() or cur["text"]
    reply = oracle.generate(build_subtasks_prompt(task_text), json_mode=True)
    try:
        items: List[str] = parse_subtasks(reply)
    except GenerationError:
        logger.warning("Unusable subtask reply for todo %s: %r", todo_id, reply[:200])
        raise

    subtasks = [{"text": s[:SUBTASK_MAX_LEN], "completed": False} for s in items]
    stmt = (
        update(todos)
        .where(owned(todo_id, user["id"]))
        .values(subtasks_json=dumps_subtasks(subtasks), updated_at=now_ms())
        .returning(todos)
    )
    with engine.begin() as conn:
        row = conn.execute(stmt).mappings().first()
    if not row:
        raise NotFoundError("Todo not found")
    logger.info("Stored %d subtasks on todo %s", len(subtasks), todo_id)
    return SubtasksOut(todo=to_todo_out(row))
