from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.engine import Engine

from .auth import get_db, require_user
from .db import datetime_to_ms, dumps_subtasks, gen_id, now_ms, todos
from .errors import NotFoundError, ValidationError
from .schemas import ClearOut, MessageOut, TodoCreate, TodoOut, TodoUpdate, to_todo_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/todos", tags=["todos"])

Filter = Literal["all", "active", "completed"]


def owned(todo_id: str, user_id: str):
    return and_(todos.c.id == todo_id, todos.c.user_id == user_id)


def load_user_todos(conn, user_id: str, filter: Filter = "all", q: Optional[str] = None):
    conds = [todos.c.user_id == user_id]
    if filter == "active": conds.append(todos.c.completed.is_(False))
    elif filter == "completed": conds.append(todos.c.completed.is_(True))
    if q and q.strip(): conds.append(todos.c.text.ilike(f"%{q.strip()}%"))
    stmt = select(todos).where(and_(*conds)).order_by(todos.c.created_at.desc(), todos.c.id.desc())
    return conn.execute(stmt).mappings().all()


@router.get("", response_model=List[TodoOut])
def list_todos(filter: Filter = "all", q: Optional[str] = None,
               engine: Engine = Depends(get_db), user=Depends(require_user)):
    with engine.connect() as conn:
        rows = load_user_todos(conn, user["id"], filter, q)
    return [to_todo_out(r) for r in rows]


@router.post("", response_model=TodoOut, status_code=status.HTTP_201_CREATED)
def create_todo(payload: TodoCreate, engine: Engine = Depends(get_db), user=Depends(require_user)):
    text = payload.text.strip()
    if not text: raise ValidationError("Text is empty")
    category = payload.category.strip() or "General"
    tid = gen_id(); ts = now_ms()
    stmt = insert(todos).values(
        id=tid, user_id=user["id"], text=text, completed=False,
        priority=payload.priority, category=category,
        created_at=ts, updated_at=ts,
        due_date=datetime_to_ms(payload.dueDate),
        subtasks_json="[]",
    ).returning(todos)
    with engine.begin() as conn:
        row = conn.execute(stmt).mappings().first()
    logger.debug("Created todo %s for user %s", tid, user["id"])
    return to_todo_out(row)


@router.delete("/completed/clear", response_model=ClearOut)
def clear_completed(engine: Engine = Depends(get_db), user=Depends(require_user)):
    with engine.begin() as conn:
        res = conn.execute(delete(todos).where(and_(todos.c.user_id == user["id"], todos.c.completed.is_(True))))
    return ClearOut(message="Completed todos cleared successfully", deleted=res.rowcount or 0)


@router.put("/{todo_id}", response_model=TodoOut)
def update_todo(todo_id: str, payload: TodoUpdate, engine: Engine = Depends(get_db), user=Depends(require_user)):
    with engine.connect() as conn:
        cur = conn.execute(select(todos.c.id).where(owned(todo_id, user["id"]))).first()
    if not cur: raise NotFoundError("Todo not found")

    changes = payload.model_dump(exclude_unset=True)
    values = {}
    if changes.get("text") is not None:
        t = changes["text"].strip()
        if not t: raise ValidationError("Text is empty")
        values["text"] = t
    if changes.get("completed") is not None: values["completed"] = bool(changes["completed"])
    if changes.get("priority") is not None: values["priority"] = changes["priority"]
    if changes.get("category") is not None: values["category"] = changes["category"].strip() or "General"
    if "dueDate" in changes: values["due_date"] = datetime_to_ms(changes["dueDate"])
    if changes.get("subtasks") is not None: values["subtasks_json"] = dumps_subtasks(changes["subtasks"])
    if not values: raise ValidationError("Nothing to update")
    values["updated_at"] = now_ms()

    stmt = update(todos).where(owned(todo_id, user["id"])).values(**values).returning(todos)
    with engine.begin() as conn:
        row = conn.execute(stmt).mappings().first()
    # deleted between the ownership check and the write
    if not row: raise NotFoundError("Todo not found")
    return to_todo_out(row)


@router.delete("/{todo_id}", response_model=MessageOut)
def delete_todo(todo_id: str, engine: Engine = Depends(get_db), user=Depends(require_user)):
    with engine.begin() as conn:
        res = conn.execute(delete(todos).where(owned(todo_id, user["id"])))
        if res.rowcount == 0: raise NotFoundError("Todo not found")
    return MessageOut(message="Todo deleted successfully")
