from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    create_engine, MetaData, Table, Column,
    String, Boolean, BigInteger, Text, Index,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

metadata = MetaData()

users = Table(
    "users", metadata,
    Column("id", String, primary_key=True),
    Column("username", String, nullable=False),
    Column("email", String, nullable=False),
    Column("password_hash", String, nullable=False),
    Column("created_at", BigInteger, nullable=False),
    Index("ux_users_email", "email", unique=True),
    Index("ux_users_username", "username", unique=True),
)

todos = Table(
    "todos", metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("text", Text, nullable=False),
    Column("completed", Boolean, nullable=False, server_default="false"),
    Column("priority", String, nullable=False, server_default="medium"),
    Column("category", String, nullable=False, server_default="General"),
    Column("created_at", BigInteger, nullable=False),
    Column("updated_at", BigInteger, nullable=False),
    Column("due_date", BigInteger, nullable=True),
    Column("subtasks_json", Text, nullable=False, server_default="[]"),
)


def normalize_database_url(url: str) -> str:
    return "postgresql://" + url[len("postgres://"):] if url.startswith("postgres://") else url


def get_engine(db_url: str = "") -> Engine:
    """Build an engine; empty url means a local SQLite file."""
    db_url = (db_url or "").strip()
    if db_url:
        db_url = normalize_database_url(db_url)
        if db_url.startswith("postgresql://") and "+psycopg2" not in db_url:
            db_url = db_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    else:
        db_url = "sqlite:///./tasks.db"

    if db_url.startswith("sqlite"):
        # Handlers run on the threadpool, so the connection is shared across threads.
        kwargs = {"connect_args": {"check_same_thread": False}}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, future=True, **kwargs)
    return create_engine(db_url, future=True, pool_pre_ping=True)


def now_ms() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)


def gen_id() -> str:
    return f"{now_ms() // 1000}_{os.urandom(4).hex()}"


def ms_to_datetime(ms: Optional[int]) -> Optional[datetime]:
    if ms is None:
        return None
    return datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc)


def datetime_to_ms(dt: Optional[datetime]) -> Optional[int]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def parse_subtasks_json(s: str) -> List[dict]:
    """Stored subtasks -> list of {text, completed}; malformed rows read as empty."""
    try:
        v = json.loads(s or "[]")
    except ValueError:
        logger.warning("Unreadable subtasks_json, treating as empty: %r", s[:80] if s else s)
        return []
    if not isinstance(v, list):
        return []
    out = []
    for item in v:
        if isinstance(item, dict) and isinstance(item.get("text"), str):
            out.append({"text": item["text"], "completed": bool(item.get("completed", False))})
    return out


def dumps_subtasks(subtasks: List[dict]) -> str:
    clean = []
    for st in subtasks:
        t = (st.get("text") or "").strip()
        if t:
            clean.append({"text": t, "completed": bool(st.get("completed", False))})
    return json.dumps(clean, ensure_ascii=False)


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)
