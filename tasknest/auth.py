"""Access gate: password hashing, JWT issue/resolve and the auth routes."""

from __future__ import annotations

import hashlib
import logging

import bcrypt
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import insert, or_, select
from sqlalchemy.engine import Engine

from .config import Settings
from .db import gen_id, now_ms, users
from .errors import AuthError, ValidationError
from .schemas import AuthLogin, AuthOut, AuthRegister, UserOut, to_user_out

logger = logging.getLogger(__name__)

JWT_ALG = "HS256"

bearer = HTTPBearer(auto_error=False)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_db(request: Request) -> Engine:
    return request.app.state.engine


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _pw_prehash(pw: str) -> bytes:
    """Pre-hash to avoid bcrypt's 72-byte input limit."""
    return hashlib.sha256(pw.encode("utf-8")).digest()


def hash_password(pw: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(_pw_prehash(pw), salt).decode("utf-8")


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_prehash(pw), pw_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def create_token(user_id: str, settings: Settings) -> str:
    exp = now_ms() // 1000 + settings.jwt_ttl_seconds
    return jwt.encode({"sub": user_id, "exp": exp}, settings.jwt_secret, algorithm=JWT_ALG)


def resolve(engine: Engine, token: str, secret: str) -> dict:
    """Bearer token -> user row. Raises AuthError for anything that is not a live user."""
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALG])
    except JWTError as e:
        logger.info("Rejected token: %s", e)
        raise AuthError("Invalid token")
    uid = payload.get("sub")
    if not uid:
        raise AuthError("Invalid token")

    with engine.connect() as conn:
        u = conn.execute(select(users).where(users.c.id == uid)).mappings().first()
    if not u:
        raise AuthError("User not found")
    return dict(u)


def require_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    engine: Engine = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    token = None
    if creds and creds.credentials:
        token = creds.credentials
    # Some proxies strip the Authorization header.
    elif request.headers.get("x-auth-token"):
        token = request.headers.get("x-auth-token")
    if not token:
        raise AuthError("Not authenticated")
    return resolve(engine, token, settings.jwt_secret)


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: AuthRegister,
    engine: Engine = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    username = payload.username.strip()
    email = payload.email.strip().lower()
    if not username:
        raise ValidationError("Username is empty")
    if "@" not in email or "." not in email:
        raise ValidationError("Please enter a valid email")

    uid = gen_id()
    with engine.begin() as conn:
        taken = conn.execute(
            select(users.c.id).where(or_(users.c.email == email, users.c.username == username))
        ).first()
        if taken:
            raise ValidationError("User with this email or username already exists")
        conn.execute(insert(users).values(
            id=uid, username=username, email=email,
            password_hash=hash_password(payload.password), created_at=now_ms(),
        ))
        u = conn.execute(select(users).where(users.c.id == uid)).mappings().first()
    logger.info("Registered user %s", uid)
    return AuthOut(token=create_token(uid, settings), user=to_user_out(u))


@router.post("/login", response_model=AuthOut)
def login(
    payload: AuthLogin,
    engine: Engine = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    email = payload.email.strip().lower()
    with engine.connect() as conn:
        u = conn.execute(select(users).where(users.c.email == email)).mappings().first()
    if not u or not verify_password(payload.password, u["password_hash"]):
        raise ValidationError("Invalid credentials")
    return AuthOut(token=create_token(u["id"], settings), user=to_user_out(u))


@router.get("/me", response_model=UserOut)
def me(user=Depends(require_user)):
    return to_user_out(user)
