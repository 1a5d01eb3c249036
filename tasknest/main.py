from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from . import assist, auth, todos
from .config import Settings, get_settings
from .db import get_engine, init_db
from .errors import TaskNestError
from .oracle import GeminiOracle, Oracle

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskNestError)
    async def handle_app_error(request: Request, exc: TaskNestError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s: %s (%s)", request.method, request.url.path,
                         exc.__class__.__name__, exc.message, exc.error)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid request", "error": _validation_message(exc)})

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def handle_db_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Server error"})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Server error"})


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    oracle: Optional[Oracle] = None,
) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or get_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.engine = engine
    app.state.oracle = oracle or GeminiOracle.from_settings(settings)

    app.add_middleware(CORSMiddleware, allow_origins=settings.cors_origins, allow_credentials=False,
                       allow_methods=["*"], allow_headers=["*"])
    install_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(todos.router)
    app.include_router(assist.router)

    @app.get("/api/health")
    def health(): return {"ok": True, "today": date.today().isoformat()}

    return app
