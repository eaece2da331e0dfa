# order_index/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from order_index import __version__
from order_index.api.routers.order_index import router as order_index_router
from order_index.core.config import AppSettings, get_settings
from order_index.core.logging import setup_logging
from order_index.db.base import init_models
from order_index.db.session import create_async_engine_safe, make_session_maker
from order_index.metrics import router as metrics_router
from order_index.services.index_engine import IndexEngine, build_index_engine

logger = logging.getLogger("coidx")


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    index_engine: Optional[IndexEngine] = None,
) -> FastAPI:
    """
    应用装配：DB 引擎 / Session 工厂 / 索引引擎各构造一次，挂在 app.state 上，
    路由通过依赖从 app.state 取。
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)
    init_models()

    db_engine = create_async_engine_safe(settings.DATABASE_URL, echo=settings.SQL_ECHO)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            yield
        finally:
            await db_engine.dispose()

    app = FastAPI(
        title="Customer Order Index",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.session_maker = make_session_maker(db_engine)
    app.state.index_engine = index_engine or build_index_engine()

    @app.exception_handler(Exception)
    async def _unhandled_exc(_req: Request, exc: Exception):
        logger.exception("UNHANDLED_EXC: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "INTERNAL_ERROR"})

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(_req: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(HTTPException)
    async def _http_exc(_req: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(order_index_router)
    app.include_router(metrics_router)
    return app
