"""Точка входа FastAPI‑приложения BizGenius.

Запуск локально:
    uvicorn bizgenius.app.main:app --reload --port 8000
"""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request

from bizgenius.core.db import init_db
from bizgenius.core.logging import request_context, setup_logging
from bizgenius.core.settings import get_settings

from .routers import router

settings = get_settings()
setup_logging(level=settings.log_level, json_logs=bool(settings.log_json))

logger = logging.getLogger("bizgenius.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not settings.api_key_configured:
        logger.warning("API key not configured (BG_API_KEY); generation endpoints will return 503")
    logger.info("startup: plan_model=%s base_url=%s", settings.plan_model, settings.base_url)
    yield


app = FastAPI(
    title="BizGenius API",
    version="1.0.0",
    description=("AI business plan generator: prompt building, model call, "
        "section parsing, storage and export; plus a business chat assistant."),
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def _access_log_middleware(request: Request, call_next):
    """Access‑middleware: проставляет request_id и логирует начало/ошибку/завершение запроса."""
    header = settings.request_id_header
    rid = request.headers.get(header) or uuid4().hex
    with request_context(rid):
        start = time.monotonic()
        fields = {"method": request.method, "path": request.url.path}
        logger.info(
            "request.start method=%s path=%s client=%s",
            request.method,
            request.url.path,
            request.client.host if request.client else "-",
            extra=fields,
        )
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = int((time.monotonic() - start) * 1000)
            logger.exception(
                "request.error method=%s path=%s dur_ms=%s",
                request.method,
                request.url.path,
                fields["duration_ms"],
                extra=fields,
            )
            raise
        fields.update(status=response.status_code, duration_ms=int((time.monotonic() - start) * 1000))
        logger.info(
            "request.end method=%s path=%s status=%s dur_ms=%s",
            request.method,
            request.url.path,
            response.status_code,
            fields["duration_ms"],
            extra=fields,
        )
    response.headers[header] = rid
    return response
