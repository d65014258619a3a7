"""Логирование BizGenius: корреляция по request_id и текстовый/JSON вывод.

Идентификатор запроса хранится в `ContextVar`, выставляется middleware через
`request_context()` и попадает в каждую запись лога фильтром. Поля
access‑лога (`method`, `path`, `status`, `duration_ms`) передаются через
`extra=` и в JSON‑режиме выводятся отдельными ключами.
"""
from __future__ import annotations

import contextvars
import json
import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

# Keys accepted through `extra=` and rendered by the JSON formatter
ACCESS_FIELDS = ("method", "path", "status", "duration_ms")

# Chatty client libraries; kept at WARNING unless the service runs at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [rid=%(request_id)s] %(message)s"


@contextmanager
def request_context(request_id: str) -> Iterator[str]:
    """Привязать `request_id` к текущему контексту (запросу) на время блока."""
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """Одна запись лога — одна строка JSON (плюс поля access‑лога, если есть)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        for key in ACCESS_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _make_formatter(json_logs: bool) -> logging.Formatter:
    if json_logs:
        return JsonFormatter()
    return logging.Formatter(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(*, level: str | int = "INFO", json_logs: bool = False) -> None:
    """Настроить корневой логгер.

    Если хост (uvicorn, pytest) уже повесил хендлеры, они сохраняются, к ним
    только добавляется фильтр request_id (однократно). Иначе создаётся
    хендлер в stdout с текстовым или JSON‑форматом.
    """
    level = level.upper() if isinstance(level, str) else level
    root = logging.getLogger()
    if root.handlers:
        for h in root.handlers:
            if not any(isinstance(f, RequestIdFilter) for f in h.filters):
                h.addFilter(RequestIdFilter())
    else:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(_make_formatter(json_logs))
        root.addHandler(handler)
    root.setLevel(level)

    quiet = logging.DEBUG if root.level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
