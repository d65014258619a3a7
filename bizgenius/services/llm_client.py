"""
Клиент для обращения к OpenAI‑совместимому chat‑completion API (по умолчанию OpenRouter).

Задачи модуля:
- Управление конкурентностью запросов к провайдеру (семафор).
- Унифицированная обработка ошибок с маппингом на HTTP‑статусы (LLMError).
- Повторы (retry) при транзиентных ошибках провайдера.

Клиент не хранит глобального состояния: настройки передаются явно в конструктор.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)

from bizgenius.core.settings import Settings
from bizgenius.schemas import Usage

logger = logging.getLogger(__name__)

# Back-off sleep; replaced in tests
_sleep = asyncio.sleep


class LLMError(RuntimeError):
    """
    Структурированная ошибка уровня клиента LLM.

    Поля используются роутером для возврата корректного статуса и детального
    описания причины.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 422,
        code: str = "provider_error",
        provider_status: Optional[int] = None,
        attempts: Optional[int] = None,
        model: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.provider_status = provider_status
        self.attempts = attempts
        self.model = model

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {
            "code": self.code,
            "message": str(self),
            "attempts": self.attempts,
            "model": self.model,
        }
        if self.provider_status is not None:
            detail["provider_status"] = self.provider_status
        return detail


@dataclass
class Completion:
    """Результат одного успешного вызова модели."""

    content: str
    model: str
    usage: Usage = field(default_factory=Usage)
    attempts: int = 1


def _is_transient(e: OpenAIError) -> bool:
    if isinstance(e, (RateLimitError, APIConnectionError)):
        return True
    return isinstance(e, APIStatusError) and e.status_code >= 500


def _classify(e: OpenAIError) -> tuple[int, str, str]:
    """Маппинг ошибки провайдера на (HTTP‑статус, код, сообщение для пользователя)."""
    http_status = int(getattr(e, "status_code", 0) or 0)
    if isinstance(e, RateLimitError) or http_status == 429:
        return 429, "rate_limited", "Rate limit exceeded. Please wait a moment and try again."
    # APITimeoutError is a subclass of APIConnectionError, check it first
    if isinstance(e, APITimeoutError):
        return 504, "timeout", "The model provider timed out. Please try again."
    if isinstance(e, APIConnectionError):
        return 502, "connection_error", "Could not reach the model provider. Please try again."
    if http_status == 401:
        return 401, "unauthorized", "Invalid API key. Please check your API key configuration."
    if http_status == 402:
        return 402, "insufficient_credits", "Insufficient credits. Please check your provider billing."
    if http_status == 403:
        return 403, "forbidden", str(e)
    if http_status == 400:
        return 400, "bad_request", str(e)
    if http_status >= 500:
        return 502, "upstream_error", f"API request failed with status {http_status}"
    return 422, "provider_error", str(e) or f"API request failed with status {http_status}"


class LLMClient:
    """Асинхронный клиент chat‑completion поверх `openai.AsyncOpenAI`."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        """
        settings: параметры доступа и политики повторов.
        client: готовый `AsyncOpenAI` (для тестов); если не передан, создаётся
        при первом обращении: без ключа SDK не позволяет создать клиента.
        """
        self._settings = settings
        self._client = client
        self._sem = asyncio.Semaphore(settings.max_concurrent)

    @property
    def configured(self) -> bool:
        return self._client is not None or self._settings.api_key_configured

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._settings.api_key_configured:
                raise LLMError(
                    "API key not configured. Please set BG_API_KEY in the environment or .env file.",
                    status_code=503,
                    code="not_configured",
                )
            self._client = AsyncOpenAI(
                api_key=self._settings.api_key,
                base_url=self._settings.base_url,
                timeout=self._settings.http_timeout,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self._settings.app_referer,
                    "X-Title": self._settings.app_title,
                },
            )
        return self._client

    async def _call(self, payload: Dict[str, Any]):
        """Вызвать провайдера с ограничением числа одновременных запросов."""
        client = self._get_client()
        async with self._sem:
            return await client.chat.completions.create(**payload)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Completion:
        """
        Выполнить chat‑completion и вернуть текст ответа.

        Транзиентные ошибки (429, таймауты, обрывы соединения, 5xx) повторяются
        с экспоненциальной задержкой до `max_retry_provider` раз. Остальные
        ошибки сразу превращаются в LLMError с подходящим статусом.
        """
        model = model or self._settings.plan_model
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens or self._settings.plan_max_tokens,
            "temperature": self._settings.temperature if temperature is None else temperature,
            "stream": False,
        }
        max_retry = self._settings.max_retry_provider

        delay = 0.5
        attempts = 0
        for prov_try in range(max_retry + 1):
            attempts += 1
            try:
                resp = await self._call(payload)
            except OpenAIError as e:
                if prov_try < max_retry and _is_transient(e):
                    logger.warning(
                        "complete: transient provider error (attempt=%s/%s model=%s): %s",
                        prov_try + 1,
                        max_retry + 1,
                        model,
                        e,
                    )
                    await _sleep(delay + random.random() * 0.2)
                    delay = min(delay * 2, 8.0)
                    continue
                status_code, code, message = _classify(e)
                http_status = int(getattr(e, "status_code", 0) or 0)
                logger.error("complete: provider error (no retry, code=%s): %s", code, e)
                raise LLMError(
                    message,
                    status_code=status_code,
                    code=code,
                    provider_status=(http_status or None),
                    attempts=attempts,
                    model=model,
                ) from e

            content = ""
            if resp.choices:
                content = resp.choices[0].message.content or ""
            usage = Usage()
            if getattr(resp, "usage", None) is not None:
                prompt_tokens = int(resp.usage.prompt_tokens or 0)
                completion_tokens = int(resp.usage.completion_tokens or 0)
                usage = Usage(
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=prompt_tokens + completion_tokens,
                )
            logger.info(
                "complete: success model=%s attempts=%s tokens=%s content_len=%s",
                model,
                attempts,
                usage.total_tokens,
                len(content),
            )
            return Completion(content=content, model=model, usage=usage, attempts=attempts)

        # Loop always returns or raises; kept for type checkers
        raise LLMError("Provider call failed", attempts=attempts, model=model)

    async def stream(
        self,
        messages: List[Dict[str, str]],
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """
        Потоковый chat‑completion: отдаёт непустые фрагменты текста по мере
        прихода от провайдера.

        Повторов нет: часть ответа уже могла уйти клиенту. Ошибки провайдера
        (и при открытии потока, и посреди него) превращаются в LLMError.
        """
        model = model or self._settings.plan_model
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens or self._settings.plan_max_tokens,
            "temperature": self._settings.temperature if temperature is None else temperature,
            "stream": True,
        }
        client = self._get_client()
        chunks = 0
        async with self._sem:
            try:
                resp = await client.chat.completions.create(**payload)
                async for chunk in resp:
                    if not chunk.choices:
                        continue
                    piece = chunk.choices[0].delta.content or ""
                    if piece:
                        chunks += 1
                        yield piece
            except OpenAIError as e:
                status_code, code, message = _classify(e)
                http_status = int(getattr(e, "status_code", 0) or 0)
                logger.error("stream: provider error (code=%s, chunks=%s): %s", code, chunks, e)
                raise LLMError(
                    message,
                    status_code=status_code,
                    code=code,
                    provider_status=(http_status or None),
                    attempts=1,
                    model=model,
                ) from e
        logger.info("stream: finished model=%s chunks=%s", model, chunks)

    async def list_models(self) -> List[Dict[str, Any]]:
        """Список моделей провайдера; при любой ошибке пустой список."""
        if not self.configured:
            return []
        try:
            page = await self._get_client().models.list()
        except OpenAIError as e:
            logger.error("list_models: provider error: %s", e)
            return []
        return [m.model_dump() for m in page.data]
