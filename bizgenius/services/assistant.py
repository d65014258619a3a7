"""Чат‑ассистент по бизнес‑вопросам (маркетинг, финансы, стратегия и т.д.)."""
from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, List

from bizgenius.core.settings import Settings
from bizgenius.services.llm_client import Completion, LLMClient
from bizgenius.services.templates import build_assistant_messages

EMPTY_REPLY_TEXT = "Sorry, I could not generate a response."

_log = logging.getLogger(__name__)


class BusinessAssistant:
    def __init__(self, llm: LLMClient, settings: Settings) -> None:
        self._llm = llm
        self._settings = settings

    def _messages(self, history: List[Dict[str, str]]) -> List[Dict[str, str]]:
        # Incoming system messages are dropped: only our own system prompt sets the role
        conversation = [m for m in history if m.get("role") != "system"]
        _log.info("assistant: reply (messages=%s)", len(conversation))
        return build_assistant_messages(conversation)

    async def reply(self, history: List[Dict[str, str]]) -> Completion:
        """Ответить на последнее сообщение пользователя с учётом переписки."""
        completion = await self._llm.complete(
            self._messages(history),
            model=self._settings.chat_model,
            max_tokens=self._settings.chat_max_tokens,
        )
        if not completion.content.strip():
            completion.content = EMPTY_REPLY_TEXT
        return completion

    async def stream_reply(self, history: List[Dict[str, str]]) -> AsyncIterator[str]:
        """То же, что `reply`, но фрагментами текста по мере генерации."""
        async for piece in self._llm.stream(
            self._messages(history),
            model=self._settings.chat_model,
            max_tokens=self._settings.chat_max_tokens,
        ):
            yield piece
