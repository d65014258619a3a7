"""Service for generating and modifying business plans with the LLM."""
from __future__ import annotations

import logging
import time

from bizgenius.schemas import BusinessProfile, GeneratedDocument, PlanResult
from bizgenius.services.llm_client import LLMClient
from bizgenius.services.parser import parse_sections
from bizgenius.services.templates import build_modification_messages, build_plan_messages

EMPTY_PLAN_TEXT = "Failed to generate business plan."
MODIFIED_SUFFIX = " (Modified)"


class BusinessPlanService:
    """Сервис генерации и доработки бизнес‑планов.

    - Генерация: промпт по профилю → вызов модели → разбор на разделы.
    - Доработка: текущий план + запрос пользователя → новый документ
      (исходный документ не изменяется).
    """

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm
        self._log = logging.getLogger(__name__)

    async def generate_detailed(self, profile: BusinessProfile) -> PlanResult:
        """Сгенерировать план и вернуть его вместе с метаданными вызова модели."""
        messages = build_plan_messages(profile)
        self._log.info(
            "generate: building plan (business=%r, industry=%r, prompt_len=%s)",
            profile.business_name,
            profile.industry,
            len(messages[-1]["content"]),
        )
        start = time.perf_counter()
        completion = await self._llm.complete(messages)
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        sections = parse_sections(completion.content.strip() or EMPTY_PLAN_TEXT)
        document = GeneratedDocument(
            title=f"{profile.business_name} Business Plan",
            industry=profile.industry,
            status="complete",
            sections=sections,
        )
        self._log.info(
            "generate: plan ready (id=%s, sections=%s, duration_ms=%s)",
            document.id,
            len(sections),
            elapsed_ms,
        )
        return PlanResult(
            document=document,
            model=completion.model,
            usage=completion.usage,
            generation_time_ms=elapsed_ms,
        )

    async def generate(self, profile: BusinessProfile) -> GeneratedDocument:
        return (await self.generate_detailed(profile)).document

    async def modify_detailed(self, document: GeneratedDocument, request: str) -> PlanResult:
        """Доработать план по запросу пользователя; вернуть новый документ."""
        if not request or not request.strip():
            raise ValueError("Modification request must not be empty")

        messages = build_modification_messages(document, request)
        self._log.info(
            "modify: updating plan (source_id=%s, sections=%s, request_len=%s)",
            document.id,
            len(document.sections),
            len(request),
        )
        start = time.perf_counter()
        completion = await self._llm.complete(messages)
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        sections = parse_sections(completion.content.strip() or EMPTY_PLAN_TEXT)
        modified = GeneratedDocument(
            title=f"{document.title}{MODIFIED_SUFFIX}",
            industry=document.industry,
            status="complete",
            sections=sections,
        )
        self._log.info(
            "modify: plan ready (source_id=%s, new_id=%s, sections=%s, duration_ms=%s)",
            document.id,
            modified.id,
            len(sections),
            elapsed_ms,
        )
        return PlanResult(
            document=modified,
            model=completion.model,
            usage=completion.usage,
            generation_time_ms=elapsed_ms,
        )

    async def modify(self, document: GeneratedDocument, request: str) -> GeneratedDocument:
        return (await self.modify_detailed(document, request)).document
