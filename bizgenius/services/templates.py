"""Помощники для загрузки шаблонов и сборки текстов промптов."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence

from bizgenius.schemas import SECTION_CATALOG, BusinessProfile, GeneratedDocument


# Prompts directory
_BG_ROOT = Path(__file__).resolve().parents[1]
PROMPT_DIR = _BG_ROOT / "prompts"

_log = logging.getLogger(__name__)

PLAN_SYSTEM_TEMPLATE = (PROMPT_DIR / "plan.system.md").read_text(encoding="utf-8").strip()
PLAN_USER_TEMPLATE = (PROMPT_DIR / "plan_user.tpl.md").read_text(encoding="utf-8")
MODIFY_USER_TEMPLATE = (PROMPT_DIR / "modify_user.tpl.md").read_text(encoding="utf-8")
ASSISTANT_SYSTEM = (PROMPT_DIR / "assistant.system.md").read_text(encoding="utf-8").strip()

_UNSPECIFIED = "Not specified"


def render_section_list(catalog: Sequence[str] = SECTION_CATALOG) -> str:
    """Нумерованный список разделов: `1. Executive Summary` и т.д."""
    return "\n".join(f"{i}. {title}" for i, title in enumerate(catalog, start=1))


PLAN_SYSTEM = PLAN_SYSTEM_TEMPLATE.format(SECTIONS=render_section_list())


def build_plan_prompt(profile: BusinessProfile) -> str:
    """Собрать пользовательское сообщение для генерации плана по профилю бизнеса."""
    user = PLAN_USER_TEMPLATE.format(
        BUSINESS_NAME=profile.business_name,
        INDUSTRY=profile.industry,
        BUSINESS_TYPE=profile.business_type,
        LOCATION=profile.location,
        TARGET_AUDIENCE=profile.target_audience,
        UNIQUE_VALUE=profile.unique_value,
        REVENUE_MODEL=profile.revenue_model or _UNSPECIFIED,
        GOALS=profile.goals or _UNSPECIFIED,
        SECTIONS=render_section_list(),
    ).strip()
    _log.debug(
        "tmpl: plan user built (business=%r, out_len=%s)",
        profile.business_name,
        len(user),
    )
    return user


def build_plan_messages(profile: BusinessProfile) -> List[Dict[str, str]]:
    """Вернуть сообщения [system, user] для генерации плана."""
    return [
        {"role": "system", "content": PLAN_SYSTEM},
        {"role": "user", "content": build_plan_prompt(profile)},
    ]


def format_plan_for_modification(document: GeneratedDocument) -> str:
    """Текст текущего плана, который вставляется в промпт на доработку."""
    parts = [f"{document.title}\nIndustry: {document.industry}\n"]
    for section in document.sections:
        parts.append(f"{section.title}\n{section.content}\n")
    return "\n".join(parts)


def build_modification_prompt(document: GeneratedDocument, request: str) -> str:
    """Собрать пользовательское сообщение для доработки существующего плана."""
    plan_text = format_plan_for_modification(document)
    user = MODIFY_USER_TEMPLATE.format(
        REQUEST=request.strip(),
        PLAN=plan_text,
        SECTIONS=render_section_list(),
    ).strip()
    _log.debug(
        "tmpl: modify user built (plan_len=%s, request_len=%s, out_len=%s)",
        len(plan_text),
        len(request),
        len(user),
    )
    return user


def build_modification_messages(document: GeneratedDocument, request: str) -> List[Dict[str, str]]:
    """Вернуть сообщения [system, user] для доработки плана."""
    return [
        {"role": "system", "content": PLAN_SYSTEM},
        {"role": "user", "content": build_modification_prompt(document, request)},
    ]


def build_assistant_messages(history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """Добавить system‑промпт ассистента перед перепиской пользователя."""
    return [{"role": "system", "content": ASSISTANT_SYSTEM}, *history]
