"""Pydantic‑схемы BizGenius: доменные модели плана и DTO для HTTP API.
Назначение:
- профиль бизнеса (вход для генерации) и сгенерированный документ с разделами;
- фиксированный каталог заголовков разделов;
- DTO для роутов плана, экспорта и чат‑ассистента."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


# Order matters: it is the order the model is asked to follow
SECTION_CATALOG: tuple[str, ...] = (
    "Executive Summary",
    "Company Description",
    "Market Analysis",
    "Organization & Management",
    "Products or Services",
    "Marketing & Sales Strategy",
    "Financial Projections",
    "Risk Analysis",
    "Implementation Timeline",
    "Appendices",
)

FALLBACK_SECTION_TITLE = "Business Plan"

Role = Literal["system", "user", "assistant"]
PlanStatus = Literal["draft", "complete"]
ChatMessageType = Literal["interaction", "system", "error"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid4().hex


# =============================
# Domain
# =============================


class BusinessProfile(BaseModel):
    """Описание бизнеса, из которого собирается промпт на генерацию плана.

    Обязательные поля не должны быть пустыми; `revenue_model` и `goals`
    опциональны (пустая строка по умолчанию). Значения не нормализуются и
    попадают в промпт как есть.
    """

    business_name: str
    industry: str
    business_type: str
    location: str
    target_audience: str
    unique_value: str
    revenue_model: str = ""
    goals: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator(
        "business_name", "industry", "business_type", "location", "target_audience", "unique_value"
    )
    @classmethod
    def required_not_blank(cls, v: str, info):
        if not v.strip():
            raise ValueError(f"{info.field_name.replace('_', ' ')} must not be empty")
        return v

    # null → ""
    @field_validator("revenue_model", "goals", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class Section(BaseModel):
    """Один раздел плана: заголовок из каталога (или запасной) и текст."""

    title: str
    content: str

    model_config = ConfigDict(frozen=True)


class GeneratedDocument(BaseModel):
    """Результат одного прохода генерации или доработки.

    Документ не изменяется после создания: доработка порождает новый
    документ с новым `id`.
    """

    id: str = Field(default_factory=new_document_id)
    title: str
    industry: str
    created_at: datetime = Field(default_factory=_utcnow)
    status: PlanStatus = "complete"
    sections: List[Section] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ChatMessage(BaseModel):
    """Сообщение чата, совместимое с OpenAI‑форматом."""

    role: Role
    content: str


class Usage(BaseModel):
    """Статистика расхода токенов провайдером."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class PlanResult(BaseModel):
    """Документ плюс метаданные вызова модели (для сохранения в БД)."""

    document: GeneratedDocument
    model: str
    usage: Usage = Field(default_factory=Usage)
    generation_time_ms: int = 0


# =============================
# HTTP DTO
# =============================


class PromptResponse(BaseModel):
    """Пара сообщений system/user, которая будет отправлена модели."""
    messages: List[ChatMessage]


class ParseRequest(BaseModel):
    """Сырой текст ответа модели для разбора на разделы."""
    text: str


class ParseResponse(BaseModel):
    sections: List[Section]


class ModifyRequest(BaseModel):
    """Запрос на доработку плана в свободной форме."""
    request: str = Field(..., min_length=1, description="What should be changed in the plan")


class SectionsUpdateRequest(BaseModel):
    """Ручная правка разделов плана.

    Разделы подчиняются тем же правилам, что и результат разбора: заголовок
    из каталога (или запасной), непустой текст.
    """
    sections: List[Section] = Field(..., min_length=1)
    title: Optional[str] = None

    @field_validator("sections")
    @classmethod
    def sections_follow_catalog(cls, v: List[Section]):
        allowed = (*SECTION_CATALOG, FALLBACK_SECTION_TITLE)
        for s in v:
            if s.title not in allowed:
                raise ValueError(f"unknown section title: {s.title!r}")
            if not s.content.strip():
                raise ValueError(f"section {s.title!r} has empty content")
        return v


class PlanRecord(BaseModel):
    """Сохранённый план в том виде, в каком его отдаёт API."""

    id: str
    title: str
    industry: str
    status: PlanStatus
    created_at: datetime
    updated_at: datetime
    sections: List[Section]
    sections_count: int
    business_name: str
    business_type: str = ""
    location: str = ""
    target_audience: str = ""
    value_proposition: str = ""
    revenue_model: str = ""
    goals: str = ""
    ai_model_used: str = ""
    generation_time_ms: int = 0
    is_favorite: bool = False
    export_count: int = 0

    model_config = ConfigDict(from_attributes=True)

    @field_validator("sections", mode="before")
    @classmethod
    def none_sections_to_empty(cls, v):
        return [] if v is None else v

    def to_document(self) -> GeneratedDocument:
        """Собрать доменный документ из сохранённой записи."""
        return GeneratedDocument(
            id=self.id,
            title=self.title,
            industry=self.industry,
            created_at=self.created_at,
            status=self.status,
            sections=self.sections,
        )


class ChatRequest(BaseModel):
    """Переписка с ассистентом (без system‑сообщения, его добавляет сервис).

    Последнее сообщение пользователя вместе с ответом сохраняется в историю,
    если `save` не выключен.
    """
    messages: List[ChatMessage] = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(None, max_length=32)
    save: bool = True

    @field_validator("messages")
    @classmethod
    def has_user_message(cls, v: List[ChatMessage]):
        if not any(m.role == "user" for m in v):
            raise ValueError("at least one user message is required")
        return v

    def last_question(self) -> str:
        return next(m.content for m in reversed(self.messages) if m.role == "user")


class ChatResponse(BaseModel):
    reply: str
    model: str
    usage: Usage
    conversation_id: str
    history_id: Optional[str] = None


class ChatHistoryCreate(BaseModel):
    """Одна пара вопрос/ответ для сохранения в историю."""
    question: str
    answer: str
    conversation_id: str = Field(default_factory=new_document_id)
    message_type: ChatMessageType = "interaction"
    tokens_used: int = 0
    model_used: str = ""
    response_time_ms: int = 0


class ChatHistoryRecord(BaseModel):
    id: str
    question: str
    answer: str
    conversation_id: str
    message_type: ChatMessageType
    tokens_used: int
    model_used: str
    response_time_ms: int
    is_bookmarked: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ModelsResponse(BaseModel):
    current: str
    models: List[Dict[str, Any]]
