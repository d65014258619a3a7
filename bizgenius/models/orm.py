"""ORM‑модели SQLAlchemy: сгенерированные бизнес‑планы и история чата с ассистентом."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizgenius.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BusinessPlan(Base):
    """Строка таблицы `business_plans`: профиль бизнеса + разделы плана."""

    __tablename__ = "business_plans"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Business profile the plan was generated from
    business_name: Mapped[str] = mapped_column(String(255))
    industry: Mapped[str] = mapped_column(String(255))
    business_type: Mapped[str] = mapped_column(String(255), default="")
    location: Mapped[str] = mapped_column(String(255), default="")
    target_audience: Mapped[str] = mapped_column(Text, default="")
    value_proposition: Mapped[str] = mapped_column(Text, default="")
    revenue_model: Mapped[str] = mapped_column(Text, default="")
    goals: Mapped[str] = mapped_column(Text, default="")

    # [{"title": ..., "content": ...}, ...]
    generated_plan: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    title: Mapped[str] = mapped_column(String(512))
    status: Mapped[str] = mapped_column(String(16), default="complete")
    sections_count: Mapped[int] = mapped_column(Integer, default=0)
    ai_model_used: Mapped[str] = mapped_column(String(255), default="")
    generation_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    export_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ChatHistory(Base):
    """Строка таблицы `chat_history`: один вопрос пользователя и ответ ассистента."""

    __tablename__ = "chat_history"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    question: Mapped[str] = mapped_column(Text)
    answer: Mapped[str] = mapped_column(Text)
    conversation_id: Mapped[str] = mapped_column(String(32), index=True)
    # interaction | system | error
    message_type: Mapped[str] = mapped_column(String(16), default="interaction")
    tokens_used: Mapped[int] = mapped_column(Integer, default=0)
    model_used: Mapped[str] = mapped_column(String(255), default="")
    response_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    is_bookmarked: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
