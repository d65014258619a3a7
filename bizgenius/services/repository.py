"""DB access layer for stored business plans and assistant chat history."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from bizgenius.core.db import SessionLocal
from bizgenius.models.orm import BusinessPlan, ChatHistory
from bizgenius.schemas import (
    BusinessProfile,
    ChatHistoryCreate,
    ChatHistoryRecord,
    PlanRecord,
    PlanResult,
    Section,
    new_document_id,
)


def _to_record(row: BusinessPlan) -> PlanRecord:
    """Преобразовать ORM‑строку в DTO (JSON‑колонка `generated_plan` → `sections`)."""
    return PlanRecord(
        id=row.id,
        title=row.title,
        industry=row.industry,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        sections=[Section(**s) for s in (row.generated_plan or [])],
        sections_count=row.sections_count,
        business_name=row.business_name,
        business_type=row.business_type,
        location=row.location,
        target_audience=row.target_audience,
        value_proposition=row.value_proposition,
        revenue_model=row.revenue_model,
        goals=row.goals,
        ai_model_used=row.ai_model_used,
        generation_time_ms=row.generation_time_ms,
        is_favorite=row.is_favorite,
        export_count=row.export_count,
    )


def _dump_sections(sections: Sequence[Section]) -> list:
    return [s.model_dump() for s in sections]


class _SessionRepo:
    """Общая часть репозиториев: фабрика сессий и транзакционный контекст."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or SessionLocal
        self._log = logging.getLogger(__name__)

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Контекст менеджер сессии: commit в конце блока, rollback при исключении."""
        s = self._session_factory()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()


class PlanRepo(_SessionRepo):
    """Репозиторий бизнес‑планов.

    Методы возвращают `PlanRecord` (или `None`/`False`, если план не найден),
    поэтому вызывающему коду не нужно держать открытую сессию.
    """

    def save(self, result: PlanResult, profile: BusinessProfile) -> PlanRecord:
        """Сохранить сгенерированный (или доработанный) план вместе с профилем бизнеса."""
        doc = result.document
        with self._session_scope() as s:
            row = BusinessPlan(
                id=doc.id,
                business_name=profile.business_name,
                industry=doc.industry,
                business_type=profile.business_type,
                location=profile.location,
                target_audience=profile.target_audience,
                value_proposition=profile.unique_value,
                revenue_model=profile.revenue_model,
                goals=profile.goals,
                generated_plan=_dump_sections(doc.sections),
                title=doc.title,
                status=doc.status,
                sections_count=len(doc.sections),
                ai_model_used=result.model,
                generation_time_ms=result.generation_time_ms,
                created_at=doc.created_at,
                updated_at=doc.created_at,
                last_modified_at=doc.created_at,
            )
            s.add(row)
            s.flush()
            self._log.info("repo: saved plan id=%s sections=%s", row.id, row.sections_count)
            return _to_record(row)

    def list(self, *, favorites_only: bool = False) -> List[PlanRecord]:
        """Все планы, новые первыми."""
        with self._session_scope() as s:
            stmt = select(BusinessPlan).order_by(BusinessPlan.created_at.desc())
            if favorites_only:
                stmt = stmt.where(BusinessPlan.is_favorite.is_(True))
            rows = s.scalars(stmt).all()
            self._log.debug("repo: list plans=%s (favorites_only=%s)", len(rows), favorites_only)
            return [_to_record(r) for r in rows]

    def get(self, plan_id: str) -> Optional[PlanRecord]:
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            return _to_record(row) if row else None

    def profile_for(self, plan_id: str) -> Optional[BusinessProfile]:
        """Восстановить профиль бизнеса, из которого был сгенерирован план."""
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            if not row:
                return None
            return BusinessProfile(
                business_name=row.business_name,
                industry=row.industry,
                business_type=row.business_type,
                location=row.location,
                target_audience=row.target_audience,
                unique_value=row.value_proposition,
                revenue_model=row.revenue_model,
                goals=row.goals,
            )

    def update_sections(
        self, plan_id: str, sections: Sequence[Section], *, title: Optional[str] = None
    ) -> Optional[PlanRecord]:
        """Ручная правка разделов (и, опционально, заголовка) плана."""
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            if not row:
                self._log.info("repo: update_sections: plan not found id=%s", plan_id)
                return None
            row.generated_plan = _dump_sections(sections)
            row.sections_count = len(sections)
            if title and title.strip():
                row.title = title.strip()
            row.last_modified_at = datetime.now(timezone.utc)
            s.flush()
            self._log.info("repo: updated plan id=%s sections=%s", plan_id, row.sections_count)
            return _to_record(row)

    def toggle_favorite(self, plan_id: str) -> Optional[PlanRecord]:
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            if not row:
                return None
            row.is_favorite = not row.is_favorite
            s.flush()
            self._log.info("repo: plan id=%s favorite=%s", plan_id, row.is_favorite)
            return _to_record(row)

    def increment_export_count(self, plan_id: str) -> bool:
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            if not row:
                return False
            row.export_count = (row.export_count or 0) + 1
            return True

    def delete(self, plan_id: str) -> bool:
        with self._session_scope() as s:
            row = s.get(BusinessPlan, plan_id)
            if not row:
                return False
            s.delete(row)
            self._log.info("repo: deleted plan id=%s", plan_id)
            return True


class ChatRepo(_SessionRepo):
    """Репозиторий истории чата с ассистентом (вопрос, ответ, закладки)."""

    def save(self, entry: ChatHistoryCreate) -> ChatHistoryRecord:
        with self._session_scope() as s:
            row = ChatHistory(id=new_document_id(), **entry.model_dump())
            s.add(row)
            s.flush()
            self._log.info(
                "repo: saved chat id=%s conversation=%s type=%s", row.id, row.conversation_id, row.message_type
            )
            return ChatHistoryRecord.model_validate(row)

    def list(
        self, *, limit: int = 50, offset: int = 0, bookmarked_only: bool = False
    ) -> List[ChatHistoryRecord]:
        """История, новые записи первыми; постраничная выборка через `limit`/`offset`."""
        with self._session_scope() as s:
            stmt = select(ChatHistory).order_by(ChatHistory.created_at.desc())
            if bookmarked_only:
                stmt = stmt.where(ChatHistory.is_bookmarked.is_(True))
            rows = s.scalars(stmt.offset(offset).limit(limit)).all()
            return [ChatHistoryRecord.model_validate(r) for r in rows]

    def toggle_bookmark(self, chat_id: str) -> Optional[ChatHistoryRecord]:
        with self._session_scope() as s:
            row = s.get(ChatHistory, chat_id)
            if not row:
                return None
            row.is_bookmarked = not row.is_bookmarked
            s.flush()
            self._log.info("repo: chat id=%s bookmarked=%s", chat_id, row.is_bookmarked)
            return ChatHistoryRecord.model_validate(row)

    def delete(self, chat_id: str) -> bool:
        with self._session_scope() as s:
            row = s.get(ChatHistory, chat_id)
            if not row:
                return False
            s.delete(row)
            return True

    def clear(self) -> int:
        """Удалить всю историю; вернуть число удалённых записей."""
        with self._session_scope() as s:
            deleted = s.execute(delete(ChatHistory)).rowcount
            self._log.info("repo: cleared chat history (deleted=%s)", deleted)
            return deleted
