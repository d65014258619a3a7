"""SQLAlchemy: фабрика `engine`/`SessionLocal` и базовый класс моделей.

Строка подключения берётся из `BG_DATABASE_URL`.
"""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from bizgenius.core.settings import get_settings


class Base(DeclarativeBase):
    """Базовый declarative‑класс для ORM‑моделей SQLAlchemy."""
    pass


def make_engine(database_url: str) -> Engine:
    """Создать engine; для SQLite разрешаем доступ из потоков пула FastAPI."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=False, future=True, connect_args=connect_args)


engine = make_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind: Engine | None = None) -> None:
    """Создать таблицы, если их ещё нет."""
    # Import registers the mapped classes on Base.metadata
    from bizgenius.models import orm  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
