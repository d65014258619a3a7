"""
Pytest fixtures for the BizGenius test suite.

- in-memory SQLite database shared across threads (StaticPool)
- a fake LLM client with the same async interface as LLMClient
- a FastAPI TestClient with the LLM and repository dependencies overridden
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bizgenius.core.db import Base, init_db
from bizgenius.schemas import SECTION_CATALOG, BusinessProfile, GeneratedDocument, Section, Usage
from bizgenius.services.llm_client import Completion
from bizgenius.services.repository import ChatRepo, PlanRepo


class FakeLLM:
    """Stand-in for LLMClient: returns canned content or raises a preset error."""

    def __init__(self, content: str = "", *, error: Optional[Exception] = None, model: str = "fake/plan-model"):
        self.content = content
        self.error = error
        # raised after all content pieces have been streamed
        self.stream_error: Optional[Exception] = None
        self.model = model
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, *, model=None, max_tokens=None, temperature=None) -> Completion:
        self.calls.append({"messages": messages, "model": model, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return Completion(
            content=self.content,
            model=model or self.model,
            usage=Usage(prompt_tokens=10, completion_tokens=20, total_tokens=30),
        )

    async def stream(self, messages, *, model=None, max_tokens=None, temperature=None):
        self.calls.append({"messages": messages, "model": model, "max_tokens": max_tokens, "stream": True})
        if self.error is not None:
            raise self.error
        for i in range(0, len(self.content), 8):
            yield self.content[i : i + 8]
        if self.stream_error is not None:
            raise self.stream_error

    async def list_models(self) -> List[Dict[str, Any]]:
        return [{"id": self.model}]


def make_plan_text(catalog=SECTION_CATALOG) -> str:
    """Raw model output with every catalog heading numbered and followed by prose."""
    return "\n".join(
        f"{i}. {title}\nThis part covers {title.lower()} for the company.\n"
        for i, title in enumerate(catalog, start=1)
    )


@pytest.fixture
def plan_text() -> str:
    return make_plan_text()


@pytest.fixture
def profile() -> BusinessProfile:
    return BusinessProfile(
        business_name="Acme Widgets",
        industry="Manufacturing",
        business_type="Startup",
        location="Austin, TX",
        target_audience="Small hardware stores",
        unique_value="Widgets that never rust",
        revenue_model="Wholesale with annual contracts",
        goals="Reach $1M revenue in two years",
    )


@pytest.fixture
def document() -> GeneratedDocument:
    return GeneratedDocument(
        id="doc1",
        title="Acme Widgets Business Plan",
        industry="Manufacturing",
        created_at=datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
        sections=[
            Section(title="Executive Summary", content="We sell widgets."),
            Section(title="Market Analysis", content="Growing market.\n\n• Hardware stores\n• Online shops"),
            Section(title="Financial Projections", content="Break-even in year two."),
        ],
    )


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def repo(session_factory) -> PlanRepo:
    return PlanRepo(session_factory)


@pytest.fixture
def chat_repo(session_factory) -> ChatRepo:
    return ChatRepo(session_factory)


@pytest.fixture
def fake_llm(plan_text) -> FakeLLM:
    return FakeLLM(plan_text)


@pytest.fixture
def client(fake_llm, repo, chat_repo):
    from bizgenius.app.main import app
    from bizgenius.app.routers import get_chat_repo, get_llm, get_repo

    app.dependency_overrides[get_llm] = lambda: fake_llm
    app.dependency_overrides[get_repo] = lambda: repo
    app.dependency_overrides[get_chat_repo] = lambda: chat_repo
    # No context manager: the lifespan (file database init) is not needed here
    yield TestClient(app)
    app.dependency_overrides.clear()
