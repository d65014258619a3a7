import asyncio

import pytest

from bizgenius.schemas import FALLBACK_SECTION_TITLE, SECTION_CATALOG
from bizgenius.services.generator import EMPTY_PLAN_TEXT, BusinessPlanService
from bizgenius.services.llm_client import LLMError
from bizgenius.services.templates import PLAN_SYSTEM


def test_generate_builds_document_from_model_output(fake_llm, profile):
    document = asyncio.run(BusinessPlanService(fake_llm).generate(profile))

    assert document.title == "Acme Widgets Business Plan"
    assert document.industry == "Manufacturing"
    assert document.status == "complete"
    assert [s.title for s in document.sections] == list(SECTION_CATALOG)

    (call,) = fake_llm.calls
    assert call["messages"][0]["content"] == PLAN_SYSTEM
    assert "Business Name: Acme Widgets" in call["messages"][1]["content"]


def test_generate_detailed_reports_model_and_usage(fake_llm, profile):
    result = asyncio.run(BusinessPlanService(fake_llm).generate_detailed(profile))
    assert result.model == "fake/plan-model"
    assert result.usage.total_tokens == 30
    assert result.generation_time_ms >= 0


def test_generate_with_empty_model_output_uses_placeholder(fake_llm_factory, profile):
    llm = fake_llm_factory("   ")
    document = asyncio.run(BusinessPlanService(llm).generate(profile))
    assert len(document.sections) == 1
    assert document.sections[0].title == FALLBACK_SECTION_TITLE
    assert document.sections[0].content == EMPTY_PLAN_TEXT


def test_generate_propagates_llm_errors(fake_llm_factory, profile):
    llm = fake_llm_factory(error=LLMError("Rate limit exceeded.", status_code=429, code="rate_limited"))
    with pytest.raises(LLMError) as exc_info:
        asyncio.run(BusinessPlanService(llm).generate(profile))
    assert exc_info.value.status_code == 429


def test_modify_returns_new_document_and_keeps_original(fake_llm_factory, document):
    llm = fake_llm_factory("1. Executive Summary\nWe sell rust-proof widgets online.\n")
    before = document.model_dump()

    modified = asyncio.run(BusinessPlanService(llm).modify(document, "Focus on online sales"))

    assert modified.id != document.id
    assert modified.title == "Acme Widgets Business Plan (Modified)"
    assert modified.industry == document.industry
    assert [s.content for s in modified.sections] == ["We sell rust-proof widgets online."]
    assert document.model_dump() == before

    user_prompt = llm.calls[0]["messages"][1]["content"]
    assert '"Focus on online sales"' in user_prompt
    assert "Break-even in year two." in user_prompt


@pytest.mark.parametrize("request_text", ["", "   \n"])
def test_modify_rejects_empty_request(fake_llm, document, request_text):
    with pytest.raises(ValueError):
        asyncio.run(BusinessPlanService(fake_llm).modify(document, request_text))
    assert fake_llm.calls == []
