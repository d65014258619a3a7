"""HTTP‑роуты BizGenius.

Использование:
- POST /v1/plans/prompt — собрать промпт по профилю бизнеса (без вызова модели)
- POST /v1/plans/parse — разобрать сырой текст ответа модели на разделы
- POST /v1/plans/generate — сгенерировать и сохранить план
- GET/DELETE /v1/plans[/{id}], PATCH /v1/plans/{id}/sections, POST /v1/plans/{id}/favorite
- POST /v1/plans/{id}/modify — доработать план (сохраняется как новый)
- GET /v1/plans/{id}/export?format=txt|docx — выгрузка файла
- POST /v1/assistant/chat[/stream] — ответ ассистента (обычный или потоком), с сохранением в историю
- GET/DELETE /v1/assistant/history[/{id}], POST /v1/assistant/history/{id}/bookmark
- GET /v1/models
"""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import List, Literal
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from bizgenius.core.settings import Settings, get_settings
from bizgenius.schemas import (
    BusinessProfile,
    ChatHistoryCreate,
    ChatHistoryRecord,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ModelsResponse,
    ModifyRequest,
    ParseRequest,
    ParseResponse,
    PlanRecord,
    PromptResponse,
    SectionsUpdateRequest,
    new_document_id,
)
from bizgenius.services.assistant import EMPTY_REPLY_TEXT, BusinessAssistant
from bizgenius.services.export import (
    DOCX_MEDIA_TYPE,
    TXT_MEDIA_TYPE,
    export_docx,
    export_filename,
    export_text,
)
from bizgenius.services.generator import BusinessPlanService
from bizgenius.services.llm_client import LLMClient, LLMError
from bizgenius.services.parser import parse_sections
from bizgenius.services.repository import ChatRepo, PlanRepo
from bizgenius.services.templates import build_plan_messages


router = APIRouter(prefix="/v1", tags=["BizGenius"])
_log = logging.getLogger(__name__)


@lru_cache
def get_llm() -> LLMClient:
    """Один клиент LLM на процесс (семафор конкурентности общий для всех запросов)."""
    return LLMClient(get_settings())


def get_repo() -> PlanRepo:
    """Небольшой DI‑хелпер: вернуть новый экземпляр репозитория."""
    return PlanRepo()


def get_chat_repo() -> ChatRepo:
    return ChatRepo()


def _llm_http_error(exc: LLMError) -> HTTPException:
    _log.warning(
        "LLMError code=%s status=%s attempts=%s provider_status=%s msg=%s",
        exc.code,
        exc.status_code,
        exc.attempts,
        exc.provider_status,
        str(exc),
    )
    return HTTPException(exc.status_code, detail=exc.to_detail())


def _not_found(plan_id: str) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Business plan {plan_id} not found")


# ---- prompt / parse (no model call) ----


@router.post("/plans/prompt", response_model=PromptResponse, summary="Build the generation prompt")
def build_prompt(profile: BusinessProfile = Body(...)):
    """Вернуть пару сообщений system/user, которые уйдут модели."""
    _log.info("HTTP plans/prompt called (business=%r)", profile.business_name)
    return PromptResponse(messages=[ChatMessage(**m) for m in build_plan_messages(profile)])


@router.post("/plans/parse", response_model=ParseResponse, summary="Split raw model output into sections")
def parse_plan(req: ParseRequest = Body(...)):
    _log.info("HTTP plans/parse called (text_len=%s)", len(req.text))
    return ParseResponse(sections=parse_sections(req.text))


# ---- plans ----


@router.post(
    "/plans/generate",
    response_model=PlanRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Generate and store a business plan",
)
async def generate_plan(
    profile: BusinessProfile = Body(...),
    llm: LLMClient = Depends(get_llm),
    repo: PlanRepo = Depends(get_repo),
):
    """Сгенерировать план по профилю бизнеса и сохранить его."""
    _log.info("HTTP plans/generate called (business=%r)", profile.business_name)
    try:
        result = await BusinessPlanService(llm).generate_detailed(profile)
    except LLMError as exc:
        raise _llm_http_error(exc)
    return await run_in_threadpool(repo.save, result, profile)


@router.get("/plans", response_model=List[PlanRecord], summary="List stored plans")
def list_plans(favorites: bool = Query(False), repo: PlanRepo = Depends(get_repo)):
    return repo.list(favorites_only=favorites)


@router.get("/plans/{plan_id}", response_model=PlanRecord, summary="Get a stored plan")
def get_plan(plan_id: str, repo: PlanRepo = Depends(get_repo)):
    record = repo.get(plan_id)
    if record is None:
        raise _not_found(plan_id)
    return record


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a plan")
def delete_plan(plan_id: str, repo: PlanRepo = Depends(get_repo)):
    if not repo.delete(plan_id):
        raise _not_found(plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/plans/{plan_id}/sections", response_model=PlanRecord, summary="Edit plan sections")
def update_sections(plan_id: str, req: SectionsUpdateRequest = Body(...), repo: PlanRepo = Depends(get_repo)):
    """Сохранить ручную правку разделов плана."""
    _log.info("HTTP plans/%s/sections called (sections=%s)", plan_id, len(req.sections))
    record = repo.update_sections(plan_id, req.sections, title=req.title)
    if record is None:
        raise _not_found(plan_id)
    return record


@router.post("/plans/{plan_id}/favorite", response_model=PlanRecord, summary="Toggle favorite flag")
def toggle_favorite(plan_id: str, repo: PlanRepo = Depends(get_repo)):
    record = repo.toggle_favorite(plan_id)
    if record is None:
        raise _not_found(plan_id)
    return record


@router.post(
    "/plans/{plan_id}/modify",
    response_model=PlanRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Modify a plan with the model (stored as a new plan)",
)
async def modify_plan(
    plan_id: str,
    req: ModifyRequest = Body(...),
    llm: LLMClient = Depends(get_llm),
    repo: PlanRepo = Depends(get_repo),
):
    """Доработать план по запросу; исходный план остаётся без изменений."""
    record = await run_in_threadpool(repo.get, plan_id)
    if record is None:
        raise _not_found(plan_id)
    if not req.request.strip():
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Modification request must not be empty")
    profile = await run_in_threadpool(repo.profile_for, plan_id)
    if profile is None:
        # deleted concurrently
        raise _not_found(plan_id)

    _log.info("HTTP plans/%s/modify called (request_len=%s)", plan_id, len(req.request))
    try:
        result = await BusinessPlanService(llm).modify_detailed(record.to_document(), req.request)
    except LLMError as exc:
        raise _llm_http_error(exc)
    return await run_in_threadpool(repo.save, result, profile)


@router.get("/plans/{plan_id}/export", summary="Export a plan as .txt or .docx")
def export_plan(
    plan_id: str,
    format: Literal["txt", "docx"] = Query("txt"),
    repo: PlanRepo = Depends(get_repo),
):
    record = repo.get(plan_id)
    if record is None:
        raise _not_found(plan_id)
    document = record.to_document()

    if format == "docx":
        body: bytes = export_docx(document)
        media_type = DOCX_MEDIA_TYPE
    else:
        body = export_text(document).encode("utf-8")
        media_type = TXT_MEDIA_TYPE
    filename = export_filename(document, format)

    repo.increment_export_count(plan_id)
    _log.info("HTTP plans/%s/export format=%s bytes=%s", plan_id, format, len(body))
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


# ---- assistant ----


def _history_entry(req: ChatRequest, conversation_id: str, answer: str, **fields) -> ChatHistoryCreate:
    return ChatHistoryCreate(question=req.last_question(), answer=answer, conversation_id=conversation_id, **fields)


@router.post("/assistant/chat", response_model=ChatResponse, summary="Ask the business assistant")
async def chat(
    req: ChatRequest = Body(...),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_settings),
    chats: ChatRepo = Depends(get_chat_repo),
):
    """Ответ ассистента; пара вопрос/ответ сохраняется в историю (если `save`)."""
    conversation_id = req.conversation_id or new_document_id()
    _log.info("HTTP assistant/chat called (messages=%s, conversation=%s)", len(req.messages), conversation_id)
    start = time.perf_counter()
    try:
        completion = await BusinessAssistant(llm, settings).reply([m.model_dump() for m in req.messages])
    except LLMError as exc:
        raise _llm_http_error(exc)
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    history_id = None
    if req.save:
        entry = _history_entry(
            req,
            conversation_id,
            completion.content,
            tokens_used=completion.usage.total_tokens,
            model_used=completion.model,
            response_time_ms=elapsed_ms,
        )
        history_id = (await run_in_threadpool(chats.save, entry)).id
    return ChatResponse(
        reply=completion.content,
        model=completion.model,
        usage=completion.usage,
        conversation_id=conversation_id,
        history_id=history_id,
    )


@router.post("/assistant/chat/stream", summary="Ask the business assistant (streamed plain text)")
async def chat_stream(
    req: ChatRequest = Body(...),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_settings),
    chats: ChatRepo = Depends(get_chat_repo),
):
    """
    Ответ ассистента потоком `text/plain`.

    Первый фрагмент запрашивается до отправки заголовков, поэтому ошибки
    провайдера при открытии потока возвращаются обычным HTTP‑статусом.
    Обрыв посреди ответа завершает поток и сохраняется в историю с типом `error`.
    """
    conversation_id = req.conversation_id or new_document_id()
    _log.info("HTTP assistant/chat/stream called (messages=%s, conversation=%s)", len(req.messages), conversation_id)
    start = time.perf_counter()
    pieces = BusinessAssistant(llm, settings).stream_reply([m.model_dump() for m in req.messages])
    try:
        first = await anext(pieces, "")
    except LLMError as exc:
        raise _llm_http_error(exc)

    async def body():
        answer = [first or EMPTY_REPLY_TEXT]
        message_type = "interaction"
        yield answer[0]
        try:
            async for piece in pieces:
                answer.append(piece)
                yield piece
        except LLMError as exc:
            _log.warning("assistant stream aborted (code=%s, conversation=%s): %s", exc.code, conversation_id, exc)
            message_type = "error"
        if req.save:
            entry = _history_entry(
                req,
                conversation_id,
                "".join(answer),
                message_type=message_type,
                model_used=settings.chat_model,
                response_time_ms=int((time.perf_counter() - start) * 1000),
            )
            await run_in_threadpool(chats.save, entry)

    return StreamingResponse(
        body(),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "X-Conversation-ID": conversation_id},
    )


@router.get("/assistant/history", response_model=List[ChatHistoryRecord], summary="Chat history, newest first")
def list_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    bookmarked: bool = Query(False),
    chats: ChatRepo = Depends(get_chat_repo),
):
    return chats.list(limit=limit, offset=offset, bookmarked_only=bookmarked)


@router.post(
    "/assistant/history/{chat_id}/bookmark", response_model=ChatHistoryRecord, summary="Toggle bookmark flag"
)
def toggle_bookmark(chat_id: str, chats: ChatRepo = Depends(get_chat_repo)):
    record = chats.toggle_bookmark(chat_id)
    if record is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Chat entry {chat_id} not found")
    return record


@router.delete(
    "/assistant/history/{chat_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a chat entry"
)
def delete_history_entry(chat_id: str, chats: ChatRepo = Depends(get_chat_repo)):
    if not chats.delete(chat_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Chat entry {chat_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/assistant/history", summary="Clear the whole chat history")
def clear_history(chats: ChatRepo = Depends(get_chat_repo)):
    return {"deleted": chats.clear()}


@router.get("/models", response_model=ModelsResponse, summary="Models available at the provider")
async def list_models(llm: LLMClient = Depends(get_llm), settings: Settings = Depends(get_settings)):
    return ModelsResponse(current=settings.plan_model, models=await llm.list_models())
