from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from sharebook.errors import UpstreamError
from sharebook.llm_client import (
    MODE_DESCRIPTIONS,
    QUICK_PROMPTS,
    AssistantMode,
    LLMClient,
    compose_prompt,
    generate_chapter_content,
    generate_chapter_ideas,
    generate_ebook_outline,
    improve_text,
)
from sharebook.models import User
from sharebook.routes_shared import get_credential_store
from sharebook.schemas import (
    AssistantModeRead,
    AssistantRequest,
    AssistantResponse,
    ChapterContentRequest,
    ChapterIdeasRequest,
    ImproveTextRequest,
    OutlineRequest,
)
from sharebook.services.assistant import client_for_user
from sharebook.services.credentials import CredentialStore
from sharebook.users import current_active_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["assistant"])


async def _client(request: Request, store: CredentialStore, user: User, provider: str) -> LLMClient:
    return await client_for_user(
        store,
        user.id,
        request.app.state.settings,
        provider=provider,
        transport=getattr(request.app.state, "llm_transport", None),
    )


@router.get("/modes", response_model=list[AssistantModeRead])
async def list_modes():
    return [
        AssistantModeRead(mode=mode, description=MODE_DESCRIPTIONS[mode], quick_prompts=QUICK_PROMPTS[mode])
        for mode in AssistantMode
    ]


@router.post("/complete", response_model=AssistantResponse)
async def complete(
    payload: AssistantRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    client = await _client(request, store, user, payload.provider)
    text = await client.complete(compose_prompt(payload.prompt, payload.mode, payload.context))
    return AssistantResponse(text=text)


@router.post("/stream")
async def stream(
    payload: AssistantRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    # resolve the key before the response starts so a missing key is still a 400
    client = await _client(request, store, user, payload.provider)
    prompt = compose_prompt(payload.prompt, payload.mode, payload.context)

    async def _chunks():
        try:
            async for chunk in client.stream(prompt):
                yield chunk
        except UpstreamError as e:
            # headers are already sent; end the body instead
            logger.error("Assistant stream for user %s ended early: %s", user.id, e.message)

    return StreamingResponse(_chunks(), media_type="text/plain; charset=utf-8")


# ---------- writing helpers ----------

@router.post("/chapter-ideas")
async def chapter_ideas(
    payload: ChapterIdeasRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    client = await _client(request, store, user, payload.provider)
    return await generate_chapter_ideas(client, payload.title, payload.description, payload.chapter_count)


@router.post("/improve", response_model=AssistantResponse)
async def improve(
    payload: ImproveTextRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    client = await _client(request, store, user, payload.provider)
    return AssistantResponse(text=await improve_text(client, payload.text, payload.instruction))


@router.post("/outline")
async def outline(
    payload: OutlineRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    client = await _client(request, store, user, payload.provider)
    return await generate_ebook_outline(client, payload.description, payload.chapter_count)


@router.post("/chapter-content", response_model=AssistantResponse)
async def chapter_content(
    payload: ChapterContentRequest,
    request: Request,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    client = await _client(request, store, user, payload.provider)
    text = await generate_chapter_content(client, payload.chapter_title, payload.chapter_description, payload.prompt)
    return AssistantResponse(text=text)
