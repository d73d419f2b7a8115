# services/assistant.py
from typing import Optional

import httpx

from sharebook.errors import ValidationError
from sharebook.llm_client import LLMClient
from sharebook.services.credentials import CredentialStore
from sharebook.settings.config import Settings


async def client_for_user(
    store: CredentialStore,
    user_id: int,
    settings: Settings,
    provider: str = "openai",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LLMClient:
    """Build a completion client from the user's stored key; no key -> ValidationError."""
    api_key = await store.get_decrypted(user_id, provider)
    if not api_key:
        raise ValidationError(f"No {provider} API key configured. Add one in AI settings.")
    record = await store.get(user_id, provider)
    return LLMClient(
        api_key=api_key,
        model=(record.model if record and record.model else settings.OPENAI_DEFAULT_MODEL),
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        transport=transport,
    )
