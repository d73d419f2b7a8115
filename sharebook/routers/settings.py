from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.database import get_db
from sharebook.models import User
from sharebook.routes_shared import get_credential_store
from sharebook.schemas import (
    ProviderSettingsRead,
    ProviderSettingsSave,
    UserSettingsRead,
    UserSettingsUpdate,
)
from sharebook.services import user_settings as settings_svc
from sharebook.services.credentials import (
    DEFAULT_MODEL,
    NEW_PROVIDER_MODELS,
    CredentialStore,
    mask_key,
)
from sharebook.users import current_active_user

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _provider_read(row) -> ProviderSettingsRead:
    return ProviderSettingsRead(
        provider=row.provider,
        api_key=mask_key(row.api_key),
        model=row.model or DEFAULT_MODEL,
        has_key=bool(row.api_key),
        updated_at=row.updated_at,
    )


# ---------- AI providers ----------

@router.get("/providers", response_model=list[ProviderSettingsRead])
async def list_providers(
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    saved = {row.provider: _provider_read(row) for row in await store.list(user.id)}
    # offer the known providers even before a key is saved
    for provider, model in NEW_PROVIDER_MODELS.items():
        saved.setdefault(provider, ProviderSettingsRead(provider=provider, model=model or None))
    return sorted(saved.values(), key=lambda p: p.provider)


@router.put("/providers/{provider}", response_model=ProviderSettingsRead)
async def save_provider(
    provider: str,
    payload: ProviderSettingsSave,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    row = await store.save(user.id, provider, payload.api_key, payload.model)
    await store.db.commit()
    return _provider_read(row)


@router.delete("/providers/{provider}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_provider(
    provider: str,
    user: User = Depends(current_active_user),
    store: CredentialStore = Depends(get_credential_store),
):
    await store.delete(user.id, provider)
    await store.db.commit()


# ---------- reader preferences ----------

@router.get("/user", response_model=UserSettingsRead)
async def get_user_settings(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    row = await settings_svc.get_user_settings(db, user.id)
    if row is None:
        row = await settings_svc.create_user_settings(db, user.id)
        await db.commit()
    return row


@router.patch("/user", response_model=UserSettingsRead)
async def update_user_settings(
    payload: UserSettingsUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    row = await settings_svc.update_user_settings(db, user.id, **updates)
    if row is None:
        row = await settings_svc.create_user_settings(db, user.id, **updates)
    await db.commit()
    return row
