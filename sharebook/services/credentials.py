# services/credentials.py
"""Per-(user, provider) AI credential store.

Keys are encrypted with `KeyCipher` before they reach the session; the
plaintext only exists transiently in `get_decrypted` callers.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.encryption import KeyCipher
from sharebook.errors import ConfigurationError, ValidationError
from sharebook.models import ProviderCredential

logger = logging.getLogger(__name__)

# model reported for a stored record that has none
DEFAULT_MODEL = "gpt-3.5-turbo"
# model pre-selected when a user adds a provider
NEW_PROVIDER_MODELS = {"openai": "gpt-4o", "gemini": ""}
KEY_MASK = "•" * 26


def mask_key(value: Optional[str]) -> str:
    """What the settings UI shows in place of a saved key."""
    return KEY_MASK if value else ""


class CredentialStore:
    def __init__(self, db: AsyncSession, cipher: KeyCipher):
        self.db = db
        self.cipher = cipher

    async def _row(self, user_id: int, provider: str) -> Optional[ProviderCredential]:
        return (
            await self.db.execute(
                select(ProviderCredential).where(
                    ProviderCredential.user_id == user_id,
                    ProviderCredential.provider == provider,
                )
            )
        ).scalars().first()

    async def save(self, user_id: int, provider: str, api_key: str, model: Optional[str] = None) -> ProviderCredential:
        if not (api_key or "").strip():
            raise ValidationError("API key is required")
        if not (provider or "").strip():
            raise ValidationError("Provider is required")

        ciphertext = self.cipher.encrypt(api_key.strip())

        row = await self._row(user_id, provider)
        if row is None:
            row = ProviderCredential(user_id=user_id, provider=provider)
            self.db.add(row)
        row.api_key = ciphertext
        row.model = (model or "").strip() or None
        await self.db.flush()
        logger.info("Saved %s credentials for user %s", provider, user_id)
        return row

    async def get(self, user_id: int, provider: str) -> Optional[ProviderCredential]:
        return await self._row(user_id, provider)

    async def list(self, user_id: int) -> list[ProviderCredential]:
        rows = await self.db.execute(
            select(ProviderCredential)
            .where(ProviderCredential.user_id == user_id)
            .order_by(ProviderCredential.provider)
        )
        return list(rows.scalars().all())

    async def get_decrypted(self, user_id: int, provider: str) -> Optional[str]:
        """Plaintext key, or None when absent or unreadable. Never raises."""
        try:
            row = await self._row(user_id, provider)
        except Exception:
            logger.exception("Error fetching %s API key for user %s", provider, user_id)
            return None

        if row is None:
            logger.info("No API key found for %s (user %s)", provider, user_id)
            return None
        if not row.api_key:
            logger.info("API key is empty for %s (user %s)", provider, user_id)
            return None

        try:
            key = self.cipher.decrypt(row.api_key)
        except ConfigurationError as e:
            logger.error("Cannot decrypt %s API key: %s", provider, e.message)
            return None
        except ValueError:
            logger.error("Stored %s API key for user %s could not be decrypted", provider, user_id)
            return None
        return key or None

    async def delete(self, user_id: int, provider: str) -> None:
        await self.db.execute(
            delete(ProviderCredential).where(
                ProviderCredential.user_id == user_id,
                ProviderCredential.provider == provider,
            )
        )
        await self.db.flush()
