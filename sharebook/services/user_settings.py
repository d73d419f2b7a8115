# services/user_settings.py
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.errors import ValidationError
from sharebook.models import UserSettings

THEMES = {"light", "dark", "system"}
DEFAULTS = {"theme": "light", "font_size": 16}
FONT_SIZE_RANGE = (10, 32)


def _validated(updates: dict) -> dict:
    out = {}
    if updates.get("theme") is not None:
        theme = str(updates["theme"]).strip().lower()
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme}")
        out["theme"] = theme
    if updates.get("font_size") is not None:
        size = int(updates["font_size"])
        lo, hi = FONT_SIZE_RANGE
        if not lo <= size <= hi:
            raise ValidationError(f"font_size must be between {lo} and {hi}")
        out["font_size"] = size
    return out


async def get_user_settings(db: AsyncSession, user_id: int) -> Optional[UserSettings]:
    return await db.get(UserSettings, user_id)


async def create_user_settings(db: AsyncSession, user_id: int, **overrides) -> UserSettings:
    values = {**DEFAULTS, **_validated(overrides)}
    row = UserSettings(user_id=user_id, **values)
    db.add(row)
    await db.flush()
    return row


async def update_user_settings(db: AsyncSession, user_id: int, **updates) -> Optional[UserSettings]:
    """Returns None when the user has no settings row yet."""
    row = await get_user_settings(db, user_id)
    if row is None:
        return None
    for key, value in _validated(updates).items():
        setattr(row, key, value)
    await db.flush()
    return row


async def update_user_theme(db: AsyncSession, user_id: int, theme: str) -> UserSettings:
    row = await update_user_settings(db, user_id, theme=theme)
    if row is None:
        row = await create_user_settings(db, user_id, theme=theme)
    return row
