from pathlib import Path as FSPath

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .encryption import KeyCipher
from .services.credentials import CredentialStore
from .storage import ObjectStorage

BASE_DIR = FSPath(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_cipher(request: Request) -> KeyCipher:
    return request.app.state.cipher


def get_credential_store(
    db: AsyncSession = Depends(get_db),
    cipher: KeyCipher = Depends(get_cipher),
) -> CredentialStore:
    return CredentialStore(db, cipher)


__all__ = [
    "BASE_DIR",
    "templates",
    "get_storage",
    "get_cipher",
    "get_credential_store",
]
