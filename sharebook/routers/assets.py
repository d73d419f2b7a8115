from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.background import run_sync
from sharebook.database import get_db
from sharebook.errors import AccessDeniedError
from sharebook.models import User, utcnow
from sharebook.routes_shared import get_storage
from sharebook.schemas import AssetRead
from sharebook.services import projects as project_svc
from sharebook.storage import Buckets, ObjectStorage
from sharebook.users import current_active_user

router = APIRouter(prefix="/api/projects/{project_id}/assets", tags=["assets"])


def _to_read(f) -> AssetRead:
    return AssetRead(name=f.name, url=f.url, size=f.size, created_at=f.created_at)


@router.get("", response_model=list[AssetRead])
async def list_assets(
    project_id: str,
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    files = await run_sync(storage.list, Buckets.ASSETS, project.id, limit)
    return [_to_read(f) for f in files]


@router.post("", response_model=AssetRead, status_code=status.HTTP_201_CREATED)
async def upload_asset(
    project_id: str,
    file: UploadFile = File(...),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    data = await file.read()
    storage.validate_upload(file.filename or "", len(data), file.content_type)

    url = await run_sync(storage.upload, Buckets.ASSETS, user.id, file.filename, data, project.id)
    rel = storage.path_from_url(url, Buckets.ASSETS)
    return AssetRead(
        name=rel.rsplit("/", 1)[-1],
        url=url,
        size=len(data),
        created_at=utcnow().isoformat(),
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    project_id: str,
    url: str = Query(...),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    rel = storage.path_from_url(url, Buckets.ASSETS)
    if not storage.in_folder(Buckets.ASSETS, rel, project.id):
        raise AccessDeniedError("Asset does not belong to this project")
    await run_sync(storage.delete, url, Buckets.ASSETS)
