from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.background import run_sync, spawn
from sharebook.database import get_db
from sharebook.errors import NotFoundError, ValidationError
from sharebook.export_pdf import export_project_pdf
from sharebook.models import User
from sharebook.routes_shared import get_storage
from sharebook.schemas import (
    AuthorPage,
    AuthorProfileRead,
    ProjectCreate,
    ProjectPage,
    ProjectRead,
    ProjectUpdate,
)
from sharebook.services import chapters as chapter_svc
from sharebook.services import projects as project_svc
from sharebook.storage import Buckets, ObjectStorage
from sharebook.users import current_active_user, current_optional_user
from sharebook.utils import author_name, export_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])


def _viewer_id(user: Optional[User]) -> Optional[int]:
    return user.id if user else None


@router.get("/projects", response_model=list[ProjectRead])
async def my_projects(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return await project_svc.list_projects(db, user.id)


@router.post("/projects", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.create_project(
        db,
        owner_id=user.id,
        title=payload.title,
        description=payload.description,
        visibility=payload.visibility,
        cover_image=payload.cover_image,
    )
    await db.commit()
    return project


@router.get("/projects/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: str,
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await project_svc.get_project(db, project_id, _viewer_id(user))


@router.patch("/projects/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    payload: ProjectUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    await project_svc.update_project(db, project, payload.model_dump(exclude_unset=True))
    await db.commit()
    return project


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    cover = project.cover_image
    await project_svc.delete_project(db, project)
    await db.commit()
    if cover and Buckets.COVERS in cover:
        spawn(run_sync(storage.delete, cover, Buckets.COVERS), name=f"cover-cleanup-{project_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- cover image ----------

@router.post("/projects/{project_id}/cover", response_model=ProjectRead)
async def upload_cover(
    project_id: str,
    file: UploadFile = File(...),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    data = await file.read()
    storage.validate_upload(file.filename or "", len(data), file.content_type, accept="image/*")

    url = await run_sync(storage.upload, Buckets.COVERS, user.id, file.filename, data, "covers")
    previous = project.cover_image
    project.cover_image = url
    await db.commit()

    if previous and Buckets.COVERS in previous:
        spawn(run_sync(storage.delete, previous, Buckets.COVERS), name=f"cover-cleanup-{project_id}")
    return project


@router.delete("/projects/{project_id}/cover", response_model=ProjectRead)
async def delete_cover(
    project_id: str,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    if project.cover_image:
        if Buckets.COVERS in project.cover_image:
            await run_sync(storage.delete, project.cover_image, Buckets.COVERS)
        project.cover_image = None
        await db.commit()
    return project


# ---------- PDF export ----------

async def _load_cover(storage: ObjectStorage, url: str) -> Optional[bytes]:
    # only covers uploaded to this store are embedded
    if not storage.owns_url(url, Buckets.COVERS):
        logger.warning("Cover image %s is not in the covers bucket; exporting without it", url)
        return None
    try:
        return await run_sync(storage.read, url, Buckets.COVERS)
    except (OSError, ValidationError):
        logger.warning("Cover image %s unavailable; exporting without it", url)
        return None


@router.get("/projects/{project_id}/export.pdf")
async def export_pdf(
    project_id: str,
    store: bool = Query(False, description="Also keep a copy in the exports bucket"),
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    project = await project_svc.get_project(db, project_id, _viewer_id(user))
    chapters = await chapter_svc.list_chapters(db, project.id)
    cover = await _load_cover(storage, project.cover_image) if project.cover_image else None

    pdf_bytes = await run_sync(export_project_pdf, project=project, chapters=chapters, cover_image=cover)
    filename = export_filename(project.title)

    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if store and user is not None:
        headers["X-Export-Url"] = await run_sync(
            storage.upload, Buckets.EXPORTS, user.id, filename, pdf_bytes, project.id
        )
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)


# ---------- explore & authors ----------

@router.get("/explore", response_model=ProjectPage)
async def explore(
    search: Optional[str] = Query(None),
    limit: int = Query(12, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
):
    items, count = await project_svc.list_public_projects(db, search=search, limit=limit, page=page)
    return ProjectPage(
        items=[ProjectRead.model_validate(p) for p in items], count=count, page=page, limit=limit
    )


@router.get("/users/{user_id}/profile", response_model=AuthorPage)
async def author_profile(
    user_id: int,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    author = await db.get(User, user_id)
    if not author:
        raise NotFoundError(f"User {user_id} not found")
    items, count = await project_svc.list_user_public_projects(db, user_id, limit=limit)
    return AuthorPage(
        author=AuthorProfileRead(
            id=author.id,
            full_name=author_name(author),
            avatar_url=author.avatar_url,
            created_at=author.created_at,
        ),
        projects=[ProjectRead.model_validate(p) for p in items],
        count=count,
    )
