from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.database import get_db
from sharebook.models import User
from sharebook.routes_shared import templates
from sharebook.schemas import (
    ChapterCreate,
    ChapterLink,
    ChapterRead,
    ChapterUpdate,
    ChapterViewRead,
    ProjectRead,
    ReorderChaptersRequest,
)
from sharebook.services import chapters as chapter_svc
from sharebook.services import projects as project_svc
from sharebook.users import current_active_user, current_optional_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chapters"])


def _viewer_id(user: Optional[User]) -> Optional[int]:
    return user.id if user else None


def _link(chapter) -> Optional[ChapterLink]:
    return ChapterLink.model_validate(chapter) if chapter is not None else None


async def _owned_chapter(db: AsyncSession, chapter_id: str, user: User):
    chapter = await chapter_svc.get_chapter(db, chapter_id)
    await project_svc.get_owned_project(db, chapter.project_id, user.id)
    return chapter


@router.get("/api/projects/{project_id}/chapters", response_model=list[ChapterRead])
async def list_chapters(
    project_id: str,
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.get_project(db, project_id, _viewer_id(user))
    return await chapter_svc.list_chapters(db, project.id)


@router.post(
    "/api/projects/{project_id}/chapters",
    response_model=ChapterRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_chapter(
    project_id: str,
    payload: ChapterCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    chapter = await chapter_svc.create_chapter(
        db, project.id, payload.title, content=payload.content, video_url=payload.video_url
    )
    await db.commit()
    return chapter


@router.post("/api/projects/{project_id}/chapters/reorder", response_model=list[ChapterRead])
async def reorder_chapters(
    project_id: str,
    payload: ReorderChaptersRequest,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.get_owned_project(db, project_id, user.id)
    chapters = await chapter_svc.reorder_chapters(db, project.id, payload.order)
    await db.commit()
    logger.info("User %s reordered %d chapters in project %s", user.id, len(payload.order), project.id)
    return chapters


@router.get("/api/projects/{project_id}/chapters/{chapter_id}/view", response_model=ChapterViewRead)
async def chapter_view(
    project_id: str,
    chapter_id: str,
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
):
    view = await chapter_svc.load_chapter_view(db, project_id, chapter_id, _viewer_id(user))
    nav = view.navigation
    return ChapterViewRead(
        project=ProjectRead.model_validate(view.project),
        chapter=ChapterRead.model_validate(view.chapter),
        toc=[ChapterLink.model_validate(c) for c in nav.toc],
        index=nav.index,
        prev=_link(nav.prev),
        next=_link(nav.next),
        html=view.html,
        video_embed_url=view.video_embed_url,
        is_owner=view.is_owner,
    )


@router.get("/api/chapters/{chapter_id}", response_model=ChapterRead)
async def get_chapter(
    chapter_id: str,
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
):
    chapter = await chapter_svc.get_chapter(db, chapter_id)
    # visibility follows the parent project
    await project_svc.get_project(db, chapter.project_id, _viewer_id(user))
    return chapter


@router.patch("/api/chapters/{chapter_id}", response_model=ChapterRead)
async def update_chapter(
    chapter_id: str,
    payload: ChapterUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    chapter = await _owned_chapter(db, chapter_id, user)
    await chapter_svc.update_chapter(db, chapter, payload.model_dump(exclude_unset=True))
    await db.commit()
    return chapter


@router.delete("/api/chapters/{chapter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chapter(
    chapter_id: str,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_db),
):
    chapter = await _owned_chapter(db, chapter_id, user)
    await chapter_svc.delete_chapter(db, chapter)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- reader page ----------

@router.get("/projects/{project_id}/chapters/{chapter_id}", response_class=HTMLResponse)
async def chapter_page(
    request: Request,
    project_id: str,
    chapter_id: str,
    user: Optional[User] = Depends(current_optional_user),
    db: AsyncSession = Depends(get_db),
):
    view = await chapter_svc.load_chapter_view(db, project_id, chapter_id, _viewer_id(user))
    return templates.TemplateResponse(
        request,
        "chapter.html",
        {
            "project": view.project,
            "chapter": view.chapter,
            "nav": view.navigation,
            "content_html": view.html,
            "video_embed_url": view.video_embed_url,
            "is_owner": view.is_owner,
            "user": user,
        },
    )
