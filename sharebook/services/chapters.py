# sharebook/services/chapters.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.errors import NotFoundError, ValidationError
from sharebook.models import Chapter, Project
from sharebook.rendering import render_markdown, video_embed_url
from sharebook.services.projects import get_project

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content", "video_url")


# ---------- ordering & navigation ----------

def sort_chapters(chapters: Sequence[Any]) -> list[Any]:
    """Ascending order_index; equal indices keep their incoming order."""
    return sorted(chapters, key=lambda c: c.order_index or 0)


@dataclass
class ChapterNavigation:
    toc: list[Any]
    index: int
    prev: Optional[Any]
    next: Optional[Any]

    @property
    def current(self):
        return self.toc[self.index]


def build_navigation(chapters: Sequence[Any], chapter_id: str) -> ChapterNavigation:
    toc = sort_chapters(chapters)
    index = next((i for i, c in enumerate(toc) if c.id == chapter_id), -1)
    if index == -1:
        raise NotFoundError(f"Chapter {chapter_id} is not part of this project")
    prev_ch = toc[index - 1] if index > 0 else None
    next_ch = toc[index + 1] if index < len(toc) - 1 else None
    return ChapterNavigation(toc=toc, index=index, prev=prev_ch, next=next_ch)


# ---------- queries ----------

async def list_chapters(db: AsyncSession, project_id: str) -> list[Chapter]:
    rows = await db.execute(
        select(Chapter)
        .where(Chapter.project_id == project_id)
        .order_by(Chapter.order_index.asc(), Chapter.created_at.asc())
    )
    return sort_chapters(rows.scalars().all())


async def count_chapters(db: AsyncSession, project_id: str) -> int:
    n = await db.scalar(select(func.count(Chapter.id)).where(Chapter.project_id == project_id))
    return int(n or 0)


async def get_chapter(db: AsyncSession, chapter_id: str) -> Chapter:
    if chapter_id == "new":
        raise ValidationError("Cannot fetch chapter with ID 'new'")
    chapter = await db.get(Chapter, chapter_id)
    if not chapter:
        raise NotFoundError(f"Chapter {chapter_id} not found")
    return chapter


# ---------- writes ----------

async def create_chapter(
    db: AsyncSession,
    project_id: str,
    title: str,
    content: Optional[str] = None,
    video_url: Optional[str] = None,
) -> Chapter:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Chapter title is required")

    # Appends at the current sibling count. Read and insert are not atomic:
    # two concurrent creates can both see the same count.
    order_index = await count_chapters(db, project_id)

    chapter = Chapter(
        project_id=project_id,
        title=title,
        content=content,
        video_url=(video_url or "").strip() or None,
        order_index=order_index,
    )
    db.add(chapter)
    await db.flush()
    logger.info("Created chapter %s at position %s in project %s", chapter.id, order_index, project_id)
    return chapter


async def update_chapter(db: AsyncSession, chapter: Chapter, updates: dict) -> Chapter:
    for key, value in updates.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key == "title":
            value = (value or "").strip()
            if not value:
                raise ValidationError("Chapter title is required")
        if key == "video_url":
            value = (value or "").strip() or None
        setattr(chapter, key, value)
    await db.flush()
    return chapter


async def delete_chapter(db: AsyncSession, chapter: Chapter) -> None:
    # Remaining siblings keep their indices; gaps are not closed.
    await db.delete(chapter)
    await db.flush()


async def reorder_chapters(db: AsyncSession, project_id: str, ordered_ids: Sequence[str]) -> list[Chapter]:
    """Set order_index to each id's position in `ordered_ids`.

    Ids that do not belong to the project are skipped. Chapters missing from
    `ordered_ids` keep their old index. No guard against concurrent appends.
    """
    rows = await db.execute(
        select(Chapter).where(Chapter.project_id == project_id, Chapter.id.in_(list(ordered_ids)))
    )
    by_id = {c.id: c for c in rows.scalars().all()}
    for position, chapter_id in enumerate(ordered_ids):
        chapter = by_id.get(chapter_id)
        if chapter is not None:
            chapter.order_index = position
    await db.flush()
    return await list_chapters(db, project_id)


# ---------- reader view ----------

@dataclass
class ChapterView:
    project: Project
    chapter: Chapter
    navigation: ChapterNavigation
    html: str
    video_embed_url: Optional[str]
    is_owner: bool


async def load_chapter_view(
    db: AsyncSession,
    project_id: str,
    chapter_id: str,
    viewer_id: Optional[int],
) -> ChapterView:
    project = await get_project(db, project_id, viewer_id)
    chapter = await get_chapter(db, chapter_id)
    if chapter.project_id != project.id:
        raise NotFoundError(f"Chapter {chapter_id} not found in project {project_id}")

    siblings = await list_chapters(db, project.id)
    navigation = build_navigation(siblings, chapter.id)

    return ChapterView(
        project=project,
        chapter=chapter,
        navigation=navigation,
        html=render_markdown(chapter.content),
        video_embed_url=video_embed_url(chapter.video_url),
        is_owner=(viewer_id is not None and project.user_id == viewer_id),
    )
