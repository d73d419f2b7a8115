# sharebook/services/projects.py
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sharebook.errors import AccessDeniedError, NotFoundError, ValidationError
from sharebook.models import Project, Visibility

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
EDITABLE_FIELDS = ("title", "description", "visibility", "cover_image")


def parse_visibility(value) -> Visibility:
    if isinstance(value, Visibility):
        return value
    try:
        return Visibility((value or "private").strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown visibility: {value!r}") from e


def can_view(project: Project, viewer_id: Optional[int]) -> bool:
    # Owner can always view
    if viewer_id is not None and project.user_id == viewer_id:
        return True
    return project.visibility == Visibility.public


async def get_project(db: AsyncSession, project_id: str, viewer_id: Optional[int]) -> Project:
    if not UUID_RE.match(project_id or ""):
        raise ValidationError(f"Invalid project ID format: {project_id}")
    project = await db.get(Project, project_id)
    if not project:
        raise NotFoundError(f"Project {project_id} not found")
    if not can_view(project, viewer_id):
        raise AccessDeniedError("Access denied: This project is private")
    return project


async def get_owned_project(db: AsyncSession, project_id: str, user_id: int) -> Project:
    project = await get_project(db, project_id, user_id)
    if project.user_id != user_id:
        raise AccessDeniedError("Only the project owner can change it")
    return project


async def list_projects(db: AsyncSession, owner_id: int) -> list[Project]:
    rows = await db.execute(
        select(Project).where(Project.user_id == owner_id).order_by(Project.updated_at.desc())
    )
    return list(rows.scalars().all())


async def list_public_projects(
    db: AsyncSession,
    search: Optional[str] = None,
    limit: int = 12,
    page: int = 1,
) -> tuple[list[Project], int]:
    limit = max(1, limit)
    page = max(1, page)

    cond = [Project.visibility == Visibility.public]
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        cond.append(or_(Project.title.ilike(like), Project.description.ilike(like)))

    total = await db.scalar(select(func.count(Project.id)).where(*cond))
    rows = await db.execute(
        select(Project)
        .where(*cond)
        .order_by(Project.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(rows.scalars().all()), int(total or 0)


async def list_user_public_projects(db: AsyncSession, user_id: int, limit: int = 10) -> tuple[list[Project], int]:
    cond = (Project.user_id == user_id, Project.visibility == Visibility.public)
    total = await db.scalar(select(func.count(Project.id)).where(*cond))
    rows = await db.execute(
        select(Project).where(*cond).order_by(Project.updated_at.desc()).limit(limit)
    )
    return list(rows.scalars().all()), int(total or 0)


async def create_project(
    db: AsyncSession,
    owner_id: int,
    title: str,
    description: Optional[str] = None,
    visibility=None,
    cover_image: Optional[str] = None,
) -> Project:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Project title is required")
    project = Project(
        user_id=owner_id,
        title=title,
        description=(description or "").strip() or None,
        visibility=parse_visibility(visibility),
        cover_image=cover_image,
    )
    db.add(project)
    await db.flush()
    logger.info("User %s created project %s", owner_id, project.id)
    return project


async def update_project(db: AsyncSession, project: Project, updates: dict) -> Project:
    for key, value in updates.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key == "title":
            value = (value or "").strip()
            if not value:
                raise ValidationError("Project title is required")
        elif key == "visibility":
            value = parse_visibility(value)
        setattr(project, key, value)
    await db.flush()
    return project


async def delete_project(db: AsyncSession, project: Project) -> None:
    # chapters go with it through ON DELETE CASCADE
    await db.delete(project)
    await db.flush()
    logger.info("Deleted project %s", project.id)
