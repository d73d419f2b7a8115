import enum
import uuid
from datetime import datetime, timezone

from fastapi_users.db import SQLAlchemyBaseUserTable
from sqlalchemy import (
    Column, Integer, String, ForeignKey, Text, DateTime, UniqueConstraint, Index,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Visibility(str, enum.Enum):
    public = "public"
    private = "private"


# ---------------------------
# USER MODEL
# ---------------------------
class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    projects = relationship(
        "Project",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# ---------------------------
# PROJECTS
# ---------------------------
class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    cover_image = Column(String, nullable=True)  # public URL in the project-covers bucket
    visibility = Column(
        SAEnum(Visibility, name="project_visibility"),
        default=Visibility.private,
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="projects")
    chapters = relationship(
        "Chapter",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Chapter.order_index",
    )

    def __repr__(self):
        return f"<Project {self.id} {self.title!r}>"


# ---------------------------
# CHAPTERS
# ---------------------------
class Chapter(Base):
    __tablename__ = "chapters"

    id = Column(String(36), primary_key=True, default=new_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)       # markdown subset, rendered by sharebook.rendering
    video_url = Column(String, nullable=True)
    # lower = earlier; not unique, see services.chapters.create_chapter
    order_index = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    project = relationship("Project", back_populates="chapters")

    __table_args__ = (
        Index("ix_chapters_project_order", "project_id", "order_index"),
    )

    def __repr__(self):
        return f"<Chapter {self.id} #{self.order_index} {self.title!r}>"


# ---------------------------
# AI PROVIDER CREDENTIALS
# ---------------------------
class ProviderCredential(Base):
    __tablename__ = "ai_provider_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    provider = Column(String(64), nullable=False)
    api_key = Column(Text, nullable=True)   # hex ciphertext, never plaintext
    model = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # one record per (user, provider)
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_provider_settings_user_provider"),)


# ---------------------------
# USER SETTINGS
# ---------------------------
class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    theme = Column(String(16), nullable=False, default="light")
    font_size = Column(Integer, nullable=False, default=16)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
