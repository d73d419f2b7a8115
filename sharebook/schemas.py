from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from fastapi_users import schemas as fu_schemas

from .llm_client import AssistantMode
from .models import Visibility

# =========================
# USER SCHEMAS
# =========================
class UserRead(fu_schemas.BaseUser[int]):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

class UserCreate(fu_schemas.BaseUserCreate):
    display_name: Optional[str] = None

class UserUpdate(fu_schemas.BaseUserUpdate):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

class AuthorProfileRead(BaseModel):
    id: int
    full_name: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


# =========================
# PROJECT SCHEMAS
# =========================
class ProjectBase(BaseModel):
    title: str
    description: Optional[str] = None
    visibility: Visibility = Visibility.private

class ProjectCreate(ProjectBase):
    cover_image: Optional[str] = None

class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[Visibility] = None
    cover_image: Optional[str] = None

class ProjectRead(ProjectBase):
    id: str
    user_id: int
    cover_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProjectPage(BaseModel):
    items: List[ProjectRead] = []
    count: int
    page: int = 1
    limit: int = 12

class AuthorPage(BaseModel):
    author: AuthorProfileRead
    projects: List[ProjectRead] = []
    count: int


# =========================
# CHAPTER SCHEMAS
# =========================
class ChapterCreate(BaseModel):
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None

class ChapterUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None

class ChapterRead(BaseModel):
    id: str
    project_id: str
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    order_index: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ChapterLink(BaseModel):
    id: str
    title: str
    order_index: int

    class Config:
        from_attributes = True

class ReorderChaptersRequest(BaseModel):
    order: List[str]

class ChapterViewRead(BaseModel):
    project: ProjectRead
    chapter: ChapterRead
    toc: List[ChapterLink]
    index: int
    prev: Optional[ChapterLink] = None
    next: Optional[ChapterLink] = None
    html: str
    video_embed_url: Optional[str] = None
    is_owner: bool = False


# =========================
# ASSETS
# =========================
class AssetRead(BaseModel):
    name: str
    url: str
    size: int
    created_at: str


# =========================
# SETTINGS SCHEMAS
# =========================
class ProviderSettingsSave(BaseModel):
    api_key: str
    model: Optional[str] = None

class ProviderSettingsRead(BaseModel):
    provider: str
    api_key: str = ""       # always masked
    model: Optional[str] = None
    has_key: bool = False
    updated_at: Optional[datetime] = None

class UserSettingsRead(BaseModel):
    user_id: int
    theme: str
    font_size: int

    class Config:
        from_attributes = True

class UserSettingsUpdate(BaseModel):
    theme: Optional[str] = None
    font_size: Optional[int] = None


# =========================
# AI ASSISTANT
# =========================
class AssistantRequest(BaseModel):
    prompt: str = Field(min_length=1)
    mode: AssistantMode = AssistantMode.writer
    context: Optional[str] = None
    provider: str = "openai"

class AssistantResponse(BaseModel):
    text: str

class AssistantModeRead(BaseModel):
    mode: AssistantMode
    description: str
    quick_prompts: List[str] = []

class ChapterIdeasRequest(BaseModel):
    title: str
    description: str = ""
    chapter_count: int = Field(default=5, ge=1, le=50)
    provider: str = "openai"

class ImproveTextRequest(BaseModel):
    text: str
    instruction: str
    provider: str = "openai"

class OutlineRequest(BaseModel):
    description: str = Field(min_length=1)
    chapter_count: int = Field(default=5, ge=1, le=50)
    provider: str = "openai"

class ChapterContentRequest(BaseModel):
    chapter_title: str
    chapter_description: str = ""
    prompt: str = ""
    provider: str = "openai"
