from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contentdesk.schemas.common import WriteModel, require_text


def split_tags(value: Any) -> Any:
    """Split a comma-delimited tag string; sequences are kept as given."""
    if value is None:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return value


class PostWrite(WriteModel):
    title: str
    excerpt: Optional[str] = None
    content: str
    author: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    tags: List[str] = []
    featured: bool = False

    @field_validator("title", "content")
    @classmethod
    def required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return split_tags(v)

    @field_validator("featured", mode="before")
    @classmethod
    def default_featured(cls, v):
        return False if v is None else v


class PostRead(BaseModel):
    id: UUID
    title: str
    excerpt: Optional[str] = None
    content: str
    author: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    tags: List[str] = []
    featured: bool
    views: int
    image: str = ""
    thumbnail: str = ""
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlogAnalytics(BaseModel):
    total_posts: int = Field(alias="totalPosts")
    total_views: int = Field(alias="totalViews")

    model_config = ConfigDict(populate_by_name=True)
