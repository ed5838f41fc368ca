"""
Inkwell Backend: Article Request/Response Schemas
==================================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from inkwell.models.article import ARTICLE_STATUS_PUBLISHED


class CreateArticleRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    # 0 or omitted means published
    status: Optional[int] = Field(default=None, ge=0, le=2)


class UpdateArticleRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[List[str]] = None
    status: Optional[int] = Field(default=None, ge=0, le=2)

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class ArticleOut(BaseModel):
    id: str
    title: str
    content: str
    author: str
    user_id: int
    tags: List[str] = Field(default_factory=list)
    views: int = 0
    likes: int = 0
    status: int = ARTICLE_STATUS_PUBLISHED
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreatedArticle(BaseModel):
    id: str
