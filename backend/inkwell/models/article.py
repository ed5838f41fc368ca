"""
Inkwell Backend: Article Document Model
========================================

What:  In-process representation of a document in the `articles` collection.
How:   A dataclass with explicit conversion to and from the BSON document the
       document store holds. `id` is the hex form of the ObjectId.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

ARTICLE_STATUS_DRAFT = 0
ARTICLE_STATUS_PUBLISHED = 1

COLLECTION_NAME = "articles"


@dataclass
class Article:
    title: str
    content: str
    author: str
    user_id: int
    tags: List[str] = field(default_factory=list)
    views: int = 0
    likes: int = 0
    status: int = ARTICLE_STATUS_PUBLISHED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "user_id": self.user_id,
            "tags": list(self.tags),
            "views": self.views,
            "likes": self.likes,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.id is not None:
            doc["_id"] = ObjectId(self.id)
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Article":
        return cls(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            content=doc.get("content", ""),
            author=doc.get("author", ""),
            user_id=int(doc.get("user_id", 0)),
            tags=list(doc.get("tags") or []),
            views=int(doc.get("views", 0)),
            likes=int(doc.get("likes", 0)),
            status=int(doc.get("status", ARTICLE_STATUS_PUBLISHED)),
            created_at=doc.get("created_at") or datetime.now(timezone.utc),
            updated_at=doc.get("updated_at") or datetime.now(timezone.utc),
        )


@dataclass
class ArticleFilter:
    """Optional list filters; unset fields do not constrain the query."""

    author: Optional[str] = None
    status: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    keyword: Optional[str] = None
