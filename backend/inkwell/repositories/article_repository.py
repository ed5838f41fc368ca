"""
Inkwell Backend: Document Article Repository
=============================================

What:  ArticleRepository backed by the pymongo async client.
How:   Every write that is owner-scoped filters on `_id` AND `user_id` in a
       single operation, so ownership is enforced by the store itself.
       Counters use `$inc`, which the store applies atomically.

Ids that are not valid ObjectId hex strings never match anything; the
service layer rejects them before they get here.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING

from inkwell.models.article import COLLECTION_NAME, Article, ArticleFilter
from inkwell.repositories.base import ArticleRepository

logger = logging.getLogger(__name__)

COUNTER_FIELDS = frozenset({"views", "likes"})


def _object_id(article_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(article_id)
    except (InvalidId, TypeError):
        return None


def build_query(filters: ArticleFilter) -> Dict[str, Any]:
    """
    Translate list filters into a document-store query.

    The keyword is matched case-insensitively as a literal substring of
    either the title or the content.
    """
    query: Dict[str, Any] = {}
    if filters.author:
        query["author"] = filters.author
    if filters.status is not None:
        query["status"] = filters.status
    if filters.tags:
        query["tags"] = {"$in": list(filters.tags)}
    if filters.keyword:
        pattern = re.escape(filters.keyword)
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"content": {"$regex": pattern, "$options": "i"}},
        ]
    return query


class MongoArticleRepository(ArticleRepository):
    def __init__(self, database):
        self._collection = database[COLLECTION_NAME]

    async def insert(self, article: Article) -> str:
        doc = article.to_document()
        doc.pop("_id", None)
        result = await self._collection.insert_one(doc)
        return str(result.inserted_id)

    async def find_by_id(self, article_id: str) -> Optional[Article]:
        oid = _object_id(article_id)
        if oid is None:
            return None
        doc = await self._collection.find_one({"_id": oid})
        return Article.from_document(doc) if doc else None

    async def exists(self, article_id: str) -> bool:
        oid = _object_id(article_id)
        if oid is None:
            return False
        return await self._collection.count_documents({"_id": oid}, limit=1) > 0

    async def list(
        self, filters: ArticleFilter, page: int, page_size: int
    ) -> Tuple[List[Article], int]:
        query = build_query(filters)
        total = await self._collection.count_documents(query)
        cursor = (
            self._collection.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        articles = [Article.from_document(doc) async for doc in cursor]
        return articles, total

    async def update_owned(self, article_id: str, user_id: int, fields: Dict[str, Any]) -> bool:
        oid = _object_id(article_id)
        if oid is None:
            return False
        values = dict(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        result = await self._collection.update_one(
            {"_id": oid, "user_id": user_id}, {"$set": values}
        )
        return result.matched_count > 0

    async def delete_owned(self, article_id: str, user_id: int) -> bool:
        oid = _object_id(article_id)
        if oid is None:
            return False
        result = await self._collection.delete_one({"_id": oid, "user_id": user_id})
        return result.deleted_count > 0

    async def increment(self, article_id: str, field: str, amount: int = 1) -> bool:
        if field not in COUNTER_FIELDS:
            raise ValueError(f"Not a counter field: {field}")
        oid = _object_id(article_id)
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$inc": {field: amount}})
        return result.matched_count > 0
