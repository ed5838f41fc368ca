"""
Inkwell Backend: Article Service (Business Logic)
==================================================

What:  Article publishing, listing, reading, editing, deleting and liking.
How:   Resolves the document-store repository per call, so article
       operations answer SERVICE_UNAVAILABLE when the (optional) document
       store is disabled or failed to connect, while the rest of the API
       keeps working.
Who:   Called by the article route handlers.

Ownership:
    Update and delete are scoped to the owner in a single store operation.
    When nothing matched, an existence check decides between
    ARTICLE_NOT_FOUND and NO_PERMISSION.
"""

import logging
from typing import Callable, List, Tuple

from bson import ObjectId
from pymongo.errors import PyMongoError

from inkwell.auth.tokens import Claims
from inkwell.exceptions import ErrorCode, ParamInvalidError, PersistenceError, ResourceError
from inkwell.models.article import ARTICLE_STATUS_PUBLISHED, Article, ArticleFilter
from inkwell.repositories.base import ArticleRepository
from inkwell.schemas.article import ArticleOut

logger = logging.getLogger(__name__)


def validate_article_id(article_id: str) -> str:
    if not ObjectId.is_valid(article_id):
        raise ParamInvalidError("invalid article id", field="id")
    return article_id


class ArticleService:
    def __init__(self, repository_provider: Callable[[], ArticleRepository]):
        self._repository = repository_provider

    async def create(
        self,
        claims: Claims,
        title: str,
        content: str,
        tags: List[str],
        status: int | None = None,
    ) -> str:
        article = Article(
            title=title,
            content=content,
            author=claims.username,
            user_id=claims.user_id,
            tags=list(dict.fromkeys(tags)),
            status=status or ARTICLE_STATUS_PUBLISHED,
        )
        repo = self._repository()
        try:
            article_id = await repo.insert(article)
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_INSERT_FAILED, "create article", e)
        logger.info("Article %s created by user %s", article_id, claims.user_id)
        return article_id

    async def list(
        self, filters: ArticleFilter, page: int, page_size: int
    ) -> Tuple[List[ArticleOut], int]:
        repo = self._repository()
        try:
            articles, total = await repo.list(filters, page, page_size)
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "list articles", e)
        return [ArticleOut.model_validate(a) for a in articles], total

    async def get(self, article_id: str) -> ArticleOut:
        validate_article_id(article_id)
        repo = self._repository()
        try:
            article = await repo.find_by_id(article_id)
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "get article", e)
        if article is None:
            raise ResourceError(ErrorCode.ARTICLE_NOT_FOUND)
        return ArticleOut.model_validate(article)

    async def record_view(self, article_id: str) -> None:
        """
        Bump the view counter after a successful read. Runs after the
        response is sent, so failures are only logged.
        """
        try:
            await self._repository().increment(article_id, "views")
        except Exception as e:
            logger.warning("View count update failed for %s: %s", article_id, e)

    async def update(self, claims: Claims, article_id: str, changes: dict) -> None:
        validate_article_id(article_id)
        fields = {k: v for k, v in changes.items() if v is not None}
        if not fields:
            raise ParamInvalidError("no fields to update")
        if "tags" in fields:
            fields["tags"] = list(dict.fromkeys(fields["tags"]))

        repo = self._repository()
        try:
            updated = await repo.update_owned(article_id, claims.user_id, fields)
            if not updated:
                await self._raise_missing_or_forbidden(repo, article_id)
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_UPDATE_FAILED, "update article", e)
        logger.info("Article %s updated by user %s", article_id, claims.user_id)

    async def delete(self, claims: Claims, article_id: str) -> None:
        validate_article_id(article_id)
        repo = self._repository()
        try:
            deleted = await repo.delete_owned(article_id, claims.user_id)
            if not deleted:
                await self._raise_missing_or_forbidden(repo, article_id)
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_DELETE_FAILED, "delete article", e)
        logger.info("Article %s deleted by user %s", article_id, claims.user_id)

    async def like(self, article_id: str) -> None:
        """Every call adds one like; there is no per-user deduplication."""
        validate_article_id(article_id)
        repo = self._repository()
        try:
            matched = await repo.increment(article_id, "likes")
        except PyMongoError as e:
            raise self._persistence(ErrorCode.DB_UPDATE_FAILED, "like article", e)
        if not matched:
            raise ResourceError(ErrorCode.ARTICLE_NOT_FOUND)

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    async def _raise_missing_or_forbidden(repo: ArticleRepository, article_id: str) -> None:
        if await repo.exists(article_id):
            raise ResourceError(ErrorCode.NO_PERMISSION)
        raise ResourceError(ErrorCode.ARTICLE_NOT_FOUND)

    @staticmethod
    def _persistence(code: ErrorCode, operation: str, exc: Exception) -> PersistenceError:
        logger.error("%s failed: %s", operation, exc, exc_info=True)
        return PersistenceError(code, context={"operation": operation, "error": str(exc)})
