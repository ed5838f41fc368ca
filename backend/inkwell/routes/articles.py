"""
Inkwell Backend: Article Routes
================================

What:  Article endpoints under /api/v1/articles.
Auth:  Listing and reading are public; writing, deleting and liking
       require a token.

The view counter is bumped in a background task after the article has
been returned, so a slow counter update never delays the read.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from inkwell.auth.dependencies import get_article_service, require_claims
from inkwell.auth.tokens import Claims
from inkwell.models.article import ArticleFilter
from inkwell.responses import success
from inkwell.schemas.article import ArticleOut, CreateArticleRequest, CreatedArticle, UpdateArticleRequest
from inkwell.schemas.common import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE,
    Envelope,
    PageResponse,
    normalize_page,
)
from inkwell.services.article_service import ArticleService

router = APIRouter(prefix="/articles", tags=["Articles"])


@router.get("", response_model=Envelope, summary="List articles, newest first")
async def list_articles(
    page: int = Query(default=DEFAULT_PAGE, le=MAX_PAGE),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE),
    author: str | None = Query(default=None),
    status: int | None = Query(default=None, ge=0, le=2),
    tags: List[str] = Query(default=[], description="Match articles carrying any of these tags"),
    keyword: str | None = Query(default=None, description="Case-insensitive title/content search"),
    articles: ArticleService = Depends(get_article_service),
):
    page, page_size = normalize_page(page, page_size)
    filters = ArticleFilter(author=author, status=status, tags=tags, keyword=keyword)
    items, total = await articles.list(filters, page, page_size)
    return success(PageResponse[ArticleOut](total=total, page=page, page_size=page_size, list=items))


@router.get("/{article_id}", response_model=Envelope, summary="Read one article")
async def get_article(
    article_id: str,
    background_tasks: BackgroundTasks,
    articles: ArticleService = Depends(get_article_service),
):
    article = await articles.get(article_id)
    background_tasks.add_task(articles.record_view, article_id)
    return success(article)


@router.post("", response_model=Envelope, summary="Publish an article")
async def create_article(
    body: CreateArticleRequest,
    claims: Claims = Depends(require_claims),
    articles: ArticleService = Depends(get_article_service),
):
    article_id = await articles.create(claims, body.title, body.content, body.tags, body.status)
    return success(CreatedArticle(id=article_id), message="created")


@router.post("/{article_id}/update", response_model=Envelope, summary="Edit an owned article")
async def update_article(
    article_id: str,
    body: UpdateArticleRequest,
    claims: Claims = Depends(require_claims),
    articles: ArticleService = Depends(get_article_service),
):
    await articles.update(claims, article_id, body.changes())
    return success(message="updated")


@router.post("/{article_id}/delete", response_model=Envelope, summary="Delete an owned article")
async def delete_article(
    article_id: str,
    claims: Claims = Depends(require_claims),
    articles: ArticleService = Depends(get_article_service),
):
    await articles.delete(claims, article_id)
    return success(message="deleted")


@router.post("/{article_id}/like", response_model=Envelope, summary="Like an article")
async def like_article(
    article_id: str,
    claims: Claims = Depends(require_claims),
    articles: ArticleService = Depends(get_article_service),
):
    await articles.like(article_id)
    return success(message="liked")
