"""Request handling for the public and administrative article endpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .article_logic import ArticleLogic
from .article_model import Article, ArticleStatus
from .errors import ValidationError
from .rbac import RequestContext, enforce_rbac_scope, rbac_owner_filter

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_LENGTH = 200
_MAX_PAGE_SIZE = 100
_CREATE_SLUG = re.compile(r"[a-z0-9-]+")
_UPDATE_SLUG = re.compile(r"[a-z0-9-]*")
_STATUSES = frozenset(status.value for status in ArticleStatus)


def format_time(value: datetime | None) -> str:
    """Render a timestamp for display, or an empty string when unset."""
    if value is None:
        return ""
    return value.strftime(_DISPLAY_FORMAT)


@dataclass
class ArticleDetail:
    """Article as returned by the detail endpoints."""

    id: int
    title: str
    slug: str
    summary: str
    body: str
    cover_image: int | None
    author_id: int
    status: str
    published_at: str
    is_top: bool
    seo_title: str
    seo_desc: str
    category_ids: list[int]
    tag_ids: list[int]
    created_at: str
    updated_at: str


def to_article_detail(article: Article | None) -> ArticleDetail | None:
    """Convert a stored article into its response form."""
    if article is None:
        return None
    return ArticleDetail(
        id=article.id,
        title=article.title,
        slug=article.slug,
        summary=article.summary,
        body=article.body,
        cover_image=article.cover_image,
        author_id=article.author_id,
        status=article.status,
        published_at=format_time(article.published_at),
        is_top=article.is_top,
        seo_title=article.seo_title,
        seo_desc=article.seo_desc,
        category_ids=list(article.category_ids),
        tag_ids=list(article.tag_ids),
        created_at=format_time(article.created_at),
        updated_at=format_time(article.updated_at),
    )


def _check_id(article_id: int) -> None:
    if article_id < 1:
        raise ValidationError("id must be at least 1")


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= page_size <= _MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {_MAX_PAGE_SIZE}")


def _check_status(status: str) -> None:
    if status and status not in _STATUSES:
        raise ValidationError("status must be one of draft, published, archived")


def _page_result(items: list[Article], total: int, page: int, page_size: int) -> dict[str, Any]:
    return {"list": items, "total": total, "page": page, "page_size": page_size}


@dataclass
class CreateArticleRequest:
    """Input for creating an article."""

    title: str = ""
    slug: str = ""
    body: str = ""
    summary: str = ""
    cover_image: int | None = None
    author_id: int = 0
    status: str = ArticleStatus.DRAFT.value
    is_top: bool = False
    seo_title: str = ""
    seo_desc: str = ""
    category_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValidationError when a field breaks its rule."""
        if not self.title:
            raise ValidationError("title is required")
        if len(self.title) > _MAX_LENGTH:
            raise ValidationError(f"title must be at most {_MAX_LENGTH} characters")
        if not self.slug:
            raise ValidationError("slug is required")
        if len(self.slug) > _MAX_LENGTH:
            raise ValidationError(f"slug must be at most {_MAX_LENGTH} characters")
        if not _CREATE_SLUG.fullmatch(self.slug):
            raise ValidationError("slug may hold only lower-case letters, digits and hyphens")
        if not self.body:
            raise ValidationError("body is required")
        _check_status(self.status)

    def to_article(self) -> Article:
        return Article(
            title=self.title,
            slug=self.slug,
            summary=self.summary,
            body=self.body,
            cover_image=self.cover_image,
            author_id=self.author_id,
            status=self.status,
            is_top=self.is_top,
            seo_title=self.seo_title,
            seo_desc=self.seo_desc,
        )


@dataclass
class UpdateArticleRequest:
    """Input for updating an article; empty fields are left unchanged."""

    id: int = 0
    title: str = ""
    slug: str = ""
    summary: str = ""
    body: str = ""
    cover_image: int | None = None
    author_id: int = 0
    status: str = ""
    is_top: bool | None = None
    seo_title: str = ""
    seo_desc: str = ""
    category_ids: list[int] | None = None
    tag_ids: list[int] | None = None

    def validate(self) -> None:
        """Raise ValidationError when a field breaks its rule."""
        _check_id(self.id)
        if len(self.slug) > _MAX_LENGTH:
            raise ValidationError(f"slug must be at most {_MAX_LENGTH} characters")
        if not _UPDATE_SLUG.fullmatch(self.slug):
            raise ValidationError("slug may hold only lower-case letters, digits and hyphens")
        _check_status(self.status)

    def to_article(self) -> Article:
        return Article(
            title=self.title,
            slug=self.slug,
            summary=self.summary,
            body=self.body,
            cover_image=self.cover_image,
            author_id=self.author_id,
            status=self.status,
            is_top=bool(self.is_top) if self.is_top is not None else False,
            seo_title=self.seo_title,
            seo_desc=self.seo_desc,
        )


class PublicArticleController:
    """Endpoints that expose published articles only."""

    def __init__(self, logic: ArticleLogic) -> None:
        self._logic = logic

    def list_articles(self, page: int = 1, page_size: int = 20) -> dict[str, Any]:
        _check_paging(page, page_size)
        articles, total = self._logic.list_public(page, page_size)
        return _page_result(articles, total, page, page_size)

    def get_article(self, article_id: int) -> ArticleDetail:
        _check_id(article_id)
        return to_article_detail(self._logic.get_public_by_id(article_id))

    def get_article_by_slug(self, slug: str) -> ArticleDetail:
        if not slug:
            raise ValidationError("slug is required")
        return to_article_detail(self._logic.get_public_by_slug(slug))


class AdminArticleController:
    """Administrative article endpoints, honouring the "own" RBAC scope."""

    def __init__(self, logic: ArticleLogic) -> None:
        self._logic = logic

    def list_articles(
        self, ctx: RequestContext, status: str = "", page: int = 1, page_size: int = 20
    ) -> dict[str, Any]:
        _check_paging(page, page_size)
        articles, total = self._logic.list(status, page, page_size, rbac_owner_filter(ctx))
        return _page_result(articles, total, page, page_size)

    def create_article(self, ctx: RequestContext, request: CreateArticleRequest) -> int:
        """Create an article authored by the caller and return its id."""
        request.validate()
        article = request.to_article()
        article.author_id = ctx.user_id
        article.created_by = ctx.user_id
        created = self._logic.create(article, request.category_ids, request.tag_ids)
        return created.id

    def get_article(self, ctx: RequestContext, article_id: int) -> ArticleDetail:
        _check_id(article_id)
        article = self._logic.get_by_id(article_id)
        enforce_rbac_scope(ctx, article.author_id)
        return to_article_detail(article)

    def update_article(self, ctx: RequestContext, request: UpdateArticleRequest) -> None:
        request.validate()
        self._owned(ctx, request.id)
        article = request.to_article()
        article.updated_by = ctx.user_id
        self._logic.update(request.id, article, request.category_ids, request.tag_ids)

    def delete_article(self, ctx: RequestContext, article_id: int) -> None:
        _check_id(article_id)
        self._owned(ctx, article_id)
        self._logic.delete(article_id, ctx.user_id)

    def publish_article(self, ctx: RequestContext, article_id: int) -> None:
        _check_id(article_id)
        self._owned(ctx, article_id)
        self._logic.publish(article_id, ctx.user_id)

    def unpublish_article(self, ctx: RequestContext, article_id: int) -> None:
        _check_id(article_id)
        self._owned(ctx, article_id)
        self._logic.unpublish(article_id, ctx.user_id)

    def _owned(self, ctx: RequestContext, article_id: int) -> Article:
        existing = self._logic.get_by_id(article_id)
        enforce_rbac_scope(ctx, existing.author_id)
        return existing