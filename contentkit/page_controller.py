"""Request handling for the administrative and public page endpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import ValidationError
from .page_logic import PageLogic
from .page_model import Page, PageMeta, PageStatus
from .rbac import RequestContext, enforce_rbac_scope, rbac_owner_filter

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_TITLE = 255
_MAX_PAGE_SIZE = 100
_SLUG = re.compile(r"[a-z0-9-]+")


def _display(value: datetime | None) -> str:
    return "" if value is None else value.strftime(_DISPLAY_FORMAT)


def _check_id(value: int) -> None:
    if value < 1:
        raise ValidationError("id must be at least 1")


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= page_size <= _MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {_MAX_PAGE_SIZE}")


def _page_result(items: list[Page], total: int, page: int, page_size: int) -> dict[str, Any]:
    return {"list": items, "total": total, "page": page, "page_size": page_size}


@dataclass
class PageDetail:
    """Page as returned by the detail endpoints."""

    id: int
    title: str
    slug: str
    body: str
    excerpt: str
    status: PageStatus
    featured_image: str
    author_id: int
    template: str
    sort_order: int
    meta: PageMeta
    seo_title: str
    seo_desc: str
    seo_keywords: str
    published_at: str | None
    created_at: str
    updated_at: str


def to_page_detail(page: Page) -> PageDetail:
    """Convert a stored page into its response form."""
    return PageDetail(
        id=page.id,
        title=page.title,
        slug=page.slug,
        body=page.body,
        excerpt=page.excerpt,
        status=page.status,
        featured_image=page.featured_image,
        author_id=page.author_id,
        template=page.template,
        sort_order=page.sort_order,
        meta=page.meta,
        seo_title=page.seo_title,
        seo_desc=page.seo_desc,
        seo_keywords=page.seo_keywords,
        published_at=None if page.published_at is None else _display(page.published_at),
        created_at=_display(page.created_at),
        updated_at=_display(page.updated_at),
    )


@dataclass
class CreatePageRequest:
    """Input for creating a page; new pages start as drafts."""

    title: str = ""
    slug: str = ""
    body: str = ""
    excerpt: str = ""
    featured_image: str = ""
    template: str = ""
    sort_order: int = 0
    page_meta: PageMeta = field(default_factory=PageMeta)
    seo_title: str = ""
    seo_desc: str = ""
    seo_keywords: str = ""

    def validate(self) -> None:
        """Raise ValidationError when a field breaks its rule."""
        if not self.title:
            raise ValidationError("title is required")
        if len(self.title) > _MAX_TITLE:
            raise ValidationError(f"title must be at most {_MAX_TITLE} characters")
        if not self.slug:
            raise ValidationError("slug is required")
        if not _SLUG.fullmatch(self.slug):
            raise ValidationError("slug may hold only lower-case letters, digits and hyphens")


@dataclass
class UpdatePageRequest:
    """Input for updating a page; empty strings and None leave a field alone."""

    id: int = 0
    title: str = ""
    slug: str = ""
    body: str = ""
    excerpt: str = ""
    featured_image: str = ""
    template: str = ""
    sort_order: int | None = None
    page_meta: PageMeta | None = None
    seo_title: str | None = None
    seo_desc: str | None = None
    seo_keywords: str | None = None


class PageAdminController:
    """Administrative page endpoints, honouring the "own" RBAC scope."""

    def __init__(self, logic: PageLogic) -> None:
        self._logic = logic

    def list_pages(
        self, ctx: RequestContext, status: str = "", page: int = 1, page_size: int = 20
    ) -> dict[str, Any]:
        _check_paging(page, page_size)
        items, total = self._logic.list(status, page, page_size, rbac_owner_filter(ctx))
        return _page_result(items, total, page, page_size)

    def create_page(self, ctx: RequestContext, request: CreatePageRequest) -> int:
        """Create a draft page authored by the caller and return its id."""
        request.validate()
        created = self._logic.create(
            request.title,
            request.slug,
            request.body,
            request.excerpt,
            request.featured_image,
            request.template,
            request.sort_order,
            request.page_meta,
            request.seo_title,
            request.seo_desc,
            request.seo_keywords,
            ctx.user_id,
        )
        return created.id

    def get_page(self, ctx: RequestContext, page_id: int) -> PageDetail:
        _check_id(page_id)
        page = self._logic.get_by_id(page_id)
        enforce_rbac_scope(ctx, page.author_id)
        return to_page_detail(page)

    def update_page(self, ctx: RequestContext, request: UpdatePageRequest) -> None:
        _check_id(request.id)
        self._owned(ctx, request.id)
        self._logic.update(
            request.id,
            request.title,
            request.slug,
            request.body,
            request.excerpt,
            request.featured_image,
            request.template,
            request.sort_order,
            request.page_meta,
            request.seo_title,
            request.seo_desc,
            request.seo_keywords,
            ctx.user_id,
        )

    def delete_page(self, ctx: RequestContext, page_id: int) -> None:
        _check_id(page_id)
        self._owned(ctx, page_id)
        self._logic.delete(page_id, ctx.user_id)

    def publish_page(self, ctx: RequestContext, page_id: int) -> None:
        _check_id(page_id)
        self._owned(ctx, page_id)
        self._logic.publish(page_id, ctx.user_id)

    def unpublish_page(self, ctx: RequestContext, page_id: int) -> None:
        _check_id(page_id)
        self._owned(ctx, page_id)
        self._logic.unpublish(page_id, ctx.user_id)

    def _owned(self, ctx: RequestContext, page_id: int) -> Page:
        existing = self._logic.get_by_id(page_id)
        enforce_rbac_scope(ctx, existing.author_id)
        return existing


class PagePublicController:
    """Endpoints that expose published pages only."""

    def __init__(self, logic: PageLogic) -> None:
        self._logic = logic

    def list_pages(self, page: int = 1, page_size: int = 20) -> dict[str, Any]:
        _check_paging(page, page_size)
        items, total = self._logic.list_published(page, page_size)
        return _page_result(items, total, page, page_size)

    def get_page(self, page_id: int) -> PageDetail:
        _check_id(page_id)
        return to_page_detail(self._logic.get_published_by_id(page_id))

    def get_page_by_slug(self, slug: str) -> PageDetail:
        if not slug:
            raise ValidationError("slug is required")
        return to_page_detail(self._logic.get_published_by_slug(slug))