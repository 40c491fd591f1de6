"""Page business logic: CRUD, publishing and public queries."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from .errors import CmsError, ConflictError, NotFoundError
from .page_model import Page, PageMeta, PageStatus
from .sanitize import sanitize_html

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_NOT_FOUND = "页面不存在"
_SLUG_TAKEN = "slug 已存在"

EventSink = Callable[[str, dict], None]


def _db_time(value: datetime) -> str:
    return value.strftime(_TIME_FORMAT)


class PageLogic:
    """Page operations on an SQLite connection, emitting content events."""

    def __init__(self, conn: sqlite3.Connection, emit: EventSink | None = None) -> None:
        self._conn = conn
        self._emit = emit or (lambda name, payload: None)

    # -- administration ----------------------------------------------------

    def list(
        self, status: str = "", page: int = 1, page_size: int = 20, owner_id: int = 0
    ) -> tuple[list[Page], int]:
        """Pages of every status; ``owner_id`` > 0 limits them to one author."""
        conditions = ["deleted_at IS NULL"]
        params: list[Any] = []
        if status:
            conditions.append("status = ?")
            params.append(status)
        if owner_id > 0:
            conditions.append("author_id = ?")
            params.append(owner_id)
        return self._page_of(
            " AND ".join(conditions), params, "sort_order ASC, id DESC", page, page_size
        )

    def create(
        self,
        title: str,
        slug: str,
        body: str = "",
        excerpt: str = "",
        featured_image: str = "",
        template: str = "",
        sort_order: int = 0,
        meta: PageMeta | None = None,
        seo_title: str = "",
        seo_desc: str = "",
        seo_keywords: str = "",
        author_id: int = 0,
    ) -> Page:
        """Create a draft page with a sanitised body and a unique slug."""
        body = sanitize_html(body)
        if self._slug_taken(slug):
            raise ConflictError(_SLUG_TAKEN)

        now = datetime.now()
        page = Page(
            title=title,
            slug=slug,
            body=body,
            excerpt=excerpt,
            status=PageStatus.DRAFT,
            featured_image=featured_image,
            author_id=author_id,
            template=template,
            sort_order=sort_order,
            meta=meta or PageMeta(),
            seo_title=seo_title,
            seo_desc=seo_desc,
            seo_keywords=seo_keywords,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO pages (title, slug, body, excerpt, status, featured_image, "
                    "author_id, template, sort_order, meta, seo_title, seo_desc, seo_keywords, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        page.title,
                        page.slug,
                        page.body,
                        page.excerpt,
                        page.status.value,
                        page.featured_image,
                        page.author_id,
                        page.template,
                        page.sort_order,
                        page.meta.to_json(),
                        page.seo_title,
                        page.seo_desc,
                        page.seo_keywords,
                        _db_time(now),
                        _db_time(now),
                    ),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"创建页面失败: {exc}") from exc

        page.id = cursor.lastrowid
        self._emit(
            "page.created", {"module": "page", "id": page.id, "data": page, "user_id": author_id}
        )
        return page

    def get_by_id(self, page_id: int) -> Page:
        return self._first("id = ?", (page_id,))

    def update(
        self,
        page_id: int,
        title: str = "",
        slug: str = "",
        body: str = "",
        excerpt: str = "",
        featured_image: str = "",
        template: str = "",
        sort_order: int | None = None,
        meta: PageMeta | None = None,
        seo_title: str | None = None,
        seo_desc: str | None = None,
        seo_keywords: str | None = None,
        user_id: int = 0,
    ) -> None:
        """Change the given fields; empty strings and None leave a field alone."""
        current = self.get_by_id(page_id)

        updates: dict[str, Any] = {}
        if title:
            updates["title"] = title
        if slug and slug != current.slug:
            if self._slug_taken(slug, exclude_id=page_id):
                raise ConflictError(_SLUG_TAKEN)
            updates["slug"] = slug
        if body:
            updates["body"] = sanitize_html(body)
        if excerpt:
            updates["excerpt"] = excerpt
        if featured_image:
            updates["featured_image"] = featured_image
        if template:
            updates["template"] = template
        if sort_order is not None:
            updates["sort_order"] = sort_order
        if meta is not None:
            updates["meta"] = meta.to_json()
        if seo_title is not None:
            updates["seo_title"] = seo_title
        if seo_desc is not None:
            updates["seo_desc"] = seo_desc
        if seo_keywords is not None:
            updates["seo_keywords"] = seo_keywords

        if not updates:
            return

        self._set(page_id, updates, "更新失败")
        self._emit("page.updated", {"module": "page", "id": page_id, "user_id": user_id})

    def delete(self, page_id: int, user_id: int = 0) -> None:
        """Soft-delete a page."""
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "UPDATE pages SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                    (_db_time(datetime.now()), page_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"删除失败: {exc}") from exc
        if cursor.rowcount == 0:
            raise NotFoundError(_NOT_FOUND)
        self._emit("page.deleted", {"module": "page", "id": page_id, "user_id": user_id})

    # -- publishing --------------------------------------------------------

    def publish(self, page_id: int, user_id: int = 0) -> None:
        """Mark a page published, stamping the publication time."""
        changed = self._set(
            page_id,
            {"status": PageStatus.PUBLISHED.value, "published_at": _db_time(datetime.now())},
            "发布失败",
        )
        if changed == 0:
            raise NotFoundError(_NOT_FOUND)
        self._emit("page.published", {"module": "page", "id": page_id, "user_id": user_id})

    def unpublish(self, page_id: int, user_id: int = 0) -> None:
        """Return a page to draft and clear its publication time."""
        changed = self._set(
            page_id, {"status": PageStatus.DRAFT.value, "published_at": None}, "取消发布失败"
        )
        if changed == 0:
            raise NotFoundError(_NOT_FOUND)
        self._emit("page.unpublished", {"module": "page", "id": page_id, "user_id": user_id})

    # -- public queries ----------------------------------------------------

    def list_published(self, page: int = 1, page_size: int = 20) -> tuple[list[Page], int]:
        return self._page_of(
            "deleted_at IS NULL AND status = ?",
            [PageStatus.PUBLISHED.value],
            "sort_order ASC, published_at DESC, id DESC",
            page,
            page_size,
        )

    def get_published_by_id(self, page_id: int) -> Page:
        return self._first("id = ? AND status = ?", (page_id, PageStatus.PUBLISHED.value))

    def get_published_by_slug(self, slug: str) -> Page:
        return self._first("slug = ? AND status = ?", (slug, PageStatus.PUBLISHED.value))

    # -- helpers -----------------------------------------------------------

    def _rows(self, sql: str, params: Iterable[Any] = ()) -> list[dict]:
        cursor = self._conn.execute(sql, tuple(params))
        names = [column[0] for column in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _first(self, where: str, params: Iterable[Any]) -> Page:
        rows = self._rows(
            f"SELECT * FROM pages WHERE deleted_at IS NULL AND {where} LIMIT 1", params
        )
        if not rows:
            raise NotFoundError(_NOT_FOUND)
        return Page(**rows[0])

    def _page_of(
        self, where: str, params: list[Any], order: str, page: int, page_size: int
    ) -> tuple[list[Page], int]:
        (total,) = self._conn.execute(
            f"SELECT COUNT(*) FROM pages WHERE {where}", tuple(params)
        ).fetchone()
        rows = self._rows(
            f"SELECT * FROM pages WHERE {where} ORDER BY {order} LIMIT ? OFFSET ?",
            [*params, page_size, (page - 1) * page_size],
        )
        return [Page(**row) for row in rows], total

    def _slug_taken(self, slug: str, exclude_id: int = 0) -> bool:
        sql = "SELECT COUNT(*) FROM pages WHERE deleted_at IS NULL AND slug = ?"
        params: list[Any] = [slug]
        if exclude_id > 0:
            sql += " AND id != ?"
            params.append(exclude_id)
        (count,) = self._conn.execute(sql, tuple(params)).fetchone()
        return count > 0

    def _set(self, page_id: int, values: dict[str, Any], failure: str) -> int:
        values = {**values, "updated_at": _db_time(datetime.now())}
        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self._conn:
                cursor = self._conn.execute(
                    f"UPDATE pages SET {assignments} WHERE id = ? AND deleted_at IS NULL",
                    (*values.values(), page_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"{failure}: {exc}") from exc
        return cursor.rowcount