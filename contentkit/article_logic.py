"""Article business logic: CRUD, publication state and taxonomy links."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

from .article_model import Article, ArticleStatus
from .errors import CmsError, ConflictError, NotFoundError
from .sanitize import sanitize_html

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_NOT_FOUND = "文章不存在"
_SLUG_TAKEN = "文章别名(slug)已被使用"
_DUPLICATE_MARKERS = ("UNIQUE constraint failed", "unique constraint", "duplicate key")

EventSink = Callable[[str, dict], None]


def _db_time(value: datetime | None) -> str | None:
    return None if value is None else value.strftime(_TIME_FORMAT)


def _is_duplicate_error(exc: BaseException) -> bool:
    text = str(exc)
    return any(marker in text for marker in _DUPLICATE_MARKERS)


def _write_error(prefix: str, exc: BaseException) -> CmsError:
    if _is_duplicate_error(exc):
        return ConflictError(_SLUG_TAKEN)
    return CmsError(f"{prefix}: {exc}")


class ArticleLogic:
    """Article operations on an SQLite connection, emitting content events."""

    def __init__(self, conn: sqlite3.Connection, emit: EventSink | None = None) -> None:
        self._conn = conn
        self._emit = emit or (lambda name, payload: None)

    # -- public listing --------------------------------------------------

    def list_public(self, page: int, page_size: int) -> tuple[list[Article], int]:
        """Published articles, pinned first, newest publication first."""
        return self._page(
            ["status = ?"],
            [ArticleStatus.PUBLISHED.value],
            "is_top DESC, published_at DESC",
            page,
            page_size,
        )

    def get_public_by_id(self, article_id: int) -> Article:
        return self._get_loaded("status = ? AND id = ?", (ArticleStatus.PUBLISHED.value, article_id))

    def get_public_by_slug(self, slug: str) -> Article:
        return self._get_loaded("status = ? AND slug = ?", (ArticleStatus.PUBLISHED.value, slug))

    # -- administration --------------------------------------------------

    def list(
        self, status: str, page: int, page_size: int, owner_id: int = 0
    ) -> tuple[list[Article], int]:
        """All articles, optionally filtered by status and, when owner_id > 0, by author."""
        conditions: list[str] = []
        params: list[Any] = []
        if status:
            conditions.append("status = ?")
            params.append(getattr(status, "value", status))
        if owner_id > 0:
            conditions.append("author_id = ?")
            params.append(owner_id)
        return self._page(conditions, params, "id DESC", page, page_size)

    def get_by_id(self, article_id: int) -> Article:
        return self._get_loaded("id = ?", (article_id,))

    def create(
        self,
        article: Article,
        category_ids: Iterable[int] | None = None,
        tag_ids: Iterable[int] | None = None,
    ) -> Article:
        """Store a new article with its category and tag links."""
        article = replace(article, body=sanitize_html(article.body), category_ids=[], tag_ids=[])
        self._check_slug_unique(article.slug, 0)

        if not article.status:
            article.status = ArticleStatus.DRAFT.value
        now = datetime.now()
        if article.status == ArticleStatus.PUBLISHED:
            article.published_at = now
        article.created_at = article.updated_at = now

        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO articles (title, slug, summary, body, cover_image, author_id, "
                    "status, published_at, is_top, seo_title, seo_desc, created_by, updated_by, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        article.title,
                        article.slug,
                        article.summary,
                        article.body,
                        article.cover_image,
                        article.author_id,
                        article.status,
                        _db_time(article.published_at),
                        int(article.is_top),
                        article.seo_title,
                        article.seo_desc,
                        article.created_by,
                        article.updated_by,
                        _db_time(article.created_at),
                        _db_time(article.updated_at),
                    ),
                )
                article.id = cursor.lastrowid
                self._save_taxonomies(article.id, category_ids, tag_ids)
        except sqlite3.DatabaseError as exc:
            raise _write_error("创建文章失败", exc) from exc

        self._load_taxonomies([article])
        self._emit(
            "article.created",
            self._event(article.id, article.created_by, data=article),
        )
        return article

    def update(
        self,
        article_id: int,
        article: Article,
        category_ids: Iterable[int] | None = None,
        tag_ids: Iterable[int] | None = None,
    ) -> Article | None:
        """Apply the non-empty fields of ``article`` and replace the taxonomy links."""
        old = self.get_by_id(article_id)

        if article.slug and article.slug != old.slug:
            self._check_slug_unique(article.slug, article_id)

        body = sanitize_html(article.body) if article.body else article.body

        updates: dict[str, Any] = {}
        if article.title:
            updates["title"] = article.title
        if article.slug:
            updates["slug"] = article.slug
        if article.summary or body:
            updates["summary"] = article.summary
            updates["body"] = body
        if article.cover_image is not None:
            updates["cover_image"] = article.cover_image
        if article.author_id > 0:
            updates["author_id"] = article.author_id
        if article.seo_title:
            updates["seo_title"] = article.seo_title
        if article.seo_desc:
            updates["seo_desc"] = article.seo_desc
        if article.updated_by is not None:
            updates["updated_by"] = article.updated_by

        try:
            with self._conn:
                if updates:
                    updates["updated_at"] = _db_time(datetime.now())
                    assignments = ", ".join(f"{column} = ?" for column in updates)
                    self._conn.execute(
                        f"UPDATE articles SET {assignments} WHERE id = ? AND deleted_at IS NULL",
                        (*updates.values(), article_id),
                    )
                self._save_taxonomies(article_id, category_ids, tag_ids)
        except sqlite3.DatabaseError as exc:
            raise _write_error("更新文章失败", exc) from exc

        try:
            updated: Article | None = self.get_by_id(article_id)
        except NotFoundError:
            updated = None

        user_id = article.updated_by if article.updated_by is not None else 0
        self._emit(
            "article.updated",
            self._event(article_id, user_id, data=updated, old_data=old),
        )
        return updated

    def delete(self, article_id: int, user_id: int) -> None:
        """Soft-delete an article and drop its taxonomy links."""
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "UPDATE articles SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                    (_db_time(datetime.now()), article_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"删除失败: {exc}") from exc
        if cursor.rowcount == 0:
            raise NotFoundError(_NOT_FOUND)

        with self._conn:
            self._conn.execute("DELETE FROM article_taxonomies WHERE article_id = ?", (article_id,))

        self._emit("article.deleted", self._event(article_id, user_id))

    # -- publication state -------------------------------------------------

    def publish(self, article_id: int, user_id: int) -> None:
        """Mark an article published; already published articles are left alone."""
        article = self._find("id = ?", (article_id,))
        if article is None:
            raise NotFoundError(_NOT_FOUND)
        if article.status == ArticleStatus.PUBLISHED:
            return

        now = _db_time(datetime.now())
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE articles SET status = ?, published_at = ?, updated_by = ?, "
                    "updated_at = ? WHERE id = ?",
                    (ArticleStatus.PUBLISHED.value, now, user_id, now, article_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"发布失败: {exc}") from exc

        reloaded = self._find("id = ?", (article_id,)) or article
        self._load_taxonomies([reloaded])
        self._emit("article.published", self._event(article_id, user_id, data=reloaded))

    def unpublish(self, article_id: int, user_id: int) -> None:
        """Return a published article to draft; other states are left alone."""
        article = self._find("id = ?", (article_id,))
        if article is None:
            raise NotFoundError(_NOT_FOUND)
        if article.status != ArticleStatus.PUBLISHED:
            return

        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE articles SET status = ?, updated_by = ?, updated_at = ? WHERE id = ?",
                    (ArticleStatus.DRAFT.value, user_id, _db_time(datetime.now()), article_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"取消发布失败: {exc}") from exc

        self._emit("article.archived", self._event(article_id, user_id))

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _event(article_id, user_id, data=None, old_data=None) -> dict:
        return {
            "module": "article",
            "id": article_id,
            "data": data,
            "old_data": old_data,
            "user_id": user_id,
        }

    def _rows(self, sql: str, params: Iterable[Any] = ()) -> list[dict]:
        cursor = self._conn.execute(sql, tuple(params))
        names = [column[0] for column in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _find(self, where: str, params: Iterable[Any]) -> Article | None:
        rows = self._rows(
            f"SELECT * FROM articles WHERE deleted_at IS NULL AND {where} ORDER BY id LIMIT 1",
            params,
        )
        return Article(**rows[0]) if rows else None

    def _get_loaded(self, where: str, params: Iterable[Any]) -> Article:
        article = self._find(where, params)
        if article is None:
            raise NotFoundError(_NOT_FOUND)
        self._load_taxonomies([article])
        return article

    def _page(self, conditions, params, order, page, page_size) -> tuple[list[Article], int]:
        where = " AND ".join(["deleted_at IS NULL", *conditions])
        (total,) = self._conn.execute(
            f"SELECT COUNT(*) FROM articles WHERE {where}", tuple(params)
        ).fetchone()
        rows = self._rows(
            f"SELECT * FROM articles WHERE {where} ORDER BY {order} LIMIT ? OFFSET ?",
            [*params, page_size, (page - 1) * page_size],
        )
        articles = [Article(**row) for row in rows]
        self._load_taxonomies(articles)
        return articles, total

    def _check_slug_unique(self, slug: str, exclude_id: int) -> None:
        sql = "SELECT COUNT(*) FROM articles WHERE deleted_at IS NULL AND slug = ?"
        params: list[Any] = [slug]
        if exclude_id > 0:
            sql += " AND id != ?"
            params.append(exclude_id)
        try:
            (count,) = self._conn.execute(sql, params).fetchone()
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"检查 slug 唯一性失败: {exc}") from exc
        if count > 0:
            raise ConflictError(_SLUG_TAKEN)

    def _save_taxonomies(self, article_id, category_ids, tag_ids) -> None:
        self._conn.execute("DELETE FROM article_taxonomies WHERE article_id = ?", (article_id,))
        links = [(article_id, "category", term) for term in category_ids or ()]
        links += [(article_id, "tag", term) for term in tag_ids or ()]
        if links:
            self._conn.executemany(
                "INSERT INTO article_taxonomies (article_id, field_id, term_id) VALUES (?, ?, ?)",
                links,
            )

    def _load_taxonomies(self, articles: list[Article]) -> None:
        if not articles:
            return
        by_id = {article.id: article for article in articles}
        for article in articles:
            article.category_ids = []
            article.tag_ids = []
        placeholders = ", ".join("?" for _ in by_id)
        rows = self._conn.execute(
            "SELECT article_id, field_id, term_id FROM article_taxonomies "
            f"WHERE article_id IN ({placeholders}) ORDER BY rowid",
            tuple(by_id),
        ).fetchall()
        for article_id, field_id, term_id in rows:
            article = by_id.get(article_id)
            if article is None:
                continue
            if field_id == "category":
                article.category_ids.append(term_id)
            elif field_id == "tag":
                article.tag_ids.append(term_id)