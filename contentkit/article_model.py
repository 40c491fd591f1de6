"""Article records and their storage schema."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ArticleStatus(str, Enum):
    """Publication state of an article."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def _parse_time(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class Article:
    """An article, with the category and tag ids attached to it."""

    id: int = 0
    title: str = ""
    slug: str = ""
    summary: str = ""
    body: str = ""
    cover_image: int | None = None
    author_id: int = 0
    status: str = ""
    published_at: datetime | None = None
    is_top: bool = False
    seo_title: str = ""
    seo_desc: str = ""
    created_by: int = 0
    updated_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    category_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.status, ArticleStatus):
            self.status = self.status.value
        self.summary = self.summary or ""
        self.is_top = bool(self.is_top)
        self.published_at = _parse_time(self.published_at)
        self.created_at = _parse_time(self.created_at)
        self.updated_at = _parse_time(self.updated_at)
        self.deleted_at = _parse_time(self.deleted_at)


@dataclass(frozen=True)
class ArticleTaxonomy:
    """Link between an article and a category or tag term."""

    article_id: int
    field_id: str
    term_id: int


_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title VARCHAR(200) NOT NULL,
    slug VARCHAR(200) NOT NULL UNIQUE,
    summary TEXT,
    body TEXT NOT NULL,
    cover_image INTEGER,
    author_id INTEGER NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    published_at TEXT,
    is_top INTEGER NOT NULL DEFAULT 0,
    seo_title VARCHAR(200) NOT NULL DEFAULT '',
    seo_desc VARCHAR(500) NOT NULL DEFAULT '',
    created_by INTEGER NOT NULL,
    updated_by INTEGER,
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_articles_author_id ON articles (author_id);
CREATE INDEX IF NOT EXISTS idx_articles_status ON articles (status);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at);
CREATE INDEX IF NOT EXISTS idx_articles_created_by ON articles (created_by);
CREATE INDEX IF NOT EXISTS idx_articles_deleted_at ON articles (deleted_at);
CREATE TABLE IF NOT EXISTS article_taxonomies (
    article_id INTEGER NOT NULL,
    field_id VARCHAR(50) NOT NULL,
    term_id INTEGER NOT NULL,
    PRIMARY KEY (article_id, field_id, term_id)
);
"""


def create_article_tables(conn: sqlite3.Connection) -> None:
    """Create the article and article-taxonomy tables if they are missing."""
    conn.executescript(_SCHEMA)