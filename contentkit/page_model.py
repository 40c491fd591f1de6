"""Page records, their SEO metadata and storage schema."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum


class PageStatus(str, Enum):
    """Publication state of a page."""

    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass
class PageMeta:
    """SEO metadata, stored as a JSON object with empty fields left out."""

    meta_title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""
    og_image: str = ""

    def to_json(self) -> str:
        """Serialise to compact JSON, omitting empty fields."""
        present = {key: value for key, value in asdict(self).items() if value}
        return json.dumps(present, ensure_ascii=False, separators=(",", ":"))


_META_FIELDS = frozenset(f.name for f in fields(PageMeta))


def parse_page_meta(value) -> PageMeta:
    """Read metadata from stored JSON text or bytes; None gives empty metadata."""
    if value is None:
        return PageMeta()
    if isinstance(value, PageMeta):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8")
    if not isinstance(value, str):
        raise TypeError(f"unsupported type for PageMeta: {type(value).__name__}")
    data = json.loads(value)
    if data is None:
        return PageMeta()
    if not isinstance(data, dict):
        raise ValueError("page meta must be a JSON object")
    known = {key: item for key, item in data.items() if key in _META_FIELDS}
    for key, item in known.items():
        if item is not None and not isinstance(item, str):
            raise ValueError(f"page meta field {key} must be a string")
    return PageMeta(**{key: item or "" for key, item in known.items()})


def _parse_time(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class Page:
    """A standalone content page."""

    id: int = 0
    title: str = ""
    slug: str = ""
    body: str = ""
    excerpt: str = ""
    status: PageStatus = PageStatus.DRAFT
    featured_image: str = ""
    author_id: int = 0
    template: str = ""
    sort_order: int = 0
    meta: PageMeta = field(default_factory=PageMeta)
    seo_title: str = ""
    seo_desc: str = ""
    seo_keywords: str = ""
    published_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, PageStatus) and self.status in PageStatus._value2member_map_:
            self.status = PageStatus(self.status)
        self.body = self.body or ""
        self.meta = parse_page_meta(self.meta)
        self.published_at = _parse_time(self.published_at)
        self.created_at = _parse_time(self.created_at)
        self.updated_at = _parse_time(self.updated_at)
        self.deleted_at = _parse_time(self.deleted_at)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS pages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title VARCHAR(255) NOT NULL,
    slug VARCHAR(255) NOT NULL UNIQUE,
    body TEXT,
    excerpt VARCHAR(500) NOT NULL DEFAULT '',
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    featured_image VARCHAR(500) NOT NULL DEFAULT '',
    author_id INTEGER NOT NULL,
    template VARCHAR(100) NOT NULL DEFAULT '',
    sort_order INTEGER NOT NULL DEFAULT 0,
    meta TEXT,
    seo_title VARCHAR(200) NOT NULL DEFAULT '',
    seo_desc VARCHAR(500) NOT NULL DEFAULT '',
    seo_keywords VARCHAR(500) NOT NULL DEFAULT '',
    published_at TEXT,
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_pages_status ON pages (status);
CREATE INDEX IF NOT EXISTS idx_pages_author_id ON pages (author_id);
CREATE INDEX IF NOT EXISTS idx_pages_published_at ON pages (published_at);
CREATE INDEX IF NOT EXISTS idx_pages_deleted_at ON pages (deleted_at);
"""


def create_page_tables(conn: sqlite3.Connection) -> None:
    """Create the pages table if it is missing."""
    conn.executescript(_SCHEMA)