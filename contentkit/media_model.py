"""Media file and folder records and their storage schema."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime


def _parse_time(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class Media:
    """An uploaded file; ``url`` is derived from ``storage_path``."""

    id: int = 0
    folder_id: int | None = None
    filename: str = ""
    storage_path: str = ""
    url: str = ""
    mime_type: str = ""
    size: int = 0
    width: int | None = None
    height: int | None = None
    alt: str = ""
    title: str = ""
    uploaded_by: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        self.created_at = _parse_time(self.created_at)
        self.updated_at = _parse_time(self.updated_at)
        self.deleted_at = _parse_time(self.deleted_at)

    def fill_url(self) -> None:
        """Set the public URL; the storage path already is the web path."""
        self.url = self.storage_path


@dataclass
class MediaFolder:
    """A folder of media files, possibly holding child folders."""

    id: int = 0
    name: str = ""
    parent_id: int | None = None
    sort: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    children: list[MediaFolder] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.created_at = _parse_time(self.created_at)
        self.updated_at = _parse_time(self.updated_at)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    folder_id INTEGER,
    filename VARCHAR(255) NOT NULL,
    storage_path VARCHAR(500) NOT NULL,
    mime_type VARCHAR(100) NOT NULL,
    size INTEGER NOT NULL,
    width INTEGER,
    height INTEGER,
    alt VARCHAR(255) NOT NULL DEFAULT '',
    title VARCHAR(255) NOT NULL DEFAULT '',
    uploaded_by INTEGER NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_media_folder_id ON media (folder_id);
CREATE INDEX IF NOT EXISTS idx_media_mime_type ON media (mime_type);
CREATE INDEX IF NOT EXISTS idx_media_uploaded_by ON media (uploaded_by);
CREATE INDEX IF NOT EXISTS idx_media_deleted_at ON media (deleted_at);
CREATE TABLE IF NOT EXISTS media_folders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(100) NOT NULL,
    parent_id INTEGER,
    sort INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_media_folders_parent_id ON media_folders (parent_id);
"""


def create_media_tables(conn: sqlite3.Connection) -> None:
    """Create the media and media-folder tables if they are missing."""
    conn.executescript(_SCHEMA)