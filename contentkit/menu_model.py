"""Menu items, their tree form and storage schema."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime


def _parse_time(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class MenuTree:
    """A node of a menu tree, holding its child nodes."""

    id: int = 0
    name: str = ""
    group: str = ""
    parent_id: int | None = None
    order: int = 0
    url: str = ""
    icon: str = ""
    target: str = ""
    status: str = ""
    children: list[MenuTree] = field(default_factory=list)


@dataclass
class MenuItem:
    """A stored menu entry; ``parent_id`` of None marks a root entry."""

    id: int = 0
    name: str = ""
    group: str = ""
    parent_id: int | None = None
    order: int = 0
    url: str = ""
    icon: str = ""
    target: str = "_self"
    status: str = "active"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    children: list[MenuItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.created_at = _parse_time(self.created_at)
        self.updated_at = _parse_time(self.updated_at)
        self.deleted_at = _parse_time(self.deleted_at)

    def to_tree(self) -> MenuTree:
        """Return a childless tree node carrying this item's fields."""
        return MenuTree(
            id=self.id,
            name=self.name,
            group=self.group,
            parent_id=self.parent_id,
            order=self.order,
            url=self.url,
            icon=self.icon,
            target=self.target,
            status=self.status,
        )


@dataclass
class MenuGroup:
    """A menu group with its display label and number of items."""

    name: str
    label: str
    count: int


_SCHEMA = """
CREATE TABLE IF NOT EXISTS menu_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(100) NOT NULL,
    "group" VARCHAR(50) NOT NULL,
    parent_id INTEGER DEFAULT NULL,
    "order" INTEGER NOT NULL DEFAULT 0,
    url VARCHAR(500) NOT NULL DEFAULT '',
    icon VARCHAR(100) NOT NULL DEFAULT '',
    target VARCHAR(20) NOT NULL DEFAULT '_self',
    status VARCHAR(20) NOT NULL DEFAULT 'active',
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_menu_group ON menu_items ("group");
CREATE INDEX IF NOT EXISTS idx_menu_items_parent_id ON menu_items (parent_id);
CREATE INDEX IF NOT EXISTS idx_menu_items_deleted_at ON menu_items (deleted_at);
"""


def create_menu_tables(conn: sqlite3.Connection) -> None:
    """Create the menu-items table if it is missing."""
    conn.executescript(_SCHEMA)