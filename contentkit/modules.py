"""Descriptions of the built-in content modules and media module setup."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .media_logic import EventSink, MediaLogic
from .media_model import create_media_tables

DEFAULT_UPLOAD_PATH = "data/uploads"


class ModuleKind(str, Enum):
    """Role a module plays in the system."""

    UNSPECIFIED = ""
    INFRASTRUCTURE = "infrastructure"


@dataclass(frozen=True)
class PermissionDef:
    """An action a module lets roles be granted."""

    action: str
    description: str


@dataclass(frozen=True)
class ModuleSchema:
    """Kind and permission set a module declares."""

    kind: ModuleKind = ModuleKind.UNSPECIFIED
    permissions: tuple[PermissionDef, ...] = ()


@dataclass(frozen=True)
class ModuleDescriptor:
    """Identity, dependencies and schema of a module."""

    name: str
    description: str
    version: str = "1.0.0"
    dependencies: tuple[str, ...] = ()
    schema: ModuleSchema = field(default_factory=ModuleSchema)


_MEDIA_SCHEMA = ModuleSchema(
    kind=ModuleKind.INFRASTRUCTURE,
    permissions=(
        PermissionDef("create", "上传文件"),
        PermissionDef("read", "查看媒体"),
        PermissionDef("update", "编辑媒体信息"),
        PermissionDef("delete", "删除文件"),
    ),
)


def builtin_modules() -> list[ModuleDescriptor]:
    """Descriptors of the article, media, menu and page modules."""
    return [
        ModuleDescriptor(name="article", description="模块"),
        ModuleDescriptor(
            name="media",
            description="媒体文件管理",
            dependencies=("user",),
            schema=_MEDIA_SCHEMA,
        ),
        ModuleDescriptor(name="menu", description="模块"),
        ModuleDescriptor(name="page", description="模块"),
    ]


def setup_media(
    conn: sqlite3.Connection,
    upload_path: str | Path = DEFAULT_UPLOAD_PATH,
    emit: EventSink | None = None,
) -> MediaLogic:
    """Create the media tables and upload directory and return the media service."""
    create_media_tables(conn)
    path = Path(upload_path)
    path.mkdir(parents=True, exist_ok=True)
    return MediaLogic(conn, path, emit)