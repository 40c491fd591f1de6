"""Media business logic: file uploads, storage and folder management."""

from __future__ import annotations

import shutil
import sqlite3
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO

from .errors import CmsError, ConflictError, NotFoundError, ValidationError
from .media_model import Media, MediaFolder

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_MEDIA_NOT_FOUND = "媒体文件不存在"
_FOLDER_NOT_FOUND = "文件夹不存在"
_DEFAULT_MIME = "application/octet-stream"

EventSink = Callable[[str, dict], None]

ALLOWED_EXTENSIONS = frozenset(
    {
        # images
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".svg", ".ico", ".tiff", ".tif",
        # video
        ".mp4", ".avi", ".mov", ".wmv", ".flv", ".mkv", ".webm", ".m4v",
        # audio
        ".mp3", ".wav", ".ogg", ".flac", ".aac", ".wma", ".m4a",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".csv", ".rtf",
        ".odt", ".ods", ".odp",
        # archives
        ".zip", ".rar", ".7z", ".tar", ".gz",
    }
)


def _extension(filename: str) -> str:
    """Suffix from the last dot of the final path element, dot included."""
    base = filename.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def is_allowed_file_type(filename: str) -> bool:
    """True when the file's extension is on the upload whitelist."""
    return _extension(filename).lower() in ALLOWED_EXTENSIONS


def _db_time(value: datetime) -> str:
    return value.strftime(_TIME_FORMAT)


class MediaLogic:
    """Media operations on an SQLite connection and an upload directory."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        upload_path: str | Path,
        emit: EventSink | None = None,
    ) -> None:
        self._conn = conn
        self._upload_path = Path(upload_path)
        self._emit = emit or (lambda name, payload: None)

    # -- uploads -----------------------------------------------------------

    def upload(
        self,
        stream: BinaryIO,
        filename: str,
        content_type: str = "",
        size: int = 0,
        folder_id: int | None = None,
        user_id: int = 0,
    ) -> Media:
        """Store an uploaded file under uploads/YYYY/MM and record it."""
        ext = _extension(filename)
        if ext.lower() not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"不允许上传该类型的文件：{ext}")

        now = datetime.now()
        rel_dir = f"uploads/{now.year}/{now.month:02d}"
        try:
            (self._upload_path / rel_dir).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CmsError(f"创建目录失败: {exc}") from exc

        storage_path = f"{rel_dir}/{time.time_ns()}{ext.lower()}"
        full_path = self._upload_path / storage_path

        try:
            dst = full_path.open("wb")
        except OSError as exc:
            raise CmsError(f"创建文件失败: {exc}") from exc
        with dst:
            try:
                shutil.copyfileobj(stream, dst)
            except OSError as exc:
                dst.close()
                full_path.unlink(missing_ok=True)
                raise CmsError(f"写入文件失败: {exc}") from exc

        mime_type = content_type or _DEFAULT_MIME
        media = Media(
            folder_id=folder_id,
            filename=filename,
            storage_path="/" + storage_path,
            mime_type=mime_type,
            size=size,
            uploaded_by=user_id,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO media (folder_id, filename, storage_path, mime_type, size, "
                    "uploaded_by, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        media.folder_id,
                        media.filename,
                        media.storage_path,
                        media.mime_type,
                        media.size,
                        media.uploaded_by,
                        _db_time(now),
                        _db_time(now),
                    ),
                )
        except sqlite3.DatabaseError as exc:
            full_path.unlink(missing_ok=True)
            raise CmsError(f"保存记录失败: {exc}") from exc

        media.id = cursor.lastrowid
        media.fill_url()
        self._emit("media.uploaded", {"media_id": media.id, "mime_type": mime_type})
        return media

    # -- media records -----------------------------------------------------

    def list(
        self,
        folder_id: int | None = None,
        mime_prefix: str = "",
        page: int = 1,
        page_size: int = 20,
        owner_id: int = 0,
    ) -> tuple[list[Media], int]:
        """Media page, newest first, filtered by folder, MIME prefix and owner."""
        conditions = ["deleted_at IS NULL"]
        params: list[Any] = []
        if folder_id is not None:
            conditions.append("folder_id = ?")
            params.append(folder_id)
        if mime_prefix:
            conditions.append("mime_type LIKE ?")
            params.append(mime_prefix + "%")
        if owner_id > 0:
            conditions.append("uploaded_by = ?")
            params.append(owner_id)
        where = " AND ".join(conditions)

        (total,) = self._conn.execute(
            f"SELECT COUNT(*) FROM media WHERE {where}", tuple(params)
        ).fetchone()
        rows = self._rows(
            f"SELECT * FROM media WHERE {where} ORDER BY created_at DESC, id DESC "
            "LIMIT ? OFFSET ?",
            [*params, page_size, (page - 1) * page_size],
        )
        items = [Media(**row) for row in rows]
        for item in items:
            item.fill_url()
        return items, total

    def get_by_id(self, media_id: int) -> Media:
        media = self._find(media_id)
        if media is None:
            raise NotFoundError(_MEDIA_NOT_FOUND)
        media.fill_url()
        return media

    def update(self, media_id: int, alt: str, title: str) -> None:
        """Replace the alt text and title of a media record."""
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "UPDATE media SET alt = ?, title = ?, updated_at = ? "
                    "WHERE id = ? AND deleted_at IS NULL",
                    (alt, title, _db_time(datetime.now()), media_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(str(exc)) from exc
        if cursor.rowcount == 0:
            raise NotFoundError(_MEDIA_NOT_FOUND)

    def delete(self, media_id: int) -> None:
        """Soft-delete the record and remove the stored file."""
        media = self._find(media_id)
        if media is None:
            raise NotFoundError(_MEDIA_NOT_FOUND)
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE media SET deleted_at = ? WHERE id = ?",
                    (_db_time(datetime.now()), media_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"删除失败: {exc}") from exc

        full_path = self._upload_path / media.storage_path.lstrip("/")
        try:
            full_path.unlink(missing_ok=True)
        except OSError:
            pass

        self._emit("media.deleted", {"media_id": media_id, "mime_type": ""})

    # -- folders -----------------------------------------------------------

    def list_folders(self) -> list[MediaFolder]:
        """Root folders with their direct children, ordered by sort then id."""
        roots = [
            MediaFolder(**row)
            for row in self._rows(
                "SELECT * FROM media_folders WHERE parent_id IS NULL ORDER BY sort, id"
            )
        ]
        if not roots:
            return roots
        by_id = {folder.id: folder for folder in roots}
        placeholders = ", ".join("?" for _ in by_id)
        for row in self._rows(
            f"SELECT * FROM media_folders WHERE parent_id IN ({placeholders}) ORDER BY sort, id",
            tuple(by_id),
        ):
            child = MediaFolder(**row)
            by_id[child.parent_id].children.append(child)
        return roots

    def create_folder(self, name: str, parent_id: int | None = None) -> MediaFolder:
        now = datetime.now()
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO media_folders (name, parent_id, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?)",
                    (name, parent_id, _db_time(now), _db_time(now)),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"创建文件夹失败: {exc}") from exc
        return MediaFolder(
            id=cursor.lastrowid, name=name, parent_id=parent_id, created_at=now, updated_at=now
        )

    def rename_folder(self, folder_id: int, name: str) -> None:
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "UPDATE media_folders SET name = ?, updated_at = ? WHERE id = ?",
                    (name, _db_time(datetime.now()), folder_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(str(exc)) from exc
        if cursor.rowcount == 0:
            raise NotFoundError(_FOLDER_NOT_FOUND)

    def delete_folder(self, folder_id: int) -> None:
        """Delete a folder that holds neither child folders nor files."""
        (children,) = self._conn.execute(
            "SELECT COUNT(*) FROM media_folders WHERE parent_id = ?", (folder_id,)
        ).fetchone()
        if children > 0:
            raise ConflictError("文件夹下有子文件夹，无法删除")
        (files,) = self._conn.execute(
            "SELECT COUNT(*) FROM media WHERE folder_id = ? AND deleted_at IS NULL", (folder_id,)
        ).fetchone()
        if files > 0:
            raise ConflictError("文件夹下有文件，无法删除")
        try:
            with self._conn:
                self._conn.execute("DELETE FROM media_folders WHERE id = ?", (folder_id,))
        except sqlite3.DatabaseError as exc:
            raise CmsError(str(exc)) from exc

    # -- helpers -----------------------------------------------------------

    def _rows(self, sql: str, params: Iterable[Any] = ()) -> list[dict]:
        cursor = self._conn.execute(sql, tuple(params))
        names = [column[0] for column in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _find(self, media_id: int) -> Media | None:
        rows = self._rows(
            "SELECT * FROM media WHERE id = ? AND deleted_at IS NULL LIMIT 1", (media_id,)
        )
        return Media(**rows[0]) if rows else None