"""Request handling for the administrative media endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO

from .errors import ValidationError
from .media_logic import MediaLogic
from .media_model import Media, MediaFolder
from .rbac import RequestContext, enforce_rbac_scope, rbac_owner_filter

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_PAGE_SIZE = 100


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


def _check_name(name: str) -> None:
    if not name:
        raise ValidationError("name is required")


@dataclass
class MediaDetail:
    """Media record as returned by the detail endpoint."""

    id: int
    filename: str
    url: str
    mime_type: str
    size: int
    alt: str
    title: str
    uploaded_by: int
    created_at: str


@dataclass
class UploadResult:
    """Summary of a freshly uploaded file."""

    id: int
    url: str
    filename: str
    mime_type: str
    size: int


class MediaAdminController:
    """Media and folder endpoints, honouring the "own" RBAC scope."""

    def __init__(self, logic: MediaLogic) -> None:
        self._logic = logic

    def list_media(
        self,
        ctx: RequestContext,
        folder_id: int | None = None,
        mime_prefix: str = "",
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        _check_paging(page, page_size)
        items, total = self._logic.list(
            folder_id, mime_prefix, page, page_size, rbac_owner_filter(ctx)
        )
        return {"list": items, "total": total, "page": page, "page_size": page_size}

    def upload_media(
        self,
        ctx: RequestContext,
        stream: BinaryIO | None,
        filename: str,
        content_type: str = "",
        size: int = 0,
        folder_id: int | None = None,
    ) -> UploadResult:
        """Store the uploaded file on behalf of the caller."""
        if stream is None or not filename:
            raise ValidationError("请选择要上传的文件")
        media = self._logic.upload(stream, filename, content_type, size, folder_id, ctx.user_id)
        return UploadResult(
            id=media.id,
            url=media.url,
            filename=media.filename,
            mime_type=media.mime_type,
            size=media.size,
        )

    def get_media(self, ctx: RequestContext, media_id: int) -> MediaDetail:
        _check_id(media_id)
        media = self._logic.get_by_id(media_id)
        enforce_rbac_scope(ctx, media.uploaded_by)
        return MediaDetail(
            id=media.id,
            filename=media.filename,
            url=media.url,
            mime_type=media.mime_type,
            size=media.size,
            alt=media.alt,
            title=media.title,
            uploaded_by=media.uploaded_by,
            created_at=_display(media.created_at),
        )

    def update_media(self, ctx: RequestContext, media_id: int, alt: str = "", title: str = "") -> None:
        _check_id(media_id)
        self._owned(ctx, media_id)
        self._logic.update(media_id, alt, title)

    def delete_media(self, ctx: RequestContext, media_id: int) -> None:
        _check_id(media_id)
        self._owned(ctx, media_id)
        self._logic.delete(media_id)

    def list_folders(self, ctx: RequestContext) -> dict[str, list[MediaFolder]]:
        return {"list": self._logic.list_folders()}

    def create_folder(self, ctx: RequestContext, name: str, parent_id: int | None = None) -> int:
        _check_name(name)
        return self._logic.create_folder(name, parent_id).id

    def rename_folder(self, ctx: RequestContext, folder_id: int, name: str) -> None:
        _check_id(folder_id)
        _check_name(name)
        self._logic.rename_folder(folder_id, name)

    def delete_folder(self, ctx: RequestContext, folder_id: int) -> None:
        _check_id(folder_id)
        self._logic.delete_folder(folder_id)

    def _owned(self, ctx: RequestContext, media_id: int) -> Media:
        existing = self._logic.get_by_id(media_id)
        enforce_rbac_scope(ctx, existing.uploaded_by)
        return existing