import sqlite3
from datetime import datetime

import pytest

from contentkit.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from contentkit.page_controller import (
    CreatePageRequest,
    PageAdminController,
    PagePublicController,
    UpdatePageRequest,
    to_page_detail,
)
from contentkit.page_logic import PageLogic
from contentkit.page_model import Page, PageMeta, PageStatus, create_page_tables
from contentkit.rbac import RequestContext


@pytest.fixture
def logic():
    conn = sqlite3.connect(":memory:")
    create_page_tables(conn)
    yield PageLogic(conn)
    conn.close()


@pytest.fixture
def admin(logic):
    return PageAdminController(logic)


@pytest.fixture
def public(logic):
    return PagePublicController(logic)


ALICE = RequestContext(user_id=1)
BOB_OWN = RequestContext(user_id=2, rbac_scope="own", rbac_user_id=2)


def _create(admin, ctx=ALICE, slug="about", title="About"):
    return admin.create_page(ctx, CreatePageRequest(title=title, slug=slug, body="hello"))


def test_create_and_get_sets_author_and_draft(admin):
    page_id = _create(admin)
    detail = admin.get_page(ALICE, page_id)
    assert detail.id == page_id
    assert detail.title == "About"
    assert detail.slug == "about"
    assert detail.author_id == 1
    assert detail.status == PageStatus.DRAFT
    assert detail.published_at is None


@pytest.mark.parametrize(
    "request_",
    [
        CreatePageRequest(title="", slug="ok"),
        CreatePageRequest(title="T", slug=""),
        CreatePageRequest(title="T", slug="Bad Slug"),
        CreatePageRequest(title="x" * 256, slug="ok"),
    ],
)
def test_create_validation(admin, request_):
    with pytest.raises(ValidationError):
        admin.create_page(ALICE, request_)


def test_title_at_limit_is_accepted(admin):
    title = "x" * 255
    page_id = admin.create_page(ALICE, CreatePageRequest(title=title, slug="a-1"))
    detail = admin.get_page(ALICE, page_id)
    assert detail.title == title
    assert detail.slug == "a-1"


def test_duplicate_slug_conflicts(admin):
    _create(admin)
    with pytest.raises(ConflictError):
        _create(admin)


def test_own_scope_blocks_other_authors(admin):
    page_id = _create(admin)
    with pytest.raises(PermissionDenied):
        admin.get_page(BOB_OWN, page_id)
    with pytest.raises(PermissionDenied):
        admin.delete_page(BOB_OWN, page_id)
    assert admin.get_page(ALICE, page_id).id == page_id


def test_list_filters_by_owner_under_own_scope(admin):
    _create(admin, ALICE, slug="a")
    _create(admin, RequestContext(user_id=2), slug="b")
    result = admin.list_pages(BOB_OWN)
    assert result["total"] == 1
    assert [p.slug for p in result["list"]] == ["b"]
    assert admin.list_pages(ALICE)["total"] == 2


def test_publish_and_unpublish_control_public_access(admin, public):
    page_id = _create(admin)
    with pytest.raises(NotFoundError):
        public.get_page(page_id)
    admin.publish_page(ALICE, page_id)
    detail = public.get_page_by_slug("about")
    assert detail.id == page_id
    assert detail.status == PageStatus.PUBLISHED
    assert detail.published_at
    assert public.list_pages()["total"] == 1
    admin.unpublish_page(ALICE, page_id)
    with pytest.raises(NotFoundError):
        public.get_page(page_id)


def test_update_changes_fields(admin):
    page_id = _create(admin)
    admin.update_page(
        ALICE, UpdatePageRequest(id=page_id, title="New", page_meta=PageMeta(meta_title="M"))
    )
    detail = admin.get_page(ALICE, page_id)
    assert detail.title == "New"
    assert detail.slug == "about"
    assert detail.meta.meta_title == "M"


def test_update_rejects_bad_id(admin):
    with pytest.raises(ValidationError):
        admin.update_page(ALICE, UpdatePageRequest(id=0, title="x"))


def test_delete_removes_page(admin):
    page_id = _create(admin)
    admin.delete_page(ALICE, page_id)
    with pytest.raises(NotFoundError):
        admin.get_page(ALICE, page_id)


@pytest.mark.parametrize("page,page_size", [(0, 20), (1, 0), (1, 101)])
def test_paging_validation(public, admin, page, page_size):
    with pytest.raises(ValidationError):
        public.list_pages(page, page_size)
    with pytest.raises(ValidationError):
        admin.list_pages(ALICE, "", page, page_size)


def test_public_slug_required(public):
    with pytest.raises(ValidationError):
        public.get_page_by_slug("")


def test_to_page_detail_formats_times():
    stamp = datetime(2024, 1, 2, 3, 4, 5)
    detail = to_page_detail(Page(id=7, title="T", created_at=stamp, updated_at=stamp))
    assert detail.created_at == "2024-01-02 03:04:05"
    assert detail.updated_at == detail.created_at
    assert detail.published_at is None
    published = to_page_detail(Page(id=7, published_at=stamp))
    assert published.published_at == "2024-01-02 03:04:05"