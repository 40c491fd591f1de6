import re
import sqlite3
from datetime import datetime

import pytest

from contentkit.article_controller import (
    AdminArticleController,
    CreateArticleRequest,
    PublicArticleController,
    UpdateArticleRequest,
    format_time,
    to_article_detail,
)
from contentkit.article_logic import ArticleLogic
from contentkit.article_model import Article, create_article_tables
from contentkit.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from contentkit.rbac import RequestContext

TIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")


@pytest.fixture
def logic():
    conn = sqlite3.connect(":memory:")
    create_article_tables(conn)
    events = []
    article_logic = ArticleLogic(conn, lambda name, payload: events.append(name))
    article_logic.events = events
    yield article_logic
    conn.close()


@pytest.fixture
def admin(logic):
    return AdminArticleController(logic)


@pytest.fixture
def public(logic):
    return PublicArticleController(logic)


def ctx_for(user_id, scope="all"):
    return RequestContext(user_id=user_id, rbac_scope=scope, rbac_user_id=user_id)


def make_request(slug, **extra):
    return CreateArticleRequest(title=f"Title {slug}", slug=slug, body="<p>text</p>", **extra)


def test_format_time_none_is_empty():
    assert format_time(None) == ""


def test_format_time_layout():
    assert format_time(datetime(2024, 3, 5, 7, 8, 9)) == "2024-03-05 07:08:09"


def test_to_article_detail_none():
    assert to_article_detail(None) is None


def test_to_article_detail_copies_fields():
    article = Article(id=5, title="T", slug="t", body="b", author_id=2, category_ids=[1, 2])
    detail = to_article_detail(article)
    assert (detail.id, detail.title, detail.slug, detail.author_id) == (5, "T", "t", 2)
    assert detail.category_ids == [1, 2]
    assert detail.published_at == ""


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "", "slug": "a", "body": "b"},
        {"title": "x" * 201, "slug": "a", "body": "b"},
        {"title": "t", "slug": "", "body": "b"},
        {"title": "t", "slug": "Bad Slug", "body": "b"},
        {"title": "t", "slug": "a", "body": ""},
        {"title": "t", "slug": "a", "body": "b", "status": "deleted"},
    ],
)
def test_create_request_validation_errors(fields):
    with pytest.raises(ValidationError):
        CreateArticleRequest(**fields).validate()


@pytest.mark.parametrize(
    "fields",
    [
        {"id": 0},
        {"id": 1, "slug": "UPPER"},
        {"id": 1, "slug": "a" * 201},
        {"id": 1, "status": "gone"},
    ],
)
def test_update_request_validation_errors(fields):
    with pytest.raises(ValidationError):
        UpdateArticleRequest(**fields).validate()


def test_update_request_allows_empty_fields():
    assert UpdateArticleRequest(id=1).validate() is None


def test_create_sets_author_from_context(admin):
    new_id = admin.create_article(ctx_for(9), make_request("first", category_ids=[3], tag_ids=[4]))
    detail = admin.get_article(ctx_for(9), new_id)
    assert detail.author_id == 9
    assert detail.category_ids == [3]
    assert detail.tag_ids == [4]
    assert detail.status == "draft"
    assert TIME_PATTERN.fullmatch(detail.created_at)


def test_create_ignores_author_in_request(admin):
    new_id = admin.create_article(ctx_for(9), make_request("mine", author_id=42))
    assert admin.get_article(ctx_for(9), new_id).author_id == 9


def test_create_duplicate_slug_conflicts(admin):
    admin.create_article(ctx_for(1), make_request("same"))
    with pytest.raises(ConflictError):
        admin.create_article(ctx_for(1), make_request("same"))


def test_create_published_sets_published_at(admin, public):
    new_id = admin.create_article(ctx_for(1), make_request("live", status="published"))
    detail = public.get_article(new_id)
    assert TIME_PATTERN.fullmatch(detail.published_at)
    assert public.get_article_by_slug("live").id == new_id


def test_public_hides_drafts(admin, public):
    new_id = admin.create_article(ctx_for(1), make_request("hidden"))
    with pytest.raises(NotFoundError):
        public.get_article(new_id)
    listing = public.list_articles()
    assert listing["total"] == 0
    assert listing["list"] == []


def test_admin_list_paginates(admin):
    for slug in ("a", "b", "c"):
        admin.create_article(ctx_for(1), make_request(slug))
    listing = admin.list_articles(ctx_for(1), page=1, page_size=2)
    assert listing["total"] == 3
    assert len(listing["list"]) == 2
    assert listing["page"] == 1
    assert listing["page_size"] == 2


def test_admin_list_own_scope_filters_by_owner(admin):
    admin.create_article(ctx_for(1), make_request("one"))
    admin.create_article(ctx_for(2), make_request("two"))
    listing = admin.list_articles(ctx_for(1, "own"))
    assert listing["total"] == 1
    assert [a.slug for a in listing["list"]] == ["one"]


@pytest.mark.parametrize("page,page_size", [(0, 20), (1, 0), (1, 101)])
def test_list_rejects_bad_paging(admin, public, page, page_size):
    with pytest.raises(ValidationError):
        admin.list_articles(ctx_for(1), page=page, page_size=page_size)
    with pytest.raises(ValidationError):
        public.list_articles(page=page, page_size=page_size)


def test_get_foreign_article_under_own_scope_denied(admin):
    new_id = admin.create_article(ctx_for(1), make_request("private"))
    with pytest.raises(PermissionDenied):
        admin.get_article(ctx_for(2, "own"), new_id)


def test_update_changes_fields(admin):
    new_id = admin.create_article(ctx_for(1), make_request("edit"))
    admin.update_article(
        ctx_for(1), UpdateArticleRequest(id=new_id, title="New title", category_ids=[8])
    )
    detail = admin.get_article(ctx_for(1), new_id)
    assert detail.title == "New title"
    assert detail.slug == "edit"
    assert detail.category_ids == [8]


def test_update_foreign_article_denied_and_unchanged(admin):
    new_id = admin.create_article(ctx_for(1), make_request("guarded"))
    with pytest.raises(PermissionDenied):
        admin.update_article(ctx_for(2, "own"), UpdateArticleRequest(id=new_id, title="Hijack"))
    assert admin.get_article(ctx_for(1), new_id).title == "Title guarded"


def test_update_missing_article(admin):
    with pytest.raises(NotFoundError):
        admin.update_article(ctx_for(1), UpdateArticleRequest(id=123, title="x"))


def test_delete_removes_article(admin):
    new_id = admin.create_article(ctx_for(1), make_request("gone"))
    admin.delete_article(ctx_for(1), new_id)
    with pytest.raises(NotFoundError):
        admin.get_article(ctx_for(1), new_id)


def test_delete_foreign_denied(admin):
    new_id = admin.create_article(ctx_for(1), make_request("keep"))
    with pytest.raises(PermissionDenied):
        admin.delete_article(ctx_for(2, "own"), new_id)
    assert admin.get_article(ctx_for(1), new_id).id == new_id


def test_publish_and_unpublish_round_trip(admin, public, logic):
    new_id = admin.create_article(ctx_for(1), make_request("cycle"))
    admin.publish_article(ctx_for(1), new_id)
    assert public.get_article(new_id).status == "published"
    admin.unpublish_article(ctx_for(1), new_id)
    assert admin.get_article(ctx_for(1), new_id).status == "draft"
    with pytest.raises(NotFoundError):
        public.get_article(new_id)
    assert logic.events == ["article.created", "article.published", "article.archived"]


def test_invalid_ids_rejected(admin, public):
    with pytest.raises(ValidationError):
        admin.get_article(ctx_for(1), 0)
    with pytest.raises(ValidationError):
        public.get_article(0)
    with pytest.raises(ValidationError):
        public.get_article_by_slug("")