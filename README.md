# contentkit

Building blocks for a small content management system. Everything is
stored in SQLite through the standard `sqlite3` module, and the package
has no third-party dependencies. It covers four areas:

- **articles**: drafts, publishing, unique slugs, category and tag links,
  and HTML bodies cleaned of scripts, event handlers and unsafe URLs
- **pages**: standalone pages with SEO metadata (`PageMeta`), publish and
  unpublish
- **menus**: menu items in named groups, arranged as trees, with moving,
  reordering and cascading deletion
- **media**: file uploads checked against an extension allow-list, stored
  under `uploads/YYYY/MM`, and a folder tree

Each area has a model module (`article_model`, `page_model`, `menu_model`,
`media_model`) with dataclasses and a `create_*_tables(conn)` function, a
logic module (`ArticleLogic`, `PageLogic`, `MenuLogic`, `MediaLogic`) that
does the work, and a controller module that validates request input and
applies access checks.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Articles

```python
import sqlite3

from contentkit.article_model import Article, create_article_tables
from contentkit.article_logic import ArticleLogic

conn = sqlite3.connect(":memory:")
create_article_tables(conn)

articles = ArticleLogic(conn)
created = articles.create(
    Article(title="Hello", slug="hello", body="<p>Hi</p><script>x()</script>", author_id=1),
    category_ids=[1],
    tag_ids=[2, 3],
)
articles.publish(created.id, user_id=1)
items, total = articles.list_public(page=1, page_size=20)
```

`list_public` returns published articles only, pinned (`is_top`) ones
first. `list(status, page, page_size, owner_id)` returns articles of every
status, newest first. Deleting is a soft delete. The HTML cleaning is also
available on its own as `contentkit.sanitize.sanitize_html`.

## Pages

```python
from contentkit.page_model import PageMeta, create_page_tables
from contentkit.page_logic import PageLogic

create_page_tables(conn)
pages = PageLogic(conn)
about = pages.create("About", "about", body="<p>About us</p>",
                     meta=PageMeta(meta_title="About"), author_id=1)
pages.publish(about.id, user_id=1)
page = pages.get_published_by_slug("about")
```

New pages start as drafts. In `update`, empty strings and `None` leave a
field unchanged.

## Menus

```python
from contentkit.menu_model import create_menu_tables
from contentkit.menu_logic import MenuLogic

create_menu_tables(conn)
menus = MenuLogic(conn)
menus.init_default_menus()
tree = menus.get_tree("main")
```

`get_tree` holds active items only, while `get_tree_all` holds disabled
ones too. `get_tree_with_depth` cuts the tree to a number of levels.
`list_groups` returns the groups in use with their item counts. When there
are no items, it returns the default `main` and `footer` groups. A parent
must be in the same group as its child, and an item cannot become the
child of itself or of one of its descendants. `move` carries the whole
subtree into the new group.

## Media

```python
from contentkit.modules import setup_media

media = setup_media(conn, "data/uploads")
with open("photo.jpg", "rb") as stream:
    stored = media.upload(stream, "photo.jpg", "image/jpeg", size=1024, user_id=1)
print(stored.url)  # e.g. /uploads/2025/01/1735689600000000000.jpg
```

`setup_media` creates the tables and the upload directory, then returns a
`MediaLogic`. Files whose extension is not allowed raise
`ValidationError`, and `is_allowed_file_type` tells which names pass.
Deleting a media record soft-deletes it and removes the stored file. A
folder can be deleted only when it has no child folders and no files.

## Controllers and access checks

The controller classes are `PublicArticleController`,
`AdminArticleController`, `PagePublicController`, `PageAdminController`,
`MenuAdminController`, `MenuPublicController` and `MediaAdminController`.
Each wraps a logic object and checks input such as ids, paging (page size
from 1 to 100), slugs and allowed status values. The admin controllers for
articles, pages and media take a `RequestContext` from `contentkit.rbac`:

```python
from contentkit.article_controller import AdminArticleController
from contentkit.rbac import RequestContext

ctx = RequestContext(user_id=2, rbac_scope="own", rbac_user_id=2)
admin = AdminArticleController(articles)
result = admin.list_articles(ctx)  # only articles authored by user 2
```

With scope `own`, listings are filtered to the caller's items. Reading or
changing another user's item raises `PermissionDenied`.

## Events

Each logic class takes an optional `emit(name, payload)` callable, which
it calls synchronously after a change. The events are:

| Area | Events |
| --- | --- |
| Articles | `article.created`, `article.updated`, `article.deleted`, `article.published`, `article.archived` |
| Pages | `page.created`, `page.updated`, `page.deleted`, `page.published`, `page.unpublished` |
| Menus | `menu.created`, `menu.updated`, `menu.deleted`, `menu.moved` |
| Media | `media.uploaded`, `media.deleted` |

## Errors

Failures raise exceptions from `contentkit.errors`, all derived from
`CmsError`. Each one carries a `status_code`:

| Exception | Meaning | `status_code` |
| --- | --- | --- |
| `NotFoundError` | the record does not exist | 404 |
| `ConflictError` | the data clashes, e.g. a slug is already in use | 409 |
| `ValidationError` | the input is invalid | 400 |
| `PermissionDenied` | the caller does not own the item | 403 |

## Modules

`contentkit.modules.builtin_modules()` describes the article, media, menu
and page modules: name, description, version, dependencies and permission
schema.

## What this package does not do

- It has no HTTP server or routing. The controllers are plain Python
  objects, and you wire them into a web framework yourself.
- It does not authenticate users. The caller supplies `RequestContext`.
- It does not include the user module that the media module's descriptor
  lists as a dependency.
- It does not manage database connections. You open and pass an
  `sqlite3.Connection`.