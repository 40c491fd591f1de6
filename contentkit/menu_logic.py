"""Menu business logic: item CRUD and tree management."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from .errors import CmsError, NotFoundError, ValidationError
from .menu_model import MenuGroup, MenuItem, MenuTree

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_NOT_FOUND = "菜单项不存在"
_PARENT_NOT_FOUND = "父菜单项不存在"
_PARENT_OTHER_GROUP = "父菜单项必须在同一分组"
_SELF_PARENT = "不能将菜单项设为自己的父节点"
_CHILD_PARENT = "不能将子节点设为父节点"

EventSink = Callable[[str, dict], None]

_GROUP_LABELS = {
    "main": "主导航",
    "footer": "页脚导航",
    "sidebar": "侧边栏",
    "user": "用户中心",
    "admin": "后台管理",
    "mobile": "移动端导航",
}

_DEFAULT_MENUS = (
    ("首页", "main", 1, "/"),
    ("关于我们", "main", 2, "/about"),
    ("联系我们", "main", 3, "/contact"),
)


def _now() -> str:
    return datetime.now().strftime(_TIME_FORMAT)


def group_label(name: str) -> str:
    """Display label of a menu group; unknown groups are shown by name."""
    return _GROUP_LABELS.get(name, name)


def _sort_tree(nodes: list[MenuTree]) -> None:
    nodes.sort(key=lambda node: (node.order, node.id))
    for node in nodes:
        if node.children:
            _sort_tree(node.children)


def _trim_depth(nodes: list[MenuTree], depth: int, max_depth: int) -> None:
    for node in nodes:
        if depth >= max_depth:
            node.children = []
        elif node.children:
            _trim_depth(node.children, depth + 1, max_depth)


def build_tree(items: Iterable[MenuItem]) -> list[MenuTree]:
    """Arrange flat items into trees; items whose parent is absent become roots."""
    items = list(items)
    nodes = {item.id: item.to_tree() for item in items}
    roots: list[MenuTree] = []
    for item in items:
        node = nodes[item.id]
        parent = nodes.get(item.parent_id) if item.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    _sort_tree(roots)
    return roots


def _event(item_id: int) -> dict:
    return {"menu_id": str(item_id)}


class MenuLogic:
    """Menu operations on an SQLite connection, emitting menu events."""

    def __init__(self, conn: sqlite3.Connection, emit: EventSink | None = None) -> None:
        self._conn = conn
        self._emit = emit or (lambda name, payload: None)

    # -- groups ------------------------------------------------------------

    def list_groups(self) -> list[MenuGroup]:
        """Groups in use with their item counts, or the default groups when none exist."""
        rows = self._conn.execute(
            'SELECT "group", COUNT(*) FROM menu_items WHERE deleted_at IS NULL '
            'GROUP BY "group" ORDER BY "group"'
        ).fetchall()
        groups = [MenuGroup(name=name, label=group_label(name), count=count) for name, count in rows]
        if not groups:
            groups = [
                MenuGroup(name="main", label="主导航", count=0),
                MenuGroup(name="footer", label="页脚导航", count=0),
            ]
        return groups

    # -- trees -------------------------------------------------------------

    def get_tree(self, group: str) -> list[MenuTree]:
        """Tree of the active items of a group."""
        self._require_group(group)
        return build_tree(
            self._items(
                '"group" = ? AND status = ?', (group, "active"), 'ORDER BY "order" ASC, id ASC'
            )
        )

    def get_tree_all(self, group: str) -> list[MenuTree]:
        """Tree of every item of a group, disabled ones included."""
        self._require_group(group)
        return build_tree(self._items('"group" = ?', (group,), 'ORDER BY "order" ASC, id ASC'))

    def get_tree_with_depth(self, group: str, max_depth: int) -> list[MenuTree]:
        """Active tree cut to ``max_depth`` levels; 0 or less means no limit."""
        tree = self.get_tree(group)
        if max_depth > 0:
            _trim_depth(tree, 1, max_depth)
        return tree

    # -- items -------------------------------------------------------------

    def create(
        self,
        name: str,
        group: str,
        parent_id: int | None = None,
        order: int = 0,
        url: str = "",
        icon: str = "",
        target: str = "",
        status: str = "",
    ) -> MenuItem:
        """Create an item; its parent, if any, must be in the same group."""
        if parent_id is not None:
            parent = self._find(parent_id)
            if parent is None:
                raise NotFoundError(_PARENT_NOT_FOUND)
            if parent.group != group:
                raise ValidationError(_PARENT_OTHER_GROUP)

        now = _now()
        item = MenuItem(
            name=name,
            group=group,
            parent_id=parent_id,
            order=order,
            url=url,
            icon=icon,
            target=target or "_self",
            status=status or "active",
            created_at=now,
            updated_at=now,
        )
        try:
            with self._conn:
                cursor = self._conn.execute(
                    'INSERT INTO menu_items (name, "group", parent_id, "order", url, icon, '
                    "target, status, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        item.name,
                        item.group,
                        item.parent_id,
                        item.order,
                        item.url,
                        item.icon,
                        item.target,
                        item.status,
                        now,
                        now,
                    ),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"创建菜单项失败: {exc}") from exc
        item.id = cursor.lastrowid
        self._emit("menu.created", _event(item.id))
        return item

    def get_by_id(self, item_id: int) -> MenuItem:
        item = self._find(item_id)
        if item is None:
            raise NotFoundError(_NOT_FOUND)
        return item

    def update(
        self,
        item_id: int,
        name: str,
        parent_id: int | None,
        order: int,
        url: str,
        icon: str,
        target: str,
        status: str,
    ) -> None:
        """Replace an item's fields; a parent id of None or 0 makes it a root."""
        item = self.get_by_id(item_id)
        new_parent = parent_id or None
        if new_parent is not None:
            self._check_parent(item_id, new_parent, item.group)

        try:
            with self._conn:
                self._conn.execute(
                    'UPDATE menu_items SET name = ?, "order" = ?, url = ?, icon = ?, target = ?, '
                    "status = ?, parent_id = ?, updated_at = ? WHERE id = ?",
                    (name, order, url, icon, target, status, new_parent, _now(), item_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"更新菜单项失败: {exc}") from exc
        self._emit("menu.updated", _event(item_id))

    def delete(self, item_id: int) -> None:
        """Soft-delete an item together with all of its descendants."""
        self.get_by_id(item_id)
        now = _now()
        try:
            with self._conn:
                for descendant in self._descendants(item_id):
                    self._soft_delete(descendant, now)
                self._soft_delete(item_id, now)
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"删除菜单项失败: {exc}") from exc
        self._emit("menu.deleted", _event(item_id))

    # -- ordering and moving -----------------------------------------------

    def reorder(self, group: str, orders: Mapping[int, int]) -> None:
        """Set order values by id; ids missing from the group are skipped."""
        try:
            with self._conn:
                for item_id, order in orders.items():
                    self._conn.execute(
                        'UPDATE menu_items SET "order" = ?, updated_at = ? '
                        'WHERE id = ? AND "group" = ? AND deleted_at IS NULL',
                        (order, _now(), item_id, group),
                    )
        except sqlite3.DatabaseError as exc:
            raise CmsError(str(exc)) from exc

    def move(self, item_id: int, new_parent_id: int | None, new_group: str) -> None:
        """Move an item under a new parent and into a group, taking its subtree along."""
        item = self.get_by_id(item_id)
        new_parent = new_parent_id or None
        if new_parent is not None:
            self._check_parent(item_id, new_parent, new_group)

        try:
            with self._conn:
                self._conn.execute(
                    'UPDATE menu_items SET "group" = ?, parent_id = ?, updated_at = ? WHERE id = ?',
                    (new_group, new_parent, _now(), item_id),
                )
        except sqlite3.DatabaseError as exc:
            raise CmsError(f"移动菜单项失败: {exc}") from exc

        if new_group != item.group:
            try:
                with self._conn:
                    for descendant in self._descendants(item_id):
                        self._conn.execute(
                            'UPDATE menu_items SET "group" = ?, updated_at = ? WHERE id = ?',
                            (new_group, _now(), descendant),
                        )
            except sqlite3.DatabaseError as exc:
                raise CmsError(str(exc)) from exc
        self._emit("menu.moved", _event(item_id))

    # -- setup -------------------------------------------------------------

    def init_default_menus(self) -> None:
        """Create the default main navigation when no menu items exist."""
        (count,) = self._conn.execute(
            "SELECT COUNT(*) FROM menu_items WHERE deleted_at IS NULL"
        ).fetchone()
        if count > 0:
            return
        now = _now()
        with self._conn:
            self._conn.executemany(
                'INSERT INTO menu_items (name, "group", "order", url, status, created_at, '
                "updated_at) VALUES (?, ?, ?, ?, 'active', ?, ?)",
                [(name, group, order, url, now, now) for name, group, order, url in _DEFAULT_MENUS],
            )

    # -- helpers -----------------------------------------------------------

    def _items(self, where: str, params: Iterable[Any], tail: str = "") -> list[MenuItem]:
        cursor = self._conn.execute(
            f"SELECT * FROM menu_items WHERE deleted_at IS NULL AND {where} {tail}",
            tuple(params),
        )
        names = [column[0] for column in cursor.description]
        return [MenuItem(**dict(zip(names, row))) for row in cursor.fetchall()]

    def _find(self, item_id: int) -> MenuItem | None:
        found = self._items("id = ?", (item_id,), "LIMIT 1")
        return found[0] if found else None

    def _require_group(self, group: str) -> None:
        (count,) = self._conn.execute(
            'SELECT COUNT(*) FROM menu_items WHERE deleted_at IS NULL AND "group" = ?', (group,)
        ).fetchone()
        if count == 0:
            raise NotFoundError(f"菜单分组 '{group}' 不存在")

    def _descendants(self, item_id: int) -> list[int]:
        """Ids of every live descendant, depth first."""
        found: list[int] = []
        seen = {item_id}
        stack = [item_id]
        while stack:
            current = stack.pop()
            for child in self._items("parent_id = ?", (current,), "ORDER BY id"):
                if child.id in seen:
                    continue
                seen.add(child.id)
                found.append(child.id)
                stack.append(child.id)
        return found

    def _check_parent(self, item_id: int, parent_id: int, group: str) -> None:
        if parent_id == item_id:
            raise ValidationError(_SELF_PARENT)
        if parent_id in self._descendants(item_id):
            raise ValidationError(_CHILD_PARENT)
        parent = self._find(parent_id)
        if parent is None:
            raise NotFoundError(_PARENT_NOT_FOUND)
        if parent.group != group:
            raise ValidationError(_PARENT_OTHER_GROUP)

    def _soft_delete(self, item_id: int, when: str) -> None:
        self._conn.execute("UPDATE menu_items SET deleted_at = ? WHERE id = ?", (when, item_id))