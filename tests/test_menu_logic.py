import sqlite3

import pytest

from contentkit.errors import NotFoundError, ValidationError
from contentkit.menu_logic import MenuLogic, build_tree, group_label
from contentkit.menu_model import MenuItem, create_menu_tables


@pytest.fixture
def events():
    return []


@pytest.fixture
def logic(events):
    conn = sqlite3.connect(":memory:")
    create_menu_tables(conn)
    return MenuLogic(conn, lambda name, payload: events.append((name, payload)))


def test_group_label_known_and_unknown():
    assert group_label("main") == "主导航"
    assert group_label("footer") == "页脚导航"
    assert group_label("custom") == "custom"


def test_list_groups_defaults_when_empty(logic):
    groups = logic.list_groups()
    assert [(g.name, g.label, g.count) for g in groups] == [
        ("main", "主导航", 0),
        ("footer", "页脚导航", 0),
    ]


def test_list_groups_counts_items(logic):
    logic.create("a", "main")
    logic.create("b", "main")
    logic.create("c", "sidebar")
    groups = {g.name: (g.label, g.count) for g in logic.list_groups()}
    assert groups == {"main": ("主导航", 2), "sidebar": ("侧边栏", 1)}


def test_build_tree_sorts_and_adopts_orphans():
    items = [
        MenuItem(id=1, name="root-b", order=2),
        MenuItem(id=2, name="root-a", order=1),
        MenuItem(id=3, name="child", parent_id=1, order=5),
        MenuItem(id=4, name="child-first", parent_id=1, order=5),
        MenuItem(id=5, name="orphan", parent_id=99, order=0),
    ]
    roots = build_tree(items)
    assert [node.id for node in roots] == [5, 2, 1]
    assert [node.id for node in roots[2].children] == [3, 4]


def test_create_defaults_and_event(logic, events):
    item = logic.create("Home", "main", url="/")
    stored = logic.get_by_id(item.id)
    assert stored.target == "_self"
    assert stored.status == "active"
    assert events == [("menu.created", {"menu_id": str(item.id)})]


def test_create_parent_must_exist_and_share_group(logic):
    root = logic.create("Root", "main")
    with pytest.raises(NotFoundError):
        logic.create("x", "main", parent_id=root.id + 100)
    with pytest.raises(ValidationError):
        logic.create("x", "footer", parent_id=root.id)


def test_get_by_id_missing(logic):
    with pytest.raises(NotFoundError):
        logic.get_by_id(42)


def test_get_tree_missing_group(logic):
    with pytest.raises(NotFoundError):
        logic.get_tree("nowhere")
    with pytest.raises(NotFoundError):
        logic.get_tree_all("nowhere")


def test_get_tree_hides_disabled_but_tree_all_shows(logic):
    active = logic.create("on", "main", order=1)
    disabled = logic.create("off", "main", order=2, status="disabled")
    assert [node.id for node in logic.get_tree("main")] == [active.id]
    assert [node.id for node in logic.get_tree_all("main")] == [active.id, disabled.id]


def test_get_tree_nests_children(logic):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    grandchild = logic.create("grand", "main", parent_id=child.id)
    tree = logic.get_tree("main")
    assert tree[0].children[0].id == child.id
    assert tree[0].children[0].children[0].id == grandchild.id

    trimmed = logic.get_tree_with_depth("main", 2)
    assert trimmed[0].children[0].id == child.id
    assert trimmed[0].children[0].children == []
    assert logic.get_tree_with_depth("main", 1)[0].children == []


def test_update_rejects_cycles(logic):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    with pytest.raises(ValidationError):
        logic.update(root.id, "root", root.id, 0, "", "", "_self", "active")
    with pytest.raises(ValidationError):
        logic.update(root.id, "root", child.id, 0, "", "", "_self", "active")


def test_update_zero_parent_makes_root(logic, events):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    logic.update(child.id, "renamed", 0, 7, "/new", "icon", "_blank", "disabled")
    stored = logic.get_by_id(child.id)
    assert stored.parent_id is None
    assert (stored.name, stored.order, stored.url, stored.target) == ("renamed", 7, "/new", "_blank")
    assert events[-1] == ("menu.updated", {"menu_id": str(child.id)})


def test_delete_cascades(logic, events):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    grandchild = logic.create("grand", "main", parent_id=child.id)
    logic.delete(root.id)
    for item_id in (root.id, child.id, grandchild.id):
        with pytest.raises(NotFoundError):
            logic.get_by_id(item_id)
    assert events[-1] == ("menu.deleted", {"menu_id": str(root.id)})
    with pytest.raises(NotFoundError):
        logic.delete(root.id)


def test_reorder_skips_items_of_other_groups(logic):
    first = logic.create("a", "main", order=1)
    other = logic.create("b", "footer", order=1)
    logic.reorder("main", {first.id: 9, other.id: 9, 999: 3})
    assert logic.get_by_id(first.id).order == 9
    assert logic.get_by_id(other.id).order == 1


def test_move_carries_subtree_to_new_group(logic, events):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    grandchild = logic.create("grand", "main", parent_id=child.id)
    logic.move(root.id, None, "footer")
    assert {logic.get_by_id(i).group for i in (root.id, child.id, grandchild.id)} == {"footer"}
    assert events[-1] == ("menu.moved", {"menu_id": str(root.id)})


def test_move_checks_parent(logic):
    root = logic.create("root", "main")
    child = logic.create("child", "main", parent_id=root.id)
    other = logic.create("other", "footer")
    with pytest.raises(ValidationError):
        logic.move(root.id, child.id, "main")
    with pytest.raises(ValidationError):
        logic.move(child.id, other.id, "main")
    logic.move(child.id, other.id, "footer")
    assert logic.get_by_id(child.id).parent_id == other.id


def test_init_default_menus_runs_once(logic):
    logic.init_default_menus()
    tree = logic.get_tree("main")
    assert [(node.name, node.url) for node in tree] == [
        ("首页", "/"),
        ("关于我们", "/about"),
        ("联系我们", "/contact"),
    ]
    assert all(node.target == "_self" for node in tree)
    logic.init_default_menus()
    assert len(logic.get_tree_all("main")) == 3