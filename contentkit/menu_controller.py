"""Request handling for the administrative and public menu endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ValidationError
from .menu_logic import MenuLogic
from .menu_model import MenuGroup, MenuItem, MenuTree

_MAX_NAME = 100
_MAX_GROUP = 50
_MAX_URL = 500
_TARGETS = frozenset({"_self", "_blank"})
_STATUSES = frozenset({"active", "disabled"})


def _check_id(value: int) -> None:
    if value < 1:
        raise ValidationError("id must be at least 1")


def _require(value: str, name: str, max_length: int | None = None) -> None:
    if not value:
        raise ValidationError(f"{name} is required")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")


def _check_choice(value: str, choices: frozenset[str], name: str) -> None:
    if value and value not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(sorted(choices))}")


def _positive_or_none(value: int | None) -> int | None:
    return value if value is not None and value > 0 else None


@dataclass
class CreateMenuRequest:
    """Input for creating a menu item."""

    name: str = ""
    group: str = ""
    parent_id: int | None = None
    order: int = 0
    url: str = ""
    icon: str = ""
    target: str = "_self"
    status: str = "active"

    def validate(self) -> None:
        """Raise ValidationError when a field breaks its rule."""
        _require(self.name, "name", _MAX_NAME)
        _require(self.group, "group", _MAX_GROUP)
        _require(self.url, "url", _MAX_URL)
        _check_choice(self.target, _TARGETS, "target")
        _check_choice(self.status, _STATUSES, "status")


@dataclass
class UpdateMenuRequest:
    """Input for updating a menu item; a parent id of 0 detaches it."""

    id: int = 0
    name: str = ""
    parent_id: int | None = None
    order: int = 0
    url: str = ""
    icon: str = ""
    target: str = ""
    status: str = ""

    def validate(self) -> None:
        """Raise ValidationError when a field breaks its rule."""
        _check_id(self.id)
        _require(self.name, "name", _MAX_NAME)
        _require(self.url, "url", _MAX_URL)
        _check_choice(self.target, _TARGETS, "target")
        _check_choice(self.status, _STATUSES, "status")


class MenuAdminController:
    """Administrative menu endpoints."""

    def __init__(self, logic: MenuLogic) -> None:
        self._logic = logic

    def list_groups(self) -> dict[str, list[MenuGroup]]:
        return {"list": self._logic.list_groups()}

    def get_tree(self, group: str) -> dict[str, list[MenuTree]]:
        """Full tree of a group, disabled items included."""
        _require(group, "group")
        return {"tree": self._logic.get_tree_all(group)}

    def create_menu(self, request: CreateMenuRequest) -> int:
        """Create a menu item and return its id."""
        request.validate()
        item = self._logic.create(
            request.name,
            request.group,
            request.parent_id,
            request.order,
            request.url,
            request.icon,
            request.target,
            request.status,
        )
        return item.id

    def get_menu(self, item_id: int) -> MenuItem:
        _check_id(item_id)
        return self._logic.get_by_id(item_id)

    def update_menu(self, request: UpdateMenuRequest) -> None:
        request.validate()
        self._logic.update(
            request.id,
            request.name,
            _positive_or_none(request.parent_id),
            request.order,
            request.url,
            request.icon,
            request.target,
            request.status,
        )

    def delete_menu(self, item_id: int) -> None:
        _check_id(item_id)
        self._logic.delete(item_id)

    def reorder_menus(self, group: str, orders: Mapping[int, int]) -> None:
        _require(group, "group")
        if not orders:
            raise ValidationError("orders is required")
        self._logic.reorder(group, orders)

    def move_menu(self, item_id: int, new_parent_id: int | None, new_group: str) -> None:
        _check_id(item_id)
        _require(new_group, "new_group")
        self._logic.move(item_id, _positive_or_none(new_parent_id), new_group)


class MenuPublicController:
    """Public menu endpoint exposing active items only."""

    def __init__(self, logic: MenuLogic) -> None:
        self._logic = logic

    def get_public_menu_tree(self, group: str) -> dict[str, Any]:
        _require(group, "group")
        return {"tree": self._logic.get_tree(group)}