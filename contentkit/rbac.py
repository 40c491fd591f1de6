"""Per-request identity and the "own resources only" access rule."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import PermissionDenied

SCOPE_OWN = "own"
SCOPE_ALL = "all"


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller as established by authentication and RBAC checks."""

    user_id: int = 0
    rbac_scope: str = ""
    rbac_user_id: int = 0


def enforce_rbac_scope(ctx: RequestContext, resource_owner_id: int) -> None:
    """Raise PermissionDenied when scope is "own" and the caller does not own the resource."""
    if ctx.rbac_scope == SCOPE_OWN and resource_owner_id != ctx.rbac_user_id:
        raise PermissionDenied()


def rbac_owner_filter(ctx: RequestContext) -> int:
    """Owner id to filter listings by under scope "own"; 0 means no filter."""
    if ctx.rbac_scope == SCOPE_OWN:
        return ctx.rbac_user_id
    return 0