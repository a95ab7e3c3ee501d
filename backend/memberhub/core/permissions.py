"""Role & capability helpers.

Roles are a closed enum; what each role may do is looked up in
ROLE_CAPABILITIES once per request instead of comparing role strings
route by route.
"""
import enum
from typing import Callable, Awaitable

from fastapi import Depends

from memberhub.core.deps import get_current_user
from memberhub.core.exceptions import AuthorizationError
from memberhub.models.user import User, UserRole


class Capability(str, enum.Enum):
    """Actions gated by role."""
    MANAGE_MEMBERSHIP_TYPES = "manage_membership_types"
    DELETE_MEMBERSHIP_TYPES = "delete_membership_types"
    MANAGE_MEMBERSHIPS = "manage_memberships"
    VIEW_ALL_MEMBERSHIPS = "view_all_memberships"
    MANAGE_WORKFLOWS = "manage_workflows"
    VIEW_AUDIT_LOG = "view_audit_log"
    MANAGE_USERS = "manage_users"
    DELETE_USERS = "delete_users"


_ADMIN_CAPABILITIES = frozenset({
    Capability.MANAGE_MEMBERSHIP_TYPES,
    Capability.MANAGE_MEMBERSHIPS,
    Capability.VIEW_ALL_MEMBERSHIPS,
    Capability.MANAGE_WORKFLOWS,
    Capability.VIEW_AUDIT_LOG,
    Capability.MANAGE_USERS,
})

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.MEMBER: frozenset(),
    UserRole.ADMIN: _ADMIN_CAPABILITIES,
    UserRole.SUPER_ADMIN: _ADMIN_CAPABILITIES | {
        Capability.DELETE_MEMBERSHIP_TYPES,
        Capability.DELETE_USERS,
    },
}


def has_capability(user: User, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(user.role, frozenset())


def ensure_capability(user: User, capability: Capability) -> None:
    """Raise AuthorizationError unless the user's role grants capability."""
    if not has_capability(user, capability):
        raise AuthorizationError("Insufficient permissions")


def ensure_owner_or_capability(
    user: User,
    owner_id: str,
    capability: Capability = Capability.VIEW_ALL_MEMBERSHIPS,
) -> None:
    """Allow the record's owner, or anyone whose role grants capability."""
    if owner_id != user.id and not has_capability(user, capability):
        raise AuthorizationError("Access denied")


def require_capability(capability: Capability) -> Callable[..., Awaitable[User]]:
    """Dependency factory: resolve the current user and check capability."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        ensure_capability(current_user, capability)
        return current_user

    return dependency
