"""
Capability policy.

Administrators may do anything; a seller acts only on records they own.
Handlers ask `can_access(user, resource, action)` instead of branching on
roles themselves.

RESOURCES are either a record instance (Inventory, Schedule, User) or a
resource-type string for collection-level checks ("catalog", "users",
"statistics", "inventories", "schedules").

ACTIONS:
- read, list, create, update, delete
- confirm, record_sales          (inventories)
- override_lock                  (edit a confirmed inventory)
- manage                         (catalog / user administration)
"""
from __future__ import annotations

from .models import Inventory, Schedule, User, ROLE_ADMIN, ROLE_SELLER


# Collection-level capabilities per role.
ROLE_CAPABILITIES: dict[str, dict[str, frozenset[str]]] = {
    ROLE_ADMIN: {
        "catalog": frozenset({"read", "list", "manage"}),
        "inventories": frozenset({"list", "create", "act_for_seller"}),
        "schedules": frozenset({"list", "create", "act_for_seller"}),
        "users": frozenset({"list", "manage"}),
        "statistics": frozenset({"read"}),
    },
    ROLE_SELLER: {
        "catalog": frozenset({"read", "list"}),
        "inventories": frozenset({"list", "create"}),
        "schedules": frozenset({"list", "create"}),
        "users": frozenset(),
        "statistics": frozenset(),
    },
}

# What a seller may do on their own records. Admins may do everything on any record.
OWNER_CAPABILITIES: dict[type, frozenset[str]] = {
    Inventory: frozenset({"read", "update", "delete", "confirm", "record_sales"}),
    Schedule: frozenset({"read", "update"}),
    User: frozenset({"read", "update", "read_stats"}),
}

# Capabilities only ever granted to administrators, even on their own records.
ADMIN_ONLY_ACTIONS = frozenset({"override_lock", "manage", "change_role"})


def _owner_id(resource) -> int | None:
    if isinstance(resource, (Inventory, Schedule)):
        return resource.seller_id
    if isinstance(resource, User):
        return resource.id
    return None


def can_access(user: User | None, resource, action: str) -> bool:
    """
    Return True if `user` may perform `action` on `resource`.

    Inactive or missing users can do nothing.
    """
    if user is None or not user.is_active:
        return False

    if user.role == ROLE_ADMIN:
        return True

    if action in ADMIN_ONLY_ACTIONS:
        return False

    if isinstance(resource, str):
        return action in ROLE_CAPABILITIES.get(user.role, {}).get(resource, frozenset())

    allowed = OWNER_CAPABILITIES.get(type(resource), frozenset())
    return action in allowed and _owner_id(resource) == user.id


def can_see(user: User | None, resource) -> bool:
    """Visibility check used to decide between 'found' and 'not found'."""
    return can_access(user, resource, "read")
