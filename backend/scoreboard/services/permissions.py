"""Group and system role checks.

Each route re-derives the caller's role from the group's member list and
compares it with the roles the action allows. System administrators act as a
group ADMIN everywhere without holding a membership row.
"""

from datetime import datetime
from typing import Iterable, Optional

from scoreboard.models.enums import GroupRole, UserRole

MANAGER_ROLES = (GroupRole.OWNER, GroupRole.ADMIN)


def is_global_admin(user) -> bool:
    return user is not None and user.role == UserRole.ADMIN


def find_membership(members: Iterable, user_id: Optional[str]):
    for member in members:
        if member.user_id == user_id:
            return member
    return None


def has_group_permission(user, members: Iterable, required_roles: Iterable[GroupRole]) -> bool:
    if is_global_admin(user):
        return True
    if user is None:
        return False
    membership = find_membership(members, user.id)
    if membership is None:
        return False
    return membership.role in tuple(required_roles)


def can_manage_group(user, members: Iterable) -> bool:
    return has_group_permission(user, members, MANAGER_ROLES)


def is_group_owner(user, members: Iterable) -> bool:
    # A system role never implies ownership; only a real OWNER membership does.
    if user is None:
        return False
    membership = find_membership(members, user.id)
    return membership is not None and membership.role == GroupRole.OWNER


def effective_group_role(user, members: Iterable) -> Optional[GroupRole]:
    if user is None:
        return None
    membership = find_membership(members, user.id)
    if membership is not None:
        return membership.role
    if is_global_admin(user):
        return GroupRole.ADMIN
    return None


def virtual_admin_member(group, user) -> dict:
    return {
        "id": f"virtual-{user.id}-{group.id}",
        "user_id": user.id,
        "group_id": group.id,
        "role": GroupRole.ADMIN,
        "joined_at": datetime.utcnow(),
        "is_virtual": True,
        "user": {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "created_at": user.created_at,
        },
    }


def members_with_virtual_admin(group, members: list, user) -> list:
    """Member list as seen by ``user``; a non-member system admin appears as a virtual ADMIN."""
    if not is_global_admin(user) or find_membership(members, user.id) is not None:
        return list(members)
    return list(members) + [virtual_admin_member(group, user)]
