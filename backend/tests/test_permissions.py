from types import SimpleNamespace

from scoreboard.models.enums import GroupRole, UserRole
from scoreboard.services.permissions import (
    can_manage_group,
    effective_group_role,
    has_group_permission,
    is_group_owner,
    members_with_virtual_admin,
)


def _user(user_id, role=UserRole.USER):
    return SimpleNamespace(id=user_id, role=role, name=user_id.title(), email=f"{user_id}@scoreboard.io", created_at=None)


def _member(user_id, role):
    return SimpleNamespace(user_id=user_id, role=role)


MEMBERS = [
    _member("olga", GroupRole.OWNER),
    _member("arno", GroupRole.ADMIN),
    _member("mia", GroupRole.MEMBER),
]


def test_manager_roles():
    assert can_manage_group(_user("olga"), MEMBERS)
    assert can_manage_group(_user("arno"), MEMBERS)
    assert not can_manage_group(_user("mia"), MEMBERS)
    assert not can_manage_group(_user("stranger"), MEMBERS)


def test_global_admin_passes_every_group_check():
    root = _user("root", UserRole.ADMIN)
    assert has_group_permission(root, [], [GroupRole.OWNER])
    assert can_manage_group(root, MEMBERS)


def test_global_admin_is_not_an_owner():
    root = _user("root", UserRole.ADMIN)
    assert not is_group_owner(root, MEMBERS)
    assert is_group_owner(_user("olga"), MEMBERS)


def test_effective_role():
    assert effective_group_role(_user("mia"), MEMBERS) == GroupRole.MEMBER
    assert effective_group_role(_user("root", UserRole.ADMIN), MEMBERS) == GroupRole.ADMIN
    assert effective_group_role(_user("stranger"), MEMBERS) is None


def test_virtual_admin_injected_for_non_member_admin_only():
    group = SimpleNamespace(id="g1")
    root = _user("root", UserRole.ADMIN)

    listed = members_with_virtual_admin(group, MEMBERS, root)
    assert len(listed) == len(MEMBERS) + 1
    virtual = listed[-1]
    assert virtual["id"] == "virtual-root-g1"
    assert virtual["is_virtual"] is True
    assert virtual["role"] == GroupRole.ADMIN

    assert members_with_virtual_admin(group, MEMBERS, _user("mia")) == MEMBERS
