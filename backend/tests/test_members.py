from scoreboard.models import ActivityLog, GroupMember
from scoreboard.models.enums import ActivityType, GroupRole, UserRole

from conftest import add_member, auth_headers


def _members_url(group):
    return f"/api/groups/{group['id']}/members"


def _owners(db, group):
    return db.query(GroupMember).filter(
        GroupMember.group_id == group["id"],
        GroupMember.role == GroupRole.OWNER,
    ).all()


def test_add_member_by_email(client, db, owner, group, make_user):
    user = make_user(email="new@scoreboard.io")
    response = client.post(
        _members_url(group),
        json={"email": "NEW@scoreboard.io", "role": "ADMIN"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == user.id
    assert body["role"] == GroupRole.ADMIN.value
    assert body["user"]["email"] == "new@scoreboard.io"
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityType.MEMBER_ADDED).count() == 1


def test_add_member_errors(client, db, owner, group, make_user):
    user = make_user(email="new@scoreboard.io")
    headers = auth_headers(owner)

    as_owner = client.post(_members_url(group), json={"email": user.email, "role": "OWNER"}, headers=headers)
    assert as_owner.status_code == 400

    unknown = client.post(_members_url(group), json={"email": "ghost@scoreboard.io"}, headers=headers)
    assert unknown.status_code == 404

    assert client.post(_members_url(group), json={"email": user.email}, headers=headers).status_code == 201
    duplicate = client.post(_members_url(group), json={"email": user.email}, headers=headers)
    assert duplicate.status_code == 400


def test_plain_member_cannot_add(client, db, group, make_user):
    member = make_user()
    other = make_user()
    add_member(db, group["id"], member)
    response = client.post(_members_url(group), json={"email": other.email}, headers=auth_headers(member))
    assert response.status_code == 403


def test_list_members(client, db, owner, group, make_user):
    member = make_user()
    add_member(db, group["id"], member)
    response = client.get(_members_url(group), headers=auth_headers(owner))
    assert response.status_code == 200
    assert {row["user_id"] for row in response.json()} == {owner.id, member.id}


def test_ownership_transfer_keeps_single_owner(client, db, owner, group, make_user):
    successor = make_user()
    target = add_member(db, group["id"], successor, GroupRole.ADMIN)

    response = client.patch(
        _members_url(group),
        json={"member_id": target.id, "role": "OWNER"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["role"] == GroupRole.OWNER.value

    db.expire_all()
    owners = _owners(db, group)
    assert [row.user_id for row in owners] == [successor.id]
    previous = db.query(GroupMember).filter(GroupMember.user_id == owner.id).one()
    assert previous.role == GroupRole.ADMIN
    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.OWNERSHIP_TRANSFERRED).one()
    assert log.details["previous_owner_id"] == owner.id
    assert log.details["new_owner_id"] == successor.id


def test_group_admin_cannot_transfer_ownership(client, db, owner, group, make_user):
    admin_member = make_user()
    other = make_user()
    add_member(db, group["id"], admin_member, GroupRole.ADMIN)
    target = add_member(db, group["id"], other)

    response = client.patch(
        _members_url(group),
        json={"member_id": target.id, "role": "OWNER"},
        headers=auth_headers(admin_member),
    )
    assert response.status_code == 403
    db.expire_all()
    assert [row.user_id for row in _owners(db, group)] == [owner.id]


def test_global_admin_can_transfer_ownership(client, db, owner, group, make_user):
    root = make_user(role=UserRole.ADMIN)
    other = make_user()
    target = add_member(db, group["id"], other)

    response = client.patch(
        _members_url(group),
        json={"member_id": target.id, "role": "OWNER"},
        headers=auth_headers(root),
    )
    assert response.status_code == 200
    db.expire_all()
    assert [row.user_id for row in _owners(db, group)] == [other.id]


def test_role_change_rules(client, db, owner, group, make_user):
    admin_user = make_user()
    member_user = make_user()
    admin_member = add_member(db, group["id"], admin_user, GroupRole.ADMIN)
    member = add_member(db, group["id"], member_user)
    owner_member = db.query(GroupMember).filter(GroupMember.user_id == owner.id).one()

    own = client.patch(
        _members_url(group),
        json={"member_id": admin_member.id, "role": "MEMBER"},
        headers=auth_headers(admin_user),
    )
    assert own.status_code == 400

    demote_owner = client.patch(
        _members_url(group),
        json={"member_id": owner_member.id, "role": "MEMBER"},
        headers=auth_headers(admin_user),
    )
    assert demote_owner.status_code == 400

    promote = client.patch(
        _members_url(group),
        json={"member_id": member.id, "role": "ADMIN"},
        headers=auth_headers(owner),
    )
    assert promote.status_code == 200
    assert promote.json()["role"] == GroupRole.ADMIN.value


def test_unknown_member(client, owner, group):
    response = client.patch(
        _members_url(group),
        json={"member_id": "missing", "role": "ADMIN"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 404


def test_remove_member(client, db, owner, group, make_user):
    user = make_user()
    member = add_member(db, group["id"], user)
    owner_member = db.query(GroupMember).filter(GroupMember.user_id == owner.id).one()

    response = client.delete(_members_url(group), params={"member_id": owner_member.id}, headers=auth_headers(owner))
    assert response.status_code == 403

    response = client.delete(_members_url(group), params={"member_id": member.id}, headers=auth_headers(owner))
    assert response.status_code == 200
    db.expire_all()
    assert db.query(GroupMember).filter(GroupMember.user_id == user.id).count() == 0
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityType.MEMBER_REMOVED).count() == 1
