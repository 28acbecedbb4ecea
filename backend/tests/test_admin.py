import pytest
from fastapi import HTTPException

from scoreboard.models import ActivityLog, GroupMember, User
from scoreboard.models.enums import ActivityType, GroupRole, UserRole
from scoreboard.services.auth import AuthService

from conftest import PASSWORD, add_member, auth_headers


def test_admin_endpoints_require_admin(client, owner):
    assert client.get("/api/admin/users", headers=auth_headers(owner)).status_code == 403


def test_list_users_with_stats(client, admin, make_user):
    make_user(email="zoe@scoreboard.io", name="Zoe")
    make_user(email="yann@scoreboard.io", name="Yann")
    response = client.get("/api/admin/users", params={"search": "zoe"}, headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert [user["email"] for user in body["users"]] == ["zoe@scoreboard.io"]
    assert body["users"][0]["counts"] == {"groups": 0, "group_memberships": 0, "score_records": 0}
    assert body["pagination"]["total"] == 1

    admins = client.get("/api/admin/users", params={"role": "ADMIN"}, headers=auth_headers(admin)).json()
    assert [user["id"] for user in admins["users"]] == [admin.id]


def test_create_user(client, db, admin):
    response = client.post(
        "/api/admin/users",
        json={"email": "New@scoreboard.io", "password": PASSWORD, "name": "New", "role": "ADMIN"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["role"] == UserRole.ADMIN.value
    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.ADMIN_USER_CREATED).one()
    assert log.details["created_by"] == admin.id


def test_create_user_rejects_weak_and_duplicate(client, db, admin):
    weak = client.post(
        "/api/admin/users",
        json={"email": "weak@scoreboard.io", "password": "letmein"},
        headers=auth_headers(admin),
    )
    assert weak.status_code == 400
    assert weak.json()["detail"]["errors"]

    duplicate = client.post(
        "/api/admin/users",
        json={"email": admin.email, "password": PASSWORD},
        headers=auth_headers(admin),
    )
    assert duplicate.status_code == 400
    assert db.query(User).count() == 1


def test_cannot_change_own_role(client, admin):
    response = client.patch(f"/api/admin/users/{admin.id}", json={"role": "USER"}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_admin_can_demote_another_admin(client, db, admin, make_user):
    other_admin = make_user(role=UserRole.ADMIN)
    response = client.patch(f"/api/admin/users/{admin.id}", json={"role": "USER"}, headers=auth_headers(other_admin))
    assert response.status_code == 200
    assert response.json()["role"] == UserRole.USER.value
    assert AuthService.count_admins(db) == 1

    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.ADMIN_USER_ROLE_UPDATED).one()
    assert log.details["new_role"] == UserRole.USER.value


def test_update_email_must_be_free(client, admin, make_user):
    user = make_user(email="first@scoreboard.io")
    make_user(email="second@scoreboard.io")
    response = client.patch(
        f"/api/admin/users/{user.id}",
        json={"email": "second@scoreboard.io"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


def test_delete_rules(client, db, admin, owner, group, make_user):
    headers = auth_headers(admin)
    assert client.delete(f"/api/admin/users/{admin.id}", headers=headers).status_code == 400

    owns_group = client.delete(f"/api/admin/users/{owner.id}", headers=headers)
    assert owns_group.status_code == 400
    assert "Study Club" in owns_group.json()["detail"]

    member = make_user()
    member_id = member.id
    add_member(db, group["id"], member)
    response = client.delete(f"/api/admin/users/{member_id}", headers=headers)
    assert response.status_code == 200

    db.expire_all()
    assert db.query(User).filter(User.id == member_id).count() == 0
    assert db.query(GroupMember).filter(GroupMember.user_id == member_id).count() == 0
    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.ADMIN_USER_DELETED).one()
    assert log.user_id == admin.id
    assert log.details["deleted_user_id"] == member_id


def test_transfer_then_delete_former_owner(client, db, admin, owner, group, make_user):
    successor = make_user()
    target = add_member(db, group["id"], successor, GroupRole.ADMIN)
    client.patch(
        f"/api/groups/{group['id']}/members",
        json={"member_id": target.id, "role": "OWNER"},
        headers=auth_headers(owner),
    )
    owner_id = owner.id
    assert client.delete(f"/api/admin/users/{owner_id}", headers=auth_headers(admin)).status_code == 200


def test_password_reset(client, db, admin, make_user):
    user = make_user()
    headers = auth_headers(admin)
    weak = client.put(f"/api/admin/users/{user.id}/password", json={"new_password": "short"}, headers=headers)
    assert weak.status_code == 400

    response = client.put(f"/api/admin/users/{user.id}/password", json={"new_password": "N3w!Secret99"}, headers=headers)
    assert response.status_code == 200
    db.refresh(user)
    assert AuthService.verify_password("N3w!Secret99", user.hashed_password)
    assert db.query(ActivityLog).filter(
        ActivityLog.action == ActivityType.ADMIN_PASSWORD_RESET_BY_ADMIN
    ).count() == 1


def test_get_user_details_include_activity_count(client, admin, owner, group):
    response = client.get(f"/api/admin/users/{owner.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    counts = response.json()["counts"]
    assert counts["groups"] == 1
    assert counts["group_memberships"] == 1
    assert counts["activity_logs"] == 1


def test_last_admin_cannot_lose_the_role(db, admin, make_user):
    with pytest.raises(HTTPException) as excinfo:
        AuthService.ensure_admin_remains(db, admin, "demote")
    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Cannot demote the last administrator"

    # Regular users and admins with a peer are never blocked
    AuthService.ensure_admin_remains(db, make_user(), "delete")
    make_user(role=UserRole.ADMIN)
    AuthService.ensure_admin_remains(db, admin, "delete")
