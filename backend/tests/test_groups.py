from scoreboard.models import ActivityLog, Group, GroupMember, GroupRule, ScoreRecord
from scoreboard.models.enums import ActivityType, GroupRole, UserRole

from conftest import add_member, auth_headers, make_rule


def test_create_group_makes_caller_owner(client, db, owner, group):
    assert group["name"] == "Study Club"
    assert group["current_user_role"] == GroupRole.OWNER.value
    assert [member["user_id"] for member in group["members"]] == [owner.id]

    membership = db.query(GroupMember).filter(GroupMember.group_id == group["id"]).one()
    assert membership.role == GroupRole.OWNER
    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.GROUP_CREATED).one()
    assert log.group_id == group["id"]
    assert log.user_id == owner.id


def test_create_group_requires_name(client, owner):
    response = client.post("/api/groups", json={"name": "   "}, headers=auth_headers(owner))
    assert response.status_code == 400


def test_duplicate_group_name_for_same_creator(client, owner, group):
    response = client.post("/api/groups", json={"name": "Study Club"}, headers=auth_headers(owner))
    assert response.status_code == 400


def test_list_groups_only_shows_own_groups(client, db, owner, group, make_user):
    member = make_user()
    stranger = make_user()
    add_member(db, group["id"], member)

    listed = client.get("/api/groups", headers=auth_headers(member)).json()
    assert [item["id"] for item in listed] == [group["id"]]
    assert listed[0]["current_user_role"] == GroupRole.MEMBER.value
    assert client.get("/api/groups", headers=auth_headers(stranger)).json() == []


def test_global_admin_sees_virtual_membership(client, admin, group):
    response = client.get(f"/api/groups/{group['id']}", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    virtual = [member for member in body["members"] if member["is_virtual"]]
    assert len(virtual) == 1
    assert virtual[0]["id"] == f"virtual-{admin.id}-{group['id']}"
    assert body["current_user_role"] == GroupRole.ADMIN.value


def test_get_missing_group(client, owner):
    assert client.get("/api/groups/missing", headers=auth_headers(owner)).status_code == 404


def test_update_group_requires_manager(client, db, owner, group, make_user):
    member = make_user()
    add_member(db, group["id"], member)

    denied = client.patch(f"/api/groups/{group['id']}", json={"name": "Mine"}, headers=auth_headers(member))
    assert denied.status_code == 403

    response = client.patch(
        f"/api/groups/{group['id']}",
        json={"name": "Study Club II", "is_active": False},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Study Club II"
    assert response.json()["is_active"] is False
    log = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.GROUP_UPDATED).one()
    assert log.details["changes"]["name"] == "Study Club II"


def test_update_group_ignores_null_is_active(client, db, owner, group):
    response = client.patch(
        f"/api/groups/{group['id']}",
        json={"is_active": None, "description": "Evening sessions"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is True
    assert response.json()["description"] == "Evening sessions"
    assert db.get(Group, group["id"]).is_active is True


def test_delete_group_cascades(client, db, owner, group, make_user):
    member = make_user()
    add_member(db, group["id"], member)
    rule = make_rule(db, link_to=group["id"])
    db.add(ScoreRecord(user_id=member.id, group_id=group["id"], rule_id=rule.id, points=10))
    db.commit()

    response = client.delete(f"/api/groups/{group['id']}", headers=auth_headers(owner))
    assert response.status_code == 200

    db.expire_all()
    assert db.query(Group).count() == 0
    assert db.query(GroupMember).count() == 0
    assert db.query(GroupRule).count() == 0
    assert db.query(ScoreRecord).count() == 0
    deleted = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.GROUP_DELETED).one()
    assert deleted.details["group_id"] == group["id"]
    # The creation entry survives with its group reference cleared
    created = db.query(ActivityLog).filter(ActivityLog.action == ActivityType.GROUP_CREATED).one()
    assert created.group_id is None


def test_search_users_excludes_caller_and_members(client, db, owner, group, make_user):
    member = make_user(email="alice@scoreboard.io", name="Alice")
    candidate = make_user(email="alina@scoreboard.io", name="Alina")
    add_member(db, group["id"], member)

    response = client.get(
        "/api/groups/search-users",
        params={"q": "ALI", "group_id": group["id"]},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert [user["id"] for user in response.json()] == [candidate.id]

    everyone = client.get("/api/groups/search-users", params={"q": "scoreboard.io"}, headers=auth_headers(owner))
    assert owner.id not in [user["id"] for user in everyone.json()]


def test_group_stats(client, db, owner, group, make_user):
    alice = make_user(name="Alice")
    bob = make_user(name="Bob")
    add_member(db, group["id"], alice)
    add_member(db, group["id"], bob)
    rule = make_rule(db, points=5, link_to=group["id"])
    for user, points in ((alice, 10), (alice, 5), (bob, 3)):
        db.add(ScoreRecord(user_id=user.id, group_id=group["id"], rule_id=rule.id, points=points))
    db.commit()

    response = client.get(f"/api/groups/{group['id']}/stats", headers=auth_headers(owner))
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_members"] == 3
    assert stats["active_rules"] == 1
    assert stats["total_score_records"] == 3
    assert stats["total_points"] == 18
    assert stats["weekly_score"] == 18
    assert [row["user_id"] for row in stats["top_performers"]] == [alice.id, bob.id]
    assert stats["bottom_performers"][0]["user_id"] == bob.id


def test_group_stats_requires_membership(client, group, make_user):
    stranger = make_user()
    response = client.get(f"/api/groups/{group['id']}/stats", headers=auth_headers(stranger))
    assert response.status_code == 403


def test_global_admin_can_manage_any_group(client, make_user, group):
    root = make_user(role=UserRole.ADMIN)
    response = client.patch(f"/api/groups/{group['id']}", json={"description": "Run by staff"}, headers=auth_headers(root))
    assert response.status_code == 200
