from datetime import datetime

from scoreboard.models import ActivityLog, ScoreRecord
from scoreboard.models.enums import ActivityType, GroupRole

from conftest import add_member, auth_headers, make_rule


def _setup(db, group, make_user):
    student = make_user(name="Student")
    add_member(db, group["id"], student)
    rule = make_rule(db, name="Homework", points=10, link_to=group["id"])
    return student, rule


def test_manager_records_score_with_rule_points(client, db, owner, group, make_user):
    student, rule = _setup(db, group, make_user)
    response = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": rule.id, "target_user_id": student.id, "notes": "Chapter 3"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["points"] == 10
    assert body["rule"]["name"] == "Homework"
    assert body["user"]["id"] == student.id
    assert body["group"]["name"] == "Study Club"
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityType.SCORE_RECORDED).count() == 1


def test_points_override(client, db, owner, group, make_user):
    student, rule = _setup(db, group, make_user)
    response = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": rule.id, "target_user_id": student.id, "points": -3},
        headers=auth_headers(owner),
    )
    assert response.json()["points"] == -3


def test_plain_member_cannot_record(client, db, group, make_user):
    student, rule = _setup(db, group, make_user)
    response = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": rule.id, "target_user_id": student.id},
        headers=auth_headers(student),
    )
    assert response.status_code == 403


def test_record_validation(client, db, owner, group, make_user):
    student, rule = _setup(db, group, make_user)
    outsider = make_user()
    unlinked = make_rule(db, name="Unlinked")
    headers = auth_headers(owner)

    not_member = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": rule.id, "target_user_id": outsider.id},
        headers=headers,
    )
    assert not_member.status_code == 404

    missing_rule = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": "missing", "target_user_id": student.id},
        headers=headers,
    )
    assert missing_rule.status_code == 404

    not_linked = client.post(
        "/api/score-records",
        json={"group_id": group["id"], "rule_id": unlinked.id, "target_user_id": student.id},
        headers=headers,
    )
    assert not_linked.status_code == 400


def test_list_filters_and_pagination(client, db, owner, group, make_user):
    student, rule = _setup(db, group, make_user)
    other = make_user()
    add_member(db, group["id"], other, GroupRole.MEMBER)
    for day in range(1, 6):
        db.add(ScoreRecord(user_id=student.id, group_id=group["id"], rule_id=rule.id, points=day,
                           recorded_at=datetime(2026, 10, day, 12)))
    db.add(ScoreRecord(user_id=other.id, group_id=group["id"], rule_id=rule.id, points=50,
                       recorded_at=datetime(2026, 9, 1, 12)))
    db.commit()
    headers = auth_headers(owner)

    page = client.get("/api/score-records", params={"user_id": student.id, "limit": 2}, headers=headers).json()
    assert [row["points"] for row in page["score_records"]] == [5, 4]
    assert page["pagination"] == {"total": 5, "limit": 2, "offset": 0, "has_more": True}

    last = client.get(
        "/api/score-records", params={"user_id": student.id, "limit": 2, "offset": 4}, headers=headers
    ).json()
    assert last["pagination"]["has_more"] is False

    ranged = client.get(
        "/api/score-records",
        params={"start_date": "2026-10-02", "end_date": "2026-10-03"},
        headers=headers,
    ).json()
    assert sorted(row["points"] for row in ranged["score_records"]) == [2, 3]

    assert client.get("/api/score-records", params={"limit": 500}, headers=headers).status_code == 400


def test_update_and_delete(client, db, owner, group, make_user):
    student, rule = _setup(db, group, make_user)
    record = ScoreRecord(user_id=student.id, group_id=group["id"], rule_id=rule.id, points=10)
    db.add(record)
    db.commit()
    record_id = record.id
    headers = auth_headers(owner)

    denied = client.put(f"/api/score-records/{record_id}", json={"points": 99}, headers=auth_headers(student))
    assert denied.status_code == 403

    updated = client.put(f"/api/score-records/{record_id}", json={"points": 7, "notes": "Late"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["points"] == 7
    assert updated.json()["notes"] == "Late"

    assert client.delete(f"/api/score-records/{record_id}", headers=headers).status_code == 200
    assert client.delete(f"/api/score-records/{record_id}", headers=headers).status_code == 404
    actions = {row.action for row in db.query(ActivityLog).all()}
    assert {ActivityType.SCORE_UPDATED, ActivityType.SCORE_DELETED} <= actions
