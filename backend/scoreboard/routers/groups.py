from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.models.enums import ActivityType, GroupRole
from scoreboard.models.group import Group as GroupModel, GroupMember as GroupMemberModel
from scoreboard.models.scoring import GroupRule as GroupRuleModel, ScoreRecord as ScoreRecordModel, ScoringRule as ScoringRuleModel
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.group import Group, GroupCreate, GroupStats, GroupUpdate
from scoreboard.schemas.user import UserSummary
from scoreboard.services.activity import log_activity
from scoreboard.services.analytics import AnalyticsService
from scoreboard.services.permissions import (
    can_manage_group,
    effective_group_role,
    has_group_permission,
    members_with_virtual_admin,
)

router = APIRouter(prefix="/api/groups", tags=["Groups"])
logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def get_group_or_404(db: Session, group_id: str) -> GroupModel:
    group = (
        db.query(GroupModel)
        .options(selectinload(GroupModel.members).joinedload(GroupMemberModel.user))
        .filter(GroupModel.id == group_id)
        .first()
    )
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


def require_group_manager(user: UserModel, group: GroupModel) -> None:
    if not can_manage_group(user, group.members):
        logger.warning("User %s refused manager action on group %s", user.id, group.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only group owners and admins can perform this action",
        )


def active_group_rules(db: Session, group_id: str) -> List[ScoringRuleModel]:
    return (
        db.query(ScoringRuleModel)
        .join(GroupRuleModel, GroupRuleModel.rule_id == ScoringRuleModel.id)
        .filter(
            GroupRuleModel.group_id == group_id,
            GroupRuleModel.is_active == True,
            ScoringRuleModel.is_active == True,
        )
        .order_by(ScoringRuleModel.created_at.desc())
        .all()
    )


def _rule_counts(db: Session, group_ids: List[str]) -> dict[str, int]:
    if not group_ids:
        return {}
    rows = (
        db.query(GroupRuleModel.group_id, func.count(GroupRuleModel.id))
        .filter(GroupRuleModel.group_id.in_(group_ids), GroupRuleModel.is_active == True)
        .group_by(GroupRuleModel.group_id)
        .all()
    )
    return dict(rows)


def _record_counts(db: Session, group_ids: List[str]) -> dict[str, int]:
    if not group_ids:
        return {}
    rows = (
        db.query(ScoreRecordModel.group_id, func.count(ScoreRecordModel.id))
        .filter(ScoreRecordModel.group_id.in_(group_ids))
        .group_by(ScoreRecordModel.group_id)
        .all()
    )
    return dict(rows)


def serialize_group(
    group: GroupModel,
    user: UserModel,
    rules_count: int = 0,
    records_count: int = 0,
    scoring_rules: Optional[List[ScoringRuleModel]] = None,
) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "is_active": group.is_active,
        "created_by_id": group.created_by_id,
        "created_by": group.created_by,
        "created_at": group.created_at,
        "updated_at": group.updated_at,
        "members": members_with_virtual_admin(group, group.members, user),
        "scoring_rules": scoring_rules or [],
        "rules_count": rules_count,
        "score_records_count": records_count,
        "current_user_role": effective_group_role(user, group.members),
    }


@router.get("", response_model=List[Group])
async def list_groups(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Groups the caller created or belongs to, newest first."""
    member_group_ids = select(GroupMemberModel.group_id).where(GroupMemberModel.user_id == current_user.id)
    groups = (
        db.query(GroupModel)
        .options(
            joinedload(GroupModel.created_by),
            selectinload(GroupModel.members).joinedload(GroupMemberModel.user),
        )
        .filter(or_(GroupModel.created_by_id == current_user.id, GroupModel.id.in_(member_group_ids)))
        .order_by(GroupModel.created_at.desc())
        .all()
    )
    group_ids = [group.id for group in groups]
    rule_counts = _rule_counts(db, group_ids)
    record_counts = _record_counts(db, group_ids)
    return [
        serialize_group(group, current_user, rule_counts.get(group.id, 0), record_counts.get(group.id, 0))
        for group in groups
    ]


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group name is required")

    duplicate = db.query(GroupModel).filter(
        GroupModel.created_by_id == current_user.id,
        GroupModel.name == name,
    ).first()
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have a group with this name",
        )

    group = GroupModel(
        name=name,
        description=payload.description.strip() if payload.description else None,
        created_by_id=current_user.id,
    )
    db.add(group)
    db.flush()
    db.add(GroupMemberModel(user_id=current_user.id, group_id=group.id, role=GroupRole.OWNER))
    log_activity(
        db,
        ActivityType.GROUP_CREATED,
        f'Group "{group.name}" created',
        user_id=current_user.id,
        group_id=group.id,
        metadata={"group_name": group.name},
        commit=False,
    )
    db.commit()
    logger.info("Group %s created by %s", group.id, current_user.id)
    return serialize_group(get_group_or_404(db, group.id), current_user)


@router.get("/search-users", response_model=List[UserSummary])
async def search_users(
    q: str = Query(default=""),
    group_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Candidates for adding to a group, matched on email or name."""
    term = q.strip()
    if not term:
        return []
    pattern = f"%{term}%"
    query = db.query(UserModel).filter(
        UserModel.id != current_user.id,
        or_(UserModel.email.ilike(pattern), UserModel.name.ilike(pattern)),
    )
    if group_id:
        member_ids = select(GroupMemberModel.user_id).where(GroupMemberModel.group_id == group_id)
        query = query.filter(UserModel.id.notin_(member_ids))
    return query.order_by(UserModel.email.asc()).limit(SEARCH_LIMIT).all()


@router.get("/{group_id}", response_model=Group)
async def get_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    return serialize_group(
        group,
        current_user,
        _rule_counts(db, [group.id]).get(group.id, 0),
        _record_counts(db, [group.id]).get(group.id, 0),
        scoring_rules=active_group_rules(db, group.id),
    )


@router.patch("/{group_id}", response_model=Group)
async def update_group(
    group_id: str,
    payload: GroupUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)

    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group name is required")
        changes["name"] = name
    if changes.get("description"):
        changes["description"] = changes["description"].strip()
    if "is_active" in changes and changes["is_active"] is None:
        changes.pop("is_active")

    for field, value in changes.items():
        setattr(group, field, value)
    log_activity(
        db,
        ActivityType.GROUP_UPDATED,
        f'Group "{group.name}" updated',
        user_id=current_user.id,
        group_id=group.id,
        metadata={"changes": changes},
        commit=False,
    )
    db.commit()
    group = get_group_or_404(db, group_id)
    return serialize_group(
        group,
        current_user,
        _rule_counts(db, [group.id]).get(group.id, 0),
        _record_counts(db, [group.id]).get(group.id, 0),
        scoring_rules=active_group_rules(db, group.id),
    )


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Delete a group; members, links, owned rules and records go with it."""
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)

    log_activity(
        db,
        ActivityType.GROUP_DELETED,
        f'Group "{group.name}" deleted',
        user_id=current_user.id,
        metadata={"group_id": group.id, "group_name": group.name},
        commit=False,
    )
    db.delete(group)
    db.commit()
    logger.info("Group %s deleted by %s", group_id, current_user.id)
    return {"message": "Group deleted"}


@router.get("/{group_id}/stats", response_model=GroupStats)
async def group_stats(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    if not has_group_permission(current_user, group.members, tuple(GroupRole)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a member of this group")

    records = db.query(ScoreRecordModel).filter(ScoreRecordModel.group_id == group.id).all()
    week_start, week_end = AnalyticsService.period_range("week")
    weekly = [record for record in records if week_start <= record.recorded_at <= week_end]
    rules = active_group_rules(db, group.id)

    performances = AnalyticsService.member_performance(group.members, records)
    top, bottom = AnalyticsService.top_and_bottom(performances)
    return {
        "group": serialize_group(group, current_user, len(rules), len(records), scoring_rules=rules),
        "total_members": len(group.members),
        "active_rules": len(rules),
        "total_score_records": len(records),
        "total_points": sum(record.points for record in records),
        "weekly_records": len(weekly),
        "weekly_score": sum(record.points for record in weekly),
        "top_performers": top,
        "bottom_performers": bottom,
    }
