from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.routers.groups import active_group_rules, get_group_or_404, require_group_manager
from scoreboard.models.enums import ActivityType
from scoreboard.models.scoring import GroupRule as GroupRuleModel, ScoringRule as ScoringRuleModel
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.scoring import GroupRule, GroupRuleAdd, ScoringRule
from scoreboard.services.activity import log_activity

router = APIRouter(prefix="/api/groups/{group_id}/rules", tags=["Group Rules"])


def _find_link(db: Session, group_id: str, rule_id: str):
    return db.query(GroupRuleModel).filter(
        GroupRuleModel.group_id == group_id,
        GroupRuleModel.rule_id == rule_id,
    ).first()


@router.get("", response_model=List[ScoringRule])
async def list_group_rules(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    return active_group_rules(db, group.id)


@router.post("", response_model=GroupRule, status_code=status.HTTP_201_CREATED)
async def add_group_rule(
    group_id: str,
    payload: GroupRuleAdd,
    response: Response,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Link a rule to the group, reactivating a previously removed link."""
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)

    rule = db.query(ScoringRuleModel).filter(ScoringRuleModel.id == payload.rule_id).first()
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scoring rule not found")
    if not rule.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Scoring rule is not active")
    if rule.group_id is not None and rule.group_id != group.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This scoring rule belongs to another group",
        )

    link = _find_link(db, group.id, rule.id)
    if link and link.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rule is already active in this group")
    if link:
        link.is_active = True
        response.status_code = status.HTTP_200_OK
    else:
        link = GroupRuleModel(group_id=group.id, rule_id=rule.id, is_active=True)
        db.add(link)

    log_activity(
        db,
        ActivityType.RULE_ADDED_TO_GROUP,
        f'Rule "{rule.name}" added to {group.name}',
        user_id=current_user.id,
        group_id=group.id,
        metadata={"rule_id": rule.id, "rule_name": rule.name, "points": rule.points},
        commit=False,
    )
    db.commit()
    db.refresh(link)
    return link


@router.delete("")
async def remove_group_rule(
    group_id: str,
    rule_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Deactivate the link; the rule itself stays available to other groups."""
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)

    link = _find_link(db, group.id, rule_id)
    if not link or not link.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rule is not active in this group")

    link.is_active = False
    log_activity(
        db,
        ActivityType.RULE_REMOVED_FROM_GROUP,
        f'Rule "{link.rule.name}" removed from {group.name}',
        user_id=current_user.id,
        group_id=group.id,
        metadata={"rule_id": rule_id, "rule_name": link.rule.name},
        commit=False,
    )
    db.commit()
    return {"message": "Rule removed from group"}
