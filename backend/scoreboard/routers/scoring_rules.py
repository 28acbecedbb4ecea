from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.routers.groups import get_group_or_404, require_group_manager
from scoreboard.models.enums import ActivityType
from scoreboard.models.group import Group as GroupModel
from scoreboard.models.scoring import GroupRule as GroupRuleModel, ScoreRecord as ScoreRecordModel, ScoringRule as ScoringRuleModel
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.scoring import ScoringRuleCreate, ScoringRuleUpdate, ScoringRuleWithUsage
from scoreboard.services.activity import log_activity
from scoreboard.services.permissions import is_global_admin

router = APIRouter(prefix="/api/scoring-rules", tags=["Scoring Rules"])
logger = logging.getLogger(__name__)


def _rule_or_404(db: Session, rule_id: str) -> ScoringRuleModel:
    rule = db.query(ScoringRuleModel).filter(ScoringRuleModel.id == rule_id).first()
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scoring rule not found")
    return rule


def _require_rule_manager(db: Session, user: UserModel, group_id: Optional[str]) -> None:
    """Global rules belong to system admins; group rules to the owning group's managers."""
    if group_id is None:
        if not is_global_admin(user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only administrators can manage global scoring rules",
            )
        return
    require_group_manager(user, get_group_or_404(db, group_id))


def _name_taken(db: Session, name: str, group_id: Optional[str], exclude_id: Optional[str] = None) -> bool:
    query = db.query(ScoringRuleModel).filter(ScoringRuleModel.name == name)
    if group_id is None:
        query = query.filter(ScoringRuleModel.group_id.is_(None))
    else:
        query = query.filter(ScoringRuleModel.group_id == group_id)
    if exclude_id:
        query = query.filter(ScoringRuleModel.id != exclude_id)
    return query.first() is not None


def _with_usage(db: Session, rules: List[ScoringRuleModel]) -> List[dict]:
    rule_ids = [rule.id for rule in rules]
    group_counts: dict[str, int] = {}
    record_counts: dict[str, int] = {}
    if rule_ids:
        group_counts = dict(
            db.query(GroupRuleModel.rule_id, func.count(GroupRuleModel.id))
            .filter(GroupRuleModel.rule_id.in_(rule_ids), GroupRuleModel.is_active == True)
            .group_by(GroupRuleModel.rule_id)
            .all()
        )
        record_counts = dict(
            db.query(ScoreRecordModel.rule_id, func.count(ScoreRecordModel.id))
            .filter(ScoreRecordModel.rule_id.in_(rule_ids))
            .group_by(ScoreRecordModel.rule_id)
            .all()
        )
    rows = []
    for rule in rules:
        row = ScoringRuleWithUsage.model_validate(rule).model_dump()
        row["groups_count"] = group_counts.get(rule.id, 0)
        row["records_count"] = record_counts.get(rule.id, 0)
        rows.append(row)
    return rows


@router.get("", response_model=List[ScoringRuleWithUsage])
async def list_scoring_rules(
    group_id: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Global rules, or the rules owned by ``group_id``."""
    query = db.query(ScoringRuleModel)
    if group_id:
        query = query.filter(ScoringRuleModel.group_id == group_id)
    else:
        query = query.filter(ScoringRuleModel.group_id.is_(None))
    if not include_inactive:
        query = query.filter(ScoringRuleModel.is_active == True)
    rules = query.order_by(ScoringRuleModel.created_at.desc()).all()
    return _with_usage(db, rules)


@router.get("/{rule_id}", response_model=ScoringRuleWithUsage)
async def get_scoring_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return _with_usage(db, [_rule_or_404(db, rule_id)])[0]


@router.post("", response_model=ScoringRuleWithUsage, status_code=status.HTTP_201_CREATED)
async def create_scoring_rule(
    payload: ScoringRuleCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    _require_rule_manager(db, current_user, payload.group_id)

    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rule name is required")
    if _name_taken(db, name, payload.group_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A scoring rule with this name already exists",
        )

    rule = ScoringRuleModel(
        name=name,
        points=payload.points,
        description=payload.description,
        criteria=payload.criteria,
        group_id=payload.group_id,
    )
    db.add(rule)
    db.flush()
    if payload.group_id:
        db.add(GroupRuleModel(group_id=payload.group_id, rule_id=rule.id, is_active=True))

    log_activity(
        db,
        ActivityType.SCORING_RULE_CREATED,
        f'Scoring rule "{rule.name}" created',
        user_id=current_user.id,
        group_id=payload.group_id,
        metadata={"rule_id": rule.id, "rule_name": rule.name, "points": rule.points},
        commit=False,
    )
    db.commit()
    db.refresh(rule)
    logger.info("Scoring rule %s created (group=%s)", rule.id, payload.group_id or "global")
    return _with_usage(db, [rule])[0]


@router.patch("/{rule_id}", response_model=ScoringRuleWithUsage)
async def update_scoring_rule(
    rule_id: str,
    payload: ScoringRuleUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    rule = _rule_or_404(db, rule_id)
    _require_rule_manager(db, current_user, rule.group_id)

    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rule name is required")
        if _name_taken(db, name, rule.group_id, exclude_id=rule.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A scoring rule with this name already exists",
            )
        changes["name"] = name
    if "points" in changes and changes["points"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Points are required")
    if "is_active" in changes and changes["is_active"] is None:
        changes.pop("is_active")

    for field, value in changes.items():
        setattr(rule, field, value)

    if "is_active" in changes:
        action = ActivityType.SCORING_RULE_TOGGLED
        description = f'Scoring rule "{rule.name}" {"activated" if rule.is_active else "deactivated"}'
    else:
        action = ActivityType.SCORING_RULE_UPDATED
        description = f'Scoring rule "{rule.name}" updated'
    log_activity(
        db,
        action,
        description,
        user_id=current_user.id,
        group_id=rule.group_id,
        metadata={"rule_id": rule.id, "changes": changes},
        commit=False,
    )
    db.commit()
    db.refresh(rule)
    return _with_usage(db, [rule])[0]


@router.delete("/{rule_id}")
async def delete_scoring_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    rule = _rule_or_404(db, rule_id)
    _require_rule_manager(db, current_user, rule.group_id)

    records = db.query(ScoreRecordModel).filter(ScoreRecordModel.rule_id == rule.id).count()
    if records:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a scoring rule that has score records",
        )

    linked_groups = (
        db.query(GroupModel.name)
        .join(GroupRuleModel, GroupRuleModel.group_id == GroupModel.id)
        .filter(GroupRuleModel.rule_id == rule.id)
    )
    if rule.group_id:
        linked_groups = linked_groups.filter(GroupModel.id != rule.group_id)
    names = sorted(name for (name,) in linked_groups.all())
    if names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete a scoring rule used by groups: {', '.join(names)}",
        )

    rule_name = rule.name
    log_activity(
        db,
        ActivityType.SCORING_RULE_DELETED,
        f'Scoring rule "{rule_name}" deleted',
        user_id=current_user.id,
        group_id=rule.group_id,
        metadata={"rule_id": rule.id, "rule_name": rule.name, "points": rule.points},
        commit=False,
    )
    db.delete(rule)
    db.commit()
    return {"message": f'Scoring rule "{rule_name}" deleted'}
