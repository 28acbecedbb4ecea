from datetime import date, datetime, time
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.routers.groups import get_group_or_404, require_group_manager
from scoreboard.models.enums import ActivityType
from scoreboard.models.scoring import GroupRule as GroupRuleModel, ScoreRecord as ScoreRecordModel, ScoringRule as ScoringRuleModel
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.scoring import ScoreRecord, ScoreRecordCreate, ScoreRecordPage, ScoreRecordUpdate
from scoreboard.services.activity import log_activity
from scoreboard.services.permissions import find_membership

router = APIRouter(prefix="/api/score-records", tags=["Score Records"])
logger = logging.getLogger(__name__)


def _record_or_404(db: Session, record_id: str) -> ScoreRecordModel:
    record = (
        db.query(ScoreRecordModel)
        .options(
            joinedload(ScoreRecordModel.rule),
            joinedload(ScoreRecordModel.user),
            joinedload(ScoreRecordModel.group),
        )
        .filter(ScoreRecordModel.id == record_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Score record not found")
    return record


@router.get("", response_model=ScoreRecordPage)
async def list_score_records(
    group_id: Optional[str] = None,
    user_id: Optional[str] = None,
    rule_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    query = db.query(ScoreRecordModel)
    if group_id:
        query = query.filter(ScoreRecordModel.group_id == group_id)
    if user_id:
        query = query.filter(ScoreRecordModel.user_id == user_id)
    if rule_id:
        query = query.filter(ScoreRecordModel.rule_id == rule_id)
    if start_date:
        query = query.filter(ScoreRecordModel.recorded_at >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.filter(ScoreRecordModel.recorded_at <= datetime.combine(end_date, time.max))

    total = query.count()
    records = (
        query.options(
            joinedload(ScoreRecordModel.rule),
            joinedload(ScoreRecordModel.user),
            joinedload(ScoreRecordModel.group),
        )
        .order_by(ScoreRecordModel.recorded_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "score_records": records,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(records) < total,
        },
    }


@router.post("", response_model=ScoreRecord, status_code=status.HTTP_201_CREATED)
async def create_score_record(
    payload: ScoreRecordCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, payload.group_id)
    require_group_manager(current_user, group)

    target = find_membership(group.members, payload.target_user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Target user is not a member of this group")

    rule = db.query(ScoringRuleModel).filter(
        ScoringRuleModel.id == payload.rule_id,
        ScoringRuleModel.is_active == True,
    ).first()
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scoring rule not found or inactive")
    linked = db.query(GroupRuleModel).filter(
        GroupRuleModel.group_id == group.id,
        GroupRuleModel.rule_id == rule.id,
        GroupRuleModel.is_active == True,
    ).first()
    if not linked:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Scoring rule is not active in this group")

    record = ScoreRecordModel(
        user_id=target.user_id,
        group_id=group.id,
        rule_id=rule.id,
        points=payload.points if payload.points is not None else rule.points,
        criteria=payload.criteria if payload.criteria is not None else rule.criteria,
        notes=payload.notes,
        recorded_at=payload.recorded_at or datetime.utcnow(),
    )
    db.add(record)
    db.flush()
    log_activity(
        db,
        ActivityType.SCORE_RECORDED,
        f"{record.points} points recorded for {target.user.display_name} ({rule.name})",
        user_id=current_user.id,
        group_id=group.id,
        metadata={
            "score_record_id": record.id,
            "target_user_id": target.user_id,
            "rule_id": rule.id,
            "points": record.points,
        },
        commit=False,
    )
    db.commit()
    return _record_or_404(db, record.id)


@router.put("/{record_id}", response_model=ScoreRecord)
async def update_score_record(
    record_id: str,
    payload: ScoreRecordUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    record = _record_or_404(db, record_id)
    require_group_manager(current_user, get_group_or_404(db, record.group_id))

    changes = payload.model_dump(exclude_unset=True)
    if "points" in changes and changes["points"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Points are required")
    if "recorded_at" in changes and changes["recorded_at"] is None:
        changes.pop("recorded_at")
    previous_points = record.points
    for field, value in changes.items():
        setattr(record, field, value)

    log_activity(
        db,
        ActivityType.SCORE_UPDATED,
        f"Score record updated for {record.user.display_name}",
        user_id=current_user.id,
        group_id=record.group_id,
        metadata={
            "score_record_id": record.id,
            "previous_points": previous_points,
            "points": record.points,
        },
        commit=False,
    )
    db.commit()
    return _record_or_404(db, record_id)


@router.delete("/{record_id}")
async def delete_score_record(
    record_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    record = _record_or_404(db, record_id)
    require_group_manager(current_user, get_group_or_404(db, record.group_id))

    log_activity(
        db,
        ActivityType.SCORE_DELETED,
        f"Score record deleted for {record.user.display_name}",
        user_id=current_user.id,
        group_id=record.group_id,
        metadata={
            "score_record_id": record.id,
            "target_user_id": record.user_id,
            "rule_id": record.rule_id,
            "points": record.points,
        },
        commit=False,
    )
    db.delete(record)
    db.commit()
    logger.info("Score record %s deleted by %s", record_id, current_user.id)
    return {"message": "Score record deleted"}
