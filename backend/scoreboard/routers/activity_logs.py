from datetime import date, datetime, time
from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.routers.groups import get_group_or_404
from scoreboard.models.activity_log import ActivityLog
from scoreboard.models.enums import ActivityType, GroupRole
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.activity import ActivityLogCreate
from scoreboard.services.activity import log_activity
from scoreboard.services.permissions import has_group_permission

router = APIRouter(prefix="/api/activity-logs", tags=["Activity Logs"])


def serialize_log(entry: ActivityLog) -> dict:
    return {
        "id": entry.id,
        "action": entry.action.value,
        "description": entry.description,
        "metadata": entry.details,
        "timestamp": entry.timestamp,
        "user": (
            {"id": entry.user.id, "name": entry.user.name, "email": entry.user.email}
            if entry.user else None
        ),
        "group": {"id": entry.group.id, "name": entry.group.name} if entry.group else None,
    }


@router.get("")
async def list_activity_logs(
    group_id: Optional[str] = None,
    action: Optional[ActivityType] = None,
    user_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    query = db.query(ActivityLog)
    if group_id:
        query = query.filter(ActivityLog.group_id == group_id)
    if action:
        query = query.filter(ActivityLog.action == action)
    if user_id:
        query = query.filter(ActivityLog.user_id == user_id)
    if start_date:
        query = query.filter(ActivityLog.timestamp >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.filter(ActivityLog.timestamp <= datetime.combine(end_date, time.max))

    total_count = query.count()
    entries = (
        query.options(joinedload(ActivityLog.user), joinedload(ActivityLog.group))
        .order_by(ActivityLog.timestamp.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = ceil(total_count / limit) if total_count else 0
    return {
        "activity_logs": [serialize_log(entry) for entry in entries],
        "pagination": {
            "page": page,
            "limit": limit,
            "total_count": total_count,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_activity_log(
    payload: ActivityLogCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Record a client-side event against the caller."""
    if payload.group_id:
        group = get_group_or_404(db, payload.group_id)
        if not has_group_permission(current_user, group.members, tuple(GroupRole)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a member of this group")

    entry = log_activity(
        db,
        payload.action,
        payload.description,
        user_id=current_user.id,
        group_id=payload.group_id,
        metadata=payload.metadata,
    )
    return serialize_log(entry)
