from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.models.group import Group as GroupModel, GroupMember as GroupMemberModel
from scoreboard.models.user import User as UserModel
from scoreboard.services.analytics import AnalyticsService
from scoreboard.services.permissions import can_manage_group

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def _normalize_period(period: Optional[str]) -> str:
    return period if period in AnalyticsService.PERIODS else AnalyticsService.DEFAULT_PERIOD


@router.get("")
async def get_analytics(
    group_id: Optional[str] = None,
    period: str = AnalyticsService.DEFAULT_PERIOD,
    user_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Points summary, trend and breakdowns for one group or all of the caller's groups."""
    period = _normalize_period(period)

    if not group_id:
        memberships = (
            db.query(GroupMemberModel)
            .options(joinedload(GroupMemberModel.group))
            .filter(GroupMemberModel.user_id == current_user.id)
            .all()
        )
        groups = [membership.group for membership in memberships]
        if not groups:
            return AnalyticsService.empty_report(period)
    else:
        group = db.query(GroupModel).filter(GroupModel.id == group_id).first()
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        if user_id and user_id != current_user.id and not can_manage_group(current_user, group.members):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only group owners and admins can view another member's analytics",
            )
        groups = [group]

    start, end = AnalyticsService.resolve_range(period, start_date, end_date)
    return AnalyticsService.build_report(
        db,
        period,
        start,
        end,
        group_ids=[group.id for group in groups],
        user_id=user_id,
        breakdown_groups=groups if len(groups) > 1 else None,
    )


@router.get("/daily")
async def get_daily_analytics(
    group_id: Optional[str] = None,
    period: str = AnalyticsService.DEFAULT_PERIOD,
    user_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Site-wide aggregation, optionally narrowed to one group or one user."""
    period = _normalize_period(period)
    start, end = AnalyticsService.resolve_range(period, start_date, end_date)

    group_ids = [group_id] if group_id else None
    breakdown_groups = None if group_id else db.query(GroupModel).all()
    return AnalyticsService.build_report(
        db,
        period,
        start,
        end,
        group_ids=group_ids,
        user_id=user_id,
        breakdown_groups=breakdown_groups,
        include_empty_groups=False,
    )
