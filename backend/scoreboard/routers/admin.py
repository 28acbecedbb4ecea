from math import ceil
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from scoreboard.database import get_db
from scoreboard.models.activity_log import ActivityLog
from scoreboard.models.enums import ActivityType, GroupRole, UserRole
from scoreboard.models.group import Group, GroupMember
from scoreboard.models.scoring import ScoreRecord
from scoreboard.models.user import User
from scoreboard.routers.auth import require_admin
from scoreboard.schemas.user import AdminPasswordReset, AdminUserCreate, AdminUserUpdate, User as UserSchema
from scoreboard.services.activity import log_activity, log_admin_user_created
from scoreboard.services.auth import AuthService

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


def _user_or_404(db: Session, user_id: str) -> User:
    user = AuthService.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _counts_for(db: Session, user_ids: list[str], include_activity: bool = False) -> dict[str, dict]:
    def grouped(column, id_column):
        if not user_ids:
            return {}
        rows = db.query(column, func.count(id_column)).filter(column.in_(user_ids)).group_by(column).all()
        return dict(rows)

    groups = grouped(Group.created_by_id, Group.id)
    memberships = grouped(GroupMember.user_id, GroupMember.id)
    records = grouped(ScoreRecord.user_id, ScoreRecord.id)
    activity = grouped(ActivityLog.user_id, ActivityLog.id) if include_activity else {}

    counts = {}
    for user_id in user_ids:
        counts[user_id] = {
            "groups": groups.get(user_id, 0),
            "group_memberships": memberships.get(user_id, 0),
            "score_records": records.get(user_id, 0),
        }
        if include_activity:
            counts[user_id]["activity_logs"] = activity.get(user_id, 0)
    return counts


def _serialize(user: User, counts: dict) -> dict:
    data = UserSchema.model_validate(user).model_dump()
    data["counts"] = counts
    return data


@router.get("/users")
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    query = db.query(User)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.email.ilike(pattern), User.name.ilike(pattern)))
    if role:
        query = query.filter(User.role == role)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    counts = _counts_for(db, [user.id for user in users])

    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return {
        "users": [_serialize(user, counts[user.id]) for user in users],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": ceil(total / limit) if total else 0,
            "has_more": page * limit < total,
        },
        "stats": {
            "total": total,
            "admins": role_counts.get(UserRole.ADMIN, 0),
            "users": role_counts.get(UserRole.USER, 0),
        },
    }


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: AdminUserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if AuthService.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    AuthService.require_strong_password(payload.password)

    user = AuthService.create_user(db, payload.email, payload.password, name=payload.name, role=payload.role)
    log_admin_user_created(db, user, created_by=admin.id, commit=False)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s created user %s", admin.id, user.id)
    return _serialize(user, _counts_for(db, [user.id])[user.id])


@router.get("/users/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    return _serialize(user, _counts_for(db, [user.id], include_activity=True)[user.id])


@router.patch("/users/{user_id}")
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    new_role = changes.get("role")

    if new_role is not None and new_role != user.role:
        if user.id == admin.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
        AuthService.ensure_admin_remains(db, user, "demote")

    email = changes.get("email")
    if email and email != user.email:
        if AuthService.get_user_by_email(db, email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        user.email = email
    if "name" in changes:
        user.name = changes["name"].strip() if changes["name"] else None

    previous_role = user.role
    if new_role is not None and new_role != previous_role:
        user.role = new_role
        log_activity(
            db,
            ActivityType.ADMIN_USER_ROLE_UPDATED,
            f"Role for {user.email} changed from {previous_role.value} to {new_role.value}",
            user_id=admin.id,
            metadata={
                "target_user_id": user.id,
                "previous_role": previous_role.value,
                "new_role": new_role.value,
            },
            commit=False,
        )
    db.commit()
    db.refresh(user)
    return _serialize(user, _counts_for(db, [user.id])[user.id])


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    AuthService.ensure_admin_remains(db, user, "delete")

    owned = (
        db.query(Group.name)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .filter(GroupMember.user_id == user.id, GroupMember.role == GroupRole.OWNER)
        .all()
    )
    if owned:
        names = ", ".join(sorted(name for (name,) in owned))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User still owns groups ({names}); transfer ownership first",
        )

    log_activity(
        db,
        ActivityType.ADMIN_USER_DELETED,
        f"Account deleted: {user.email}",
        user_id=admin.id,
        metadata={"deleted_user_id": user.id, "email": user.email, "role": user.role.value},
        commit=False,
    )
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return {"message": "User deleted"}


@router.put("/users/{user_id}/password")
def reset_user_password(
    user_id: str,
    payload: AdminPasswordReset,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    AuthService.require_strong_password(payload.new_password)

    user.hashed_password = AuthService.get_password_hash(payload.new_password)
    log_activity(
        db,
        ActivityType.ADMIN_PASSWORD_RESET_BY_ADMIN,
        f"Password reset by administrator for {user.email}",
        user_id=admin.id,
        metadata={"target_user_id": user.id, "email": user.email},
        commit=False,
    )
    db.commit()
    return {"message": "Password updated"}
