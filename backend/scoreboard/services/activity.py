from datetime import datetime
from typing import Any, Optional
import logging

from sqlalchemy.orm import Session

from scoreboard.models.activity_log import ActivityLog
from scoreboard.models.enums import ActivityType

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    action: ActivityType,
    description: str,
    user_id: Optional[str] = None,
    group_id: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    commit: bool = True,
) -> ActivityLog:
    """Append one audit row.

    With ``commit=False`` the row joins the caller's pending unit of work, so a
    mutation and its audit entry are committed together.
    """
    entry = ActivityLog(
        user_id=user_id,
        group_id=group_id,
        action=action,
        description=description,
        details=metadata or None,
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    logger.debug("Activity %s user=%s group=%s", action.value, user_id, group_id)
    return entry


def log_user_registration(db: Session, user, commit: bool = True) -> ActivityLog:
    return log_activity(
        db,
        ActivityType.USER_REGISTERED,
        f"User registered with email {user.email}",
        user_id=user.id,
        metadata={"email": user.email, "name": user.name, "role": user.role.value},
        commit=commit,
    )


def log_user_login(db: Session, user, method: str = "password") -> ActivityLog:
    return log_activity(
        db,
        ActivityType.USER_LOGIN,
        f"User signed in via {method}",
        user_id=user.id,
        metadata={"email": user.email, "login_method": method},
    )


def log_login_failed(db: Session, email: str, reason: str, ip_address: Optional[str] = None) -> ActivityLog:
    return log_activity(
        db,
        ActivityType.LOGIN_FAILED,
        f"Failed sign in for {email}",
        metadata={
            "email": email,
            "reason": reason,
            "ip_address": ip_address,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


def log_admin_user_created(db: Session, user, created_by: str, commit: bool = True) -> ActivityLog:
    return log_activity(
        db,
        ActivityType.ADMIN_USER_CREATED,
        f"Account created by administrator: {user.email}",
        user_id=user.id,
        metadata={"email": user.email, "name": user.name, "role": user.role.value, "created_by": created_by},
        commit=commit,
    )
