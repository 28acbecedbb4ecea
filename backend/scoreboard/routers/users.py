from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.models.enums import ActivityType
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.user import PasswordChange, ProfileUpdate, User
from scoreboard.services.activity import log_activity
from scoreboard.services.auth import AuthService
from scoreboard.services.passwords import MIN_LENGTH

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/profile", response_model=User)
async def get_profile(current_user: UserModel = Depends(get_current_user)):
    return current_user


@router.patch("/profile", response_model=User)
async def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    updates = payload.model_dump(exclude_unset=True)
    if "name" in updates:
        name = (updates["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name cannot be empty")
        updates["name"] = name

    for field, value in updates.items():
        setattr(current_user, field, value)

    log_activity(
        db,
        ActivityType.PROFILE_UPDATED,
        "Profile updated",
        user_id=current_user.id,
        metadata={"fields": sorted(updates)},
        commit=False,
    )
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post("/password")
async def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Change the caller's own password after re-checking the current one."""
    if not current_user.hashed_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This account signs in without a password",
        )
    if len(payload.new_password) < MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"New password must be at least {MIN_LENGTH} characters long",
        )
    if not AuthService.verify_password(payload.current_password, current_user.hashed_password):
        log_activity(
            db,
            ActivityType.LOGIN_FAILED,
            "Password change rejected: current password did not match",
            user_id=current_user.id,
            metadata={"email": current_user.email, "reason": "invalid_current_password"},
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    current_user.hashed_password = AuthService.get_password_hash(payload.new_password)
    log_activity(
        db,
        ActivityType.PASSWORD_RESET_COMPLETED,
        "Password changed",
        user_id=current_user.id,
        metadata={"method": "self_service"},
        commit=False,
    )
    db.commit()
    return {"message": "Password updated"}
