from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from scoreboard.database import get_db
from scoreboard.routers.auth import get_current_user
from scoreboard.routers.groups import get_group_or_404, require_group_manager
from scoreboard.models.enums import ActivityType, GroupRole
from scoreboard.models.group import GroupMember as GroupMemberModel
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.group import GroupMember, MemberAdd, MemberRoleUpdate
from scoreboard.services.activity import log_activity
from scoreboard.services.auth import AuthService
from scoreboard.services.permissions import (
    find_membership,
    is_global_admin,
    is_group_owner,
    members_with_virtual_admin,
)

router = APIRouter(prefix="/api/groups/{group_id}/members", tags=["Members"])
logger = logging.getLogger(__name__)


def _member_or_404(group, member_id: str) -> GroupMemberModel:
    for member in group.members:
        if member.id == member_id:
            return member
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")


@router.get("", response_model=List[GroupMember])
async def list_members(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    return members_with_virtual_admin(group, group.members, current_user)


@router.post("", response_model=GroupMember, status_code=status.HTTP_201_CREATED)
async def add_member(
    group_id: str,
    payload: MemberAdd,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)

    if payload.role == GroupRole.OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A group has a single owner; transfer ownership instead",
        )
    user = AuthService.get_user_by_email(db, payload.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if find_membership(group.members, user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already a member of this group")

    member = GroupMemberModel(user_id=user.id, group_id=group.id, role=payload.role)
    db.add(member)
    log_activity(
        db,
        ActivityType.MEMBER_ADDED,
        f"{user.display_name} added to {group.name} as {payload.role.value}",
        user_id=current_user.id,
        group_id=group.id,
        metadata={"member_user_id": user.id, "email": user.email, "role": payload.role.value},
        commit=False,
    )
    db.commit()
    db.refresh(member)
    return member


def _transfer_ownership(db: Session, group, target: GroupMemberModel, current_user: UserModel) -> GroupMemberModel:
    owner = next((member for member in group.members if member.role == GroupRole.OWNER), None)
    if not is_group_owner(current_user, group.members) and not is_global_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the current owner can transfer ownership",
        )
    if target.role == GroupRole.OWNER:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This member already owns the group")

    # Demote first so a single OWNER row exists at every flush
    if owner is not None:
        owner.role = GroupRole.ADMIN
        db.flush()
    target.role = GroupRole.OWNER
    log_activity(
        db,
        ActivityType.OWNERSHIP_TRANSFERRED,
        f"Ownership of {group.name} transferred to {target.user.display_name}",
        user_id=current_user.id,
        group_id=group.id,
        metadata={
            "previous_owner_id": owner.user_id if owner else None,
            "new_owner_id": target.user_id,
        },
        commit=False,
    )
    db.commit()
    logger.info("Group %s ownership transferred to %s", group.id, target.user_id)
    return target


@router.patch("", response_model=GroupMember)
async def update_member_role(
    group_id: str,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Change a member's role; assigning OWNER transfers ownership."""
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)
    target = _member_or_404(group, payload.member_id)

    if payload.role == GroupRole.OWNER:
        member = _transfer_ownership(db, group, target, current_user)
        db.refresh(member)
        return member

    if target.user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
    if target.role == GroupRole.OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The owner's role can only change through an ownership transfer",
        )

    previous_role = target.role
    target.role = payload.role
    log_activity(
        db,
        ActivityType.MEMBER_ROLE_UPDATED,
        f"{target.user.display_name} is now {payload.role.value} in {group.name}",
        user_id=current_user.id,
        group_id=group.id,
        metadata={
            "member_user_id": target.user_id,
            "previous_role": previous_role.value,
            "new_role": payload.role.value,
        },
        commit=False,
    )
    db.commit()
    db.refresh(target)
    return target


@router.delete("")
async def remove_member(
    group_id: str,
    member_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    group = get_group_or_404(db, group_id)
    require_group_manager(current_user, group)
    target = _member_or_404(group, member_id)
    if target.role == GroupRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The group owner cannot be removed")

    log_activity(
        db,
        ActivityType.MEMBER_REMOVED,
        f"{target.user.display_name} removed from {group.name}",
        user_id=current_user.id,
        group_id=group.id,
        metadata={"member_user_id": target.user_id, "role": target.role.value},
        commit=False,
    )
    db.delete(target)
    db.commit()
    return {"message": "Member removed"}
