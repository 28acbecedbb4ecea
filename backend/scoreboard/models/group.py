from datetime import datetime
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from scoreboard.database import Base
from scoreboard.models.enums import GroupRole


class Group(Base):
    __tablename__ = "groups"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    # Kept nullable so a group survives its creator; ownership lives on GroupMember
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = relationship("User", back_populates="created_groups")
    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="GroupMember.joined_at",
    )
    group_rules = relationship(
        "GroupRule",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    score_records = relationship(
        "ScoreRecord",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    owned_rules = relationship(
        "ScoringRule",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    activity_logs = relationship("ActivityLog", back_populates="group", passive_deletes=True)


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(GroupRole, name="group_role"), nullable=False, default=GroupRole.MEMBER)
    joined_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="memberships")
    group = relationship("Group", back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_group_members_user_group"),
    )
