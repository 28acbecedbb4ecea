from datetime import datetime
import uuid

from sqlalchemy import Column, DateTime, Enum, String
from sqlalchemy.orm import relationship

from scoreboard.database import Base
from scoreboard.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    image = Column(String(500), nullable=True)
    # Null for accounts that never set a password (OAuth-style sign in)
    hashed_password = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.USER)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_groups = relationship("Group", back_populates="created_by")
    memberships = relationship(
        "GroupMember",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    score_records = relationship(
        "ScoreRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    activity_logs = relationship("ActivityLog", back_populates="user", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.name or self.email
