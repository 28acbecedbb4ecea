from datetime import datetime
import uuid

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from scoreboard.database import Base
from scoreboard.models.enums import ActivityType


class ActivityLog(Base):
    """Append-only audit row. The application never updates or deletes these."""

    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(Enum(ActivityType, name="activity_type"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="activity_logs")
    group = relationship("Group", back_populates="activity_logs")
