from datetime import datetime
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from scoreboard.database import Base


class ScoringRule(Base):
    __tablename__ = "scoring_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    criteria = Column(Text, nullable=True)
    points = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Null for global rules; set for rules created inside a single group
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group = relationship("Group", back_populates="owned_rules")
    group_rules = relationship(
        "GroupRule",
        back_populates="rule",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    score_records = relationship("ScoreRecord", back_populates="rule", passive_deletes=True)


class GroupRule(Base):
    __tablename__ = "group_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    rule_id = Column(String(36), ForeignKey("scoring_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group = relationship("Group", back_populates="group_rules")
    rule = relationship("ScoringRule", back_populates="group_rules")

    __table_args__ = (
        UniqueConstraint("group_id", "rule_id", name="uq_group_rules_group_rule"),
    )


class ScoreRecord(Base):
    __tablename__ = "score_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    rule_id = Column(String(36), ForeignKey("scoring_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)
    criteria = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="score_records")
    group = relationship("Group", back_populates="score_records")
    rule = relationship("ScoringRule", back_populates="score_records")
