from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from scoreboard.schemas.user import UserSummary


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ScoringRuleCreate(BaseModel):
    name: str = Field(..., max_length=100)
    points: int
    description: Optional[str] = None
    criteria: Optional[str] = None
    group_id: Optional[str] = None


class ScoringRuleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    points: Optional[int] = None
    description: Optional[str] = None
    criteria: Optional[str] = None
    is_active: Optional[bool] = None


class ScoringRule(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    criteria: Optional[str] = None
    points: int
    is_active: bool
    group_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScoringRuleWithUsage(ScoringRule):
    groups_count: int = 0
    records_count: int = 0


class RuleSummary(BaseModel):
    id: str
    name: str
    points: int

    class Config:
        from_attributes = True


class GroupRuleAdd(BaseModel):
    rule_id: str


class GroupRule(BaseModel):
    id: str
    group_id: str
    rule_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class GroupRef(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class ScoreRecordCreate(BaseModel):
    group_id: str
    rule_id: str
    target_user_id: str
    points: Optional[int] = None
    notes: Optional[str] = None
    criteria: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at")
    @classmethod
    def _to_naive_utc(cls, value):
        return _naive_utc(value)


class ScoreRecordUpdate(BaseModel):
    points: Optional[int] = None
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at")
    @classmethod
    def _to_naive_utc(cls, value):
        return _naive_utc(value)


class ScoreRecord(BaseModel):
    id: str
    user_id: str
    group_id: str
    rule_id: str
    points: int
    criteria: Optional[str] = None
    notes: Optional[str] = None
    recorded_at: datetime
    created_at: Optional[datetime] = None
    rule: Optional[RuleSummary] = None
    user: Optional[UserSummary] = None
    group: Optional[GroupRef] = None

    class Config:
        from_attributes = True


class OffsetPagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class ScoreRecordPage(BaseModel):
    score_records: List[ScoreRecord]
    pagination: OffsetPagination
