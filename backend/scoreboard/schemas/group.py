from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from scoreboard.models.enums import GroupRole
from scoreboard.schemas.scoring import ScoringRule
from scoreboard.schemas.user import UserBrief, UserSummary


class GroupCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class GroupMember(BaseModel):
    id: str
    user_id: str
    group_id: str
    role: GroupRole
    joined_at: Optional[datetime] = None
    is_virtual: bool = False
    user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class Group(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_by_id: Optional[str] = None
    created_by: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    members: List[GroupMember] = []
    scoring_rules: List[ScoringRule] = []
    rules_count: int = 0
    score_records_count: int = 0
    current_user_role: Optional[GroupRole] = None

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    email: EmailStr
    role: GroupRole = GroupRole.MEMBER


class MemberRoleUpdate(BaseModel):
    member_id: str
    role: GroupRole


class MemberPerformance(BaseModel):
    user_id: str
    user_name: str
    user_email: str
    total_records: int
    total_points: int
    average_points: float


class GroupStats(BaseModel):
    group: Group
    total_members: int
    active_rules: int
    total_score_records: int
    total_points: int
    weekly_records: int
    weekly_score: int
    top_performers: List[MemberPerformance]
    bottom_performers: List[MemberPerformance]
