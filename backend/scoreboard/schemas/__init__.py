from scoreboard.schemas.user import (
    User, UserSummary, UserBrief, UserRegister, ProfileUpdate, PasswordChange,
    AdminUserCreate, AdminUserUpdate, AdminPasswordReset, Token, TokenData,
)
from scoreboard.schemas.scoring import (
    ScoringRule, ScoringRuleCreate, ScoringRuleUpdate, ScoringRuleWithUsage,
    GroupRule, GroupRuleAdd,
    ScoreRecord, ScoreRecordCreate, ScoreRecordUpdate, ScoreRecordPage,
)
from scoreboard.schemas.group import (
    Group, GroupCreate, GroupUpdate, GroupMember, MemberAdd, MemberRoleUpdate, GroupStats,
)
from scoreboard.schemas.activity import ActivityLogCreate

__all__ = [
    "User", "UserSummary", "UserBrief", "UserRegister", "ProfileUpdate", "PasswordChange",
    "AdminUserCreate", "AdminUserUpdate", "AdminPasswordReset", "Token", "TokenData",
    "ScoringRule", "ScoringRuleCreate", "ScoringRuleUpdate", "ScoringRuleWithUsage",
    "GroupRule", "GroupRuleAdd",
    "ScoreRecord", "ScoreRecordCreate", "ScoreRecordUpdate", "ScoreRecordPage",
    "Group", "GroupCreate", "GroupUpdate", "GroupMember", "MemberAdd", "MemberRoleUpdate", "GroupStats",
    "ActivityLogCreate",
]
