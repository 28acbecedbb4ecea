from scoreboard.models.enums import ActivityType, GroupRole, UserRole
from scoreboard.models.user import User
from scoreboard.models.group import Group, GroupMember
from scoreboard.models.scoring import ScoringRule, GroupRule, ScoreRecord
from scoreboard.models.activity_log import ActivityLog

__all__ = [
    "ActivityType",
    "GroupRole",
    "UserRole",
    "User",
    "Group",
    "GroupMember",
    "ScoringRule",
    "GroupRule",
    "ScoreRecord",
    "ActivityLog",
]
