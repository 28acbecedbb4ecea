from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class GroupRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class ActivityType(str, Enum):
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_COMPLETED = "PASSWORD_RESET_COMPLETED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    ADMIN_USER_CREATED = "ADMIN_USER_CREATED"
    ADMIN_USER_ROLE_UPDATED = "ADMIN_USER_ROLE_UPDATED"
    ADMIN_USER_DELETED = "ADMIN_USER_DELETED"
    ADMIN_PASSWORD_RESET_BY_ADMIN = "ADMIN_PASSWORD_RESET_BY_ADMIN"
    GROUP_CREATED = "GROUP_CREATED"
    GROUP_UPDATED = "GROUP_UPDATED"
    GROUP_DELETED = "GROUP_DELETED"
    MEMBER_INVITED = "MEMBER_INVITED"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    MEMBER_ROLE_UPDATED = "MEMBER_ROLE_UPDATED"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    SCORING_RULE_CREATED = "SCORING_RULE_CREATED"
    SCORING_RULE_UPDATED = "SCORING_RULE_UPDATED"
    SCORING_RULE_TOGGLED = "SCORING_RULE_TOGGLED"
    SCORING_RULE_DELETED = "SCORING_RULE_DELETED"
    RULE_ADDED_TO_GROUP = "RULE_ADDED_TO_GROUP"
    RULE_REMOVED_FROM_GROUP = "RULE_REMOVED_FROM_GROUP"
    SCORE_RECORDED = "SCORE_RECORDED"
    SCORE_UPDATED = "SCORE_UPDATED"
    SCORE_DELETED = "SCORE_DELETED"
